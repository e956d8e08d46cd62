"""Observability package for Sitescribe."""

from .logging import setup_logging, setup_logging_from_settings, get_structured_logger, StructuredLogger
from .prometheus_metrics import (
    setup_prometheus_metrics,
    record_pipeline_run,
    record_stage_duration,
    record_pages_extracted,
    record_provider_result,
    record_repair_attempt,
    record_quote,
    PrometheusMiddleware,
    sitescribe_registry
)

__all__ = [
    'setup_logging',
    'setup_logging_from_settings',
    'get_structured_logger',
    'StructuredLogger',
    'setup_prometheus_metrics',
    'record_pipeline_run',
    'record_stage_duration',
    'record_pages_extracted',
    'record_provider_result',
    'record_repair_attempt',
    'record_quote',
    'PrometheusMiddleware',
    'sitescribe_registry'
]
