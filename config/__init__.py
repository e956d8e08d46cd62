"""Configuration module for Sitescribe.

Provides runtime settings and pipeline heuristics configuration.
"""

from .settings import Settings
from .pipeline_loader import DEFAULT_CONFIG, PipelineConfig, pipeline_config

__all__ = [
    'Settings',
    'DEFAULT_CONFIG',
    'PipelineConfig',
    'pipeline_config',
]
