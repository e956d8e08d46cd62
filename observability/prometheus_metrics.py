"""Prometheus metrics for the Sitescribe pipeline and API."""

import logging
import os
import re
import time
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from prometheus_client import Counter, Histogram, Info, generate_latest
from prometheus_client.core import CollectorRegistry

logger = logging.getLogger(__name__)

# Create custom registry for Sitescribe metrics
sitescribe_registry = CollectorRegistry()

# Request metrics
request_count = Counter(
    'sitescribe_http_requests_total',
    'Total number of HTTP requests',
    ['method', 'endpoint', 'status_code'],
    registry=sitescribe_registry
)

request_duration = Histogram(
    'sitescribe_http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 60.0],
    registry=sitescribe_registry
)

# Pipeline metrics
pipeline_runs = Counter(
    'sitescribe_pipeline_runs_total',
    'Documentation pipeline runs by outcome',
    ['status'],
    registry=sitescribe_registry
)

stage_duration = Histogram(
    'sitescribe_stage_duration_seconds',
    'Duration of pipeline stages in seconds',
    ['stage'],
    buckets=[0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0],
    registry=sitescribe_registry
)

pages_extracted = Histogram(
    'sitescribe_pages_extracted',
    'Pages successfully extracted per run',
    buckets=[0, 1, 5, 10, 15, 25, 40, 60, 100, 200],
    registry=sitescribe_registry
)

provider_results = Counter(
    'sitescribe_provider_results_total',
    'Research results returned per provider',
    ['provider'],
    registry=sitescribe_registry
)

provider_failures = Counter(
    'sitescribe_provider_failures_total',
    'Research provider calls that degraded to empty output',
    ['provider', 'reason'],
    registry=sitescribe_registry
)

json_repair_attempts = Counter(
    'sitescribe_json_repair_attempts_total',
    'JSON repair requests issued to the generative service',
    ['stage', 'outcome'],
    registry=sitescribe_registry
)

quotes_issued = Counter(
    'sitescribe_quotes_total',
    'Pricing quotes issued',
    ['tier', 'free'],
    registry=sitescribe_registry
)

# Application info
app_info = Info(
    'sitescribe_app_info',
    'Sitescribe application information',
    registry=sitescribe_registry
)


class PrometheusMiddleware:
    """Middleware to collect Prometheus metrics for HTTP requests."""

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        method = request.method
        endpoint = self._normalize_endpoint(request.url.path)
        start_time = time.time()
        status_code = 500

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            request_count.labels(method=method, endpoint=endpoint, status_code=str(status_code)).inc()
            request_duration.labels(method=method, endpoint=endpoint).observe(time.time() - start_time)

    def _normalize_endpoint(self, path: str) -> str:
        """Normalize endpoint path to reduce cardinality."""
        path = re.sub(r'/[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}', '/{uuid}', path)
        return re.sub(r'/\d+', '/{id}', path)


def setup_prometheus_metrics(app: FastAPI) -> None:
    """Setup Prometheus metrics collection for FastAPI app."""
    app.add_middleware(PrometheusMiddleware)

    @app.get("/metrics", response_class=PlainTextResponse)
    async def metrics_endpoint():
        """Prometheus metrics endpoint."""
        return generate_latest(sitescribe_registry)

    app_info.info({
        'version': os.getenv('APP_VERSION', 'unknown'),
        'environment': os.getenv('ENVIRONMENT', 'development'),
    })

    logger.info("Prometheus metrics configured")


def record_pipeline_run(status: str) -> None:
    pipeline_runs.labels(status=status).inc()


def record_stage_duration(stage: str, duration: float) -> None:
    stage_duration.labels(stage=stage).observe(duration)


def record_pages_extracted(count: int) -> None:
    pages_extracted.observe(count)


def record_provider_result(provider: str, count: int, failure: Optional[str] = None) -> None:
    """Record the outcome of one research provider call."""
    if failure:
        provider_failures.labels(provider=provider, reason=failure).inc()
    provider_results.labels(provider=provider).inc(count)


def record_repair_attempt(stage: str, succeeded: bool) -> None:
    json_repair_attempts.labels(stage=stage, outcome="success" if succeeded else "failure").inc()


def record_quote(tier: str, is_free: bool) -> None:
    quotes_issued.labels(tier=tier, free=str(is_free).lower()).inc()
