"""
Metrics collection for FixtureWatch.
Wraps prometheus_client; every service exposes the same registry.
"""
from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from prometheus_client import Counter, Gauge, Histogram, start_http_server

from shared.config import get_settings
from shared.utils.logging import get_logger

logger = get_logger(__name__)

# ── Sources ─────────────────────────────────────────────────────────────
SOURCE_FETCHES = Counter(
    "fw_source_fetches_total",
    "Source adapter fetch attempts by outcome",
    ["source", "outcome"],
)
SOURCE_REPORTS = Counter(
    "fw_source_reports_total",
    "Reports produced per source",
    ["source"],
)
SOURCE_LATENCY = Histogram(
    "fw_source_latency_seconds",
    "Source adapter fetch latency in seconds",
    ["source"],
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0),
)
PROVIDER_REQUESTS = Counter(
    "fw_provider_requests_total",
    "Total outbound HTTP requests",
    ["provider", "status"],
)
PROVIDER_LATENCY = Histogram(
    "fw_provider_latency_seconds",
    "Outbound HTTP request latency in seconds",
    ["provider"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# ── Ingestion ───────────────────────────────────────────────────────────
INGEST_GROUPS = Counter(
    "fw_ingest_groups_total",
    "Identity groups processed by outcome (created/updated/unchanged/failed)",
    ["outcome"],
)
INGEST_PROCESSING = Histogram(
    "fw_ingest_processing_seconds",
    "Time to reconcile and persist one identity group",
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)
FIXTURE_CONFIDENCE = Histogram(
    "fw_fixture_confidence",
    "Confidence of reconciled fixtures",
    buckets=(5, 25, 50, 75, 90, 100),
)

# ── Stats cache / budget ────────────────────────────────────────────────
CACHE_LOOKUPS = Counter(
    "fw_cache_lookups_total",
    "Layered cache lookups by entity and answering tier",
    ["entity", "tier"],
)
ORIGIN_ERRORS = Counter(
    "fw_origin_errors_total",
    "Origin fetch or parse failures",
    ["entity"],
)
BUDGET_USED = Gauge(
    "fw_request_budget_used",
    "Origin API requests counted today",
)


@asynccontextmanager
async def atrack_latency(histogram: Histogram, **labels: str) -> AsyncIterator[None]:
    """Async context manager to track operation latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        if labels:
            histogram.labels(**labels).observe(elapsed)
        else:
            histogram.observe(elapsed)


def start_metrics_server(port: int | None = None) -> None:
    """Start the Prometheus metrics HTTP server."""
    settings = get_settings()
    if not settings.metrics_enabled:
        return
    metrics_port = port or settings.metrics_port
    try:
        start_http_server(metrics_port)
        logger.info("metrics_server_started", port=metrics_port)
    except OSError as exc:
        logger.warning("metrics_server_failed", error=str(exc), port=metrics_port)
