"""Prometheus metrics instrumentation."""

from __future__ import annotations

from fastapi import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

REQUEST_COUNT = Counter(
    "cb_requests_total",
    "Total engine operations",
    labelnames=("operation", "status"),
    registry=REGISTRY,
)

REQUEST_LATENCY = Histogram(
    "cb_request_latency_seconds",
    "Latency of engine operations",
    labelnames=("operation",),
    registry=REGISTRY,
)

EMBEDDING_FAILURES = Counter(
    "cb_embedding_failures_total",
    "Embedding generation failures",
    labelnames=("stage", "reason"),
    registry=REGISTRY,
)

INDEX_SIZE = Gauge(
    "cb_index_vectors",
    "Number of vectors stored in the index",
    registry=REGISTRY,
)


def metrics_response() -> Response:
    """Return Prometheus metrics as an HTTP response."""
    payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "REGISTRY",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "EMBEDDING_FAILURES",
    "INDEX_SIZE",
    "metrics_response",
]
