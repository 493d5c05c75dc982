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
    "chatbot_requests_total",
    "Total chat pipeline requests",
    labelnames=("endpoint", "status"),
    registry=REGISTRY,
)

REQUEST_LATENCY = Histogram(
    "chatbot_request_latency_seconds",
    "Latency of chat pipeline requests",
    labelnames=("endpoint",),
    registry=REGISTRY,
)

GENERATION_LATENCY = Histogram(
    "chatbot_generation_latency_seconds",
    "Latency of generative model calls",
    labelnames=("purpose",),
    registry=REGISTRY,
)

SEARCH_FAILURES = Counter(
    "chatbot_search_failures_total",
    "Knowledge source searches that failed and were skipped",
    registry=REGISTRY,
)

REWRITE_FALLBACKS = Counter(
    "chatbot_rewrite_fallbacks_total",
    "Query rewrites that fell back to the original utterance",
    registry=REGISTRY,
)

LEADS_SUBMITTED = Counter(
    "chatbot_leads_submitted_total",
    "Leads stored",
    labelnames=("origin",),
    registry=REGISTRY,
)

INDEXED_CHUNKS = Gauge(
    "chatbot_indexed_chunks",
    "Chunks stored across all knowledge sources",
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
    "GENERATION_LATENCY",
    "SEARCH_FAILURES",
    "REWRITE_FALLBACKS",
    "LEADS_SUBMITTED",
    "INDEXED_CHUNKS",
    "metrics_response",
]
