"""
Prompt Builder - Prometheus Metrics Module

Application metrics backed by prometheus_client, with no-op stubs when
METRICS_ENABLED=false (the default). Zero overhead when disabled.

Usage:
    from metrics import track_request, track_ai_call, track_quota_rejection
    track_request("GET", "/api/prompts", 200, 0.045)
    track_ai_call("openai", "gpt-4o-mini", cost_cents=0.12, duration=1.5, success=True)
"""

import os
import time
import logging
from typing import Dict, Any

from prometheus_client import (
    Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST  # noqa: F401
)

logger = logging.getLogger(__name__)

METRICS_ENABLED = os.environ.get("METRICS_ENABLED", "false").lower() == "true"


class _NoOpMetric:
    """Stands in for a prometheus collector when export is disabled."""

    def labels(self, *args, **kwargs):
        return self

    def inc(self, amount=1):
        pass

    def observe(self, amount):
        pass


if METRICS_ENABLED:
    logger.info("Prometheus export enabled for HTTP, LLM and quota metrics")

    # HTTP metrics
    http_requests_total = Counter(
        "http_requests_total",
        "Total HTTP requests",
        ["method", "path", "status"]
    )
    http_request_duration = Histogram(
        "http_request_duration_seconds",
        "HTTP request duration in seconds",
        ["method", "path"],
        buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)
    )

    # LLM metrics
    llm_calls = Counter(
        "llm_requests_total",
        "Total LLM provider calls",
        ["provider", "model", "outcome"]
    )
    llm_cost_cents = Counter(
        "llm_cost_cents_total",
        "Total LLM cost in cents",
        ["provider"]
    )
    llm_latency = Histogram(
        "llm_request_duration_seconds",
        "LLM request duration in seconds",
        ["provider", "model"],
        buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0)
    )

    # Quota metrics
    quota_rejections = Counter(
        "quota_rejections_total",
        "AI calls refused because a monthly quota was exhausted",
        ["operation"]
    )
else:
    http_requests_total = _NoOpMetric()
    http_request_duration = _NoOpMetric()
    llm_calls = _NoOpMetric()
    llm_cost_cents = _NoOpMetric()
    llm_latency = _NoOpMetric()
    quota_rejections = _NoOpMetric()


# =============================================================================
# TRACKING HELPERS
# =============================================================================

# Process-local totals backing /metrics when Prometheus export is off
_summary_counters: Dict[str, Any] = {
    "http_requests": 0,
    "ai_requests": 0,
    "ai_failures": 0,
    "ai_cost_cents": 0.0,
    "quota_rejections": 0,
    "started_at": time.time(),
}


def track_request(method: str, path: str, status: int, duration: float) -> None:
    """Record one served HTTP request."""
    http_requests_total.labels(method=method, path=path, status=str(status)).inc()
    http_request_duration.labels(method=method, path=path).observe(duration)
    _summary_counters["http_requests"] += 1


def track_ai_call(
    provider: str, model: str, cost_cents: float = 0.0, duration: float = 0.0, success: bool = True
) -> None:
    """Record one completed or failed LLM call."""
    outcome = "success" if success else "failure"
    llm_calls.labels(provider=provider, model=model, outcome=outcome).inc()
    if cost_cents > 0:
        llm_cost_cents.labels(provider=provider).inc(cost_cents)
    if duration > 0:
        llm_latency.labels(provider=provider, model=model).observe(duration)
    _summary_counters["ai_requests"] += 1
    if not success:
        _summary_counters["ai_failures"] += 1
    _summary_counters["ai_cost_cents"] += cost_cents


def track_quota_rejection(operation: str) -> None:
    quota_rejections.labels(operation=operation).inc()
    _summary_counters["quota_rejections"] += 1


def get_metrics_summary() -> Dict[str, Any]:
    """Return a JSON summary of metrics (used when Prometheus export is off)."""
    uptime = time.time() - _summary_counters["started_at"]
    return {
        "metrics_enabled": METRICS_ENABLED,
        "uptime_seconds": round(uptime, 1),
        "http_requests_total": _summary_counters["http_requests"],
        "ai_requests_total": _summary_counters["ai_requests"],
        "ai_failures_total": _summary_counters["ai_failures"],
        "ai_cost_cents_total": round(_summary_counters["ai_cost_cents"], 4),
        "quota_rejections_total": _summary_counters["quota_rejections"],
    }
