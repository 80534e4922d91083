"""
Circuit Breaker Metrics
=======================
Prometheus metrics for circuit breaker state and outcomes.

Usage:
    from resilience_core.metrics import get_metrics_text

    # Serve from a /metrics endpoint
    body = get_metrics_text()
"""

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    generate_latest,
    CONTENT_TYPE_LATEST,
)

# Custom registry so host applications choose whether to expose these
METRICS_REGISTRY = CollectorRegistry()

CIRCUIT_BREAKER_STATE = Gauge(
    name="circuit_breaker_state",
    documentation="Circuit breaker state (0=closed, 1=half-open, 2=open)",
    labelnames=["service"],
    registry=METRICS_REGISTRY,
)

CIRCUIT_BREAKER_REJECTIONS = Counter(
    name="circuit_breaker_rejections_total",
    documentation="Calls rejected without invoking the guarded operation",
    labelnames=["service"],
    registry=METRICS_REGISTRY,
)

CIRCUIT_BREAKER_FAILURES = Counter(
    name="circuit_breaker_failures_total",
    documentation="Guarded operations that raised an error",
    labelnames=["service"],
    registry=METRICS_REGISTRY,
)

_STATE_VALUES = {"closed": 0, "half_open": 1, "open": 2}


def _label(service) -> str:
    return service or "unnamed"


def record_circuit_state(service, state: str):
    """
    Record circuit breaker state change.

    Args:
        service: Service name (None for anonymous breakers)
        state: State (closed, half_open, open)
    """
    CIRCUIT_BREAKER_STATE.labels(service=_label(service)).set(
        _STATE_VALUES.get(state, -1)
    )


def record_rejection(service):
    """Record a call rejected by an open circuit."""
    CIRCUIT_BREAKER_REJECTIONS.labels(service=_label(service)).inc()


def record_failure(service):
    """Record a failed guarded operation."""
    CIRCUIT_BREAKER_FAILURES.labels(service=_label(service)).inc()


def get_metrics_text() -> bytes:
    """Get metrics in Prometheus exposition format."""
    return generate_latest(METRICS_REGISTRY)


__all__ = [
    "METRICS_REGISTRY",
    "CIRCUIT_BREAKER_STATE",
    "CIRCUIT_BREAKER_REJECTIONS",
    "CIRCUIT_BREAKER_FAILURES",
    "CONTENT_TYPE_LATEST",
    "record_circuit_state",
    "record_rejection",
    "record_failure",
    "get_metrics_text",
]
