"""
Resilience Core - Circuit Breaker
=================================
Async circuit breaker guarding calls to unreliable external dependencies.

Circuit breaker pattern prevents cascade failures when downstream services
are unavailable. States:

1. CLOSED: Normal operation, calls flow through
2. OPEN: Dependency is failing, calls are immediately rejected
3. HALF-OPEN: A single probe call tests whether it has recovered

Usage:
    from resilience_core.circuit_breaker import create_registry, CircuitOpenError

    registry = create_registry()

    try:
        doc = await registry.firestore.execute(lambda: db.get(path))
    except CircuitOpenError:
        doc = None

    # Or with a guarded block
    async with registry.fcm.guard():
        await fcm_client.send(message)
"""

from .models import (
    CircuitState,
    CircuitOpenError,
    CircuitBreakerConfig,
    CircuitBreakerState,
)

from .breaker import CircuitBreaker

from .registry import CircuitBreakerRegistry, create_registry

from .decorators import circuit_breaker

__all__ = [
    # Models
    "CircuitState",
    "CircuitOpenError",
    "CircuitBreakerConfig",
    "CircuitBreakerState",
    # Breaker
    "CircuitBreaker",
    # Registry
    "CircuitBreakerRegistry",
    "create_registry",
    # Decorator
    "circuit_breaker",
]
