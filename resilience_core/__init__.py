"""
Resilience Core Library
=======================
Fault isolation for calls to external dependencies.
"""

__version__ = "0.1.0"

# Configuration
from resilience_core.config import (
    BreakerSettings,
    BreakerPreset,
    PRESETS,
)

# Logging
from resilience_core.log_config import setup_logging

# Metrics
from resilience_core.metrics import (
    record_circuit_state,
    get_metrics_text,
)

# Circuit Breaker
from resilience_core.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerRegistry,
    CircuitOpenError,
    CircuitState,
    circuit_breaker,
    create_registry,
)

__all__ = [
    # Configuration
    "BreakerSettings",
    "BreakerPreset",
    "PRESETS",
    # Logging
    "setup_logging",
    # Metrics
    "record_circuit_state",
    "get_metrics_text",
    # Circuit Breaker
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerRegistry",
    "CircuitOpenError",
    "CircuitState",
    "circuit_breaker",
    "create_registry",
]
