"""
Circuit Breaker Models
======================
Data models and enums for the circuit breaker pattern.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Union


class CircuitState(str, Enum):
    """Circuit breaker states."""
    CLOSED = "closed"        # Normal operation
    OPEN = "open"            # Failing, reject requests
    HALF_OPEN = "half_open"  # Testing recovery


class CircuitOpenError(Exception):
    """Raised when the circuit is open and the call is rejected."""

    def __init__(
        self,
        service_name: Optional[str],
        open_until: float,
        state: CircuitState = CircuitState.OPEN,
        retry_after: float = 0.0,
    ):
        self.service_name = service_name
        self.open_until = open_until
        self.state = state
        self._retry_after = retry_after
        until = datetime.fromtimestamp(open_until, tz=timezone.utc).isoformat()
        super().__init__(
            f"Circuit breaker for '{service_name or 'external service'}' is open "
            f"(open until {until})"
        )

    @property
    def retry_after(self) -> float:
        """Seconds until a retry may be admitted."""
        return max(0.0, self._retry_after)


@dataclass
class CircuitBreakerConfig:
    """Configuration for a circuit breaker."""
    failure_threshold: int = 5                    # Consecutive failures before opening
    reset_timeout: Union[float, timedelta] = 60.0  # Seconds to stay open before a probe

    def __post_init__(self):
        if isinstance(self.reset_timeout, timedelta):
            self.reset_timeout = self.reset_timeout.total_seconds()
        if (
            isinstance(self.failure_threshold, bool)
            or not isinstance(self.failure_threshold, int)
            or self.failure_threshold < 1
        ):
            raise ValueError(
                f"failure_threshold must be a positive integer, got {self.failure_threshold!r}"
            )
        self.reset_timeout = float(self.reset_timeout)
        if self.reset_timeout <= 0:
            raise ValueError(
                f"reset_timeout must be greater than zero, got {self.reset_timeout!r}"
            )


@dataclass
class CircuitBreakerState:
    """Runtime state of a circuit breaker."""
    state: CircuitState = CircuitState.CLOSED
    consecutive_failures: int = 0
    open_until: Optional[float] = None
    probe_in_flight: bool = False
    last_failure_time: Optional[float] = None

    # Metrics
    total_calls: int = 0
    total_failures: int = 0
    total_successes: int = 0
    total_rejections: int = 0
