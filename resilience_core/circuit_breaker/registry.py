"""
Circuit Breaker Registry
========================
Keyed store handing out one shared breaker per dependency name.
"""

import threading
import time
from datetime import timedelta
from typing import Optional, Dict, Any, Callable, List, Union
import structlog

from ..config import BreakerSettings, BreakerPreset, FIRESTORE, FCM, CLOUD_TASKS
from .breaker import CircuitBreaker

logger = structlog.get_logger(__name__)


class CircuitBreakerRegistry:
    """
    Registry of circuit breakers keyed by dependency name.

    The first caller to request a name decides its configuration; later
    callers get the same instance and a warning if they asked for
    something different. Entries are never evicted.

    Build one per process at the composition root and pass it to the code
    that needs it:

        registry = create_registry()
        breaker = registry.get_or_create("profile-api", failure_threshold=3)
        await registry.firestore.execute(lambda: db.save(doc))
    """

    def __init__(
        self,
        settings: Optional[BreakerSettings] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings or BreakerSettings()
        self._clock = clock
        self._breakers: Dict[str, CircuitBreaker] = {}
        self._lock = threading.Lock()

    def get_or_create(
        self,
        name: str,
        failure_threshold: Optional[int] = None,
        reset_timeout: Optional[Union[float, timedelta]] = None,
    ) -> CircuitBreaker:
        """
        Get or create a circuit breaker for a dependency.

        Args:
            name: Name of the downstream dependency
            failure_threshold: Consecutive failures before opening
                (only used if creating a new breaker)
            reset_timeout: Seconds or timedelta to stay open
                (only used if creating a new breaker)

        Returns:
            CircuitBreaker instance
        """
        if failure_threshold is None:
            failure_threshold = self.settings.failure_threshold
        if reset_timeout is None:
            reset_timeout = self.settings.reset_timeout
        if isinstance(reset_timeout, timedelta):
            reset_timeout = reset_timeout.total_seconds()

        with self._lock:
            existing = self._breakers.get(name)
            if existing is None:
                # Validated only when creating; later arguments are ignored
                breaker = CircuitBreaker(
                    failure_threshold=failure_threshold,
                    reset_timeout=reset_timeout,
                    name=name,
                    clock=self._clock,
                )
                self._breakers[name] = breaker
                logger.debug(
                    "circuit_registered",
                    service=name,
                    failure_threshold=breaker.failure_threshold,
                    reset_timeout=breaker.reset_timeout,
                )
                return breaker

        if (
            existing.failure_threshold != failure_threshold
            or existing.reset_timeout != reset_timeout
        ):
            logger.warning(
                "circuit_config_mismatch",
                service=name,
                existing_threshold=existing.failure_threshold,
                existing_timeout=existing.reset_timeout,
                requested_threshold=failure_threshold,
                requested_timeout=reset_timeout,
            )
        return existing

    def get_preset(self, preset: BreakerPreset) -> CircuitBreaker:
        return self.get_or_create(
            preset.name,
            failure_threshold=preset.failure_threshold,
            reset_timeout=preset.reset_timeout,
        )

    @property
    def firestore(self) -> CircuitBreaker:
        """Breaker for document database operations."""
        return self.get_preset(FIRESTORE)

    @property
    def fcm(self) -> CircuitBreaker:
        """Breaker for push notification delivery."""
        return self.get_preset(FCM)

    @property
    def cloud_tasks(self) -> CircuitBreaker:
        """Breaker for task queue scheduling."""
        return self.get_preset(CLOUD_TASKS)

    def get(self, name: str) -> Optional[CircuitBreaker]:
        with self._lock:
            return self._breakers.get(name)

    @property
    def names(self) -> List[str]:
        with self._lock:
            return list(self._breakers)

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._breakers

    def __len__(self) -> int:
        with self._lock:
            return len(self._breakers)

    def get_all_metrics(self) -> Dict[str, Dict[str, Any]]:
        """Get metrics for all registered circuit breakers."""
        with self._lock:
            breakers = dict(self._breakers)
        return {name: breaker.metrics for name, breaker in breakers.items()}

    def reset(self, name: str) -> bool:
        """Reset one breaker to closed state. Returns False if unknown."""
        breaker = self.get(name)
        if breaker is None:
            return False
        breaker.reset()
        return True

    def reset_all(self):
        """Reset all circuit breakers to closed state."""
        with self._lock:
            breakers = list(self._breakers.values())
        for breaker in breakers:
            breaker.reset()
        logger.info("circuit_registry_reset", count=len(breakers))


def create_registry(
    settings: Optional[BreakerSettings] = None,
    clock: Callable[[], float] = time.time,
) -> CircuitBreakerRegistry:
    """Build a registry from explicit settings or the environment."""
    return CircuitBreakerRegistry(
        settings=settings or BreakerSettings.from_env(),
        clock=clock,
    )
