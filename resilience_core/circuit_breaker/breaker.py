"""
Circuit Breaker Core
====================
The main CircuitBreaker class guarding calls to one external dependency.
"""

import threading
import inspect
import time
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional, Dict, Any, Callable, TypeVar, Union
import structlog

from .models import (
    CircuitState,
    CircuitBreakerConfig,
    CircuitBreakerState,
    CircuitOpenError,
)
from .. import metrics

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class CircuitBreaker:
    """
    Async-compatible circuit breaker.

    Opens after ``failure_threshold`` consecutive failures and rejects calls
    until ``reset_timeout`` seconds have passed. The next call after that is
    admitted as a single probe: success closes the circuit, failure reopens it.
    There is no background timer; the open -> half-open transition is checked
    at the start of each call.

    State changes hold a ``threading.Lock`` that is never held across an
    ``await``, so one breaker can be shared by several threads and event
    loops.

    Example:
        breaker = CircuitBreaker(name="firestore", failure_threshold=5)

        try:
            doc = await breaker.execute(lambda: client.get_document(path))
        except CircuitOpenError:
            return cached_document
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        reset_timeout: Union[float, timedelta] = 60.0,
        name: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = CircuitBreakerConfig(
            failure_threshold=failure_threshold,
            reset_timeout=reset_timeout,
        )
        self.name = name
        self._clock = clock
        self._state = CircuitBreakerState()
        self._lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        config: CircuitBreakerConfig,
        name: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ) -> "CircuitBreaker":
        return cls(
            failure_threshold=config.failure_threshold,
            reset_timeout=config.reset_timeout,
            name=name,
            clock=clock,
        )

    @property
    def failure_threshold(self) -> int:
        return self.config.failure_threshold

    @property
    def reset_timeout(self) -> float:
        return self.config.reset_timeout

    @property
    def state(self) -> CircuitState:
        """Current circuit state."""
        return self._state.state

    @property
    def consecutive_failures(self) -> int:
        """Failure streak since the last success or reset."""
        return self._state.consecutive_failures

    @property
    def open_until(self) -> Optional[float]:
        """Epoch seconds after which a probe is permitted, None when closed."""
        return self._state.open_until

    @property
    def is_allowing_calls(self) -> bool:
        """
        False while the circuit is open.

        Not re-evaluated against the clock: it stays False after
        ``open_until`` has passed until the next call moves the circuit
        to half-open.
        """
        return self._state.state != CircuitState.OPEN

    @property
    def metrics(self) -> Dict[str, Any]:
        """Get circuit breaker metrics."""
        return {
            "name": self.name,
            "state": self._state.state.value,
            "consecutive_failures": self._state.consecutive_failures,
            "failure_threshold": self.failure_threshold,
            "reset_timeout": self.reset_timeout,
            "open_until": self._state.open_until,
            "total_calls": self._state.total_calls,
            "total_successes": self._state.total_successes,
            "total_failures": self._state.total_failures,
            "total_rejections": self._state.total_rejections,
            "last_failure_time": self._state.last_failure_time,
        }

    def _set_state(self, state: CircuitState):
        self._state.state = state
        metrics.record_circuit_state(self.name, state.value)

    def _open(self, now: float):
        self._state.open_until = now + self.reset_timeout
        self._set_state(CircuitState.OPEN)

    def _reject(self, now: float) -> CircuitOpenError:
        self._state.total_rejections += 1
        metrics.record_rejection(self.name)
        logger.debug(
            "circuit_rejected",
            service=self.name,
            state=self._state.state.value,
        )
        return CircuitOpenError(
            self.name,
            self._state.open_until,
            state=self._state.state,
            retry_after=self._state.open_until - now,
        )

    def _admit(self) -> bool:
        """
        Decide whether a call may run.

        Returns True if the admitted call is the half-open probe.
        Raises CircuitOpenError if the call is rejected.
        """
        with self._lock:
            now = self._clock()

            if (
                self._state.state == CircuitState.OPEN
                and now > self._state.open_until
            ):
                self._set_state(CircuitState.HALF_OPEN)
                self._state.probe_in_flight = False
                logger.info("circuit_half_open", service=self.name)

            if self._state.state == CircuitState.OPEN:
                raise self._reject(now)

            if self._state.state == CircuitState.HALF_OPEN:
                # One probe per half-open window
                if self._state.probe_in_flight:
                    raise self._reject(now)
                self._state.probe_in_flight = True
                return True

            return False

    def _record_success(self, is_probe: bool):
        """Record a successful call."""
        with self._lock:
            self._state.total_calls += 1
            self._state.total_successes += 1

            if self._state.state != CircuitState.CLOSED:
                logger.info(
                    "circuit_closed",
                    service=self.name,
                    after_probe=is_probe,
                )
                self._set_state(CircuitState.CLOSED)

            self._state.consecutive_failures = 0
            self._state.open_until = None
            self._state.probe_in_flight = False

    def _record_failure(self, exc: Exception, is_probe: bool):
        """Record a failed call."""
        with self._lock:
            now = self._clock()
            self._state.total_calls += 1
            self._state.total_failures += 1
            self._state.consecutive_failures += 1
            self._state.last_failure_time = now
            metrics.record_failure(self.name)

            if self._state.state == CircuitState.HALF_OPEN:
                if is_probe:
                    self._state.probe_in_flight = False
                self._open(now)
                logger.warning(
                    "circuit_reopened",
                    service=self.name,
                    failures=self._state.consecutive_failures,
                    error=str(exc),
                )

            elif self._state.state == CircuitState.CLOSED:
                if self._state.consecutive_failures >= self.failure_threshold:
                    self._open(now)
                    logger.warning(
                        "circuit_opened",
                        service=self.name,
                        failures=self._state.consecutive_failures,
                        error=str(exc),
                    )

    def _release_probe(self, is_probe: bool):
        """Free the probe slot when the probe neither succeeded nor failed."""
        if not is_probe:
            return
        with self._lock:
            if self._state.probe_in_flight:
                self._state.probe_in_flight = False
                logger.info("circuit_probe_released", service=self.name)

    @asynccontextmanager
    async def guard(self):
        """
        Guard an inline block with the same rules as ``execute``.

        Example:
            async with breaker.guard():
                await client.send(message)
        """
        is_probe = self._admit()
        try:
            yield self
        except Exception as e:
            self._record_failure(e, is_probe)
            raise
        except BaseException:
            self._release_probe(is_probe)
            raise
        else:
            self._record_success(is_probe)

    async def execute(self, operation: Callable[[], Any]) -> Any:
        """
        Execute an operation with circuit breaker protection.

        Args:
            operation: Zero-argument callable. If it returns an awaitable,
                the awaitable is awaited.

        Returns:
            Result of the operation, unchanged

        Raises:
            CircuitOpenError: If the circuit is open (operation not invoked)
            Exception: Any error raised by the operation, unchanged
        """
        is_probe = self._admit()
        return await self._run(operation, is_probe)

    async def execute_or_default(
        self,
        operation: Callable[[], Any],
        default: Optional[T] = None,
    ) -> Any:
        """
        Like ``execute``, but returns ``default`` instead of raising when
        the circuit is open. Errors from the operation still propagate.
        """
        try:
            is_probe = self._admit()
        except CircuitOpenError:
            logger.debug("circuit_fallback", service=self.name)
            return default
        return await self._run(operation, is_probe)

    async def _run(self, operation: Callable[[], Any], is_probe: bool) -> Any:
        try:
            result = operation()
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            self._record_failure(e, is_probe)
            raise
        except BaseException:
            self._release_probe(is_probe)
            raise
        self._record_success(is_probe)
        return result

    def reset(self):
        """Reset to closed state (for testing/admin)."""
        with self._lock:
            self._state = CircuitBreakerState()
        metrics.record_circuit_state(self.name, CircuitState.CLOSED.value)
        logger.info("circuit_reset", service=self.name)

    def __repr__(self) -> str:
        return (
            f"CircuitBreaker(name={self.name!r}, state={self._state.state.value}, "
            f"failures={self._state.consecutive_failures}/{self.failure_threshold})"
        )
