"""
Circuit Breaker Decorator
=========================
Decorator for wrapping async functions with circuit breaker protection.
"""

from functools import wraps
from typing import Any, Callable, Awaitable, TypeVar

from .breaker import CircuitBreaker

T = TypeVar("T")


def circuit_breaker(
    breaker: CircuitBreaker,
    default: Any = None,
    use_default: bool = False,
):
    """
    Decorator to wrap async functions with a circuit breaker.

    Example:
        @circuit_breaker(registry.firestore)
        async def load_profile(user_id: str):
            return await db.collection("users").document(user_id).get()

        @circuit_breaker(registry.fcm, use_default=True)
        async def send_push(token: str, body: str):
            return await fcm_client.send(token=token, body=body)
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            if use_default:
                return await breaker.execute_or_default(
                    lambda: func(*args, **kwargs),
                    default=default,
                )
            return await breaker.execute(lambda: func(*args, **kwargs))

        wrapper.breaker = breaker
        return wrapper

    return decorator
