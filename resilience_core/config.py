"""
Resilience Configuration
========================
Process defaults and well-known dependency presets.
"""

import os
from dataclasses import dataclass
from typing import Dict

DEFAULT_FAILURE_THRESHOLD = 5
DEFAULT_RESET_TIMEOUT = 60.0


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number of seconds, got {raw!r}") from None


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class BreakerSettings:
    """Defaults applied when a caller does not configure a breaker."""
    failure_threshold: int = DEFAULT_FAILURE_THRESHOLD
    reset_timeout: float = DEFAULT_RESET_TIMEOUT
    log_level: str = "INFO"
    log_json: bool = True

    @classmethod
    def from_env(cls) -> "BreakerSettings":
        """Read settings from CIRCUIT_BREAKER_* environment variables."""
        return cls(
            failure_threshold=_env_int(
                "CIRCUIT_BREAKER_FAILURE_THRESHOLD", DEFAULT_FAILURE_THRESHOLD
            ),
            reset_timeout=_env_float(
                "CIRCUIT_BREAKER_RESET_TIMEOUT", DEFAULT_RESET_TIMEOUT
            ),
            log_level=os.environ.get("CIRCUIT_BREAKER_LOG_LEVEL", "INFO"),
            log_json=_env_bool("CIRCUIT_BREAKER_LOG_JSON", True),
        )


@dataclass(frozen=True)
class BreakerPreset:
    """Fixed configuration for a well-known dependency."""
    name: str
    failure_threshold: int
    reset_timeout: float


FIRESTORE = BreakerPreset("firestore", failure_threshold=5, reset_timeout=60.0)
FCM = BreakerPreset("fcm", failure_threshold=3, reset_timeout=120.0)
CLOUD_TASKS = BreakerPreset("cloud_tasks", failure_threshold=3, reset_timeout=120.0)

PRESETS: Dict[str, BreakerPreset] = {
    preset.name: preset for preset in (FIRESTORE, FCM, CLOUD_TASKS)
}
