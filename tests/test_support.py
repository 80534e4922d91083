"""
Unit Tests for Configuration, Metrics, Logging and Decorator
============================================================
"""

import json
import logging

import pytest
import structlog


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self, monkeypatch):
        """Should default to 5 failures and 60 seconds."""
        from resilience_core.config import BreakerSettings

        for var in (
            "CIRCUIT_BREAKER_FAILURE_THRESHOLD",
            "CIRCUIT_BREAKER_RESET_TIMEOUT",
            "CIRCUIT_BREAKER_LOG_LEVEL",
            "CIRCUIT_BREAKER_LOG_JSON",
        ):
            monkeypatch.delenv(var, raising=False)

        settings = BreakerSettings.from_env()

        assert settings.failure_threshold == 5
        assert settings.reset_timeout == 60.0
        assert settings.log_level == "INFO"
        assert settings.log_json is True

    def test_from_env(self, monkeypatch):
        """Should read overrides from the environment."""
        from resilience_core.config import BreakerSettings

        monkeypatch.setenv("CIRCUIT_BREAKER_FAILURE_THRESHOLD", "8")
        monkeypatch.setenv("CIRCUIT_BREAKER_RESET_TIMEOUT", "90")
        monkeypatch.setenv("CIRCUIT_BREAKER_LOG_JSON", "false")

        settings = BreakerSettings.from_env()

        assert settings.failure_threshold == 8
        assert settings.reset_timeout == 90.0
        assert settings.log_json is False

    def test_malformed_value(self, monkeypatch):
        """Should name the variable when a value is malformed."""
        from resilience_core.config import BreakerSettings

        monkeypatch.setenv("CIRCUIT_BREAKER_FAILURE_THRESHOLD", "five")

        with pytest.raises(ValueError, match="CIRCUIT_BREAKER_FAILURE_THRESHOLD"):
            BreakerSettings.from_env()

    def test_presets(self):
        """Should expose the well-known dependency presets."""
        from resilience_core.config import PRESETS

        assert set(PRESETS) == {"firestore", "fcm", "cloud_tasks"}
        assert PRESETS["firestore"].failure_threshold == 5
        assert PRESETS["fcm"].reset_timeout == 120.0


class TestMetrics:
    """Tests for Prometheus metrics."""

    @pytest.mark.asyncio
    async def test_state_gauge_follows_transitions(self, clock):
        """Should track state transitions in the gauge."""
        from resilience_core.circuit_breaker import CircuitBreaker
        from resilience_core.metrics import METRICS_REGISTRY

        breaker = CircuitBreaker(
            failure_threshold=1, reset_timeout=5, name="gauge-test", clock=clock
        )

        def gauge():
            return METRICS_REGISTRY.get_sample_value(
                "circuit_breaker_state", {"service": "gauge-test"}
            )

        async def fail():
            raise ConnectionError("down")

        with pytest.raises(ConnectionError):
            await breaker.execute(fail)
        assert gauge() == 2.0

        clock.advance(6)
        await breaker.execute(lambda: "ok")
        assert gauge() == 0.0

    @pytest.mark.asyncio
    async def test_rejection_counter(self, clock):
        """Should count rejected calls."""
        from resilience_core.circuit_breaker import CircuitBreaker, CircuitOpenError
        from resilience_core.metrics import METRICS_REGISTRY

        breaker = CircuitBreaker(failure_threshold=1, name="reject-test", clock=clock)

        async def fail():
            raise ConnectionError("down")

        with pytest.raises(ConnectionError):
            await breaker.execute(fail)
        for _ in range(2):
            with pytest.raises(CircuitOpenError):
                await breaker.execute(lambda: "ok")

        assert METRICS_REGISTRY.get_sample_value(
            "circuit_breaker_rejections_total", {"service": "reject-test"}
        ) == 2.0
        assert METRICS_REGISTRY.get_sample_value(
            "circuit_breaker_failures_total", {"service": "reject-test"}
        ) == 1.0

    def test_metrics_text(self):
        """Should render the exposition format."""
        from resilience_core.metrics import get_metrics_text, record_circuit_state

        record_circuit_state("text-test", "half_open")

        text = get_metrics_text().decode()
        assert 'circuit_breaker_state{service="text-test"} 1.0' in text


class TestDecorator:
    """Tests for the circuit_breaker decorator."""

    @pytest.mark.asyncio
    async def test_wraps_calls(self, clock):
        """Should route calls and arguments through the breaker."""
        from resilience_core.circuit_breaker import (
            CircuitBreaker,
            CircuitOpenError,
            circuit_breaker,
        )

        breaker = CircuitBreaker(failure_threshold=1, clock=clock)
        calls = []

        @circuit_breaker(breaker)
        async def send(token, body=""):
            calls.append((token, body))
            if token == "bad":
                raise ConnectionError("rejected")
            return "sent"

        assert await send("abc", body="hi") == "sent"
        with pytest.raises(ConnectionError):
            await send("bad")
        with pytest.raises(CircuitOpenError):
            await send("abc")

        assert calls == [("abc", "hi"), ("bad", "")]
        assert send.breaker is breaker
        assert send.__name__ == "send"

    @pytest.mark.asyncio
    async def test_default_when_open(self, clock):
        """Should return the default when configured to."""
        from resilience_core.circuit_breaker import CircuitBreaker, circuit_breaker

        breaker = CircuitBreaker(failure_threshold=1, clock=clock)

        @circuit_breaker(breaker, default={"status": "queued"}, use_default=True)
        async def schedule(fail=False):
            if fail:
                raise TimeoutError()
            return {"status": "scheduled"}

        with pytest.raises(TimeoutError):
            await schedule(fail=True)

        assert await schedule() == {"status": "queued"}


class TestLogging:
    """Tests for logging setup."""

    @pytest.fixture(autouse=True)
    def restore_logging(self):
        root = logging.getLogger()
        level = root.level
        yield
        structlog.reset_defaults()
        root.handlers[:] = [
            h for h in root.handlers
            if not isinstance(h.formatter, structlog.stdlib.ProcessorFormatter)
        ]
        root.setLevel(level)

    def test_json_output(self, capsys):
        """Should emit JSON lines with service name and event."""
        from resilience_core.log_config import setup_logging

        setup_logging(service_name="checkin-api", level="debug", json_output=True)
        structlog.get_logger("resilience_core.test").warning(
            "circuit_opened", service="firestore", failures=5
        )

        lines = [l for l in capsys.readouterr().out.splitlines() if l.strip()]
        record = json.loads(lines[-1])
        assert record["event"] == "circuit_opened"
        assert record["level"] == "warning"
        assert record["service"] == "firestore"
        assert record["service_name"] == "checkin-api"
        assert record["failures"] == 5
        assert "timestamp" in record

    def test_level_filter(self, capsys):
        """Should drop records below the configured level."""
        from resilience_core.log_config import setup_logging

        root = setup_logging(service_name="checkin-api", level="WARNING")
        structlog.get_logger("resilience_core.test").info("circuit_half_open")

        assert root.level == logging.WARNING
        assert "circuit_half_open" not in capsys.readouterr().out

    def test_settings_drive_defaults(self, capsys):
        """Should take level and format from settings when not given."""
        from resilience_core.config import BreakerSettings
        from resilience_core.log_config import setup_logging

        root = setup_logging(
            service_name="checkin-api",
            settings=BreakerSettings(log_level="ERROR", log_json=True),
        )
        structlog.get_logger("resilience_core.test").warning("circuit_reopened")
        structlog.get_logger("resilience_core.test").error("circuit_opened")

        assert root.level == logging.ERROR
        out = capsys.readouterr().out
        assert "circuit_reopened" not in out
        assert json.loads(out.strip().splitlines()[-1])["event"] == "circuit_opened"

    def test_environment_drives_defaults(self, monkeypatch, capsys):
        """Should read CIRCUIT_BREAKER_LOG_* when no settings are passed."""
        from resilience_core.log_config import setup_logging

        monkeypatch.setenv("CIRCUIT_BREAKER_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("CIRCUIT_BREAKER_LOG_JSON", "false")

        root = setup_logging(service_name="checkin-api")
        structlog.get_logger("resilience_core.test").debug("circuit_rejected")

        assert root.level == logging.DEBUG
        out = capsys.readouterr().out
        assert "circuit_rejected" in out
        assert not out.strip().splitlines()[-1].startswith("{")
