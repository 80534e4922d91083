"""
Logging Setup
=============
Routes structlog events through the standard library.

The library never configures logging on import. Applications call
``setup_logging`` once at startup:

    from resilience_core.log_config import setup_logging

    setup_logging(service_name="checkin-api", level="INFO")
"""

import logging
import sys
from contextvars import ContextVar
from typing import Optional

import structlog

from .config import BreakerSettings

service_name_var: ContextVar[str] = ContextVar("service_name", default="unknown")


def _add_service_name(logger, method_name, event_dict):
    event_dict.setdefault("service_name", service_name_var.get())
    return event_dict


def setup_logging(
    service_name: str,
    level: Optional[str] = None,
    json_output: Optional[bool] = None,
    settings: Optional[BreakerSettings] = None,
) -> logging.Logger:
    """
    Configure logging for a service.

    Args:
        service_name: Name of the service (e.g., "checkin-api")
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Whether to output JSON (for production)
        settings: Source of level and json_output when they are not
            given; defaults to BreakerSettings.from_env()

    Returns:
        Configured root logger
    """
    if level is None or json_output is None:
        settings = settings or BreakerSettings.from_env()
        if level is None:
            level = settings.log_level
        if json_output is None:
            json_output = settings.log_json

    service_name_var.set(service_name)
    log_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        _add_service_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    structlog.get_logger(__name__).info(
        "logging_configured", service=service_name, level=level.upper()
    )
    return root_logger
