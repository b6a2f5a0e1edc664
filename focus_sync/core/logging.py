"""Observability setup for focus-sync.

Modules log through ``logging.getLogger(__name__)`` using snake_case event
names with context passed as ``extra`` fields; Logfire picks those records up
once ``configure_logfire`` has run. Service operations are wrapped in
``span("<module>.<operation>")`` so a sync round or token rotation shows up as
a single trace.
"""

import logging

import logfire
from fastapi import FastAPI

from focus_sync.core.config import settings


logger = logging.getLogger(__name__)


def configure_logfire() -> None:
    """Configure Logfire; data is only shipped when ``LOGFIRE_TOKEN`` is set."""
    logfire.configure(
        token=settings.logfire_token,
        service_name="focus-sync",
        service_version="0.1.0",
        environment=settings.environment,
        send_to_logfire="if-token-present",
    )
    logger.info("logfire_configured", extra={"environment": settings.environment})


def instrument_fastapi(app: FastAPI) -> None:
    """Trace every request handled by ``app``."""
    logfire.instrument_fastapi(app)


def span(name: str) -> logfire.LogfireSpan:
    """Open a Logfire span around a service operation."""
    return logfire.span(name)


def log_event(log: logging.Logger, level: str, event: str, **fields: object) -> None:
    """Emit ``event`` at ``level`` with ``fields`` attached as structured extras.

    Fields whose value is None are left out, so callers can pass an optional
    ``user_id`` without branching.
    """
    extra = {key: value for key, value in fields.items() if value is not None}
    log.log(logging.getLevelNamesMapping()[level.upper()], event, extra=extra)
