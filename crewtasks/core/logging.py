"""Logfire setup and structured logging helpers.

Modules log through ``logging.getLogger(__name__)`` and pass context in
``extra``. Logfire picks those records up and exports them when a token is
configured; without one everything stays local.

    logger = logging.getLogger(__name__)
    logger.info("Saved task", extra={"task_id": task.id})
    log_with_user_context(logger, "info", "task_toggled", user_id=session.id, task_id=task_id)
"""

import logging

import logfire
from fastapi import FastAPI

from crewtasks.core.config import settings


logger = logging.getLogger(__name__)


def configure_logfire() -> None:
    """Configure Logfire for the crewtasks service."""
    logfire.configure(
        token=settings.logfire_token,
        service_name="crewtasks",
        service_version="0.1.0",
        send_to_logfire="if-token-present",
    )
    logger.info("Logfire configured", extra={"export": bool(settings.logfire_token)})


def instrument_fastapi(app: FastAPI) -> None:
    """Trace every request handled by ``app``."""
    logfire.instrument_fastapi(app)
    logger.info("FastAPI instrumentation configured")


def span(name: str) -> logfire.LogfireSpan:
    """Open a span around a service operation, named ``module.function``."""
    return logfire.span(name)


def log_with_context(logger: logging.Logger, level: str, message: str, **context: object) -> None:
    """Log ``message`` at ``level`` with ``context`` as structured fields."""
    getattr(logger, level.lower())(message, extra=context)


def log_with_user_context(
    logger: logging.Logger, level: str, message: str, user_id: str | None = None, **context: object
) -> None:
    """Log on behalf of a signed-in user; ``user_id`` is omitted when unknown."""
    if user_id:
        context["user_id"] = user_id
    log_with_context(logger, level, message, **context)
