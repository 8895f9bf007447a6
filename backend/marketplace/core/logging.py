"""
Structured logging configuration with request and actor correlation.

This module configures structlog for the whole backend: console output in
development, JSON everywhere else, plus context variables that attach the
current request id and acting user to every event logged while serving a
request.
"""

import logging
import sys
import time
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

import structlog
from structlog.types import EventDict, Processor

from marketplace.core.config import get_settings

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")
actor_id_ctx: ContextVar[Optional[str]] = ContextVar("actor_id", default=None)
actor_role_ctx: ContextVar[Optional[str]] = ContextVar("actor_role", default=None)


def add_request_id(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add request ID from context to log event."""
    request_id = request_id_ctx.get()
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


def add_actor(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add the authenticated actor's id and role to log event."""
    actor_id = actor_id_ctx.get()
    if actor_id:
        event_dict["actor_id"] = actor_id
        event_dict["actor_role"] = actor_role_ctx.get()
    return event_dict


def add_timestamp(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add ISO format UTC timestamp to log event."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def configure_logging() -> None:
    """
    Configure structured logging.

    Sets up structlog processors and the standard library root logger from
    application settings. Safe to call more than once.
    """
    settings = get_settings()

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_timestamp,
        add_request_id,
        add_actor,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.is_development:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            )
        )
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level),
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Module logger; call as `get_logger(__name__)`."""
    return structlog.get_logger(name)


def set_request_id(request_id: Optional[str] = None) -> str:
    """
    Bind the request id used to correlate log lines.

    A fresh UUID is generated when the client did not send one.
    """
    if request_id is None:
        request_id = str(uuid4())
    request_id_ctx.set(request_id)
    return request_id


def get_request_id() -> str:
    """Get current request ID from context."""
    return request_id_ctx.get()


def set_actor(actor_id: Optional[str], role: Optional[str] = None) -> None:
    """Bind the acting user to the logging context."""
    actor_id_ctx.set(actor_id)
    actor_role_ctx.set(role)


def clear_context() -> None:
    """
    Reset the request and actor context.

    Called at the end of request processing so context does not leak
    between requests.
    """
    request_id_ctx.set("")
    actor_id_ctx.set(None)
    actor_role_ctx.set(None)


class PerformanceLogger:
    """
    Times a block and logs its duration.

    Blocks slower than `slow_threshold_ms` are logged as warnings.
    """

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger,
        operation: str,
        slow_threshold_ms: float = 500,
        **context: Any,
    ):
        self.logger = logger
        self.operation = operation
        self.slow_threshold_ms = slow_threshold_ms
        self.context = context
        self.start_time: Optional[float] = None

    def __enter__(self) -> "PerformanceLogger":
        self.start_time = time.perf_counter()
        self.logger.debug(
            "Operation started",
            operation=self.operation,
            **self.context,
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.start_time is None:
            return

        duration_ms = (time.perf_counter() - self.start_time) * 1000

        if exc_type is not None:
            self.logger.error(
                "Operation failed",
                operation=self.operation,
                duration_ms=round(duration_ms, 2),
                error_type=exc_type.__name__,
                **self.context,
            )
            return

        log_method = (
            self.logger.warning
            if duration_ms > self.slow_threshold_ms
            else self.logger.info
        )
        log_method(
            "Operation completed",
            operation=self.operation,
            duration_ms=round(duration_ms, 2),
            **self.context,
        )


def log_performance(
    logger: structlog.stdlib.BoundLogger,
    operation: str,
    **context: Any,
) -> PerformanceLogger:
    """
    Shorthand for `PerformanceLogger(logger, operation, **context)`.

    Example:
        >>> logger = get_logger(__name__)
        >>> with log_performance(logger, "request_processing", path="/orders"):
        ...     response = await call_next(request)
    """
    return PerformanceLogger(logger, operation, **context)
