"""
Structured logging setup using structlog.

Modules log through logging.getLogger(__name__) with extra={...} fields;
setup_logging routes those records through structlog, adding the bound
message context and the current trace ids.
"""

import logging
import sys
from typing import Any

import structlog
from opentelemetry import trace

from leasequeue.config import get_settings

# Loggers that are too chatty at INFO for a busy queue
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine")


def add_trace_context(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Add the current OpenTelemetry trace and span ids to a log record."""
    span = trace.get_current_span()
    if span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def _renderer(log_format: str) -> Any:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=True)


def setup_logging() -> None:
    """
    Configure structured logging for the application.

    Uses the configured log level, and JSON or console output depending on
    log_format.
    """
    settings = get_settings()

    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        add_trace_context,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ExtraAdder(),
    ]

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(settings.log_format),
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_message_context(queue: str, message_id: Any = None, tries: int | None = None) -> None:
    """
    Bind the message being processed to all subsequent log messages.

    Args:
        queue: Queue name.
        message_id: Identity of the claimed message.
        tries: Claim count of the message.
    """
    context: dict[str, Any] = {"queue": queue}
    if message_id is not None:
        context["message_id"] = str(message_id)
    if tries is not None:
        context["tries"] = tries
    structlog.contextvars.bind_contextvars(**context)


def clear_context() -> None:
    """Clear the bound message context."""
    structlog.contextvars.clear_contextvars()
