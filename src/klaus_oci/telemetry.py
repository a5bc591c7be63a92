"""Logging and tracing helpers.

Logs are emitted through structlog. When an OpenTelemetry span is
active, add_trace_context injects its trace_id and span_id into every
log event so logs and traces can be correlated. Client operations open
spans through operation_span(), which records failures on the span.

Span Names:
    klaus.oci.describe
    klaus.oci.pull
    klaus.oci.push
    klaus.oci.list_artifacts
    klaus.oci.resolve_dependencies

Example:
    >>> configure_logging(log_level="DEBUG", json_output=False)
    >>> with operation_span(SPAN_PULL, {"klaus.oci.ref": ref}) as span:
    ...     span.set_attribute("klaus.oci.cached", True)
"""

from __future__ import annotations

import logging
from collections.abc import Generator, Mapping, MutableMapping
from contextlib import contextmanager
from typing import Any

import structlog
from opentelemetry import trace
from opentelemetry.trace import INVALID_SPAN_ID, INVALID_TRACE_ID, Span, Status, StatusCode

# Type alias for structlog EventDict
EventDict = MutableMapping[str, Any]

tracer = trace.get_tracer(__name__)

SPAN_DESCRIBE = "klaus.oci.describe"
SPAN_PULL = "klaus.oci.pull"
SPAN_PUSH = "klaus.oci.push"
SPAN_LIST_ARTIFACTS = "klaus.oci.list_artifacts"
SPAN_RESOLVE_DEPENDENCIES = "klaus.oci.resolve_dependencies"


def add_trace_context(
    logger: Any,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: EventDict,
) -> EventDict:
    """Add trace context to a structlog event dictionary.

    Args:
        logger: The logger instance (unused, required by structlog processor API).
        method_name: The log method name (unused).
        event_dict: The event dictionary to enrich.

    Returns:
        The event dictionary, with trace_id and span_id when a span is active.
    """
    ctx = trace.get_current_span().get_span_context()
    if ctx.trace_id != INVALID_TRACE_ID and ctx.span_id != INVALID_SPAN_ID:
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def configure_logging(log_level: str = "INFO", json_output: bool = True) -> None:
    """Configure structlog with trace context injection.

    Args:
        log_level: Minimum level to emit (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_output: Render JSON lines if True, console output otherwise.

    Raises:
        ValueError: If ``log_level`` is not a known level name.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")

    renderer: Any = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            add_trace_context,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=False,
    )


@contextmanager
def operation_span(
    name: str,
    attributes: Mapping[str, Any] | None = None,
) -> Generator[Span, None, None]:
    """Open a span for a client operation, recording any exception on it.

    Args:
        name: Span name (use the SPAN_* constants).
        attributes: Initial span attributes.

    Yields:
        The active span.
    """
    with tracer.start_as_current_span(name) as span:
        for key, value in (attributes or {}).items():
            span.set_attribute(key, value)
        try:
            yield span
        except Exception as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            span.record_exception(e)
            raise


__all__ = [
    "SPAN_DESCRIBE",
    "SPAN_LIST_ARTIFACTS",
    "SPAN_PULL",
    "SPAN_PUSH",
    "SPAN_RESOLVE_DEPENDENCIES",
    "add_trace_context",
    "configure_logging",
    "operation_span",
]
