"""Structured logging configuration using structlog.

Every entry carries the app and environment, the request's correlation ID
and the signed-in user's ID when there is one, and the OpenTelemetry trace
IDs. Credential material is masked before rendering.
"""

import logging
import sys
from typing import Optional

import structlog
from structlog.types import EventDict, Processor

_APP_NAME = "travelbud"
_environment = "development"

CORRELATION_ID_KEY = "correlation_id"
USER_ID_KEY = "user_id"
REQUEST_CONTEXT_KEYS = (CORRELATION_ID_KEY, USER_ID_KEY)

# Keys whose values are never written to a log line.
SECRET_KEYS = frozenset({
    "password",
    "password_hash",
    "token",
    "authorization",
    "jwt_secret_key",
    "places_api_key",
})
REDACTED = "***"


def add_app_context(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add application context to log entries."""
    event_dict["app"] = _APP_NAME
    event_dict["environment"] = _environment
    return event_dict


def add_trace_context(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add OpenTelemetry trace context to log entries."""
    from opentelemetry import trace

    span = trace.get_current_span()
    if span and span.is_recording():
        span_context = span.get_span_context()
        event_dict["trace_id"] = format(span_context.trace_id, "032x")
        event_dict["span_id"] = format(span_context.span_id, "016x")

    return event_dict


def redact_secrets(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Mask credential values, whatever the caller passed."""
    for key in event_dict.keys() & SECRET_KEYS:
        event_dict[key] = REDACTED
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    json_logs: bool = True,
    service_name: Optional[str] = None,
    environment: str = "development",
) -> None:
    """Configure structured logging for the application.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Whether to output logs in JSON format
        service_name: Name of the service for log tagging
        environment: Deployment environment recorded on every entry
    """
    global _environment
    _environment = environment

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        add_app_context,
        add_trace_context,
        redact_secrets,
    ]

    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

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
        level=getattr(logging, log_level.upper()),
    )

    if service_name:
        structlog.contextvars.bind_contextvars(service=service_name)


def bind_request_context(correlation_id: str) -> None:
    """Start a request's log context."""
    structlog.contextvars.bind_contextvars(**{CORRELATION_ID_KEY: correlation_id})


def bind_user(user_id: str) -> None:
    """Attach the authenticated user to the current request's log context."""
    structlog.contextvars.bind_contextvars(**{USER_ID_KEY: user_id})


def clear_request_context() -> None:
    """Drop the request keys, keeping service-level context."""
    structlog.contextvars.unbind_contextvars(*REQUEST_CONTEXT_KEYS)


def request_context() -> dict:
    """The request keys currently bound (used to label spans)."""
    bound = structlog.contextvars.get_contextvars()
    return {key: bound[key] for key in REQUEST_CONTEXT_KEYS if key in bound}
