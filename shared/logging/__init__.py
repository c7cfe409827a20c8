"""Structured logging module using structlog."""

from .structured_logger import (
    CORRELATION_ID_KEY,
    USER_ID_KEY,
    bind_request_context,
    bind_user,
    clear_request_context,
    configure_logging,
    redact_secrets,
    request_context,
)

__all__ = [
    "CORRELATION_ID_KEY",
    "USER_ID_KEY",
    "configure_logging",
    "bind_request_context",
    "bind_user",
    "clear_request_context",
    "redact_secrets",
    "request_context",
]
