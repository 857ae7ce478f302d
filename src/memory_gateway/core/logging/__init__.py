"""Logging for the gateway: structlog setup plus request-scoped context helpers."""

from .context import bind_request_context, clear_log_context, get_log_context, update_log_context
from .setup import get_logger, setup_logging

__all__ = [
    "bind_request_context",
    "clear_log_context",
    "get_log_context",
    "get_logger",
    "setup_logging",
    "update_log_context",
]
