"""structlog configuration for the gateway.

Events are forwarded to Logfire (when ``logfire.configure`` found a token) and
rendered to stdout. Standard library records from uvicorn, httpx and the
neo4j driver go through the same pre-chain so every line looks alike.
"""

import logging
import sys

import logfire
import structlog
from structlog.processors import CallsiteParameter, CallsiteParameterAdder
from structlog.types import EventDict, Processor, WrappedLogger
from structlog.typing import FilteringBoundLogger

NOISY_LOGGERS = ("httpx", "httpcore", "neo4j")


def tag_error_type(_logger: WrappedLogger, _method_name: str, event_dict: EventDict) -> EventDict:
    """Expose the class name of an ``error=`` exception as ``error_type``."""
    error = event_dict.get("error")
    if isinstance(error, BaseException):
        event_dict["error_type"] = type(error).__name__
    return event_dict


def _pre_chain() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        CallsiteParameterAdder([CallsiteParameter.MODULE, CallsiteParameter.FUNC_NAME]),
        tag_error_type,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]


def setup_logging(level: int = logging.INFO, colors: bool | None = None) -> None:
    """Configure structlog and the root stdlib logger.

    Request-scoped fields bound with ``bind_request_context`` are merged into
    every event, including events from deferred tasks.
    """
    if colors is None:
        colors = sys.stdout.isatty()
    renderer = structlog.dev.ConsoleRenderer(colors=colors)
    pre_chain = _pre_chain()

    structlog.configure(
        processors=[*pre_chain, logfire.StructlogProcessor(), renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(sys.stdout),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=pre_chain))
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str | None = None) -> FilteringBoundLogger:
    return structlog.get_logger(name)
