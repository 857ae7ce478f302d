"""Error context capture.

An ``ErrorContext`` ties a failure to a trace id. Inside a request the trace id
is the bound ``request_id``, so the error body returned to the client and the
log lines of the request share one identifier.
"""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import TracebackType
from typing import Any
from uuid import uuid4

from .base import ApplicationError
from .logging.context import get_log_context

logger = logging.getLogger(__name__)


def current_trace_id() -> str:
    return get_log_context().get("request_id") or str(uuid4())


@dataclass
class ErrorContext:
    error: BaseException
    trace_id: str = field(default_factory=current_trace_id)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    context: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Flatten into log fields; error details and extra context get dotted prefixes."""
        flat: dict[str, Any] = {
            "error_type": type(self.error).__name__,
            "error_message": str(self.error),
            "trace_id": self.trace_id,
            "timestamp": self.timestamp.isoformat(),
        }
        if isinstance(self.error, ApplicationError):
            flat["error_code"] = self.error.code.value
            flat["error_level"] = self.error.level.value
            flat.update({f"details.{k}": v for k, v in self.error.details.model_dump().items()})
        flat.update({f"context.{k}": v for k, v in self.context.items()})
        return flat


class ErrorContextManager:
    """Creates error contexts, either directly or as a (async) context manager.

    Used as ``with ErrorContextManager(exc) as ctx:``, a second exception raised
    while the first is being handled is logged instead of silently replacing it.
    """

    def __init__(self, error: BaseException | None = None, **context: Any) -> None:
        self._error = error
        self._context = context

    def __enter__(self) -> ErrorContext:
        if self._error is None:
            raise ValueError("ErrorContextManager needs an error to enter")
        return ErrorContext(self._error, context=self._context)

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if exc_val is not None and exc_val is not self._error:
            logger.error(
                "Secondary failure while handling %s: %r",
                type(self._error).__name__,
                exc_val,
                exc_info=(exc_type, exc_val, exc_tb),
            )

    async def __aenter__(self) -> ErrorContext:
        return self.__enter__()

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)

    async def capture_context(self, error: BaseException, **context: Any) -> ErrorContext:
        return ErrorContext(error, context=context)
