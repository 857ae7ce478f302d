"""Request-scoped logging context.

Fields bound here are merged into every structlog event emitted from the same
asyncio context. Tasks created while a request context is bound inherit a copy
of it, so deferred memory work logs under the request that scheduled it.
"""

from typing import Any
from uuid import uuid4

import structlog


def bind_request_context(request_id: str | None = None, **fields: Any) -> str:
    """Bind a fresh request context and return its request id.

    Fields whose value is None are skipped.
    """
    request_id = request_id or uuid4().hex
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        **{key: value for key, value in fields.items() if value is not None},
    )
    return request_id


def update_log_context(**fields: Any) -> None:
    """Add fields to the current request context."""
    structlog.contextvars.bind_contextvars(**fields)


def get_log_context() -> dict[str, Any]:
    """Get a copy of the current request context."""
    return dict(structlog.contextvars.get_contextvars())


def clear_log_context() -> None:
    """Clear the current request context."""
    structlog.contextvars.clear_contextvars()
