"""Error handling decorator for service and repository methods."""

import inspect
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, ParamSpec, TypeVar, cast

from .base import ApplicationError, ErrorLevel
from .error_context import ErrorContextManager
from .logging import get_logger

logger = get_logger(__name__)
P = ParamSpec("P")
T = TypeVar("T")


def _report(func: Callable[..., Any], error: Exception, fallback: ErrorLevel) -> None:
    level = error.level if isinstance(error, ApplicationError) else fallback
    with ErrorContextManager(error) as ctx:
        logger.log(
            level.to_logging_level(),
            f"{func.__qualname__} failed: {error}",
            function=func.__qualname__,
            error_context=ctx.to_dict(),
            exc_info=True,
        )


def with_error_handling(
    error_level: ErrorLevel = ErrorLevel.ERROR,
    reraise: bool = True,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Log any exception escaping the wrapped callable.

    ApplicationErrors keep their own level; other exceptions are logged at
    ``error_level``. With ``reraise=False`` the exception is swallowed and the
    call returns None, which is how best-effort steps of deferred work are
    kept from failing one another.
    """

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        if inspect.iscoroutinefunction(func):
            coro = cast("Callable[P, Awaitable[Any]]", func)

            @wraps(func)
            async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> Any:
                try:
                    return await coro(*args, **kwargs)
                except Exception as e:
                    _report(func, e, error_level)
                    if reraise:
                        raise
                    return None

            wrapper: Callable[..., Any] = async_wrapper
        else:

            @wraps(func)
            def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> Any:
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    _report(func, e, error_level)
                    if reraise:
                        raise
                    return None

            wrapper = sync_wrapper

        # Keep the original signature visible to introspection
        wrapper.__signature__ = inspect.signature(func)  # type: ignore[attr-defined]
        return cast("Callable[P, T]", wrapper)

    return decorator
