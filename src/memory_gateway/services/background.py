"""Supervision of deferred work that outlives the HTTP response."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from memory_gateway.core.logging import get_logger

logger = get_logger(__name__)


class DeferredWorkSupervisor:
    """Owns post-response tasks.

    Tasks are strongly referenced until they finish, failures are logged
    rather than lost, and outstanding work is drained on shutdown.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()
        self._accepting = True

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(
        self,
        func: Callable[..., Awaitable[Any]],
        *args: Any,
        name: str | None = None,
        **kwargs: Any,
    ) -> asyncio.Task[Any] | None:
        """Schedule ``func(*args, **kwargs)`` on the running loop.

        Returns None once the supervisor is draining.
        """
        task_name = name or getattr(func, "__name__", "deferred")
        if not self._accepting:
            logger.warning("Supervisor is shutting down, dropping deferred work", task=task_name)
            return None

        task = asyncio.create_task(func(*args, **kwargs), name=task_name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        logger.debug("Deferred work scheduled", task=task_name, pending=len(self._tasks))
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("Deferred work cancelled", task=task.get_name())
            return
        error = task.exception()
        if error is not None:
            logger.error(
                "Deferred work failed",
                task=task.get_name(),
                error=str(error),
                error_type=type(error).__name__,
                exc_info=error,
            )

    async def drain(self, timeout: float | None = None) -> None:
        """Stop accepting work and wait for outstanding tasks, cancelling stragglers."""
        self._accepting = False
        if not self._tasks:
            return

        logger.info("Draining deferred work", pending=len(self._tasks), timeout=timeout)
        done, still_running = await asyncio.wait(set(self._tasks), timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
            logger.warning("Cancelled deferred work at shutdown", cancelled=len(still_running))
        logger.info("Deferred work drained", completed=len(done))
