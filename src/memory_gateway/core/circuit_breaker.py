"""Circuit breaker guarding calls to Voyage and the completion provider.

A breaker never retries. A failing call re-raises its own exception after being
counted; once ``failure_threshold`` consecutive failures are seen the breaker
opens and rejects calls with ``CIRCUIT_OPEN`` until ``recovery_timeout`` has
elapsed, after which trial calls are let through in the half-open state.
"""

import time
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, TypeVar

from memory_gateway.core.base import ErrorCode, ServiceErrorDetails
from memory_gateway.core.errors import ServiceError
from memory_gateway.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Counts consecutive failures of one upstream and short-circuits it when unhealthy."""

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        expected_exception_types: tuple[type[BaseException], ...] = (Exception,),
        success_threshold: int = 2,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        # Anything outside these types passes through uncounted
        self.expected_exception_types = expected_exception_types
        self.success_threshold = success_threshold

        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.success_count = 0
        self.last_failure_time: float | None = None
        self.last_exception: BaseException | None = None

    def _move_to(self, state: CircuitState, **log_fields: Any) -> None:
        if state is self.state:
            return
        log = logger.error if state is CircuitState.OPEN else logger.info
        log(
            "Circuit state change",
            circuit=self.name,
            from_state=self.state.value,
            to_state=state.value,
            **log_fields,
        )
        self.state = state
        self.success_count = 0
        if state is CircuitState.CLOSED:
            self.failure_count = 0
            self.last_exception = None

    def _cooled_down(self) -> bool:
        if self.last_failure_time is None:
            return False
        return time.monotonic() - self.last_failure_time >= self.recovery_timeout

    def _admit(self) -> None:
        if self.state is CircuitState.OPEN and self._cooled_down():
            self._move_to(CircuitState.HALF_OPEN)
        if self.state is not CircuitState.OPEN:
            return

        reason = f" (last error: {self.last_exception})" if self.last_exception else ""
        raise ServiceError(
            message=f"{self.name} is unavailable, circuit open{reason}",
            code=ErrorCode.CIRCUIT_OPEN,
            details=ServiceErrorDetails(
                source="circuit_breaker",
                operation="call_async",
                service_name=self.name,
                status_code=503,
            ),
        )

    def _on_success(self) -> None:
        if self.state is CircuitState.HALF_OPEN:
            self.success_count += 1
            if self.success_count >= self.success_threshold:
                self._move_to(CircuitState.CLOSED)
        else:
            self.failure_count = 0

    def _on_failure(self, exc: BaseException) -> None:
        self.last_failure_time = time.monotonic()
        self.last_exception = exc

        if self.state is CircuitState.HALF_OPEN:
            self.failure_count = 1
            self._move_to(CircuitState.OPEN, error=str(exc))
            return

        self.failure_count += 1
        if self.failure_count >= self.failure_threshold:
            self._move_to(CircuitState.OPEN, failures=self.failure_count, error=str(exc))

    async def call_async(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Await ``func(*args, **kwargs)`` unless the circuit is open.

        Raises:
            ServiceError: with ``CIRCUIT_OPEN`` when the call is rejected.
        """
        self._admit()
        try:
            result = await func(*args, **kwargs)
        except self.expected_exception_types as exc:
            self._on_failure(exc)
            raise
        self._on_success()
        return result

    def get_state(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "success_count": self.success_count,
            "last_failure_time": self.last_failure_time,
            "last_exception": None if self.last_exception is None else str(self.last_exception),
        }
