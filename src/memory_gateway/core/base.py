"""Error codes, levels and structured error details shared by every layer."""

import logging
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from logfire.integrations.pydantic import PluginSettings
from pydantic import BaseModel, Field, field_serializer


class ErrorLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    def to_logging_level(self) -> int:
        # Member names match the stdlib level constants
        return getattr(logging, self.name)


class ErrorCode(str, Enum):
    """Numeric error codes grouped by layer.

    1xxx request handling, 2xxx gateway policy, 3xxx Neo4j,
    4xxx embedding and completion models, 5xxx other upstreams.
    """

    INVALID_REQUEST = "1001"
    INVALID_INPUT = "1002"
    NOT_FOUND = "1003"
    PROCESSING_FAILED = "1004"
    TIMEOUT = "1007"

    AUTHENTICATION_FAILED = "2001"
    RATE_LIMITED = "2003"
    CIRCUIT_OPEN = "2005"

    DB_QUERY = "3002"

    MODEL_ERROR = "4001"
    EMBEDDING_FAILED = "4003"

    SERVICE_UNAVAILABLE = "5002"
    UPSTREAM_HTTP = "5004"

    @property
    def http_status(self) -> int:
        """Status code the API answers with when this error reaches a handler."""
        return _HTTP_STATUS.get(self, 500)


_HTTP_STATUS: dict[ErrorCode, int] = {
    ErrorCode.INVALID_REQUEST: 400,
    ErrorCode.INVALID_INPUT: 400,
    ErrorCode.AUTHENTICATION_FAILED: 401,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.RATE_LIMITED: 429,
    ErrorCode.MODEL_ERROR: 502,
    ErrorCode.EMBEDDING_FAILED: 502,
    ErrorCode.UPSTREAM_HTTP: 502,
    ErrorCode.CIRCUIT_OPEN: 503,
    ErrorCode.DB_QUERY: 503,
    ErrorCode.SERVICE_UNAVAILABLE: 503,
    ErrorCode.TIMEOUT: 504,
}


class ErrorDetails(BaseModel, plugin_settings=PluginSettings(logfire={"record": "all"})):
    """Where and during what an error happened."""

    source: str = Field(description="Module or component raising the error")
    operation: str = Field(description="Operation in progress")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_serializer("timestamp")
    def serialize_timestamp(self, timestamp: datetime) -> str:
        return timestamp.isoformat()


class ValidationErrorDetails(ErrorDetails):
    field: str | None = None
    actual_value: Any = None
    expected_type: str | None = None
    constraint: str | None = None


class ResourceErrorDetails(ErrorDetails):
    resource_type: str = Field(description="account, document_context, memory, ...")
    resource_id: str | None = None
    action: str = "read"


class ServiceErrorDetails(ErrorDetails):
    service_name: str
    endpoint: str | None = None
    status_code: int | None = None


class DatabaseErrorDetails(ServiceErrorDetails):
    query_type: str | None = Field(None, description="Repository operation, e.g. search or create")


class AIServiceErrorDetails(ServiceErrorDetails):
    model_name: str | None = None
    temperature: float | None = None


class ApplicationError(Exception):
    """Root of the gateway's error hierarchy.

    ``details`` may be given as a model or as a plain dict carrying at least
    ``source`` and ``operation``.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        level: ErrorLevel = ErrorLevel.ERROR,
        details: ErrorDetails | dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.level = level
        if isinstance(details, ErrorDetails):
            self.details = details
        else:
            fields = {"source": "unknown", "operation": "unknown", **(details or {})}
            self.details = ErrorDetails(**fields)
