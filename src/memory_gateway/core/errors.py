"""Concrete gateway errors.

Upstream failures derive from ServiceError and log at ERROR; problems with
what the caller sent (or what a model sent back) are WARNING-level
ClientErrors.
"""

from typing import Any, ClassVar

from .base import (
    AIServiceErrorDetails,
    ApplicationError,
    DatabaseErrorDetails,
    ErrorCode,
    ErrorDetails,
    ErrorLevel,
    ServiceErrorDetails,
)


class ServiceError(ApplicationError):
    """Failure of an external dependency."""

    def __init__(
        self,
        message: str,
        details: ServiceErrorDetails | None = None,
        code: ErrorCode = ErrorCode.SERVICE_UNAVAILABLE,
    ):
        if details is None:
            details = ServiceErrorDetails(source="service", operation="external_call", service_name="unknown")
        super().__init__(message=message, code=code, level=ErrorLevel.ERROR, details=details)


class ProviderError(ServiceError):
    """Embedding or completion call failed (network, quota, auth, unusable payload)."""

    def __init__(
        self,
        message: str,
        details: AIServiceErrorDetails | ServiceErrorDetails | None = None,
        code: ErrorCode = ErrorCode.MODEL_ERROR,
    ):
        super().__init__(message=message, details=details, code=code)


class UpstreamHTTPError(ServiceError):
    """Non-2xx answer from the provider; ``payload`` is relayed to the client as-is."""

    def __init__(self, status_code: int, payload: Any, details: ServiceErrorDetails | None = None):
        self.status_code = status_code
        self.payload = payload
        super().__init__(
            message=f"Upstream provider returned HTTP {status_code}",
            details=details,
            code=ErrorCode.UPSTREAM_HTTP,
        )


class StoreError(ServiceError):
    """Neo4j statement failed."""

    def __init__(self, message: str, details: DatabaseErrorDetails | None = None):
        super().__init__(message=message, details=details, code=ErrorCode.DB_QUERY)


class ClientError(ApplicationError):
    code_for_class: ClassVar[ErrorCode]

    def __init__(self, message: str, details: ErrorDetails | dict[str, Any] | None = None):
        super().__init__(message=message, code=self.code_for_class, level=ErrorLevel.WARNING, details=details)


class NotFoundError(ClientError):
    """Unknown access key or document context id."""

    code_for_class = ErrorCode.NOT_FOUND


class ValidationError(ClientError):
    """Structured model output that does not fit the expected schema."""

    code_for_class = ErrorCode.INVALID_INPUT


class InvalidRequestError(ClientError):
    """Malformed inbound chat-completion request."""

    code_for_class = ErrorCode.INVALID_REQUEST
