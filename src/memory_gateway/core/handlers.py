"""JSON rendering of errors that reach the API layer."""

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from memory_gateway.core.logging import get_logger

from .base import ApplicationError, ErrorCode, ErrorLevel
from .error_context import ErrorContext, ErrorContextManager
from .errors import UpstreamHTTPError

logger = get_logger(__name__)


class GlobalErrorHandler:
    """Turns gateway and routing errors into the gateway's error body.

    The body carries ``error``, ``error_code``, ``level``, ``trace_id`` and
    ``timestamp``; ApplicationErrors add their structured ``details``.
    """

    def __init__(self, context_manager: ErrorContextManager):
        self.context_manager = context_manager

    @staticmethod
    def render(ctx: ErrorContext, level: ErrorLevel, code: ErrorCode) -> dict[str, Any]:
        body: dict[str, Any] = {
            "error": str(ctx.error),
            "error_code": code.value,
            "level": level.value,
            "trace_id": ctx.trace_id,
            "timestamp": ctx.timestamp.isoformat(),
        }
        if isinstance(ctx.error, ApplicationError):
            body["details"] = ctx.error.details.model_dump(mode="json")
        return body

    async def handle_application_error(self, error: ApplicationError) -> dict[str, Any]:
        ctx = await self.context_manager.capture_context(error)
        logger.log(
            error.level.to_logging_level(),
            f"Request failed: {error.message}",
            error_context=ctx.to_dict(),
        )
        return self.render(ctx, error.level, error.code)

    async def handle_http_exception(self, error: HTTPException) -> dict[str, Any]:
        server_side = error.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR
        level = ErrorLevel.ERROR if server_side else ErrorLevel.WARNING
        ctx = await self.context_manager.capture_context(error, status_code=error.status_code)
        return self.render(ctx, level, ErrorCode.PROCESSING_FAILED if server_side else ErrorCode.INVALID_REQUEST)


def register_exception_handlers(app: FastAPI) -> None:
    """Install the gateway's exception handlers on ``app``."""
    handler = GlobalErrorHandler(ErrorContextManager())

    @app.exception_handler(UpstreamHTTPError)
    async def upstream_error_handler(_request: Request, exc: UpstreamHTTPError) -> JSONResponse:
        # The provider's own status and body are relayed untouched
        logger.warning("Upstream provider rejected request", status_code=exc.status_code)
        return JSONResponse(status_code=exc.status_code, content=exc.payload)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
        body = await handler.handle_http_exception(exc)
        return JSONResponse(status_code=exc.status_code, content=body, headers=exc.headers)

    @app.exception_handler(ApplicationError)
    async def application_error_handler(_request: Request, exc: ApplicationError) -> JSONResponse:
        body = await handler.handle_application_error(exc)
        return JSONResponse(status_code=exc.code.http_status, content=body)
