"""OpenAI-compatible chat-completion endpoint with memory augmentation."""

from fastapi import APIRouter, BackgroundTasks, Depends, Header, Request
from fastapi.responses import JSONResponse, StreamingResponse

from memory_gateway.api.dependencies import get_gateway_service, get_supervisor
from memory_gateway.core.base import ValidationErrorDetails
from memory_gateway.core.errors import InvalidRequestError
from memory_gateway.core.logging import bind_request_context, get_logger
from memory_gateway.services.background import DeferredWorkSupervisor
from memory_gateway.services.gateway import DeferredWork, GatewayRequest, GatewayService

logger = get_logger(__name__)
router = APIRouter()

REQUEST_ID_HEADER = "x-request-id"


def bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return authorization.strip() or None
    return token.strip() or None


async def hand_over(supervisor: DeferredWorkSupervisor, gateway: GatewayService, work: DeferredWork) -> None:
    """Runs after the response is sent; the supervisor owns the work from here."""
    supervisor.submit(gateway.run_deferred, work, name="deferred-memory-work")


@router.post("/chat/completions")
async def chat_completions(
    request: Request,
    background_tasks: BackgroundTasks,
    gateway: GatewayService = Depends(get_gateway_service),
    supervisor: DeferredWorkSupervisor = Depends(get_supervisor),
    x_gp_api_key: str | None = Header(default=None),
    x_gp_remember: str | None = Header(default=None),
    x_gp_context: str | None = Header(default=None),
    authorization: str | None = Header(default=None),
):
    """Forward a chat completion, injecting remembered facts and document context.

    Headers:
        x-gp-api-key: Access key identifying the account
        x-gp-remember: Persistence store to retrieve memories from and write to
        x-gp-context: Document context whose snippets are injected
        Authorization: Provider credentials, forwarded upstream
    """
    try:
        body = await request.json()
    except ValueError as e:
        raise InvalidRequestError(
            "Request body is not valid JSON",
            details=ValidationErrorDetails(source="completions_endpoint", operation="parse_body"),
        ) from e
    if not isinstance(body, dict):
        raise InvalidRequestError(
            "Request body must be a JSON object",
            details=ValidationErrorDetails(
                source="completions_endpoint",
                operation="parse_body",
                expected_type="object",
            ),
        )

    request_id = bind_request_context(
        store_id=x_gp_remember or None,
        context_id=x_gp_context or None,
        model=body.get("model"),
        stream=bool(body.get("stream")),
    )
    logger.info("Chat completion received")

    outcome = await gateway.handle(
        GatewayRequest(
            body=body,
            access_key=x_gp_api_key or None,
            store_id=x_gp_remember or None,
            context_id=x_gp_context or None,
            provider_key=bearer_token(authorization),
        )
    )

    headers = {REQUEST_ID_HEADER: request_id}
    if outcome.stream is not None:
        return StreamingResponse(outcome.stream, media_type="text/event-stream", headers=headers)

    if outcome.deferred is not None:
        background_tasks.add_task(hand_over, supervisor, gateway, outcome.deferred)
    return JSONResponse(content=outcome.body, headers=headers)
