"""Gateway pipeline: retrieve, assemble, forward, then remember and audit."""

import asyncio
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, Field
from pydantic import ValidationError as SchemaValidationError

from memory_gateway.core.base import ErrorLevel, ValidationErrorDetails
from memory_gateway.core.decorators import with_error_handling
from memory_gateway.core.errors import InvalidRequestError, ValidationError
from memory_gateway.core.logging import get_logger, update_log_context
from memory_gateway.domain.models import Account, ChatCompletionRequest, RetrievalResult, latest_user_text
from memory_gateway.services.accounts import AccountResolver
from memory_gateway.services.audit import AuditLogger
from memory_gateway.services.extraction import FactExtractor
from memory_gateway.services.forwarder import CompletionForwarder, CompletionResult
from memory_gateway.services.prompt import document_block, memory_block, prepend_system_content
from memory_gateway.services.reconciler import MemoryReconciler
from memory_gateway.services.retrieval import SimilarityRetriever

logger = get_logger(__name__)


class GatewayRequest(BaseModel):
    """An inbound chat-completion body plus the gateway headers that steer it."""

    body: dict[str, Any]
    access_key: str | None = None
    store_id: str | None = None
    context_id: str | None = None
    provider_key: str | None = None


@dataclass
class Augmentation:
    """The payload to forward and the memories that were shown to the model."""

    payload: dict[str, Any]
    memories: list[RetrievalResult] = field(default_factory=list)


class DeferredWork(BaseModel):
    """Everything the post-response phase needs; lives until that phase ends."""

    payload: dict[str, Any]
    messages: list[dict[str, Any]]
    result: CompletionResult
    memories: list[RetrievalResult] = Field(default_factory=list)
    account: Account | None = None
    access_key: str | None = None
    store_id: str | None = None
    provider_key: str | None = None


@dataclass
class GatewayResponse:
    """Either a decoded completion body or an upstream byte stream."""

    body: dict[str, Any] | None = None
    stream: AsyncIterator[bytes] | None = None
    deferred: DeferredWork | None = None


def validate_request(body: Any) -> ChatCompletionRequest:
    """Shape-check an inbound body.

    Raises:
        InvalidRequestError: The body is not a chat-completion request
    """
    try:
        return ChatCompletionRequest.model_validate(body)
    except SchemaValidationError as e:
        first = e.errors()[0]
        raise InvalidRequestError(
            f"Invalid chat completion request: {first['msg']}",
            details=ValidationErrorDetails(
                source="GatewayService",
                operation="validate_request",
                field=".".join(str(part) for part in first["loc"]) or None,
                constraint=first["type"],
            ),
        ) from e


class GatewayService:
    """Runs one chat-completion request through the memory pipeline.

    The synchronous path is account -> embed -> retrieve -> assemble ->
    forward. Extraction, reconciliation and audit run later through
    ``run_deferred`` and never affect the response.
    """

    def __init__(
        self,
        accounts: AccountResolver,
        retriever: SimilarityRetriever,
        forwarder: CompletionForwarder,
        extractor: FactExtractor,
        reconciler: MemoryReconciler,
        audit: AuditLogger,
    ):
        self.accounts = accounts
        self.retriever = retriever
        self.forwarder = forwarder
        self.extractor = extractor
        self.reconciler = reconciler
        self.audit = audit

    async def augment(
        self,
        body: dict[str, Any],
        account: Account | None,
        store_id: str | None,
        context_id: str | None,
    ) -> Augmentation:
        """Prepend retrieved memories and document context to the system instructions.

        The original ``body`` is returned untouched when nothing was retrieved.

        Raises:
            NotFoundError: ``context_id`` does not name a document context
            ProviderError: The query could not be embedded
        """
        if not store_id and not context_id:
            return Augmentation(payload=body)

        context = await self.retriever.get_context(context_id) if context_id else None

        original = body["messages"]
        query = latest_user_text(original)
        if not query.strip():
            logger.info("No user text to embed, skipping retrieval")
            return Augmentation(payload=body)

        vector = await self.retriever.embed_query(query)
        messages = original

        memories: list[RetrievalResult] = []
        if store_id and account is not None:
            memories = await self.retriever.search_memories(vector, account.id, store_id)
            if memories:
                messages = prepend_system_content(messages, memory_block(memories))

        if context is not None:
            snippets = await self.retriever.search_snippets(vector, context.id)
            if snippets:
                messages = prepend_system_content(messages, document_block(context, snippets))

        if messages is original:
            return Augmentation(payload=body, memories=memories)
        return Augmentation(payload={**body, "messages": messages}, memories=memories)

    async def handle(self, request: GatewayRequest) -> GatewayResponse:
        """Serve one request.

        Raises:
            InvalidRequestError: Malformed body
            NotFoundError: Unknown access key while persisting, or unknown context
            ProviderError: Embedding or completion failure
            UpstreamHTTPError: The provider rejected the request
        """
        completion = validate_request(request.body)

        account = await self.accounts.resolve(request.access_key) if request.store_id else None
        if account is not None:
            update_log_context(user_id=account.id)
        augmentation = await self.augment(request.body, account, request.store_id, request.context_id)

        if completion.stream:
            if request.store_id:
                logger.info("Streaming request, memory persistence skipped", store_id=request.store_id)
            stream = await self.forwarder.stream(augmentation.payload, request.provider_key)
            return GatewayResponse(stream=stream)

        result = await self.forwarder.complete(augmentation.payload, request.provider_key)
        deferred = DeferredWork(
            payload=augmentation.payload,
            messages=completion.messages,
            result=result,
            memories=augmentation.memories,
            account=account,
            access_key=request.access_key,
            store_id=request.store_id,
            provider_key=request.provider_key,
        )
        return GatewayResponse(body=result.response, deferred=deferred)

    @with_error_handling(error_level=ErrorLevel.WARNING, reraise=False)
    async def remember(self, work: DeferredWork) -> None:
        """Extract facts from the conversation and reconcile them into the store."""
        if not work.store_id or work.account is None:
            return

        try:
            edits = await self.extractor.extract(work.messages, work.memories, work.provider_key)
        except ValidationError as e:
            logger.warning("Unparseable extraction output, skipping reconciliation", error=e.message)
            return

        await self.reconciler.reconcile(edits, work.memories, work.account.id, work.store_id)

    @with_error_handling(error_level=ErrorLevel.WARNING, reraise=False)
    async def record(self, work: DeferredWork) -> None:
        await self.audit.record(work.payload, work.result, work.access_key, work.account)

    async def run_deferred(self, work: DeferredWork) -> None:
        """Post-response phase: audit and memory work run side by side, each isolated."""
        await asyncio.gather(self.record(work), self.remember(work))
