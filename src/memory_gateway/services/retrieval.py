"""Similarity retrieval over memories and document snippets."""

from memory_gateway.core.base import ResourceErrorDetails
from memory_gateway.core.errors import NotFoundError
from memory_gateway.core.logging import get_logger
from memory_gateway.domain.models import DocumentContext, EmbeddingType, RetrievalResult
from memory_gateway.domain.services import EmbeddingServiceProtocol
from memory_gateway.infrastructure.repositories.context import DocumentContextRepository
from memory_gateway.infrastructure.repositories.memory import MemoryRepository

logger = get_logger(__name__)


class SimilarityRetriever:
    """Embeds the query once and ranks memories or snippets against it.

    Thresholds and counts are the per-scope defaults; callers may override
    them per search.
    """

    def __init__(
        self,
        embeddings: EmbeddingServiceProtocol,
        memories: MemoryRepository,
        contexts: DocumentContextRepository,
        memory_threshold: float = 0.3,
        memory_count: int = 5,
        snippet_threshold: float = 0.3,
        snippet_count: int = 5,
    ):
        self.embeddings = embeddings
        self.memories = memories
        self.contexts = contexts
        self.memory_threshold = memory_threshold
        self.memory_count = memory_count
        self.snippet_threshold = snippet_threshold
        self.snippet_count = snippet_count

    async def embed_query(self, text: str) -> list[float]:
        return await self.embeddings.embed_text(text, EmbeddingType.QUERY)

    async def search_memories(
        self,
        vector: list[float],
        user_id: str,
        store_id: str,
        threshold: float | None = None,
        top_k: int | None = None,
    ) -> list[RetrievalResult]:
        results = await self.memories.search(
            vector,
            user_id=user_id,
            store_id=store_id,
            threshold=self.memory_threshold if threshold is None else threshold,
            limit=top_k or self.memory_count,
        )
        logger.info("Retrieved memories", store_id=store_id, count=len(results))
        return results

    async def search_snippets(
        self,
        vector: list[float],
        context_id: str,
        threshold: float | None = None,
        top_k: int | None = None,
    ) -> list[RetrievalResult]:
        results = await self.contexts.search_snippets(
            vector,
            context_id=context_id,
            threshold=self.snippet_threshold if threshold is None else threshold,
            limit=top_k or self.snippet_count,
        )
        logger.info("Retrieved snippets", context_id=context_id, count=len(results))
        return results

    async def get_context(self, context_id: str) -> DocumentContext:
        """Load a document context.

        Raises:
            NotFoundError: No context with this id exists
        """
        context = await self.contexts.get(context_id)
        if context is None:
            raise NotFoundError(
                f"Document context {context_id} not found",
                details=ResourceErrorDetails(
                    source="SimilarityRetriever",
                    operation="get_context",
                    resource_id=context_id,
                    resource_type="document_context",
                    action="read",
                ),
            )
        return context
