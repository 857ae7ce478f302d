from memory_gateway.core.base import ErrorLevel
from memory_gateway.core.decorators import with_error_handling
from memory_gateway.core.logging import get_logger
from memory_gateway.domain.models import DocumentContext, RetrievalResult
from memory_gateway.infrastructure.neo4j.driver import Neo4jQuery
from memory_gateway.infrastructure.neo4j.queries import SNIPPET_INDEX, SnippetQueries
from memory_gateway.infrastructure.repositories.memory import record_to_result

logger = get_logger(__name__)


class DocumentContextRepository:
    """Read-only access to ingested document contexts and their snippets."""

    def __init__(self, query: Neo4jQuery, candidate_multiplier: int = 4):
        self.query = query
        self.candidate_multiplier = candidate_multiplier

    async def get(self, context_id: str) -> DocumentContext | None:
        return await self.query.execute_single(
            SnippetQueries.get_context(),
            {"context_id": context_id},
            lambda record: DocumentContext(id=str(record["id"]), context=record["context"] or ""),
        )

    @with_error_handling(error_level=ErrorLevel.ERROR, reraise=True)
    async def search_snippets(
        self,
        embedding: list[float],
        context_id: str,
        threshold: float,
        limit: int,
    ) -> list[RetrievalResult]:
        """Top ``limit`` snippets of one context with similarity >= threshold, best first."""
        results = await self.query.execute_list(
            SnippetQueries.similarity_search(),
            {
                "index_name": SNIPPET_INDEX,
                "candidates": limit * self.candidate_multiplier,
                "embedding": embedding,
                "threshold": threshold,
                "context_id": context_id,
                "limit": limit,
            },
            record_to_result,
        )
        logger.debug("Snippet search completed", context_id=context_id, hits=len(results))
        return results
