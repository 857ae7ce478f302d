from datetime import datetime
from typing import Any

from memory_gateway.core.base import ErrorLevel
from memory_gateway.core.decorators import with_error_handling
from memory_gateway.core.logging import get_logger
from memory_gateway.domain.models import Memory, RetrievalResult
from memory_gateway.infrastructure.neo4j.driver import Neo4jQuery
from memory_gateway.infrastructure.neo4j.queries import MEMORY_INDEX, MemoryQueries

logger = get_logger(__name__)


def record_to_result(record: Any) -> RetrievalResult:
    """Convert a similarity-search row to a RetrievalResult."""
    return RetrievalResult(
        id=str(record["id"]),
        content=record["content"] or "",
        similarity=float(record["similarity"]),
    )


class MemoryRepository:
    """Memory nodes scoped by (user_id, store_id)."""

    def __init__(self, query: Neo4jQuery, candidate_multiplier: int = 4):
        self.query = query
        self.candidate_multiplier = candidate_multiplier

    @with_error_handling(error_level=ErrorLevel.ERROR, reraise=True)
    async def search(
        self,
        embedding: list[float],
        user_id: str,
        store_id: str,
        threshold: float,
        limit: int,
    ) -> list[RetrievalResult]:
        """Top ``limit`` memories of one store with similarity >= threshold, best first."""
        results = await self.query.execute_list(
            MemoryQueries.similarity_search(),
            {
                "index_name": MEMORY_INDEX,
                "candidates": limit * self.candidate_multiplier,
                "embedding": embedding,
                "threshold": threshold,
                "user_id": user_id,
                "store_id": store_id,
                "limit": limit,
            },
            record_to_result,
        )
        logger.debug("Memory search completed", store_id=store_id, hits=len(results))
        return results

    @with_error_handling(error_level=ErrorLevel.ERROR, reraise=True)
    async def create(self, memory: Memory) -> str:
        """Insert a new memory node and return its id."""
        created = await self.query.execute_single(
            MemoryQueries.create(),
            {"properties": memory.to_neo4j_properties()},
            lambda record: str(record["id"]),
        )
        logger.debug("Created memory", memory_id=created, store_id=memory.store_id)
        return created or str(memory.id)

    @with_error_handling(error_level=ErrorLevel.ERROR, reraise=True)
    async def update(
        self,
        memory_id: str,
        user_id: str,
        store_id: str,
        content: str,
        embedding: list[float],
        updated_at: datetime,
    ) -> bool:
        """Overwrite content, embedding and updated_at; False when no scoped memory matched."""
        updated = await self.query.execute_single(
            MemoryQueries.update(),
            {
                "id": memory_id,
                "user_id": user_id,
                "store_id": store_id,
                "content": content,
                "embedding": embedding,
                "updated_at": updated_at.timestamp(),
            },
            lambda record: str(record["id"]),
        )
        if updated is None:
            logger.warning("Memory to update not found in scope", memory_id=memory_id, store_id=store_id)
            return False
        return True
