"""Neo4j-backed embedding cache.

Keys combine the model tag and the exact text, so a vector produced by one
model or input type is never served for another. Failures are logged and read
as misses.
"""

import hashlib
from typing import Any

from memory_gateway.core.base import ErrorLevel
from memory_gateway.core.decorators import with_error_handling
from memory_gateway.infrastructure.neo4j.driver import Neo4jQuery
from memory_gateway.infrastructure.neo4j.queries import EmbeddingCacheQueries


class EmbeddingCache:
    def __init__(self, query: Neo4jQuery[Any], max_age_days: int = 30):
        self.query = query
        self.max_age = f"P{max_age_days}D"

    @staticmethod
    def cache_key(text: str, model: str) -> str:
        return hashlib.sha256(f"{model}\x00{text}".encode()).hexdigest()

    @with_error_handling(error_level=ErrorLevel.WARNING, reraise=False)
    async def get_cached(self, text: str, model: str) -> list[float] | None:
        return await self.query.execute_single(
            EmbeddingCacheQueries.get(),
            {"key": self.cache_key(text, model), "model": model, "max_age": self.max_age},
            lambda record: list(record["embedding"]),
        )

    @with_error_handling(error_level=ErrorLevel.WARNING, reraise=False)
    async def store(self, text: str, model: str, embedding: list[float], dimensions: int) -> None:
        await self.query.execute_single(
            EmbeddingCacheQueries.store(),
            {
                "key": self.cache_key(text, model),
                "model": model,
                "embedding": embedding,
                "dimensions": dimensions,
                "text": text,
            },
        )
