"""Tests for the Neo4j query executor and the embedding cache built on it."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from neo4j.exceptions import ServiceUnavailable

from memory_gateway.core.base import ErrorCode
from memory_gateway.core.errors import StoreError
from memory_gateway.infrastructure.embeddings.cache import EmbeddingCache
from memory_gateway.infrastructure.neo4j.driver import Neo4jQuery


def _driver(session):
    driver = MagicMock()
    driver.session.return_value.__aenter__ = AsyncMock(return_value=session)
    driver.session.return_value.__aexit__ = AsyncMock(return_value=False)
    return driver


class TestNeo4jQuery:
    @pytest.mark.asyncio
    async def test_single_applies_transformer(self):
        result = MagicMock()
        result.single = AsyncMock(return_value={"id": "mem-a"})
        session = MagicMock()
        session.run = AsyncMock(return_value=result)

        value = await Neo4jQuery(_driver(session), timeout=5.0).execute_single(
            "RETURN 1", {"id": "mem-a"}, lambda record: record["id"]
        )

        assert value == "mem-a"
        query = session.run.call_args.args[0]
        assert query.timeout == 5.0
        assert session.run.call_args.kwargs["parameters"] == {"id": "mem-a"}

    @pytest.mark.asyncio
    async def test_single_without_rows_is_none(self):
        result = MagicMock()
        result.single = AsyncMock(return_value=None)
        session = MagicMock()
        session.run = AsyncMock(return_value=result)

        assert await Neo4jQuery(_driver(session)).execute_single("RETURN 1", None, lambda r: r["id"]) is None

    @pytest.mark.asyncio
    async def test_driver_failure_becomes_store_error(self):
        session = MagicMock()
        session.run = AsyncMock(side_effect=ServiceUnavailable("connection refused"))

        with pytest.raises(StoreError) as exc_info:
            await Neo4jQuery(_driver(session)).execute_list("RETURN 1")
        assert exc_info.value.code is ErrorCode.DB_QUERY
        assert exc_info.value.details.operation == "execute_list"


class TestEmbeddingCache:
    def test_key_depends_on_model(self):
        assert EmbeddingCache.cache_key("hello", "voyage-3:query") != EmbeddingCache.cache_key(
            "hello", "voyage-3:document"
        )

    @pytest.mark.asyncio
    async def test_hit_returns_vector(self):
        query = MagicMock()
        query.execute_single = AsyncMock(return_value=[0.1, 0.2])
        cache = EmbeddingCache(query, max_age_days=7)

        assert await cache.get_cached("hello", "voyage-3:query") == [0.1, 0.2]
        params = query.execute_single.call_args.args[1]
        assert params["max_age"] == "P7D"
        assert params["model"] == "voyage-3:query"

    @pytest.mark.asyncio
    async def test_failures_read_as_misses(self):
        query = MagicMock()
        query.execute_single = AsyncMock(side_effect=StoreError("neo4j down"))

        assert await EmbeddingCache(query).get_cached("hello", "voyage-3:query") is None
