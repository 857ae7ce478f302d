"""Tests for the Neo4j repositories against a mocked query executor."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from memory_gateway.domain.models import Account, DocumentContext, Memory, RequestRecord
from memory_gateway.infrastructure.neo4j.queries import MEMORY_INDEX, SNIPPET_INDEX
from memory_gateway.infrastructure.repositories.account import AccountRepository
from memory_gateway.infrastructure.repositories.context import DocumentContextRepository
from memory_gateway.infrastructure.repositories.memory import MemoryRepository, record_to_result
from memory_gateway.infrastructure.repositories.request_log import RequestLogRepository


@pytest.fixture
def query():
    executor = MagicMock()
    executor.execute_list = AsyncMock(return_value=[])
    executor.execute_single = AsyncMock(return_value=None)
    return executor


def _transform(query_mock, method: str, record: dict):
    """Apply the row transformer a repository handed to the executor."""
    transformer = getattr(query_mock, method).call_args.args[2]
    return transformer(record)


class TestMemoryRepository:
    @pytest.mark.asyncio
    async def test_search_over_fetches_and_scopes(self, query):
        repo = MemoryRepository(query, candidate_multiplier=4)

        await repo.search([0.1], user_id="user-1", store_id="store-1", threshold=0.3, limit=5)

        params = query.execute_list.call_args.args[1]
        assert params["index_name"] == MEMORY_INDEX
        assert params["candidates"] == 20
        assert params["limit"] == 5
        assert params["threshold"] == 0.3
        assert (params["user_id"], params["store_id"]) == ("user-1", "store-1")

    def test_record_to_result(self):
        result = record_to_result({"id": "mem-a", "content": None, "similarity": 0.9})
        assert (result.id, result.content, result.similarity) == ("mem-a", "", 0.9)

    @pytest.mark.asyncio
    async def test_create_writes_flat_properties(self, query):
        query.execute_single.return_value = "generated"
        memory = Memory(user_id="user-1", store_id="store-1", content="Dog: Max", embedding=[0.1])

        assert await MemoryRepository(query).create(memory) == "generated"

        properties = query.execute_single.call_args.args[1]["properties"]
        assert properties["id"] == str(memory.id)
        assert isinstance(properties["updated_at"], float)

    @pytest.mark.asyncio
    async def test_update_reports_missing_memory(self, query):
        repo = MemoryRepository(query)
        updated_at = datetime(2024, 5, 1, tzinfo=UTC)

        matched = await repo.update("mem-a", "user-1", "store-1", "Lives in Denver", [0.2], updated_at)

        assert matched is False
        params = query.execute_single.call_args.args[1]
        assert params["id"] == "mem-a"
        assert params["updated_at"] == updated_at.timestamp()

    @pytest.mark.asyncio
    async def test_update_reports_match(self, query):
        query.execute_single.return_value = "mem-a"

        assert await MemoryRepository(query).update("mem-a", "user-1", "store-1", "x", [0.2], datetime.now(UTC))


class TestDocumentContextRepository:
    @pytest.mark.asyncio
    async def test_get_maps_record(self, query):
        repo = DocumentContextRepository(query)

        await repo.get("ctx-1")

        context = _transform(query, "execute_single", {"id": "ctx-1", "context": None})
        assert context == DocumentContext(id="ctx-1", context="")

    @pytest.mark.asyncio
    async def test_snippet_search_is_scoped_to_context(self, query):
        await DocumentContextRepository(query, candidate_multiplier=2).search_snippets(
            [0.1], context_id="ctx-1", threshold=0.3, limit=5
        )

        params = query.execute_list.call_args.args[1]
        assert params["index_name"] == SNIPPET_INDEX
        assert params["context_id"] == "ctx-1"
        assert params["candidates"] == 10


class TestAccountAndRequestLog:
    @pytest.mark.asyncio
    async def test_account_lookup(self, query):
        await AccountRepository(query).get_by_api_key("gp-key")

        assert query.execute_single.call_args.args[1] == {"api_key": "gp-key"}
        account = _transform(query, "execute_single", {"id": 7, "subscription_status": "active"})
        assert account == Account(id="7", subscription_status="active")

    @pytest.mark.asyncio
    async def test_request_record_payloads_are_json_encoded(self, query):
        record = RequestRecord(
            model="gpt-4o-mini",
            request={"messages": [{"role": "user", "content": "hi"}]},
            response={"usage": {"total_tokens": 3}},
            num_tokens=3,
            duration_ms=1.5,
            user_id="user-1",
        )

        assert await RequestLogRepository(query).insert(record) == record.id

        properties = query.execute_single.call_args.args[1]["properties"]
        assert properties["request"] == '{"messages": [{"role": "user", "content": "hi"}]}'
        assert properties["num_tokens"] == 3
