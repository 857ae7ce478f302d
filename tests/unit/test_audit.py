"""Tests for audit logging and the analytics client."""

import json
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from memory_gateway.core.errors import NotFoundError, ServiceError, StoreError
from memory_gateway.domain.models import RequestRecord, UsageEvent
from memory_gateway.infrastructure.analytics import AnalyticsClient
from memory_gateway.services.accounts import AccountResolver
from memory_gateway.services.audit import AuditLogger
from memory_gateway.services.forwarder import CompletionResult


@pytest.fixture
def analytics():
    client = MagicMock()
    client.send = AsyncMock(return_value=True)
    return client


@pytest.fixture
def request_log():
    repo = MagicMock()
    repo.insert = AsyncMock(return_value="req-1")
    return repo


@pytest.fixture
def resolver(account):
    resolver = MagicMock()
    resolver.resolve = AsyncMock(return_value=account)
    return resolver


@pytest.fixture
def result(completion_response):
    return CompletionResult(response=completion_response, duration_ms=42.0)


class TestUsageEvent:
    def test_timestamp_wire_format(self):
        event = UsageEvent(
            model="gpt-4o-mini",
            timestamp=datetime(2024, 1, 31, 12, 0, 0, 123456, tzinfo=UTC),
            num_tokens=25,
            price=0.0025,
            user_id="user-1",
        )
        assert json.loads(event.model_dump_json())["timestamp"] == "2024-01-31 12:00:00.123"


class TestAuditLogger:
    @pytest.mark.asyncio
    async def test_records_usage_and_request(self, analytics, request_log, resolver, account, chat_body, result):
        audit = AuditLogger(analytics, request_log, resolver)

        await audit.record(chat_body, result, api_key="gp-key", account=account)

        event: UsageEvent = analytics.send.call_args.args[0]
        assert event.num_tokens == 25
        assert event.price == pytest.approx(0.0025)
        assert event.user_id == "user-1"
        record: RequestRecord = request_log.insert.call_args.args[0]
        assert record.request == chat_body
        assert record.num_tokens == 25
        assert record.duration_ms == 42.0
        resolver.resolve.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_resolves_account_lazily(self, analytics, request_log, resolver, chat_body, result):
        audit = AuditLogger(analytics, request_log, resolver)

        await audit.record(chat_body, result, api_key="gp-key")

        resolver.resolve.assert_awaited_once_with("gp-key")
        request_log.insert.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unresolved_account_skips_everything(self, analytics, request_log, resolver, chat_body, result):
        resolver.resolve.side_effect = NotFoundError("Unknown or missing access key")
        audit = AuditLogger(analytics, request_log, resolver)

        await audit.record(chat_body, result, api_key=None)

        analytics.send.assert_not_awaited()
        request_log.insert.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_substeps_fail_independently(self, analytics, request_log, resolver, account, chat_body, result):
        analytics.send.side_effect = ServiceError("analytics down")
        audit = AuditLogger(analytics, request_log, resolver)

        await audit.record(chat_body, result, api_key="gp-key", account=account)

        request_log.insert.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_store_failure_is_swallowed(self, analytics, request_log, resolver, account, chat_body, result):
        request_log.insert.side_effect = StoreError("neo4j down")
        audit = AuditLogger(analytics, request_log, resolver)

        await audit.record(chat_body, result, api_key="gp-key", account=account)

        analytics.send.assert_awaited_once()


class TestAccountResolver:
    @pytest.mark.asyncio
    async def test_missing_key_is_not_found(self):
        repo = MagicMock()
        repo.get_by_api_key = AsyncMock()

        with pytest.raises(NotFoundError):
            await AccountResolver(repo).resolve(None)
        repo.get_by_api_key.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_key_is_not_found(self):
        repo = MagicMock()
        repo.get_by_api_key = AsyncMock(return_value=None)

        with pytest.raises(NotFoundError):
            await AccountResolver(repo).resolve("gp-unknown")


class TestAnalyticsClient:
    @pytest.fixture
    def event(self):
        return UsageEvent(model="gpt-4o-mini", num_tokens=25, price=0.0025, user_id="user-1")

    @pytest.mark.asyncio
    async def test_disabled_without_token(self, event):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        client = AnalyticsClient("https://events.example.com", token=None, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

        assert await client.send(event) is False

    @pytest.mark.asyncio
    async def test_posts_event_with_bearer_token(self, event):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(202, json={"successful_rows": 1})

        client = AnalyticsClient(
            "https://events.example.com", token="tb-token", client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
        )

        assert await client.send(event) is True
        assert seen["auth"] == "Bearer tb-token"
        assert seen["body"]["num_tokens"] == 25
        assert seen["body"]["user_id"] == "user-1"

    @pytest.mark.asyncio
    async def test_rejected_event_raises_service_error(self, event):
        client = AnalyticsClient(
            "https://events.example.com",
            token="tb-token",
            client=httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(403))),
        )

        with pytest.raises(ServiceError):
            await client.send(event)
