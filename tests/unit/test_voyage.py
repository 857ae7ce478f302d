"""Tests for the Voyage embedding service with a mocked client."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from memory_gateway.core.base import ErrorCode
from memory_gateway.core.errors import ProviderError
from memory_gateway.domain.models import EmbeddingType
from memory_gateway.infrastructure.embeddings.voyage import VoyageEmbeddingService


@pytest.fixture
def voyage_client():
    client = MagicMock()
    client.embed = AsyncMock(return_value=SimpleNamespace(embeddings=[[0.5, 0.25, 0.125]]))
    return client


@pytest.fixture
def service(voyage_client):
    return VoyageEmbeddingService(api_key=None, model="voyage-3", dimensions=3, timeout=1.0, client=voyage_client)


class TestVoyageEmbeddingService:
    def test_missing_key_without_client_is_rejected(self):
        with pytest.raises(ProviderError) as exc_info:
            VoyageEmbeddingService(api_key="")
        assert exc_info.value.code is ErrorCode.AUTHENTICATION_FAILED

    @pytest.mark.asyncio
    async def test_query_embedding_uses_query_input_type(self, service, voyage_client):
        vector = await service.embed_text("where do I live?", EmbeddingType.QUERY)

        assert vector == [0.5, 0.25, 0.125]
        voyage_client.embed.assert_awaited_once_with(
            texts=["where do I live?"], model="voyage-3", input_type="query"
        )

    @pytest.mark.asyncio
    async def test_default_is_document_embedding(self, service, voyage_client):
        await service.embed_text("User lives in Denver")
        assert voyage_client.embed.call_args.kwargs["input_type"] == "document"

    @pytest.mark.asyncio
    async def test_empty_text_is_rejected_without_a_call(self, service, voyage_client):
        with pytest.raises(ProviderError):
            await service.embed_text("   ")
        voyage_client.embed.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_response_is_a_provider_error(self, service, voyage_client):
        voyage_client.embed.return_value = SimpleNamespace(embeddings=[])

        with pytest.raises(ProviderError) as exc_info:
            await service.embed_text("hello")
        assert exc_info.value.code is ErrorCode.EMBEDDING_FAILED

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("error", "code"),
        [
            (RuntimeError("Rate limit reached"), ErrorCode.RATE_LIMITED),
            (RuntimeError("Invalid API key provided"), ErrorCode.AUTHENTICATION_FAILED),
            (RuntimeError("connection reset"), ErrorCode.EMBEDDING_FAILED),
        ],
    )
    async def test_client_errors_are_mapped(self, service, voyage_client, error, code):
        voyage_client.embed.side_effect = error

        with pytest.raises(ProviderError) as exc_info:
            await service.embed_text("hello")
        assert exc_info.value.code is code

    @pytest.mark.asyncio
    async def test_slow_call_times_out(self, voyage_client):
        async def hang(**_kwargs):
            await asyncio.sleep(1)

        voyage_client.embed = AsyncMock(side_effect=hang)
        service = VoyageEmbeddingService(api_key=None, timeout=0.01, client=voyage_client)

        with pytest.raises(ProviderError) as exc_info:
            await service.embed_text("hello")
        assert exc_info.value.code is ErrorCode.TIMEOUT

    @pytest.mark.asyncio
    async def test_cache_hit_skips_the_api(self, voyage_client):
        cache = MagicMock()
        cache.get_cached = AsyncMock(return_value=[1.0, 0.0, 0.0])
        cache.store = AsyncMock()
        service = VoyageEmbeddingService(api_key=None, client=voyage_client, cache=cache)

        assert await service.embed_text("hello", EmbeddingType.QUERY) == [1.0, 0.0, 0.0]
        voyage_client.embed.assert_not_awaited()
        cache.get_cached.assert_awaited_once_with("hello", "voyage-3:query")
