"""Completion forwarding to the upstream provider."""

import time
from collections.abc import AsyncIterator
from typing import Any

from pydantic import BaseModel

from memory_gateway.core.logging import get_logger
from memory_gateway.infrastructure.provider.client import ProviderClient

logger = get_logger(__name__)


class CompletionResult(BaseModel):
    """A single-shot completion and how long the provider took to produce it."""

    response: dict[str, Any]
    duration_ms: float

    @property
    def total_tokens(self) -> int:
        usage = self.response.get("usage") or {}
        return int(usage.get("total_tokens") or 0)


class CompletionForwarder:
    """Sends the (possibly augmented) request upstream. Never retries."""

    def __init__(self, provider: ProviderClient):
        self.provider = provider

    async def complete(self, payload: dict[str, Any], api_key: str | None = None) -> CompletionResult:
        start = time.perf_counter()
        response = await self.provider.chat_completion(payload, api_key)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info("Completion forwarded", model=payload.get("model"), duration_ms=round(duration_ms, 1))
        return CompletionResult(response=response, duration_ms=duration_ms)

    async def stream(self, payload: dict[str, Any], api_key: str | None = None) -> AsyncIterator[bytes]:
        """Open the upstream stream; the returned iterator relays its bytes verbatim."""
        chunks = await self.provider.open_stream(payload, api_key)
        logger.info("Streaming completion opened", model=payload.get("model"))
        return chunks
