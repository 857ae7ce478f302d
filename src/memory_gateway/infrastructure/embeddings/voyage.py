"""Voyage AI embeddings.

For a fixed model the same text and input type always produce the same
vector, so results may be cached under ``"<model>:<input type>"``.
"""

import asyncio
from typing import Any

import voyageai

from memory_gateway.core.base import AIServiceErrorDetails, ErrorCode, ErrorLevel
from memory_gateway.core.circuit_breaker import CircuitBreaker
from memory_gateway.core.decorators import with_error_handling
from memory_gateway.core.errors import ProviderError, ServiceError
from memory_gateway.core.logging import get_logger
from memory_gateway.domain.models import EmbeddingType
from memory_gateway.infrastructure.embeddings.cache import EmbeddingCache

logger = get_logger(__name__)

# (substring of the client's message, code, status, message)
_FAILURE_HINTS: tuple[tuple[tuple[str, ...], ErrorCode, int, str], ...] = (
    (("rate limit", "quota"), ErrorCode.RATE_LIMITED, 429, "Voyage rate limit exceeded"),
    (("auth", "api key"), ErrorCode.AUTHENTICATION_FAILED, 401, "Voyage rejected the API key"),
)


class VoyageEmbeddingService:
    def __init__(
        self,
        api_key: str | None,
        model: str = "voyage-3",
        dimensions: int = 1024,
        timeout: float = 30.0,
        cache: EmbeddingCache | None = None,
        client: Any | None = None,
    ) -> None:
        """
        Args:
            api_key: Voyage API key; may be omitted only when ``client`` is given
            dimensions: Vector length ``model`` produces, recorded with cache entries
            timeout: Seconds allowed per embedding call
            client: Pre-built ``voyageai.AsyncClient``
        """
        self.model = model
        self.dimensions = dimensions
        self.timeout = timeout
        self.cache = cache
        if client is None and not api_key:
            raise ProviderError(
                message="Voyage API key not configured",
                code=ErrorCode.AUTHENTICATION_FAILED,
                details=self._details("initialization"),
            )
        self.client = client or voyageai.AsyncClient(api_key=api_key)
        self._breaker = CircuitBreaker(name="voyage_api", failure_threshold=3, recovery_timeout=30.0)

    def _details(self, operation: str, status_code: int | None = None) -> AIServiceErrorDetails:
        return AIServiceErrorDetails(
            source="VoyageEmbeddingService",
            operation=operation,
            service_name="Voyage AI",
            endpoint="/embeddings",
            status_code=status_code,
            model_name=self.model,
        )

    def _failure(self, message: str, code: ErrorCode, status_code: int | None = None) -> ProviderError:
        return ProviderError(message=message, code=code, details=self._details("embed_text", status_code))

    async def _embed_once(self, text: str, embedding_type: EmbeddingType) -> list[float]:
        response = await asyncio.wait_for(
            self.client.embed(texts=[text], model=self.model, input_type=embedding_type.value),
            timeout=self.timeout,
        )
        vectors = getattr(response, "embeddings", None)
        if not vectors:
            raise self._failure("Voyage returned no embedding", ErrorCode.EMBEDDING_FAILED, 200)
        return [float(x) for x in vectors[0]]

    def _translate(self, error: Exception) -> ProviderError:
        if isinstance(error, ServiceError):
            return self._failure(error.message, error.code, 503)
        if isinstance(error, TimeoutError):
            return self._failure("Voyage embedding request timed out", ErrorCode.TIMEOUT, 408)

        text = str(error).lower()
        for hints, code, status_code, message in _FAILURE_HINTS:
            if any(hint in text for hint in hints):
                return self._failure(message, code, status_code)
        return self._failure(f"Failed to generate embedding: {error}", ErrorCode.EMBEDDING_FAILED)

    @with_error_handling(error_level=ErrorLevel.ERROR)
    async def embed_text(self, text: str, embedding_type: EmbeddingType = EmbeddingType.DOCUMENT) -> list[float]:
        """Embed one text, consulting the cache first when one is configured.

        Raises:
            ProviderError: empty text, timeout, quota, auth or any other client failure
        """
        if not text.strip():
            raise self._failure("Cannot embed empty text", ErrorCode.EMBEDDING_FAILED)

        cache_model = f"{self.model}:{embedding_type.value}"
        if self.cache and (cached := await self.cache.get_cached(text, cache_model)):
            logger.debug("Embedding cache hit", model=cache_model)
            return cached

        try:
            vector = await self._breaker.call_async(self._embed_once, text, embedding_type)
        except ProviderError:
            raise
        except Exception as e:
            raise self._translate(e) from e

        if self.cache:
            await self.cache.store(text, cache_model, vector, self.dimensions)
        return vector
