"""Domain service protocols."""
from typing import Protocol, runtime_checkable

from memory_gateway.domain.models import EmbeddingType


@runtime_checkable
class EmbeddingServiceProtocol(Protocol):
    """Protocol for embedding services."""

    async def embed_text(
        self,
        text: str,
        embedding_type: EmbeddingType = EmbeddingType.DOCUMENT,
    ) -> list[float]:
        """Generate the embedding for a single text."""
        ...
