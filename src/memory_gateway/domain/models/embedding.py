"""Embedding models."""

from enum import Enum


class EmbeddingType(str, Enum):
    """Types of embedding vectors.

    Voyage embeds retrieval queries and stored documents asymmetrically, so
    the type selects the ``input_type`` sent with each request.
    """

    DOCUMENT = "document"
    QUERY = "query"
