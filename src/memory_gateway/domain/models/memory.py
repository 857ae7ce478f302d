"""Memory, snippet and retrieval models."""

from datetime import datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from memory_gateway.domain.models.utils import utc_now


class Memory(BaseModel):
    """A short durable fact about a user, scoped to one persistence store."""

    id: UUID = Field(default_factory=uuid4)
    user_id: str
    store_id: str
    content: str
    embedding: list[float]
    updated_at: datetime = Field(default_factory=utc_now)

    def to_neo4j_properties(self) -> dict:
        """Convert to Neo4j-compatible property dict."""
        props = self.model_dump()
        props["id"] = str(self.id)
        props["updated_at"] = self.updated_at.timestamp()
        return props


class DocumentContext(BaseModel):
    """A pre-ingested document whose snippets are searchable by context id."""

    id: str
    context: str = ""


class RetrievalResult(BaseModel):
    """A ranked hit from a vector search; lives for one request."""

    id: str
    content: str
    similarity: float


class ProposedMemoryEdit(BaseModel):
    """One entry of the model's ``update_memory`` call.

    ``memory_number`` is a 1-based position in the candidate list shown to the
    model, never a store identifier.
    """

    model_config = ConfigDict(populate_by_name=True)

    memory_number: int | None = Field(
        default=None,
        alias="memoryNumber",
        description=(
            "The number of the existing memory to edit if you would like to edit an existing "
            "memory (starting from 1). Omit this field if you are creating a new memory."
        ),
    )
    content: str = Field(
        description=(
            "The value of the memory (if memoryNumber specified this will replace the existing memory)."
        ),
    )


class MemoryUpdateCall(BaseModel):
    """Arguments of the ``update_memory`` function call."""

    memory: list[ProposedMemoryEdit]


class ReconciliationReport(BaseModel):
    """Outcome of one reconciliation batch."""

    created: list[str] = Field(default_factory=list)
    updated: list[str] = Field(default_factory=list)
    failed: int = 0
