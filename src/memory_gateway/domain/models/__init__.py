"""Domain models for the memory gateway."""

from .account import Account
from .audit import RequestRecord, UsageEvent
from .conversation import (
    ChatCompletionRequest,
    MessageRole,
    latest_user_text,
    message_text,
    user_history,
)
from .embedding import EmbeddingType
from .memory import (
    DocumentContext,
    Memory,
    MemoryUpdateCall,
    ProposedMemoryEdit,
    ReconciliationReport,
    RetrievalResult,
)

__all__ = [
    # Account
    "Account",
    # Conversation
    "ChatCompletionRequest",
    # Memory
    "DocumentContext",
    # Embedding
    "EmbeddingType",
    "Memory",
    "MemoryUpdateCall",
    "MessageRole",
    "ProposedMemoryEdit",
    "ReconciliationReport",
    # Audit
    "RequestRecord",
    "RetrievalResult",
    "UsageEvent",
    "latest_user_text",
    "message_text",
    "user_history",
]
