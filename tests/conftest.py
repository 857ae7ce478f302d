"""Shared fixtures for memory gateway tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from memory_gateway.domain.models import Account, RetrievalResult

EMBEDDING = [0.1, 0.2, 0.3]


@pytest.fixture
def account():
    return Account(id="user-1", subscription_status="active")


@pytest.fixture
def candidates():
    """Two memories retrieved for the current turn, best first."""
    return [
        RetrievalResult(id="mem-a", content="User lives in Austin", similarity=0.91),
        RetrievalResult(id="mem-b", content="User has a dog", similarity=0.55),
    ]


@pytest.fixture
def mock_embeddings():
    service = MagicMock()
    service.embed_text = AsyncMock(return_value=list(EMBEDDING))
    return service


@pytest.fixture
def mock_memory_repo():
    repo = MagicMock()
    repo.search = AsyncMock(return_value=[])
    repo.create = AsyncMock(side_effect=lambda memory: str(memory.id))
    repo.update = AsyncMock(return_value=True)
    return repo


@pytest.fixture
def chat_body():
    return {
        "model": "gpt-4o-mini",
        "messages": [
            {"role": "system", "content": "You are helpful."},
            {"role": "user", "content": "I moved to Denver last week."},
        ],
    }


@pytest.fixture
def completion_response():
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "model": "gpt-4o-mini",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": "Nice!"}, "finish_reason": "stop"}],
        "usage": {"prompt_tokens": 20, "completion_tokens": 5, "total_tokens": 25},
    }
