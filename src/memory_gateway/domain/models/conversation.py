"""Chat-completion conversation models."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MessageRole(str, Enum):
    """Message roles in a conversation."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"


class ChatCompletionRequest(BaseModel):
    """Shape check for an inbound OpenAI-style chat-completion body.

    Only the fields the gateway reads are declared. The validated model is
    never re-serialised; the original body is what gets forwarded.
    """

    model_config = ConfigDict(extra="allow")

    model: str
    messages: list[dict[str, Any]] = Field(min_length=1)
    stream: bool = False


def message_text(message: dict[str, Any]) -> str:
    """Extract the text of a chat message.

    Content may be a plain string or a list of content parts; only ``text``
    parts are kept.
    """
    content = message.get("content")
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "\n".join(
            part.get("text", "")
            for part in content
            if isinstance(part, dict) and part.get("type") == "text"
        )
    return str(content)


def user_messages(messages: list[dict[str, Any]]) -> list[str]:
    """Texts of the user-role messages, in order."""
    return [message_text(m) for m in messages if m.get("role") == MessageRole.USER.value]


def user_history(messages: list[dict[str, Any]]) -> str:
    """User-role contents joined by newlines."""
    return "\n".join(user_messages(messages))


def latest_user_text(messages: list[dict[str, Any]]) -> str:
    """Text of the most recent user message, or an empty string."""
    texts = user_messages(messages)
    return texts[-1] if texts else ""
