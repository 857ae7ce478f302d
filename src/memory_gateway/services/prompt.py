"""Prompt assembly: injects retrieved context into a conversation's system instructions."""

from collections.abc import Sequence
from typing import Any

from memory_gateway.domain.models import DocumentContext, MessageRole, RetrievalResult

INSTRUCTIONS_DELIMITER = "\n\nInstructions:\n"
MEMORY_PREAMBLE = "Some relevant facts/context from previous interactions:\n"


def _single_line(content: str) -> str:
    return content.replace("\n", " ")


def format_numbered(results: Sequence[RetrievalResult]) -> str:
    """Render results as ``"1. content"`` lines, flattening newlines inside content."""
    return "\n".join(
        f"{index}. {_single_line(result.content)}" for index, result in enumerate(results, start=1)
    )


def memory_block(memories: Sequence[RetrievalResult]) -> str:
    return MEMORY_PREAMBLE + format_numbered(memories)


def document_block(context: DocumentContext, snippets: Sequence[RetrievalResult]) -> str:
    return f"{context.context}\n{format_numbered(snippets)}"


def _prefixed(text: str, content: Any) -> Any:
    if isinstance(content, list):
        # Content parts: the prefix becomes a leading text part
        return [{"type": "text", "text": text + INSTRUCTIONS_DELIMITER}, *content]
    return f"{text}{INSTRUCTIONS_DELIMITER}{content or ''}"


def prepend_system_content(messages: list[dict[str, Any]], text: str) -> list[dict[str, Any]]:
    """Return a copy of ``messages`` with ``text`` placed ahead of the system instructions.

    The first system message becomes ``text + INSTRUCTIONS_DELIMITER + original``.
    Without a system message, ``text`` is inserted as a new leading system
    message. The input list and its messages are never mutated.
    """
    system = MessageRole.SYSTEM.value
    for index, message in enumerate(messages):
        if message.get("role") == system:
            updated = {**message, "content": _prefixed(text, message.get("content"))}
            return [*messages[:index], updated, *messages[index + 1 :]]
    return [{"role": system, "content": text}, *messages]
