"""Fact extraction: asks the model which memories to create or edit."""

from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError as SchemaValidationError

from memory_gateway.core.base import ValidationErrorDetails
from memory_gateway.core.errors import ValidationError
from memory_gateway.core.logging import get_logger
from memory_gateway.domain.models import MemoryUpdateCall, ProposedMemoryEdit, RetrievalResult, user_history
from memory_gateway.infrastructure.provider.client import ProviderClient
from memory_gateway.services.prompt import format_numbered

logger = get_logger(__name__)

EXTRACTION_SYSTEM_PROMPT = (
    "Given the messages from the user, update or create relevant memories below that could be useful "
    "in the future. Memories are facts that the user has provided that would be useful to remember for "
    "future conversations. Useful facts to remember are the names of people, locations, places. Issues "
    "encountered, etc. They should be very short and brief, only encoding the relevant facts. If nothing "
    "is relevant as a fact (this may happen often) just provide an empty memory list."
)
HISTORY_PREFIX = "History to generate facts for: "
EXISTING_MEMORIES_HEADER = "\n\nExisting memories that you may choose to modify:\n"
NO_EXISTING_MEMORIES = "NO existing memories found."

UPDATE_MEMORY_FUNCTION = {
    "name": "update_memory",
    "description": "Always call this function to submit your memories.",
    "parameters": MemoryUpdateCall.model_json_schema(by_alias=True),
}


def render_existing(candidates: Sequence[RetrievalResult]) -> str:
    if not candidates:
        return NO_EXISTING_MEMORIES
    return EXISTING_MEMORIES_HEADER + format_numbered(candidates)


def build_extraction_messages(
    messages: list[dict[str, Any]], candidates: Sequence[RetrievalResult]
) -> list[dict[str, str]]:
    """Build the extraction conversation: instructions, numbered candidates, then user history."""
    return [
        {"role": "system", "content": EXTRACTION_SYSTEM_PROMPT + render_existing(candidates)},
        {"role": "user", "content": HISTORY_PREFIX + user_history(messages)},
    ]


def parse_update_call(arguments: str) -> list[ProposedMemoryEdit]:
    """Validate the raw ``update_memory`` arguments.

    Raises:
        ValidationError: The arguments are not valid JSON for the expected schema
    """
    try:
        call = MemoryUpdateCall.model_validate_json(arguments)
    except SchemaValidationError as e:
        raise ValidationError(
            "update_memory arguments do not match the expected schema",
            details=ValidationErrorDetails(
                source="FactExtractor",
                operation="parse_update_call",
                field="memory",
                actual_value=arguments[:500],
                expected_type="MemoryUpdateCall",
                constraint=f"{e.error_count()} validation error(s)",
            ),
        ) from e
    return call.memory


class FactExtractor:
    """Distils a conversation into proposed memory edits with one forced tool call."""

    def __init__(self, provider: ProviderClient, model: str, temperature: float = 0.2):
        self.provider = provider
        self.model = model
        self.temperature = temperature

    async def extract(
        self,
        messages: list[dict[str, Any]],
        candidates: Sequence[RetrievalResult],
        api_key: str | None = None,
    ) -> list[ProposedMemoryEdit]:
        """Propose memory edits for the user turns of ``messages``.

        ``memory_number`` on a returned edit refers to ``candidates`` by
        1-based position.

        Raises:
            ProviderError: The extraction call failed
            ValidationError: The model's output could not be parsed
        """
        arguments = await self.provider.function_call(
            model=self.model,
            messages=build_extraction_messages(messages, candidates),
            function=UPDATE_MEMORY_FUNCTION,
            temperature=self.temperature,
            api_key=api_key,
        )
        edits = parse_update_call(arguments)
        logger.info("Extracted memory edits", proposed=len(edits), candidates=len(candidates))
        return edits
