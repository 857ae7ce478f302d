"""Tests for prompt assembly."""

import copy

from memory_gateway.domain.models import DocumentContext, RetrievalResult
from memory_gateway.services.prompt import (
    INSTRUCTIONS_DELIMITER,
    MEMORY_PREAMBLE,
    document_block,
    format_numbered,
    memory_block,
    prepend_system_content,
)


class TestFormatNumbered:
    def test_numbers_from_one(self, candidates):
        assert format_numbered(candidates) == "1. User lives in Austin\n2. User has a dog"

    def test_newlines_inside_content_are_flattened(self):
        results = [RetrievalResult(id="x", content="line one\nline two", similarity=0.5)]
        assert format_numbered(results) == "1. line one line two"

    def test_empty(self):
        assert format_numbered([]) == ""


class TestBlocks:
    def test_memory_block(self, candidates):
        assert memory_block(candidates) == MEMORY_PREAMBLE + "1. User lives in Austin\n2. User has a dog"

    def test_document_block(self):
        context = DocumentContext(id="ctx-1", context="Product manual for the X100.")
        snippets = [RetrievalResult(id="s1", content="Hold power for 5s to reset.", similarity=0.8)]
        assert document_block(context, snippets) == "Product manual for the X100.\n1. Hold power for 5s to reset."


class TestPrependSystemContent:
    def test_prefixes_existing_system_message(self):
        messages = [
            {"role": "system", "content": "Be terse."},
            {"role": "user", "content": "hi"},
        ]
        result = prepend_system_content(messages, "FACTS")

        assert result[0] == {"role": "system", "content": "FACTS" + INSTRUCTIONS_DELIMITER + "Be terse."}
        assert result[1] == messages[1]
        assert len(result) == 2

    def test_inserts_system_message_when_missing(self):
        messages = [{"role": "user", "content": "hi"}]
        result = prepend_system_content(messages, "FACTS")

        assert result == [{"role": "system", "content": "FACTS"}, {"role": "user", "content": "hi"}]

    def test_only_first_system_message_is_prefixed(self):
        messages = [
            {"role": "user", "content": "hi"},
            {"role": "system", "content": "first"},
            {"role": "system", "content": "second"},
        ]
        result = prepend_system_content(messages, "FACTS")

        assert result[1]["content"] == "FACTS" + INSTRUCTIONS_DELIMITER + "first"
        assert result[2]["content"] == "second"

    def test_input_is_not_mutated(self):
        messages = [{"role": "system", "content": "Be terse."}, {"role": "user", "content": "hi"}]
        snapshot = copy.deepcopy(messages)

        prepend_system_content(messages, "FACTS")

        assert messages == snapshot

    def test_each_assembly_injects_exactly_one_block(self):
        messages = [{"role": "system", "content": "Be terse."}, {"role": "user", "content": "hi"}]

        first = prepend_system_content(messages, "FACTS")
        second = prepend_system_content(messages, "FACTS")

        assert first == second
        assert first[0]["content"].count("FACTS") == 1
        assert first[0]["content"].count(INSTRUCTIONS_DELIMITER) == 1

    def test_stacked_blocks_put_latest_first(self):
        messages = [{"role": "user", "content": "hi"}]

        with_memories = prepend_system_content(messages, "MEMORIES")
        with_context = prepend_system_content(with_memories, "CONTEXT")

        assert with_context[0]["content"] == "CONTEXT" + INSTRUCTIONS_DELIMITER + "MEMORIES"

    def test_content_parts_get_a_leading_text_part(self):
        messages = [{"role": "system", "content": [{"type": "text", "text": "Be terse."}]}]
        result = prepend_system_content(messages, "FACTS")

        assert result[0]["content"] == [
            {"type": "text", "text": "FACTS" + INSTRUCTIONS_DELIMITER},
            {"type": "text", "text": "Be terse."},
        ]

    def test_other_message_fields_are_kept(self):
        messages = [{"role": "system", "content": "x", "name": "ops"}]
        result = prepend_system_content(messages, "FACTS")

        assert result[0]["name"] == "ops"
