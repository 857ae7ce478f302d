"""Memory reconciliation: turns proposed edits into creates and updates."""

import asyncio
from collections.abc import Sequence
from enum import Enum

from memory_gateway.core.logging import get_logger
from memory_gateway.domain.models import (
    EmbeddingType,
    Memory,
    ProposedMemoryEdit,
    ReconciliationReport,
    RetrievalResult,
)
from memory_gateway.domain.models.utils import utc_now
from memory_gateway.domain.services import EmbeddingServiceProtocol
from memory_gateway.infrastructure.repositories.memory import MemoryRepository

logger = get_logger(__name__)


class EditOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"


def resolve_target(edit: ProposedMemoryEdit, candidates: Sequence[RetrievalResult]) -> str | None:
    """Map a 1-based memory number to a candidate id; None means the edit is a create."""
    number = edit.memory_number
    if number is None or not 1 <= number <= len(candidates):
        return None
    return candidates[number - 1].id


class MemoryReconciler:
    """Applies proposed edits to one (user, store) scope.

    Each edit is embedded and written independently and concurrently; a
    failing edit is logged and counted, never propagated.
    """

    def __init__(self, embeddings: EmbeddingServiceProtocol, memories: MemoryRepository):
        self.embeddings = embeddings
        self.memories = memories

    async def _apply(
        self,
        edit: ProposedMemoryEdit,
        target_id: str | None,
        user_id: str,
        store_id: str,
    ) -> tuple[EditOutcome, str] | None:
        embedding = await self.embeddings.embed_text(edit.content, EmbeddingType.DOCUMENT)

        if target_id is not None:
            matched = await self.memories.update(
                target_id,
                user_id=user_id,
                store_id=store_id,
                content=edit.content,
                embedding=embedding,
                updated_at=utc_now(),
            )
            return (EditOutcome.UPDATED, target_id) if matched else None

        memory = Memory(user_id=user_id, store_id=store_id, content=edit.content, embedding=embedding)
        return EditOutcome.CREATED, await self.memories.create(memory)

    async def reconcile(
        self,
        edits: Sequence[ProposedMemoryEdit],
        candidates: Sequence[RetrievalResult],
        user_id: str,
        store_id: str,
    ) -> ReconciliationReport:
        report = ReconciliationReport()
        if not edits:
            return report

        targets = [resolve_target(edit, candidates) for edit in edits]
        demoted = sum(
            1 for edit, target in zip(edits, targets, strict=True) if edit.memory_number is not None and target is None
        )
        if demoted:
            logger.info("Out-of-range memory numbers treated as new memories", count=demoted)

        outcomes = await asyncio.gather(
            *(self._apply(edit, target, user_id, store_id) for edit, target in zip(edits, targets, strict=True)),
            return_exceptions=True,
        )

        for edit, outcome in zip(edits, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                report.failed += 1
                logger.warning(
                    "Memory edit failed",
                    memory_number=edit.memory_number,
                    error=str(outcome),
                    error_type=type(outcome).__name__,
                )
            elif outcome is None:
                report.failed += 1
            elif outcome[0] is EditOutcome.UPDATED:
                report.updated.append(outcome[1])
            else:
                report.created.append(outcome[1])

        logger.info(
            "Reconciliation finished",
            store_id=store_id,
            created=len(report.created),
            updated=len(report.updated),
            failed=report.failed,
        )
        return report
