"""Batch population of section embeddings (database column + vector index)."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sop_rag.errors import NotFound
from sop_rag.models.orm import SopDocument, SopSection
from sop_rag.models.rag import EmbeddingJobReport
from sop_rag.services.embedding_service import DOCUMENT_TASK, EmbeddingClient
from sop_rag.services.vector_index import SemanticSearchEngine

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _PendingSection:
    id: str
    document_id: str
    title: str
    content: str
    department: str
    status: str

    @property
    def text(self) -> str:
        return f"{self.title}\n\n{self.content}"


async def _select_sections(
    session: AsyncSession, section_id: str | None, regenerate_all: bool
) -> list[_PendingSection]:
    stmt = (
        select(SopSection, SopDocument)
        .join(SopDocument, SopSection.document_id == SopDocument.id)
        .order_by(SopSection.document_id, SopSection.order_index, SopSection.id)
    )
    if section_id:
        stmt = stmt.where(SopSection.id == section_id)
    elif not regenerate_all:
        stmt = stmt.where(SopSection.embedding.is_(None))

    rows = (await session.execute(stmt)).all()
    if section_id and not rows:
        raise NotFound(f"Section {section_id} not found")

    # Snapshot plain values; a rollback after a failed item expires ORM objects.
    return [
        _PendingSection(
            id=section.id,
            document_id=document.id,
            title=section.title,
            content=section.content,
            department=document.department,
            status=document.status,
        )
        for section, document in rows
    ]


async def generate_embeddings(
    session: AsyncSession,
    embedder: EmbeddingClient,
    index: SemanticSearchEngine,
    section_id: str | None = None,
    regenerate_all: bool = False,
    delay_seconds: float = 0.2,
) -> EmbeddingJobReport:
    """Embed sections one at a time, pacing calls and counting per-item failures.

    Without ``section_id`` or ``regenerate_all`` only sections with no stored
    embedding are processed.
    """
    embedder.ensure_configured()
    sections = await _select_sections(session, section_id, regenerate_all)
    logger.info(
        "Embedding job: %d sections (section_id=%r regenerate_all=%s)",
        len(sections),
        section_id,
        regenerate_all,
    )
    if sections:
        await index.ensure_collection()

    report = EmbeddingJobReport(total=len(sections))
    for i, section in enumerate(sections):
        try:
            vector = await embedder.embed(section.text, task_type=DOCUMENT_TASK)
            await session.execute(
                update(SopSection)
                .where(SopSection.id == section.id)
                .values(embedding=vector)
            )
            await index.upsert_section(
                section.id,
                section.document_id,
                section.department,
                section.status,
                vector,
            )
            await session.commit()
            report.processed += 1
        except Exception:
            logger.exception("Failed to process section %s", section.id)
            await session.rollback()
            report.failed += 1

        if delay_seconds > 0 and i < len(sections) - 1:
            await asyncio.sleep(delay_seconds)

    logger.info(
        "Embedding job finished: processed=%d failed=%d total=%d",
        report.processed,
        report.failed,
        report.total,
    )
    return report
