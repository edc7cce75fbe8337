"""Lexical fallback: case-insensitive substring search over SOP sections."""

from __future__ import annotations

import logging
import re

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sop_rag.config import Settings
from sop_rag.errors import IndexUnavailable
from sop_rag.models.orm import SopDocument, SopSection
from sop_rag.models.rag import SearchResult

logger = logging.getLogger(__name__)

_DISALLOWED = re.compile(r"[^a-zA-Z0-9 _-]")
_WHITESPACE = re.compile(r"\s+")


def sanitize_search_term(term: str, max_length: int = 200) -> str:
    """Keep only alphanumerics, space, hyphen and underscore; cap the length."""
    cleaned = _DISALLOWED.sub(" ", term)
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    return cleaned[:max_length].strip()


class LexicalSearch:
    def __init__(self, session: AsyncSession, settings: Settings) -> None:
        self.session = session
        self.settings = settings

    async def search_lexical(
        self, query: str, scope: str | None = None, limit: int = 8
    ) -> list[SearchResult]:
        term = sanitize_search_term(query, self.settings.max_search_term_length)
        if not term:
            logger.info("Lexical search skipped: query empty after sanitizing")
            return []

        logger.info("Lexical search: term=%r scope=%r limit=%d", term, scope, limit)
        stmt = (
            select(SopSection, SopDocument)
            .join(SopDocument, SopSection.document_id == SopDocument.id)
            .where(SopDocument.status == "active")
            .where(
                or_(
                    SopSection.title.icontains(term, autoescape=True),
                    SopSection.content.icontains(term, autoescape=True),
                )
            )
            .order_by(SopDocument.title, SopSection.order_index, SopSection.id)
            .limit(limit)
        )
        if scope:
            stmt = stmt.where(SopDocument.department == scope)

        try:
            rows = (await self.session.execute(stmt)).all()
        except SQLAlchemyError as e:
            logger.exception("Lexical search failed")
            raise IndexUnavailable("Lexical search could not execute") from e

        results = [
            SearchResult(
                id=section.id,
                document_id=document.id,
                document_title=document.title,
                section_title=section.title,
                content=section.content,
                department=document.department,
                similarity=self.settings.lexical_similarity,
            )
            for section, document in rows
        ]
        logger.info("Lexical search returned %d sections", len(results))
        return results
