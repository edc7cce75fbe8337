"""Semantic search engine: Qdrant nearest-neighbour lookup over section embeddings."""

from __future__ import annotations

import logging
import uuid

from qdrant_client import AsyncQdrantClient
from qdrant_client.models import Distance, PointStruct, VectorParams
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sop_rag.config import Settings, settings
from sop_rag.errors import IndexUnavailable
from sop_rag.models.orm import SopDocument, SopSection
from sop_rag.models.rag import SearchResult

logger = logging.getLogger(__name__)

# --- Client (lazy init) ---

_async_qdrant_client: AsyncQdrantClient | None = None


def _qdrant_kwargs() -> dict:
    """Build kwargs for Qdrant client, including api_key if set."""
    kwargs: dict = {"url": settings.qdrant_url}
    if settings.qdrant_api_key:
        kwargs["api_key"] = settings.qdrant_api_key
    return kwargs


def get_async_qdrant_client() -> AsyncQdrantClient:
    """Get or create the process-wide async Qdrant client."""
    global _async_qdrant_client
    if _async_qdrant_client is None:
        _async_qdrant_client = AsyncQdrantClient(**_qdrant_kwargs())
    return _async_qdrant_client


async def close_async_qdrant_client() -> None:
    global _async_qdrant_client
    if _async_qdrant_client is not None:
        await _async_qdrant_client.close()
        _async_qdrant_client = None


def point_id(section_id: str) -> str:
    """Stable point id so re-embedding a section overwrites its vector."""
    return str(uuid.uuid5(uuid.NAMESPACE_DNS, section_id))


class SemanticSearchEngine:
    def __init__(
        self, client: AsyncQdrantClient, session: AsyncSession, settings: Settings
    ) -> None:
        self.client = client
        self.session = session
        self.settings = settings

    @property
    def collection(self) -> str:
        return self.settings.qdrant_collection

    # --- Collection management ---

    async def ensure_collection(self) -> None:
        """Create the collection if it doesn't exist."""
        collections = [c.name for c in (await self.client.get_collections()).collections]
        if self.collection in collections:
            logger.debug("Qdrant collection '%s' already exists", self.collection)
            return

        await self.client.create_collection(
            collection_name=self.collection,
            vectors_config=VectorParams(
                size=self.settings.embedding_dimensions,
                distance=Distance.COSINE,
            ),
        )
        logger.info("Created Qdrant collection '%s'", self.collection)

    async def upsert_section(
        self,
        section_id: str,
        document_id: str,
        department: str,
        status: str,
        vector: list[float],
    ) -> None:
        await self.client.upsert(
            collection_name=self.collection,
            points=[
                PointStruct(
                    id=point_id(section_id),
                    vector=vector,
                    payload={
                        "section_id": section_id,
                        "document_id": document_id,
                        "department": department,
                        "status": status,
                    },
                )
            ],
        )
        logger.debug("Upserted vector for section %s", section_id)

    # --- Search ---

    async def search_semantic(
        self,
        query_vector: list[float],
        scope: str | None = None,
        limit: int = 8,
        threshold: float = 0.65,
    ) -> list[SearchResult]:
        """Return active sections scoring >= threshold, best first, at most ``limit``.

        Document status and department are read from the database, not from the
        point payload, so status changes after indexing take effect immediately.
        Qdrant is paged until enough hits survive that check or the hits above
        the threshold run out.
        """
        logger.debug(
            "Searching Qdrant collection=%r scope=%r limit=%d threshold=%.2f",
            self.collection,
            scope,
            limit,
            threshold,
        )
        page_size = max(limit * 2, 16)
        offset = 0
        results: list[SearchResult] = []
        while len(results) < limit:
            scores, exhausted = await self._query_page(
                query_vector, threshold, page_size, offset
            )
            if scores:
                results.extend(await self._hydrate(scores, scope))
            if exhausted:
                break
            offset += page_size

        results.sort(key=lambda r: (-r.similarity, r.id))
        results = results[:limit]
        logger.info(
            "Semantic search returned %d sections (threshold=%.2f)", len(results), threshold
        )
        for r in results:
            logger.debug(
                "  Result score=%.3f doc=%r section=%r",
                r.similarity,
                r.document_title,
                r.section_title,
            )
        return results

    async def _query_page(
        self, query_vector: list[float], threshold: float, page_size: int, offset: int
    ) -> tuple[dict[str, float], bool]:
        try:
            response = await self.client.query_points(
                collection_name=self.collection,
                query=query_vector,
                score_threshold=threshold,
                limit=page_size,
                offset=offset,
                with_payload=True,
            )
        except Exception as e:
            logger.warning("Qdrant query failed: %s", e)
            raise IndexUnavailable("Vector index unavailable") from e

        scores = {
            p.payload["section_id"]: p.score
            for p in response.points
            if p.payload and p.score >= threshold
        }
        logger.debug("Qdrant page offset=%d returned %d points", offset, len(response.points))
        return scores, len(response.points) < page_size

    async def _hydrate(
        self, scores: dict[str, float], scope: str | None
    ) -> list[SearchResult]:
        stmt = (
            select(SopSection, SopDocument)
            .join(SopDocument, SopSection.document_id == SopDocument.id)
            .where(SopSection.id.in_(list(scores)))
            .where(SopDocument.status == "active")
        )
        if scope:
            stmt = stmt.where(SopDocument.department == scope)
        try:
            rows = (await self.session.execute(stmt)).all()
        except SQLAlchemyError as e:
            logger.exception("Hydrating semantic results failed")
            raise IndexUnavailable("Section store unavailable") from e

        return [
            SearchResult(
                id=section.id,
                document_id=document.id,
                document_title=document.title,
                section_title=section.title,
                content=section.content,
                department=document.department,
                similarity=scores[section.id],
            )
            for section, document in rows
        ]
