"""Retrieval orchestrator: semantic search first, lexical search as the fallback."""

from __future__ import annotations

import logging

from sop_rag.errors import (
    ConfigurationError,
    IndexUnavailable,
    InvalidInput,
    ProviderUnavailable,
)
from sop_rag.models.rag import SearchOutcome
from sop_rag.services.embedding_service import EmbeddingClient
from sop_rag.services.lexical_search import LexicalSearch
from sop_rag.services.vector_index import SemanticSearchEngine

logger = logging.getLogger(__name__)


class RetrievalOrchestrator:
    """Two-stage pipeline: each stage returns a ``SearchOutcome``.

    Failures of the semantic stage are recorded on its outcome and trigger the
    lexical stage; only a lexical stage that cannot execute raises.
    """

    def __init__(
        self,
        embedder: EmbeddingClient,
        semantic: SemanticSearchEngine,
        lexical: LexicalSearch,
    ) -> None:
        self.embedder = embedder
        self.semantic = semantic
        self.lexical = lexical

    async def semantic_stage(
        self, query: str, scope: str | None, limit: int, threshold: float
    ) -> SearchOutcome:
        try:
            vector = await self.embedder.embed(query)
            results = await self.semantic.search_semantic(
                vector, scope=scope, limit=limit, threshold=threshold
            )
        except (ConfigurationError, ProviderUnavailable, IndexUnavailable) as e:
            logger.warning("Semantic search failed (%s), using lexical search", e.code)
            return SearchOutcome(route="semantic", error=e.message)
        return SearchOutcome(route="semantic", results=results)

    async def lexical_stage(
        self, query: str, scope: str | None, limit: int
    ) -> SearchOutcome:
        results = await self.lexical.search_lexical(query, scope=scope, limit=limit)
        return SearchOutcome(route="lexical", results=results)

    async def retrieve(
        self,
        query: str,
        scope: str | None = None,
        limit: int = 8,
        threshold: float = 0.65,
    ) -> SearchOutcome:
        if not query or not query.strip():
            raise InvalidInput("Query is required")
        query = query.strip()

        logger.info(
            "Retrieve: query=%r scope=%r limit=%d threshold=%.2f",
            query,
            scope,
            limit,
            threshold,
        )
        outcome = await self.semantic_stage(query, scope, limit, threshold)
        if outcome.results:
            logger.info("Routing -> semantic (%d results)", len(outcome.results))
            return outcome

        if not outcome.failed:
            logger.info("No semantic matches above %.2f, using lexical search", threshold)
        fallback = await self.lexical_stage(query, scope, limit)
        logger.info("Routing -> lexical (%d results)", len(fallback.results))
        return fallback
