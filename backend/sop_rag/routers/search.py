"""Search API endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Header

from sop_rag.config import Settings
from sop_rag.dependencies import get_orchestrator, get_settings, get_token_verifier
from sop_rag.errors import RetrievalServiceError
from sop_rag.models.schemas import SearchRequest, SearchResponse
from sop_rag.routers.errors import http_error, internal_error
from sop_rag.services.auth_service import TokenVerifier
from sop_rag.services.retrieval_service import RetrievalOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["search"])


@router.post("/search", response_model=SearchResponse)
async def search(
    request: SearchRequest,
    authorization: str | None = Header(default=None),
    orchestrator: RetrievalOrchestrator = Depends(get_orchestrator),
    verifier: TokenVerifier = Depends(get_token_verifier),
    settings: Settings = Depends(get_settings),
) -> SearchResponse:
    limit = min(request.limit or settings.search_default_limit, settings.search_max_limit)
    threshold = (
        request.threshold
        if request.threshold is not None
        else settings.search_default_threshold
    )
    try:
        if settings.search_requires_auth:
            await verifier.verify(authorization)
        outcome = await orchestrator.retrieve(
            request.query, scope=request.scope or None, limit=limit, threshold=threshold
        )
    except RetrievalServiceError as e:
        if e.status_code >= 500:
            logger.error("Search failed: %s (%s)", e.message, e.code)
        raise http_error(e) from e
    except Exception as e:
        logger.exception("Search failed with an unexpected error")
        raise internal_error("Search failed") from e

    return SearchResponse(results=outcome.results)
