"""Embedding population endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sop_rag.config import Settings
from sop_rag.database import get_session
from sop_rag.dependencies import get_embedding_client, get_semantic_search, get_settings
from sop_rag.errors import RetrievalServiceError
from sop_rag.models.schemas import GenerateEmbeddingsRequest, GenerateEmbeddingsResponse
from sop_rag.routers.errors import http_error, internal_error
from sop_rag.services.embedding_job import generate_embeddings
from sop_rag.services.embedding_service import EmbeddingClient
from sop_rag.services.vector_index import SemanticSearchEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/embeddings", tags=["embeddings"])


@router.post("/generate", response_model=GenerateEmbeddingsResponse)
async def generate(
    request: GenerateEmbeddingsRequest | None = None,
    session: AsyncSession = Depends(get_session),
    embedder: EmbeddingClient = Depends(get_embedding_client),
    index: SemanticSearchEngine = Depends(get_semantic_search),
    settings: Settings = Depends(get_settings),
) -> GenerateEmbeddingsResponse:
    request = request or GenerateEmbeddingsRequest()
    try:
        report = await generate_embeddings(
            session,
            embedder,
            index,
            section_id=request.section_id,
            regenerate_all=request.regenerate_all,
            delay_seconds=settings.embedding_batch_delay_seconds,
        )
    except RetrievalServiceError as e:
        logger.error("Embedding generation failed: %s (%s)", e.message, e.code)
        raise http_error(e) from e
    except SQLAlchemyError as e:
        logger.exception("Embedding generation failed: datastore error")
        raise internal_error("Failed to generate embeddings") from e
    except Exception as e:
        logger.exception("Embedding generation failed with an unexpected error")
        raise internal_error("Failed to generate embeddings") from e

    return GenerateEmbeddingsResponse(**report.model_dump())
