"""FastAPI dependency providers: build each component from the shared settings."""

from __future__ import annotations

from fastapi import Depends, Header
from qdrant_client import AsyncQdrantClient
from sqlalchemy.ext.asyncio import AsyncSession

from sop_rag.config import Settings, settings
from sop_rag.database import get_session
from sop_rag.errors import RetrievalServiceError
from sop_rag.routers.errors import http_error
from sop_rag.services.auth_service import TokenVerifier
from sop_rag.services.chat_service import AnswerSynthesizer
from sop_rag.services.embedding_service import EmbeddingClient
from sop_rag.services.lexical_search import LexicalSearch
from sop_rag.services.retrieval_service import RetrievalOrchestrator
from sop_rag.services.vector_index import SemanticSearchEngine, get_async_qdrant_client


def get_settings() -> Settings:
    return settings


def get_qdrant_client() -> AsyncQdrantClient:
    return get_async_qdrant_client()


def get_embedding_client(
    settings: Settings = Depends(get_settings),
) -> EmbeddingClient:
    return EmbeddingClient(settings)


def get_semantic_search(
    client: AsyncQdrantClient = Depends(get_qdrant_client),
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> SemanticSearchEngine:
    return SemanticSearchEngine(client, session, settings)


def get_lexical_search(
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> LexicalSearch:
    return LexicalSearch(session, settings)


def get_orchestrator(
    embedder: EmbeddingClient = Depends(get_embedding_client),
    semantic: SemanticSearchEngine = Depends(get_semantic_search),
    lexical: LexicalSearch = Depends(get_lexical_search),
) -> RetrievalOrchestrator:
    return RetrievalOrchestrator(embedder, semantic, lexical)


def get_answer_synthesizer(
    orchestrator: RetrievalOrchestrator = Depends(get_orchestrator),
    settings: Settings = Depends(get_settings),
) -> AnswerSynthesizer:
    return AnswerSynthesizer(orchestrator, settings)


def get_token_verifier(settings: Settings = Depends(get_settings)) -> TokenVerifier:
    return TokenVerifier(settings)


async def require_user(
    authorization: str | None = Header(default=None),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> dict:
    """Resolve the caller's bearer token to a user record or fail with 401."""
    try:
        return await verifier.verify(authorization)
    except RetrievalServiceError as e:
        raise http_error(e) from e
