"""Test fixtures and configuration."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Iterator
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from qdrant_client import AsyncQdrantClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from sop_rag.database import get_session
from sop_rag.dependencies import (
    get_embedding_client,
    get_qdrant_client,
    get_settings,
    get_token_verifier,
)
from sop_rag.main import app
from sop_rag.models.orm import Base, SopDocument, SopSection
from sop_rag.services.auth_service import TokenVerifier
from sop_rag.services.embedding_service import EmbeddingClient
from sop_rag.services.vector_index import SemanticSearchEngine

from tests.helpers import (
    GOOD_TOKEN,
    REFUND_QUERY_VECTOR,
    REFUND_VECTOR,
    TEST_SETTINGS,
    VENDOR_VECTOR,
    embed_response,
    make_settings,
)

test_engine = create_async_engine("sqlite+aiosqlite://", echo=False)
test_session_factory = async_sessionmaker(
    test_engine, class_=AsyncSession, expire_on_commit=False
)


async def override_get_session() -> AsyncIterator[AsyncSession]:
    async with test_session_factory() as session:
        yield session


def _auth_handler(request: httpx.Request) -> httpx.Response:
    if request.headers.get("Authorization") == GOOD_TOKEN:
        return httpx.Response(200, json={"id": "user-1", "email": "ops@example.com"})
    return httpx.Response(401, json={"message": "invalid JWT"})


app.dependency_overrides[get_session] = override_get_session
app.dependency_overrides[get_settings] = lambda: TEST_SETTINGS
app.dependency_overrides[get_token_verifier] = lambda: TokenVerifier(
    TEST_SETTINGS, transport=httpx.MockTransport(_auth_handler)
)


@pytest.fixture(autouse=True)
async def setup_database() -> AsyncIterator[None]:
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def session() -> AsyncIterator[AsyncSession]:
    async with test_session_factory() as s:
        yield s


@pytest.fixture
async def qdrant() -> AsyncIterator[AsyncQdrantClient]:
    """In-memory Qdrant shared by the app and the test."""
    client = AsyncQdrantClient(":memory:")
    app.dependency_overrides[get_qdrant_client] = lambda: client
    yield client
    app.dependency_overrides.pop(get_qdrant_client, None)
    await client.close()


@pytest.fixture
def mock_genai() -> MagicMock:
    """Mock GenAI client; every embed call returns REFUND_QUERY_VECTOR by default."""
    client = MagicMock()
    client.aio.models.embed_content = AsyncMock(
        return_value=embed_response(REFUND_QUERY_VECTOR)
    )
    app.dependency_overrides[get_embedding_client] = lambda: EmbeddingClient(
        TEST_SETTINGS, client=client
    )
    yield client
    app.dependency_overrides.pop(get_embedding_client, None)


@pytest.fixture
def embedder(mock_genai: MagicMock) -> EmbeddingClient:
    return EmbeddingClient(TEST_SETTINGS, client=mock_genai)


@pytest.fixture
def semantic(qdrant: AsyncQdrantClient, session: AsyncSession) -> SemanticSearchEngine:
    return SemanticSearchEngine(qdrant, session, TEST_SETTINGS)


@pytest.fixture
async def client() -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def _add_document(
    session: AsyncSession,
    title: str,
    department: str,
    sections: list[tuple[str, str, list[float] | None]],
    status: str = "active",
) -> SopDocument:
    document = SopDocument(
        title=title,
        department=department,
        status=status,
        sections=[
            SopSection(title=t, content=c, order_index=i, embedding=v)
            for i, (t, c, v) in enumerate(sections, start=1)
        ],
    )
    session.add(document)
    await session.commit()
    return document


@pytest.fixture
async def seed_sops(session: AsyncSession) -> dict[str, SopSection]:
    """Active customer-service and vendor SOPs plus a draft that must never match.

    Embeddings are stored on the rows only; use ``index_sops`` to load them
    into Qdrant.
    """
    refund_doc = await _add_document(
        session,
        "Customer Service SOP",
        "customer_service",
        [
            (
                "Refund Process",
                "Verify the order, approve the refund and tell the customer the timeline.",
                REFUND_VECTOR,
            ),
            ("Escalation Matrix", "Payment failure goes to Tech within 48 hours.", None),
        ],
    )
    vendor_doc = await _add_document(
        session,
        "Vendor Account Management SOP",
        "vendor",
        [("Vendor Onboarding", "Agreement, inspection and training.", VENDOR_VECTOR)],
    )
    draft_doc = await _add_document(
        session,
        "Draft Refund Changes",
        "customer_service",
        [("Refund Draft", "Proposed refund limits, not yet approved.", REFUND_VECTOR)],
        status="draft",
    )
    return {
        "refund": refund_doc.sections[0],
        "escalation": refund_doc.sections[1],
        "vendor": vendor_doc.sections[0],
        "draft": draft_doc.sections[0],
    }


@pytest.fixture
def index_sops(
    semantic: SemanticSearchEngine, seed_sops: dict[str, SopSection]
) -> Callable:
    async def _index() -> dict[str, SopSection]:
        await semantic.ensure_collection()
        for section in seed_sops.values():
            if section.embedding is None:
                continue
            document = section.document
            await semantic.upsert_section(
                section.id,
                document.id,
                document.department,
                document.status,
                section.embedding,
            )
        return seed_sops

    return _index


@pytest.fixture
def override_settings() -> Iterator[Callable[..., None]]:
    """Swap the app's settings for one test, e.g. ``override_settings(debug=True)``."""

    def _override(**overrides) -> None:
        app.dependency_overrides[get_settings] = lambda: make_settings(**overrides)

    yield _override
    app.dependency_overrides[get_settings] = lambda: TEST_SETTINGS
