"""Tests for the search API endpoint."""

from __future__ import annotations

from unittest.mock import MagicMock

import httpx
import pytest
from httpx import AsyncClient
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from sop_rag.models.orm import SopDocument

from tests.helpers import GOOD_TOKEN, TEST_SETTINGS


@pytest.fixture(autouse=True)
def _isolated_backends(qdrant, mock_genai) -> None:
    """Every request in this module hits in-memory Qdrant and the mocked embedder."""


class TestSearch:
    async def test_semantic_match(self, client: AsyncClient, index_sops) -> None:
        await index_sops()
        response = await client.post(
            "/search", json={"query": "refund policy", "scope": "customer_service"}
        )
        assert response.status_code == 200
        results = response.json()["results"]
        assert len(results) == 1
        assert results[0]["section_title"] == "Refund Process"
        assert results[0]["document_title"] == "Customer Service SOP"
        assert results[0]["department"] == "customer_service"
        assert results[0]["similarity"] == pytest.approx(0.82, abs=1e-4)

    async def test_department_alias(self, client: AsyncClient, index_sops) -> None:
        await index_sops()
        response = await client.post(
            "/search", json={"query": "refund policy", "department": "vendor", "threshold": 0.5}
        )
        assert [r["department"] for r in response.json()["results"]] == ["vendor"]

    async def test_limit_and_threshold(self, client: AsyncClient, index_sops) -> None:
        await index_sops()
        response = await client.post(
            "/search", json={"query": "refund policy", "limit": 1, "threshold": 0.5}
        )
        results = response.json()["results"]
        assert [r["section_title"] for r in results] == ["Refund Process"]

    async def test_provider_down_falls_back_to_lexical(
        self, client: AsyncClient, mock_genai: MagicMock, index_sops
    ) -> None:
        await index_sops()
        mock_genai.aio.models.embed_content.side_effect = httpx.ConnectError("down")

        response = await client.post(
            "/search", json={"query": "refund", "scope": "customer_service"}
        )

        assert response.status_code == 200
        results = response.json()["results"]
        assert [r["section_title"] for r in results] == ["Refund Process"]
        assert results[0]["similarity"] == TEST_SETTINGS.lexical_similarity

    async def test_no_matches(self, client: AsyncClient, index_sops) -> None:
        await index_sops()
        response = await client.post("/search", json={"query": "helicopter", "threshold": 0.99})
        assert response.status_code == 200
        assert response.json() == {"results": []}

    @pytest.mark.parametrize("query", ["", "   "])
    async def test_empty_query(self, client: AsyncClient, query: str) -> None:
        response = await client.post("/search", json={"query": query})
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INVALID_INPUT"

    @pytest.mark.parametrize(
        "body", [{"query": "refund", "limit": 0}, {"query": "refund", "threshold": 1.5}]
    )
    async def test_out_of_range_parameters(self, client: AsyncClient, body: dict) -> None:
        response = await client.post("/search", json=body)
        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["code"] == "INVALID_INPUT"
        assert detail["details"]["fields"]

    async def test_malformed_body(self, client: AsyncClient) -> None:
        response = await client.post(
            "/search", content=b"not json", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400


class TestSearchAuth:
    async def test_open_by_default(self, client: AsyncClient, seed_sops) -> None:
        response = await client.post("/search", json={"query": "refund"})
        assert response.status_code == 200

    async def test_requires_token_when_enabled(
        self, client: AsyncClient, override_settings, seed_sops
    ) -> None:
        override_settings(search_requires_auth=True)
        response = await client.post("/search", json={"query": "refund"})
        assert response.status_code == 401
        assert response.json()["detail"]["code"] == "UNAUTHORIZED"

        response = await client.post(
            "/search", json={"query": "refund"}, headers={"Authorization": GOOD_TOKEN}
        )
        assert response.status_code == 200


class TestApp:
    async def test_preflight(self, client: AsyncClient) -> None:
        response = await client.options(
            "/search",
            headers={
                "Origin": "http://app.example.com",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "authorization, content-type",
            },
        )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] in (
            "*",
            "http://app.example.com",
        )

    async def test_bare_options_is_not_a_preflight(self, client: AsyncClient) -> None:
        response = await client.options("/search")
        assert response.status_code == 405

    async def test_health(self, client: AsyncClient) -> None:
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestSearchFreshness:
    async def test_published_draft_found_semantically(
        self, client: AsyncClient, session: AsyncSession, index_sops
    ) -> None:
        sections = await index_sops()
        await session.execute(
            update(SopDocument)
            .where(SopDocument.id == sections["draft"].document_id)
            .values(status="active")
        )
        await session.commit()

        response = await client.post(
            "/search", json={"query": "refund policy", "scope": "customer_service"}
        )

        assert response.status_code == 200
        titles = {r["section_title"] for r in response.json()["results"]}
        assert titles == {"Refund Process", "Refund Draft"}
