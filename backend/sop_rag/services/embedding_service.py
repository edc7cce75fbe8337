"""Embedding client: turns text into a fixed-length vector via Google GenAI."""

from __future__ import annotations

import logging

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from sop_rag.config import Settings
from sop_rag.errors import ConfigurationError, ProviderUnavailable

logger = logging.getLogger(__name__)

QUERY_TASK = "RETRIEVAL_QUERY"
DOCUMENT_TASK = "RETRIEVAL_DOCUMENT"


class EmbeddingClient:
    """One outbound embedding call per ``embed``; never retries."""

    def __init__(self, settings: Settings, client: genai.Client | None = None) -> None:
        self.settings = settings
        self._client = client

    def ensure_configured(self) -> None:
        if self._client is None and not self.settings.google_api_key:
            raise ConfigurationError("GOOGLE_API_KEY not configured")

    def _get_client(self) -> genai.Client:
        self.ensure_configured()
        if self._client is None:
            self._client = genai.Client(api_key=self.settings.google_api_key)
        return self._client

    async def embed(self, text: str, task_type: str = QUERY_TASK) -> list[float]:
        """Embed a single text. Callers validate length and emptiness."""
        client = self._get_client()
        logger.debug(
            "Embedding %s (%d chars): %r",
            task_type,
            len(text),
            text[:100] + ("..." if len(text) > 100 else ""),
        )
        try:
            response = await client.aio.models.embed_content(
                model=self.settings.embedding_model,
                contents=[text],
                config=types.EmbedContentConfig(
                    output_dimensionality=self.settings.embedding_dimensions,
                    task_type=task_type,
                ),
            )
        except genai_errors.APIError as e:
            logger.warning("Embedding provider returned %s", e.code)
            raise ProviderUnavailable(f"Embedding provider error (status {e.code})") from e
        except httpx.HTTPError as e:
            logger.warning("Embedding provider unreachable: %s", type(e).__name__)
            raise ProviderUnavailable("Embedding provider unreachable") from e

        if not response.embeddings or not response.embeddings[0].values:
            raise ProviderUnavailable("Embedding provider returned no vector")

        vector = [float(v) for v in response.embeddings[0].values]
        logger.debug("Embedded -> %d-dim vector", len(vector))
        return vector
