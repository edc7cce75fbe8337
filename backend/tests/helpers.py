"""Shared test constants and builders."""

from __future__ import annotations

import math
from unittest.mock import MagicMock

from sop_rag.config import Settings

DIMS = 4
GOOD_TOKEN = "Bearer good-token"

REFUND_VECTOR = [1.0, 0.0, 0.0, 0.0]
VENDOR_VECTOR = [0.0, 1.0, 0.0, 0.0]
# Cosine similarity 0.82 against REFUND_VECTOR, ~0.57 against VENDOR_VECTOR
REFUND_QUERY_VECTOR = [0.82, math.sqrt(1 - 0.82**2), 0.0, 0.0]
UNRELATED_QUERY_VECTOR = [0.0, 0.0, 0.0, 1.0]


def make_settings(**overrides) -> Settings:
    values = {
        "google_api_key": "test-google-key",
        "anthropic_api_key": "test-anthropic-key",
        "auth_user_url": "http://auth.test/auth/v1/user",
        "qdrant_collection": "test_sop_sections",
        "embedding_dimensions": DIMS,
        "embedding_batch_delay_seconds": 0.0,
    }
    values.update(overrides)
    return Settings(**values)


TEST_SETTINGS = make_settings()


def embed_response(vector: list[float]) -> MagicMock:
    """Create a mock response matching google.genai embed_content response."""
    emb = MagicMock()
    emb.values = vector
    resp = MagicMock()
    resp.embeddings = [emb]
    return resp


def make_result_message(*, result: str | None = None, is_error: bool = False) -> MagicMock:
    """Create a mock ResultMessage that passes isinstance checks."""
    from claude_agent_sdk import ResultMessage

    msg = MagicMock()
    msg.result = result
    msg.is_error = is_error
    msg.duration_ms = 850
    msg.total_cost_usd = 0.0012
    msg.__class__ = ResultMessage
    return msg


def make_assistant_message(text: str) -> MagicMock:
    from claude_agent_sdk import AssistantMessage, TextBlock

    msg = MagicMock()
    msg.content = [TextBlock(text=text)]
    msg.model = "claude-test"
    msg.__class__ = AssistantMessage
    return msg


async def async_iter(items):
    """Async generator that yields each item."""
    for item in items:
        yield item


async def async_iter_then_raise(items, exc: BaseException):
    """Yield each item, then raise ``exc``."""
    for item in items:
        yield item
    raise exc
