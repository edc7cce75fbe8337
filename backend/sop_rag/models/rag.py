"""Pydantic models for retrieval: search results and pipeline outcomes."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel


class SearchResult(BaseModel):
    """A retrieved SOP section, scored either by cosine similarity or the lexical sentinel."""

    id: str
    document_id: str
    document_title: str
    section_title: str
    content: str
    department: str
    similarity: float


class SearchOutcome(BaseModel):
    """Result of one retrieval stage.

    ``error`` carries the message of a failure that was recovered locally
    (e.g. the embedding provider was down), so callers can tell an empty
    semantic result apart from a skipped one.
    """

    route: Literal["semantic", "lexical"]
    results: list[SearchResult] = []
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class ConversationTurn(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str


class ChatAnswer(BaseModel):
    response: str
    sources: list[SearchResult]


class EmbeddingJobReport(BaseModel):
    success: bool = True
    processed: int = 0
    failed: int = 0
    total: int = 0
