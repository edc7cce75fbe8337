"""Pydantic request/response/error schemas."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, Field

from sop_rag.models.rag import SearchResult


# --- Search ---


class SearchRequest(BaseModel):
    query: str = ""
    scope: str | None = Field(
        default=None, validation_alias=AliasChoices("scope", "department")
    )
    # None means "use the configured default"
    limit: int | None = Field(default=None, ge=1)
    threshold: float | None = Field(default=None, ge=0.0, le=1.0)


class SearchResponse(BaseModel):
    results: list[SearchResult]


# --- Chat ---


class ChatRequest(BaseModel):
    # Validated and normalized in chat_service; malformed history turns are dropped.
    message: Any = None
    scope: Any = Field(default=None, validation_alias=AliasChoices("scope", "department"))
    history: Any = None


class ChatResponse(BaseModel):
    response: str
    sources: list[SearchResult]


# --- Embedding population ---


class GenerateEmbeddingsRequest(BaseModel):
    section_id: str | None = Field(
        default=None, validation_alias=AliasChoices("section_id", "sectionId")
    )
    regenerate_all: bool = Field(
        default=False, validation_alias=AliasChoices("regenerate_all", "regenerateAll")
    )


class GenerateEmbeddingsResponse(BaseModel):
    success: bool
    processed: int
    failed: int
    total: int


# --- Error schema ---


class ErrorDetail(BaseModel):
    code: str
    message: str
    details: dict = {}
