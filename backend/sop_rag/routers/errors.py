"""Translate service errors into the API's HTTP error shape."""

from __future__ import annotations

from fastapi import HTTPException

from sop_rag.errors import RetrievalServiceError
from sop_rag.models.schemas import ErrorDetail


def http_error(exc: RetrievalServiceError) -> HTTPException:
    return HTTPException(
        status_code=exc.status_code,
        detail=ErrorDetail(code=exc.code, message=exc.message).model_dump(),
    )


def internal_error(message: str) -> HTTPException:
    return HTTPException(
        status_code=500,
        detail=ErrorDetail(code="INTERNAL_ERROR", message=message).model_dump(),
    )
