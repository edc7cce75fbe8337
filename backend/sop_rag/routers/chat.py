"""RAG chat API endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from sop_rag.dependencies import get_answer_synthesizer, require_user
from sop_rag.errors import RetrievalServiceError
from sop_rag.models.schemas import ChatRequest, ChatResponse
from sop_rag.routers.errors import http_error, internal_error
from sop_rag.services.chat_service import AnswerSynthesizer

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])


@router.post("/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    user: dict = Depends(require_user),
    synthesizer: AnswerSynthesizer = Depends(get_answer_synthesizer),
) -> ChatResponse:
    logger.info("Chat request from user %s", user.get("id"))
    try:
        answer = await synthesizer.answer(
            request.message, history=request.history, scope=request.scope
        )
    except RetrievalServiceError as e:
        if e.status_code >= 500:
            logger.error("Chat failed: %s (%s)", e.message, e.code)
        raise http_error(e) from e
    except Exception as e:
        logger.exception("Chat failed with an unexpected error")
        raise internal_error("Chat failed") from e

    return ChatResponse(response=answer.response, sources=answer.sources)
