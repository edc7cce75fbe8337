"""FastAPI application entry point."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from rich.logging import RichHandler

from sop_rag.config import settings
from sop_rag.database import engine
from sop_rag.models.schemas import ErrorDetail
from sop_rag.routers.chat import router as chat_router
from sop_rag.routers.embeddings import router as embeddings_router
from sop_rag.routers.search import router as search_router
from sop_rag.services.vector_index import close_async_qdrant_client

logging.basicConfig(
    level=logging.INFO,
    format="%(name)s - %(message)s",
    datefmt="%H:%M:%S",
    handlers=[RichHandler(rich_tracebacks=True, markup=False)],
    force=True,
)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
# Our app loggers: show DEBUG when debug=True, keep third-party libs at INFO
if settings.debug:
    for name in ("sop_rag.services", "sop_rag.routers"):
        logging.getLogger(name).setLevel(logging.DEBUG)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    await close_async_qdrant_client()
    await engine.dispose()


app = FastAPI(
    title="SOP Retrieval Service",
    description="Hybrid semantic/lexical search and grounded chat over SOP documents",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed request bodies as 400 INVALID_INPUT."""
    logger.info(
        "Rejected request to %s: %d validation errors",
        request.url.path,
        len(exc.errors()),
    )
    fields = [".".join(str(p) for p in err["loc"]) for err in exc.errors()]
    return JSONResponse(
        status_code=400,
        content={
            "detail": ErrorDetail(
                code="INVALID_INPUT",
                message="Invalid request body",
                details={"fields": fields},
            ).model_dump()
        },
    )


app.include_router(search_router)
app.include_router(chat_router)
app.include_router(embeddings_router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
