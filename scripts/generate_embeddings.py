"""CLI script to populate SOP section embeddings in the database and Qdrant.

Usage:
    python scripts/generate_embeddings.py                 # sections without embeddings
    python scripts/generate_embeddings.py --all           # regenerate every section
    python scripts/generate_embeddings.py --section <id>  # a single section
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

# Make sop_rag importable when run from a checkout without installing
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "backend"))

from sop_rag.config import settings
from sop_rag.database import async_session, engine
from sop_rag.errors import RetrievalServiceError
from sop_rag.services.embedding_job import generate_embeddings
from sop_rag.services.embedding_service import EmbeddingClient
from sop_rag.services.vector_index import (
    SemanticSearchEngine,
    close_async_qdrant_client,
    get_async_qdrant_client,
)


async def run(section_id: str | None, regenerate_all: bool, delay: float) -> int:
    try:
        async with async_session() as session:
            index = SemanticSearchEngine(get_async_qdrant_client(), session, settings)
            report = await generate_embeddings(
                session,
                EmbeddingClient(settings),
                index,
                section_id=section_id,
                regenerate_all=regenerate_all,
                delay_seconds=delay,
            )
    except RetrievalServiceError as e:
        print(f"Error: {e.message}")
        return 1
    finally:
        await close_async_qdrant_client()
        await engine.dispose()

    print(
        f"Done! processed={report.processed} failed={report.failed} total={report.total}"
    )
    return 0 if report.failed == 0 else 2


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate SOP section embeddings")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--section", type=str, default=None, help="Embed a single section id")
    group.add_argument(
        "--all", action="store_true", help="Regenerate embeddings for every section"
    )
    parser.add_argument(
        "--delay",
        type=float,
        default=settings.embedding_batch_delay_seconds,
        help="Seconds to wait between embedding calls",
    )
    args = parser.parse_args()

    sys.exit(asyncio.run(run(args.section, args.all, args.delay)))


if __name__ == "__main__":
    main()
