"""Index news articles from a JSONL file into the configured Qdrant collection."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from newsrelay.main import load_settings_or_exit
from newsrelay.services.embedding_service import JinaEmbeddingClient
from newsrelay.services.ingestion_service import IngestionService
from newsrelay.services.vector_service import VectorService

logger = logging.getLogger("ingest_articles")


def load_articles(path: Path) -> list[dict[str, Any]]:
    """Read one JSON object per line; blank lines are ignored."""
    articles: list[dict[str, Any]] = []
    with path.open(encoding="utf-8") as handle:
        for line_number, line in enumerate(handle, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                item = json.loads(line)
            except json.JSONDecodeError:
                logger.warning("Skipping line %s: not valid JSON", line_number)
                continue
            if isinstance(item, dict):
                articles.append(item)
    return articles


async def ingest(path: Path, batch_size: int) -> dict[str, int]:
    settings = load_settings_or_exit()
    embedding_client = JinaEmbeddingClient.from_settings(settings)
    vector_service = VectorService.from_settings(settings)
    service = IngestionService(
        embedding_client=embedding_client,
        vector_service=vector_service,
        batch_size=batch_size,
    )
    try:
        return await service.add_articles(load_articles(path))
    finally:
        await embedding_client.close()
        await vector_service.close()


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("path", type=Path, help="JSONL file with a 'maintext' field per article")
    parser.add_argument("--batch-size", type=int, default=32, help="Texts per embedding request")
    args = parser.parse_args()

    if not args.path.exists():
        parser.error(f"{args.path} does not exist")

    result = asyncio.run(ingest(args.path, args.batch_size))
    print(
        f"Received {result['received']} articles, "
        f"indexed {result['indexed']}, skipped {result['skipped']}."
    )


if __name__ == "__main__":
    main()
