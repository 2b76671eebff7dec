"""News article ingestion into the vector collection."""

from __future__ import annotations

from dataclasses import dataclass
import hashlib
import logging
from typing import Any

from newsrelay.services.embedding_service import JinaEmbeddingClient
from newsrelay.services.vector_service import VectorService

logger = logging.getLogger(__name__)

PAYLOAD_FIELDS = ("title", "url", "date_publish", "source_domain", "language")


@dataclass(slots=True)
class IngestionService:
    """Embed article texts in batches and upsert them with their metadata."""

    embedding_client: JinaEmbeddingClient
    vector_service: VectorService
    batch_size: int = 32

    async def add_articles(self, articles: list[dict[str, Any]]) -> dict[str, int]:
        """Index articles carrying a `maintext` field; returns counts."""
        usable = [item for item in articles if str(item.get("maintext") or "").strip()]
        skipped = len(articles) - len(usable)
        indexed = 0

        for offset in range(0, len(usable), self.batch_size):
            batch = usable[offset : offset + self.batch_size]
            texts = [str(item["maintext"]).strip() for item in batch]
            vectors = await self.embedding_client.embed_batch(texts)
            if offset == 0:
                await self.vector_service.ensure_collection(vector_size=len(vectors[0]))

            payloads = [self._payload(item, text) for item, text in zip(batch, texts)]
            ids = [self._stable_id(item, text) for item, text in zip(batch, texts)]
            indexed += await self.vector_service.upsert(vectors=vectors, payloads=payloads, ids=ids)
            logger.info("Indexed %s/%s articles", indexed, len(usable))

        return {"received": len(articles), "indexed": indexed, "skipped": skipped}

    async def remove_articles(self, ids: list[int | str]) -> None:
        await self.vector_service.delete(ids)

    @staticmethod
    def _payload(article: dict[str, Any], text: str) -> dict[str, Any]:
        payload: dict[str, Any] = {"maintext": text}
        for key in PAYLOAD_FIELDS:
            if article.get(key) is not None:
                payload[key] = article[key]
        return payload

    @staticmethod
    def _stable_id(article: dict[str, Any], text: str) -> int:
        seed = str(article.get("url") or text)
        digest = hashlib.sha1(seed.encode("utf-8")).hexdigest()[:15]
        return int(digest, 16)
