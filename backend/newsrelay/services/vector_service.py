"""Vector search service backed by Qdrant."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any

import httpx
from qdrant_client import AsyncQdrantClient
from qdrant_client.http.exceptions import ApiException, UnexpectedResponse
from qdrant_client.models import Distance, PointIdsList, PointStruct, VectorParams

from newsrelay.config import Settings
from newsrelay.errors import RemoteServiceError
from newsrelay.models.schemas import SearchMatch

logger = logging.getLogger(__name__)

SERVICE_NAME = "qdrant"

_QDRANT_ERRORS = (ApiException, UnexpectedResponse, httpx.HTTPError, OSError)


@dataclass(slots=True)
class VectorService:
    """Qdrant operations on the single news-article collection."""

    client: AsyncQdrantClient
    collection_name: str = "news_articles"

    @classmethod
    def from_settings(cls, settings: Settings) -> "VectorService":
        client = AsyncQdrantClient(
            url=settings.qdrant_url,
            api_key=settings.qdrant_api_key.get_secret_value(),
            timeout=int(settings.request_timeout_seconds),
        )
        return cls(client=client, collection_name=settings.qdrant_collection_name)

    async def search(self, vector: list[float], k: int = 3) -> list[SearchMatch]:
        """Return up to `k` nearest passages in the index's own ranking order."""
        if not vector:
            return []
        try:
            response = await self.client.query_points(
                collection_name=self.collection_name,
                query=vector,
                limit=k,
                with_payload=True,
                with_vectors=False,
            )
        except _QDRANT_ERRORS as exc:
            logger.error("Qdrant search failed on collection=%s: %s", self.collection_name, exc)
            raise RemoteServiceError(SERVICE_NAME, "vector search failed") from exc

        points = getattr(response, "points", None)
        if points is None:
            raise RemoteServiceError(SERVICE_NAME, "search response missing points")

        matches: list[SearchMatch] = []
        for item in points:
            matches.append(
                SearchMatch(
                    id=item.id,
                    score=float(item.score),
                    payload=item.payload or {},
                )
            )
        return matches

    async def ensure_collection(self, vector_size: int) -> None:
        """Create collection if missing."""
        existing = set(await self.list_collections())
        if self.collection_name in existing:
            return

        logger.info("Creating collection %s with vector size %s", self.collection_name, vector_size)
        try:
            await self.client.create_collection(
                collection_name=self.collection_name,
                vectors_config=VectorParams(size=vector_size, distance=Distance.COSINE),
            )
        except _QDRANT_ERRORS as exc:
            raise RemoteServiceError(SERVICE_NAME, "collection creation failed") from exc

    async def list_collections(self) -> list[str]:
        try:
            collections = await self.client.get_collections()
        except _QDRANT_ERRORS as exc:
            raise RemoteServiceError(SERVICE_NAME, "could not list collections") from exc
        return [item.name for item in collections.collections]

    async def upsert(
        self,
        vectors: list[list[float]],
        payloads: list[dict[str, Any]],
        ids: list[int | str],
    ) -> int:
        """Upsert passage embeddings with payload metadata; returns points written."""
        if not vectors:
            return 0
        if not len(vectors) == len(payloads) == len(ids):
            raise ValueError("vectors, payloads and ids must have the same length")

        points = [
            PointStruct(id=ids[idx], vector=vectors[idx], payload=payloads[idx])
            for idx in range(len(vectors))
        ]
        try:
            await self.client.upsert(collection_name=self.collection_name, points=points)
        except _QDRANT_ERRORS as exc:
            raise RemoteServiceError(SERVICE_NAME, "upsert failed") from exc
        return len(points)

    async def delete(self, ids: list[int | str]) -> None:
        if not ids:
            return
        try:
            await self.client.delete(
                collection_name=self.collection_name,
                points_selector=PointIdsList(points=ids),
            )
        except _QDRANT_ERRORS as exc:
            raise RemoteServiceError(SERVICE_NAME, "delete failed") from exc

    async def close(self) -> None:
        await self.client.close()
