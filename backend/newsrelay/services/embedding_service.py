"""Jina embeddings client."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from newsrelay.config import Settings
from newsrelay.errors import RemoteServiceError

logger = logging.getLogger(__name__)

SERVICE_NAME = "jina"


class JinaEmbeddingClient:
    """Turn text into vectors via the Jina embeddings HTTP API."""

    def __init__(
        self,
        api_key: str,
        *,
        api_url: str = "https://api.jina.ai/v1/embeddings",
        model_name: str = "jina-clip-v2",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_url = api_url
        self._model_name = model_name
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> "JinaEmbeddingClient":
        return cls(
            settings.jina_api_key.get_secret_value(),
            api_url=settings.jina_api_url,
            model_name=settings.jina_embedding_model,
            timeout=settings.request_timeout_seconds,
        )

    @property
    def model_name(self) -> str:
        return self._model_name

    async def embed(self, text: str) -> list[float]:
        """Embed one text."""
        vectors = await self._request([text])
        return vectors[0]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed many texts; output order matches input order."""
        if not texts:
            return []
        return await self._request(texts)

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, texts: list[str]) -> list[list[float]]:
        payload = {
            "model": self._model_name,
            "input": [{"text": text} for text in texts],
        }
        try:
            response = await self._client.post(self._api_url, json=payload, headers=self._headers)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as exc:
            logger.error("Jina embeddings returned status %s", exc.response.status_code)
            raise RemoteServiceError(
                SERVICE_NAME, f"embedding request failed with status {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("Jina embeddings unreachable: %s", exc)
            raise RemoteServiceError(SERVICE_NAME, "embedding provider unreachable") from exc
        except ValueError as exc:
            raise RemoteServiceError(SERVICE_NAME, "embedding response was not valid JSON") from exc

        return self._parse_vectors(body, expected=len(texts))

    @staticmethod
    def _parse_vectors(body: Any, expected: int) -> list[list[float]]:
        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, list) or len(data) != expected:
            raise RemoteServiceError(SERVICE_NAME, "embedding response missing data entries")

        if all(isinstance(item, dict) and isinstance(item.get("index"), int) for item in data):
            data = sorted(data, key=lambda item: item["index"])

        vectors: list[list[float]] = []
        for item in data:
            embedding = item.get("embedding") if isinstance(item, dict) else None
            if not isinstance(embedding, list) or not embedding:
                raise RemoteServiceError(SERVICE_NAME, "embedding response did not include a vector")
            try:
                vectors.append([float(value) for value in embedding])
            except (TypeError, ValueError) as exc:
                raise RemoteServiceError(SERVICE_NAME, "embedding vector contained non-numeric values") from exc
        return vectors
