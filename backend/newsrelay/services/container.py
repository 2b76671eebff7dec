"""Process-wide collaborators, built once at startup and closed on shutdown."""

from __future__ import annotations

from dataclasses import dataclass
import logging

from newsrelay.config import Settings
from newsrelay.services.cache_service import CacheService
from newsrelay.services.embedding_service import JinaEmbeddingClient
from newsrelay.services.generation_service import GeminiGenerationClient
from newsrelay.services.history_service import HistoryService
from newsrelay.services.kv_store import KeyValueStore
from newsrelay.services.rag_service import RAGService
from newsrelay.services.vector_service import VectorService

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ServiceContainer:
    """Owned instances passed into the HTTP handlers through `app.state`."""

    store: KeyValueStore
    embedding_client: JinaEmbeddingClient
    vector_service: VectorService
    generation_client: GeminiGenerationClient
    cache: CacheService
    history: HistoryService
    rag: RAGService

    async def start(self) -> None:
        await self.store.connect()

    async def close(self) -> None:
        await self.embedding_client.close()
        await self.vector_service.close()
        await self.store.close()
        logger.info("Service container closed")


def build_services(settings: Settings) -> ServiceContainer:
    """Wire every collaborator from settings without opening connections."""
    store = KeyValueStore.from_settings(settings)
    embedding_client = JinaEmbeddingClient.from_settings(settings)
    vector_service = VectorService.from_settings(settings)
    generation_client = GeminiGenerationClient.from_settings(settings)
    cache = CacheService(
        store,
        embedding_client,
        generation_client,
        embedding_ttl_seconds=settings.embedding_cache_ttl_seconds,
        generation_ttl_seconds=settings.generation_cache_ttl_seconds,
        response_ttl_seconds=settings.response_cache_ttl_seconds,
    )
    history = HistoryService(
        store,
        max_turns=settings.history_max_turns,
        ttl_seconds=settings.history_ttl_seconds,
    )
    rag = RAGService(
        cache=cache,
        vector_service=vector_service,
        history=history,
        top_k=settings.search_top_k,
        max_context_chars=settings.max_context_chars,
        prompt_history_turns=settings.prompt_history_turns,
        response_precheck_enabled=settings.response_precheck_enabled,
    )
    return ServiceContainer(
        store=store,
        embedding_client=embedding_client,
        vector_service=vector_service,
        generation_client=generation_client,
        cache=cache,
        history=history,
        rag=rag,
    )
