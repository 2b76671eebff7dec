"""RAG orchestration service."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import time

from newsrelay.errors import RemoteServiceError
from newsrelay.models.schemas import SearchMatch
from newsrelay.services.cache_service import CacheService
from newsrelay.services.history_service import HistoryService
from newsrelay.services.prompting import build_context, compose_prompt
from newsrelay.services.vector_service import VectorService

logger = logging.getLogger(__name__)


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


@dataclass(slots=True)
class RAGService:
    """Embed → search → compose → generate → persist for one chat message."""

    cache: CacheService
    vector_service: VectorService
    history: HistoryService
    top_k: int = 3
    max_context_chars: int = 4000
    prompt_history_turns: int = 5
    response_precheck_enabled: bool = True

    async def process_query(self, session_id: str, message: str) -> str:
        """Produce the reply for `message` and record the turn for `session_id`.

        Embedding and generation failures raise `RemoteServiceError` before
        anything is persisted. Search and store failures only degrade quality.
        """
        started = time.perf_counter()

        if self.response_precheck_enabled:
            cached = await self.cache.get_response(message)
            if cached is not None:
                logger.info("Response cache hit for session=%s", session_id)
                await self._persist_turn(session_id, message, cached)
                return cached

        stage = time.perf_counter()
        vector = await self.cache.embed(message)
        logger.info("Query embedded in %sms", _elapsed_ms(stage))

        stage = time.perf_counter()
        matches = await self._search(vector)
        logger.info("Retrieved %s passages in %sms", len(matches), _elapsed_ms(stage))

        context = build_context(matches, self.max_context_chars)
        recent_turns = await self.history.recent(session_id, self.prompt_history_turns)
        prompt = compose_prompt(message, context, recent_turns)

        stage = time.perf_counter()
        reply = await self.cache.generate(prompt)
        logger.info("Response generated in %sms", _elapsed_ms(stage))

        if self.response_precheck_enabled and not await self.cache.store_response(message, reply):
            logger.warning("Response cache write failed for session=%s", session_id)
        await self._persist_turn(session_id, message, reply)

        logger.info("Total chat processing time: %sms", _elapsed_ms(started))
        return reply

    async def _search(self, vector: list[float]) -> list[SearchMatch]:
        try:
            return await self.vector_service.search(vector, k=self.top_k)
        except RemoteServiceError as exc:
            logger.warning("Vector search unavailable, continuing without context: %s", exc)
            return []

    async def _persist_turn(self, session_id: str, message: str, reply: str) -> None:
        outcome = await self.history.append(session_id, message, reply)
        if not outcome.succeeded:
            logger.warning("History write failed for session=%s: %s", session_id, outcome.error)
