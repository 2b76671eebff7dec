"""Session-scoped, bounded conversation history."""

from __future__ import annotations

import logging

from pydantic import ValidationError as PydanticValidationError

from newsrelay.models.outcome import Outcome
from newsrelay.models.schemas import HistoryMessage, Turn, utc_now
from newsrelay.services import redis_keys
from newsrelay.services.kv_store import KeyValueStore

logger = logging.getLogger(__name__)


class HistoryService:
    """Append-only turn log per session, capped and expiring as a whole."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        max_turns: int = 50,
        ttl_seconds: int = 24 * 60 * 60,
    ) -> None:
        self._store = store
        self._max_turns = max_turns
        self._ttl_seconds = ttl_seconds

    @property
    def max_turns(self) -> int:
        return self._max_turns

    async def append(self, session_id: str, user_text: str, bot_text: str) -> Outcome[None]:
        """Commit a completed turn; both timestamps are the commit time."""
        committed_at = utc_now()
        turn = Turn(user=user_text, bot=bot_text, user_timestamp=committed_at, bot_timestamp=committed_at)
        return await self._store.list_append(
            redis_keys.chat_history_key(session_id),
            turn.model_dump_json(by_alias=True),
            max_length=self._max_turns,
            ttl_seconds=self._ttl_seconds,
        )

    async def get(self, session_id: str) -> list[Turn]:
        """All stored turns, oldest first. Raises `StoreError` if the store is down."""
        return await self._range(session_id, 0, -1)

    async def get_page(self, session_id: str, page: int, page_size: int) -> list[Turn]:
        """1-indexed page of turns, oldest first."""
        if page < 1 or page_size < 1:
            raise ValueError("page and page_size must be positive")
        start = (page - 1) * page_size
        end = page * page_size - 1
        return await self._range(session_id, start, end)

    async def recent(self, session_id: str, limit: int) -> list[Turn]:
        """Newest `limit` turns for prompt building; empty when the store is unavailable."""
        if limit <= 0:
            return []
        outcome = await self._store.list_range(redis_keys.chat_history_key(session_id), -limit, -1)
        if not outcome.succeeded:
            logger.warning("History unavailable for prompt; continuing without it")
            return []
        return self._decode_all(outcome.value_or([]))

    async def reset(self, session_id: str) -> None:
        outcome = await self._store.delete(redis_keys.chat_history_key(session_id))
        outcome.unwrap()
        logger.info("Session %s reset", session_id)

    @staticmethod
    def to_messages(turns: list[Turn], start_index: int = 0) -> list[HistoryMessage]:
        """Flatten each turn into a user message followed by an assistant message."""
        messages: list[HistoryMessage] = []
        for index, turn in enumerate(turns, start=start_index):
            messages.append(
                HistoryMessage(
                    id=f"{index}-user",
                    role="user",
                    type="user",
                    content=turn.user,
                    timestamp=turn.user_timestamp,
                )
            )
            messages.append(
                HistoryMessage(
                    id=f"{index}-bot",
                    role="assistant",
                    type="bot",
                    content=turn.bot,
                    timestamp=turn.bot_timestamp,
                )
            )
        return messages

    async def _range(self, session_id: str, start: int, end: int) -> list[Turn]:
        outcome = await self._store.list_range(redis_keys.chat_history_key(session_id), start, end)
        return self._decode_all(outcome.unwrap() or [])

    @staticmethod
    def _decode_all(items: list[str]) -> list[Turn]:
        turns: list[Turn] = []
        for raw in items:
            try:
                turns.append(Turn.model_validate_json(raw))
            except PydanticValidationError:
                logger.warning("Skipping malformed history entry")
        return turns
