"""Read-through cache in front of the embedding and generation clients."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
import json
import logging
from typing import Any, Protocol, TypeVar

from newsrelay.models.schemas import PromptSpec
from newsrelay.services import redis_keys
from newsrelay.services.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

EMBEDDING_DOMAIN = "embedding"
GENERATION_DOMAIN = "generation"
RESPONSE_DOMAIN = "response"


class Embedder(Protocol):
    async def embed(self, text: str) -> list[float]: ...


class Generator(Protocol):
    async def generate(self, prompt: PromptSpec) -> str: ...


@dataclass(slots=True)
class CacheStats:
    """Hit/miss counters for one cache domain."""

    hits: int = 0
    misses: int = 0

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        return round(self.hits / lookups, 4) if lookups else 0.0


def _identity(value: str) -> str:
    return value


def _encode_vector(vector: list[float]) -> str:
    return json.dumps(vector)


def _decode_vector(raw: str) -> list[float]:
    data = json.loads(raw)
    if not isinstance(data, list) or not data:
        raise ValueError("cached embedding is not a non-empty list")
    return [float(value) for value in data]


class CacheService:
    """Memoize embeddings, generations, and whole responses in the key-value store."""

    def __init__(
        self,
        store: KeyValueStore,
        embedder: Embedder,
        generator: Generator,
        *,
        embedding_ttl_seconds: int = 24 * 60 * 60,
        generation_ttl_seconds: int = 24 * 60 * 60,
        response_ttl_seconds: int = 60 * 60,
    ) -> None:
        self._store = store
        self._embedder = embedder
        self._generator = generator
        self._embedding_ttl = embedding_ttl_seconds
        self._generation_ttl = generation_ttl_seconds
        self._response_ttl = response_ttl_seconds
        self._stats: dict[str, CacheStats] = {
            EMBEDDING_DOMAIN: CacheStats(),
            GENERATION_DOMAIN: CacheStats(),
            RESPONSE_DOMAIN: CacheStats(),
        }

    async def get_or_compute(
        self,
        domain: str,
        key: str,
        compute: Callable[[], Awaitable[T]],
        ttl_seconds: int,
        encode: Callable[[T], str],
        decode: Callable[[str], T],
    ) -> T:
        """Return the cached value for `key`, computing and storing it on a miss.

        Store failures count as misses and never block returning a computed
        value. Exceptions raised by `compute` propagate and nothing is cached.
        """
        stats = self._stats.setdefault(domain, CacheStats())
        cached = await self._lookup(key, decode)
        if cached is not None:
            stats.hits += 1
            return cached

        stats.misses += 1
        value = await compute()
        stored = await self._store.set(key, encode(value), ttl_seconds)
        if not stored.succeeded:
            logger.warning("Could not cache %s entry; continuing without it", domain)
        return value

    async def embed(self, text: str) -> list[float]:
        return await self.get_or_compute(
            EMBEDDING_DOMAIN,
            redis_keys.embedding_cache_key(text),
            lambda: self._embedder.embed(text),
            self._embedding_ttl,
            _encode_vector,
            _decode_vector,
        )

    async def generate(self, prompt: PromptSpec) -> str:
        return await self.get_or_compute(
            GENERATION_DOMAIN,
            redis_keys.generation_cache_key(prompt.context, prompt.query),
            lambda: self._generator.generate(prompt),
            self._generation_ttl,
            _identity,
            _identity,
        )

    async def get_response(self, query: str) -> str | None:
        """Message-level pre-check; absent on a miss or a store failure."""
        stats = self._stats[RESPONSE_DOMAIN]
        cached = await self._lookup(redis_keys.response_cache_key(query), _identity)
        if cached:
            stats.hits += 1
            return cached
        stats.misses += 1
        return None

    async def store_response(self, query: str, response: str) -> bool:
        outcome = await self._store.set(redis_keys.response_cache_key(query), response, self._response_ttl)
        return outcome.succeeded

    def stats(self) -> dict[str, CacheStats]:
        return dict(self._stats)

    def totals(self) -> CacheStats:
        return CacheStats(
            hits=sum(item.hits for item in self._stats.values()),
            misses=sum(item.misses for item in self._stats.values()),
        )

    def reset_stats(self) -> None:
        for domain in self._stats:
            self._stats[domain] = CacheStats()

    async def _lookup(self, key: str, decode: Callable[[str], Any]) -> Any | None:
        outcome = await self._store.get(key)
        raw = outcome.value_or(None)
        if raw is None:
            return None
        try:
            return decode(raw)
        except (TypeError, ValueError):
            logger.warning("Discarding undecodable cache entry for key=%s", key)
            return None
