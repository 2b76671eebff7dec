"""Shared fixtures: an in-memory Redis double and wired services."""

from __future__ import annotations

from collections.abc import Generator
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError

from newsrelay.main import create_app
from newsrelay.models.schemas import SearchMatch
from newsrelay.services.cache_service import CacheService
from newsrelay.services.container import ServiceContainer
from newsrelay.services.history_service import HistoryService
from newsrelay.services.kv_store import KeyValueStore
from newsrelay.services.rag_service import RAGService


class FakeClock:
    """Manually advanced clock used for key expiry."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _redis_slice(items: list[str], start: int, end: int) -> list[str]:
    size = len(items)
    if start < 0:
        start = max(size + start, 0)
    if end < 0:
        end = size + end
    if start >= size or start > end:
        return []
    return items[start : end + 1]


class FakePipeline:
    """Buffers list commands and applies them together on `execute`."""

    def __init__(self, redis: "FakeRedis") -> None:
        self._redis = redis
        self._commands: list[tuple[str, tuple]] = []

    async def __aenter__(self) -> "FakePipeline":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self._commands.clear()

    def rpush(self, key: str, *values: str) -> "FakePipeline":
        self._commands.append(("rpush", (key, *values)))
        return self

    def ltrim(self, key: str, start: int, end: int) -> "FakePipeline":
        self._commands.append(("ltrim", (key, start, end)))
        return self

    def expire(self, key: str, seconds: int) -> "FakePipeline":
        self._commands.append(("expire", (key, seconds)))
        return self

    async def execute(self) -> list[object]:
        self._redis.check()
        results = [getattr(self._redis, f"_{name}")(*args) for name, args in self._commands]
        self._commands.clear()
        return results


class FakeRedis:
    """Subset of `redis.asyncio.Redis` used by the store adapter."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.values: dict[str, str] = {}
        self.lists: dict[str, list[str]] = {}
        self.expiry: dict[str, float] = {}
        self.fail_with: Exception | None = None
        self.ping_failures = 0
        self.closed = False

    def check(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    def _purge(self, key: str) -> None:
        deadline = self.expiry.get(key)
        if deadline is not None and deadline <= self.clock.now:
            self.values.pop(key, None)
            self.lists.pop(key, None)
            self.expiry.pop(key, None)

    def ttl_of(self, key: str) -> float | None:
        deadline = self.expiry.get(key)
        return None if deadline is None else deadline - self.clock.now

    async def ping(self) -> bool:
        if self.ping_failures > 0:
            self.ping_failures -= 1
            raise self._connection_error()
        self.check()
        return True

    async def get(self, key: str) -> str | None:
        self.check()
        self._purge(key)
        return self.values.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self.check()
        self.values[key] = value
        if ex is not None:
            self.expiry[key] = self.clock.now + ex
        else:
            self.expiry.pop(key, None)
        return True

    async def lrange(self, key: str, start: int, end: int) -> list[str]:
        self.check()
        self._purge(key)
        return list(_redis_slice(self.lists.get(key, []), start, end))

    async def delete(self, *keys: str) -> int:
        self.check()
        removed = 0
        for key in keys:
            self._purge(key)
            if self.values.pop(key, None) is not None or self.lists.pop(key, None) is not None:
                removed += 1
            self.expiry.pop(key, None)
        return removed

    async def aclose(self) -> None:
        self.closed = True

    def pipeline(self, transaction: bool = True) -> FakePipeline:
        return FakePipeline(self)

    def _rpush(self, key: str, *values: str) -> int:
        self._purge(key)
        items = self.lists.setdefault(key, [])
        items.extend(values)
        return len(items)

    def _ltrim(self, key: str, start: int, end: int) -> bool:
        kept = _redis_slice(self.lists.get(key, []), start, end)
        if kept:
            self.lists[key] = kept
        else:
            self.lists.pop(key, None)
        return True

    def _expire(self, key: str, seconds: int) -> bool:
        if key not in self.lists and key not in self.values:
            return False
        self.expiry[key] = self.clock.now + seconds
        return True

    @staticmethod
    def _connection_error() -> Exception:
        return RedisConnectionError("Connection refused")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_redis(clock: FakeClock) -> FakeRedis:
    return FakeRedis(clock)


@pytest.fixture
def store(fake_redis: FakeRedis) -> KeyValueStore:
    return KeyValueStore(fake_redis, sleep=AsyncMock())


@pytest.fixture
def embedder() -> AsyncMock:
    client = AsyncMock()
    client.embed.return_value = [0.1, 0.2, 0.3]
    return client


@pytest.fixture
def generator() -> AsyncMock:
    client = AsyncMock()
    client.generate.return_value = "Ceasefire talks resumed on Monday, officials said."
    return client


@pytest.fixture
def vector_service() -> AsyncMock:
    service = AsyncMock()
    service.search.return_value = [
        SearchMatch(id=1, score=0.9, payload={"maintext": "Ceasefire talks resumed."})
    ]
    return service


@pytest.fixture
def cache(store: KeyValueStore, embedder: AsyncMock, generator: AsyncMock) -> CacheService:
    return CacheService(store, embedder, generator)


@pytest.fixture
def history(store: KeyValueStore) -> HistoryService:
    return HistoryService(store)


@pytest.fixture
def rag(cache: CacheService, vector_service: AsyncMock, history: HistoryService) -> RAGService:
    return RAGService(cache=cache, vector_service=vector_service, history=history)


@pytest.fixture
def services(
    store: KeyValueStore,
    embedder: AsyncMock,
    vector_service: AsyncMock,
    generator: AsyncMock,
    cache: CacheService,
    history: HistoryService,
    rag: RAGService,
) -> ServiceContainer:
    return ServiceContainer(
        store=store,
        embedding_client=embedder,
        vector_service=vector_service,
        generation_client=generator,
        cache=cache,
        history=history,
        rag=rag,
    )


@pytest.fixture
def client(services: ServiceContainer) -> Generator[TestClient, None, None]:
    with TestClient(create_app(services=services)) as test_client:
        yield test_client


@pytest.fixture
def gemini_response():
    """Factory for a minimal stand-in of a `GenerateContentResponse`."""

    def _build(text: str) -> SimpleNamespace:
        part = SimpleNamespace(text=text)
        candidate = SimpleNamespace(content=SimpleNamespace(parts=[part]))
        return SimpleNamespace(candidates=[candidate])

    return _build
