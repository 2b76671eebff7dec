"""Redis key-value store adapter with connection handling and operation metrics."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
import logging
import time
from typing import Any, TypeVar

from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from newsrelay.config import Settings
from newsrelay.errors import StoreError
from newsrelay.models.outcome import Outcome

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_LIST_MAX_LENGTH = 50
DEFAULT_LIST_TTL_SECONDS = 24 * 60 * 60


@dataclass(slots=True)
class StoreMetrics:
    """Process-wide counters folded in by every store operation."""

    hits: int = 0
    misses: int = 0
    operations: int = 0
    failures: int = 0
    connection_errors: int = 0
    total_latency_ms: float = 0.0
    last_reset: float = field(default_factory=time.time)

    def record(self, latency_ms: float, succeeded: bool) -> None:
        self.operations += 1
        self.total_latency_ms += latency_ms
        if not succeeded:
            self.failures += 1

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        return round(self.hits / lookups, 4) if lookups else 0.0

    @property
    def average_latency_ms(self) -> float:
        return round(self.total_latency_ms / self.operations, 3) if self.operations else 0.0

    def uptime_seconds(self, now: float | None = None) -> float:
        current = time.time() if now is None else now
        return max(0.0, current - self.last_reset)

    def operations_per_second(self, now: float | None = None) -> float:
        uptime = self.uptime_seconds(now)
        return round(self.operations / uptime, 3) if uptime > 0 else 0.0

    def reset(self) -> None:
        self.hits = 0
        self.misses = 0
        self.operations = 0
        self.failures = 0
        self.connection_errors = 0
        self.total_latency_ms = 0.0
        self.last_reset = time.time()


class KeyValueStore:
    """Best-effort Redis operations returning `Outcome` values instead of raising."""

    def __init__(
        self,
        client: Redis,
        *,
        connect_attempts: int = 5,
        retry_base_seconds: float = 0.05,
        retry_max_seconds: float = 2.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._connect_attempts = max(1, connect_attempts)
        self._retry_base_seconds = retry_base_seconds
        self._retry_max_seconds = retry_max_seconds
        self._sleep = sleep
        self._connected = False
        self.metrics = StoreMetrics()

    @classmethod
    def from_settings(cls, settings: Settings) -> "KeyValueStore":
        """Build the adapter and its Redis client from app settings."""
        client = Redis(
            host=settings.redis_host,
            port=settings.redis_port or 6379,
            db=settings.redis_db,
            password=settings.redis_password_value,
            decode_responses=True,
            socket_timeout=settings.request_timeout_seconds,
            socket_connect_timeout=5.0,
        )
        return cls(
            client,
            connect_attempts=settings.redis_connect_attempts,
            retry_base_seconds=settings.redis_retry_base_seconds,
            retry_max_seconds=settings.redis_retry_max_seconds,
        )

    @property
    def is_connected(self) -> bool:
        return self._connected

    def retry_delay(self, attempt: int) -> float:
        """Delay before retry number `attempt` (1-based), linear in attempt and capped."""
        return min(self._retry_base_seconds * attempt, self._retry_max_seconds)

    async def connect(self) -> bool:
        """Ping Redis until it answers or the attempt budget runs out."""
        for attempt in range(1, self._connect_attempts + 1):
            try:
                await self._client.ping()
            except (RedisError, OSError) as exc:
                self.metrics.connection_errors += 1
                logger.warning(
                    "Redis connection attempt %s/%s failed: %s",
                    attempt,
                    self._connect_attempts,
                    exc,
                )
                if attempt < self._connect_attempts:
                    await self._sleep(self.retry_delay(attempt))
                continue
            self._connected = True
            logger.info("Connected to Redis after %s attempt(s)", attempt)
            return True

        self._connected = False
        logger.error("Redis unavailable after %s attempts; running degraded", self._connect_attempts)
        return False

    async def close(self) -> None:
        """Close the underlying connection pool."""
        try:
            await self._client.aclose()
        except (RedisError, OSError):
            logger.exception("Error while closing Redis connection")
        finally:
            self._connected = False

    async def get(self, key: str) -> Outcome[str | None]:
        outcome = await self._run("get", key, lambda: self._client.get(key))
        if outcome.succeeded:
            if outcome.value is None:
                self.metrics.misses += 1
            else:
                self.metrics.hits += 1
        return outcome

    async def set(self, key: str, value: str, ttl_seconds: int) -> Outcome[None]:
        return await self._run("set", key, lambda: self._client.set(key, value, ex=ttl_seconds))

    async def list_append(
        self,
        key: str,
        item: str,
        max_length: int = DEFAULT_LIST_MAX_LENGTH,
        ttl_seconds: int = DEFAULT_LIST_TTL_SECONDS,
    ) -> Outcome[None]:
        """Append, trim to the newest `max_length` items, and refresh the TTL atomically."""

        async def _append() -> None:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.rpush(key, item)
                pipe.ltrim(key, -max_length, -1)
                pipe.expire(key, ttl_seconds)
                await pipe.execute()

        return await self._run("list_append", key, _append)

    async def list_range(self, key: str, start: int = 0, end: int = -1) -> Outcome[list[str]]:
        return await self._run("list_range", key, lambda: self._client.lrange(key, start, end))

    async def delete(self, key: str) -> Outcome[None]:
        return await self._run("delete", key, lambda: self._client.delete(key))

    def reset_metrics(self) -> None:
        self.metrics.reset()

    async def _run(self, operation: str, key: str, call: Callable[[], Awaitable[T]]) -> Outcome[T]:
        started = time.perf_counter()
        try:
            value = await call()
        except (RedisConnectionError, RedisTimeoutError, OSError) as exc:
            self._connected = False
            self.metrics.connection_errors += 1
            logger.warning("Redis %s unavailable for key=%s: %s", operation, key, exc)
            outcome: Outcome[T] = Outcome.fail(StoreError(operation, key, exc))
        except RedisError as exc:
            logger.warning("Redis %s failed for key=%s: %s", operation, key, exc)
            outcome = Outcome.fail(StoreError(operation, key, exc))
        else:
            self._connected = True
            outcome = Outcome.ok(value)

        latency_ms = (time.perf_counter() - started) * 1000
        self.metrics.record(latency_ms, outcome.succeeded)
        return outcome
