import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError

from newsrelay.errors import StoreError
from newsrelay.services.kv_store import KeyValueStore


@pytest.mark.asyncio
async def test_get_counts_hits_and_misses(store, fake_redis):
    fake_redis.values["k"] = "v"

    hit = await store.get("k")
    miss = await store.get("absent")

    assert hit.unwrap() == "v"
    assert miss.unwrap() is None
    assert store.metrics.hits == 1
    assert store.metrics.misses == 1
    assert store.metrics.hit_rate == 0.5
    assert store.metrics.operations == 2


@pytest.mark.asyncio
async def test_set_expires_after_ttl(store, clock):
    await store.set("k", "v", ttl_seconds=60)
    clock.advance(59)
    assert (await store.get("k")).value == "v"

    clock.advance(2)
    assert (await store.get("k")).value is None


@pytest.mark.asyncio
async def test_list_append_trims_to_newest_and_refreshes_ttl(store, fake_redis):
    for index in range(60):
        outcome = await store.list_append("history", f"item-{index}", max_length=50, ttl_seconds=100)
        assert outcome.succeeded

    items = (await store.list_range("history")).unwrap()
    assert len(items) == 50
    assert items[0] == "item-10"
    assert items[-1] == "item-59"
    assert fake_redis.ttl_of("history") == 100


@pytest.mark.asyncio
async def test_list_range_supports_offsets(store):
    for index in range(5):
        await store.list_append("history", str(index))

    assert (await store.list_range("history", 1, 2)).unwrap() == ["1", "2"]
    assert (await store.list_range("history", 10, 20)).unwrap() == []


@pytest.mark.asyncio
async def test_delete_is_idempotent(store):
    await store.set("k", "v", ttl_seconds=10)

    first = await store.delete("k")
    second = await store.delete("k")

    assert first.succeeded
    assert second.succeeded
    assert (await store.get("k")).value is None


@pytest.mark.asyncio
async def test_connection_failure_returns_failed_outcome(store, fake_redis):
    await store.get("warmup")
    assert store.is_connected

    fake_redis.fail_with = RedisConnectionError("Connection refused")
    outcome = await store.get("k")

    assert not outcome.succeeded
    assert outcome.value_or("fallback") == "fallback"
    with pytest.raises(StoreError):
        outcome.unwrap()
    assert not store.is_connected
    assert store.metrics.connection_errors == 1
    assert store.metrics.failures == 1
    assert store.metrics.operations == 2
    # failed lookups are neither hits nor misses
    assert store.metrics.misses == 1


@pytest.mark.asyncio
async def test_command_error_keeps_connectivity_flag(store, fake_redis):
    await store.get("warmup")
    fake_redis.fail_with = ResponseError("WRONGTYPE")

    outcome = await store.list_append("k", "v")

    assert not outcome.succeeded
    assert store.is_connected
    assert store.metrics.connection_errors == 0


@pytest.mark.asyncio
async def test_connect_retries_with_linear_capped_backoff(fake_redis):
    sleeps: list[float] = []

    async def record_sleep(delay: float) -> None:
        sleeps.append(delay)

    fake_redis.ping_failures = 2
    store = KeyValueStore(fake_redis, retry_base_seconds=0.05, retry_max_seconds=2.0, sleep=record_sleep)

    assert await store.connect() is True
    assert store.is_connected
    assert sleeps == [0.05, 0.1]
    assert store.metrics.connection_errors == 2


@pytest.mark.asyncio
async def test_connect_gives_up_after_attempt_budget(fake_redis):
    sleeps: list[float] = []

    async def record_sleep(delay: float) -> None:
        sleeps.append(delay)

    fake_redis.ping_failures = 10
    store = KeyValueStore(
        fake_redis,
        connect_attempts=3,
        retry_base_seconds=1.5,
        retry_max_seconds=2.0,
        sleep=record_sleep,
    )

    assert await store.connect() is False
    assert not store.is_connected
    assert sleeps == [1.5, 2.0]


@pytest.mark.asyncio
async def test_close_marks_store_disconnected(store, fake_redis):
    await store.connect()
    await store.close()

    assert fake_redis.closed
    assert not store.is_connected


@pytest.mark.asyncio
async def test_reset_metrics_zeroes_counters(store):
    await store.get("k")
    store.reset_metrics()

    assert store.metrics.operations == 0
    assert store.metrics.misses == 0
    assert store.metrics.average_latency_ms == 0.0
