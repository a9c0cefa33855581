"""Unit tests for InMemoryKeyValueStore."""

import pytest

from sessionguard.infrastructure.repositories.in_memory_key_value_store import InMemoryKeyValueStore

pytestmark = pytest.mark.unit


class FakeClock:
    def __init__(self, start: float = 500.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore(clock=clock)


@pytest.mark.asyncio
async def test_set_and_get(store):
    await store.set("k", {"a": 1})

    assert await store.get("k") == {"a": 1}
    assert await store.exists("k")


@pytest.mark.asyncio
async def test_get_missing_returns_none(store):
    assert await store.get("missing") is None
    assert not await store.exists("missing")


@pytest.mark.asyncio
async def test_stored_values_are_copies(store):
    value = {"a": 1}
    await store.set("k", value)
    value["a"] = 2

    fetched = await store.get("k")
    fetched["a"] = 3

    assert await store.get("k") == {"a": 1}


@pytest.mark.asyncio
async def test_entry_expires_after_ttl(store, clock):
    await store.set("k", "v", ttl_seconds=10)

    clock.advance(9)
    assert await store.exists("k")

    clock.advance(1)
    assert not await store.exists("k")
    assert await store.get("k") is None


@pytest.mark.asyncio
async def test_ttl_reports_remaining_seconds(store, clock):
    await store.set("k", "v", ttl_seconds=10)
    await store.set("forever", "v")

    clock.advance(2.5)

    assert await store.ttl("k") == 8
    assert await store.ttl("forever") == -1
    assert await store.ttl("missing") == -2


@pytest.mark.asyncio
async def test_delete(store):
    await store.set("k", "v")

    await store.delete("k")
    await store.delete("k")

    assert not await store.exists("k")


@pytest.mark.asyncio
async def test_increment_starts_window_on_first_call(store, clock):
    assert await store.increment("c", 60) == 1

    clock.advance(30)
    # Later increments do not extend the window
    assert await store.increment("c", 60) == 2
    assert await store.ttl("c") == 30

    clock.advance(30)
    assert await store.increment("c", 60) == 1


@pytest.mark.asyncio
async def test_update_if_writes_when_predicate_holds(store):
    await store.set("k", {"v": 1})

    updated = await store.update_if("k", lambda current: current == {"v": 1}, {"v": 2}, 60)

    assert updated
    assert await store.get("k") == {"v": 2}


@pytest.mark.asyncio
async def test_update_if_rejects_when_predicate_fails(store):
    await store.set("k", {"v": 1})

    updated = await store.update_if("k", lambda current: current == {"v": 0}, {"v": 2})

    assert not updated
    assert await store.get("k") == {"v": 1}


@pytest.mark.asyncio
async def test_update_if_sees_none_for_missing_key(store):
    seen = []

    await store.update_if("missing", lambda current: seen.append(current) or False, "v")

    assert seen == [None]


@pytest.mark.asyncio
async def test_cleanup_expired(store, clock):
    await store.set("short", "v", ttl_seconds=5)
    await store.set("long", "v", ttl_seconds=500)

    clock.advance(10)

    assert await store.cleanup_expired() == 1
    assert await store.exists("long")


@pytest.mark.asyncio
async def test_writes_sweep_expired_entries_once_interval_has_passed(store, clock):
    """Revocation entries that are never read again do not accumulate."""
    # Arrange
    for i in range(50):
        await store.set(f"token:blacklist:{i}", {"blacklisted_at": i}, ttl_seconds=30)

    # Act
    clock.advance(61)
    await store.set("token:blacklist:fresh", {"blacklisted_at": 99}, ttl_seconds=30)

    # Assert
    stats = await store.get_stats()
    assert stats["total_entries"] == 1
    assert stats["expired_entries"] == 0


@pytest.mark.asyncio
async def test_writes_do_not_sweep_before_interval(store, clock):
    await store.set("short", "v", ttl_seconds=5)

    clock.advance(10)
    await store.increment("ratelimit:login:1.2.3.4", 100)

    assert (await store.get_stats())["expired_entries"] == 1


@pytest.mark.asyncio
async def test_update_if_also_sweeps(clock):
    store = InMemoryKeyValueStore(clock=clock, cleanup_interval_seconds=5)
    await store.set("short", "v", ttl_seconds=1)

    clock.advance(6)
    await store.update_if("family", lambda current: current is None, {"current_token_id": "t1"})

    assert (await store.get_stats())["expired_entries"] == 0


@pytest.mark.asyncio
async def test_get_stats_counts_namespaces(store, clock):
    await store.set("token:blacklist:a", {"blacklisted_at": 1}, 100)
    await store.set("token:blacklist:b", {"blacklisted_at": 1}, 5)
    await store.set("token:family:f", {}, 100)
    await store.increment("ratelimit:login:1.2.3.4", 100)

    clock.advance(10)
    stats = await store.get_stats()

    assert stats == {
        "total_entries": 3,
        "expired_entries": 1,
        "revoked_tokens": 1,
        "active_families": 1,
        "rate_limit_counters": 1,
    }


@pytest.mark.asyncio
async def test_ping_and_close(store):
    await store.set("k", "v")

    assert await store.ping()
    await store.close()

    assert not await store.exists("k")
