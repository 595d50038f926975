"""Tests for the ResponseCache module."""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import pytest

from qbrest.cache import MemoryStore, ResponseCache


class _FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class _BrokenStore:
    """A store whose every call fails."""

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        raise OSError("disk unavailable")

    def set(self, key: str, value: Any) -> Any:
        raise OSError("disk unavailable")

    def delete(self, key: str) -> Any:
        raise OSError("disk unavailable")

    def clear(self) -> Any:
        raise OSError("disk unavailable")


@pytest.fixture()
def clock() -> _FakeClock:
    return _FakeClock()


@pytest.fixture()
def cache(clock: _FakeClock) -> ResponseCache:
    return ResponseCache(MemoryStore(), clock=clock)


def _make_payload(name: str = "Bob") -> dict:
    """Build a minimal query payload."""
    return {
        "data": [{"3": {"value": 1}, "6": {"value": name}}],
        "fields": [{"id": 6, "label": "Name"}],
        "metadata": {"totalRecords": 1},
    }


def _key(**overrides: Any) -> str:
    args: dict[str, Any] = {
        "realm": "acme.quickbase.com",
        "table_id": "bqtbl1",
        "fields": [3, 6],
        "where": "{6.EX.'Bob'}",
        "sort": None,
        "options": None,
    }
    args.update(overrides)
    return ResponseCache.compute_key(**args)


# ------------------------------------------------------------------ #
# Key computation
# ------------------------------------------------------------------ #


class TestComputeKey:
    def test_deterministic(self) -> None:
        assert _key() == _key()

    def test_is_hex_sha256(self) -> None:
        key = _key()
        assert len(key) == 64
        int(key, 16)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"realm": "other.quickbase.com"},
            {"table_id": "bqtbl2"},
            {"fields": [3, 7]},
            {"fields": [6, 3]},
            {"where": "{6.EX.'Eve'}"},
            {"where": None},
            {"sort": [{"fieldId": 6, "order": "ASC"}]},
            {"options": {"top": 10}},
        ],
    )
    def test_any_change_changes_key(self, overrides: dict[str, Any]) -> None:
        assert _key(**overrides) != _key()

    def test_option_key_order_is_irrelevant(self) -> None:
        a = _key(options={"skip": 0, "top": 10})
        b = _key(options={"top": 10, "skip": 0})
        assert a == b


# ------------------------------------------------------------------ #
# Store and lookup
# ------------------------------------------------------------------ #


class TestStoreLookup:
    def test_miss_returns_none(self, cache: ResponseCache) -> None:
        assert asyncio.run(cache.lookup(_key())) is None

    def test_store_then_lookup(self, cache: ResponseCache) -> None:
        payload = _make_payload()
        asyncio.run(cache.store(_key(), payload, ttl_seconds=300))
        assert asyncio.run(cache.lookup(_key())) == payload

    def test_store_replaces_previous_entry(self, cache: ResponseCache) -> None:
        asyncio.run(cache.store(_key(), _make_payload("Bob"), ttl_seconds=300))
        asyncio.run(cache.store(_key(), _make_payload("Eve"), ttl_seconds=300))
        hit = asyncio.run(cache.lookup(_key()))
        assert hit["data"][0]["6"]["value"] == "Eve"

    def test_invalidate_removes_entry(self, cache: ResponseCache) -> None:
        asyncio.run(cache.store(_key(), _make_payload(), ttl_seconds=300))
        asyncio.run(cache.invalidate(_key()))
        assert asyncio.run(cache.lookup(_key())) is None

    def test_undecodable_entry_is_a_miss(self, clock: _FakeClock) -> None:
        store = MemoryStore()
        store.set(_key(), {"unexpected": "shape"})
        cache = ResponseCache(store, clock=clock)
        assert asyncio.run(cache.lookup(_key())) is None


# ------------------------------------------------------------------ #
# TTL
# ------------------------------------------------------------------ #


class TestTTL:
    def test_fresh_just_before_expiry(self, cache: ResponseCache, clock: _FakeClock) -> None:
        asyncio.run(cache.store(_key(), _make_payload(), ttl_seconds=60))
        clock.now += 59.999
        assert asyncio.run(cache.lookup(_key())) is not None

    def test_stale_at_expiry(self, cache: ResponseCache, clock: _FakeClock) -> None:
        asyncio.run(cache.store(_key(), _make_payload(), ttl_seconds=60))
        clock.now += 60
        assert asyncio.run(cache.lookup(_key())) is None

    def test_expired_entry_is_deleted_on_read(self, clock: _FakeClock) -> None:
        store = MemoryStore()
        cache = ResponseCache(store, clock=clock)
        asyncio.run(cache.store(_key(), _make_payload(), ttl_seconds=60))
        assert len(store) == 1
        clock.now += 120
        asyncio.run(cache.lookup(_key()))
        assert len(store) == 0

    def test_ttl_is_per_entry(self, cache: ResponseCache, clock: _FakeClock) -> None:
        short, long = _key(table_id="short"), _key(table_id="long")
        asyncio.run(cache.store(short, _make_payload(), ttl_seconds=10))
        asyncio.run(cache.store(long, _make_payload(), ttl_seconds=600))
        clock.now += 30
        assert asyncio.run(cache.lookup(short)) is None
        assert asyncio.run(cache.lookup(long)) is not None


# ------------------------------------------------------------------ #
# Clearing and failures
# ------------------------------------------------------------------ #


class TestClearAll:
    def test_clear_all_removes_everything(self, cache: ResponseCache) -> None:
        keys = [_key(table_id=t) for t in ("a", "b", "c")]
        for key in keys:
            asyncio.run(cache.store(key, _make_payload(), ttl_seconds=300))
        asyncio.run(cache.clear_all())
        assert all(asyncio.run(cache.lookup(key)) is None for key in keys)

    def test_clear_all_propagates_store_errors(self) -> None:
        cache = ResponseCache(_BrokenStore())
        with pytest.raises(OSError):
            asyncio.run(cache.clear_all())


class TestBrokenStore:
    def test_read_failure_is_a_miss(self) -> None:
        cache = ResponseCache(_BrokenStore())
        assert asyncio.run(cache.lookup(_key())) is None

    def test_write_failure_is_swallowed(self) -> None:
        cache = ResponseCache(_BrokenStore())
        asyncio.run(cache.store(_key(), _make_payload(), ttl_seconds=60))


# ------------------------------------------------------------------ #
# Disk-backed store
# ------------------------------------------------------------------ #


class TestDiskCache:
    def test_entries_survive_reopen(self, tmp_path) -> None:
        cache = ResponseCache.open(tmp_path)
        asyncio.run(cache.store(_key(), _make_payload(), ttl_seconds=300))
        cache.close()

        reopened = ResponseCache.open(tmp_path)
        try:
            assert asyncio.run(reopened.lookup(_key())) == _make_payload()
        finally:
            reopened.close()

    def test_stats_report_size_and_directory(self, tmp_path) -> None:
        cache = ResponseCache.open(tmp_path)
        try:
            asyncio.run(cache.store(_key(), _make_payload(), ttl_seconds=300))
            stats = cache.stats()
        finally:
            cache.close()
        assert stats["store"] == "Cache"
        assert stats["size"] == 1
        assert stats["directory"] == str(tmp_path / "responses")


class TestMemoryStore:
    def test_stats_without_directory(self, cache: ResponseCache) -> None:
        assert cache.stats() == {"store": "MemoryStore", "size": 0}
