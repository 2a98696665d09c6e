"""Tests for the TTL + size-bounded result cache.

A fake clock drives expiry so no test sleeps.
"""

from __future__ import annotations

import pytest

from ird_proxy.cache import Cache
from ird_proxy.scraper.models import ExtractionResult, Statistics, Tier


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _result(title: str = "Home") -> ExtractionResult:
    return ExtractionResult(
        tier=Tier.STRUCTURED,
        title=title,
        description="",
        statistics=Statistics.for_size(1024),
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


class TestGetPut:
    def test_miss_on_empty(self, clock: FakeClock) -> None:
        assert Cache(clock=clock).get("https://efootballhub.net/") is None

    def test_hit_after_put(self, clock: FakeClock) -> None:
        cache = Cache(clock=clock)
        value = _result()
        cache.put("k", value)
        assert cache.get("k") is value

    def test_put_replaces(self, clock: FakeClock) -> None:
        cache = Cache(clock=clock)
        cache.put("k", _result("old"))
        cache.put("k", _result("new"))
        assert len(cache) == 1
        assert cache.get("k").title == "new"

    def test_invalid_max_size(self) -> None:
        with pytest.raises(ValueError):
            Cache(max_size=0)


class TestExpiry:
    def test_fresh_at_exact_ttl(self, clock: FakeClock) -> None:
        cache = Cache(ttl_seconds=1800, clock=clock)
        cache.put("k", _result())
        clock.advance(1800)
        assert cache.get("k") is not None

    def test_expired_entry_is_miss_and_deleted(self, clock: FakeClock) -> None:
        cache = Cache(ttl_seconds=1800, clock=clock)
        cache.put("k", _result())
        clock.advance(1801)
        assert "k" in cache  # not yet looked up
        assert cache.get("k") is None
        assert "k" not in cache
        assert len(cache) == 0

    def test_overwrite_resets_age(self, clock: FakeClock) -> None:
        cache = Cache(ttl_seconds=10, clock=clock)
        cache.put("k", _result())
        clock.advance(8)
        cache.put("k", _result("again"))
        clock.advance(8)
        assert cache.get("k").title == "again"

    def test_get_entry_exposes_created_at(self, clock: FakeClock) -> None:
        cache = Cache(clock=clock)
        cache.put("k", _result())
        assert cache.get_entry("k").created_at == 1000.0


class TestEviction:
    def test_evicts_oldest_inserted(self, clock: FakeClock) -> None:
        cache = Cache(max_size=3, clock=clock)
        for key in ("a", "b", "c", "d"):
            cache.put(key, _result(key))
        assert cache.keys() == ["b", "c", "d"]
        assert cache.get("a") is None

    def test_eviction_ignores_access_order(self, clock: FakeClock) -> None:
        """Reading a key does not protect it: this is not an LRU."""
        cache = Cache(max_size=2, clock=clock)
        cache.put("a", _result("a"))
        cache.put("b", _result("b"))
        for _ in range(5):
            assert cache.get("a") is not None
        cache.put("c", _result("c"))
        assert cache.get("a") is None
        assert cache.get("b") is not None
        assert cache.keys() == ["b", "c"]

    def test_overwrite_moves_key_to_newest(self, clock: FakeClock) -> None:
        cache = Cache(max_size=2, clock=clock)
        cache.put("a", _result())
        cache.put("b", _result())
        cache.put("a", _result())
        cache.put("c", _result())
        assert cache.keys() == ["a", "c"]

    def test_never_exceeds_bound(self, clock: FakeClock) -> None:
        cache = Cache(max_size=5, clock=clock)
        for i in range(50):
            cache.put(f"k{i}", _result())
            assert len(cache) <= 5
        assert cache.keys() == [f"k{i}" for i in range(45, 50)]


class TestHousekeeping:
    def test_delete(self, clock: FakeClock) -> None:
        cache = Cache(clock=clock)
        cache.put("k", _result())
        assert cache.delete("k") is True
        assert cache.delete("k") is False

    def test_clear_returns_count(self, clock: FakeClock) -> None:
        cache = Cache(clock=clock)
        cache.put("a", _result())
        cache.put("b", _result())
        assert cache.clear() == 2
        assert len(cache) == 0

    def test_stats(self, clock: FakeClock) -> None:
        cache = Cache(ttl_seconds=60, max_size=7, clock=clock)
        cache.put("a", _result())
        assert cache.stats() == {"size": 1, "max_size": 7, "ttl_seconds": 60, "keys": ["a"]}
