"""Tests for the TTL cache and cache keys."""

from __future__ import annotations

from app.cache import TTLCache, make_cache_key


class FakeClock:
    def __init__(self) -> None:
        self.now = 1_000.0

    def __call__(self) -> float:
        return self.now


def test_get_within_ttl_returns_value() -> None:
    clock = FakeClock()
    cache: TTLCache[str] = TTLCache(180, clock=clock)
    cache.set("key", "value")

    clock.now += 180
    assert cache.get("key") == "value"


def test_get_after_ttl_is_absent_but_entry_is_kept() -> None:
    clock = FakeClock()
    cache: TTLCache[str] = TTLCache(180, clock=clock)
    cache.set("key", "value")

    clock.now += 180.5
    assert cache.get("key") is None
    assert "key" not in cache
    assert len(cache) == 1


def test_set_after_expiry_overwrites_entry() -> None:
    clock = FakeClock()
    cache: TTLCache[str] = TTLCache(60, clock=clock)
    cache.set("key", "old")
    clock.now += 120
    cache.set("key", "new")

    assert cache.get("key") == "new"
    assert len(cache) == 1


def test_unknown_key_is_absent() -> None:
    assert TTLCache(60).get("missing") is None


def test_cache_keys_are_deterministic_and_distinct() -> None:
    first = make_cache_key("episodes", provider="jikan", id="21", page=1)
    again = make_cache_key("episodes", page=1, id="21", provider="jikan")

    assert first == again
    assert first != make_cache_key("episodes", provider="jikan", id="21", page=2)
    assert first != make_cache_key("info", provider="jikan", id="21", page=1)
    assert make_cache_key("search", q=None) != make_cache_key("search", q="")
    assert make_cache_key("search", q="a|b") != make_cache_key("search", q="a", b="")
