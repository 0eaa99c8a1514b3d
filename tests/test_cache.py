"""Unit tests for ov_cache.ContentCache."""

import threading

import pytest

from ov_cache import AGING_FACTOR, ContentCache
from ov_config import CacheStrategy


# ─── Basics ───────────────────────────────────────────────────────────────────


def test_miss_then_hit():
    cache = ContentCache(max_cost=10)
    assert cache.get(1) == (None, False)
    assert cache.set(1, "one") is True
    assert cache.get(1) == ("one", True)


def test_overwrite_does_not_double_count_cost():
    cache = ContentCache(max_cost=3)
    cache.set("a", 1, cost=2)
    cache.set("a", 2, cost=2)
    assert len(cache) == 1
    assert cache.get_stats()['total_cost'] == 2
    assert cache.get("a") == (2, True)


def test_budget_bounds_total_cost():
    cache = ContentCache(max_cost=3)
    for n in range(10):
        cache.set(n, n)
    assert len(cache) == 3
    assert cache.get_stats()['total_cost'] == 3
    assert cache.get_stats()['cache_evictions'] == 7


def test_cost_above_budget_is_rejected():
    cache = ContentCache(max_cost=3)
    cache.set("keep", 1)
    assert cache.set("huge", 2, cost=4) is False
    assert "huge" not in cache
    assert "keep" in cache
    assert cache.get_stats()['rejected'] == 1


def test_large_entry_evicts_several():
    cache = ContentCache(max_cost=4, strategy=CacheStrategy.LRU)
    for key in "abcd":
        cache.set(key, key)
    cache.set("big", "big", cost=3)
    assert "big" in cache
    assert "d" in cache
    assert len(cache) == 2


def test_delete():
    cache = ContentCache(max_cost=3)
    cache.set("a", 1)
    cache.delete("a")
    cache.delete("missing")
    assert cache.get("a") == (None, False)
    assert cache.get_stats()['total_cost'] == 0


def test_invalid_budget():
    with pytest.raises(ValueError):
        ContentCache(max_cost=0)


# ─── Eviction strategies ──────────────────────────────────────────────────────


def fill_and_touch(strategy):
    """Insert 1,2,3; read 1 often, then 2 and 3 once; insert 4."""
    cache = ContentCache(max_cost=3, strategy=strategy, sample_size=3)
    for key in (1, 2, 3):
        cache.set(key, key)
    for _ in range(5):
        cache.get(1)
    cache.get(2)
    cache.get(3)
    cache.set(4, 4)
    return cache


def test_lru_evicts_least_recently_used():
    cache = fill_and_touch(CacheStrategy.LRU)
    assert 1 not in cache
    assert {2, 3, 4} == {k for k in (1, 2, 3, 4) if k in cache}


def test_lfu_keeps_frequently_read_entry():
    cache = fill_and_touch(CacheStrategy.LFU)
    assert 1 in cache
    assert 2 not in cache
    assert 3 in cache and 4 in cache


def test_fifo_ignores_reads():
    cache = ContentCache(max_cost=2, strategy=CacheStrategy.FIFO)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.get("a")
    cache.set("c", 3)
    assert "a" not in cache
    assert "b" in cache and "c" in cache


def test_lfu_remembers_frequency_after_eviction():
    cache = ContentCache(max_cost=1, strategy=CacheStrategy.LFU)
    cache.set("a", 1)
    cache.get("a")
    cache.set("b", 2)
    assert "a" not in cache
    assert cache.frequency("a") == 2


# ─── Frequency tracking ───────────────────────────────────────────────────────


def test_frequencies_age():
    cache = ContentCache(max_cost=10, num_counters=2)
    for _ in range(2 * AGING_FACTOR):
        cache.get("a")
    assert cache.frequency("a") == AGING_FACTOR


def test_frequency_table_is_bounded():
    cache = ContentCache(max_cost=10, num_counters=1)
    cache.get("a")
    cache.get("b")
    assert cache.frequency("a") == 1
    assert cache.frequency("b") == 0


# ─── Clearing and limits ──────────────────────────────────────────────────────


def test_clear_drops_everything():
    cache = ContentCache(max_cost=10)
    for n in range(5):
        cache.set(n, n)
        cache.get(n)
    cache.clear()
    assert len(cache) == 0
    assert cache.frequency(0) == 0
    stats = cache.get_stats()
    assert stats['total_cost'] == 0
    assert stats['clears'] == 1


def test_set_max_cost_shrinks():
    cache = ContentCache(max_cost=5, strategy=CacheStrategy.LRU)
    for n in range(5):
        cache.set(n, n)
    cache.set_max_cost(2)
    assert len(cache) == 2
    assert 3 in cache and 4 in cache
    assert cache.max_cost == 2


def test_disabled_cache_never_stores():
    cache = ContentCache(max_cost=10, enable_cache=False)
    assert cache.set("a", 1) is False
    assert cache.get("a") == (None, False)
    assert cache.get_stats()['cache_enabled'] is False


def test_stats_hit_rate():
    cache = ContentCache(max_cost=10)
    cache.set("a", 1)
    cache.get("a")
    cache.get("b")
    stats = cache.get_stats()
    assert stats['cache_hits'] == 1
    assert stats['cache_misses'] == 1
    assert stats['cache_hit_rate'] == 0.5
    assert stats['strategy'] == "lfu"


def test_defaults_come_from_config():
    cache = ContentCache()
    assert cache.max_cost == 1000
    assert cache.strategy is CacheStrategy.LFU


# ─── Concurrency ──────────────────────────────────────────────────────────────


def test_concurrent_get_set_clear():
    cache = ContentCache(max_cost=50)
    errors = []

    def writer(offset):
        for n in range(500):
            key = (offset, n % 80)
            cache.set(key, key)
            value, found = cache.get(key)
            if found and value != key:
                errors.append(key)

    def clearer():
        for _ in range(20):
            cache.clear()

    threads = [threading.Thread(target=writer, args=(i,)) for i in range(4)]
    threads.append(threading.Thread(target=clearer))
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    stats = cache.get_stats()
    assert stats['total_cost'] == stats['cache_entries'] <= 50
