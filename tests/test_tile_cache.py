"""
Tests for the byte-bounded LRU tile cache.
"""

import threading

import pytest

from chuk_mcp_tiles.core.tile_cache import TileCache
from chuk_mcp_tiles.core.tile_key import TileKey

A = TileKey(3, 0, 0)
B = TileKey(3, 1, 0)
C = TileKey(3, 2, 0)
D = TileKey(3, 3, 0)


class TestInit:
    def test_negative_capacity(self):
        with pytest.raises(ValueError):
            TileCache(-1)

    def test_non_positive_ttl(self):
        with pytest.raises(ValueError):
            TileCache(100, ttl_seconds=0)

    def test_empty(self):
        cache = TileCache(100)
        assert len(cache) == 0
        assert cache.total_bytes == 0
        assert cache.get(A) is None


class TestGetPut:
    def test_put_then_get(self, make_tile):
        cache = TileCache(100)
        tile = make_tile(10)
        assert cache.put(A, tile) is True
        assert cache.get(A) is tile
        assert cache.total_bytes == 10

    def test_put_replaces_existing(self, make_tile):
        cache = TileCache(100)
        cache.put(A, make_tile(10))
        replacement = make_tile(20, b"y")
        cache.put(A, replacement)
        assert cache.get(A) is replacement
        assert cache.total_bytes == 20
        assert len(cache) == 1

    def test_contains_does_not_count_as_access(self, make_tile):
        cache = TileCache(100)
        cache.put(A, make_tile(10))
        assert A in cache
        stats = cache.stats()
        assert stats.hits == 0
        assert stats.misses == 0

    def test_hit_and_miss_counters(self, make_tile):
        cache = TileCache(100)
        cache.put(A, make_tile(10))
        cache.get(A)
        cache.get(B)
        stats = cache.stats()
        assert stats.hits == 1
        assert stats.misses == 1
        assert stats.hit_ratio == 0.5

    def test_hit_ratio_no_lookups(self):
        assert TileCache(100).stats().hit_ratio == 0.0


class TestEviction:
    """Capacity is in bytes and eviction follows last access."""

    def test_evicts_least_recently_used(self, make_tile):
        cache = TileCache(30)
        cache.put(A, make_tile(10))
        cache.put(B, make_tile(10))
        cache.put(C, make_tile(10))
        cache.put(D, make_tile(10))
        assert A not in cache
        assert cache.keys() == [B, C, D]
        assert cache.stats().evictions == 1

    def test_access_protects_from_eviction(self, make_tile):
        cache = TileCache(30)
        cache.put(A, make_tile(10))
        cache.put(B, make_tile(10))
        cache.put(C, make_tile(10))
        cache.get(A)
        cache.put(D, make_tile(10))
        assert A in cache
        assert B not in cache

    def test_evicts_several_for_large_entry(self, make_tile):
        cache = TileCache(30)
        cache.put(A, make_tile(10))
        cache.put(B, make_tile(10))
        cache.put(C, make_tile(10))
        cache.put(D, make_tile(25))
        assert cache.keys() == [D]
        assert cache.total_bytes == 25
        assert cache.stats().evictions == 3

    def test_entry_larger_than_capacity_rejected(self, make_tile):
        cache = TileCache(30)
        cache.put(A, make_tile(10))
        assert cache.put(B, make_tile(31)) is False
        assert B not in cache
        assert A in cache
        assert cache.stats().rejected == 1

    def test_oversized_replacement_drops_previous_version(self, make_tile):
        cache = TileCache(30)
        cache.put(A, make_tile(10))
        assert cache.put(A, make_tile(31)) is False
        assert cache.get(A) is None
        assert cache.total_bytes == 0
        assert cache.stats().rejected == 1

    def test_entry_equal_to_capacity_fits(self, make_tile):
        cache = TileCache(30)
        assert cache.put(A, make_tile(30)) is True
        assert cache.total_bytes == 30

    def test_zero_capacity_caches_nothing(self, make_tile):
        cache = TileCache(0)
        assert cache.put(A, make_tile(1)) is False
        assert len(cache) == 0

    def test_total_never_exceeds_capacity(self, make_tile):
        cache = TileCache(100)
        for i in range(64):
            cache.put(TileKey(6, i, 0), make_tile(7 + i % 13))
            assert cache.total_bytes <= 100
        assert cache.total_bytes == sum(cache.get(k).size_bytes for k in cache.keys())


class TestExpiry:
    """TTL expiry with an injected clock."""

    def test_entry_expires_after_ttl(self, make_tile, clock):
        cache = TileCache(100, ttl_seconds=60, clock=clock)
        cache.put(A, make_tile(10))
        clock.advance(59)
        assert cache.get(A) is not None
        clock.advance(2)
        assert cache.get(A) is None
        assert A not in cache
        assert cache.total_bytes == 0
        assert cache.stats().expirations == 1

    def test_access_does_not_extend_ttl(self, make_tile, clock):
        cache = TileCache(100, ttl_seconds=60, clock=clock)
        cache.put(A, make_tile(10))
        clock.advance(40)
        cache.get(A)
        clock.advance(40)
        assert cache.get(A) is None

    def test_reput_resets_ttl(self, make_tile, clock):
        cache = TileCache(100, ttl_seconds=60, clock=clock)
        cache.put(A, make_tile(10))
        clock.advance(50)
        cache.put(A, make_tile(10))
        clock.advance(50)
        assert cache.get(A) is not None

    def test_no_ttl_never_expires(self, make_tile, clock):
        cache = TileCache(100, clock=clock)
        cache.put(A, make_tile(10))
        clock.advance(10**9)
        assert cache.get(A) is not None
        assert cache.sweep_expired() == 0

    def test_sweep_removes_only_expired(self, make_tile, clock):
        cache = TileCache(100, ttl_seconds=60, clock=clock)
        cache.put(A, make_tile(10))
        cache.put(B, make_tile(10))
        clock.advance(45)
        cache.put(C, make_tile(10))
        clock.advance(30)
        assert cache.sweep_expired() == 2
        assert cache.keys() == [C]
        assert cache.total_bytes == 10


class TestMaintenance:
    def test_clear(self, make_tile):
        cache = TileCache(100)
        cache.put(A, make_tile(10))
        cache.put(B, make_tile(10))
        cache.clear()
        assert len(cache) == 0
        assert cache.total_bytes == 0

    def test_stats_snapshot(self, make_tile):
        cache = TileCache(100)
        cache.put(A, make_tile(10))
        stats = cache.stats()
        assert stats.entries == 1
        assert stats.total_bytes == 10
        assert stats.capacity_bytes == 100


class TestThreadSafety:
    def test_concurrent_puts_stay_within_capacity(self, make_tile):
        cache = TileCache(500)
        tile = make_tile(10)

        def worker(offset):
            for i in range(200):
                key = TileKey(10, (offset * 200 + i) % 1024, offset)
                cache.put(key, tile)
                cache.get(key)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert cache.total_bytes <= 500
        assert cache.total_bytes == 10 * len(cache)
