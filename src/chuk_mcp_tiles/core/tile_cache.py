"""
Bounded in-memory tile cache.

Capacity is measured in total payload bytes. Eviction is strict LRU by last
access; an optional TTL expires entries independently of LRU pressure.
"""

import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass, replace

from .storage import TileData
from .tile_key import TileKey

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """A cached tile plus its access bookkeeping."""

    key: TileKey
    data: TileData
    last_access: float
    inserted_at: float


@dataclass
class CacheStats:
    """Snapshot of cache counters."""

    entries: int
    total_bytes: int
    capacity_bytes: int
    hits: int
    misses: int
    evictions: int
    expirations: int
    rejected: int

    @property
    def hit_ratio(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0


class TileCache:
    """Thread-safe LRU cache keyed by TileKey."""

    def __init__(
        self,
        capacity_bytes: int,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if capacity_bytes < 0:
            raise ValueError(f"capacity_bytes must be >= 0, got {capacity_bytes}")
        if ttl_seconds is not None and ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be > 0, got {ttl_seconds}")
        self.capacity_bytes = capacity_bytes
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        # Ordered least- to most-recently accessed
        self._entries: OrderedDict[TileKey, CacheEntry] = OrderedDict()
        self._total_bytes = 0
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0
        self._rejected = 0

    def get(self, key: TileKey) -> TileData | None:
        """Return the cached tile, refreshing its recency, or None."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if self._is_expired(entry, now):
                self._remove(key)
                self._expirations += 1
                self._misses += 1
                logger.debug(f"Cache entry {key} expired")
                return None
            self._entries[key] = replace(entry, last_access=now)
            self._entries.move_to_end(key)
            self._hits += 1
            return entry.data

    def put(self, key: TileKey, data: TileData) -> bool:
        """Insert a tile, evicting least-recently-used entries to make room.

        Returns:
            False if the tile is larger than the whole cache and was not stored
        """
        size = data.size_bytes
        if size > self.capacity_bytes:
            with self._lock:
                # The previous version must not outlive a rejected replacement
                if key in self._entries:
                    self._remove(key)
                self._rejected += 1
            logger.debug(f"Tile {key} ({size} bytes) exceeds cache capacity, not cached")
            return False

        now = self._clock()
        with self._lock:
            if key in self._entries:
                self._remove(key)
            while self._total_bytes + size > self.capacity_bytes and self._entries:
                oldest_key = next(iter(self._entries))
                self._remove(oldest_key)
                self._evictions += 1
                logger.debug(f"Evicted {oldest_key} from tile cache")
            self._entries[key] = CacheEntry(key=key, data=data, last_access=now, inserted_at=now)
            self._total_bytes += size
        return True

    def sweep_expired(self) -> int:
        """Remove every expired entry. Returns the number removed."""
        if self.ttl_seconds is None:
            return 0
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if self._is_expired(e, now)]
            for key in expired:
                self._remove(key)
            self._expirations += len(expired)
        if expired:
            logger.debug(f"Swept {len(expired)} expired tiles")
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._total_bytes = 0

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                entries=len(self._entries),
                total_bytes=self._total_bytes,
                capacity_bytes=self.capacity_bytes,
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
                expirations=self._expirations,
                rejected=self._rejected,
            )

    @property
    def total_bytes(self) -> int:
        return self._total_bytes

    def keys(self) -> list[TileKey]:
        """Keys from least to most recently accessed."""
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        # Presence check only: does not count as an access
        with self._lock:
            return key in self._entries

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return self.ttl_seconds is not None and now - entry.inserted_at > self.ttl_seconds

    def _remove(self, key: TileKey) -> None:
        entry = self._entries.pop(key)
        self._total_bytes -= entry.data.size_bytes
