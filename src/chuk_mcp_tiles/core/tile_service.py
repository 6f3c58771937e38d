"""
Tile Service: composition root for tile resolution.

Wires a storage backend, the LRU cache and the fetch coordinator behind a
single ``resolve(key)`` call. One instance is shared by every request for
the lifetime of the process.
"""

import asyncio
import logging
from typing import Any

from ..constants import DEFAULT_MAX_ZOOM, DEFAULT_SCHEME, ErrorMessages
from .errors import (
    BackendIOError,
    BackendNotFound,
    PathRejected,
    StorageError,
    TileNotFound,
)
from .fetch_coordinator import FetchCoordinator
from .storage import StorageBackend, TileData, create_backend
from .tile_cache import TileCache
from .tile_key import TileKey, normalize_row

logger = logging.getLogger(__name__)


class TileService:
    """Resolves validated tile keys to tile data."""

    def __init__(
        self,
        backend: StorageBackend,
        cache: TileCache,
        coordinator: FetchCoordinator,
        config: Any = None,
    ) -> None:
        self.backend = backend
        self.cache = cache
        self.coordinator = coordinator
        self.config = config
        self._sweeper: asyncio.Task | None = None
        self._closed = False

    @classmethod
    def from_config(cls, config: Any, backend: StorageBackend | None = None) -> "TileService":
        """Build a service from a TileServiceConfig."""
        service = cls(
            backend=backend if backend is not None else create_backend(config),
            cache=TileCache(config.cache_capacity_bytes, ttl_seconds=config.cache_entry_ttl),
            coordinator=FetchCoordinator(timeout_seconds=config.fetch_timeout),
            config=config,
        )
        logger.info(
            f"Tile service ready: {service.backend.name} backend at {config.tiles_root_path}, "
            f"cache {config.cache_capacity_bytes} bytes, ttl {config.cache_entry_ttl}, "
            f"fetch timeout {config.fetch_timeout}"
        )
        return service

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def parse_key(
        self,
        zoom: str | int,
        column: str | int,
        row: str | int,
        scheme: str = DEFAULT_SCHEME,
    ) -> TileKey:
        """Validate raw request segments into a canonical (XYZ) key.

        Rows given in the TMS scheme are range-checked as sent, then flipped.

        Raises:
            InvalidCoordinate: on malformed or out-of-range input, or an unknown scheme
        """
        key = TileKey.parse(zoom, column, row, max_zoom=self.max_zoom)
        canonical_row = normalize_row(key.zoom, key.row, scheme)
        if canonical_row == key.row:
            return key
        return TileKey(key.zoom, key.column, canonical_row)

    @property
    def max_zoom(self) -> int:
        return self.config.max_zoom if self.config is not None else DEFAULT_MAX_ZOOM

    async def resolve(self, key: TileKey) -> TileData:
        """Return the tile for ``key``.

        Raises:
            TileNotFound: the backend has no such tile (or its path was rejected)
            StorageError: the backend failed, or the read timed out
        """
        self._ensure_sweeper()
        try:
            return await self.coordinator.load_or_fetch(key, self.cache, self.backend)
        except (BackendNotFound, PathRejected) as e:
            logger.info(f"Tile {key} not found")
            raise TileNotFound(ErrorMessages.TILE_NOT_FOUND.format(key)) from e
        except BackendIOError as e:
            logger.error(f"Storage failure for tile {key}: {e}")
            raise StorageError(ErrorMessages.STORAGE_ERROR.format(key)) from e
        except StorageError:
            raise
        except Exception as e:
            logger.error(f"Unexpected failure resolving tile {key}: {e!r}")
            raise StorageError(ErrorMessages.INTERNAL_ERROR.format(key)) from e

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _ensure_sweeper(self) -> None:
        if self._sweeper is not None or self._closed or self.config is None:
            return
        interval = self.config.cache_sweep_interval
        if interval is None or self.cache.ttl_seconds is None:
            return
        self._sweeper = asyncio.get_running_loop().create_task(
            self._sweep_loop(interval), name="tile-cache-sweeper"
        )

    async def _sweep_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.cache.sweep_expired()

    async def shutdown(self) -> None:
        """Stop the sweeper, drain in-flight reads, release cache memory and the backend."""
        self._closed = True
        if self._sweeper is not None:
            self._sweeper.cancel()
            try:
                await self._sweeper
            except asyncio.CancelledError:
                pass
            self._sweeper = None
        await self.coordinator.drain()
        self.close()

    def close(self) -> None:
        """Synchronous release of cache memory and backend handles.

        Used once the transport's event loop has stopped, when in-flight
        reads can no longer be awaited; inside a running loop prefer
        ``shutdown()``, which drains them first.
        """
        self._closed = True
        if self._sweeper is not None:
            if not self._sweeper.done():
                self._sweeper.cancel()
            self._sweeper = None
        self.cache.clear()
        close = getattr(self.backend, "close", None)
        if close is not None:
            close()
        logger.info("Tile service closed")

    def stats(self) -> dict[str, Any]:
        cache_stats = self.cache.stats()
        coordinator_stats = self.coordinator.stats()
        return {
            "backend": self.backend.name,
            "entries": cache_stats.entries,
            "total_bytes": cache_stats.total_bytes,
            "capacity_bytes": cache_stats.capacity_bytes,
            "hits": cache_stats.hits,
            "misses": cache_stats.misses,
            "hit_ratio": round(cache_stats.hit_ratio, 4),
            "evictions": cache_stats.evictions,
            "expirations": cache_stats.expirations,
            "rejected": cache_stats.rejected,
            "in_flight": coordinator_stats.in_flight,
            "backend_fetches": coordinator_stats.backend_fetches,
            "coalesced": coordinator_stats.coalesced,
            "failures": coordinator_stats.failures,
            "timeouts": coordinator_stats.timeouts,
        }
