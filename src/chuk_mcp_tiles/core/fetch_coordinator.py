"""
Request coalescing for cache misses.

The first request to miss on a key spawns one backend read as an asyncio
Task and registers it; every concurrent request for the same key awaits that
same task instead of reading storage again. The task writes the cache and
unregisters itself in the same event-loop step it finishes, so later
requests either hit the cache or start a fresh read.
"""

import asyncio
import logging
from dataclasses import dataclass

from ..constants import ErrorMessages
from .errors import FetchTimeout
from .storage import StorageBackend, TileData
from .tile_cache import TileCache
from .tile_key import TileKey

logger = logging.getLogger(__name__)


@dataclass
class InFlightFetch:
    """One outstanding backend read and the number of requests currently awaiting it."""

    key: TileKey
    task: asyncio.Task
    waiters: int = 1


@dataclass
class CoordinatorStats:
    """Snapshot of coordinator counters."""

    in_flight: int
    backend_fetches: int
    coalesced: int
    failures: int
    timeouts: int


class FetchCoordinator:
    """Deduplicates concurrent backend reads per TileKey."""

    def __init__(self, timeout_seconds: float | None = None) -> None:
        if timeout_seconds is not None and timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {timeout_seconds}")
        self.timeout_seconds = timeout_seconds
        self._in_flight: dict[TileKey, InFlightFetch] = {}
        self._backend_fetches = 0
        self._coalesced = 0
        self._failures = 0
        self._timeouts = 0

    async def load_or_fetch(
        self,
        key: TileKey,
        cache: TileCache,
        backend: StorageBackend,
    ) -> TileData:
        """Return the tile from cache, joining or starting a single backend read on a miss.

        Raises:
            FetchTimeout: if the read does not finish within timeout_seconds
            Exception: whatever the backend raised, identically for every waiter
        """
        data = cache.get(key)
        if data is not None:
            return data

        # No await between the cache miss and registration: join-or-lead is atomic
        fetch = self._in_flight.get(key)
        if fetch is None:
            task = asyncio.create_task(self._fetch(key, cache, backend), name=f"tile-fetch {key}")
            task.add_done_callback(self._on_fetch_done)
            fetch = InFlightFetch(key=key, task=task)
            self._in_flight[key] = fetch
            self._backend_fetches += 1
            logger.debug(f"Cache miss for {key}, fetching from {backend.name}")
        else:
            fetch.waiters += 1
            self._coalesced += 1
            logger.debug(f"Joined in-flight fetch for {key} ({fetch.waiters} waiters)")

        try:
            # shield: a waiter timing out or being cancelled never cancels the read
            return await asyncio.wait_for(asyncio.shield(fetch.task), self.timeout_seconds)
        except asyncio.TimeoutError:
            if fetch.task.done() and not fetch.task.cancelled():
                # Finished in the same step the deadline fired: its outcome wins
                return fetch.task.result()
            self._timeouts += 1
            logger.warning(f"Gave up waiting for tile {key} after {self.timeout_seconds}s")
            raise FetchTimeout(ErrorMessages.FETCH_TIMEOUT.format(self.timeout_seconds, key))
        finally:
            fetch.waiters -= 1

    async def _fetch(self, key: TileKey, cache: TileCache, backend: StorageBackend) -> TileData:
        try:
            data = await backend.get(key)
            cache.put(key, data)
            return data
        finally:
            fetch = self._in_flight.get(key)
            if fetch is not None and fetch.task is asyncio.current_task():
                del self._in_flight[key]

    def _on_fetch_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        # Marks the failure retrieved even when every waiter has timed out
        exc = task.exception()
        if exc is not None:
            self._failures += 1
            logger.debug(f"{task.get_name()} failed: {exc}")

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def is_in_flight(self, key: TileKey) -> bool:
        return key in self._in_flight

    async def drain(self) -> None:
        """Wait for every outstanding backend read to finish."""
        tasks = [fetch.task for fetch in self._in_flight.values()]
        if tasks:
            logger.info(f"Draining {len(tasks)} in-flight tile fetches")
            await asyncio.gather(*tasks, return_exceptions=True)

    def stats(self) -> CoordinatorStats:
        return CoordinatorStats(
            in_flight=len(self._in_flight),
            backend_fetches=self._backend_fetches,
            coalesced=self._coalesced,
            failures=self._failures,
            timeouts=self._timeouts,
        )
