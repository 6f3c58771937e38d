"""Shared test fixtures for chuk-mcp-tiles."""

import asyncio
from unittest.mock import MagicMock

import pytest

from chuk_mcp_tiles.config import TileServiceConfig
from chuk_mcp_tiles.core.errors import BackendNotFound
from chuk_mcp_tiles.core.fetch_coordinator import FetchCoordinator
from chuk_mcp_tiles.core.storage import TileData
from chuk_mcp_tiles.core.tile_cache import TileCache
from chuk_mcp_tiles.core.tile_key import TileKey
from chuk_mcp_tiles.core.tile_service import TileService

PNG_HEADER = b"\x89PNG\r\n\x1a\n"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class CountingBackend:
    """In-memory backend that records every get() and can be slowed down or broken."""

    name = "memory"

    def __init__(self, tiles=None, delay: float = 0.0, error: Exception | None = None) -> None:
        self.tiles = dict(tiles or {})
        self.delay = delay
        self.error = error
        self.calls: list[TileKey] = []
        self.closed = False

    async def get(self, key: TileKey) -> TileData:
        self.calls.append(key)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if key not in self.tiles:
            raise BackendNotFound(f"No such tile: {key}")
        return TileData.from_bytes(self.tiles[key], "image/png")

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def tile_bytes():
    """Payload of tile 5/10/12."""
    return PNG_HEADER + b"tile-5-10-12"


@pytest.fixture
def make_tile():
    """Factory for TileData of a given size."""

    def _make(size: int, fill: bytes = b"x") -> TileData:
        return TileData.from_bytes(fill * size, "image/png")

    return _make


@pytest.fixture
def make_backend():
    """Factory for CountingBackend instances."""
    return CountingBackend


@pytest.fixture
def tiles_dir(tmp_path, tile_bytes):
    """Tiles root laid out as {z}/{x}/{y}.png with tiles 5/10/12 and 0/0/0."""
    root = tmp_path / "Tiles"
    (root / "5" / "10").mkdir(parents=True)
    (root / "5" / "10" / "12.png").write_bytes(tile_bytes)
    (root / "0" / "0").mkdir(parents=True)
    (root / "0" / "0" / "0.png").write_bytes(PNG_HEADER + b"world")
    return root


@pytest.fixture
def memory_backend(tile_bytes):
    return CountingBackend({TileKey(5, 10, 12): tile_bytes})


@pytest.fixture
def service_config(tiles_dir):
    return TileServiceConfig(
        tiles_root_path=tiles_dir,
        max_zoom=18,
        cache_capacity_bytes=1024 * 1024,
        fetch_timeout=5.0,
    )


@pytest.fixture
def service(memory_backend, service_config):
    """TileService over the in-memory backend."""
    return TileService(
        backend=memory_backend,
        cache=TileCache(service_config.cache_capacity_bytes),
        coordinator=FetchCoordinator(timeout_seconds=service_config.fetch_timeout),
        config=service_config,
    )


@pytest.fixture
def mock_mcp():
    """Mock ChukMCPServer that captures registered tools by name."""
    tools = {}
    mcp = MagicMock()

    def capture_tool(**kwargs):
        def decorator(fn):
            tools[fn.__name__] = fn
            return fn

        return decorator

    mcp.tool = capture_tool
    mcp.tools = tools
    return mcp
