"""Core tile resolution: keys, storage backends, cache, coalescing, service."""

from .errors import (
    BackendIOError,
    BackendNotFound,
    FetchTimeout,
    InvalidCoordinate,
    PathRejected,
    StorageError,
    TileError,
    TileNotFound,
)
from .fetch_coordinator import FetchCoordinator
from .storage import FilesystemBackend, MBTilesBackend, StorageBackend, TileData, create_backend
from .tile_cache import TileCache
from .tile_key import TileKey
from .tile_service import TileService

__all__ = [
    "TileError",
    "InvalidCoordinate",
    "TileNotFound",
    "StorageError",
    "FetchTimeout",
    "BackendNotFound",
    "BackendIOError",
    "PathRejected",
    "TileKey",
    "TileData",
    "StorageBackend",
    "FilesystemBackend",
    "MBTilesBackend",
    "create_backend",
    "TileCache",
    "FetchCoordinator",
    "TileService",
]
