"""
Error types for tile resolution.

Service-level errors (raised by TileService.resolve and TileKey construction):
    InvalidCoordinate, TileNotFound, StorageError (FetchTimeout)

Backend-level errors (raised by StorageBackend.get, translated by TileService):
    BackendNotFound, BackendIOError, PathRejected
"""


class TileError(Exception):
    """Base class for all tile resolution failures."""


class InvalidCoordinate(TileError, ValueError):
    """Malformed or out-of-range zoom/column/row triple."""


class TileNotFound(TileError):
    """The backend confirms the tile does not exist."""


class StorageError(TileError):
    """I/O failure or timeout while reading a tile."""


class FetchTimeout(StorageError):
    """A waiter gave up on an in-flight backend read."""


class BackendError(TileError):
    """Base class for errors raised by storage backends."""


class BackendNotFound(BackendError):
    """No tile stored under the requested key."""


class BackendIOError(BackendError):
    """The backend failed to read an existing resource."""


class PathRejected(BackendError):
    """The resolved tile path escapes the configured root."""
