"""
Tile storage backends.

A backend only has to implement ``async get(key) -> TileData``. Blocking
reads run in worker threads via asyncio.to_thread(); backends never touch
the cache.
"""

import asyncio
import hashlib
import logging
import sqlite3
import string
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable
from urllib.parse import unquote

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..constants import (
    ALL_BACKENDS,
    ARCHIVE_RETRY_ATTEMPTS,
    ARCHIVE_RETRY_WAIT_MAX,
    ARCHIVE_RETRY_WAIT_MIN,
    CHECKSUM_HEX_DIGITS,
    DEFAULT_EXTENSION,
    DEFAULT_PATH_TEMPLATE,
    TEMPLATE_ALLOWED_FIELDS,
    TEMPLATE_REQUIRED_FIELDS,
    BackendKind,
    ErrorMessages,
    content_type_for,
)
from .errors import BackendIOError, BackendNotFound, PathRejected
from .tile_key import TileKey

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TileData:
    """Immutable tile payload shared by value with every requester."""

    data: bytes
    content_type: str
    checksum: str
    size_bytes: int

    @classmethod
    def from_bytes(cls, data: bytes, content_type: str) -> "TileData":
        payload = bytes(data)
        digest = hashlib.sha256(payload).hexdigest()[:CHECKSUM_HEX_DIGITS]
        return cls(
            data=payload,
            content_type=content_type,
            checksum=digest,
            size_bytes=len(payload),
        )

    @property
    def etag(self) -> str:
        """Strong cache validator derived from the checksum."""
        return f'"{self.checksum}"'


@runtime_checkable
class StorageBackend(Protocol):
    """Capability for fetching raw tile bytes."""

    name: str

    async def get(self, key: TileKey) -> TileData:
        """Return the tile or raise BackendNotFound / BackendIOError / PathRejected."""
        ...


# ---------------------------------------------------------------------------
# Filesystem
# ---------------------------------------------------------------------------


def validate_template(template: str) -> str:
    """Check that a path template only uses the z/x/y/ext placeholders."""
    fields = {name for _, name, _, _ in string.Formatter().parse(template) if name is not None}
    for name in fields:
        if name not in TEMPLATE_ALLOWED_FIELDS:
            raise ValueError(ErrorMessages.TEMPLATE_UNKNOWN_FIELD.format(template, name))
    for name in TEMPLATE_REQUIRED_FIELDS:
        if name not in fields:
            raise ValueError(ErrorMessages.TEMPLATE_MISSING_FIELD.format(template, name))
    return template


class FilesystemBackend:
    """Serves pre-existing tile files laid out under a root directory."""

    name = BackendKind.FILESYSTEM

    def __init__(
        self,
        root: str | Path,
        path_template: str = DEFAULT_PATH_TEMPLATE,
        extension: str = DEFAULT_EXTENSION,
    ) -> None:
        self.root = Path(root)
        self.path_template = validate_template(path_template)
        self.extension = extension.lstrip(".")
        self.content_type = content_type_for(self.extension)
        self._canonical_root = self.root.resolve()
        if not self._canonical_root.is_dir():
            logger.warning(f"Tiles root {self._canonical_root} does not exist (yet)")

    def resolve_path(self, key: TileKey) -> Path:
        """Render the template for ``key`` and verify it stays under the root.

        Raises:
            PathRejected: if the literal or percent-decoded path escapes the root
        """
        rendered = self.path_template.format(
            z=key.zoom, x=key.column, y=key.row, ext=self.extension
        )
        decoded = unquote(rendered)
        for candidate in {rendered, decoded}:
            if "\x00" in candidate or "\\" in candidate or Path(candidate).is_absolute():
                self._reject(key, candidate)
            resolved = (self._canonical_root / candidate).resolve()
            if not resolved.is_relative_to(self._canonical_root):
                self._reject(key, candidate)
        return self._canonical_root / rendered

    def _reject(self, key: TileKey, candidate: str) -> None:
        logger.warning(f"Rejected tile path for {key}: {candidate!r}")
        raise PathRejected(ErrorMessages.PATH_REJECTED.format(key))

    async def get(self, key: TileKey) -> TileData:
        path = self.resolve_path(key)
        data = await asyncio.to_thread(self._read, key, path)
        return TileData.from_bytes(data, self.content_type)

    async def exists(self, key: TileKey) -> bool:
        try:
            path = self.resolve_path(key)
        except PathRejected:
            return False
        return await asyncio.to_thread(path.is_file)

    def _read(self, key: TileKey, path: Path) -> bytes:
        # The final component may be a symlink created after resolve_path()
        if not path.resolve().is_relative_to(self._canonical_root):
            self._reject(key, str(path))
        try:
            with open(path, "rb") as f:
                return f.read()
        except (FileNotFoundError, NotADirectoryError, IsADirectoryError) as e:
            raise BackendNotFound(ErrorMessages.TILE_NOT_FOUND.format(key)) from e
        except OSError as e:
            logger.error(f"Failed to read tile {key}: {e}")
            raise BackendIOError(ErrorMessages.STORAGE_ERROR.format(key)) from e

    def close(self) -> None:
        pass


# ---------------------------------------------------------------------------
# MBTiles archive
# ---------------------------------------------------------------------------

_retry_busy = retry(
    stop=stop_after_attempt(ARCHIVE_RETRY_ATTEMPTS),
    wait=wait_exponential(multiplier=ARCHIVE_RETRY_WAIT_MIN, max=ARCHIVE_RETRY_WAIT_MAX),
    retry=retry_if_exception_type(sqlite3.OperationalError),
    reraise=True,
)


class MBTilesBackend:
    """Serves tiles packaged in a single MBTiles (SQLite) archive.

    MBTiles stores rows in the TMS scheme; keys are flipped on lookup.
    The read-only connection is opened lazily and shared between worker
    threads under a lock.
    """

    name = BackendKind.MBTILES

    def __init__(self, path: str | Path, extension: str = DEFAULT_EXTENSION) -> None:
        self.path = Path(path)
        self.extension = extension.lstrip(".")
        self.content_type = content_type_for(self.extension)
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            if not self.path.is_file():
                raise BackendIOError(ErrorMessages.ARCHIVE_UNAVAILABLE.format(self.path))
            try:
                self._conn = sqlite3.connect(
                    f"{self.path.resolve().as_uri()}?mode=ro",
                    uri=True,
                    check_same_thread=False,
                )
            except sqlite3.Error as e:
                raise BackendIOError(ErrorMessages.ARCHIVE_UNAVAILABLE.format(self.path)) from e
            logger.info(f"Opened MBTiles archive {self.path}")
        return self._conn

    @_retry_busy
    def _query(self, sql: str, params: tuple) -> list[tuple]:
        with self._lock:
            return self._connection().execute(sql, params).fetchall()

    def _read(self, key: TileKey) -> bytes:
        try:
            rows = self._query(
                "SELECT tile_data FROM tiles "
                "WHERE zoom_level = ? AND tile_column = ? AND tile_row = ?",
                (key.zoom, key.column, key.tms_row),
            )
        except sqlite3.Error as e:
            logger.error(f"Failed to read tile {key} from {self.path}: {e}")
            raise BackendIOError(ErrorMessages.STORAGE_ERROR.format(key)) from e
        if not rows or rows[0][0] is None:
            raise BackendNotFound(ErrorMessages.TILE_NOT_FOUND.format(key))
        return rows[0][0]

    async def get(self, key: TileKey) -> TileData:
        data = await asyncio.to_thread(self._read, key)
        return TileData.from_bytes(data, self.content_type)

    async def exists(self, key: TileKey) -> bool:
        try:
            await asyncio.to_thread(self._read, key)
        except BackendNotFound:
            return False
        return True

    def metadata(self) -> dict[str, str]:
        """Return the archive's name/value metadata table."""
        try:
            rows = self._query("SELECT name, value FROM metadata", ())
        except sqlite3.Error as e:
            raise BackendIOError(ErrorMessages.ARCHIVE_UNAVAILABLE.format(self.path)) from e
        return {name: value for name, value in rows}

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None


def create_backend(config) -> StorageBackend:
    """Build the storage backend described by a TileServiceConfig."""
    if config.backend == BackendKind.FILESYSTEM:
        return FilesystemBackend(
            config.tiles_root_path,
            path_template=config.path_template,
            extension=config.tile_extension,
        )
    if config.backend == BackendKind.MBTILES:
        return MBTilesBackend(config.tiles_root_path, extension=config.tile_extension)
    raise ValueError(
        ErrorMessages.UNKNOWN_BACKEND.format(config.backend, ", ".join(ALL_BACKENDS))
    )
