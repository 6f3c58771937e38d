"""
Constants for chuk-mcp-tiles server.

All magic strings, content types, and configuration defaults live here.
"""


class ServerConfig:
    NAME = "chuk-mcp-tiles"
    VERSION = "0.1.0"
    DESCRIPTION = "Map Tile Serving MCP Server with Coalesced Caching"


class BackendKind:
    FILESYSTEM = "filesystem"
    MBTILES = "mbtiles"


ALL_BACKENDS = [BackendKind.FILESYSTEM, BackendKind.MBTILES]


class TileScheme:
    XYZ = "xyz"
    TMS = "tms"


ALL_SCHEMES = [TileScheme.XYZ, TileScheme.TMS]


class EnvVar:
    TILES_ROOT_PATH = "TILES_ROOT_PATH"
    TILES_PATH_TEMPLATE = "TILES_PATH_TEMPLATE"
    TILES_EXTENSION = "TILES_EXTENSION"
    TILES_BACKEND = "TILES_BACKEND"
    TILES_MAX_ZOOM = "TILES_MAX_ZOOM"
    TILES_CACHE_CAPACITY_BYTES = "TILES_CACHE_CAPACITY_BYTES"
    TILES_CACHE_TTL_SECONDS = "TILES_CACHE_TTL_SECONDS"
    TILES_CACHE_SWEEP_SECONDS = "TILES_CACHE_SWEEP_SECONDS"
    TILES_FETCH_TIMEOUT_SECONDS = "TILES_FETCH_TIMEOUT_SECONDS"
    LOG_LEVEL = "LOG_LEVEL"
    LOG_DIR = "EXE_UNIT_LOG_DIR"
    MCP_STDIO = "MCP_STDIO"


# Tile addressing
MAX_SUPPORTED_ZOOM = 30
DEFAULT_MAX_ZOOM = 22
DEFAULT_SCHEME = TileScheme.XYZ

# Storage layout
DEFAULT_TILES_ROOT = "Tiles"
DEFAULT_PATH_TEMPLATE = "{z}/{x}/{y}.{ext}"
DEFAULT_EXTENSION = "png"
DEFAULT_BACKEND = BackendKind.FILESYSTEM
TEMPLATE_REQUIRED_FIELDS = ("z", "x", "y")
TEMPLATE_ALLOWED_FIELDS = ("z", "x", "y", "ext")

DEFAULT_CONTENT_TYPE = "application/octet-stream"

CONTENT_TYPES: dict[str, str] = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "webp": "image/webp",
    "gif": "image/gif",
    "tif": "image/tiff",
    "tiff": "image/tiff",
    "pbf": "application/x-protobuf",
    "mvt": "application/vnd.mapbox-vector-tile",
    "json": "application/json",
    "geojson": "application/geo+json",
    "terrain": "application/vnd.quantized-mesh",
}

SUPPORTED_EXTENSIONS = list(CONTENT_TYPES.keys())


def content_type_for(extension: str | None) -> str:
    """Map a file extension (with or without leading dot) to a content type."""
    if not extension:
        return DEFAULT_CONTENT_TYPE
    return CONTENT_TYPES.get(extension.lower().lstrip("."), DEFAULT_CONTENT_TYPE)


# Cache & fetch
CACHE_CAPACITY_BYTES = 256 * 1024 * 1024  # 256 MB total
DEFAULT_FETCH_TIMEOUT_S = 30.0
CHECKSUM_HEX_DIGITS = 32
TILE_CACHE_CONTROL = "public, max-age=86400"

# MBTiles retry on a busy/locked archive
ARCHIVE_RETRY_ATTEMPTS = 3
ARCHIVE_RETRY_WAIT_MIN = 0.05
ARCHIVE_RETRY_WAIT_MAX = 0.5

# Logging
DEFAULT_LOG_LEVEL = "info"
DEFAULT_LOG_DIR = "logs"
LOG_FORMAT = "[%(asctime)s %(levelname)-5s %(name)s] %(message)s"
# Milliseconds and the UTC offset are appended by the formatter
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"
LOG_FILE_NAME = "chuk_mcp_tiles.log"
LOG_MAX_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 3

# Transport defaults
DEFAULT_HOST = "localhost"
DEFAULT_PORT = 5000


class HTTPStatus:
    OK = 200
    NOT_MODIFIED = 304
    BAD_REQUEST = 400
    NOT_FOUND = 404
    SERVER_ERROR = 500


class ErrorMessages:
    NOT_AN_INTEGER = "Tile {} must be an integer, got {!r}"
    NEGATIVE_ZOOM = "Zoom must be >= 0, got {}"
    ZOOM_TOO_LARGE = "Zoom {} exceeds maximum zoom {}"
    COLUMN_OUT_OF_RANGE = "Column {} outside [0, {}) at zoom {}"
    ROW_OUT_OF_RANGE = "Row {} outside [0, {}) at zoom {}"
    UNKNOWN_SCHEME = "Unknown tile scheme '{}'. Available: {}"
    UNKNOWN_EXTENSION = "Unsupported tile extension '{}'. Available: {}"
    UNKNOWN_BACKEND = "Unknown storage backend '{}'. Available: {}"
    TEMPLATE_MISSING_FIELD = "Path template '{}' must contain {{{}}}"
    TEMPLATE_UNKNOWN_FIELD = "Path template '{}' uses unknown placeholder {{{}}}"
    TILE_NOT_FOUND = "No such tile: {}"
    PATH_REJECTED = "Resolved path for tile {} escapes the tiles root"
    STORAGE_ERROR = "Storage failure reading tile {}"
    FETCH_TIMEOUT = "Timed out after {:.1f}s waiting for tile {}"
    ARCHIVE_UNAVAILABLE = "Tile archive '{}' could not be opened"
    INTERNAL_ERROR = "Internal failure resolving tile {}"


class SuccessMessages:
    TILE_SERVED = "Tile {} ({} bytes, {})"
    TILE_NOT_MODIFIED = "Tile {} not modified"
    STATUS = "Tile MCP Server v{} ({} backend, {} cached tiles)"
    CAPABILITIES = "{} v{} capabilities"
