"""
Tile tools — tile retrieval by zoom/column/row.

Maps TileService outcomes onto HTTP-equivalent statuses: 200 with base64
bytes, 304 when the caller's validator still matches, 400 for bad
coordinates, 404 for missing tiles and 500 for storage failures.
"""

import base64
import logging

from ...constants import (
    CONTENT_TYPES,
    DEFAULT_SCHEME,
    SUPPORTED_EXTENSIONS,
    TILE_CACHE_CONTROL,
    ErrorMessages,
    HTTPStatus,
    SuccessMessages,
)
from ...core.errors import StorageError, TileNotFound
from ...models.responses import ErrorResponse, TileResponse, format_response

logger = logging.getLogger(__name__)


def etag_matches(if_none_match: str | None, etag: str) -> bool:
    """Check an If-None-Match value (list, weak or wildcard) against an ETag."""
    if not if_none_match:
        return False
    current = etag.strip('"')
    for token in if_none_match.split(","):
        token = token.strip()
        if token == "*":
            return True
        if token.startswith("W/"):
            token = token[2:]
        if token.strip('"') == current:
            return True
    return False


def _normalize_extension(ext: str | None) -> str | None:
    if ext is None:
        return None
    normalized = ext.lower().lstrip(".")
    if normalized not in CONTENT_TYPES:
        raise ValueError(
            ErrorMessages.UNKNOWN_EXTENSION.format(ext, ", ".join(SUPPORTED_EXTENSIONS))
        )
    return normalized


def register_tile_tools(mcp, service):
    """Register tile retrieval tools with the MCP server."""

    @mcp.tool()
    async def tile_get(
        z: int | str,
        x: int | str,
        y: int | str,
        ext: str | None = None,
        scheme: str = DEFAULT_SCHEME,
        if_none_match: str | None = None,
        output_mode: str = "json",
    ) -> str:
        """Fetch a map tile by zoom level, column and row.

        Returns the tile bytes base64-encoded with content type and an ETag.
        Pass a previously returned ETag as if_none_match to get a 304
        (not modified) response without the bytes.

        Args:
            z: Zoom level (0 to the server's max zoom)
            x: Tile column, 0 to 2^z - 1
            y: Tile row, 0 to 2^z - 1
            ext: Requested file extension (png, jpg, webp, pbf, ...) used for
                the response content type; defaults to the stored format
            scheme: Row origin: "xyz" (row 0 at top, default) or "tms" (row 0 at bottom)
            if_none_match: ETag(s) from an earlier response
            output_mode: "json" for structured data, "text" for human-readable summary

        Returns:
            Tile payload and headers, or an error with status 400/404/500
        """
        try:
            key = service.parse_key(z, x, y, scheme=scheme)
            extension = _normalize_extension(ext)
        except ValueError as e:
            logger.info(f"tile_get rejected {z}/{x}/{y}: {e}")
            return format_response(
                ErrorResponse(error=str(e), status=HTTPStatus.BAD_REQUEST), output_mode
            )

        try:
            tile = await service.resolve(key)
        except TileNotFound as e:
            return format_response(
                ErrorResponse(error=str(e), status=HTTPStatus.NOT_FOUND), output_mode
            )
        except StorageError as e:
            logger.error(f"tile_get failed for {key}: {e}")
            return format_response(
                ErrorResponse(error=str(e), status=HTTPStatus.SERVER_ERROR), output_mode
            )
        except Exception as e:
            logger.error(f"tile_get failed for {key}: {e}")
            return format_response(
                ErrorResponse(
                    error=ErrorMessages.INTERNAL_ERROR.format(key),
                    status=HTTPStatus.SERVER_ERROR,
                ),
                output_mode,
            )

        content_type = CONTENT_TYPES[extension] if extension else tile.content_type

        if etag_matches(if_none_match, tile.etag):
            response = TileResponse(
                status=HTTPStatus.NOT_MODIFIED,
                z=key.zoom,
                x=key.column,
                y=key.row,
                content_type=content_type,
                etag=tile.etag,
                size_bytes=tile.size_bytes,
                cache_control=TILE_CACHE_CONTROL,
                data=None,
                message=SuccessMessages.TILE_NOT_MODIFIED.format(key),
            )
            return format_response(response, output_mode)

        logger.debug(f"Serving tile {key} ({tile.size_bytes} bytes)")
        response = TileResponse(
            status=HTTPStatus.OK,
            z=key.zoom,
            x=key.column,
            y=key.row,
            content_type=content_type,
            etag=tile.etag,
            size_bytes=tile.size_bytes,
            cache_control=TILE_CACHE_CONTROL,
            data=base64.b64encode(tile.data).decode("ascii"),
            message=SuccessMessages.TILE_SERVED.format(key, tile.size_bytes, content_type),
        )
        return format_response(response, output_mode)
