"""
Discovery tools — server status and capabilities.

These tools perform no storage I/O and describe the running tile server:
configuration, cache statistics, and supported formats.
"""

import logging

from ...constants import (
    ALL_BACKENDS,
    ALL_SCHEMES,
    DEFAULT_PATH_TEMPLATE,
    SUPPORTED_EXTENSIONS,
    ServerConfig,
    SuccessMessages,
)
from ...models.responses import (
    CacheStatsInfo,
    CapabilitiesResponse,
    ErrorResponse,
    StatusResponse,
    format_response,
)

logger = logging.getLogger(__name__)

TOOL_NAMES = ["tile_get", "tile_status", "tile_capabilities"]
TOOL_COUNT = len(TOOL_NAMES)


def register_discovery_tools(mcp, service):
    """Register discovery tools with the MCP server."""

    @mcp.tool()
    async def tile_status(output_mode: str = "json") -> str:
        """Get server status including storage backend, cache usage and in-flight reads.

        Args:
            output_mode: "json" for structured data, "text" for human-readable summary

        Returns:
            Server status and cache statistics
        """
        try:
            stats = service.stats()
            cache = CacheStatsInfo(**{k: v for k, v in stats.items() if k != "backend"})
            tiles_root = service.config.tiles_root_path if service.config is not None else ""

            response = StatusResponse(
                server=ServerConfig.NAME,
                version=ServerConfig.VERSION,
                backend=stats["backend"],
                tiles_root=str(tiles_root),
                max_zoom=service.max_zoom,
                cache=cache,
                message=SuccessMessages.STATUS.format(
                    ServerConfig.VERSION, stats["backend"], cache.entries
                ),
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"tile_status failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)

    @mcp.tool()
    async def tile_capabilities(output_mode: str = "json") -> str:
        """Get full server capabilities: tile formats, row schemes, zoom range and tools.

        Args:
            output_mode: "json" for structured data, "text" for human-readable summary

        Returns:
            Complete server capabilities
        """
        try:
            template = (
                service.config.path_template
                if service.config is not None
                else DEFAULT_PATH_TEMPLATE
            )

            response = CapabilitiesResponse(
                server=ServerConfig.NAME,
                version=ServerConfig.VERSION,
                backends=ALL_BACKENDS,
                active_backend=service.backend.name,
                formats=SUPPORTED_EXTENSIONS,
                schemes=ALL_SCHEMES,
                max_zoom=service.max_zoom,
                path_template=template,
                tools=TOOL_NAMES,
                tool_count=TOOL_COUNT,
                llm_guidance=(
                    "Use tile_get with z/x/y to fetch a tile; bytes come back base64-encoded. "
                    "Rows default to the XYZ scheme (row 0 at the top); pass scheme='tms' "
                    "for bottom-origin rows. Send the returned etag as if_none_match to "
                    "skip unchanged tiles (status 304). Use tile_status to inspect cache usage."
                ),
                message=SuccessMessages.CAPABILITIES.format(ServerConfig.NAME, ServerConfig.VERSION),
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"tile_capabilities failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)
