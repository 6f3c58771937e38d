#!/usr/bin/env python3
"""
Async Tile MCP Server using chuk-mcp-server

Serves pre-existing map tiles from a tiles directory or MBTiles archive
through a shared TileService (LRU cache + coalesced backend reads).
"""

import logging

from chuk_mcp_server import ChukMCPServer

from .config import TileServiceConfig, load_config
from .constants import ServerConfig
from .core.tile_service import TileService
from .tools.discovery import register_discovery_tools
from .tools.tiles import register_tile_tools

logger = logging.getLogger(__name__)


def build_server(config: TileServiceConfig | None = None) -> tuple[ChukMCPServer, TileService]:
    """Create the MCP server instance and the tile service behind it."""
    config = config if config is not None else load_config()

    mcp = ChukMCPServer(ServerConfig.NAME)
    service = TileService.from_config(config)

    # Register all tool modules
    register_tile_tools(mcp, service)
    register_discovery_tools(mcp, service)

    return mcp, service


# Run the server
if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    mcp, service = build_server()
    logger.info("Starting Tile MCP Server...")
    try:
        mcp.run(stdio=True)
    finally:
        service.close()
