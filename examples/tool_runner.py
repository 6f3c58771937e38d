"""
Shared helper for running chuk-mcp-tiles MCP tools directly from Python.

Provides a ToolRunner class that registers all MCP tools against a
TileService, without requiring a full MCP transport layer. Demo scripts
use this to call tools as plain async functions.

Usage:
    from tool_runner import ToolRunner

    async def main():
        runner = ToolRunner(tiles_root_path="Tiles")
        result = await runner.run("tile_get", z=0, x=0, y=0)
        print(result["status"])
"""

from __future__ import annotations

import json
from typing import Any

from chuk_mcp_tiles.config import load_config
from chuk_mcp_tiles.core.tile_service import TileService
from chuk_mcp_tiles.tools.discovery import register_discovery_tools
from chuk_mcp_tiles.tools.tiles import register_tile_tools


class _MiniMCP:
    """Minimal MCP server that captures tools registered via @mcp.tool."""

    def __init__(self) -> None:
        self._tools: dict[str, Any] = {}

    def tool(self) -> Any:
        """Decorator factory matching @mcp.tool() usage."""

        def decorator(fn: Any) -> Any:
            self._tools[fn.__name__] = fn
            return fn

        return decorator

    def get_tool(self, name: str) -> Any:
        return self._tools[name]


class ToolRunner:
    """
    Run chuk-mcp-tiles MCP tools directly from Python.

    Keyword arguments are TileServiceConfig overrides on top of the
    TILES_* environment. Returns parsed JSON by default; use run_text()
    for human-readable output.
    """

    def __init__(self, **overrides: Any) -> None:
        self._mcp = _MiniMCP()
        self.service = TileService.from_config(load_config(**overrides))
        register_tile_tools(self._mcp, self.service)
        register_discovery_tools(self._mcp, self.service)

    @property
    def tool_names(self) -> list[str]:
        return list(self._mcp._tools.keys())

    async def run(self, tool_name: str, **kwargs: Any) -> dict[str, Any]:
        """Call a tool by name and return parsed JSON."""
        fn = self._mcp.get_tool(tool_name)
        raw = await fn(**kwargs)
        return json.loads(raw)

    async def run_text(self, tool_name: str, **kwargs: Any) -> str:
        """Call a tool by name with output_mode='text' and return plaintext."""
        fn = self._mcp.get_tool(tool_name)
        return await fn(output_mode="text", **kwargs)

    async def close(self) -> None:
        await self.service.shutdown()
