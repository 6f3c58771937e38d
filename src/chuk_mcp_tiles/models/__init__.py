"""Response models for chuk-mcp-tiles."""

from .responses import (
    CacheStatsInfo,
    CapabilitiesResponse,
    ErrorResponse,
    StatusResponse,
    TileResponse,
    format_response,
)

__all__ = [
    "ErrorResponse",
    "TileResponse",
    "CacheStatsInfo",
    "StatusResponse",
    "CapabilitiesResponse",
    "format_response",
]
