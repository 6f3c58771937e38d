"""
Response models for chuk-mcp-tiles tools.

All tool responses are Pydantic models for type safety and consistent API.
"""

from pydantic import BaseModel, ConfigDict, Field

from ..constants import HTTPStatus


def format_response(model: BaseModel, output_mode: str = "json") -> str:
    """Format a response model as JSON or human-readable text.

    Args:
        model: Pydantic response model instance
        output_mode: "json" (default) or "text"

    Returns:
        Formatted string
    """
    if output_mode == "text" and hasattr(model, "to_text"):
        return str(model.to_text())
    return str(model.model_dump_json())


class ErrorResponse(BaseModel):
    """Error response model for tool failures."""

    model_config = ConfigDict(extra="forbid")

    error: str = Field(..., description="Error message describing what went wrong")
    status: int = Field(
        HTTPStatus.SERVER_ERROR, description="HTTP-equivalent status (400, 404 or 500)"
    )

    def to_text(self) -> str:
        return f"Error ({self.status}): {self.error}"


class TileResponse(BaseModel):
    """Response model for a tile request (200 with data, or 304 without)."""

    model_config = ConfigDict(extra="forbid")

    status: int = Field(..., description="HTTP-equivalent status (200 or 304)")
    z: int = Field(..., description="Zoom level", ge=0)
    x: int = Field(..., description="Tile column", ge=0)
    y: int = Field(..., description="Tile row in the canonical XYZ scheme", ge=0)
    content_type: str = Field(..., description="MIME type of the tile payload")
    etag: str = Field(..., description="Cache validator for conditional requests")
    size_bytes: int = Field(..., description="Payload size in bytes", ge=0)
    cache_control: str = Field(..., description="Suggested Cache-Control header")
    data: str | None = Field(None, description="Base64-encoded tile bytes (omitted on 304)")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        lines = [
            self.message,
            f"Tile: {self.z}/{self.x}/{self.y}",
            f"Status: {self.status}",
            f"Content-Type: {self.content_type}",
            f"ETag: {self.etag}",
            f"Size: {self.size_bytes} bytes",
        ]
        return "\n".join(lines)


class CacheStatsInfo(BaseModel):
    """Tile cache and fetch coordinator counters."""

    model_config = ConfigDict(extra="forbid")

    entries: int = Field(..., description="Cached tiles", ge=0)
    total_bytes: int = Field(..., description="Bytes held by the cache", ge=0)
    capacity_bytes: int = Field(..., description="Configured cache capacity", ge=0)
    hits: int = Field(..., ge=0)
    misses: int = Field(..., ge=0)
    hit_ratio: float = Field(..., ge=0, le=1)
    evictions: int = Field(..., ge=0)
    expirations: int = Field(..., ge=0)
    rejected: int = Field(..., description="Tiles too large to cache", ge=0)
    in_flight: int = Field(..., description="Backend reads currently outstanding", ge=0)
    backend_fetches: int = Field(..., description="Backend reads started", ge=0)
    coalesced: int = Field(..., description="Requests that joined an in-flight read", ge=0)
    failures: int = Field(..., ge=0)
    timeouts: int = Field(..., ge=0)

    def to_text(self) -> str:
        used_mb = self.total_bytes / (1024 * 1024)
        cap_mb = self.capacity_bytes / (1024 * 1024)
        return (
            f"{self.entries} tiles, {used_mb:.1f}/{cap_mb:.1f} MB, "
            f"hit ratio {self.hit_ratio:.1%}, {self.in_flight} in flight, "
            f"{self.coalesced} coalesced"
        )


class StatusResponse(BaseModel):
    """Response model for server status."""

    model_config = ConfigDict(extra="forbid")

    server: str = Field(..., description="Server name")
    version: str = Field(..., description="Server version")
    backend: str = Field(..., description="Storage backend kind")
    tiles_root: str = Field(..., description="Tiles directory or archive path")
    max_zoom: int = Field(..., description="Highest zoom served", ge=0)
    cache: CacheStatsInfo = Field(..., description="Cache statistics")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        lines = [
            f"{self.server} v{self.version}",
            f"Backend: {self.backend} ({self.tiles_root})",
            f"Max zoom: {self.max_zoom}",
            f"Cache: {self.cache.to_text()}",
        ]
        return "\n".join(lines)


class CapabilitiesResponse(BaseModel):
    """Response model for full server capabilities."""

    model_config = ConfigDict(extra="forbid")

    server: str = Field(..., description="Server name")
    version: str = Field(..., description="Server version")
    backends: list[str] = Field(..., description="Available storage backends")
    active_backend: str = Field(..., description="Backend in use")
    formats: list[str] = Field(..., description="Supported tile extensions")
    schemes: list[str] = Field(..., description="Accepted row-origin schemes")
    max_zoom: int = Field(..., description="Highest zoom served", ge=0)
    path_template: str = Field(..., description="Tile path template under the root")
    tools: list[str] = Field(..., description="Registered tool names")
    tool_count: int = Field(..., description="Number of available tools", ge=0)
    llm_guidance: str = Field(..., description="LLM-friendly usage guidance")
    message: str = Field(..., description="Operation result message")

    def to_text(self) -> str:
        lines = [
            f"{self.server} v{self.version}",
            f"Backend: {self.active_backend} (available: {', '.join(self.backends)})",
            f"Formats: {', '.join(self.formats)}",
            f"Schemes: {', '.join(self.schemes)}",
            f"Max zoom: {self.max_zoom}",
            f"Path template: {self.path_template}",
            f"Tools: {self.tool_count} ({', '.join(self.tools)})",
            "",
            f"Guidance: {self.llm_guidance}",
        ]
        return "\n".join(lines)
