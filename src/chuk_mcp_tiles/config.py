"""
Service configuration.

TileServiceConfig is built once at startup (from environment variables, then
CLI overrides) and treated as immutable by every component.
"""

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import (
    ALL_BACKENDS,
    CACHE_CAPACITY_BYTES,
    DEFAULT_BACKEND,
    DEFAULT_EXTENSION,
    DEFAULT_FETCH_TIMEOUT_S,
    DEFAULT_MAX_ZOOM,
    DEFAULT_PATH_TEMPLATE,
    DEFAULT_TILES_ROOT,
    MAX_SUPPORTED_ZOOM,
    EnvVar,
    ErrorMessages,
)
from .core.storage import validate_template

logger = logging.getLogger(__name__)


class TileServiceConfig(BaseModel):
    """Immutable configuration consumed by the tile core."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    tiles_root_path: Path = Field(
        Path(DEFAULT_TILES_ROOT),
        description="Tiles directory (filesystem) or archive file (mbtiles)",
    )
    path_template: str = Field(
        DEFAULT_PATH_TEMPLATE, description="Relative tile path with {z}, {x}, {y}, {ext}"
    )
    tile_extension: str = Field(DEFAULT_EXTENSION, description="Stored tile file extension")
    backend: str = Field(DEFAULT_BACKEND, description="Storage backend kind")
    max_zoom: int = Field(DEFAULT_MAX_ZOOM, ge=0, le=MAX_SUPPORTED_ZOOM)
    cache_capacity_bytes: int = Field(CACHE_CAPACITY_BYTES, ge=0)
    cache_entry_ttl: float | None = Field(None, gt=0, description="Seconds before expiry")
    cache_sweep_interval: float | None = Field(
        None, gt=0, description="Seconds between expired-entry sweeps"
    )
    fetch_timeout: float | None = Field(
        DEFAULT_FETCH_TIMEOUT_S, gt=0, description="Seconds a request waits on a backend read"
    )

    @field_validator("path_template")
    @classmethod
    def _check_template(cls, value: str) -> str:
        return validate_template(value)

    @field_validator("tile_extension")
    @classmethod
    def _strip_extension(cls, value: str) -> str:
        return value.strip().lstrip(".").lower()

    @field_validator("backend")
    @classmethod
    def _check_backend(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in ALL_BACKENDS:
            raise ValueError(ErrorMessages.UNKNOWN_BACKEND.format(value, ", ".join(ALL_BACKENDS)))
        return value


_ENV_FIELDS = {
    EnvVar.TILES_ROOT_PATH: "tiles_root_path",
    EnvVar.TILES_PATH_TEMPLATE: "path_template",
    EnvVar.TILES_EXTENSION: "tile_extension",
    EnvVar.TILES_BACKEND: "backend",
    EnvVar.TILES_MAX_ZOOM: "max_zoom",
    EnvVar.TILES_CACHE_CAPACITY_BYTES: "cache_capacity_bytes",
    EnvVar.TILES_CACHE_TTL_SECONDS: "cache_entry_ttl",
    EnvVar.TILES_CACHE_SWEEP_SECONDS: "cache_sweep_interval",
    EnvVar.TILES_FETCH_TIMEOUT_SECONDS: "fetch_timeout",
}

# Values that switch an optional setting off
_DISABLED = {"", "none", "off", "0"}
_OPTIONAL_FIELDS = {"cache_entry_ttl", "cache_sweep_interval", "fetch_timeout"}


def load_config(environ: Mapping[str, str] | None = None, **overrides) -> TileServiceConfig:
    """Build a TileServiceConfig from environment variables.

    Args:
        environ: Mapping to read from (defaults to os.environ)
        **overrides: Field values that take precedence (e.g. from the CLI);
            None values are ignored

    Returns:
        Validated configuration

    Raises:
        pydantic.ValidationError: if a value is malformed
    """
    env = os.environ if environ is None else environ
    values: dict[str, object] = {}
    for var, field in _ENV_FIELDS.items():
        raw = env.get(var)
        if raw is None:
            continue
        if field in _OPTIONAL_FIELDS and raw.strip().lower() in _DISABLED:
            values[field] = None
        else:
            values[field] = raw
    values.update({k: v for k, v in overrides.items() if v is not None})

    config = TileServiceConfig(**values)
    logger.debug(f"Loaded tile configuration: {config.model_dump()}")
    return config
