"""
Tile addressing.

A TileKey is the canonical (XYZ, row 0 at the top) zoom/column/row triple.
Construction is the only validation point; every other component trusts it.
"""

import re
from dataclasses import dataclass

from ..constants import (
    ALL_SCHEMES,
    DEFAULT_MAX_ZOOM,
    MAX_SUPPORTED_ZOOM,
    ErrorMessages,
    TileScheme,
)
from .errors import InvalidCoordinate

_INTEGER_RE = re.compile(r"-?\d+")


@dataclass(frozen=True, order=True)
class TileKey:
    """Validated zoom/column/row triple."""

    zoom: int
    column: int
    row: int

    def __post_init__(self) -> None:
        for name in ("zoom", "column", "row"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidCoordinate(ErrorMessages.NOT_AN_INTEGER.format(name, value))
        if self.zoom < 0:
            raise InvalidCoordinate(ErrorMessages.NEGATIVE_ZOOM.format(self.zoom))
        if self.zoom > MAX_SUPPORTED_ZOOM:
            raise InvalidCoordinate(
                ErrorMessages.ZOOM_TOO_LARGE.format(self.zoom, MAX_SUPPORTED_ZOOM)
            )
        extent = 1 << self.zoom
        if not 0 <= self.column < extent:
            raise InvalidCoordinate(
                ErrorMessages.COLUMN_OUT_OF_RANGE.format(self.column, extent, self.zoom)
            )
        if not 0 <= self.row < extent:
            raise InvalidCoordinate(
                ErrorMessages.ROW_OUT_OF_RANGE.format(self.row, extent, self.zoom)
            )

    @classmethod
    def parse(
        cls,
        zoom: str | int,
        column: str | int,
        row: str | int,
        max_zoom: int = DEFAULT_MAX_ZOOM,
    ) -> "TileKey":
        """Build a key from raw path segments.

        Args:
            zoom: Zoom level segment
            column: Column (x) segment
            row: Row (y) segment, already in the canonical XYZ scheme
            max_zoom: Highest zoom level the deployment serves

        Returns:
            Validated TileKey

        Raises:
            InvalidCoordinate: on non-integer input or out-of-range values
        """
        z = _to_int("zoom", zoom)
        if z > max_zoom:
            raise InvalidCoordinate(ErrorMessages.ZOOM_TOO_LARGE.format(z, max_zoom))
        return cls(z, _to_int("column", column), _to_int("row", row))

    @property
    def extent(self) -> int:
        """Number of tiles along each axis at this zoom."""
        return 1 << self.zoom

    @property
    def tms_row(self) -> int:
        """Row index in the TMS scheme (row 0 at the bottom)."""
        return flip_row(self.zoom, self.row)

    def __str__(self) -> str:
        return f"{self.zoom}/{self.column}/{self.row}"


def _to_int(name: str, value: str | int) -> int:
    if isinstance(value, bool):
        raise InvalidCoordinate(ErrorMessages.NOT_AN_INTEGER.format(name, value))
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _INTEGER_RE.fullmatch(value.strip()):
        try:
            return int(value.strip())
        except ValueError as e:
            # Digit strings past the interpreter's int conversion limit
            raise InvalidCoordinate(ErrorMessages.NOT_AN_INTEGER.format(name, value)) from e
    raise InvalidCoordinate(ErrorMessages.NOT_AN_INTEGER.format(name, value))


def flip_row(zoom: int, row: int) -> int:
    """Convert a row between the XYZ and TMS schemes (the flip is its own inverse)."""
    return (1 << zoom) - 1 - row


def normalize_row(zoom: int, row: int, scheme: str = TileScheme.XYZ) -> int:
    """Return the canonical XYZ row for a row expressed in ``scheme``."""
    scheme = scheme.lower()
    if scheme == TileScheme.XYZ:
        return row
    if scheme == TileScheme.TMS:
        return flip_row(zoom, row)
    raise InvalidCoordinate(ErrorMessages.UNKNOWN_SCHEME.format(scheme, ", ".join(ALL_SCHEMES)))
