"""
Tests for TileKey construction, parsing and scheme normalization.
"""

import pytest

from chuk_mcp_tiles.constants import MAX_SUPPORTED_ZOOM
from chuk_mcp_tiles.core.errors import InvalidCoordinate
from chuk_mcp_tiles.core.tile_key import TileKey, flip_row, normalize_row


class TestConstruction:
    """Tests for TileKey(zoom, column, row)."""

    @pytest.mark.parametrize("zoom", [0, 1, 5, 12, 18])
    def test_corners_valid(self, zoom):
        last = 2**zoom - 1
        for column, row in [(0, 0), (last, 0), (0, last), (last, last)]:
            key = TileKey(zoom, column, row)
            assert (key.zoom, key.column, key.row) == (zoom, column, row)

    def test_column_out_of_range(self):
        with pytest.raises(InvalidCoordinate, match="Column 40"):
            TileKey(5, 40, 12)

    def test_row_out_of_range(self):
        with pytest.raises(InvalidCoordinate, match="Row 32"):
            TileKey(5, 10, 32)

    def test_negative_column(self):
        with pytest.raises(InvalidCoordinate):
            TileKey(5, -1, 12)

    def test_negative_zoom(self):
        with pytest.raises(InvalidCoordinate, match="Zoom must be >= 0"):
            TileKey(-1, 0, 0)

    def test_zoom_above_supported_ceiling(self):
        with pytest.raises(InvalidCoordinate):
            TileKey(MAX_SUPPORTED_ZOOM + 1, 0, 0)

    def test_zoom_zero_only_has_one_tile(self):
        TileKey(0, 0, 0)
        with pytest.raises(InvalidCoordinate):
            TileKey(0, 1, 0)

    def test_rejects_bool(self):
        with pytest.raises(InvalidCoordinate):
            TileKey(True, 0, 0)

    def test_rejects_float(self):
        with pytest.raises(InvalidCoordinate):
            TileKey(5, 10.0, 12)

    def test_invalid_coordinate_is_value_error(self):
        with pytest.raises(ValueError):
            TileKey(5, 40, 12)


class TestValueSemantics:
    """Equality, hashing and immutability."""

    def test_equal_triples_are_equal(self):
        assert TileKey(5, 10, 12) == TileKey(5, 10, 12)

    def test_hash_matches(self):
        assert hash(TileKey(5, 10, 12)) == hash(TileKey(5, 10, 12))
        assert len({TileKey(5, 10, 12), TileKey(5, 10, 12), TileKey(5, 10, 13)}) == 2

    def test_immutable(self):
        key = TileKey(5, 10, 12)
        with pytest.raises(AttributeError):
            key.zoom = 6

    def test_str(self):
        assert str(TileKey(5, 10, 12)) == "5/10/12"

    def test_extent(self):
        assert TileKey(5, 0, 0).extent == 32

    def test_ordering(self):
        assert sorted([TileKey(5, 1, 0), TileKey(4, 3, 3)])[0] == TileKey(4, 3, 3)


class TestParse:
    """Tests for TileKey.parse()."""

    def test_string_segments(self):
        assert TileKey.parse("5", "10", "12") == TileKey(5, 10, 12)

    def test_int_segments(self):
        assert TileKey.parse(5, 10, 12) == TileKey(5, 10, 12)

    def test_whitespace_tolerated(self):
        assert TileKey.parse(" 5", "10 ", "12") == TileKey(5, 10, 12)

    @pytest.mark.parametrize("bad", ["abc", "1.5", "", "5a", "0x10", None, 1.0])
    def test_non_integer_rejected(self, bad):
        with pytest.raises(InvalidCoordinate, match="must be an integer"):
            TileKey.parse(bad, "0", "0")

    def test_oversized_digit_string_rejected(self):
        with pytest.raises(InvalidCoordinate):
            TileKey.parse("5", "1" * 5000, "0")

    def test_bool_rejected(self):
        with pytest.raises(InvalidCoordinate):
            TileKey.parse("5", True, "0")

    def test_negative_zoom_string(self):
        with pytest.raises(InvalidCoordinate, match="Zoom must be >= 0"):
            TileKey.parse("-1", "0", "0")

    def test_zoom_above_configured_max(self):
        with pytest.raises(InvalidCoordinate, match="exceeds maximum zoom 10"):
            TileKey.parse("11", "0", "0", max_zoom=10)

    def test_zoom_at_configured_max(self):
        assert TileKey.parse("10", "0", "0", max_zoom=10).zoom == 10

    def test_column_out_of_range(self):
        with pytest.raises(InvalidCoordinate):
            TileKey.parse("5", "40", "12")

    def test_row_never_flipped(self):
        assert TileKey.parse("5", "10", "19").row == 19


class TestSchemes:
    """Tests for flip_row() and normalize_row()."""

    def test_flip_row(self):
        assert flip_row(5, 12) == 19
        assert flip_row(0, 0) == 0

    def test_flip_is_involution(self):
        for row in range(32):
            assert flip_row(5, flip_row(5, row)) == row

    def test_tms_row_property(self):
        assert TileKey(5, 10, 12).tms_row == 19

    def test_normalize_case_insensitive(self):
        assert normalize_row(5, 12, "TMS") == 19

    def test_normalize_xyz_unchanged(self):
        assert normalize_row(5, 12, "xyz") == 12

    def test_normalize_unknown(self):
        with pytest.raises(InvalidCoordinate, match="Unknown tile scheme"):
            normalize_row(5, 12, "quadkey")
