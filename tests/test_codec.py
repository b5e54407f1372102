"""
Tests for the coordinate codec.

Validates:
- Selector packing order (x high bit, z low bit, root level first)
- Bounds and type checking of coordinates
- Depth validation
- Batch encoding agrees with single encoding
- Prefix sharing of nearby coordinates
"""

import numpy as np
import pytest

from sparse_octree.core.errors import InvalidDepthError, OutOfBoundsError
from sparse_octree.tree.codec import (
    MAX_DEPTH,
    decode,
    encode,
    encode_many,
    shared_prefix_length,
    validate_coordinate,
    validate_depth,
)


class TestEncode:
    """Single-coordinate encoding."""

    def test_origin_is_all_zero_selectors(self):
        path = encode((0, 0, 0), 16)
        assert path.dtype == np.uint8
        assert path.shape == (16,)
        assert np.all(path == 0)

    def test_selector_bit_layout(self):
        """At depth 1 the single selector is (x << 2) | (y << 1) | z."""
        assert encode((1, 0, 0), 1).tolist() == [4]
        assert encode((0, 1, 0), 1).tolist() == [2]
        assert encode((0, 0, 1), 1).tolist() == [1]
        assert encode((1, 1, 1), 1).tolist() == [7]

    def test_most_significant_level_first(self):
        # x = 0b10, y = 0b01, z = 0b11 at depth 2
        path = encode((2, 1, 3), 2)
        assert path.tolist() == [0b101, 0b011]

    def test_decode_inverts_encode(self):
        for coord in [(0, 0, 0), (12, 10, 6), (65535, 0, 32768), (1, 2, 3)]:
            assert decode(encode(coord, 16)) == coord

    def test_numpy_integer_components_accepted(self):
        coord = np.array([3, 5, 7], dtype=np.int32)
        assert decode(encode(coord, 4)) == (3, 5, 7)


class TestValidation:
    """Bounds, type and depth checks."""

    def test_component_at_side_length_is_out_of_bounds(self):
        with pytest.raises(OutOfBoundsError) as info:
            encode((2, 0, 0), 1)
        assert info.value.coordinate == (2, 0, 0)
        assert info.value.depth == 1

    def test_negative_component_is_out_of_bounds(self):
        with pytest.raises(OutOfBoundsError):
            validate_coordinate((0, -1, 0), 8)

    def test_out_of_bounds_is_an_index_error(self):
        with pytest.raises(IndexError):
            validate_coordinate((0, 0, 256), 8)

    def test_largest_valid_coordinate(self):
        assert validate_coordinate((255, 255, 255), 8) == (255, 255, 255)

    @pytest.mark.parametrize("coord", [(1.0, 0, 0), (True, 0, 0), (0, 0), (0, 0, 0, 0), 5])
    def test_malformed_coordinates_raise_type_error(self, coord):
        with pytest.raises(TypeError):
            validate_coordinate(coord, 4)

    @pytest.mark.parametrize("depth", [0, -1, MAX_DEPTH + 1, 2.0, True, "16"])
    def test_invalid_depths(self, depth):
        with pytest.raises(InvalidDepthError):
            validate_depth(depth)

    def test_valid_depth_bounds(self):
        assert validate_depth(1) == 1
        assert validate_depth(MAX_DEPTH) == MAX_DEPTH
        assert validate_depth(np.int64(16)) == 16

    def test_invalid_depth_is_a_value_error(self):
        with pytest.raises(ValueError):
            validate_depth(0)


class TestEncodeMany:
    """Batch encoding through the numba kernel."""

    def test_matches_single_encoding(self):
        rng = np.random.default_rng(7)
        coords = rng.integers(0, 1 << 10, size=(50, 3))
        paths = encode_many(coords, 10)
        assert paths.shape == (50, 10)
        for row, coord in enumerate(coords):
            np.testing.assert_array_equal(paths[row], encode(coord, 10))

    def test_reports_first_bad_row(self):
        coords = np.array([[0, 0, 0], [1, 1, 1], [0, 9, 0], [-1, 0, 0]])
        with pytest.raises(OutOfBoundsError) as info:
            encode_many(coords, 3)
        assert info.value.row == 2
        assert info.value.coordinate == (0, 9, 0)

    def test_unsigned_overflow_is_rejected(self):
        coords = np.array([[0, 0, np.iinfo(np.uint64).max]], dtype=np.uint64)
        with pytest.raises(OutOfBoundsError):
            encode_many(coords, 21)

    def test_empty_batch(self):
        assert encode_many([], 5).shape == (0, 5)

    def test_rejects_float_and_bad_shape(self):
        with pytest.raises(TypeError):
            encode_many(np.zeros((2, 3), dtype=np.float64), 4)
        with pytest.raises(ValueError):
            encode_many(np.zeros((2, 2), dtype=np.int64), 4)


class TestPrefixSharing:
    """Nearby coordinates share high-order path prefixes."""

    def test_neighbours_share_all_but_last_level(self):
        a = encode((0, 0, 0), 16)
        b = encode((1, 0, 0), 16)
        assert shared_prefix_length(a, b) == 15

    def test_far_coordinates_diverge_at_root(self):
        a = encode((0, 0, 0), 16)
        b = encode((1 << 15, 0, 0), 16)
        assert shared_prefix_length(a, b) == 0

    def test_identical_and_empty(self):
        a = encode((12, 10, 6), 8)
        assert shared_prefix_length(a, a) == 8
        assert shared_prefix_length([], a) == 0
        # high four bits of 12, 10 and 6 are all zero
        assert shared_prefix_length([0, 0], a) == 2
