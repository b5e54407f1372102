"""
Coordinate codec: integer (x, y, z) coordinates to octant paths.

A tree of depth d covers the cube [0, 2^d)^3. The path of a coordinate is
one 3-bit octant selector per level, root first; the selector at level k
is built from bit (d-1-k) of each axis:

    selector = (bit_x << 2) | (bit_y << 1) | bit_z

Coordinates that agree in their high-order bits therefore share a path
prefix, which is what lets a NodeLoc reuse part of its cached walk.
"""

import operator
from typing import Sequence, Tuple

import numpy as np
import numpy.typing as npt
from numba import njit

from sparse_octree.core.errors import InvalidDepthError, OutOfBoundsError

MIN_DEPTH = 1
MAX_DEPTH = 21  # 3 * 21 = 63 bits: a full path packs into a signed 64-bit code
N_OCTANTS = 8

Coordinate = Tuple[int, int, int]
OctantPath = npt.NDArray[np.uint8]


@njit
def _encode_paths(coords, depth):
    """Encode an (N, 3) int64 array into an (N, depth) uint8 selector array."""
    n = coords.shape[0]
    paths = np.empty((n, depth), dtype=np.uint8)
    for i in range(n):
        x = coords[i, 0]
        y = coords[i, 1]
        z = coords[i, 2]
        for level in range(depth):
            shift = depth - 1 - level
            paths[i, level] = (
                (((x >> shift) & 1) << 2)
                | (((y >> shift) & 1) << 1)
                | ((z >> shift) & 1)
            )
    return paths


@njit
def _first_out_of_bounds(coords, side):
    """Index of the first row with a component outside [0, side), or -1."""
    for i in range(coords.shape[0]):
        for k in range(3):
            c = coords[i, k]
            if c < 0 or c >= side:
                return i
    return -1


def validate_depth(depth) -> int:
    """Return depth as an int, raising InvalidDepthError if unsupported."""
    if isinstance(depth, (bool, np.bool_)):
        raise InvalidDepthError(depth, MAX_DEPTH)
    try:
        value = operator.index(depth)
    except TypeError:
        raise InvalidDepthError(depth, MAX_DEPTH) from None
    if not MIN_DEPTH <= value <= MAX_DEPTH:
        raise InvalidDepthError(depth, MAX_DEPTH)
    return value


def validate_coordinate(coord: Sequence[int], depth: int) -> Coordinate:
    """
    Check that coord is a 3-component integer coordinate inside the cube.

    Parameters
    ----------
    coord : sequence of 3 ints
        Python or numpy integers. Floats and bools are rejected.
    depth : int
        Tree depth; the cube side is 2**depth.

    Returns
    -------
    coordinate : tuple of 3 ints

    Raises
    ------
    TypeError
        If coord is not three integers.
    OutOfBoundsError
        If any component is negative or >= 2**depth.
    """
    try:
        x, y, z = coord
    except (TypeError, ValueError):
        raise TypeError(
            f"coordinate must be a sequence of three integers, got {coord!r}"
        ) from None

    components = []
    for c in (x, y, z):
        if isinstance(c, (bool, np.bool_)):
            raise TypeError(f"coordinate components must be integers, got {c!r}")
        try:
            components.append(operator.index(c))
        except TypeError:
            raise TypeError(
                f"coordinate components must be integers, got {c!r}"
            ) from None

    side = 1 << depth
    if any(c < 0 or c >= side for c in components):
        raise OutOfBoundsError(components, depth)
    return (components[0], components[1], components[2])


def encode(coord: Sequence[int], depth: int) -> OctantPath:
    """Return the octant path of coord, root level first."""
    x, y, z = validate_coordinate(coord, depth)
    shifts = np.arange(depth - 1, -1, -1, dtype=np.int64)
    axes = np.array((x, y, z), dtype=np.int64)
    bits = (axes[:, None] >> shifts) & 1
    return ((bits[0] << 2) | (bits[1] << 1) | bits[2]).astype(np.uint8)


def encode_many(coords, depth: int) -> npt.NDArray[np.uint8]:
    """
    Encode a batch of coordinates.

    Parameters
    ----------
    coords : array-like, shape (N, 3)
        Integer coordinates.
    depth : int
        Tree depth.

    Returns
    -------
    paths : ndarray of uint8, shape (N, depth)

    Raises
    ------
    OutOfBoundsError
        For the first row outside the cube; nothing is encoded in that case.
    """
    arr = np.asarray(coords)
    if arr.size == 0:
        return np.empty((0, depth), dtype=np.uint8)
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise ValueError(f"coords must have shape (N, 3), got {arr.shape}")
    if arr.dtype.kind not in "iu":
        raise TypeError(f"coords must be an integer array, got dtype {arr.dtype}")

    side = 1 << depth
    if arr.dtype.kind == "u":
        # Large unsigned values would wrap on the int64 cast below
        too_big = np.flatnonzero(np.any(arr >= side, axis=1))
        if too_big.size:
            row = int(too_big[0])
            raise OutOfBoundsError([int(c) for c in arr[row]], depth, row=row)

    arr = np.ascontiguousarray(arr, dtype=np.int64)
    bad = _first_out_of_bounds(arr, side)
    if bad >= 0:
        raise OutOfBoundsError([int(c) for c in arr[bad]], depth, row=int(bad))
    return _encode_paths(arr, depth)


def decode(path) -> Coordinate:
    """Inverse of encode: rebuild (x, y, z) from an octant path."""
    selectors = np.asarray(path, dtype=np.int64)
    depth = len(selectors)
    if depth == 0:
        return (0, 0, 0)
    weights = np.int64(1) << np.arange(depth - 1, -1, -1, dtype=np.int64)
    x = int(np.sum(((selectors >> 2) & 1) * weights))
    y = int(np.sum(((selectors >> 1) & 1) * weights))
    z = int(np.sum((selectors & 1) * weights))
    return (x, y, z)


def shared_prefix_length(a, b) -> int:
    """Number of leading selectors a and b have in common."""
    n = min(len(a), len(b))
    if n == 0:
        return 0
    diff = np.flatnonzero(np.asarray(a[:n]) != np.asarray(b[:n]))
    return int(diff[0]) if diff.size else n
