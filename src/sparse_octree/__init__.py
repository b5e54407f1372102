"""
sparse-octree: sparse integer-coordinate octree with cached traversal cursors.

Stores small fixed-size payloads at (x, y, z) in a cube of side 2^depth,
allocating nodes only along paths that hold data.
"""

__version__ = "1.0.0"
__author__ = "sparse-octree Dev Team"

from sparse_octree.core import (
    Octree,
    OctreeConfig,
    NodeStore,
    OctreeError,
    InvalidDepthError,
    OutOfBoundsError,
    NotFoundError,
    ArenaCapacityError,
    InvalidHandleError,
    PayloadError,
)
from sparse_octree.tree import NodeArena, NodeLoc, MAX_DEPTH

__all__ = [
    "Octree",
    "OctreeConfig",
    "NodeStore",
    "NodeArena",
    "NodeLoc",
    "MAX_DEPTH",
    "OctreeError",
    "InvalidDepthError",
    "OutOfBoundsError",
    "NotFoundError",
    "ArenaCapacityError",
    "InvalidHandleError",
    "PayloadError",
]
