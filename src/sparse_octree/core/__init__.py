"""
Core module: storage interface, error types and the Octree facade.
"""

from sparse_octree.core.errors import (
    OctreeError,
    InvalidDepthError,
    OutOfBoundsError,
    NotFoundError,
    ArenaCapacityError,
    InvalidHandleError,
    PayloadError,
)
from sparse_octree.core.interfaces import NodeStore
from sparse_octree.core.octree import Octree, OctreeConfig

__all__ = [
    "OctreeError",
    "InvalidDepthError",
    "OutOfBoundsError",
    "NotFoundError",
    "ArenaCapacityError",
    "InvalidHandleError",
    "PayloadError",
    "NodeStore",
    "Octree",
    "OctreeConfig",
]
