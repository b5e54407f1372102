"""
Exception hierarchy for sparse octree operations.

Every error raised by the package derives from OctreeError and from the
builtin exception a caller would naturally catch for the same condition,
so ``except IndexError`` keeps working for out-of-bounds coordinates.
"""

from typing import Optional, Sequence


class OctreeError(Exception):
    """Base exception for all sparse octree errors."""

    pass


class InvalidDepthError(OctreeError, ValueError):
    """Raised when an octree is constructed with an unsupported depth."""

    def __init__(self, depth, max_depth: int):
        self.depth = depth
        self.max_depth = max_depth
        super().__init__(
            f"Invalid octree depth {depth!r}: must be an integer in [1, {max_depth}]"
        )


class OutOfBoundsError(OctreeError, IndexError):
    """
    Raised when a coordinate lies outside the cube of a tree.

    Valid components satisfy ``0 <= c < 2**depth``. Raised before the
    arena or the cursor is touched.
    """

    def __init__(self, coordinate: Sequence[int], depth: int, row: Optional[int] = None):
        self.coordinate = tuple(coordinate)
        self.depth = depth
        self.row = row
        where = f" (row {row})" if row is not None else ""
        super().__init__(
            f"Coordinate {self.coordinate}{where} is out of bounds for depth {depth}: "
            f"components must lie in [0, {1 << depth})"
        )


class NotFoundError(OctreeError, LookupError):
    """Raised by lookups when no value is stored at a coordinate."""

    def __init__(self, coordinate: Sequence[int]):
        self.coordinate = tuple(coordinate)
        super().__init__(f"No value stored at {self.coordinate}")


class ArenaCapacityError(OctreeError, MemoryError):
    """Raised when the node arena would exceed its configured max_nodes."""

    def __init__(self, max_nodes: int):
        self.max_nodes = max_nodes
        super().__init__(f"Node arena exhausted: max_nodes={max_nodes}")


class InvalidHandleError(OctreeError, IndexError):
    """Raised when a handle does not name an allocated node."""

    def __init__(self, handle, n_nodes: int):
        self.handle = handle
        super().__init__(f"Invalid node handle {handle!r}: arena holds {n_nodes} nodes")


class PayloadError(OctreeError, TypeError):
    """Raised when a value cannot be stored in the tree's payload dtype."""

    pass
