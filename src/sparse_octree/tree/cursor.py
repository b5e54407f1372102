"""
Traversal cursor (NodeLoc) and the cached path resolution algorithm.

A NodeLoc pairs a target coordinate with the path it resolved last time:
the octant selectors and the arena handles reached at each level. When
the next operation targets the same or a nearby coordinate, the walk
restarts below the deepest level whose selector still matches instead of
at the root, so coherent access costs O(depth - shared) rather than
O(depth).

The cache is purely an optimisation. Resolution through a warm cursor
and through a fresh one always reaches the same node.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from sparse_octree.core.interfaces import NodeStore
from sparse_octree.tree.arena import NO_CHILD, ROOT
from sparse_octree.tree.codec import OctantPath, shared_prefix_length


@dataclass
class TraversalStats:
    """Counters describing how much walking the path cache saved."""

    resolutions: int = 0
    levels_reused: int = 0
    levels_walked: int = 0

    @property
    def reuse_ratio(self) -> Optional[float]:
        total = self.levels_reused + self.levels_walked
        return self.levels_reused / total if total > 0 else None

    def reset(self) -> None:
        self.resolutions = 0
        self.levels_reused = 0
        self.levels_walked = 0


class NodeLoc:
    """
    Caller-held location handle within an octree.

    Parameters
    ----------
    coordinate : sequence of 3 ints
        Target (x, y, z). Not validated here; validation happens against
        a concrete tree's depth on first use.

    Notes
    -----
    The cache records which tree it was built against. Handing the same
    NodeLoc to a different tree drops the cache before walking, so handles
    of one arena are never dereferenced in another.
    """

    def __init__(self, coordinate: Sequence[int]):
        self.target: Tuple[int, ...] = tuple(coordinate)
        self._selectors: List[int] = []
        self._handles: List[int] = []
        self._owner: Optional[int] = None
        self.stats = TraversalStats()

    @property
    def x(self) -> int:
        return self.target[0]

    @property
    def y(self) -> int:
        return self.target[1]

    @property
    def z(self) -> int:
        return self.target[2]

    @property
    def cached_path(self) -> List[Tuple[int, int]]:
        """Resolved prefix as (selector, handle) pairs, root level first."""
        return list(zip(self._selectors, self._handles))

    @property
    def cache_depth(self) -> int:
        return len(self._handles)

    def move_to(self, coordinate: Sequence[int]) -> "NodeLoc":
        """Retarget the cursor, keeping its cached path for reuse."""
        self.target = tuple(coordinate)
        return self

    def invalidate(self) -> None:
        """Forget the cached path."""
        self._selectors.clear()
        self._handles.clear()
        self._owner = None

    def _bind(self, owner: int) -> None:
        if self._owner != owner:
            self._selectors.clear()
            self._handles.clear()
            self._owner = owner

    def _truncate_to(self, path: OctantPath) -> int:
        shared = shared_prefix_length(self._selectors, path)
        del self._selectors[shared:]
        del self._handles[shared:]
        return shared

    def _push(self, selector: int, handle: int) -> None:
        self._selectors.append(selector)
        self._handles.append(handle)

    def __repr__(self) -> str:
        return f"NodeLoc(target={self.target}, cached_levels={self.cache_depth})"


def resolve(
    loc: NodeLoc,
    store: NodeStore,
    path: OctantPath,
    owner: int,
    create: bool,
    stats: Optional[TraversalStats] = None,
) -> int:
    """
    Resolve the node at the end of `path`, reusing the cursor's cache.

    Parameters
    ----------
    loc : NodeLoc
        Cursor whose cached path is reused and then replaced by the new one.
    store : NodeStore
        Arena of the tree being walked.
    path : OctantPath
        Already validated octant path of the target.
    owner : int
        Token identifying the tree; a cache built for another tree is dropped.
    create : bool
        True for insert ("ensure" mode): missing children are allocated.
        False for lookup ("find" mode): stop at the first missing child.
    stats : TraversalStats, optional
        Tree-wide counters updated alongside the cursor's own.

    Returns
    -------
    handle : int
        Handle of the resolved node, or NO_CHILD if `create` is False and
        the path is incomplete. In that case the cursor keeps the prefix it
        did resolve.
    """
    loc._bind(owner)
    shared = loc._truncate_to(path)
    handle = loc._handles[shared - 1] if shared else ROOT
    depth = len(path)

    walked = 0
    try:
        for level in range(shared, depth):
            selector = int(path[level])
            if create:
                handle = store.child_or_create(handle, selector)
            else:
                handle = store.child(handle, selector)
                if handle == NO_CHILD:
                    break
            loc._push(selector, handle)
            walked += 1
    finally:
        for counter in (loc.stats, stats):
            if counter is not None:
                counter.resolutions += 1
                counter.levels_reused += shared
                counter.levels_walked += walked
    return handle
