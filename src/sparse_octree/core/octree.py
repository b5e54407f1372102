"""
Sparse octree facade.

The Octree owns a node arena and a fixed depth d, and maps integer
coordinates in [0, 2^d)^3 to small fixed-size payloads. Internal nodes are
allocated only along paths that have actually been inserted, so empty
regions of the cube cost nothing.

All operations go through a NodeLoc, a caller-held cursor that caches
the path it resolved last; consecutive operations on nearby coordinates
reuse the shared prefix of that path.

Design:
- Values live only at depth d (true leaves); routing nodes carry none.
- Nodes are never freed, so cached cursor handles never go stale.
- Coordinates are validated before the arena or the cursor is touched.
"""

import itertools
import warnings
from typing import Any, Dict, Optional, Sequence

import numpy as np
import numpy.typing as npt
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from sparse_octree.core.errors import NotFoundError, PayloadError
from sparse_octree.core.interfaces import NodeStore
from sparse_octree.tree.arena import NO_CHILD, NodeArena
from sparse_octree.tree.codec import (
    MAX_DEPTH,
    MIN_DEPTH,
    encode,
    encode_many,
    validate_depth,
)
from sparse_octree.tree.cursor import NodeLoc, TraversalStats, resolve

# Identifies the tree a cursor cache was built against
_tree_tokens = itertools.count(1)


class OctreeConfig(BaseModel):
    """
    Configuration for a sparse octree with Pydantic validation.

    Attributes
    ----------
    depth : int
        Number of levels below the root; the cube side is 2**depth.
    dtype : str
        Numpy dtype name of the payload (fixed-size types only).
    initial_capacity : int
        Node rows allocated up front by the arena.
    max_nodes : int, optional
        Hard bound on arena size; exceeding it raises ArenaCapacityError.
    growth_factor : float
        Arena capacity multiplier when it fills up.
    verbose : bool
        Print construction and arena growth messages.
    """

    depth: int = Field(
        default=16,
        ge=MIN_DEPTH,
        le=MAX_DEPTH,
        description="Tree depth; cube side is 2**depth"
    )
    dtype: str = Field(default="int64", description="Payload numpy dtype")

    # Arena sizing
    initial_capacity: int = Field(default=64, gt=0, description="Initial node rows")
    max_nodes: Optional[int] = Field(
        default=None,
        gt=0,
        description="Maximum number of nodes (None for unbounded)"
    )
    growth_factor: float = Field(default=2.0, gt=1.0, description="Arena growth multiplier")

    verbose: bool = Field(default=False, description="Enable verbose logging")

    model_config = ConfigDict(
        validate_assignment=True,
        extra="forbid",
    )

    @field_validator('dtype')
    @classmethod
    def validate_dtype(cls, v: str) -> str:
        """Validate payload dtype."""
        try:
            dt = np.dtype(v)
        except TypeError as e:
            raise ValueError(f"dtype must be a numpy dtype name, got '{v}'") from e
        if dt.hasobject:
            raise ValueError(f"dtype must be fixed-size (no Python objects), got '{v}'")
        if dt.itemsize == 0:
            raise ValueError(f"dtype must be fixed-size (give a length, e.g. 'U8'), got '{v}'")
        return v

    @model_validator(mode='after')
    def validate_arena_sizing(self):
        """Keep initial_capacity within max_nodes."""
        if self.max_nodes is not None and self.initial_capacity > self.max_nodes:
            warnings.warn(
                f"initial_capacity ({self.initial_capacity}) exceeds max_nodes "
                f"({self.max_nodes}); clamping initial_capacity to max_nodes."
            )
            object.__setattr__(self, 'initial_capacity', self.max_nodes)
        return self


class Octree:
    """
    Sparse octree mapping integer 3D coordinates to fixed-size payloads.

    Parameters
    ----------
    depth : int
        Tree depth in [1, 21]. Coordinates must satisfy 0 <= c < 2**depth.
    dtype : numpy dtype, optional
        Payload dtype. Defaults to config.dtype (int64).
    config : OctreeConfig, optional
        Arena sizing and logging options. Its depth field is ignored here;
        use Octree.from_config to take the depth from the config.
    arena : NodeStore, optional
        Pre-built node store. Must be fresh (root only).

    Raises
    ------
    InvalidDepthError
        If depth is not an integer in [1, 21].

    Examples
    --------
    >>> tree = Octree(16, dtype="uint8")
    >>> loc = NodeLoc((0, 0, 0))
    >>> tree.insert(loc, 255)
    >>> tree.at(loc)
    255
    """

    def __init__(
        self,
        depth: int,
        dtype: Optional[npt.DTypeLike] = None,
        config: Optional[OctreeConfig] = None,
        arena: Optional[NodeStore] = None,
    ):
        self.config = config if config is not None else OctreeConfig()
        self.depth = validate_depth(depth)

        if arena is None:
            arena = NodeArena(
                dtype if dtype is not None else self.config.dtype,
                initial_capacity=self.config.initial_capacity,
                max_nodes=self.config.max_nodes,
                growth_factor=self.config.growth_factor,
                log=self._log,
            )
        else:
            if len(arena) != 1 or arena.value_count() != 0:
                raise ValueError("arena passed to Octree must be fresh (root node only)")
            if dtype is not None and np.dtype(dtype) != arena.dtype:
                raise ValueError(
                    f"dtype {np.dtype(dtype)} does not match arena dtype {arena.dtype}"
                )
        self.arena = arena

        self._token = next(_tree_tokens)
        self._cursor = NodeLoc((0, 0, 0))
        self.traversal = TraversalStats()

        self._log(
            f"Initialized sparse octree: depth={self.depth}, side={self.dimension}, "
            f"dtype={self.dtype}"
        )

    @classmethod
    def from_config(cls, config: OctreeConfig) -> "Octree":
        """Build a tree whose depth and dtype come from `config`."""
        return cls(config.depth, dtype=config.dtype, config=config)

    def _log(self, message: str):
        """Log message if verbose."""
        if self.config.verbose:
            print(f"[sparse_octree] {message}")

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def dimension(self) -> int:
        """Side length of the cube along each axis."""
        return 1 << self.depth

    @property
    def dtype(self) -> np.dtype:
        return self.arena.dtype

    @property
    def node_count(self) -> int:
        return len(self.arena)

    def __len__(self) -> int:
        return self.arena.value_count()

    # ------------------------------------------------------------------
    # Core operations
    # ------------------------------------------------------------------

    def insert(self, loc: NodeLoc, value: Any) -> None:
        """
        Store `value` at the cursor's target, overwriting any prior value.

        Parameters
        ----------
        loc : NodeLoc
            Target cursor; its cached path is reused and updated.
        value : scalar
            Payload convertible to the tree dtype.

        Raises
        ------
        OutOfBoundsError
            If the target lies outside the cube. Nothing is mutated.
        PayloadError
            If `value` cannot be represented in the tree dtype. Nothing is
            mutated.
        ArenaCapacityError
            If the arena cannot allocate the missing routing nodes. Nodes
            allocated before the failure stay linked and are reused later.
        """
        path = encode(loc.target, self.depth)
        payload = self.arena.coerce_value(value)
        handle = resolve(loc, self.arena, path, self._token, create=True, stats=self.traversal)
        self.arena.set_value(handle, payload)

    def at(self, loc: NodeLoc) -> Any:
        """
        Return the value stored at the cursor's target.

        Raises
        ------
        OutOfBoundsError
            If the target lies outside the cube.
        NotFoundError
            If no value is stored there. The arena is not mutated.
        """
        handle = self._find(loc)
        if handle == NO_CHILD or not self.arena.has_value(handle):
            raise NotFoundError(loc.target)
        return self.arena.value(handle)

    def get(self, loc: NodeLoc, default: Any = None) -> Any:
        """Like `at`, but return `default` instead of raising NotFoundError."""
        handle = self._find(loc)
        if handle == NO_CHILD or not self.arena.has_value(handle):
            return default
        return self.arena.value(handle)

    def contains_value(self, loc: NodeLoc, expected: Any) -> bool:
        """
        Whether the value at the cursor's target equals `expected`.

        Returns False when nothing is stored there rather than raising.
        Out-of-bounds targets still raise OutOfBoundsError.
        """
        handle = self._find(loc)
        if handle == NO_CHILD or not self.arena.has_value(handle):
            return False
        return self._payload_equal(self.arena.value(handle), expected)

    def insert_if(self, loc: NodeLoc, value: Any, expected: Any) -> bool:
        """
        Conditional insert.

        Writes `value` only if the target is empty or currently holds a
        value equal to `expected`.

        Returns
        -------
        written : bool
        """
        path = encode(loc.target, self.depth)
        payload = self.arena.coerce_value(value)
        handle = resolve(loc, self.arena, path, self._token, create=False, stats=self.traversal)
        if handle != NO_CHILD and self.arena.has_value(handle):
            if not self._payload_equal(self.arena.value(handle), expected):
                return False
        handle = resolve(loc, self.arena, path, self._token, create=True, stats=self.traversal)
        self.arena.set_value(handle, payload)
        return True

    def take(self, loc: NodeLoc) -> Optional[Any]:
        """
        Remove and return the value at the cursor's target.

        Returns None if nothing was stored. Routing nodes are kept, so
        cached cursors stay valid.
        """
        handle = self._find(loc)
        if handle == NO_CHILD:
            return None
        return self.arena.take_value(handle)

    def insert_many(self, coords, values: Sequence[Any]) -> int:
        """
        Insert a batch of values.

        Every coordinate and payload is validated before the first write.
        Rows are written in the given order through one cursor, so sorting
        the batch spatially beforehand makes the path cache more effective.

        Parameters
        ----------
        coords : array-like, shape (N, 3)
            Integer coordinates.
        values : sequence of length N
            Payloads.

        Returns
        -------
        n_inserted : int
        """
        paths = encode_many(coords, self.depth)
        payloads = [self.arena.coerce_value(v) for v in values]
        if len(payloads) != len(paths):
            raise ValueError(
                f"got {len(paths)} coordinates but {len(payloads)} values"
            )

        coords_arr = np.asarray(coords)
        loc = NodeLoc((0, 0, 0))
        for row, path in enumerate(paths):
            loc.move_to(coords_arr[row])
            handle = resolve(loc, self.arena, path, self._token, create=True, stats=self.traversal)
            self.arena.set_value(handle, payloads[row])
        return len(paths)

    def _find(self, loc: NodeLoc) -> int:
        path = encode(loc.target, self.depth)
        return resolve(loc, self.arena, path, self._token, create=False, stats=self.traversal)

    def _payload_equal(self, stored: Any, expected: Any) -> bool:
        # Compare in the tree dtype so float32 payloads match their inputs
        try:
            expected = self.arena.coerce_value(expected)[()]
        except PayloadError:
            return False
        stored = np.array(stored, dtype=self.arena.dtype)[()]
        return bool(stored == expected)

    # ------------------------------------------------------------------
    # Mapping-style access through an internal cursor
    # ------------------------------------------------------------------

    def __getitem__(self, coord: Sequence[int]) -> Any:
        return self.at(self._cursor.move_to(coord))

    def __setitem__(self, coord: Sequence[int], value: Any) -> None:
        self.insert(self._cursor.move_to(coord), value)

    def __contains__(self, coord) -> bool:
        loc = self._cursor.move_to(coord)
        if not self._in_cube(loc.target):
            return False
        handle = self._find(loc)
        return handle != NO_CHILD and self.arena.has_value(handle)

    def _in_cube(self, target) -> bool:
        side = self.dimension
        return len(target) == 3 and all(
            isinstance(c, (int, np.integer)) and not isinstance(c, bool) and 0 <= c < side
            for c in target
        )

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def stats(self) -> Dict[str, Any]:
        """Node and traversal counters."""
        stats = {
            "depth": self.depth,
            "dimension": self.dimension,
            "nodes": self.node_count,
            "values": len(self),
            "resolutions": self.traversal.resolutions,
            "levels_reused": self.traversal.levels_reused,
            "levels_walked": self.traversal.levels_walked,
            "reuse_ratio": self.traversal.reuse_ratio,
        }
        if isinstance(self.arena, NodeArena):
            stats["capacity"] = self.arena.capacity
            stats["memory_bytes"] = self.arena.memory_bytes()
            stats["arena_grows"] = self.arena.n_grows
        return stats

    def __repr__(self) -> str:
        return (
            f"Octree(depth={self.depth}, dtype={self.dtype}, "
            f"nodes={self.node_count}, values={len(self)})"
        )
