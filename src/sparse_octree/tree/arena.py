"""
Node arena for the sparse octree.

Nodes are kept in a structure-of-arrays layout, the same way the
Barnes-Hut tree builder lays out its nodes:

    child_ptr : int32, shape (capacity, 8)   child handle per octant, -1 if absent
    values    : dtype, shape (capacity,)      payload of leaf nodes
    occupied  : bool,  shape (capacity,)      whether `values[i]` is meaningful

A handle is simply a row index. Rows are appended and never freed, so a
handle handed out once stays valid for the lifetime of the arena, and the
arrays grow geometrically when they fill up.
"""

import operator
from typing import Any, Callable, Optional, Tuple

import numpy as np
import numpy.typing as npt

from sparse_octree.core.errors import (
    ArenaCapacityError,
    InvalidHandleError,
    PayloadError,
)
from sparse_octree.core.interfaces import NodeStore

NO_CHILD = -1
ROOT = 0
N_CHILDREN = 8

# child_ptr is int32
HANDLE_LIMIT = int(np.iinfo(np.int32).max)


def _is_finite(value: Any) -> bool:
    try:
        return bool(np.isfinite(np.asarray(value, dtype=np.complex128)))
    except (TypeError, ValueError, OverflowError):
        return False


class NodeRef:
    """
    View onto one node of an arena.

    Holds the arena and a handle, never node memory, so a NodeRef stays
    correct after the arena grows. References returned by
    NodeArena.get are read-only; NodeArena.get_mut returns writable ones.
    """

    __slots__ = ("_arena", "handle", "writable")

    def __init__(self, arena: "NodeArena", handle: int, writable: bool = False):
        self._arena = arena
        self.handle = handle
        self.writable = writable

    @property
    def children(self) -> Tuple[Optional[int], ...]:
        """Child handles per octant, None where no child exists."""
        row = self._arena.child_ptr[self.handle]
        return tuple(None if c == NO_CHILD else int(c) for c in row)

    def child(self, selector: int) -> Optional[int]:
        c = self._arena.child(self.handle, selector)
        return None if c == NO_CHILD else c

    @property
    def is_leaf(self) -> bool:
        return bool(np.all(self._arena.child_ptr[self.handle] == NO_CHILD))

    @property
    def has_value(self) -> bool:
        return self._arena.has_value(self.handle)

    @property
    def value(self) -> Optional[Any]:
        return self._arena.value(self.handle)

    def set_value(self, value: Any) -> None:
        self._require_writable()
        self._arena.set_value(self.handle, value)

    def take_value(self) -> Optional[Any]:
        self._require_writable()
        return self._arena.take_value(self.handle)

    def _require_writable(self) -> None:
        if not self.writable:
            raise TypeError(
                f"node {self.handle} was obtained read-only; use NodeArena.get_mut"
            )

    def __repr__(self) -> str:
        n_children = sum(c is not None for c in self.children)
        return (
            f"NodeRef(handle={self.handle}, children={n_children}, "
            f"value={self.value!r})"
        )


class NodeArena(NodeStore):
    """
    Growable numpy-backed store of octree nodes.

    Parameters
    ----------
    dtype : numpy dtype, optional
        Payload dtype. Must be fixed-size (no object fields). Default int64.
    initial_capacity : int
        Number of node rows allocated up front.
    max_nodes : int, optional
        Hard bound on the number of nodes. Exceeding it raises
        ArenaCapacityError instead of growing.
    growth_factor : float
        Capacity multiplier applied when the arrays fill up.
    log : callable, optional
        Receives one-line messages about growth and exhaustion.
    """

    def __init__(
        self,
        dtype: npt.DTypeLike = np.int64,
        initial_capacity: int = 64,
        max_nodes: Optional[int] = None,
        growth_factor: float = 2.0,
        log: Optional[Callable[[str], None]] = None,
    ):
        dtype = np.dtype(dtype)
        if dtype.hasobject:
            raise PayloadError(
                f"payload dtype {dtype} holds Python objects; use a fixed-size dtype"
            )
        if dtype.itemsize == 0:
            raise PayloadError(f"payload dtype {dtype} has no size; give a length such as U8")
        if initial_capacity < 1:
            raise ValueError(f"initial_capacity must be positive, got {initial_capacity}")
        if max_nodes is not None and not 1 <= max_nodes <= HANDLE_LIMIT:
            raise ValueError(f"max_nodes must lie in [1, {HANDLE_LIMIT}], got {max_nodes}")
        if growth_factor <= 1.0:
            raise ValueError(f"growth_factor must be > 1, got {growth_factor}")

        self.max_nodes = max_nodes
        self.growth_factor = float(growth_factor)
        self._log = log

        capacity = initial_capacity if max_nodes is None else min(initial_capacity, max_nodes)
        self.child_ptr = np.full((capacity, N_CHILDREN), NO_CHILD, dtype=np.int32)
        self.values = np.zeros(capacity, dtype=dtype)
        self.occupied = np.zeros(capacity, dtype=bool)

        self.n_nodes = 0
        self.n_values = 0
        self.n_grows = 0

        if self.allocate() != ROOT:
            raise RuntimeError("root node was not allocated at handle 0")

    @property
    def dtype(self) -> np.dtype:
        return self.values.dtype

    @property
    def capacity(self) -> int:
        return self.child_ptr.shape[0]

    @property
    def limit(self) -> int:
        return self.max_nodes if self.max_nodes is not None else HANDLE_LIMIT

    def __len__(self) -> int:
        return self.n_nodes

    def value_count(self) -> int:
        return self.n_values

    # ------------------------------------------------------------------
    # Allocation
    # ------------------------------------------------------------------

    def allocate(self) -> int:
        if self.n_nodes >= self.limit:
            if self._log is not None:
                self._log(f"Node arena exhausted at {self.n_nodes} nodes")
            raise ArenaCapacityError(self.limit)
        if self.n_nodes == self.capacity:
            self._grow()
        handle = self.n_nodes
        self.n_nodes += 1
        return handle

    def _grow(self) -> None:
        """Reallocate the node arrays with more rows, preserving contents."""
        old = self.capacity
        new = max(old + 1, int(old * self.growth_factor))
        new = min(new, self.limit)

        child_ptr = np.full((new, N_CHILDREN), NO_CHILD, dtype=np.int32)
        child_ptr[:old] = self.child_ptr
        values = np.zeros(new, dtype=self.values.dtype)
        values[:old] = self.values
        occupied = np.zeros(new, dtype=bool)
        occupied[:old] = self.occupied

        self.child_ptr = child_ptr
        self.values = values
        self.occupied = occupied
        self.n_grows += 1

        if self._log is not None:
            self._log(f"Node arena grown: {old} -> {new} rows")

    # ------------------------------------------------------------------
    # Node access
    # ------------------------------------------------------------------

    def get(self, handle: int) -> NodeRef:
        """Read-only reference to the node at `handle`."""
        return NodeRef(self, self._check_handle(handle), writable=False)

    def get_mut(self, handle: int) -> NodeRef:
        """Writable reference to the node at `handle`."""
        return NodeRef(self, self._check_handle(handle), writable=True)

    def child(self, handle: int, selector: int) -> int:
        handle = self._check_handle(handle)
        selector = self._check_selector(selector)
        return int(self.child_ptr[handle, selector])

    def child_or_create(self, handle: int, selector: int) -> int:
        handle = self._check_handle(handle)
        selector = self._check_selector(selector)
        existing = int(self.child_ptr[handle, selector])
        if existing != NO_CHILD:
            return existing
        # allocate() may swap in larger arrays, so index child_ptr afterwards
        created = self.allocate()
        self.child_ptr[handle, selector] = created
        return created

    # ------------------------------------------------------------------
    # Payloads
    # ------------------------------------------------------------------

    def coerce_value(self, value: Any) -> np.ndarray:
        dtype = self.values.dtype
        if isinstance(value, np.ndarray) and value.shape == () and value.dtype == dtype:
            return value
        if dtype.kind == "b" and not isinstance(value, (bool, np.bool_)):
            raise PayloadError(f"bool payload requires True or False, got {value!r}")
        if dtype.kind in "iu" and isinstance(value, (float, np.floating)):
            raise PayloadError(f"cannot store float {value!r} in {dtype} payload")
        if dtype.kind in "iu" and isinstance(value, np.integer):
            # numpy scalars would otherwise wrap silently on the cast
            info = np.iinfo(dtype)
            if not info.min <= int(value) <= info.max:
                raise PayloadError(f"value {value!r} out of range for {dtype}")
        if dtype.kind in "US" and isinstance(value, (str, bytes, np.str_, np.bytes_)):
            width = dtype.itemsize // 4 if dtype.kind == "U" else dtype.itemsize
            if len(value) > width:
                raise PayloadError(f"{value!r} is longer than the {width} characters {dtype} holds")
        try:
            with np.errstate(over="ignore", invalid="ignore"):
                arr = np.array(value, dtype=dtype)
        except (TypeError, ValueError, OverflowError) as e:
            raise PayloadError(f"cannot store {value!r} as {dtype}: {e}") from e
        if arr.shape != ():
            raise PayloadError(
                f"payload must be a scalar of dtype {dtype}, got shape {arr.shape}"
            )
        if dtype.kind in "fc" and not np.isfinite(arr) and _is_finite(value):
            raise PayloadError(f"value {value!r} overflows {dtype}")
        return arr

    def has_value(self, handle: int) -> bool:
        return bool(self.occupied[self._check_handle(handle)])

    def value(self, handle: int) -> Optional[Any]:
        handle = self._check_handle(handle)
        if not self.occupied[handle]:
            return None
        return self._export(handle)

    def set_value(self, handle: int, value: Any) -> None:
        handle = self._check_handle(handle)
        self.values[handle] = self.coerce_value(value)
        if not self.occupied[handle]:
            self.occupied[handle] = True
            self.n_values += 1

    def take_value(self, handle: int) -> Optional[Any]:
        handle = self._check_handle(handle)
        if not self.occupied[handle]:
            return None
        value = self._export(handle)
        self.values[handle] = np.zeros((), dtype=self.values.dtype)
        self.occupied[handle] = False
        self.n_values -= 1
        return value

    def _export(self, handle: int) -> Any:
        # Indexing a structured array yields a view; detach it first
        if self.values.dtype.fields is not None:
            return self.values[handle:handle + 1].copy()[0]
        return self.values[handle].item()

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _check_handle(self, handle) -> int:
        try:
            h = operator.index(handle)
        except TypeError:
            raise InvalidHandleError(handle, self.n_nodes) from None
        if not 0 <= h < self.n_nodes:
            raise InvalidHandleError(handle, self.n_nodes)
        return h

    @staticmethod
    def _check_selector(selector) -> int:
        s = operator.index(selector)
        if not 0 <= s < N_CHILDREN:
            raise ValueError(f"octant selector must lie in [0, 7], got {selector}")
        return s

    def memory_bytes(self) -> int:
        """Bytes held by the node arrays (allocated capacity, not just used rows)."""
        return int(self.child_ptr.nbytes + self.values.nbytes + self.occupied.nbytes)

    def __repr__(self) -> str:
        return (
            f"NodeArena(nodes={self.n_nodes}, values={self.n_values}, "
            f"capacity={self.capacity}, dtype={self.dtype})"
        )
