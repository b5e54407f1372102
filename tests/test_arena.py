"""
Tests for the node arena.

Validates:
- Root allocation and handle stability
- child_or_create links and reuses children
- Geometric growth preserves contents
- max_nodes exhaustion raises ArenaCapacityError without corrupting state
- Payload coercion and read-only node references
"""

import numpy as np
import pytest

from sparse_octree.core.errors import (
    ArenaCapacityError,
    InvalidHandleError,
    PayloadError,
)
from sparse_octree.core.interfaces import NodeStore
from sparse_octree.tree.arena import NO_CHILD, ROOT, NodeArena


class TestAllocation:
    """Handles, children and growth."""

    def test_root_exists_and_is_empty(self):
        arena = NodeArena()
        assert isinstance(arena, NodeStore)
        assert len(arena) == 1
        root = arena.get(ROOT)
        assert root.is_leaf
        assert root.children == (None,) * 8
        assert root.value is None
        assert not root.has_value

    def test_child_or_create_allocates_once(self):
        arena = NodeArena()
        first = arena.child_or_create(ROOT, 5)
        again = arena.child_or_create(ROOT, 5)
        assert first == again == 1
        assert len(arena) == 2
        assert arena.child(ROOT, 5) == first
        assert arena.child(ROOT, 4) == NO_CHILD
        assert arena.get(ROOT).children[5] == first
        assert not arena.get(ROOT).is_leaf

    def test_growth_preserves_links_and_values(self):
        logs = []
        arena = NodeArena(dtype=np.int32, initial_capacity=2, log=logs.append)
        handle = ROOT
        chain = []
        for selector in [1, 2, 3, 4, 5, 6, 7, 0]:
            handle = arena.child_or_create(handle, selector)
            chain.append(handle)
        arena.set_value(handle, 42)

        assert arena.capacity >= 9
        assert arena.n_grows >= 3
        assert any("grown" in message for message in logs)

        walk = ROOT
        for selector, expected in zip([1, 2, 3, 4, 5, 6, 7, 0], chain):
            walk = arena.child(walk, selector)
            assert walk == expected
        assert arena.value(walk) == 42

    def test_max_nodes_exhaustion(self):
        arena = NodeArena(initial_capacity=8, max_nodes=3)
        a = arena.child_or_create(ROOT, 0)
        b = arena.child_or_create(a, 0)
        with pytest.raises(ArenaCapacityError) as info:
            arena.child_or_create(b, 0)
        assert info.value.max_nodes == 3
        # the failed call left no dangling link
        assert arena.child(b, 0) == NO_CHILD
        assert len(arena) == 3
        # existing children are still reachable without allocation
        assert arena.child_or_create(ROOT, 0) == a

    def test_capacity_error_is_memory_error(self):
        arena = NodeArena(max_nodes=1)
        with pytest.raises(MemoryError):
            arena.allocate()

    def test_invalid_handles_and_selectors(self):
        arena = NodeArena()
        with pytest.raises(InvalidHandleError):
            arena.get(1)
        with pytest.raises(InvalidHandleError):
            arena.child(-1, 0)
        with pytest.raises(IndexError):
            arena.value(99)
        with pytest.raises(ValueError):
            arena.child(ROOT, 8)

    @pytest.mark.parametrize(
        "kwargs",
        [{"initial_capacity": 0}, {"max_nodes": 0}, {"growth_factor": 1.0}],
    )
    def test_bad_sizing_rejected(self, kwargs):
        with pytest.raises(ValueError):
            NodeArena(**kwargs)


class TestPayloads:
    """Value storage and coercion."""

    def test_set_take_and_counts(self):
        arena = NodeArena(dtype=np.uint8)
        leaf = arena.child_or_create(ROOT, 3)
        arena.set_value(leaf, 255)
        assert arena.value(leaf) == 255
        assert isinstance(arena.value(leaf), int)
        assert arena.value_count() == 1

        arena.set_value(leaf, 7)
        assert arena.value_count() == 1

        assert arena.take_value(leaf) == 7
        assert arena.value(leaf) is None
        assert arena.take_value(leaf) is None
        assert arena.value_count() == 0

    def test_payload_errors(self):
        arena = NodeArena(dtype=np.uint8)
        with pytest.raises(PayloadError):
            arena.coerce_value(256)
        with pytest.raises(PayloadError):
            arena.coerce_value(-1)
        with pytest.raises(PayloadError):
            arena.coerce_value(1.5)
        with pytest.raises(PayloadError):
            arena.coerce_value([1, 2])
        with pytest.raises(TypeError):
            arena.set_value(ROOT, "not a number")
        assert not arena.has_value(ROOT)

    def test_object_dtype_rejected(self):
        with pytest.raises(PayloadError):
            NodeArena(dtype=object)

    def test_narrowing_payloads_rejected(self):
        with pytest.raises(PayloadError):
            NodeArena(dtype="U3").coerce_value("hello")
        assert NodeArena(dtype="U3").coerce_value("hel")[()] == "hel"
        with pytest.raises(PayloadError):
            NodeArena(dtype="S2").coerce_value(b"abc")

        flags = NodeArena(dtype=bool)
        with pytest.raises(PayloadError):
            flags.coerce_value(5)
        with pytest.raises(PayloadError):
            flags.coerce_value(1)
        assert flags.coerce_value(np.True_)[()]

        halves = NodeArena(dtype=np.float16)
        with pytest.raises(PayloadError):
            halves.coerce_value(1e6)
        assert np.isinf(halves.coerce_value(float("inf"))[()])

    @pytest.mark.parametrize("dtype", ["U", "S"])
    def test_sizeless_dtype_rejected(self, dtype):
        with pytest.raises(PayloadError):
            NodeArena(dtype=dtype)

    def test_structured_payload(self):
        voxel = np.dtype([("material", "u1"), ("density", "<f4")])
        arena = NodeArena(dtype=voxel)
        arena.set_value(ROOT, (3, 0.5))
        stored = arena.value(ROOT)
        assert stored["material"] == 3
        assert stored["density"] == pytest.approx(0.5)

        # returned payloads are copies
        stored["material"] = 9
        assert arena.value(ROOT)["material"] == 3


class TestNodeRef:
    """Read-only and writable node references."""

    def test_get_is_read_only(self):
        arena = NodeArena()
        with pytest.raises(TypeError):
            arena.get(ROOT).set_value(1)
        assert not arena.has_value(ROOT)

    def test_get_mut_writes_through(self):
        arena = NodeArena()
        child = arena.child_or_create(ROOT, 2)
        ref = arena.get_mut(child)
        ref.set_value(11)
        assert arena.get(child).value == 11
        assert arena.get(ROOT).child(2) == child
        assert arena.get(ROOT).child(3) is None
        assert ref.take_value() == 11
        assert not ref.has_value

    def test_reference_survives_growth(self):
        arena = NodeArena(initial_capacity=1)
        ref = arena.get_mut(ROOT)
        for selector in range(8):
            arena.child_or_create(ROOT, selector)
        ref.set_value(5)
        assert arena.value(ROOT) == 5
        assert len([c for c in ref.children if c is not None]) == 8


def test_numpy_integer_payload_range_checked():
    arena = NodeArena(dtype=np.uint8)
    with pytest.raises(PayloadError):
        arena.coerce_value(np.int64(300))
    assert arena.coerce_value(np.int64(200)) == 200
