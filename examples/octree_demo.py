#!/usr/bin/env python3
"""
Sparse Octree Demo

Demonstrates:
1. Building a tree from a YAML config
2. Inserting and looking up values through a NodeLoc cursor
3. Reusing one cursor across neighbouring voxels
4. Error handling for missing values and out-of-bounds coordinates

Run from project root:
    python examples/octree_demo.py
"""

from pathlib import Path

import numpy as np

from sparse_octree import NodeLoc, NotFoundError, Octree, OutOfBoundsError
from sparse_octree.config import load_config


def demo_basic():
    """Demo 1: insert and look up."""
    print("=" * 70)
    print("DEMO 1: Insert and Lookup")
    print("=" * 70)

    tree = Octree(16, dtype=np.uint8)
    origin = NodeLoc((0, 0, 0))
    tree.insert(origin, 255)
    print(f"at(0, 0, 0) = {tree.at(origin)}")

    try:
        tree.at(NodeLoc((1, 0, 0)))
    except NotFoundError as e:
        print(f"Lookup miss: {e}")

    try:
        tree.insert(NodeLoc((70000, 0, 0)), 1)
    except OutOfBoundsError as e:
        print(f"Rejected: {e}")
    print(f"{tree!r}")
    print()


def demo_cursor_reuse():
    """Demo 2: sweep a row of voxels with one cursor."""
    print("=" * 70)
    print("DEMO 2: Cursor Reuse")
    print("=" * 70)

    tree = Octree(16, dtype=np.uint8)
    cursor = NodeLoc((0, 0, 0))
    for x in range(64):
        tree.insert(cursor.move_to((x, 5, 5)), x)

    stats = tree.stats()
    print(f"Nodes allocated: {stats['nodes']} for {stats['values']} values")
    print(f"Levels reused: {stats['levels_reused']}, walked: {stats['levels_walked']}")
    print()


def demo_config():
    """Demo 3: tree from the bundled config."""
    print("=" * 70)
    print("DEMO 3: Tree From Config")
    print("=" * 70)

    config_path = Path(__file__).parent.parent / "configs" / "voxel_terrain.yaml"
    if not config_path.exists():
        print(f"Config not found: {config_path}")
        return

    config = load_config(config_path, verbose=True)
    tree = Octree.from_config(config)
    tree[100, 20, 300] = 7
    print(f"tree[100, 20, 300] = {tree[100, 20, 300]}")
    print()


if __name__ == "__main__":
    demo_basic()
    demo_cursor_reuse()
    demo_config()
