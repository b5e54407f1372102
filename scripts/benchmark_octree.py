"""
Benchmark the sparse octree.

Times tree construction, single insert and lookup with warm and fresh
cursors, batch insert, and a coherent 32^3 scan with a reused cursor
versus a fresh cursor per voxel.
"""

import time
import numpy as np
import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from sparse_octree import NodeLoc, Octree
from sparse_octree.tree.codec import encode_many


def _timeit(label, fn, repeats):
    start = time.perf_counter()
    for _ in range(repeats):
        fn()
    end = time.perf_counter()
    per_call = (end - start) / repeats
    print(f"{label:<32s} {per_call * 1e6:10.2f} us/call")
    return per_call


def benchmark():
    depth = 16
    repeats = 20000
    print(f"Benchmarking sparse octree, depth={depth}...")

    _timeit("new", lambda: Octree(depth, dtype=np.uint8), 2000)

    tree = Octree(depth, dtype=np.uint8)
    loc = NodeLoc((12, 6, 8))
    _timeit("insert (warm cursor)", lambda: tree.insert(loc, 255), repeats)
    _timeit("at (warm cursor)", lambda: tree.at(loc), repeats)
    _timeit("at (fresh cursor)", lambda: tree.at(NodeLoc((12, 6, 8))), repeats)

    # Coherent scan: one cursor sweeping a 32^3 block vs a fresh cursor per voxel
    side = 32
    xs, ys, zs = np.meshgrid(np.arange(side), np.arange(side), np.arange(side), indexing="ij")
    coords = np.stack([xs.ravel(), ys.ravel(), zs.ravel()], axis=1)
    values = (coords.sum(axis=1) % 256).astype(np.uint8)

    print("Warming up JIT...")
    _ = encode_many(coords[:8], depth)

    print(f"Coherent scan over {len(coords)} voxels...")
    scan_tree = Octree(depth, dtype=np.uint8)
    start = time.perf_counter()
    scan_tree.insert_many(coords, values)
    end = time.perf_counter()
    print(f"insert_many time: {end - start:.4f} s ({scan_tree.node_count} nodes)")

    start = time.perf_counter()
    cursor = NodeLoc((0, 0, 0))
    for row in coords:
        scan_tree.at(cursor.move_to(row))
    end = time.perf_counter()
    print(f"Scan with reused cursor: {end - start:.4f} s")

    start = time.perf_counter()
    for row in coords:
        scan_tree.at(NodeLoc(row))
    end = time.perf_counter()
    print(f"Scan with fresh cursors: {end - start:.4f} s")

    stats = scan_tree.stats()
    print(f"Levels reused: {stats['levels_reused']}, walked: {stats['levels_walked']}, "
          f"reuse ratio: {stats['reuse_ratio']:.3f}")
    print(f"Arena memory: {stats['memory_bytes'] / 1024:.1f} KiB")


if __name__ == "__main__":
    benchmark()
