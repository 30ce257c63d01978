# -*- coding: utf-8 -*-
"""
Deduplicates per-cell vertex and centroid coordinates into a single, compact
vertex index space.

Each cell contributes its centroid (slot 0) and its polygon vertices
(slots 1..k). Coordinates that compare equal collapse onto one pooled vertex,
so that neighbouring cells end up sharing vertex indices, which is what the
edge-sorting adjacency builder relies on.

Equality is exact by default. A positive `tolerance` quantizes coordinates to
multiples of the tolerance before comparison, which merges vertices that only
differ by round-off.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

import numpy as np

PoolKey = Tuple[int, int]
CENTROID_SLOT = 0


@dataclass(frozen=True)
class VertexPool:
    """
    The deduplicated, globally indexed set of mesh vertex coordinates.

    Attributes:
        coords (np.ndarray): Unique vertex coordinates, sorted by (x, y).
            - Shape: `(n_vertices, 2)`
            - `dtype`: `float`
        tolerance (float): The quantization step used when the pool was built.
            `0.0` means exact floating-point equality.
    """

    coords: np.ndarray
    tolerance: float = 0.0

    @property
    def n_vertices(self) -> int:
        return int(self.coords.shape[0])

    def __len__(self) -> int:
        return self.n_vertices

    def compact(self, used: Sequence[int]) -> Tuple["VertexPool", np.ndarray]:
        """
        Drops vertices that are not referenced.

        Args:
            used: Pooled vertex indices that are still referenced.

        Returns:
            The compacted pool and an old-to-new index map in which dropped
            vertices map to -1.
        """
        keep = np.zeros(self.n_vertices, dtype=bool)
        used_arr = np.asarray(used, dtype=int)
        if used_arr.size:
            keep[used_arr] = True
        old_to_new = -np.ones(self.n_vertices, dtype=int)
        old_to_new[keep] = np.arange(int(np.count_nonzero(keep)))
        return VertexPool(self.coords[keep].copy(), self.tolerance), old_to_new


def _comparison_keys(
    x: np.ndarray, y: np.ndarray, tolerance: float
) -> Tuple[np.ndarray, np.ndarray]:
    """Returns the values compared when deciding whether two vertices coincide."""
    if tolerance > 0.0:
        return np.round(x / tolerance), np.round(y / tolerance)
    return x, y


def pool_vertices(
    entries: Sequence[Tuple[int, int, float, float]], tolerance: float = 0.0
) -> Tuple[VertexPool, Dict[PoolKey, int]]:
    """
    Pools a provenance-tagged list of coordinates.

    The entries are sorted lexicographically by (x, y), with (cell, slot) as
    a tie-breaker, and scanned once. A new pooled index is assigned whenever
    the coordinate differs from the previous sorted entry.

    Args:
        entries: `(cell, slot, x, y)` tuples.
        tolerance: Quantization step for the coordinate comparison. `0.0`
            compares coordinates exactly.

    Returns:
        A tuple `(pool, index_map)` where `index_map[(cell, slot)]` is the
        pooled index of that entry.
    """
    if tolerance < 0.0:
        raise ValueError(f"Vertex tolerance must be non-negative, got {tolerance}.")
    if len(entries) == 0:
        return VertexPool(np.zeros((0, 2)), tolerance), {}

    cells = np.array([e[0] for e in entries], dtype=int)
    slots = np.array([e[1] for e in entries], dtype=int)
    x = np.array([e[2] for e in entries], dtype=float)
    y = np.array([e[3] for e in entries], dtype=float)

    kx, ky = _comparison_keys(x, y, tolerance)
    order = np.lexsort((slots, cells, ky, kx))
    kx_sorted, ky_sorted = kx[order], ky[order]

    starts_new = np.ones(len(order), dtype=bool)
    starts_new[1:] = (kx_sorted[1:] != kx_sorted[:-1]) | (
        ky_sorted[1:] != ky_sorted[:-1]
    )
    pooled = np.cumsum(starts_new) - 1

    coords = np.column_stack((x[order][starts_new], y[order][starts_new]))
    index_map = {
        (int(cells[k]), int(slots[k])): int(p) for k, p in zip(order, pooled)
    }
    return VertexPool(coords, tolerance), index_map


def pool_cells(
    centers: np.ndarray, polygons: Sequence[np.ndarray], tolerance: float = 0.0
) -> Tuple[VertexPool, np.ndarray, List[List[int]]]:
    """
    Pools the centroids and polygon vertices of a set of cells.

    Args:
        centers (np.ndarray): Cell centres. Shape: `(n_cells, 2)`.
        polygons (Sequence[np.ndarray]): Ordered polygon vertices per cell,
            each of shape `(n_sides, 2)`.
        tolerance (float): See `pool_vertices`.

    Returns:
        The pool, the pooled centroid index per cell and the pooled vertex
        indices of every cell in polygon order.
    """
    entries: List[Tuple[int, int, float, float]] = []
    for cc, (center, poly) in enumerate(zip(centers, polygons)):
        entries.append((cc, CENTROID_SLOT, float(center[0]), float(center[1])))
        for slot, (vx, vy) in enumerate(np.asarray(poly), start=1):
            entries.append((cc, slot, float(vx), float(vy)))

    pool, index_map = pool_vertices(entries, tolerance)
    center_ids = np.array(
        [index_map[(cc, CENTROID_SLOT)] for cc in range(len(polygons))], dtype=int
    )
    cell_vertices = [
        [index_map[(cc, slot)] for slot in range(1, len(poly) + 1)]
        for cc, poly in enumerate(polygons)
    ]
    return pool, center_ids, cell_vertices
