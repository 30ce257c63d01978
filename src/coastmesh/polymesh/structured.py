# -*- coding: utf-8 -*-
"""
Cells of a structured curvilinear grid.

The grid is given by its corner coordinates, two arrays of shape
`(nj + 1, ni + 1)`. Grid cell `(j, i)` is the quadrilateral with corners
SW `(j, i)`, NW `(j + 1, i)`, NE `(j + 1, i + 1)` and SE `(j, i + 1)`, listed in
that (clockwise) order. Only wet cells are kept.
"""
from __future__ import annotations

import numpy as np

from .adjacency import build_adjacency
from .cells import CellSet
from .errors import InputConsistencyError


def structured_cells(x, y, mask=None) -> CellSet:
    """
    Enumerates the wet cells of a structured grid.

    Args:
        x: Corner x coordinates. Shape: `(nj + 1, ni + 1)`.
        y: Corner y coordinates. Shape: `(nj + 1, ni + 1)`.
        mask: Optional wet mask of shape `(nj, ni)`; True marks a wet cell.
            Cells with a NaN corner are treated as dry.

    Returns:
        The wet cells in row-major `(j, i)` order, with `grid_indices`
        holding `(i, j)` per cell.
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    if x.ndim != 2 or x.shape != y.shape or min(x.shape) < 2:
        raise InputConsistencyError(
            f"Corner arrays must be 2-D, equal-shaped and at least 2x2; got "
            f"{x.shape} and {y.shape}."
        )
    nj, ni = x.shape[0] - 1, x.shape[1] - 1
    if mask is None:
        wet = np.ones((nj, ni), dtype=bool)
    else:
        wet = np.asarray(mask, dtype=bool)
        if wet.shape != (nj, ni):
            raise InputConsistencyError(
                f"Wet mask must have shape {(nj, ni)}, got {wet.shape}."
            )

    polygons, corner_ids, grid_indices, source = [], [], [], []
    for j in range(nj):
        for i in range(ni):
            if not wet[j, i]:
                continue
            rows = [j, j + 1, j + 1, j]
            cols = [i, i, i + 1, i + 1]
            corners = np.column_stack((x[rows, cols], y[rows, cols]))
            if np.any(np.isnan(corners)):
                continue
            polygons.append(corners)
            corner_ids.append([r * (ni + 1) + c for r, c in zip(rows, cols)])
            grid_indices.append((i, j))
            source.append(j * ni + i)

    if corner_ids:
        adjacency = build_adjacency(corner_ids)
        is_boundary = np.array(
            [adjacency.has_boundary(c) for c in range(len(corner_ids))], dtype=bool
        )
    else:
        is_boundary = np.zeros(0, dtype=bool)

    return CellSet(
        centers=np.array([p.mean(axis=0) for p in polygons]).reshape(-1, 2),
        polygons=polygons,
        is_boundary=is_boundary,
        source_index=np.array(source, dtype=int),
        grid_indices=np.array(grid_indices, dtype=int).reshape(-1, 2),
        grid_shape=(ni, nj),
    )
