# -*- coding: utf-8 -*-
"""
Removal of cells disconnected from the main water body ("lakes").

A breadth-first traversal of the cell adjacency graph from a seed cell marks
the connected water body; every other cell is discarded and the survivors are
renumbered in their original relative order.
"""
from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np
from scipy.sparse.csgraph import breadth_first_order, connected_components

from .adjacency import AdjacencyMap
from .errors import DanglingBoundaryError, LakeCellsRemovedWarning
from .perimeter import OpenBoundarySegment, nearest_index


@dataclass(frozen=True)
class LakeRemoval:
    """
    The outcome of a lake removal pass.

    Attributes:
        kept (np.ndarray): Old indices of the retained cells, ascending.
        old_to_new (np.ndarray): New index of every old cell, -1 if removed.
        adjacency (AdjacencyMap): Adjacency of the retained cells.
        cell_vertices (List[List[int]]): Vertex indices of the retained cells.
        open_boundaries (Tuple[OpenBoundarySegment, ...]): Segments with
            renumbered cell references.
    """

    kept: np.ndarray
    old_to_new: np.ndarray
    adjacency: AdjacencyMap
    cell_vertices: List[List[int]]
    open_boundaries: Tuple[OpenBoundarySegment, ...]

    @property
    def n_removed(self) -> int:
        return int(self.old_to_new.shape[0] - self.kept.shape[0])


def find_seed_cell(centers: np.ndarray, xy: Sequence[float]) -> int:
    """The cell whose centre is nearest to `xy`."""
    if len(centers) == 0:
        raise ValueError("Cannot locate a seed cell in an empty mesh.")
    return nearest_index(np.asarray(centers), xy)


def reachable_cells(adjacency: AdjacencyMap, seed: int) -> np.ndarray:
    """Boolean mask of the cells reachable from `seed` across shared edges."""
    order = breadth_first_order(
        adjacency.to_csr(), seed, directed=False, return_predecessors=False
    )
    reached = np.zeros(adjacency.n_cells, dtype=bool)
    reached[order] = True
    return reached


def count_components(adjacency: AdjacencyMap) -> int:
    """Number of connected components of the cell graph."""
    if adjacency.n_cells == 0:
        return 0
    n_components, _ = connected_components(adjacency.to_csr(), directed=False)
    return int(n_components)


def remove_lakes(
    cell_vertices: Sequence[Sequence[int]],
    adjacency: AdjacencyMap,
    seed: int,
    open_boundaries: Sequence[OpenBoundarySegment] = (),
) -> LakeRemoval:
    """
    Discards every cell not connected to `seed`.

    Args:
        cell_vertices: Vertex indices of every cell.
        adjacency: The cell adjacency map.
        seed: A cell inside the main water body.
        open_boundaries: Segments already bound to the mesh; their cell
            references are renumbered.

    Returns:
        A `LakeRemoval`. Per-cell arrays held by the caller are subset with
        `LakeRemoval.kept`.

    Raises:
        DanglingBoundaryError: If an open boundary references a removed cell.
    """
    n_cells = adjacency.n_cells
    if not 0 <= seed < n_cells:
        raise IndexError(f"Seed cell {seed} is outside [0, {n_cells}).")

    reached = reachable_cells(adjacency, seed)

    for segment in open_boundaries:
        for cell, _, _ in segment.edges:
            if not reached[cell]:
                raise DanglingBoundaryError(
                    f"Open boundary '{segment.name}' references cell {cell}, "
                    f"which is not connected to seed cell {seed} and would be removed."
                )

    kept = np.flatnonzero(reached)
    old_to_new = -np.ones(n_cells, dtype=int)
    old_to_new[kept] = np.arange(kept.shape[0])

    n_removed = n_cells - kept.shape[0]
    if n_removed:
        warnings.warn(
            f"{n_removed} cells eliminated: not connected to seed cell {seed}.",
            LakeCellsRemovedWarning,
            stacklevel=2,
        )

    return LakeRemoval(
        kept=kept,
        old_to_new=old_to_new,
        adjacency=adjacency.subset(kept, old_to_new),
        cell_vertices=[list(cell_vertices[c]) for c in kept],
        open_boundaries=tuple(seg.remap(cell_map=old_to_new) for seg in open_boundaries),
    )
