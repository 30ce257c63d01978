# -*- coding: utf-8 -*-
"""
Cell-to-cell adjacency through shared edges.

Every local edge `j` of every cell (vertices `v_j` and `v_{j+1}`) is emitted
as a key `(min(v_j, v_{j+1}), max(v_j, v_{j+1}))` tagged with its owner
`(cell, j)`. Sorting these keys brings the two owners of an interior edge next
to each other; a key seen once is a domain boundary edge. The same grouping is
used for triangle-to-triangle adjacency when building the Voronoi dual.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np
from scipy.sparse import csr_matrix

from .errors import InputConsistencyError

BOUNDARY = -1

EdgeKey = Tuple[int, int]
EdgeOwner = Tuple[int, int]


def group_edges(
    cells: Sequence[Sequence[int]],
) -> List[Tuple[EdgeKey, List[EdgeOwner]]]:
    """
    Groups the local edges of a polygon soup by their vertex pair.

    Args:
        cells: Vertex indices per cell, in polygon order.

    Returns:
        `(key, owners)` pairs in ascending key order, where `owners` lists the
        `(cell, local_edge)` pairs sharing that key, sorted by cell then edge.
    """
    rows = []
    for cc, verts in enumerate(cells):
        n = len(verts)
        for j in range(n):
            a, b = int(verts[j]), int(verts[(j + 1) % n])
            rows.append((min(a, b), max(a, b), cc, j))
    if not rows:
        return []

    table = np.array(rows, dtype=np.int64)
    order = np.lexsort((table[:, 3], table[:, 2], table[:, 1], table[:, 0]))
    table = table[order]

    groups: List[Tuple[EdgeKey, List[EdgeOwner]]] = []
    start = 0
    n_rows = table.shape[0]
    for k in range(1, n_rows + 1):
        if (
            k == n_rows
            or table[k, 0] != table[start, 0]
            or table[k, 1] != table[start, 1]
        ):
            key = (int(table[start, 0]), int(table[start, 1]))
            owners = [(int(c), int(j)) for c, j in table[start:k, 2:4]]
            groups.append((key, owners))
            start = k
    return groups


@dataclass(frozen=True)
class AdjacencyMap:
    """
    Neighbour cell and neighbour edge across every local edge of every cell.

    Attributes:
        neighbor_cell (np.ndarray): The cell across each local edge, or -1 for
            a domain boundary edge (and for padding past `side_counts`).
            - Shape: `(n_cells, max_sides)`
            - `dtype`: `int`
        neighbor_edge (np.ndarray): The local edge index, in the neighbouring
            cell, of the shared edge; -1 where there is no neighbour.
            - Shape: `(n_cells, max_sides)`
            - `dtype`: `int`
        side_counts (np.ndarray): Number of edges of each cell.
            - Shape: `(n_cells,)`
            - `dtype`: `int`
    """

    neighbor_cell: np.ndarray
    neighbor_edge: np.ndarray
    side_counts: np.ndarray

    @property
    def n_cells(self) -> int:
        return int(self.side_counts.shape[0])

    @property
    def max_sides(self) -> int:
        return int(self.neighbor_cell.shape[1]) if self.neighbor_cell.ndim == 2 else 0

    def valid_mask(self) -> np.ndarray:
        """Boolean mask of the `(cell, edge)` slots that hold a real edge."""
        return np.arange(self.max_sides)[None, :] < self.side_counts[:, None]

    @property
    def n_boundary_edges(self) -> int:
        return int(np.count_nonzero(self.valid_mask() & (self.neighbor_cell == BOUNDARY)))

    @property
    def n_interior_pairs(self) -> int:
        return int(np.count_nonzero(self.valid_mask() & (self.neighbor_cell != BOUNDARY))) // 2

    def is_boundary_edge(self, cell: int, edge: int) -> bool:
        return bool(self.neighbor_cell[cell, edge] == BOUNDARY)

    def boundary_edges(self, cell: int) -> List[int]:
        """Local indices of the domain boundary edges of a cell."""
        return [
            j
            for j in range(int(self.side_counts[cell]))
            if self.neighbor_cell[cell, j] == BOUNDARY
        ]

    def has_boundary(self, cell: int) -> bool:
        return bool(self.boundary_edges(cell))

    def boundary_cells(self) -> np.ndarray:
        """Indices of all cells with at least one boundary edge."""
        mask = np.any(self.valid_mask() & (self.neighbor_cell == BOUNDARY), axis=1)
        return np.flatnonzero(mask)

    def neighbors(self, cell: int) -> List[int]:
        return [
            int(c)
            for c in self.neighbor_cell[cell, : int(self.side_counts[cell])]
            if c != BOUNDARY
        ]

    def edge_facing(self, cell: int, other: int) -> int:
        """Local edge of `cell` shared with `other`, or -1 if they are not adjacent."""
        for j in range(int(self.side_counts[cell])):
            if self.neighbor_cell[cell, j] == other:
                return j
        return BOUNDARY

    def to_csr(self) -> csr_matrix:
        """
        Builds the symmetric cell-to-cell adjacency matrix.

        A non-zero entry at `(i, j)` indicates that cells `i` and `j` share
        an edge.
        """
        if self.n_cells == 0:
            return csr_matrix((0, 0), dtype=int)
        mask = self.valid_mask() & (self.neighbor_cell != BOUNDARY)
        row = np.nonzero(mask)[0]
        col = self.neighbor_cell[mask]
        return csr_matrix(
            (np.ones_like(row), (row, col)), shape=(self.n_cells, self.n_cells)
        )

    def subset(self, kept: np.ndarray, old_to_new: np.ndarray) -> "AdjacencyMap":
        """
        Restricts the map to `kept` cells and renumbers neighbour references.

        Every neighbour of a kept cell must itself be kept.
        """
        neighbor_cell = self.neighbor_cell[kept].copy()
        linked = neighbor_cell != BOUNDARY
        remapped = old_to_new[neighbor_cell[linked]]
        if np.any(remapped < 0):
            raise InputConsistencyError(
                "Adjacency subset keeps a cell whose neighbour was removed."
            )
        neighbor_cell[linked] = remapped
        return AdjacencyMap(
            neighbor_cell=neighbor_cell,
            neighbor_edge=self.neighbor_edge[kept].copy(),
            side_counts=self.side_counts[kept].copy(),
        )


def build_adjacency(cells: Sequence[Sequence[int]]) -> AdjacencyMap:
    """
    Derives the adjacency map of a polygon soup by edge sorting.

    Args:
        cells: Vertex indices per cell, in polygon order.

    Returns:
        The symmetric `AdjacencyMap`.

    Raises:
        InputConsistencyError: If an edge is shared by more than two cells.
    """
    n_cells = len(cells)
    side_counts = np.array([len(c) for c in cells], dtype=int)
    max_sides = int(side_counts.max()) if n_cells else 0
    neighbor_cell = np.full((n_cells, max_sides), BOUNDARY, dtype=int)
    neighbor_edge = np.full((n_cells, max_sides), BOUNDARY, dtype=int)

    for key, owners in group_edges(cells):
        if len(owners) > 2:
            raise InputConsistencyError(
                f"Edge {key} is shared by {len(owners)} cells "
                f"{[c for c, _ in owners]}; at most two are allowed."
            )
        if len(owners) == 2:
            (c0, j0), (c1, j1) = owners
            neighbor_cell[c0, j0], neighbor_edge[c0, j0] = c1, j1
            neighbor_cell[c1, j1], neighbor_edge[c1, j1] = c0, j0

    return AdjacencyMap(neighbor_cell, neighbor_edge, side_counts)
