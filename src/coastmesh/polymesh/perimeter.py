# -*- coding: utf-8 -*-
"""
Perimeter traversal and open boundary binding.

`walk_perimeter` traces the domain boundary as a cyclic sequence of cells that
own at least one boundary edge. From the current cell, edges are scanned in
rotational order starting just after the edge the walk came in through, and
the walk moves to the first unvisited neighbour that also lies on the boundary.
At a concave corner this forward rule can run into a dead end; the walk then
drops the "unvisited" condition, steps to the first boundary neighbour in the
same rotational order without recording it, and carries on from there.

`bind_open_boundary` maps a named boundary, given as start, mid and end
coordinates, onto a contiguous range of the perimeter path and collects the
boundary edges of the cells in that range.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Sequence, Set, Tuple

import numpy as np

from .adjacency import BOUNDARY, AdjacencyMap
from .config import OpenBoundarySpec
from .errors import BoundaryDefinitionError, MeshTopologyError

BoundaryEdge = Tuple[int, int, int]


@dataclass(frozen=True)
class OpenBoundarySegment:
    """
    The boundary edges bound to one named open boundary.

    Attributes:
        name (str): The boundary name.
        edges (Tuple[BoundaryEdge, ...]): `(cell, vertex_a, vertex_b)` for
            each boundary edge, in traversal order. Vertices are pooled
            vertex indices.
        path_range (Tuple[int, int, int]): `(start, end, direction)` indices
            into the perimeter path the segment was bound from.
    """

    name: str
    edges: Tuple[BoundaryEdge, ...]
    path_range: Tuple[int, int, int] = (0, 0, 1)

    @property
    def n_edges(self) -> int:
        return len(self.edges)

    @property
    def cells(self) -> List[int]:
        """Distinct cells of the segment in traversal order."""
        seen: List[int] = []
        for cell, _, _ in self.edges:
            if not seen or seen[-1] != cell:
                seen.append(cell)
        return seen

    def remap(
        self,
        cell_map: Optional[np.ndarray] = None,
        vertex_map: Optional[np.ndarray] = None,
    ) -> "OpenBoundarySegment":
        """Returns a copy with cell and/or vertex indices renumbered."""
        edges = []
        for cell, va, vb in self.edges:
            if cell_map is not None:
                cell = int(cell_map[cell])
            if vertex_map is not None:
                va, vb = int(vertex_map[va]), int(vertex_map[vb])
            edges.append((cell, va, vb))
        return replace(self, edges=tuple(edges))


def _entry_edge(adjacency: AdjacencyMap, cell: int) -> int:
    """The boundary edge that ends a cyclic run of boundary edges."""
    sides = int(adjacency.side_counts[cell])
    for j in range(sides):
        if adjacency.is_boundary_edge(cell, j) and not adjacency.is_boundary_edge(
            cell, (j + 1) % sides
        ):
            return j
    return 0


def _scan(
    adjacency: AdjacencyMap,
    cell: int,
    entry: int,
    accept: Callable[[int], bool],
) -> Optional[Tuple[int, int]]:
    """
    First `(edge, neighbour)` in rotational order after `entry` whose
    neighbour satisfies `accept`. The entry edge itself is scanned last.
    """
    sides = int(adjacency.side_counts[cell])
    for k in range(1, sides + 1):
        j = (entry + k) % sides
        other = int(adjacency.neighbor_cell[cell, j])
        if other != BOUNDARY and accept(other):
            return j, other
    return None


def walk_perimeter(
    adjacency: AdjacencyMap,
    start_cell: Optional[int] = None,
    visited: Optional[Set[int]] = None,
) -> Tuple[List[int], Set[int]]:
    """
    Walks the domain perimeter as a closed path of boundary cells.

    Args:
        adjacency: The cell adjacency map.
        start_cell: The cell to start from; defaults to the first cell with a
            boundary edge.
        visited: A set to record visited cells in. It is updated in place
            and also returned.

    Returns:
        The perimeter path, starting with `start_cell`, and the visited set.

    Raises:
        MeshTopologyError: If the walk gets stuck or does not return to the
            start cell.
    """
    if visited is None:
        visited = set()

    boundary_cells = adjacency.boundary_cells()
    if boundary_cells.size == 0:
        return [], visited

    if start_cell is None:
        start = int(boundary_cells[0])
    else:
        start = int(start_cell)
        if not adjacency.has_boundary(start):
            raise MeshTopologyError(
                f"Perimeter walk start cell {start} has no boundary edge."
            )

    has_boundary = np.zeros(adjacency.n_cells, dtype=bool)
    has_boundary[boundary_cells] = True

    path = [start]
    visited.add(start)
    current = start
    entry = _entry_edge(adjacency, start)

    max_steps = 2 * adjacency.n_cells
    for _ in range(max_steps):
        step = _scan(
            adjacency,
            current,
            entry,
            lambda c: c != start and c not in visited and bool(has_boundary[c]),
        )
        if step is not None:
            path.append(step[1])
            visited.add(step[1])
        else:
            neighbors = adjacency.neighbors(current)
            if start in neighbors or (current == start and not neighbors):
                return path, visited
            step = _scan(adjacency, current, entry, lambda c: bool(has_boundary[c]))
            if step is None:
                raise MeshTopologyError(
                    f"Perimeter walk is stuck at cell {current}: it has no "
                    "boundary neighbours."
                )

        j, nxt = step
        entry = int(adjacency.neighbor_edge[current, j])
        current = nxt

    raise MeshTopologyError(
        f"Perimeter walk from cell {start} did not close after {max_steps} steps; "
        "the mesh boundary is not a single closed curve."
    )


def nearest_index(points: np.ndarray, xy: Sequence[float]) -> int:
    """Index of the first point at minimum Euclidean distance from `xy`."""
    d = np.hypot(points[:, 0] - xy[0], points[:, 1] - xy[1])
    return int(np.argmin(d))


def _passes(si: int, mi: int, ei: int, step: int, n: int) -> bool:
    """True if walking from `si` by `step` meets `mi` before `ei`."""
    k = si
    for _ in range(n):
        k = (k + step) % n
        if k == ei:
            return False
        if k == mi:
            return True
    return False


def _direction(name: str, si: int, mi: int, ei: int, n: int) -> int:
    if si == ei:
        return 1
    if mi in (si, ei):
        if ei == si + 1:
            return 1
        if si == 0 and ei == n - 1:
            return -1
        raise BoundaryDefinitionError(
            f"Open boundary '{name}': the mid-point coincides with an end point "
            f"(perimeter indices {si}..{ei}), so the direction is ambiguous."
        )
    if _passes(si, mi, ei, 1, n):
        return 1
    if _passes(si, mi, ei, -1, n):
        return -1
    raise BoundaryDefinitionError(
        f"Can't find the mid-point of open boundary '{name}' between perimeter "
        f"indices {si} and {ei}."
    )


def bind_open_boundary(
    spec: OpenBoundarySpec,
    path: Sequence[int],
    centers: np.ndarray,
    adjacency: AdjacencyMap,
    cell_vertices: Sequence[Sequence[int]],
) -> OpenBoundarySegment:
    """
    Binds a named open boundary to a range of the perimeter path.

    Args:
        spec: The boundary definition.
        path: The perimeter path from `walk_perimeter`.
        centers: Cell centre coordinates, shape `(n_cells, 2)`.
        adjacency: The cell adjacency map.
        cell_vertices: Vertex indices of every cell.

    Returns:
        The bound segment.

    Raises:
        BoundaryDefinitionError: If the perimeter is empty or the traversal
            direction cannot be determined.
    """
    if len(path) == 0:
        raise BoundaryDefinitionError(
            f"Open boundary '{spec.name}' cannot be bound: the mesh has no perimeter."
        )
    points = np.asarray(centers)[list(path)]
    n = len(path)
    si = nearest_index(points, spec.start)
    mi = nearest_index(points, spec.mid)
    ei = nearest_index(points, spec.end)
    if ei < si:
        si, ei = ei, si
    direction = _direction(spec.name, si, mi, ei, n)

    edges: List[BoundaryEdge] = []
    k = si
    for _ in range(n):
        cell = int(path[k])
        verts = cell_vertices[cell]
        for j in adjacency.boundary_edges(cell):
            edges.append((cell, int(verts[j]), int(verts[(j + 1) % len(verts)])))
        if k == ei:
            break
        k = (k + direction) % n

    return OpenBoundarySegment(spec.name, tuple(edges), (si, ei, direction))
