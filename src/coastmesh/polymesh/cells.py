# -*- coding: utf-8 -*-
"""
Assembles mesh cells as ordered polygons.

The main entry point, `assemble_voronoi_cells`, builds the Voronoi cell around
each triangulation vertex by stitching the dual edges of its incident edges
into a chain. A chain that closes on itself is an interior cell. A chain that
dead-ends belongs to a vertex on the domain boundary; it is completed by
stitching backwards from the first dual point, and the cell is truncated along
the straight segment joining the two chain ends.

Every accepted polygon is normalized to clockwise order starting from its most
south-westerly vertex, so that all cells share one winding sense.

`assemble_triangle_cells` turns the triangles themselves into cells.
"""
from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .adjacency import build_adjacency
from .dual import VoronoiDual, build_voronoi_dual
from .errors import DegenerateCellWarning, InputConsistencyError
from .triangulation import TriangulationInput

TRIANGULAR_REMAINDER_SIDES = 3
WEST_TOLERANCE_FRACTION = 0.25


@dataclass(frozen=True)
class DegenerateCellPolicy:
    """
    Rules deciding which stitched cells are discarded.

    Attributes:
        min_boundary_sides (int): Boundary cells with fewer vertices are
            dropped. Must exceed 3, so triangular boundary remainders are
            always dropped.
        require_complete_stitch (bool): Drop cells whose stitched vertex count
            differs from the count implied by their incident dual edges.
        warn (bool): Emit a `DegenerateCellWarning` for each dropped cell.
    """

    min_boundary_sides: int = TRIANGULAR_REMAINDER_SIDES + 1
    require_complete_stitch: bool = True
    warn: bool = True

    def __post_init__(self) -> None:
        if self.min_boundary_sides <= TRIANGULAR_REMAINDER_SIDES:
            raise ValueError(
                "min_boundary_sides must be greater than 3; triangular boundary "
                "remainders are always dropped."
            )

    def rejection_reason(
        self, n_stitched: int, n_expected: int, is_boundary: bool
    ) -> Optional[str]:
        """Returns why a cell must be dropped, or None if it is accepted."""
        if self.require_complete_stitch and n_stitched != n_expected:
            return f"stitched {n_stitched} of {n_expected} vertices"
        if is_boundary and n_stitched < self.min_boundary_sides:
            return f"boundary remainder with {n_stitched} vertices"
        return None


@dataclass
class CellSet:
    """
    Cells described by coordinates, before vertex pooling.

    Attributes:
        centers (np.ndarray): Reference centre of each cell.
            - Shape: `(n_cells, 2)`
        polygons (List[np.ndarray]): Ordered vertex coordinates of each cell,
            clockwise from the south-westerly vertex, without repeating the
            first vertex.
        is_boundary (np.ndarray): True for cells truncated by the domain
            boundary while stitching (Voronoi cells) or cells with a boundary
            edge (triangle and grid cells).
        source_index (np.ndarray): The triangulation vertex, triangle or flat
            grid index each cell was built from.
        grid_indices (np.ndarray, optional): `(i, j)` of each structured grid
            cell.
        grid_shape (Tuple[int, int], optional): `(ni, nj)` of a structured grid.
    """

    centers: np.ndarray
    polygons: List[np.ndarray]
    is_boundary: np.ndarray
    source_index: np.ndarray
    grid_indices: Optional[np.ndarray] = None
    grid_shape: Optional[Tuple[int, int]] = None

    @property
    def n_cells(self) -> int:
        return len(self.polygons)

    @property
    def max_sides(self) -> int:
        return max((len(p) for p in self.polygons), default=0)


def stitch_chain(edges: Sequence[Tuple[int, int]]) -> Tuple[List[int], bool]:
    """
    Stitches a set of edges sharing endpoints into one ordered chain.

    The chain is seeded with the first edge `(cs, ce)` and extended forward by
    repeatedly taking the first unused edge with an endpoint equal to `ce`.
    If it does not close on `cs`, it is extended in reverse from `cs`,
    prepending at the opposite end.

    Args:
        edges: Endpoint pairs.

    Returns:
        The chain of endpoints and whether it closed.
    """
    if not edges:
        return [], False

    used = [False] * len(edges)
    used[0] = True
    cs, ce = edges[0]
    chain = [cs, ce]

    def take_next(end: int) -> Optional[int]:
        for k, (a, b) in enumerate(edges):
            if used[k]:
                continue
            if a == end or b == end:
                used[k] = True
                return b if a == end else a
        return None

    closed = False
    while True:
        nxt = take_next(ce)
        if nxt is None:
            break
        if nxt == cs:
            closed = True
            break
        chain.append(nxt)
        ce = nxt

    if not closed:
        ce = cs
        while True:
            nxt = take_next(ce)
            if nxt is None:
                break
            if nxt == chain[-1]:
                closed = True
                break
            chain.insert(0, nxt)
            ce = nxt

    return chain, closed


def southwest_index(coords: np.ndarray) -> int:
    """
    Index of the most south-westerly vertex of a polygon.

    Vertices with another vertex more than a quarter of the polygon's
    x-extent further west are excluded; the most southerly remaining vertex
    wins, the first one on ties.
    """
    x, y = coords[:, 0], coords[:, 1]
    eps = WEST_TOLERANCE_FRACTION * (x.max() - x.min())
    candidates = np.array([not np.any(x < xi - eps) for xi in x])
    idx = np.flatnonzero(candidates)
    return int(idx[np.argmin(y[idx])])


def order_clockwise_from_southwest(coords: np.ndarray) -> np.ndarray:
    """
    Returns the permutation that orders polygon vertices clockwise.

    Vertices are sorted by decreasing polar angle about their mean; equal
    angles are ordered west first, then south. The result is rotated so that
    the most south-westerly vertex comes first.
    """
    center = coords.mean(axis=0)
    angles = np.arctan2(coords[:, 1] - center[1], coords[:, 0] - center[0])
    angles[angles < 0.0] += 2.0 * np.pi
    order = np.lexsort((coords[:, 1], coords[:, 0], -angles))
    start = southwest_index(coords[order])
    return np.roll(order, -start)


def _collapse_coincident(coords: np.ndarray) -> np.ndarray:
    """Removes vertices equal to their cyclic predecessor."""
    if len(coords) < 2:
        return coords
    previous = np.roll(coords, 1, axis=0)
    keep = np.any(coords != previous, axis=1)
    if not np.any(keep):
        return coords[:1]
    return coords[keep]


def _drop_cell(policy: DegenerateCellPolicy, n: int, point: np.ndarray, reason: str) -> None:
    if policy.warn:
        warnings.warn(
            f"Can't create closed cell at vertex {n} [{point[0]:.6f} {point[1]:.6f}] "
            f"({reason}). Removing cell.",
            DegenerateCellWarning,
            stacklevel=3,
        )


def assemble_voronoi_cells(
    tri: TriangulationInput,
    dual: Optional[VoronoiDual] = None,
    policy: Optional[DegenerateCellPolicy] = None,
) -> CellSet:
    """
    Builds one Voronoi cell per triangulation vertex.

    Args:
        tri: The triangulation.
        dual: Its Voronoi dual; computed when omitted.
        policy: Rules for dropping degenerate cells.

    Returns:
        The accepted cells. Dropped vertices are absent, so `source_index`
        records the triangulation vertex of each cell.

    Raises:
        InputConsistencyError: If a triangulation vertex has no incident edge.
    """
    if dual is None:
        dual = build_voronoi_dual(tri)
    if policy is None:
        policy = DegenerateCellPolicy()

    incident: List[List[int]] = [[] for _ in range(tri.n_points)]
    for e, (i, j) in enumerate(tri.edges):
        incident[i].append(e)
        incident[j].append(e)

    centers, polygons, is_boundary, source = [], [], [], []
    for n in range(tri.n_points):
        if not incident[n]:
            raise InputConsistencyError(
                f"Triangulation vertex {n} at {tri.points[n].tolist()} has no "
                "incident edges."
            )

        dual_edges = [(int(a), int(b)) for a, b in dual.edges[incident[n]]]
        chain, closed = stitch_chain(dual_edges)
        expected = len(dual_edges) if closed else len(dual_edges) + 1

        reason = policy.rejection_reason(len(chain), expected, not closed)
        if reason is not None:
            _drop_cell(policy, n, tri.points[n], reason)
            continue

        coords = _collapse_coincident(dual.points[chain])
        if len(coords) < 3 or (not closed and len(coords) < policy.min_boundary_sides):
            _drop_cell(policy, n, tri.points[n], f"{len(coords)} distinct vertices")
            continue

        polygon = coords[order_clockwise_from_southwest(coords)]
        centers.append(tri.points[n] if closed else coords.mean(axis=0))
        polygons.append(polygon)
        is_boundary.append(not closed)
        source.append(n)

    return CellSet(
        centers=np.array(centers, dtype=float).reshape(-1, 2),
        polygons=polygons,
        is_boundary=np.array(is_boundary, dtype=bool),
        source_index=np.array(source, dtype=int),
    )


def assemble_triangle_cells(tri: TriangulationInput) -> CellSet:
    """
    Uses the triangles of a triangulation directly as cells.

    The centre of each cell is the mean of its three vertices; triangles with
    an edge on the domain boundary are flagged as boundary cells.
    """
    adjacency = build_adjacency(tri.triangles)
    polygons = []
    for t in range(tri.n_triangles):
        coords = tri.points[tri.triangles[t]]
        polygons.append(coords[order_clockwise_from_southwest(coords)])

    return CellSet(
        centers=tri.points[tri.triangles].mean(axis=1),
        polygons=polygons,
        is_boundary=np.array(
            [adjacency.has_boundary(t) for t in range(tri.n_triangles)], dtype=bool
        ),
        source_index=np.arange(tri.n_triangles),
    )
