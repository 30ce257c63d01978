# -*- coding: utf-8 -*-
"""
Voronoi dual of a triangulation.

Each triangle contributes one dual point: its circumcenter or, for an obtuse
triangle, its centroid. Each triangulation edge contributes one dual
edge joining the dual points of its two triangles. A domain boundary edge has
only one triangle, so its second dual endpoint is the edge midpoint.

Dual edges built from two circumcenters, or from a circumcenter and a
midpoint, are perpendicular to their triangulation edge.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

import numpy as np

from .adjacency import EdgeKey, EdgeOwner, group_edges
from .errors import InputConsistencyError
from .triangulation import TriangulationInput

OBTUSE_TOLERANCE = 1e-12
GEOMETRY_TOLERANCE = 1e-14


def is_obtuse(p0, p1, p2, tol: float = OBTUSE_TOLERANCE) -> bool:
    """
    Checks whether a triangle has an interior angle greater than 90 degrees.

    Uses the law of cosines on the squared side lengths: the angle opposite
    the longest side `c` is obtuse when `c^2 > a^2 + b^2`. The comparison is
    relative to the perimeter scale so that right triangles are not reported
    as obtuse through round-off.
    """
    pts = np.asarray([p0, p1, p2], dtype=float)
    a2, b2, c2 = np.sort(np.sum((pts - np.roll(pts, -1, axis=0)) ** 2, axis=1))
    return bool(c2 > a2 + b2 + tol * (a2 + b2 + c2))


def triangle_centroid(p0, p1, p2) -> np.ndarray:
    return np.mean(np.asarray([p0, p1, p2], dtype=float), axis=0)


def circumcenter(p0, p1, p2) -> np.ndarray:
    """
    Centre of the circle through the three vertices of a triangle.

    Raises:
        InputConsistencyError: If the triangle is degenerate.
    """
    origin = np.asarray(p0, dtype=float)
    legs = np.asarray([p1, p2], dtype=float) - origin
    rhs = 0.5 * np.sum(legs * legs, axis=1)
    det = legs[0, 0] * legs[1, 1] - legs[0, 1] * legs[1, 0]
    if abs(det) <= GEOMETRY_TOLERANCE * max(rhs[0] + rhs[1], GEOMETRY_TOLERANCE):
        raise InputConsistencyError(
            f"Degenerate triangle {np.asarray([p0, p1, p2]).tolist()} has no circumcenter."
        )
    return origin + np.linalg.solve(legs, rhs)


def dual_point(p0, p1, p2) -> Tuple[np.ndarray, bool]:
    """
    Returns the dual point of a triangle and whether the centroid was used.
    """
    if is_obtuse(p0, p1, p2):
        return triangle_centroid(p0, p1, p2), True
    return circumcenter(p0, p1, p2), False


@dataclass(frozen=True)
class VoronoiDual:
    """
    Dual points and dual edges of a triangulation.

    Attributes:
        points (np.ndarray): Dual vertex coordinates, in order of creation.
            - Shape: `(n_dual, 2)`
        edges (np.ndarray): The two dual vertex indices of each triangulation
            edge, in the order of `TriangulationInput.edges`.
            - Shape: `(n_edges, 2)`
        edge_triangles (np.ndarray): The triangles adjacent to each edge; the
            second entry is -1 for a boundary edge.
            - Shape: `(n_edges, 2)`
        triangle_points (np.ndarray): Dual vertex index of each triangle.
            - Shape: `(n_triangles,)`
        obtuse_triangles (np.ndarray): True where the centroid replaced the
            circumcenter.
            - Shape: `(n_triangles,)`
    """

    points: np.ndarray
    edges: np.ndarray
    edge_triangles: np.ndarray
    triangle_points: np.ndarray
    obtuse_triangles: np.ndarray

    @property
    def is_boundary_edge(self) -> np.ndarray:
        return self.edge_triangles[:, 1] < 0

    @property
    def n_points(self) -> int:
        return int(self.points.shape[0])


def triangle_edge_owners(tri: TriangulationInput) -> Dict[EdgeKey, List[EdgeOwner]]:
    """
    Maps each triangle edge to the `(triangle, local_edge)` pairs that own it.

    Raises:
        InputConsistencyError: If an edge is shared by more than two triangles.
    """
    owners_by_key: Dict[EdgeKey, List[EdgeOwner]] = {}
    for key, owners in group_edges(tri.triangles):
        if len(owners) > 2:
            raise InputConsistencyError(
                f"Edge {key} is shared by {len(owners)} triangles "
                f"{[t for t, _ in owners]}; at most two are allowed."
            )
        owners_by_key[key] = owners
    return owners_by_key


def build_voronoi_dual(tri: TriangulationInput) -> VoronoiDual:
    """
    Computes one dual point per triangle and one dual edge per edge.

    Args:
        tri: The triangulation.

    Returns:
        The `VoronoiDual`.

    Raises:
        InputConsistencyError: If the triangulation is empty, an edge belongs
            to no triangle or to more than two, an edge is listed twice, or a
            triangle edge is missing from the edge list.
    """
    if tri.n_triangles == 0:
        raise InputConsistencyError("Triangulation has no triangles.")

    owners_by_key = triangle_edge_owners(tri)

    edge_keys = [(int(min(i, j)), int(max(i, j))) for i, j in tri.edges]
    if len(set(edge_keys)) != len(edge_keys):
        raise InputConsistencyError("Triangulation edge list contains duplicates.")
    missing = set(owners_by_key).difference(edge_keys)
    if missing:
        raise InputConsistencyError(
            f"{len(missing)} triangle edges are missing from the edge list, "
            f"e.g. {sorted(missing)[0]}."
        )

    points: List[np.ndarray] = []
    triangle_points = -np.ones(tri.n_triangles, dtype=int)
    obtuse = np.zeros(tri.n_triangles, dtype=bool)
    dual_edges = np.zeros((tri.n_edges, 2), dtype=int)
    edge_triangles = -np.ones((tri.n_edges, 2), dtype=int)

    for e, key in enumerate(edge_keys):
        owners = owners_by_key.get(key)
        if not owners:
            raise InputConsistencyError(
                f"Edge {e} {key} is not part of any triangle."
            )

        ends = []
        for k, (t, _) in enumerate(owners):
            if triangle_points[t] < 0:
                corners = tri.points[tri.triangles[t]]
                point, used_centroid = dual_point(*corners)
                triangle_points[t] = len(points)
                obtuse[t] = used_centroid
                points.append(point)
            ends.append(triangle_points[t])
            edge_triangles[e, k] = t

        if len(owners) == 1:
            ends.append(len(points))
            points.append(0.5 * (tri.points[key[0]] + tri.points[key[1]]))

        dual_edges[e] = ends

    return VoronoiDual(
        points=np.array(points).reshape(-1, 2),
        edges=dual_edges,
        edge_triangles=edge_triangles,
        triangle_points=triangle_points,
        obtuse_triangles=obtuse,
    )
