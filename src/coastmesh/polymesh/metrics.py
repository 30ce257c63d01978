# -*- coding: utf-8 -*-
"""
Geometric metrics of an assembled polygon mesh.

Metrics are computed per cell and per local edge `j` (from vertex `j` to vertex
`j + 1`), either on the plane or, for geographic (longitude, latitude in
degrees) coordinates, on the sphere using great circles.

Key quantities:
- edge_lengths:     length of each edge.
- edge_angles:      orientation of each edge, radians anticlockwise from east.
- center_distances: distance between the cell centre and the centre of the
                    neighbour across each edge; for boundary edges, twice the
                    distance to the edge midpoint.
- center_angles:    orientation of that centre-to-centre segment.
- interior_angles:  angle inside the cell between the two edges meeting at
                    each vertex; above pi at reflex vertices.
- areas:            cell area.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .adjacency import BOUNDARY, AdjacencyMap

EARTH_RADIUS = 6370997.0


@dataclass(frozen=True)
class CellMetrics:
    """
    Per-cell geometric metrics. Edge-indexed arrays have shape
    `(n_cells, max_sides)` and are NaN past each cell's side count.
    """

    edge_lengths: np.ndarray
    edge_angles: np.ndarray
    center_distances: np.ndarray
    center_angles: np.ndarray
    interior_angles: np.ndarray
    areas: np.ndarray
    geographic: bool = False


def planar_distance(p: np.ndarray, q: np.ndarray) -> np.ndarray:
    return np.hypot(q[..., 0] - p[..., 0], q[..., 1] - p[..., 1])


def planar_angle(p: np.ndarray, q: np.ndarray) -> np.ndarray:
    return np.arctan2(q[..., 1] - p[..., 1], q[..., 0] - p[..., 0])


def great_circle_distance(
    p: np.ndarray, q: np.ndarray, radius: float = EARTH_RADIUS
) -> np.ndarray:
    """Haversine distance between (lon, lat) points given in degrees."""
    lon1, lat1 = np.radians(p[..., 0]), np.radians(p[..., 1])
    lon2, lat2 = np.radians(q[..., 0]), np.radians(q[..., 1])
    h = (
        np.sin(0.5 * (lat2 - lat1)) ** 2
        + np.cos(lat1) * np.cos(lat2) * np.sin(0.5 * (lon2 - lon1)) ** 2
    )
    return 2.0 * radius * np.arcsin(np.sqrt(np.clip(h, 0.0, 1.0)))


def great_circle_angle(p: np.ndarray, q: np.ndarray) -> np.ndarray:
    """Initial direction from p to q, radians anticlockwise from east."""
    lon1, lat1 = np.radians(p[..., 0]), np.radians(p[..., 1])
    lon2, lat2 = np.radians(q[..., 0]), np.radians(q[..., 1])
    dlon = lon2 - lon1
    bearing = np.arctan2(
        np.sin(dlon) * np.cos(lat2),
        np.cos(lat1) * np.sin(lat2) - np.sin(lat1) * np.cos(lat2) * np.cos(dlon),
    )
    return np.arctan2(np.cos(bearing), np.sin(bearing))


def polygon_area(coords: np.ndarray) -> float:
    """Planar polygon area using the shoelace formula."""
    x, y = coords[:, 0], coords[:, 1]
    return float(0.5 * abs(np.dot(x, np.roll(y, 1)) - np.dot(y, np.roll(x, 1))))


def spherical_polygon_area(coords: np.ndarray, radius: float = EARTH_RADIUS) -> float:
    """Area of a (lon, lat) degree polygon on the sphere."""
    lon = np.radians(coords[:, 0])
    lat = np.radians(coords[:, 1])
    lon_next, lat_next = np.roll(lon, -1), np.roll(lat, -1)
    dlon = (lon_next - lon + np.pi) % (2.0 * np.pi) - np.pi
    total = np.sum(dlon * (2.0 + np.sin(lat) + np.sin(lat_next)))
    return float(abs(total) * radius * radius / 2.0)


def is_anticlockwise(coords: np.ndarray) -> bool:
    """True when the shoelace signed area of the polygon is positive."""
    x, y = coords[:, 0], coords[:, 1]
    return bool(np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1)) > 0.0)


def interior_angles(
    to_next: np.ndarray, to_prev: np.ndarray, anticlockwise: bool
) -> np.ndarray:
    """
    Interior angle at each polygon vertex, in [0, 2 pi).

    Args:
        to_next (np.ndarray): Direction from each vertex to the next one.
        to_prev (np.ndarray): Direction from each vertex to the previous one.
        anticlockwise (bool): Winding of the polygon. The interior lies to the
            right of a clockwise polygon's edges.

    Returns:
        np.ndarray: Reflex vertices of non-convex cells give angles above pi.
    """
    turn = to_next - to_prev
    if anticlockwise:
        turn = -turn
    return np.mod(turn, 2.0 * np.pi)


def compute_cell_metrics(
    vertex_coords: np.ndarray,
    cell_vertices: Sequence[Sequence[int]],
    centers: np.ndarray,
    adjacency: AdjacencyMap,
    geographic: bool = False,
    radius: float = EARTH_RADIUS,
) -> CellMetrics:
    """
    Computes edge, centre-to-centre and area metrics for every cell.

    Args:
        vertex_coords (np.ndarray): Pooled vertex coordinates `(n_vertices, 2)`.
        cell_vertices: Vertex indices of each cell.
        centers (np.ndarray): Cell centre coordinates `(n_cells, 2)`.
        adjacency (AdjacencyMap): The cell adjacency map.
        geographic (bool): Use great-circle metrics on (lon, lat) degrees.
        radius (float): Sphere radius for geographic metrics.
    """
    n_cells = len(cell_vertices)
    max_sides = max((len(v) for v in cell_vertices), default=0)
    shape = (n_cells, max_sides)
    edge_lengths = np.full(shape, np.nan)
    edge_angles = np.full(shape, np.nan)
    center_distances = np.full(shape, np.nan)
    center_angles = np.full(shape, np.nan)
    vertex_angles = np.full(shape, np.nan)
    areas = np.zeros(n_cells)

    if geographic:

        def distance(p, q):
            return great_circle_distance(p, q, radius)

        angle = great_circle_angle
    else:
        distance, angle = planar_distance, planar_angle

    for cc, verts in enumerate(cell_vertices):
        n = len(verts)
        pts = vertex_coords[list(verts)]
        nxt = np.roll(pts, -1, axis=0)
        prv = np.roll(pts, 1, axis=0)

        edge_lengths[cc, :n] = distance(pts, nxt)
        edge_angles[cc, :n] = angle(pts, nxt)
        vertex_angles[cc, :n] = interior_angles(
            angle(pts, nxt), angle(pts, prv), is_anticlockwise(pts)
        )

        neighbors = adjacency.neighbor_cell[cc, :n]
        targets = np.empty((n, 2))
        scale = np.ones(n)
        for j in range(n):
            if neighbors[j] == BOUNDARY:
                targets[j] = 0.5 * (pts[j] + nxt[j])
                scale[j] = 2.0
            else:
                targets[j] = centers[neighbors[j]]
        origin = np.broadcast_to(centers[cc], (n, 2))
        center_distances[cc, :n] = scale * distance(origin, targets)
        center_angles[cc, :n] = angle(origin, targets)

        areas[cc] = (
            spherical_polygon_area(pts, radius) if geographic else polygon_area(pts)
        )

    return CellMetrics(
        edge_lengths=edge_lengths,
        edge_angles=edge_angles,
        center_distances=center_distances,
        center_angles=center_angles,
        interior_angles=vertex_angles,
        areas=areas,
        geographic=geographic,
    )
