# -*- coding: utf-8 -*-
"""
The triangulation consumed by the Voronoi dual builder.

A triangulation is treated as a black box delivered by an external collaborator
(scipy's Qhull-based Delaunay, or gmsh through `coastmesh.meshgen`). This
module only holds and validates the arrays.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
from scipy.spatial import Delaunay, QhullError

from .errors import InputConsistencyError


def _derive_edges(triangles: np.ndarray) -> np.ndarray:
    """Unique, sorted vertex pairs of all triangle edges."""
    if triangles.size == 0:
        return np.zeros((0, 2), dtype=int)
    pairs = np.concatenate(
        [triangles[:, [0, 1]], triangles[:, [1, 2]], triangles[:, [2, 0]]]
    )
    return np.unique(np.sort(pairs, axis=1), axis=0)


@dataclass(frozen=True)
class TriangulationInput:
    """
    Points, edges and triangles of a planar triangulation.

    Attributes:
        points (np.ndarray): Vertex coordinates.
            - Shape: `(n_points, 2)`
        triangles (np.ndarray): Vertex indices of each triangle.
            - Shape: `(n_triangles, 3)`
        edges (np.ndarray): Vertex index pairs of each edge.
            - Shape: `(n_edges, 2)`
        values (np.ndarray, optional): A value per point, typically the
            bathymetry sampled at the triangulation vertices.
            - Shape: `(n_points,)`
    """

    points: np.ndarray
    triangles: np.ndarray
    edges: np.ndarray
    values: Optional[np.ndarray] = None

    @property
    def n_points(self) -> int:
        return int(self.points.shape[0])

    @property
    def n_triangles(self) -> int:
        return int(self.triangles.shape[0])

    @property
    def n_edges(self) -> int:
        return int(self.edges.shape[0])

    @classmethod
    def from_arrays(
        cls,
        points,
        triangles,
        edges=None,
        values=None,
    ) -> "TriangulationInput":
        """
        Builds a validated triangulation from raw arrays.

        Args:
            points: `(n, 2)` coordinates (extra columns such as z are dropped).
            triangles: `(m, 3)` vertex indices.
            edges: Optional `(k, 2)` vertex index pairs. Derived from the
                triangles when omitted.
            values: Optional per-point values.

        Raises:
            InputConsistencyError: On malformed shapes or out-of-range indices.
        """
        pts = np.asarray(points, dtype=float)
        if pts.ndim != 2 or pts.shape[1] < 2:
            raise InputConsistencyError(
                f"Points must have shape (n, 2), got {pts.shape}."
            )
        pts = pts[:, :2].copy()

        tris = np.asarray(triangles, dtype=int)
        if tris.size == 0:
            raise InputConsistencyError("Triangulation has no triangles.")
        if tris.ndim != 2 or tris.shape[1] != 3:
            raise InputConsistencyError(
                f"Triangles must have shape (m, 3), got {tris.shape}."
            )
        if tris.min() < 0 or tris.max() >= pts.shape[0]:
            raise InputConsistencyError(
                f"Triangle vertex indices must lie in [0, {pts.shape[0] - 1}]."
            )

        if edges is None:
            edge_arr = _derive_edges(tris)
        else:
            edge_arr = np.asarray(edges, dtype=int).reshape(-1, 2)
            if edge_arr.size and (
                edge_arr.min() < 0 or edge_arr.max() >= pts.shape[0]
            ):
                raise InputConsistencyError(
                    f"Edge vertex indices must lie in [0, {pts.shape[0] - 1}]."
                )

        vals = None
        if values is not None:
            vals = np.asarray(values, dtype=float).reshape(-1)
            if vals.shape[0] != pts.shape[0]:
                raise InputConsistencyError(
                    f"Expected {pts.shape[0]} point values, got {vals.shape[0]}."
                )

        return cls(points=pts, triangles=tris, edges=edge_arr, values=vals)

    @classmethod
    def from_points(
        cls, points, values=None, qhull_options: Optional[str] = None
    ) -> "TriangulationInput":
        """
        Delaunay-triangulates a point cloud with `scipy.spatial.Delaunay`.

        Args:
            points: `(n, 2)` coordinates.
            values: Optional per-point values carried along.
            qhull_options: Options passed through to Qhull.
        """
        pts = np.asarray(points, dtype=float)[:, :2]
        try:
            delaunay = Delaunay(pts, qhull_options=qhull_options)
        except QhullError as e:
            raise InputConsistencyError(
                f"Delaunay triangulation of {pts.shape[0]} points failed: {e}"
            ) from e
        return cls.from_arrays(pts, delaunay.simplices, values=values)
