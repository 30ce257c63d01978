"""
Triangulation front ends backed by gmsh.

Both functions initialize and finalize the gmsh API themselves and return a
`TriangulationInput` ready for `PolyMesh.from_triangulation`.
"""
import os
from typing import Callable, List, Optional, Tuple

import gmsh
import numpy as np
from scipy.spatial import ConvexHull

from ..polymesh.errors import InputConsistencyError
from ..polymesh.triangulation import TriangulationInput

# gmsh element type of the 3-node triangle
GMSH_TRIANGLE = 2


def _add_polygon(points: np.ndarray, mesh_size: float) -> int:
    """Adds a closed polygon surface to the current gmsh model."""
    gmsh_points = [
        gmsh.model.geo.addPoint(p[0], p[1], 0, mesh_size) for p in points
    ]
    lines = [
        gmsh.model.geo.addLine(gmsh_points[i], gmsh_points[(i + 1) % len(gmsh_points)])
        for i in range(len(gmsh_points))
    ]
    curve_loop = gmsh.model.geo.addCurveLoop(lines)
    surface = gmsh.model.geo.addPlaneSurface([curve_loop])
    gmsh.model.geo.synchronize()
    return surface


def _extract_triangles() -> Tuple[np.ndarray, np.ndarray]:
    """
    Reads the triangles of the current gmsh model.

    Nodes not referenced by any triangle are dropped and the connectivity is
    renumbered to zero-based indices into the returned points.
    """
    raw_tags, raw_coords, _ = gmsh.model.mesh.getNodes()
    coords = np.array(raw_coords).reshape(-1, 3)[:, :2]
    tag_to_index = {int(t): i for i, t in enumerate(raw_tags)}

    elem_types, _, connectivity_list = gmsh.model.mesh.getElements(dim=2)
    triangles: List[np.ndarray] = []
    for i, et in enumerate(elem_types):
        if int(et) != GMSH_TRIANGLE:
            continue
        raw_conn = np.array(connectivity_list[i], dtype=int).reshape(-1, 3)
        triangles.append(np.vectorize(tag_to_index.get)(raw_conn))
    if not triangles:
        raise InputConsistencyError("The gmsh model contains no 3-node triangles.")

    tris = np.concatenate(triangles)
    used = np.unique(tris)
    old_to_new = np.full(coords.shape[0], -1, dtype=int)
    old_to_new[used] = np.arange(used.size)
    return coords[used], old_to_new[tris]


def _sample_values(points: np.ndarray, depth: Optional[Callable]) -> Optional[np.ndarray]:
    if depth is None:
        return None
    return np.asarray(depth(points[:, 0], points[:, 1]), dtype=float).reshape(-1)


def triangulate_perimeter(
    points,
    mesh_size: float = 0.1,
    convex_hull: bool = False,
    depth: Optional[Callable] = None,
    gmsh_verbose: int = 0,
) -> TriangulationInput:
    """
    Meshes the interior of a coastline perimeter with triangles.

    Args:
        points: `(n, 2)` perimeter vertices, in order, not closed.
        mesh_size (float): The characteristic length of the triangles.
        convex_hull (bool): If True, meshes the convex hull of the points.
        depth (callable, optional): `depth(x, y)` sampled at the triangle
            vertices to fill `TriangulationInput.values`.
        gmsh_verbose (int): The verbosity level for the Gmsh API (0-10).

    Returns:
        TriangulationInput: The triangulation.
    """
    pts = np.asarray(points, dtype=float)
    if pts.ndim != 2 or pts.shape[0] < 3:
        raise ValueError("At least 3 points are required to create a polygon.")
    if convex_hull:
        pts = pts[ConvexHull(pts[:, :2]).vertices]

    gmsh.initialize()
    gmsh.option.setNumber("General.Verbosity", gmsh_verbose)
    try:
        gmsh.model.add("perimeter")
        _add_polygon(pts, mesh_size)
        gmsh.model.mesh.generate(2)
        coords, tris = _extract_triangles()
    finally:
        gmsh.finalize()

    return TriangulationInput.from_arrays(
        coords, tris, values=_sample_values(coords, depth)
    )


def read_gmsh_triangulation(
    msh_file: str, depth: Optional[Callable] = None, gmsh_verbose: int = 0
) -> TriangulationInput:
    """
    Reads the triangles of a Gmsh .msh file.

    Args:
        msh_file (str): The path to the .msh file.
        depth (callable, optional): `depth(x, y)` sampled at the vertices.
        gmsh_verbose (int): The verbosity level for the Gmsh API.
    """
    if not os.path.isfile(msh_file):
        raise FileNotFoundError(f"Mesh file not found: {msh_file}")

    gmsh.initialize()
    gmsh.option.setNumber("General.Verbosity", gmsh_verbose)
    try:
        gmsh.open(msh_file)
        coords, tris = _extract_triangles()
    finally:
        gmsh.finalize()

    return TriangulationInput.from_arrays(
        coords, tris, values=_sample_values(coords, depth)
    )
