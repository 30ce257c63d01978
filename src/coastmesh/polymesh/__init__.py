# -*- coding: utf-8 -*-
"""
This package builds the unstructured polygonal meshes read by finite-volume
ocean and estuary solvers: Voronoi duals of triangulations, triangle meshes and
quads from curvilinear grids, with shared vertices, cell adjacency, lake
removal and named open boundaries.

Key modules:
- triangulation: Validated triangulation input (points, triangles, edges).
- dual:          Voronoi dual points (circumcenters, centroids, midpoints).
- cells:         Closed, clockwise cell polygons around triangulation vertices.
- structured:    Quad cells from structured grid corners.
- vertex_pool:   Deduplication of cell vertices into a shared index space.
- adjacency:     Cell-to-cell neighbour map across shared edges.
- perimeter:     Perimeter walk and open boundary binding.
- lakes:         Removal of cells unreachable from an interior seed.
- metrics:       Edge lengths, angles and areas, planar or spherical.
- assembler:     The pipeline that produces a PolyMesh.
- poly_mesh:     The assembled mesh, its summary and plot.
- mesh_io:       The persisted text format and plotting dumps.
- config:        Assembly options, loadable from JSON.
- quality:       Mesh quality metrics and topology checks.
"""

from .adjacency import AdjacencyMap, build_adjacency
from .assembler import MeshAssembler
from .cells import CellSet, DegenerateCellPolicy
from .config import MeshConfig, OpenBoundarySpec
from .errors import (
    BoundaryDefinitionError,
    ConfigError,
    DanglingBoundaryError,
    DegenerateCellWarning,
    InputConsistencyError,
    LakeCellsRemovedWarning,
    MeshError,
    MeshFormatError,
    MeshTopologyError,
    PerimeterWarning,
)
from .mesh_io import read_mesh, write_diagnostics, write_mesh
from .perimeter import OpenBoundarySegment
from .poly_mesh import PolyMesh
from .quality import MeshQuality
from .triangulation import TriangulationInput
from .vertex_pool import VertexPool

__all__ = [
    "AdjacencyMap",
    "BoundaryDefinitionError",
    "CellSet",
    "ConfigError",
    "DanglingBoundaryError",
    "DegenerateCellPolicy",
    "DegenerateCellWarning",
    "InputConsistencyError",
    "LakeCellsRemovedWarning",
    "MeshAssembler",
    "MeshConfig",
    "MeshError",
    "MeshFormatError",
    "MeshQuality",
    "MeshTopologyError",
    "OpenBoundarySegment",
    "OpenBoundarySpec",
    "PerimeterWarning",
    "PolyMesh",
    "TriangulationInput",
    "VertexPool",
    "build_adjacency",
    "read_mesh",
    "write_diagnostics",
    "write_mesh",
]
