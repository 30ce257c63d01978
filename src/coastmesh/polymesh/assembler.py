# -*- coding: utf-8 -*-
"""
Orchestrates the construction of a PolyMesh.

The pipeline is strictly sequential:

1. Cells: Voronoi cells (or triangles) from a triangulation, or quads from a
   structured grid.
2. Vertex pooling into a shared index space.
3. Edge adjacency.
4. Lake removal from the configured interior seed, then vertex compaction.
5. Perimeter walk and open boundary binding, when open boundaries are
   configured or the walk is requested.
6. Per-cell metrics, planar or spherical.

Every fatal condition raises before a PolyMesh is returned, so callers never
see a partially assembled mesh.
"""
from __future__ import annotations

import warnings
from typing import List, Optional, Sequence

import numpy as np

from .adjacency import build_adjacency
from .cells import CellSet, assemble_triangle_cells, assemble_voronoi_cells
from .config import VORONOI, MeshConfig
from .dual import build_voronoi_dual
from .errors import (
    BoundaryDefinitionError,
    InputConsistencyError,
    MeshTopologyError,
    PerimeterWarning,
)
from .lakes import find_seed_cell, remove_lakes
from .metrics import compute_cell_metrics
from .perimeter import bind_open_boundary, walk_perimeter
from .poly_mesh import PolyMesh, cells_as_tuples
from .structured import structured_cells
from .triangulation import TriangulationInput
from .vertex_pool import pool_cells


def _drop_repeated_vertices(cell_vertices: List[List[int]]) -> List[List[int]]:
    """
    Removes vertices pooled onto their cyclic predecessor.

    Only happens when a pooling tolerance merges distinct coordinates.
    """
    cleaned = []
    for cc, verts in enumerate(cell_vertices):
        kept = [v for k, v in enumerate(verts) if v != verts[k - 1]]
        if not kept:
            kept = verts[:1]
        if len(kept) < 3:
            raise InputConsistencyError(
                f"Cell {cc} collapses to {len(kept)} vertices after pooling; "
                "reduce the vertex tolerance."
            )
        cleaned.append(kept)
    return cleaned


class MeshAssembler:
    """
    Builds an immutable PolyMesh from cells, a triangulation or a grid.

    Attributes:
        config (MeshConfig): Assembly options.
    """

    def __init__(self, config: Optional[MeshConfig] = None) -> None:
        self.config = config if config is not None else MeshConfig()

    # =========================================================================
    # Front ends
    # =========================================================================

    def assemble_triangulation(
        self, tri: TriangulationInput, bathy=None
    ) -> PolyMesh:
        """
        Builds the mesh of a triangulation.

        Args:
            tri: The triangulation.
            bathy: Depth per triangulation point for Voronoi cells, or per
                triangle for triangle cells. Defaults to `tri.values`
                (averaged over the corners for triangle cells), else zeros.
        """
        if self.config.cell_type == VORONOI:
            cells = assemble_voronoi_cells(
                tri, build_voronoi_dual(tri), self.config.degenerate_policy
            )
            if bathy is None and tri.values is not None:
                bathy = tri.values
        else:
            cells = assemble_triangle_cells(tri)
            if bathy is None and tri.values is not None:
                bathy = tri.values[tri.triangles].mean(axis=1)

        cell_bathy = None
        if bathy is not None:
            cell_bathy = np.asarray(bathy, dtype=float).reshape(-1)[cells.source_index]
        return self.assemble_cells(cells, cell_bathy)

    def assemble_structured(self, x, y, mask=None, bathy=None) -> PolyMesh:
        """
        Builds the mesh of a structured grid.

        Args:
            x, y: Corner coordinates, shape `(nj + 1, ni + 1)`.
            mask: Wet mask, shape `(nj, ni)`. Defaults to the finite entries of
                `bathy` when given, else all cells.
            bathy: Depth per grid cell, shape `(nj, ni)`.
        """
        grid_bathy = None if bathy is None else np.asarray(bathy, dtype=float)
        if mask is None and grid_bathy is not None:
            mask = np.isfinite(grid_bathy)
        cells = structured_cells(x, y, mask)

        cell_bathy = None
        if grid_bathy is not None:
            cell_bathy = grid_bathy[cells.grid_indices[:, 1], cells.grid_indices[:, 0]]
        return self.assemble_cells(cells, cell_bathy)

    # =========================================================================
    # Pipeline
    # =========================================================================

    def assemble_cells(self, cells: CellSet, bathy=None) -> PolyMesh:
        """
        Runs the pooling, adjacency, lake removal, boundary and metric stages.

        Args:
            cells: The cells to assemble.
            bathy: Depth per cell; zeros when omitted.

        Returns:
            The assembled, read-only PolyMesh.
        """
        config = self.config
        if cells.n_cells == 0:
            raise InputConsistencyError("No cells to assemble.")
        self._check_boundary_names()

        if bathy is None:
            bathy = np.zeros(cells.n_cells)
        bathy = np.asarray(bathy, dtype=float).reshape(-1)
        if bathy.shape[0] != cells.n_cells:
            raise InputConsistencyError(
                f"Expected {cells.n_cells} depth values, got {bathy.shape[0]}."
            )

        # 1. Vertex pool
        pool, center_ids, cell_vertices = pool_cells(
            cells.centers, cells.polygons, config.vertex_tolerance
        )
        if config.vertex_tolerance > 0.0:
            cell_vertices = _drop_repeated_vertices(cell_vertices)

        # 2. Adjacency
        adjacency = build_adjacency(cell_vertices)
        kept = np.arange(cells.n_cells)

        # 3. Lakes
        if config.interior_seed is not None:
            seed = find_seed_cell(pool.coords[center_ids], config.interior_seed)
            removal = remove_lakes(cell_vertices, adjacency, seed)
            kept = removal.kept
            adjacency = removal.adjacency
            cell_vertices = removal.cell_vertices
            center_ids = center_ids[kept]

        if config.compact_vertices:
            used = np.concatenate(
                [center_ids, np.fromiter((v for c in cell_vertices for v in c), dtype=int)]
            )
            pool, vertex_map = pool.compact(used)
            center_ids = vertex_map[center_ids]
            cell_vertices = [[int(vertex_map[v]) for v in verts] for verts in cell_vertices]

        centers = pool.coords[center_ids]

        # 4. Perimeter and open boundaries
        perimeter: List[int] = []
        segments = []
        if config.open_boundaries:
            perimeter = self._walk(adjacency)
        elif config.walk_perimeter:
            try:
                perimeter = self._walk(adjacency)
            except MeshTopologyError as e:
                warnings.warn(
                    f"{e} No open boundaries are configured; the perimeter is "
                    "left empty.",
                    PerimeterWarning,
                    stacklevel=2,
                )
        for spec in config.open_boundaries:
            segments.append(
                bind_open_boundary(spec, perimeter, centers, adjacency, cell_vertices)
            )

        # 5. Metrics
        metrics = compute_cell_metrics(
            pool.coords, cell_vertices, centers, adjacency, geographic=config.is_geographic
        )

        # 6. Mesh
        mesh = PolyMesh()
        mesh.projection = config.projection
        mesh.vertex_pool = pool
        mesh.cell_vertices = cells_as_tuples(cell_vertices)
        mesh.cell_center_ids = np.asarray(center_ids, dtype=int)
        mesh.is_boundary_cell = np.isin(
            np.arange(adjacency.n_cells), adjacency.boundary_cells()
        )
        mesh.source_index = np.asarray(cells.source_index, dtype=int)[kept]
        if cells.grid_indices is not None:
            mesh.grid_indices = cells.grid_indices[kept]
            mesh.grid_shape = cells.grid_shape
        mesh.bathy = bathy[kept]
        mesh.adjacency = adjacency
        mesh.perimeter = tuple(int(c) for c in perimeter)
        mesh.open_boundaries = tuple(segments)
        mesh.metrics = metrics
        mesh.freeze()
        return mesh

    @staticmethod
    def _walk(adjacency) -> List[int]:
        perimeter, _ = walk_perimeter(adjacency)
        n_boundary = adjacency.boundary_cells().size
        if len(perimeter) != n_boundary:
            warnings.warn(
                f"Perimeter path visits {len(perimeter)} of {n_boundary} "
                "boundary cells; the remainder lie on islands or inlets "
                "the walk did not enter.",
                PerimeterWarning,
                stacklevel=3,
            )
        return perimeter

    def _check_boundary_names(self) -> None:
        names: Sequence[str] = [spec.name for spec in self.config.open_boundaries]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise BoundaryDefinitionError(
                f"Open boundary names must be unique; duplicated: {duplicates}."
            )
