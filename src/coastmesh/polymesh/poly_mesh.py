# -*- coding: utf-8 -*-
"""
This module defines the PolyMesh class, the assembled unstructured polygonal
mesh handed to a finite-volume ocean/estuary solver at start-up.

A PolyMesh owns the deduplicated vertex pool, the ordered vertex cycle and
centroid of every cell, the cell-to-cell adjacency map, the domain perimeter,
the named open boundaries and the per-cell geometric metrics. It is created
once by `MeshAssembler` (through the factory methods below) and its arrays are
read-only afterwards.
"""
from __future__ import annotations

from collections import Counter
from typing import List, Optional, Sequence, Tuple

import numpy as np
import matplotlib.pyplot as plt

from .adjacency import AdjacencyMap
from .metrics import CellMetrics
from .perimeter import OpenBoundarySegment
from .quality import MeshQuality
from .reporting import format_boundary_summary, format_quality_summary
from .vertex_pool import VertexPool


class PolyMesh:
    """
    A data-centric container for an assembled polygonal mesh.

    Attributes:
        projection (str): "planar" or "geographic".
        vertex_pool (VertexPool): The deduplicated vertex coordinates.
        cell_vertices (Tuple[Tuple[int, ...], ...]): Pooled vertex indices of
            each cell, clockwise from the south-westerly vertex.
            - Shape: `(n_cells, n_sides)`
        cell_center_ids (np.ndarray): Pooled vertex index of each cell centre.
            - Shape: `(n_cells,)`
            - `dtype`: `int`
        is_boundary_cell (np.ndarray): True for cells owning at least one
            edge without a neighbour, i.e. the cells a perimeter walk covers.
            - Shape: `(n_cells,)`
            - `dtype`: `bool`
        source_index (np.ndarray): Triangulation vertex, triangle or flat
            grid index each cell was built from.
            - Shape: `(n_cells,)`
        grid_indices (np.ndarray, optional): `(i, j)` of structured grid cells.
            - Shape: `(n_cells, 2)`
        grid_shape (Tuple[int, int], optional): `(ni, nj)` of a structured grid.
        bathy (np.ndarray): Depth of each cell.
            - Shape: `(n_cells,)`
            - `dtype`: `float`
        adjacency (AdjacencyMap): Neighbour cells and edges; -1 marks a
            domain boundary edge.
        perimeter (Tuple[int, ...]): Boundary cells in perimeter order.
        open_boundaries (Tuple[OpenBoundarySegment, ...]): Named open
            boundaries.
        metrics (CellMetrics): Edge lengths, angles, centre distances, areas.
        quality (MeshQuality): Computed on demand by `print_summary`.
    """

    def __init__(self) -> None:
        """Initializes the PolyMesh instance with empty attributes."""
        self.projection: str = "planar"

        # Vertices and cells
        self.vertex_pool: VertexPool = VertexPool(np.zeros((0, 2)))
        self.cell_vertices: Tuple[Tuple[int, ...], ...] = ()
        self.cell_center_ids: np.ndarray = np.array([], dtype=int)
        self.is_boundary_cell: np.ndarray = np.array([], dtype=bool)
        self.source_index: np.ndarray = np.array([], dtype=int)
        self.grid_indices: Optional[np.ndarray] = None
        self.grid_shape: Optional[Tuple[int, int]] = None
        self.bathy: np.ndarray = np.array([])

        # Topology
        self.adjacency: Optional[AdjacencyMap] = None
        self.perimeter: Tuple[int, ...] = ()
        self.open_boundaries: Tuple[OpenBoundarySegment, ...] = ()

        # Geometry
        self.metrics: Optional[CellMetrics] = None
        self.quality: Optional[MeshQuality] = None

    # =========================================================================
    # Factories
    # =========================================================================

    @classmethod
    def from_triangulation(cls, tri, config=None, bathy=None) -> "PolyMesh":
        """
        Assembles a mesh from a `TriangulationInput`.

        Args:
            tri (TriangulationInput): The triangulation.
            config (MeshConfig, optional): Assembly options.
            bathy (np.ndarray, optional): Depth per triangulation point
                (Voronoi cells) or per triangle (triangle cells).
        """
        from .assembler import MeshAssembler

        return MeshAssembler(config).assemble_triangulation(tri, bathy=bathy)

    @classmethod
    def from_structured_grid(
        cls, x, y, mask=None, bathy=None, config=None
    ) -> "PolyMesh":
        """
        Assembles a mesh from structured grid corner coordinates.

        Args:
            x, y: Corner coordinates, shape `(nj + 1, ni + 1)`.
            mask: Optional wet mask, shape `(nj, ni)`.
            bathy: Optional depth per grid cell, shape `(nj, ni)`.
            config (MeshConfig, optional): Assembly options.
        """
        from .assembler import MeshAssembler

        return MeshAssembler(config).assemble_structured(x, y, mask=mask, bathy=bathy)

    @classmethod
    def from_file(cls, path: str, projection: str = "planar") -> "PolyMesh":
        """Reads a mesh written by `write`."""
        from .mesh_io import read_mesh

        return read_mesh(path, projection=projection)

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def n_cells(self) -> int:
        return len(self.cell_vertices)

    @property
    def n_vertices(self) -> int:
        return self.vertex_pool.n_vertices

    @property
    def vertex_coords(self) -> np.ndarray:
        return self.vertex_pool.coords

    @property
    def cell_centers(self) -> np.ndarray:
        """Cell centre coordinates. Shape: `(n_cells, 2)`."""
        return self.vertex_pool.coords[self.cell_center_ids]

    @property
    def side_counts(self) -> np.ndarray:
        return np.array([len(v) for v in self.cell_vertices], dtype=int)

    @property
    def max_sides(self) -> int:
        return max((len(v) for v in self.cell_vertices), default=0)

    @property
    def cell_neighbors(self) -> np.ndarray:
        return self.adjacency.neighbor_cell

    def cell_polygon(self, cell: int) -> np.ndarray:
        """Vertex coordinates of one cell, in order."""
        return self.vertex_pool.coords[list(self.cell_vertices[cell])]

    def boundary(self, name: str) -> OpenBoundarySegment:
        for segment in self.open_boundaries:
            if segment.name == name:
                return segment
        raise KeyError(f"No open boundary named '{name}'.")

    def freeze(self) -> None:
        """Makes the numpy arrays owned by the mesh read-only."""
        arrays: List[np.ndarray] = [
            self.vertex_pool.coords,
            self.cell_center_ids,
            self.is_boundary_cell,
            self.source_index,
            self.bathy,
        ]
        if self.grid_indices is not None:
            arrays.append(self.grid_indices)
        if self.adjacency is not None:
            arrays.extend(
                [
                    self.adjacency.neighbor_cell,
                    self.adjacency.neighbor_edge,
                    self.adjacency.side_counts,
                ]
            )
        if self.metrics is not None:
            arrays.extend(
                [
                    self.metrics.edge_lengths,
                    self.metrics.edge_angles,
                    self.metrics.center_distances,
                    self.metrics.center_angles,
                    self.metrics.interior_angles,
                    self.metrics.areas,
                ]
            )
        for arr in arrays:
            arr.flags.writeable = False

    # =========================================================================
    # Output
    # =========================================================================

    def write(self, path: str) -> None:
        """Writes the mesh in the persisted text format."""
        from .mesh_io import write_mesh

        write_mesh(self, path)

    def write_diagnostics(self, prefix: str) -> List[str]:
        """Writes plain-text plotting dumps; returns the files written."""
        from .mesh_io import write_diagnostics

        return write_diagnostics(self, prefix)

    def print_summary(self) -> None:
        """Prints a formatted summary report of the mesh."""
        if self.adjacency is None:
            print("Mesh not assembled. Use one of the from_* factories first.")
            return

        print("\n" + "=" * 80)
        print(f"{'Mesh Summary Report':^80}")
        print("=" * 80)
        self._print_general_info()
        self._print_geometric_properties()
        self._print_cell_geometry()
        print(format_boundary_summary(self))

        if self.quality is None:
            self.quality = MeshQuality.from_mesh(self)

        print(format_quality_summary(self.quality))
        print("\n" + "=" * 80)

    def plot(
        self,
        filepath: str = "mesh_plot.png",
        show_cells: bool = False,
        show_nodes: bool = False,
        highlight_boundaries: bool = True,
        color_by_depth: bool = False,
    ) -> None:
        """
        Generates a plot of the mesh and saves it to a file.

        Args:
            filepath (str): The path to save the plot image.
            show_cells (bool): Whether to label cells with their index.
            show_nodes (bool): Whether to label vertices with their index.
            highlight_boundaries (bool): Overlay the perimeter path and the
                open boundary edges.
            color_by_depth (bool): Colour cells by depth instead of side count.
        """
        from ..common.utility import plot_mesh

        fig, ax = plt.subplots(figsize=(10, 8))
        plot_mesh(
            ax,
            self.vertex_coords,
            [list(v) for v in self.cell_vertices],
            show_nodes=show_nodes,
            show_cells=show_cells,
            values=self.bathy if color_by_depth else None,
            title="Mesh Plot",
        )
        if highlight_boundaries:
            self._plot_boundaries(ax)
        plt.savefig(filepath, dpi=300, bbox_inches="tight")
        plt.close(fig)
        print(f"Mesh plot saved to: {filepath}")

    def _plot_boundaries(self, ax) -> None:
        centers = self.cell_centers
        if self.perimeter:
            path = centers[list(self.perimeter) + [self.perimeter[0]]]
            ax.plot(path[:, 0], path[:, 1], "b--", lw=0.8, label="perimeter")
        coords = self.vertex_coords
        for k, segment in enumerate(self.open_boundaries):
            for n, (_, va, vb) in enumerate(segment.edges):
                ax.plot(
                    coords[[va, vb], 0],
                    coords[[va, vb], 1],
                    color=plt.cm.tab10(k % 10),
                    lw=2.0,
                    label=segment.name if n == 0 else None,
                )
        if self.perimeter or self.open_boundaries:
            # keep the cell type legend drawn by plot_mesh
            cell_legend = ax.get_legend()
            ax.legend(loc="lower right", fontsize=8)
            if cell_legend is not None:
                ax.add_artist(cell_legend)

    # =========================================================================
    # Helper and Utility Methods
    # =========================================================================

    def _print_general_info(self) -> None:
        print(f"\n{'--- General Information ---':^80}\n")
        print(f"  {'Projection:':<25} {self.projection}")
        print(f"  {'Number of Vertices:':<25} {self.n_vertices}")
        print(f"  {'Number of Cells:':<25} {self.n_cells}")
        print(f"  {'Max Sides per Cell:':<25} {self.max_sides}")

    def _print_geometric_properties(self) -> None:
        if self.n_vertices == 0:
            return
        min_coords = np.min(self.vertex_coords, axis=0)
        max_coords = np.max(self.vertex_coords, axis=0)
        print(f"\n{'--- Geometric Bounding Box ---':^80}\n")
        print(f"  {'X Range:':<25} {min_coords[0]:.4f} to {max_coords[0]:.4f}")
        print(f"  {'Y Range:':<25} {min_coords[1]:.4f} to {max_coords[1]:.4f}")

    def _print_cell_geometry(self) -> None:
        if self.metrics is None or self.n_cells == 0:
            return
        print(f"\n{'--- Cell Geometry ---':^80}\n")
        self._print_side_distribution()
        print(f"\n  {'Metric':<20} {'Min':>15} {'Max':>15} {'Average':>15}")
        print(f"  {'-'*19} {'-'*15} {'-'*15} {'-'*15}")
        self._print_stat_line("Cell Area", self.metrics.areas)
        self._print_stat_line("Edge Length", self.metrics.edge_lengths)
        self._print_stat_line("Centre Distance", self.metrics.center_distances)
        self._print_stat_line("Depth", self.bathy)

    def _print_side_distribution(self) -> None:
        names = {3: "Triangle", 4: "Quad", 5: "Pentagon", 6: "Hexagon", 7: "Heptagon"}
        counts = Counter(int(n) for n in self.side_counts)
        print("  Cell Type Distribution:")
        for sides, count in sorted(counts.items()):
            label = names.get(sides, f"{sides}-gon")
            print(f"    - {label+':':<20} {count}")

    def _print_stat_line(self, name: str, data: np.ndarray) -> None:
        values = np.asarray(data, dtype=float)
        values = values[np.isfinite(values)]
        if values.size == 0:
            return
        print(
            f"  {name:<25} {np.min(values):>15.4e} {np.max(values):>15.4e} "
            f"{np.mean(values):>15.4e}"
        )


def cells_as_tuples(cell_vertices: Sequence[Sequence[int]]) -> Tuple[Tuple[int, ...], ...]:
    return tuple(tuple(int(v) for v in verts) for verts in cell_vertices)
