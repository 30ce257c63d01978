# -*- coding: utf-8 -*-
"""
Computes and stores quality metrics and topology checks for a PolyMesh.

Key Features:
- Area ratio, aspect ratio and non-orthogonality (the angle between the line
  joining two cell centres and the normal of the edge they share, which is
  zero for a perfect Voronoi dual).
- Topology checks: adjacency symmetry, closed vertex cycles, unreferenced
  vertices, connectivity and open boundary references.

Classes:
    MeshQuality: Quality metrics and topology issues of an assembled mesh.
"""
from __future__ import annotations
from typing import List, TYPE_CHECKING
from dataclasses import dataclass
import numpy as np

from .adjacency import BOUNDARY
from .lakes import count_components

if TYPE_CHECKING:
    from .poly_mesh import PolyMesh

GEOMETRY_TOLERANCE = 1e-12


@dataclass(frozen=True)
class MeshQuality:
    """
    Stores mesh quality metrics for a PolyMesh object.

    Instances of this class are created via the `from_mesh` class method.

    Attributes:
        min_max_area_ratio (float): Ratio of the smallest to the largest cell area.
        cell_aspect_ratio_values (np.ndarray): Longest over shortest edge per cell.
        cell_non_orthogonality_values (np.ndarray): Maximum non-orthogonality
            (in degrees) over the interior edges of each cell.
        connectivity_issues (List[str]): Descriptions of topological issues.
    """

    min_max_area_ratio: float
    cell_aspect_ratio_values: np.ndarray
    cell_non_orthogonality_values: np.ndarray
    connectivity_issues: List[str]

    @property
    def is_valid(self) -> bool:
        return not self.connectivity_issues

    @classmethod
    def from_mesh(cls, mesh: "PolyMesh") -> "MeshQuality":
        """Computes all quality metrics of an assembled mesh."""
        if mesh.adjacency is None or mesh.metrics is None:
            raise RuntimeError("Mesh must be assembled before computing quality.")

        if mesh.n_cells == 0:
            return cls(
                min_max_area_ratio=0.0,
                cell_aspect_ratio_values=np.array([]),
                cell_non_orthogonality_values=np.array([]),
                connectivity_issues=[],
            )

        return cls(
            min_max_area_ratio=cls._compute_area_ratio(mesh),
            cell_aspect_ratio_values=cls._compute_aspect_ratio(mesh),
            cell_non_orthogonality_values=cls._compute_non_orthogonality(mesh),
            connectivity_issues=cls._check_connectivity(mesh),
        )

    @staticmethod
    def _compute_area_ratio(mesh: "PolyMesh") -> float:
        areas = mesh.metrics.areas
        max_area = np.max(areas)
        return float(np.min(areas) / max_area) if max_area > GEOMETRY_TOLERANCE else 0.0

    @staticmethod
    def _compute_aspect_ratio(mesh: "PolyMesh") -> np.ndarray:
        lengths = mesh.metrics.edge_lengths
        shortest = np.nanmin(lengths, axis=1)
        longest = np.nanmax(lengths, axis=1)
        with np.errstate(divide="ignore", invalid="ignore"):
            ratio = np.where(shortest > GEOMETRY_TOLERANCE, longest / shortest, np.inf)
        return ratio

    @staticmethod
    def _compute_non_orthogonality(mesh: "PolyMesh") -> np.ndarray:
        """
        Angle between each centre-to-centre segment and the normal of the
        shared edge, maximised per cell. Computed in the coordinate plane.
        """
        coords = mesh.vertex_coords
        centers = mesh.cell_centers
        non_orthogonality = np.zeros(mesh.n_cells)
        for ci, verts in enumerate(mesh.cell_vertices):
            worst = 0.0
            n = len(verts)
            for j in range(n):
                other = mesh.adjacency.neighbor_cell[ci, j]
                if other == BOUNDARY:
                    continue
                edge_vec = coords[verts[(j + 1) % n]] - coords[verts[j]]
                link = centers[other] - centers[ci]
                norm_edge = np.linalg.norm(edge_vec)
                norm_link = np.linalg.norm(link)
                if norm_edge <= GEOMETRY_TOLERANCE or norm_link <= GEOMETRY_TOLERANCE:
                    continue
                # |cos| between link and edge is |sin| between link and normal
                sin_angle = np.clip(
                    abs(np.dot(edge_vec, link)) / (norm_edge * norm_link), 0.0, 1.0
                )
                worst = max(worst, float(np.degrees(np.arcsin(sin_angle))))
            non_orthogonality[ci] = worst
        return non_orthogonality

    @staticmethod
    def _check_connectivity(mesh: "PolyMesh") -> List[str]:
        """Checks the topological invariants of the mesh."""
        issues = []
        adjacency = mesh.adjacency

        asymmetric = 0
        for c in range(mesh.n_cells):
            for j in range(int(adjacency.side_counts[c])):
                other = adjacency.neighbor_cell[c, j]
                if other == BOUNDARY:
                    continue
                back = adjacency.neighbor_edge[c, j]
                if (
                    adjacency.neighbor_cell[other, back] != c
                    or adjacency.neighbor_edge[other, back] != j
                ):
                    asymmetric += 1
        if asymmetric:
            issues.append(f"Found {asymmetric} asymmetric adjacency entries.")

        open_cycles = [
            c for c, verts in enumerate(mesh.cell_vertices) if len(set(verts)) != len(verts)
        ]
        if open_cycles:
            issues.append(
                f"Found {len(open_cycles)} cells with repeated vertices, e.g. cell {open_cycles[0]}."
            )

        referenced = {v for verts in mesh.cell_vertices for v in verts}
        referenced.update(int(v) for v in mesh.cell_center_ids)
        if len(referenced) < mesh.n_vertices:
            issues.append(
                f"Found {mesh.n_vertices - len(referenced)} unreferenced vertices."
            )

        n_components = count_components(adjacency)
        if n_components > 1:
            issues.append(f"Mesh has {n_components} disconnected components.")

        for segment in mesh.open_boundaries:
            bad = [c for c in segment.cells if not 0 <= c < mesh.n_cells]
            if bad:
                issues.append(
                    f"Open boundary '{segment.name}' references missing cells {bad}."
                )
        return issues
