# -*- coding: utf-8 -*-
"""
Reading and writing meshes in the unstructured text format read by the solver
at start-up, plus plain-text dumps for external plotting.

File layout (all indices 1-based, 0 meaning "none")::

    Mesh2 unstructured   v1.0
    nMaxMesh2_face_nodes 6
    nMesh2_face_indices  1234
    nMesh2_face          321
    Mesh2_topology

    Coordinates
    1 147.250000 -42.875000
    ...

    Indices
    1 6 17
    1 3 9
    ...

    NBOUNDARIES    1
    BOUNDARY0.NPOINTS  12
    301 (1201 1207)
    ...

    BATHY   321
    -12.500000
    ...

Each cell block of the `Indices` section starts with `cell sides centroid`
(optionally followed by `: i j` for structured grids) and lists one
`edge vertexA vertexB` line per side.
"""
from __future__ import annotations

import os
import re
from typing import Dict, List, Optional, Tuple

import numpy as np

from .adjacency import build_adjacency
from .errors import MeshFormatError
from .metrics import compute_cell_metrics
from .perimeter import OpenBoundarySegment
from .poly_mesh import PolyMesh, cells_as_tuples
from .vertex_pool import VertexPool

HEADER = "Mesh2 unstructured   v1.0"
TOPOLOGY = "Mesh2_topology"

_BOUNDARY_EDGE = re.compile(r"^\s*(\d+)\s*\(\s*(\d+)\s+(\d+)\s*\)\s*$")
_BOUNDARY_HEADER = re.compile(r"^\s*BOUNDARY(\d+)\.NPOINTS\s+(\d+)\s*$")


# =============================================================================
# Writing
# =============================================================================


def format_mesh(mesh: PolyMesh) -> str:
    """Renders a mesh in the persisted text format."""
    lines = [
        HEADER,
        f"nMaxMesh2_face_nodes {mesh.max_sides}",
        f"nMesh2_face_indices  {mesh.n_vertices}",
        f"nMesh2_face          {mesh.n_cells}",
    ]
    if mesh.grid_shape is not None:
        lines.append(f"NCE1                 {mesh.grid_shape[0]}")
        lines.append(f"NCE2                 {mesh.grid_shape[1]}")
    lines.append(TOPOLOGY)

    lines.extend(["", "Coordinates"])
    for n, (x, y) in enumerate(mesh.vertex_coords, start=1):
        lines.append(f"{n} {x:f} {y:f}")

    lines.extend(["", "Indices"])
    for cc, verts in enumerate(mesh.cell_vertices):
        npe = len(verts)
        head = f"{cc + 1} {npe} {mesh.cell_center_ids[cc] + 1}"
        if mesh.grid_indices is not None:
            i, j = mesh.grid_indices[cc]
            head += f" : {i} {j}"
        lines.append(head)
        for j in range(npe):
            lines.append(f"{j + 1} {verts[j] + 1} {verts[(j + 1) % npe] + 1}")

    lines.extend(["", f"NBOUNDARIES    {len(mesh.open_boundaries)}"])
    for k, segment in enumerate(mesh.open_boundaries):
        lines.append(f"BOUNDARY{k:1d}.NPOINTS  {segment.n_edges}")
        for cell, va, vb in segment.edges:
            lines.append(f"{cell + 1} ({va + 1} {vb + 1})")

    lines.extend(["", f"BATHY   {mesh.n_cells}"])
    lines.extend(f"{b:f}" for b in mesh.bathy)
    return "\n".join(lines) + "\n"


def write_mesh(mesh: PolyMesh, path: str) -> None:
    """Writes a mesh to `path` in the persisted text format."""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(format_mesh(mesh))
    print(f"Mesh written to: {path}")


def write_diagnostics(mesh: PolyMesh, prefix: str) -> List[str]:
    """
    Writes plain-text dumps for plotting the mesh with external tools.

    Files:
        `<prefix>_e.txt`: closed cell outlines separated by `NaN NaN` lines.
        `<prefix>_c.txt`: cell centres.
        `<prefix>_b.txt`: open boundary edges separated by `NaN NaN` lines.
        `<prefix>_perimeter.txt`: perimeter path centres, closed.
        `<prefix>_obc_spec.txt`: open boundary blocks for a parameter file.

    Returns:
        The paths written.
    """
    directory = os.path.dirname(prefix)
    if directory:
        os.makedirs(directory, exist_ok=True)

    coords = mesh.vertex_coords
    centers = mesh.cell_centers
    written = []

    path = f"{prefix}_e.txt"
    with open(path, "w", encoding="utf-8") as f:
        for verts in mesh.cell_vertices:
            for v in list(verts) + [verts[0]]:
                f.write(f"{coords[v, 0]:f} {coords[v, 1]:f}\n")
            f.write("NaN NaN\n")
    written.append(path)

    path = f"{prefix}_c.txt"
    with open(path, "w", encoding="utf-8") as f:
        for x, y in centers:
            f.write(f"{x:f} {y:f}\n")
    written.append(path)

    if mesh.perimeter:
        path = f"{prefix}_perimeter.txt"
        with open(path, "w", encoding="utf-8") as f:
            for cell in list(mesh.perimeter) + [mesh.perimeter[0]]:
                f.write(f"{centers[cell, 0]:f} {centers[cell, 1]:f}\n")
        written.append(path)

    if mesh.open_boundaries:
        path = f"{prefix}_b.txt"
        with open(path, "w", encoding="utf-8") as f:
            for segment in mesh.open_boundaries:
                for _, va, vb in segment.edges:
                    f.write(f"{coords[va, 0]:f} {coords[va, 1]:f}\n")
                    f.write(f"{coords[vb, 0]:f} {coords[vb, 1]:f}\n")
                    f.write("NaN NaN\n")
        written.append(path)

        path = f"{prefix}_obc_spec.txt"
        with open(path, "w", encoding="utf-8") as f:
            for k, segment in enumerate(mesh.open_boundaries):
                f.write(f"\n# {segment.name}")
                f.write(f"\nBOUNDARY{k}.UPOINTS     {segment.n_edges}\n")
                for cell, va, vb in segment.edges:
                    f.write(f"{cell + 1} ({va + 1} {vb + 1})\n")
        written.append(path)

    print(f"Diagnostics written to: {', '.join(written)}")
    return written


# =============================================================================
# Reading
# =============================================================================


class _LineReader:
    """Iterates over the non-blank lines of a file, tracking line numbers."""

    def __init__(self, path: str, lines: List[str]) -> None:
        self.path = path
        self.lines = lines
        self.pos = 0
        self.lineno = 0

    def peek(self) -> Optional[str]:
        pos = self.pos
        while pos < len(self.lines):
            if self.lines[pos].strip():
                return self.lines[pos].strip()
            pos += 1
        return None

    def next(self, what: str) -> str:
        while self.pos < len(self.lines):
            line = self.lines[self.pos].strip()
            self.pos += 1
            self.lineno = self.pos
            if line:
                return line
        raise MeshFormatError(f"{self.path}: unexpected end of file, expected {what}.")

    def error(self, message: str) -> MeshFormatError:
        return MeshFormatError(f"{self.path}:{self.lineno}: {message}")

    def ints(self, line: str, count: int, what: str) -> List[int]:
        fields = line.split()
        try:
            values = [int(v) for v in fields[:count]]
        except ValueError as e:
            raise self.error(f"malformed {what}: '{line}'") from e
        if len(values) != count:
            raise self.error(f"malformed {what}: '{line}'")
        return values


def _read_header(reader: _LineReader) -> Dict[str, int]:
    line = reader.next("header")
    if not line.startswith("Mesh2 unstructured"):
        raise reader.error(f"not an unstructured mesh file (header '{line}')")
    header: Dict[str, int] = {}
    while True:
        line = reader.next(TOPOLOGY)
        if line == TOPOLOGY:
            break
        key, *rest = line.split()
        if len(rest) != 1:
            raise reader.error(f"malformed header entry '{line}'")
        try:
            header[key] = int(rest[0])
        except ValueError as e:
            raise reader.error(f"malformed header entry '{line}'") from e
    for key in ("nMaxMesh2_face_nodes", "nMesh2_face_indices", "nMesh2_face"):
        if key not in header:
            raise reader.error(f"header is missing '{key}'")
    return header


def _read_coordinates(reader: _LineReader, n_vertices: int) -> np.ndarray:
    if reader.next("Coordinates") != "Coordinates":
        raise reader.error("expected 'Coordinates' section")
    coords = np.zeros((n_vertices, 2))
    for n in range(n_vertices):
        line = reader.next("vertex coordinates")
        fields = line.split()
        try:
            index, x, y = int(fields[0]), float(fields[1]), float(fields[2])
        except (IndexError, ValueError) as e:
            raise reader.error(f"malformed coordinate line '{line}'") from e
        if index != n + 1:
            raise reader.error(f"expected vertex {n + 1}, found {index}")
        coords[n] = (x, y)
    return coords


def _read_indices(
    reader: _LineReader, n_cells: int, n_vertices: int
) -> Tuple[List[List[int]], np.ndarray, Optional[np.ndarray]]:
    if reader.next("Indices") != "Indices":
        raise reader.error("expected 'Indices' section")
    cell_vertices: List[List[int]] = []
    center_ids = np.zeros(n_cells, dtype=int)
    grid_indices: List[Tuple[int, int]] = []

    for cc in range(n_cells):
        line = reader.next("cell header")
        head, _, grid = line.partition(":")
        index, npe, centroid = reader.ints(head, 3, "cell header")
        if index != cc + 1:
            raise reader.error(f"expected cell {cc + 1}, found {index}")
        if grid.strip():
            grid_indices.append(tuple(reader.ints(grid, 2, "grid indices")))
        center_ids[cc] = centroid - 1

        starts, ends = [], []
        for j in range(npe):
            edge, va, vb = reader.ints(reader.next("cell edge"), 3, "cell edge")
            if edge != j + 1:
                raise reader.error(f"expected edge {j + 1} of cell {cc + 1}, found {edge}")
            starts.append(va - 1)
            ends.append(vb - 1)
        if ends != starts[1:] + starts[:1]:
            raise reader.error(f"edges of cell {cc + 1} do not form a closed cycle")
        if min(starts + [center_ids[cc]]) < 0 or max(starts + [center_ids[cc]]) >= n_vertices:
            raise reader.error(f"cell {cc + 1} references a vertex outside 1..{n_vertices}")
        cell_vertices.append(starts)

    grid = None
    if grid_indices:
        if len(grid_indices) != n_cells:
            raise reader.error("grid indices are given for only some cells")
        grid = np.array(grid_indices, dtype=int)
    return cell_vertices, center_ids, grid


def _read_boundaries(reader: _LineReader) -> List[OpenBoundarySegment]:
    line = reader.next("NBOUNDARIES")
    n_boundaries = reader.ints(line.replace("NBOUNDARIES", ""), 1, "NBOUNDARIES")[0]
    segments = []
    for k in range(n_boundaries):
        line = reader.next(f"BOUNDARY{k}.NPOINTS")
        match = _BOUNDARY_HEADER.match(line)
        if not match:
            raise reader.error(f"expected BOUNDARY{k}.NPOINTS, found '{line}'")
        edges = []
        for _ in range(int(match.group(2))):
            line = reader.next("boundary edge")
            edge = _BOUNDARY_EDGE.match(line)
            if not edge:
                raise reader.error(f"malformed boundary edge '{line}'")
            cell, va, vb = (int(g) - 1 for g in edge.groups())
            edges.append((cell, va, vb))
        segments.append(OpenBoundarySegment(f"BOUNDARY{match.group(1)}", tuple(edges)))
    return segments


def _read_bathy(reader: _LineReader, n_cells: int) -> np.ndarray:
    line = reader.next("BATHY")
    count = reader.ints(line.replace("BATHY", ""), 1, "BATHY")[0]
    if count != n_cells:
        raise reader.error(f"BATHY lists {count} values for {n_cells} cells")
    bathy = np.zeros(n_cells)
    for cc in range(n_cells):
        line = reader.next("depth")
        try:
            bathy[cc] = float(line.split()[0])
        except ValueError as e:
            raise reader.error(f"malformed depth '{line}'") from e
    return bathy


def read_mesh(path: str, projection: str = "planar") -> PolyMesh:
    """
    Reads a mesh written by `write_mesh`.

    Adjacency and metrics are recomputed from the cell vertex cycles. Open
    boundaries are named `BOUNDARY<k>` in file order.

    Args:
        path: The mesh file.
        projection: "planar" or "geographic", used for the metrics.

    Raises:
        MeshFormatError: If the file is malformed.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            lines = f.read().splitlines()
    except OSError as e:
        raise MeshFormatError(f"Cannot read mesh file '{path}': {e}") from e

    reader = _LineReader(path, lines)
    header = _read_header(reader)
    n_vertices = header["nMesh2_face_indices"]
    n_cells = header["nMesh2_face"]

    coords = _read_coordinates(reader, n_vertices)
    cell_vertices, center_ids, grid_indices = _read_indices(reader, n_cells, n_vertices)

    segments: List[OpenBoundarySegment] = []
    if (reader.peek() or "").startswith("NBOUNDARIES"):
        segments = _read_boundaries(reader)
    bathy = np.zeros(n_cells)
    if (reader.peek() or "").startswith("BATHY"):
        bathy = _read_bathy(reader, n_cells)

    for segment in segments:
        for cell, _, _ in segment.edges:
            if not 0 <= cell < n_cells:
                raise MeshFormatError(
                    f"{path}: open boundary {segment.name} references cell {cell + 1}."
                )

    adjacency = build_adjacency(cell_vertices)
    geographic = str(projection).lower() == "geographic"

    mesh = PolyMesh()
    mesh.projection = "geographic" if geographic else "planar"
    mesh.vertex_pool = VertexPool(coords)
    mesh.cell_vertices = cells_as_tuples(cell_vertices)
    mesh.cell_center_ids = center_ids
    mesh.is_boundary_cell = np.isin(np.arange(n_cells), adjacency.boundary_cells())
    mesh.source_index = np.arange(n_cells)
    mesh.grid_indices = grid_indices
    if "NCE1" in header and "NCE2" in header:
        mesh.grid_shape = (header["NCE1"], header["NCE2"])
    mesh.bathy = bathy
    mesh.adjacency = adjacency
    mesh.open_boundaries = tuple(segments)
    mesh.metrics = compute_cell_metrics(
        coords, cell_vertices, coords[center_ids], adjacency, geographic=geographic
    )
    mesh.freeze()
    return mesh
