import os
import unittest
import numpy as np

from coastmesh.polymesh.config import MeshConfig, OpenBoundarySpec
from coastmesh.polymesh.errors import MeshFormatError
from coastmesh.polymesh.mesh_io import HEADER, format_mesh, read_mesh
from coastmesh.polymesh.poly_mesh import PolyMesh
from tests.common_meshes import square_grid_corners

TRIANGLE_FILE = """Mesh2 unstructured   v1.0
nMaxMesh2_face_nodes 3
nMesh2_face_indices  4
nMesh2_face          1
Mesh2_topology

Coordinates
1 0.000000 0.000000
2 0.000000 1.000000
3 1.000000 0.000000
4 0.333333 0.333333

Indices
1 3 4
1 1 2
2 2 3
3 3 1
"""


class TestMeshIO(unittest.TestCase):
    """Writing and reading a 3x3 grid with depths and one open boundary."""

    @classmethod
    def setUpClass(cls):
        cls.output_dir = os.path.join("results", "mesh_io")
        os.makedirs(cls.output_dir, exist_ok=True)

        x, y = square_grid_corners(3, 3)
        bathy = 1.5 * np.arange(9.0).reshape(3, 3)
        config = MeshConfig(
            open_boundaries=[
                OpenBoundarySpec("west", (0.5, 0.5), (0.5, 1.5), (0.5, 2.5))
            ]
        )
        cls.mesh = PolyMesh.from_structured_grid(x, y, bathy=bathy, config=config)
        cls.text = format_mesh(cls.mesh)

    def write_text(self, name, text):
        path = os.path.join(self.output_dir, name)
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
        return path

    def test_text_layout(self):
        lines = self.text.splitlines()
        self.assertEqual(lines[0], HEADER)
        self.assertIn("nMaxMesh2_face_nodes 4", lines)
        self.assertIn(f"nMesh2_face_indices  {self.mesh.n_vertices}", lines)
        self.assertIn("nMesh2_face          9", lines)
        self.assertIn("NCE1                 3", lines)
        self.assertIn("NCE2                 3", lines)
        self.assertIn("NBOUNDARIES    1", lines)
        self.assertIn("BOUNDARY0.NPOINTS  5", lines)
        self.assertIn("BATHY   9", lines)

    def test_indices_are_one_based(self):
        lines = self.text.splitlines()
        start = lines.index("Indices") + 1
        head = lines[start].split()
        self.assertEqual(head[:2], ["1", "4"])
        self.assertEqual(int(head[2]), self.mesh.cell_center_ids[0] + 1)
        self.assertEqual(head[3:], [":", "0", "0"])
        first = self.mesh.cell_vertices[0]
        self.assertEqual(lines[start + 1], f"1 {first[0] + 1} {first[1] + 1}")

    def test_round_trip(self):
        path = os.path.join(self.output_dir, "grid.mesh")
        self.mesh.write(path)
        loaded = read_mesh(path)

        self.assertEqual(loaded.n_cells, self.mesh.n_cells)
        self.assertEqual(loaded.cell_vertices, self.mesh.cell_vertices)
        self.assertTrue(np.allclose(loaded.vertex_coords, self.mesh.vertex_coords))
        self.assertTrue(np.array_equal(loaded.cell_center_ids, self.mesh.cell_center_ids))
        self.assertTrue(np.array_equal(loaded.grid_indices, self.mesh.grid_indices))
        self.assertEqual(loaded.grid_shape, (3, 3))
        self.assertTrue(np.allclose(loaded.bathy, self.mesh.bathy))
        self.assertTrue(
            np.array_equal(loaded.adjacency.neighbor_cell, self.mesh.adjacency.neighbor_cell)
        )
        self.assertTrue(np.allclose(loaded.metrics.areas, self.mesh.metrics.areas))

        self.assertEqual(len(loaded.open_boundaries), 1)
        segment = loaded.open_boundaries[0]
        self.assertEqual(segment.name, "BOUNDARY0")
        self.assertEqual(segment.edges, self.mesh.boundary("west").edges)

    def test_minimal_file(self):
        """A file without boundary or depth sections reads with zero depths."""
        mesh = read_mesh(self.write_text("triangle.mesh", TRIANGLE_FILE))
        self.assertEqual(mesh.n_cells, 1)
        self.assertEqual(mesh.cell_vertices, ((0, 1, 2),))
        self.assertEqual(mesh.cell_center_ids.tolist(), [3])
        self.assertEqual(mesh.open_boundaries, ())
        self.assertTrue(np.allclose(mesh.bathy, 0.0))
        self.assertIsNone(mesh.grid_indices)
        self.assertAlmostEqual(mesh.metrics.areas[0], 0.5)

    def test_malformed_coordinate_reports_line(self):
        lines = self.text.splitlines()
        k = lines.index("Coordinates") + 1
        lines[k] = "1 abc 0.5"
        path = self.write_text("bad_coordinate.mesh", "\n".join(lines) + "\n")
        with self.assertRaises(MeshFormatError) as ctx:
            read_mesh(path)
        self.assertIn(f":{k + 1}:", str(ctx.exception))

    def test_open_cycle_raises(self):
        text = TRIANGLE_FILE.replace("3 3 1\n", "3 3 2\n")
        with self.assertRaises(MeshFormatError) as ctx:
            read_mesh(self.write_text("open_cycle.mesh", text))
        self.assertIn("closed cycle", str(ctx.exception))

    def test_vertex_out_of_range_raises(self):
        text = TRIANGLE_FILE.replace("1 3 4\n", "1 3 7\n")
        with self.assertRaises(MeshFormatError):
            read_mesh(self.write_text("bad_centroid.mesh", text))

    def test_truncated_file_raises(self):
        text = TRIANGLE_FILE.split("Indices")[0]
        with self.assertRaises(MeshFormatError):
            read_mesh(self.write_text("truncated.mesh", text))

    def test_bad_header_raises(self):
        with self.assertRaises(MeshFormatError):
            read_mesh(self.write_text("bad_header.mesh", "Mesh1 structured\n"))

    def test_missing_file_raises(self):
        with self.assertRaises(MeshFormatError):
            read_mesh(os.path.join(self.output_dir, "does_not_exist.mesh"))

    def test_diagnostics(self):
        prefix = os.path.join(self.output_dir, "grid")
        written = self.mesh.write_diagnostics(prefix)

        self.assertEqual(len(written), 5)
        for suffix in ("_e.txt", "_c.txt", "_b.txt", "_perimeter.txt", "_obc_spec.txt"):
            self.assertIn(prefix + suffix, written)
            self.assertTrue(os.path.isfile(prefix + suffix))

        with open(prefix + "_e.txt", encoding="utf-8") as f:
            outlines = f.read().splitlines()
        # four corners, the closing corner and a separator per cell
        self.assertEqual(len(outlines), 9 * 6)
        self.assertEqual(outlines[5], "NaN NaN")

        with open(prefix + "_obc_spec.txt", encoding="utf-8") as f:
            spec = f.read()
        self.assertIn("# west", spec)
        self.assertIn("BOUNDARY0.UPOINTS     5", spec)


if __name__ == "__main__":
    unittest.main()
