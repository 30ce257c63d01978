import io
import os
import unittest
import warnings
from contextlib import redirect_stdout

import numpy as np

from coastmesh.polymesh import (
    MeshConfig,
    MeshQuality,
    OpenBoundarySpec,
    PolyMesh,
    TriangulationInput,
)
from coastmesh.polymesh.errors import InputConsistencyError
from tests.common_meshes import equilateral_triangulation, square_grid_corners


class TestPolyMeshFromTriangulation(unittest.TestCase):
    """Voronoi and triangle meshes of an equilateral lattice."""

    @classmethod
    def setUpClass(cls):
        cls.output_dir = os.path.join("results", "poly_mesh")
        os.makedirs(cls.output_dir, exist_ok=True)

        points = equilateral_triangulation(5, 6).points
        cls.tri = equilateral_triangulation(5, 6, values=points[:, 0])
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            cls.mesh = PolyMesh.from_triangulation(cls.tri)

    def test_voronoi_cells(self):
        mesh = self.mesh
        self.assertGreater(mesh.n_cells, 0)
        self.assertLess(mesh.n_cells, self.tri.n_points)
        self.assertEqual(mesh.max_sides, 6)
        self.assertEqual(mesh.adjacency.n_cells, mesh.n_cells)
        self.assertEqual(mesh.metrics.areas.shape, (mesh.n_cells,))
        self.assertTrue(np.all(mesh.metrics.areas > 0.0))

    def test_depth_follows_source_point(self):
        expected = self.tri.points[self.mesh.source_index, 0]
        self.assertTrue(np.allclose(self.mesh.bathy, expected))

    def test_interior_centres_are_generators(self):
        interior = ~self.mesh.is_boundary_cell
        self.assertTrue(np.any(interior))
        self.assertTrue(
            np.allclose(
                self.mesh.cell_centers[interior],
                self.tri.points[self.mesh.source_index[interior]],
            )
        )

    def test_quality(self):
        quality = MeshQuality.from_mesh(self.mesh)
        self.assertTrue(quality.is_valid, quality.connectivity_issues)
        self.assertEqual(quality.cell_aspect_ratio_values.shape, (self.mesh.n_cells,))

    def test_triangle_cells(self):
        config = MeshConfig(cell_type="triangle", walk_perimeter=False)
        mesh = PolyMesh.from_triangulation(self.tri, config=config)
        self.assertEqual(mesh.n_cells, self.tri.n_triangles)
        self.assertEqual(mesh.max_sides, 3)
        self.assertEqual(mesh.perimeter, ())
        expected = self.tri.values[self.tri.triangles[mesh.source_index]].mean(axis=1)
        self.assertTrue(np.allclose(mesh.bathy, expected))

    def test_explicit_depth_overrides_values(self):
        config = MeshConfig(cell_type="triangle", walk_perimeter=False)
        depth = np.arange(float(self.tri.n_triangles))
        mesh = PolyMesh.from_triangulation(self.tri, config=config, bathy=depth)
        self.assertTrue(np.allclose(mesh.bathy, depth[mesh.source_index]))

    def test_delaunay_points(self):
        x, y = np.meshgrid(np.linspace(0.0, 4.0, 5), np.linspace(0.0, 3.0, 4))
        rng = np.random.default_rng(3)
        points = np.column_stack((x.ravel(), y.ravel()))
        points += rng.uniform(-0.1, 0.1, points.shape)
        tri = TriangulationInput.from_points(points)
        config = MeshConfig(cell_type="triangle", walk_perimeter=False)
        mesh = PolyMesh.from_triangulation(tri, config=config)
        self.assertEqual(mesh.n_cells, tri.n_triangles)
        self.assertTrue(np.allclose(mesh.bathy, 0.0))

    def test_plot(self):
        filepath = os.path.join(self.output_dir, "voronoi.png")
        with redirect_stdout(io.StringIO()):
            self.mesh.plot(filepath, show_cells=True)
            self.mesh.plot(
                os.path.join(self.output_dir, "voronoi_depth.png"), color_by_depth=True
            )
        self.assertTrue(os.path.isfile(filepath))


class TestPolyMeshFromGrid(unittest.TestCase):
    """A 3x3 grid of unit squares."""

    @classmethod
    def setUpClass(cls):
        x, y = square_grid_corners(3, 3)
        config = MeshConfig(
            open_boundaries=[
                OpenBoundarySpec("south", (0.5, 0.5), (1.5, 0.5), (2.5, 0.5))
            ]
        )
        cls.mesh = PolyMesh.from_structured_grid(x, y, config=config)

    def test_counts(self):
        self.assertEqual(self.mesh.n_cells, 9)
        self.assertEqual(self.mesh.n_vertices, 16 + 9)
        self.assertEqual(self.mesh.side_counts.tolist(), [4] * 9)
        self.assertEqual(self.mesh.grid_shape, (3, 3))
        self.assertEqual(self.mesh.grid_indices[5].tolist(), [2, 1])

    def test_cell_polygon(self):
        self.assertTrue(
            np.allclose(self.mesh.cell_polygon(4), [[1, 1], [1, 2], [2, 2], [2, 1]])
        )
        self.assertTrue(np.allclose(self.mesh.cell_centers[4], [1.5, 1.5]))

    def test_boundary_lookup(self):
        self.assertEqual(self.mesh.boundary("south").cells, [0, 1, 2])
        with self.assertRaises(KeyError):
            self.mesh.boundary("north")

    def test_quality(self):
        quality = MeshQuality.from_mesh(self.mesh)
        self.assertTrue(quality.is_valid)
        self.assertAlmostEqual(quality.min_max_area_ratio, 1.0)
        self.assertTrue(np.allclose(quality.cell_aspect_ratio_values, 1.0))
        self.assertTrue(np.allclose(quality.cell_non_orthogonality_values, 0.0))

    def test_arrays_are_read_only(self):
        with self.assertRaises(ValueError):
            self.mesh.bathy[0] = 1.0
        with self.assertRaises(ValueError):
            self.mesh.adjacency.neighbor_cell[0, 0] = 3
        with self.assertRaises(ValueError):
            self.mesh.vertex_coords[0, 0] = 9.0

    def test_print_summary(self):
        buffer = io.StringIO()
        with redirect_stdout(buffer):
            self.mesh.print_summary()
        report = buffer.getvalue()
        self.assertIn("Mesh Summary Report", report)
        self.assertIn("Number of Cells:", report)
        self.assertIn("south", report)

    def test_depth_mask(self):
        x, y = square_grid_corners(3, 3)
        bathy = np.full((3, 3), 5.0)
        bathy[0, 0] = np.nan
        mesh = PolyMesh.from_structured_grid(x, y, bathy=bathy)
        self.assertEqual(mesh.n_cells, 8)
        self.assertTrue(np.allclose(mesh.bathy, 5.0))

    def test_wrong_depth_count_raises(self):
        from coastmesh.polymesh.assembler import MeshAssembler
        from coastmesh.polymesh.structured import structured_cells

        x, y = square_grid_corners(3, 3)
        with self.assertRaises(InputConsistencyError):
            MeshAssembler().assemble_cells(structured_cells(x, y), bathy=np.zeros(4))

    def test_unassembled_summary(self):
        buffer = io.StringIO()
        with redirect_stdout(buffer):
            PolyMesh().print_summary()
        self.assertIn("not assembled", buffer.getvalue())


if __name__ == "__main__":
    unittest.main()
