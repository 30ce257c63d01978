import unittest
from unittest import mock
import warnings
import numpy as np

from coastmesh.polymesh.adjacency import build_adjacency
from coastmesh.polymesh.config import MeshConfig, OpenBoundarySpec
from coastmesh.polymesh.errors import (
    BoundaryDefinitionError,
    DegenerateCellWarning,
    MeshTopologyError,
    PerimeterWarning,
)
from coastmesh.polymesh.perimeter import (
    OpenBoundarySegment,
    bind_open_boundary,
    nearest_index,
    walk_perimeter,
)
from coastmesh.polymesh.poly_mesh import PolyMesh
from coastmesh.polymesh.triangulation import TriangulationInput
from tests.common_meshes import (
    equilateral_points,
    equilateral_triangulation,
    square_grid_corners,
)

WALK = MeshConfig(walk_perimeter=True)


class TestWalkPerimeter(unittest.TestCase):
    """Perimeter walks on a 3x3 grid of unit squares."""

    @classmethod
    def setUpClass(cls):
        x, y = square_grid_corners(3, 3)
        cls.mesh = PolyMesh.from_structured_grid(x, y, config=WALK)

    def test_path_is_clockwise_ring(self):
        path, visited = walk_perimeter(self.mesh.adjacency)
        self.assertEqual(path, [0, 3, 6, 7, 8, 5, 2, 1])
        self.assertEqual(visited, set(path))
        self.assertEqual(tuple(path), self.mesh.perimeter)

    def test_path_closes(self):
        path, _ = walk_perimeter(self.mesh.adjacency)
        self.assertIn(path[0], self.mesh.adjacency.neighbors(path[-1]))
        self.assertEqual(len(path), self.mesh.adjacency.boundary_cells().size)

    def test_visited_set_is_updated_in_place(self):
        visited = set()
        _, returned = walk_perimeter(self.mesh.adjacency, visited=visited)
        self.assertIs(returned, visited)
        self.assertEqual(len(visited), 8)

    def test_start_cell_must_be_on_boundary(self):
        with self.assertRaises(MeshTopologyError):
            walk_perimeter(self.mesh.adjacency, start_cell=4)

    def test_not_walked_by_default(self):
        x, y = square_grid_corners(3, 3)
        mesh = PolyMesh.from_structured_grid(x, y)
        self.assertEqual(mesh.perimeter, ())
        self.assertEqual(int(np.count_nonzero(mesh.is_boundary_cell)), 8)

    def test_concave_corner_does_not_cut_through_interior(self):
        """
        An L-shaped domain: cells 7 and 5 only meet through the interior cell
        4, so the walk backs out along the boundary and closes early.
        """
        x, y = square_grid_corners(3, 3)
        mask = np.ones((3, 3), dtype=bool)
        mask[2, 2] = False
        with self.assertWarns(PerimeterWarning):
            mesh = PolyMesh.from_structured_grid(x, y, mask=mask, config=WALK)
        boundary = mesh.adjacency.boundary_cells().tolist()
        self.assertEqual(boundary, [0, 1, 2, 3, 5, 6, 7])
        self.assertEqual(mesh.perimeter, (0, 3, 6, 7))
        self.assertTrue(set(mesh.perimeter) <= set(boundary))
        self.assertFalse(mesh.is_boundary_cell[4])

    def test_single_cell(self):
        adjacency = build_adjacency([[0, 1, 2, 3]])
        path, _ = walk_perimeter(adjacency)
        self.assertEqual(path, [0])

    def test_ring_around_hole(self):
        """Every cell of a ring around a hole lies on the outer perimeter."""
        x, y = square_grid_corners(3, 3)
        mask = np.ones((3, 3), dtype=bool)
        mask[1, 1] = False
        with warnings.catch_warnings():
            warnings.simplefilter("error", PerimeterWarning)
            mesh = PolyMesh.from_structured_grid(x, y, mask=mask, config=WALK)
        self.assertEqual(mesh.perimeter, (0, 3, 5, 6, 7, 4, 2, 1))

    def test_voronoi_ring(self):
        tri = equilateral_triangulation(5, 6)
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", DegenerateCellWarning)
            warnings.simplefilter("error", PerimeterWarning)
            mesh = PolyMesh.from_triangulation(tri, config=WALK)
        boundary = mesh.adjacency.boundary_cells()
        path = mesh.perimeter
        self.assertEqual(len(set(path)), len(path))
        self.assertEqual(len(path), boundary.size)
        self.assertEqual(set(path), set(boundary.tolist()))
        self.assertIn(path[0], mesh.adjacency.neighbors(path[-1]))


class TestJitteredTriangulation(unittest.TestCase):
    """Delaunay meshes of a jittered lattice run through the whole pipeline."""

    SEEDS = range(12)

    def jittered(self, seed):
        rng = np.random.default_rng(seed)
        points = equilateral_points(8, 9)
        return TriangulationInput.from_points(points + rng.normal(0.0, 0.05, points.shape))

    def test_assembles_without_open_boundaries(self):
        for seed in self.SEEDS:
            with self.subTest(seed=seed):
                with warnings.catch_warnings():
                    warnings.simplefilter("ignore", DegenerateCellWarning)
                    mesh = PolyMesh.from_triangulation(self.jittered(seed))
                self.assertGreater(mesh.n_cells, 0)
                self.assertEqual(mesh.perimeter, ())
                self.assertTrue(np.any(mesh.is_boundary_cell))

    def test_requested_walk_only_warns(self):
        for seed in self.SEEDS:
            with self.subTest(seed=seed):
                with warnings.catch_warnings():
                    warnings.simplefilter("ignore", DegenerateCellWarning)
                    warnings.simplefilter("ignore", PerimeterWarning)
                    mesh = PolyMesh.from_triangulation(self.jittered(seed), config=WALK)
                boundary = set(mesh.adjacency.boundary_cells().tolist())
                self.assertEqual(len(set(mesh.perimeter)), len(mesh.perimeter))
                self.assertTrue(set(mesh.perimeter) <= boundary)


class TestBindOpenBoundary(unittest.TestCase):
    """Binding named boundaries onto the perimeter of a 3x3 grid."""

    @classmethod
    def setUpClass(cls):
        x, y = square_grid_corners(3, 3)
        cls.mesh = PolyMesh.from_structured_grid(x, y, config=WALK)

    def bind(self, start, mid, end, name="obc"):
        return bind_open_boundary(
            OpenBoundarySpec(name, start, mid, end),
            list(self.mesh.perimeter),
            self.mesh.cell_centers,
            self.mesh.adjacency,
            self.mesh.cell_vertices,
        )

    def test_forward(self):
        segment = self.bind((0.5, 0.5), (0.5, 2.5), (2.5, 2.5))
        self.assertEqual(segment.cells, [0, 3, 6, 7, 8])
        self.assertEqual(segment.n_edges, 8)
        self.assertEqual(segment.path_range, (0, 4, 1))

    def test_backward(self):
        segment = self.bind((0.5, 0.5), (2.5, 0.5), (2.5, 2.5))
        self.assertEqual(segment.cells, [0, 1, 2, 5, 8])
        self.assertEqual(segment.n_edges, 8)
        self.assertEqual(segment.path_range[2], -1)

    def test_edges_are_boundary_edges_of_their_cell(self):
        segment = self.bind((0.5, 0.5), (0.5, 2.5), (2.5, 2.5))
        coords = self.mesh.vertex_coords
        for cell, va, vb in segment.edges:
            verts = self.mesh.cell_vertices[cell]
            j = verts.index(va)
            self.assertEqual(verts[(j + 1) % len(verts)], vb)
            self.assertTrue(self.mesh.adjacency.is_boundary_edge(cell, j))
            # boundary edges of the unit grid lie on its outline
            mid = 0.5 * (coords[va] + coords[vb])
            self.assertTrue(
                np.isclose(mid[0], 0) or np.isclose(mid[0], 3)
                or np.isclose(mid[1], 0) or np.isclose(mid[1], 3)
            )

    def test_single_cell_segment(self):
        segment = self.bind((2.4, 1.4), (2.5, 1.5), (2.6, 1.6))
        self.assertEqual(segment.cells, [5])
        self.assertEqual(segment.n_edges, 1)

    def test_mid_at_endpoint_of_adjacent_pair(self):
        segment = self.bind((0.5, 0.5), (0.5, 0.5), (0.5, 1.5))
        self.assertEqual(segment.cells, [0, 3])

    def test_mid_at_endpoint_across_wrap(self):
        segment = self.bind((0.5, 0.5), (0.5, 0.5), (1.5, 0.5))
        self.assertEqual(segment.cells, [0, 1])
        self.assertEqual(segment.path_range[2], -1)

    def test_ambiguous_mid_raises(self):
        with self.assertRaises(BoundaryDefinitionError) as ctx:
            self.bind((0.5, 0.5), (0.5, 0.5), (2.5, 2.5), name="north")
        self.assertIn("north", str(ctx.exception))

    def test_empty_perimeter_raises(self):
        with self.assertRaises(BoundaryDefinitionError):
            bind_open_boundary(
                OpenBoundarySpec("obc", (0, 0), (0, 0), (0, 0)),
                [],
                self.mesh.cell_centers,
                self.mesh.adjacency,
                self.mesh.cell_vertices,
            )

    def test_assembler_binds_configured_boundaries(self):
        x, y = square_grid_corners(3, 3)
        config = MeshConfig(
            open_boundaries=[
                OpenBoundarySpec("west", (0.5, 0.5), (0.5, 1.5), (0.5, 2.5)),
                OpenBoundarySpec("east", (2.5, 2.5), (2.5, 1.5), (2.5, 0.5)),
            ]
        )
        mesh = PolyMesh.from_structured_grid(x, y, config=config)
        self.assertEqual(mesh.boundary("west").cells, [0, 3, 6])
        self.assertEqual(mesh.boundary("east").cells, [8, 5, 2])
        with self.assertRaises(KeyError):
            mesh.boundary("south")

    def test_duplicate_names_raise(self):
        x, y = square_grid_corners(3, 3)
        spec = OpenBoundarySpec("west", (0.5, 0.5), (0.5, 1.5), (0.5, 2.5))
        with self.assertRaises(BoundaryDefinitionError):
            PolyMesh.from_structured_grid(x, y, config=MeshConfig(open_boundaries=[spec, spec]))


class TestAssemblerWalkFailure(unittest.TestCase):
    """A perimeter walk that cannot close, with and without open boundaries."""

    def setUp(self):
        self.x, self.y = square_grid_corners(3, 3)
        patcher = mock.patch(
            "coastmesh.polymesh.assembler.walk_perimeter",
            side_effect=MeshTopologyError("Perimeter walk did not close."),
        )
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_requested_walk_warns_and_leaves_perimeter_empty(self):
        with self.assertWarns(PerimeterWarning) as ctx:
            mesh = PolyMesh.from_structured_grid(self.x, self.y, config=WALK)
        self.assertIn("did not close", str(ctx.warning))
        self.assertEqual(mesh.perimeter, ())
        self.assertEqual(mesh.n_cells, 9)

    def test_open_boundaries_need_a_closed_walk(self):
        config = MeshConfig(
            open_boundaries=[OpenBoundarySpec("west", (0.5, 0.5), (0.5, 1.5), (0.5, 2.5))]
        )
        with self.assertRaises(MeshTopologyError):
            PolyMesh.from_structured_grid(self.x, self.y, config=config)


class TestOpenBoundarySegment(unittest.TestCase):
    def test_remap(self):
        segment = OpenBoundarySegment("obc", ((3, 10, 11), (3, 11, 12), (5, 12, 13)))
        self.assertEqual(segment.cells, [3, 5])
        cell_map = np.arange(10) - 1
        remapped = segment.remap(cell_map=cell_map)
        self.assertEqual(remapped.cells, [2, 4])
        self.assertEqual(remapped.name, "obc")

    def test_nearest_index_takes_first_minimum(self):
        points = np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 0.0]])
        self.assertEqual(nearest_index(points, (0.9, 0.0)), 1)


if __name__ == "__main__":
    unittest.main()
