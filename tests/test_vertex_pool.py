import unittest
import numpy as np

from coastmesh.polymesh.vertex_pool import VertexPool, pool_cells, pool_vertices


class TestPoolVertices(unittest.TestCase):
    """Tests for coordinate deduplication."""

    def test_shared_coordinates_collapse(self):
        """Two squares sharing an edge share two pooled vertices."""
        left = np.array([[0.0, 0.0], [0.0, 1.0], [1.0, 1.0], [1.0, 0.0]])
        right = left + [1.0, 0.0]
        centers = np.array([[0.5, 0.5], [1.5, 0.5]])
        pool, center_ids, cell_vertices = pool_cells(centers, [left, right])

        self.assertEqual(pool.n_vertices, 8)
        self.assertEqual(len(set(cell_vertices[0]) & set(cell_vertices[1])), 2)
        self.assertTrue(np.allclose(pool.coords[center_ids], centers))
        for verts, poly in zip(cell_vertices, [left, right]):
            self.assertTrue(np.allclose(pool.coords[verts], poly))

    def test_pool_is_sorted_by_x_then_y(self):
        entries = [(0, 0, 1.0, 0.0), (0, 1, 0.0, 1.0), (0, 2, 0.0, 0.0)]
        pool, index_map = pool_vertices(entries)
        self.assertTrue(np.allclose(pool.coords, [[0.0, 0.0], [0.0, 1.0], [1.0, 0.0]]))
        self.assertEqual(index_map[(0, 2)], 0)
        self.assertEqual(index_map[(0, 0)], 2)

    def test_idempotence(self):
        """Pooling an already pooled vertex set is the identity."""
        rng = np.random.default_rng(7)
        coords = rng.random((40, 2)).round(2)
        entries = [(k, 0, x, y) for k, (x, y) in enumerate(coords)]
        pool, _ = pool_vertices(entries)

        again, index_map = pool_vertices(
            [(k, 0, x, y) for k, (x, y) in enumerate(pool.coords)]
        )
        self.assertTrue(np.array_equal(again.coords, pool.coords))
        self.assertEqual([index_map[(k, 0)] for k in range(pool.n_vertices)],
                         list(range(pool.n_vertices)))

    def test_tolerance_merges_round_off(self):
        entries = [(0, 0, 0.0, 0.0), (1, 0, 1e-9, 0.0), (2, 0, 0.5, 0.0)]

        exact, _ = pool_vertices(entries)
        self.assertEqual(exact.n_vertices, 3)

        merged, index_map = pool_vertices(entries, tolerance=1e-6)
        self.assertEqual(merged.n_vertices, 2)
        self.assertEqual(index_map[(0, 0)], index_map[(1, 0)])
        self.assertEqual(merged.tolerance, 1e-6)

    def test_negative_tolerance_raises(self):
        with self.assertRaises(ValueError):
            pool_vertices([(0, 0, 0.0, 0.0)], tolerance=-1.0)

    def test_empty_input(self):
        pool, index_map = pool_vertices([])
        self.assertEqual(len(pool), 0)
        self.assertEqual(index_map, {})


class TestVertexPoolCompact(unittest.TestCase):
    def test_compact_drops_unused(self):
        pool = VertexPool(np.array([[0.0, 0.0], [1.0, 0.0], [2.0, 0.0], [3.0, 0.0]]))
        compacted, old_to_new = pool.compact([3, 1])

        self.assertEqual(compacted.n_vertices, 2)
        self.assertEqual(old_to_new.tolist(), [-1, 0, -1, 1])
        self.assertTrue(np.allclose(compacted.coords, [[1.0, 0.0], [3.0, 0.0]]))


if __name__ == "__main__":
    unittest.main()
