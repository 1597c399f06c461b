import unittest
import sys
import os

# Add the project root to the path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

import numpy as np

from pareto_nlp.core.metrics import calculate_hypervolume, normalize_front, spacing


class TestMetrics(unittest.TestCase):
    """Tests for front quality metrics"""

    def test_hypervolume_2d(self):
        points = np.array([[1.0, 3.0], [2.0, 2.0], [3.0, 1.0]])
        # Staircase below (4, 4): 3*1 + 2*1 + 1*1
        self.assertAlmostEqual(calculate_hypervolume(points, [4.0, 4.0]), 6.0)

    def test_hypervolume_3d(self):
        points = np.array([[0.0, 0.0, 0.0]])
        self.assertAlmostEqual(calculate_hypervolume(points, [1.0, 2.0, 3.0]), 6.0)

    def test_hypervolume_empty(self):
        self.assertEqual(calculate_hypervolume(np.empty((0, 2)), [1.0, 1.0]), 0.0)

    def test_hypervolume_ignores_non_finite_rows(self):
        points = np.array([[1.0, 1.0], [np.nan, np.nan]])
        self.assertAlmostEqual(calculate_hypervolume(points, [2.0, 2.0]), 1.0)

    def test_normalize_front(self):
        F = np.array([[0.0, 5.0], [5.0, 0.3]])
        normalized = normalize_front(F, utopia=[0.0, 0.3], nadir=[5.0, 5.0])
        np.testing.assert_allclose(normalized, [[0.0, 1.0], [1.0, 0.0]])

    def test_spacing_of_even_front_is_zero(self):
        t = np.linspace(0.0, 1.0, 6)
        F = np.column_stack([t, 1.0 - t])
        self.assertAlmostEqual(spacing(F), 0.0)

    def test_spacing_of_uneven_front(self):
        F = np.array([[0.0, 1.0], [0.1, 0.9], [1.0, 0.0]])
        self.assertGreater(spacing(F), 0.0)


if __name__ == '__main__':
    unittest.main()
