"""Tests for least-squares plane fitting.

This module fits planes to exact, noisy and degenerate point clouds and
checks the plane primitive returned by the fitter.
"""

import sys
import unittest
from pathlib import Path

import numpy as np
import pytest

# Add parent directory to path
sys.path.append(str(Path(__file__).resolve().parent.parent))

from geolinalg import eigen, fitting
from geolinalg.factory import NumpyFactory
from geolinalg.primitives import Plane


class CountingFactory(NumpyFactory):
    """Factory recording the collaborator operations used by the fitter."""

    def __init__(self):
        self.calls = []

    def determinant(self, m):
        self.calls.append("determinant")
        return super().determinant(m)

    def invert(self, m):
        self.calls.append("invert")
        return super().invert(m)


class TestPlaneFitting(unittest.TestCase):
    """Test plane fitting on known point clouds."""

    def setUp(self):
        """Sample a noisy plane z = 0.5x - 0.25y + 2."""
        rng = np.random.default_rng(42)
        xy = rng.uniform(-5.0, 5.0, size=(200, 2))
        noise = rng.normal(0.0, 0.01, size=200)
        z = 0.5 * xy[:, 0] - 0.25 * xy[:, 1] + 2.0 + noise
        self.noisy_points = np.column_stack((xy, z))
        self.noisy_normal = np.array([0.5, -0.25, -1.0]) / np.linalg.norm([0.5, -0.25, -1.0])

        self.square = np.array([
            [0.0, 0.0, 0.0],
            [1.0, 0.0, 0.0],
            [0.0, 1.0, 0.0],
            [1.0, 1.0, 0.0]
        ])

    def assertParallel(self, u, v, atol=1e-8):
        u = np.asarray(u) / np.linalg.norm(u)
        v = np.asarray(v) / np.linalg.norm(v)
        self.assertAlmostEqual(abs(float(u @ v)), 1.0, delta=atol)

    def test_exact_plane_z0(self):
        """Points on z = 0 give the z axis as normal and their centroid as origin."""
        plane = fitting.fit_plane(self.square, 100, 1e-12)

        self.assertIsNotNone(plane)
        self.assertParallel(plane.normal, [0.0, 0.0, 1.0], atol=1e-12)
        np.testing.assert_allclose(plane.origin, [0.5, 0.5, 0.0])
        self.assertAlmostEqual(np.linalg.norm(plane.normal), 1.0, delta=1e-12)

    def test_exact_tilted_plane(self):
        """Test exactly coplanar points on x + y + z = 1."""
        points = np.array([
            [1.0, 0.0, 0.0],
            [0.0, 1.0, 0.0],
            [0.0, 0.0, 1.0],
            [0.5, 0.5, 0.0],
            [2.0, -1.0, 0.0],
            [0.0, 2.0, -1.0]
        ])

        fit = fitting.PlaneFitter().fit_detailed(points)

        self.assertEqual(fit.method, "null_space")
        self.assertParallel(fit.plane.normal, [1.0, 1.0, 1.0], atol=1e-9)
        np.testing.assert_allclose(fit.plane.distances(points), 0.0, atol=1e-9)

    def test_null_space_fallback_disabled(self):
        """A singular scatter matrix gives no plane when the fallback is off."""
        plane = fitting.fit_plane(self.square, 100, 1e-12, null_space_fallback=False)

        self.assertIsNone(plane)

    def test_null_space_fallback_enabled_by_default(self):
        """Coplanar points are recovered from the null space unless disabled."""
        fitter = fitting.PlaneFitter()
        fit = fitter.fit_detailed(self.square)

        self.assertTrue(fitter.null_space_fallback)
        self.assertEqual(fit.method, "null_space")
        self.assertIsNone(fit.estimate)
        self.assertIn("null_space_fallback=False", fitting.PlaneFitter.__doc__)

    def test_elongated_cloud_uses_eigen_path(self):
        """A long thin rotated slab is well conditioned and fits through S^-1."""
        rng = np.random.default_rng(7)
        local = np.column_stack((
            rng.uniform(0.0, 1e4, size=500),
            rng.uniform(0.0, 10.0, size=500),
            rng.normal(0.0, 0.3, size=500),
        ))
        a, b = np.radians(30.0), np.radians(20.0)
        rz = np.array([[np.cos(a), -np.sin(a), 0.0], [np.sin(a), np.cos(a), 0.0], [0.0, 0.0, 1.0]])
        rx = np.array([[1.0, 0.0, 0.0], [0.0, np.cos(b), -np.sin(b)], [0.0, np.sin(b), np.cos(b)]])
        R = rz @ rx
        points = local @ R.T

        fit = fitting.PlaneFitter().fit_detailed(points)

        self.assertEqual(fit.method, "eigen")
        expected = eigen.dominant_eigenvector(np.linalg.inv(fit.scatter), 100, 1e-12)
        self.assertParallel(fit.plane.normal, expected)
        self.assertParallel(fit.plane.normal, R[:, 2], atol=1e-3)

        strict = fitting.fit_plane(points, 100, 1e-12, null_space_fallback=False)
        self.assertIsNotNone(strict)
        self.assertParallel(strict.normal, R[:, 2], atol=1e-3)

    def test_noisy_plane(self):
        """Test fitting a plane to noisy samples."""
        fit = fitting.PlaneFitter(100, 1e-12).fit_detailed(self.noisy_points)

        self.assertEqual(fit.method, "eigen")
        self.assertTrue(fit.estimate.converged)
        self.assertParallel(fit.plane.normal, self.noisy_normal, atol=1e-4)
        np.testing.assert_allclose(fit.plane.origin, np.mean(self.noisy_points, axis=0))

        residuals = fit.plane.distances(self.noisy_points)
        self.assertLess(np.sqrt(np.mean(residuals**2)), 0.02)

    def test_fit_is_repeatable(self):
        """Fitting the same points twice gives the same normal."""
        first = fitting.fit_plane(self.noisy_points, 100, 1e-12)
        second = fitting.fit_plane(self.noisy_points, 100, 1e-12)

        self.assertParallel(first.normal, second.normal, atol=1e-12)
        np.testing.assert_allclose(first.origin, second.origin)

    def test_collinear_points(self):
        """Collinear points define no plane."""
        self.assertIsNone(fitting.fit_plane([[0, 0, 0], [1, 1, 1], [2, 2, 2]], 100, 1e-12))
        self.assertIsNone(fitting.fit_plane([[1, 2, 3], [2, 4, 6], [3, 6, 9]], 100, 1e-12))

        line = np.outer(np.arange(5.0), [0.1, 0.2, 0.3])
        self.assertIsNone(fitting.fit_plane(line, 100, 1e-12))

    def test_coincident_points(self):
        """Identical points define no plane."""
        self.assertIsNone(fitting.fit_plane(np.ones((4, 3)), 100, 1e-12))

    def test_too_few_points(self):
        """Fewer than 3 points give no plane."""
        self.assertIsNone(fitting.fit_plane([[0, 0, 0], [1, 0, 0]], 100, 1e-12))
        self.assertIsNone(fitting.fit_plane([], 100, 1e-12))
        self.assertIsNone(fitting.fit_plane(None, 100, 1e-12))

    def test_invalid_points(self):
        """Point arrays that are not Nx3 raise ValueError."""
        with self.assertRaises(ValueError):
            fitting.fit_plane(np.zeros((5, 2)), 100, 1e-12)
        with self.assertRaises(ValueError):
            fitting.fit_plane([[0, 0, np.inf], [1, 0, 0], [0, 1, 0]], 100, 1e-12)

    def test_not_converged_still_fits(self):
        """A single power iteration still yields a plane."""
        fit = fitting.PlaneFitter(max_iterations=1, convergence_limit=0.0).fit_detailed(self.noisy_points)

        self.assertIsNotNone(fit.plane)
        self.assertFalse(fit.estimate.converged)
        self.assertEqual(fit.estimate.iterations, 1)

    def test_factory_is_used(self):
        """The fitter delegates determinant and inversion to its factory."""
        factory = CountingFactory()

        fitting.fit_plane(self.noisy_points, 100, 1e-12, factory=factory)

        self.assertEqual(factory.calls, ["determinant", "invert"])

    def test_from_config(self):
        """Test building a fitter from a configuration dictionary."""
        fitter = fitting.PlaneFitter.from_config({
            "fitting": {"max_iterations": 7, "convergence_limit": 1e-6, "null_space_fallback": False}
        })

        self.assertEqual(fitter.max_iterations, 7)
        self.assertEqual(fitter.convergence_limit, 1e-6)
        self.assertFalse(fitter.null_space_fallback)


class TestScatterMatrix(unittest.TestCase):
    """Test the building blocks of the fit."""

    def test_scatter_matrix(self):
        """The scatter matrix sums products of deviations from the center."""
        points = np.array([
            [1.0, 2.0, 3.0],
            [4.0, 0.0, -1.0],
            [2.0, 5.0, 1.0],
            [0.0, 1.0, 2.0]
        ])
        center = fitting.centroid(points)
        deviations = points - center

        S = fitting.scatter_matrix(points, center)

        np.testing.assert_allclose(center, [1.75, 2.0, 1.25])
        np.testing.assert_allclose(S, deviations.T @ deviations, atol=1e-12)
        np.testing.assert_allclose(S, S.T)

    def test_null_space_normal(self):
        """Test null space recovery on rank 2, 1 and 0 matrices."""
        normal = fitting.null_space_normal(np.diag([2.0, 3.0, 0.0]))
        np.testing.assert_allclose(np.abs(normal), [0.0, 0.0, 1.0])

        self.assertIsNone(fitting.null_space_normal(np.ones((3, 3))))
        self.assertIsNone(fitting.null_space_normal(np.zeros((3, 3))))

    def test_is_singular(self):
        """Rank is judged against the two largest eigen-scales."""
        for S in (np.diag([2.0, 3.0, 0.0]), np.ones((3, 3)), np.zeros((3, 3))):
            self.assertTrue(fitting.is_singular(S, np.linalg.det(S)))

        slab = np.diag([3.9e9, 4.2e3, 39.0])
        self.assertFalse(fitting.is_singular(slab, np.linalg.det(slab)))

        flat = np.diag([3.9e9, 4.2e3, 1e-3])
        self.assertTrue(fitting.is_singular(flat, np.linalg.det(flat)))


class TestPlane(unittest.TestCase):
    """Test the plane primitive."""

    def setUp(self):
        self.plane = Plane(origin=[0.0, 0.0, 2.0], normal=[0.0, 0.0, 2.0])

    def test_coefficients(self):
        """The implicit equation passes through the origin."""
        self.assertEqual(self.plane.coefficients(), (0.0, 0.0, 2.0, -4.0))

    def test_distances(self):
        """Distances are measured along the normalized normal."""
        self.assertAlmostEqual(self.plane.signed_distance([1.0, 1.0, 5.0]), 3.0)
        self.assertAlmostEqual(self.plane.signed_distance([1.0, 1.0, 0.0]), -2.0)
        self.assertAlmostEqual(self.plane.distance([1.0, 1.0, 0.0]), 2.0)
        np.testing.assert_allclose(
            self.plane.distances([[0.0, 0.0, 2.0], [3.0, 4.0, -1.0]]), [0.0, 3.0]
        )

    def test_invalid_points(self):
        with self.assertRaises(ValueError):
            self.plane.distances(np.zeros((2, 2)))


@pytest.mark.parametrize("offset", [0.0, 1e3, -1e4])
def test_translation_moves_origin_only(offset):
    """Translating the cloud moves the origin and keeps the normal."""
    points = np.array([
        [0.0, 0.0, 0.1],
        [2.0, 0.0, -0.1],
        [0.0, 3.0, 0.05],
        [2.0, 3.0, 0.0],
        [1.0, 1.5, -0.05]
    ])
    reference = fitting.fit_plane(points, 100, 1e-14)
    moved = fitting.fit_plane(points + offset, 100, 1e-14)
    np.testing.assert_allclose(moved.origin, reference.origin + offset, atol=1e-9)
    assert abs(float(moved.normal @ reference.normal)) == pytest.approx(1.0, abs=1e-6)


if __name__ == "__main__":
    unittest.main()
