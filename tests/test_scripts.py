"""Tests for the command line tools."""

import io
import json
import os
import shutil
import sys
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

# Add parent directory to path
sys.path.append(str(Path(__file__).resolve().parent.parent))

from scripts import fit_plane, solve_system


class TestFitPlaneScript(unittest.TestCase):
    """Test the plane fitting command."""

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        rng = np.random.default_rng(11)
        xy = rng.uniform(-1.0, 1.0, size=(30, 2))
        z = 0.2 * xy[:, 0] + 0.1 * xy[:, 1] + rng.normal(0.0, 0.001, size=30)
        self.points = np.column_stack((xy, z))

        self.npy_path = os.path.join(self.test_dir, "cloud.npy")
        np.save(self.npy_path, self.points)

        # XYZRGB text file, color columns are ignored
        self.txt_path = os.path.join(self.test_dir, "colored.txt")
        colors = np.full((30, 3), 128.0)
        np.savetxt(self.txt_path, np.hstack((self.points, colors)), header="x y z r g b")

        self.line_path = os.path.join(self.test_dir, "line.csv")
        with open(self.line_path, "w") as f:
            f.write("0,0,0\n1,1,1\n2,2,2\n")

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def test_load_points(self):
        """Text and numpy files give the same Nx3 points."""
        np.testing.assert_allclose(fit_plane.load_points(self.npy_path), self.points)
        np.testing.assert_allclose(fit_plane.load_points(self.txt_path), self.points, atol=1e-12)
        self.assertEqual(fit_plane.load_points(self.line_path).shape, (3, 3))

    def test_main_writes_report(self):
        """Test a full run with a JSON report and plots."""
        output_dir = os.path.join(self.test_dir, "out")

        code = fit_plane.main([
            self.npy_path, self.txt_path, self.line_path,
            "--output", output_dir, "--visualise"
        ])

        self.assertEqual(code, 0)
        with open(os.path.join(output_dir, "planes.json")) as f:
            report = json.load(f)
        self.assertEqual(report["n_clouds"], 3)
        self.assertEqual(report["n_fitted"], 2)
        self.assertTrue(os.path.exists(os.path.join(output_dir, "cloud_plane.png")))
        self.assertTrue(os.path.exists(os.path.join(output_dir, "cloud_convergence.png")))

        normal = np.array(report["fits"]["cloud"]["normal"])
        expected = np.array([0.2, 0.1, -1.0]) / np.linalg.norm([0.2, 0.1, -1.0])
        self.assertAlmostEqual(abs(float(normal @ expected)), 1.0, delta=1e-4)

    def test_missing_file(self):
        """A missing input file makes the command fail."""
        code = fit_plane.main([os.path.join(self.test_dir, "missing.npy")])

        self.assertEqual(code, 1)


class TestSolveSystemScript(unittest.TestCase):
    """Test the linear system command."""

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.a_path = os.path.join(self.test_dir, "a.txt")
        np.savetxt(self.a_path, [[0.0, 1.0], [1.0, 0.0]])

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def _run(self, rhs):
        b_path = os.path.join(self.test_dir, "b.txt")
        np.savetxt(b_path, rhs)
        stdout = io.StringIO()
        with redirect_stdout(stdout):
            code = solve_system.main(["-a", self.a_path, "-b", b_path])
        return code, stdout.getvalue().strip()

    def test_solution(self):
        """The solution is printed on one line."""
        code, output = self._run([2.0, 3.0])

        self.assertEqual(code, 0)
        np.testing.assert_allclose([float(v) for v in output.split()], [3.0, 2.0])

    def test_no_solution(self):
        """A singular inconsistent system exits with the no-solution code."""
        np.savetxt(self.a_path, [[1.0, 2.0], [2.0, 4.0]])

        code, output = self._run([1.0, 3.0])

        self.assertEqual(code, solve_system.EXIT_NO_SOLUTION)
        self.assertEqual(output, "no solution")


if __name__ == "__main__":
    unittest.main()
