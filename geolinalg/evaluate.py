"""Evaluation metrics for plane fits.

This module measures how well a fitted plane explains its point cloud and
provides timing utilities used by the command line tools.
"""

from __future__ import annotations

import logging
import time
from typing import Dict, Optional

import numpy as np

from geolinalg.fitting import PlaneFit
from geolinalg.primitives import Plane

logger = logging.getLogger(__name__)


def plane_residuals(plane: Plane, points: np.ndarray) -> np.ndarray:
    """Distances from each point to the plane.

    Args:
        plane: Fitted plane
        points: Nx3 array of points

    Returns:
        Array of N unsigned distances
    """
    return plane.distances(points)


def plane_rmse(plane: Plane, points: np.ndarray) -> float:
    """Root mean square point-to-plane distance."""
    residuals = plane_residuals(plane, points)
    if residuals.size == 0:
        logger.warning("No points provided for plane RMSE calculation")
        return float("inf")
    return float(np.sqrt(np.mean(residuals**2)))


class Timer:
    """Context manager measuring wall-clock time of a block."""

    def __init__(self, name: str = "Timer", logger: Optional[logging.Logger] = None):
        self.name = name
        self.logger = logger or logging.getLogger(__name__)
        self.start_time = None
        self.end_time = None

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        self.end_time = None
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.end_time = time.perf_counter()
        self.logger.debug(f"{self.name}: {self.elapsed:.4f}s")

    @property
    def elapsed(self) -> float:
        """Elapsed time in seconds (up to now while the block is running)."""
        if self.start_time is None:
            return 0.0
        end = self.end_time if self.end_time is not None else time.perf_counter()
        return end - self.start_time


class FitMetrics:
    """Collects per-cloud plane fitting results."""

    def __init__(self):
        self.metrics = {
            "n_clouds": 0,
            "n_fitted": 0,
            "runtime_s": 0.0,
            "fits": {},
        }

    def update(self, metric_name: str, value) -> None:
        self.metrics[metric_name] = value

    def add_fit(self, name: str, points: np.ndarray, fit: PlaneFit, time_s: float) -> None:
        """Record the result of fitting one point cloud.

        Args:
            name: Identifier of the point cloud (e.g. file name)
            points: Nx3 array of the fitted points
            fit: Detailed fit result
            time_s: Time spent fitting, in seconds
        """
        entry = {
            "n_points": int(len(points)),
            "method": fit.method,
            "time_s": time_s,
        }
        if fit.plane is not None:
            entry["origin"] = fit.plane.origin.tolist()
            entry["normal"] = fit.plane.normal.tolist()
            entry["coefficients"] = list(fit.plane.coefficients())
            entry["rmse"] = plane_rmse(fit.plane, points)
            self.metrics["n_fitted"] += 1
        if fit.estimate is not None:
            entry["iterations"] = fit.estimate.iterations
            entry["converged"] = fit.estimate.converged

        self.metrics["fits"][name] = entry
        self.metrics["n_clouds"] += 1

    def to_dict(self) -> Dict:
        return self.metrics.copy()

    def summary(self) -> str:
        """Generate a human-readable summary of the collected fits."""
        lines = [
            "Plane Fitting Metrics:",
            f"  Point clouds: {self.metrics['n_clouds']}",
            f"  Planes fitted: {self.metrics['n_fitted']}",
        ]

        for name, entry in self.metrics["fits"].items():
            if "normal" not in entry:
                lines.append(f"  {name}: no plane ({entry['n_points']} points)")
                continue
            normal = ", ".join(f"{value:.5f}" for value in entry["normal"])
            line = f"  {name}: normal=({normal}), RMSE={entry['rmse']:.6g}"
            if "iterations" in entry:
                line += f", iterations={entry['iterations']}"
            lines.append(line)

        lines.append(f"  Total runtime: {self.metrics['runtime_s']:.2f}s")
        return "\n".join(lines)
