"""Least-squares plane fitting.

The plane through a point cloud that minimizes the sum of squared
point-to-plane distances passes through the centroid, and its normal is
the eigenvector of the scatter matrix S associated with the smallest
eigenvalue. That eigenvector is found as the dominant eigenvector of S^-1
by power iteration.

When S is singular (exactly coplanar input) the normal is recovered from
the null space of S: for a rank-2 scatter matrix it is orthogonal to every
row of S, so the cross product of two independent rows gives it directly.
Rank 0 or 1 input (coincident or collinear points) defines no plane.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np

from geolinalg.eigen import EigenEstimate, power_iteration
from geolinalg.factory import ArrayFactory, NumpyFactory, from_rows
from geolinalg.numeric import EPSILON, largest_entry, normalize
from geolinalg.primitives import Plane

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 100
DEFAULT_CONVERGENCE_LIMIT = 1e-12


@dataclass
class PlaneFit:
    """Detailed result of a plane fit."""
    plane: Optional[Plane]             # Fitted plane, None if no plane can be fitted
    scatter: Optional[np.ndarray]      # 3x3 scatter matrix (None for < 3 points)
    estimate: Optional[EigenEstimate]  # Power iteration details (eigen method only)
    method: Optional[str]              # "eigen", "null_space" or None


def centroid(points: np.ndarray) -> np.ndarray:
    """Mean of an Nx3 array of points."""
    return np.mean(points, axis=0)


def scatter_matrix(
    points: np.ndarray, center: np.ndarray, factory: Optional[ArrayFactory] = None
) -> np.ndarray:
    """Build the 3x3 scatter matrix of points around a center.

    Args:
        points: Nx3 array of points
        center: Point the deviations are measured from
        factory: Array factory (defaults to ``NumpyFactory``)

    Returns:
        Symmetric 3x3 matrix of summed deviation products
    """
    dx = points[:, 0] - center[0]
    dy = points[:, 1] - center[1]
    dz = points[:, 2] - center[2]

    sxx = float(dx @ dx)
    sxy = float(dx @ dy)
    sxz = float(dx @ dz)
    syy = float(dy @ dy)
    syz = float(dy @ dz)
    szz = float(dz @ dz)

    return from_rows([[sxx, sxy, sxz],
                      [sxy, syy, syz],
                      [sxz, syz, szz]], factory)


def is_singular(scatter: np.ndarray, det: float) -> bool:
    """Tell whether a scatter matrix has lost rank.

    For a symmetric positive semi-definite matrix, ``det / c2`` estimates
    the smallest eigenvalue, where ``c2`` (the sum of the principal 2x2
    minors) is dominated by the product of the two largest ones. The
    matrix is singular when that estimate vanishes relative to the
    largest entry, or when ``c2`` itself vanishes (rank 1 or less).

    Args:
        scatter: Symmetric 3x3 scatter matrix
        det: Determinant of ``scatter``

    Returns:
        True if the matrix is rank deficient
    """
    if det == 0.0:
        return True

    scale = largest_entry(scatter)
    c2 = (scatter[0, 0] * scatter[1, 1] - scatter[0, 1] * scatter[0, 1]
          + scatter[0, 0] * scatter[2, 2] - scatter[0, 2] * scatter[0, 2]
          + scatter[1, 1] * scatter[2, 2] - scatter[1, 2] * scatter[1, 2])
    if c2 <= EPSILON * scale * scale:
        return True

    return abs(det) <= EPSILON * scale * c2


def null_space_normal(scatter: np.ndarray) -> Optional[np.ndarray]:
    """Normal of a rank-2 scatter matrix.

    Args:
        scatter: Singular 3x3 scatter matrix

    Returns:
        Unit vector spanning the null space, or None if the rank is below 2
    """
    scale = largest_entry(scatter)
    if scale == 0.0:
        return None

    best = None
    best_norm = 0.0
    for i, j in ((0, 1), (0, 2), (1, 2)):
        cross = np.cross(scatter[i], scatter[j])
        norm = np.linalg.norm(cross)
        if norm > best_norm:
            best, best_norm = cross, norm

    if best is None or best_norm <= EPSILON * scale * scale:
        return None
    return normalize(best)


class PlaneFitter:
    """Fit planes to 3D point clouds with linear least squares.

    A non-singular scatter matrix is inverted and the normal is the
    dominant eigenvector of the inverse. A singular one (exactly coplanar,
    collinear or coincident points) cannot be inverted. By default the
    normal of exactly coplanar points is then taken from the null space of
    the scatter matrix, so that such clouds still fit their plane.
    Pass ``null_space_fallback=False`` to get None for every singular
    scatter matrix instead, with no normal recovery attempted.

    Args:
        max_iterations: Maximum number of power iterations
        convergence_limit: Squared step distance under which the power
            iteration stops
        null_space_fallback: Recover the normal of exactly coplanar input
            from the null space of the scatter matrix (enabled by
            default). When disabled, any singular scatter matrix yields
            no plane.
        factory: Array factory (defaults to ``NumpyFactory``)
    """

    def __init__(
        self,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        convergence_limit: float = DEFAULT_CONVERGENCE_LIMIT,
        null_space_fallback: bool = True,
        factory: Optional[ArrayFactory] = None,
    ):
        self.max_iterations = max_iterations
        self.convergence_limit = convergence_limit
        self.null_space_fallback = null_space_fallback
        self.factory = factory or NumpyFactory()

    @classmethod
    def from_config(cls, config: Dict, factory: Optional[ArrayFactory] = None) -> "PlaneFitter":
        """Create a fitter from the ``fitting`` section of a configuration."""
        params = config.get("fitting", {})
        return cls(
            max_iterations=int(params.get("max_iterations", DEFAULT_MAX_ITERATIONS)),
            convergence_limit=float(params.get("convergence_limit", DEFAULT_CONVERGENCE_LIMIT)),
            null_space_fallback=bool(params.get("null_space_fallback", True)),
            factory=factory,
        )

    def fit(self, points) -> Optional[Plane]:
        """Fit a plane to a point cloud.

        Args:
            points: Nx3 array-like of points (at least 3 points are needed)

        Returns:
            The fitted plane, or None if no plane can be fitted
        """
        return self.fit_detailed(points).plane

    def fit_detailed(self, points) -> PlaneFit:
        """Fit a plane and return the intermediate results.

        Args:
            points: Nx3 array-like of points

        Returns:
            PlaneFit with the plane, scatter matrix and iteration details
        """
        if points is None:
            return PlaneFit(None, None, None, None)

        points = np.asarray(points, dtype=np.float64)
        if points.size == 0:
            return PlaneFit(None, None, None, None)
        if points.ndim != 2 or points.shape[1] != 3:
            raise ValueError(f"Expected Nx3 points array, got shape {points.shape}")
        if not np.all(np.isfinite(points)):
            raise ValueError("points contains NaN or Inf")

        n_points = points.shape[0]
        if n_points < 3:
            logger.warning(f"At least 3 points are needed to fit a plane, got {n_points}")
            return PlaneFit(None, None, None, None)

        center = centroid(points)
        scatter = scatter_matrix(points, center, self.factory)

        det = self.factory.determinant(scatter)
        logger.debug(f"Scatter matrix: det={det:.6g}, largest entry={largest_entry(scatter):.6g}")

        if is_singular(scatter, det):
            if not self.null_space_fallback:
                logger.warning(f"Singular scatter matrix for {n_points} points, no plane fitted")
                return PlaneFit(None, scatter, None, None)

            normal = null_space_normal(scatter)
            if normal is None:
                logger.warning(f"{n_points} points are coincident or collinear, no plane fitted")
                return PlaneFit(None, scatter, None, None)

            logger.info(f"Fitted plane to {n_points} coplanar points from the scatter null space")
            return PlaneFit(Plane(center, normal), scatter, None, "null_space")

        inverse = self.factory.invert(scatter)
        estimate = power_iteration(inverse, self.max_iterations, self.convergence_limit, self.factory)

        logger.info(
            f"Fitted plane to {n_points} points: normal={np.array2string(estimate.vector, precision=5)}, "
            f"iterations={estimate.iterations}, converged={estimate.converged}"
        )
        return PlaneFit(Plane(center, estimate.vector), scatter, estimate, "eigen")


def fit_plane(
    points,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    convergence_limit: float = DEFAULT_CONVERGENCE_LIMIT,
    null_space_fallback: bool = True,
    factory: Optional[ArrayFactory] = None,
) -> Optional[Plane]:
    """Fit a plane to a point cloud with linear least squares.

    Args:
        points: Nx3 array-like of points (at least 3 points are needed)
        max_iterations: Maximum number of power iterations
        convergence_limit: Squared step distance under which iteration stops
        null_space_fallback: Recover the normal of exactly coplanar input
        factory: Array factory (defaults to ``NumpyFactory``)

    Returns:
        The fitted plane, or None if no plane can be fitted
    """
    fitter = PlaneFitter(max_iterations, convergence_limit, null_space_fallback, factory)
    return fitter.fit(points)


__all__ = [
    "PlaneFit",
    "PlaneFitter",
    "centroid",
    "scatter_matrix",
    "is_singular",
    "null_space_normal",
    "fit_plane",
]
