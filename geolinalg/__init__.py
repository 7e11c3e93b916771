"""Dense linear algebra for 3D geometry.

Gaussian elimination with partial pivoting for A·x = b, power iteration for
dominant eigenvectors, and least-squares plane fitting of point clouds.
"""

from __future__ import annotations

__version__ = "0.1.0"

from geolinalg.eigen import EigenEstimate, dominant_eigenvector, power_iteration
from geolinalg.factory import ArrayFactory, NumpyFactory
from geolinalg.fitting import PlaneFit, PlaneFitter, fit_plane
from geolinalg.numeric import EPSILON
from geolinalg.primitives import Plane
from geolinalg.solver import GaussEliminationSolver, solve, solve_overdetermined

__all__ = [
    "ArrayFactory",
    "NumpyFactory",
    "EPSILON",
    "GaussEliminationSolver",
    "solve",
    "solve_overdetermined",
    "EigenEstimate",
    "power_iteration",
    "dominant_eigenvector",
    "Plane",
    "PlaneFit",
    "PlaneFitter",
    "fit_plane",
]
