"""Geometric primitives produced by the fitting algorithms."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass
class Plane:
    """Plane defined by an origin point and a normal vector.

    The implicit equation is ``a*x + b*y + c*z + d = 0`` with ``(a, b, c)``
    the normal and ``d = -normal . origin``.
    """
    origin: np.ndarray
    normal: np.ndarray

    def __post_init__(self):
        self.origin = np.array(self.origin, dtype=np.float64).reshape(3)
        self.normal = np.array(self.normal, dtype=np.float64).reshape(3)

    @property
    def a(self) -> float:
        return float(self.normal[0])

    @property
    def b(self) -> float:
        return float(self.normal[1])

    @property
    def c(self) -> float:
        return float(self.normal[2])

    @property
    def d(self) -> float:
        return -float(self.normal @ self.origin)

    def coefficients(self) -> tuple[float, float, float, float]:
        """Return the ``(a, b, c, d)`` coefficients of the plane equation."""
        return self.a, self.b, self.c, self.d

    def signed_distance(self, point) -> float:
        """Signed distance from a point to the plane.

        Positive on the side the normal points to.

        Args:
            point: 3D point [x,y,z]

        Returns:
            Signed distance
        """
        point = np.asarray(point, dtype=np.float64).reshape(3)
        return float((self.normal @ point + self.d) / np.linalg.norm(self.normal))

    def distance(self, point) -> float:
        """Unsigned distance from a point to the plane."""
        return abs(self.signed_distance(point))

    def distances(self, points) -> np.ndarray:
        """Unsigned distances from each row of an Nx3 array to the plane."""
        points = np.asarray(points, dtype=np.float64)
        if points.ndim != 2 or points.shape[1] != 3:
            raise ValueError(f"Expected Nx3 points array, got shape {points.shape}")
        return np.abs(points @ self.normal + self.d) / np.linalg.norm(self.normal)
