"""Dense matrix and vector construction.

The numerical core never builds arrays on its own: it asks an
``ArrayFactory`` for zero-filled matrices and vectors, and for the
determinant and inverse of a matrix. ``NumpyFactory`` is the default
implementation and is what every entry point uses when no factory is
passed explicitly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

import numpy as np
from scipy import linalg


class ArrayFactory(ABC):
    """Capability set required by the solver, eigen finder and plane fitter.

    Matrices must support ``m[i, j]`` access, ``m.shape`` and the ``@`` and
    ``*`` operators; vectors must support ``v[i]`` access and ``len(v)``.
    """

    @abstractmethod
    def matrix(self, rows: int, columns: int) -> np.ndarray:
        """Zero-filled ``rows x columns`` matrix."""
        pass

    @abstractmethod
    def vector(self, dimension: int) -> np.ndarray:
        """Zero-filled vector of the given dimension."""
        pass

    @abstractmethod
    def as_matrix(self, data, name: str = "matrix") -> np.ndarray:
        """Validate and convert matrix input."""
        pass

    @abstractmethod
    def as_vector(self, data, name: str = "vector") -> np.ndarray:
        """Validate and convert vector input."""
        pass

    @abstractmethod
    def determinant(self, m: np.ndarray) -> float:
        """Determinant of a square matrix."""
        pass

    @abstractmethod
    def invert(self, m: np.ndarray) -> np.ndarray:
        """Inverse of a non-singular square matrix."""
        pass


class NumpyFactory(ArrayFactory):
    """Factory producing ``float64`` numpy arrays."""

    dtype = np.float64

    def matrix(self, rows: int, columns: int) -> np.ndarray:
        if rows < 0 or columns < 0:
            raise ValueError(f"Invalid matrix size {rows}x{columns}")
        return np.zeros((rows, columns), dtype=self.dtype)

    def vector(self, dimension: int) -> np.ndarray:
        if dimension < 0:
            raise ValueError(f"Invalid vector dimension {dimension}")
        return np.zeros(dimension, dtype=self.dtype)

    def as_matrix(self, data, name: str = "matrix") -> np.ndarray:
        """Validate and convert matrix input.

        Args:
            data: 2D array-like
            name: Name used in error messages

        Returns:
            2D float64 array
        """
        m = np.asarray(data, dtype=self.dtype)
        if m.ndim != 2:
            raise ValueError(f"{name} must be 2-dimensional, got shape {m.shape}")
        if not np.all(np.isfinite(m)):
            raise ValueError(f"{name} contains NaN or Inf")
        return m

    def as_vector(self, data, name: str = "vector") -> np.ndarray:
        """Validate and convert vector input.

        Args:
            data: 1D array-like
            name: Name used in error messages

        Returns:
            1D float64 array
        """
        v = np.asarray(data, dtype=self.dtype)
        if v.ndim != 1:
            raise ValueError(f"{name} must be 1-dimensional, got shape {v.shape}")
        if not np.all(np.isfinite(v)):
            raise ValueError(f"{name} contains NaN or Inf")
        return v

    def determinant(self, m: np.ndarray) -> float:
        return float(linalg.det(m))

    def invert(self, m: np.ndarray) -> np.ndarray:
        return linalg.inv(m)


def from_rows(rows: Sequence[Sequence[float]], factory: ArrayFactory | None = None) -> np.ndarray:
    """Build a matrix from nested row sequences using the given factory.

    Args:
        rows: Sequence of equally sized rows
        factory: Array factory (defaults to ``NumpyFactory``)

    Returns:
        Matrix holding the given values
    """
    factory = factory or NumpyFactory()
    n_rows = len(rows)
    n_columns = len(rows[0]) if n_rows > 0 else 0
    m = factory.matrix(n_rows, n_columns)
    for i, row in enumerate(rows):
        if len(row) != n_columns:
            raise ValueError(f"Row {i} has {len(row)} values, expected {n_columns}")
        for j, value in enumerate(row):
            m[i, j] = value
    return m


__all__ = [
    "ArrayFactory",
    "NumpyFactory",
    "from_rows",
]
