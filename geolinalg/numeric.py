"""Numeric helpers shared by the solver and the eigenvector finder."""

from __future__ import annotations

from typing import Optional

import numpy as np

# Values whose magnitude does not exceed EPSILON are treated as 0.
EPSILON = 1e-10


def largest_entry(m: np.ndarray) -> float:
    """Return the largest absolute entry of a matrix.

    Args:
        m: Matrix to scan

    Returns:
        Largest absolute value, 0.0 for an empty or all-zero matrix
    """
    rows, columns = m.shape
    result = 0.0
    for i in range(rows):
        for j in range(columns):
            result = max(result, abs(float(m[i, j])))
    return result


def distance_squared(u: np.ndarray, v: np.ndarray) -> float:
    """Squared Euclidean distance between two vectors."""
    if len(u) != len(v):
        raise ValueError(f"Vector dimensions differ ({len(u)} and {len(v)})")
    diff = np.asarray(v, dtype=np.float64) - np.asarray(u, dtype=np.float64)
    return float(diff @ diff)


def normalize(v: np.ndarray) -> Optional[np.ndarray]:
    """Divide a vector by its Euclidean norm.

    Args:
        v: Vector to normalize

    Returns:
        Unit vector, or None when the norm is exactly zero
    """
    norm = np.linalg.norm(v)
    if norm == 0.0:
        return None
    return v / norm


__all__ = [
    "EPSILON",
    "largest_entry",
    "distance_squared",
    "normalize",
]
