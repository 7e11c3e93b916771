"""Dominant eigenvector estimation by power iteration.

The matrix is first scaled by its largest entry and raised to the 8th
power, which widens the gap between the dominant eigenvalue and the others
before the power iteration starts. The method is intended for small
symmetric matrices such as 3x3 scatter matrices.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from geolinalg.factory import ArrayFactory, NumpyFactory
from geolinalg.numeric import distance_squared, largest_entry, normalize

logger = logging.getLogger(__name__)


@dataclass
class EigenEstimate:
    """Result of a power iteration."""
    vector: np.ndarray        # Unit eigenvector estimate
    eigenvalue: float         # Rayleigh quotient on the input matrix
    iterations: int           # Number of iterations performed
    converged: bool           # True if the convergence limit was reached
    distances: List[float] = field(default_factory=list)  # Squared step distances


def amplify(m: np.ndarray, factory: Optional[ArrayFactory] = None) -> np.ndarray:
    """Scale a matrix by its largest entry and raise it to the 8th power.

    Args:
        m: Square matrix
        factory: Array factory (defaults to ``NumpyFactory``)

    Returns:
        The amplified matrix
    """
    scale = largest_entry(m)
    if scale == 0.0:
        raise ValueError("Cannot find a dominant eigenvector of a zero matrix")

    mc = m * (1.0 / scale)
    mc = mc @ mc
    mc = mc @ mc
    mc = mc @ mc
    return mc


def power_iteration(
    m,
    max_iterations: int,
    convergence_limit: float,
    factory: Optional[ArrayFactory] = None,
) -> EigenEstimate:
    """Estimate the eigenvector associated with the largest eigenvalue.

    Iterates from the all-ones vector until the squared distance between
    two successive normalized iterates drops below ``convergence_limit`` or
    ``max_iterations`` is reached. The last iterate is returned in both
    cases; ``converged`` tells them apart.

    Args:
        m: Square (typically 3x3 symmetric) matrix
        max_iterations: Maximum number of iterations
        convergence_limit: Squared distance under which iteration stops
        factory: Array factory (defaults to ``NumpyFactory``)

    Returns:
        EigenEstimate holding the eigenvector and iteration details
    """
    factory = factory or NumpyFactory()
    m = factory.as_matrix(m, name="M")
    rows, columns = m.shape
    if rows != columns:
        raise ValueError(f"M must be square, got {rows}x{columns}")
    if max_iterations < 0:
        raise ValueError(f"max_iterations must be non-negative, got {max_iterations}")
    if convergence_limit < 0:
        raise ValueError(f"convergence_limit must be non-negative, got {convergence_limit}")

    mc = amplify(m, factory)

    start = factory.vector(rows)
    for i in range(rows):
        start[i] = 1.0
    v = normalize(start)
    last_v = v

    distances = []
    converged = False
    iterations = 0
    for iterations in range(1, int(max_iterations) + 1):
        candidate = normalize(mc @ last_v)
        if candidate is None:
            # The iterate lies in the null space of the amplified matrix
            logger.warning(f"Power iteration collapsed to zero at iteration {iterations}")
            break

        v = candidate
        distance = distance_squared(v, last_v)
        distances.append(distance)
        if distance < convergence_limit:
            converged = True
            break
        last_v = v

    if not converged:
        logger.warning(
            f"Power iteration did not converge after {iterations} iterations "
            f"(last squared step: {distances[-1] if distances else float('nan'):.3e})"
        )

    eigenvalue = float(v @ (m @ v))
    logger.debug(
        f"Dominant eigenvector {np.array2string(v, precision=6)}, "
        f"eigenvalue={eigenvalue:.6g}, iterations={iterations}"
    )
    return EigenEstimate(
        vector=v,
        eigenvalue=eigenvalue,
        iterations=iterations,
        converged=converged,
        distances=distances,
    )


def dominant_eigenvector(
    m,
    max_iterations: int,
    convergence_limit: float,
    factory: Optional[ArrayFactory] = None,
) -> np.ndarray:
    """Return the eigenvector associated with the largest eigenvalue of ``m``.

    The result is an approximation: it is the last iterate whether or not
    the iteration converged. Use ``power_iteration`` to know which.
    """
    return power_iteration(m, max_iterations, convergence_limit, factory).vector


__all__ = [
    "EigenEstimate",
    "amplify",
    "power_iteration",
    "dominant_eigenvector",
]
