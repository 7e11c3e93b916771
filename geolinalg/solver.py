"""Linear system solver based on Gaussian elimination.

This module solves dense linear systems A·x = b using forward elimination
with partial pivoting followed by back substitution. Systems that have no
solution are reported with a ``None`` result rather than an exception;
exceptions are reserved for malformed input.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

import numpy as np

from geolinalg.factory import ArrayFactory, NumpyFactory
from geolinalg.numeric import EPSILON

logger = logging.getLogger(__name__)


def forward_elimination(augmented: np.ndarray, rows: int, columns: int) -> None:
    """Reduce an augmented matrix to row echelon form in place.

    For each pivot column the row with the largest magnitude entry is
    swapped into the pivot position (the earliest row wins ties). Columns
    whose pivot does not exceed ``EPSILON`` are left untouched.

    Args:
        augmented: rows x (columns + 1) augmented matrix, modified in place
        rows: Number of equations
        columns: Number of unknowns
    """
    for p in range(min(rows, columns)):
        # Partial pivoting
        pivot_row = p
        for i in range(p + 1, rows):
            if abs(augmented[i, p]) > abs(augmented[pivot_row, p]):
                pivot_row = i

        if pivot_row != p:
            _swap_rows(augmented, p, pivot_row)

        if abs(augmented[p, p]) <= EPSILON:
            logger.debug(f"Column {p}: pivot {augmented[p, p]:.3e} treated as zero")
            continue

        _eliminate_below(augmented, p, rows, columns)


def _swap_rows(augmented: np.ndarray, row1: int, row2: int) -> None:
    for col in range(augmented.shape[1]):
        augmented[row1, col], augmented[row2, col] = augmented[row2, col], augmented[row1, col]


def _eliminate_below(augmented: np.ndarray, p: int, rows: int, columns: int) -> None:
    for i in range(p + 1, rows):
        alpha = augmented[i, p] / augmented[p, p]
        for j in range(p, columns + 1):
            augmented[i, j] = augmented[i, j] - alpha * augmented[p, j]


def back_substitution(
    augmented: np.ndarray, rows: int, columns: int, x: np.ndarray
) -> bool:
    """Compute the unknowns from a row echelon augmented matrix.

    Unknowns whose pivot is treated as zero are set to 0 when the equation
    is still satisfied. Equations beyond the number of unknowns are checked
    against the computed solution.

    Args:
        augmented: Augmented matrix produced by ``forward_elimination``
        rows: Number of equations
        columns: Number of unknowns
        x: Vector of dimension ``columns`` receiving the solution

    Returns:
        True if the system is consistent, False if it has no solution
    """
    for i in range(columns):
        x[i] = 0.0

    for i in range(min(rows, columns) - 1, -1, -1):
        total = 0.0
        for j in range(i + 1, columns):
            total += augmented[i, j] * x[j]

        residual = augmented[i, columns] - total
        if abs(augmented[i, i]) > EPSILON:
            x[i] = residual / augmented[i, i]
        elif abs(residual) > EPSILON:
            logger.debug(f"Row {i}: zero pivot with residual {residual:.3e}, no solution")
            return False

    # Redundant rows
    for i in range(columns, rows):
        total = 0.0
        for j in range(columns):
            total += augmented[i, j] * x[j]
        if abs(augmented[i, columns] - total) > EPSILON:
            logger.debug(f"Redundant row {i} is not satisfied, no solution")
            return False

    return True


class GaussEliminationSolver:
    """Solve A·x = b with Gaussian elimination and partial pivoting.

    The right-hand side may be a vector (1D) or a single-column matrix
    (n x 1); the solution is returned in the same form. A preallocated
    ``x`` of matching form receives the solution in place.
    """

    method = "gauss"

    def __init__(self, factory: Optional[ArrayFactory] = None):
        self.factory = factory or NumpyFactory()

    def solve(self, a, b, x: Optional[np.ndarray] = None) -> Optional[np.ndarray]:
        """Solve a square linear system.

        Args:
            a: n x n coefficient matrix
            b: Right-hand side, vector of dimension n or n x 1 matrix
            x: Optional preallocated result (same form as b)

        Returns:
            The solution, or None if the system has no solution
        """
        a = self.factory.as_matrix(a, name="A")
        rows, columns = a.shape
        if rows != columns:
            raise ValueError(f"A must be square, got {rows}x{columns}")
        return self._solve(a, b, x)

    def solve_overdetermined(self, a, b, x: Optional[np.ndarray] = None) -> Optional[np.ndarray]:
        """Solve a system with at least as many equations as unknowns.

        Equations beyond the number of unknowns must be satisfied by the
        solution of the leading ones, otherwise there is no solution.

        Args:
            a: m x n coefficient matrix with m >= n
            b: Right-hand side, vector of dimension m or m x 1 matrix
            x: Optional preallocated result of dimension n (same form as b)

        Returns:
            The solution, or None if the system has no solution
        """
        a = self.factory.as_matrix(a, name="A")
        rows, columns = a.shape
        if rows < columns:
            raise ValueError(f"A must have at least as many rows as columns, got {rows}x{columns}")
        return self._solve(a, b, x)

    def _solve(self, a: np.ndarray, b, x: Optional[np.ndarray]) -> Optional[np.ndarray]:
        rows, columns = a.shape
        rhs, matrix_form = self._check_rhs(b, rows)
        if x is not None:
            self._check_result(x, columns, matrix_form)

        # Build augmented matrix [A | b]
        augmented = self.factory.matrix(rows, columns + 1)
        for i in range(rows):
            for j in range(columns):
                augmented[i, j] = a[i, j]
            augmented[i, columns] = rhs[i]

        forward_elimination(augmented, rows, columns)

        solution = self.factory.vector(columns)
        if not back_substitution(augmented, rows, columns, solution):
            logger.debug(f"System {rows}x{columns} has no solution")
            return None

        if x is None:
            x = self.factory.matrix(columns, 1) if matrix_form else self.factory.vector(columns)

        for i in range(columns):
            if matrix_form:
                x[i, 0] = solution[i]
            else:
                x[i] = solution[i]

        return x

    def _check_rhs(self, b, rows: int) -> Tuple[np.ndarray, bool]:
        if np.ndim(b) == 2:
            b = self.factory.as_matrix(b, name="b")
            if b.shape[1] != 1:
                raise ValueError(f"b must have a single column, got shape {b.shape}")
            rhs, matrix_form = b[:, 0], True
        else:
            rhs, matrix_form = self.factory.as_vector(b, name="b"), False

        if len(rhs) != rows:
            raise ValueError(f"Rows count for A ({rows}) and b ({len(rhs)}) differ")
        return rhs, matrix_form

    @staticmethod
    def _check_result(x: np.ndarray, columns: int, matrix_form: bool) -> None:
        expected = (columns, 1) if matrix_form else (columns,)
        if tuple(np.shape(x)) != expected:
            raise ValueError(f"x must have shape {expected}, got {np.shape(x)}")
        if not np.issubdtype(np.asarray(x).dtype, np.floating):
            raise ValueError(f"x must have a floating point dtype, got {np.asarray(x).dtype}")


def solve(a, b, x: Optional[np.ndarray] = None, factory: Optional[ArrayFactory] = None) -> Optional[np.ndarray]:
    """Solve the square linear system A·x = b.

    Args:
        a: n x n coefficient matrix
        b: Right-hand side, vector of dimension n or n x 1 matrix
        x: Optional preallocated result (same form as b)
        factory: Array factory used for working matrices

    Returns:
        The solution, or None if the system has no solution
    """
    return GaussEliminationSolver(factory).solve(a, b, x)


def solve_overdetermined(
    a, b, x: Optional[np.ndarray] = None, factory: Optional[ArrayFactory] = None
) -> Optional[np.ndarray]:
    """Solve A·x = b where A has at least as many rows as columns."""
    return GaussEliminationSolver(factory).solve_overdetermined(a, b, x)


__all__ = [
    "GaussEliminationSolver",
    "forward_elimination",
    "back_substitution",
    "solve",
    "solve_overdetermined",
]
