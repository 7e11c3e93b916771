#!/usr/bin/env python3
"""
Linear System Solver

This script solves A·x = b with Gaussian elimination, reading A and b from
``.npy`` or whitespace/comma separated text files.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import numpy as np

# Add parent directory to path
sys.path.append(str(Path(__file__).resolve().parent.parent))

from geolinalg.config import load_config, setup_logging
from geolinalg.solver import GaussEliminationSolver

logger = logging.getLogger("solve_system")

EXIT_NO_SOLUTION = 2


def load_array(path: str, ndmin: int) -> np.ndarray:
    """Read a matrix (ndmin=2) or vector (ndmin=1) from disk."""
    if str(path).endswith(".npy"):
        return np.load(path)

    with open(path, "r") as f:
        content = f.read()
    delimiter = "," if "," in content else None
    return np.loadtxt(path, delimiter=delimiter, comments="#", ndmin=ndmin)


def main(argv: Optional[List[str]] = None) -> int:
    """Parse arguments, solve the system and print the solution."""
    parser = argparse.ArgumentParser(description="Solve A·x = b by Gaussian elimination")
    parser.add_argument(
        "--matrix", "-a", dest="matrix_path", required=True,
        help="Path to the coefficient matrix A"
    )
    parser.add_argument(
        "--rhs", "-b", dest="rhs_path", required=True,
        help="Path to the right-hand side b"
    )
    parser.add_argument(
        "--overdetermined", dest="overdetermined", action="store_true",
        help="Accept more equations than unknowns"
    )
    parser.add_argument(
        "--config", "-c", dest="config_path", default=None,
        help="Path to configuration file (logging section)"
    )

    args = parser.parse_args(argv)

    try:
        setup_logging(load_config(args.config_path))

        a = load_array(args.matrix_path, ndmin=2)
        b = load_array(args.rhs_path, ndmin=1)

        solver = GaussEliminationSolver()
        if args.overdetermined:
            x = solver.solve_overdetermined(a, b)
        else:
            x = solver.solve(a, b)
    except Exception as e:
        logger.exception(f"Error solving system: {e}")
        return 1

    if x is None:
        print("no solution")
        return EXIT_NO_SOLUTION

    print(" ".join(f"{value:.12g}" for value in np.ravel(x)))
    return 0


if __name__ == "__main__":
    sys.exit(main())
