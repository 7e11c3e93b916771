#!/usr/bin/env python3
"""
Plane Fitting

This script fits a least-squares plane to one or more point cloud files and
reports the fitted planes together with their residual error.
"""

from __future__ import annotations

import argparse
import datetime
import json
import logging
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np
from tqdm import tqdm

# Add parent directory to path
sys.path.append(str(Path(__file__).resolve().parent.parent))

from geolinalg import evaluate, visualise
from geolinalg.config import load_config, setup_logging
from geolinalg.fitting import PlaneFitter

logger = logging.getLogger("fit_plane")

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.yaml"


def load_points(path: str) -> np.ndarray:
    """Read a point cloud from a ``.npy`` or delimited text file.

    Text files hold one point per line; values are separated by whitespace
    or commas and lines starting with ``#`` are ignored. Columns beyond the
    third (colors, normals) are dropped.

    Args:
        path: Path to the point file

    Returns:
        Nx3 array of points
    """
    if str(path).endswith(".npy"):
        points = np.load(path)
    else:
        with open(path, "r") as f:
            content = f.read()
        delimiter = "," if "," in content else None
        points = np.loadtxt(path, delimiter=delimiter, comments="#", ndmin=2)

    points = np.asarray(points, dtype=np.float64)
    if points.ndim == 1:
        points = points.reshape(1, -1)
    if points.size > 0 and points.shape[1] < 3:
        raise ValueError(f"{path}: expected at least 3 columns, got {points.shape[1]}")

    return points[:, :3] if points.size > 0 else points.reshape(0, 3)


def run_fitting(
    point_files: List[str],
    output_dir: Optional[str] = None,
    config: Optional[Dict] = None,
    visualise_results: bool = False,
) -> Dict:
    """Fit a plane to every point file.

    Args:
        point_files: Paths of the point files
        output_dir: Directory for the JSON report and plots (optional)
        config: Configuration dictionary
        visualise_results: Save a plot of each fit in ``output_dir``

    Returns:
        Metrics dictionary
    """
    config = config or load_config()
    fitter = PlaneFitter.from_config(config)
    metrics = evaluate.FitMetrics()

    if output_dir is not None:
        os.makedirs(output_dir, exist_ok=True)

    with evaluate.Timer("Plane fitting") as total_timer:
        for path in tqdm(point_files, desc="Fitting planes", disable=len(point_files) < 2):
            points = load_points(path)
            name = Path(path).stem

            with evaluate.Timer(f"Fit {name}") as timer:
                fit = fitter.fit_detailed(points)
            metrics.add_fit(name, points, fit, timer.elapsed)

            if fit.plane is None:
                logger.warning(f"No plane could be fitted to {path}")
                continue

            if visualise_results and output_dir is not None:
                visualise.plot_plane_fit(points, fit.plane, os.path.join(output_dir, f"{name}_plane.png"))
                if fit.estimate is not None:
                    visualise.plot_convergence(
                        fit.estimate, os.path.join(output_dir, f"{name}_convergence.png")
                    )

    metrics.update("runtime_s", total_timer.elapsed)

    if output_dir is not None:
        report = metrics.to_dict()
        report["datetime"] = datetime.datetime.now().isoformat()
        report_path = os.path.join(output_dir, "planes.json")
        with open(report_path, "w") as f:
            json.dump(report, f, indent=2)
        logger.info(f"Report saved to {report_path}")

    logger.info("\n" + metrics.summary())
    return metrics.to_dict()


def main(argv: Optional[List[str]] = None) -> int:
    """Parse arguments and run the plane fitting."""
    parser = argparse.ArgumentParser(description="Least-squares plane fitting")
    parser.add_argument(
        "points", nargs="+",
        help="Point files (.npy, or text with one x y z point per line)"
    )
    parser.add_argument(
        "--output", "-o", dest="output_dir", default=None,
        help="Directory for the JSON report and plots"
    )
    parser.add_argument(
        "--config", "-c", dest="config_path", default=None,
        help="Path to configuration file"
    )
    parser.add_argument(
        "--max-iterations", dest="max_iterations", type=int, default=None,
        help="Override the maximum number of power iterations"
    )
    parser.add_argument(
        "--limit", dest="convergence_limit", type=float, default=None,
        help="Override the power iteration convergence limit"
    )
    parser.add_argument(
        "--visualise", "-v", dest="visualise", action="store_true",
        help="Save plots of the fits (requires --output)"
    )

    args = parser.parse_args(argv)

    try:
        config_path = args.config_path
        if config_path is None and DEFAULT_CONFIG_PATH.exists():
            config_path = DEFAULT_CONFIG_PATH
        config = load_config(config_path)

        if args.max_iterations is not None:
            config["fitting"]["max_iterations"] = args.max_iterations
        if args.convergence_limit is not None:
            config["fitting"]["convergence_limit"] = args.convergence_limit

        setup_logging(config)
        run_fitting(args.points, args.output_dir, config, args.visualise)
    except Exception as e:
        logger.exception(f"Error fitting planes: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
