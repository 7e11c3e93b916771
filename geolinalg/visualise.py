"""Visualization utilities for plane fits.

Figures are written to disk; nothing is displayed interactively.
"""

from __future__ import annotations

import logging

import matplotlib.pyplot as plt
import numpy as np

from geolinalg.eigen import EigenEstimate
from geolinalg.primitives import Plane

logger = logging.getLogger(__name__)


def _plane_basis(normal: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    # Any axis not parallel to the normal gives a valid in-plane direction
    axis = np.eye(3)[np.argmin(np.abs(normal))]
    u = np.cross(normal, axis)
    u = u / np.linalg.norm(u)
    v = np.cross(normal, u)
    return u, v / np.linalg.norm(v)


def plot_plane_fit(points: np.ndarray, plane: Plane, output_path: str) -> None:
    """Plot a point cloud together with its fitted plane.

    Args:
        points: Nx3 array of points
        plane: Fitted plane
        output_path: Path to save the visualization
    """
    normal = plane.normal / np.linalg.norm(plane.normal)
    u, v = _plane_basis(normal)

    # Patch covering the projection of the cloud on the plane
    offsets = points - plane.origin
    su = offsets @ u
    sv = offsets @ v
    grid_u, grid_v = np.meshgrid(
        np.linspace(su.min(), su.max(), 10),
        np.linspace(sv.min(), sv.max(), 10)
    )
    patch = plane.origin + grid_u[..., None] * u + grid_v[..., None] * v

    fig = plt.figure(figsize=(10, 8))
    ax = fig.add_subplot(111, projection='3d')

    ax.scatter(
        points[:, 0],
        points[:, 1],
        points[:, 2],
        c=plane.distances(points),
        cmap='viridis',
        marker='o',
        s=10,
        label='Points'
    )
    ax.plot_surface(patch[..., 0], patch[..., 1], patch[..., 2], alpha=0.3, color='red')

    # Normal arrow sized relative to the cloud
    scale = max(float(np.ptp(su)), float(np.ptp(sv)), 1e-9) * 0.25
    ax.quiver(*plane.origin, *(normal * scale), color='black', linewidth=2)

    ax.set_xlabel('X')
    ax.set_ylabel('Y')
    ax.set_zlabel('Z')
    ax.set_title('Least-Squares Plane Fit')
    ax.set_box_aspect([1, 1, 1])

    plt.savefig(output_path, dpi=150, bbox_inches='tight')
    plt.close(fig)

    logger.info(f"Plane fit visualization saved to {output_path}")


def plot_convergence(estimate: EigenEstimate, output_path: str) -> None:
    """Plot the squared step distance of each power iteration.

    Args:
        estimate: Result of ``power_iteration``
        output_path: Path to save the visualization
    """
    fig, ax = plt.subplots(figsize=(8, 5))

    steps = np.arange(1, len(estimate.distances) + 1)
    # Exact convergence gives 0, which a log axis cannot show
    distances = np.maximum(np.asarray(estimate.distances, dtype=np.float64), np.finfo(np.float64).tiny)
    ax.semilogy(steps, distances, 'o-')

    ax.set_xlabel('Iteration')
    ax.set_ylabel('Squared step distance')
    status = "converged" if estimate.converged else "not converged"
    ax.set_title(f'Power Iteration ({estimate.iterations} iterations, {status})')
    ax.grid(True, which='both', alpha=0.3)

    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches='tight')
    plt.close(fig)

    logger.info(f"Convergence plot saved to {output_path}")
