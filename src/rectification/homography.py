"""
Homography estimation by Direct Linear Transform (DLT).

Maps the validated drawer quad onto the upright target rectangle. With
exactly 4 correspondences and h33 fixed to 1 the DLT reduces to an 8x8
linear system, solved with Gaussian elimination.
"""

import logging
from typing import Iterable, Union

import numpy as np

from src.rectification.errors import SingularMatrixError
from src.rectification.linear_solver import DEFAULT_EPSILON, invert_3x3, solve
from src.rectification.types import Quad, TargetSize

logger = logging.getLogger(__name__)


def destination_corners(target: TargetSize) -> np.ndarray:
    """Target rectangle corners in TL, TR, BR, BL order, shape (4, 2)."""
    w, h = target.width, target.height
    return np.array(
        [
            [0, 0],  # Top-Left
            [w - 1, 0],  # Top-Right
            [w - 1, h - 1],  # Bottom-Right
            [0, h - 1],  # Bottom-Left
        ],
        dtype=np.float64,
    )


def build_dlt_system(src: np.ndarray, dst: np.ndarray) -> np.ndarray:
    """
    Build the 8x9 augmented DLT system for 4 correspondences.

    For each correspondence (x, y) -> (u, v):
        x*h11 + y*h12 + h13 - u*x*h31 - u*y*h32 = u
        x*h21 + y*h22 + h23 - v*x*h31 - v*y*h32 = v
    """
    src = np.asarray(src, dtype=np.float64)
    dst = np.asarray(dst, dtype=np.float64)
    if src.shape != (4, 2) or dst.shape != (4, 2):
        raise ValueError(
            f"Expected 4 source and 4 destination points, got {src.shape} and {dst.shape}"
        )

    rows = []
    for (x, y), (u, v) in zip(src, dst):
        rows.append([x, y, 1, 0, 0, 0, -u * x, -u * y, u])
        rows.append([0, 0, 0, x, y, 1, -v * x, -v * y, v])
    return np.array(rows, dtype=np.float64)


def estimate_from_correspondences(
    src: np.ndarray, dst: np.ndarray, epsilon: float = DEFAULT_EPSILON
) -> np.ndarray:
    """
    Solve for the homography mapping 4 source points onto 4 destination points.

    Raises:
        SingularMatrixError: If the correspondences are degenerate.
    """
    h8 = solve(build_dlt_system(src, dst), epsilon=epsilon)
    return np.append(h8, 1.0).reshape(3, 3)


def estimate_homography(
    quad: Quad, target: TargetSize, epsilon: float = DEFAULT_EPSILON
) -> np.ndarray:
    """
    Estimate the homography mapping the quad onto the target rectangle.

    Args:
        quad: Validated quad in TL, TR, BR, BL order.
        target: Output raster size.
        epsilon: Singularity threshold for the linear solve.

    Returns:
        3x3 homography H with H[2, 2] == 1.

    Raises:
        SingularMatrixError: If the DLT system has no stable solution.
    """
    try:
        H = estimate_from_correspondences(
            quad.as_array(), destination_corners(target), epsilon=epsilon
        )
    except SingularMatrixError:
        logger.warning(
            f"DLT system is singular for quad {quad.to_list()} -> "
            f"{target.width}x{target.height}"
        )
        raise

    logger.debug(f"Estimated homography:\n{H}")
    return H


def normalize_homography(H: np.ndarray, epsilon: float = DEFAULT_EPSILON) -> np.ndarray:
    """
    Divide a homography through by its h33 coefficient.

    Raises:
        SingularMatrixError: If |h33| < epsilon.
    """
    H = np.asarray(H, dtype=np.float64)
    if H.shape != (3, 3):
        raise ValueError(f"Expected a 3x3 homography, got shape {H.shape}")
    if abs(H[2, 2]) < epsilon:
        raise SingularMatrixError(f"Cannot normalize homography with h33={H[2, 2]:.3e}")
    return H / H[2, 2]


def homography_from_list(values: Union[Iterable[float], np.ndarray]) -> np.ndarray:
    """
    Build a normalized 3x3 homography from 9 row-major or nested 3x3 values.

    Useful for homographies read back after transmission and rounding.
    """
    arr = np.asarray(values, dtype=np.float64)
    if arr.size != 9:
        raise ValueError(f"Expected 9 homography coefficients, got {arr.size}")
    return normalize_homography(arr.reshape(3, 3))


def invert_homography(H: np.ndarray, epsilon: float = DEFAULT_EPSILON) -> np.ndarray:
    """
    Normalize and invert a homography.

    Raises:
        SingularMatrixError: If H is not invertible.
    """
    return invert_3x3(normalize_homography(H, epsilon), epsilon=epsilon)


def project_points(H: np.ndarray, points: Union[np.ndarray, list]) -> np.ndarray:
    """
    Map points through a homography.

    Args:
        H: 3x3 homography.
        points: Array-like of shape (N, 2).

    Returns:
        Mapped points of shape (N, 2). Points mapped to infinity come back
        as inf/nan.
    """
    pts = np.asarray(points, dtype=np.float64)
    if pts.ndim != 2 or pts.shape[1] != 2:
        raise ValueError(f"Expected an array of shape (N, 2), got {pts.shape}")

    hom = np.hstack([pts, np.ones((pts.shape[0], 1), dtype=np.float64)])
    mapped = hom @ np.asarray(H, dtype=np.float64).T
    with np.errstate(divide="ignore", invalid="ignore"):
        return mapped[:, :2] / mapped[:, 2:3]
