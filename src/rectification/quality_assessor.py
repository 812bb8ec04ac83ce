"""
Quality assessment for an estimated homography.

Evaluates:
1. Reprojection (fit) error of the defining corner correspondences
2. Perspective strength from the projective terms h31, h32
"""

import logging
from typing import Sequence

import numpy as np

from src.rectification.homography import (
    destination_corners,
    normalize_homography,
    project_points,
)
from src.rectification.types import PerspectiveStrength, QualityMetrics, Quad, TargetSize

logger = logging.getLogger(__name__)

DEFAULT_STRENGTH_THRESHOLDS = (1e-5, 5e-5, 2e-4, 8e-4)

_LABELS = (
    PerspectiveStrength.NONE,
    PerspectiveStrength.VERY_WEAK,
    PerspectiveStrength.WEAK,
    PerspectiveStrength.MODERATE,
)


def reprojection_error(H: np.ndarray, quad: Quad, target: TargetSize) -> float:
    """
    Mean Euclidean distance between forward-mapped quad corners and the
    target rectangle corners.

    Should be ~0 for a correctly solved, non-degenerate system.

    Example:
        >>> error = reprojection_error(H, quad, TargetSize(100, 100))
        >>> print(f"Fit error: {error:.2e}px")
        Fit error: 3.18e-14px
    """
    mapped = project_points(H, quad.as_array())
    residuals = np.linalg.norm(mapped - destination_corners(target), axis=1)
    error = float(np.mean(residuals))

    if not np.isfinite(error):
        logger.warning("A quad corner maps to infinity; fit error is unbounded")
        return float("inf")

    logger.debug(f"Per-corner residuals: {residuals}")
    return error


def projective_strength(H: np.ndarray) -> float:
    """Magnitude sqrt(h31^2 + h32^2) of the normalized projective terms."""
    Hn = normalize_homography(H)
    return float(np.hypot(Hn[2, 0], Hn[2, 1]))


def classify_strength(
    magnitude: float, thresholds: Sequence[float] = DEFAULT_STRENGTH_THRESHOLDS
) -> PerspectiveStrength:
    """
    Bin a projective-strength magnitude into a qualitative label.

    Each threshold is the exclusive upper bound of none, very weak, weak and
    moderate respectively; anything above the last is strong.
    """
    for label, upper in zip(_LABELS, thresholds):
        if magnitude < upper:
            return label
    return PerspectiveStrength.STRONG


def assess(
    H: np.ndarray,
    quad: Quad,
    target: TargetSize,
    thresholds: Sequence[float] = DEFAULT_STRENGTH_THRESHOLDS,
) -> QualityMetrics:
    """
    Compute fit error and perspective strength for a homography.

    Args:
        H: Homography mapping the quad onto the target.
        quad: Validated quad the homography was estimated from.
        target: Output raster size.
        thresholds: Strength label thresholds.

    Returns:
        QualityMetrics with fit_error_px, projective_strength and label.
    """
    fit_error = reprojection_error(H, quad, target)
    magnitude = projective_strength(H)
    label = classify_strength(magnitude, thresholds)

    logger.info(
        f"Quality: fit_error={fit_error:.2e}px, "
        f"perspective={label.value} (|h31,h32|={magnitude:.2e})"
    )

    return QualityMetrics(
        fit_error_px=fit_error,
        projective_strength=magnitude,
        strength_label=label,
    )
