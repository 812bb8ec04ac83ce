"""
Output raster sizing for the rectified drawer image.

The target size comes from the drawer's physical dimensions when known, or
from the quad's own edge lengths otherwise. Either way the total pixel count
is capped by a pixel budget with a uniform, aspect-preserving scale.
"""

import logging
import math
from typing import Dict, Optional

from src.rectification.quad_validator import calculate_edge_lengths
from src.rectification.types import PhysicalDimensions, Quad, TargetSize

logger = logging.getLogger(__name__)

DEFAULT_RESOLUTION_PX_PER_MM = 15.0
DEFAULT_MAX_DIMENSION_PX = 1200
DEFAULT_MIN_SIDE_PX = 40
DEFAULT_PIXEL_BUDGET = 16_000_000


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def estimate_size_from_quad(
    quad: Quad,
    max_dimension_px: int = DEFAULT_MAX_DIMENSION_PX,
    min_side_px: int = DEFAULT_MIN_SIDE_PX,
) -> TargetSize:
    """
    Estimate output size from the quad geometry alone.

    Width is the mean of the top and bottom edges, height the mean of the
    left and right edges. If the larger exceeds max_dimension_px both are
    scaled down uniformly.
    """
    if max_dimension_px < 1:
        raise ValueError(f"max_dimension_px must be at least 1, got {max_dimension_px}")

    top, right, bottom, left = calculate_edge_lengths(quad.as_array())
    est_width = (top + bottom) / 2.0
    est_height = (left + right) / 2.0

    longest = max(est_width, est_height)
    scale = max_dimension_px / longest if longest > max_dimension_px else 1.0

    width = max(min_side_px, _round_half_up(est_width * scale))
    height = max(min_side_px, _round_half_up(est_height * scale))

    logger.debug(
        f"Estimated size {est_width:.1f}x{est_height:.1f}px, scale={scale:.4f} "
        f"-> {width}x{height}px"
    )
    return TargetSize(width=width, height=height)


def apply_pixel_budget(target: TargetSize, pixel_budget: int) -> TargetSize:
    """
    Scale a target size down uniformly so that width * height <= pixel_budget.

    The scale factor is sqrt(pixel_budget / area). Rounded sides are used
    unless rounding up would overshoot the budget, in which case the scaled
    sides are floored.
    """
    if pixel_budget < 1:
        raise ValueError(f"pixel_budget must be at least 1, got {pixel_budget}")

    if target.area <= pixel_budget:
        return target

    scale = math.sqrt(pixel_budget / target.area)
    width = max(1, _round_half_up(target.width * scale))
    height = max(1, _round_half_up(target.height * scale))

    if width * height > pixel_budget:
        width = max(1, math.floor(target.width * scale))
        height = max(1, math.floor(target.height * scale))

    # A side clamped up to 1px leaves the other side to absorb the budget
    if width * height > pixel_budget:
        width = max(1, pixel_budget // height)
        height = max(1, pixel_budget // width)

    logger.info(
        f"Target {target.width}x{target.height} exceeds budget of {pixel_budget} px; "
        f"scaled by {scale:.4f} to {width}x{height}"
    )
    return TargetSize(width=width, height=height)


def compute_target_size(
    quad: Quad,
    physical: Optional[PhysicalDimensions] = None,
    resolution_px_per_mm: float = DEFAULT_RESOLUTION_PX_PER_MM,
    max_dimension_px: int = DEFAULT_MAX_DIMENSION_PX,
    pixel_budget: int = DEFAULT_PIXEL_BUDGET,
    min_side_px: int = DEFAULT_MIN_SIDE_PX,
) -> TargetSize:
    """
    Compute the output raster size.

    Args:
        quad: Validated quad in TL, TR, BR, BL order.
        physical: Known drawer size in millimetres, or None.
        resolution_px_per_mm: Output scale when physical dims are known.
        max_dimension_px: Longest side when estimating from the quad.
        pixel_budget: Upper bound on width * height.
        min_side_px: Smallest side when estimating from the quad.

    Returns:
        TargetSize with width * height <= pixel_budget.

    Example:
        >>> compute_target_size(quad, PhysicalDimensions(210, 297), 15.0)
        TargetSize(width=3150, height=4455)
    """
    if resolution_px_per_mm <= 0:
        raise ValueError(
            f"resolution_px_per_mm must be positive, got {resolution_px_per_mm}"
        )

    if physical is not None:
        target = TargetSize(
            width=max(1, _round_half_up(physical.width_mm * resolution_px_per_mm)),
            height=max(1, _round_half_up(physical.length_mm * resolution_px_per_mm)),
        )
        logger.debug(
            f"Physical size {physical.width_mm}x{physical.length_mm}mm at "
            f"{resolution_px_per_mm}px/mm -> {target.width}x{target.height}px"
        )
    else:
        target = estimate_size_from_quad(quad, max_dimension_px, min_side_px)

    return apply_pixel_budget(target, pixel_budget)


def px_per_mm_after_rect(
    target: TargetSize, physical: Optional[PhysicalDimensions]
) -> Optional[Dict[str, float]]:
    """Effective output scale per axis, or None without physical dims."""
    if physical is None:
        return None
    return {
        "x": target.width / physical.width_mm,
        "y": target.height / physical.length_mm,
    }
