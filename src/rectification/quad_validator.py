"""
Geometric validation of the user-adjusted drawer quadrilateral.

Validates and canonicalizes the 4 corner points before any numerical work:
1. Bounds (inside the source raster)
2. Distinctness (at integer pixel precision)
3. Canonical ordering (TL, TR, BR, BL)
4. Convexity (consistent turn direction)
5. Minimum area (shoelace formula)
"""

import logging
from typing import Iterable, List, Sequence, Tuple, Union

import numpy as np

from src.common.types import Point
from src.rectification.errors import QuadValidationError, ValidationCheck
from src.rectification.types import Quad

logger = logging.getLogger(__name__)

DEFAULT_MIN_AREA = 25.0


def _as_points(points: Union[np.ndarray, Iterable]) -> List[Point]:
    if isinstance(points, np.ndarray):
        points = list(points)
    try:
        return [Point.from_any(p) for p in points]
    except (TypeError, ValueError, KeyError) as e:
        raise QuadValidationError(
            ValidationCheck.POINT_COUNT, f"Could not read corner points: {e}"
        ) from e


def calculate_edge_lengths(
    keypoints: Union[np.ndarray, list],
) -> Tuple[float, float, float, float]:
    """
    Calculate the length of all 4 edges of a quadrilateral.

    Args:
        keypoints: 4 corner points in order [TL, TR, BR, BL].
                  Shape (4, 2) where each point is [x, y].

    Returns:
        Tuple of (top_edge, right_edge, bottom_edge, left_edge) lengths.

    Example:
        >>> points = np.array([[100, 100], [400, 100], [400, 200], [100, 200]])
        >>> top, right, bottom, left = calculate_edge_lengths(points)
        >>> print(f"Width: {top:.0f}, Height: {right:.0f}")
        Width: 300, Height: 100
    """
    keypoints = np.array(keypoints, dtype=np.float64)

    if keypoints.shape != (4, 2):
        raise ValueError(
            f"Expected 4 keypoints with shape (4, 2), got {keypoints.shape}"
        )

    tl, tr, br, bl = keypoints

    top_edge = float(np.linalg.norm(tr - tl))
    right_edge = float(np.linalg.norm(br - tr))
    bottom_edge = float(np.linalg.norm(bl - br))
    left_edge = float(np.linalg.norm(tl - bl))

    logger.debug(
        f"Edge lengths - Top: {top_edge:.1f}, Right: {right_edge:.1f}, "
        f"Bottom: {bottom_edge:.1f}, Left: {left_edge:.1f}"
    )

    return top_edge, right_edge, bottom_edge, left_edge


def order_points(points: Sequence[Point]) -> List[Point]:
    """
    Order 4 points as Top-Left, Top-Right, Bottom-Right, Bottom-Left.

    Points are sorted by y then x. The two upper points are sorted ascending
    by x (TL, TR); the two lower points are sorted descending by x (BR, BL).
    This suits roughly upright quads. A strongly rotated convex quad whose two
    lowest points both lie past one side can come out crossed; pass labeled
    corners with preserve_order=True for those.

    Example:
        >>> pts = [Point(x=300, y=150), Point(x=100, y=200),
        ...        Point(x=320, y=400), Point(x=80, y=380)]
        >>> [p.to_tuple() for p in order_points(pts)]
        [(100.0, 200.0), (300.0, 150.0), (320.0, 400.0), (80.0, 380.0)]
    """
    if len(points) != 4:
        raise ValueError(f"Expected exactly 4 points, got {len(points)}")

    by_y = sorted(points, key=lambda p: (p.y, p.x))
    top = sorted(by_y[:2], key=lambda p: p.x)
    bottom = sorted(by_y[2:], key=lambda p: p.x, reverse=True)

    ordered = [top[0], top[1], bottom[0], bottom[1]]
    logger.debug(
        f"Ordered points: TL={ordered[0]}, TR={ordered[1]}, "
        f"BR={ordered[2]}, BL={ordered[3]}"
    )
    return ordered


def cross_products(points: Sequence[Point]) -> List[float]:
    """
    2D cross product of consecutive edges at each vertex.

    For each vertex i: (P[i+1] - P[i]) x (P[i+2] - P[i+1]), wrapping around.
    """
    pts = np.array([p.to_tuple() for p in points], dtype=np.float64)
    edges = np.roll(pts, -1, axis=0) - pts
    next_edges = np.roll(edges, -1, axis=0)
    cross = edges[:, 0] * next_edges[:, 1] - edges[:, 1] * next_edges[:, 0]
    return [float(c) for c in cross]


def is_convex(points: Sequence[Point]) -> bool:
    """
    Check if 4 ordered points form a convex, non-self-intersecting quad.

    All cross products must be strictly positive or strictly negative. Mixed
    signs indicate concavity or self-intersection; zeros indicate collinear
    vertices.
    """
    cross = cross_products(points)
    return all(c > 0 for c in cross) or all(c < 0 for c in cross)


def orientation(points: Sequence[Point]) -> str:
    """
    Winding of a convex quad in image coordinates (y grows downward).

    Returns:
        "clockwise" or "counter-clockwise" as seen on screen.
    """
    return "clockwise" if sum(cross_products(points)) > 0 else "counter-clockwise"


def shoelace_area(points: Sequence[Point]) -> float:
    """Polygon area of the ordered points."""
    pts = np.array([p.to_tuple() for p in points], dtype=np.float64)
    x, y = pts[:, 0], pts[:, 1]
    return float(abs(np.dot(x, np.roll(y, -1)) - np.dot(np.roll(x, -1), y)) / 2.0)


def validate_quad(
    points: Union[np.ndarray, Iterable],
    bounds: Tuple[int, int],
    min_area: float = DEFAULT_MIN_AREA,
    preserve_order: bool = False,
) -> Quad:
    """
    Validate 4 corner points and return them as a canonically ordered Quad.

    This is the first gate of the rectification pipeline. It fails fast on
    the first check that does not hold.

    Args:
        points: 4 corner points in source pixel space, any order.
                List of [x, y], (4, 2) array, Points or {x, y} mappings.
        bounds: (width, height) of the source raster.
        min_area: Minimum shoelace area in square pixels.
        preserve_order: Treat the input as already labeled TL, TR, BR, BL and
                        skip canonical ordering.

    Returns:
        Validated Quad in TL, TR, BR, BL order.

    Raises:
        QuadValidationError: Naming the first failed check.

    Example:
        >>> quad = validate_quad([[10, 10], [90, 12], [95, 80], [5, 85]], (100, 100))
        >>> quad.top_left
        Point(x=10, y=10)
    """
    pts = _as_points(points)
    width, height = bounds

    if len(pts) != 4:
        raise QuadValidationError(
            ValidationCheck.POINT_COUNT, f"Need 4 points, got {len(pts)}"
        )

    for p in pts:
        if not (0 <= p.x <= width and 0 <= p.y <= height):
            logger.warning(f"Point {p} outside source bounds {width}x{height}")
            raise QuadValidationError(
                ValidationCheck.BOUNDS,
                f"Point {p} is outside [0, {width}] x [0, {height}]",
            )

    rounded = {
        (int(np.floor(p.x + 0.5)), int(np.floor(p.y + 0.5))) for p in pts
    }
    if len(rounded) < 4:
        logger.warning(f"Corner points are not distinct: {pts}")
        raise QuadValidationError(
            ValidationCheck.DISTINCT, "Two or more points share the same pixel"
        )

    ordered = pts if preserve_order else order_points(pts)

    if not is_convex(ordered):
        logger.warning(
            f"Non-convex quadrilateral detected. Cross products: {cross_products(ordered)}"
        )
        raise QuadValidationError(
            ValidationCheck.CONVEXITY, "Non-convex or self-intersecting quad"
        )

    area = shoelace_area(ordered)
    if area < min_area:
        logger.warning(f"Quad area {area:.1f}px^2 below minimum {min_area}px^2")
        raise QuadValidationError(
            ValidationCheck.AREA,
            f"Quad area {area:.1f}px^2 is below the minimum {min_area}px^2",
        )

    logger.info(
        f"Quad is valid: area={area:.1f}px^2, orientation={orientation(ordered)}"
    )
    return Quad.from_points(ordered)
