"""
Exception types for the Rectification module.

Every error is terminal for a single rectification call. Callers may adjust
their inputs (e.g. reshape the quad) and call again.
"""

from enum import Enum


class ValidationCheck(Enum):
    """Quad validation checks, in the order they are applied."""

    POINT_COUNT = "point_count"  # Need exactly 4 points
    BOUNDS = "bounds"  # Point outside the source raster
    DISTINCT = "distinct"  # Two points share an integer pixel
    CONVEXITY = "convexity"  # Concave, self-intersecting or collinear
    AREA = "area"  # Shoelace area below threshold


class RectificationError(Exception):
    """Base class for all rectification failures."""


class QuadValidationError(RectificationError, ValueError):
    """
    Raised when the corner quadrilateral is rejected.

    Attributes:
        check: The first validation check that failed.
    """

    def __init__(self, check: ValidationCheck, message: str):
        super().__init__(f"Invalid quad ({check.value}): {message}")
        self.check = check


class SingularMatrixError(RectificationError, ArithmeticError):
    """Raised when a linear system or 3x3 inversion has no stable solution."""


class ResourceError(RectificationError):
    """Raised when an image cannot be read, decoded or encoded."""
