"""
Data types and structures for the Rectification module.

Provides immutable containers for the quad, sizes, metrics and the final
rectification result.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import numpy as np

from src.common.types import Point


class PerspectiveStrength(Enum):
    """Qualitative amount of perspective distortion in the source photo."""

    NONE = "none"
    VERY_WEAK = "very weak"
    WEAK = "weak"
    MODERATE = "moderate"
    STRONG = "strong"


@dataclass(frozen=True)
class Quad:
    """
    Four corners in canonical order: TL, TR, BR, BL.

    The order is clockwise on screen (image y grows downward).
    """

    top_left: Point
    top_right: Point
    bottom_right: Point
    bottom_left: Point

    @classmethod
    def from_points(cls, points) -> "Quad":
        """Build a Quad from 4 points already in TL, TR, BR, BL order."""
        pts = [Point.from_any(p) for p in points]
        if len(pts) != 4:
            raise ValueError(f"Expected 4 points, got {len(pts)}")
        return cls(*pts)

    @property
    def points(self) -> Tuple[Point, Point, Point, Point]:
        return (self.top_left, self.top_right, self.bottom_right, self.bottom_left)

    def as_array(self) -> np.ndarray:
        """Corners as a (4, 2) float64 array."""
        return np.array([p.to_tuple() for p in self.points], dtype=np.float64)

    def to_list(self, decimals: int = 2) -> list:
        """Corners as [[x, y] x 4] rounded for transmission."""
        return [p.rounded(decimals) for p in self.points]


@dataclass(frozen=True)
class TargetSize:
    """Output raster size in pixels."""

    width: int
    height: int

    def __post_init__(self):
        if self.width < 1 or self.height < 1:
            raise ValueError(
                f"Target size must be at least 1x1, got {self.width}x{self.height}"
            )

    @property
    def area(self) -> int:
        return self.width * self.height

    def to_list(self) -> list:
        return [self.width, self.height]


@dataclass(frozen=True)
class PhysicalDimensions:
    """Known physical drawer size in millimetres."""

    width_mm: float
    length_mm: float

    def __post_init__(self):
        if not (self.width_mm > 0 and self.length_mm > 0):
            raise ValueError(
                f"Physical dimensions must be positive, got "
                f"{self.width_mm}x{self.length_mm} mm"
            )


@dataclass(frozen=True)
class CompanionMetadata:
    """EXIF-derived fields read by an external reader and passed through."""

    focal_length_mm: Optional[float] = None
    f_number: Optional[float] = None
    iso: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "focal_length_mm": self.focal_length_mm,
            "f_number": self.f_number,
            "iso": self.iso,
        }


@dataclass(frozen=True)
class QualityMetrics:
    """Quality measurements for an estimated homography."""

    fit_error_px: float  # Mean reprojection residual over the 4 corners
    projective_strength: float  # sqrt(h31^2 + h32^2) after h33 normalization
    strength_label: PerspectiveStrength


@dataclass(frozen=True)
class RectificationResult:
    """
    Output of a single rectification call.

    Attributes:
        rectified_image: Warped raster of exactly target_size.
        encoded_image: JPEG bytes of the rectified raster.
        homography: 3x3 matrix mapping source pixels onto the target.
        quad: Validated, canonically ordered corners.
        target_size: Output raster size.
        metrics: Fit error and perspective strength.
        px_per_mm_after_rect: Effective {x, y} scale (None without physical dims).
        orig_size_px: (width, height) of the untouched source.
        exif: Pass-through camera metadata.
    """

    rectified_image: np.ndarray
    encoded_image: bytes
    homography: np.ndarray
    quad: Quad
    target_size: TargetSize
    metrics: QualityMetrics
    px_per_mm_after_rect: Optional[Dict[str, float]] = None
    orig_size_px: Optional[Tuple[int, int]] = None
    exif: Optional[CompanionMetadata] = None

    @property
    def fit_error_px(self) -> float:
        return self.metrics.fit_error_px

    @property
    def projective_strength(self) -> float:
        return self.metrics.projective_strength

    def to_dict(self) -> Dict[str, Any]:
        """Serialized metadata for persistence or transmission."""
        return {
            "quad_px": self.quad.to_list(decimals=2),
            "target_size_px": self.target_size.to_list(),
            "homography": [round(float(v), 8) for v in self.homography.ravel()],
            "px_per_mm_after_rect": self.px_per_mm_after_rect,
            "fit_error_px": round(self.metrics.fit_error_px, 4),
            "projective_strength": self.metrics.projective_strength,
            "perspective": self.metrics.strength_label.value,
            "orig_size_px": list(self.orig_size_px) if self.orig_size_px else None,
            "exif": self.exif.to_dict() if self.exif else None,
        }
