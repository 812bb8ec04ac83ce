"""
Drawer Photo Rectification Engine

Turns an angled photo of a drawer into a flat, metrically scaled underlay
image by mapping a user-adjusted quadrilateral onto an upright rectangle.

Pipeline stages:
1. Quad validation (bounds, distinctness, ordering, convexity, area)
2. Target sizing (physical scale or quad geometry, pixel budget)
3. Homography estimation (DLT) and inversion
4. Perspective warp (inverse mapping + bilinear sampling)
5. Quality assessment (fit error + perspective strength)
"""

from src.rectification.config_loader import get_default_config, load_config
from src.rectification.errors import (
    QuadValidationError,
    RectificationError,
    ResourceError,
    SingularMatrixError,
    ValidationCheck,
)
from src.rectification.homography import estimate_homography, invert_homography
from src.rectification.image_warper import warp_image
from src.rectification.processor import RectificationProcessor, rectify_drawer
from src.rectification.quad_validator import validate_quad
from src.rectification.target_size import compute_target_size
from src.rectification.types import (
    CompanionMetadata,
    PerspectiveStrength,
    PhysicalDimensions,
    QualityMetrics,
    Quad,
    RectificationResult,
    TargetSize,
)

__all__ = [
    "RectificationProcessor",
    "rectify_drawer",
    "load_config",
    "get_default_config",
    "validate_quad",
    "compute_target_size",
    "estimate_homography",
    "invert_homography",
    "warp_image",
    "RectificationError",
    "QuadValidationError",
    "SingularMatrixError",
    "ResourceError",
    "ValidationCheck",
    "CompanionMetadata",
    "PerspectiveStrength",
    "PhysicalDimensions",
    "QualityMetrics",
    "Quad",
    "RectificationResult",
    "TargetSize",
]
