"""
Main processor for the Rectification module.

Orchestrates the complete pipeline:
1. Quad validation (bounds, distinctness, ordering, convexity, area)
2. Target sizing (physical scale or quad geometry, pixel budget)
3. Homography estimation (DLT) and inversion
4. Perspective warp (bilinear, parallel row bands)
5. Quality assessment (fit error, perspective strength)
6. JPEG encoding

Implements fail-fast strategy: stops at the first error and propagates it.
"""

import logging
from pathlib import Path
from typing import Optional, Tuple, Union

import numpy as np
from pydantic import ValidationError as PydanticValidationError

from src.common.types import ImageBuffer
from src.rectification.codec import decode_image, encode_jpeg
from src.rectification.config_loader import (
    RectificationConfig,
    get_default_config,
    load_config,
)
from src.rectification.errors import ResourceError
from src.rectification.homography import estimate_homography, invert_homography
from src.rectification.image_warper import warp_image
from src.rectification.quad_validator import validate_quad
from src.rectification.quality_assessor import assess
from src.rectification.target_size import compute_target_size, px_per_mm_after_rect
from src.rectification.types import (
    CompanionMetadata,
    PhysicalDimensions,
    RectificationResult,
)

logger = logging.getLogger(__name__)


def _as_image(image: Union[np.ndarray, bytes, bytearray]) -> ImageBuffer:
    if isinstance(image, (bytes, bytearray, memoryview)):
        image = decode_image(bytes(image))
    try:
        return ImageBuffer(data=image)
    except PydanticValidationError as e:
        raise ResourceError(f"Unusable source raster: {e}") from e


class RectificationProcessor:
    """
    Main processor for drawer photo rectification.

    Each call is a pure function of its inputs: it builds and returns a fresh
    RectificationResult and keeps no per-call state, so one processor can be
    shared by concurrent callers.

    Example:
        >>> processor = RectificationProcessor()
        >>> image = cv2.imread("drawer.jpg")
        >>> corners = [[412, 300], [3580, 355], [3820, 2810], [190, 2760]]
        >>> result = processor.process(image, corners, PhysicalDimensions(210, 297))
        >>> Path("underlay.jpg").write_bytes(result.encoded_image)
    """

    def __init__(
        self,
        config: Optional[RectificationConfig] = None,
        config_path: Optional[Path] = None,
    ):
        """
        Initialize the rectification processor.

        Args:
            config: Pre-loaded configuration object. If None, will load from file.
            config_path: Path to config file. If None, uses default location.
        """
        if config is not None:
            self.config = config
            logger.info("Using provided configuration")
        else:
            self.config = load_config(config_path) if config_path else get_default_config()
            logger.info("Loaded configuration from file")

    def process(
        self,
        image: Union[np.ndarray, bytes],
        corners,
        physical: Optional[PhysicalDimensions] = None,
        *,
        resolution_px_per_mm: Optional[float] = None,
        max_dimension_px: Optional[int] = None,
        pixel_budget: Optional[int] = None,
        exif: Optional[CompanionMetadata] = None,
        orig_size_px: Optional[Tuple[int, int]] = None,
        preserve_order: bool = False,
    ) -> RectificationResult:
        """
        Execute the complete rectification pipeline.

        Args:
            image: Decoded source raster or encoded image bytes.
            corners: 4 corner points of the drawer in source pixels, any order.
            physical: Known drawer size in millimetres, or None.
            resolution_px_per_mm: Overrides sizing.resolution_px_per_mm.
            max_dimension_px: Overrides sizing.max_dimension_px.
            pixel_budget: Overrides sizing.pixel_budget.
            exif: Camera metadata passed through to the result.
            orig_size_px: Size of the untouched original; defaults to the
                          source raster size.
            preserve_order: Corners are already labeled TL, TR, BR, BL.

        Returns:
            RectificationResult with rectified raster, JPEG bytes and metrics.

        Raises:
            ResourceError: If the source cannot be decoded or the output encoded.
            QuadValidationError: If the corners are rejected.
            SingularMatrixError: If the homography cannot be estimated or inverted.
        """
        sizing = self.config.sizing
        epsilon = self.config.solver.epsilon

        logger.info("=" * 60)
        logger.info("Starting Rectification Pipeline")
        logger.info("=" * 60)

        source = _as_image(image)
        logger.info(
            f"Source raster: {source.width}x{source.height}, {source.channels} channel(s)"
        )

        # Stage 1: Quad Validation
        logger.info("[Stage 1/6] Quad Validation")
        quad = validate_quad(
            corners,
            source.size,
            min_area=self.config.validation.min_area_px2,
            preserve_order=preserve_order,
        )

        # Stage 2: Target Sizing
        logger.info("[Stage 2/6] Target Sizing")
        target = compute_target_size(
            quad,
            physical,
            resolution_px_per_mm=(
                resolution_px_per_mm
                if resolution_px_per_mm is not None
                else sizing.resolution_px_per_mm
            ),
            max_dimension_px=(
                max_dimension_px if max_dimension_px is not None else sizing.max_dimension_px
            ),
            pixel_budget=pixel_budget if pixel_budget is not None else sizing.pixel_budget,
            min_side_px=sizing.min_side_px,
        )
        logger.info(f"Target size: {target.width}x{target.height}")

        # Stage 3: Homography Estimation
        logger.info("[Stage 3/6] Homography Estimation")
        H = estimate_homography(quad, target, epsilon=epsilon)
        H_inv = invert_homography(H, epsilon=epsilon)

        # Stage 4: Perspective Warp
        logger.info("[Stage 4/6] Perspective Warp")
        rectified = warp_image(
            source.to_numpy(),
            H_inv,
            target,
            workers=self.config.warp.workers,
            min_rows_per_band=self.config.warp.min_rows_per_band,
        )

        # Stage 5: Quality Assessment
        logger.info("[Stage 5/6] Quality Assessment")
        metrics = assess(H, quad, target, self.config.quality.strength_thresholds)

        # Stage 6: Encoding
        logger.info("[Stage 6/6] JPEG Encoding")
        encoded = encode_jpeg(rectified, quality=self.config.output.jpeg_quality)
        logger.info(f"Encoded rectified image: {len(encoded)} bytes")

        logger.info("=" * 60)
        logger.info("Rectification complete")
        logger.info("=" * 60)

        return RectificationResult(
            rectified_image=rectified,
            encoded_image=encoded,
            homography=H,
            quad=quad,
            target_size=target,
            metrics=metrics,
            px_per_mm_after_rect=px_per_mm_after_rect(target, physical),
            orig_size_px=tuple(orig_size_px) if orig_size_px else source.size,
            exif=exif,
        )


def rectify_drawer(
    image: Union[np.ndarray, bytes],
    corners,
    physical: Optional[PhysicalDimensions] = None,
    config: Optional[RectificationConfig] = None,
    **kwargs,
) -> RectificationResult:
    """
    Convenience function for one-shot rectification.

    Args:
        image: Decoded source raster or encoded image bytes.
        corners: 4 corner points of the drawer in source pixels.
        physical: Known drawer size in millimetres, or None.
        config: Optional custom configuration. Uses default if None.
        **kwargs: Forwarded to RectificationProcessor.process.

    Example:
        >>> result = rectify_drawer(image_bytes, corners, PhysicalDimensions(210, 297))
        >>> print(result.to_dict()["target_size_px"])
        [3150, 4455]
    """
    processor = RectificationProcessor(config=config)
    return processor.process(image, corners, physical, **kwargs)
