"""
Inverse-mapped perspective warping with bilinear sampling.

Every destination pixel is mapped back into the source through H^-1 and
sampled from its 4 nearest source pixels. Rows are independent, so the
destination is split into disjoint row bands that are filled in parallel by
a thread pool; each band writes only its own slice of the output buffer.
"""

import logging
import math
import os
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Tuple

import numpy as np

from src.rectification.types import TargetSize

logger = logging.getLogger(__name__)

DEFAULT_MIN_ROWS_PER_BAND = 32

# Rows sampled per vectorized step; bounds temporary memory per worker
_CHUNK_ROWS = 64


def _row_bands(height: int, workers: int, min_rows: int) -> List[Tuple[int, int]]:
    """Split [0, height) into at most `workers` contiguous bands."""
    band_count = max(1, min(workers, math.ceil(height / min_rows)))
    rows_per_band = math.ceil(height / band_count)
    return [
        (start, min(start + rows_per_band, height))
        for start in range(0, height, rows_per_band)
    ]


def _warp_band(
    source: np.ndarray,
    h_inv: np.ndarray,
    out: np.ndarray,
    row_start: int,
    row_end: int,
) -> None:
    """Fill out[row_start:row_end] chunk by chunk."""
    for start in range(row_start, row_end, _CHUNK_ROWS):
        _warp_rows(source, h_inv, out, start, min(start + _CHUNK_ROWS, row_end))


def _warp_rows(
    source: np.ndarray,
    h_inv: np.ndarray,
    out: np.ndarray,
    row_start: int,
    row_end: int,
) -> None:
    """Fill out[row_start:row_end] by bilinear sampling of the source."""
    src_h, src_w = source.shape[:2]
    width = out.shape[1]

    xs, ys = np.meshgrid(
        np.arange(width, dtype=np.float64),
        np.arange(row_start, row_end, dtype=np.float64),
    )

    with np.errstate(divide="ignore", invalid="ignore"):
        denom = h_inv[2, 0] * xs + h_inv[2, 1] * ys + h_inv[2, 2]
        u = (h_inv[0, 0] * xs + h_inv[0, 1] * ys + h_inv[0, 2]) / denom
        v = (h_inv[1, 0] * xs + h_inv[1, 1] * ys + h_inv[1, 2]) / denom

    # Samples must have a full 2x2 neighbourhood: [0, W-1) x [0, H-1)
    valid = (
        np.isfinite(u)
        & np.isfinite(v)
        & (u >= 0)
        & (v >= 0)
        & (u < src_w - 1)
        & (v < src_h - 1)
    )
    if not valid.any():
        return

    u = u[valid]
    v = v[valid]
    x0 = np.floor(u).astype(np.intp)
    y0 = np.floor(v).astype(np.intp)
    fx = (u - x0)[:, None]
    fy = (v - y0)[:, None]

    p00 = source[y0, x0].astype(np.float64)
    p10 = source[y0, x0 + 1].astype(np.float64)
    p01 = source[y0 + 1, x0].astype(np.float64)
    p11 = source[y0 + 1, x0 + 1].astype(np.float64)

    sampled = (
        p00 * (1 - fx) * (1 - fy)
        + p10 * fx * (1 - fy)
        + p01 * (1 - fx) * fy
        + p11 * fx * fy
    )

    band = out[row_start:row_end]
    band[valid] = np.clip(np.rint(sampled), 0, 255).astype(out.dtype)


def warp_image(
    source: np.ndarray,
    h_inv: np.ndarray,
    target: TargetSize,
    workers: Optional[int] = None,
    min_rows_per_band: int = DEFAULT_MIN_ROWS_PER_BAND,
) -> np.ndarray:
    """
    Resample the source raster onto the target rectangle.

    Args:
        source: Source raster, (H, W) or (H, W, C) uint8. All channels
                (alpha included) are interpolated.
        h_inv: 3x3 inverse homography mapping target pixels to source pixels.
        target: Output raster size.
        workers: Thread pool size. None uses the CPU count.
        min_rows_per_band: Smallest row band handed to one worker.

    Returns:
        Raster of shape (target.height, target.width[, C]) with the source
        dtype. Pixels whose source position falls outside the sampleable
        area are left as zeros.

    Example:
        >>> H_inv = invert_homography(H)
        >>> rectified = warp_image(image, H_inv, TargetSize(3150, 4455))
    """
    if source is None or source.size == 0:
        raise ValueError("Invalid source image: image is None or empty")
    if source.ndim not in (2, 3):
        raise ValueError(f"Expected 2D or 3D source image, got shape {source.shape}")

    h_inv = np.asarray(h_inv, dtype=np.float64)
    if h_inv.shape != (3, 3):
        raise ValueError(f"Expected a 3x3 inverse homography, got shape {h_inv.shape}")

    squeeze = source.ndim == 2
    src = source[:, :, None] if squeeze else source

    out = np.zeros((target.height, target.width, src.shape[2]), dtype=src.dtype)

    workers = workers or os.cpu_count() or 1
    bands = _row_bands(target.height, workers, min_rows_per_band)

    if len(bands) == 1:
        _warp_band(src, h_inv, out, 0, target.height)
    else:
        with ThreadPoolExecutor(max_workers=len(bands)) as executor:
            futures = [
                executor.submit(_warp_band, src, h_inv, out, start, end)
                for start, end in bands
            ]
            for future in futures:
                future.result()

    logger.info(
        f"Warped {source.shape[1]}x{source.shape[0]} source to "
        f"{target.width}x{target.height} using {len(bands)} band(s)"
    )

    return out[:, :, 0] if squeeze else out
