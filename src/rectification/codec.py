"""
Image decoding and encoding for the rectification engine.

Source photos arrive as encoded bytes; the rectified raster leaves as JPEG
bytes (and optionally a base64 data URL) for storage or transport.
"""

import base64
import logging
from pathlib import Path
from typing import Union

import cv2
import numpy as np

from src.rectification.errors import ResourceError
from src.utils.io import read_bytes

logger = logging.getLogger(__name__)

DEFAULT_JPEG_QUALITY = 92


def decode_image(data: bytes) -> np.ndarray:
    """
    Decode an encoded image (JPEG, PNG, ...) into a uint8 BGR or BGRA raster.

    Alpha is preserved when present. Images without alpha are decoded in
    color mode, which also applies the EXIF orientation tag.

    Raises:
        ResourceError: If data is empty or cannot be decoded.
    """
    if not data:
        raise ResourceError("Cannot decode image: no data")

    buffer = np.frombuffer(data, dtype=np.uint8)
    image = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED)
    if image is None:
        raise ResourceError(f"Cannot decode image ({len(data)} bytes)")

    if image.ndim == 3 and image.shape[2] == 4:
        if image.dtype != np.uint8:
            image = cv2.convertScaleAbs(image, alpha=255.0 / np.iinfo(image.dtype).max)
    else:
        image = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
        if image is None:
            raise ResourceError(f"Cannot decode image ({len(data)} bytes)")

    logger.debug(f"Decoded {len(data)} bytes to {image.shape} {image.dtype}")
    return image


def load_image(path: Union[str, Path]) -> np.ndarray:
    """
    Read and decode an image file.

    Raises:
        ResourceError: If the file is missing, unreadable or not an image.
    """
    path = Path(path)
    try:
        data = read_bytes(path)
    except OSError as e:
        raise ResourceError(f"Cannot read image file {path}: {e}") from e
    return decode_image(data)


def encode_jpeg(image: np.ndarray, quality: int = DEFAULT_JPEG_QUALITY) -> bytes:
    """
    Encode a raster as JPEG. Alpha is dropped.

    Raises:
        ResourceError: If the encoder fails.
    """
    if image is None or image.size == 0:
        raise ResourceError("Cannot encode image: image is None or empty")

    if image.ndim == 3 and image.shape[2] == 4:
        image = cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)

    ok, buf = cv2.imencode(".jpg", image, [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)])
    if not ok:
        raise ResourceError(f"JPEG encoding failed for image of shape {image.shape}")

    return buf.tobytes()


def to_data_url(encoded: bytes, mime: str = "image/jpeg") -> str:
    """Wrap encoded image bytes in a base64 data URL."""
    return f"data:{mime};base64,{base64.b64encode(encoded).decode('ascii')}"
