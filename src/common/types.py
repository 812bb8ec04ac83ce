"""
Common type definitions shared by the rectification engine.

This module provides Pydantic-based type definitions for the two inputs every
rectification call starts from: the source raster and the corner points
outlining the drawer.

These types provide:
- Type validation and conversion
- Consistent interfaces across modules
- Integration with numpy arrays and OpenCV
"""

import math
from typing import Tuple, Union

import numpy as np
from pydantic import BaseModel, Field, field_validator


class ImageBuffer(BaseModel):
    """
    Type-safe wrapper for decoded raster images (numpy.ndarray).

    Attributes:
        data: The underlying numpy array containing image data.
            Shape: (H, W, C) for color images, (H, W) for grayscale.
            Dtype: uint8 (0-255).

    Example:
        >>> import cv2
        >>> image = cv2.imread("drawer.jpg", cv2.IMREAD_UNCHANGED)
        >>> buffer = ImageBuffer(data=image)
        >>> print(buffer.width, buffer.height, buffer.channels)
        4032 3024 3
    """

    data: np.ndarray = Field(..., description="Image data as numpy array")

    model_config = {"arbitrary_types_allowed": True}

    @field_validator("data")
    @classmethod
    def _validate_image(cls, v: np.ndarray) -> np.ndarray:
        """
        Validate that the numpy array is a usable raster.

        Raises:
            ValueError: If array is not a valid image format.
        """
        if not isinstance(v, np.ndarray):
            raise ValueError(f"Expected numpy.ndarray, got {type(v)}")

        if v.size == 0:
            raise ValueError("Image array is empty")

        if len(v.shape) not in (2, 3):
            raise ValueError(
                f"Expected 2D (grayscale) or 3D (color) image, got shape {v.shape}"
            )

        if len(v.shape) == 3 and v.shape[2] not in (1, 3, 4):
            raise ValueError(
                f"Expected 1, 3, or 4 channels for color image, got {v.shape[2]}"
            )

        if v.dtype != np.uint8:
            raise ValueError(
                f"Expected uint8 dtype for image, got {v.dtype}. "
                "Images should be in range [0, 255]"
            )

        return v

    @property
    def height(self) -> int:
        """Image height in pixels."""
        return int(self.data.shape[0])

    @property
    def width(self) -> int:
        """Image width in pixels."""
        return int(self.data.shape[1])

    @property
    def channels(self) -> int:
        """Number of channels (1 for grayscale, 3 for BGR, 4 for BGRA)."""
        if len(self.data.shape) == 2:
            return 1
        return int(self.data.shape[2])

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height) in pixels."""
        return self.width, self.height

    def to_numpy(self) -> np.ndarray:
        return self.data

    def __repr__(self) -> str:
        return f"ImageBuffer(shape={self.data.shape}, dtype={self.data.dtype})"


class Point(BaseModel):
    """
    Immutable 2D point with floating-point pixel coordinates.

    Coordinates live in the source image space: x grows to the right, y grows
    downward.

    Example:
        >>> p = Point.from_any([120.5, 88.25])
        >>> p.to_tuple()
        (120.5, 88.25)
    """

    x: float = Field(..., description="X-coordinate (horizontal)")
    y: float = Field(..., description="Y-coordinate (vertical)")

    model_config = {"frozen": True}

    @field_validator("x", "y", mode="before")
    @classmethod
    def _convert_to_float(cls, v: Union[int, float, np.number]) -> float:
        if isinstance(v, bool) or not isinstance(v, (int, float, np.number)):
            raise ValueError(f"Coordinate must be numeric, got {type(v)}")
        if not math.isfinite(v):
            raise ValueError(f"Coordinate must be finite, got {v}")
        return float(v)

    @classmethod
    def from_any(cls, value: Union["Point", list, tuple, np.ndarray, dict]) -> "Point":
        """
        Build a Point from a Point, a {x, y} mapping or a 2-element sequence.

        Raises:
            ValueError: If the value does not describe exactly 2 coordinates.
        """
        if isinstance(value, Point):
            return value
        if isinstance(value, dict):
            return cls(x=value["x"], y=value["y"])

        arr = np.asarray(value, dtype=np.float64)
        if arr.shape != (2,):
            raise ValueError(f"Expected 2 coordinates, got shape {arr.shape}")
        return cls(x=float(arr[0]), y=float(arr[1]))

    def to_numpy(self, dtype: type = np.float64) -> np.ndarray:
        return np.array([self.x, self.y], dtype=dtype)

    def to_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def rounded(self, decimals: int = 2) -> list:
        """Coordinates as [x, y] rounded for transmission."""
        return [round(self.x, decimals), round(self.y, decimals)]

    def __repr__(self) -> str:
        return f"Point(x={self.x:g}, y={self.y:g})"
