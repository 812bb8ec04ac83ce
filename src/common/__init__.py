"""
Common types shared across the rectification engine.
"""

from src.common.types import ImageBuffer, Point

__all__ = ["ImageBuffer", "Point"]
