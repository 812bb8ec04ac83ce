"""
Pytest Configuration and Shared Fixtures

This file contains pytest configuration and fixtures that are available
to all test modules.
"""

import cv2
import numpy as np
import pytest

# Corners of the drawer in the synthetic photo (TL, TR, BR, BL)
PHOTO_CORNERS = np.array(
    [[120, 60], [520, 90], [560, 420], [80, 400]], dtype=np.float32
)
FLAT_WIDTH = 200
FLAT_HEIGHT = 280


@pytest.fixture
def sample_quadrilateral_points():
    """Fixture providing 4 unordered corner points of a tilted drawer."""
    return np.array(
        [
            [300, 150],  # Top-right area
            [100, 200],  # Top-left area
            [320, 400],  # Bottom-right area
            [80, 380],  # Bottom-left area
        ],
        dtype=np.float32,
    )


@pytest.fixture
def flat_drawer():
    """Fixture providing a smooth, fronto-parallel drawer image (BGR)."""
    xs, ys = np.meshgrid(np.arange(FLAT_WIDTH), np.arange(FLAT_HEIGHT))
    image = np.empty((FLAT_HEIGHT, FLAT_WIDTH, 3), dtype=np.uint8)
    image[:, :, 0] = np.round(xs * 255 / (FLAT_WIDTH - 1))
    image[:, :, 1] = np.round(ys * 255 / (FLAT_HEIGHT - 1))
    image[:, :, 2] = 128
    return image


@pytest.fixture
def drawer_photo(flat_drawer):
    """
    Fixture providing a 640x480 photo of the flat drawer seen at an angle.

    Returns:
        (photo, corners) where corners are the drawer corners in the photo
        in TL, TR, BR, BL order.
    """
    flat_corners = np.array(
        [
            [0, 0],
            [FLAT_WIDTH - 1, 0],
            [FLAT_WIDTH - 1, FLAT_HEIGHT - 1],
            [0, FLAT_HEIGHT - 1],
        ],
        dtype=np.float32,
    )
    M = cv2.getPerspectiveTransform(flat_corners, PHOTO_CORNERS)
    photo = cv2.warpPerspective(
        flat_drawer,
        M,
        (640, 480),
        flags=cv2.INTER_LINEAR,
        borderValue=(255, 255, 255),
    )
    return photo, PHOTO_CORNERS.copy()


@pytest.fixture
def gradient_image():
    """Fixture providing a 200x200 BGR image whose channels encode x and y."""
    xs, ys = np.meshgrid(np.arange(200), np.arange(200))
    image = np.empty((200, 200, 3), dtype=np.uint8)
    image[:, :, 0] = xs
    image[:, :, 1] = ys
    image[:, :, 2] = 255
    return image
