"""
Integration tests for the rectification processor.

Runs the full pipeline on a synthetic drawer photo whose fronto-parallel
content is known, so the rectified output can be compared against it.
"""

import cv2
import numpy as np
import pytest

from src.rectification import (
    CompanionMetadata,
    PerspectiveStrength,
    PhysicalDimensions,
    QuadValidationError,
    RectificationProcessor,
    RectificationResult,
    ResourceError,
    TargetSize,
    ValidationCheck,
    rectify_drawer,
)
from src.rectification.config_loader import RectificationConfig, SizingConfig

DRAWER_MM = PhysicalDimensions(width_mm=200, length_mm=280)


@pytest.fixture
def processor():
    """Fixture providing a processor with default configuration."""
    return RectificationProcessor(config=RectificationConfig())


class TestRectificationProcessor:
    """Tests for RectificationProcessor.process."""

    def test_recovers_flat_drawer(self, processor, drawer_photo, flat_drawer):
        """Test that rectifying the photo reproduces the flat drawer."""
        photo, corners = drawer_photo

        result = processor.process(
            photo, corners, DRAWER_MM, resolution_px_per_mm=1.0
        )

        assert isinstance(result, RectificationResult)
        assert result.target_size == TargetSize(200, 280)
        assert result.rectified_image.shape == flat_drawer.shape

        # Ignore the outermost pixels, which blend with the photo background
        diff = np.abs(
            result.rectified_image[5:-5, 5:-5].astype(int)
            - flat_drawer[5:-5, 5:-5].astype(int)
        )
        assert diff.mean() < 2.0
        assert diff.max() < 12

    def test_metrics(self, processor, drawer_photo):
        """Test fit error and perspective label of a tilted photo."""
        photo, corners = drawer_photo

        result = processor.process(photo, corners, DRAWER_MM, resolution_px_per_mm=1.0)

        assert result.fit_error_px < 1e-6
        assert result.projective_strength > 1e-5
        assert result.metrics.strength_label != PerspectiveStrength.NONE
        assert result.homography[2, 2] == 1.0

    def test_default_resolution(self, processor, drawer_photo):
        """Test the default 15 px/mm output scale."""
        photo, corners = drawer_photo

        result = processor.process(photo, corners, PhysicalDimensions(20, 28))

        assert result.target_size == TargetSize(300, 420)
        assert result.px_per_mm_after_rect == {
            "x": pytest.approx(15.0),
            "y": pytest.approx(15.0),
        }

    def test_corner_order_does_not_matter(self, processor, drawer_photo):
        """Test that shuffled corners give the same homography."""
        photo, corners = drawer_photo

        ordered = processor.process(photo, corners, DRAWER_MM, resolution_px_per_mm=1.0)
        shuffled = processor.process(
            photo, corners[[2, 0, 3, 1]], DRAWER_MM, resolution_px_per_mm=1.0
        )

        np.testing.assert_allclose(ordered.homography, shuffled.homography)
        assert ordered.quad == shuffled.quad

    def test_estimated_size_without_dimensions(self, processor, drawer_photo):
        """Test that the output size is estimated from the quad."""
        photo, corners = drawer_photo

        result = processor.process(photo, corners)

        assert result.px_per_mm_after_rect is None
        # Mean of top/bottom and left/right edges of the photo quad
        assert abs(result.target_size.width - 441) <= 1
        assert abs(result.target_size.height - 337) <= 1

    def test_pixel_budget_override(self, processor, drawer_photo):
        """Test that a per-call pixel budget caps the output."""
        photo, corners = drawer_photo

        result = processor.process(
            photo, corners, DRAWER_MM, resolution_px_per_mm=1.0, pixel_budget=10_000
        )

        assert result.target_size.area <= 10_000
        assert result.px_per_mm_after_rect["x"] < 1.0

    @pytest.mark.parametrize(
        "physical,override,match",
        [
            (PhysicalDimensions(20, 30), {"resolution_px_per_mm": 0}, "resolution_px_per_mm"),
            (None, {"pixel_budget": 0}, "pixel_budget"),
            (None, {"max_dimension_px": 0}, "max_dimension_px"),
        ],
    )
    def test_zero_override_is_not_replaced_by_config(
        self, processor, drawer_photo, physical, override, match
    ):
        """Test that an explicit zero override is rejected rather than defaulted."""
        photo, corners = drawer_photo

        with pytest.raises(ValueError, match=match):
            processor.process(photo, corners, physical, **override)

    def test_encoded_bytes_input(self, processor, drawer_photo):
        """Test that encoded bytes are decoded before processing."""
        photo, corners = drawer_photo
        ok, buf = cv2.imencode(".png", photo)
        assert ok

        from_bytes = processor.process(buf.tobytes(), corners, DRAWER_MM, resolution_px_per_mm=1.0)
        from_array = processor.process(photo, corners, DRAWER_MM, resolution_px_per_mm=1.0)

        np.testing.assert_array_equal(from_bytes.rectified_image, from_array.rectified_image)

    def test_encoded_output_is_jpeg(self, processor, drawer_photo):
        """Test that the encoded output decodes to the target size."""
        photo, corners = drawer_photo

        result = processor.process(photo, corners, DRAWER_MM, resolution_px_per_mm=1.0)

        assert result.encoded_image[:2] == b"\xff\xd8"
        decoded = cv2.imdecode(np.frombuffer(result.encoded_image, np.uint8), cv2.IMREAD_COLOR)
        assert decoded.shape == (280, 200, 3)

    def test_alpha_source(self, processor, drawer_photo):
        """Test that a BGRA source gives a BGRA rectified raster."""
        photo, corners = drawer_photo
        bgra = cv2.cvtColor(photo, cv2.COLOR_BGR2BGRA)

        result = processor.process(bgra, corners, DRAWER_MM, resolution_px_per_mm=1.0)

        assert result.rectified_image.shape == (280, 200, 4)
        assert np.all(result.rectified_image[:-1, :-1, 3] == 255)

    def test_invalid_quad(self, processor, drawer_photo):
        """Test that invalid corners fail before any warping."""
        photo, _ = drawer_photo

        with pytest.raises(QuadValidationError) as exc_info:
            processor.process(photo, [[0, 0], [10, 0], [10, 1], [0, 1]])

        assert exc_info.value.check == ValidationCheck.AREA

    def test_corners_outside_photo(self, processor, drawer_photo):
        """Test that corners beyond the raster are rejected."""
        photo, corners = drawer_photo
        corners[2] = [700, 420]

        with pytest.raises(QuadValidationError) as exc_info:
            processor.process(photo, corners)

        assert exc_info.value.check == ValidationCheck.BOUNDS

    def test_undecodable_bytes(self, processor, drawer_photo):
        """Test that garbage bytes raise ResourceError."""
        _, corners = drawer_photo

        with pytest.raises(ResourceError):
            processor.process(b"not an image", corners)

    def test_unusable_raster(self, processor, drawer_photo):
        """Test that a non-uint8 raster raises ResourceError."""
        photo, corners = drawer_photo

        with pytest.raises(ResourceError, match="Unusable source raster"):
            processor.process(photo.astype(np.float32), corners)

    def test_config_is_used(self, drawer_photo):
        """Test that sizing comes from the processor configuration."""
        photo, corners = drawer_photo
        config = RectificationConfig(sizing=SizingConfig(resolution_px_per_mm=0.5))

        result = RectificationProcessor(config=config).process(photo, corners, DRAWER_MM)

        assert result.target_size == TargetSize(100, 140)

    def test_processor_is_reusable(self, processor, drawer_photo):
        """Test that repeated calls give identical, independent results."""
        photo, corners = drawer_photo

        first = processor.process(photo, corners, DRAWER_MM, resolution_px_per_mm=1.0)
        second = processor.process(photo, corners, DRAWER_MM, resolution_px_per_mm=1.0)

        assert first is not second
        np.testing.assert_array_equal(first.rectified_image, second.rectified_image)


class TestResultSerialization:
    """Tests for RectificationResult.to_dict."""

    def test_keys_and_rounding(self, processor, drawer_photo):
        """Test the serialized metadata layout."""
        photo, corners = drawer_photo
        exif = CompanionMetadata(focal_length_mm=4.25, f_number=1.8, iso=100)

        result = processor.process(
            photo, corners + 0.123456, DRAWER_MM, resolution_px_per_mm=1.0, exif=exif
        )
        data = result.to_dict()

        assert set(data) == {
            "quad_px",
            "target_size_px",
            "homography",
            "px_per_mm_after_rect",
            "fit_error_px",
            "projective_strength",
            "perspective",
            "orig_size_px",
            "exif",
        }
        assert data["quad_px"][0] == [120.12, 60.12]
        assert data["target_size_px"] == [200, 280]
        assert len(data["homography"]) == 9
        assert data["homography"][8] == 1.0
        assert all(round(v, 8) == v for v in data["homography"])
        assert data["fit_error_px"] == round(data["fit_error_px"], 4)
        assert data["perspective"] in {s.value for s in PerspectiveStrength}
        assert data["orig_size_px"] == [640, 480]
        assert data["exif"] == {"focal_length_mm": 4.25, "f_number": 1.8, "iso": 100}

    def test_orig_size_override(self, processor, drawer_photo):
        """Test that callers can report the size of a pre-downscaled original."""
        photo, corners = drawer_photo

        result = processor.process(photo, corners, orig_size_px=(4032, 3024))

        assert result.to_dict()["orig_size_px"] == [4032, 3024]
        assert result.to_dict()["exif"] is None


class TestRectifyDrawer:
    """Tests for rectify_drawer convenience function."""

    def test_one_shot(self, drawer_photo):
        """Test one-shot rectification with keyword passthrough."""
        photo, corners = drawer_photo

        result = rectify_drawer(
            photo, corners, DRAWER_MM, config=RectificationConfig(), resolution_px_per_mm=1.0
        )

        assert result.target_size == TargetSize(200, 280)
