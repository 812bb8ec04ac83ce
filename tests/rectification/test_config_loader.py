"""
Unit tests for config_loader module.
"""

import tempfile
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from src.rectification.config_loader import (
    QualityConfig,
    RectificationConfig,
    get_default_config,
    load_config,
)


def _write_yaml(data) -> Path:
    with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
        yaml.dump(data, f)
        return Path(f.name)


class TestLoadConfig:
    """Tests for load_config function."""

    def test_load_default_config(self):
        """Test loading the bundled configuration file."""
        config = load_config()

        assert isinstance(config, RectificationConfig)
        assert config.validation.min_area_px2 == 25.0
        assert config.solver.epsilon == 1e-12
        assert config.sizing.resolution_px_per_mm == 15.0
        assert config.sizing.max_dimension_px == 1200
        assert config.sizing.min_side_px == 40
        assert config.sizing.pixel_budget == 16_000_000
        assert config.warp.workers is None
        assert config.quality.strength_thresholds == [1e-5, 5e-5, 2e-4, 8e-4]
        assert config.output.jpeg_quality == 92

    def test_bundled_file_matches_built_in_defaults(self):
        """Test that config.yaml and the model defaults agree."""
        assert load_config() == RectificationConfig()

    def test_load_custom_config(self):
        """Test loading a custom configuration file."""
        temp_path = _write_yaml(
            {
                "sizing": {"resolution_px_per_mm": 10.0, "pixel_budget": 4_000_000},
                "warp": {"workers": 2},
                "output": {"jpeg_quality": 80},
            }
        )

        try:
            config = load_config(temp_path)

            assert config.sizing.resolution_px_per_mm == 10.0
            assert config.sizing.pixel_budget == 4_000_000
            assert config.warp.workers == 2
            assert config.output.jpeg_quality == 80
            # Untouched sections keep their defaults
            assert config.sizing.max_dimension_px == 1200
            assert config.validation.min_area_px2 == 25.0
        finally:
            temp_path.unlink()

    def test_empty_file_uses_defaults(self):
        """Test that an empty YAML file yields the default configuration."""
        temp_path = _write_yaml(None)

        try:
            assert load_config(temp_path) == RectificationConfig()
        finally:
            temp_path.unlink()

    def test_missing_file(self):
        """Test that a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_config(Path("/nonexistent/rectification.yaml"))

    @pytest.mark.parametrize(
        "bad_config",
        [
            {"output": {"jpeg_quality": 0}},
            {"output": {"jpeg_quality": 101}},
            {"sizing": {"resolution_px_per_mm": -1.0}},
            {"sizing": {"pixel_budget": 0}},
            {"warp": {"workers": 0}},
            {"validation": {"min_area_px2": 0}},
        ],
    )
    def test_invalid_values(self, bad_config):
        """Test that out-of-range values fail validation."""
        temp_path = _write_yaml(bad_config)

        try:
            with pytest.raises(ValidationError):
                load_config(temp_path)
        finally:
            temp_path.unlink()


class TestQualityConfig:
    """Tests for strength threshold validation."""

    def test_wrong_count(self):
        """Test that exactly 4 thresholds are required."""
        with pytest.raises(ValidationError, match="4 strength thresholds"):
            QualityConfig(strength_thresholds=[1e-5, 5e-5, 2e-4])

    def test_not_ascending(self):
        """Test that thresholds must be strictly ascending."""
        with pytest.raises(ValidationError, match="ascending"):
            QualityConfig(strength_thresholds=[1e-5, 2e-4, 5e-5, 8e-4])

    def test_not_positive(self):
        """Test that thresholds must be positive."""
        with pytest.raises(ValidationError, match="positive"):
            QualityConfig(strength_thresholds=[0.0, 5e-5, 2e-4, 8e-4])


class TestGetDefaultConfig:
    """Tests for get_default_config function."""

    def test_returns_config(self):
        """Test that a valid config is always returned."""
        assert isinstance(get_default_config(), RectificationConfig)

    def test_falls_back_without_file(self, monkeypatch, tmp_path):
        """Test built-in defaults when the bundled file is missing."""
        monkeypatch.setattr(
            "src.rectification.config_loader.DEFAULT_CONFIG_PATH",
            tmp_path / "missing.yaml",
        )

        assert get_default_config() == RectificationConfig()
