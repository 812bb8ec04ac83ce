"""Configuration loader with Pydantic validation for the Rectification module.

This module provides type-safe configuration loading from YAML files using
Pydantic models for validation and default values.
"""

import logging
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from src.utils.io import load_yaml

logger = logging.getLogger(__name__)

# Default configuration path (relative to this file)
DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"


class ValidationConfig(BaseModel):
    """Quad validation configuration.

    Attributes:
        min_area_px2: Minimum shoelace area of the quad in square pixels
    """

    min_area_px2: float = Field(default=25.0, gt=0.0)


class SolverConfig(BaseModel):
    """Linear solver configuration.

    Attributes:
        epsilon: Pivot / determinant magnitude below which a system is singular
    """

    epsilon: float = Field(default=1e-12, gt=0.0)


class SizingConfig(BaseModel):
    """Output raster sizing configuration.

    Attributes:
        resolution_px_per_mm: Output scale when physical dimensions are known
        max_dimension_px: Longest side when estimating from quad geometry
        min_side_px: Smallest side when estimating from quad geometry
        pixel_budget: Upper bound on output width * height
    """

    resolution_px_per_mm: float = Field(default=15.0, gt=0.0)
    max_dimension_px: int = Field(default=1200, ge=1)
    min_side_px: int = Field(default=40, ge=1)
    pixel_budget: int = Field(default=16_000_000, ge=1)


class WarpConfig(BaseModel):
    """Image warping configuration.

    Attributes:
        workers: Thread pool size for the warp loop (None = CPU count)
        min_rows_per_band: Smallest row band handed to a single worker
    """

    workers: Optional[int] = Field(default=None, ge=1)
    min_rows_per_band: int = Field(default=32, ge=1)


class QualityConfig(BaseModel):
    """Quality assessment configuration.

    Attributes:
        strength_thresholds: Upper bounds for none / very weak / weak / moderate
    """

    strength_thresholds: List[float] = [1e-5, 5e-5, 2e-4, 8e-4]

    @field_validator("strength_thresholds")
    @classmethod
    def _check_thresholds(cls, v: List[float]) -> List[float]:
        if len(v) != 4:
            raise ValueError(f"Expected 4 strength thresholds, got {len(v)}")
        if any(t <= 0 for t in v):
            raise ValueError("Strength thresholds must be positive")
        if any(a >= b for a, b in zip(v, v[1:])):
            raise ValueError("Strength thresholds must be strictly ascending")
        return v


class OutputConfig(BaseModel):
    """Encoded output configuration.

    Attributes:
        jpeg_quality: JPEG quality for the encoded rectified image (1-100)
    """

    jpeg_quality: int = Field(default=92, ge=1, le=100)


class RectificationConfig(BaseModel):
    """Complete rectification module configuration."""

    validation: ValidationConfig = ValidationConfig()
    solver: SolverConfig = SolverConfig()
    sizing: SizingConfig = SizingConfig()
    warp: WarpConfig = WarpConfig()
    quality: QualityConfig = QualityConfig()
    output: OutputConfig = OutputConfig()


def load_config(config_path: Path = DEFAULT_CONFIG_PATH) -> RectificationConfig:
    """Load and validate configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated RectificationConfig object

    Raises:
        FileNotFoundError: If config file does not exist
        yaml.YAMLError: If YAML parsing fails
        pydantic.ValidationError: If configuration validation fails

    Example:
        >>> config = load_config(Path("src/rectification/config.yaml"))
        >>> print(config.sizing.resolution_px_per_mm)
        15.0
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    logger.debug(f"Loading rectification config from {config_path}")
    raw_config = load_yaml(config_path) or {}

    config = RectificationConfig(**raw_config)
    logger.info("Successfully loaded rectification configuration")
    return config


def get_default_config() -> RectificationConfig:
    """Get default configuration from bundled config.yaml file.

    Falls back to hardcoded defaults if the bundled file is missing.
    """
    if DEFAULT_CONFIG_PATH.exists():
        return load_config(DEFAULT_CONFIG_PATH)
    logger.warning(f"{DEFAULT_CONFIG_PATH} not found, using built-in defaults")
    return RectificationConfig()
