"""YAML schema validation and config loading.

Provides validation for the preview configuration using pydantic:
    - Preview schema (preview.v1.yaml): thumbnail size, stroke style,
      background, border clearance, flattening tolerance, point store sizing

Every field defaults to the values the Snapmaker 2.0 terminal expects, so a
config file is optional. Loading fails fast with the offending key.

Units:
    - Geometry: workspace millimeters (mm)
    - Image: pixels (px)
    - Color: 0..255 per channel

Usage:
    from sm2lbpp.utils import validators

    cfg = validators.load_preview_config("configs/preview_v1.yaml")
    cfg = validators.PreviewConfigV1()  # built-in defaults
"""

from pathlib import Path
from typing import Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ============================================================================
# PREVIEW SCHEMA V1
# ============================================================================

class ImageSize(BaseModel):
    """Output thumbnail size (px)."""
    width_px: int = Field(300, gt=0, le=4096, description="Thumbnail width (px)")
    height_px: int = Field(150, gt=0, le=4096, description="Thumbnail height (px)")


class StrokeConfig(BaseModel):
    """Stroke style for powered paths."""
    width_mm: float = Field(0.3, gt=0.0, le=50.0, description="Laser spot diameter (mm)")
    color_rgba: Tuple[int, int, int, int] = Field(
        (0, 0, 0, 255), description="Stroke color (R, G, B, A)"
    )

    @field_validator('color_rgba')
    @classmethod
    def validate_color(cls, v: Tuple[int, int, int, int]) -> Tuple[int, int, int, int]:
        if any(c < 0 or c > 255 for c in v):
            raise ValueError(f"Stroke color channels must be in [0, 255], got {v}")
        return v


class BorderMM(BaseModel):
    """Clearance around the drawing (mm)."""
    x: float = Field(1.0, gt=0.0, description="Horizontal border (mm)")
    y: float = Field(1.0, gt=0.0, description="Vertical border (mm)")


class PointStoreConfig(BaseModel):
    """Sizing of the growable point store (in points)."""
    initial_points: int = Field(8192, gt=0, description="Initial capacity")
    max_grow_points: int = Field(16_777_216, gt=0, description="Doubling cap / additive step")

    @model_validator(mode='after')
    def validate_growth(self) -> 'PointStoreConfig':
        if self.max_grow_points < self.initial_points:
            raise ValueError(
                f"max_grow_points ({self.max_grow_points}) must be >= "
                f"initial_points ({self.initial_points})"
            )
        return self


class PreviewConfigV1(BaseModel):
    """Preview configuration schema v1."""
    model_config = ConfigDict(populate_by_name=True)

    schema_version: str = Field("preview.v1", alias="schema", description="Schema version")
    image: ImageSize = Field(default_factory=ImageSize)
    stroke: StrokeConfig = Field(default_factory=StrokeConfig)
    background_rgb: Tuple[int, int, int] = Field(
        (255, 255, 255), description="Opaque background color (R, G, B)"
    )
    border_mm: BorderMM = Field(default_factory=BorderMM)
    flatten_tol_px: float = Field(0.25, gt=0.0, description="Curve flattening tolerance (px)")
    point_store: PointStoreConfig = Field(default_factory=PointStoreConfig)

    @field_validator('schema_version')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != "preview.v1":
            raise ValueError(f"Expected schema 'preview.v1', got '{v}'")
        return v

    @field_validator('background_rgb')
    @classmethod
    def validate_background(cls, v: Tuple[int, int, int]) -> Tuple[int, int, int]:
        if any(c < 0 or c > 255 for c in v):
            raise ValueError(f"Background channels must be in [0, 255], got {v}")
        return v


def load_preview_config(path: Union[str, Path]) -> PreviewConfigV1:
    """Load and validate preview config from YAML.

    Parameters
    ----------
    path : Union[str, Path]
        Path to preview.v1.yaml file

    Returns
    -------
    PreviewConfigV1
        Validated preview configuration

    Raises
    ------
    FileNotFoundError
        If path doesn't exist
    ValueError
        If the YAML is malformed or validation fails (with actionable error message)
    """
    from . import fs

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Preview config not found: {path}")

    try:
        data = fs.load_yaml(path)
        return PreviewConfigV1(**data)
    except Exception as e:
        raise ValueError(f"Preview config validation failed at {path}: {e}") from e
