"""
Configuration models and loader for the selection engine.

An engine is configured from a YAML file; every field has a default so an
empty file (or no file at all) gives a working 2048x2048 canvas.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Literal, Union

import yaml
from pydantic import BaseModel, Field, conint, field_validator, model_validator

from .core.mask import DEFAULT_THRESHOLD


PositiveInt = conint(gt=0)
NonNegativeInt = conint(ge=0)


class CanvasConfig(BaseModel):
    """Fixed extent of the selection buffer, independent of zoom."""

    width: NonNegativeInt = Field(default=2048, description="Buffer width in image pixels")
    height: NonNegativeInt = Field(default=2048, description="Buffer height in image pixels")


class SelectionConfig(BaseModel):
    """Thresholds and limits for mask operations."""

    threshold: conint(ge=0, le=254) = Field(
        default=DEFAULT_THRESHOLD,
        description="Alpha strictly above this value counts as selected",
    )
    max_morphology_radius: PositiveInt = Field(
        default=64,
        description="Upper bound for expand/contract/feather/border/smooth radii",
    )
    size_mismatch: Literal["resize", "clear"] = Field(
        default="resize",
        description="What restore_selection does with a mask sized for another canvas",
    )


class OutlineConfig(BaseModel):
    """Outline extraction parameters."""

    prefer_vector: bool = Field(
        default=True, description="Draw exact primitives from their shape descriptor"
    )
    ellipse_segments: conint(ge=3) = Field(
        default=64, description="Points sampled around an ellipse outline"
    )
    curve_segments: PositiveInt = Field(
        default=16, description="Line segments per Bézier curve when flattening paths"
    )


class EngineConfig(BaseModel):
    """Top-level configuration object for a selection engine."""

    canvas: CanvasConfig = Field(default_factory=CanvasConfig)
    selection: SelectionConfig = Field(default_factory=SelectionConfig)
    outline: OutlineConfig = Field(default_factory=OutlineConfig)
    metadata: Dict[str, Any] = Field(
        default_factory=dict, description="Optional metadata for bookkeeping"
    )

    @field_validator("metadata", mode="before")
    @classmethod
    def _default_metadata(cls, value: Any) -> Any:
        return {} if value is None else value

    @model_validator(mode="after")
    def _check_buffer_size(self) -> "EngineConfig":
        cells = self.canvas.width * self.canvas.height
        # One byte per cell; larger buffers are almost certainly a unit mistake.
        if cells > 1 << 30:
            raise ValueError(
                f"Canvas {self.canvas.width}x{self.canvas.height} exceeds the 1 GiB mask limit"
            )
        return self


def load_engine_config(path: Union[str, Path]) -> EngineConfig:
    """
    Load and validate an engine configuration from a YAML file.

    Parameters
    ----------
    path:
        Path to the YAML configuration file.

    Returns
    -------
    EngineConfig
        Parsed and validated configuration object.

    Raises
    ------
    FileNotFoundError
        If ``path`` does not exist.
    pydantic.ValidationError
        If the file content does not describe a valid configuration.
    """

    config_path = Path(path).expanduser().resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as handle:
        raw_data = yaml.safe_load(handle) or {}

    return EngineConfig.model_validate(raw_data)
