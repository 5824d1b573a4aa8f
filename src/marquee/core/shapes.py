"""Declarative shape descriptors retained alongside a selection mask.

A selection made from a single primitive keeps its descriptor so renderers can
draw an exact vector outline instead of a pixel-traced one. The set of
variants is closed; code that branches on a descriptor handles all three and
raises ``TypeError`` for anything else.
"""

from __future__ import annotations

import copy
import math
from dataclasses import dataclass
from typing import Any, Dict, Literal, Optional, Tuple, Union

import numpy as np


FillRule = Literal["nonzero", "evenodd"]

IDENTITY_MATRIX: Tuple[Tuple[float, float, float], Tuple[float, float, float]] = (
    (1.0, 0.0, 0.0),
    (0.0, 1.0, 0.0),
)


@dataclass(frozen=True)
class RectangleShape:
    """Axis-aligned rectangle in image space."""

    x: float
    y: float
    width: float
    height: float

    kind = "rectangle"


@dataclass(frozen=True)
class EllipseShape:
    """Axis-aligned ellipse in image space."""

    cx: float
    cy: float
    rx: float
    ry: float

    kind = "ellipse"


@dataclass(frozen=True)
class PathTransform:
    """
    Object transform applied to path data before sampling.

    Points are scaled, then rotated by ``angle`` degrees, then translated by
    ``(left, top)``.
    """

    left: float = 0.0
    top: float = 0.0
    angle: float = 0.0
    scale_x: float = 1.0
    scale_y: float = 1.0

    def matrix(self) -> np.ndarray:
        theta = math.radians(self.angle)
        cos_t, sin_t = math.cos(theta), math.sin(theta)
        return np.array(
            [
                [cos_t * self.scale_x, -sin_t * self.scale_y, self.left],
                [sin_t * self.scale_x, cos_t * self.scale_y, self.top],
            ],
            dtype=np.float64,
        )


@dataclass(frozen=True, eq=False)
class PathShape:
    """
    Free-form filled path.

    ``path_data`` is kept exactly as it arrived (SVG string or command list)
    so it can be re-rendered later; ``matrix`` maps path coordinates to image
    space and already folds in the object transform and the view mapping.
    """

    path_data: Any
    matrix: Tuple[Tuple[float, float, float], Tuple[float, float, float]] = IDENTITY_MATRIX
    fill_rule: FillRule = "nonzero"

    kind = "path"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PathShape):
            return NotImplemented
        return (
            _path_data_list(self.path_data) == _path_data_list(other.path_data)
            and np.allclose(self.matrix, other.matrix)
            and self.fill_rule == other.fill_rule
        )

    __hash__ = None  # type: ignore[assignment]


ShapeDescriptor = Union[RectangleShape, EllipseShape, PathShape]


def _path_data_list(data: Any) -> Any:
    """Command-list path data as nested lists; strings pass through."""
    if isinstance(data, str):
        return data
    return [list(entry) for entry in data]


def matrix_tuple(matrix: Any) -> Tuple[Tuple[float, float, float], Tuple[float, float, float]]:
    array = np.asarray(matrix, dtype=np.float64)
    if array.shape != (2, 3):
        raise ValueError(f"Affine matrix must have shape (2, 3), got {array.shape}")
    return (tuple(float(v) for v in array[0]), tuple(float(v) for v in array[1]))  # type: ignore[return-value]


def shape_to_dict(shape: Optional[ShapeDescriptor]) -> Optional[Dict[str, Any]]:
    """JSON-friendly representation of a descriptor (``None`` passes through)."""
    if shape is None:
        return None
    if isinstance(shape, RectangleShape):
        return {"type": shape.kind, "x": shape.x, "y": shape.y, "width": shape.width, "height": shape.height}
    if isinstance(shape, EllipseShape):
        return {"type": shape.kind, "cx": shape.cx, "cy": shape.cy, "rx": shape.rx, "ry": shape.ry}
    if isinstance(shape, PathShape):
        return {
            "type": shape.kind,
            "path_data": _path_data_list(shape.path_data),
            "matrix": [list(row) for row in shape.matrix],
            "fill_rule": shape.fill_rule,
        }
    raise TypeError(f"Unknown shape descriptor: {type(shape).__name__}")


def shape_from_dict(data: Optional[Dict[str, Any]]) -> Optional[ShapeDescriptor]:
    if data is None:
        return None
    kind = data.get("type")
    if kind == RectangleShape.kind:
        return RectangleShape(float(data["x"]), float(data["y"]), float(data["width"]), float(data["height"]))
    if kind == EllipseShape.kind:
        return EllipseShape(float(data["cx"]), float(data["cy"]), float(data["rx"]), float(data["ry"]))
    if kind == PathShape.kind:
        fill_rule = data.get("fill_rule", "nonzero")
        if fill_rule not in ("nonzero", "evenodd"):
            raise ValueError(f"Unknown fill rule: {fill_rule!r}")
        return PathShape(
            path_data=copy.deepcopy(data["path_data"]),
            matrix=matrix_tuple(data.get("matrix", IDENTITY_MATRIX)),
            fill_rule=fill_rule,
        )
    raise ValueError(f"Unknown shape type: {kind!r}")

