"""
Shape rasterization into full-canvas selection masks.

Every mask produced here is sized to the working canvas buffer, a fixed extent
chosen independently of the current zoom so that a selection is never clipped
to whatever part of the canvas happens to be visible. Geometry arrives already
in image space; out-of-buffer parts are clipped silently.
"""

from __future__ import annotations

import logging
import math
from typing import Any, List, Optional, Sequence

import cv2
import numpy as np

from .geometry import Bounds
from .mask import SELECTED, MaskBuffer
from .path import DEFAULT_CURVE_SEGMENTS, apply_affine, flatten_path, signed_area
from .selection import Selection
from .shapes import (
    IDENTITY_MATRIX,
    EllipseShape,
    FillRule,
    PathShape,
    RectangleShape,
    ShapeDescriptor,
    matrix_tuple,
)


logger = logging.getLogger(__name__)

# cv2.fillPoly takes fixed-point vertices; 4 fractional bits keep sub-pixel accuracy.
_SUBPIXEL_SHIFT = 4
_SUBPIXEL_SCALE = 1 << _SUBPIXEL_SHIFT
# Keeps fixed-point vertices inside int32 range.
_COORDINATE_LIMIT = float(1 << 22)


def _finite(*values: float) -> bool:
    return all(math.isfinite(float(v)) for v in values)


class ShapeRasterizer:
    """
    Convert shape descriptions into :class:`Selection` values.

    Parameters
    ----------
    width, height:
        Size of the canvas buffer every mask is allocated at.
    curve_segments:
        Flattening resolution for Bézier curves and arcs in paths.
    """

    def __init__(self, width: int, height: int, curve_segments: int = DEFAULT_CURVE_SEGMENTS):
        if width < 0 or height < 0:
            raise ValueError(f"Canvas size must be non-negative, got {width}x{height}")
        self._width = int(width)
        self._height = int(height)
        self._curve_segments = max(1, int(curve_segments))

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def _blank(self) -> np.ndarray:
        return np.zeros((self._height, self._width), dtype=np.uint8)

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------
    def rectangle(self, x: float, y: float, width: float, height: float) -> Selection:
        """
        Rasterize ``[floor(x), ceil(x + width)) x [floor(y), ceil(y + height))``.

        Degenerate rectangles (non-positive or non-finite size) produce an
        all-zero mask rather than an error.
        """
        alpha = self._blank()
        if not _finite(x, y, width, height):
            logger.debug("Ignoring non-finite rectangle (%s, %s, %s, %s)", x, y, width, height)
            return Selection(mask=MaskBuffer(alpha, copy=False), bounds=Bounds())

        bounds = Bounds(float(x), float(y), float(width), float(height))
        if width > 0 and height > 0:
            x0, y0, x1, y1 = bounds.pixel_span()
            x0, y0 = max(0, x0), max(0, y0)
            x1, y1 = min(self._width, x1), min(self._height, y1)
            if x0 < x1 and y0 < y1:
                alpha[y0:y1, x0:x1] = SELECTED
        else:
            logger.debug("Degenerate rectangle %s yields an empty mask", bounds)

        return Selection(
            mask=MaskBuffer(alpha, copy=False),
            bounds=bounds,
            shape=RectangleShape(bounds.x, bounds.y, bounds.width, bounds.height),
            shape_exact=True,
        )

    def ellipse(self, cx: float, cy: float, rx: float, ry: float) -> Optional[Selection]:
        """
        Rasterize every cell with ``((px-cx)/rx)^2 + ((py-cy)/ry)^2 <= 1``.

        Returns ``None`` for non-positive or non-finite radii; callers treat
        that as a no-op gesture.
        """
        if not _finite(cx, cy, rx, ry) or rx <= 0 or ry <= 0:
            logger.debug("Rejecting ellipse with centre (%s, %s) and radii (%s, %s)", cx, cy, rx, ry)
            return None

        alpha = self._blank()
        x0 = max(0, int(math.ceil(cx - rx)))
        x1 = min(self._width - 1, int(math.floor(cx + rx)))
        y0 = max(0, int(math.ceil(cy - ry)))
        y1 = min(self._height - 1, int(math.floor(cy + ry)))
        if x0 <= x1 and y0 <= y1:
            yy, xx = np.ogrid[y0:y1 + 1, x0:x1 + 1]
            inside = ((xx - cx) / rx) ** 2 + ((yy - cy) / ry) ** 2 <= 1.0
            window = alpha[y0:y1 + 1, x0:x1 + 1]
            window[inside] = SELECTED

        return Selection(
            mask=MaskBuffer(alpha, copy=False),
            bounds=Bounds(float(cx - rx), float(cy - ry), float(rx * 2), float(ry * 2)),
            shape=EllipseShape(float(cx), float(cy), float(rx), float(ry)),
            shape_exact=True,
        )

    def path(
        self,
        path_data: Any,
        matrix: Optional[Sequence[Sequence[float]]] = None,
        fill_rule: FillRule = "nonzero",
    ) -> Selection:
        """
        Fill an arbitrary vector path at full opacity.

        Parameters
        ----------
        path_data:
            SVG path string or command list; stored verbatim on the
            resulting :class:`PathShape`.
        matrix:
            2x3 affine mapping path coordinates to image space (object
            transform and view mapping combined). Identity when omitted.
        fill_rule:
            ``"nonzero"`` or ``"evenodd"``.

        Raises
        ------
        PathDataError
            If ``path_data`` cannot be parsed.
        """
        if fill_rule not in ("nonzero", "evenodd"):
            raise ValueError(f"Unknown fill rule: {fill_rule!r}")
        affine = matrix_tuple(IDENTITY_MATRIX if matrix is None else matrix)
        polygons = [
            apply_affine(subpath.points, affine)
            for subpath in flatten_path(path_data, self._curve_segments)
        ]
        polygons = [poly for poly in polygons if np.all(np.isfinite(poly))]

        if polygons:
            stacked = np.vstack(polygons)
            mins = stacked.min(axis=0)
            maxs = stacked.max(axis=0)
            bounds = Bounds.from_corners(mins[0], mins[1], maxs[0], maxs[1])
        else:
            logger.debug("Path produced no drawable geometry")
            bounds = Bounds()

        alpha = self.fill_polygons(polygons, fill_rule)
        return Selection(
            mask=MaskBuffer(alpha, copy=False),
            bounds=bounds,
            shape=PathShape(path_data=path_data, matrix=affine, fill_rule=fill_rule),
            shape_exact=True,
        )

    def fill_polygons(self, polygons: List[np.ndarray], fill_rule: FillRule = "nonzero") -> np.ndarray:
        """Fill image-space polygons into a fresh uint8 alpha array."""
        alpha = self._blank()
        if not polygons or alpha.size == 0:
            return alpha

        winding = np.zeros(alpha.shape, dtype=np.int32)
        layer = np.zeros(alpha.shape, dtype=np.uint8)
        for polygon in polygons:
            if polygon.shape[0] < 3:
                continue
            layer.fill(0)
            clipped = np.clip(polygon, -_COORDINATE_LIMIT, _COORDINATE_LIMIT)
            vertices = np.round(clipped * _SUBPIXEL_SCALE).astype(np.int32).reshape(-1, 1, 2)
            cv2.fillPoly(layer, [vertices], 1, lineType=cv2.LINE_8, shift=_SUBPIXEL_SHIFT)
            if fill_rule == "evenodd":
                winding += layer
            else:
                direction = 1 if signed_area(polygon) >= 0 else -1
                winding += direction * layer.astype(np.int32)

        if fill_rule == "evenodd":
            inside = (winding % 2) == 1
        else:
            inside = winding != 0
        alpha[inside] = SELECTED
        return alpha

    # ------------------------------------------------------------------
    def rasterize(self, shape: ShapeDescriptor) -> Optional[Selection]:
        """Rasterize any shape descriptor; ``None`` for rejected geometry."""
        if isinstance(shape, RectangleShape):
            return self.rectangle(shape.x, shape.y, shape.width, shape.height)
        if isinstance(shape, EllipseShape):
            return self.ellipse(shape.cx, shape.cy, shape.rx, shape.ry)
        if isinstance(shape, PathShape):
            return self.path(shape.path_data, matrix=shape.matrix, fill_rule=shape.fill_rule)
        raise TypeError(f"Unknown shape descriptor: {type(shape).__name__}")
