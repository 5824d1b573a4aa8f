"""
Outline extraction for the "marching ants" overlay.

Pixel tracing works on cell edges: a horizontal edge separates a cell from the
one above it, a vertical edge a cell from the one to its left. Consecutive
transition edges along a row (or column) are merged into one straight
segment, so diagonal and curved boundaries come out as staircases. That is
good enough for a dashed overlay drawn at display scale; when the selection
is still an exact primitive the descriptor is converted to a vector outline
instead.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from .mask import DEFAULT_THRESHOLD, MaskBuffer
from .path import DEFAULT_CURVE_SEGMENTS, apply_affine, flatten_path
from .selection import Selection
from .shapes import EllipseShape, PathShape, RectangleShape, ShapeDescriptor


logger = logging.getLogger(__name__)

DEFAULT_ELLIPSE_SEGMENTS = 64


@dataclass(frozen=True, eq=False)
class OutlinePath:
    """Polyline in image space; ``points`` has shape ``(n, 2)``."""

    points: np.ndarray
    closed: bool = False

    def to_list(self) -> List[List[float]]:
        return [[float(x), float(y)] for x, y in self.points]


def _edge_runs(edges: np.ndarray):
    """``(line, start, stop)`` arrays for each run of ``True`` along axis 1."""
    padded = np.zeros((edges.shape[0], edges.shape[1] + 2), dtype=np.int8)
    padded[:, 1:-1] = edges
    steps = np.diff(padded, axis=1)
    starts = np.argwhere(steps == 1)
    stops = np.argwhere(steps == -1)
    # argwhere is row-major, so starts and stops pair up in order.
    return starts[:, 0], starts[:, 1], stops[:, 1]


class BoundaryTracer:
    """
    Convert selections into outline polylines.

    Parameters
    ----------
    threshold:
        Alpha strictly above this is "inside".
    prefer_vector:
        Use the shape descriptor when the selection still matches it exactly.
    ellipse_segments, curve_segments:
        Sampling resolution for vector outlines.
    """

    def __init__(
        self,
        threshold: int = DEFAULT_THRESHOLD,
        prefer_vector: bool = True,
        ellipse_segments: int = DEFAULT_ELLIPSE_SEGMENTS,
        curve_segments: int = DEFAULT_CURVE_SEGMENTS,
    ):
        self.threshold = int(threshold)
        self.prefer_vector = bool(prefer_vector)
        self.ellipse_segments = max(3, int(ellipse_segments))
        self.curve_segments = max(1, int(curve_segments))

    def trace(self, mask: MaskBuffer) -> List[OutlinePath]:
        """Edge segments of the inside/outside boundary of ``mask``."""
        inside = mask.binary(self.threshold)
        if inside.size == 0 or not inside.any():
            return []

        padded = np.pad(inside, 1, mode="constant", constant_values=False)
        outlines: List[OutlinePath] = []

        # Edge at image row y lies between cells y - 1 and y.
        horizontal = padded[:-1, 1:-1] != padded[1:, 1:-1]
        for y, x0, x1 in zip(*_edge_runs(horizontal)):
            points = np.array([[x0, y], [x1, y]], dtype=np.float64)
            outlines.append(OutlinePath(points, closed=False))

        # Edge at image column x lies between cells x - 1 and x.
        vertical = padded[1:-1, :-1] != padded[1:-1, 1:]
        for x, y0, y1 in zip(*_edge_runs(vertical.T)):
            points = np.array([[x, y0], [x, y1]], dtype=np.float64)
            outlines.append(OutlinePath(points, closed=False))

        logger.debug("Traced %d edge segments", len(outlines))
        return outlines

    def vector_outline(self, shape: ShapeDescriptor) -> List[OutlinePath]:
        """Exact outline of a shape descriptor."""
        if isinstance(shape, RectangleShape):
            x, y, w, h = shape.x, shape.y, shape.width, shape.height
            if w <= 0 or h <= 0:
                return []
            points = np.array([[x, y], [x + w, y], [x + w, y + h], [x, y + h]], dtype=np.float64)
            return [OutlinePath(points, closed=True)]
        if isinstance(shape, EllipseShape):
            theta = np.linspace(0.0, 2.0 * math.pi, self.ellipse_segments, endpoint=False)
            points = np.column_stack(
                [shape.cx + shape.rx * np.cos(theta), shape.cy + shape.ry * np.sin(theta)]
            )
            return [OutlinePath(points, closed=True)]
        if isinstance(shape, PathShape):
            return [
                OutlinePath(apply_affine(subpath.points, shape.matrix), closed=subpath.closed)
                for subpath in flatten_path(shape.path_data, self.curve_segments)
                if subpath.points.shape[0] >= 2
            ]
        raise TypeError(f"Unknown shape descriptor: {type(shape).__name__}")

    def outline_for(self, selection: Optional[Selection]) -> List[OutlinePath]:
        """Vector outline when the shape is still exact, traced edges otherwise."""
        if selection is None:
            return []
        if self.prefer_vector and selection.shape_exact and selection.shape is not None:
            return self.vector_outline(selection.shape)
        return self.trace(selection.mask)
