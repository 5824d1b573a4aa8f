"""Axis-aligned rectangle helpers shared by the selection engine."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass(frozen=True)
class Bounds:
    """
    Axis-aligned rectangle in image-pixel space.

    Coordinates are kept as floats because shape bounds are reported
    un-clipped and un-rounded (a rectangle dragged from ``(10.5, 3)`` keeps
    that origin). ``width``/``height`` are never negative for values built by
    the helpers below.
    """

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @classmethod
    def full(cls, width: int, height: int) -> "Bounds":
        """Bounds covering a whole ``width`` x ``height`` buffer."""
        return cls(0.0, 0.0, float(width), float(height))

    @classmethod
    def from_corners(cls, left: float, top: float, right: float, bottom: float) -> "Bounds":
        return cls(
            float(left),
            float(top),
            max(0.0, float(right) - float(left)),
            max(0.0, float(bottom) - float(top)),
        )

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def union(self, other: "Bounds") -> "Bounds":
        return Bounds.from_corners(
            min(self.x, other.x),
            min(self.y, other.y),
            max(self.right, other.right),
            max(self.bottom, other.bottom),
        )

    def intersection(self, other: "Bounds") -> "Bounds":
        """Overlap of two rectangles; degenerate (zero-sized) when disjoint."""
        left = max(self.x, other.x)
        top = max(self.y, other.y)
        return Bounds.from_corners(
            left,
            top,
            max(left, min(self.right, other.right)),
            max(top, min(self.bottom, other.bottom)),
        )

    def grow(self, amount: float) -> "Bounds":
        return Bounds(
            self.x - amount,
            self.y - amount,
            self.width + amount * 2,
            self.height + amount * 2,
        )

    def shrink(self, amount: float) -> "Bounds":
        return Bounds(
            self.x + amount,
            self.y + amount,
            max(0.0, self.width - amount * 2),
            max(0.0, self.height - amount * 2),
        )

    def clip(self, width: int, height: int) -> "Bounds":
        """Clip to the ``[0, width) x [0, height)`` buffer extent."""
        return self.intersection(Bounds.full(width, height))

    def pixel_span(self) -> Tuple[int, int, int, int]:
        """Integer ``(x0, y0, x1, y1)`` covering every cell the rectangle touches."""
        return (
            int(math.floor(self.x)),
            int(math.floor(self.y)),
            int(math.ceil(self.right)),
            int(math.ceil(self.bottom)),
        )

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: Dict[str, float]) -> "Bounds":
        return cls(
            float(data["x"]),
            float(data["y"]),
            float(data["width"]),
            float(data["height"]),
        )
