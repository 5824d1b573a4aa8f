"""View-space to image-space coordinate mapping.

The pointer reports positions in view space (after the editor's pan/zoom);
masks are indexed in the reference image's pixel space. The mapping is a pure
per-axis scale plus offset derived from the image's natural size and the
rectangle it is currently displayed in.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .geometry import Bounds


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CoordinateMapper:
    """
    Scale/offset pair relating view space to image space.

    ``image = (view - display_origin) * scale`` on each axis. No clamping is
    performed; out-of-buffer results are clipped by the rasterizer.

    Attributes
    ----------
    scale_x, scale_y:
        Image pixels per view unit (``image_width / display_width``).
    display_left, display_top:
        View-space origin of the displayed image.
    fallback:
        True when the mapper was built without a usable reference image and
        is acting as the identity. Callers may surface this as a warning.
    """

    scale_x: float = 1.0
    scale_y: float = 1.0
    display_left: float = 0.0
    display_top: float = 0.0
    fallback: bool = False

    @classmethod
    def identity(cls, fallback: bool = False) -> "CoordinateMapper":
        return cls(fallback=fallback)

    @classmethod
    def from_reference(
        cls,
        image_size: Optional[Tuple[float, float]],
        display_rect: Optional[Bounds],
    ) -> "CoordinateMapper":
        """
        Build a mapper from a reference image and its displayed rectangle.

        Parameters
        ----------
        image_size:
            Natural ``(width, height)`` of the reference image in pixels, or
            ``None`` when no reference image exists.
        display_rect:
            Rectangle the image currently occupies in view space.

        Returns
        -------
        CoordinateMapper
            The scale/offset mapper, or an identity mapper flagged with
            ``fallback=True`` when no usable reference is available.
        """
        if image_size is None or display_rect is None:
            logger.warning("No reference image for coordinate mapping; using identity transform")
            return cls.identity(fallback=True)

        image_width, image_height = float(image_size[0]), float(image_size[1])
        if display_rect.width <= 0 or display_rect.height <= 0:
            logger.warning(
                "Reference image has a degenerate display rect %s; using identity transform",
                display_rect,
            )
            return cls.identity(fallback=True)

        return cls(
            scale_x=image_width / display_rect.width,
            scale_y=image_height / display_rect.height,
            display_left=float(display_rect.x),
            display_top=float(display_rect.y),
        )

    # ------------------------------------------------------------------
    def is_identity(self) -> bool:
        return (
            self.scale_x == 1.0
            and self.scale_y == 1.0
            and self.display_left == 0.0
            and self.display_top == 0.0
        )

    def to_image_point(self, x: float, y: float) -> Tuple[float, float]:
        return (x - self.display_left) * self.scale_x, (y - self.display_top) * self.scale_y

    def to_image_rect(self, rect: Bounds) -> Bounds:
        left, top = self.to_image_point(rect.x, rect.y)
        return Bounds(left, top, rect.width * self.scale_x, rect.height * self.scale_y)

    def to_image_lengths(self, dx: float, dy: float) -> Tuple[float, float]:
        """Scale a view-space extent (e.g. ellipse radii) into image space."""
        return dx * self.scale_x, dy * self.scale_y

    def to_view_point(self, x: float, y: float) -> Tuple[float, float]:
        """Inverse of :meth:`to_image_point`."""
        self._require_invertible()
        return x / self.scale_x + self.display_left, y / self.scale_y + self.display_top

    def to_view_rect(self, rect: Bounds) -> Bounds:
        self._require_invertible()
        left, top = self.to_view_point(rect.x, rect.y)
        return Bounds(left, top, rect.width / self.scale_x, rect.height / self.scale_y)

    def matrix(self) -> np.ndarray:
        """2x3 affine matrix mapping view space to image space."""
        return np.array(
            [
                [self.scale_x, 0.0, -self.display_left * self.scale_x],
                [0.0, self.scale_y, -self.display_top * self.scale_y],
            ],
            dtype=np.float64,
        )

    def _require_invertible(self) -> None:
        if self.scale_x == 0 or self.scale_y == 0 or not (
            math.isfinite(self.scale_x) and math.isfinite(self.scale_y)
        ):
            raise ValueError(
                f"Coordinate mapping is not invertible (scale {self.scale_x}, {self.scale_y})"
            )
