"""
Selection lifecycle and public API.

A :class:`SelectionManager` owns one canvas-sized buffer extent and at most
one live :class:`~marquee.core.selection.Selection`. Gestures arrive in view
space, are mapped into image space, rasterized, combined with the current
selection and stored. Every stored selection is immutable, so a value
returned by :meth:`SelectionManager.get_selection` can be kept by an undo
stack without copying.
"""

from __future__ import annotations

import logging
import math
from typing import Any, List, Optional, Sequence, Tuple, Union

import numpy as np

from .config import EngineConfig
from .core import algebra
from .core.coordinates import CoordinateMapper
from .core.geometry import Bounds
from .core.mask import SELECTED, MaskBuffer
from .core.path import PathDataError, compose_affine
from .core.rasterizer import ShapeRasterizer
from .core.selection import CombinationMode, Selection
from .core.shapes import FillRule, PathTransform, ShapeDescriptor
from .core.tracer import BoundaryTracer, OutlinePath


logger = logging.getLogger(__name__)

Mode = Union[CombinationMode, str]


class SelectionManager:
    """
    Current selection of one canvas.

    Parameters
    ----------
    width, height:
        Canvas buffer size. Defaults come from ``config.canvas``.
    config:
        Engine configuration; built-in defaults when omitted.
    mapper:
        View-to-image mapping. Without one, view coordinates are used as
        image coordinates and :attr:`mapping_fallback` is true.
    """

    def __init__(
        self,
        width: Optional[int] = None,
        height: Optional[int] = None,
        config: Optional[EngineConfig] = None,
        mapper: Optional[CoordinateMapper] = None,
    ):
        self.config = config or EngineConfig()
        self._width = int(self.config.canvas.width if width is None else width)
        self._height = int(self.config.canvas.height if height is None else height)
        self._rasterizer = ShapeRasterizer(
            self._width, self._height, curve_segments=self.config.outline.curve_segments
        )
        self._tracer = BoundaryTracer(
            threshold=self.config.selection.threshold,
            prefer_vector=self.config.outline.prefer_vector,
            ellipse_segments=self.config.outline.ellipse_segments,
            curve_segments=self.config.outline.curve_segments,
        )
        self._mapper = mapper or CoordinateMapper.identity(fallback=True)
        self._selection: Optional[Selection] = None
        self._outline: Optional[List[OutlinePath]] = None

    # ------------------------------------------------------------------
    # Canvas and mapping
    # ------------------------------------------------------------------
    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def threshold(self) -> int:
        return self.config.selection.threshold

    @property
    def mapper(self) -> CoordinateMapper:
        return self._mapper

    @property
    def mapping_fallback(self) -> bool:
        """True while gestures are mapped with the identity fallback."""
        return self._mapper.fallback

    def set_mapper(self, mapper: CoordinateMapper) -> None:
        self._mapper = mapper

    def set_reference(
        self,
        image_size: Optional[Tuple[float, float]],
        display_rect: Optional[Bounds],
    ) -> CoordinateMapper:
        """Rebuild the mapping after the reference image moved or zoomed."""
        self._mapper = CoordinateMapper.from_reference(image_size, display_rect)
        return self._mapper

    def resize_canvas(self, width: int, height: int) -> None:
        """
        Change the buffer extent. A selection allocated for the old size is
        cleared since its cells no longer line up with the new buffer.
        """
        width, height = int(width), int(height)
        if (width, height) == (self._width, self._height):
            return
        self._width, self._height = width, height
        self._rasterizer = ShapeRasterizer(
            width, height, curve_segments=self.config.outline.curve_segments
        )
        if self._selection is not None:
            logger.warning(
                "Canvas resized to %dx%d; clearing selection sized %dx%d",
                width,
                height,
                self._selection.width,
                self._selection.height,
            )
            self._store(None)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------
    def create_rectangle(
        self, x: float, y: float, width: float, height: float, mode: Mode = CombinationMode.REPLACE
    ) -> Optional[Selection]:
        """Select a view-space rectangle."""
        mode = CombinationMode.coerce(mode)
        rect = self._mapper.to_image_rect(Bounds(x, y, width, height))
        incoming = self._rasterizer.rectangle(rect.x, rect.y, rect.width, rect.height)
        return self._apply(incoming, mode)

    def create_ellipse(
        self, cx: float, cy: float, rx: float, ry: float, mode: Mode = CombinationMode.REPLACE
    ) -> Optional[Selection]:
        """Select a view-space ellipse. Non-positive radii leave the selection unchanged."""
        mode = CombinationMode.coerce(mode)
        icx, icy = self._mapper.to_image_point(cx, cy)
        irx, iry = self._mapper.to_image_lengths(rx, ry)
        incoming = self._rasterizer.ellipse(icx, icy, irx, iry)
        if incoming is None:
            return self._selection
        return self._apply(incoming, mode)

    def create_from_path(
        self,
        path_data: Any,
        transform: Optional[PathTransform] = None,
        fill_rule: FillRule = "nonzero",
        mode: Mode = CombinationMode.REPLACE,
    ) -> Optional[Selection]:
        """
        Select the filled interior of a vector path.

        Parameters
        ----------
        path_data:
            SVG path string or command list in the path's local space.
        transform:
            Object transform (position, rotation, scale) placing the path in
            view space.
        fill_rule:
            ``"nonzero"`` or ``"evenodd"``.
        mode:
            Combination mode.

        Malformed path data is logged and leaves the selection unchanged.
        """
        mode = CombinationMode.coerce(mode)
        local = transform.matrix() if transform is not None else np.eye(2, 3)
        matrix = compose_affine(self._mapper.matrix(), local)
        try:
            incoming = self._rasterizer.path(path_data, matrix=matrix, fill_rule=fill_rule)
        except PathDataError as exc:
            logger.warning("Ignoring unparseable path data: %s", exc)
            return self._selection
        return self._apply(incoming, mode)

    def create_from_color(
        self,
        image: np.ndarray,
        x: float,
        y: float,
        tolerance: float = 32.0,
        contiguous: bool = True,
        mode: Mode = CombinationMode.REPLACE,
    ) -> Optional[Selection]:
        """Magic wand: select pixels similar to the one under view point ``(x, y)``."""
        mode = CombinationMode.coerce(mode)
        seed = self._mapper.to_image_point(x, y)
        incoming = algebra.color_range(
            image, seed, tolerance, self._width, self._height, contiguous=contiguous
        )
        if incoming is None:
            logger.debug("Colour selection at %s ignored (seed outside the image or invalid tolerance)", seed)
            return self._selection
        return self._apply(incoming, mode)

    # ------------------------------------------------------------------
    # Whole-selection operations
    # ------------------------------------------------------------------
    def select_all(self) -> Selection:
        return self._store(algebra.select_all(self._width, self._height))

    def clear(self) -> None:
        self._store(None)

    def dispose(self) -> None:
        """Release the mask buffer and any cached outline."""
        self.clear()

    def invert(self) -> Selection:
        return self._store(algebra.invert(self._selection, self._width, self._height))

    def expand(self, pixels: float) -> Optional[Selection]:
        return self._morph(algebra.expand, pixels, "expand")

    def contract(self, pixels: float) -> Optional[Selection]:
        return self._morph(algebra.contract, pixels, "contract")

    def feather(self, radius: float) -> Optional[Selection]:
        return self._morph(algebra.feather, radius, "feather")

    def border(self, width: float) -> Optional[Selection]:
        return self._morph(algebra.border, width, "border")

    def smooth(self, radius: float) -> Optional[Selection]:
        return self._morph(algebra.smooth, radius, "smooth")

    def transform(self, matrix: Sequence[Sequence[float]]) -> Optional[Selection]:
        """Warp the selection by an image-space 2x3 affine matrix."""
        if self._selection is None:
            return None
        return self._store(algebra.transform(self._selection, matrix))

    def restore_selection(
        self,
        mask: Union[MaskBuffer, np.ndarray],
        bounds: Bounds,
        shape: Optional[ShapeDescriptor] = None,
        shape_exact: bool = False,
    ) -> bool:
        """
        Rehydrate a previously captured selection.

        Returns
        -------
        bool
            ``True`` when the mask matched the canvas and was restored as is;
            ``False`` when a size mismatch forced a resize or clear (governed
            by ``config.selection.size_mismatch``).
        """
        buffer = mask if isinstance(mask, MaskBuffer) else MaskBuffer(mask)
        if buffer.size == (self._width, self._height):
            self._store(Selection(mask=buffer, bounds=bounds, shape=shape, shape_exact=shape_exact))
            return True

        policy = self.config.selection.size_mismatch
        logger.warning(
            "Restored mask is %dx%d but the canvas is %dx%d; applying '%s' policy",
            buffer.width,
            buffer.height,
            self._width,
            self._height,
            policy,
        )
        if policy == "clear":
            self._store(None)
            return False

        alpha = np.zeros((self._height, self._width), dtype=np.uint8)
        rows = min(self._height, buffer.height)
        cols = min(self._width, buffer.width)
        alpha[:rows, :cols] = buffer.alpha[:rows, :cols]
        self._store(
            Selection(
                mask=MaskBuffer(alpha, copy=False),
                bounds=bounds.clip(self._width, self._height),
                shape=shape,
                shape_exact=False,
            )
        )
        return False

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def has_selection(self) -> bool:
        return self._selection is not None

    def get_selection(self) -> Optional[Selection]:
        return self._selection

    def get_bounds(self) -> Optional[Bounds]:
        return None if self._selection is None else self._selection.bounds

    def get_tight_bounds(self) -> Optional[Bounds]:
        return None if self._selection is None else self._selection.tight_bounds()

    def is_pixel_selected(self, x: float, y: float) -> bool:
        """Whether the image-space point's nearest cell has alpha above the threshold."""
        if self._selection is None:
            return False
        return self._selection.mask.is_selected(x, y, self.threshold)

    def selection_value(self, x: float, y: float) -> float:
        """Selection strength in ``[0, 1]`` at the nearest cell."""
        if self._selection is None:
            return 0.0
        return self._selection.mask.alpha_at(x, y) / SELECTED

    def selected_pixel_count(self) -> int:
        if self._selection is None:
            return 0
        return self._selection.mask.count_selected(self.threshold)

    def get_selected_pixels(self, source: np.ndarray) -> Optional[np.ndarray]:
        """
        Copy the selected part of ``source`` out as an RGBA patch.

        The patch covers the selection bounds; its alpha is the source alpha
        scaled by ``mask / 255`` so feathered edges fade out. Cells outside
        the source or the buffer are transparent.

        Parameters
        ----------
        source:
            ``(H, W, 4)`` RGBA or ``(H, W, 3)`` RGB uint8 image placed at the
            image-space origin.
        """
        if self._selection is None:
            return None
        pixels = np.asarray(source)
        if pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
            raise ValueError(f"Expected an (H, W, 3|4) image, got shape {pixels.shape}")
        if pixels.shape[2] == 3:
            opaque = np.full(pixels.shape[:2] + (1,), SELECTED, dtype=np.uint8)
            pixels = np.concatenate([pixels.astype(np.uint8), opaque], axis=2)

        x0, y0, x1, y1 = self._selection.bounds.pixel_span()
        patch = np.zeros((max(0, y1 - y0), max(0, x1 - x0), 4), dtype=np.uint8)

        left, top = max(x0, 0), max(y0, 0)
        right = min(x1, pixels.shape[1], self._selection.width)
        bottom = min(y1, pixels.shape[0], self._selection.height)
        if left >= right or top >= bottom:
            return patch

        region = pixels[top:bottom, left:right].astype(np.uint8)
        weights = self._selection.mask.alpha[top:bottom, left:right].astype(np.float64) / SELECTED
        alpha = np.round(region[:, :, 3] * weights).astype(np.uint8)
        out = region.copy()
        out[:, :, 3] = alpha
        out[alpha == 0] = 0
        patch[top - y0:bottom - y0, left - x0:right - x0] = out
        return patch

    def get_outline(self) -> List[OutlinePath]:
        """Outline polylines of the current selection, cached until it changes."""
        if self._outline is None:
            self._outline = self._tracer.outline_for(self._selection)
        return self._outline

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _store(self, selection: Optional[Selection]) -> Optional[Selection]:
        self._selection = selection
        self._outline = None
        return selection

    def _apply(self, incoming: Selection, mode: CombinationMode) -> Selection:
        return self._store(algebra.combine(self._selection, incoming, mode))

    def _clamp_radius(self, value: float, operation: str) -> float:
        limit = self.config.selection.max_morphology_radius
        if math.isfinite(value) and value > limit:
            logger.warning("%s radius %s exceeds the limit; clamping to %d", operation, value, limit)
            return float(limit)
        return value

    def _morph(self, operation, value: float, name: str) -> Optional[Selection]:
        if self._selection is None:
            return None
        return self._store(operation(self._selection, self._clamp_radius(value, name)))
