"""
Boolean combination and morphology on selection masks.

Every function here is pure: it reads the input selection's mask and returns a
new :class:`Selection` around a freshly allocated buffer. Only the alpha channel
takes part; there is no colour in a mask.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence, Tuple, Union

import cv2
import numpy as np
from scipy import ndimage

from .geometry import Bounds
from .mask import SELECTED, UNSELECTED, MaskBuffer
from .path import apply_affine
from .selection import CombinationMode, Selection
from .shapes import RectangleShape, matrix_tuple


_BOX_KERNEL = np.ones((3, 3), dtype=np.int32)


def _pixel_radius(value: float) -> int:
    """Whole-pixel neighbourhood radius; ``0`` for non-positive input."""
    if not math.isfinite(value) or value <= 0:
        return 0
    return int(math.ceil(value))


def _square_kernel(radius: int) -> np.ndarray:
    size = radius * 2 + 1
    return np.ones((size, size), dtype=np.uint8)


def _has_cells(selection: Selection) -> bool:
    return selection.width > 0 and selection.height > 0


# ---------------------------------------------------------------------------
# Combination
# ---------------------------------------------------------------------------


def combine_bounds(existing: Bounds, incoming: Bounds, mode: Union[CombinationMode, str]) -> Bounds:
    """
    Bounds of a combined selection.

    ``add`` takes the union box, ``subtract`` keeps the existing bounds
    (subtraction never grows a selection) and ``intersect`` takes the overlap,
    which is zero-sized when the inputs are disjoint.
    """
    mode = CombinationMode.coerce(mode)
    if mode is CombinationMode.ADD:
        return existing.union(incoming)
    if mode is CombinationMode.SUBTRACT:
        return existing
    if mode is CombinationMode.INTERSECT:
        return existing.intersection(incoming)
    return incoming


def combine(
    existing: Optional[Selection],
    incoming: Selection,
    mode: Union[CombinationMode, str] = CombinationMode.REPLACE,
) -> Selection:
    """
    Merge ``incoming`` into ``existing`` cell by cell.

    Parameters
    ----------
    existing:
        Current selection, or ``None`` when nothing is selected.
    incoming:
        Freshly rasterized selection on the same canvas.
    mode:
        ``replace`` (or a missing ``existing``) returns ``incoming`` as is.
        Otherwise alpha combines as ``max`` (add), ``max(0, a - b)``
        (subtract) or ``min`` (intersect). The existing shape descriptor is
        kept as a hint but is no longer exact.

    Raises
    ------
    ValueError
        If the two masks were allocated for different canvas sizes.
    """
    mode = CombinationMode.coerce(mode)
    if mode is CombinationMode.REPLACE or existing is None:
        return incoming

    if existing.mask.size != incoming.mask.size:
        raise ValueError(
            f"Cannot combine masks of different sizes: {existing.mask.size} vs {incoming.mask.size}"
        )

    current = existing.mask.alpha
    other = incoming.mask.alpha
    if mode is CombinationMode.ADD:
        alpha = np.maximum(current, other)
    elif mode is CombinationMode.SUBTRACT:
        alpha = np.where(current > other, current - other, UNSELECTED).astype(np.uint8)
    else:
        alpha = np.minimum(current, other)

    return Selection(
        mask=MaskBuffer(alpha, copy=False),
        bounds=combine_bounds(existing.bounds, incoming.bounds, mode),
        shape=existing.shape,
        shape_exact=False,
    )


# ---------------------------------------------------------------------------
# Morphology
# ---------------------------------------------------------------------------


def expand(selection: Selection, pixels: float) -> Selection:
    """
    Dilate: a cell is selected when any cell within Chebyshev distance
    ``pixels`` has non-zero alpha. Bounds grow by the same amount, clipped
    to the buffer.
    """
    radius = _pixel_radius(pixels)
    if radius == 0 or not _has_cells(selection):
        return selection

    source = selection.mask.binary().astype(np.uint8)
    dilated = cv2.dilate(source, _square_kernel(radius), iterations=1)
    return selection.with_mask(
        MaskBuffer(dilated * SELECTED, copy=False),
        selection.bounds.grow(radius).clip(selection.width, selection.height),
    )


def contract(selection: Selection, pixels: float) -> Selection:
    """
    Erode: a cell stays selected only when every cell within Chebyshev
    distance ``pixels`` is selected. Cells beyond the buffer edge count as
    unselected. Bounds shrink by ``pixels`` and may become empty.
    """
    radius = _pixel_radius(pixels)
    if radius == 0 or not _has_cells(selection):
        return selection

    source = selection.mask.binary().astype(np.uint8)
    eroded = cv2.erode(
        source,
        _square_kernel(radius),
        iterations=1,
        borderType=cv2.BORDER_CONSTANT,
        borderValue=0,
    )
    return selection.with_mask(
        MaskBuffer(eroded * SELECTED, copy=False),
        selection.bounds.shrink(radius),
    )


def feather(selection: Selection, radius: float) -> Selection:
    """
    Soften edges with ``ceil(radius)`` passes of a 3x3 box blur.

    Each pass replaces a cell by the rounded mean of its in-buffer 3x3
    neighbourhood, so edge cells average fewer neighbours. Repeated box
    passes approximate a Gaussian; the box artefacts at large radii are
    part of the expected look.
    """
    iterations = _pixel_radius(radius)
    if iterations == 0 or not _has_cells(selection):
        return selection

    current = selection.mask.alpha.astype(np.int32)
    counts = ndimage.correlate(np.ones_like(current), _BOX_KERNEL, mode="constant", cval=0)
    for _ in range(iterations):
        sums = ndimage.correlate(current, _BOX_KERNEL, mode="constant", cval=0)
        # Integer form of round-half-up(sums / counts).
        current = (2 * sums + counts) // (2 * counts)

    return selection.with_mask(
        MaskBuffer(current.astype(np.uint8), copy=False),
        selection.bounds.grow(iterations).clip(selection.width, selection.height),
    )


def invert(selection: Optional[Selection], width: int, height: int) -> Selection:
    """
    ``alpha := 255 - alpha``; with no selection this is select-all.

    The result's bounds cover the whole buffer since an inverted selection
    has no compact bounding box in general.
    """
    if selection is None:
        return select_all(width, height)
    alpha = SELECTED - selection.mask.alpha
    return selection.with_mask(
        MaskBuffer(alpha, copy=False),
        selection.mask.full_bounds(),
    )


def select_all(width: int, height: int) -> Selection:
    return Selection(
        mask=MaskBuffer.full(width, height),
        bounds=Bounds.full(width, height),
        shape=RectangleShape(0.0, 0.0, float(width), float(height)),
        shape_exact=True,
    )


def border(selection: Selection, width: float) -> Selection:
    """Keep only the ring between the selection and its ``contract(width)``."""
    radius = _pixel_radius(width)
    if radius == 0 or not _has_cells(selection):
        return selection

    inner = contract(selection, radius).mask.alpha
    current = selection.mask.alpha
    alpha = np.where(current > inner, current - inner, UNSELECTED).astype(np.uint8)
    return selection.with_mask(MaskBuffer(alpha, copy=False))


def smooth(selection: Selection, radius: float) -> Selection:
    """Median-filter the alpha channel over a ``(2r+1)`` square window."""
    size = _pixel_radius(radius)
    if size == 0 or not _has_cells(selection):
        return selection

    smoothed = cv2.medianBlur(np.ascontiguousarray(selection.mask.alpha), size * 2 + 1)
    return selection.with_mask(MaskBuffer(smoothed, copy=False))


def transform(selection: Selection, matrix: Sequence[Sequence[float]]) -> Selection:
    """
    Warp the mask by a 2x3 affine matrix with bilinear sampling.

    Bounds become the box around the transformed corners of the old bounds.
    """
    affine = np.asarray(matrix_tuple(matrix), dtype=np.float64)
    if not _has_cells(selection):
        return selection

    warped = cv2.warpAffine(
        np.ascontiguousarray(selection.mask.alpha),
        affine,
        (selection.width, selection.height),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=0,
    )
    old = selection.bounds
    corners = np.array(
        [[old.x, old.y], [old.right, old.y], [old.x, old.bottom], [old.right, old.bottom]],
        dtype=np.float64,
    )
    moved = apply_affine(corners, affine)
    mins = moved.min(axis=0)
    maxs = moved.max(axis=0)
    return selection.with_mask(
        MaskBuffer(warped, copy=False),
        Bounds.from_corners(mins[0], mins[1], maxs[0], maxs[1]),
    )


# ---------------------------------------------------------------------------
# Colour-based selection
# ---------------------------------------------------------------------------


def _as_rgba(image: np.ndarray) -> np.ndarray:
    pixels = np.asarray(image)
    if pixels.ndim == 2:
        pixels = np.repeat(pixels[:, :, None], 3, axis=2)
    if pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
        raise ValueError(f"Expected an (H, W, 3|4) image, got shape {pixels.shape}")
    pixels = pixels.astype(np.int32)
    if pixels.shape[2] == 3:
        opaque = np.full(pixels.shape[:2] + (1,), SELECTED, dtype=np.int32)
        pixels = np.concatenate([pixels, opaque], axis=2)
    return pixels


def color_range(
    image: np.ndarray,
    seed: Tuple[float, float],
    tolerance: float,
    width: int,
    height: int,
    contiguous: bool = True,
) -> Optional[Selection]:
    """
    Select pixels similar in colour to the pixel under ``seed``.

    A pixel matches when both its RGB Euclidean distance and its absolute
    alpha difference to the seed pixel are at most ``tolerance``. With
    ``contiguous`` only the 4-connected region containing the seed is kept.

    Parameters
    ----------
    image:
        ``(H, W, 4)`` RGBA, ``(H, W, 3)`` RGB or ``(H, W)`` grey pixels,
        placed at the image-space origin.
    seed:
        Image-space point; the nearest pixel is sampled.
    tolerance:
        Distance threshold in 8-bit channel units.
    width, height:
        Canvas buffer size of the resulting mask.

    Returns
    -------
    Selection or None
        ``None`` when the seed falls outside the image or
        ``tolerance`` is negative or not finite. The result carries no shape
        descriptor and its bounds are the tight non-zero extent.
    """
    pixels = _as_rgba(image)
    if not math.isfinite(tolerance) or tolerance < 0:
        return None
    seed_x, seed_y = seed
    if not (math.isfinite(seed_x) and math.isfinite(seed_y)):
        return None
    col = int(math.floor(seed_x + 0.5))
    row = int(math.floor(seed_y + 0.5))
    if not (0 <= row < pixels.shape[0] and 0 <= col < pixels.shape[1]):
        return None

    target = pixels[row, col]
    delta = pixels - target
    rgb_distance = np.sqrt(np.sum(delta[:, :, :3].astype(np.float64) ** 2, axis=2))
    matches = (rgb_distance <= tolerance) & (np.abs(delta[:, :, 3]) <= tolerance)
    if not matches[row, col]:
        return None

    if contiguous:
        labels, _ = ndimage.label(matches)
        matches = labels == labels[row, col]

    alpha = np.zeros((int(height), int(width)), dtype=np.uint8)
    rows = min(alpha.shape[0], matches.shape[0])
    cols = min(alpha.shape[1], matches.shape[1])
    alpha[:rows, :cols][matches[:rows, :cols]] = SELECTED
    mask = MaskBuffer(alpha, copy=False)
    return Selection(mask=mask, bounds=mask.nonzero_bounds())
