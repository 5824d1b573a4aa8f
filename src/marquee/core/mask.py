"""Single-channel alpha buffer backing every selection."""

from __future__ import annotations

import math
from typing import Union

import numpy as np

from .geometry import Bounds

UNSELECTED = 0
SELECTED = 255

# Majority threshold: alpha strictly above this counts as "inside".
DEFAULT_THRESHOLD = 128


class MaskBuffer:
    """
    Dense ``(height, width)`` uint8 alpha buffer.

    ``0`` is unselected, ``255`` fully selected and anything in between a
    partial (feathered) selection. The wrapped array is marked read-only:
    operations that change selected-ness always build a new buffer, so a
    ``MaskBuffer`` held by an undo snapshot never changes underneath it.

    Parameters
    ----------
    alpha:
        2-D array of alpha values. Non-uint8 input is clipped to
        ``[0, 255]`` and converted.
    copy:
        Copy ``alpha`` before freezing it. Pass ``False`` only for arrays
        nothing else references.
    """

    __slots__ = ("_alpha",)

    def __init__(self, alpha: np.ndarray, copy: bool = True) -> None:
        array = np.asarray(alpha)
        if array.ndim != 2:
            raise ValueError(f"Mask alpha must be 2-D, got shape {array.shape}")
        if array.dtype == np.bool_:
            array = array.astype(np.uint8) * SELECTED
        elif array.dtype != np.uint8:
            array = np.clip(np.rint(array), UNSELECTED, SELECTED).astype(np.uint8)
        elif copy:
            array = array.copy()
        array = np.ascontiguousarray(array)
        array.setflags(write=False)
        self._alpha = array

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    @classmethod
    def zeros(cls, width: int, height: int) -> "MaskBuffer":
        return cls(np.zeros((int(height), int(width)), dtype=np.uint8), copy=False)

    @classmethod
    def full(cls, width: int, height: int, value: int = SELECTED) -> "MaskBuffer":
        return cls(np.full((int(height), int(width)), value, dtype=np.uint8), copy=False)

    @classmethod
    def from_bytes(cls, data: Union[bytes, bytearray, memoryview], width: int, height: int) -> "MaskBuffer":
        """Rebuild a buffer from its flat row-major byte representation."""
        width, height = int(width), int(height)
        if width < 0 or height < 0:
            raise ValueError(f"Mask dimensions must be non-negative, got {width}x{height}")
        raw = np.frombuffer(bytes(data), dtype=np.uint8)
        if raw.size != width * height:
            raise ValueError(
                f"Mask byte length {raw.size} does not match {width}x{height} = {width * height}"
            )
        return cls(raw.reshape((height, width)), copy=True)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------
    @property
    def alpha(self) -> np.ndarray:
        """Read-only ``(height, width)`` view of the alpha values."""
        return self._alpha

    @property
    def width(self) -> int:
        return int(self._alpha.shape[1])

    @property
    def height(self) -> int:
        return int(self._alpha.shape[0])

    @property
    def size(self) -> tuple[int, int]:
        """``(width, height)`` of the buffer."""
        return self.width, self.height

    def to_array(self) -> np.ndarray:
        """Writable copy of the alpha values."""
        return self._alpha.copy()

    def to_bytes(self) -> bytes:
        return self._alpha.tobytes()

    def full_bounds(self) -> Bounds:
        return Bounds.full(self.width, self.height)

    # ------------------------------------------------------------------
    # Sampling
    # ------------------------------------------------------------------
    def contains(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def alpha_at(self, x: float, y: float) -> int:
        """Alpha at the nearest integer cell; ``0`` outside the buffer."""
        if not (math.isfinite(x) and math.isfinite(y)):
            return UNSELECTED
        col = int(math.floor(x + 0.5))
        row = int(math.floor(y + 0.5))
        if not self.contains(col, row):
            return UNSELECTED
        return int(self._alpha[row, col])

    def is_selected(self, x: float, y: float, threshold: int = DEFAULT_THRESHOLD) -> bool:
        return self.alpha_at(x, y) > threshold

    def binary(self, threshold: int = UNSELECTED) -> np.ndarray:
        """Boolean array of cells with alpha strictly above ``threshold``."""
        return self._alpha > threshold

    def count_selected(self, threshold: int = UNSELECTED) -> int:
        return int(np.count_nonzero(self._alpha > threshold))

    def is_empty(self) -> bool:
        return not self._alpha.any()

    def nonzero_bounds(self) -> Bounds:
        """Tight bounding box of every non-zero cell (empty bounds if none)."""
        rows = np.flatnonzero(self._alpha.any(axis=1))
        if rows.size == 0:
            return Bounds()
        cols = np.flatnonzero(self._alpha.any(axis=0))
        return Bounds(
            float(cols[0]),
            float(rows[0]),
            float(cols[-1] - cols[0] + 1),
            float(rows[-1] - rows[0] + 1),
        )

    # ------------------------------------------------------------------
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MaskBuffer):
            return NotImplemented
        return self._alpha.shape == other._alpha.shape and bool(
            np.array_equal(self._alpha, other._alpha)
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"MaskBuffer(width={self.width}, height={self.height}, selected={self.count_selected()})"
