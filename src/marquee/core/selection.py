"""Selection aggregate and combination modes."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Union

from .geometry import Bounds
from .mask import MaskBuffer
from .shapes import ShapeDescriptor


class CombinationMode(str, Enum):
    """How an incoming mask merges with the current selection."""

    REPLACE = "replace"
    ADD = "add"
    SUBTRACT = "subtract"
    INTERSECT = "intersect"

    @classmethod
    def coerce(cls, value: Union["CombinationMode", str]) -> "CombinationMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(mode.value for mode in cls)
            raise ValueError(f"Unknown combination mode {value!r}; expected one of: {allowed}") from None


@dataclass(frozen=True)
class Selection:
    """
    Current selection state: mask, cached bounds and optional shape.

    ``shape_exact`` records whether ``shape`` still describes the mask
    exactly. It is only true for a primitive created in replace mode (or
    select-all); after any combination or morphology the descriptor is kept
    as a hint and outlines fall back to pixel tracing.
    """

    mask: MaskBuffer
    bounds: Bounds
    shape: Optional[ShapeDescriptor] = None
    shape_exact: bool = False

    @property
    def width(self) -> int:
        return self.mask.width

    @property
    def height(self) -> int:
        return self.mask.height

    def with_mask(self, mask: MaskBuffer, bounds: Optional[Bounds] = None) -> "Selection":
        """Derived selection whose shape descriptor is no longer exact."""
        return replace(
            self,
            mask=mask,
            bounds=self.bounds if bounds is None else bounds,
            shape_exact=False,
        )

    def tight_bounds(self) -> Bounds:
        return self.mask.nonzero_bounds()
