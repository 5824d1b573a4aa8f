"""
Selection persistence for undo stacks and save files.

The payload is plain JSON: the mask travels as base64 of its flat row-major
byte array next to bounds and the optional shape descriptor, so a round trip
reproduces the selection exactly.
"""

from __future__ import annotations

import base64
import binascii
import json
from pathlib import Path
from typing import Any, Dict, Union

from .core.geometry import Bounds
from .core.mask import MaskBuffer
from .core.selection import Selection
from .core.shapes import shape_from_dict, shape_to_dict

PAYLOAD_VERSION = 1


class SelectionDecodeError(ValueError):
    """Raised when a persisted selection payload is corrupt or unsupported."""


def selection_to_dict(selection: Selection) -> Dict[str, Any]:
    return {
        "version": PAYLOAD_VERSION,
        "width": selection.width,
        "height": selection.height,
        "mask": base64.b64encode(selection.mask.to_bytes()).decode("ascii"),
        "bounds": selection.bounds.to_dict(),
        "shape": shape_to_dict(selection.shape),
        "shape_exact": bool(selection.shape_exact),
    }


def selection_from_dict(data: Dict[str, Any]) -> Selection:
    """
    Rebuild a :class:`Selection` from :func:`selection_to_dict` output.

    Raises
    ------
    SelectionDecodeError
        If the payload has an unknown version, missing keys, invalid base64
        or a mask whose length does not match its dimensions.
    """
    if not isinstance(data, dict):
        raise SelectionDecodeError(f"Expected a mapping, got {type(data).__name__}")
    version = data.get("version")
    if version != PAYLOAD_VERSION:
        raise SelectionDecodeError(f"Unsupported selection payload version: {version!r}")

    try:
        raw = base64.b64decode(data["mask"], validate=True)
        mask = MaskBuffer.from_bytes(raw, data["width"], data["height"])
        bounds = Bounds.from_dict(data["bounds"])
        shape = shape_from_dict(data.get("shape"))
    except KeyError as exc:
        raise SelectionDecodeError(f"Selection payload is missing {exc}") from exc
    except (binascii.Error, TypeError, ValueError) as exc:
        raise SelectionDecodeError(f"Invalid selection payload: {exc}") from exc

    return Selection(
        mask=mask,
        bounds=bounds,
        shape=shape,
        shape_exact=bool(data.get("shape_exact", False)) and shape is not None,
    )


def dump_selection(selection: Selection, output_path: Union[str, Path]) -> Path:
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        json.dump(selection_to_dict(selection), handle)
    return path


def load_selection(path: Union[str, Path]) -> Selection:
    source = Path(path)
    if not source.exists():
        raise FileNotFoundError(f"Selection file not found: {source}")
    with source.open("r", encoding="utf-8") as handle:
        try:
            data = json.load(handle)
        except json.JSONDecodeError as exc:
            raise SelectionDecodeError(f"Selection file is not valid JSON: {source}") from exc
    return selection_from_dict(data)
