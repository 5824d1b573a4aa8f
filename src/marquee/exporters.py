"""Output exporters for selection artefacts.

Provides helpers for writing masks as grayscale PNGs, copied-out pixel
patches as RGBA PNGs, outline polylines as JSON and outline SVG path data
for vector renderers.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union

import cv2
import numpy as np

from .core.mask import MaskBuffer
from .core.selection import Selection
from .core.tracer import OutlinePath


def _mask_of(source: Union[Selection, MaskBuffer]) -> MaskBuffer:
    return source.mask if isinstance(source, Selection) else source


def export_mask_png(source: Union[Selection, MaskBuffer], output_path: Path) -> Path:
    """
    Save the alpha channel as an 8-bit grayscale PNG (white = selected).
    """
    mask = _mask_of(source)
    if mask.width == 0 or mask.height == 0:
        raise ValueError("Cannot export an empty mask buffer")
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    if not cv2.imwrite(str(output_path), np.ascontiguousarray(mask.alpha)):
        raise IOError(f"Failed to write mask image to {output_path}")
    return output_path


def load_mask_png(path: Path) -> MaskBuffer:
    """Read a grayscale mask image written by :func:`export_mask_png`."""
    image = cv2.imread(str(path), cv2.IMREAD_GRAYSCALE)
    if image is None:
        raise FileNotFoundError(f"Unable to read mask image: {path}")
    return MaskBuffer(image, copy=False)


def export_selected_pixels_png(patch: np.ndarray, output_path: Path) -> Path:
    """
    Save an RGBA patch (as returned by ``SelectionManager.get_selected_pixels``).
    """
    if patch.ndim != 3 or patch.shape[2] != 4:
        raise ValueError("Expected an RGBA patch with shape (height, width, 4)")
    if patch.shape[0] == 0 or patch.shape[1] == 0:
        raise ValueError("Cannot export an empty patch")
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    bgra = cv2.cvtColor(np.ascontiguousarray(patch, dtype=np.uint8), cv2.COLOR_RGBA2BGRA)
    if not cv2.imwrite(str(output_path), bgra):
        raise IOError(f"Failed to write patch image to {output_path}")
    return output_path


def export_outline_json(
    outlines: Sequence[OutlinePath],
    output_path: Path,
    selection: Optional[Selection] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Path:
    """
    Write outline polylines to JSON, optionally with the selection bounds.
    """
    payload: Dict[str, Any] = {
        "outlines": [
            {"closed": bool(outline.closed), "points": outline.to_list()} for outline in outlines
        ],
    }
    if selection is not None:
        payload["bounds"] = selection.bounds.to_dict()
        payload["size"] = [selection.width, selection.height]
    if metadata:
        payload["metadata"] = metadata

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2)
    return output_path


def _format_number(value: float) -> str:
    text = f"{float(value):.3f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def outline_to_svg_path(outlines: Sequence[OutlinePath]) -> str:
    """
    Convert outline polylines into SVG path data (``M``/``L``/``Z``).
    """
    parts = []
    for outline in outlines:
        points = np.asarray(outline.points)
        if points.shape[0] == 0:
            continue
        commands = [f"M {_format_number(points[0, 0])} {_format_number(points[0, 1])}"]
        commands.extend(f"L {_format_number(x)} {_format_number(y)}" for x, y in points[1:])
        if outline.closed:
            commands.append("Z")
        parts.append(" ".join(commands))
    return " ".join(parts)
