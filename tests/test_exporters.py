import json

import cv2
import numpy as np
import pytest

from marquee import (
    MaskBuffer,
    export_mask_png,
    export_outline_json,
    export_selected_pixels_png,
    load_mask_png,
    outline_to_svg_path,
)


def test_mask_png_round_trip(tmp_path, manager):
    manager.create_ellipse(60, 60, 30, 20)
    manager.feather(3)
    path = export_mask_png(manager.get_selection(), tmp_path / "mask.png")
    assert path.exists()
    assert load_mask_png(path) == manager.get_selection().mask


def test_empty_mask_cannot_be_exported(tmp_path):
    with pytest.raises(ValueError):
        export_mask_png(MaskBuffer.zeros(0, 0), tmp_path / "empty.png")


def test_load_missing_mask(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_mask_png(tmp_path / "missing.png")


def test_selected_pixels_png_keeps_rgba_order(tmp_path, manager, rgba_image):
    manager.create_rectangle(10, 10, 6, 4)
    patch = manager.get_selected_pixels(rgba_image)
    path = export_selected_pixels_png(patch, tmp_path / "patch.png")
    written = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    assert written.shape == (4, 6, 4)
    assert tuple(written[0, 0]) == (30, 20, 10, 200)


def test_selected_pixels_png_rejects_non_rgba(tmp_path):
    with pytest.raises(ValueError):
        export_selected_pixels_png(np.zeros((4, 4, 3), dtype=np.uint8), tmp_path / "x.png")


def test_outline_json(tmp_path, manager):
    manager.create_rectangle(10, 10, 20, 20)
    path = export_outline_json(
        manager.get_outline(), tmp_path / "outline.json", manager.get_selection(), {"layer": "a"}
    )
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["outlines"] == [
        {"closed": True, "points": [[10.0, 10.0], [30.0, 10.0], [30.0, 30.0], [10.0, 30.0]]}
    ]
    assert payload["bounds"] == {"x": 10.0, "y": 10.0, "width": 20.0, "height": 20.0}
    assert payload["size"] == [128, 128]
    assert payload["metadata"] == {"layer": "a"}


def test_outline_to_svg_path(manager):
    manager.create_rectangle(10, 10, 20, 20)
    assert outline_to_svg_path(manager.get_outline()) == "M 10 10 L 30 10 L 30 30 L 10 30 Z"
    manager.create_rectangle(0.5, 0, 2, 1, "add")
    traced = outline_to_svg_path(manager.get_outline())
    assert "Z" not in traced
    assert traced.count("M ") == len(manager.get_outline())
