import math

import numpy as np
import pytest

from marquee import Bounds, EllipseShape, PathShape, RectangleShape
from marquee.core.shapes import IDENTITY_MATRIX


def test_rectangle_covers_floor_to_ceil_cells(rasterizer):
    selection = rasterizer.rectangle(10.5, 3, 5, 2.2)
    rows, cols = np.nonzero(selection.mask.alpha)
    assert cols.min() == 10 and cols.max() == 15
    assert rows.min() == 3 and rows.max() == 5
    assert selection.bounds == Bounds(10.5, 3, 5, 2.2)
    assert selection.shape == RectangleShape(10.5, 3, 5, 2.2)
    assert selection.shape_exact


def test_rectangle_is_clipped_but_bounds_are_not(rasterizer):
    selection = rasterizer.rectangle(-10, -10, 20, 20)
    assert selection.mask.count_selected() == 100
    assert selection.bounds == Bounds(-10, -10, 20, 20)


@pytest.mark.parametrize("width,height", [(0, 10), (10, 0), (-5, 10)])
def test_degenerate_rectangle_yields_empty_mask(rasterizer, width, height):
    selection = rasterizer.rectangle(10, 10, width, height)
    assert selection.mask.is_empty()
    assert selection.mask.size == (128, 128)


def test_non_finite_rectangle_yields_empty_mask(rasterizer):
    selection = rasterizer.rectangle(math.nan, 0, 10, 10)
    assert selection.mask.is_empty()
    assert selection.shape is None


def test_ellipse_inclusion_test(rasterizer):
    selection = rasterizer.ellipse(50, 50, 30, 20)
    mask = selection.mask
    assert mask.is_selected(50, 50)
    assert mask.is_selected(80, 50)
    assert not mask.is_selected(81, 50)
    assert mask.is_selected(50, 70)
    assert not mask.is_selected(50, 71)
    assert not mask.is_selected(75, 65)
    assert selection.bounds == Bounds(20, 30, 60, 40)
    assert selection.shape == EllipseShape(50, 50, 30, 20)


@pytest.mark.parametrize("rx,ry", [(0, 10), (10, 0), (-1, 5), (math.inf, 5)])
def test_invalid_ellipse_is_rejected(rasterizer, rx, ry):
    assert rasterizer.ellipse(50, 50, rx, ry) is None


def test_ellipse_partly_outside_buffer(rasterizer):
    selection = rasterizer.ellipse(0, 0, 10, 10)
    assert selection.mask.is_selected(0, 0)
    assert selection.bounds == Bounds(-10, -10, 20, 20)


def test_path_fill_keeps_path_data_verbatim(rasterizer):
    data = [["M", 10, 10], ["L", 30, 10], ["L", 30, 30], ["L", 10, 30], ["Z"]]
    selection = rasterizer.path(data)
    assert selection.mask.is_selected(20, 20)
    assert not selection.mask.is_selected(5, 5)
    assert not selection.mask.is_selected(40, 40)
    assert selection.bounds == Bounds(10, 10, 20, 20)
    assert isinstance(selection.shape, PathShape)
    assert selection.shape.path_data is data
    assert selection.shape.matrix == IDENTITY_MATRIX


def test_path_transform_is_applied(rasterizer):
    matrix = [[2.0, 0.0, 50.0], [0.0, 2.0, 40.0]]
    selection = rasterizer.path("M 0 0 L 10 0 L 10 10 L 0 10 Z", matrix=matrix)
    assert selection.mask.is_selected(60, 50)
    assert not selection.mask.is_selected(5, 5)
    assert selection.bounds == Bounds(50, 40, 20, 20)


def test_fill_rules_differ_for_nested_subpaths(rasterizer):
    nested = "M 10 10 L 50 10 L 50 50 L 10 50 Z M 20 20 L 40 20 L 40 40 L 20 40 Z"
    nonzero = rasterizer.path(nested, fill_rule="nonzero")
    evenodd = rasterizer.path(nested, fill_rule="evenodd")
    assert nonzero.mask.is_selected(30, 30)
    assert not evenodd.mask.is_selected(30, 30)
    assert nonzero.mask.is_selected(15, 15)
    assert evenodd.mask.is_selected(15, 15)


def test_opposite_winding_hole_with_nonzero(rasterizer):
    hole = "M 10 10 L 50 10 L 50 50 L 10 50 Z M 20 20 L 20 40 L 40 40 L 40 20 Z"
    selection = rasterizer.path(hole, fill_rule="nonzero")
    assert not selection.mask.is_selected(30, 30)
    assert selection.mask.is_selected(15, 15)


def test_rasterize_dispatches_on_descriptor(rasterizer):
    assert rasterizer.rasterize(RectangleShape(0, 0, 4, 4)).mask.count_selected() == 16
    assert rasterizer.rasterize(EllipseShape(10, 10, 0, 2)) is None
    with pytest.raises(TypeError):
        rasterizer.rasterize("circle")
