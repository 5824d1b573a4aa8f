import logging

import numpy as np
import pytest

from marquee import Bounds, CoordinateMapper
from marquee.core.path import apply_affine


def test_from_reference_computes_scale_and_offset():
    mapper = CoordinateMapper.from_reference((200, 100), Bounds(10, 20, 100, 50))
    assert mapper.scale_x == pytest.approx(2.0)
    assert mapper.scale_y == pytest.approx(2.0)
    assert mapper.to_image_point(60, 45) == pytest.approx((100.0, 50.0))
    assert not mapper.fallback


def test_rect_mapping_scales_size_without_clamping():
    mapper = CoordinateMapper.from_reference((300, 100), Bounds(0, 0, 100, 100))
    rect = mapper.to_image_rect(Bounds(-10, 5, 20, 10))
    assert rect == Bounds(-30, 5, 60, 10)


def test_round_trip_recovers_view_point():
    mapper = CoordinateMapper.from_reference((640, 480), Bounds(33.5, -12.25, 213.0, 177.0))
    for point in [(0.0, 0.0), (100.25, 77.5), (-40.0, 900.0)]:
        back = mapper.to_view_point(*mapper.to_image_point(*point))
        assert back == pytest.approx(point)


def test_missing_reference_falls_back_to_identity(caplog):
    with caplog.at_level(logging.WARNING, logger="marquee.core.coordinates"):
        mapper = CoordinateMapper.from_reference(None, None)
    assert mapper.fallback
    assert mapper.is_identity()
    assert mapper.to_image_point(12, 34) == (12, 34)
    assert "identity" in caplog.text


def test_degenerate_display_rect_falls_back():
    mapper = CoordinateMapper.from_reference((100, 100), Bounds(0, 0, 0, 50))
    assert mapper.fallback


def test_inverse_requires_non_zero_scale():
    with pytest.raises(ValueError):
        CoordinateMapper(scale_x=0.0).to_view_point(1, 1)


def test_matrix_matches_point_mapping():
    mapper = CoordinateMapper.from_reference((400, 300), Bounds(50, 25, 200, 100))
    points = np.array([[60.0, 30.0], [250.0, 125.0]])
    mapped = apply_affine(points, mapper.matrix())
    expected = [mapper.to_image_point(x, y) for x, y in points]
    assert np.allclose(mapped, expected)
