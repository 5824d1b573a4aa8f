import numpy as np
import pytest

from marquee import Bounds, CombinationMode, MaskBuffer, RectangleShape, Selection
from marquee.core import algebra


def _random_selection(seed, size=64):
    rng = np.random.default_rng(seed)
    alpha = (rng.random((size, size)) > 0.5).astype(np.uint8) * 255
    mask = MaskBuffer(alpha)
    return Selection(mask=mask, bounds=mask.nonzero_bounds())


def test_replace_and_missing_existing_return_incoming(rasterizer):
    existing = rasterizer.rectangle(0, 0, 10, 10)
    incoming = rasterizer.ellipse(50, 50, 10, 10)
    assert algebra.combine(existing, incoming, "replace") is incoming
    assert algebra.combine(None, incoming, CombinationMode.SUBTRACT) is incoming


def test_add_then_subtract_never_exceeds_original():
    a = _random_selection(1)
    b = _random_selection(2)
    added = algebra.combine(a, b, "add")
    result = algebra.combine(added, b, "subtract")
    assert np.all(result.mask.alpha <= a.mask.alpha)


def test_intersect_is_pointwise_minimum():
    a = _random_selection(3)
    b = _random_selection(4)
    result = algebra.combine(a, b, "intersect")
    assert np.all(result.mask.alpha <= a.mask.alpha)
    assert np.all(result.mask.alpha <= b.mask.alpha)


def test_subtract_clamps_partial_alpha():
    a = Selection(MaskBuffer(np.full((2, 2), 100, dtype=np.uint8)), Bounds(0, 0, 2, 2))
    b = Selection(MaskBuffer(np.array([[50, 150], [0, 255]], dtype=np.uint8)), Bounds(0, 0, 2, 2))
    result = algebra.combine(a, b, "subtract")
    assert result.mask.alpha.tolist() == [[50, 0], [100, 0]]


def test_combination_bounds(rasterizer):
    a = rasterizer.rectangle(0, 0, 10, 10)
    b = rasterizer.rectangle(5, 5, 10, 10)
    far = rasterizer.rectangle(50, 50, 5, 5)
    assert algebra.combine(a, b, "add").bounds == Bounds(0, 0, 15, 15)
    assert algebra.combine(a, b, "subtract").bounds == Bounds(0, 0, 10, 10)
    assert algebra.combine(a, b, "intersect").bounds == Bounds(5, 5, 5, 5)
    assert algebra.combine(a, far, "intersect").bounds.is_empty()


def test_combination_keeps_prior_shape_as_hint(rasterizer):
    a = rasterizer.rectangle(0, 0, 10, 10)
    b = rasterizer.ellipse(20, 20, 5, 5)
    result = algebra.combine(a, b, "add")
    assert result.shape == a.shape
    assert not result.shape_exact


def test_combination_inputs_are_not_mutated(rasterizer):
    a = rasterizer.rectangle(0, 0, 10, 10)
    before = a.mask.to_array()
    algebra.combine(a, rasterizer.rectangle(0, 0, 5, 5), "subtract")
    assert np.array_equal(a.mask.alpha, before)


def test_combine_rejects_mismatched_sizes(rasterizer):
    other = Selection(MaskBuffer.full(4, 4), Bounds(0, 0, 4, 4))
    with pytest.raises(ValueError):
        algebra.combine(rasterizer.rectangle(0, 0, 4, 4), other, "add")


def test_unknown_mode_is_rejected(rasterizer):
    with pytest.raises(ValueError):
        algebra.combine(None, rasterizer.rectangle(0, 0, 4, 4), "xor")


def test_expand_uses_chebyshev_distance(rasterizer):
    point = rasterizer.rectangle(20, 20, 1, 1)
    expanded = algebra.expand(point, 3)
    assert expanded.mask.is_selected(23, 23)
    assert expanded.mask.is_selected(17, 20)
    assert not expanded.mask.is_selected(24, 24)
    assert expanded.mask.count_selected() == 49
    assert expanded.bounds == Bounds(17, 17, 7, 7)
    assert not expanded.shape_exact


def test_expand_bounds_are_clipped(rasterizer):
    expanded = algebra.expand(rasterizer.rectangle(0, 0, 2, 2), 5)
    assert expanded.bounds == Bounds(0, 0, 7, 7)


def test_contract_treats_outside_as_unselected(rasterizer):
    everything = algebra.select_all(rasterizer.width, rasterizer.height)
    contracted = algebra.contract(everything, 1)
    assert not contracted.mask.is_selected(0, 0)
    assert contracted.mask.is_selected(1, 1)
    assert not contracted.mask.is_selected(127, 64)


def test_contract_shrinks_rectangle(rasterizer):
    contracted = algebra.contract(rasterizer.rectangle(10, 10, 20, 20), 2)
    assert contracted.mask.is_selected(12, 12)
    assert not contracted.mask.is_selected(11, 11)
    assert contracted.mask.nonzero_bounds() == Bounds(12, 12, 16, 16)
    assert contracted.bounds == Bounds(12, 12, 16, 16)


def test_contract_after_expand_never_grows_convex_shape(rasterizer):
    ellipse = rasterizer.ellipse(60, 60, 25, 15)
    round_trip = algebra.contract(algebra.expand(ellipse, 4), 4)
    assert round_trip.mask.count_selected() <= ellipse.mask.count_selected()
    assert np.all(round_trip.mask.alpha <= ellipse.mask.alpha)


def test_non_positive_radius_is_a_no_op(rasterizer):
    selection = rasterizer.rectangle(10, 10, 10, 10)
    assert algebra.expand(selection, 0) is selection
    assert algebra.contract(selection, -2) is selection
    assert algebra.feather(selection, 0) is selection


def test_feather_softens_the_edge(rasterizer):
    feathered = algebra.feather(rasterizer.rectangle(10, 10, 20, 20), 2)
    edge = feathered.mask.alpha_at(10, 20)
    assert 0 < edge < 255
    assert feathered.mask.alpha_at(20, 20) == 255
    assert feathered.mask.alpha_at(9, 20) > 0


def test_single_feather_pass_rounds_mean(rasterizer):
    feathered = algebra.feather(rasterizer.rectangle(10, 10, 20, 20), 1)
    # Six of nine neighbours selected: 1530 / 9 = 170.
    assert feathered.mask.alpha_at(10, 20) == 170
    assert feathered.mask.alpha_at(9, 20) == 85
    # Corner of the rectangle: 4 of 9 -> 113.33.
    assert feathered.mask.alpha_at(10, 10) == 113


def test_feather_uses_in_bounds_neighbours_only(rasterizer):
    everything = algebra.select_all(rasterizer.width, rasterizer.height)
    feathered = algebra.feather(everything, 3)
    assert np.all(feathered.mask.alpha == 255)


def test_invert_is_an_involution_away_from_edges(rasterizer):
    selection = rasterizer.rectangle(10, 10, 30, 20)
    twice = algebra.invert(algebra.invert(selection, 128, 128), 128, 128)
    assert twice.mask == selection.mask


def test_invert_without_selection_selects_all():
    result = algebra.invert(None, 16, 8)
    assert result.mask.count_selected() == 128
    assert result.shape == RectangleShape(0, 0, 16, 8)
    assert result.shape_exact


def test_invert_resets_bounds_to_buffer(rasterizer):
    inverted = algebra.invert(rasterizer.ellipse(50, 50, 30, 20), 128, 128)
    assert inverted.bounds == Bounds(0, 0, 128, 128)
    assert not inverted.mask.is_selected(50, 50)
    assert inverted.mask.is_selected(0, 0)


def test_border_keeps_ring(rasterizer):
    ring = algebra.border(rasterizer.rectangle(10, 10, 20, 20), 2)
    assert ring.mask.is_selected(10, 20)
    assert ring.mask.is_selected(11, 20)
    assert not ring.mask.is_selected(12, 20)
    assert not ring.mask.is_selected(20, 20)


def test_smooth_removes_isolated_pixels(rasterizer):
    speck = algebra.smooth(rasterizer.rectangle(40, 40, 1, 1), 1)
    assert speck.mask.is_empty()
    block = algebra.smooth(rasterizer.rectangle(10, 10, 20, 20), 1)
    assert block.mask.is_selected(20, 20)


def test_transform_translates_mask_and_bounds(rasterizer):
    moved = algebra.transform(rasterizer.rectangle(10, 10, 20, 20), [[1, 0, 10], [0, 1, 0]])
    assert moved.mask.is_selected(35, 15)
    assert not moved.mask.is_selected(15, 15)
    assert moved.bounds == Bounds(20, 10, 20, 20)


def test_color_range_contiguous_and_global():
    image = np.zeros((64, 64, 3), dtype=np.uint8)
    image[10:20, 10:20] = (255, 0, 0)
    image[40:50, 40:50] = (250, 5, 0)
    contiguous = algebra.color_range(image, (15, 15), 10, 64, 64, contiguous=True)
    assert contiguous.mask.is_selected(12, 12)
    assert not contiguous.mask.is_selected(45, 45)
    assert contiguous.bounds == Bounds(10, 10, 10, 10)
    assert contiguous.shape is None

    everywhere = algebra.color_range(image, (15, 15), 10, 64, 64, contiguous=False)
    assert everywhere.mask.is_selected(45, 45)
    assert not everywhere.mask.is_selected(30, 30)


def test_color_range_checks_alpha_difference():
    image = np.zeros((8, 8, 4), dtype=np.uint8)
    image[:, :4] = (100, 100, 100, 255)
    image[:, 4:] = (100, 100, 100, 100)
    result = algebra.color_range(image, (1, 1), 20, 8, 8)
    assert result.mask.count_selected() == 32


def test_color_range_seed_outside_image():
    image = np.zeros((8, 8, 3), dtype=np.uint8)
    assert algebra.color_range(image, (20, 2), 10, 32, 32) is None


@pytest.mark.parametrize("tolerance", [-1, float("nan"), float("inf")])
def test_color_range_rejects_invalid_tolerance(tolerance):
    image = np.zeros((32, 32, 3), dtype=np.uint8)
    assert algebra.color_range(image, (10, 10), tolerance, 32, 32) is None
    assert algebra.color_range(image, (10, 10), tolerance, 32, 32, contiguous=False) is None
