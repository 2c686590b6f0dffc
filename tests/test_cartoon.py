import numpy as np
import pytest

from photo_editor.models.effect_parameters import CartoonParameters
from photo_editor.services import cartoon_service
from photo_editor.services.cartoon_service import cartoonize, outline_mask, quantize_colors

from .helpers import solid


def test_two_levels_leave_only_quantization_values(random_buffer):
    out = quantize_colors(random_buffer.pixels, 2)

    # round(c/255*2) ∈ {0, 1, 2} → {0, 127.5, 255}, 127.5 stored as 128
    assert set(np.unique(out[:, :, :3]).tolist()) <= {0, 128, 255}
    assert np.array_equal(out[:, :, 3], random_buffer.pixels[:, :, 3])


@pytest.mark.parametrize("levels", [2, 3, 8, 16])
def test_quantized_values_sit_on_the_level_grid(random_buffer, levels):
    out = quantize_colors(random_buffer.pixels, levels)
    grid = {int(np.rint(k * 255 / levels)) for k in range(levels + 1)}
    assert set(np.unique(out[:, :, :3]).tolist()) <= grid


def test_level_ties_round_to_even():
    px = np.array([[[26, 77, 128, 255]]], dtype=np.uint8)
    out = quantize_colors(px, 10)
    # steps 1, 3, 5 → 25.5, 76.5, 127.5
    assert out[0, 0].tolist() == [26, 76, 128, 255]


def test_flat_image_collapses_to_one_level_per_channel():
    out = cartoonize(solid(16, 16, (200, 30, 90, 255)),
                     CartoonParameters(intensity=5, edge_thickness=2, color_levels=2))
    assert (out.pixels == [255, 0, 128, 255]).all()


def test_output_keeps_size_and_alpha(random_buffer):
    out = cartoonize(random_buffer, CartoonParameters())
    assert out.size == random_buffer.size
    assert np.array_equal(out.pixels[:, :, 3], random_buffer.pixels[:, :, 3])


def test_edge_thickness_is_a_no_op_without_overlay(split_buffer):
    thin = cartoonize(split_buffer, CartoonParameters(edge_thickness=1), edge_overlay=False)
    thick = cartoonize(split_buffer, CartoonParameters(edge_thickness=10), edge_overlay=False)
    assert thin == thick


def test_overlay_darkens_the_outline(split_buffer):
    params = CartoonParameters(intensity=4, edge_thickness=10, color_levels=8)
    plain = cartoonize(split_buffer, params, edge_overlay=False)
    inked = cartoonize(split_buffer, params, edge_overlay=True)

    # column 9 is the last black column; its right neighbour is white
    assert (plain.pixels[1:19, 9, :3] > 0).all()
    assert (inked.pixels[1:19, 9, :3] == 0).all()
    assert (inked.pixels[:, :, :3] <= plain.pixels[:, :, :3]).all()


def test_outline_threshold_shrinks_with_thickness():
    px = np.full((6, 6, 4), 255, dtype=np.uint8)
    px[:, :3, :3] = 200  # luminance jump of 55
    assert not outline_mask(px, edge_thickness=1, base_threshold=120).any()
    assert outline_mask(px, edge_thickness=5, base_threshold=120).any()


def test_overlay_default_comes_from_env():
    assert isinstance(cartoon_service.EDGE_OVERLAY, bool)
    assert cartoon_service.EDGE_BASE_THRESHOLD > 0
