import numpy as np
import pytest

from photo_editor.models.effect_parameters import BackgroundRemovalParameters, parse_hex_color, to_hex_color
from photo_editor.models.pixel_buffer import PixelBuffer
from photo_editor.services.background_service import BackgroundService

from .helpers import solid


@pytest.fixture
def service():
    return BackgroundService()


def row(*colors, alpha=255):
    return PixelBuffer(np.array([[list(c) + [alpha] for c in colors]], dtype=np.uint8))


def test_exact_key_match_is_cleared_at_zero_threshold(service):
    src = solid(3, 3, (12, 34, 56, 255))
    out = service.remove_background(src, BackgroundRemovalParameters(0, 0, (12, 34, 56)))
    assert (out.pixels[:, :, 3] == 0).all()


def test_opposite_corner_stays_opaque(service):
    src = solid(2, 2, (0, 0, 0, 255))
    out = service.remove_background(src, BackgroundRemovalParameters(100, 10, (255, 255, 255)))
    assert (out.pixels[:, :, 3] == 255).all()


def test_feather_ramp(service):
    # distances from white: 0, 30, 45, 50, 60, 90
    src = row((255, 255, 255), (255, 255, 225), (255, 255, 210),
              (255, 255, 205), (255, 255, 195), (255, 255, 165))
    out = service.remove_background(src, BackgroundRemovalParameters(threshold=10, feather=10))

    # cut at 30, ramp to 60: (45-30)/30*255 = 127.5 → 128, (50-30)/30*255 = 170
    assert out.pixels[0, :, 3].tolist() == [0, 0, 128, 170, 255, 255]


def test_zero_feather_is_a_step(service):
    src = row((255, 255, 226), (255, 255, 225), (255, 255, 224))  # 29, 30, 31
    out = service.remove_background(src, BackgroundRemovalParameters(threshold=10, feather=0))
    assert out.pixels[0, :, 3].tolist() == [0, 255, 255]


def test_pixel_on_the_cut_keeps_its_alpha(service):
    src = row((255, 255, 225), alpha=200)  # distance 30 == 3 * threshold
    out = service.remove_background(src, BackgroundRemovalParameters(threshold=10, feather=0))
    assert out.pixels[0, 0, 3] == 200


def test_zero_threshold_only_clears_exact_matches(service):
    src = row((255, 255, 255), (255, 255, 254))
    out = service.remove_background(src, BackgroundRemovalParameters(threshold=0, feather=0))
    assert out.pixels[0, :, 3].tolist() == [0, 255]


def test_rgb_is_never_modified(service, random_buffer):
    out = service.remove_background(random_buffer, BackgroundRemovalParameters(60, 20, (128, 128, 128)))
    assert np.array_equal(out.pixels[:, :, :3], random_buffer.pixels[:, :, :3])
    assert (out.pixels[:, :, 3] <= 255).all()


def test_far_pixels_keep_their_own_alpha(service):
    src = row((0, 0, 0), alpha=77)
    out = service.remove_background(src, BackgroundRemovalParameters(10, 5))
    assert out.pixels[0, 0, 3] == 77


def test_default_key_is_white(service):
    out = service.remove_background(row((255, 255, 255), (0, 0, 0)), BackgroundRemovalParameters())
    assert out.pixels[0, :, 3].tolist() == [0, 255]


def test_hex_key(service):
    src = row((0, 255, 0), (255, 0, 0))
    out = service.remove_background_hex(src, threshold=5, feather=0, key_color="#00FF00")
    assert out.pixels[0, :, 3].tolist() == [0, 255]


@pytest.mark.parametrize("value,expected", [
    ("#00ff00", (0, 255, 0)),
    ("1A2b3C", (26, 43, 60)),
    (" #ffffff ", (255, 255, 255)),
    ("#fff", (255, 255, 255)),
    ("zzzzzz", (255, 255, 255)),
    ("", (255, 255, 255)),
    (None, (255, 255, 255)),
])
def test_parse_hex_color(value, expected):
    assert parse_hex_color(value) == expected


def test_to_hex_color():
    assert to_hex_color((0, 128, 255)) == "#0080ff"


def test_pick_key_color(service):
    src = row((1, 2, 3), (4, 5, 6))
    assert service.pick_key_color(src, 1, 0) == (4, 5, 6)
