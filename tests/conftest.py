import numpy as np
import pytest

from photo_editor.models.pixel_buffer import PixelBuffer

from .helpers import encode, solid


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def random_buffer(rng):
    return PixelBuffer(rng.integers(0, 256, size=(24, 32, 4), dtype=np.uint8))


@pytest.fixture
def make_png():
    """make_png(width, height, rgba) → PNG bytes of a solid image."""
    def _make(width, height, rgba=(120, 80, 40, 255)):
        return encode(solid(width, height, rgba).pixels)
    return _make


@pytest.fixture
def split_buffer():
    """20x20: left half black, right half white, fully opaque."""
    arr = np.full((20, 20, 4), 255, dtype=np.uint8)
    arr[:, :10, :3] = 0
    return PixelBuffer(arr)
