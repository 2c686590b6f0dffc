import logging

import numpy as np

from ..models.pixel_buffer import PixelBuffer
from ..models.effect_parameters import SketchParameters
from .image_service import gaussian_blur_rgb, luminance, round_half_up, to_uint8

logger = logging.getLogger(__name__)


def grayscale(pixels: np.ndarray) -> np.ndarray:
    """(H, W, 4) → (H, W) integer luminance, rounded half up."""
    return round_half_up(luminance(pixels))


def edge_magnitude(gray: np.ndarray, detail: int) -> np.ndarray:
    """
    Forward-difference edges: |g - right| + |g - below|, scaled by detail/5.
    Row 0, column 0, the last column and the last row stay at 0.
    """
    edges = np.zeros_like(gray, dtype=np.float64)
    h, w = gray.shape
    if h < 3 or w < 3:
        return edges

    centre = gray[1:h - 1, 1:w - 1]
    right = gray[1:h - 1, 2:w]
    below = gray[2:h, 1:w - 1]
    edges[1:h - 1, 1:w - 1] = (np.abs(centre - right) + np.abs(centre - below)) * (detail / 5)
    return edges


def sketch(before: PixelBuffer, params: SketchParameters) -> PixelBuffer:
    """
    Pencil sketch: luminance → edge map → inverted, scaled edges,
    optionally softened by a Gaussian of sigma smoothing/2.
    """
    params = params.clamped()
    gray = grayscale(before.pixels)
    edges = edge_magnitude(gray, params.detail)
    value = to_uint8(255 - edges * (params.intensity / 2))

    out = before.pixels.copy()
    out[:, :, 0] = value
    out[:, :, 1] = value
    out[:, :, 2] = value

    if params.smoothing > 0:
        out = gaussian_blur_rgb(out, params.smoothing / 2)

    logger.debug(f"Sketch {before.width}x{before.height} with {params}")
    return PixelBuffer(out)
