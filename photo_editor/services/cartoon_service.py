"""
Cartoon effect.

1. Posterise every colour channel to `color_levels` steps.
2. Blur the posterised image (sigma = intensity / 2) into flat regions.
3. Darken outlines where the posterised luminance jumps; the jump needed
   shrinks and the darkening grows with `edge_thickness`.

Step 3 can be switched off with CARTOON_EDGE_OVERLAY=false, in which case
`edge_thickness` has no effect on the output.
"""
from __future__ import annotations
import logging
import os

import numpy as np
from dotenv import load_dotenv

from ..models.pixel_buffer import PixelBuffer
from ..models.effect_parameters import CartoonParameters
from .image_service import gaussian_blur_rgb, luminance, to_uint8
from .sketch_service import edge_magnitude

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

EDGE_OVERLAY = os.getenv("CARTOON_EDGE_OVERLAY", "true").strip().lower() in ("1", "true", "yes", "on")
EDGE_BASE_THRESHOLD = float(os.getenv("CARTOON_EDGE_BASE_THRESHOLD", "120"))


def quantize_colors(pixels: np.ndarray, color_levels: int) -> np.ndarray:
    """
    round(c / 255 * levels) * (255 / levels) on R, G, B; alpha untouched.
    The level value is stored like a clamped byte array: .5 ties go to even.
    """
    rgb = pixels[:, :, :3].astype(np.float64)
    steps = np.floor(rgb / 255 * color_levels + 0.5)
    out = pixels.copy()
    out[:, :, :3] = np.clip(np.rint(steps * (255 / color_levels)), 0, 255).astype(np.uint8)
    return out


def outline_mask(quantized: np.ndarray, edge_thickness: int,
                 base_threshold: float = EDGE_BASE_THRESHOLD) -> np.ndarray:
    """Boolean (H, W) mask of luminance discontinuities above base/edge_thickness."""
    magnitude = edge_magnitude(luminance(quantized), detail=5)
    return magnitude > (base_threshold / edge_thickness)


def cartoonize(
        before: PixelBuffer,
        params: CartoonParameters,
        *,
        edge_overlay: bool | None = None,
        edge_base_threshold: float | None = None,
) -> PixelBuffer:
    params = params.clamped()
    edge_overlay = EDGE_OVERLAY if edge_overlay is None else edge_overlay
    base = EDGE_BASE_THRESHOLD if edge_base_threshold is None else edge_base_threshold

    quantized = quantize_colors(before.pixels, params.color_levels)
    out = gaussian_blur_rgb(quantized, params.intensity / 2)

    if edge_overlay:
        mask = outline_mask(quantized, params.edge_thickness, base)
        if mask.any():
            darken = 1.0 - params.edge_thickness / 10
            rgb = out[:, :, :3].astype(np.float64)
            rgb[mask] *= darken
            out[:, :, :3] = to_uint8(rgb)

    logger.debug(f"Cartoon {before.width}x{before.height} with {params} (overlay={edge_overlay})")
    return PixelBuffer(out)
