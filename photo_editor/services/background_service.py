from __future__ import annotations
from typing import Tuple
import logging

import numpy as np

from ..models.pixel_buffer import PixelBuffer
from ..models.effect_parameters import BackgroundRemovalParameters, parse_hex_color
from .image_service import ImageService

logger = logging.getLogger(__name__)


class BackgroundService:
    """
    Colour-key background removal.

    • Distance is Manhattan in RGB (0‑765) from the key colour.
    • Returns a **new** PixelBuffer; only the alpha channel changes.
    """

    _DEFAULT_COLOR: Tuple[int, int, int] = (255, 255, 255)  # white backdrop

    @staticmethod
    def color_distance(pixels: np.ndarray, key_color: Tuple[int, int, int]) -> np.ndarray:
        rgb = pixels[:, :, :3].astype(np.int32)
        key = np.asarray(key_color, dtype=np.int32)
        return np.abs(rgb - key).sum(axis=2)

    @staticmethod
    def _feather_alpha(
            diff: np.ndarray,
            alpha_u8: np.ndarray,
            threshold: int,
            feather: int,
    ) -> np.ndarray:
        """
        Hard cut below threshold*3, linear ramp up to (threshold+feather)*3,
        original alpha beyond.  feather = 0 is a pure step.
        At threshold 0 an exact key match is still cleared.
        """
        cut = threshold * 3
        alpha = alpha_u8.copy()
        alpha[(diff < cut) | ((cut == 0) & (diff == 0))] = 0

        if feather > 0:
            ramp = (diff >= cut) & (diff < (threshold + feather) * 3)
            values = np.floor((diff[ramp] - cut) / (feather * 3) * 255 + 0.5)
            alpha[ramp] = np.clip(values, 0, 255).astype(np.uint8)
        return alpha

    # --------------------------------------------------------------
    def remove_background(self, before: PixelBuffer, params: BackgroundRemovalParameters) -> PixelBuffer:
        params = params.clamped()
        key = params.key_color or self._DEFAULT_COLOR

        diff = self.color_distance(before.pixels, key)
        out = before.pixels.copy()
        out[:, :, 3] = self._feather_alpha(diff, before.pixels[:, :, 3], params.threshold, params.feather)

        cleared = int(np.count_nonzero(out[:, :, 3] == 0))
        logger.debug(f"Background removal keyed on {key}: {cleared} transparent pixels")
        return PixelBuffer(out)

    def remove_background_hex(self, before: PixelBuffer, threshold: int, feather: int,
                              key_color: str | None = None) -> PixelBuffer:
        """Same as remove_background, key colour given as '#RRGGBB'."""
        return self.remove_background(
            before, BackgroundRemovalParameters(threshold, feather, parse_hex_color(key_color))
        )

    @staticmethod
    def pick_key_color(before: PixelBuffer, x: int, y: int) -> Tuple[int, int, int]:
        return ImageService.pick_key_color(before, x, y)
