from __future__ import annotations
from pathlib import Path
from typing import Union
import logging
import math
import os

import cv2
import numpy as np
from dotenv import load_dotenv

from ..errors import InvalidDimensions
from ..models.pixel_buffer import PixelBuffer
from ..models.effect_parameters import RGB
from ..repositories.image_repository import ImageRepository

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")


# ─── pixel helpers shared by the effect services ──────────────────────
def round_half_up(values: np.ndarray) -> np.ndarray:
    return np.floor(values + 0.5)


def to_uint8(values: np.ndarray) -> np.ndarray:
    """Round half up and clamp into [0, 255]."""
    return np.clip(round_half_up(values), 0, 255).astype(np.uint8)


def luminance(pixels: np.ndarray) -> np.ndarray:
    """(H, W, 4) uint8 → (H, W) float64, 0.299R + 0.587G + 0.114B, unrounded."""
    rgb = pixels[:, :, :3].astype(np.float64)
    return 0.299 * rgb[:, :, 0] + 0.587 * rgb[:, :, 1] + 0.114 * rgb[:, :, 2]


def gaussian_blur_rgb(pixels: np.ndarray, sigma: float) -> np.ndarray:
    """
    Gaussian blur of the colour channels only; alpha is carried over untouched.
    sigma <= 0 returns a copy.
    """
    if sigma <= 0:
        return pixels.copy()
    rgb = np.ascontiguousarray(pixels[:, :, :3])
    blurred = cv2.GaussianBlur(rgb, (0, 0), sigmaX=sigma, sigmaY=sigma)
    out = pixels.copy()
    out[:, :, :3] = blurred
    return out


def format_file_size(num_bytes: int) -> str:
    """1536 → '1.5 KB'. Base 1024, at most two decimals."""
    if num_bytes <= 0:
        return "0 Bytes"
    i = 0
    while i < len(_SIZE_UNITS) - 1 and num_bytes >= 1024 ** (i + 1):
        i += 1
    value = round(num_bytes / 1024 ** i, 2)
    return f"{value:g} {_SIZE_UNITS[i]}"


def companion_dimension(value: int, from_size: int, to_size: int) -> int:
    """
    Keep width/height linked: scale `value` (measured along `from_size`)
    onto the other axis. Used when "maintain aspect ratio" is on.
    """
    if from_size <= 0:
        raise InvalidDimensions(f"Invalid reference size {from_size}")
    return int(math.floor(value * to_size / from_size + 0.5))


class ImageService:
    """Decode/encode plus geometry.  No effect logic here."""
    def __init__(self, max_dimension: int | None = None):
        self.MAX_DIMENSION = max_dimension or int(os.getenv("MAX_IMAGE_DIMENSION", "800"))
        self.image_repository = ImageRepository()

    def is_supported(self, filename: Union[str, Path, None]) -> bool:
        return self.image_repository.is_supported(filename)

    def decode(self, data: bytes, format_hint: Union[str, Path, None] = None) -> PixelBuffer:
        return self.image_repository.decode(data, format_hint)

    def encode_png(self, buffer: PixelBuffer) -> bytes:
        return self.image_repository.encode_png(buffer)

    def load(self, path: Union[str, Path]) -> tuple[PixelBuffer, bytes]:
        """Load a single image from disk."""
        return self.image_repository.load(path)

    def save_png(self, buffer: PixelBuffer, path: Union[str, Path]) -> Path:
        return self.image_repository.save_png(buffer, path)

    @staticmethod
    def bounded_size(width: int, height: int, max_dimension: int) -> tuple[int, int]:
        if width > max_dimension or height > max_dimension:
            ratio = min(max_dimension / width, max_dimension / height)
            width = max(1, int(math.floor(width * ratio)))
            height = max(1, int(math.floor(height * ratio)))
        return width, height

    def downscale_to_bound(self, buffer: PixelBuffer, max_dimension: int | None = None) -> PixelBuffer:
        """
        Shrink so the longer side fits `max_dimension`, keeping aspect ratio.
        Buffers already inside the bound come back as an equal-size copy.
        """
        max_dimension = max_dimension or self.MAX_DIMENSION
        width, height = self.bounded_size(buffer.width, buffer.height, max_dimension)
        if (width, height) == buffer.size:
            return buffer.copy()
        logger.info(f"Downscaling {buffer.width}x{buffer.height} → {width}x{height} (bound {max_dimension})")
        return self.resample(buffer, width, height)

    @staticmethod
    def resample(buffer: PixelBuffer, new_width: int, new_height: int) -> PixelBuffer:
        """Bilinear when growing, area averaging when shrinking."""
        if new_width is None or new_height is None or new_width <= 0 or new_height <= 0:
            raise InvalidDimensions(f"Invalid target dimensions {new_width}x{new_height}")
        new_width, new_height = int(new_width), int(new_height)
        if (new_width, new_height) == buffer.size:
            return buffer.copy()

        shrinking = new_width <= buffer.width and new_height <= buffer.height
        interpolation = cv2.INTER_AREA if shrinking else cv2.INTER_LINEAR
        resized = cv2.resize(buffer.pixels, (new_width, new_height), interpolation=interpolation)
        return PixelBuffer(resized)

    @staticmethod
    def pick_key_color(buffer: PixelBuffer, x: int, y: int) -> RGB:
        """Colour under (x, y), e.g. a click on the background in the before view."""
        if not (0 <= x < buffer.width and 0 <= y < buffer.height):
            raise InvalidDimensions(f"Point ({x}, {y}) outside {buffer.width}x{buffer.height}")
        r, g, b = buffer.pixels[y, x, :3]
        return int(r), int(g), int(b)
