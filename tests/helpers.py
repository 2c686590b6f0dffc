from io import BytesIO

import numpy as np
from PIL import Image as PILImage

from photo_editor.models.pixel_buffer import PixelBuffer


def solid(width, height, rgba=(255, 255, 255, 255)) -> PixelBuffer:
    return PixelBuffer.blank(width, height, rgba)


def encode(pixels: np.ndarray, fmt: str = "PNG") -> bytes:
    out = BytesIO()
    PILImage.fromarray(pixels).save(out, format=fmt)
    return out.getvalue()
