from __future__ import annotations
from dataclasses import dataclass
import logging
import math

from ..errors import InvalidDimensions
from ..models.pixel_buffer import PixelBuffer
from ..models.effect_parameters import ResizeParameters
from .image_service import ImageService, format_file_size

logger = logging.getLogger(__name__)


@dataclass
class ResizeResult:
    """Resized pixels plus the size estimate shown next to them."""
    buffer: PixelBuffer
    original_bytes: int
    estimated_bytes: int

    @property
    def size_comparison(self) -> tuple[str, str]:
        return format_file_size(self.original_bytes), format_file_size(self.estimated_bytes)


def estimate_output_size(original_file_size: int, quality: int) -> int:
    return int(math.floor(original_file_size * (quality / 100) + 0.5))


def resize(before: PixelBuffer, params: ResizeParameters, original_file_size: int = 0) -> ResizeResult:
    """
    Resample to the target size.
    Quality never touches pixels; it only scales the estimated output size.
    """
    if params.target_width is None or params.target_height is None \
            or params.target_width <= 0 or params.target_height <= 0:
        raise InvalidDimensions(
            f"Please enter valid dimensions (got {params.target_width}x{params.target_height})"
        )
    params = params.clamped()
    resized = ImageService.resample(before, params.target_width, params.target_height)
    estimated = estimate_output_size(original_file_size, params.quality)

    logger.debug(f"Resize {before.width}x{before.height} → {resized.width}x{resized.height}, "
                 f"estimated {estimated} bytes at quality {params.quality}")
    return ResizeResult(buffer=resized, original_bytes=original_file_size, estimated_bytes=estimated)
