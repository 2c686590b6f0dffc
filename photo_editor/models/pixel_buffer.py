from __future__ import annotations
from dataclasses import dataclass
import numpy as np

from ..errors import InvalidDimensions


@dataclass(eq=False)
class PixelBuffer:
    """
    Simple data object: RGBA pixels.
    No OpenCV / Pillow logic outside the repository and services.
    """
    pixels: np.ndarray  # Shape (H, W, 4), dtype uint8, RGBA order.

    def __post_init__(self):
        if self.pixels.ndim != 3 or self.pixels.shape[2] != 4:
            raise InvalidDimensions(f"Expected (H, W, 4) pixels, got {self.pixels.shape}")
        if self.pixels.shape[0] <= 0 or self.pixels.shape[1] <= 0:
            raise InvalidDimensions(f"Empty raster: {self.pixels.shape[1]}x{self.pixels.shape[0]}")
        if self.pixels.dtype != np.uint8 or not self.pixels.flags['C_CONTIGUOUS']:
            self.pixels = np.ascontiguousarray(self.pixels, dtype=np.uint8)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    @classmethod
    def from_bytes(cls, width: int, height: int, data: bytes) -> "PixelBuffer":
        """Build a buffer from a flat R,G,B,A byte sequence."""
        if width <= 0 or height <= 0:
            raise InvalidDimensions(f"Invalid dimensions {width}x{height}")
        if len(data) != width * height * 4:
            raise InvalidDimensions(
                f"Expected {width * height * 4} bytes for {width}x{height}, got {len(data)}"
            )
        arr = np.frombuffer(bytes(data), dtype=np.uint8).reshape(height, width, 4)
        return cls(arr.copy())

    @classmethod
    def blank(cls, width: int, height: int, rgba=(255, 255, 255, 255)) -> "PixelBuffer":
        if width <= 0 or height <= 0:
            raise InvalidDimensions(f"Invalid dimensions {width}x{height}")
        arr = np.empty((height, width, 4), dtype=np.uint8)
        arr[:] = rgba
        return cls(arr)

    def to_bytes(self) -> bytes:
        return self.pixels.tobytes()

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(self.pixels.copy())

    def __eq__(self, other) -> bool:
        if not isinstance(other, PixelBuffer):
            return NotImplemented
        return self.size == other.size and np.array_equal(self.pixels, other.pixels)

    def __repr__(self) -> str:
        return f"PixelBuffer({self.width}x{self.height})"
