from __future__ import annotations
from io import BytesIO
from pathlib import Path
from typing import Union
import logging
import os

import numpy as np
from PIL import Image as PILImage, UnidentifiedImageError
from dotenv import load_dotenv

from ..errors import DecodeError, ExportFailure, UnsupportedFormat
from ..models.pixel_buffer import PixelBuffer

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

# extension → Pillow format name
_EXT_TO_FORMAT = {"jpg": "JPEG", "jpeg": "JPEG", "png": "PNG", "bmp": "BMP"}


def normalise_extension(format_hint: Union[str, Path, None]) -> str | None:
    """
    'photo.JPG' → 'jpg', '.png' → 'png', 'bmp' → 'bmp', None → None.
    """
    if format_hint is None:
        return None
    hint = str(format_hint).strip()
    if not hint:
        return None
    if "." in hint:
        hint = hint.rsplit(".", 1)[1]
    return hint.lower()


class ImageRepository:
    """
    Handles byte/file I/O for PixelBuffer entities.
    Decoding goes through Pillow so every input mode ends up as RGBA.
    """
    def __init__(self, valid_exts: str | None = None):
        raw = valid_exts or os.getenv("SUPPORTED_IMAGE_EXTENSIONS", "jpg,jpeg,png,bmp")
        self.VALID_EXTS = {ext.strip().lower().lstrip(".") for ext in raw.split(",") if ext.strip()}
        self.VALID_FORMATS = {_EXT_TO_FORMAT[ext] for ext in self.VALID_EXTS if ext in _EXT_TO_FORMAT}

    def is_supported(self, format_hint: Union[str, Path, None]) -> bool:
        return normalise_extension(format_hint) in self.VALID_EXTS

    def decode(self, data: bytes, format_hint: Union[str, Path, None] = None) -> PixelBuffer:
        """
        Encoded bytes → RGBA PixelBuffer.

        Raises UnsupportedFormat for a bad extension or sniffed content,
        DecodeError for corrupt or unreadable bytes.
        """
        ext = normalise_extension(format_hint)
        if format_hint is not None and ext not in self.VALID_EXTS:
            raise UnsupportedFormat(
                f"Unsupported file format '{ext}'. Please use {', '.join(sorted(self.VALID_EXTS)).upper()}."
            )
        if not data:
            raise DecodeError("Empty image data")

        try:
            pil_img = PILImage.open(BytesIO(data))
        except UnidentifiedImageError as err:
            raise DecodeError(f"Unreadable image data: {err}") from err
        except PILImage.DecompressionBombError as err:
            raise DecodeError(f"Image too large to decode safely: {err}") from err

        with pil_img:
            if pil_img.format not in self.VALID_FORMATS:
                raise UnsupportedFormat(f"Unsupported image content: {pil_img.format}")
            try:
                pil_img.load()
                rgba = pil_img.convert("RGBA")
            except PILImage.DecompressionBombError as err:
                raise DecodeError(f"Image too large to decode safely: {err}") from err
            except (OSError, SyntaxError, ValueError) as err:
                raise DecodeError(f"Corrupt {pil_img.format} data: {err}") from err

        arr = np.asarray(rgba, dtype=np.uint8)
        logger.debug(f"Decoded {pil_img.format} image: {arr.shape[1]}x{arr.shape[0]}")
        return PixelBuffer(arr.copy())

    @staticmethod
    def encode_png(buffer: PixelBuffer) -> bytes:
        """Lossless, alpha-preserving PNG encode."""
        out = BytesIO()
        try:
            PILImage.fromarray(buffer.pixels).save(out, format="PNG")
        except (OSError, ValueError) as err:
            raise ExportFailure(f"PNG encoding failed: {err}") from err
        return out.getvalue()

    def load(self, path: Union[str, Path]) -> tuple[PixelBuffer, bytes]:
        """Read a file from disk; returns the decoded buffer and the raw bytes."""
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Image not found or unreadable: {path}")
        data = path.read_bytes()
        return self.decode(data, path.name), data

    def save_png(self, buffer: PixelBuffer, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.write_bytes(self.encode_png(buffer))
        return path
