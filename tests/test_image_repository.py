import numpy as np
import pytest
from PIL import Image as PILImage

from photo_editor.errors import DecodeError, ExportFailure, UnsupportedFormat
from photo_editor.models.pixel_buffer import PixelBuffer
from photo_editor.repositories.image_repository import ImageRepository, normalise_extension

from .helpers import encode


@pytest.fixture
def repo():
    return ImageRepository()


def test_png_round_trip_is_exact(repo, random_buffer):
    data = repo.encode_png(random_buffer)
    assert data[:8] == b"\x89PNG\r\n\x1a\n"
    assert repo.decode(data, "out.png") == random_buffer


def test_jpeg_keeps_dimensions_and_is_opaque(repo, random_buffer):
    decoded = repo.decode(encode(random_buffer.pixels[:, :, :3], "JPEG"), "photo.JPG")
    assert decoded.size == random_buffer.size
    assert (decoded.pixels[:, :, 3] == 255).all()


def test_bmp_and_grayscale_become_rgba(repo):
    gray = np.full((5, 7), 99, dtype=np.uint8)
    decoded = repo.decode(encode(gray, "BMP"), "scan.bmp")

    assert decoded.size == (7, 5)
    assert (decoded.pixels[:, :, :3] == 99).all()
    assert (decoded.pixels[:, :, 3] == 255).all()


def test_content_is_sniffed_without_a_hint(repo, random_buffer):
    assert repo.decode(repo.encode_png(random_buffer)) == random_buffer


@pytest.mark.parametrize("hint", ["anim.gif", "photo.webp", "tiff", "noextension"])
def test_unsupported_extension(repo, random_buffer, hint):
    with pytest.raises(UnsupportedFormat):
        repo.decode(repo.encode_png(random_buffer), hint)


def test_unsupported_content_behind_supported_extension(repo, random_buffer):
    gif = encode(random_buffer.pixels[:, :, :3], "GIF")
    with pytest.raises(UnsupportedFormat):
        repo.decode(gif, "sneaky.png")


@pytest.mark.parametrize("data", [b"", b"not an image at all"])
def test_garbage_is_a_decode_error(repo, data):
    with pytest.raises(DecodeError):
        repo.decode(data, "broken.png")


def test_truncated_png_is_a_decode_error(repo, rng):
    noisy = PixelBuffer(rng.integers(0, 256, size=(64, 64, 4), dtype=np.uint8))
    data = repo.encode_png(noisy)
    with pytest.raises(DecodeError):
        repo.decode(data[: len(data) // 2], "half.png")


def test_oversized_image_is_a_decode_error(repo, random_buffer, monkeypatch):
    data = encode(random_buffer.pixels)
    # Pillow refuses images over twice MAX_IMAGE_PIXELS outright
    monkeypatch.setattr(PILImage, "MAX_IMAGE_PIXELS", 100)
    with pytest.raises(DecodeError, match="too large"):
        repo.decode(data, "huge.png")


def test_errors_are_value_errors(repo):
    with pytest.raises(ValueError):
        repo.decode(b"junk", "file.gif")


def test_extensions_come_from_config():
    repo = ImageRepository(valid_exts="png")
    assert repo.is_supported("a.PNG")
    assert not repo.is_supported("a.jpg")


def test_encode_failure_is_wrapped(repo, monkeypatch):
    def boom(*args, **kwargs):
        raise OSError("disk on fire")

    monkeypatch.setattr("PIL.Image.Image.save", boom)
    with pytest.raises(ExportFailure):
        repo.encode_png(PixelBuffer.blank(2, 2))


@pytest.mark.parametrize("hint,expected", [
    ("photo.JPG", "jpg"),
    (".png", "png"),
    ("bmp", "bmp"),
    ("archive.tar.jpeg", "jpeg"),
    ("", None),
    (None, None),
])
def test_normalise_extension(hint, expected):
    assert normalise_extension(hint) == expected


def test_load_and_save_png(repo, tmp_path, random_buffer):
    path = repo.save_png(random_buffer, tmp_path / "out.png")
    buffer, raw = repo.load(path)

    assert buffer == random_buffer
    assert raw == path.read_bytes()

    with pytest.raises(FileNotFoundError):
        repo.load(tmp_path / "missing.png")
