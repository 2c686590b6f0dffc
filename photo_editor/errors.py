class EditorError(Exception):
    """
    Base class for every recoverable editor failure.
    The session is left in its last good state when one is raised.
    """


class UnsupportedFormat(EditorError, ValueError):
    """File extension or sniffed content is not jpg/jpeg/png/bmp."""


class DecodeError(EditorError, ValueError):
    """Bytes are corrupt or cannot be read as an image."""


class InvalidDimensions(EditorError, ValueError):
    """A width/height (or pixel coordinate) is out of range."""


class NoImageLoaded(EditorError):
    """Operation needs an image but none has been loaded yet."""


class ExportFailure(EditorError):
    """Encoding the canonical image to PNG failed."""
