"""In-memory photo editor core: sketch, resize, cartoon and colour-key background removal."""

from .errors import (
    DecodeError,
    EditorError,
    ExportFailure,
    InvalidDimensions,
    NoImageLoaded,
    UnsupportedFormat,
)
from .models import (
    BackgroundRemovalParameters,
    CartoonParameters,
    ModuleKind,
    PixelBuffer,
    ResizeParameters,
    SketchParameters,
)
from .services.session_controller import SessionController

__version__ = "1.0.0"
