from .pixel_buffer import PixelBuffer
from .module_state import ModuleKind, ModuleState
from .effect_parameters import (
    BackgroundRemovalParameters,
    CartoonParameters,
    ResizeParameters,
    SketchParameters,
    parse_hex_color,
)
