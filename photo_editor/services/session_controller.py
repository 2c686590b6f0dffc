"""
Session state machine for the editor.

    NO_IMAGE ──load──▶ IMAGE_LOADED ──switch──▶ {SKETCH, RESIZE, CARTOON, BACKGROUND}

The controller owns the one canonical image.  Module states and callers only
ever see copies of it, and it is only written by load_image() and apply().
Every public mutator runs under one lock so a slow apply can never land on top
of a newer canonical image.
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Union
import logging
import os
import threading
import time

from dotenv import load_dotenv

from ..errors import NoImageLoaded
from ..models.pixel_buffer import PixelBuffer
from ..models.module_state import ModuleKind, ModuleState
from ..models.effect_parameters import (
    BackgroundRemovalParameters,
    CartoonParameters,
    ResizeParameters,
    SketchParameters,
)
from .image_service import ImageService, format_file_size
from .sketch_service import sketch
from .resize_service import ResizeResult, resize
from .cartoon_service import cartoonize
from .background_service import BackgroundService

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

EffectParameters = Union[SketchParameters, ResizeParameters, CartoonParameters, BackgroundRemovalParameters]

_PARAMETER_TYPES = {
    ModuleKind.SKETCH: SketchParameters,
    ModuleKind.RESIZE: ResizeParameters,
    ModuleKind.CARTOON: CartoonParameters,
    ModuleKind.BACKGROUND: BackgroundRemovalParameters,
}


class SessionState(str, Enum):
    NO_IMAGE = "no_image"
    IMAGE_LOADED = "image_loaded"
    SKETCH = "sketch"
    RESIZE = "resize"
    CARTOON = "cartoon"
    BACKGROUND = "background"


@dataclass
class ImageInfo:
    """What the shell shows next to the preview."""
    width: int                 # canonical (bounded) size
    height: int
    original_width: int        # size of the uploaded file
    original_height: int
    file_size: int
    filename: Optional[str] = None

    @property
    def label(self) -> str:
        return f"{self.original_width} × {self.original_height} • {format_file_size(self.file_size)}"


@dataclass
class ExportedImage:
    filename: str
    data: bytes
    mimetype: str = "image/png"


class SessionController:
    """
    Owns the canonical image and the four module states.
    *   No I/O here: bytes in, bytes out.
    *   Effects are pure; this class decides what they read and where results go.
    """
    def __init__(self,
                 image_service: ImageService | None = None,
                 background_service: BackgroundService | None = None,
                 export_prefix: str | None = None):
        self.image_service = image_service or ImageService()
        self.background_service = background_service or BackgroundService()
        self.EXPORT_PREFIX = export_prefix or os.getenv("EXPORT_FILENAME_PREFIX", "edited-image")

        self._lock = threading.Lock()
        self._canonical: PixelBuffer | None = None
        self._generation = 0
        self._modules: Dict[ModuleKind, ModuleState] = {}
        self.active_module = ModuleKind.PREVIEW
        self.original_source_bytes: bytes = b""
        self.info: ImageInfo | None = None
        self.last_resize: ResizeResult | None = None
        self.history: List[str] = []  # recorded, never replayed

    # ─── read side ────────────────────────────────────────────────
    @property
    def has_image(self) -> bool:
        return self._canonical is not None

    @property
    def state(self) -> SessionState:
        if not self.has_image:
            return SessionState.NO_IMAGE
        if self.active_module is ModuleKind.PREVIEW:
            return SessionState.IMAGE_LOADED
        return SessionState(self.active_module.value)

    @property
    def canonical_image(self) -> PixelBuffer:
        """A copy of the current working image."""
        return self._require_image().copy()

    def module_buffers(self, kind: ModuleKind) -> tuple[PixelBuffer, PixelBuffer]:
        """(before, after) copies for a module that has been shown at least once."""
        kind = ModuleKind(kind)
        state = self._modules.get(kind)
        if state is None:
            raise KeyError(f"Module '{kind.value}' has not been activated")
        return state.before.copy(), state.after.copy()

    def default_parameters(self, kind: ModuleKind) -> EffectParameters:
        kind = ModuleKind(kind)
        if kind is ModuleKind.RESIZE:
            # resize fields start at the uploaded file's own dimensions
            width, height = (self.info.original_width, self.info.original_height) if self.info else (800, 600)
            return ResizeParameters(target_width=width, target_height=height)
        if kind not in _PARAMETER_TYPES:
            raise ValueError(f"Module '{kind.value}' has no parameters")
        return _PARAMETER_TYPES[kind]()

    # ─── write side ───────────────────────────────────────────────
    def load_image(self, data: bytes, filename: str | None = None) -> ImageInfo:
        """
        Decode, bound to MAX_IMAGE_DIMENSION and install as the canonical image.
        Module states are dropped; they resync on their next activation.
        On any error the previous session is left as it was.
        """
        decoded = self.image_service.decode(data, filename)
        bounded = self.image_service.downscale_to_bound(decoded)

        with self._lock:
            self._canonical = bounded
            self._generation += 1
            self._modules.clear()
            self.active_module = ModuleKind.PREVIEW
            self.original_source_bytes = bytes(data)
            self.last_resize = None
            self.info = ImageInfo(
                width=bounded.width,
                height=bounded.height,
                original_width=decoded.width,
                original_height=decoded.height,
                file_size=len(data),
                filename=filename,
            )
            self.history = [f"Loaded {filename or 'image'}"]

        logger.info(f"Loaded {filename or 'image'}: {decoded.width}x{decoded.height} → "
                    f"{bounded.width}x{bounded.height}, {format_file_size(len(data))}")
        return self.info

    def switch_module(self, target: ModuleKind) -> bool:
        """
        Activate a module.  Without an image only PREVIEW is accepted;
        anything else is a no-op returning False.
        """
        target = ModuleKind(target)
        with self._lock:
            if self._canonical is None and target is not ModuleKind.PREVIEW:
                logger.warning(f"Ignoring switch to '{target.value}': no image loaded")
                return False
            self.active_module = target
            if target is not ModuleKind.PREVIEW:
                self._enter_module(target)
        logger.info(f"Active module: {target.value}")
        return True

    def apply(self, kind: ModuleKind, parameters: EffectParameters) -> PixelBuffer:
        """
        Run the module's effect on its `before`, store `after` and make it the
        new canonical image.  Nothing changes if the effect raises.
        """
        kind = ModuleKind(kind)
        if kind not in _PARAMETER_TYPES:
            raise ValueError(f"Module '{kind.value}' has no effect to apply")
        if not isinstance(parameters, _PARAMETER_TYPES[kind]):
            raise TypeError(f"{kind.value} expects {_PARAMETER_TYPES[kind].__name__}, "
                            f"got {type(parameters).__name__}")

        with self._lock:
            canonical = self._require_image()
            state = self._modules.get(kind)
            source = state.before if state and not state.is_stale(self._generation) else canonical

            resize_result = None
            if kind is ModuleKind.SKETCH:
                result = sketch(source, parameters)
            elif kind is ModuleKind.RESIZE:
                resize_result = resize(source, parameters, self.info.file_size)
                result = resize_result.buffer
            elif kind is ModuleKind.CARTOON:
                result = cartoonize(source, parameters)
            else:
                result = self.background_service.remove_background(source, parameters)

            # commit
            state = self._enter_module(kind)
            self._canonical = result.copy()
            self._generation += 1
            state.store_result(result, self._generation)
            if resize_result is not None:
                self.last_resize = resize_result
            self.history.append(f"Applied {kind.value}")

        logger.info(f"Applied {kind.value} → canonical {result.width}x{result.height}")
        return result.copy()

    def reset(self, kind: ModuleKind) -> EffectParameters:
        """
        Resync the module's before/after to the *current* canonical image and
        hand back its default parameters for the shell's widgets.
        """
        kind = ModuleKind(kind)
        if kind not in _PARAMETER_TYPES:
            raise ValueError(f"Module '{kind.value}' cannot be reset")
        with self._lock:
            canonical = self._require_image()
            state = self._modules.get(kind)
            if state is None:
                self._modules[kind] = ModuleState.from_canonical(kind, canonical, self._generation)
            else:
                state.reset(canonical, self._generation)
            if kind is ModuleKind.RESIZE:
                self.last_resize = None
            self.history.append(f"Reset {kind.value}")

        logger.info(f"Reset {kind.value}")
        return self.default_parameters(kind)

    def pick_key_color(self, x: int, y: int) -> tuple[int, int, int]:
        """Colour at (x, y) of the background module's before view."""
        with self._lock:
            self._require_image()
            state = self._enter_module(ModuleKind.BACKGROUND)
            return self.background_service.pick_key_color(state.before, x, y)

    def export_current(self) -> ExportedImage:
        with self._lock:
            canonical = self._require_image()
            data = self.image_service.encode_png(canonical)
        filename = f"{self.EXPORT_PREFIX}-{int(time.time() * 1000)}.png"
        logger.info(f"Exported {filename} ({format_file_size(len(data))})")
        return ExportedImage(filename=filename, data=data)

    # ─── internal helpers ─────────────────────────────────────────
    def _require_image(self) -> PixelBuffer:
        if self._canonical is None:
            raise NoImageLoaded("No image loaded")
        return self._canonical

    def _enter_module(self, kind: ModuleKind) -> ModuleState:
        """Create or refresh a module state from canonical. Caller holds the lock."""
        state = self._modules.get(kind)
        if state is None:
            state = ModuleState.from_canonical(kind, self._canonical, self._generation)
            self._modules[kind] = state
        elif state.is_stale(self._generation):
            state.resync(self._canonical, self._generation)
        return state
