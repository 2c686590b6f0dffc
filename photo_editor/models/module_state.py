from __future__ import annotations
from dataclasses import dataclass
from enum import Enum

from .pixel_buffer import PixelBuffer


class ModuleKind(str, Enum):
    PREVIEW = "preview"
    SKETCH = "sketch"
    RESIZE = "resize"
    CARTOON = "cartoon"
    BACKGROUND = "background"

    @classmethod
    def effects(cls) -> tuple["ModuleKind", ...]:
        return cls.SKETCH, cls.RESIZE, cls.CARTOON, cls.BACKGROUND


@dataclass
class ModuleState:
    """
    Before/after buffers of one effect module.
    Both are private copies; never alias the canonical image.
    """
    kind: ModuleKind
    before: PixelBuffer
    after: PixelBuffer
    has_result: bool = False      # True once apply() stored an `after`
    synced_generation: int = -1   # canonical generation `before` was copied from

    @classmethod
    def from_canonical(cls, kind: ModuleKind, canonical: PixelBuffer, generation: int) -> "ModuleState":
        return cls(kind=kind, before=canonical.copy(), after=canonical.copy(),
                   synced_generation=generation)

    def is_stale(self, generation: int) -> bool:
        return self.synced_generation != generation

    def resync(self, canonical: PixelBuffer, generation: int) -> None:
        """Refresh `before`; keep an applied `after`, otherwise mirror `before`."""
        self.before = canonical.copy()
        if not self.has_result:
            self.after = canonical.copy()
        self.synced_generation = generation

    def store_result(self, result: PixelBuffer, generation: int) -> None:
        self.after = result
        self.has_result = True
        self.synced_generation = generation

    def reset(self, canonical: PixelBuffer, generation: int) -> None:
        self.before = canonical.copy()
        self.after = canonical.copy()
        self.has_result = False
        self.synced_generation = generation
