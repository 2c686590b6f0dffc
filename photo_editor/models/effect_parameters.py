from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Tuple
import re


RGB = Tuple[int, int, int]
WHITE: RGB = (255, 255, 255)

_HEX_COLOR = re.compile(r"^#?([0-9a-f]{2})([0-9a-f]{2})([0-9a-f]{2})$", re.IGNORECASE)


def _clamp(value, lo, hi):
    return max(lo, min(hi, value))


def parse_hex_color(value: str | None) -> RGB:
    """
    '#RRGGBB' or 'RRGGBB' → (r, g, b).
    Anything else falls back to white.
    """
    match = _HEX_COLOR.match(value.strip()) if isinstance(value, str) else None
    if match is None:
        return WHITE
    return tuple(int(group, 16) for group in match.groups())


def to_hex_color(rgb: RGB) -> str:
    return "#{:02x}{:02x}{:02x}".format(*rgb)


@dataclass(frozen=True)
class SketchParameters:
    """Pencil-sketch knobs, in slider units."""
    intensity: int = 5   # [1, 10]
    detail:    int = 7   # [1, 10]
    smoothing: int = 2   # [0, 10]

    def clamped(self) -> "SketchParameters":
        return SketchParameters(
            intensity=_clamp(int(self.intensity), 1, 10),
            detail=_clamp(int(self.detail), 1, 10),
            smoothing=_clamp(int(self.smoothing), 0, 10),
        )


@dataclass(frozen=True)
class ResizeParameters:
    """
    Target size plus a quality percentage.
    Quality only feeds the estimated output size; pixels are unaffected.
    """
    target_width:  int
    target_height: int
    quality:       int = 90  # [0, 100]

    def clamped(self) -> "ResizeParameters":
        # dimensions are validated by the resample step, not clamped
        return replace(self, quality=_clamp(int(self.quality), 0, 100))


@dataclass(frozen=True)
class CartoonParameters:
    intensity:      int = 5  # [1, 10]  blur strength
    edge_thickness: int = 2  # [1, 10]  outline strength
    color_levels:   int = 8  # [2, 16]

    def clamped(self) -> "CartoonParameters":
        return CartoonParameters(
            intensity=_clamp(int(self.intensity), 1, 10),
            edge_thickness=_clamp(int(self.edge_thickness), 1, 10),
            color_levels=_clamp(int(self.color_levels), 2, 16),
        )


@dataclass(frozen=True)
class BackgroundRemovalParameters:
    threshold: int = 30      # [0, 100]
    feather:   int = 2       # [0, 50]
    key_color: RGB = WHITE

    @classmethod
    def with_hex_key(cls, threshold: int = 30, feather: int = 2,
                     key_color: str | None = None) -> "BackgroundRemovalParameters":
        return cls(threshold=threshold, feather=feather, key_color=parse_hex_color(key_color))

    def clamped(self) -> "BackgroundRemovalParameters":
        return BackgroundRemovalParameters(
            threshold=_clamp(int(self.threshold), 0, 100),
            feather=_clamp(int(self.feather), 0, 50),
            key_color=tuple(_clamp(int(c), 0, 255) for c in self.key_color),
        )
