from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Union

_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}([0-9a-fA-F]{2})?$")


def _check_channel_u8(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool) or value < 0 or value > 255:
        raise ValueError(f"ColorU8 `{name}` must be an int in [0, 255]")


@dataclass(frozen=True)
class ColorU8:
    """RGBA color with 8 bits per channel, straight (not premultiplied) alpha."""

    red: int
    green: int
    blue: int
    alpha: int = 255

    def __post_init__(self) -> None:
        for name in ("red", "green", "blue", "alpha"):
            _check_channel_u8(name, getattr(self, name))

    @classmethod
    def from_rgba(cls, red: int, green: int, blue: int, alpha: int) -> ColorU8:
        return cls(red, green, blue, alpha)

    def as_bytes(self) -> tuple[int, int, int, int]:
        return (self.red, self.green, self.blue, self.alpha)

    def premultiply(self) -> ColorU8:
        """Scale RGB by alpha, rounding to nearest."""
        if self.alpha == 255:
            return self
        a = self.alpha
        return ColorU8(
            _premultiply_u8(self.red, a),
            _premultiply_u8(self.green, a),
            _premultiply_u8(self.blue, a),
            a,
        )


def _premultiply_u8(c: int, a: int) -> int:
    prod = c * a + 128
    return (prod + (prod >> 8)) >> 8


@dataclass(frozen=True)
class Color:
    """RGBA color with float channels in [0, 1]."""

    red: float
    green: float
    blue: float
    alpha: float = 1.0

    def __post_init__(self) -> None:
        for name in ("red", "green", "blue", "alpha"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or not (0.0 <= float(value) <= 1.0):
                raise ValueError(f"Color `{name}` must be in [0, 1]")

    def to_color_u8(self) -> ColorU8:
        return ColorU8(
            int(self.red * 255.0 + 0.5),
            int(self.green * 255.0 + 0.5),
            int(self.blue * 255.0 + 0.5),
            int(self.alpha * 255.0 + 0.5),
        )


ColorLike = Union[ColorU8, Color, str, tuple[int, int, int, int]]

WHITE = ColorU8(255, 255, 255, 255)
BLACK = ColorU8(0, 0, 0, 255)
TRANSPARENT = ColorU8(0, 0, 0, 0)


def parse_hex_color(value: str) -> ColorU8:
    """Parse `#RRGGBB` or `#RRGGBBAA`."""

    if not _HEX_COLOR.match(value):
        raise ValueError(f"color must be a hex color (#RRGGBB or #RRGGBBAA), got {value!r}")
    raw = value[1:]
    alpha = int(raw[6:8], 16) if len(raw) == 8 else 255
    return ColorU8(int(raw[0:2], 16), int(raw[2:4], 16), int(raw[4:6], 16), alpha)


def to_color_u8(value: ColorLike) -> ColorU8:
    if isinstance(value, ColorU8):
        return value
    if isinstance(value, Color):
        return value.to_color_u8()
    if isinstance(value, str):
        return parse_hex_color(value)
    if isinstance(value, tuple) and len(value) == 4:
        return ColorU8(*value)
    raise ValueError(f"unsupported color value: {value!r}")
