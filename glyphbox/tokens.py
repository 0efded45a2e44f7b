from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Literal, Mapping, get_args

from .color import ColorU8, parse_hex_color

HorizontalAlign = Literal["left", "center", "right"]
VerticalAlign = Literal["top", "middle", "bottom"]

HORIZONTAL_ALIGNS: tuple[str, ...] = get_args(HorizontalAlign)
VERTICAL_ALIGNS: tuple[str, ...] = get_args(VerticalAlign)

DEFAULT_SIZE = 24.0


@dataclass(frozen=True)
class TextTokens:
    """Default styling a Builder starts from."""

    color_hex: str = "#FFFFFFFF"
    size_px: float = DEFAULT_SIZE
    halign: HorizontalAlign = "center"
    valign: VerticalAlign = "middle"

    @property
    def color(self) -> ColorU8:
        return parse_hex_color(self.color_hex)


DEFAULT_TOKENS = TextTokens()


def validate_halign(value: Any) -> HorizontalAlign:
    if value not in HORIZONTAL_ALIGNS:
        raise ValueError(f"horizontal alignment must be one of {HORIZONTAL_ALIGNS}, got {value!r}")
    return value


def validate_valign(value: Any) -> VerticalAlign:
    if value not in VERTICAL_ALIGNS:
        raise ValueError(f"vertical alignment must be one of {VERTICAL_ALIGNS}, got {value!r}")
    return value


def validate_text_tokens(overrides: Mapping[str, Any] | None = None) -> TextTokens:
    """Validate and merge user token overrides against the defaults."""

    raw: dict[str, Any] = asdict(DEFAULT_TOKENS)
    if overrides:
        for key, value in overrides.items():
            if key not in raw:
                raise ValueError(f"Unknown text token: {key}")
            raw[key] = value

    if not isinstance(raw["color_hex"], str):
        raise ValueError("Token `color_hex` must be a hex color (#RRGGBB or #RRGGBBAA)")
    parse_hex_color(raw["color_hex"])

    size = raw["size_px"]
    if isinstance(size, bool) or not isinstance(size, (int, float)) or float(size) <= 0:
        raise ValueError("Token `size_px` must be a positive number")

    return TextTokens(
        color_hex=raw["color_hex"],
        size_px=float(size),
        halign=validate_halign(raw["halign"]),
        valign=validate_valign(raw["valign"]),
    )
