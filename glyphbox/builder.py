from __future__ import annotations

from dataclasses import dataclass, field, replace
from itertools import groupby
import logging
import math
from typing import Sequence, TypeAlias

from .color import ColorLike, ColorU8, to_color_u8
from .errors import BoundsError, InsetError, RectError
from .font import Font
from .geometry import Rect
from .layout import LayoutEngine, LayoutSettings, TextStyle
from .textbox import LayoutLease, TextBox
from .tokens import DEFAULT_TOKENS, HorizontalAlign, TextTokens, VerticalAlign, validate_halign, validate_valign


LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class DefaultBounds:
    """No rectangle yet; build needs a canvas size."""


@dataclass(frozen=True)
class InnerBounds:
    """Rectangle glyphs are laid out within."""

    rect: Rect


@dataclass(frozen=True)
class OuterBounds:
    """Rectangle shrunk by half the font size on each side before layout."""

    rect: Rect


Bounds: TypeAlias = DefaultBounds | InnerBounds | OuterBounds


def resolve_font_index(fonts: Sequence[Font], ch: str) -> int:
    """Index of the first font that has `ch`, or 0 when none does."""
    for index, font in enumerate(fonts):
        if font.has_glyph(ch):
            return index
    return 0


def resolve_runs(fonts: Sequence[Font], text: str) -> list[tuple[int, str]]:
    """Split `text` into maximal runs of characters resolving to the same font."""

    if not text:
        return []
    if len(fonts) == 1:
        return [(0, text)]
    return [
        (font_index, "".join(chars))
        for font_index, chars in groupby(text, key=lambda ch: resolve_font_index(fonts, ch))
    ]


@dataclass(frozen=True)
class Builder:
    """Immutable text box configuration.

    Every method returns a new Builder. Bounds move Default -> Outer -> Inner
    (or straight to Inner); `build` resolves them into a TextBox.
    """

    fonts: tuple[Font, ...]
    text: str
    bounds: Bounds = field(default_factory=DefaultBounds)
    tint: ColorU8 = field(default_factory=lambda: DEFAULT_TOKENS.color)
    font_size: float = DEFAULT_TOKENS.size_px
    horizontal_align: HorizontalAlign = DEFAULT_TOKENS.halign
    vertical_align: VerticalAlign = DEFAULT_TOKENS.valign

    def __post_init__(self) -> None:
        if not self.fonts:
            raise ValueError("Builder requires at least one font")
        object.__setattr__(self, "fonts", tuple(self.fonts))

    @classmethod
    def new(cls, font: Font, text: str, *, tokens: TextTokens = DEFAULT_TOKENS) -> Builder:
        return cls(
            fonts=(font,),
            text=text,
            tint=tokens.color,
            font_size=tokens.size_px,
            horizontal_align=tokens.halign,
            vertical_align=tokens.valign,
        )

    def fallback_font(self, font: Font) -> Builder:
        return replace(self, fonts=self.fonts + (font,))

    def color(self, color: ColorLike) -> Builder:
        return replace(self, tint=to_color_u8(color))

    def size(self, size: float) -> Builder:
        if not math.isfinite(size) or size < 0:
            raise ValueError("font size must be a finite number >= 0")
        return replace(self, font_size=float(size))

    def halign(self, halign: HorizontalAlign) -> Builder:
        return replace(self, horizontal_align=validate_halign(halign))

    def valign(self, valign: VerticalAlign) -> Builder:
        return replace(self, vertical_align=validate_valign(valign))

    def bounds_inner(self, rect: Rect) -> Builder:
        if isinstance(self.bounds, InnerBounds):
            raise BoundsError("inner bounds are already set")
        return replace(self, bounds=InnerBounds(rect))

    def bounds_outer(self, rect: Rect) -> Builder:
        if not isinstance(self.bounds, DefaultBounds):
            raise BoundsError("outer bounds can only be set on a builder without bounds")
        return replace(self, bounds=OuterBounds(rect))

    def build(self, layout: LayoutEngine, canvas_size: tuple[float, float] | None = None) -> TextBox:
        """Lay the text out into `layout` and return the resulting TextBox.

        Without explicit bounds, `canvas_size` is required: the whole canvas
        minus a margin of half the font size becomes the inner bounds.
        """

        bounds = self.bounds
        if not isinstance(bounds, DefaultBounds) and canvas_size is not None:
            raise BoundsError("canvas_size only applies to a builder without bounds")
        if isinstance(bounds, InnerBounds):
            return self._build_inner(layout, bounds.rect)

        margin = self.font_size / 2.0
        if isinstance(bounds, OuterBounds):
            outer = bounds.rect
        else:
            if canvas_size is None:
                raise BoundsError("bounds not resolved: set inner/outer bounds or pass canvas_size")
            canvas_width, canvas_height = canvas_size
            if not (canvas_width > 0 and canvas_height > 0):
                raise RectError(f"canvas size must be positive, got {canvas_width}x{canvas_height}")
            outer = Rect.from_xywh(0.0, 0.0, canvas_width, canvas_height)
            if outer is None:
                raise RectError(f"invalid canvas size {canvas_width}x{canvas_height}")
        inner = outer.inset(margin, margin)
        if inner is None:
            raise InsetError(f"failed to inset text rect: {outer.width}x{outer.height} is too small for a margin of {margin}")
        return self._build_inner(layout, inner)

    def _build_inner(self, layout: LayoutEngine, rect: Rect) -> TextBox:
        lease = LayoutLease(layout)
        layout.reset(
            LayoutSettings(
                x=rect.x,
                y=rect.y,
                max_width=rect.width,
                max_height=rect.height,
                horizontal_align=self.horizontal_align,
                vertical_align=self.vertical_align,
            )
        )
        runs = resolve_runs(self.fonts, self.text)
        for font_index, segment in runs:
            layout.append(self.fonts, TextStyle(text=segment, px=self.font_size, font_index=font_index))
        LOGGER.debug("laid out %d chars in %d runs across %d fonts", len(self.text), len(runs), len(self.fonts))
        return TextBox(
            fonts=self.fonts,
            lease=lease,
            inner_bounds=rect,
            color=self.tint,
            size=self.font_size,
            halign=self.horizontal_align,
            valign=self.vertical_align,
        )
