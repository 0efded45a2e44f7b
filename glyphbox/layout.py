from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Literal, Protocol, Sequence

from .font import GlyphRasterConfig, LineMetrics, Metrics
from .tokens import HorizontalAlign, VerticalAlign, validate_halign, validate_valign


WrapStyle = Literal["word", "letter"]

HALIGN_FACTOR: dict[str, float] = {"left": 0.0, "center": 0.5, "right": 1.0}
VALIGN_FACTOR: dict[str, float] = {"top": 0.0, "middle": 0.5, "bottom": 1.0}


class LayoutFont(Protocol):
    font_hash: int

    def lookup_glyph_index(self, ch: str) -> int:
        ...

    def metrics_indexed(self, glyph_index: int, px: float) -> Metrics:
        ...

    def horizontal_line_metrics(self, px: float) -> LineMetrics:
        ...


@dataclass(frozen=True)
class LayoutSettings:
    x: float = 0.0
    y: float = 0.0
    max_width: float | None = None
    max_height: float | None = None
    horizontal_align: HorizontalAlign = "left"
    vertical_align: VerticalAlign = "top"
    line_height: float = 1.0
    wrap_style: WrapStyle = "word"
    wrap_hard_breaks: bool = True

    def __post_init__(self) -> None:
        validate_halign(self.horizontal_align)
        validate_valign(self.vertical_align)
        if self.line_height <= 0:
            raise ValueError("LayoutSettings line_height must be > 0")
        if self.wrap_style not in ("word", "letter"):
            raise ValueError(f"unknown wrap style: {self.wrap_style}")


@dataclass(frozen=True)
class TextStyle:
    text: str
    px: float
    font_index: int = 0


@dataclass(frozen=True)
class GlyphPosition:
    key: GlyphRasterConfig
    font_index: int
    parent: str
    x: float
    y: float
    width: int
    height: int
    byte_offset: int


@dataclass(frozen=True)
class LinePosition:
    baseline_y: float
    padding: float
    max_ascent: float
    min_descent: float
    max_line_gap: float
    max_new_line_size: float
    glyph_start: int
    glyph_end: int


class LayoutEngine(Protocol):
    """Positions styled runs of text. TextBox drives any object with this shape."""

    def reset(self, settings: LayoutSettings) -> None:
        ...

    def append(self, fonts: Sequence[LayoutFont], style: TextStyle) -> None:
        ...

    def lines(self) -> list[LinePosition] | None:
        ...

    def height(self) -> float:
        ...

    def glyphs(self) -> list[GlyphPosition]:
        ...


@dataclass(frozen=True)
class _Char:
    parent: str
    font_index: int
    key: GlyphRasterConfig
    metrics: Metrics
    line_metrics: LineMetrics
    byte_offset: int
    whitespace: bool
    linebreak: bool


_NO_INK = Metrics(xmin=0, ymin=0, width=0, height=0, advance_width=0.0)
_NO_LINE = LineMetrics(ascent=0.0, descent=0.0, line_gap=0.0, new_line_size=0.0)


class Layout:
    """Greedy line-breaking layout over one or more fonts.

    Coordinates are y-down. Glyph positions are snapped to whole pixels.
    """

    def __init__(self, settings: LayoutSettings | None = None) -> None:
        self._settings = settings or LayoutSettings()
        self._chars: list[_Char] = []
        self._byte_offset = 0
        self._glyphs: list[GlyphPosition] | None = None
        self._lines: list[LinePosition] = []
        self._height = 0.0

    @property
    def settings(self) -> LayoutSettings:
        return self._settings

    def reset(self, settings: LayoutSettings) -> None:
        self._settings = settings
        self.clear()

    def clear(self) -> None:
        self._chars = []
        self._byte_offset = 0
        self._glyphs = None
        self._lines = []
        self._height = 0.0

    def append(self, fonts: Sequence[LayoutFont], style: TextStyle) -> None:
        if not math.isfinite(style.px) or style.px < 0:
            raise ValueError("TextStyle px must be a finite number >= 0")
        if not 0 <= style.font_index < len(fonts):
            raise IndexError(f"font index {style.font_index} out of range for {len(fonts)} fonts")
        font = fonts[style.font_index]
        # Zero-size text occupies no space and never reaches the rasterizer.
        empty = style.px == 0
        line_metrics = _NO_LINE if empty else font.horizontal_line_metrics(style.px)
        for ch in style.text:
            linebreak = ch == "\n"
            whitespace = ch.isspace()
            glyph_index = font.lookup_glyph_index(ch)
            if linebreak or empty:
                metrics = _NO_INK
            elif whitespace:
                advance = font.metrics_indexed(glyph_index, style.px).advance_width
                metrics = Metrics(xmin=0, ymin=0, width=0, height=0, advance_width=advance)
            else:
                metrics = font.metrics_indexed(glyph_index, style.px)
            self._chars.append(
                _Char(
                    parent=ch,
                    font_index=style.font_index,
                    key=GlyphRasterConfig(glyph_index=glyph_index, px=style.px, font_hash=font.font_hash),
                    metrics=metrics,
                    line_metrics=line_metrics,
                    byte_offset=self._byte_offset,
                    whitespace=whitespace,
                    linebreak=linebreak,
                )
            )
            self._byte_offset += len(ch.encode("utf-8"))
        self._glyphs = None

    def lines(self) -> list[LinePosition] | None:
        self._finalize()
        return list(self._lines) if self._lines else None

    def height(self) -> float:
        self._finalize()
        return self._height

    def glyphs(self) -> list[GlyphPosition]:
        self._finalize()
        return list(self._glyphs or [])

    def _break_lines(self) -> list[tuple[int, int]]:
        s = self._settings
        chars = self._chars
        ranges: list[tuple[int, int]] = []
        start = 0
        x = 0.0
        last_break: int | None = None
        for i, c in enumerate(chars):
            if c.linebreak and s.wrap_hard_breaks:
                ranges.append((start, i + 1))
                start = i + 1
                x = 0.0
                last_break = None
                continue
            advance = c.metrics.advance_width
            if s.max_width is not None and x + advance > s.max_width and i > start and not c.whitespace:
                if s.wrap_style == "word" and last_break is not None and last_break > start:
                    ranges.append((start, last_break))
                    start = last_break
                    x = sum(ch.metrics.advance_width for ch in chars[start:i])
                if x + advance > s.max_width and i > start:
                    ranges.append((start, i))
                    start = i
                    x = 0.0
                last_break = None
            x += advance
            if c.whitespace:
                last_break = i + 1
        if start < len(chars) or (chars and chars[-1].linebreak and s.wrap_hard_breaks):
            ranges.append((start, len(chars)))
        return ranges

    def _finalize(self) -> None:
        if self._glyphs is not None:
            return
        s = self._settings
        chars = self._chars
        ranges = self._break_lines()

        widths: list[float] = []
        for start, end in ranges:
            ink_end = end
            while ink_end > start and (chars[ink_end - 1].whitespace or chars[ink_end - 1].linebreak):
                ink_end -= 1
            widths.append(sum(c.metrics.advance_width for c in chars[start:ink_end]))

        tops: list[float] = []
        metrics: list[tuple[float, float, float]] = []
        top = 0.0
        height = 0.0
        for index, (start, end) in enumerate(ranges):
            # An empty line after a trailing hard break borrows the break's metrics.
            source = chars[start:end] or [chars[start - 1]]
            ascent = max(c.line_metrics.ascent for c in source)
            descent = min(c.line_metrics.descent for c in source)
            gap = max(c.line_metrics.line_gap for c in source)
            tops.append(top)
            metrics.append((ascent, descent, gap))
            height = top + (ascent - descent)
            if index + 1 < len(ranges):
                top += (ascent - descent + gap) * s.line_height

        reference_width = s.max_width if s.max_width is not None else max(widths, default=0.0)
        y_offset = 0.0
        if s.max_height is not None:
            y_offset = (s.max_height - height) * VALIGN_FACTOR[s.vertical_align]

        glyphs: list[GlyphPosition] = []
        lines: list[LinePosition] = []
        for (start, end), width, line_top, (ascent, descent, gap) in zip(ranges, widths, tops, metrics):
            padding = reference_width - width
            x_offset = s.x + padding * HALIGN_FACTOR[s.horizontal_align]
            baseline_y = s.y + y_offset + line_top + ascent
            glyph_start = len(glyphs)
            pen_x = 0.0
            for c in chars[start:end]:
                m = c.metrics
                glyphs.append(
                    GlyphPosition(
                        key=c.key,
                        font_index=c.font_index,
                        parent=c.parent,
                        x=float(math.floor(x_offset + pen_x + m.xmin)),
                        y=float(math.floor(baseline_y - (m.ymin + m.height))),
                        width=m.width,
                        height=m.height,
                        byte_offset=c.byte_offset,
                    )
                )
                pen_x += m.advance_width
            lines.append(
                LinePosition(
                    baseline_y=baseline_y,
                    padding=padding,
                    max_ascent=ascent,
                    min_descent=descent,
                    max_line_gap=gap,
                    max_new_line_size=ascent - descent + gap,
                    glyph_start=glyph_start,
                    glyph_end=len(glyphs),
                )
            )

        self._glyphs = glyphs
        self._lines = lines
        self._height = height
