from __future__ import annotations

import logging
import math
from typing import Sequence
import weakref

import numpy as np

from .cache import GlyphCache, GlyphCacheKey
from .canvas import Canvas, Pixmap
from .color import ColorU8
from .errors import GlyphPixmapError, OutsetError, RectError, StaleLayoutError
from .font import GlyphRasterizer
from .geometry import Rect
from .layout import GlyphPosition, LayoutEngine
from .tokens import HorizontalAlign, VerticalAlign


LOGGER = logging.getLogger(__name__)

# Keyed by id() so layouts need not be hashable. Each lease keeps its layout
# alive, so an id cannot be reused while its entry exists.
_LEASES: weakref.WeakValueDictionary[int, LayoutLease] = weakref.WeakValueDictionary()


class LayoutLease:
    """Claim on a layout engine held by the TextBox most recently built on it.

    Taking a new lease on the same layout revokes the previous one.
    """

    def __init__(self, layout: LayoutEngine) -> None:
        self.layout = layout
        _LEASES[id(layout)] = self

    @property
    def active(self) -> bool:
        return _LEASES.get(id(self.layout)) is self

    def check(self) -> LayoutEngine:
        if not self.active:
            raise StaleLayoutError("layout was reset by a later build; rebuild the text box")
        return self.layout


def _align_offset(leftover: float, align: str) -> float:
    if align in ("left", "top"):
        return 0.0
    if align in ("center", "middle"):
        return leftover / 2.0
    return leftover


class TextBox:
    """Resolved text layout that can be measured and drawn.

    Only valid while it holds the lease on its layout; any later build on
    the same layout makes every method raise StaleLayoutError.
    """

    def __init__(
        self,
        *,
        fonts: Sequence[GlyphRasterizer],
        lease: LayoutLease,
        inner_bounds: Rect,
        color: ColorU8,
        size: float,
        halign: HorizontalAlign,
        valign: VerticalAlign,
    ) -> None:
        if not fonts:
            raise ValueError("TextBox requires at least one font")
        self._fonts = tuple(fonts)
        self._lease = lease
        self._inner_bounds = inner_bounds
        self._color = color
        self._size = size
        self._halign = halign
        self._valign = valign

    @property
    def fonts(self) -> tuple[GlyphRasterizer, ...]:
        return self._fonts

    @property
    def inner_bounds(self) -> Rect:
        return self._inner_bounds

    @property
    def color(self) -> ColorU8:
        return self._color

    @property
    def size(self) -> float:
        return self._size

    @property
    def halign(self) -> HorizontalAlign:
        return self._halign

    @property
    def valign(self) -> VerticalAlign:
        return self._valign

    @property
    def layout(self) -> LayoutEngine:
        return self._lease.check()

    @property
    def is_valid(self) -> bool:
        return self._lease.active

    def rect_inner(self) -> Rect:
        """Tight rectangle around the laid-out lines, placed by alignment.

        Text that overflows the bounds is not clamped: the rectangle then
        starts before the bounds origin.
        """

        layout = self._lease.check()
        bounds = self._inner_bounds
        widths = [bounds.width - line.padding for line in layout.lines() or ()]
        width = max((w for w in widths if not math.isnan(w)), default=0.0)
        height = float(layout.height())
        rect = Rect.from_xywh(
            bounds.x + _align_offset(bounds.width - width, self._halign),
            bounds.y + _align_offset(bounds.height - height, self._valign),
            width,
            height,
        )
        if rect is None:
            raise RectError(f"failed to calculate text dimensions (width={width}, height={height})")
        return rect

    def rect_outer(self) -> Rect:
        margin = self._size / 2.0
        rect = self.rect_inner().outset(margin, margin)
        if rect is None:
            raise OutsetError()
        return rect

    def draw(self, canvas: Canvas, glyph_cache: GlyphCache) -> int:
        """Composite every inked glyph onto `canvas`; returns the glyph count drawn.

        On failure, glyphs drawn and cache entries inserted so far are kept.
        """

        layout = self._lease.check()
        tint = self._color.as_bytes()
        drawn = 0
        inserted = 0
        for glyph in layout.glyphs():
            if glyph.width <= 0 or glyph.height <= 0:
                continue
            key = GlyphCacheKey(raster_key=glyph.key, color=tint)
            pixmap = glyph_cache.get(key)
            if pixmap is None:
                pixmap = self._render_glyph(glyph)
                canvas.draw_pixmap(0, 0, pixmap, (glyph.x, glyph.y))
                glyph_cache.insert(key, pixmap)
                inserted += 1
            else:
                canvas.draw_pixmap(0, 0, pixmap, (glyph.x, glyph.y))
            drawn += 1
        LOGGER.debug("drew %d glyphs (%d rasterized, cache size %d)", drawn, inserted, len(glyph_cache))
        return drawn

    def _render_glyph(self, glyph: GlyphPosition) -> Pixmap:
        width = int(glyph.width)
        height = int(glyph.height)
        try:
            pixmap = Pixmap.new(width, height)
        except MemoryError as exc:
            raise GlyphPixmapError() from exc
        if pixmap is None:
            raise GlyphPixmapError()
        _, coverage = self._fonts[glyph.font_index].rasterize_config(glyph.key)
        if len(coverage) != width * height:
            raise GlyphPixmapError(
                f"rasterizer returned {len(coverage)} coverage bytes for a {width}x{height} glyph"
            )
        red, green, blue, tint_alpha = self._color.as_bytes()
        cov = np.frombuffer(bytes(coverage), dtype=np.uint8).reshape(height, width).astype(np.uint32)
        alpha = (tint_alpha * cov) // 255
        rgb = np.array([red, green, blue], dtype=np.uint32).reshape(1, 1, 3)
        prod = rgb * alpha[:, :, None] + 128
        pixels = pixmap.pixels
        pixels[:, :, :3] = ((prod + (prod >> 8)) >> 8).astype(np.uint8)
        pixels[:, :, 3] = alpha.astype(np.uint8)
        return pixmap
