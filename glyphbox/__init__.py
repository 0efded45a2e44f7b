"""Text boxes: fallback-font layout, tight measurement and cached glyph drawing."""

from .builder import Builder, Bounds, DefaultBounds, InnerBounds, OuterBounds, resolve_font_index, resolve_runs
from .cache import GlyphCache, GlyphCacheKey
from .canvas import Canvas, Pixmap, TensorCanvas, new_canvas
from .color import BLACK, TRANSPARENT, WHITE, Color, ColorU8, parse_hex_color, to_color_u8
from .errors import (
    BoundsError,
    GlyphPixmapError,
    InsetError,
    OutsetError,
    RectError,
    StaleLayoutError,
    TextBoxError,
)
from .font import Font, GlyphRasterConfig, LineMetrics, Metrics, font_hash, resolve_font_path
from .geometry import Rect
from .layout import GlyphPosition, Layout, LayoutEngine, LayoutSettings, LinePosition, TextStyle
from .textbox import LayoutLease, TextBox
from .tokens import DEFAULT_SIZE, DEFAULT_TOKENS, TextTokens, validate_text_tokens

__all__ = [
    "BLACK",
    "Bounds",
    "BoundsError",
    "Builder",
    "Canvas",
    "Color",
    "ColorU8",
    "DEFAULT_SIZE",
    "DEFAULT_TOKENS",
    "DefaultBounds",
    "Font",
    "GlyphCache",
    "GlyphCacheKey",
    "GlyphPixmapError",
    "GlyphPosition",
    "GlyphRasterConfig",
    "InnerBounds",
    "InsetError",
    "Layout",
    "LayoutEngine",
    "LayoutLease",
    "LayoutSettings",
    "LineMetrics",
    "LinePosition",
    "Metrics",
    "OuterBounds",
    "OutsetError",
    "Pixmap",
    "Rect",
    "RectError",
    "StaleLayoutError",
    "TRANSPARENT",
    "TensorCanvas",
    "TextBox",
    "TextBoxError",
    "TextStyle",
    "TextTokens",
    "WHITE",
    "font_hash",
    "new_canvas",
    "parse_hex_color",
    "resolve_font_index",
    "resolve_font_path",
    "resolve_runs",
    "to_color_u8",
    "validate_text_tokens",
]
