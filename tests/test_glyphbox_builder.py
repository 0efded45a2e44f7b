from __future__ import annotations

import unittest

from glyphbox.builder import Builder, DefaultBounds, InnerBounds, OuterBounds, resolve_font_index, resolve_runs
from glyphbox.color import WHITE, Color, ColorU8
from glyphbox.errors import BoundsError, InsetError, RectError
from glyphbox.font import GlyphRasterConfig, LineMetrics, Metrics
from glyphbox.geometry import Rect
from glyphbox.layout import GlyphPosition, LayoutSettings, LinePosition, TextStyle
from glyphbox.tokens import validate_text_tokens


RED = ColorU8(255, 0, 0, 255)
BLUE = ColorU8(0, 0, 255, 255)


class _FakeFont:
    def __init__(self, chars: str, font_hash: int) -> None:
        self.chars = set(chars)
        self.font_hash = font_hash

    def has_glyph(self, ch: str) -> bool:
        return ch in self.chars

    def lookup_glyph_index(self, ch: str) -> int:
        return ord(ch) if ch in self.chars else 0

    def metrics_indexed(self, glyph_index: int, px: float) -> Metrics:
        return Metrics(xmin=0, ymin=0, width=6, height=8, advance_width=10.0)

    def horizontal_line_metrics(self, px: float) -> LineMetrics:
        return LineMetrics(ascent=px * 0.75, descent=-px * 0.25, line_gap=0.0, new_line_size=px)

    def rasterize_config(self, key: GlyphRasterConfig) -> tuple[Metrics, bytes]:
        return self.metrics_indexed(key.glyph_index, key.px), bytes([255]) * 48


class _RecordingLayout:
    def __init__(self) -> None:
        self.settings: list[LayoutSettings] = []
        self.styles: list[TextStyle] = []

    def reset(self, settings: LayoutSettings) -> None:
        self.settings.append(settings)
        self.styles = []

    def append(self, fonts, style: TextStyle) -> None:
        self.styles.append(style)

    def lines(self) -> list[LinePosition] | None:
        return None

    def height(self) -> float:
        return 0.0

    def glyphs(self) -> list[GlyphPosition]:
        return []


class BuilderStateTests(unittest.TestCase):
    def setUp(self) -> None:
        self.font = _FakeFont("abc ", font_hash=1)
        self.layout = _RecordingLayout()

    def test_new_builder_defaults(self) -> None:
        builder = Builder.new(self.font, "abc")
        self.assertEqual(builder.fonts, (self.font,))
        self.assertEqual(builder.bounds, DefaultBounds())
        self.assertEqual(builder.tint, WHITE)
        self.assertEqual(builder.font_size, 24.0)
        self.assertEqual(builder.horizontal_align, "center")
        self.assertEqual(builder.vertical_align, "middle")

    def test_new_builder_from_tokens(self) -> None:
        tokens = validate_text_tokens({"size_px": 12, "halign": "left", "color_hex": "#FF000080"})
        builder = Builder.new(self.font, "abc", tokens=tokens)
        self.assertEqual(builder.font_size, 12.0)
        self.assertEqual(builder.horizontal_align, "left")
        self.assertEqual(builder.tint, ColorU8(255, 0, 0, 128))

    def test_last_color_wins_and_original_is_untouched(self) -> None:
        base = Builder.new(self.font, "abc")
        final = base.color(RED).color(BLUE)
        box = final.bounds_inner(Rect(0.0, 0.0, 100.0, 50.0)).build(self.layout)
        self.assertEqual(box.color, BLUE)
        self.assertEqual(base.tint, WHITE)

    def test_color_accepts_float_and_hex_forms(self) -> None:
        builder = Builder.new(self.font, "abc")
        self.assertEqual(builder.color(Color(1.0, 0.0, 0.0, 1.0)).tint, RED)
        self.assertEqual(builder.color("#0000FF").tint, BLUE)

    def test_style_setters_validate(self) -> None:
        builder = Builder.new(self.font, "abc")
        with self.assertRaisesRegex(ValueError, "horizontal alignment"):
            builder.halign("middle")  # type: ignore[arg-type]
        with self.assertRaisesRegex(ValueError, ">= 0"):
            builder.size(-1.0)
        self.assertEqual(builder.halign("right").valign("bottom").size(30).font_size, 30.0)

    def test_fallback_font_appends_in_priority_order(self) -> None:
        second = _FakeFont("x", font_hash=2)
        third = _FakeFont("y", font_hash=3)
        builder = Builder.new(self.font, "abc").fallback_font(second).fallback_font(third)
        self.assertEqual(builder.fonts, (self.font, second, third))

    def test_build_without_bounds_or_canvas_is_rejected(self) -> None:
        with self.assertRaisesRegex(BoundsError, "bounds not resolved"):
            Builder.new(self.font, "abc").build(self.layout)

    def test_outer_after_inner_is_rejected(self) -> None:
        builder = Builder.new(self.font, "abc").bounds_inner(Rect(0.0, 0.0, 10.0, 10.0))
        with self.assertRaises(BoundsError):
            builder.bounds_outer(Rect(0.0, 0.0, 50.0, 50.0))
        with self.assertRaises(BoundsError):
            builder.bounds_inner(Rect(0.0, 0.0, 50.0, 50.0))

    def test_inner_after_outer_discards_outer(self) -> None:
        inner = Rect(5.0, 6.0, 70.0, 30.0)
        builder = Builder.new(self.font, "abc").bounds_outer(Rect(0.0, 0.0, 200.0, 200.0)).bounds_inner(inner)
        self.assertEqual(builder.bounds, InnerBounds(inner))
        box = builder.build(self.layout)
        self.assertEqual(box.inner_bounds, inner)

    def test_canvas_size_only_applies_without_bounds(self) -> None:
        builder = Builder.new(self.font, "abc").bounds_inner(Rect(0.0, 0.0, 10.0, 10.0))
        with self.assertRaisesRegex(BoundsError, "canvas_size"):
            builder.build(self.layout, canvas_size=(100.0, 100.0))


class BuilderBoundsResolutionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.font = _FakeFont("abc ", font_hash=1)
        self.layout = _RecordingLayout()

    def test_inner_bounds_reset_layout_with_rect_and_alignment(self) -> None:
        rect = Rect(10.0, 20.0, 100.0, 50.0)
        Builder.new(self.font, "abc").halign("right").valign("top").bounds_inner(rect).build(self.layout)
        settings = self.layout.settings[-1]
        self.assertEqual((settings.x, settings.y), (10.0, 20.0))
        self.assertEqual((settings.max_width, settings.max_height), (100.0, 50.0))
        self.assertEqual((settings.horizontal_align, settings.vertical_align), ("right", "top"))
        self.assertEqual(settings.line_height, LayoutSettings().line_height)

    def test_outer_bounds_are_inset_by_half_size(self) -> None:
        box = Builder.new(self.font, "abc").bounds_outer(Rect(0.0, 0.0, 100.0, 60.0)).build(self.layout)
        self.assertEqual(box.inner_bounds, Rect(12.0, 12.0, 76.0, 36.0))

    def test_outer_bounds_smaller_than_size_fail_with_inset(self) -> None:
        builder = Builder.new(self.font, "abc").size(24.0).bounds_outer(Rect(0.0, 0.0, 4.0, 4.0))
        self.assertIsInstance(builder.bounds, OuterBounds)
        with self.assertRaises(InsetError):
            builder.build(self.layout)
        self.assertEqual(self.layout.settings, [])

    def test_canvas_fit_insets_full_canvas(self) -> None:
        box = Builder.new(self.font, "abc").build(self.layout, canvas_size=(200.0, 100.0))
        self.assertEqual(box.inner_bounds, Rect(12.0, 12.0, 176.0, 76.0))

    def test_canvas_fit_rejects_non_positive_canvas(self) -> None:
        with self.assertRaises(RectError):
            Builder.new(self.font, "abc").build(self.layout, canvas_size=(0.0, 100.0))
        with self.assertRaises(RectError):
            Builder.new(self.font, "abc").build(self.layout, canvas_size=(float("nan"), 100.0))

    def test_canvas_fit_rejects_canvas_smaller_than_margin(self) -> None:
        with self.assertRaises(InsetError):
            Builder.new(self.font, "abc").build(self.layout, canvas_size=(10.0, 100.0))


class FallbackResolutionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.primary = _FakeFont("abc ", font_hash=1)
        self.fallback = _FakeFont("cxyz", font_hash=2)

    def test_first_font_with_glyph_wins(self) -> None:
        fonts = [self.primary, self.fallback]
        self.assertEqual(resolve_font_index(fonts, "a"), 0)
        self.assertEqual(resolve_font_index(fonts, "c"), 0)
        self.assertEqual(resolve_font_index(fonts, "x"), 1)
        self.assertEqual(resolve_font_index(fonts, "?"), 0)

    def test_runs_are_maximal_and_keep_order(self) -> None:
        runs = resolve_runs([self.primary, self.fallback], "ab xy?cz")
        self.assertEqual(runs, [(0, "ab "), (1, "xy"), (0, "?c"), (1, "z")])

    def test_single_font_is_one_run(self) -> None:
        self.assertEqual(resolve_runs([self.primary], "xyz?"), [(0, "xyz?")])
        self.assertEqual(resolve_runs([self.primary, self.fallback], ""), [])

    def test_build_appends_one_style_per_run(self) -> None:
        layout = _RecordingLayout()
        (
            Builder.new(self.primary, "ab xy?c")
            .fallback_font(self.fallback)
            .size(18.0)
            .bounds_inner(Rect(0.0, 0.0, 300.0, 40.0))
            .build(layout)
        )
        self.assertEqual(
            [(style.font_index, style.text, style.px) for style in layout.styles],
            [(0, "ab ", 18.0), (1, "xy", 18.0), (0, "?c", 18.0)],
        )

    def test_empty_text_appends_nothing(self) -> None:
        layout = _RecordingLayout()
        Builder.new(self.primary, "").bounds_inner(Rect(0.0, 0.0, 10.0, 10.0)).build(layout)
        self.assertEqual(layout.styles, [])
        self.assertEqual(len(layout.settings), 1)


if __name__ == "__main__":
    unittest.main()
