from __future__ import annotations

import argparse
import logging
from pathlib import Path

from glyphbox import Builder, Font, GlyphCache, Layout, Pixmap, Rect, new_canvas, resolve_font_path


def _fill_rect(canvas: Pixmap, rect: Rect, color: str) -> None:
    patch = Pixmap.new(int(round(rect.width)), int(round(rect.height)))
    if patch is None:
        return
    patch.fill(color)
    canvas.draw_pixmap(0, 0, patch, (rect.x, rect.y))


def main() -> None:
    parser = argparse.ArgumentParser(description="Render a text box caption to PNG.")
    parser.add_argument("text", nargs="?", default="Hello, glyphbox! Привет, мир")
    parser.add_argument("--family", default="DejaVu Sans")
    parser.add_argument("--fallback-family", default="Noto Sans")
    parser.add_argument("--size", type=float, default=32.0)
    parser.add_argument("--width", type=int, default=640)
    parser.add_argument("--height", type=int, default=240)
    parser.add_argument("--out", type=Path, default=Path("text_box_demo.png"))
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    primary_path = resolve_font_path(args.family)
    if primary_path is None:
        raise SystemExit(f"no font found for `{args.family}`")
    builder = Builder.new(Font.from_path(primary_path), args.text).size(args.size).color("#F8FAFC")
    fallback_path = resolve_font_path(args.fallback_family)
    if fallback_path is not None and fallback_path != primary_path:
        builder = builder.fallback_font(Font.from_path(fallback_path))

    layout = Layout()
    box = builder.build(layout, canvas_size=(float(args.width), float(args.height)))

    canvas = new_canvas(args.width, args.height, color="#0F172A")
    _fill_rect(canvas, box.rect_outer(), "#334155")
    cache = GlyphCache()
    box.draw(canvas, cache)
    canvas.save_png(args.out)
    print(f"wrote {args.out} ({len(cache)} cached glyphs)")


if __name__ == "__main__":
    main()
