from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import hashlib
import io
import logging
from pathlib import Path
from typing import Protocol

import freetype
import numpy as np


LOGGER = logging.getLogger(__name__)

DEFAULT_FONT_FAMILY = "DejaVu Sans"
SANS_FONT_FALLBACK_PATTERNS = (
    "dejavusans",
    "dejavu sans",
    "liberationsans",
    "notosans",
    "helvetica",
    "arial",
    "menlo",
    "courier",
)
FONT_DIRS = (
    Path.home() / "Library" / "Fonts",
    Path("/Library/Fonts"),
    Path("/System/Library/Fonts"),
    Path("/System/Library/Fonts/Supplemental"),
    Path("/usr/share/fonts"),
    Path("/usr/local/share/fonts"),
    Path.home() / ".fonts",
)


@dataclass(frozen=True)
class GlyphRasterConfig:
    """Identity of one rasterized glyph: which font, which glyph, what size."""

    glyph_index: int
    px: float
    font_hash: int


@dataclass(frozen=True)
class Metrics:
    xmin: int
    ymin: int
    width: int
    height: int
    advance_width: float


@dataclass(frozen=True)
class LineMetrics:
    ascent: float
    descent: float
    line_gap: float
    new_line_size: float


class GlyphRasterizer(Protocol):
    """What TextBox needs from a font to draw and resolve fallbacks."""

    def has_glyph(self, ch: str) -> bool:
        ...

    def rasterize_config(self, key: GlyphRasterConfig) -> tuple[Metrics, bytes]:
        ...


def font_hash(data: bytes, face_index: int = 0) -> int:
    """Identify one face of a font file; faces of a collection hash differently."""

    digest = hashlib.blake2b(data, digest_size=8)
    digest.update(face_index.to_bytes(4, "little"))
    return int.from_bytes(digest.digest(), "little")


class Font:
    """FreeType face with per-size glyph metrics and 8-bit coverage rasterization.

    The face is stateful (FreeType keeps one active char size), so a Font
    must not be shared across threads.
    """

    def __init__(self, data: bytes, *, face_index: int = 0, name: str | None = None) -> None:
        if not data:
            raise ValueError("font data must be non-empty")
        self._data = bytes(data)
        self._face = freetype.Face(io.BytesIO(self._data), face_index)
        self.face_index = face_index
        self.font_hash = font_hash(self._data, face_index)
        family = self._face.family_name
        self.name = name or (family.decode("utf-8", "replace") if isinstance(family, bytes) else str(family))
        self._active_px: float | None = None
        self._metrics: dict[tuple[int, float], Metrics] = {}
        self._line_metrics: dict[float, LineMetrics] = {}

    @classmethod
    def from_path(cls, path: str | Path, *, face_index: int = 0) -> Font:
        return cls(Path(path).read_bytes(), face_index=face_index)

    @classmethod
    def from_bytes(cls, data: bytes, *, face_index: int = 0) -> Font:
        return cls(data, face_index=face_index)

    @classmethod
    def from_family(cls, family: str = DEFAULT_FONT_FAMILY) -> Font:
        path = resolve_font_path(family)
        if path is None:
            raise FileNotFoundError(f"no font file found for family `{family}`")
        return cls.from_path(path)

    def __repr__(self) -> str:
        return f"Font(name={self.name!r}, font_hash={self.font_hash:#x})"

    def lookup_glyph_index(self, ch: str) -> int:
        return int(self._face.get_char_index(ord(ch)))

    def has_glyph(self, ch: str) -> bool:
        return self.lookup_glyph_index(ch) != 0

    def _set_px(self, px: float) -> None:
        if px <= 0:
            raise ValueError("font px must be > 0")
        if self._active_px != px:
            self._face.set_char_size(int(round(px * 64)), 0, 72, 72)
            self._active_px = px

    def horizontal_line_metrics(self, px: float) -> LineMetrics:
        cached = self._line_metrics.get(px)
        if cached is not None:
            return cached
        self._set_px(px)
        size = self._face.size
        ascent = size.ascender / 64.0
        descent = size.descender / 64.0
        line_size = size.height / 64.0
        metrics = LineMetrics(
            ascent=ascent,
            descent=descent,
            line_gap=max(0.0, line_size - (ascent - descent)),
            new_line_size=max(line_size, ascent - descent),
        )
        self._line_metrics[px] = metrics
        return metrics

    def _load(self, glyph_index: int, px: float) -> freetype.GlyphSlot:
        self._set_px(px)
        self._face.load_glyph(glyph_index, freetype.FT_LOAD_RENDER)
        return self._face.glyph

    def metrics_indexed(self, glyph_index: int, px: float) -> Metrics:
        cached = self._metrics.get((glyph_index, px))
        if cached is not None:
            return cached
        slot = self._load(glyph_index, px)
        metrics = _slot_metrics(slot)
        self._metrics[(glyph_index, px)] = metrics
        return metrics

    def metrics(self, ch: str, px: float) -> Metrics:
        return self.metrics_indexed(self.lookup_glyph_index(ch), px)

    def raster_config(self, ch: str, px: float) -> GlyphRasterConfig:
        return GlyphRasterConfig(glyph_index=self.lookup_glyph_index(ch), px=px, font_hash=self.font_hash)

    def rasterize_config(self, key: GlyphRasterConfig) -> tuple[Metrics, bytes]:
        """Render one glyph to row-major 8-bit coverage, `width * height` bytes."""

        if key.font_hash != self.font_hash:
            raise ValueError(f"raster key belongs to another font ({key.font_hash:#x})")
        slot = self._load(key.glyph_index, key.px)
        metrics = _slot_metrics(slot)
        self._metrics.setdefault((key.glyph_index, key.px), metrics)
        bitmap = slot.bitmap
        if metrics.width == 0 or metrics.height == 0:
            return metrics, b""
        pitch = abs(bitmap.pitch)
        rows = np.asarray(bitmap.buffer, dtype=np.uint8).reshape(metrics.height, pitch)
        if bitmap.pitch < 0:
            rows = rows[::-1]
        return metrics, rows[:, : metrics.width].tobytes()

    def rasterize(self, ch: str, px: float) -> tuple[Metrics, bytes]:
        return self.rasterize_config(self.raster_config(ch, px))


def _slot_metrics(slot: freetype.GlyphSlot) -> Metrics:
    bitmap = slot.bitmap
    return Metrics(
        xmin=int(slot.bitmap_left),
        ymin=int(slot.bitmap_top) - int(bitmap.rows),
        width=int(bitmap.width),
        height=int(bitmap.rows),
        advance_width=slot.advance.x / 64.0,
    )


@lru_cache(maxsize=1)
def _font_candidates() -> tuple[Path, ...]:
    candidates: list[Path] = []
    for base in FONT_DIRS:
        if not base.exists():
            continue
        for ext in ("*.ttf", "*.otf", "*.ttc"):
            candidates.extend(sorted(base.rglob(ext)))
    return tuple(candidates)


@lru_cache(maxsize=64)
def resolve_font_path(font_family: str = DEFAULT_FONT_FAMILY) -> Path | None:
    wanted = font_family.strip().lower() if font_family.strip() else DEFAULT_FONT_FAMILY.lower()
    patterns = (wanted,) + SANS_FONT_FALLBACK_PATTERNS
    candidates = _font_candidates()

    for pattern in patterns:
        p = pattern.replace(" ", "")
        for path in candidates:
            stem = path.stem.lower().replace(" ", "")
            if p == stem:
                return _resolved(font_family, pattern, path)
        for path in candidates:
            stem = path.stem.lower().replace(" ", "")
            name = path.name.lower().replace(" ", "")
            if p in stem or p in name:
                return _resolved(font_family, pattern, path)
    return None


def _resolved(font_family: str, pattern: str, path: Path) -> Path:
    if pattern.replace(" ", "") != font_family.strip().lower().replace(" ", ""):
        LOGGER.warning("font family `%s` not found, falling back to %s", font_family, path)
    return path
