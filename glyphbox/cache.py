from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

from .canvas import Pixmap
from .font import GlyphRasterConfig


@dataclass(frozen=True)
class GlyphCacheKey:
    raster_key: GlyphRasterConfig
    color: tuple[int, int, int, int]


@dataclass
class GlyphCache:
    """Tinted glyph pixmaps, keyed by raster key and RGBA8 tint.

    Entries are only ever added. The owner decides when to `clear()`; there
    is no eviction and no locking.
    """

    entries: dict[GlyphCacheKey, Pixmap] = field(default_factory=dict)
    hits: int = 0
    misses: int = 0

    def get(self, key: GlyphCacheKey) -> Pixmap | None:
        pixmap = self.entries.get(key)
        if pixmap is None:
            self.misses += 1
        else:
            self.hits += 1
        return pixmap

    def insert(self, key: GlyphCacheKey, pixmap: Pixmap) -> Pixmap:
        """Store `pixmap` unless `key` is already present; return the stored entry."""
        return self.entries.setdefault(key, pixmap)

    def clear(self) -> None:
        self.entries.clear()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, key: object) -> bool:
        return key in self.entries

    def __iter__(self) -> Iterator[GlyphCacheKey]:
        return iter(self.entries)
