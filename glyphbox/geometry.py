from __future__ import annotations

from dataclasses import dataclass
import math


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in layout units, y pointing down."""

    x: float
    y: float
    width: float
    height: float

    def __post_init__(self) -> None:
        if not all(math.isfinite(v) for v in (self.x, self.y, self.width, self.height)):
            raise ValueError("Rect fields must be finite")
        if self.width < 0 or self.height < 0:
            raise ValueError("Rect width/height must be >= 0")
        if not math.isfinite(self.x + self.width) or not math.isfinite(self.y + self.height):
            raise ValueError("Rect edges must be finite")

    @classmethod
    def from_xywh(cls, x: float, y: float, width: float, height: float) -> Rect | None:
        try:
            return cls(float(x), float(y), float(width), float(height))
        except ValueError:
            return None

    @classmethod
    def from_ltrb(cls, left: float, top: float, right: float, bottom: float) -> Rect | None:
        return cls.from_xywh(left, top, right - left, bottom - top)

    @property
    def left(self) -> float:
        return self.x

    @property
    def top(self) -> float:
        return self.y

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def inset(self, dx: float, dy: float) -> Rect | None:
        """Shrink by `dx`/`dy` on each side; None if the result would be negative."""
        return Rect.from_ltrb(self.left + dx, self.top + dy, self.right - dx, self.bottom - dy)

    def outset(self, dx: float, dy: float) -> Rect | None:
        return self.inset(-dx, -dy)

    def contains(self, x: float, y: float) -> bool:
        return self.x <= x <= self.right and self.y <= y <= self.bottom
