from __future__ import annotations

from pathlib import Path
from typing import Protocol

import numpy as np
from PIL import Image
import torch

from .color import TRANSPARENT, ColorLike, to_color_u8


Translate = tuple[float, float]


class Canvas(Protocol):
    """Premultiplied RGBA8 surface that glyph pixmaps are composited onto."""

    @property
    def width(self) -> int:
        ...

    @property
    def height(self) -> int:
        ...

    def draw_pixmap(self, x: int, y: int, pixmap: Pixmap, transform: Translate = (0.0, 0.0)) -> None:
        ...


def _clip(
    dst_w: int, dst_h: int, x: int, y: int, w: int, h: int
) -> tuple[slice, slice, slice, slice] | None:
    x0 = max(0, x)
    y0 = max(0, y)
    x1 = min(dst_w, x + w)
    y1 = min(dst_h, y + h)
    if x1 <= x0 or y1 <= y0:
        return None
    sx0 = x0 - x
    sy0 = y0 - y
    return (
        slice(y0, y1),
        slice(x0, x1),
        slice(sy0, sy0 + (y1 - y0)),
        slice(sx0, sx0 + (x1 - x0)),
    )


def _origin(x: int, y: int, transform: Translate) -> tuple[int, int]:
    tx, ty = transform
    return (int(x) + int(round(tx)), int(y) + int(round(ty)))


class Pixmap:
    """Premultiplied RGBA8 pixels held in a `(height, width, 4)` uint8 array.

    Wrapping an existing array does not copy it; drawing mutates it in place.
    """

    def __init__(self, pixels: np.ndarray) -> None:
        if pixels.ndim != 3 or pixels.shape[2] != 4 or pixels.dtype != np.uint8:
            raise ValueError("Pixmap requires a (height, width, 4) uint8 array")
        if pixels.shape[0] <= 0 or pixels.shape[1] <= 0:
            raise ValueError("Pixmap width/height must be > 0")
        self._pixels = pixels

    @classmethod
    def new(cls, width: int, height: int) -> Pixmap | None:
        if width <= 0 or height <= 0:
            return None
        return cls(np.zeros((height, width, 4), dtype=np.uint8))

    @classmethod
    def from_image(cls, image: Image.Image) -> Pixmap:
        rgba = np.asarray(image.convert("RGBA"), dtype=np.uint8)
        return cls(_premultiply_array(rgba))

    @property
    def width(self) -> int:
        return int(self._pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self._pixels.shape[0])

    @property
    def pixels(self) -> np.ndarray:
        return self._pixels

    def copy(self) -> Pixmap:
        return Pixmap(self._pixels.copy())

    def fill(self, color: ColorLike) -> None:
        self._pixels[:, :] = to_color_u8(color).premultiply().as_bytes()

    def draw_pixmap(self, x: int, y: int, pixmap: Pixmap, transform: Translate = (0.0, 0.0)) -> None:
        ox, oy = _origin(x, y, transform)
        clipped = _clip(self.width, self.height, ox, oy, pixmap.width, pixmap.height)
        if clipped is None:
            return
        dy, dx, sy, sx = clipped
        view = self._pixels[dy, dx]
        src = pixmap.pixels[sy, sx].astype(np.uint32)
        inv = 255 - src[:, :, 3:4]
        view[:] = (src + (view.astype(np.uint32) * inv + 127) // 255).astype(np.uint8)

    def to_image(self) -> Image.Image:
        return Image.fromarray(_demultiply_array(self._pixels))

    def save_png(self, path: str | Path) -> None:
        self.to_image().save(Path(path), format="PNG")


class TensorCanvas:
    """Canvas over a torch uint8 tensor of shape `(height, width, 4)`."""

    def __init__(self, tensor_h_w_4: torch.Tensor) -> None:
        if tensor_h_w_4.ndim != 3 or tensor_h_w_4.shape[2] != 4 or tensor_h_w_4.dtype != torch.uint8:
            raise ValueError("TensorCanvas requires a (height, width, 4) uint8 tensor")
        self._tensor = tensor_h_w_4

    @classmethod
    def new(cls, width: int, height: int, background: ColorLike = TRANSPARENT) -> TensorCanvas:
        if height <= 0 or width <= 0:
            raise ValueError("height and width must be > 0")
        bg = torch.tensor(to_color_u8(background).premultiply().as_bytes(), dtype=torch.uint8).view(1, 1, 4)
        return cls(bg.expand(height, width, 4).clone())

    @property
    def width(self) -> int:
        return int(self._tensor.shape[1])

    @property
    def height(self) -> int:
        return int(self._tensor.shape[0])

    @property
    def tensor(self) -> torch.Tensor:
        return self._tensor

    def draw_pixmap(self, x: int, y: int, pixmap: Pixmap, transform: Translate = (0.0, 0.0)) -> None:
        ox, oy = _origin(x, y, transform)
        clipped = _clip(self.width, self.height, ox, oy, pixmap.width, pixmap.height)
        if clipped is None:
            return
        dy, dx, sy, sx = clipped
        src = torch.from_numpy(np.ascontiguousarray(pixmap.pixels[sy, sx])).to(device=self._tensor.device, dtype=torch.int32)
        view = self._tensor[dy, dx]
        inv = 255 - src[:, :, 3:4]
        view.copy_((src + torch.div(view.to(torch.int32) * inv + 127, 255, rounding_mode="floor")).to(torch.uint8))

    def to_pixmap(self) -> Pixmap:
        return Pixmap(self._tensor.detach().cpu().numpy().copy())


def new_canvas(width: int, height: int, color: ColorLike = TRANSPARENT) -> Pixmap:
    pixmap = Pixmap.new(width, height)
    if pixmap is None:
        raise ValueError("height and width must be > 0")
    pixmap.fill(color)
    return pixmap


def _premultiply_array(rgba: np.ndarray) -> np.ndarray:
    a = rgba[:, :, 3:4].astype(np.uint32)
    prod = rgba[:, :, :3].astype(np.uint32) * a + 128
    out = np.empty_like(rgba)
    out[:, :, :3] = ((prod + (prod >> 8)) >> 8).astype(np.uint8)
    out[:, :, 3] = rgba[:, :, 3]
    return out


def _demultiply_array(pixels: np.ndarray) -> np.ndarray:
    a = pixels[:, :, 3:4].astype(np.uint32)
    safe_a = np.where(a > 0, a, 1)
    rgb = (pixels[:, :, :3].astype(np.uint32) * 255 + safe_a // 2) // safe_a
    out = np.empty_like(pixels)
    out[:, :, :3] = np.where(a > 0, np.clip(rgb, 0, 255), 0).astype(np.uint8)
    out[:, :, 3] = pixels[:, :, 3]
    return out
