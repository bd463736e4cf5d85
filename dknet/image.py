"""Planar float images stored channel by channel, with geometric helpers."""

from __future__ import annotations

import enum
import math
import random
from pathlib import Path
from typing import Optional, Union

import numpy as np
from PIL import Image as PILImage


class ImageFormat(enum.Enum):
    """File formats an image can be written in."""

    PNG = "png"
    BMP = "bmp"
    TGA = "tga"
    JPG = "jpg"


_PIL_FORMATS = {
    ImageFormat.PNG: "PNG",
    ImageFormat.BMP: "BMP",
    ImageFormat.TGA: "TGA",
    ImageFormat.JPG: "JPEG",
}

_MODES_BY_CHANNELS = {1: "L", 2: "LA", 3: "RGB", 4: "RGBA"}


def _cdiv(a: int, b: int) -> int:
    """Integer division rounding toward zero."""
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b >= 0) else -q


class Image:
    """A ``w`` x ``h`` image with ``c`` channels of 32-bit floats.

    ``data`` has shape ``(c, h, w)``; a flat float32 buffer passed in is
    wrapped without copying.
    """

    def __init__(self, w: int, h: int, c: int, data=None) -> None:
        if min(w, h, c) < 0:
            raise ValueError("image dimensions must not be negative")
        if data is None:
            self.data = np.zeros((c, h, w), dtype=np.float32)
        else:
            array = np.asarray(data, dtype=np.float32)
            if array.size != w * h * c:
                raise ValueError(f"expected {w * h * c} values, got {array.size}")
            self.data = array.reshape(c, h, w)

    @property
    def w(self) -> int:
        return self.data.shape[2]

    @property
    def h(self) -> int:
        return self.data.shape[1]

    @property
    def c(self) -> int:
        return self.data.shape[0]

    def __repr__(self) -> str:
        return f"Image(w={self.w}, h={self.h}, c={self.c})"

    @classmethod
    def zeros(cls, w: int, h: int, c: int) -> "Image":
        return cls(w, h, c)

    @classmethod
    def random(cls, w: int, h: int, c: int, rng: Optional[random.Random] = None) -> "Image":
        """An image of normally distributed values around 0.5."""
        source = rng if rng is not None else random
        values = [source.gauss(0.0, 1.0) * 0.25 + 0.5 for _ in range(w * h * c)]
        return cls(w, h, c, values)

    def copy(self) -> "Image":
        return Image(self.w, self.h, self.c, self.data.copy())

    def get_pixel(self, x: int, y: int, c: int) -> float:
        if not (0 <= x < self.w and 0 <= y < self.h and 0 <= c < self.c):
            raise IndexError(f"pixel ({x}, {y}, {c}) outside {self!r}")
        return float(self.data[c, y, x])

    def get_pixel_extend(self, x: int, y: int, c: int) -> float:
        """Pixel value, or 0 outside the image."""
        if x < 0 or x >= self.w or y < 0 or y >= self.h:
            return 0.0
        if c < 0 or c >= self.c:
            return 0.0
        return float(self.data[c, y, x])

    def set_pixel(self, x: int, y: int, c: int, val: float) -> None:
        """Set a pixel; writes outside the image are ignored."""
        if x < 0 or y < 0 or c < 0 or x >= self.w or y >= self.h or c >= self.c:
            return
        self.data[c, y, x] = val

    def bilinear(self, x: float, y: float, c: int) -> float:
        """Bilinearly interpolated value at a fractional position."""
        ix = math.floor(x)
        iy = math.floor(y)
        dx = x - ix
        dy = y - iy
        return (
            (1 - dy) * (1 - dx) * self.get_pixel_extend(ix, iy, c)
            + dy * (1 - dx) * self.get_pixel_extend(ix, iy + 1, c)
            + (1 - dy) * dx * self.get_pixel_extend(ix + 1, iy, c)
            + dy * dx * self.get_pixel_extend(ix + 1, iy + 1, c)
        )

    def layer(self, index: int) -> "Image":
        """A one-channel copy of channel ``index``."""
        if not 0 <= index < self.c:
            raise IndexError(f"channel {index} out of range")
        return Image(self.w, self.h, 1, self.data[index].copy())

    def fill(self, value: float) -> None:
        self.data[...] = value

    def translate(self, s: float) -> None:
        self.data += np.float32(s)

    def scale(self, s: float) -> None:
        self.data *= np.float32(s)

    def constrain(self) -> None:
        """Clamp every value to [0, 1]."""
        np.clip(self.data, 0.0, 1.0, out=self.data)

    def normalize(self) -> None:
        """Stretch all values to the range [0, 1]."""
        low = np.float32(9999999)
        high = np.float32(-999999)
        if self.data.size:
            low = min(low, self.data.min())
            high = max(high, self.data.max())
        if high - low < 1e-9:
            low, high = np.float32(0), np.float32(1)
        self.data[...] = (self.data - low) / (high - low)

    def normalize_per_channel(self) -> None:
        """Stretch each channel separately to the range [0, 1]."""
        for plane in self.data:
            if not plane.size:
                continue
            low = plane.min()
            high = plane.max()
            if high - low < 1e-9:
                low, high = np.float32(0), np.float32(1)
            plane[...] = (plane - low) / (high - low)

    def rgbgr(self) -> None:
        """Swap the first and third channels."""
        if self.c < 3:
            raise ValueError("channel swap needs at least three channels")
        self.data[[0, 2]] = self.data[[2, 0]]

    def flip(self) -> None:
        """Mirror the image left to right."""
        self.data[...] = self.data[:, :, ::-1].copy()

    def transpose(self) -> None:
        """Swap rows and columns of a square image."""
        if self.w != self.h:
            raise ValueError("only square images can be transposed")
        self.data[...] = self.data.transpose(0, 2, 1).copy()

    def rotate_cw(self, times: int) -> None:
        """Rotate a square image by ``times`` quarter turns."""
        if self.w != self.h:
            raise ValueError("only square images can be rotated in place")
        turns = (times + 400) % 4
        self.data[...] = np.rot90(self.data, turns, axes=(1, 2)).copy()

    def embed_into(self, dest: "Image", dx: int, dy: int) -> None:
        """Copy this image into ``dest`` at offset (dx, dy), clipping the edges."""
        x0, y0 = max(0, -dx), max(0, -dy)
        x1, y1 = min(self.w, dest.w - dx), min(self.h, dest.h - dy)
        channels = min(self.c, dest.c)
        if x1 > x0 and y1 > y0 and channels > 0:
            dest.data[:channels, y0 + dy : y1 + dy, x0 + dx : x1 + dx] = self.data[
                :channels, y0:y1, x0:x1
            ]

    def crop(self, dx: int, dy: int, w: int, h: int) -> "Image":
        """A ``w`` x ``h`` window at (dx, dy); outside pixels repeat the edge."""
        if self.w == 0 or self.h == 0:
            raise ValueError("cannot crop an empty image")
        rows = np.clip(np.arange(h) + dy, 0, self.h - 1)
        cols = np.clip(np.arange(w) + dx, 0, self.w - 1)
        return Image(w, h, self.c, self.data[:, rows][:, :, cols].copy())

    def resize(self, w: int, h: int) -> "Image":
        """Bilinear resize, first along rows then along columns."""
        if self.w == 0 or self.h == 0:
            raise ValueError("cannot resize an empty image")
        w_scale = np.float32((self.w - 1) / (w - 1)) if w > 1 else np.float32(0)
        h_scale = np.float32((self.h - 1) / (h - 1)) if h > 1 else np.float32(0)

        sx = np.arange(w, dtype=np.float32) * w_scale
        ix = sx.astype(np.int64)
        fx = (sx - ix.astype(np.float32)).astype(np.float32)
        ix_next = np.minimum(ix + 1, self.w - 1)
        ix = np.minimum(ix, self.w - 1)
        part = (1 - fx) * self.data[:, :, ix] + fx * self.data[:, :, ix_next]
        if self.w == 1:
            part[...] = self.data[:, :, -1:]
        elif w > 0:
            part[:, :, w - 1] = self.data[:, :, self.w - 1]
        part = part.astype(np.float32)

        resized = np.zeros((self.c, h, w), dtype=np.float32)
        for r in range(h):
            sy = np.float32(r) * h_scale
            iy = min(int(sy), self.h - 1)
            fy = np.float32(sy - iy)
            resized[:, r, :] = (1 - fy) * part[:, iy, :]
            if r == h - 1 or self.h == 1:
                continue
            resized[:, r, :] += fy * part[:, iy + 1, :]
        return Image(w, h, self.c, resized)

    def _letterbox_size(self, w: int, h: int) -> tuple[int, int]:
        if w / self.w < h / self.h:
            return w, (self.h * w) // self.w
        return (self.w * h) // self.h, h

    def letterbox(self, w: int, h: int) -> "Image":
        """Resize keeping the aspect ratio and centre on a grey ``w`` x ``h`` canvas."""
        boxed = Image(w, h, self.c)
        boxed.fill(0.5)
        self.letterbox_into(w, h, boxed)
        return boxed

    def letterbox_into(self, w: int, h: int, boxed: "Image") -> None:
        """Resize keeping the aspect ratio and centre the result in ``boxed``."""
        new_w, new_h = self._letterbox_size(w, h)
        resized = self.resize(new_w, new_h)
        resized.embed_into(boxed, _cdiv(w - new_w, 2), _cdiv(h - new_h, 2))

    def resize_max(self, max_size: int) -> "Image":
        """Scale so the longer side is ``max_size``; returns self if unchanged."""
        w, h = self.w, self.h
        if w > h:
            h = (h * max_size) // w
            w = max_size
        else:
            w = (w * max_size) // h
            h = max_size
        if w == self.w and h == self.h:
            return self
        return self.resize(w, h)

    def resize_min(self, min_size: int) -> "Image":
        """Scale so the shorter side is ``min_size``; returns self if unchanged."""
        w, h = self.w, self.h
        if w < h:
            h = (h * min_size) // w
            w = min_size
        else:
            w = (w * min_size) // h
            h = min_size
        if w == self.w and h == self.h:
            return self
        return self.resize(w, h)

    def center_crop(self, w: int, h: int) -> "Image":
        """Crop the central square and resize it to ``w`` x ``h``."""
        m = min(self.w, self.h)
        square = self.crop((self.w - m) // 2, (self.h - m) // 2, m, m)
        return square.resize(w, h)

    def random_crop(self, w: int, h: int, rng: Optional[random.Random] = None) -> "Image":
        """A ``w`` x ``h`` crop at a random offset."""
        source = rng if rng is not None else random
        dx = source.randint(*sorted((0, self.w - w)))
        dy = source.randint(*sorted((0, self.h - h)))
        return self.crop(dx, dy, w, h)

    def threshold(self, thresh: float) -> "Image":
        """1 where a value exceeds ``thresh``, else 0."""
        return Image(self.w, self.h, self.c, (self.data > thresh).astype(np.float32))

    def binarize(self) -> "Image":
        return self.threshold(0.5)

    def format(self) -> str:
        """Text dump of at most 32 x 32 values per channel."""
        parts = []
        for plane in self.data:
            for row in plane[:32]:
                parts.append("".join("%.2f, " % float(v) for v in row[:32]) + "\n")
            parts.append("\n")
        parts.append("\n")
        return "".join(parts)


def _convert_mode(pil, channels: int):
    if channels == 0:
        mode = pil.mode
        if mode in ("L", "LA", "RGB", "RGBA"):
            return pil
        if mode in ("P", "PA"):
            has_alpha = mode == "PA" or "transparency" in pil.info
            return pil.convert("RGBA" if has_alpha else "RGB")
        if mode in ("1", "I", "F") or mode.startswith("I;"):
            return pil.convert("L")
        return pil.convert("RGB")
    mode = _MODES_BY_CHANNELS.get(channels)
    if mode is None:
        raise ValueError(f"cannot force load with {channels} channels")
    return pil.convert(mode)


def load_image(path: Union[str, Path], w: int = 0, h: int = 0, c: int = 0) -> Image:
    """Load an image file as floats in [0, 1]; resize when ``w`` and ``h`` are given."""
    try:
        with PILImage.open(path) as pil:
            pil.load()
            converted = _convert_mode(pil, c)
            pixels = np.asarray(converted, dtype=np.uint8)
    except OSError as exc:
        raise OSError(f'Cannot load image "{path}": {exc}') from exc
    if pixels.ndim == 2:
        pixels = pixels[:, :, None]
    height, width, channels = pixels.shape
    data = (pixels.transpose(2, 0, 1).astype(np.float64) / 255.0).astype(np.float32)
    image = Image(width, height, channels, data)
    if w and h and (h != image.h or w != image.w):
        image = image.resize(w, h)
    return image


def save_image(
    image: Image,
    name: Union[str, Path],
    fmt: ImageFormat = ImageFormat.JPG,
    quality: int = 80,
) -> Path:
    """Write ``image`` to ``name`` plus the format's extension and return the path."""
    path = Path(f"{name}.{fmt.value}")
    mode = _MODES_BY_CHANNELS.get(image.c)
    if mode is None:
        raise ValueError(f"cannot write an image with {image.c} channels")
    pixels = np.clip(255 * image.data, 0, 255).astype(np.uint8).transpose(1, 2, 0)
    if image.c == 1:
        pixels = pixels[:, :, 0]
    try:
        pil = PILImage.fromarray(np.ascontiguousarray(pixels), mode=mode)
        if fmt is ImageFormat.JPG and mode in ("LA", "RGBA"):
            pil = pil.convert(mode[:-1] if mode == "LA" else "RGB")
        if fmt is ImageFormat.BMP and mode == "LA":
            pil = pil.convert("L")
        options = {"quality": quality} if fmt is ImageFormat.JPG else {}
        pil.save(path, format=_PIL_FORMATS[fmt], **options)
    except (OSError, ValueError) as exc:
        raise OSError(f"Failed to write image {path}: {exc}") from exc
    return path