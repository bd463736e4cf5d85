"""Geometric and compositing transforms that produce or alter planar images."""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from .image import Image


@dataclass
class AugmentArgs:
    """Parameters of one random rotate-and-crop augmentation."""

    rad: float = 0.0
    scale: float = 0.0
    w: int = 0
    h: int = 0
    dx: float = 0.0
    dy: float = 0.0
    aspect: float = 0.0


def _sample(image: Image, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
    """Bilinear samples at float32 positions, 0 outside the image; shape (c, *xs.shape)."""
    xs = np.asarray(xs, dtype=np.float32)
    ys = np.asarray(ys, dtype=np.float32)
    if image.w == 0 or image.h == 0 or image.c == 0:
        return np.zeros((image.c,) + xs.shape, dtype=np.float32)
    fx = np.floor(xs)
    fy = np.floor(ys)
    dx = (xs - fx).astype(np.float32)
    dy = (ys - fy).astype(np.float32)
    ix = fx.astype(np.int64)
    iy = fy.astype(np.int64)

    def gather(cx, cy):
        valid = (cx >= 0) & (cx < image.w) & (cy >= 0) & (cy < image.h)
        values = image.data[:, np.clip(cy, 0, image.h - 1), np.clip(cx, 0, image.w - 1)]
        return np.where(valid, values, np.float32(0))

    one = np.float32(1)
    result = (
        (one - dy) * (one - dx) * gather(ix, iy)
        + dy * (one - dx) * gather(ix, iy + 1)
        + (one - dy) * dx * gather(ix + 1, iy)
        + dy * dx * gather(ix + 1, iy + 1)
    )
    return result.astype(np.float32)


def image_distance(a: Image, b: Image) -> Image:
    """Per-pixel Euclidean distance across channels, as a one-channel image."""
    if a.data.shape != b.data.shape:
        raise ValueError("images differ in shape")
    diff = a.data.astype(np.float64) - b.data.astype(np.float64)
    total = np.sum(diff * diff, axis=0).astype(np.float32)
    return Image(a.w, a.h, 1, np.sqrt(total))


def ghost_image(source: Image, dest: Image, dx: int, dy: int) -> None:
    """Blend ``source`` into ``dest`` with a weight that fades from its centre."""
    w, h = source.w, source.h
    if w == 0 or h == 0 or source.c == 0:
        return
    if dx < 0 or dy < 0 or dx + w > dest.w or dy + h > dest.h or source.c > dest.c:
        raise IndexError("ghosted image does not fit inside the destination")
    max_dist = np.float32(math.sqrt((-w / 2.0 + 0.5) ** 2))
    xs = np.arange(w, dtype=np.float64) - w / 2.0 + 0.5
    ys = np.arange(h, dtype=np.float64)[:, None] - h / 2.0 + 0.5
    dist = np.sqrt(xs * xs + ys * ys).astype(np.float32)
    with np.errstate(divide="ignore", invalid="ignore"):
        alpha = np.float32(1) - dist / max_dist
    alpha = np.where(alpha < 0, np.float32(0), alpha).astype(np.float32)
    region = dest.data[: source.c, dy : dy + h, dx : dx + w]
    region[...] = alpha * source.data + (np.float32(1) - alpha) * region


def blocky_image(image: Image, s: int) -> None:
    """Replace each ``s`` x ``s`` block with its top-left pixel, in place."""
    if s <= 0:
        raise ValueError("block size must be positive")
    rows = (np.arange(image.h) // s) * s
    cols = (np.arange(image.w) // s) * s
    image.data[...] = image.data[:, rows][:, :, cols]


def censor_image(image: Image, dx: int, dy: int, w: int, h: int) -> None:
    """Pixelate the given rectangle with 32 pixel blocks, in place."""
    s = 32
    dx = max(dx, 0)
    dy = max(dy, 0)
    y_end = min(dy + h, image.h)
    x_end = min(dx + w, image.w)
    if y_end <= dy or x_end <= dx:
        return
    rows = (np.arange(dy, y_end) // s) * s
    cols = (np.arange(dx, x_end) // s) * s
    image.data[:, dy:y_end, dx:x_end] = image.data[:, rows][:, :, cols]


def collapse_image_layers(source: Image, border: int) -> Image:
    """Stack the channels of ``source`` vertically, separated by ``border`` rows."""
    height = (source.h + border) * source.c - border
    dest = Image.zeros(source.w, height, 1)
    for i in range(source.c):
        source.layer(i).embed_into(dest, 0, i * (source.h + border))
    return dest


def collapse_images_vert(images: Sequence[Image]) -> Image:
    """Stack images vertically; images that are not RGB have their channels side by side."""
    if not images:
        raise ValueError("no images to collapse")
    border = 1
    first = images[0]
    n = len(images)
    w = first.w
    h = (first.h + border) * n - border
    c = first.c
    if c != 3:
        w = (w + border) * c - border
        c = 1
    filters = Image.zeros(w, h, c)
    for i, image in enumerate(images):
        h_offset = i * (first.h + border)
        if c == 3:
            image.embed_into(filters, 0, h_offset)
        else:
            for j in range(image.c):
                image.layer(j).embed_into(filters, j * (first.w + border), h_offset)
    return filters


def collapse_images_horz(images: Sequence[Image]) -> Image:
    """Place images side by side; images that are not RGB have their channels stacked."""
    if not images:
        raise ValueError("no images to collapse")
    border = 1
    first = images[0]
    n = len(images)
    size = first.h
    h = size
    w = (first.w + border) * n - border
    c = first.c
    if c != 3:
        h = (h + border) * c - border
        c = 1
    filters = Image.zeros(w, h, c)
    for i, image in enumerate(images):
        w_offset = i * (size + border)
        if c == 3:
            image.embed_into(filters, w_offset, 0)
        else:
            for j in range(image.c):
                image.layer(j).embed_into(filters, w_offset, j * (size + border))
    return filters


def place_image(image: Image, w: int, h: int, dx: int, dy: int, canvas: Image) -> None:
    """Draw ``image`` scaled to ``w`` x ``h`` onto ``canvas`` at (dx, dy)."""
    if w <= 0 or h <= 0:
        return
    xs = np.arange(w, dtype=np.float32) / np.float32(w) * np.float32(image.w)
    ys = np.arange(h, dtype=np.float32) / np.float32(h) * np.float32(image.h)
    grid_x, grid_y = np.meshgrid(xs, ys)
    placed = Image(w, h, image.c, _sample(image, grid_x, grid_y))
    placed.embed_into(canvas, dx, dy)


def rotate_image(image: Image, rad: float) -> Image:
    """Rotate about the image centre by ``rad`` radians; uncovered pixels are 0."""
    cx = image.w / 2.0
    cy = image.h / 2.0
    x = np.arange(image.w, dtype=np.float64)[None, :] - cx
    y = np.arange(image.h, dtype=np.float64)[:, None] - cy
    cos_r, sin_r = math.cos(rad), math.sin(rad)
    rx = (cos_r * x - sin_r * y + cx).astype(np.float32)
    ry = (sin_r * x + cos_r * y + cy).astype(np.float32)
    return Image(image.w, image.h, image.c, _sample(image, rx, ry))


def rotate_crop_image(
    image: Image, rad: float, s: float, w: int, h: int, dx: float, dy: float, aspect: float
) -> Image:
    """Rotate, scale by ``s``, stretch by ``aspect`` and crop to ``w`` x ``h``."""
    if s == 0:
        raise ValueError("scale must not be zero")
    cx = image.w / 2.0
    cy = image.h / 2.0
    x = np.arange(w, dtype=np.float64)[None, :]
    y = np.arange(h, dtype=np.float64)[:, None]
    u = (x - w / 2.0) / s * aspect + dx / s * aspect
    v = (y - h / 2.0) / s + dy / s
    cos_r, sin_r = math.cos(rad), math.sin(rad)
    rx = (cos_r * u - sin_r * v + cx).astype(np.float32)
    ry = (sin_r * u + cos_r * v + cy).astype(np.float32)
    rx, ry = np.broadcast_arrays(rx, ry)
    return Image(w, h, image.c, _sample(image, rx, ry))


def _rand_scale(s: float, rng) -> float:
    scale = rng.uniform(*sorted((1.0, s)))
    return scale if rng.randrange(2) else 1.0 / scale


def random_augment_args(
    image: Image,
    angle: float,
    aspect: float,
    low: int,
    high: int,
    w: int,
    h: int,
    rng: Optional[random.Random] = None,
) -> AugmentArgs:
    """Draw random rotation, scale, aspect and offset for an augmentation."""
    source = rng if rng is not None else random
    aspect = float(np.float32(_rand_scale(aspect, source)))
    r = source.randint(*sorted((low, high)))
    smallest = int(image.h if image.h < image.w * aspect else image.w * aspect)
    if smallest == 0:
        raise ValueError("image is too small to augment")
    scale = r / smallest
    rad = source.uniform(-angle, angle) * math.tau / 360.0
    dx = (image.w * scale / aspect - w) / 2.0
    dy = (image.h * scale - w) / 2.0
    dx = source.uniform(-dx, dx)
    dy = source.uniform(-dy, dy)
    return AugmentArgs(rad=rad, scale=scale, w=w, h=h, dx=dx, dy=dy, aspect=aspect)


def random_augment_image(
    image: Image,
    angle: float,
    aspect: float,
    low: int,
    high: int,
    w: int,
    h: int,
    rng: Optional[random.Random] = None,
) -> Image:
    """A randomly rotated, scaled and shifted ``w`` x ``h`` crop of ``image``."""
    a = random_augment_args(image, angle, aspect, low, high, w, h, rng)
    return rotate_crop_image(image, a.rad, a.scale, a.w, a.h, a.dx, a.dy, a.aspect)


def blend_image(fore: Image, back: Image, alpha: float) -> Image:
    """``alpha * fore + (1 - alpha) * back`` for images of equal shape."""
    if fore.data.shape != back.data.shape:
        raise ValueError("images differ in shape")
    a = np.float32(alpha)
    blended = a * fore.data + (np.float32(1) - a) * back.data
    return Image(fore.w, fore.h, fore.c, blended.astype(np.float32))