"""Max pooling layer with a float and an 8-bit quantized forward pass."""

from __future__ import annotations

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from .image import Image
from .weights import QuantParams

_NEG_FLT_MAX = -np.finfo(np.float32).max


def _cdiv(a: int, b: int) -> int:
    """Integer division rounding toward zero."""
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b >= 0) else -q


class MaxPoolLayer:
    """Takes the maximum over ``size`` x ``size`` windows moved by ``stride``."""

    def __init__(
        self,
        batch: int,
        h: int,
        w: int,
        c: int,
        size: int,
        stride: int,
        padding: int,
        quantized: int = 0,
        quant_stop: int = 0,
        close_quantization: int = 0,
        count: int = 0,
    ) -> None:
        if size <= 0 or stride <= 0:
            raise ValueError("size and stride must be positive")
        if batch <= 0 or c <= 0:
            raise ValueError("batch and channels must be positive")
        self.batch = batch
        self.c = c
        self.size = size
        self.stride = stride
        self.pad = padding
        self.count = count
        self.quantized = bool(quantized)
        self.quant_stop = bool(quant_stop)
        self.close_quantization = bool(close_quantization)
        self.quantized_forward = self.quantized and not self.close_quantization
        self.activ_quant = QuantParams()
        self.min_activ_value = 0.0
        self.max_activ_value = 0.0
        self._configure(w, h)
        print(
            "max          %d x %d / %d  %4d x%4d x%4d   ->  %4d x%4d x%4d"
            % (size, size, stride, w, h, c, self.out_w, self.out_h, self.out_c)
        )

    def _configure(self, w: int, h: int) -> None:
        out_w = _cdiv(w + self.pad - self.size, self.stride) + 1
        out_h = _cdiv(h + self.pad - self.size, self.stride) + 1
        if w <= 0 or h <= 0 or out_w <= 0 or out_h <= 0:
            raise ValueError("pooling window does not fit the input")
        self.w = w
        self.h = h
        self.inputs = h * w * self.c
        self.out_w = out_w
        self.out_h = out_h
        self.out_c = self.c
        self.outputs = out_w * out_h * self.c
        total = self.outputs * self.batch
        self.indexes = np.full(total, -1, dtype=np.int64)
        self.output = np.zeros(total, dtype=np.float32)
        self.delta = np.zeros(total, dtype=np.float32)
        self.output_uint8 = np.zeros(total, dtype=np.uint8)

    def _pool(self, values: np.ndarray, fill):
        x = values.reshape(self.batch, self.c, self.h, self.w)
        offset = _cdiv(-self.pad, 2)
        lead = max(0, -offset)
        start = offset + lead
        span_h = (self.out_h - 1) * self.stride + self.size
        span_w = (self.out_w - 1) * self.stride + self.size
        height = max(self.h + lead, start + span_h)
        width = max(self.w + lead, start + span_w)
        padded = np.full((self.batch, self.c, height, width), fill, dtype=x.dtype)
        padded[:, :, lead : lead + self.h, lead : lead + self.w] = x
        windows = sliding_window_view(padded, (self.size, self.size), axis=(2, 3))
        windows = windows[
            :,
            :,
            start : start + span_h - self.size + 1 : self.stride,
            start : start + span_w - self.size + 1 : self.stride,
        ]
        flat = windows.reshape(self.batch, self.c, self.out_h, self.out_w, -1)
        if np.issubdtype(flat.dtype, np.floating):
            flat = np.where(np.isnan(flat), fill, flat)
        pos = flat.argmax(axis=-1)
        best = np.take_along_axis(flat, pos[..., None], axis=-1)[..., 0]
        valid = best > fill

        b = np.arange(self.batch)[:, None, None, None]
        k = np.arange(self.c)[None, :, None, None]
        i = np.arange(self.out_h)[None, None, :, None]
        j = np.arange(self.out_w)[None, None, None, :]
        cur_h = offset + i * self.stride + pos // self.size
        cur_w = offset + j * self.stride + pos % self.size
        index = cur_w + self.w * (cur_h + self.h * (k + self.c * b))
        indexes = np.where(valid, index, -1)
        result = np.where(valid, best, fill)
        return result.reshape(-1), indexes.reshape(-1)

    def forward(self, inputs) -> np.ndarray:
        """Pool float inputs; returns the layer's output buffer."""
        values = np.asarray(inputs, dtype=np.float32).reshape(-1)
        if values.size != self.batch * self.inputs:
            raise ValueError(f"expected {self.batch * self.inputs} inputs, got {values.size}")
        result, indexes = self._pool(values, np.float32(_NEG_FLT_MAX))
        self.output[:] = result
        self.indexes[:] = indexes
        return self.output

    def forward_quant(self, inputs) -> np.ndarray:
        """Pool 8-bit inputs; dequantizes into ``output`` when ``quant_stop`` is set."""
        values = np.asarray(inputs, dtype=np.uint8).reshape(-1)
        if values.size != self.batch * self.inputs:
            raise ValueError(f"expected {self.batch * self.inputs} inputs, got {values.size}")
        result, indexes = self._pool(values, np.uint8(0))
        self.output_uint8[:] = result
        self.indexes[:] = indexes
        if self.quant_stop:
            n = self.outputs
            shifted = self.output_uint8[:n].astype(np.int32) - int(self.activ_quant.zero_point)
            self.output[:n] = shifted.astype(np.float32) * np.float32(self.activ_quant.scale)
        return self.output_uint8

    def backward(self, prev_delta: np.ndarray) -> np.ndarray:
        """Add this layer's delta into ``prev_delta`` at the winning positions."""
        if not isinstance(prev_delta, np.ndarray):
            raise TypeError("prev_delta must be a numpy array")
        flat = prev_delta.reshape(-1)
        if not np.shares_memory(flat, prev_delta):
            raise ValueError("prev_delta must be contiguous")
        valid = self.indexes >= 0
        np.add.at(flat, self.indexes[valid], self.delta[valid])
        return prev_delta

    def resize(self, w: int, h: int) -> None:
        """Change the input size and reallocate the buffers."""
        self._configure(w, h)

    def output_image(self) -> Image:
        """The first output of the batch, sharing the layer's buffer."""
        return Image(self.out_w, self.out_h, self.c, self.output[: self.outputs])

    def delta_image(self) -> Image:
        """The first delta of the batch, sharing the layer's buffer."""
        return Image(self.out_w, self.out_h, self.c, self.delta[: self.outputs])