"""Local response normalization across neighbouring channels."""

from __future__ import annotations

import numpy as np


class NormalizationLayer:
    """Divides each value by a power of the summed squares of nearby channels."""

    def __init__(
        self,
        batch: int,
        w: int,
        h: int,
        c: int,
        size: int,
        alpha: float,
        beta: float,
        kappa: float,
    ) -> None:
        if batch <= 0 or c <= 0:
            raise ValueError("batch and channels must be positive")
        if size <= 0:
            raise ValueError("size must be positive")
        print(f"Local Response Normalization Layer: {w} x {h} x {c} image, {size} size")
        self.batch = batch
        self.c = c
        self.out_c = c
        self.size = size
        self.alpha = alpha
        self.beta = beta
        self.kappa = kappa
        self._allocate(w, h)

    def _allocate(self, w: int, h: int) -> None:
        if w <= 0 or h <= 0:
            raise ValueError("width and height must be positive")
        self.w = self.out_w = w
        self.h = self.out_h = h
        self.inputs = w * h * self.c
        self.outputs = self.inputs
        total = self.inputs * self.batch
        self.output = np.zeros(total, dtype=np.float32)
        self.delta = np.zeros(total, dtype=np.float32)
        self.squared = np.zeros(total, dtype=np.float32)
        self.norms = np.zeros(total, dtype=np.float32)

    def forward(self, inputs) -> np.ndarray:
        """Normalize ``inputs``; returns the layer's output buffer."""
        values = np.asarray(inputs, dtype=np.float32).reshape(-1)
        if values.size != self.batch * self.inputs:
            raise ValueError(f"expected {self.batch * self.inputs} inputs, got {values.size}")
        x = values.reshape(self.batch, self.c, self.h * self.w)
        squared = x * x
        norms = np.empty_like(squared)
        alpha = np.float32(self.alpha)
        norms[:, 0] = np.float32(self.kappa)
        for k in range(min(self.size // 2, self.c)):
            norms[:, 0] += alpha * squared[:, k]
        for k in range(1, self.c):
            norms[:, k] = norms[:, k - 1]
            prev = k - (self.size - 1) // 2 - 1
            nxt = k + self.size // 2
            if prev >= 0:
                norms[:, k] += -alpha * squared[:, prev]
            if nxt < self.c:
                norms[:, k] += alpha * squared[:, nxt]
        with np.errstate(divide="ignore", invalid="ignore"):
            scale = np.power(norms, np.float32(-self.beta))
        self.squared[:] = squared.reshape(-1)
        self.norms[:] = norms.reshape(-1)
        self.output[:] = (scale * x).reshape(-1)
        return self.output

    def backward(self, prev_delta: np.ndarray) -> np.ndarray:
        """Overwrite ``prev_delta`` with the approximate gradient and return it."""
        if not isinstance(prev_delta, np.ndarray):
            raise TypeError("prev_delta must be a numpy array")
        flat = prev_delta.reshape(-1)
        if flat.size != self.norms.size:
            raise ValueError(f"expected {self.norms.size} values, got {flat.size}")
        if not np.shares_memory(flat, prev_delta):
            raise ValueError("prev_delta must be contiguous")
        with np.errstate(divide="ignore", invalid="ignore"):
            flat[:] = np.power(self.norms, np.float32(-self.beta)) * self.delta
        return prev_delta

    def resize(self, w: int, h: int) -> None:
        """Change the input size and reallocate the buffers."""
        self._allocate(w, h)