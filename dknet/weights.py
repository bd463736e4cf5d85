"""Binary weight files: header and per-layer weight blocks."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import BinaryIO, Optional

import numpy as np

_FLOAT = np.dtype("<f4")
_UINT8 = np.dtype("u1")
_HEADER_INTS = struct.Struct("<iii")
_SEEN_LONG = struct.Struct("<Q")
_SEEN_INT = struct.Struct("<i")


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise EOFError(f"weights file truncated: wanted {size} bytes, got {len(data)}")
    return data


def _read_array(stream: BinaryIO, dtype: np.dtype, count: int) -> np.ndarray:
    if count < 0:
        raise ValueError("element count must not be negative")
    data = _read_exact(stream, count * dtype.itemsize)
    return np.frombuffer(data, dtype=dtype).copy()


def _write_array(stream: BinaryIO, values, dtype: np.dtype) -> None:
    stream.write(np.asarray(values, dtype=dtype).tobytes())


def transpose_matrix(values, rows: int, cols: int) -> np.ndarray:
    """Return the ``rows`` x ``cols`` row-major ``values`` transposed, flattened."""
    array = np.asarray(values, dtype=np.float32)
    if array.size != rows * cols:
        raise ValueError(f"expected {rows * cols} values, got {array.size}")
    return np.ascontiguousarray(array.reshape(rows, cols).T).reshape(-1)


@dataclass
class WeightsHeader:
    """Version triple and count of images seen during training."""

    major: int = 0
    minor: int = 2
    revision: int = 0
    seen: int = 0

    @property
    def transpose(self) -> bool:
        """Whether connected weights in this file are stored transposed."""
        return self.major > 1000 or self.minor > 1000

    @property
    def _long_seen(self) -> bool:
        return (self.major * 10 + self.minor) >= 2 and self.major < 1000 and self.minor < 1000

    @classmethod
    def read(cls, stream: BinaryIO) -> "WeightsHeader":
        major, minor, revision = _HEADER_INTS.unpack(_read_exact(stream, _HEADER_INTS.size))
        header = cls(major, minor, revision)
        if header._long_seen:
            (header.seen,) = _SEEN_LONG.unpack(_read_exact(stream, _SEEN_LONG.size))
        else:
            (header.seen,) = _SEEN_INT.unpack(_read_exact(stream, _SEEN_INT.size))
        return header

    def write(self, stream: BinaryIO) -> None:
        stream.write(_HEADER_INTS.pack(self.major, self.minor, self.revision))
        if self._long_seen:
            stream.write(_SEEN_LONG.pack(self.seen))
        else:
            stream.write(_SEEN_INT.pack(self.seen))


@dataclass
class QuantParams:
    """A quantization scale and its zero point."""

    scale: float = 0.0
    zero_point: int = 0

    @classmethod
    def read(cls, stream: BinaryIO) -> "QuantParams":
        scale = float(_read_array(stream, _FLOAT, 1)[0])
        zero_point = int(_read_array(stream, _UINT8, 1)[0])
        return cls(scale, zero_point)

    def write(self, stream: BinaryIO) -> None:
        _write_array(stream, [self.scale], _FLOAT)
        _write_array(stream, [self.zero_point], _UINT8)


@dataclass
class ConvolutionalWeights:
    """Weights of a convolutional layer, optionally with quantization data."""

    biases: np.ndarray
    weights: np.ndarray
    scales: Optional[np.ndarray] = None
    rolling_mean: Optional[np.ndarray] = None
    rolling_variance: Optional[np.ndarray] = None
    input_quant: Optional[QuantParams] = None
    activ_quant: Optional[QuantParams] = None
    weight_scales: Optional[np.ndarray] = None
    weight_zero_points: Optional[np.ndarray] = None
    weights_uint8: Optional[np.ndarray] = None

    @property
    def batch_normalize(self) -> bool:
        return self.scales is not None

    @property
    def quantized(self) -> bool:
        return self.input_quant is not None

    @classmethod
    def read(
        cls,
        stream: BinaryIO,
        n: int,
        c: int,
        size: int,
        groups: int,
        batch_normalize: bool,
        quantized: bool,
    ) -> "ConvolutionalWeights":
        if groups <= 0:
            raise ValueError("groups must be positive")
        biases = _read_array(stream, _FLOAT, n)
        result = cls(biases=biases, weights=np.zeros(0, dtype=np.float32))
        if batch_normalize:
            result.scales = _read_array(stream, _FLOAT, n)
            result.rolling_mean = _read_array(stream, _FLOAT, n)
            result.rolling_variance = _read_array(stream, _FLOAT, n)
        if quantized:
            result.input_quant = QuantParams.read(stream)
            result.activ_quant = QuantParams.read(stream)
            result.weight_scales = _read_array(stream, _FLOAT, n)
            result.weight_zero_points = _read_array(stream, _UINT8, n)
            result.weights_uint8 = _read_array(stream, _UINT8, c * n * size * size)
        result.weights = _read_array(stream, _FLOAT, c // groups * n * size * size)
        return result

    def write(self, stream: BinaryIO) -> None:
        _write_array(stream, self.biases, _FLOAT)
        if self.batch_normalize:
            if self.rolling_mean is None or self.rolling_variance is None:
                raise ValueError("batch normalization needs rolling mean and variance")
            _write_array(stream, self.scales, _FLOAT)
            _write_array(stream, self.rolling_mean, _FLOAT)
            _write_array(stream, self.rolling_variance, _FLOAT)
        if self.quantized:
            if (
                self.activ_quant is None
                or self.weight_scales is None
                or self.weight_zero_points is None
                or self.weights_uint8 is None
            ):
                raise ValueError("quantized weights are incomplete")
            self.input_quant.write(stream)
            self.activ_quant.write(stream)
            _write_array(stream, self.weight_scales, _FLOAT)
            _write_array(stream, self.weight_zero_points, _UINT8)
            _write_array(stream, self.weights_uint8, _UINT8)
        _write_array(stream, self.weights, _FLOAT)


@dataclass
class ConnectedWeights:
    """Weights of a fully connected layer."""

    biases: np.ndarray
    weights: np.ndarray
    scales: Optional[np.ndarray] = None
    rolling_mean: Optional[np.ndarray] = None
    rolling_variance: Optional[np.ndarray] = None

    @property
    def batch_normalize(self) -> bool:
        return self.scales is not None

    @classmethod
    def read(
        cls,
        stream: BinaryIO,
        inputs: int,
        outputs: int,
        batch_normalize: bool,
        transpose: bool,
    ) -> "ConnectedWeights":
        biases = _read_array(stream, _FLOAT, outputs)
        weights = _read_array(stream, _FLOAT, outputs * inputs)
        if transpose:
            weights = transpose_matrix(weights, inputs, outputs)
        result = cls(biases=biases, weights=weights)
        if batch_normalize:
            result.scales = _read_array(stream, _FLOAT, outputs)
            result.rolling_mean = _read_array(stream, _FLOAT, outputs)
            result.rolling_variance = _read_array(stream, _FLOAT, outputs)
        return result

    def write(self, stream: BinaryIO) -> None:
        _write_array(stream, self.biases, _FLOAT)
        _write_array(stream, self.weights, _FLOAT)
        if self.batch_normalize:
            if self.rolling_mean is None or self.rolling_variance is None:
                raise ValueError("batch normalization needs rolling mean and variance")
            _write_array(stream, self.scales, _FLOAT)
            _write_array(stream, self.rolling_mean, _FLOAT)
            _write_array(stream, self.rolling_variance, _FLOAT)


@dataclass
class BatchnormWeights:
    """Scales and running statistics of a batch normalization layer."""

    scales: np.ndarray
    rolling_mean: np.ndarray
    rolling_variance: np.ndarray

    @classmethod
    def read(cls, stream: BinaryIO, c: int) -> "BatchnormWeights":
        scales = _read_array(stream, _FLOAT, c)
        rolling_mean = _read_array(stream, _FLOAT, c)
        rolling_variance = _read_array(stream, _FLOAT, c)
        return cls(scales, rolling_mean, rolling_variance)

    def write(self, stream: BinaryIO) -> None:
        _write_array(stream, self.scales, _FLOAT)
        _write_array(stream, self.rolling_mean, _FLOAT)
        _write_array(stream, self.rolling_variance, _FLOAT)