import io
import struct

import numpy as np
import pytest

from dknet.weights import (
    BatchnormWeights,
    ConnectedWeights,
    ConvolutionalWeights,
    QuantParams,
    WeightsHeader,
    transpose_matrix,
)


def _f(values):
    return np.array(values, dtype=np.float32)


def test_header_default_bytes():
    buf = io.BytesIO()
    WeightsHeader(seen=7).write(buf)
    assert buf.getvalue() == struct.pack("<iiiQ", 0, 2, 0, 7)


def test_header_round_trip():
    buf = io.BytesIO()
    WeightsHeader(0, 2, 5, 123456789012).write(buf)
    buf.seek(0)
    header = WeightsHeader.read(buf)
    assert header == WeightsHeader(0, 2, 5, 123456789012)
    assert header.transpose is False


def test_header_legacy_int_seen():
    buf = io.BytesIO(struct.pack("<iiii", 0, 1, 0, 42) + b"rest")
    header = WeightsHeader.read(buf)
    assert header.seen == 42
    assert buf.read() == b"rest"


def test_header_transpose_flag():
    buf = io.BytesIO(struct.pack("<iiii", 1001, 0, 0, 3))
    header = WeightsHeader.read(buf)
    assert header.transpose is True
    assert header.seen == 3


def test_header_truncated():
    with pytest.raises(EOFError):
        WeightsHeader.read(io.BytesIO(b"\x00\x00"))


def test_transpose_matrix_values():
    result = transpose_matrix([1, 2, 3, 4, 5, 6], 2, 3)
    assert result.tolist() == [1, 4, 2, 5, 3, 6]


def test_transpose_matrix_inverse():
    values = np.arange(12, dtype=np.float32)
    back = transpose_matrix(transpose_matrix(values, 3, 4), 4, 3)
    assert np.array_equal(back, values)


def test_transpose_matrix_wrong_size():
    with pytest.raises(ValueError):
        transpose_matrix([1, 2, 3], 2, 2)


def test_quant_params_round_trip():
    buf = io.BytesIO()
    QuantParams(0.5, 128).write(buf)
    assert len(buf.getvalue()) == 5
    buf.seek(0)
    assert QuantParams.read(buf) == QuantParams(0.5, 128)


def test_conv_plain_round_trip():
    n, c, size = 2, 3, 1
    conv = ConvolutionalWeights(biases=_f([1, 2]), weights=np.arange(6, dtype=np.float32))
    buf = io.BytesIO()
    conv.write(buf)
    assert len(buf.getvalue()) == 4 * (n + n * c * size * size)
    buf.seek(0)
    back = ConvolutionalWeights.read(buf, n, c, size, 1, False, False)
    assert np.array_equal(back.biases, conv.biases)
    assert np.array_equal(back.weights, conv.weights)
    assert back.batch_normalize is False


def test_conv_groups_reduce_weight_count():
    n, c, size, groups = 2, 4, 1, 2
    conv = ConvolutionalWeights(biases=_f([0, 0]), weights=np.arange(4, dtype=np.float32))
    buf = io.BytesIO()
    conv.write(buf)
    buf.seek(0)
    back = ConvolutionalWeights.read(buf, n, c, size, groups, False, False)
    assert back.weights.size == c // groups * n * size * size
    assert buf.read() == b""


def test_conv_full_round_trip():
    n, c, size = 2, 1, 2
    conv = ConvolutionalWeights(
        biases=_f([0.1, 0.2]),
        weights=np.linspace(-1, 1, 8, dtype=np.float32),
        scales=_f([1, 1]),
        rolling_mean=_f([0.5, -0.5]),
        rolling_variance=_f([2, 3]),
        input_quant=QuantParams(0.25, 3),
        activ_quant=QuantParams(0.125, 9),
        weight_scales=_f([0.1, 0.3]),
        weight_zero_points=np.array([1, 2], dtype=np.uint8),
        weights_uint8=np.arange(8, dtype=np.uint8),
    )
    buf = io.BytesIO()
    conv.write(buf)
    buf.seek(0)
    back = ConvolutionalWeights.read(buf, n, c, size, 1, True, True)
    assert buf.read() == b""
    assert back.input_quant == conv.input_quant
    assert back.activ_quant == conv.activ_quant
    assert np.array_equal(back.rolling_variance, conv.rolling_variance)
    assert np.array_equal(back.weights_uint8, conv.weights_uint8)
    assert np.array_equal(back.weight_zero_points, conv.weight_zero_points)
    assert np.allclose(back.weights, conv.weights)


def test_conv_truncated():
    buf = io.BytesIO(_f([1, 2]).tobytes())
    with pytest.raises(EOFError):
        ConvolutionalWeights.read(buf, 2, 1, 1, 1, False, False)


def test_connected_round_trip_with_batchnorm():
    layer = ConnectedWeights(
        biases=_f([1, 2]),
        weights=np.arange(6, dtype=np.float32),
        scales=_f([3, 4]),
        rolling_mean=_f([5, 6]),
        rolling_variance=_f([7, 8]),
    )
    buf = io.BytesIO()
    layer.write(buf)
    buf.seek(0)
    back = ConnectedWeights.read(buf, 3, 2, True, False)
    assert np.array_equal(back.weights, layer.weights)
    assert np.array_equal(back.scales, layer.scales)
    assert np.array_equal(back.rolling_mean, layer.rolling_mean)
    assert buf.read() == b""


def test_connected_transposed_read():
    inputs, outputs = 3, 2
    stored = np.arange(6, dtype=np.float32)
    buf = io.BytesIO(_f([0, 0]).tobytes() + stored.tobytes())
    back = ConnectedWeights.read(buf, inputs, outputs, False, True)
    assert np.array_equal(back.weights, transpose_matrix(stored, inputs, outputs))
    assert back.scales is None


def test_batchnorm_round_trip():
    bn = BatchnormWeights(_f([1, 2, 3]), _f([0, 0, 1]), _f([4, 5, 6]))
    buf = io.BytesIO()
    bn.write(buf)
    assert len(buf.getvalue()) == 36
    buf.seek(0)
    back = BatchnormWeights.read(buf, 3)
    assert np.array_equal(back.scales, bn.scales)
    assert np.array_equal(back.rolling_mean, bn.rolling_mean)
    assert np.array_equal(back.rolling_variance, bn.rolling_variance)