import math
import random

import numpy as np
import pytest

from dknet.image import Image
from dknet.transform import (
    AugmentArgs,
    blend_image,
    blocky_image,
    censor_image,
    collapse_image_layers,
    collapse_images_horz,
    collapse_images_vert,
    ghost_image,
    image_distance,
    place_image,
    random_augment_args,
    random_augment_image,
    rotate_crop_image,
    rotate_image,
)


def _ramp(w, h, c):
    n = w * h * c
    return Image(w, h, c, np.arange(n, dtype=np.float32) / n)


def test_image_distance_of_identical_is_zero():
    a = _ramp(3, 4, 3)
    dist = image_distance(a, a.copy())
    assert (dist.w, dist.h, dist.c) == (3, 4, 1)
    assert np.all(dist.data == 0)


def test_image_distance_pythagorean():
    a = Image.zeros(2, 2, 2)
    b = Image.zeros(2, 2, 2)
    b.data[0] = 3.0
    b.data[1] = 4.0
    assert np.allclose(image_distance(a, b).data, 5.0)


def test_image_distance_shape_mismatch():
    with pytest.raises(ValueError):
        image_distance(Image.zeros(2, 2, 1), Image.zeros(3, 2, 1))


def test_ghost_image_identical_keeps_values():
    dest = _ramp(6, 6, 1)
    source = Image(3, 3, 1, dest.data[:, 1:4, 2:5].copy())
    before = dest.data.copy()
    ghost_image(source, dest, 2, 1)
    np.testing.assert_allclose(dest.data, before, rtol=1e-6)


def test_ghost_image_centre_takes_source():
    dest = Image.zeros(5, 5, 1)
    source = Image.zeros(5, 5, 1)
    source.fill(1.0)
    ghost_image(source, dest, 0, 0)
    assert dest.data[0, 2, 2] == pytest.approx(1.0)
    assert np.all(dest.data >= 0)
    assert np.all(dest.data <= 1.0 + 1e-6)


def test_ghost_image_out_of_bounds():
    with pytest.raises(IndexError):
        ghost_image(Image.zeros(3, 3, 1), Image.zeros(3, 3, 1), 1, 0)


def test_blocky_image_constant_blocks():
    image = _ramp(4, 4, 2)
    original = image.data.copy()
    blocky_image(image, 2)
    corners = image.data[:, ::2, ::2]
    np.testing.assert_array_equal(corners, original[:, ::2, ::2])
    np.testing.assert_array_equal(image.data[:, 1::2, ::2], corners)
    np.testing.assert_array_equal(image.data[:, ::2, 1::2], corners)
    np.testing.assert_array_equal(image.data[:, 1::2, 1::2], corners)


def test_censor_image_region_only():
    image = _ramp(10, 10, 1)
    original = image.data.copy()
    censor_image(image, 2, 2, 4, 4)
    assert np.all(image.data[0, 2:6, 2:6] == original[0, 0, 0])
    np.testing.assert_array_equal(image.data[0, 6:, :], original[0, 6:, :])
    np.testing.assert_array_equal(image.data[0, :, :2], original[0, :, :2])


def test_collapse_image_layers():
    source = _ramp(2, 2, 3)
    dest = collapse_image_layers(source, 1)
    assert dest.c == 1
    assert dest.h == 8
    for i in range(3):
        np.testing.assert_array_equal(dest.data[0, 3 * i : 3 * i + 2], source.data[i])
    assert np.all(dest.data[0, 2] == 0)
    assert np.all(dest.data[0, 5] == 0)


def test_collapse_images_vert_rgb():
    images = [_ramp(3, 2, 3), _ramp(3, 2, 3)]
    result = collapse_images_vert(images)
    assert (result.w, result.c) == (3, 3)
    np.testing.assert_array_equal(result.data[:, :2, :], images[0].data)
    np.testing.assert_array_equal(result.data[:, 3:5, :], images[1].data)


def test_collapse_images_vert_single_channel():
    images = [_ramp(2, 2, 2)]
    result = collapse_images_vert(images)
    assert result.c == 1
    np.testing.assert_array_equal(result.data[0, :, :2], images[0].data[0])
    np.testing.assert_array_equal(result.data[0, :, 3:5], images[0].data[1])


def test_collapse_images_horz_rgb():
    images = [_ramp(2, 2, 3), _ramp(2, 2, 3)]
    result = collapse_images_horz(images)
    assert (result.h, result.c) == (2, 3)
    np.testing.assert_array_equal(result.data[:, :, :2], images[0].data)
    np.testing.assert_array_equal(result.data[:, :, 3:5], images[1].data)


def test_collapse_images_empty():
    with pytest.raises(ValueError):
        collapse_images_horz([])
    with pytest.raises(ValueError):
        collapse_images_vert([])


def test_place_image_same_size_is_copy():
    image = _ramp(7, 5, 2)
    canvas = Image.zeros(7, 5, 2)
    place_image(image, 7, 5, 0, 0, canvas)
    np.testing.assert_allclose(canvas.data, image.data, atol=1e-5)


def test_place_image_offset_clips():
    image = _ramp(4, 4, 1)
    canvas = Image.zeros(4, 4, 1)
    place_image(image, 4, 4, 2, 2, canvas)
    np.testing.assert_allclose(canvas.data[0, 2:, 2:], image.data[0, :2, :2], atol=1e-5)
    assert np.all(canvas.data[0, :2, :] == 0)


def test_rotate_image_zero_is_identity():
    image = _ramp(5, 4, 3)
    np.testing.assert_allclose(rotate_image(image, 0.0).data, image.data, atol=1e-6)


def test_rotate_crop_identity():
    image = _ramp(6, 4, 1)
    result = rotate_crop_image(image, 0.0, 1.0, 6, 4, 0.0, 0.0, 1.0)
    np.testing.assert_allclose(result.data, image.data, atol=1e-6)


def test_rotate_crop_zero_scale():
    with pytest.raises(ValueError):
        rotate_crop_image(_ramp(2, 2, 1), 0.0, 0.0, 2, 2, 0.0, 0.0, 1.0)


def test_random_augment_args_deterministic_and_bounded():
    image = _ramp(20, 16, 3)
    first = random_augment_args(image, 10.0, 1.5, 12, 24, 8, 6, random.Random(3))
    second = random_augment_args(image, 10.0, 1.5, 12, 24, 8, 6, random.Random(3))
    assert isinstance(first, AugmentArgs)
    assert first == second
    assert (first.w, first.h) == (8, 6)
    assert abs(first.rad) <= 10.0 * math.tau / 360.0
    assert first.aspect > 0


def test_random_augment_image_shape():
    image = _ramp(20, 20, 3)
    result = random_augment_image(image, 0.0, 1.0, 20, 20, 10, 8, random.Random(1))
    assert (result.w, result.h, result.c) == (10, 8, 3)


def test_blend_image_extremes():
    fore = _ramp(3, 3, 1)
    back = Image.zeros(3, 3, 1)
    back.fill(0.5)
    np.testing.assert_allclose(blend_image(fore, back, 1.0).data, fore.data)
    np.testing.assert_allclose(blend_image(fore, back, 0.0).data, back.data)


def test_blend_image_shape_mismatch():
    with pytest.raises(ValueError):
        blend_image(Image.zeros(2, 2, 1), Image.zeros(2, 2, 3), 0.5)