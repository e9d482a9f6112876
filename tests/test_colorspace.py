"""Tests for fixed-point RGB <-> YCbCr conversion."""

import numpy as np
import pytest

from copymove.colorspace import convert_image, rgb_to_ycbcr, to_rgb, ycbcr_to_rgb


def _px(r, g, b):
    return np.array([[[r, g, b]]], dtype=np.uint8)


def test_white_and_black_map_to_neutral_chroma():
    assert rgb_to_ycbcr(_px(255, 255, 255))[0, 0].tolist() == [255, 128, 128]
    assert rgb_to_ycbcr(_px(0, 0, 0))[0, 0].tolist() == [0, 128, 128]


def test_saturated_red_clamps_cr():
    assert rgb_to_ycbcr(_px(255, 0, 0))[0, 0].tolist() == [76, 85, 255]


def test_gray_round_trip_is_exact():
    gray = np.arange(256, dtype=np.uint8)
    rgb = np.stack([gray, gray, gray], axis=-1)
    back = ycbcr_to_rgb(rgb_to_ycbcr(rgb))
    assert np.array_equal(back, rgb)


def test_round_trip_stays_within_rounding_error():
    rng = np.random.default_rng(0)
    rgb = rng.integers(0, 256, size=(32, 32, 3), dtype=np.uint8)
    back = ycbcr_to_rgb(rgb_to_ycbcr(rgb))
    diff = np.abs(back.astype(int) - rgb.astype(int))
    assert diff.max() <= 3


def test_to_rgb_premultiplies_alpha():
    rgba = np.array([[[200, 100, 50, 255], [200, 100, 50, 0]]], dtype=np.uint8)
    rgb = to_rgb(rgba)
    assert rgb.shape == (1, 2, 3)
    assert rgb[0, 0].tolist() == [200, 100, 50]
    assert rgb[0, 1].tolist() == [0, 0, 0]


def test_to_rgb_rejects_unexpected_channel_count():
    with pytest.raises(ValueError, match="3 or 4 channels"):
        to_rgb(np.zeros((2, 2, 2), dtype=np.uint8))


def test_convert_image_returns_new_array_of_same_size():
    img = np.full((10, 12, 3), 77, dtype=np.uint8)
    ycc = convert_image(img)
    assert ycc.shape == img.shape
    assert ycc.dtype == np.uint8
    assert ycc is not img
    assert np.all(ycc[..., 0] == 77)
