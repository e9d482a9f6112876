"""Tests for overlapping block decomposition."""

import numpy as np
import pytest

from copymove.blocks import block_count, block_windows, decompose, iter_blocks


def _img(w, h):
    rng = np.random.default_rng(1)
    return rng.integers(0, 256, size=(h, w, 3), dtype=np.uint8)


@pytest.mark.parametrize("w,h,s", [(10, 7, 2), (16, 16, 4), (9, 20, 8), (5, 5, 5)])
def test_block_count_and_bounds(w, h, s):
    blocks = decompose(_img(w, h), s)
    assert len(blocks) == (w - s + 1) * (h - s + 1) == block_count(w, h, s)
    for b in blocks:
        assert 0 <= b.x <= w - s
        assert 0 <= b.y <= h - s
        assert b.pixels.shape == (s, s, 3)


def test_scan_order_is_x_outer_y_inner():
    coords = [(b.x, b.y) for b in iter_blocks(_img(4, 5), 3)]
    assert coords == [(0, 0), (0, 1), (0, 2), (1, 0), (1, 1), (1, 2)]


def test_block_pixels_match_image_window():
    img = _img(12, 9)
    for b in decompose(img, 4):
        assert np.array_equal(b.pixels, img[b.y : b.y + 4, b.x : b.x + 4])


def test_blocks_are_read_only_views():
    block = next(iter_blocks(_img(6, 6), 2))
    with pytest.raises(ValueError):
        block.pixels[0, 0, 0] = 1


def test_block_windows_layout():
    img = _img(7, 5)
    win = block_windows(img, 3)
    assert win.shape == (5, 3, 3, 3, 3)
    assert np.array_equal(win[2, 1], img[1:4, 2:5])


def test_block_size_must_exceed_one():
    with pytest.raises(ValueError, match="greater than 1"):
        decompose(_img(8, 8), 1)
    with pytest.raises(ValueError, match="greater than 1"):
        block_count(8, 8, 0)


def test_block_larger_than_image_is_rejected():
    with pytest.raises(ValueError, match="exceeds image size"):
        decompose(_img(8, 3), 4)
