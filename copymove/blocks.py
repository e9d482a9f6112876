"""
Overlapping block decomposition.

A ``size x size`` window slides over the image with unit stride.  Blocks are
read-only views into the source image keyed by their top-left pixel, scanned
with ``x`` as the outer loop and ``y`` as the inner loop.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view


@dataclass(frozen=True)
class Block:
    """One ``size x size`` window of an image."""
    x: int
    y: int
    size: int
    pixels: np.ndarray   # (size, size, C) read-only view


def block_count(width: int, height: int, size: int) -> int:
    """Number of blocks produced for a ``width x height`` image."""
    if size < 2:
        raise ValueError(f"Block size must be greater than 1, got {size}")
    return max(width - size + 1, 0) * max(height - size + 1, 0)


def block_windows(image: np.ndarray, size: int) -> np.ndarray:
    """Return every window as a read-only array of shape ``(W-S+1, H-S+1, S, S, C)``.

    The first two axes are ``(x, y)`` so that flattening them yields the
    canonical scan order.
    """
    if size < 2:
        raise ValueError(f"Block size must be greater than 1, got {size}")
    h, w = image.shape[:2]
    if size > h or size > w:
        raise ValueError(f"Block size {size} exceeds image size {w}x{h}")

    if image.ndim == 2:
        image = image[..., np.newaxis]
    # (H-S+1, W-S+1, C, S, S) -> (W-S+1, H-S+1, S, S, C)
    win = sliding_window_view(image, (size, size), axis=(0, 1))
    return win.transpose(1, 0, 3, 4, 2)


def iter_blocks(image: np.ndarray, size: int) -> Iterator[Block]:
    """Yield blocks in scan order (``x`` outer, ``y`` inner)."""
    win = block_windows(image, size)
    nx, ny = win.shape[:2]
    for x in range(nx):
        for y in range(ny):
            yield Block(x=x, y=y, size=size, pixels=win[x, y])


def decompose(image: np.ndarray, size: int) -> List[Block]:
    """Materialise :func:`iter_blocks` into a list."""
    return list(iter_blocks(image, size))
