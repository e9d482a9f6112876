"""
RGB <-> YCbCr conversion for copy-move detection.

Both directions use the JFIF fixed-point coefficients (16-bit fractional
precision) with rounding and clamping to ``[0, 255]``, so a pixel that goes
RGB -> YCbCr -> RGB can come back one or two levels off.  Feature extraction
relies on that reconstructed RGB rather than the original pixels.

All functions are vectorised over any leading shape; the channel axis is the
last one.

Dependencies: numpy
"""

from __future__ import annotations

import numpy as np


def _clamp_shift(v: np.ndarray) -> np.ndarray:
    """Drop the 16 fractional bits and clamp to the uint8 range."""
    return np.clip(v >> 16, 0, 255).astype(np.uint8)


def to_rgb(image: np.ndarray) -> np.ndarray:
    """Return the RGB channels of *image*, premultiplying by alpha if present.

    Parameters
    ----------
    image : np.ndarray
        ``(..., 3)`` or ``(..., 4)`` uint8 array.

    Returns
    -------
    np.ndarray
        ``(..., 3)`` uint8 array.
    """
    if image.shape[-1] == 3:
        return image.astype(np.uint8, copy=False)
    if image.shape[-1] != 4:
        raise ValueError(f"Expected 3 or 4 channels, got {image.shape[-1]}")

    # 16-bit premultiplication, then back to 8 bits
    rgb16 = image[..., :3].astype(np.int64) * 0x101
    a16 = image[..., 3:4].astype(np.int64) * 0x101
    return ((rgb16 * a16 // 0xFFFF) >> 8).astype(np.uint8)


def rgb_to_ycbcr(rgb: np.ndarray) -> np.ndarray:
    """Convert ``(..., 3)`` uint8 RGB to ``(..., 3)`` uint8 YCbCr."""
    r = rgb[..., 0].astype(np.int64)
    g = rgb[..., 1].astype(np.int64)
    b = rgb[..., 2].astype(np.int64)

    yy = (19595 * r + 38470 * g + 7471 * b + (1 << 15)) >> 16
    cb = -11056 * r - 21712 * g + 32768 * b + (257 << 15)
    cr = 32768 * r - 27440 * g - 5328 * b + (257 << 15)

    return np.stack(
        [yy.astype(np.uint8), _clamp_shift(cb), _clamp_shift(cr)], axis=-1,
    )


def ycbcr_to_rgb(ycc: np.ndarray) -> np.ndarray:
    """Convert ``(..., 3)`` uint8 YCbCr back to ``(..., 3)`` uint8 RGB."""
    yy = ycc[..., 0].astype(np.int64) * 0x10101
    cb = ycc[..., 1].astype(np.int64) - 128
    cr = ycc[..., 2].astype(np.int64) - 128

    r = yy + 91881 * cr
    g = yy - 22554 * cb - 46802 * cr
    b = yy + 116130 * cb

    return np.stack([_clamp_shift(r), _clamp_shift(g), _clamp_shift(b)], axis=-1)


def convert_image(image: np.ndarray) -> np.ndarray:
    """Convert a decoded RGB(A) image to a new YCbCr image of the same size."""
    if image.ndim != 3:
        raise ValueError(f"Expected an (H, W, C) image, got shape {image.shape}")
    return rgb_to_ycbcr(to_rgb(image))
