"""
Per-block DCT fingerprints for copy-move detection.

Algorithm
---------
For every overlapping ``S x S`` block of the YCbCr image:

    1. Reconstruct RGB from the block's YCbCr pixels (fixed-point inverse,
       see ``copymove.colorspace``).
    2. Apply a type-II 2-D DCT to the luma channel and to each reconstructed
       RGB channel::

           coef(u, v) = a(u) a(v) * sum_{x, y} cos((2x+1) u pi / 2S)
                                              * cos((2y+1) v pi / 2S)
                                              * channel(x, y)

       where ``a(0) = sqrt(1/N)``, ``a(k>0) = sqrt(2/N)`` and ``N`` is the
       larger image dimension, not the block size.
    3. When ``S <= 4`` divide each coefficient by the 4x4 JPEG-luminance
       quantization table.
    4. Emit 9 scalar records tagged with the block's ``(x, y)``: luma
       ``(0,0)``, ``(0,1)``, ``(1,0)``; R, G, B ``(0,0)``; mean R, G, B.

The DCT sums are accumulated element-wise over a stack of blocks, so every
block owns its own accumulators and identical blocks yield bit-identical
coefficients wherever they sit in the image.

Dependencies: numpy, tqdm, copymove.blocks, copymove.colorspace
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterator, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np
from tqdm import tqdm

from .blocks import Block, block_windows
from .colorspace import ycbcr_to_rgb

logger = logging.getLogger(__name__)


# 4x4 corner of the JPEG luminance quantization table
Q4X4 = np.array(
    [
        [16.0, 10.0, 24.0, 51.0],
        [14.0, 16.0, 40.0, 69.0],
        [18.0, 37.0, 68.0, 103.0],
        [49.0, 78.0, 103.0, 120.0],
    ],
    dtype=np.float64,
)

FEATURE_NAMES: Tuple[str, ...] = (
    "luma_dc", "luma_01", "luma_10",
    "red_dc", "green_dc", "blue_dc",
    "red_mean", "green_mean", "blue_mean",
)
FEATURES_PER_BLOCK = len(FEATURE_NAMES)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

class FeatureRecord(NamedTuple):
    """One fingerprint scalar and the top-left coordinate of its block."""
    x: int
    y: int
    value: float


@dataclass(frozen=True)
class FeatureTable:
    """Column-oriented, read-only collection of :class:`FeatureRecord`."""

    x: np.ndarray       # int64
    y: np.ndarray       # int64
    value: np.ndarray   # float64

    def __post_init__(self) -> None:
        if not (len(self.x) == len(self.y) == len(self.value)):
            raise ValueError("FeatureTable columns must have equal length")
        for col in (self.x, self.y, self.value):
            col.setflags(write=False)

    def __len__(self) -> int:
        return len(self.value)

    def __getitem__(self, i: int) -> FeatureRecord:
        return FeatureRecord(int(self.x[i]), int(self.y[i]), float(self.value[i]))

    def __iter__(self) -> Iterator[FeatureRecord]:
        for i in range(len(self)):
            yield self[i]

    def take(self, order: np.ndarray) -> "FeatureTable":
        """Return a new table with rows reordered by *order*."""
        return FeatureTable(self.x[order], self.y[order], self.value[order])

    @classmethod
    def from_records(cls, records: Sequence[FeatureRecord]) -> "FeatureTable":
        return cls(
            np.array([r.x for r in records], dtype=np.int64),
            np.array([r.y for r in records], dtype=np.int64),
            np.array([r.value for r in records], dtype=np.float64),
        )


# ---------------------------------------------------------------------------
# DCT
# ---------------------------------------------------------------------------

def dct_basis(size: int) -> np.ndarray:
    """``basis[u, x] = cos((2x + 1) * u * pi / (2 * size))``."""
    k = np.arange(size, dtype=np.float64)
    return np.cos(np.outer(k, 2.0 * k + 1.0) * np.pi / (2.0 * size))


def alpha(size: int, n: float) -> np.ndarray:
    """DCT normalisation factors for indices ``0 .. size-1`` with normaliser *n*."""
    a = np.full(size, np.sqrt(2.0 / n), dtype=np.float64)
    a[0] = np.sqrt(1.0 / n)
    return a


def block_dct(
    blocks: np.ndarray,
    n: Optional[float] = None,
    quantize: bool = True,
) -> np.ndarray:
    """Type-II DCT over the trailing ``(S, S)`` axes (rows are ``y``, columns ``x``).

    Parameters
    ----------
    blocks : np.ndarray
        ``(..., S, S)`` array, a single channel block or a stack of them.
    n : float, optional
        Normaliser for :func:`alpha`.  Defaults to the block size, which
        gives the orthonormal DCT.
    quantize : bool
        Divide by :data:`Q4X4` when ``S <= 4``.

    Returns
    -------
    np.ndarray
        ``(..., S, S)`` float64 coefficients indexed ``[..., u, v]``.
    """
    data = np.asarray(blocks, dtype=np.float64)
    s = data.shape[-1]
    if data.shape[-2] != s:
        raise ValueError(f"Blocks must be square, got {data.shape[-2:]}")
    n = float(s if n is None else n)
    basis = dct_basis(s)

    # Separable pass over y: tmp[..., v, x] = sum_y basis[v, y] * data[..., y, x]
    tmp = np.zeros(data.shape, dtype=np.float64)
    for y in range(s):
        tmp += basis[:, y][:, np.newaxis] * data[..., y:y + 1, :]

    # Pass over x: coefs[..., u, v] = sum_x basis[u, x] * tmp[..., v, x]
    coefs = np.zeros(data.shape, dtype=np.float64)
    for x in range(s):
        coefs += basis[:, x][:, np.newaxis] * tmp[..., np.newaxis, :, x]

    a = alpha(s, n)
    coefs *= np.outer(a, a)

    if quantize and s <= 4:
        coefs /= Q4X4[:s, :s]
    return coefs


def inverse_block_dct(coefs: np.ndarray, n: Optional[float] = None) -> np.ndarray:
    """Invert an unquantized :func:`block_dct` computed with normaliser *n*."""
    coefs = np.asarray(coefs, dtype=np.float64)
    s = coefs.shape[-1]
    n = float(s if n is None else n)
    basis = dct_basis(s)
    a = alpha(s, s)
    # Undo the N-based normaliser and apply the orthonormal inverse
    weighted = coefs * np.outer(a, a) * (n / s)
    return np.einsum("ux,vy,...uv->...yx", basis, basis, weighted)


# ---------------------------------------------------------------------------
# Fingerprints
# ---------------------------------------------------------------------------

def _fingerprints(ycc_blocks: np.ndarray, n: float) -> np.ndarray:
    """Compute the 9-scalar fingerprint of each block in a ``(K, S, S, 3)`` stack."""
    s = ycc_blocks.shape[-2]
    rgb = ycbcr_to_rgb(ycc_blocks[..., :3]).astype(np.float64)
    luma = ycc_blocks[..., 0].astype(np.float64)

    luma_coefs = block_dct(luma, n)                          # (K, S, S)
    rgb_coefs = block_dct(np.moveaxis(rgb, -1, -3), n)       # (K, 3, S, S)

    totals = np.zeros(rgb.shape[:-3] + (3,), dtype=np.float64)
    for y in range(s):
        for x in range(s):
            totals += rgb[..., y, x, :]
    means = totals / float(s * s)

    return np.stack(
        [
            luma_coefs[..., 0, 0],
            luma_coefs[..., 0, 1],
            luma_coefs[..., 1, 0],
            rgb_coefs[..., 0, 0, 0],
            rgb_coefs[..., 1, 0, 0],
            rgb_coefs[..., 2, 0, 0],
            means[..., 0],
            means[..., 1],
            means[..., 2],
        ],
        axis=-1,
    )


def extract_block_features(block: Block, n: float) -> List[FeatureRecord]:
    """Return the 9 records of a single YCbCr block."""
    values = _fingerprints(np.asarray(block.pixels)[np.newaxis], n)[0]
    return [FeatureRecord(block.x, block.y, float(v)) for v in values]


def _column_chunks(nx: int, ny: int, chunk_size: int) -> List[Tuple[int, int]]:
    cols = max(1, chunk_size // max(ny, 1))
    return [(x0, min(x0 + cols, nx)) for x0 in range(0, nx, cols)]


def extract_features(
    ycc_image: np.ndarray,
    block_size: int,
    workers: int = 1,
    chunk_size: int = 4096,
    progress: bool = False,
) -> FeatureTable:
    """Fingerprint every block of *ycc_image*.

    Blocks are processed in chunks of whole ``x`` columns.  With
    ``workers > 1`` the chunks run on a thread pool; results are reassembled
    in scan order, so the output does not depend on the worker count.

    Returns
    -------
    FeatureTable
        ``9 * block_count`` records, grouped per block in scan order.
    """
    if workers < 1:
        raise ValueError(f"workers must be >= 1, got {workers}")

    h, w = ycc_image.shape[:2]
    n = float(max(w, h))
    win = block_windows(ycc_image, block_size)
    nx, ny = win.shape[:2]
    chunks = _column_chunks(nx, ny, chunk_size)

    logger.debug(
        "Extracting features: %d blocks (%dx%d, S=%d) in %d chunks, %d worker(s)",
        nx * ny, w, h, block_size, len(chunks), workers,
    )

    def _run(bounds: Tuple[int, int]) -> np.ndarray:
        x0, x1 = bounds
        stack = win[x0:x1].reshape((x1 - x0) * ny, block_size, block_size, -1)
        return _fingerprints(stack, n)

    results: List[np.ndarray] = []
    with tqdm(total=nx * ny, desc="Generate", unit="block", disable=not progress) as pbar:
        if workers == 1:
            for bounds in chunks:
                results.append(_run(bounds))
                pbar.update((bounds[1] - bounds[0]) * ny)
        else:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                for bounds, fp in zip(chunks, pool.map(_run, chunks)):
                    results.append(fp)
                    pbar.update((bounds[1] - bounds[0]) * ny)

    values = np.concatenate(results, axis=0) if results else np.zeros((0, FEATURES_PER_BLOCK))
    xs = np.repeat(np.arange(nx, dtype=np.int64), ny)
    ys = np.tile(np.arange(ny, dtype=np.int64), nx)

    return FeatureTable(
        x=np.repeat(xs, FEATURES_PER_BLOCK),
        y=np.repeat(ys, FEATURES_PER_BLOCK),
        value=values.reshape(-1).astype(np.float64),
    )
