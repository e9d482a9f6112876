"""
Block-DCT copy-move (clone) forgery detection.

Each stage lives in its own module and returns a fresh collection; the
``pipeline.copymove_pipeline`` module chains them and adds image I/O.

Modules
-------
colorspace     Fixed-point RGB <-> YCbCr conversion
blocks         Overlapping S x S block decomposition
features       Quantized per-block DCT fingerprints (9 scalars per block)
matching       Lexicographic sort + adjacent-pair matching
histogram      Displacement-vector recurrence filtering
suppression    Neighbour suppression and precision score
utils          Image load/save, resize, stack blur, overlay rendering
"""

from .blocks import Block, block_count, decompose, iter_blocks
from .colorspace import convert_image, rgb_to_ycbcr, ycbcr_to_rgb
from .features import (
    FeatureRecord, FeatureTable, block_dct, extract_block_features,
    extract_features, inverse_block_dct,
)
from .histogram import DisplacementHistogram, ExactKey, QuantizedKey, suspicious_vectors
from .matching import DisplacementVector, confirm_pair, match_features, sort_features
from .suppression import ForgedRegion, precision_score, suppress_neighbors

__version__ = "1.0.0"

__all__ = [
    "Block", "block_count", "decompose", "iter_blocks",
    "convert_image", "rgb_to_ycbcr", "ycbcr_to_rgb",
    "FeatureRecord", "FeatureTable", "block_dct", "extract_block_features",
    "extract_features", "inverse_block_dct",
    "DisplacementHistogram", "ExactKey", "QuantizedKey", "suspicious_vectors",
    "DisplacementVector", "confirm_pair", "match_features", "sort_features",
    "ForgedRegion", "precision_score", "suppress_neighbors",
]
