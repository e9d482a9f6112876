"""
Lexicographic feature matching.

Every fingerprint scalar is a :class:`~copymove.features.FeatureRecord`.
Sorting all records by value places similar scalars next to each other, so
a single pass over adjacent pairs ``(i, i+1)`` replaces an O(n^2) all-pairs
comparison with an O(n log n) sort.  Each adjacent pair is then confirmed by
the Euclidean distance between the two block coordinates: pairs closer than
``distance_threshold`` become :class:`DisplacementVector` candidates.

Only adjacent ranks are compared.  When more than two records share a value
(or several true matches land on neighbouring ranks) some genuine pairs are
never examined; these false negatives are accepted.

Dependencies: numpy, tqdm, copymove.features
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np
from tqdm import tqdm

from .features import FeatureRecord, FeatureTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DisplacementVector:
    """Two matched block coordinates and the absolute per-axis shift between them."""
    xa: int
    ya: int
    xb: int
    yb: int
    offset_x: float
    offset_y: float

    @property
    def key(self) -> Tuple[float, float]:
        return (self.offset_x, self.offset_y)

    @property
    def is_self_match(self) -> bool:
        return self.xa == self.xb and self.ya == self.yb

    def to_dict(self) -> dict:
        return {
            "source": [self.xa, self.ya],
            "target": [self.xb, self.yb],
            "offset": [self.offset_x, self.offset_y],
        }


def sort_features(table: FeatureTable) -> FeatureTable:
    """Stable ascending sort of *table* by value."""
    return table.take(np.argsort(table.value, kind="stable"))


def confirm_pair(
    a: FeatureRecord,
    b: FeatureRecord,
    distance_threshold: float,
) -> Optional[DisplacementVector]:
    """Return the displacement between two sort-adjacent records if their blocks are close."""
    dx = float(a.x) - float(b.x)
    dy = float(a.y) - float(b.y)
    if math.sqrt(dx * dx + dy * dy) < distance_threshold:
        return DisplacementVector(a.x, a.y, b.x, b.y, abs(dx), abs(dy))
    return None


def match_features(
    table: FeatureTable,
    distance_threshold: float,
    progress: bool = False,
) -> List[DisplacementVector]:
    """Sort *table* and confirm every adjacent pair.

    Equivalent to calling :func:`confirm_pair` on ``(sorted[i], sorted[i+1])``
    for each ``i``; the distance test is vectorised.

    Returns
    -------
    List[DisplacementVector]
        Candidates in sorted-value order.
    """
    if len(table) < 2:
        return []

    ordered = sort_features(table)
    dx = ordered.x[:-1].astype(np.float64) - ordered.x[1:].astype(np.float64)
    dy = ordered.y[:-1].astype(np.float64) - ordered.y[1:].astype(np.float64)
    dist = np.sqrt(dx * dx + dy * dy)
    hits = np.flatnonzero(dist < distance_threshold)

    vectors: List[DisplacementVector] = []
    for i in tqdm(hits, desc="Analyze", unit="pair", disable=not progress):
        vectors.append(DisplacementVector(
            xa=int(ordered.x[i]),
            ya=int(ordered.y[i]),
            xb=int(ordered.x[i + 1]),
            yb=int(ordered.y[i + 1]),
            offset_x=float(abs(dx[i])),
            offset_y=float(abs(dy[i])),
        ))

    logger.debug(
        "Matched %d candidate pairs out of %d adjacent records (threshold %.3f)",
        len(vectors), len(table) - 1, distance_threshold,
    )
    return vectors
