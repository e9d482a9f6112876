"""
Neighbour suppression and precision scoring.

Overlapping blocks make one forged patch report many nearly identical
suspicious vectors.  Walking the suspicious list in order, vector ``i`` is
kept only when its source block lies farther than ``separation_threshold``
from the source block of vector ``i-1``.  A vector that pairs a block with
itself is never kept.
"""

from __future__ import annotations

import math
from typing import List, Sequence

from .matching import DisplacementVector

# A suspicious vector that survived suppression
ForgedRegion = DisplacementVector


def suppress_neighbors(
    suspicious: Sequence[DisplacementVector],
    separation_threshold: float,
) -> List[ForgedRegion]:
    forged: List[ForgedRegion] = []
    for prev, cur in zip(suspicious, suspicious[1:]):
        dist = math.hypot(prev.xa - cur.xa, prev.ya - cur.ya)
        if dist > separation_threshold and not cur.is_self_match:
            forged.append(cur)
    return forged


def precision_score(forged_count: int, suspicious_count: int) -> float:
    """Coarse confidence in percent; 0 when nothing was forged."""
    if forged_count <= 0:
        return 0.0
    return 100.0 - (forged_count / (forged_count + suspicious_count)) * 100.0
