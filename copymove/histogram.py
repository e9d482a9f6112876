"""
Displacement histogram.

A copy-move forgery produces many block pairs that share one translation
(the paste offset); coincidental similarity produces scattered offsets.
Candidates are bucketed by displacement key and a vector becomes suspicious
once its key has been seen more than ``threshold`` times.  Every later vector
with that key is suspicious as well.

How offsets map to keys is a :class:`KeyPolicy`:

* :class:`ExactKey` buckets on the exact float offsets.
* :class:`QuantizedKey` rounds offsets to a grid of ``step`` pixels, which
  tolerates small upstream rounding differences.
"""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Hashable, Iterable, List, Optional, Protocol, Union

from .matching import DisplacementVector


class KeyPolicy(Protocol):
    def key(self, offset_x: float, offset_y: float) -> Hashable:
        ...


@dataclass(frozen=True)
class ExactKey:
    """Bucket on bit-identical offsets."""

    def key(self, offset_x: float, offset_y: float) -> Hashable:
        return (offset_x, offset_y)


@dataclass(frozen=True)
class QuantizedKey:
    """Bucket on offsets rounded (half up) to multiples of ``step``."""

    step: float = 1.0

    def __post_init__(self) -> None:
        if self.step <= 0:
            raise ValueError(f"Quantization step must be positive, got {self.step}")

    def key(self, offset_x: float, offset_y: float) -> Hashable:
        return (
            math.floor(offset_x / self.step + 0.5),
            math.floor(offset_y / self.step + 0.5),
        )


class DisplacementHistogram:
    """Running occurrence counts per displacement key."""

    def __init__(self, threshold: int, key_policy: Optional[KeyPolicy] = None):
        if threshold < 0:
            raise ValueError(f"Offset threshold must be >= 0, got {threshold}")
        self.threshold = threshold
        self.key_policy = key_policy or ExactKey()
        self._counts: Dict[Hashable, int] = defaultdict(int)

    def _key(self, item: Union[DisplacementVector, Hashable]) -> Hashable:
        if isinstance(item, DisplacementVector):
            return self.key_policy.key(item.offset_x, item.offset_y)
        return item

    def add(self, vector: DisplacementVector) -> bool:
        """Count *vector* and return whether it is suspicious."""
        key = self._key(vector)
        self._counts[key] += 1
        return self._counts[key] > self.threshold

    def count(self, item: Union[DisplacementVector, Hashable]) -> int:
        """Occurrences so far of a vector's key (or of a raw key)."""
        return self._counts.get(self._key(item), 0)

    def counts(self) -> Dict[Hashable, int]:
        return dict(self._counts)

    def __len__(self) -> int:
        return len(self._counts)


def suspicious_vectors(
    vectors: Iterable[DisplacementVector],
    threshold: int,
    key_policy: Optional[KeyPolicy] = None,
) -> List[DisplacementVector]:
    """Return, in input order, every vector whose key count has exceeded *threshold*."""
    hist = DisplacementHistogram(threshold, key_policy)
    return [v for v in vectors if hist.add(v)]
