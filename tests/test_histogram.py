"""Tests for displacement-histogram filtering."""

import pytest

from copymove.histogram import DisplacementHistogram, ExactKey, QuantizedKey, suspicious_vectors
from copymove.matching import DisplacementVector


def _vec(x, y, ox, oy):
    return DisplacementVector(x, y, x + int(ox), y + int(oy), float(ox), float(oy))


def test_promotes_from_threshold_plus_one_onward():
    threshold = 5
    vectors = [_vec(i, 0, 20, 0) for i in range(threshold + 3)]
    result = suspicious_vectors(vectors, threshold)
    assert result == vectors[threshold:]
    assert all(v not in result for v in vectors[:threshold])


def test_exactly_threshold_plus_one_promotes_only_the_last():
    vectors = [_vec(i, 0, 7, 3) for i in range(4)]
    assert suspicious_vectors(vectors, 3) == [vectors[3]]


def test_keys_are_counted_independently():
    a = [_vec(i, 0, 20, 0) for i in range(3)]
    b = [_vec(i, 5, 0, 12) for i in range(3)]
    interleaved = [v for pair in zip(a, b) for v in pair]
    assert suspicious_vectors(interleaved, 2) == [a[2], b[2]]


def test_counts_never_decrease():
    hist = DisplacementHistogram(threshold=1)
    seen = []
    for v in [_vec(0, 0, 1, 1), _vec(1, 0, 1, 1), _vec(2, 0, 4, 0), _vec(3, 0, 1, 1)]:
        before = hist.count(v)
        hist.add(v)
        seen.append(hist.count(v))
        assert hist.count(v) == before + 1
    assert seen == [1, 2, 1, 3]
    assert hist.counts() == {(1.0, 1.0): 3, (4.0, 0.0): 1}
    assert len(hist) == 2


def test_exact_key_separates_close_offsets():
    vectors = []
    for i in range(4):
        vectors.append(DisplacementVector(i, 0, i + 20, 0, 20.0, 0.0))
        vectors.append(DisplacementVector(i, 1, i + 20, 1, 20.3, 0.0))
    assert suspicious_vectors(vectors, 3, ExactKey()) == [vectors[6], vectors[7]]


def test_quantized_key_merges_close_offsets():
    vectors = []
    for i in range(4):
        vectors.append(DisplacementVector(i, 0, i + 20, 0, 20.0, 0.0))
        vectors.append(DisplacementVector(i, 1, i + 20, 1, 20.3, 0.0))
    assert suspicious_vectors(vectors, 3, QuantizedKey(1.0)) == vectors[3:]


def test_quantized_key_rounds_half_up():
    policy = QuantizedKey(2.0)
    assert policy.key(3.0, 0.9) == (2, 0)
    assert policy.key(4.9, 1.0) == (2, 1)


def test_invalid_parameters():
    with pytest.raises(ValueError):
        QuantizedKey(0)
    with pytest.raises(ValueError):
        DisplacementHistogram(threshold=-1)
