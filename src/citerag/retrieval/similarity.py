"""citerag.retrieval.similarity

Vector similarity used to score chunks against a query.

Functions
---------
cosine_similarity
    Cosine similarity of two equal-length vectors, ``0.0`` when either is a
    zero vector.
"""

from __future__ import annotations

import math
from typing import Sequence


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Return the cosine similarity of ``a`` and ``b``.

    Parameters
    ----------
    a, b : Sequence[float]
        Vectors of equal length.

    Returns
    -------
    float
        Value in ``[-1, 1]``. Defined as ``0.0`` when either vector has zero
        norm, so NaN never reaches ranking.

    Raises
    ------
    ValueError
        If the vectors differ in length.
    """
    if len(a) != len(b):
        raise ValueError(f"Cannot compare vectors of length {len(a)} and {len(b)}.")

    # hypot is scaled, so tiny or huge components neither underflow nor overflow
    norm_a = math.hypot(*a)
    norm_b = math.hypot(*b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    score = sum((x / norm_a) * (y / norm_b) for x, y in zip(a, b))
    if math.isnan(score):
        return 0.0
    # rounding can push |score| a hair past 1
    return max(-1.0, min(1.0, score))


__all__ = ["cosine_similarity"]
