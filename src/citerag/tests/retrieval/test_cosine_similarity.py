import math

import pytest

from citerag.retrieval.similarity import cosine_similarity


@pytest.mark.parametrize("v", [[1.0, 2.0, 3.0], [-0.5, 0.25], [1e-3, 7.0, -2.0, 0.0]])
def test_self_similarity_is_one(v):
    assert cosine_similarity(v, v) == pytest.approx(1.0)


def test_zero_vector_gives_zero_not_nan():
    score = cosine_similarity([0.0, 0.0, 0.0], [1.0, 2.0, 3.0])
    assert score == 0.0
    assert not math.isnan(score)
    assert cosine_similarity([0.0, 0.0], [0.0, 0.0]) == 0.0


def test_symmetric():
    a = [0.3, -1.2, 4.0]
    b = [2.0, 0.5, -0.7]
    assert cosine_similarity(a, b) == cosine_similarity(b, a)


def test_orthogonal_and_opposite():
    assert cosine_similarity([1.0, 0.0], [0.0, 5.0]) == 0.0
    assert cosine_similarity([1.0, 2.0], [-2.0, -4.0]) == pytest.approx(-1.0)


def test_scale_invariant():
    assert cosine_similarity([1.0, 2.0], [10.0, 20.0]) == pytest.approx(1.0)


def test_result_stays_within_bounds():
    v = [0.1] * 1000
    score = cosine_similarity(v, v)
    assert -1.0 <= score <= 1.0


def test_unequal_lengths_are_rejected():
    with pytest.raises(ValueError):
        cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0])


def test_tiny_components_do_not_underflow_to_zero_vector():
    v = [1e-200, 2e-200]
    assert cosine_similarity(v, v) == pytest.approx(1.0)


def test_huge_components_keep_their_sign():
    score = cosine_similarity([1e200, 0.0], [-1e200, 0.0])
    assert score == pytest.approx(-1.0)
    assert cosine_similarity([1e200, 3e200], [1e200, 3e200]) == pytest.approx(1.0)
