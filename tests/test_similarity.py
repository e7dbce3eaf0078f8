import math

import pytest

from formmem.utils.similarity import cosine_similarity


@pytest.mark.parametrize('a,b', [([1.0, 2.0], []), ([], [1.0]), ([], []), ([1.0, 2.0], [1.0, 2.0, 3.0]),
                                 ([0.0, 0.0], [1.0, 1.0])])
def test_no_signal_scores_zero(a, b):
    assert cosine_similarity(a, b) == 0


def test_identical_vectors_score_one():
    a = [0.3, -1.2, 4.5]
    assert math.isclose(cosine_similarity(a, a), 1.0)


def test_opposite_vectors_score_minus_one():
    assert math.isclose(cosine_similarity([1.0, 2.0], [-1.0, -2.0]), -1.0)


def test_orthogonal_vectors_score_zero():
    assert cosine_similarity([1.0, 0.0], [0.0, 5.0]) == 0


def test_commutative():
    a, b = [1.0, 2.0, 3.0], [0.5, -1.0, 2.0]
    assert cosine_similarity(a, b) == cosine_similarity(b, a)
    assert math.isclose(cosine_similarity(a, b), 4.5 / (math.sqrt(14) * math.sqrt(5.25)))
