"""
Vector similarity scoring for memory retrieval.
"""

import math
from typing import Sequence


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors.

    Empty vectors, vectors of different lengths and zero-magnitude vectors
    carry no signal and score 0 instead of raising.

    Args:
        a: First vector
        b: Second vector

    Returns:
        Similarity in [-1, 1]
    """
    if not a or not b or len(a) != len(b):
        return 0.0

    dot = 0.0
    magnitude_a = 0.0
    magnitude_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        magnitude_a += x * x
        magnitude_b += y * y

    if magnitude_a == 0 or magnitude_b == 0:
        return 0.0

    return dot / (math.sqrt(magnitude_a) * math.sqrt(magnitude_b))
