"""
Vector similarity helpers shared by search, question answering and
redundancy detection.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from ..core.errors import DimensionMismatch

HIGH_CONFIDENCE = 0.8
MEDIUM_CONFIDENCE = 0.6


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity ``dot(a, b) / (|a| * |b|)``, in [-1, 1].

    A zero-norm vector scores 0.0.

    Raises
    ------
    DimensionMismatch
        If the vectors differ in length.
    """
    if len(a) != len(b):
        raise DimensionMismatch(expected=len(a), actual=len(b))

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)

    denom = float(np.linalg.norm(va)) * float(np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0

    return float(np.dot(va, vb)) / denom


def confidence_bucket(score: float) -> str:
    """Bucket a similarity score for downstream consumers."""
    if score > HIGH_CONFIDENCE:
        return "high"
    if score > MEDIUM_CONFIDENCE:
        return "medium"
    return "low"
