# oms/policy/distance.py
import math
from collections.abc import Callable, Sequence
from numbers import Real
from typing import Any

import numpy as np
from rapidfuzz.distance import Levenshtein

# Returned by a distance function for pairs that cannot be compared.
INCOMPARABLE = None

DistanceFn = Callable[[Any, Any], float | None]


def _is_number(x) -> bool:
    # bool is an int subclass but never a magnitude here
    return isinstance(x, Real) and not isinstance(x, (bool, np.bool_))


def is_comparable(d) -> bool:
    if d is INCOMPARABLE:
        return False
    try:
        return not math.isnan(d)
    except TypeError:
        return False


def absolute_distance(a, b) -> float | None:
    if _is_number(a) and _is_number(b):
        return abs(a - b)
    return INCOMPARABLE


def levenshtein_distance(a, b, *, ignore_case: bool = False) -> int | None:
    if isinstance(a, str) and isinstance(b, str):
        if ignore_case:
            a, b = a.casefold(), b.casefold()
        return Levenshtein.distance(a, b)
    return INCOMPARABLE


def euclidean_distance(a, b) -> float | None:
    """Straight-line distance between two numeric vectors of equal length."""
    if isinstance(a, (str, bytes)) or isinstance(b, (str, bytes)):
        return INCOMPARABLE
    if not isinstance(a, (Sequence, np.ndarray)) or not isinstance(b, (Sequence, np.ndarray)):
        return INCOMPARABLE
    try:
        va = np.asarray(a, dtype=float)
        vb = np.asarray(b, dtype=float)
    except (TypeError, ValueError):
        return INCOMPARABLE
    if va.ndim != 1 or va.shape != vb.shape:
        return INCOMPARABLE
    return float(np.linalg.norm(va - vb))


def auto_distance(a, b) -> float | None:
    """
    Default metric:
      • two numbers  -> absolute difference
      • two strings  -> Levenshtein edit distance
      • anything else -> incomparable
    """
    if _is_number(a) and _is_number(b):
        return absolute_distance(a, b)
    if isinstance(a, str) and isinstance(b, str):
        return levenshtein_distance(a, b)
    return INCOMPARABLE
