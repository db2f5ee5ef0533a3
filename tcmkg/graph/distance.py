"""Vector distance functions for clustering.

All four are pure and symmetric over equal-length numeric vectors. Lists
and NumPy arrays are both accepted.
"""

from __future__ import annotations

import enum
from typing import Callable, Sequence, Union

import numpy as np

Vector = Union[Sequence[float], np.ndarray]


class DistanceType(str, enum.Enum):
    EUCLIDEAN = "euclidean"
    MANHATTAN = "manhattan"
    CHEBYSHEV = "chebyshev"
    LANCE = "lance"


def _diff(a: Vector, b: Vector) -> np.ndarray:
    return np.abs(np.asarray(a, dtype=float) - np.asarray(b, dtype=float))


def euclidean(a: Vector, b: Vector) -> float:
    return float(np.linalg.norm(_diff(a, b)))


def manhattan(a: Vector, b: Vector) -> float:
    return float(_diff(a, b).sum())


def chebyshev(a: Vector, b: Vector) -> float:
    diff = _diff(a, b)
    return float(diff.max()) if diff.size else 0.0


def lance(a: Vector, b: Vector) -> float:
    """Canberra-style normalized distance, labelled "Lance" in configuration.

    Each term is ``|a-b| / (|a|+|b|)``; a zero denominator contributes 0.
    This is not the Lance-Williams linkage update formula.
    """
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    diff = np.abs(a - b)
    denom = np.abs(a) + np.abs(b)
    terms = np.divide(diff, denom, out=np.zeros_like(diff), where=denom != 0)
    return float(terms.sum())


DISTANCE_FUNCTIONS: dict[DistanceType, Callable[[Vector, Vector], float]] = {
    DistanceType.EUCLIDEAN: euclidean,
    DistanceType.MANHATTAN: manhattan,
    DistanceType.CHEBYSHEV: chebyshev,
    DistanceType.LANCE: lance,
}


def get_distance(distance_type: DistanceType | str) -> Callable[[Vector, Vector], float]:
    """Resolve a distance by enum or name. Unknown names fall back to Euclidean."""
    try:
        key = DistanceType(distance_type)
    except ValueError:
        return euclidean
    return DISTANCE_FUNCTIONS[key]


def calculate_distance(a: Vector, b: Vector, distance_type: DistanceType | str) -> float:
    return get_distance(distance_type)(a, b)
