"""Small pure helpers for core computations."""

from __future__ import annotations

import math


def clip01(x: float) -> float:
    v = float(x)
    if v < 0.0:
        return 0.0
    if v > 1.0:
        return 1.0
    return v


def rescale01(x: float, lo: float, hi: float) -> float:
    """Map ``[lo, hi]`` onto ``[0, 1]`` and clamp; 0 for an empty range."""
    if hi <= lo:
        return 0.0
    return clip01((float(x) - lo) / (hi - lo))


def rescale_signed01(x: float) -> float:
    """Map a ``[-1, 1]`` balance onto ``[0, 1]``."""
    return clip01((float(x) + 1.0) * 0.5)


def population_variance(values: list[float] | tuple[float, ...]) -> float:
    n = len(values)
    if n == 0:
        return 0.0
    mean = math.fsum(values) / n
    return math.fsum((v - mean) * (v - mean) for v in values) / n
