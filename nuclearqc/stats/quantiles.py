"""Exact order statistics across cells.

All quantiles use the index ``ceil((n - 1) * q)`` into a stably sorted copy of
the values, clamped to ``[0, n - 1]``. The result depends only on the multiset
of inputs, never on cell order.
"""

from __future__ import annotations

import math
from typing import Mapping

import numpy as np

from nuclearqc.core.types import ActivationCutpoints, PopulationSummary
from nuclearqc.core.utils import clip01


def _sorted_values(values) -> np.ndarray:
    arr = np.asarray(values, dtype=float).ravel()
    return np.sort(arr, kind="mergesort")


def quantile_index(n: int, q: float) -> int:
    if n <= 0:
        return 0
    idx = int(math.ceil((n - 1) * float(q)))
    return min(max(idx, 0), n - 1)


def quantile_indexed(values, q: float) -> float:
    """Order statistic at ``ceil((n - 1) * q)``; 0 for an empty input."""
    ordered = _sorted_values(values)
    if ordered.size == 0:
        return 0.0
    return float(ordered[quantile_index(int(ordered.size), q)])


def median(values) -> float:
    return quantile_indexed(values, 0.5)


def p10(values) -> float:
    return quantile_indexed(values, 0.10)


def p90(values) -> float:
    return quantile_indexed(values, 0.90)


def p99(values) -> float:
    return quantile_indexed(values, 0.99)


def activation_cutpoints(values, q_low: float = 0.70, q_high: float = 0.85) -> ActivationCutpoints:
    ordered = _sorted_values(values)
    n = int(ordered.size)
    if n == 0:
        return ActivationCutpoints(p70=0.0, p85=0.0, n=0)
    return ActivationCutpoints(
        p70=float(ordered[quantile_index(n, q_low)]),
        p85=float(ordered[quantile_index(n, q_high)]),
        n=n,
    )


def relative_activation(values, cutpoints: ActivationCutpoints) -> np.ndarray:
    """Position of each value between the population p70 and p85, clamped to [0, 1].

    Every cell gets 0 when the population is degenerate (``n <= 1`` or
    ``p85 <= p70``).
    """
    arr = np.asarray(values, dtype=float).ravel()
    if cutpoints.degenerate:
        return np.zeros(arr.size, dtype=float)
    span = cutpoints.p85 - cutpoints.p70
    return np.array([clip01((v - cutpoints.p70) / span) for v in arr.tolist()], dtype=float)


def build_population_summary(
    raw: Mapping[str, np.ndarray],
    *,
    q_low: float = 0.70,
    q_high: float = 0.85,
) -> PopulationSummary:
    """Cutpoints for every raw metric that gets a relative transform."""
    cutpoints = {
        name: activation_cutpoints(values, q_low=q_low, q_high=q_high)
        for name, values in raw.items()
    }
    return PopulationSummary(cutpoints=cutpoints)


def with_axis_p90(summary: PopulationSummary, axes: Mapping[str, np.ndarray]) -> PopulationSummary:
    return PopulationSummary(
        cutpoints=dict(summary.cutpoints),
        axis_p90={name: p90(values) for name, values in axes.items()},
    )


def fraction_where(mask) -> float:
    arr = np.asarray(mask, dtype=bool).ravel()
    if arr.size == 0:
        return 0.0
    return float(np.count_nonzero(arr)) / float(arr.size)


def describe(values) -> dict[str, float]:
    """Median/p10/p90/p99 summary used by reports."""
    return {
        "median": median(values),
        "p10": p10(values),
        "p90": p90(values),
        "p99": p99(values),
    }
