"""Collapse finalized per-cell records into one record per sample."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from nuclearqc.core.types import ALL_AXIS_NAMES, AXIS_COLUMNS, COMPOSITE_COLUMNS, SampleRecord, ScoringResult
from nuclearqc.scoring.regimes import REGIMES, UNCLASSIFIED
from nuclearqc.stats.quantiles import fraction_where, median, p90, p99

TAIL_COLUMNS: tuple[str, ...] = ("trs_ge_0_75", "nps_ge_0_60", "rls_le_0_35")


def metric_columns(result: ScoringResult) -> dict[str, np.ndarray]:
    """Report column name -> per-cell values for every axis and composite."""
    out = {AXIS_COLUMNS[name]: result.axes[name] for name in ALL_AXIS_NAMES}
    out[COMPOSITE_COLUMNS["nps"]] = result.composites.nps
    out[COMPOSITE_COLUMNS["ci"]] = result.composites.ci
    out[COMPOSITE_COLUMNS["rls"]] = result.composites.rls
    return out


def majority_regime(counts: dict[str, int]) -> str:
    """Most frequent regime; the earlier regime in report order wins ties."""
    best, best_count = UNCLASSIFIED, 0
    for tag in REGIMES:
        count = counts.get(tag, 0)
        if count > best_count:
            best, best_count = tag, count
    return best


def aggregate_sample(
    sample: str,
    idx: np.ndarray,
    metrics: dict[str, np.ndarray],
    regimes: Sequence[str],
) -> SampleRecord:
    n = int(idx.size)
    stats = {}
    for name, values in metrics.items():
        subset = values[idx]
        stats[name] = (median(subset), p90(subset), p99(subset))

    labels = [regimes[i] for i in idx.tolist()]
    counts = {tag: labels.count(tag) for tag in REGIMES}
    fractions = {tag: (counts[tag] / n if n > 0 else 0.0) for tag in REGIMES}

    trs = metrics[AXIS_COLUMNS["trs"]][idx]
    nps = metrics[COMPOSITE_COLUMNS["nps"]][idx]
    rls = metrics[COMPOSITE_COLUMNS["rls"]][idx]
    tails = {
        "trs_ge_0_75": fraction_where(trs >= 0.75),
        "nps_ge_0_60": fraction_where(nps >= 0.60),
        "rls_le_0_35": fraction_where(rls <= 0.35),
    }
    return SampleRecord(
        sample=sample,
        n_cells=n,
        stats=stats,
        regime_majority=majority_regime(counts),
        regime_fractions=fractions,
        tail_fractions=tails,
    )


def aggregate_samples(result: ScoringResult) -> list[SampleRecord]:
    """One record per sample label, sorted by label.

    Cells without a sample label are grouped under the empty string.
    """
    n_cells = result.matrix.n_cells
    labels = result.matrix.sample if result.matrix.sample is not None else ("",) * n_cells
    metrics = metric_columns(result)
    groups: dict[str, list[int]] = {}
    for cell, label in enumerate(labels):
        groups.setdefault(str(label), []).append(cell)
    return [
        aggregate_sample(sample, np.asarray(groups[sample], dtype=np.int64), metrics, result.regimes)
        for sample in sorted(groups)
    ]
