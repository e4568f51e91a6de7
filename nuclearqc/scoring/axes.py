"""Per-cell axis metrics.

Scoring runs in two passes over the cells. ``collect_raw_inputs`` reads the
panel sums that need a population-relative transform; the caller turns those
into a ``PopulationSummary`` once, and ``compute_axes`` then finalizes every
cell against that summary. Within a cell the axes are evaluated in a fixed
order because later axes consume earlier ones (``trs`` reads ``tbi``, ``rci``
and ``pds``; the DNA-damage-response metrics read ``tbi``).
"""

from __future__ import annotations

import math

import numpy as np

from nuclearqc.core import kernels
from nuclearqc.core.profiles import ScoringProfile
from nuclearqc.core.types import (
    ALL_AXIS_NAMES,
    AXIS_NAMES,
    AxisTable,
    ExpressionMatrix,
    PanelScores,
    PanelSet,
    PopulationSummary,
)
from nuclearqc.core.utils import clip01, population_variance, rescale01
from nuclearqc.panels.defs import DDR_INPUT_PANELS, IMMUNE_AXIS_PANELS
from nuclearqc.scoring.ddr import compute_ddr
from nuclearqc.stats.quantiles import relative_activation

RELATIVE_INPUTS: tuple[str, ...] = tuple(IMMUNE_AXIS_PANELS.values()) + DDR_INPUT_PANELS


def collect_raw_inputs(panel_set: PanelSet, panel_scores: PanelScores) -> dict[str, np.ndarray]:
    """Panel sums that are transformed relative to the population, keyed by panel id.

    A panel absent from the table contributes a zero vector.
    """
    n_cells = panel_scores.panel_sum.shape[0]
    out: dict[str, np.ndarray] = {}
    for panel_id in RELATIVE_INPUTS:
        idx = panel_set.index_of(panel_id)
        if idx is None:
            out[panel_id] = np.zeros(n_cells, dtype=float)
        else:
            out[panel_id] = panel_scores.panel_sum[:, idx].astype(float, copy=True)
    return out


def activate(raw: float, rel: float, mode: str) -> float:
    if mode == "absolute":
        return clip01(raw)
    if mode == "relative":
        return float(rel)
    return clip01(0.5 * clip01(raw) + 0.5 * rel)


def positive_entropy_norm(values) -> tuple[float, float]:
    """``(entropy, normalized entropy)`` over positive values; both 0 with fewer than two."""
    arr = np.asarray(values, dtype=float).ravel()
    if kernels.count_positive(arr) < 2:
        return 0.0, 0.0
    return kernels.entropy(arr)


def rci_score(
    values,
    tf_min_sum: float,
    *,
    total: float | None = None,
    peak: float | None = None,
) -> tuple[float, float, bool]:
    """Regulatory complexity over TF then chromatin panel sums.

    ``total`` and ``peak`` take the precomputed TF sum and largest TF panel
    sum; both are derived from ``values`` when omitted.

    Returns ``(rci, normalized entropy, low_tf_signal)``.
    """
    arr = np.asarray(values, dtype=float).ravel()
    tf_total = kernels.exact_sum(arr) if total is None else float(total)
    if tf_total < tf_min_sum:
        return 0.0, 0.0, True
    _, h_norm = kernels.entropy(arr)
    tf_peak = kernels.max_or_zero(arr) if peak is None else float(peak)
    anti_dominance = 1.0 - tf_peak / tf_total if tf_total > 0.0 else 0.0
    return 0.5 * h_norm + 0.5 * anti_dominance, h_norm, False


def pds_score(values, program_min_sum: float) -> tuple[float, float]:
    """Program dominance from the top-1 and top-3 shares of positive program sums.

    Returns ``(pds, max_program_share)``.
    """
    arr = np.asarray(values, dtype=float).ravel()
    total = kernels.exact_sum(arr)
    if total < program_min_sum or total == 0.0:
        return 0.0, 0.0
    top = sorted((v for v in arr.tolist() if v > 0.0), reverse=True)[:3]
    max_share = top[0] / total if top else 0.0
    top3_share = math.fsum(top) / total
    return 0.7 * max_share + 0.3 * top3_share, max_share


def nsai_score(
    stress: float,
    dev: float,
    program: float,
    program_min_sum: float,
    stress_boost: float,
) -> tuple[float, float, float]:
    """Returns ``(nsai, stress_ratio, dev_ratio)``; all zero below the program minimum."""
    if program < program_min_sum or program == 0.0:
        return 0.0, 0.0, 0.0
    stress_ratio = stress / program
    dev_ratio = dev / program
    return clip01(stress_ratio - dev_ratio + stress_boost), stress_ratio, dev_ratio


def compute_axes(
    matrix: ExpressionMatrix,
    panel_set: PanelSet,
    panel_scores: PanelScores,
    profile: ScoringProfile,
    population: PopulationSummary,
    *,
    raw_inputs: dict[str, np.ndarray] | None = None,
    backend: str | None = None,
) -> AxisTable:
    """Finalize the twelve axes for every cell."""
    n_cells = matrix.n_cells
    raw = collect_raw_inputs(panel_set, panel_scores) if raw_inputs is None else raw_inputs
    rel = {
        key: relative_activation(values, population.cutpoints[key])
        for key, values in raw.items()
    }

    expressed = kernels.row_counts_above(matrix.X, profile.expr_min, backend=backend)
    gene_h, gene_h_norm = kernels.row_entropies(matrix.X, backend=backend)
    n_genes_mappable = float(matrix.n_genes)

    program_idx = panel_set.indices_for("program")
    tf_idx = panel_set.indices_for("tf", "chromatin")
    panel_sum = panel_scores.panel_sum

    axes = {name: np.zeros(n_cells, dtype=float) for name in AXIS_NAMES}
    panel_entropy = np.zeros(n_cells, dtype=float)
    max_program_share = np.zeros(n_cells, dtype=float)
    tf_entropy = np.zeros(n_cells, dtype=float)
    stress_ratio = np.zeros(n_cells, dtype=float)
    dev_ratio = np.zeros(n_cells, dtype=float)
    low_tf_signal = np.zeros(n_cells, dtype=bool)

    for cell in range(n_cells):
        frac = float(expressed[cell]) / n_genes_mappable if n_genes_mappable > 0 else 0.0
        frac_norm = rescale01(frac, profile.frac_rescale_min, profile.frac_rescale_max)

        program_values = panel_sum[cell, program_idx]
        p_h, p_h_norm = positive_entropy_norm(program_values)
        panel_entropy[cell] = p_h

        tbi = (
            profile.tbi_w1 * frac_norm
            + profile.tbi_w2 * float(gene_h_norm[cell])
            + profile.tbi_w3 * p_h_norm
        )
        rci, tf_entropy[cell], low_tf_signal[cell] = rci_score(
            panel_sum[cell, tf_idx],
            profile.tf_min_sum,
            total=float(panel_scores.sum_tf[cell]),
            peak=float(panel_scores.max_tf[cell]),
        )
        pds, max_program_share[cell] = pds_score(program_values, profile.program_min_sum)
        trs = clip01(profile.trs_a * (1.0 - tbi) + profile.trs_b * (1.0 - rci) + profile.trs_c * pds)
        nsai, stress_ratio[cell], dev_ratio[cell] = nsai_score(
            float(panel_scores.stress_sum[cell]),
            float(panel_scores.dev_sum[cell]),
            float(panel_scores.program_sum[cell]),
            profile.program_min_sum,
            profile.stress_boost,
        )

        axes["tbi"][cell] = clip01(tbi)
        axes["rci"][cell] = clip01(rci)
        axes["pds"][cell] = clip01(pds)
        axes["trs"][cell] = trs
        axes["nsai"][cell] = nsai
        for axis, panel_id in IMMUNE_AXIS_PANELS.items():
            axes[axis][cell] = activate(raw[panel_id][cell], rel[panel_id][cell], profile.activation_mode)

    axes.update(compute_ddr({key: rel[key] for key in DDR_INPUT_PANELS}, axes["tbi"]))

    axis_variance = np.array(
        [population_variance([float(axes[name][cell]) for name in ALL_AXIS_NAMES]) for cell in range(n_cells)],
        dtype=float,
    )

    return AxisTable(
        axes={name: axes[name] for name in ALL_AXIS_NAMES},
        expressed_genes=np.asarray(expressed, dtype=np.int64),
        gene_entropy=np.asarray(gene_h, dtype=float),
        panel_entropy=panel_entropy,
        max_program_share=max_program_share,
        tf_entropy=tf_entropy,
        stress_ratio=stress_ratio,
        dev_ratio=dev_ratio,
        raw_activation={axis: raw[panel_id] for axis, panel_id in IMMUNE_AXIS_PANELS.items()},
        axis_variance=axis_variance,
        low_tf_signal=low_tf_signal,
    )
