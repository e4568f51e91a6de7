"""Per-cell confidence in the axis and composite scores."""

from __future__ import annotations

import math

import numpy as np

from nuclearqc.core.profiles import ScoringProfile
from nuclearqc.core.types import AxisTable, ExpressionMatrix, PanelScores
from nuclearqc.core.utils import clip01


def axis_structure(axis_variance: float, profile: ScoringProfile) -> float:
    return clip01(axis_variance / profile.axis_variance_denominator)


def consistency(tbi: float, rci: float, pds: float, trs: float, profile: ScoringProfile) -> float:
    """1 minus the summed over-commitment of axis pairs that should not both be high."""
    penalty = (
        max(trs + tbi - profile.consistency_trs_tbi_ceiling, 0.0)
        + max(pds + tbi - profile.consistency_pds_tbi_ceiling, 0.0)
        + max(trs + rci - profile.consistency_trs_rci_ceiling, 0.0)
    )
    return clip01(1.0 - penalty)


def confidence_immune_aware(
    *,
    key_coverage: float | None,
    key_panels_missing: bool,
    nonzero_fraction: float | None,
    expr_frac: float,
    axis_variance: float,
    tbi: float,
    rci: float,
    pds: float,
    trs: float,
    profile: ScoringProfile,
) -> tuple[float, tuple[float, float, float, float]]:
    """Weighted coverage, expression support, axis structure and consistency.

    ``key_coverage`` or ``nonzero_fraction`` may be None when the caller has no
    panel audit; a missing nonzero fraction falls back to ``expr_frac``.
    """
    coverage_score = 0.0 if key_panels_missing else clip01((key_coverage or 0.0) / profile.key_coverage_denominator)
    nonzero = expr_frac if nonzero_fraction is None else nonzero_fraction
    support_score = clip01(math.sqrt(max(nonzero, 0.0)))
    structure_score = axis_structure(axis_variance, profile)
    consistency_score = consistency(tbi, rci, pds, trs, profile)

    conf = clip01(
        profile.confidence_w_coverage * coverage_score
        + profile.confidence_w_support * support_score
        + profile.confidence_w_structure * structure_score
        + profile.confidence_w_consistency * consistency_score
    )
    if key_coverage is None and nonzero_fraction is None and structure_score == 0.0:
        conf = 0.0
    elif not key_panels_missing and structure_score >= profile.confidence_floor_structure:
        conf = max(conf, profile.confidence_floor)
    return conf, (coverage_score, support_score, structure_score, consistency_score)


def confidence_strict_bulk(
    *,
    key_coverage: float,
    expr_frac: float,
    ambient_rna_risk: bool,
    profile: ScoringProfile,
) -> tuple[float, tuple[float, float, float, float]]:
    ambient = 1.0 if ambient_rna_risk else 0.0
    a = profile.legacy_w_coverage * key_coverage
    b = profile.legacy_w_expression * expr_frac
    c = profile.legacy_w_ambient * (1.0 - ambient)
    return clip01(a * b * c), (a, b, c, 0.0)


def compute_confidence(
    matrix: ExpressionMatrix,
    panel_scores: PanelScores,
    axes: AxisTable,
    profile: ScoringProfile,
) -> tuple[np.ndarray, np.ndarray]:
    """Confidence and its four-part breakdown for every cell."""
    n_cells = axes.n_cells
    n_genes = max(matrix.n_genes, 1)
    ambient = matrix.ambient_rna_risk
    confidence = np.zeros(n_cells, dtype=float)
    breakdown = np.zeros((n_cells, 4), dtype=float)

    for cell in range(n_cells):
        expr_frac = clip01(float(axes.expressed_genes[cell]) / float(n_genes))
        key_cov = float(panel_scores.key_panel_coverage_median[cell])
        if profile.immune_aware:
            conf, parts = confidence_immune_aware(
                key_coverage=key_cov,
                key_panels_missing=panel_scores.key_panels_missing,
                nonzero_fraction=float(panel_scores.panel_nonzero_fraction[cell]),
                expr_frac=expr_frac,
                axis_variance=float(axes.axis_variance[cell]),
                tbi=float(axes["tbi"][cell]),
                rci=float(axes["rci"][cell]),
                pds=float(axes["pds"][cell]),
                trs=float(axes["trs"][cell]),
                profile=profile,
            )
        else:
            conf, parts = confidence_strict_bulk(
                key_coverage=key_cov,
                expr_frac=expr_frac,
                ambient_rna_risk=bool(ambient[cell]) if ambient is not None else False,
                profile=profile,
            )
        confidence[cell] = conf
        breakdown[cell, :] = parts
    return confidence, breakdown
