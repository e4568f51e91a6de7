"""Per-cell panel sums, detected-gene counts and coverage."""

from __future__ import annotations

import math

import numpy as np

from nuclearqc.core import kernels
from nuclearqc.core.errors import StructuralInputError
from nuclearqc.core.types import ExpressionMatrix, PanelScores, PanelSet


def _row_fsum(values: np.ndarray) -> np.ndarray:
    arr = np.asarray(values, dtype=float)
    if arr.ndim != 2 or arr.shape[1] == 0:
        return np.zeros(arr.shape[0], dtype=float)
    return np.array([math.fsum(row) for row in arr.tolist()], dtype=float)


def _upper_median_rows(values: np.ndarray) -> np.ndarray:
    arr = np.asarray(values, dtype=float)
    if arr.ndim != 2 or arr.shape[1] == 0:
        return np.zeros(arr.shape[0], dtype=float)
    ordered = np.sort(arr, axis=1, kind="mergesort")
    return ordered[:, arr.shape[1] // 2].astype(float)


def score_panels(
    matrix: ExpressionMatrix,
    panel_set: PanelSet,
    *,
    backend: str | None = None,
) -> PanelScores:
    """Aggregate expression over every mapped panel for every cell."""
    X = matrix.X
    n_cells = matrix.n_cells
    n_panels = len(panel_set.panels)
    n_genes = matrix.n_genes

    panel_sum = np.zeros((n_cells, n_panels), dtype=float)
    panel_detected = np.zeros((n_cells, n_panels), dtype=np.int64)
    panel_coverage = np.zeros((n_cells, n_panels), dtype=float)

    for p, panel in enumerate(panel_set.panels):
        if panel.size_mappable == 0:
            continue
        gene_ids = np.asarray(panel.gene_ids, dtype=np.int64)
        if gene_ids.min() < 0 or gene_ids.max() >= n_genes:
            raise StructuralInputError(
                f"Panel '{panel.id}' references gene ids outside the matrix ({n_genes} genes)."
            )
        sub = X[:, gene_ids].tocsr()
        panel_sum[:, p] = kernels.row_sums(sub, backend=backend)
        panel_detected[:, p] = kernels.row_counts_above(sub, 0.0, backend=backend)
        panel_coverage[:, p] = panel_detected[:, p] / float(panel.size_mappable)

    program_idx = panel_set.indices_for("program")
    tf_idx = panel_set.indices_for("tf", "chromatin")
    stress_idx = panel_set.indices_for("stress")
    dev_idx = panel_set.indices_for("developmental")
    prolif_idx = panel_set.indices_for("proliferation")

    program_sum = _row_fsum(panel_sum[:, program_idx])
    stress_sum = _row_fsum(panel_sum[:, stress_idx])
    dev_sum = _row_fsum(panel_sum[:, dev_idx])
    sum_tf = _row_fsum(panel_sum[:, tf_idx])
    if tf_idx:
        max_tf = np.max(panel_sum[:, tf_idx], axis=1).astype(float)
    else:
        max_tf = np.zeros(n_cells, dtype=float)
    prolif_sum = _row_fsum(panel_sum[:, prolif_idx])

    proliferation_share = np.zeros(n_cells, dtype=float)
    has_program = program_sum > 0.0
    proliferation_share[has_program] = prolif_sum[has_program] / program_sum[has_program]

    # Denominator is the defined panel size, so unmapped genes count as undetected.
    total_defined = sum(a.panel_size_defined for a in panel_set.audits)
    if total_defined > 0:
        panel_nonzero_fraction = panel_detected.sum(axis=1) / float(total_defined)
    else:
        panel_nonzero_fraction = np.zeros(n_cells, dtype=float)

    key_idx = [panel_set.index_of(pid) for pid in panel_set.key_panels]
    key_idx = [i for i in key_idx if i is not None]
    key_panel_coverage_median = _upper_median_rows(panel_coverage[:, key_idx])
    key_panels_missing = any(panel_set.panels[i].size_mappable == 0 for i in key_idx)
    any_panel_unmapped = any(p.size_mappable == 0 for p in panel_set.panels)

    return PanelScores(
        panel_sum=panel_sum,
        panel_detected=panel_detected,
        panel_coverage=panel_coverage,
        program_sum=program_sum,
        stress_sum=stress_sum,
        dev_sum=dev_sum,
        sum_tf=sum_tf,
        max_tf=max_tf,
        proliferation_share=proliferation_share,
        panel_nonzero_fraction=np.asarray(panel_nonzero_fraction, dtype=float),
        key_panel_coverage_median=key_panel_coverage_median,
        key_panels_missing=bool(key_panels_missing),
        any_panel_unmapped=bool(any_panel_unmapped),
    )


def top_program_panel(panel_set: PanelSet, panel_scores: PanelScores, cell: int) -> tuple[str, float]:
    """Largest Program panel of a cell and its share of the program total."""
    program_idx = panel_set.indices_for("program")
    if not program_idx:
        return "", 0.0
    values = panel_scores.panel_sum[cell, program_idx]
    total = math.fsum(values.tolist())
    if total <= 0.0:
        return "", 0.0
    best = program_idx[int(np.argmax(values))]
    return panel_set.panels[best].id, float(panel_scores.panel_sum[cell, best] / total)
