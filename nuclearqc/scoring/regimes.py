"""Ordered regime rules.

Rules are evaluated top to bottom and the first match wins; reordering
``REGIME_RULES`` changes the outcome for cells that satisfy several rules.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import numpy as np

from nuclearqc.core.profiles import ScoringProfile
from nuclearqc.core.types import AxisTable, CompositeTable, PanelScores

PLASTIC_ADAPTIVE = "PlasticAdaptive"
STRESS_ADAPTIVE = "StressAdaptive"
COMMITTED_STATE = "CommittedState"
RIGID_DEGENERATIVE = "RigidDegenerative"
TRANSCRIPTIONALLY_COLLAPSED = "TranscriptionallyCollapsed"
TRANSIENT_ADAPTIVE = "TransientAdaptive"
UNCLASSIFIED = "Unclassified"

# Report order.
REGIMES: tuple[str, ...] = (
    PLASTIC_ADAPTIVE,
    STRESS_ADAPTIVE,
    COMMITTED_STATE,
    RIGID_DEGENERATIVE,
    TRANSCRIPTIONALLY_COLLAPSED,
    TRANSIENT_ADAPTIVE,
    UNCLASSIFIED,
)


@dataclass(frozen=True)
class RegimeInputs:
    """Values of one cell read by the regime rules."""

    expressed_genes: int
    gene_entropy: float
    program_sum: float
    tbi: float
    rci: float
    pds: float
    trs: float
    nsai: float
    nps: float
    iaa: float = 0.0
    dfa: float = 0.0


def is_collapsed(c: RegimeInputs, p: ScoringProfile) -> bool:
    return c.expressed_genes < p.min_expr_genes or (
        c.tbi < p.collapsed_tbi_max
        and c.gene_entropy < p.collapsed_entropy_max
        and c.program_sum < p.program_min_sum
    )


def is_rigid_degenerative(c: RegimeInputs, p: ScoringProfile) -> bool:
    return c.trs >= p.rigid_trs_min and c.nsai >= p.rigid_nsai_min and c.rci <= p.rigid_rci_max


def is_committed(c: RegimeInputs, p: ScoringProfile) -> bool:
    return (
        c.trs >= p.committed_trs_min
        and c.pds >= p.committed_pds_min
        and c.tbi <= p.committed_tbi_max
        and c.nsai < p.committed_nsai_max
    )


def is_stress_adaptive(c: RegimeInputs, p: ScoringProfile) -> bool:
    return (
        c.nsai >= p.stress_nsai_min
        and c.rci >= p.stress_rci_min
        and (c.tbi >= p.stress_tbi_min or c.pds <= p.stress_pds_max)
    )


def is_plastic(c: RegimeInputs, p: ScoringProfile) -> bool:
    return c.nps >= p.plastic_nps_min and c.trs <= p.plastic_trs_max and c.pds <= p.plastic_pds_max


def is_transient(c: RegimeInputs, p: ScoringProfile) -> bool:
    if not p.immune_aware:
        return False
    moderate = c.nps >= p.transient_nps_min or c.iaa >= p.transient_iaa_min or c.dfa >= p.transient_dfa_min
    return moderate and c.trs <= p.transient_trs_max and c.pds <= p.transient_pds_max


REGIME_RULES: tuple[tuple[Callable[[RegimeInputs, ScoringProfile], bool], str], ...] = (
    (is_collapsed, TRANSCRIPTIONALLY_COLLAPSED),
    (is_rigid_degenerative, RIGID_DEGENERATIVE),
    (is_committed, COMMITTED_STATE),
    (is_stress_adaptive, STRESS_ADAPTIVE),
    (is_plastic, PLASTIC_ADAPTIVE),
    (is_transient, TRANSIENT_ADAPTIVE),
)


def classify_cell(inputs: RegimeInputs, profile: ScoringProfile) -> str:
    for predicate, tag in REGIME_RULES:
        if predicate(inputs, profile):
            return tag
    return UNCLASSIFIED


def regime_inputs(
    axes: AxisTable,
    composites: CompositeTable,
    panel_scores: PanelScores,
    cell: int,
) -> RegimeInputs:
    return RegimeInputs(
        expressed_genes=int(axes.expressed_genes[cell]),
        gene_entropy=float(axes.gene_entropy[cell]),
        program_sum=float(panel_scores.program_sum[cell]),
        tbi=float(axes["tbi"][cell]),
        rci=float(axes["rci"][cell]),
        pds=float(axes["pds"][cell]),
        trs=float(axes["trs"][cell]),
        nsai=float(axes["nsai"][cell]),
        nps=float(composites.nps[cell]),
        iaa=float(axes["iaa"][cell]),
        dfa=float(axes["dfa"][cell]),
    )


def classify_cells(
    axes: AxisTable,
    composites: CompositeTable,
    panel_scores: PanelScores,
    profile: ScoringProfile,
) -> tuple[str, ...]:
    return tuple(
        classify_cell(regime_inputs(axes, composites, panel_scores, cell), profile)
        for cell in range(axes.n_cells)
    )


def regime_counts(regimes) -> dict[str, int]:
    labels = np.asarray(list(regimes), dtype=object)
    return {tag: int(np.count_nonzero(labels == tag)) for tag in REGIMES}
