"""Independent per-cell quality and confounder flags."""

from __future__ import annotations

from dataclasses import dataclass

from nuclearqc.core.profiles import ScoringProfile
from nuclearqc.core.types import AxisTable, CompositeTable, ExpressionMatrix, PanelScores

LOW_EXPR_GENES = "LOW_EXPR_GENES"
LOW_PANEL_COVERAGE = "LOW_PANEL_COVERAGE"
MISSING_KEY_PANELS = "MISSING_KEY_PANELS"
HIGH_PROGRAM_DOMINANCE = "HIGH_PROGRAM_DOMINANCE"
HIGH_STRESS_BIAS = "HIGH_STRESS_BIAS"
LOW_TF_SIGNAL = "LOW_TF_SIGNAL"
AMBIENT_RNA_RISK = "AMBIENT_RNA_RISK"
CELL_CYCLE_CONFOUNDER = "CELL_CYCLE_CONFOUNDER"
LOW_CONFIDENCE = "LOW_CONFIDENCE"
HIGH_REPLICATION_STRESS = "HIGH_REPLICATION_STRESS"
HR_DOMINANT_REPAIR = "HR_DOMINANT_REPAIR"
NHEJ_DOMINANT_REPAIR = "NHEJ_DOMINANT_REPAIR"
CHROMATIN_HYPERCOMPACT = "CHROMATIN_HYPERCOMPACT"
HIGH_TR_CONFLICT = "HIGH_TR_CONFLICT"
MODEL_LIMITATION = "MODEL_LIMITATION"
BIOLOGICAL_SILENCE = "BIOLOGICAL_SILENCE"

FLAG_ORDER: tuple[str, ...] = (
    LOW_EXPR_GENES,
    LOW_PANEL_COVERAGE,
    MISSING_KEY_PANELS,
    HIGH_PROGRAM_DOMINANCE,
    HIGH_STRESS_BIAS,
    LOW_TF_SIGNAL,
    AMBIENT_RNA_RISK,
    CELL_CYCLE_CONFOUNDER,
    LOW_CONFIDENCE,
    HIGH_REPLICATION_STRESS,
    HR_DOMINANT_REPAIR,
    NHEJ_DOMINANT_REPAIR,
    CHROMATIN_HYPERCOMPACT,
    HIGH_TR_CONFLICT,
    MODEL_LIMITATION,
    BIOLOGICAL_SILENCE,
)


@dataclass(frozen=True)
class FlagInputs:
    expressed_genes: int
    key_coverage: float
    any_panel_unmapped: bool
    sum_tf: float
    ambient_rna_risk: bool
    proliferation_share: float
    confidence: float
    axis_variance: float
    axes: dict[str, float]


def cell_flags(c: FlagInputs, p: ScoringProfile) -> tuple[str, ...]:
    a = c.axes
    raised: set[str] = set()
    if c.expressed_genes < p.min_expr_genes:
        raised.add(LOW_EXPR_GENES)
    if c.key_coverage < p.low_key_coverage:
        raised.add(LOW_PANEL_COVERAGE)
    if c.any_panel_unmapped:
        raised.add(MISSING_KEY_PANELS)
    if a["pds"] > p.high_program_dominance:
        raised.add(HIGH_PROGRAM_DOMINANCE)
    if a["nsai"] > p.high_stress_bias:
        raised.add(HIGH_STRESS_BIAS)
    if c.sum_tf < p.tf_min_sum:
        raised.add(LOW_TF_SIGNAL)
    if c.ambient_rna_risk:
        raised.add(AMBIENT_RNA_RISK)
    if c.proliferation_share > p.cell_cycle_share:
        raised.add(CELL_CYCLE_CONFOUNDER)
    if c.confidence < p.confidence_low and (not p.immune_aware or c.axis_variance < p.low_confidence_axis_variance):
        raised.add(LOW_CONFIDENCE)

    if p.include_ddr:
        if a["rss"] >= p.high_replication_stress:
            raised.add(HIGH_REPLICATION_STRESS)
        if a["drbi"] >= p.hr_dominant_drbi:
            raised.add(HR_DOMINANT_REPAIR)
        if a["drbi"] <= p.nhej_dominant_drbi:
            raised.add(NHEJ_DOMINANT_REPAIR)
        if a["cci"] >= p.hypercompact_cci:
            raised.add(CHROMATIN_HYPERCOMPACT)
        if a["trci"] >= p.high_tr_conflict:
            raised.add(HIGH_TR_CONFLICT)

    model_limitation = p.activation_mode != "absolute" or a["iaa"] > 0.0 or a["dfa"] > 0.0 or a["cea"] > 0.0
    if model_limitation:
        raised.add(MODEL_LIMITATION)
    elif c.confidence >= p.confidence_low:
        raised.add(BIOLOGICAL_SILENCE)

    return tuple(flag for flag in FLAG_ORDER if flag in raised)


def compute_flags(
    matrix: ExpressionMatrix,
    panel_scores: PanelScores,
    axes: AxisTable,
    composites: CompositeTable,
    profile: ScoringProfile,
) -> tuple[tuple[str, ...], ...]:
    ambient = matrix.ambient_rna_risk
    out = []
    for cell in range(axes.n_cells):
        inputs = FlagInputs(
            expressed_genes=int(axes.expressed_genes[cell]),
            key_coverage=float(panel_scores.key_panel_coverage_median[cell]),
            any_panel_unmapped=panel_scores.any_panel_unmapped,
            sum_tf=float(panel_scores.sum_tf[cell]),
            ambient_rna_risk=bool(ambient[cell]) if ambient is not None else False,
            proliferation_share=float(panel_scores.proliferation_share[cell]),
            confidence=float(composites.confidence[cell]),
            axis_variance=float(axes.axis_variance[cell]),
            axes=axes.vector(cell),
        )
        out.append(cell_flags(inputs, profile))
    return tuple(out)


def format_flags(flags: tuple[str, ...]) -> str:
    return ",".join(flags)
