"""Report files written from a ScoringResult.

- ``nuclearqc.tsv``: one row per cell (sorted by barcode) or per sample.
- ``summary.json``: run parameters and population summaries.
- ``panels_report.tsv``: panel audit with coverage and sum quantiles.
- ``report.txt``: short plain-text interpretation.
"""

from __future__ import annotations

from collections import Counter
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from nuclearqc._version import __version__
from nuclearqc.core import kernels
from nuclearqc.core.types import AXIS_COLUMNS, AXIS_NAMES, COMPOSITE_COLUMNS, DDR_NAMES, ScoringResult
from nuclearqc.panels.aggregate import top_program_panel
from nuclearqc.pipeline.io import ensure_dir, format_float, write_json, write_text
from nuclearqc.scoring.composites import format_drivers
from nuclearqc.scoring.flags import (
    AMBIENT_RNA_RISK,
    CELL_CYCLE_CONFOUNDER,
    LOW_CONFIDENCE,
    LOW_EXPR_GENES,
    format_flags,
)
from nuclearqc.scoring.regimes import REGIMES, regime_counts
from nuclearqc.scoring.sample import TAIL_COLUMNS, aggregate_samples, metric_columns
from nuclearqc.stats.quantiles import describe, fraction_where, median, p10, p90, p99

TOOL_NAME = "nuclearqc"
FLOAT_FORMAT = "%.6f"
CONFIDENCE_PARTS: tuple[str, ...] = ("panel_coverage", "expr_support", "axis_structure", "consistency")

CELL_COLUMNS: list[str] = (
    ["barcode", "sample", "condition", "species", "libsize", "nnz", "expressed_genes", "confidence"]
    + [AXIS_COLUMNS[name] for name in AXIS_NAMES]
    + [AXIS_COLUMNS[name] for name in DDR_NAMES]
    + list(COMPOSITE_COLUMNS.values())
    + [
        "regime",
        "flags",
        "drivers_nps",
        "drivers_ci",
        "drivers_rls",
        "top_program_panel",
        "top_program_share",
        "activation_mode",
    ]
)


def _write_tsv(df: pd.DataFrame, path: Path) -> None:
    df.to_csv(path, sep="\t", index=False, float_format=FLOAT_FORMAT)


def cell_table(result: ScoringResult) -> pd.DataFrame:
    matrix = result.matrix
    n_cells = matrix.n_cells
    empty = ("",) * n_cells
    top = [top_program_panel(result.panels, result.panel_scores, cell) for cell in range(n_cells)]
    data: dict[str, Any] = {
        "barcode": list(matrix.barcodes),
        "sample": list(matrix.sample or empty),
        "condition": list(matrix.condition or empty),
        "species": [matrix.species] * n_cells,
        "libsize": np.asarray(matrix.libsize, dtype=float),
        "nnz": np.asarray(matrix.nnz, dtype=np.int64),
        "expressed_genes": np.asarray(result.axes.expressed_genes, dtype=np.int64),
        "confidence": result.composites.confidence,
    }
    for column, values in metric_columns(result).items():
        data[column] = values
    data["regime"] = list(result.regimes)
    data["flags"] = [format_flags(f) for f in result.flags]
    for name in ("nps", "ci", "rls"):
        data[f"drivers_{name}"] = [format_drivers(d) for d in result.composites.drivers[name]]
    data["top_program_panel"] = [panel for panel, _ in top]
    data["top_program_share"] = np.asarray([share for _, share in top], dtype=float)
    data["activation_mode"] = [result.profile.activation_mode] * n_cells

    df = pd.DataFrame(data, columns=CELL_COLUMNS)
    return df.sort_values("barcode", kind="mergesort").reset_index(drop=True)


def sample_table(result: ScoringResult) -> pd.DataFrame:
    rows = []
    for record in aggregate_samples(result):
        row: dict[str, Any] = {"sample": record.sample, "n_cells": record.n_cells}
        for name, (med, q90, q99) in record.stats.items():
            row[f"{name}_median"] = med
            row[f"{name}_p90"] = q90
            row[f"{name}_p99"] = q99
        row["regime_majority"] = record.regime_majority
        for tag in REGIMES:
            row[f"regime_frac_{tag}"] = record.regime_fractions[tag]
        for column in TAIL_COLUMNS:
            row[column] = record.tail_fractions[column]
        rows.append(row)
    return pd.DataFrame(rows)


def panels_table(result: ScoringResult) -> pd.DataFrame:
    rows = []
    scores = result.panel_scores
    for idx, (panel, audit) in enumerate(zip(result.panels.panels, result.panels.audits)):
        coverage = scores.panel_coverage[:, idx]
        sums = scores.panel_sum[:, idx]
        rows.append(
            {
                "panel_id": panel.id,
                "panel_name": panel.name,
                "panel_group": panel.group,
                "panel_size_defined": audit.panel_size_defined,
                "panel_size_mappable": audit.panel_size_mappable,
                "missing_genes": ",".join(audit.missing_genes),
                "coverage_median": median(coverage),
                "coverage_p10": p10(coverage),
                "sum_median": median(sums),
                "sum_p90": p90(sums),
                "sum_p99": p99(sums),
            }
        )
    return pd.DataFrame(rows)


def top_rls_contributors(result: ScoringResult, k: int = 3) -> list[str]:
    counts: Counter[str] = Counter()
    for drivers in result.composites.drivers["rls"]:
        counts.update(name for name, _ in drivers)
    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [name for name, _ in ordered[:k]]


def _flag_fraction(result: ScoringResult, flag: str) -> float:
    return fraction_where([flag in flags for flags in result.flags])


def build_summary(result: ScoringResult, *, mode: str = "cell", run_config: Any = None) -> dict[str, Any]:
    profile = result.profile
    matrix = result.matrix
    n_cells = matrix.n_cells
    counts = regime_counts(result.regimes)
    metrics = metric_columns(result)
    breakdown = result.composites.confidence_breakdown
    return {
        "tool": {"name": TOOL_NAME, "version": __version__, "kernel_backend": kernels.backend_name()},
        "run": {
            "resolution": mode,
            "profile": profile.name,
            "scoring_mode": profile.scoring_mode,
            "activation_mode": profile.activation_mode,
            "include_ddr": profile.include_ddr,
            "normalize": matrix.normalized,
            "scale": 10_000.0 if matrix.normalized else None,
            "log1p": matrix.normalized,
            "strict_nuclear": bool(getattr(run_config, "strict_nuclear", False)),
        },
        "input": {
            "n_cells": n_cells,
            "n_genes_raw": matrix.n_features_raw,
            "n_genes_mappable": matrix.n_genes,
            "species": matrix.species,
        },
        "confidence": {
            "median": median(result.composites.confidence),
            "p10": p10(result.composites.confidence),
            "breakdown_median": {
                part: median(breakdown[:, i]) if n_cells else 0.0 for i, part in enumerate(CONFIDENCE_PARTS)
            },
        },
        "low_confidence_fraction": _flag_fraction(result, LOW_CONFIDENCE),
        "low_expr_fraction": _flag_fraction(result, LOW_EXPR_GENES),
        "metrics": {name: describe(values) for name, values in metrics.items()},
        "regimes": {
            tag: {"count": counts[tag], "fraction": counts[tag] / n_cells if n_cells else 0.0} for tag in REGIMES
        },
        "tails": {
            "trs_ge_0_75": fraction_where(result.axes["trs"] >= 0.75),
            "nps_ge_0_60": fraction_where(result.composites.nps >= 0.60),
            "rls_le_0_35": fraction_where(result.composites.rls <= 0.35),
        },
        "missing_genes_by_panel": {a.panel_id: list(a.missing_genes) for a in result.panels.audits},
        "rls_contributors_top": top_rls_contributors(result),
    }


def _plasticity_statement(nps: float, ci: float) -> str:
    if nps >= 0.60 and ci <= 0.40:
        return "Plasticity signal is high with low commitment."
    if ci >= 0.60:
        return "Commitment signal is high with reduced plasticity."
    return "Plasticity and commitment are balanced."


def _stress_statement(nsai: float) -> str:
    if nsai >= 0.60:
        return "Stress adaptation signal is high."
    if nsai <= 0.40:
        return "Stress adaptation signal is low."
    return "Stress adaptation signal is moderate."


def _reversibility_statement(rls: float, tail_fraction: float) -> str:
    if rls >= 0.60:
        return "likely reversible"
    if rls >= 0.40:
        return "partially reversible"
    if rls >= 0.20 and tail_fraction > 0.10:
        return "majority low-RLS with adaptive tails"
    return "low reversibility signal"


OVERALL_STATE: dict[str, str] = {
    "PlasticAdaptive": "plastic",
    "StressAdaptive": "adaptive",
    "CommittedState": "committed",
    "RigidDegenerative": "rigid",
    "TranscriptionallyCollapsed": "rigid",
}


def render_report_text(result: ScoringResult, summary: dict[str, Any]) -> str:
    profile = result.profile
    regimes = sorted(
        ((tag, stats["fraction"]) for tag, stats in summary["regimes"].items()),
        key=lambda item: (-item[1], item[0]),
    )
    dominant = ", ".join(f"{tag} ({format_float(frac)})" for tag, frac in regimes[:2])
    top = regimes[0][0] if regimes else "Unclassified"
    nps_med = median(result.composites.nps)
    ci_med = median(result.composites.ci)
    nsai_med = median(result.axes["nsai"])
    rls_med = median(result.composites.rls)
    confidence_model = "immune-calibrated additive" if profile.immune_aware else "legacy multiplicative"

    lines = [
        "Nuclear State & Transcriptional Plasticity Report",
        "=" * 49,
        "",
        "1. Overall nuclear state",
        f"Nuclear scoring mode: {profile.scoring_mode}",
        f"Axis activation mode: {profile.activation_mode}",
        f"Confidence model: {confidence_model}",
        f"Dominant regimes: {dominant}",
        f"Overall state: {OVERALL_STATE.get(top, 'mixed')}",
        "",
        "2. Plasticity vs commitment",
        f"NPS median: {format_float(nps_med)}",
        f"CI median: {format_float(ci_med)}",
        _plasticity_statement(nps_med, ci_med),
        "",
        "3. Stress adaptation",
        f"NSAI median: {format_float(nsai_med)}",
        _stress_statement(nsai_med),
        "",
        "4. Reversibility outlook",
        f"RLS median: {format_float(rls_med)}",
    ]
    if summary["rls_contributors_top"]:
        lines.append(f"RLS contributors: {', '.join(summary['rls_contributors_top'])}")
    lines.append(f"Conclusion: {_reversibility_statement(rls_med, summary['tails']['rls_le_0_35'])}")
    lines += [
        "",
        "5. Quality and caveats",
        f"LOW_CONFIDENCE fraction: {format_float(summary['low_confidence_fraction'])}",
        f"LOW_EXPR_GENES fraction: {format_float(summary['low_expr_fraction'])}",
        f"AMBIENT_RNA_RISK fraction: {format_float(_flag_fraction(result, AMBIENT_RNA_RISK))}",
        f"CELL_CYCLE_CONFOUNDER fraction: {format_float(_flag_fraction(result, CELL_CYCLE_CONFOUNDER))}",
    ]
    if profile.activation_mode != "absolute":
        lines.append("Note: Immune-like scRNA detected; using relative nuclear scoring.")
    if any(p90(result.axes[name]) >= 0.8 for name in ("iaa", "dfa", "cea")):
        lines.append(
            "High IAA/DFA/CEA tails indicate an immune activation subpopulation; consider cell-type gating."
        )
    parts = summary["confidence"]["breakdown_median"]
    lines.append(
        "Confidence breakdown (median): "
        + ", ".join(f"{part}={format_float(parts[part])}" for part in CONFIDENCE_PARTS)
    )
    return "\n".join(lines) + "\n"


def write_reports(
    result: ScoringResult,
    out_dir: str | Path,
    *,
    mode: str = "cell",
    run_config: Any = None,
) -> dict[str, Path]:
    """Write every report file and return their paths keyed by short name."""
    root = Path(out_dir)
    ensure_dir(root)
    paths = {
        "table": root / "nuclearqc.tsv",
        "summary": root / "summary.json",
        "panels": root / "panels_report.tsv",
        "report": root / "report.txt",
    }
    table = sample_table(result) if mode == "sample" else cell_table(result)
    _write_tsv(table, paths["table"])
    summary = build_summary(result, mode=mode, run_config=run_config)
    write_json(paths["summary"], summary)
    _write_tsv(panels_table(result), paths["panels"])
    write_text(paths["report"], render_report_text(result, summary))
    return paths
