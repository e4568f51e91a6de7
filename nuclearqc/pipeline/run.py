"""End-to-end scoring: expression matrix -> per-cell records -> report files."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

from nuclearqc.core.profiles import ScoringProfile, resolve_profile
from nuclearqc.core.types import ExpressionMatrix, PanelDef, ScoringResult
from nuclearqc.panels.aggregate import score_panels
from nuclearqc.panels.defs import IMMUNE_AXIS_PANELS
from nuclearqc.panels.mapping import load_panels
from nuclearqc.scoring.axes import collect_raw_inputs, compute_axes
from nuclearqc.scoring.composites import RLS_FLOOR_AXES, compute_composites
from nuclearqc.scoring.confidence import compute_confidence
from nuclearqc.scoring.flags import compute_flags
from nuclearqc.scoring.regimes import classify_cells
from nuclearqc.stats.quantiles import build_population_summary, p90, with_axis_p90

RUN_MODES: tuple[str, ...] = ("cell", "sample")
IMMUNE_LIKE_P90 = 0.5


@dataclass(frozen=True)
class RunConfig:
    """Resolved options of one pipeline run."""

    profile: str = "immune_v1"
    strict_nuclear: bool = False
    mode: str = "cell"
    normalize: bool = False
    profile_overrides: dict[str, Any] = field(default_factory=dict)
    key_panels: tuple[str, ...] | None = None
    plots: bool = False
    sample_col: str = "sample"


def immune_like_detected(result: ScoringResult) -> bool:
    """An immune panel maps at least one gene and an immune-program axis has a p90 above 0.5."""
    has_immune = any(
        panel.size_mappable > 0
        for panel in result.panels.panels
        if panel.id in ("immune_activation", "clonal_engagement")
    )
    return has_immune and any(p90(result.axes[axis]) > IMMUNE_LIKE_P90 for axis in IMMUNE_AXIS_PANELS)


def log_scoring_mode(result: ScoringResult, logger: logging.Logger) -> None:
    profile = result.profile
    if profile.immune_aware:
        logger.info("Immune-aware nuclear scoring enabled (profile %s)", profile.name)
        if immune_like_detected(result):
            logger.info("Immune-like scRNA detected; relative nuclear scoring in effect")
    else:
        logger.warning("Strict nuclear mode enabled; immune dynamics may be underdetected")
    logger.info("Activation mode: %s", profile.activation_mode)


def log_panel_audits(result: ScoringResult, logger: logging.Logger) -> None:
    for audit in result.panels.audits:
        if audit.missing_genes:
            logger.info(
                "Panel %s: %d/%d genes mappable; missing %s",
                audit.panel_id,
                audit.panel_size_mappable,
                audit.panel_size_defined,
                ",".join(audit.missing_genes),
            )


def score_matrix(
    matrix: ExpressionMatrix,
    profile: ScoringProfile,
    *,
    panels: Sequence[PanelDef] | None = None,
    key_panels: Iterable[str] | None = None,
    backend: str | None = None,
    logger: logging.Logger | None = None,
) -> ScoringResult:
    """Score every cell of ``matrix`` under ``profile``.

    The population summary is built once from the raw panel sums before any
    cell is finalized, then extended with the p90 of the finalized iaa, dfa
    and nsai for the rls floor rule.
    """
    log = logger if logger is not None else logging.getLogger(__name__)
    panel_set = load_panels(matrix.gene_index, panels=panels, key_panels=key_panels)
    panel_scores = score_panels(matrix, panel_set, backend=backend)

    raw = collect_raw_inputs(panel_set, panel_scores)
    population = build_population_summary(raw, q_low=profile.rel_p70, q_high=profile.rel_p85)
    axes = compute_axes(
        matrix,
        panel_set,
        panel_scores,
        profile,
        population,
        raw_inputs=raw,
        backend=backend,
    )
    population = with_axis_p90(population, {name: axes[name] for name in RLS_FLOOR_AXES})

    confidence, breakdown = compute_confidence(matrix, panel_scores, axes, profile)
    composites = compute_composites(axes, confidence, breakdown, population, profile)
    regimes = classify_cells(axes, composites, panel_scores, profile)
    flags = compute_flags(matrix, panel_scores, axes, composites, profile)

    result = ScoringResult(
        matrix=matrix,
        panels=panel_set,
        panel_scores=panel_scores,
        population=population,
        axes=axes,
        composites=composites,
        regimes=regimes,
        flags=flags,
        profile=profile,
        metadata={"n_cells": matrix.n_cells, "species": matrix.species},
    )
    log_scoring_mode(result, log)
    log_panel_audits(result, log)
    return result


def resolve_run_config(
    config: Mapping[str, Any] | None = None,
    **cli_values: Any,
) -> RunConfig:
    """Merge a JSON config with CLI values; CLI values that are not None win."""
    merged: dict[str, Any] = dict(config or {})
    unknown = sorted(set(merged) - set(RunConfig.__dataclass_fields__))
    if unknown:
        raise ValueError(f"Unknown run config keys: {', '.join(unknown)}.")
    for key, value in cli_values.items():
        if value is not None:
            merged[key] = value

    mode = str(merged.get("mode", "cell")).strip().lower()
    if mode not in RUN_MODES:
        raise ValueError(f"mode must be one of {', '.join(RUN_MODES)}; got '{mode}'.")
    overrides = merged.get("profile_overrides") or {}
    if not isinstance(overrides, dict):
        raise ValueError("profile_overrides must be a JSON object.")
    key_panels = merged.get("key_panels")
    if key_panels is not None and not isinstance(key_panels, (list, tuple)):
        raise ValueError("key_panels must be a list of panel ids.")

    return RunConfig(
        profile=str(merged.get("profile", "immune_v1")),
        strict_nuclear=bool(merged.get("strict_nuclear", False)),
        mode=mode,
        normalize=bool(merged.get("normalize", False)),
        profile_overrides=dict(overrides),
        key_panels=tuple(str(k) for k in key_panels) if key_panels is not None else None,
        plots=bool(merged.get("plots", False)),
        sample_col=str(merged.get("sample_col", "sample")),
    )


def run_pipeline(
    input_path: str | Path,
    out_dir: str | Path,
    config: RunConfig,
    *,
    logger: logging.Logger,
    backend: str | None = None,
) -> dict[str, Path]:
    """Read input, score it and write every report into ``out_dir``.

    Profile problems surface before the input is read; nothing is written to
    ``out_dir`` unless scoring completes.
    """
    from nuclearqc.io import from_anndata, read_input
    from nuclearqc.pipeline.report import write_reports

    profile = resolve_profile(
        config.profile,
        config.profile_overrides,
        strict_nuclear=config.strict_nuclear,
    )
    logger.info("Profile: %s (scoring mode %s)", profile.name, profile.scoring_mode)

    adata = read_input(input_path)
    logger.info("Loaded %d cells x %d features from %s", adata.n_obs, adata.n_vars, Path(input_path).as_posix())
    matrix = from_anndata(adata, normalize=config.normalize, sample_col=config.sample_col, backend=backend)
    logger.info("Species: %s; %d genes indexed", matrix.species, matrix.n_genes)

    result = score_matrix(matrix, profile, key_panels=config.key_panels, backend=backend, logger=logger)
    paths = write_reports(result, out_dir, mode=config.mode, run_config=config)

    if config.plots:
        from nuclearqc.plotting.qc import plot_qc_suite

        paths.update(plot_qc_suite(result, Path(out_dir) / "figures"))

    logger.info("Outputs written to %s", Path(out_dir).as_posix())
    return paths
