from __future__ import annotations

import dataclasses
import json
import logging

import numpy as np
import pandas as pd
import pytest

from nuclearqc.core.profiles import resolve_profile
from nuclearqc.core.types import ALL_AXIS_NAMES
from nuclearqc.io import from_anndata
from nuclearqc.pipeline.report import CELL_COLUMNS, write_reports
from nuclearqc.panels.defs import BUILTIN_PANELS
from nuclearqc.pipeline.run import RunConfig, immune_like_detected, run_pipeline, score_matrix
from nuclearqc.scoring.flags import LOW_EXPR_GENES, MISSING_KEY_PANELS
from nuclearqc.scoring.regimes import REGIMES, TRANSCRIPTIONALLY_COLLAPSED

N_CELLS = 60
COLLAPSED_CELLS = (0, 1, 2)


def _assert_same_result(left, right):
    for name in ALL_AXIS_NAMES:
        assert np.array_equal(left.axes[name], right.axes[name]), name
    assert np.array_equal(left.composites.nps, right.composites.nps)
    assert np.array_equal(left.composites.ci, right.composites.ci)
    assert np.array_equal(left.composites.rls, right.composites.rls)
    assert np.array_equal(left.composites.confidence, right.composites.confidence)
    assert left.regimes == right.regimes
    assert left.flags == right.flags


@pytest.mark.parametrize("profile_name", ["default_v1", "immune_v1"])
def test_backends_and_repeated_runs_are_bit_identical(synthetic_matrix, profile_name):
    profile = resolve_profile(profile_name)
    loop = score_matrix(synthetic_matrix, profile, backend="loop")
    batch = score_matrix(synthetic_matrix, profile, backend="batch")
    again = score_matrix(synthetic_matrix, profile, backend="batch")
    _assert_same_result(loop, batch)
    _assert_same_result(batch, again)


def test_scores_do_not_depend_on_cell_order(synthetic_adata):
    profile = resolve_profile("immune_v1")
    forward = score_matrix(from_anndata(synthetic_adata), profile)
    order = np.random.default_rng(11).permutation(synthetic_adata.n_obs)
    shuffled = score_matrix(from_anndata(synthetic_adata[order].copy()), profile)

    position = {bc: i for i, bc in enumerate(shuffled.matrix.barcodes)}
    remap = np.array([position[bc] for bc in forward.matrix.barcodes])
    for name in ALL_AXIS_NAMES:
        assert np.array_equal(forward.axes[name], shuffled.axes[name][remap]), name
    assert np.array_equal(forward.composites.rls, shuffled.composites.rls[remap])
    assert list(forward.regimes) == [shuffled.regimes[i] for i in remap]


def test_every_cell_is_classified_and_bounded(synthetic_matrix):
    result = score_matrix(synthetic_matrix, resolve_profile("immune_v1"))
    assert len(result.regimes) == N_CELLS
    assert all(tag in REGIMES for tag in result.regimes)
    for values in (result.composites.nps, result.composites.ci, result.composites.rls, result.composites.confidence):
        assert np.all((values >= 0.0) & (values <= 1.0))
    for cell in COLLAPSED_CELLS:
        assert result.regimes[cell] == TRANSCRIPTIONALLY_COLLAPSED
        assert LOW_EXPR_GENES in result.flags[cell]


def test_population_summary_is_built_before_finalization(synthetic_matrix):
    result = score_matrix(synthetic_matrix, resolve_profile("immune_v1"))
    assert "immune_activation" in result.population.cutpoints
    assert "dna_repair_hr" in result.population.cutpoints
    assert set(result.population.axis_p90) == {"iaa", "dfa", "nsai"}


def test_strict_mode_logs_warning(synthetic_matrix, caplog):
    logger = logging.getLogger("nuclearqc.test")
    with caplog.at_level(logging.INFO, logger="nuclearqc.test"):
        score_matrix(synthetic_matrix, resolve_profile("immune_v1", strict_nuclear=True), logger=logger)
    assert "Strict nuclear mode enabled" in caplog.text


def test_cell_report_files(tmp_path, synthetic_matrix):
    result = score_matrix(synthetic_matrix, resolve_profile("immune_v1"))
    paths = write_reports(result, tmp_path, mode="cell", run_config=RunConfig())
    for key in ("table", "summary", "panels", "report"):
        assert paths[key].exists()

    table = pd.read_csv(paths["table"], sep="\t", keep_default_na=False)
    assert list(table.columns) == CELL_COLUMNS
    assert len(table) == N_CELLS
    assert table["barcode"].tolist() == sorted(table["barcode"].tolist())
    assert set(table["activation_mode"]) == {"hybrid"}
    assert set(table["species"]) == {"Human"}

    summary = json.loads(paths["summary"].read_text(encoding="utf-8"))
    assert summary["input"]["n_cells"] == N_CELLS
    assert summary["run"]["scoring_mode"] == "immune_aware"
    assert set(summary["regimes"]) == set(REGIMES)
    assert sum(v["count"] for v in summary["regimes"].values()) == N_CELLS
    assert len(summary["rls_contributors_top"]) <= 3

    panels = pd.read_csv(paths["panels"], sep="\t", keep_default_na=False)
    assert len(panels) == 16
    assert (panels["panel_size_mappable"] == panels["panel_size_defined"]).all()

    text = paths["report"].read_text(encoding="utf-8")
    assert text.startswith("Nuclear State & Transcriptional Plasticity Report")
    assert "Nuclear scoring mode: immune_aware" in text


def test_sample_report_rows(tmp_path, synthetic_matrix):
    result = score_matrix(synthetic_matrix, resolve_profile("immune_v1"))
    paths = write_reports(result, tmp_path, mode="sample", run_config=RunConfig(mode="sample"))
    table = pd.read_csv(paths["table"], sep="\t")
    assert table["sample"].tolist() == ["s1", "s2"]
    assert table["n_cells"].tolist() == [30, 30]
    assert "a4_trs_median" in table.columns
    assert "c3_rls_p99" in table.columns
    assert set(table["regime_majority"]) <= set(REGIMES)


def test_run_pipeline_end_to_end(tmp_path, synthetic_h5ad):
    logger = logging.getLogger("nuclearqc.test.run")
    out = tmp_path / "out"
    paths = run_pipeline(synthetic_h5ad, out, RunConfig(plots=True), logger=logger)
    assert (out / "nuclearqc.tsv").exists()
    assert paths["regime_fractions"].exists()
    assert paths["axis_distributions"].exists()


def test_cell_without_expression_collapses(synthetic_adata):
    adata = synthetic_adata.copy()
    adata.X[5, :] = 0.0
    result = score_matrix(from_anndata(adata), resolve_profile("default_v1"))
    assert result.matrix.libsize[5] == 0.0
    assert result.axes.gene_entropy[5] == 0.0
    assert result.axes.panel_entropy[5] == 0.0
    assert result.regimes[5] == TRANSCRIPTIONALLY_COLLAPSED


def _without_panels(adata, *panel_ids):
    genes = {g for panel in BUILTIN_PANELS if panel.id in panel_ids for g in panel.genes}
    return adata[:, ~adata.var_names.isin(sorted(genes))].copy()


def test_unmapped_non_key_panel_flags_every_cell(synthetic_adata):
    adata = _without_panels(synthetic_adata, "chromatin_open_state")
    result = score_matrix(from_anndata(adata), resolve_profile("immune_v1"))
    unmapped = [a.panel_id for a in result.panels.audits if a.panel_size_mappable == 0]
    assert unmapped == ["chromatin_open_state"]
    assert result.panel_scores.key_panels_missing is False
    assert all(MISSING_KEY_PANELS in flags for flags in result.flags)


def test_fully_mapped_run_has_no_missing_panel_flag(synthetic_matrix):
    result = score_matrix(synthetic_matrix, resolve_profile("immune_v1"))
    assert not any(MISSING_KEY_PANELS in flags for flags in result.flags)


def test_immune_like_detection_needs_mapped_immune_panels(synthetic_adata, synthetic_matrix):
    profile = resolve_profile("immune_v1")
    full = score_matrix(synthetic_matrix, profile)
    assert immune_like_detected(full)

    stripped = score_matrix(
        from_anndata(_without_panels(synthetic_adata, "immune_activation", "clonal_engagement")),
        profile,
    )
    # Same axis values, so only panel mapping differs.
    assert not immune_like_detected(dataclasses.replace(stripped, axes=full.axes))
