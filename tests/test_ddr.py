from __future__ import annotations

import numpy as np
import pytest

from nuclearqc.core.profiles import default_v1
from nuclearqc.scoring.ddr import compute_ddr, ddr_cell
from nuclearqc.scoring.flags import HR_DOMINANT_REPAIR, NHEJ_DOMINANT_REPAIR, FlagInputs, cell_flags


def test_hr_dominant_balance():
    values = ddr_cell(0.0, 0.0, 0.0, 0.9, 0.1, 0.0, 0.0, 0.0)
    assert values["drbi"] == pytest.approx(0.90)
    assert values["rss"] == pytest.approx(0.2)
    assert values["cci"] == 0.0
    assert values["trci"] == 0.0


def test_stable_forks_suppress_replication_stress():
    values = ddr_cell(1.0, 1.0, 1.0, 0.5, 0.5, 1.0, 0.0, 1.0)
    assert values["rss"] == pytest.approx(0.5)
    assert values["drbi"] == pytest.approx(0.5)
    assert values["cci"] == pytest.approx(0.5)
    assert values["trci"] == pytest.approx(0.45)


def test_compute_ddr_vectorizes_cells():
    norm = {
        "replication_stress_genes": np.array([0.0, 1.0]),
        "checkpoint_activation": np.array([0.0, 1.0]),
        "replication_fork_stability": np.array([0.0, 1.0]),
        "dna_repair_hr": np.array([0.9, 0.5]),
        "dna_repair_nhej": np.array([0.1, 0.5]),
        "chromatin_compaction": np.array([0.0, 1.0]),
        "chromatin_open_state": np.array([0.0, 0.0]),
    }
    out = compute_ddr(norm, np.array([0.0, 1.0]))
    assert set(out) == {"rss", "drbi", "cci", "trci"}
    assert out["drbi"][0] == pytest.approx(0.9)
    assert out["trci"][1] == pytest.approx(0.45)


def test_hr_dominant_flag():
    axes = {name: 0.0 for name in ("tbi", "rci", "pds", "trs", "nsai", "iaa", "dfa", "cea", "rss", "cci", "trci")}
    axes["drbi"] = ddr_cell(0.0, 0.0, 0.0, 0.9, 0.1, 0.0, 0.0, 0.0)["drbi"]
    inputs = FlagInputs(
        expressed_genes=100,
        key_coverage=1.0,
        any_panel_unmapped=False,
        sum_tf=5.0,
        ambient_rna_risk=False,
        proliferation_share=0.0,
        confidence=0.9,
        axis_variance=0.05,
        axes=axes,
    )
    flags = cell_flags(inputs, default_v1())
    assert HR_DOMINANT_REPAIR in flags
    assert NHEJ_DOMINANT_REPAIR not in flags
