from __future__ import annotations

import numpy as np
import pytest

from nuclearqc.core.types import AXIS_COLUMNS, COMPOSITE_COLUMNS
from nuclearqc.scoring.regimes import PLASTIC_ADAPTIVE, REGIMES, STRESS_ADAPTIVE, UNCLASSIFIED
from nuclearqc.scoring.sample import aggregate_sample, majority_regime


def _metrics(n: int) -> dict[str, np.ndarray]:
    values = np.arange(n, dtype=float) / n
    names = list(AXIS_COLUMNS.values()) + list(COMPOSITE_COLUMNS.values())
    return {name: values.copy() for name in names}


def test_hundred_cell_sample_statistics():
    n = 100
    regimes = [PLASTIC_ADAPTIVE] * 60 + [STRESS_ADAPTIVE] * 40
    record = aggregate_sample("s1", np.arange(n), _metrics(n), regimes)

    assert record.sample == "s1"
    assert record.n_cells == 100
    med, q90, q99 = record.stats["a4_trs"]
    assert med == pytest.approx(0.50)
    assert q90 == pytest.approx(0.90)
    assert q99 == pytest.approx(0.99)
    assert record.regime_majority == PLASTIC_ADAPTIVE
    assert record.regime_fractions[PLASTIC_ADAPTIVE] == pytest.approx(0.6)
    assert sum(record.regime_fractions.values()) == pytest.approx(1.0)
    assert record.tail_fractions["trs_ge_0_75"] == pytest.approx(0.25)
    assert record.tail_fractions["nps_ge_0_60"] == pytest.approx(0.40)
    assert record.tail_fractions["rls_le_0_35"] == pytest.approx(0.36)


def test_sample_statistics_ignore_cell_order():
    n = 100
    metrics = _metrics(n)
    regimes = [PLASTIC_ADAPTIVE] * n
    forward = aggregate_sample("s", np.arange(n), metrics, regimes)
    backward = aggregate_sample("s", np.arange(n)[::-1].copy(), metrics, regimes)
    assert forward.stats == backward.stats


def test_majority_regime_ties_go_to_report_order():
    assert majority_regime({STRESS_ADAPTIVE: 5, PLASTIC_ADAPTIVE: 5}) == PLASTIC_ADAPTIVE
    assert majority_regime({}) == UNCLASSIFIED
    assert majority_regime({tag: 0 for tag in REGIMES}) == UNCLASSIFIED
