from __future__ import annotations

import dataclasses

import pytest

from nuclearqc.core.profiles import default_v1, immune_v1
from nuclearqc.core.types import ALL_AXIS_NAMES, PopulationSummary
from nuclearqc.scoring.composites import (
    MAX_DRIVERS,
    cell_drivers,
    ci_score,
    format_drivers,
    nps_score,
    rls_floor_active,
    rls_immune_aware,
    rls_strict_bulk,
    top_drivers,
)


def _axes(**values):
    a = {name: 0.0 for name in ALL_AXIS_NAMES}
    a.update(values)
    return a


def test_nps_rewards_breadth_and_penalizes_rigidity():
    p = default_v1()
    assert nps_score(_axes(tbi=1.0, rci=1.0), p) == pytest.approx(0.8)
    assert nps_score(_axes(pds=1.0, trs=1.0), p) == 0.0


def test_ci_adds_compaction_only_with_ddr():
    p = default_v1()
    a = _axes(trs=0.5, pds=0.2, cci=1.0)
    base = 0.55 * 0.5 + 0.45 * 0.2
    assert ci_score(a, p) == pytest.approx(base + 0.15)
    assert ci_score(a, dataclasses.replace(p, include_ddr=False)) == pytest.approx(base)


def test_rls_floor_rule():
    p = immune_v1()
    population = PopulationSummary(cutpoints={}, axis_p90={"iaa": 0.85, "dfa": 0.1, "nsai": 0.1})
    assert rls_floor_active(population, p)
    quiet = _axes()
    assert rls_immune_aware(quiet, 0.0, 0.1, True, p) == pytest.approx(p.rls_floor)
    assert rls_immune_aware(quiet, 0.0, 0.7, True, p) == 0.0
    assert rls_immune_aware(quiet, 0.0, 0.1, False, p) == 0.0
    assert not rls_floor_active(PopulationSummary(cutpoints={}, axis_p90={"iaa": 0.5}), p)


def test_rls_immune_aware_formula():
    p = immune_v1()
    a = _axes(tbi=0.8, dfa=0.5, iaa=0.5, nsai=0.2, trs=0.3, pds=0.1)
    expected = 0.35 * 0.8 + 0.20 * 0.5 + 0.20 * 0.5 + 0.15 * 0.2 + 0.10 * 1.0 - 0.30 * 0.3
    assert rls_immune_aware(a, 0.05, 0.9, False, p) == pytest.approx(expected)


def test_rls_strict_bulk_scales_by_confidence():
    p = default_v1()
    a = _axes(tbi=1.0, rci=1.0)
    assert rls_strict_bulk(a, 0.5, p) == pytest.approx(0.4)
    assert rls_strict_bulk(a, 0.0, p) == 0.0


def test_top_drivers_sorted_by_magnitude_then_name():
    items = [("b", 0.2), ("a", -0.2), ("c", 0.5), ("d", 0.0), ("e", 0.01), ("f", -0.3)]
    ordered = top_drivers(items)
    assert [name for name, _ in ordered] == ["c", "f", "a", "b", "e"]
    assert len(ordered) == MAX_DRIVERS
    assert format_drivers(ordered[:2]) == "c:0.500000,f:-0.300000"


def test_cell_drivers_track_ddr_terms():
    p = default_v1()
    drivers = cell_drivers(_axes(tbi=0.5, rss=0.9, trci=0.1), p)
    assert drivers["rls"][0] == ("high_rss", pytest.approx(-0.225))
    off = cell_drivers(_axes(tbi=0.5, rss=0.9), dataclasses.replace(p, include_ddr=False))
    assert all(name != "high_rss" for name, _ in off["rls"])
