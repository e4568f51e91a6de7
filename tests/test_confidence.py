from __future__ import annotations

import numpy as np
import pytest

from nuclearqc.core.profiles import default_v1, immune_v1
from nuclearqc.scoring.confidence import (
    axis_structure,
    confidence_immune_aware,
    confidence_strict_bulk,
    consistency,
)

P = immune_v1()


def _immune(**overrides):
    kwargs = dict(
        key_coverage=0.6,
        key_panels_missing=False,
        nonzero_fraction=0.25,
        expr_frac=0.5,
        axis_variance=0.05,
        tbi=0.5,
        rci=0.5,
        pds=0.2,
        trs=0.3,
        profile=P,
    )
    kwargs.update(overrides)
    return confidence_immune_aware(**kwargs)


def test_additive_confidence_parts():
    conf, parts = _immune()
    assert parts == pytest.approx((1.0, 0.5, 1.0, 1.0))
    assert conf == pytest.approx(0.30 + 0.25 * 0.5 + 0.25 + 0.20)


def test_consistency_penalizes_overcommitted_pairs():
    assert consistency(0.5, 0.5, 0.2, 0.3, P) == 1.0
    assert consistency(1.0, 1.0, 1.0, 1.0, P) == 0.0
    assert consistency(0.9, 0.1, 0.0, 0.5, P) == pytest.approx(0.8)


def test_confidence_floor_applies_with_structure():
    conf, parts = _immune(
        key_coverage=0.0,
        nonzero_fraction=0.0,
        axis_variance=0.011,
        tbi=1.0,
        rci=1.0,
        pds=1.0,
        trs=1.0,
    )
    assert parts[2] == pytest.approx(0.22)
    assert conf == pytest.approx(P.confidence_floor)


def test_missing_key_panels_zero_coverage_and_no_floor():
    conf, parts = _immune(
        key_panels_missing=True,
        nonzero_fraction=0.0,
        axis_variance=0.011,
        tbi=1.0,
        rci=1.0,
        pds=1.0,
        trs=1.0,
    )
    assert parts[0] == 0.0
    assert conf == pytest.approx(0.25 * 0.22)


def test_no_audit_and_no_structure_gives_zero():
    conf, _ = _immune(key_coverage=None, nonzero_fraction=None, axis_variance=0.0)
    assert conf == 0.0


def test_nonzero_fraction_falls_back_to_expression_fraction():
    _, parts = _immune(nonzero_fraction=None, expr_frac=0.64)
    assert parts[1] == pytest.approx(0.8)


def test_strict_bulk_confidence_is_multiplicative():
    p = default_v1()
    conf, parts = confidence_strict_bulk(key_coverage=0.8, expr_frac=0.5, ambient_rna_risk=False, profile=p)
    assert parts[:3] == pytest.approx((0.4, 0.15, 0.2))
    assert conf == pytest.approx(0.012)
    conf, _ = confidence_strict_bulk(key_coverage=0.8, expr_frac=0.5, ambient_rna_risk=True, profile=p)
    assert conf == 0.0


def test_axis_structure_saturates():
    assert axis_structure(0.1, P) == 1.0
    assert axis_structure(0.025, P) == pytest.approx(0.5)
    assert np.isclose(axis_structure(0.0, P), 0.0)
