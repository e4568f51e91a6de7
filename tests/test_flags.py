from __future__ import annotations

import dataclasses

from nuclearqc.core.profiles import default_v1, immune_v1
from nuclearqc.core.types import ALL_AXIS_NAMES
from nuclearqc.scoring.flags import (
    AMBIENT_RNA_RISK,
    BIOLOGICAL_SILENCE,
    CELL_CYCLE_CONFOUNDER,
    FLAG_ORDER,
    HIGH_PROGRAM_DOMINANCE,
    HIGH_REPLICATION_STRESS,
    LOW_CONFIDENCE,
    LOW_EXPR_GENES,
    LOW_PANEL_COVERAGE,
    LOW_TF_SIGNAL,
    MISSING_KEY_PANELS,
    MODEL_LIMITATION,
    NHEJ_DOMINANT_REPAIR,
    FlagInputs,
    cell_flags,
    format_flags,
)


def _inputs(axes=None, **overrides) -> FlagInputs:
    a = {name: 0.0 for name in ALL_AXIS_NAMES}
    a["drbi"] = 0.5
    a.update(axes or {})
    values = dict(
        expressed_genes=100,
        key_coverage=1.0,
        any_panel_unmapped=False,
        sum_tf=5.0,
        ambient_rna_risk=False,
        proliferation_share=0.0,
        confidence=0.9,
        axis_variance=0.05,
        axes=a,
    )
    values.update(overrides)
    return FlagInputs(**values)


def test_quiet_cell_under_absolute_activation_is_biological_silence():
    assert cell_flags(_inputs(), default_v1()) == (BIOLOGICAL_SILENCE,)


def test_non_absolute_activation_is_model_limitation():
    flags = cell_flags(_inputs(), immune_v1())
    assert MODEL_LIMITATION in flags
    assert BIOLOGICAL_SILENCE not in flags


def test_immune_signal_is_model_limitation():
    assert cell_flags(_inputs({"iaa": 0.3}), default_v1()) == (MODEL_LIMITATION,)


def test_flags_are_independent_and_ordered():
    inputs = _inputs(
        {"pds": 0.9},
        expressed_genes=2,
        key_coverage=0.1,
        any_panel_unmapped=True,
        sum_tf=0.0,
        ambient_rna_risk=True,
        proliferation_share=0.8,
        confidence=0.1,
    )
    flags = cell_flags(inputs, default_v1())
    expected = [
        LOW_EXPR_GENES,
        LOW_PANEL_COVERAGE,
        MISSING_KEY_PANELS,
        HIGH_PROGRAM_DOMINANCE,
        LOW_TF_SIGNAL,
        AMBIENT_RNA_RISK,
        CELL_CYCLE_CONFOUNDER,
        LOW_CONFIDENCE,
    ]
    assert list(flags) == expected
    assert list(flags) == sorted(flags, key=FLAG_ORDER.index)
    assert format_flags(flags).split(",") == expected


def test_low_confidence_needs_flat_axes_when_immune_aware():
    p = immune_v1()
    assert LOW_CONFIDENCE not in cell_flags(_inputs(confidence=0.3, axis_variance=0.02), p)
    assert LOW_CONFIDENCE in cell_flags(_inputs(confidence=0.3, axis_variance=0.005), p)
    assert LOW_CONFIDENCE in cell_flags(_inputs(confidence=0.3, axis_variance=0.02), default_v1())


def test_ddr_flags_follow_include_ddr():
    inputs = _inputs({"rss": 0.8, "drbi": 0.1})
    flags = cell_flags(inputs, default_v1())
    assert HIGH_REPLICATION_STRESS in flags
    assert NHEJ_DOMINANT_REPAIR in flags
    off = cell_flags(inputs, dataclasses.replace(default_v1(), include_ddr=False))
    assert HIGH_REPLICATION_STRESS not in off
    assert NHEJ_DOMINANT_REPAIR not in off


def test_empty_flag_list_formats_empty():
    assert format_flags(()) == ""
