"""Axis, confidence, composite, regime and flag scoring."""

from nuclearqc.scoring.axes import collect_raw_inputs, compute_axes
from nuclearqc.scoring.composites import compute_composites, format_drivers, top_drivers
from nuclearqc.scoring.confidence import compute_confidence
from nuclearqc.scoring.ddr import compute_ddr
from nuclearqc.scoring.flags import FLAG_ORDER, compute_flags, format_flags
from nuclearqc.scoring.regimes import REGIME_RULES, REGIMES, classify_cell, classify_cells
from nuclearqc.scoring.sample import aggregate_samples

__all__ = [
    "collect_raw_inputs",
    "compute_axes",
    "compute_ddr",
    "compute_confidence",
    "compute_composites",
    "top_drivers",
    "format_drivers",
    "REGIMES",
    "REGIME_RULES",
    "classify_cell",
    "classify_cells",
    "FLAG_ORDER",
    "compute_flags",
    "format_flags",
    "aggregate_samples",
]
