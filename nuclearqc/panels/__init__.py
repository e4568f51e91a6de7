"""Gene panel table, species mapping and per-cell panel aggregation."""

from nuclearqc.panels.aggregate import score_panels, top_program_panel
from nuclearqc.panels.defs import (
    BUILTIN_PANELS,
    DDR_INPUT_PANELS,
    IMMUNE_AXIS_PANELS,
    KEY_PANELS,
    MOUSE_ORTHOLOGS,
    PANEL_GROUPS,
    builtin_panels,
)
from nuclearqc.panels.mapping import load_panels, map_panel, map_symbol, normalize_symbol

__all__ = [
    "BUILTIN_PANELS",
    "DDR_INPUT_PANELS",
    "IMMUNE_AXIS_PANELS",
    "KEY_PANELS",
    "MOUSE_ORTHOLOGS",
    "PANEL_GROUPS",
    "builtin_panels",
    "load_panels",
    "map_panel",
    "map_symbol",
    "normalize_symbol",
    "score_panels",
    "top_program_panel",
]
