"""QC figures for nuclearqc runs."""

from nuclearqc.plotting.qc import plot_axis_distributions, plot_qc_suite, plot_regime_fractions
from nuclearqc.plotting.styles import DEFAULT_PLOT_STYLE, PlotStyle, apply_plot_style, plot_style_dict, save_figure

__all__ = [
    "PlotStyle",
    "DEFAULT_PLOT_STYLE",
    "apply_plot_style",
    "plot_style_dict",
    "save_figure",
    "plot_regime_fractions",
    "plot_axis_distributions",
    "plot_qc_suite",
]
