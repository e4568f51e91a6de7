"""QC figure factories for a scoring run."""

from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np

from nuclearqc.core.types import ScoringResult
from nuclearqc.pipeline.io import write_json
from nuclearqc.plotting.styles import DEFAULT_PLOT_STYLE, PlotStyle, apply_plot_style, plot_style_dict, save_figure
from nuclearqc.scoring.regimes import REGIMES, regime_counts
from nuclearqc.scoring.sample import metric_columns


def plot_regime_fractions(
    result: ScoringResult,
    out_png: Path,
    *,
    style: PlotStyle = DEFAULT_PLOT_STYLE,
) -> Path:
    counts = regime_counts(result.regimes)
    n = max(len(result.regimes), 1)
    fractions = [counts[tag] / n for tag in REGIMES]
    xs = np.arange(len(REGIMES))

    fig, ax = plt.subplots(figsize=style.figsize_regimes)
    ax.bar(xs, fractions, color=[style.regime_colors[tag] for tag in REGIMES])
    ax.set_xticks(xs)
    ax.set_xticklabels(REGIMES, rotation=30, ha="right")
    ax.set_ylim(0.0, 1.0)
    ax.set_ylabel("fraction of cells")
    ax.set_title(f"Regime fractions (n={len(result.regimes)})")
    fig.tight_layout()
    return save_figure(fig, out_png, style=style)


def plot_axis_distributions(
    result: ScoringResult,
    out_png: Path,
    *,
    style: PlotStyle = DEFAULT_PLOT_STYLE,
) -> Path:
    """One histogram per axis and composite, all on the unit interval."""
    metrics = metric_columns(result)
    names = list(metrics)
    n_rows = int(np.ceil(len(names) / style.grid_columns))
    fig, axes = plt.subplots(n_rows, style.grid_columns, figsize=style.figsize_axes, squeeze=False)
    bins = np.linspace(0.0, 1.0, style.hist_bins + 1)
    for i, ax in enumerate(axes.ravel()):
        if i >= len(names):
            ax.axis("off")
            continue
        ax.hist(np.asarray(metrics[names[i]], dtype=float), bins=bins, color=style.hist_color)
        ax.set_title(names[i], fontsize=style.label_fontsize)
        ax.set_xlim(0.0, 1.0)
    fig.tight_layout()
    return save_figure(fig, out_png, style=style)


def plot_qc_suite(
    result: ScoringResult,
    out_dir: Path,
    *,
    style: PlotStyle = DEFAULT_PLOT_STYLE,
) -> dict[str, Path]:
    """Render the regime and axis-distribution figures into ``out_dir``."""
    apply_plot_style(style)
    out_dir.mkdir(parents=True, exist_ok=True)
    paths = {
        "regime_fractions": plot_regime_fractions(result, out_dir / "regime_fractions.png", style=style),
        "axis_distributions": plot_axis_distributions(result, out_dir / "axis_distributions.png", style=style),
    }
    write_json(out_dir / "plot_style.json", plot_style_dict(style))
    return paths
