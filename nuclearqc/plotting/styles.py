"""Figure style and saving for the QC plots.

Every figure is drawn with one frozen :class:`PlotStyle`, so a rerun with the
same inputs writes the same PNG bytes.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import matplotlib
import matplotlib.figure
import matplotlib.pyplot as plt
import numpy as np

from nuclearqc.scoring.regimes import (
    COMMITTED_STATE,
    PLASTIC_ADAPTIVE,
    RIGID_DEGENERATIVE,
    STRESS_ADAPTIVE,
    TRANSCRIPTIONALLY_COLLAPSED,
    TRANSIENT_ADAPTIVE,
    UNCLASSIFIED,
)


def _regime_palette() -> dict[str, str]:
    return {
        PLASTIC_ADAPTIVE: "#2ca02c",
        STRESS_ADAPTIVE: "#ff7f0e",
        COMMITTED_STATE: "#1f77b4",
        RIGID_DEGENERATIVE: "#d62728",
        TRANSCRIPTIONALLY_COLLAPSED: "#7f7f7f",
        TRANSIENT_ADAPTIVE: "#9467bd",
        UNCLASSIFIED: "#c7c7c7",
    }


@dataclass(frozen=True)
class PlotStyle:
    dpi: int = 200
    figsize_regimes: tuple[float, float] = (8.2, 4.2)
    figsize_axes: tuple[float, float] = (11.0, 6.5)
    hist_bins: int = 40
    hist_color: str = "#4c72b0"
    grid_columns: int = 5
    regime_colors: dict[str, str] = field(default_factory=_regime_palette)
    tick_fontsize: int = 8
    label_fontsize: int = 10
    title_fontsize: int = 11


DEFAULT_PLOT_STYLE = PlotStyle()


def apply_plot_style(style: PlotStyle = DEFAULT_PLOT_STYLE) -> None:
    plt.rcParams.update(
        {
            "figure.dpi": style.dpi,
            "savefig.dpi": style.dpi,
            "savefig.facecolor": "white",
            "font.family": "DejaVu Sans",
            "axes.titlesize": style.title_fontsize,
            "axes.labelsize": style.label_fontsize,
            "xtick.labelsize": style.tick_fontsize,
            "ytick.labelsize": style.tick_fontsize,
            "axes.spines.top": False,
            "axes.spines.right": False,
        }
    )


def plot_style_dict(style: PlotStyle = DEFAULT_PLOT_STYLE) -> dict[str, Any]:
    """Style fields plus library versions, written beside the figures."""
    meta = asdict(style)
    meta["matplotlib_version"] = str(matplotlib.__version__)
    meta["numpy_version"] = str(np.__version__)
    return meta


def save_figure(
    fig: matplotlib.figure.Figure,
    out_path: Path,
    *,
    style: PlotStyle = DEFAULT_PLOT_STYLE,
) -> Path:
    """Write ``fig`` as PNG without timestamp metadata, then close it."""
    out_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_path, dpi=style.dpi, facecolor="white", metadata={"Software": None})
    plt.close(fig)
    return out_path
