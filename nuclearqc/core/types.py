"""Typed containers passed between the scoring stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np
import scipy.sparse as sp

AXIS_NAMES: tuple[str, ...] = ("tbi", "rci", "pds", "trs", "nsai", "iaa", "dfa", "cea")
DDR_NAMES: tuple[str, ...] = ("rss", "drbi", "cci", "trci")
ALL_AXIS_NAMES: tuple[str, ...] = AXIS_NAMES + DDR_NAMES
COMPOSITE_NAMES: tuple[str, ...] = ("nps", "ci", "rls")

# Report column names for the axis/composite block.
AXIS_COLUMNS: dict[str, str] = {
    "tbi": "a1_tbi",
    "rci": "a2_rci",
    "pds": "a3_pds",
    "trs": "a4_trs",
    "nsai": "a5_nsai",
    "iaa": "a6_iaa",
    "dfa": "a7_dfa",
    "cea": "a8_cea",
    "rss": "rss",
    "drbi": "drbi",
    "cci": "cci",
    "trci": "trci",
}
COMPOSITE_COLUMNS: dict[str, str] = {"nps": "c1_nps", "ci": "c2_ci", "rls": "c3_rls"}


@dataclass(frozen=True)
class GeneIndex:
    """Normalized gene symbols, one gene id per distinct symbol.

    ``gene_id_by_feature`` maps each input feature column to its gene id, or
    ``-1`` when the feature has no usable symbol.
    """

    symbols: tuple[str, ...]
    gene_id_by_feature: np.ndarray
    symbol_to_id: dict[str, int]
    species: str = "Unknown"

    @property
    def n_genes(self) -> int:
        return len(self.symbols)

    def lookup(self, symbol: str) -> int | None:
        return self.symbol_to_id.get(symbol)


@dataclass(frozen=True)
class ExpressionMatrix:
    """Validated cells x genes expression values for one run.

    ``X`` is CSR with one row per cell and one column per gene id of
    ``gene_index``; values are raw counts or log-normalized depending on
    ``normalized``.
    """

    X: sp.csr_matrix
    gene_index: GeneIndex
    barcodes: tuple[str, ...]
    normalized: bool
    libsize: np.ndarray
    nnz: np.ndarray
    n_features_raw: int
    sample: tuple[str, ...] | None = None
    condition: tuple[str, ...] | None = None
    ambient_rna_risk: np.ndarray | None = None

    @property
    def n_cells(self) -> int:
        return int(self.X.shape[0])

    @property
    def n_genes(self) -> int:
        return int(self.X.shape[1])

    @property
    def species(self) -> str:
        return self.gene_index.species


@dataclass(frozen=True)
class PanelDef:
    id: str
    name: str
    group: str
    genes: tuple[str, ...]


@dataclass(frozen=True)
class PanelAudit:
    panel_id: str
    panel_size_defined: int
    panel_size_mappable: int
    missing_genes: tuple[str, ...]


@dataclass(frozen=True)
class MappedPanel:
    id: str
    name: str
    group: str
    gene_ids: tuple[int, ...]
    missing: tuple[str, ...]

    @property
    def size_mappable(self) -> int:
        return len(self.gene_ids)


@dataclass(frozen=True)
class PanelSet:
    panels: tuple[MappedPanel, ...]
    audits: tuple[PanelAudit, ...]
    key_panels: tuple[str, ...]

    @property
    def ids(self) -> tuple[str, ...]:
        return tuple(p.id for p in self.panels)

    def index_of(self, panel_id: str) -> int | None:
        for idx, panel in enumerate(self.panels):
            if panel.id == panel_id:
                return idx
        return None

    def indices_for(self, *groups: str) -> list[int]:
        """Panel column indices whose group is in ``groups``, in group argument order."""
        out: list[int] = []
        for group in groups:
            out.extend(idx for idx, p in enumerate(self.panels) if p.group == group)
        return out


@dataclass(frozen=True)
class PanelScores:
    """Per (cell, panel) sums, detected-gene counts and coverage, plus run-wide aggregates."""

    panel_sum: np.ndarray
    panel_detected: np.ndarray
    panel_coverage: np.ndarray
    program_sum: np.ndarray
    stress_sum: np.ndarray
    dev_sum: np.ndarray
    sum_tf: np.ndarray
    max_tf: np.ndarray
    proliferation_share: np.ndarray
    panel_nonzero_fraction: np.ndarray
    key_panel_coverage_median: np.ndarray
    key_panels_missing: bool
    any_panel_unmapped: bool


@dataclass(frozen=True)
class ActivationCutpoints:
    p70: float
    p85: float
    n: int

    @property
    def degenerate(self) -> bool:
        return self.n <= 1 or self.p85 <= self.p70


@dataclass(frozen=True)
class PopulationSummary:
    """Cross-cell order statistics, written once per sample before finalization."""

    cutpoints: dict[str, ActivationCutpoints]
    axis_p90: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class AxisTable:
    """Twelve finalized axes plus per-cell driver values."""

    axes: dict[str, np.ndarray]
    expressed_genes: np.ndarray
    gene_entropy: np.ndarray
    panel_entropy: np.ndarray
    max_program_share: np.ndarray
    tf_entropy: np.ndarray
    stress_ratio: np.ndarray
    dev_ratio: np.ndarray
    raw_activation: dict[str, np.ndarray]
    axis_variance: np.ndarray
    low_tf_signal: np.ndarray

    def __getitem__(self, name: str) -> np.ndarray:
        return self.axes[name]

    @property
    def n_cells(self) -> int:
        return int(self.expressed_genes.size)

    def vector(self, cell: int) -> dict[str, float]:
        return {name: float(self.axes[name][cell]) for name in self.axes}


@dataclass(frozen=True)
class CompositeTable:
    nps: np.ndarray
    ci: np.ndarray
    rls: np.ndarray
    confidence: np.ndarray
    confidence_breakdown: np.ndarray
    drivers: dict[str, list[list[tuple[str, float]]]]


@dataclass(frozen=True)
class ScoringResult:
    """Everything one scoring run produces, keyed by cell order of the input."""

    matrix: ExpressionMatrix
    panels: PanelSet
    panel_scores: PanelScores
    population: PopulationSummary
    axes: AxisTable
    composites: CompositeTable
    regimes: tuple[str, ...]
    flags: tuple[tuple[str, ...], ...]
    profile: Any
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SampleRecord:
    sample: str
    n_cells: int
    stats: dict[str, tuple[float, float, float]]
    regime_majority: str
    regime_fractions: dict[str, float]
    tail_fractions: dict[str, float]
