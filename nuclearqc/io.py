"""Expression input boundary: AnnData / 10x / arrays -> validated ExpressionMatrix."""

from __future__ import annotations

import warnings
from pathlib import Path
from typing import Sequence

import anndata as ad
import numpy as np
import scanpy as sc
import scipy.sparse as sp

from nuclearqc.core import kernels
from nuclearqc.core.errors import StructuralInputError
from nuclearqc.core.types import ExpressionMatrix, GeneIndex
from nuclearqc.panels.mapping import normalize_symbol

HUMAN_MHC_SYMBOLS: frozenset[str] = frozenset(
    {"HLA-A", "HLA-B", "HLA-C", "HLA-DRA", "HLA-DRB1", "HLA-DPA1", "HLA-DPB1", "HLA-E", "HLA-F", "HLA-G"}
)
MOUSE_MHC_SYMBOLS: frozenset[str] = frozenset(
    {"H2-K1", "H2-D1", "H2-AB1", "H2-AA", "H2-EB1", "H2-EA", "H2-Q7", "H2-Q10", "H2-T23", "H2-M2"}
)
SPECIES_MIN_MATCHES = 3
SPECIES_MIN_MARGIN = 2
NORMALIZE_TARGET_SUM = 1e4

SYMBOL_COLUMNS: tuple[str, ...] = ("gene_symbols", "gene_symbol", "gene_name", "hugo_symbol", "feature_name")


def detect_species(symbols: Sequence[str]) -> str:
    """Human/Mouse from MHC marker symbols, Unknown when neither clearly wins."""
    human = 0
    mouse = 0
    for raw in symbols:
        s = normalize_symbol(raw)
        if s in HUMAN_MHC_SYMBOLS:
            human += 1
        if s in MOUSE_MHC_SYMBOLS:
            mouse += 1
    if human >= SPECIES_MIN_MATCHES and human >= mouse + SPECIES_MIN_MARGIN:
        return "Human"
    if mouse >= SPECIES_MIN_MATCHES and mouse >= human + SPECIES_MIN_MARGIN:
        return "Mouse"
    return "Unknown"


def build_gene_index(feature_symbols: Sequence[str], *, species: str | None = None) -> GeneIndex:
    """One gene id per distinct normalized symbol, in first-occurrence order.

    Features sharing a symbol map to the same gene id; features with an empty
    symbol map to -1.
    """
    symbols: list[str] = []
    symbol_to_id: dict[str, int] = {}
    gene_id_by_feature = np.full(len(feature_symbols), -1, dtype=np.int64)
    duplicates: list[str] = []
    for feature_idx, raw in enumerate(feature_symbols):
        sym = normalize_symbol(raw)
        if sym == "":
            continue
        existing = symbol_to_id.get(sym)
        if existing is not None:
            duplicates.append(sym)
            gene_id_by_feature[feature_idx] = existing
            continue
        symbol_to_id[sym] = len(symbols)
        gene_id_by_feature[feature_idx] = len(symbols)
        symbols.append(sym)
    if duplicates:
        shown = ", ".join(sorted(set(duplicates))[:10])
        warnings.warn(
            f"{len(duplicates)} features share a gene symbol with an earlier feature and are summed into it: {shown}",
            RuntimeWarning,
            stacklevel=2,
        )
    return GeneIndex(
        symbols=tuple(symbols),
        gene_id_by_feature=gene_id_by_feature,
        symbol_to_id=symbol_to_id,
        species=detect_species(symbols) if species is None else species,
    )


def _feature_to_gene(gene_index: GeneIndex) -> sp.csr_matrix:
    mapped = np.flatnonzero(gene_index.gene_id_by_feature >= 0)
    n_features = int(gene_index.gene_id_by_feature.size)
    return sp.csr_matrix(
        (np.ones(mapped.size, dtype=float), (mapped, gene_index.gene_id_by_feature[mapped])),
        shape=(n_features, gene_index.n_genes),
    )


def _validate_values(X: sp.csr_matrix) -> None:
    if not np.isfinite(X.data).all():
        raise StructuralInputError("Expression matrix contains non-finite values.")
    if np.any(X.data < 0.0):
        raise StructuralInputError("Expression matrix contains negative values.")


def _optional_labels(name: str, values, n_cells: int) -> tuple[str, ...] | None:
    if values is None:
        return None
    out = tuple(str(v) for v in values)
    if len(out) != n_cells:
        raise StructuralInputError(f"{name} has {len(out)} entries for {n_cells} cells.")
    return out


def log_normalize(X: sp.csr_matrix) -> sp.csr_matrix:
    """Scale each cell to 1e4 total counts then log1p, via scanpy."""
    adata = ad.AnnData(X=X.astype(np.float64))
    sc.pp.normalize_total(adata, target_sum=NORMALIZE_TARGET_SUM)
    sc.pp.log1p(adata)
    return sp.csr_matrix(adata.X, dtype=np.float64)


def build_expression_matrix(
    X,
    feature_symbols: Sequence[str],
    barcodes: Sequence[str],
    *,
    normalize: bool = False,
    species: str | None = None,
    sample: Sequence[str] | None = None,
    condition: Sequence[str] | None = None,
    ambient_rna_risk: Sequence[bool] | None = None,
    backend: str | None = None,
) -> ExpressionMatrix:
    """Validate a cells x features matrix and collapse it onto the gene index.

    Raises StructuralInputError when the matrix shape disagrees with the
    barcode or feature lists, when it is empty, or when it holds negative or
    non-finite values.
    """
    raw = sp.csr_matrix(X, dtype=np.float64)
    raw.sum_duplicates()
    n_cells, n_features = raw.shape
    if n_cells == 0 or n_features == 0:
        raise StructuralInputError(f"Expression matrix is empty ({n_cells} cells x {n_features} features).")
    if len(barcodes) != n_cells:
        raise StructuralInputError(f"Matrix has {n_cells} cells but {len(barcodes)} barcodes were supplied.")
    if len(feature_symbols) != n_features:
        raise StructuralInputError(
            f"Matrix has {n_features} features but {len(feature_symbols)} feature symbols were supplied."
        )
    _validate_values(raw)

    libsize = kernels.row_sums(raw, backend=backend)
    nnz = kernels.row_counts_above(raw, 0.0, backend=backend)

    gene_index = build_gene_index(feature_symbols, species=species)
    values = log_normalize(raw) if normalize else raw
    genes = sp.csr_matrix(values @ _feature_to_gene(gene_index), dtype=np.float64)
    genes.sum_duplicates()
    genes.eliminate_zeros()
    genes.sort_indices()

    ambient = None
    if ambient_rna_risk is not None:
        ambient = np.asarray(list(ambient_rna_risk), dtype=bool)
        if ambient.size != n_cells:
            raise StructuralInputError(f"ambient_rna_risk has {ambient.size} entries for {n_cells} cells.")

    return ExpressionMatrix(
        X=genes,
        gene_index=gene_index,
        barcodes=tuple(str(b) for b in barcodes),
        normalized=bool(normalize),
        libsize=libsize,
        nnz=nnz,
        n_features_raw=int(n_features),
        sample=_optional_labels("sample", sample, n_cells),
        condition=_optional_labels("condition", condition, n_cells),
        ambient_rna_risk=ambient,
    )


def feature_symbols(adata: ad.AnnData, symbol_col: str | None = None) -> list[str]:
    if symbol_col is not None:
        if symbol_col not in adata.var.columns:
            raise KeyError(f"adata.var['{symbol_col}'] not found.")
        return [str(s) for s in adata.var[symbol_col]]
    for col in SYMBOL_COLUMNS:
        if col in adata.var.columns:
            return [str(s) for s in adata.var[col]]
    return [str(s) for s in adata.var_names]


def _as_flag(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes")
    return bool(value)


def _obs_values(adata: ad.AnnData, col: str | None):
    if col is None or col not in adata.obs.columns:
        return None
    return adata.obs[col].tolist()


def from_anndata(
    adata: ad.AnnData,
    *,
    normalize: bool = False,
    symbol_col: str | None = None,
    sample_col: str | None = "sample",
    condition_col: str | None = "condition",
    ambient_col: str | None = "ambient_rna_risk",
    layer: str | None = None,
    species: str | None = None,
    backend: str | None = None,
) -> ExpressionMatrix:
    """Build an ExpressionMatrix from a cells x genes AnnData.

    Per-cell ``sample``, ``condition`` and ``ambient_rna_risk`` are read from
    ``adata.obs`` when the columns exist.
    """
    X = adata.layers[layer] if layer is not None else adata.X
    ambient = _obs_values(adata, ambient_col)
    return build_expression_matrix(
        X,
        feature_symbols(adata, symbol_col),
        [str(b) for b in adata.obs_names],
        normalize=normalize,
        species=species,
        sample=_obs_values(adata, sample_col),
        condition=_obs_values(adata, condition_col),
        ambient_rna_risk=[_as_flag(v) for v in ambient] if ambient is not None else None,
        backend=backend,
    )


def read_input(path: str | Path) -> ad.AnnData:
    """Read a 10x matrix directory or an ``.h5ad`` file."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Input '{p}' not found.")
    if p.is_dir():
        return sc.read_10x_mtx(p, var_names="gene_symbols", make_unique=False)
    if p.suffix.lower() == ".h5ad":
        return sc.read_h5ad(p)
    raise ValueError(f"Unsupported input '{p}'. Use a 10x matrix directory or an .h5ad file.")
