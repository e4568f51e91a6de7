from __future__ import annotations

import os

import anndata as ad
import matplotlib
import numpy as np
import pandas as pd
import pytest

os.environ.setdefault("MPLBACKEND", "Agg")
matplotlib.use("Agg", force=True)

from nuclearqc.panels.defs import BUILTIN_PANELS

N_CELLS = 60
N_FILLER = 40
COLLAPSED_CELLS = (0, 1, 2)


def _panel_symbols() -> list[str]:
    seen: list[str] = []
    for panel in BUILTIN_PANELS:
        for gene in panel.genes:
            if gene not in seen:
                seen.append(gene)
    return seen


def make_synthetic_adata(seed: int = 7) -> ad.AnnData:
    symbols = _panel_symbols() + ["HLA-A", "HLA-B", "HLA-C"] + [f"FILLER{i}" for i in range(N_FILLER)]
    rng = np.random.default_rng(seed)
    X = rng.poisson(1.5, size=(N_CELLS, len(symbols))).astype(float)
    for cell in COLLAPSED_CELLS:
        X[cell, :] = 0.0
        X[cell, -1] = 4.0
        X[cell, -2] = 1.0
    barcodes = [f"bc{(i * 37) % N_CELLS:03d}" for i in range(N_CELLS)]
    obs = pd.DataFrame(
        {
            "sample": ["s1"] * (N_CELLS // 2) + ["s2"] * (N_CELLS - N_CELLS // 2),
            "condition": ["ctrl"] * N_CELLS,
        },
        index=barcodes,
    )
    var = pd.DataFrame(index=symbols)
    return ad.AnnData(X=X, obs=obs, var=var)


@pytest.fixture
def synthetic_adata() -> ad.AnnData:
    return make_synthetic_adata()


@pytest.fixture
def synthetic_matrix(synthetic_adata):
    from nuclearqc.io import from_anndata

    return from_anndata(synthetic_adata)


@pytest.fixture
def synthetic_h5ad(tmp_path, synthetic_adata):
    path = tmp_path / "tiny.h5ad"
    synthetic_adata.write_h5ad(path)
    return path
