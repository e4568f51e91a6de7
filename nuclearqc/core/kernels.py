"""Deterministic numeric kernels shared by the scoring stages.

Two interchangeable backends walk a cells x genes CSR matrix:

- ``loop``: one cell slice at a time.
- ``batch``: elementwise work over the whole ``data`` array, then one
  reduction per cell.

Every floating-point reduction goes through ``math.fsum`` (exactly rounded), so
both backends return bit-identical values and the result never depends on the
order in which terms are added. The backend is chosen once per process from
``NUCLEARQC_KERNEL`` and may be overridden per call.
"""

from __future__ import annotations

import math
import os

import numpy as np
import scipy.sparse as sp

KERNEL_ENV = "NUCLEARQC_KERNEL"
BACKENDS: tuple[str, ...] = ("batch", "loop")
DEFAULT_BACKEND = "batch"


def _backend_from_env() -> str:
    name = os.environ.get(KERNEL_ENV, DEFAULT_BACKEND).strip().lower()
    if name not in BACKENDS:
        raise ValueError(
            f"Unsupported {KERNEL_ENV}='{name}'. Use one of: {', '.join(BACKENDS)}."
        )
    return name


ACTIVE_BACKEND = _backend_from_env()


def backend_name(backend: str | None = None) -> str:
    name = ACTIVE_BACKEND if backend is None else str(backend).strip().lower()
    if name not in BACKENDS:
        raise ValueError(f"Unknown kernel backend '{name}'.")
    return name


def exact_sum(values) -> float:
    arr = np.asarray(values, dtype=float).ravel()
    if arr.size == 0:
        return 0.0
    return math.fsum(arr.tolist())


def max_or_zero(values) -> float:
    arr = np.asarray(values, dtype=float).ravel()
    if arr.size == 0:
        return 0.0
    m = float(np.max(arr))
    return m if math.isfinite(m) else 0.0


def count_positive(values) -> int:
    arr = np.asarray(values, dtype=float).ravel()
    return int(np.count_nonzero(arr > 0.0))


def entropy(values) -> tuple[float, float]:
    """Shannon entropy (nats) of the positive entries and its ``ln(k)`` normalization.

    ``k`` is the number of positive entries; the normalized value is 0 when
    ``k <= 1``.
    """
    arr = np.asarray(values, dtype=float).ravel()
    pos = arr[arr > 0.0]
    k = int(pos.size)
    if k == 0:
        return 0.0, 0.0
    total = math.fsum(pos.tolist())
    if total <= 0.0:
        return 0.0, 0.0
    p = pos / total
    h = 0.0 - math.fsum((p * np.log(p)).tolist())
    h_norm = h / math.log(k) if k >= 2 else 0.0
    return h, h_norm


def _as_csr(matrix) -> sp.csr_matrix:
    if sp.isspmatrix_csr(matrix):
        return matrix
    return sp.csr_matrix(matrix)


def _segments(indptr: np.ndarray) -> list[tuple[int, int]]:
    return [(int(indptr[i]), int(indptr[i + 1])) for i in range(indptr.size - 1)]


def row_sums(matrix, backend: str | None = None) -> np.ndarray:
    """Exact per-row sums of a CSR matrix."""
    csr = _as_csr(matrix)
    name = backend_name(backend)
    out = np.zeros(csr.shape[0], dtype=float)
    if name == "loop":
        for i, (start, end) in enumerate(_segments(csr.indptr)):
            out[i] = exact_sum(csr.data[start:end])
        return out
    chunks = np.split(np.asarray(csr.data, dtype=float), csr.indptr[1:-1])
    for i, chunk in enumerate(chunks):
        out[i] = math.fsum(chunk.tolist()) if chunk.size else 0.0
    return out


def row_counts_above(matrix, threshold: float = 0.0, backend: str | None = None) -> np.ndarray:
    """Per-row count of stored values strictly above ``threshold``."""
    csr = _as_csr(matrix)
    name = backend_name(backend)
    thr = float(threshold)
    if name == "loop":
        out = np.zeros(csr.shape[0], dtype=np.int64)
        for i, (start, end) in enumerate(_segments(csr.indptr)):
            out[i] = int(np.count_nonzero(csr.data[start:end] > thr))
        return out
    mask = (np.asarray(csr.data, dtype=float) > thr).astype(np.int64)
    csum = np.concatenate([[0], np.cumsum(mask)])
    return (csum[csr.indptr[1:]] - csum[csr.indptr[:-1]]).astype(np.int64)


def row_entropies(matrix, backend: str | None = None) -> tuple[np.ndarray, np.ndarray]:
    """Per-row ``(entropy, normalized entropy)`` over positive stored values."""
    csr = _as_csr(matrix)
    name = backend_name(backend)
    n_rows = csr.shape[0]
    h = np.zeros(n_rows, dtype=float)
    h_norm = np.zeros(n_rows, dtype=float)
    if name == "loop":
        for i, (start, end) in enumerate(_segments(csr.indptr)):
            h[i], h_norm[i] = entropy(csr.data[start:end])
        return h, h_norm

    data = np.asarray(csr.data, dtype=float)
    positive = data > 0.0
    row_of = np.repeat(np.arange(n_rows), np.diff(csr.indptr))
    pos_rows = row_of[positive]
    pos_vals = data[positive]
    bounds = np.searchsorted(pos_rows, np.arange(n_rows + 1))
    totals = np.zeros(n_rows, dtype=float)
    for i in range(n_rows):
        start, end = int(bounds[i]), int(bounds[i + 1])
        if end > start:
            totals[i] = math.fsum(pos_vals[start:end].tolist())
    denom = totals[pos_rows]
    safe = denom > 0.0
    p = np.ones_like(pos_vals)
    p[safe] = pos_vals[safe] / denom[safe]
    terms = p * np.log(p)
    for i in range(n_rows):
        start, end = int(bounds[i]), int(bounds[i + 1])
        k = end - start
        if k == 0 or totals[i] <= 0.0:
            continue
        h[i] = 0.0 - math.fsum(terms[start:end].tolist())
        h_norm[i] = h[i] / math.log(k) if k >= 2 else 0.0
    return h, h_norm
