"""DNA-damage-response metrics: rss, drbi, cci and trci.

Inputs are the population-relative activations of the seven DDR panels
(always relative, whatever the profile's activation mode) plus the finalized
``tbi`` as a transcriptional activity proxy.
"""

from __future__ import annotations

from typing import Mapping

import numpy as np

from nuclearqc.core.utils import clip01, rescale_signed01


def ddr_cell(
    replication_stress: float,
    checkpoint: float,
    fork_stability: float,
    hr: float,
    nhej: float,
    compaction: float,
    open_state: float,
    transcription: float,
) -> dict[str, float]:
    fork_instability = clip01(1.0 - fork_stability)
    rss = clip01(
        0.40 * replication_stress + 0.30 * checkpoint + 0.20 * fork_instability - 0.20 * fork_stability
    )
    # hr - nhej lies in [-1, 1]
    drbi = rescale_signed01(hr - nhej)
    cci = clip01(0.50 * compaction - 0.40 * open_state)
    trci = clip01(0.35 * replication_stress + 0.35 * transcription - 0.25 * fork_stability)
    return {"rss": rss, "drbi": drbi, "cci": cci, "trci": trci}


def compute_ddr(norm: Mapping[str, np.ndarray], tbi: np.ndarray) -> dict[str, np.ndarray]:
    n_cells = int(np.asarray(tbi).size)
    out = {name: np.zeros(n_cells, dtype=float) for name in ("rss", "drbi", "cci", "trci")}
    for cell in range(n_cells):
        values = ddr_cell(
            float(norm["replication_stress_genes"][cell]),
            float(norm["checkpoint_activation"][cell]),
            float(norm["replication_fork_stability"][cell]),
            float(norm["dna_repair_hr"][cell]),
            float(norm["dna_repair_nhej"][cell]),
            float(norm["chromatin_compaction"][cell]),
            float(norm["chromatin_open_state"][cell]),
            float(tbi[cell]),
        )
        for name, value in values.items():
            out[name][cell] = value
    return out
