"""Map panel symbols onto a dataset's gene index."""

from __future__ import annotations

from typing import Iterable, Sequence

from nuclearqc.core.types import GeneIndex, MappedPanel, PanelAudit, PanelDef, PanelSet
from nuclearqc.panels.defs import KEY_PANELS, MOUSE_ORTHOLOGS, builtin_panels


def normalize_symbol(raw: str) -> str:
    """Upper-case, trimmed symbol; Ensembl ids lose their version suffix."""
    trimmed = str(raw).strip()
    if trimmed == "":
        return ""
    upper = trimmed.upper()
    left, dot, right = upper.rpartition(".")
    if dot and left.startswith("ENS") and right.isdigit():
        return left
    return upper


def map_symbol(species: str, symbol: str, gene_index: GeneIndex) -> int | None:
    sym = normalize_symbol(symbol)
    gene_id = gene_index.lookup(sym)
    if gene_id is not None:
        return gene_id
    if species == "Mouse":
        mapped = MOUSE_ORTHOLOGS.get(sym)
        if mapped is not None:
            return gene_index.lookup(mapped)
    return None


def map_panel(panel: PanelDef, species: str, gene_index: GeneIndex) -> tuple[MappedPanel, PanelAudit]:
    gene_ids: list[int] = []
    missing: list[str] = []
    for symbol in panel.genes:
        gene_id = map_symbol(species, symbol, gene_index)
        if gene_id is None:
            missing.append(symbol)
        else:
            gene_ids.append(gene_id)
    audit = PanelAudit(
        panel_id=panel.id,
        panel_size_defined=len(panel.genes),
        panel_size_mappable=len(gene_ids),
        missing_genes=tuple(missing),
    )
    mapped = MappedPanel(
        id=panel.id,
        name=panel.name,
        group=panel.group,
        gene_ids=tuple(gene_ids),
        missing=tuple(missing),
    )
    return mapped, audit


def load_panels(
    gene_index: GeneIndex,
    *,
    species: str | None = None,
    panels: Sequence[PanelDef] | None = None,
    key_panels: Iterable[str] | None = None,
) -> PanelSet:
    """Map every panel definition in table order and keep an audit per panel."""
    defs = tuple(builtin_panels() if panels is None else panels)
    keys = tuple(KEY_PANELS if key_panels is None else key_panels)
    known = {p.id for p in defs}
    unknown = [k for k in keys if k not in known]
    if unknown:
        raise ValueError(f"Key panels not defined in the panel table: {', '.join(unknown)}.")

    sp = gene_index.species if species is None else species
    mapped: list[MappedPanel] = []
    audits: list[PanelAudit] = []
    for panel in defs:
        m, a = map_panel(panel, sp, gene_index)
        mapped.append(m)
        audits.append(a)
    return PanelSet(panels=tuple(mapped), audits=tuple(audits), key_panels=keys)
