"""Built-in gene panel table."""

from __future__ import annotations

from nuclearqc.core.types import PanelDef

PANEL_GROUPS: tuple[str, ...] = (
    "housekeeping",
    "tf",
    "chromatin",
    "stress",
    "developmental",
    "proliferation",
    "program",
    "confounder",
    "ddr_input",
)

# Panel feeding each immune-program axis.
IMMUNE_AXIS_PANELS: dict[str, str] = {
    "iaa": "immune_activation",
    "dfa": "differentiation_flux",
    "cea": "clonal_engagement",
}

DDR_INPUT_PANELS: tuple[str, ...] = (
    "replication_stress_genes",
    "checkpoint_activation",
    "replication_fork_stability",
    "dna_repair_hr",
    "dna_repair_nhej",
    "chromatin_compaction",
    "chromatin_open_state",
)

# Panels whose median coverage drives the coverage part of confidence.
KEY_PANELS: tuple[str, ...] = (
    "housekeeping_core",
    "tf_basic",
    "chromatin_core",
    "stress_response",
    "developmental_core",
    "proliferation_core",
)

BUILTIN_PANELS: tuple[PanelDef, ...] = (
    PanelDef("housekeeping_core", "Housekeeping Core", "housekeeping", ("ACTB", "GAPDH", "RPLP0", "B2M")),
    PanelDef("tf_basic", "TF Basic", "tf", ("POU5F1", "SOX2", "NANOG", "MYC")),
    PanelDef("chromatin_core", "Chromatin Core", "chromatin", ("SMARCA4", "SMARCB1", "EZH2", "ARID1A")),
    PanelDef("stress_response", "Stress Response", "stress", ("FOS", "JUN", "ATF3", "HSP90AA1")),
    PanelDef("developmental_core", "Developmental Core", "developmental", ("SOX9", "PAX6", "GATA3", "TBX5")),
    PanelDef("proliferation_core", "Proliferation Core", "proliferation", ("MKI67", "TOP2A", "PCNA", "MCM2")),
    PanelDef(
        "immune_activation",
        "Immune Activation",
        "program",
        ("CD69", "CD83", "HLA-DRA", "HLA-DRB1", "CD74"),
    ),
    PanelDef("differentiation_flux", "Differentiation Flux", "program", ("BCL6", "IRF4", "MYC")),
    PanelDef(
        "clonal_engagement",
        "Clonal Engagement",
        "program",
        ("HNRNPA1", "SRSF1", "HNRNPC", "RPLP0", "RPL13A"),
    ),
    PanelDef(
        "replication_stress_genes",
        "Replication Stress",
        "ddr_input",
        ("ATR", "CHEK1", "RPA1", "RPA2", "RPA3", "RAD17", "CLSPN"),
    ),
    PanelDef(
        "checkpoint_activation",
        "Checkpoint Activation",
        "ddr_input",
        ("ATM", "CHEK2", "TP53", "CDKN1A"),
    ),
    PanelDef(
        "replication_fork_stability",
        "Replication Fork Stability",
        "ddr_input",
        ("TIMELESS", "TIPIN", "MCM3", "MCM4", "MCM5", "MCM6", "MCM7", "CDC45", "GINS1"),
    ),
    PanelDef(
        "dna_repair_hr",
        "DNA Repair (HR)",
        "ddr_input",
        ("BRCA1", "BRCA2", "RAD51", "RAD51B", "RAD51C", "RAD51D", "PALB2", "BARD1", "RAD52"),
    ),
    PanelDef(
        "dna_repair_nhej",
        "DNA Repair (NHEJ)",
        "ddr_input",
        ("LIG4", "XRCC4", "XRCC5", "XRCC6", "PRKDC", "NHEJ1", "PNKP"),
    ),
    PanelDef(
        "chromatin_compaction",
        "Chromatin Compaction",
        "ddr_input",
        ("CBX1", "CBX3", "CBX5", "SUV39H1", "SUV39H2", "SETDB1", "EHMT2"),
    ),
    PanelDef(
        "chromatin_open_state",
        "Chromatin Open State",
        "ddr_input",
        ("ARID1B", "KDM6A", "KAT2B", "EP300"),
    ),
)

# Human panel symbol -> mouse symbol where the mouse name is not a case variant.
MOUSE_ORTHOLOGS: dict[str, str] = {
    "TP53": "TRP53",
    "HLA-A": "H2-K1",
    "HLA-B": "H2-D1",
    "HLA-C": "H2-Q7",
    "HLA-DRA": "H2-AA",
    "HLA-DRB1": "H2-AB1",
}


def builtin_panels() -> tuple[PanelDef, ...]:
    return BUILTIN_PANELS
