"""Composite scores nps, ci and rls with their top contributing terms."""

from __future__ import annotations

import numpy as np

from nuclearqc.core.profiles import ScoringProfile
from nuclearqc.core.types import AxisTable, CompositeTable, PopulationSummary
from nuclearqc.core.utils import clip01
from nuclearqc.scoring.confidence import axis_structure

MAX_DRIVERS = 5
RLS_FLOOR_AXES: tuple[str, ...] = ("iaa", "dfa", "nsai")


def top_drivers(items: list[tuple[str, float]], k: int = MAX_DRIVERS) -> list[tuple[str, float]]:
    """Largest terms by magnitude, ties broken by name."""
    ordered = sorted(items, key=lambda item: (-abs(item[1]), item[0]))
    return ordered[:k]


def format_drivers(drivers: list[tuple[str, float]]) -> str:
    return ",".join(f"{name}:{value:.6f}" for name, value in drivers)


def nps_score(a: dict[str, float], profile: ScoringProfile) -> float:
    return clip01(
        profile.nps_w_tbi * a["tbi"]
        + profile.nps_w_rci * a["rci"]
        - profile.nps_w_pds * a["pds"]
        - profile.nps_w_trs * a["trs"]
    )


def ci_score(a: dict[str, float], profile: ScoringProfile) -> float:
    ci = clip01(profile.ci_w_trs * a["trs"] + profile.ci_w_pds * a["pds"] - profile.ci_w_tbi * a["tbi"])
    if profile.include_ddr:
        ci = clip01(ci + profile.ci_w_cci * a["cci"])
    return ci


def rls_floor_active(population: PopulationSummary, profile: ScoringProfile) -> bool:
    return any(population.axis_p90.get(name, 0.0) >= profile.rls_floor_p90 for name in RLS_FLOOR_AXES)


def rls_immune_aware(
    a: dict[str, float],
    axis_variance: float,
    confidence: float,
    floor_active: bool,
    profile: ScoringProfile,
) -> float:
    structure = axis_structure(axis_variance, profile)
    rls = clip01(
        profile.rls_w_tbi * a["tbi"]
        + profile.rls_w_dfa * a["dfa"]
        + profile.rls_w_iaa * a["iaa"]
        + profile.rls_w_nsai * a["nsai"]
        + profile.rls_w_structure * structure
        - profile.rls_w_rigidity * max(a["trs"], a["pds"])
    )
    allow_zero = (
        a["tbi"] < profile.rls_zero_axis_max
        and a["dfa"] < profile.rls_zero_axis_max
        and a["iaa"] < profile.rls_zero_axis_max
        and a["nsai"] < profile.rls_zero_axis_max
        and structure < profile.rls_zero_structure_max
        and confidence >= profile.rls_zero_confidence_min
    )
    if floor_active and not allow_zero:
        rls = max(rls, profile.rls_floor)
    return rls


def rls_strict_bulk(a: dict[str, float], confidence: float, profile: ScoringProfile) -> float:
    base = clip01(
        profile.rls_bulk_w_tbi * a["tbi"]
        + profile.rls_bulk_w_rci * a["rci"]
        - profile.rls_bulk_w_pds * a["pds"]
        - profile.rls_bulk_w_nsai * a["nsai"]
    )
    return base * confidence


def cell_drivers(a: dict[str, float], profile: ScoringProfile) -> dict[str, list[tuple[str, float]]]:
    nps_terms = [
        ("high_tbi", profile.nps_w_tbi * a["tbi"]),
        ("high_rci", profile.nps_w_rci * a["rci"]),
        ("high_pds", -profile.nps_w_pds * a["pds"]),
        ("high_trs", -profile.nps_w_trs * a["trs"]),
    ]
    ci_terms = [
        ("high_trs", profile.ci_w_trs * a["trs"]),
        ("high_pds", profile.ci_w_pds * a["pds"]),
        ("high_tbi", -profile.ci_w_tbi * a["tbi"]),
    ]
    rls_terms = [
        ("high_tbi", profile.rls_bulk_w_tbi * a["tbi"]),
        ("high_rci", profile.rls_bulk_w_rci * a["rci"]),
        ("high_pds", -profile.rls_bulk_w_pds * a["pds"]),
        ("high_nsai", -profile.rls_bulk_w_nsai * a["nsai"]),
    ]
    if profile.include_ddr:
        ci_terms.append(("high_cci", profile.ci_w_cci * a["cci"]))
        rls_terms.append(("high_rss", -profile.rls_w_rss * a["rss"]))
        rls_terms.append(("high_trci", -profile.rls_w_trci * a["trci"]))
    return {
        "nps": top_drivers(nps_terms),
        "ci": top_drivers(ci_terms),
        "rls": top_drivers(rls_terms),
    }


def compute_composites(
    axes: AxisTable,
    confidence: np.ndarray,
    confidence_breakdown: np.ndarray,
    population: PopulationSummary,
    profile: ScoringProfile,
) -> CompositeTable:
    """nps, ci and rls for every cell.

    ``population`` must already carry the p90 of iaa, dfa and nsai; the rls
    floor rule reads it.
    """
    n_cells = axes.n_cells
    nps = np.zeros(n_cells, dtype=float)
    ci = np.zeros(n_cells, dtype=float)
    rls = np.zeros(n_cells, dtype=float)
    drivers: dict[str, list[list[tuple[str, float]]]] = {"nps": [], "ci": [], "rls": []}
    floor_active = rls_floor_active(population, profile)

    for cell in range(n_cells):
        a = axes.vector(cell)
        conf = float(confidence[cell])
        nps[cell] = nps_score(a, profile)
        ci[cell] = ci_score(a, profile)
        if profile.immune_aware:
            value = rls_immune_aware(a, float(axes.axis_variance[cell]), conf, floor_active, profile)
        else:
            value = rls_strict_bulk(a, conf, profile)
        if profile.include_ddr:
            value = clip01(value - profile.rls_w_rss * a["rss"] - profile.rls_w_trci * a["trci"])
        rls[cell] = value
        for name, items in cell_drivers(a, profile).items():
            drivers[name].append(items)

    return CompositeTable(
        nps=nps,
        ci=ci,
        rls=rls,
        confidence=np.asarray(confidence, dtype=float),
        confidence_breakdown=np.asarray(confidence_breakdown, dtype=float),
        drivers=drivers,
    )
