"""Named scoring profiles: every threshold and weight used by the scoring stages.

A profile is selected once per run and never mutated. Formula branching between
the bulk-oriented and immune-aware variants reads ``scoring_mode`` and
``activation_mode`` from the profile only.
"""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass
from typing import Any, Mapping

from nuclearqc.core.errors import ProfileConfigError

ACTIVATION_MODES: tuple[str, ...] = ("absolute", "relative", "hybrid")
SCORING_MODES: tuple[str, ...] = ("immune_aware", "strict_bulk")
PROFILE_NAMES: tuple[str, ...] = ("default_v1", "immune_v1")


@dataclass(frozen=True)
class ScoringProfile:
    name: str = "default_v1"

    # expression support / tbi
    expr_min: float = 0.0
    min_expr_genes: int = 10
    frac_rescale_min: float = 0.05
    frac_rescale_max: float = 0.60
    tbi_w1: float = 0.4
    tbi_w2: float = 0.4
    tbi_w3: float = 0.2

    # panel minimums
    tf_min_sum: float = 1.0
    program_min_sum: float = 1.0

    # trs / nsai
    trs_a: float = 0.4
    trs_b: float = 0.3
    trs_c: float = 0.3
    stress_boost: float = 0.0

    # immune-program activation
    activation_mode: str = "absolute"
    rel_p70: float = 0.70
    rel_p85: float = 0.85

    scoring_mode: str = "strict_bulk"
    include_ddr: bool = True

    # composites
    nps_w_tbi: float = 0.45
    nps_w_rci: float = 0.35
    nps_w_pds: float = 0.20
    nps_w_trs: float = 0.20
    ci_w_trs: float = 0.55
    ci_w_pds: float = 0.45
    ci_w_tbi: float = 0.15
    ci_w_cci: float = 0.15
    rls_w_tbi: float = 0.35
    rls_w_dfa: float = 0.20
    rls_w_iaa: float = 0.20
    rls_w_nsai: float = 0.15
    rls_w_structure: float = 0.10
    rls_w_rigidity: float = 0.30
    rls_bulk_w_tbi: float = 0.45
    rls_bulk_w_rci: float = 0.35
    rls_bulk_w_pds: float = 0.25
    rls_bulk_w_nsai: float = 0.15
    rls_w_rss: float = 0.25
    rls_w_trci: float = 0.20
    rls_floor: float = 0.1
    rls_floor_p90: float = 0.8
    rls_zero_axis_max: float = 0.2
    rls_zero_structure_max: float = 0.05
    rls_zero_confidence_min: float = 0.6

    # confidence
    confidence_low: float = 0.4
    confidence_w_coverage: float = 0.30
    confidence_w_support: float = 0.25
    confidence_w_structure: float = 0.25
    confidence_w_consistency: float = 0.20
    key_coverage_denominator: float = 0.6
    axis_variance_denominator: float = 0.05
    consistency_trs_tbi_ceiling: float = 1.2
    consistency_pds_tbi_ceiling: float = 1.2
    consistency_trs_rci_ceiling: float = 1.3
    confidence_floor: float = 0.2
    confidence_floor_structure: float = 0.2
    legacy_w_coverage: float = 0.5
    legacy_w_expression: float = 0.3
    legacy_w_ambient: float = 0.2

    # regimes
    collapsed_tbi_max: float = 0.15
    collapsed_entropy_max: float = 0.10
    rigid_trs_min: float = 0.75
    rigid_nsai_min: float = 0.55
    rigid_rci_max: float = 0.35
    committed_trs_min: float = 0.70
    committed_pds_min: float = 0.60
    committed_tbi_max: float = 0.45
    committed_nsai_max: float = 0.55
    stress_nsai_min: float = 0.65
    stress_rci_min: float = 0.35
    stress_tbi_min: float = 0.35
    stress_pds_max: float = 0.60
    plastic_nps_min: float = 0.60
    plastic_trs_max: float = 0.45
    plastic_pds_max: float = 0.50
    transient_nps_min: float = 0.45
    transient_iaa_min: float = 0.35
    transient_dfa_min: float = 0.35
    transient_trs_max: float = 0.55
    transient_pds_max: float = 0.65

    # flags
    low_key_coverage: float = 0.4
    high_program_dominance: float = 0.75
    high_stress_bias: float = 0.75
    cell_cycle_share: float = 0.5
    low_confidence_axis_variance: float = 0.01
    high_replication_stress: float = 0.70
    hr_dominant_drbi: float = 0.75
    nhej_dominant_drbi: float = 0.25
    hypercompact_cci: float = 0.70
    high_tr_conflict: float = 0.70

    @property
    def immune_aware(self) -> bool:
        return self.scoring_mode == "immune_aware"

    def to_json(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


def default_v1() -> ScoringProfile:
    return ScoringProfile()


def immune_v1() -> ScoringProfile:
    return dataclasses.replace(
        default_v1(),
        name="immune_v1",
        activation_mode="hybrid",
        min_expr_genes=5,
        tf_min_sum=0.5,
        program_min_sum=0.5,
        scoring_mode="immune_aware",
    )


_BUILDERS = {
    "default_v1": default_v1,
    "immune_v1": immune_v1,
}

_WEIGHT_PREFIXES = ("tbi_w", "trs_", "nps_w", "ci_w", "rls_w", "rls_bulk_w", "confidence_w", "legacy_w")


def _coerce_override(field: dataclasses.Field, key: str, value: Any) -> Any:
    ftype = field.type if isinstance(field.type, str) else getattr(field.type, "__name__", "")
    if ftype == "bool":
        if not isinstance(value, bool):
            raise ProfileConfigError(f"Profile override '{key}' must be a boolean, got {value!r}.")
        return value
    if ftype == "int":
        if isinstance(value, bool) or not isinstance(value, int):
            raise ProfileConfigError(f"Profile override '{key}' must be an integer, got {value!r}.")
        return int(value)
    if ftype == "float":
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ProfileConfigError(f"Profile override '{key}' must be a number, got {value!r}.")
        if not math.isfinite(value):
            raise ProfileConfigError(f"Profile override '{key}' must be finite, got {value!r}.")
        return float(value)
    if not isinstance(value, str):
        raise ProfileConfigError(f"Profile override '{key}' must be a string, got {value!r}.")
    return value.strip().lower()


def validate_profile(profile: ScoringProfile) -> ScoringProfile:
    """Reject inconsistent constants before any cell is scored."""
    if profile.activation_mode not in ACTIVATION_MODES:
        raise ProfileConfigError(
            f"activation_mode must be one of {', '.join(ACTIVATION_MODES)}; got '{profile.activation_mode}'."
        )
    if profile.scoring_mode not in SCORING_MODES:
        raise ProfileConfigError(
            f"scoring_mode must be one of {', '.join(SCORING_MODES)}; got '{profile.scoring_mode}'."
        )
    if profile.min_expr_genes < 0:
        raise ProfileConfigError("min_expr_genes must be non-negative.")
    if profile.frac_rescale_max <= profile.frac_rescale_min:
        raise ProfileConfigError("frac_rescale_max must exceed frac_rescale_min.")
    for key in ("rel_p70", "rel_p85"):
        q = float(getattr(profile, key))
        if not 0.0 < q < 1.0:
            raise ProfileConfigError(f"{key} must lie in (0, 1); got {q}.")
    if profile.rel_p70 >= profile.rel_p85:
        raise ProfileConfigError("rel_p70 must be below rel_p85.")
    for field in dataclasses.fields(profile):
        if field.name.startswith(_WEIGHT_PREFIXES) or field.name.endswith("_denominator"):
            value = float(getattr(profile, field.name))
            if value < 0.0:
                raise ProfileConfigError(f"{field.name} must be non-negative; got {value}.")
    for key in ("key_coverage_denominator", "axis_variance_denominator"):
        if float(getattr(profile, key)) <= 0.0:
            raise ProfileConfigError(f"{key} must be positive.")
    if profile.nhej_dominant_drbi >= profile.hr_dominant_drbi:
        raise ProfileConfigError("nhej_dominant_drbi must be below hr_dominant_drbi.")
    return profile


def resolve_profile(
    name: str = "immune_v1",
    overrides: Mapping[str, Any] | None = None,
    *,
    strict_nuclear: bool = False,
) -> ScoringProfile:
    """Build the run profile from a profile name, overrides and the strict flag.

    ``strict_nuclear`` forces the bulk-oriented scoring variant and leaves
    every other constant untouched.
    """
    key = str(name).strip().lower()
    if key not in _BUILDERS:
        raise ProfileConfigError(
            f"Unknown scoring profile '{name}'. Use one of: {', '.join(PROFILE_NAMES)}."
        )
    profile = _BUILDERS[key]()

    if overrides:
        fields = {f.name: f for f in dataclasses.fields(ScoringProfile)}
        changes: dict[str, Any] = {}
        for okey, value in overrides.items():
            if okey == "name" or okey not in fields:
                raise ProfileConfigError(f"Unknown profile override '{okey}'.")
            changes[okey] = _coerce_override(fields[okey], okey, value)
        profile = dataclasses.replace(profile, **changes)

    if strict_nuclear:
        profile = dataclasses.replace(profile, scoring_mode="strict_bulk")
    return validate_profile(profile)
