"""Core types, profiles and numeric kernels."""

from nuclearqc.core.errors import ProfileConfigError, StructuralInputError
from nuclearqc.core.profiles import (
    ACTIVATION_MODES,
    PROFILE_NAMES,
    SCORING_MODES,
    ScoringProfile,
    default_v1,
    immune_v1,
    resolve_profile,
    validate_profile,
)
from nuclearqc.core.types import (
    ALL_AXIS_NAMES,
    AXIS_COLUMNS,
    AXIS_NAMES,
    COMPOSITE_COLUMNS,
    COMPOSITE_NAMES,
    DDR_NAMES,
    AxisTable,
    CompositeTable,
    ExpressionMatrix,
    GeneIndex,
    PanelScores,
    PanelSet,
    PopulationSummary,
    SampleRecord,
    ScoringResult,
)

__all__ = [
    "StructuralInputError",
    "ProfileConfigError",
    "ACTIVATION_MODES",
    "SCORING_MODES",
    "PROFILE_NAMES",
    "ScoringProfile",
    "default_v1",
    "immune_v1",
    "resolve_profile",
    "validate_profile",
    "AXIS_NAMES",
    "DDR_NAMES",
    "ALL_AXIS_NAMES",
    "COMPOSITE_NAMES",
    "AXIS_COLUMNS",
    "COMPOSITE_COLUMNS",
    "GeneIndex",
    "ExpressionMatrix",
    "PanelSet",
    "PanelScores",
    "PopulationSummary",
    "AxisTable",
    "CompositeTable",
    "ScoringResult",
    "SampleRecord",
]
