"""Population order statistics for nuclearqc."""

from nuclearqc.stats.quantiles import (
    activation_cutpoints,
    build_population_summary,
    describe,
    fraction_where,
    median,
    p10,
    p90,
    p99,
    quantile_index,
    quantile_indexed,
    relative_activation,
    with_axis_p90,
)

__all__ = [
    "quantile_index",
    "quantile_indexed",
    "median",
    "p10",
    "p90",
    "p99",
    "activation_cutpoints",
    "relative_activation",
    "build_population_summary",
    "with_axis_p90",
    "fraction_where",
    "describe",
]
