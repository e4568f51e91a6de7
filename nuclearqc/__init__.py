"""nuclearqc public API."""

from nuclearqc._version import __version__
from nuclearqc.core.errors import ProfileConfigError, StructuralInputError
from nuclearqc.core.profiles import ScoringProfile, resolve_profile
from nuclearqc.panels.mapping import load_panels


def score_matrix(*args, **kwargs):
    """Lazy wrapper to avoid importing scanpy at import time."""
    from nuclearqc.pipeline.run import score_matrix as _score_matrix

    return _score_matrix(*args, **kwargs)


def from_anndata(*args, **kwargs):
    from nuclearqc.io import from_anndata as _from_anndata

    return _from_anndata(*args, **kwargs)


__all__ = [
    "__version__",
    "ProfileConfigError",
    "StructuralInputError",
    "ScoringProfile",
    "resolve_profile",
    "load_panels",
    "score_matrix",
    "from_anndata",
]
