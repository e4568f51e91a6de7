"""Exception types for fatal input and configuration problems."""

from __future__ import annotations


class StructuralInputError(ValueError):
    """Expression matrix and its indices disagree; the run must abort."""


class ProfileConfigError(ValueError):
    """Unknown scoring profile or invalid threshold override."""
