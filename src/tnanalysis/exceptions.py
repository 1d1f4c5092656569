"""Exception hierarchy raised by tnanalysis."""

from __future__ import annotations


class TNAnalysisError(Exception):
    """Base class for tnanalysis-specific exceptions."""


class ConfigurationError(TNAnalysisError, ValueError):
    """Raised when a builder or algebra call receives inconsistent structure."""


class IndexMismatchError(TNAnalysisError, ValueError):
    """Raised when tensor indices do not line up (sizes, duplicates, index sets)."""
