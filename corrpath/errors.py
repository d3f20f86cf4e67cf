"""
corrpath/errors.py
==================
Exception hierarchy for the path estimation engine.

Every failure is a modeling error rather than a transient fault, so nothing
here is retried. Each exception carries a ``context`` dict so callers can
handle failure modes programmatically.
"""

from __future__ import annotations

from typing import Optional


class PathModelError(Exception):
    """Base exception for all corrpath errors."""

    def __init__(self, message: str, context: Optional[dict] = None):
        super().__init__(message)
        self.context = context or {}


class ValidationError(PathModelError):
    """Raised when the correlation matrix fails validation.

    Individual findings are non-fatal on their own; together they block
    estimation. ``errors`` holds every finding, ``warnings`` the advisory ones
    gathered alongside.
    """

    def __init__(self, errors: list[str], warnings: Optional[list[str]] = None):
        super().__init__(f"Correlation matrix is invalid ({len(errors)} problem(s)).")
        self.errors = list(errors)
        self.warnings = list(warnings or [])


class ModelSpecificationError(PathModelError):
    """Raised for malformed variables, edges or model syntax."""

    pass


class MatrixParseError(ModelSpecificationError):
    """Raised when matrix text cannot be parsed into a correlation matrix."""

    pass


class MissingDataError(PathModelError):
    """Raised when an edge references a pair with no usable r or n."""

    def __init__(self, message: str, pair: tuple[str, str]):
        super().__init__(message, {"pair": pair})
        self.pair = pair


class EmptyModelError(PathModelError):
    """Raised when no structural edge was supplied."""

    pass


class CyclicModelError(PathModelError):
    """Raised when the edge set contains a directed cycle."""

    def __init__(self, message: str, cycle: list[str]):
        super().__init__(message, {"cycle": cycle})
        self.cycle = cycle


class SingularMatrixError(PathModelError):
    """Raised when a required inverse does not exist."""

    def __init__(self, message: str, operation: str = ""):
        super().__init__(message, {"operation": operation})
        self.operation = operation


class NotPositiveDefiniteError(PathModelError):
    """Raised when the observed or implied matrix has a non-positive determinant."""

    pass


class InvalidTotalNError(PathModelError):
    """Raised when no valid pairwise N exists or the aggregated N is <= 2."""

    pass
