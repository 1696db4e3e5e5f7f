"""
Exceptions raised while building and evaluating term structures.

Every error carries the context known at the point it is raised (curve id,
as-of date, failing instrument, proximate numeric cause); the builder fills in
missing curve id and as-of date as the error propagates.
"""

from datetime import date
from typing import Optional


class CurveError(Exception):
    """Base exception for all term structure errors."""

    def __init__(
        self,
        message: str,
        curve_id: Optional[str] = None,
        as_of: Optional[date] = None,
        instrument: Optional[str] = None,
        cause: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.curve_id = curve_id
        self.as_of = as_of
        self.instrument = instrument
        self.cause = cause

    def with_context(
        self,
        curve_id: Optional[str] = None,
        as_of: Optional[date] = None
    ) -> "CurveError":
        """Fill in curve id and as-of date where not already set."""
        if self.curve_id is None:
            self.curve_id = curve_id
        if self.as_of is None:
            self.as_of = as_of
        return self

    def __str__(self) -> str:
        parts = []
        if self.curve_id is not None:
            parts.append(f"curve={self.curve_id}")
        if self.as_of is not None:
            parts.append(f"as_of={self.as_of.isoformat()}")
        if self.instrument is not None:
            parts.append(f"instrument={self.instrument}")
        if not parts:
            return self.message
        return f"{self.message} [{', '.join(parts)}]"


class ConfigurationError(CurveError):
    """Invalid curve setup: never retried."""


class CalibrationError(CurveError):
    """Bootstrap or fit failed to reach tolerance."""


class NumericDomainError(CurveError):
    """Value outside the domain of a numeric operation."""


class OutOfRangeError(NumericDomainError):
    """Evaluation beyond the built range with extrapolation disabled."""


__all__ = [
    "CurveError",
    "ConfigurationError",
    "CalibrationError",
    "NumericDomainError",
    "OutOfRangeError",
]
