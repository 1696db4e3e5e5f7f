"""
Survival probability curves.

Consumed by YieldPlusDefaultCurve, which blends a yield curve with the
expected loss implied by one or more default curves.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Sequence, Union

import numpy as np

from ..conventions import DayCount, year_fraction
from ..exceptions import ConfigurationError, NumericDomainError
from .interpolation import LogLinearInterpolator


class SurvivalCurve(ABC):
    """
    Survival probability S(t) with a recovery rate.

    Attributes:
        reference_date: Valuation date (S(0) = 1)
        recovery_rate: Expected recovery on default, in [0, 1]
        day_count: Day count for time calculations
    """

    def __init__(self, reference_date: date, recovery_rate: float, day_count: DayCount):
        if not 0.0 <= recovery_rate <= 1.0:
            raise ConfigurationError(f"Recovery rate must be in [0, 1], got {recovery_rate}")
        self.reference_date = reference_date
        self.recovery_rate = recovery_rate
        self.day_count = day_count

    def _to_time(self, t: Union[float, date]) -> float:
        if isinstance(t, date):
            t = year_fraction(self.reference_date, t, self.day_count)
        if t < 0:
            raise NumericDomainError(f"Negative time {t} given")
        return float(t)

    def survival_probability(self, t: Union[float, date]) -> float:
        """Probability of no default before t."""
        t = self._to_time(t)
        if t == 0:
            return 1.0
        return self._survival_impl(t)

    @abstractmethod
    def _survival_impl(self, t: float) -> float:
        """Survival probability at t > 0."""

    def hazard_rate(self, t: Union[float, date], dt: float = 1e-4) -> float:
        """Instantaneous hazard rate -d/dt log S(t)."""
        t = self._to_time(t)
        return float(np.log(self.survival_probability(t) / self.survival_probability(t + dt)) / dt)


class FlatHazardRateCurve(SurvivalCurve):
    """Constant hazard rate: S(t) = exp(-h t)."""

    def __init__(
        self,
        reference_date: date,
        hazard_rate: float,
        recovery_rate: float = 0.4,
        day_count: DayCount = DayCount.ACT_365
    ):
        super().__init__(reference_date, recovery_rate, day_count)
        if hazard_rate < 0:
            raise ConfigurationError(f"Hazard rate must be non-negative, got {hazard_rate}")
        self.flat_hazard_rate = hazard_rate

    def _survival_impl(self, t: float) -> float:
        return float(np.exp(-self.flat_hazard_rate * t))


class InterpolatedSurvivalCurve(SurvivalCurve):
    """
    Survival probabilities at pillar dates, log-linear in between.

    Log-linear interpolation gives piecewise flat hazard rates; the last
    hazard rate is held beyond the final pillar.
    """

    def __init__(
        self,
        reference_date: date,
        dates: Sequence[date],
        survival_probabilities: Sequence[float],
        recovery_rate: float = 0.4,
        day_count: DayCount = DayCount.ACT_365
    ):
        super().__init__(reference_date, recovery_rate, day_count)
        if len(dates) != len(survival_probabilities):
            raise ConfigurationError("Dates and survival probabilities must have the same length")
        times = [year_fraction(reference_date, d, day_count) for d in dates]
        probs = list(survival_probabilities)
        if not times or times[0] != 0.0:
            times.insert(0, 0.0)
            probs.insert(0, 1.0)
        if any(p <= 0 or p > 1 for p in probs):
            raise ConfigurationError("Survival probabilities must be in (0, 1]")
        self._interpolator = LogLinearInterpolator()
        self._interpolator.fit(np.array(times), np.array(probs))

    def _survival_impl(self, t: float) -> float:
        return self._interpolator.interpolate(t)


__all__ = [
    "SurvivalCurve",
    "FlatHazardRateCurve",
    "InterpolatedSurvivalCurve",
]
