"""
Yield term structure representation and operations.

The YieldTermStructure base provides:
- Discount factor P(0,t)
- Zero rate z(t) in any compounding and day count
- Forward rate f(t1, t2)
- Instantaneous forward rate f(t)

InterpolatedCurve stores one value per pillar (zero rate, discount factor or
instantaneous forward, see InterpolationVariable) at year fractions from
the reference date and interpolates between them.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from ..conventions import (
    CompoundingConvention,
    DayCount,
    rate_from_discount,
    year_fraction
)
from ..exceptions import ConfigurationError, NumericDomainError, OutOfRangeError
from .interpolation import (
    InterpolationMethod,
    InterpolationVariable,
    create_interpolator
)

TimeLike = Union[float, date]

# time step used for rates at t = 0 and numerical forwards
_DT = 1e-4


@dataclass(frozen=True)
class Pillar:
    """A single curve pillar."""
    date: Optional[date]
    time: float  # Year fraction from reference date
    value: float


class YieldTermStructure(ABC):
    """
    Base class for yield curves.

    Attributes:
        reference_date: Valuation date (time 0)
        day_count: Day count used to turn dates into times

    Conventions:
        - Times are year fractions from the reference date
        - Discount factor at t=0 is exactly 1.0
        - Negative times are rejected; times beyond max_time are rejected
          unless extrapolation has been enabled
    """

    def __init__(self, reference_date: date, day_count: DayCount = DayCount.ACT_365):
        self.reference_date = reference_date
        self.day_count = day_count
        self._extrapolate = False

    @property
    def allows_extrapolation(self) -> bool:
        return self._extrapolate

    def enable_extrapolation(self) -> None:
        """
        Allow evaluation beyond max_time. Cannot be undone.

        A single call may also pass extrapolate=True to evaluate past
        max_time without changing the curve.
        """
        self._extrapolate = True

    @property
    @abstractmethod
    def max_time(self) -> float:
        """Largest time the curve is built for."""

    @abstractmethod
    def _discount_impl(self, t: float, extrapolate: bool = False) -> float:
        """Discount factor at a validated time t > 0."""

    def time_from_reference(self, d: date) -> float:
        """Year fraction from the reference date, negative for earlier dates."""
        if d < self.reference_date:
            return -year_fraction(d, self.reference_date, self.day_count)
        return year_fraction(self.reference_date, d, self.day_count)

    def _to_time(self, t: TimeLike) -> float:
        if isinstance(t, date):
            return self.time_from_reference(t)
        return float(t)

    def _check_range(self, t: float, extrapolate: bool = False) -> None:
        if t < 0:
            raise NumericDomainError(f"Negative time {t} given")
        if t > self.max_time * (1 + 1e-12) and not (extrapolate or self.allows_extrapolation):
            raise OutOfRangeError(
                f"Time {t} is past max curve time {self.max_time}"
            )

    def discount(self, t: TimeLike, extrapolate: bool = False) -> float:
        """
        Get discount factor P(0,t).

        Args:
            t: Year fraction or date
            extrapolate: Allow t past max_time for this call

        Returns:
            Discount factor
        """
        t = self._to_time(t)
        self._check_range(t, extrapolate)
        if t == 0:
            return 1.0
        df = float(self._discount_impl(t, extrapolate))
        if not df > 0:
            raise NumericDomainError(f"Non-positive discount factor {df} at time {t}")
        return df

    def zero_rate(
        self,
        t: TimeLike,
        day_count: Optional[DayCount] = None,
        compounding: CompoundingConvention = CompoundingConvention.CONTINUOUS,
        extrapolate: bool = False
    ) -> float:
        """
        Get zero rate z(t).

        Args:
            t: Year fraction or date
            day_count: Day count of the output rate (dates only, defaults
                to the curve's)
            compounding: Compounding convention for output
            extrapolate: Allow t past max_time for this call

        Returns:
            Zero rate (default continuously compounded)
        """
        curve_time = self._to_time(t)
        if curve_time == 0:
            self._check_range(0.0, extrapolate)
            return rate_from_discount(self.discount(_DT, extrapolate), _DT, compounding)

        df = self.discount(curve_time, extrapolate)
        tau = curve_time
        if isinstance(t, date) and day_count is not None:
            tau = year_fraction(self.reference_date, t, day_count)
        return rate_from_discount(df, tau, compounding)

    def forward_rate(
        self,
        t1: TimeLike,
        t2: TimeLike,
        day_count: Optional[DayCount] = None,
        compounding: CompoundingConvention = CompoundingConvention.SIMPLE,
        extrapolate: bool = False
    ) -> float:
        """
        Get forward rate f(t1, t2).

        Args:
            t1: Start time (year fraction or date)
            t2: End time (year fraction or date)
            day_count: Accrual day count for date inputs (defaults to the curve's)
            compounding: Compounding convention
            extrapolate: Allow times past max_time for this call

        Returns:
            Forward rate between t1 and t2
        """
        time1 = self._to_time(t1)
        time2 = self._to_time(t2)
        if time2 <= time1:
            raise NumericDomainError(f"Forward end time {time2} must be after start time {time1}")

        tau = time2 - time1
        if isinstance(t1, date) and isinstance(t2, date) and day_count is not None:
            tau = year_fraction(t1, t2, day_count)

        return rate_from_discount(
            self.discount(time2, extrapolate) / self.discount(time1, extrapolate), tau, compounding
        )

    def instantaneous_forward(self, t: TimeLike, extrapolate: bool = False) -> float:
        """
        Get instantaneous forward rate f(t) = -d/dt log P(0,t).

        Numerical difference of log discount factors; interpolated curves
        override this with the analytic derivative.
        """
        t = self._to_time(t)
        self._check_range(t, extrapolate)
        if t < _DT:
            return -np.log(self.discount(_DT, extrapolate)) / _DT
        return float(np.log(
            self.discount(t - _DT, extrapolate) / self.discount(t + _DT, extrapolate)
        ) / (2 * _DT))


class InterpolatedCurve(YieldTermStructure):
    """
    Yield curve interpolated between pillars.

    Pillar 0 must sit at the reference date. With the Discount variable its
    value must be 1.0; with Zero and Forward variables it is conventionally
    the pillar-1 value (it never affects discount(0), which is always 1).

    Args:
        reference_date: Valuation date
        pillars: Pillar dates or year fractions, strictly increasing
        values: Pillar values in the chosen variable
        variable: Zero (continuous zero rate), Discount or Forward
            (instantaneous forward)
        method: Interpolation method
        day_count: Day count for time calculations
    """

    def __init__(
        self,
        reference_date: date,
        pillars: Sequence[TimeLike],
        values: Sequence[float],
        variable: InterpolationVariable = InterpolationVariable.ZERO,
        method: InterpolationMethod = InterpolationMethod.LINEAR,
        day_count: DayCount = DayCount.ACT_365
    ):
        super().__init__(reference_date, day_count)
        if len(pillars) != len(values):
            raise ConfigurationError(
                f"Got {len(pillars)} pillars but {len(values)} values"
            )
        if len(pillars) < 2:
            raise ConfigurationError("Need at least 2 pillars to build a curve")

        self.variable = variable
        self.method = method
        self._dates = tuple(p if isinstance(p, date) else None for p in pillars)
        self._times = np.array([self._to_time(p) for p in pillars], dtype=np.float64)
        self._values = np.array(values, dtype=np.float64)

        if self._times[0] != 0.0:
            raise ConfigurationError(
                f"First pillar must be at the reference date {reference_date}, "
                f"got time {self._times[0]}"
            )
        if np.any(np.diff(self._times) <= 0):
            raise ConfigurationError("Pillar times must be strictly increasing")
        if variable == InterpolationVariable.DISCOUNT and self._values[0] != 1.0:
            raise ConfigurationError(
                f"Discount factor at the reference date must be 1.0, got {self._values[0]}"
            )

        self._interpolator = create_interpolator(method)
        self._interpolator.fit(self._times, self._values)

    @property
    def max_time(self) -> float:
        return float(self._times[-1])

    @property
    def pillars(self) -> Tuple[Pillar, ...]:
        return tuple(
            Pillar(date=d, time=float(t), value=float(v))
            for d, t, v in zip(self._dates, self._times, self._values)
        )

    @property
    def pillar_times(self) -> np.ndarray:
        return self._times.copy()

    @property
    def pillar_values(self) -> np.ndarray:
        return self._values.copy()

    def with_values(self, values: Sequence[float]) -> "InterpolatedCurve":
        """New curve with the same pillars and settings but other values."""
        pillars = [d if d is not None else t for d, t in zip(self._dates, self._times)]
        curve = InterpolatedCurve(
            self.reference_date, pillars, values,
            variable=self.variable, method=self.method, day_count=self.day_count
        )
        if self.allows_extrapolation:
            curve.enable_extrapolation()
        return curve

    def _discount_impl(self, t: float, extrapolate: bool = False) -> float:
        if self.variable == InterpolationVariable.ZERO:
            return np.exp(-self._interpolator.interpolate(t) * t)
        elif self.variable == InterpolationVariable.DISCOUNT:
            return self._interpolator.interpolate(t)
        return np.exp(-self._interpolator.primitive(t))

    def instantaneous_forward(self, t: TimeLike, extrapolate: bool = False) -> float:
        t = self._to_time(t)
        self._check_range(t, extrapolate)
        if self.variable == InterpolationVariable.ZERO:
            return float(self._interpolator.interpolate(t) + t * self._interpolator.derivative(t))
        elif self.variable == InterpolationVariable.DISCOUNT:
            return float(-self._interpolator.derivative(t) / self.discount(t, extrapolate))
        return float(self._interpolator.interpolate(t))

    def to_frame(self) -> pd.DataFrame:
        """Pillars with their discount factors and continuous zero rates."""
        rows = []
        for pillar in self.pillars:
            rows.append({
                "date": pillar.date,
                "time": pillar.time,
                "value": pillar.value,
                "discount": self.discount(pillar.time),
                "zero_rate": self.zero_rate(pillar.time),
            })
        return pd.DataFrame(rows)

    def __repr__(self) -> str:
        return (f"InterpolatedCurve(reference={self.reference_date}, pillars={len(self._times)}, "
                f"variable={self.variable.value}, method={self.method.value})")


def create_flat_curve(
    reference_date: date,
    rate: float,
    max_tenor_years: float = 30.0,
    day_count: DayCount = DayCount.ACT_365
) -> InterpolatedCurve:
    """
    Create a flat yield curve.

    Args:
        reference_date: Valuation date
        rate: Flat continuously compounded rate
        max_tenor_years: Maximum tenor in years
        day_count: Day count for time calculations

    Returns:
        Flat curve
    """
    times = [0.0] + [t for t in (0.25, 0.5, 1, 2, 5, 10, 20) if t < max_tenor_years] + [max_tenor_years]
    return InterpolatedCurve(
        reference_date, times, [rate] * len(times),
        variable=InterpolationVariable.ZERO,
        method=InterpolationMethod.LINEAR,
        day_count=day_count
    )


__all__ = [
    "Pillar",
    "YieldTermStructure",
    "InterpolatedCurve",
    "create_flat_curve",
]
