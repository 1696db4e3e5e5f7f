"""
Curves derived from other curves.

Provides:
- ZeroSpreadedCurve: reference zero rates plus interpolated spreads
- WeightedAverageCurve: D(t) = D1(t)^w1 * D2(t)^w2
- YieldPlusDefaultCurve: base discounts times expected recovery-adjusted
  survival of one or more default curves
- DiscountRatioCurve: D(t) = base(t) * numerator(t) / denominator(t)
- IborFallbackCurve: risk-free curve plus a fixed fallback spread

All are read-only views evaluated on demand: a change in a dependency
shows up in the next evaluation. They share the reference date of their
first dependency; range checks beyond t >= 0 are left to the dependencies,
which are called with extrapolate=True once the composite itself allows
extrapolation.
"""

from datetime import date
from typing import Dict, Optional, Sequence, Union

import numpy as np

from ..conventions import (
    CompoundingConvention,
    DayCount,
    discount_from_rate,
    year_fraction
)
from ..dates import DateUtils
from ..exceptions import ConfigurationError, NumericDomainError
from .credit import SurvivalCurve
from .curve import YieldTermStructure


class _DependentCurve(YieldTermStructure):
    """Base for curves evaluated from other yield curves."""

    def __init__(self, dependencies: Sequence[YieldTermStructure]):
        first = dependencies[0]
        super().__init__(first.reference_date, first.day_count)
        for dep in dependencies[1:]:
            if dep.reference_date != first.reference_date:
                raise ConfigurationError(
                    f"Reference date mismatch: {dep.reference_date} vs {first.reference_date}"
                )
        self._dependencies = tuple(dependencies)

    @property
    def allows_extrapolation(self) -> bool:
        return self._extrapolate or all(dep.allows_extrapolation for dep in self._dependencies)

    @property
    def max_time(self) -> float:
        return min(dep.max_time for dep in self._dependencies)

    def _check_range(self, t: float, extrapolate: bool = False) -> None:
        if t < 0:
            raise NumericDomainError(f"Negative time {t} given")

    def _extrapolating(self, extrapolate: bool) -> bool:
        return extrapolate or self._extrapolate


class ZeroSpreadedCurve(_DependentCurve):
    """
    Reference curve with zero rate spreads added.

    Spreads are linear in time between the spread dates and flat outside
    them. The spread is added to the reference zero rate expressed in the
    given compounding.

    Args:
        reference: Reference yield curve
        spread_dates: Spread pillar dates (or times)
        spreads: Spread per pillar, in decimal
        compounding: Compounding the spread applies in
        day_count: Day count turning spread dates into times (defaults to
            the reference curve's)
    """

    def __init__(
        self,
        reference: YieldTermStructure,
        spread_dates: Sequence[Union[date, float]],
        spreads: Sequence[float],
        compounding: CompoundingConvention = CompoundingConvention.CONTINUOUS,
        day_count: Optional[DayCount] = None
    ):
        super().__init__([reference])
        if len(spread_dates) != len(spreads) or not spreads:
            raise ConfigurationError("Spread dates and spreads must be non-empty and of equal length")
        dc = day_count or reference.day_count
        times = np.array([
            year_fraction(reference.reference_date, d, dc) if isinstance(d, date) else float(d)
            for d in spread_dates
        ])
        if np.any(np.diff(times) <= 0):
            raise ConfigurationError("Spread times must be strictly increasing")
        self.reference = reference
        self.compounding = compounding
        self._spread_times = times
        self._spreads = np.array(spreads, dtype=np.float64)

    def spread(self, t: float) -> float:
        """Spread at time t."""
        return float(np.interp(t, self._spread_times, self._spreads))

    def _discount_impl(self, t: float, extrapolate: bool = False) -> float:
        rate = self.reference.zero_rate(
            t, compounding=self.compounding, extrapolate=self._extrapolating(extrapolate)
        ) + self.spread(t)
        return discount_from_rate(rate, t, self.compounding)


class WeightedAverageCurve(_DependentCurve):
    """Geometric average of two curves' discount factors: D1^w1 * D2^w2."""

    def __init__(
        self,
        curve1: YieldTermStructure,
        curve2: YieldTermStructure,
        weight1: float,
        weight2: float
    ):
        super().__init__([curve1, curve2])
        self.curve1, self.curve2 = curve1, curve2
        self.weight1, self.weight2 = weight1, weight2

    def _discount_impl(self, t: float, extrapolate: bool = False) -> float:
        extrapolate = self._extrapolating(extrapolate)
        return (self.curve1.discount(t, extrapolate) ** self.weight1 *
                self.curve2.discount(t, extrapolate) ** self.weight2)


class YieldPlusDefaultCurve(_DependentCurve):
    """
    Yield curve adjusted for default risk.

    D(t) = base(t) * prod_i (S_i(t) + (1 - S_i(t)) * R_i) ^ w_i

    Args:
        base: Yield curve
        survival_curves: Default curves
        recovery_rates: Recovery per default curve (None takes each
            curve's own recovery rate)
        weights: Weight per default curve
    """

    def __init__(
        self,
        base: YieldTermStructure,
        survival_curves: Sequence[SurvivalCurve],
        recovery_rates: Optional[Sequence[float]],
        weights: Sequence[float]
    ):
        super().__init__([base])
        if recovery_rates is None:
            recovery_rates = [c.recovery_rate for c in survival_curves]
        if not survival_curves:
            raise ConfigurationError("At least one default curve required")
        if not len(survival_curves) == len(recovery_rates) == len(weights):
            raise ConfigurationError(
                f"Got {len(survival_curves)} default curves, {len(recovery_rates)} recovery "
                f"rates and {len(weights)} weights"
            )
        for curve in survival_curves:
            if curve.reference_date != base.reference_date:
                raise ConfigurationError(
                    f"Default curve reference date {curve.reference_date} differs from "
                    f"{base.reference_date}"
                )
        self.base = base
        self.survival_curves = tuple(survival_curves)
        self.recovery_rates = tuple(recovery_rates)
        self.weights = tuple(weights)

    def _discount_impl(self, t: float, extrapolate: bool = False) -> float:
        df = self.base.discount(t, self._extrapolating(extrapolate))
        for curve, recovery, weight in zip(self.survival_curves, self.recovery_rates, self.weights):
            survival = curve.survival_probability(t)
            df *= (survival + (1.0 - survival) * recovery) ** weight
        return df


class DiscountRatioCurve(_DependentCurve):
    """D(t) = base(t) * numerator(t) / denominator(t), evaluated live."""

    def __init__(
        self,
        base: YieldTermStructure,
        numerator: YieldTermStructure,
        denominator: YieldTermStructure
    ):
        super().__init__([base, numerator, denominator])
        self.base = base
        self.numerator = numerator
        self.denominator = denominator

    def _discount_impl(self, t: float, extrapolate: bool = False) -> float:
        extrapolate = self._extrapolating(extrapolate)
        return (self.base.discount(t, extrapolate) * self.numerator.discount(t, extrapolate) /
                self.denominator.discount(t, extrapolate))


class IborFallbackCurve(_DependentCurve):
    """
    Ibor index curve replaced by a risk-free rate curve plus spread.

    Fixings before the switch date come from history; from the switch date
    on the index rate is the simple rfr forward over one index period plus
    the spread. Discounting uses the rfr curve with the spread applied as
    its continuously compounded equivalent over one index period.

    Args:
        rfr_curve: Overnight rate curve
        index_name: Replaced index name
        index_tenor: Index period, e.g. "3M"
        spread: Fallback spread in decimal
        switch_date: First date on which the fallback rate applies
        fixings: Historical index fixings by date
        index_day_count: Accrual day count of the index
    """

    def __init__(
        self,
        rfr_curve: YieldTermStructure,
        index_name: str,
        index_tenor: str,
        spread: float,
        switch_date: date,
        fixings: Optional[Dict[date, float]] = None,
        index_day_count: DayCount = DayCount.ACT_360
    ):
        super().__init__([rfr_curve])
        self.rfr_curve = rfr_curve
        self.index_name = index_name
        self.index_tenor = index_tenor
        self.spread = spread
        self.switch_date = switch_date
        self.fixings = dict(fixings or {})
        self.index_day_count = index_day_count

        period = DateUtils.tenor_to_years(index_tenor)
        self._continuous_spread = float(np.log1p(spread * period) / period)

    def fixing(self, fixing_date: date) -> float:
        """Index rate for a fixing date."""
        if fixing_date < self.switch_date and fixing_date in self.fixings:
            return self.fixings[fixing_date]
        if fixing_date < self.reference_date:
            raise ConfigurationError(
                f"Missing {self.index_name} fixing for {fixing_date}"
            )
        end = DateUtils.add_tenor(fixing_date, self.index_tenor)
        forward = self.rfr_curve.forward_rate(
            fixing_date, end, day_count=self.index_day_count,
            compounding=CompoundingConvention.SIMPLE, extrapolate=self._extrapolate
        )
        return forward + self.spread

    def _discount_impl(self, t: float, extrapolate: bool = False) -> float:
        df = self.rfr_curve.discount(t, self._extrapolating(extrapolate))
        return df * np.exp(-self._continuous_spread * t)


__all__ = [
    "ZeroSpreadedCurve",
    "WeightedAverageCurve",
    "YieldPlusDefaultCurve",
    "DiscountRatioCurve",
    "IborFallbackCurve",
]
