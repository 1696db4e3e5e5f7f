"""
Curves built directly from zero rate or discount factor quotes.

No calibration is involved: quoted values become pillar values after
conversion to the curve's variable.
"""

from datetime import date
from typing import Optional, Sequence, Tuple

import numpy as np

from ..conventions import (
    CompoundingConvention,
    DayCount,
    convert_rate,
    year_fraction
)
from ..exceptions import ConfigurationError
from .curve import InterpolatedCurve
from .interpolation import InterpolationMethod, InterpolationVariable


def _sorted_quotes(reference_date: date, quotes: Sequence[Tuple[date, float]]):
    quotes = sorted(quotes, key=lambda q: q[0])
    for (d1, _), (d2, _) in zip(quotes, quotes[1:]):
        if d1 == d2:
            raise ConfigurationError(f"Duplicate quote date {d1}")
    if quotes and quotes[0][0] < reference_date:
        raise ConfigurationError(f"Quote date {quotes[0][0]} is before the reference date {reference_date}")
    return quotes


def build_zero_curve(
    reference_date: date,
    quotes: Sequence[Tuple[date, float]],
    compounding: CompoundingConvention = CompoundingConvention.CONTINUOUS,
    quote_day_count: Optional[DayCount] = None,
    variable: InterpolationVariable = InterpolationVariable.ZERO,
    method: InterpolationMethod = InterpolationMethod.LINEAR,
    day_count: DayCount = DayCount.ACT_365
) -> InterpolatedCurve:
    """
    Build a curve from zero rate quotes.

    Quoted rates are converted to continuously compounded rates in the
    curve's day count. A pillar at the reference date equal to the first
    quote is inserted when missing.

    Args:
        reference_date: Valuation date
        quotes: (date, zero rate) pairs
        compounding: Compounding of the quoted rates
        quote_day_count: Day count of the quoted rates (defaults to day_count)
        variable: Zero or Discount
        method: Interpolation method
        day_count: Day count for curve times

    Returns:
        Interpolated curve
    """
    if variable == InterpolationVariable.FORWARD:
        raise ConfigurationError("Zero rate quotes cannot build a Forward variable curve")
    quotes = _sorted_quotes(reference_date, quotes)
    quote_day_count = quote_day_count or day_count

    dates, rates = [], []
    for d, rate in quotes:
        if d == reference_date:
            dates.append(d)
            rates.append(rate)
            continue
        tau = year_fraction(reference_date, d, quote_day_count)
        t = year_fraction(reference_date, d, day_count)
        # rate over tau in quote conventions, restated per unit of curve time
        continuous = convert_rate(rate, tau, compounding, CompoundingConvention.CONTINUOUS) * tau / t
        dates.append(d)
        rates.append(continuous)

    if dates and dates[0] != reference_date:
        dates.insert(0, reference_date)
        rates.insert(0, rates[0])
    if len(dates) < 2:
        raise ConfigurationError("Need at least one zero quote after the reference date")

    if variable == InterpolationVariable.ZERO:
        values = rates
    else:
        times = [year_fraction(reference_date, d, day_count) for d in dates]
        values = [1.0] + [float(np.exp(-r * t)) for r, t in zip(rates[1:], times[1:])]

    return InterpolatedCurve(reference_date, dates, values, variable=variable, method=method, day_count=day_count)


def build_discount_curve(
    reference_date: date,
    quotes: Sequence[Tuple[date, float]],
    method: InterpolationMethod = InterpolationMethod.LOG_LINEAR,
    day_count: DayCount = DayCount.ACT_365
) -> InterpolatedCurve:
    """
    Build a Discount variable curve from discount factor quotes.

    Inserts 1.0 at the reference date when missing.
    """
    quotes = _sorted_quotes(reference_date, quotes)
    dates = [d for d, _ in quotes]
    values = [df for _, df in quotes]
    if dates and dates[0] == reference_date and values[0] != 1.0:
        raise ConfigurationError(f"Discount factor at the reference date must be 1.0, got {values[0]}")
    if not dates or dates[0] != reference_date:
        dates.insert(0, reference_date)
        values.insert(0, 1.0)
    if len(dates) < 2:
        raise ConfigurationError("Need at least one discount quote after the reference date")

    return InterpolatedCurve(
        reference_date, dates, values,
        variable=InterpolationVariable.DISCOUNT, method=method, day_count=day_count
    )


__all__ = [
    "build_zero_curve",
    "build_discount_curve",
]
