"""
Day count, compounding and business day conventions for term structures.

Supported Day Counts:
- ACT/360: Actual days / 360 (money markets, OIS)
- ACT/365: Actual days / 365 (fixed)
- ACT/ACT: Actual days / actual days in year, ISDA split at year ends (bond yields)
- 30/360: 30 days per month / 360 (bond basis)

Compounding:
- Continuous, Simple and periodically compounded rates with conversion
  between rates and discount factors

Business Day Conventions:
- Modified Following: Move to next business day, unless it falls in next month (then previous)
- Following: Move to next business day
- Preceding: Move to previous business day
"""

from datetime import date, timedelta
from enum import Enum
from typing import Optional
import calendar

import numpy as np


class DayCount(Enum):
    """Day count convention enumeration."""
    ACT_360 = "ACT/360"
    ACT_365 = "ACT/365"
    ACT_ACT = "ACT/ACT"
    THIRTY_360 = "30/360"

    @classmethod
    def from_string(cls, s: str) -> "DayCount":
        """Parse day count from string representation."""
        mapping = {
            "ACT/360": cls.ACT_360,
            "ACT360": cls.ACT_360,
            "A360": cls.ACT_360,
            "ACT/365": cls.ACT_365,
            "ACT365": cls.ACT_365,
            "ACT/365F": cls.ACT_365,
            "A365F": cls.ACT_365,
            "ACT/ACT": cls.ACT_ACT,
            "ACTACT": cls.ACT_ACT,
            "ACT/ACT(ISDA)": cls.ACT_ACT,
            "30/360": cls.THIRTY_360,
            "30360": cls.THIRTY_360,
        }
        key = s.upper().replace(" ", "")
        if key in mapping:
            return mapping[key]
        raise ValueError(f"Unknown day count convention: {s}")


class BusinessDayConvention(Enum):
    """Business day adjustment convention."""
    MODIFIED_FOLLOWING = "ModifiedFollowing"
    FOLLOWING = "Following"
    PRECEDING = "Preceding"
    UNADJUSTED = "Unadjusted"


class CompoundingConvention(Enum):
    """Interest rate compounding convention."""
    CONTINUOUS = "Continuous"
    ANNUAL = "Annual"
    SEMI_ANNUAL = "SemiAnnual"
    QUARTERLY = "Quarterly"
    MONTHLY = "Monthly"
    SIMPLE = "Simple"

    @property
    def frequency(self) -> Optional[int]:
        """Compounding periods per year, None for simple and continuous."""
        return {
            CompoundingConvention.ANNUAL: 1,
            CompoundingConvention.SEMI_ANNUAL: 2,
            CompoundingConvention.QUARTERLY: 4,
            CompoundingConvention.MONTHLY: 12,
        }.get(self)

    @classmethod
    def from_string(cls, s: str) -> "CompoundingConvention":
        """Parse compounding from its name, case and separator insensitive."""
        key = s.upper().replace("-", "").replace("_", "").replace(" ", "")
        for member in cls:
            if member.value.upper() == key or member.name.replace("_", "") == key:
                return member
        raise ValueError(f"Unknown compounding convention: {s}")


def year_fraction(start: date, end: date, day_count: DayCount) -> float:
    """
    Calculate year fraction between two dates using specified day count convention.

    Args:
        start: Start date
        end: End date
        day_count: Day count convention

    Returns:
        Year fraction as float (0.0 when end is not after start)
    """
    if start >= end:
        return 0.0

    actual_days = (end - start).days

    if day_count == DayCount.ACT_360:
        return actual_days / 360.0

    elif day_count == DayCount.ACT_365:
        return actual_days / 365.0

    elif day_count == DayCount.ACT_ACT:
        # ISDA: split at year boundaries
        if start.year == end.year:
            days_in_year = 366 if calendar.isleap(start.year) else 365
            return actual_days / days_in_year
        total = 0.0
        first_year_end = date(start.year + 1, 1, 1)
        total += (first_year_end - start).days / (366 if calendar.isleap(start.year) else 365)
        total += end.year - start.year - 1
        last_year_start = date(end.year, 1, 1)
        total += (end - last_year_start).days / (366 if calendar.isleap(end.year) else 365)
        return total

    elif day_count == DayCount.THIRTY_360:
        # 30/360 bond basis
        d1 = min(start.day, 30)
        d2 = end.day
        if d2 == 31 and d1 == 30:
            d2 = 30
        return (360 * (end.year - start.year) + 30 * (end.month - start.month) + (d2 - d1)) / 360.0

    else:
        raise ValueError(f"Unknown day count: {day_count}")

def discount_from_rate(rate: float, t: float, compounding: CompoundingConvention) -> float:
    """
    Discount factor implied by a rate over a period of t years.

    Args:
        rate: Rate in decimal
        t: Period length in years
        compounding: Compounding convention of the rate

    Returns:
        Discount factor
    """
    if t <= 0:
        return 1.0
    if compounding == CompoundingConvention.CONTINUOUS:
        return float(np.exp(-rate * t))
    if compounding == CompoundingConvention.SIMPLE:
        growth = 1.0 + rate * t
        if growth <= 0:
            raise ValueError(f"Simple rate {rate} over {t} years implies a non-positive discount factor")
        return 1.0 / growth
    n = compounding.frequency
    if 1.0 + rate / n <= 0:
        raise ValueError(f"Rate {rate} is below -{n} for {compounding.value} compounding")
    return float((1.0 + rate / n) ** (-n * t))

def rate_from_discount(df: float, t: float, compounding: CompoundingConvention) -> float:
    """
    Rate with the given compounding that reproduces a discount factor.

    Args:
        df: Discount factor (must be positive)
        t: Period length in years (must be positive)
        compounding: Compounding convention of the output rate

    Returns:
        Rate in decimal
    """
    if t <= 0:
        raise ValueError("Period must be positive to imply a rate")
    if df <= 0:
        raise ValueError(f"Discount factor must be positive, got {df}")
    if compounding == CompoundingConvention.CONTINUOUS:
        return float(-np.log(df) / t)
    if compounding == CompoundingConvention.SIMPLE:
        return (1.0 / df - 1.0) / t
    n = compounding.frequency
    return float(n * (df ** (-1.0 / (n * t)) - 1.0))

def convert_rate(
    rate: float,
    t: float,
    from_compounding: CompoundingConvention,
    to_compounding: CompoundingConvention
) -> float:
    """Equivalent rate under another compounding convention over t years."""
    if from_compounding == to_compounding:
        return rate
    return rate_from_discount(discount_from_rate(rate, t, from_compounding), t, to_compounding)

def is_business_day(d: date, holidays: Optional[set] = None) -> bool:
    """
    Check if a date is a business day.

    Uses weekend-only calendar by default (Saturday/Sunday are non-business days).
    """
    if d.weekday() >= 5:
        return False
    if holidays and d in holidays:
        return False
    return True

def adjust_business_day(
    d: date,
    convention: BusinessDayConvention,
    holidays: Optional[set] = None
) -> date:
    """
    Adjust a date according to business day convention.

    Args:
        d: Date to adjust
        convention: Business day adjustment rule
        holidays: Optional set of holiday dates

    Returns:
        Adjusted date
    """
    if convention == BusinessDayConvention.UNADJUSTED or is_business_day(d, holidays):
        return d

    if convention == BusinessDayConvention.FOLLOWING:
        adjusted = d
        while not is_business_day(adjusted, holidays):
            adjusted += timedelta(days=1)
        return adjusted

    elif convention == BusinessDayConvention.PRECEDING:
        adjusted = d
        while not is_business_day(adjusted, holidays):
            adjusted -= timedelta(days=1)
        return adjusted

    elif convention == BusinessDayConvention.MODIFIED_FOLLOWING:
        adjusted = d
        while not is_business_day(adjusted, holidays):
            adjusted += timedelta(days=1)

        # If we crossed into next month, go preceding instead
        if adjusted.month != d.month:
            adjusted = d
            while not is_business_day(adjusted, holidays):
                adjusted -= timedelta(days=1)

        return adjusted

    return d

__all__ = [
    "DayCount",
    "BusinessDayConvention",
    "CompoundingConvention",
    "year_fraction",
    "discount_from_rate",
    "rate_from_discount",
    "convert_rate",
    "is_business_day",
    "adjust_business_day",
]
