"""
Date utilities for term structure construction.

Provides:
- Tenor parsing and date arithmetic
- Schedule generation for coupon bonds and swap legs
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional, Tuple
import calendar
import re

from .conventions import (
    BusinessDayConvention,
    DayCount,
    adjust_business_day,
    is_business_day,
    year_fraction
)


class DateUtils:
    """Utility class for date manipulation in rates contexts."""

    # Tenor regex pattern: number + unit (D/W/M/Y)
    TENOR_PATTERN = re.compile(r'^(\d+)([DWMY])$', re.IGNORECASE)

    @staticmethod
    def parse_tenor(tenor: str) -> Tuple[int, str]:
        """
        Parse a tenor string into (amount, unit).

        Args:
            tenor: Tenor string like "1D", "3M", "2Y"

        Returns:
            Tuple of (amount, unit) where unit is D/W/M/Y

        Raises:
            ValueError: If tenor format is invalid
        """
        match = DateUtils.TENOR_PATTERN.match(tenor.upper().strip())
        if not match:
            raise ValueError(f"Invalid tenor format: {tenor}. Expected format like '3M', '2Y'")

        return int(match.group(1)), match.group(2).upper()

    @staticmethod
    def add_tenor(start: date, tenor: str, holidays: Optional[set] = None) -> date:
        """
        Add a tenor to a date.

        Day tenors count business days; week, month and year tenors are
        calendar periods, month-end clipped and left unadjusted.

        Args:
            start: Starting date
            tenor: Tenor string (e.g., "1D", "3M", "2Y")
            holidays: Optional holiday calendar

        Returns:
            End date
        """
        amount, unit = DateUtils.parse_tenor(tenor)

        if unit == 'D':
            result = start
            days_added = 0
            while days_added < amount:
                result += timedelta(days=1)
                if is_business_day(result, holidays):
                    days_added += 1
            return result

        elif unit == 'W':
            return start + timedelta(weeks=amount)

        elif unit == 'M':
            return add_months(start, amount)

        elif unit == 'Y':
            return add_months(start, 12 * amount)

        raise ValueError(f"Unknown tenor unit: {unit}")

    @staticmethod
    def tenor_to_years(tenor: str) -> float:
        """
        Convert tenor to approximate year fraction.

        Args:
            tenor: Tenor string

        Returns:
            Approximate years as float
        """
        amount, unit = DateUtils.parse_tenor(tenor)

        if unit == 'D':
            return amount / 365.0
        elif unit == 'W':
            return amount * 7 / 365.0
        elif unit == 'M':
            return amount / 12.0
        return float(amount)

    @staticmethod
    def generate_schedule(
        start: date,
        end: date,
        frequency: int,
        convention: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING,
        holidays: Optional[set] = None
    ) -> List[date]:
        """
        Generate a payment schedule between start and end dates.

        Dates are rolled backward from the end date, leaving any stub at the
        front.

        Args:
            start: Schedule start (accrual start)
            end: Schedule end (maturity)
            frequency: Payments per year (1=annual, 2=semi, 4=quarterly, 12=monthly)
            convention: Business day adjustment
            holidays: Holiday calendar

        Returns:
            List of payment dates (adjusted for business days), excluding start
        """
        if frequency <= 0 or 12 % frequency != 0:
            raise ValueError(f"Frequency must divide 12, got {frequency}")

        months_per_period = 12 // frequency

        unadjusted = [end]
        periods = 1
        while True:
            prev_date = add_months(end, -months_per_period * periods)
            if prev_date <= start:
                break
            unadjusted.insert(0, prev_date)
            periods += 1

        return [adjust_business_day(d, convention, holidays) for d in unadjusted]


@dataclass
class ScheduleInfo:
    """Container for schedule with accrual information."""
    payment_dates: List[date]
    accrual_starts: List[date]
    accrual_ends: List[date]
    year_fractions: List[float]
    day_count: DayCount


def generate_bond_schedule(
    start: date,
    maturity: date,
    coupon_freq: int,
    day_count: DayCount,
    holidays: Optional[set] = None
) -> ScheduleInfo:
    """
    Generate a bond coupon schedule with accrual periods.

    Coupon dates roll backward from maturity; the accrual periods are the
    unadjusted regular periods so coupons are equal, the first period
    starting one regular period before the first coupon.

    Args:
        start: First date of interest (coupon dates strictly after it are kept)
        maturity: Maturity date
        coupon_freq: Coupons per year (2 for semi-annual)
        day_count: Day count convention
        holidays: Holiday calendar

    Returns:
        ScheduleInfo with payment dates and accrual fractions
    """
    if coupon_freq <= 0 or 12 % coupon_freq != 0:
        raise ValueError(f"Coupon frequency must divide 12, got {coupon_freq}")
    months = 12 // coupon_freq

    ends = [maturity]
    periods = 1
    while True:
        prev = add_months(maturity, -months * periods)
        if prev <= start:
            break
        ends.insert(0, prev)
        periods += 1

    starts = [add_months(maturity, -months * (len(ends) - i)) for i in range(len(ends))]
    payment_dates = [adjust_business_day(d, BusinessDayConvention.FOLLOWING, holidays) for d in ends]

    return ScheduleInfo(
        payment_dates=payment_dates,
        accrual_starts=starts,
        accrual_ends=ends,
        year_fractions=[year_fraction(s, e, day_count) for s, e in zip(starts, ends)],
        day_count=day_count
    )


def add_months(d: date, months: int) -> date:
    """Add calendar months to a date, clipping to month end."""
    year = d.year + (d.month + months - 1) // 12
    month = (d.month + months - 1) % 12 + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


__all__ = [
    "DateUtils",
    "ScheduleInfo",
    "generate_bond_schedule",
    "add_months",
]
