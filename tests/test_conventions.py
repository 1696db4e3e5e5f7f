"""
Unit tests for conventions module.
"""

from datetime import date
import numpy as np
import pytest

from termstructures.conventions import (
    DayCount,
    BusinessDayConvention,
    CompoundingConvention,
    year_fraction,
    discount_from_rate,
    rate_from_discount,
    convert_rate,
    adjust_business_day,
)


class TestDayCount:
    """Tests for day count conventions."""

    def test_act_360(self):
        """Test ACT/360 day count."""
        start = date(2024, 1, 15)
        end = date(2024, 4, 15)  # 91 days

        yf = year_fraction(start, end, DayCount.ACT_360)
        assert abs(yf - 91 / 360) < 1e-10

    def test_act_365(self):
        """Test ACT/365 day count."""
        yf = year_fraction(date(2024, 1, 15), date(2024, 4, 15), DayCount.ACT_365)
        assert abs(yf - 91 / 365) < 1e-10

    def test_act_act_splits_at_year_end(self):
        """ACT/ACT ISDA weights each calendar year by its own length."""
        yf = year_fraction(date(2023, 7, 1), date(2024, 7, 1), DayCount.ACT_ACT)
        expected = 184 / 365 + 182 / 366
        assert abs(yf - expected) < 1e-12

    def test_thirty_360(self):
        """Test 30/360 day count."""
        yf = year_fraction(date(2024, 1, 15), date(2024, 7, 15), DayCount.THIRTY_360)
        assert abs(yf - 0.5) < 1e-12

    def test_year_fraction_same_date(self):
        """Test year fraction for same date returns 0."""
        d = date(2024, 1, 15)
        assert year_fraction(d, d, DayCount.ACT_360) == 0.0

    def test_from_string_aliases(self):
        assert DayCount.from_string("A360") == DayCount.ACT_360
        assert DayCount.from_string("act/365f") == DayCount.ACT_365
        assert DayCount.from_string("ACT/ACT(ISDA)") == DayCount.ACT_ACT
        with pytest.raises(ValueError):
            DayCount.from_string("BUS/252")


class TestCompounding:
    """Tests for rate and discount factor conversions."""

    @pytest.mark.parametrize("compounding", list(CompoundingConvention))
    def test_rate_discount_inverse(self, compounding):
        df = discount_from_rate(0.04, 2.5, compounding)
        assert abs(rate_from_discount(df, 2.5, compounding) - 0.04) < 1e-12

    def test_continuous_to_annual(self):
        annual = convert_rate(0.05, 1.0, CompoundingConvention.CONTINUOUS, CompoundingConvention.ANNUAL)
        assert abs(annual - (np.exp(0.05) - 1)) < 1e-12

    def test_rate_from_discount_rejects_bad_input(self):
        with pytest.raises(ValueError):
            rate_from_discount(0.9, 0.0, CompoundingConvention.CONTINUOUS)
        with pytest.raises(ValueError):
            rate_from_discount(-0.1, 1.0, CompoundingConvention.CONTINUOUS)

    def test_discount_from_rate_rejects_non_positive_growth(self):
        with pytest.raises(ValueError):
            discount_from_rate(-1.5, 2.0, CompoundingConvention.ANNUAL)
        with pytest.raises(ValueError):
            discount_from_rate(-0.6, 2.0, CompoundingConvention.SIMPLE)

    def test_from_string(self):
        assert CompoundingConvention.from_string("semi-annual") == CompoundingConvention.SEMI_ANNUAL
        assert CompoundingConvention.from_string("Continuous") == CompoundingConvention.CONTINUOUS
        assert CompoundingConvention.QUARTERLY.frequency == 4
        assert CompoundingConvention.SIMPLE.frequency is None


class TestBusinessDays:
    """Tests for business day adjustment."""

    def test_following(self):
        # Saturday 2024-06-01
        assert adjust_business_day(date(2024, 6, 1), BusinessDayConvention.FOLLOWING) == date(2024, 6, 3)

    def test_modified_following_stays_in_month(self):
        # Saturday 2024-08-31: following would cross into September
        adjusted = adjust_business_day(date(2024, 8, 31), BusinessDayConvention.MODIFIED_FOLLOWING)
        assert adjusted == date(2024, 8, 30)

    def test_holiday(self):
        holidays = {date(2024, 7, 4)}
        adjusted = adjust_business_day(date(2024, 7, 4), BusinessDayConvention.FOLLOWING, holidays)
        assert adjusted == date(2024, 7, 5)
