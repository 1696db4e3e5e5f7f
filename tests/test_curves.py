"""
Unit tests for curves module.
"""

from datetime import date, timedelta
import numpy as np
import pytest

from termstructures.conventions import CompoundingConvention, DayCount, year_fraction
from termstructures.curves import (
    FlatHazardRateCurve,
    InterpolatedCurve,
    InterpolatedSurvivalCurve,
    InterpolationMethod,
    InterpolationVariable,
    YieldTermStructure,
    build_discount_curve,
    build_zero_curve,
    create_flat_curve,
)
from termstructures.exceptions import ConfigurationError, NumericDomainError, OutOfRangeError


ANCHOR = date(2024, 1, 15)


class TestCurve:
    """Tests for the term structure interface on a flat curve."""

    @pytest.fixture
    def sample_curve(self):
        """Create sample curve using flat curve helper."""
        return create_flat_curve(ANCHOR, rate=0.05, max_tenor_years=30.0)

    def test_discount_factor_base_date(self, sample_curve):
        """Test discount factor at anchor date is 1."""
        assert sample_curve.discount(ANCHOR) == 1.0
        assert sample_curve.discount(0.0) == 1.0

    def test_discount_factor_future(self, sample_curve):
        """Test discount factor decreases for future dates."""
        df1 = sample_curve.discount(ANCHOR + timedelta(days=365))
        df2 = sample_curve.discount(ANCHOR + timedelta(days=730))

        assert abs(df1 - np.exp(-0.05)) < 1e-14
        assert df2 < df1 < 1.0

    def test_zero_rate(self, sample_curve):
        """Zero rates in other compoundings."""
        assert abs(sample_curve.zero_rate(2.0) - 0.05) < 1e-14
        annual = sample_curve.zero_rate(2.0, compounding=CompoundingConvention.ANNUAL)
        assert abs(annual - np.expm1(0.05)) < 1e-12

    def test_zero_rate_at_reference(self, sample_curve):
        assert abs(sample_curve.zero_rate(0.0) - 0.05) < 1e-10

    def test_zero_rate_in_other_day_count(self, sample_curve):
        d = ANCHOR + timedelta(days=180)
        rate = sample_curve.zero_rate(d, day_count=DayCount.ACT_360)
        assert abs(rate - 0.05 * 360 / 365) < 1e-12

    def test_forward_rate(self, sample_curve):
        """Test forward rate calculation."""
        fwd = sample_curve.forward_rate(1.0, 2.0, compounding=CompoundingConvention.CONTINUOUS)
        assert abs(fwd - 0.05) < 1e-12

        simple = sample_curve.forward_rate(1.0, 1.5)
        assert abs(simple - np.expm1(0.025) / 0.5) < 1e-12

    def test_forward_rate_requires_ordered_times(self, sample_curve):
        with pytest.raises(NumericDomainError):
            sample_curve.forward_rate(2.0, 2.0)

    def test_instantaneous_forward(self, sample_curve):
        assert abs(sample_curve.instantaneous_forward(7.3) - 0.05) < 1e-12

    def test_negative_time(self, sample_curve):
        with pytest.raises(NumericDomainError):
            sample_curve.discount(-0.5)
        with pytest.raises(NumericDomainError):
            sample_curve.discount(ANCHOR - timedelta(days=1))

    def test_out_of_range(self, sample_curve):
        with pytest.raises(OutOfRangeError):
            sample_curve.discount(31.0)

        sample_curve.enable_extrapolation()
        assert abs(sample_curve.discount(31.0) - np.exp(-0.05 * 31.0)) < 1e-14

    def test_to_frame(self, sample_curve):
        frame = sample_curve.to_frame()
        assert list(frame.columns) == ["date", "time", "value", "discount", "zero_rate"]
        assert frame["discount"].iloc[0] == 1.0
        assert len(frame) == len(sample_curve.pillars)


class TestInterpolatedCurve:
    """Pillar validation and interpolation variables."""

    TIMES = [0.0, 1.0, 2.0, 5.0, 10.0]
    ZEROS = [0.030, 0.030, 0.032, 0.035, 0.037]

    @pytest.mark.parametrize("variable", list(InterpolationVariable))
    def test_discount_at_reference_is_one(self, variable):
        values = [1.0, 0.97, 0.94, 0.85, 0.70] if variable == InterpolationVariable.DISCOUNT else self.ZEROS
        curve = InterpolatedCurve(ANCHOR, self.TIMES, values, variable=variable)
        assert curve.discount(0.0) == 1.0

    def test_zero_variable_reproduces_pillars(self):
        curve = InterpolatedCurve(ANCHOR, self.TIMES, self.ZEROS)
        for t, z in zip(self.TIMES[1:], self.ZEROS[1:]):
            assert abs(curve.discount(t) - np.exp(-z * t)) < 1e-15

    def test_forward_variable(self):
        # flat instantaneous forwards give exp(-f t)
        curve = InterpolatedCurve(
            ANCHOR, self.TIMES, [0.04] * 5, variable=InterpolationVariable.FORWARD
        )
        assert abs(curve.discount(3.7) - np.exp(-0.04 * 3.7)) < 1e-14
        assert abs(curve.instantaneous_forward(3.7) - 0.04) < 1e-15

    @pytest.mark.parametrize("method", [
        InterpolationMethod.LINEAR,
        InterpolationMethod.CUBIC_SPLINE,
        InterpolationMethod.CONVEX_MONOTONE,
    ])
    def test_analytic_forward_matches_numerical(self, method):
        curve = InterpolatedCurve(ANCHOR, self.TIMES, self.ZEROS, method=method)
        for t in (0.5, 3.3, 7.0):
            numerical = YieldTermStructure.instantaneous_forward(curve, t)
            assert abs(curve.instantaneous_forward(t) - numerical) < 1e-6

    def test_log_linear_discount_forward(self):
        values = [1.0, 0.97, 0.94, 0.85, 0.70]
        curve = InterpolatedCurve(
            ANCHOR, self.TIMES, values,
            variable=InterpolationVariable.DISCOUNT, method=InterpolationMethod.LOG_LINEAR
        )
        expected = np.log(0.94 / 0.85) / 3.0
        assert abs(curve.instantaneous_forward(3.0) - expected) < 1e-12

    def test_non_positive_discount_rejected(self):
        curve = InterpolatedCurve(
            ANCHOR, [0.0, 1.0], [1.0, 0.5], variable=InterpolationVariable.DISCOUNT
        )
        curve.enable_extrapolation()
        with pytest.raises(NumericDomainError):
            curve.discount(3.0)

    def test_first_pillar_must_be_reference(self):
        with pytest.raises(ConfigurationError):
            InterpolatedCurve(ANCHOR, [0.5, 1.0], [0.03, 0.03])

    def test_discount_at_reference_must_be_one(self):
        with pytest.raises(ConfigurationError):
            InterpolatedCurve(ANCHOR, [0.0, 1.0], [0.99, 0.95], variable=InterpolationVariable.DISCOUNT)

    def test_mismatched_lengths(self):
        with pytest.raises(ConfigurationError):
            InterpolatedCurve(ANCHOR, [0.0, 1.0, 2.0], [0.03, 0.03])

    def test_date_pillars(self):
        pillars = [ANCHOR, date(2025, 1, 15), date(2026, 1, 15)]
        curve = InterpolatedCurve(ANCHOR, pillars, [0.03, 0.03, 0.04])

        assert curve.pillars[1].date == date(2025, 1, 15)
        assert abs(curve.pillars[2].time - 731 / 365) < 1e-15
        assert abs(curve.max_time - 731 / 365) < 1e-15

    def test_with_values(self):
        curve = InterpolatedCurve(ANCHOR, self.TIMES, self.ZEROS)
        curve.enable_extrapolation()
        bumped = curve.with_values(np.array(self.ZEROS) + 0.0001)

        assert np.allclose(bumped.pillar_times, curve.pillar_times)
        assert bumped.allows_extrapolation
        assert bumped.discount(5.0) < curve.discount(5.0)
        assert curve.pillar_values[1] == 0.030


class TestDirectCurves:
    """Curves built straight from quotes."""

    def test_zero_curve_converts_compounding(self):
        quotes = [(date(2025, 1, 15), 0.03), (date(2029, 1, 15), 0.035)]
        curve = build_zero_curve(ANCHOR, quotes, compounding=CompoundingConvention.ANNUAL)

        t = year_fraction(ANCHOR, date(2029, 1, 15), DayCount.ACT_365)
        assert abs(curve.discount(date(2029, 1, 15)) - 1.035 ** -t) < 1e-14
        assert curve.pillars[0].date == ANCHOR

    def test_zero_curve_quote_day_count(self):
        quotes = [(date(2025, 1, 15), 0.03)]
        curve = build_zero_curve(ANCHOR, quotes, quote_day_count=DayCount.ACT_360)

        tau = year_fraction(ANCHOR, date(2025, 1, 15), DayCount.ACT_360)
        assert abs(curve.discount(date(2025, 1, 15)) - np.exp(-0.03 * tau)) < 1e-14

    def test_zero_curve_as_discount_variable(self):
        quotes = [(date(2025, 1, 15), 0.03), (date(2026, 1, 15), 0.032)]
        curve = build_zero_curve(ANCHOR, quotes, variable=InterpolationVariable.DISCOUNT)

        assert curve.variable == InterpolationVariable.DISCOUNT
        assert curve.pillar_values[0] == 1.0
        t = year_fraction(ANCHOR, date(2026, 1, 15), DayCount.ACT_365)
        assert abs(curve.discount(t) - np.exp(-0.032 * t)) < 1e-14

    def test_zero_curve_rejects_forward_variable(self):
        with pytest.raises(ConfigurationError):
            build_zero_curve(ANCHOR, [(date(2025, 1, 15), 0.03)], variable=InterpolationVariable.FORWARD)

    def test_duplicate_quote_dates(self):
        quotes = [(date(2025, 1, 15), 0.03), (date(2025, 1, 15), 0.031)]
        with pytest.raises(ConfigurationError):
            build_zero_curve(ANCHOR, quotes)

    def test_quote_before_reference(self):
        with pytest.raises(ConfigurationError):
            build_discount_curve(ANCHOR, [(date(2023, 1, 15), 1.01), (date(2025, 1, 15), 0.97)])

    def test_discount_curve(self):
        quotes = [(date(2026, 1, 15), 0.94), (date(2025, 1, 15), 0.97)]
        curve = build_discount_curve(ANCHOR, quotes)

        assert curve.method == InterpolationMethod.LOG_LINEAR
        assert abs(curve.discount(date(2025, 1, 15)) - 0.97) < 1e-15
        assert len(curve.pillars) == 3

    def test_discount_curve_reference_value(self):
        with pytest.raises(ConfigurationError):
            build_discount_curve(ANCHOR, [(ANCHOR, 0.99), (date(2025, 1, 15), 0.97)])


class TestSurvivalCurves:
    """Default curves consumed by the yield-plus-default composite."""

    def test_flat_hazard(self):
        curve = FlatHazardRateCurve(ANCHOR, 0.02, recovery_rate=0.4)

        assert curve.survival_probability(0.0) == 1.0
        assert abs(curve.survival_probability(5.0) - np.exp(-0.1)) < 1e-15
        assert abs(curve.hazard_rate(3.0) - 0.02) < 1e-10

    def test_interpolated_survival_piecewise_hazard(self):
        dates = [date(2025, 1, 15), date(2029, 1, 15)]
        curve = InterpolatedSurvivalCurve(ANCHOR, dates, [0.98, 0.90])

        assert abs(curve.survival_probability(dates[0]) - 0.98) < 1e-15
        assert abs(curve.hazard_rate(2.0) - curve.hazard_rate(3.5)) < 1e-8

    def test_recovery_must_be_probability(self):
        with pytest.raises(ConfigurationError):
            FlatHazardRateCurve(ANCHOR, 0.02, recovery_rate=1.5)

    def test_survival_must_be_probability(self):
        with pytest.raises(ConfigurationError):
            InterpolatedSurvivalCurve(ANCHOR, [date(2025, 1, 15)], [1.2])
