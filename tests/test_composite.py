"""
Unit tests for curves composed from other curves.
"""

from datetime import date
import numpy as np
import pytest

from termstructures.conventions import CompoundingConvention, DayCount, year_fraction
from termstructures.curves import (
    DiscountRatioCurve,
    FlatHazardRateCurve,
    IborFallbackCurve,
    InterpolatedCurve,
    WeightedAverageCurve,
    YieldPlusDefaultCurve,
    ZeroSpreadedCurve,
    create_flat_curve,
)
from termstructures.exceptions import ConfigurationError, NumericDomainError, OutOfRangeError


AS_OF = date(2024, 1, 15)


@pytest.fixture
def base_curve():
    return create_flat_curve(AS_OF, 0.03)


@pytest.fixture
def steep_curve():
    return InterpolatedCurve(AS_OF, [0.0, 1.0, 5.0, 30.0], [0.02, 0.02, 0.035, 0.045])


class TestZeroSpreadedCurve:

    def test_adds_spread_to_zero_rate(self, base_curve):
        curve = ZeroSpreadedCurve(base_curve, [1.0, 10.0], [0.001, 0.002])

        assert abs(curve.zero_rate(5.5) - (0.03 + 0.0015)) < 1e-12
        assert abs(curve.spread(5.5) - 0.0015) < 1e-15

    def test_flat_spread_outside_dates(self, base_curve):
        curve = ZeroSpreadedCurve(base_curve, [1.0, 10.0], [0.001, 0.002])

        assert abs(curve.spread(0.25) - 0.001) < 1e-15
        assert abs(curve.spread(20.0) - 0.002) < 1e-15

    def test_spread_in_other_compounding(self, base_curve):
        curve = ZeroSpreadedCurve(
            base_curve, [date(2025, 1, 15)], [0.0025], compounding=CompoundingConvention.ANNUAL
        )
        annual = base_curve.zero_rate(3.0, compounding=CompoundingConvention.ANNUAL) + 0.0025
        assert abs(curve.discount(3.0) - (1 + annual) ** -3.0) < 1e-14

    def test_invalid_spreads(self, base_curve):
        with pytest.raises(ConfigurationError):
            ZeroSpreadedCurve(base_curve, [1.0, 2.0], [0.001])
        with pytest.raises(ConfigurationError):
            ZeroSpreadedCurve(base_curve, [2.0, 1.0], [0.001, 0.002])


class TestWeightedAverageCurve:

    def test_unit_weight_reproduces_first_curve(self, base_curve, steep_curve):
        curve = WeightedAverageCurve(base_curve, steep_curve, 1.0, 0.0)
        for t in (0.5, 2.0, 12.0):
            assert abs(curve.discount(t) - base_curve.discount(t)) < 1e-15

    def test_half_weights_average_zero_rates(self, base_curve, steep_curve):
        curve = WeightedAverageCurve(base_curve, steep_curve, 0.5, 0.5)
        expected = 0.5 * (base_curve.zero_rate(5.0) + steep_curve.zero_rate(5.0))
        assert abs(curve.zero_rate(5.0) - expected) < 1e-12

    def test_reference_date_mismatch(self, base_curve):
        other = create_flat_curve(date(2024, 1, 16), 0.03)
        with pytest.raises(ConfigurationError):
            WeightedAverageCurve(base_curve, other, 0.5, 0.5)


class TestYieldPlusDefaultCurve:

    def test_default_risk_lowers_discount(self, base_curve):
        survival = FlatHazardRateCurve(AS_OF, 0.02, recovery_rate=0.4)
        curve = YieldPlusDefaultCurve(base_curve, [survival], None, [1.0])

        for t in (1.0, 5.0, 20.0):
            assert curve.discount(t) <= base_curve.discount(t)
        s = np.exp(-0.02 * 5.0)
        assert abs(curve.discount(5.0) - base_curve.discount(5.0) * (s + (1 - s) * 0.4)) < 1e-15

    def test_full_recovery_is_riskless(self, base_curve):
        survival = FlatHazardRateCurve(AS_OF, 0.05)
        curve = YieldPlusDefaultCurve(base_curve, [survival], [1.0], [1.0])
        assert abs(curve.discount(7.0) - base_curve.discount(7.0)) < 1e-15

    def test_weights_combine_curves(self, base_curve):
        curves = [FlatHazardRateCurve(AS_OF, 0.01, 0.0), FlatHazardRateCurve(AS_OF, 0.03, 0.0)]
        curve = YieldPlusDefaultCurve(base_curve, curves, None, [0.5, 0.5])
        expected = base_curve.discount(4.0) * np.exp(-0.02 * 4.0)
        assert abs(curve.discount(4.0) - expected) < 1e-15

    def test_length_mismatch(self, base_curve):
        survival = FlatHazardRateCurve(AS_OF, 0.02)
        with pytest.raises(ConfigurationError):
            YieldPlusDefaultCurve(base_curve, [survival], [0.4, 0.4], [1.0])
        with pytest.raises(ConfigurationError):
            YieldPlusDefaultCurve(base_curve, [], None, [])

    def test_default_curve_reference_date(self, base_curve):
        survival = FlatHazardRateCurve(date(2023, 12, 29), 0.02)
        with pytest.raises(ConfigurationError):
            YieldPlusDefaultCurve(base_curve, [survival], None, [1.0])


class TestDiscountRatioCurve:

    def test_ratio(self, base_curve, steep_curve):
        foreign = create_flat_curve(AS_OF, 0.01)
        curve = DiscountRatioCurve(base_curve, steep_curve, foreign)

        t = 3.0
        expected = base_curve.discount(t) * steep_curve.discount(t) / foreign.discount(t)
        assert abs(curve.discount(t) - expected) < 1e-15

    def test_equal_numerator_and_denominator(self, base_curve, steep_curve):
        curve = DiscountRatioCurve(base_curve, steep_curve, steep_curve)
        assert abs(curve.discount(9.0) - base_curve.discount(9.0)) < 1e-15


class TestRangeDelegation:
    """Composites leave range checks to their dependencies."""

    def test_out_of_range_from_dependency(self, steep_curve):
        short = InterpolatedCurve(AS_OF, [0.0, 1.0, 2.0], [0.02, 0.02, 0.025])
        curve = WeightedAverageCurve(steep_curve, short, 0.5, 0.5)

        assert curve.max_time == 2.0
        assert not curve.allows_extrapolation
        with pytest.raises(OutOfRangeError):
            curve.discount(5.0)

        short.enable_extrapolation()
        steep_curve.enable_extrapolation()
        assert curve.allows_extrapolation
        assert curve.discount(5.0) > 0

    def test_extrapolation_on_composite_only(self):
        short = InterpolatedCurve(AS_OF, [0.0, 1.0, 2.0], [0.02, 0.02, 0.025])
        other = InterpolatedCurve(AS_OF, [0.0, 1.0, 2.0], [0.03, 0.03, 0.035])
        curve = WeightedAverageCurve(short, other, 0.5, 0.5)

        curve.enable_extrapolation()

        assert curve.allows_extrapolation
        assert not short.allows_extrapolation
        expected = np.sqrt(short.discount(5.0, extrapolate=True) * other.discount(5.0, extrapolate=True))
        assert abs(curve.discount(5.0) - expected) < 1e-15
        with pytest.raises(OutOfRangeError):
            short.discount(5.0)

    def test_extrapolation_reaches_nested_dependencies(self):
        short = InterpolatedCurve(AS_OF, [0.0, 1.0, 2.0], [0.02, 0.02, 0.025])
        inner = ZeroSpreadedCurve(short, [1.0], [0.001])
        curve = DiscountRatioCurve(inner, short, short)

        with pytest.raises(OutOfRangeError):
            curve.discount(4.0)

        curve.enable_extrapolation()
        expected = short.zero_rate(4.0, extrapolate=True) + 0.001
        assert abs(curve.zero_rate(4.0) - expected) < 1e-12

    def test_single_call_extrapolation(self, steep_curve):
        short = InterpolatedCurve(AS_OF, [0.0, 1.0, 2.0], [0.02, 0.02, 0.025])
        curve = WeightedAverageCurve(steep_curve, short, 0.5, 0.5)

        assert curve.discount(5.0, extrapolate=True) > 0
        assert not curve.allows_extrapolation
        with pytest.raises(OutOfRangeError):
            curve.discount(5.0)

    def test_negative_time(self, base_curve):
        curve = ZeroSpreadedCurve(base_curve, [1.0], [0.001])
        with pytest.raises(NumericDomainError):
            curve.discount(-1.0)
        assert curve.discount(0.0) == 1.0


class TestIborFallbackCurve:

    @pytest.fixture
    def fallback(self, base_curve):
        fixings = {date(2024, 1, 10): 0.0550, date(2024, 3, 1): 0.0560}
        return IborFallbackCurve(
            base_curve, "USD-LIBOR", "3M", 0.0026161, date(2024, 2, 1), fixings
        )

    def test_historical_fixing(self, fallback):
        assert fallback.fixing(date(2024, 1, 10)) == 0.0550

    def test_missing_past_fixing(self, fallback):
        with pytest.raises(ConfigurationError):
            fallback.fixing(date(2024, 1, 12))

    def test_fixing_after_switch_uses_rfr(self, fallback, base_curve):
        # history on or after the switch date is ignored
        start, end = date(2024, 3, 1), date(2024, 6, 1)
        tau = year_fraction(start, end, DayCount.ACT_360)
        forward = (base_curve.discount(start) / base_curve.discount(end) - 1) / tau

        assert abs(fallback.fixing(start) - (forward + 0.0026161)) < 1e-14

    def test_discount_includes_spread(self, fallback, base_curve):
        continuous_spread = np.log1p(0.0026161 * 0.25) / 0.25
        expected = base_curve.discount(2.0) * np.exp(-continuous_spread * 2.0)
        assert abs(fallback.discount(2.0) - expected) < 1e-15
