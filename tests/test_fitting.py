"""
Unit tests for bonds, parametric families and bond curve fitting.
"""

from datetime import date
import numpy as np
import pytest

from termstructures.config import BootstrapConfig
from termstructures.curves import (
    BondCurveFitter,
    ExponentialSplines,
    FittedBondCurve,
    FittingBond,
    FittingMethod,
    NelsonSiegel,
    Svensson,
    create_family,
    create_flat_curve,
)
from termstructures.exceptions import CalibrationError, ConfigurationError, OutOfRangeError


AS_OF = date(2024, 1, 15)
SETTLE = date(2024, 1, 17)
NS_PARAMS = [0.03, -0.01, 0.01, 2.0]


def synthetic_bonds(params, specs):
    """Bonds priced off a Nelson-Siegel curve with the given parameters."""
    curve = FittedBondCurve(AS_OF, NelsonSiegel(), params)
    bonds = []
    for sec_id, maturity, coupon in specs:
        bond = FittingBond(sec_id, SETTLE, maturity, coupon)
        bond.price_quote = bond.clean_price(curve) / 100.0
        bonds.append(bond)
    return bonds


BOND_SPECS = [
    ("T1", date(2025, 1, 15), 0.020),
    ("T2", date(2026, 1, 15), 0.025),
    ("T4", date(2028, 1, 15), 0.030),
    ("T7", date(2031, 1, 15), 0.035),
    ("T15", date(2039, 1, 15), 0.040),
]


class TestFittingBond:
    """Bond pricing conventions."""

    @pytest.fixture
    def bond(self):
        return FittingBond("UST_2026", SETTLE, date(2026, 1, 15), 0.04, frequency=2)

    def test_cashflows(self, bond):
        flows = bond.cashflows()

        assert len(flows) == 4
        assert all(abs(cf.amount - 2.0) < 1e-12 for cf in flows[:-1])
        assert abs(flows[-1].amount - 102.0) < 1e-12
        assert flows[-1].type == "COUPON+PRINCIPAL"

    def test_accrued_interest(self, bond):
        # two days into a 182-day ACT/ACT period starting 2024-01-15
        accrued = bond.accrued_interest()
        expected = 2.0 * (2 / 366) / (182 / 366)
        assert abs(accrued - expected) < 1e-12

    def test_clean_is_dirty_minus_accrued(self, bond):
        curve = create_flat_curve(AS_OF, 0.04)
        assert abs(bond.dirty_price(curve) - bond.clean_price(curve) - bond.accrued_interest()) < 1e-12

    def test_yield_from_price_roundtrip(self, bond):
        curve = create_flat_curve(AS_OF, 0.04)
        price = bond.clean_price(curve)
        y = bond.yield_from_price(price)

        assert 0.035 < y < 0.045
        assert abs(bond.yield_from_price(price - 1.0) - y) > 1e-3

    def test_invalid_bond(self):
        with pytest.raises(ConfigurationError):
            FittingBond("BAD", SETTLE, SETTLE, 0.04)


class TestFittingFamilies:
    """Parametric discount functions."""

    @pytest.mark.parametrize("family,params", [
        (NelsonSiegel(), NS_PARAMS),
        (Svensson(), [0.03, -0.01, 0.01, 0.005, 2.0, 0.3]),
        (ExponentialSplines(3), [0.2, 0.1, 0.03]),
    ])
    def test_discount_at_zero_is_one(self, family, params):
        assert abs(family.discount_function(np.array(params), 0.0) - 1.0) < 1e-15

    def test_svensson_reduces_to_nelson_siegel(self):
        t = np.array([0.5, 1.0, 5.0, 20.0])
        ns = NelsonSiegel().discount_function(np.array(NS_PARAMS), t)
        sv = Svensson().discount_function(np.array([0.03, -0.01, 0.01, 0.0, 2.0, 1.0]), t)
        assert np.allclose(ns, sv, rtol=0, atol=1e-15)

    def test_nelson_siegel_limits(self):
        ns = NelsonSiegel()
        params = np.array(NS_PARAMS)
        # short end tends to b0 + b1, long end to b0
        assert abs(ns.zero_rate(params, 1e-12) - 0.02) < 1e-9
        assert abs(ns.zero_rate(params, 1e4) - 0.03) < 1e-5

    def test_data_driven_guess(self):
        guess = NelsonSiegel().initial_guess([1.0, 10.0], [0.02, 0.035])
        assert np.allclose(guess, [0.035, -0.015, 0.0, 5.0])
        assert np.all(ExponentialSplines(4).initial_guess([1.0], [0.02]) == 0.0)

    def test_create_family(self):
        assert isinstance(create_family("NelsonSiegel"), NelsonSiegel)
        assert isinstance(create_family(FittingMethod.SVENSSON), Svensson)
        assert isinstance(create_family("exponential_splines"), ExponentialSplines)
        assert create_family("exponential_splines").size == 9
        with pytest.raises(ConfigurationError):
            create_family("CubicBSplines")


class TestBondCurveFitter:
    """Fitting parametric curves to bond prices."""

    def test_recovers_nelson_siegel_parameters(self):
        bonds = synthetic_bonds(NS_PARAMS, BOND_SPECS)
        fitter = BondCurveFitter("UST", AS_OF, NelsonSiegel(), config=BootstrapConfig(accuracy=1e-8))
        result = fitter.fit(bonds)
        info = result.calibration_info

        assert info.cost < 1e-8
        assert np.max(np.abs(np.array(info.solution) - NS_PARAMS)) < 1e-3
        assert not info.degenerate
        assert info.securities == ["T1", "T2", "T4", "T7", "T15"]
        for market, model in zip(info.market_prices, info.model_prices):
            assert abs(market - model) < 1e-8

    def test_fitted_curve_reprices(self):
        bonds = synthetic_bonds(NS_PARAMS, BOND_SPECS)
        result = BondCurveFitter("UST", AS_OF, NelsonSiegel(), config=BootstrapConfig(accuracy=1e-8)).fit(bonds)

        for bond in bonds:
            assert abs(bond.clean_price(result.curve) - bond.price_quote * 100.0) < 1e-6
        assert len(result.calibration_info.to_frame()) == len(bonds)

    def test_curve_range_ends_at_last_maturity(self):
        bonds = synthetic_bonds(NS_PARAMS, BOND_SPECS)
        curve = BondCurveFitter("UST", AS_OF, NelsonSiegel(), config=BootstrapConfig(accuracy=1e-8)).fit(bonds).curve

        with pytest.raises(OutOfRangeError):
            curve.discount(date(2045, 1, 15))
        curve.enable_extrapolation()
        assert curve.discount(date(2045, 1, 15)) > 0

    def test_flat_extrapolation(self):
        bonds = synthetic_bonds(NS_PARAMS, BOND_SPECS)
        fitter = BondCurveFitter(
            "UST", AS_OF, NelsonSiegel(), config=BootstrapConfig(accuracy=1e-8), extrapolate_flat=True
        )
        curve = fitter.fit(bonds).curve
        curve.enable_extrapolation()

        assert abs(curve.zero_rate(0.1) - curve.zero_rate(0.5)) < 1e-12
        assert abs(curve.forward_rate(20.0, 21.0) - curve.forward_rate(25.0, 26.0)) < 1e-12

    def test_filters_bonds(self):
        bonds = synthetic_bonds(NS_PARAMS, BOND_SPECS)
        bonds[0].tradable = False
        settled = FittingBond("OLD", AS_OF, date(2027, 1, 15), 0.03)
        fitter = BondCurveFitter("UST", AS_OF, NelsonSiegel(), config=BootstrapConfig(accuracy=1e-8, dont_throw=True))
        info = fitter.fit(bonds + [settled]).calibration_info

        assert "T1" not in info.securities
        assert "OLD" not in info.securities
        assert any("T1" in w for w in info.warnings)

    def test_no_bonds_left(self):
        bond = FittingBond("T1", SETTLE, date(2025, 1, 15), 0.02, tradable=False)
        with pytest.raises(ConfigurationError):
            BondCurveFitter("UST", AS_OF, NelsonSiegel()).fit([bond])

    def test_noisy_prices_fail_tolerance(self):
        bonds = synthetic_bonds(NS_PARAMS, BOND_SPECS + [("T10", date(2034, 1, 15), 0.04)])
        for i, bond in enumerate(bonds):
            bond.price_quote += 0.002 * (-1) ** i
        fitter = BondCurveFitter("UST", AS_OF, NelsonSiegel(), config=BootstrapConfig(accuracy=1e-8))

        with pytest.raises(CalibrationError) as excinfo:
            fitter.fit(bonds)
        assert excinfo.value.curve_id == "UST"

    def test_noisy_prices_accepted_under_dont_throw(self):
        bonds = synthetic_bonds(NS_PARAMS, BOND_SPECS + [("T10", date(2034, 1, 15), 0.04)])
        for i, bond in enumerate(bonds):
            bond.price_quote += 0.002 * (-1) ** i
        config = BootstrapConfig(accuracy=1e-8, dont_throw=True, max_attempts=2)
        info = BondCurveFitter("UST", AS_OF, NelsonSiegel(), config=config).fit(bonds).calibration_info

        assert info.cost > 1e-8
        assert info.trials == 2
        assert any("accepted" in w for w in info.warnings)

    def test_default_exponential_splines_fit_basket(self):
        specs = BOND_SPECS + [("T10", date(2034, 1, 15), 0.04), ("T20", date(2044, 1, 15), 0.045)]
        bonds = synthetic_bonds(NS_PARAMS, specs)
        config = BootstrapConfig(accuracy=1e-8, dont_throw=True)
        info = BondCurveFitter("UST", AS_OF, ExponentialSplines(), config=config).fit(bonds).calibration_info

        assert ExponentialSplines().size == 9
        assert len(info.securities) == 7
        assert info.cost < 0.05

    def test_degenerate_solution_flagged(self):

        # zero coupon bonds at par: the only solution is a zero decay rate
        bonds = [
            FittingBond(f"Z{years}", SETTLE, date(2024 + years, 1, 17), 0.0)
            for years in (1, 2, 5)
        ]
        info = BondCurveFitter("ZERO", AS_OF, ExponentialSplines(1)).fit(bonds).calibration_info

        assert info.degenerate
        assert info.trials == 1
        assert any("degenerate" in w for w in info.warnings)
        assert any("single trial" in w for w in info.warnings)
