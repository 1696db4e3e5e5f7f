"""
Fitted bond curves.

BondCurveFitter fits a parametric discount function to clean bond prices:
1. Drop bonds that settle on or before the reference date or are not
   tradable
2. Start from a data-driven guess, then from quasi-random (Halton) guesses
   spread over the family's plausible parameter ranges
3. Minimise price residuals with least squares, keeping the best trial
4. Accept the fit against the configured tolerance
"""

from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence
import logging

import numpy as np
from scipy.optimize import least_squares
from scipy.stats import qmc

from ..config import BootstrapConfig
from ..conventions import DayCount, year_fraction
from ..exceptions import CalibrationError, ConfigurationError
from .bonds import FittingBond
from .calibration_info import FittedBondCalibrationInfo
from .curve import YieldTermStructure
from .parametric import FittingFamily

logger = logging.getLogger(__name__)

DEGENERATE_NORM = 1e-4


class FittedBondCurve(YieldTermStructure):
    """
    Yield curve given by a fitted parametric discount function.

    With cutoffs set the curve is flat outside the fitted range: flat zero
    rate before min_cutoff and flat instantaneous forward after max_cutoff.

    Attributes:
        family: Parametric family
        params: Fitted parameters
        min_cutoff: Time of the shortest fitted maturity (or None)
        max_cutoff: Time of the longest fitted maturity (or None)
    """

    def __init__(
        self,
        reference_date: date,
        family: FittingFamily,
        params: Sequence[float],
        day_count: DayCount = DayCount.ACT_365,
        min_cutoff: Optional[float] = None,
        max_cutoff: Optional[float] = None,
        max_time: Optional[float] = None
    ):
        super().__init__(reference_date, day_count)
        self.family = family
        self.params = np.array(params, dtype=np.float64)
        self.min_cutoff = min_cutoff
        self.max_cutoff = max_cutoff
        self._max_time = max_time if max_time is not None else np.inf

    @property
    def max_time(self) -> float:
        return self._max_time

    def _fitted_discount(self, t: float) -> float:
        return float(self.family.discount_function(self.params, t))

    def _discount_impl(self, t: float, extrapolate: bool = False) -> float:
        if self.min_cutoff is not None and t < self.min_cutoff:
            zero = -np.log(self._fitted_discount(self.min_cutoff)) / self.min_cutoff
            return np.exp(-zero * t)
        if self.max_cutoff is not None and t > self.max_cutoff:
            h = 1e-4
            d_max = self._fitted_discount(self.max_cutoff)
            forward = np.log(self._fitted_discount(self.max_cutoff - h) /
                             self._fitted_discount(self.max_cutoff + h)) / (2 * h)
            return d_max * np.exp(-forward * (t - self.max_cutoff))
        return self._fitted_discount(t)

    def __repr__(self) -> str:
        return (f"FittedBondCurve(reference={self.reference_date}, family={self.family.name}, "
                f"params={np.round(self.params, 6).tolist()})")


@dataclass
class FittedBondResult:
    """Result of a bond curve fit."""
    curve: FittedBondCurve
    calibration_info: FittedBondCalibrationInfo


class _BondData:
    """Bond cashflows as arrays of curve times."""

    def __init__(self, bond: FittingBond, reference_date: date, day_count: DayCount):
        flows = bond.cashflows()
        scale = 100.0 / bond.face_value
        self.times = np.array([year_fraction(reference_date, cf.date, day_count) for cf in flows])
        self.amounts = np.array([cf.amount * scale for cf in flows])
        self.settlement_time = year_fraction(reference_date, bond.settlement_date, day_count)
        self.accrued = bond.accrued_interest()

    def clean_price(self, family: FittingFamily, params: np.ndarray) -> float:
        discounts = family.discount_function(params, self.times)
        settle = family.discount_function(params, self.settlement_time)
        return float(np.dot(self.amounts, discounts) / settle - self.accrued)


class BondCurveFitter:
    """
    Fit a parametric yield curve to bond prices.

    Attributes:
        curve_id: Curve identifier used in diagnostics
        reference_date: Valuation date
        family: Parametric family
        day_count: Day count for curve times
        config: Tolerances and number of trials (max_attempts)
        price_scale: Factor turning quotes into prices per 100 face
        extrapolate_flat: Flat zero / forward outside the fitted maturities
    """

    def __init__(
        self,
        curve_id: str,
        reference_date: date,
        family: FittingFamily,
        day_count: DayCount = DayCount.ACT_365,
        config: Optional[BootstrapConfig] = None,
        price_scale: float = 100.0,
        extrapolate_flat: bool = False
    ):
        self.curve_id = curve_id
        self.reference_date = reference_date
        self.family = family
        self.day_count = day_count
        self.config = config or BootstrapConfig()
        self.price_scale = price_scale
        self.extrapolate_flat = extrapolate_flat

    def _select_bonds(self, bonds: Sequence[FittingBond], warnings: List[str]) -> List[FittingBond]:
        selected = []
        for bond in bonds:
            if not bond.tradable:
                msg = f"skipped bond {bond.security_id}: not tradable"
                logger.warning("Curve %s: %s", self.curve_id, msg)
                warnings.append(msg)
            elif bond.settlement_date <= self.reference_date:
                msg = f"skipped bond {bond.security_id}: settles {bond.settlement_date} on or before as-of"
                logger.debug("Curve %s: %s", self.curve_id, msg)
                warnings.append(msg)
            else:
                logger.debug("Curve %s: added bond %s maturing %s",
                             self.curve_id, bond.security_id, bond.maturity_date)
                selected.append(bond)
        return sorted(selected, key=lambda b: b.maturity_date)

    def fit(self, bonds: Sequence[FittingBond]) -> FittedBondResult:
        """
        Fit the family to bond prices.

        Args:
            bonds: Bonds with clean price quotes

        Returns:
            FittedBondResult with curve and diagnostics

        Raises:
            ConfigurationError: No usable bonds
            CalibrationError: Best cost above tolerance and dont_throw off
        """
        warnings: List[str] = []
        selected = self._select_bonds(bonds, warnings)
        if not selected:
            raise ConfigurationError(
                "No bonds left to fit after filtering",
                curve_id=self.curve_id, as_of=self.reference_date
            )

        data = [_BondData(b, self.reference_date, self.day_count) for b in selected]
        market = np.array([b.price_quote * self.price_scale for b in selected])
        market_yields = [b.yield_from_price(p) for b, p in zip(selected, market)]
        maturities = [d.times[-1] for d in data]

        def residuals(params: np.ndarray) -> np.ndarray:
            with np.errstate(all="ignore"):
                model = np.array([d.clean_price(self.family, params) for d in data])
            return np.nan_to_num(model - market, nan=1e6, posinf=1e6, neginf=-1e6)

        guesses = [self.family.initial_guess(maturities, market_yields)]
        n_trials = self.config.max_attempts
        if self.family.guess_ranges is None:
            if n_trials > 1:
                msg = (f"max_attempts={n_trials} ignored, {self.family.name} has no guess range; "
                       f"using a single trial")
                logger.warning("Curve %s: %s", self.curve_id, msg)
                warnings.append(msg)
            n_trials = 1
        if n_trials > 1:
            sampler = qmc.Halton(d=self.family.size, scramble=False)
            sampler.fast_forward(1)
            guesses.extend(self.family.map_unit_point(p) for p in sampler.random(n_trials - 1))

        method = "lm" if len(selected) >= self.family.size else "trf"
        best_x, best_cost = guesses[0], np.inf
        iterations, trials = 0, 0
        for trial, x0 in enumerate(guesses):
            trials += 1
            result = least_squares(residuals, x0, method=method,
                                   ftol=1e-15, xtol=1e-15, gtol=1e-15, max_nfev=10000)
            iterations += result.nfev
            cost = float(np.sqrt(np.sum(result.fun ** 2)))
            if cost < best_cost:
                best_x, best_cost = result.x, cost
            logger.debug("Curve %s fit trial %d: cost %.3e, best %.3e",
                         self.curve_id, trial, cost, best_cost)
            if best_cost < self.config.accuracy:
                break

        tolerance = self.config.effective_global_accuracy
        if best_cost > tolerance:
            if not self.config.dont_throw:
                raise CalibrationError(
                    f"Bond curve fit cost {best_cost:.3e} exceeds tolerance {tolerance:.3e} "
                    f"after {trials} trial(s)",
                    curve_id=self.curve_id, as_of=self.reference_date,
                    cause=f"cost={best_cost:.3e}"
                )
            msg = f"fit cost {best_cost:.3e} above tolerance {tolerance:.3e} accepted"
            logger.warning("Curve %s: %s", self.curve_id, msg)
            warnings.append(msg)

        degenerate = bool(np.linalg.norm(best_x) < DEGENERATE_NORM)
        if degenerate:
            msg = f"degenerate solution, parameter norm {np.linalg.norm(best_x):.3e}"
            logger.warning("Curve %s: %s", self.curve_id, msg)
            warnings.append(msg)

        curve = FittedBondCurve(
            self.reference_date, self.family, best_x, self.day_count,
            min_cutoff=maturities[0] if self.extrapolate_flat else None,
            max_cutoff=maturities[-1] if self.extrapolate_flat else None,
            max_time=maturities[-1]
        )
        model = [d.clean_price(self.family, best_x) for d in data]
        info = FittedBondCalibrationInfo(
            family=self.family.name,
            securities=[b.security_id for b in selected],
            maturities=[b.maturity_date for b in selected],
            market_prices=market.tolist(),
            model_prices=model,
            market_yields=market_yields,
            model_yields=[b.yield_from_price(p) for b, p in zip(selected, model)],
            tolerance=tolerance,
            cost=best_cost,
            solution=[float(x) for x in best_x],
            iterations=iterations,
            trials=trials,
            degenerate=degenerate,
            warnings=warnings,
        )
        logger.debug("Curve %s fitted with %s: cost %.3e after %d trial(s)",
                     self.curve_id, self.family.name, best_cost, trials)
        return FittedBondResult(curve=curve, calibration_info=info)


__all__ = [
    "FittedBondCurve",
    "FittedBondResult",
    "BondCurveFitter",
]
