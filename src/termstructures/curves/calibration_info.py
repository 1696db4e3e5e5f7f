"""
Diagnostic records produced while building curves.

- InstrumentFit: market vs implied quote for one calibrating instrument
- BootstrapCalibrationInfo: outcome of an iterative bootstrap
- FittedBondCalibrationInfo: outcome of a parametric bond fit
- YieldCurveCalibrationInfo: zero rates and discounts sampled from a built
  curve, with the bootstrap or fit details attached when there are any
"""

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Union

import pandas as pd


@dataclass
class InstrumentFit:
    """Fit of one calibrating instrument."""
    name: str
    pillar_date: date
    market_quote: float
    implied_quote: float

    @property
    def error(self) -> float:
        return self.implied_quote - self.market_quote


@dataclass
class BootstrapCalibrationInfo:
    """
    Outcome of an iterative bootstrap.

    Attributes:
        curve_id: Curve identifier
        reference_date: Curve reference date
        status: Final bootstrap status name
        pillar_dates: Pillar dates including the reference date
        pillar_times: Pillar year fractions
        pillar_values: Pillar values in the interpolation variable, as held by
            the curve (pillar 0 tied to pillar 1 for Zero and Forward)
        variable: Interpolation variable name
        instruments: Per-instrument quote fit
        sequential_attempts: Interval widenings used per pillar
        global_iterations: Gauss-Seidel sweeps run in the global pass
        joint_attempts: Joint solve attempts run after the sweeps
        warnings: Messages for degraded or suspicious steps
    """
    curve_id: str
    reference_date: date
    status: str
    pillar_dates: List[date]
    pillar_times: List[float]
    pillar_values: List[float]
    variable: str
    instruments: List[InstrumentFit]
    sequential_attempts: List[int] = field(default_factory=list)
    global_iterations: int = 0
    joint_attempts: int = 0
    warnings: List[str] = field(default_factory=list)

    @property
    def worst_error(self) -> float:
        if not self.instruments:
            return 0.0
        return max(abs(fit.error) for fit in self.instruments)

    @property
    def worst_instrument(self) -> Optional[str]:
        if not self.instruments:
            return None
        return max(self.instruments, key=lambda fit: abs(fit.error)).name

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame([
            {
                "instrument": fit.name,
                "pillar_date": fit.pillar_date,
                "market_quote": fit.market_quote,
                "implied_quote": fit.implied_quote,
                "error": fit.error,
            }
            for fit in self.instruments
        ])


@dataclass
class FittedBondCalibrationInfo:
    """
    Outcome of a parametric bond curve fit.

    Prices are clean prices per 100 face; yields are continuously
    compounded ACT/ACT yields from those prices.
    """
    family: str
    securities: List[str]
    maturities: List[date]
    market_prices: List[float]
    model_prices: List[float]
    market_yields: List[float]
    model_yields: List[float]
    tolerance: float
    cost: float
    solution: List[float]
    iterations: int
    trials: int
    degenerate: bool = False
    warnings: List[str] = field(default_factory=list)

    def to_frame(self) -> pd.DataFrame:
        df = pd.DataFrame({
            "security": self.securities,
            "maturity": self.maturities,
            "market_price": self.market_prices,
            "model_price": self.model_prices,
            "market_yield": self.market_yields,
            "model_yield": self.model_yields,
        })
        df["price_error"] = df["model_price"] - df["market_price"]
        return df


@dataclass
class YieldCurveCalibrationInfo:
    """Zero rates and discount factors sampled from a built curve."""
    curve_id: str
    reference_date: date
    dates: List[date]
    times: List[float]
    zero_rates: List[float]
    discount_factors: List[float]
    details: Optional[Union[BootstrapCalibrationInfo, FittedBondCalibrationInfo]] = None

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({
            "date": self.dates,
            "time": self.times,
            "zero_rate": self.zero_rates,
            "discount": self.discount_factors,
        })


__all__ = [
    "InstrumentFit",
    "BootstrapCalibrationInfo",
    "FittedBondCalibrationInfo",
    "YieldCurveCalibrationInfo",
]
