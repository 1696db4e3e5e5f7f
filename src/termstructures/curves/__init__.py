"""
Curves package - yield curve construction and composition.

Provides:
- InterpolatedCurve: Pillar-based curve with pluggable interpolation
- IterativeBootstrapper: Bootstrap curves from calibrating instruments
- BondCurveFitter: Parametric curves fitted to bond prices
- Composite curves built from other curves
"""

from .interpolation import (
    InterpolationMethod,
    InterpolationVariable,
    Interpolator,
    LinearInterpolator,
    LogLinearInterpolator,
    CubicInterpolator,
    QuadraticInterpolator,
    LogQuadraticInterpolator,
    ConvexMonotoneInterpolator,
    create_interpolator,
)
from .curve import Pillar, YieldTermStructure, InterpolatedCurve, create_flat_curve
from .instruments import CalibratingInstrument, Deposit, FRA, Future, OISSwap
from .calibration_info import (
    InstrumentFit,
    BootstrapCalibrationInfo,
    FittedBondCalibrationInfo,
    YieldCurveCalibrationInfo,
)
from .bootstrap import (
    BootstrapStatus,
    BootstrapState,
    BootstrapResult,
    PiecewiseYieldCurve,
    IterativeBootstrapper,
)
from .direct import build_zero_curve, build_discount_curve
from .credit import SurvivalCurve, FlatHazardRateCurve, InterpolatedSurvivalCurve
from .composite import (
    ZeroSpreadedCurve,
    WeightedAverageCurve,
    YieldPlusDefaultCurve,
    DiscountRatioCurve,
    IborFallbackCurve,
)
from .bonds import BondCashflow, FittingBond
from .parametric import (
    FittingMethod,
    FittingFamily,
    NelsonSiegel,
    Svensson,
    ExponentialSplines,
    create_family,
)
from .fitting import FittedBondCurve, FittedBondResult, BondCurveFitter

__all__ = [
    "InterpolationMethod",
    "InterpolationVariable",
    "Interpolator",
    "LinearInterpolator",
    "LogLinearInterpolator",
    "CubicInterpolator",
    "QuadraticInterpolator",
    "LogQuadraticInterpolator",
    "ConvexMonotoneInterpolator",
    "create_interpolator",
    "Pillar",
    "YieldTermStructure",
    "InterpolatedCurve",
    "create_flat_curve",
    "CalibratingInstrument",
    "Deposit",
    "FRA",
    "Future",
    "OISSwap",
    "InstrumentFit",
    "BootstrapCalibrationInfo",
    "FittedBondCalibrationInfo",
    "YieldCurveCalibrationInfo",
    "BootstrapStatus",
    "BootstrapState",
    "BootstrapResult",
    "PiecewiseYieldCurve",
    "IterativeBootstrapper",
    "build_zero_curve",
    "build_discount_curve",
    "SurvivalCurve",
    "FlatHazardRateCurve",
    "InterpolatedSurvivalCurve",
    "ZeroSpreadedCurve",
    "WeightedAverageCurve",
    "YieldPlusDefaultCurve",
    "DiscountRatioCurve",
    "IborFallbackCurve",
    "BondCashflow",
    "FittingBond",
    "FittingMethod",
    "FittingFamily",
    "NelsonSiegel",
    "Svensson",
    "ExponentialSplines",
    "create_family",
    "FittedBondCurve",
    "FittedBondResult",
    "BondCurveFitter",
]
