"""
termstructures: Yield Term Structure Construction

A modular library for:
- Interpolated yield curves over zero rates, discount factors or
  instantaneous forwards with nine interpolation methods
- Iterative bootstrapping of curves from calibrating instruments
- Parametric (Nelson-Siegel, Svensson, exponential splines) curves
  fitted to bond prices
- Curves composed from other curves (spreads, averages, default
  adjustment, discount ratios, Ibor fallback)
- A registry and builder wiring curve configurations together

Scope: single-currency curve construction; no market data parsing.
"""

__version__ = "0.1.0"

# Core modules
from .conventions import DayCount, BusinessDayConvention, CompoundingConvention, year_fraction
from .dates import DateUtils, ScheduleInfo
from .exceptions import (
    CurveError,
    ConfigurationError,
    CalibrationError,
    NumericDomainError,
    OutOfRangeError,
)

# Curves
from .curves import (
    InterpolationMethod,
    InterpolationVariable,
    YieldTermStructure,
    InterpolatedCurve,
    IterativeBootstrapper,
    BootstrapStatus,
    BondCurveFitter,
    FittedBondCurve,
)

# Configuration and building
from .config import (
    BootstrapConfig,
    YieldCurveConfig,
    BootstrapSegment,
    DirectZeroSegment,
    DirectDiscountSegment,
    ZeroSpreadSegment,
    WeightedAverageSegment,
    YieldPlusDefaultSegment,
    DiscountRatioSegment,
    IborFallbackSegment,
    FittedBondSegment,
)
from .registry import CurveKey, CurveRegistry
from .builder import YieldCurve, build_yield_curve, build_curves

__all__ = [
    # Conventions
    "DayCount",
    "BusinessDayConvention",
    "CompoundingConvention",
    "year_fraction",
    "DateUtils",
    "ScheduleInfo",
    # Errors
    "CurveError",
    "ConfigurationError",
    "CalibrationError",
    "NumericDomainError",
    "OutOfRangeError",
    # Curves
    "InterpolationMethod",
    "InterpolationVariable",
    "YieldTermStructure",
    "InterpolatedCurve",
    "IterativeBootstrapper",
    "BootstrapStatus",
    "BondCurveFitter",
    "FittedBondCurve",
    # Configuration and building
    "BootstrapConfig",
    "YieldCurveConfig",
    "BootstrapSegment",
    "DirectZeroSegment",
    "DirectDiscountSegment",
    "ZeroSpreadSegment",
    "WeightedAverageSegment",
    "YieldPlusDefaultSegment",
    "DiscountRatioSegment",
    "IborFallbackSegment",
    "FittedBondSegment",
    "CurveKey",
    "CurveRegistry",
    "YieldCurve",
    "build_yield_curve",
    "build_curves",
]
