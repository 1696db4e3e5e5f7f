"""
Yield curve builder.

build_yield_curve turns a YieldCurveConfig into a curve:
1. Dispatch on the segment kind, resolving dependencies in the registry
2. Enable extrapolation when configured
3. Evaluate the curve once so numeric problems surface during the build
4. Sample calibration info at the pillar dates or default periods

Errors from the curve layer propagate with the curve id and as-of date
filled in; any other numeric failure is re-raised as CalibrationError.
"""

from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence, Tuple
import logging

import numpy as np

from .config import (
    BootstrapSegment,
    DirectDiscountSegment,
    DirectZeroSegment,
    DiscountRatioSegment,
    FittedBondSegment,
    IborFallbackSegment,
    WeightedAverageSegment,
    YieldCurveConfig,
    YieldPlusDefaultSegment,
    ZeroSpreadSegment,
)
from .dates import DateUtils
from .exceptions import CalibrationError, ConfigurationError, CurveError
from .registry import CurveKey, CurveRegistry
from .curves.bootstrap import IterativeBootstrapper
from .curves.calibration_info import YieldCurveCalibrationInfo
from .curves.composite import (
    DiscountRatioCurve,
    IborFallbackCurve,
    WeightedAverageCurve,
    YieldPlusDefaultCurve,
    ZeroSpreadedCurve,
)
from .curves.curve import YieldTermStructure
from .curves.direct import build_discount_curve, build_zero_curve
from .curves.fitting import BondCurveFitter
from .curves.interpolation import InterpolationMethod
from .curves.parametric import create_family

logger = logging.getLogger(__name__)

DEFAULT_CALIBRATION_PERIODS = [
    "1W", "2W", "1M", "2M", "3M", "6M", "9M", "1Y", "2Y", "3Y", "5Y", "7Y",
    "10Y", "12Y", "15Y", "20Y", "25Y", "30Y", "40Y", "50Y",
]


@dataclass
class YieldCurve:
    """
    A built yield curve with its identity and diagnostics.

    Attributes:
        key: Registry key
        config: Configuration the curve was built from
        as_of: Build date
        curve: The term structure
        calibration_info: Sampled diagnostics (None when disabled)
    """
    key: CurveKey
    config: YieldCurveConfig
    as_of: date
    curve: YieldTermStructure
    calibration_info: Optional[YieldCurveCalibrationInfo] = None

    def rebuild(self, registry: Optional[CurveRegistry] = None) -> "YieldCurve":
        """
        Bootstrap again from the instruments' current quotes.

        Only curves built with preserve_quote_linkage can be rebuilt.
        """
        if not (isinstance(self.config.segment, BootstrapSegment) and self.config.preserve_quote_linkage):
            raise ConfigurationError(
                f"Curve {self.key.name} is not linked to its quotes and cannot be rebuilt",
                curve_id=self.config.curve_id, as_of=self.as_of
            )
        return build_yield_curve(self.config, self.as_of, registry)


def _interpolation_method(config: YieldCurveConfig) -> InterpolationMethod:
    method = config.interpolation_method
    if isinstance(method, InterpolationMethod):
        return method
    return InterpolationMethod.from_string(method)


def _build_segment(
    config: YieldCurveConfig,
    as_of: date,
    registry: CurveRegistry
) -> Tuple[YieldTermStructure, List[date], object]:
    """Curve, its pillar dates and any bootstrap or fit details."""
    segment = config.segment
    ccy = config.currency
    requested_by = config.curve_id

    if isinstance(segment, BootstrapSegment):
        bootstrapper = IterativeBootstrapper(
            config.curve_id, as_of, _interpolation_method(config),
            config.interpolation_variable, config.day_count,
            config.bootstrap_config, config.preserve_quote_linkage
        )
        result = bootstrapper.bootstrap(segment.instruments)
        return result.curve, result.calibration_info.pillar_dates[1:], result.calibration_info

    elif isinstance(segment, DirectZeroSegment):
        curve = build_zero_curve(
            as_of, segment.quotes, segment.compounding, segment.day_count,
            config.interpolation_variable, _interpolation_method(config), config.day_count
        )
        return curve, [d for d, _ in segment.quotes if d > as_of], None

    elif isinstance(segment, DirectDiscountSegment):
        curve = build_discount_curve(as_of, segment.quotes, _interpolation_method(config), config.day_count)
        return curve, [d for d, _ in segment.quotes if d > as_of], None

    elif isinstance(segment, ZeroSpreadSegment):
        reference = registry.require(CurveKey(ccy, segment.reference_curve_id), requested_by)
        curve = ZeroSpreadedCurve(
            reference, [d for d, _ in segment.spreads], [s for _, s in segment.spreads],
            segment.compounding, segment.day_count
        )
        return curve, [d for d, _ in segment.spreads if d > as_of], None

    elif isinstance(segment, WeightedAverageSegment):
        curve = WeightedAverageCurve(
            registry.require(CurveKey(ccy, segment.curve_id_1), requested_by),
            registry.require(CurveKey(ccy, segment.curve_id_2), requested_by),
            segment.weight_1, segment.weight_2
        )
        return curve, [], None

    elif isinstance(segment, YieldPlusDefaultSegment):
        base = registry.require(CurveKey(ccy, segment.reference_curve_id), requested_by)
        survival = [registry.require_default_curve(name, requested_by) for name in segment.default_curve_ids]
        return YieldPlusDefaultCurve(base, survival, None, segment.weights), [], None

    elif isinstance(segment, DiscountRatioSegment):
        base, numerator, denominator = (
            registry.require(CurveKey(*pair), requested_by)
            for pair in (segment.base, segment.numerator, segment.denominator)
        )
        return DiscountRatioCurve(base, numerator, denominator), [], None

    elif isinstance(segment, IborFallbackSegment):
        rfr = registry.require(CurveKey(ccy, segment.rfr_curve_id), requested_by)
        curve = IborFallbackCurve(
            rfr, segment.index_name, segment.index_tenor, segment.spread,
            segment.switch_date, segment.fixings
        )
        return curve, [], None

    elif isinstance(segment, FittedBondSegment):
        fitter = BondCurveFitter(
            config.curve_id, as_of, create_family(config.interpolation_method),
            config.day_count, config.bootstrap_config,
            extrapolate_flat=segment.extrapolate_flat
        )
        result = fitter.fit(segment.bonds)
        return result.curve, list(result.calibration_info.maturities), result.calibration_info

    raise ConfigurationError(
        f"Unsupported curve segment {type(segment).__name__}",
        curve_id=config.curve_id, as_of=as_of
    )


def _calibration_info(
    config: YieldCurveConfig,
    curve: YieldTermStructure,
    pillar_dates: Sequence[date],
    details
) -> YieldCurveCalibrationInfo:
    as_of = curve.reference_date
    dates = list(pillar_dates) or [DateUtils.add_tenor(as_of, p) for p in DEFAULT_CALIBRATION_PERIODS]
    times, zeros, discounts, kept = [], [], [], []
    for d in dates:
        t = curve.time_from_reference(d)
        if t <= 0 or (t > curve.max_time and not curve.allows_extrapolation):
            continue
        kept.append(d)
        times.append(t)
        zeros.append(curve.zero_rate(t))
        discounts.append(curve.discount(t))
    return YieldCurveCalibrationInfo(
        curve_id=config.curve_id,
        reference_date=as_of,
        dates=kept,
        times=times,
        zero_rates=zeros,
        discount_factors=discounts,
        details=details,
    )


def build_yield_curve(
    config: YieldCurveConfig,
    as_of: date,
    registry: Optional[CurveRegistry] = None
) -> YieldCurve:
    """
    Build one yield curve.

    Args:
        config: Curve configuration
        as_of: Build date (reference date of the curve)
        registry: Registry holding the curve's dependencies

    Returns:
        YieldCurve (not registered; see build_curves)

    Raises:
        ConfigurationError: Invalid setup or missing dependency
        CalibrationError: Calibration or numeric failure
        NumericDomainError: Numeric domain violation during the build
    """
    registry = registry if registry is not None else CurveRegistry()
    key = CurveKey(config.currency, config.curve_id)
    logger.debug("Building curve %s as of %s", key.name, as_of)
    try:
        curve, pillar_dates, details = _build_segment(config, as_of, registry)
        if curve.reference_date != as_of:
            raise ConfigurationError(
                f"Curve reference date {curve.reference_date} differs from build date {as_of}"
            )
        if config.extrapolation:
            curve.enable_extrapolation()

        probe = curve.max_time if np.isfinite(curve.max_time) else 1.0
        curve.discount(probe)

        info = None
        if config.build_calibration_info:
            info = _calibration_info(config, curve, pillar_dates, details)
    except CurveError as exc:
        exc.with_context(config.curve_id, as_of)
        raise
    except (ArithmeticError, ValueError, np.linalg.LinAlgError, RuntimeError) as exc:
        raise CalibrationError(
            f"yield curve building failed for curve {config.curve_id} "
            f"on date {as_of.isoformat()}: {exc}",
            curve_id=config.curve_id, as_of=as_of, cause=type(exc).__name__
        ) from exc

    logger.debug("Built curve %s (%s)", key.name, type(curve).__name__)
    return YieldCurve(key=key, config=config, as_of=as_of, curve=curve, calibration_info=info)


def build_curves(
    configs: Sequence[YieldCurveConfig],
    as_of: date,
    registry: Optional[CurveRegistry] = None
) -> CurveRegistry:
    """
    Build and register curves in order.

    Dependencies must precede the curves that use them.
    """
    registry = registry if registry is not None else CurveRegistry()
    for config in configs:
        built = build_yield_curve(config, as_of, registry)
        registry.register(built.key, built.curve)
    return registry


__all__ = [
    "DEFAULT_CALIBRATION_PERIODS",
    "YieldCurve",
    "build_yield_curve",
    "build_curves",
]
