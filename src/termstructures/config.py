"""
Curve build configuration.

Provides:
- BootstrapConfig: tolerances and retry policy shared by the bootstrapper
  and the bond curve fitter
- Segment dataclasses, one per kind of curve that can be built
- YieldCurveConfig: everything needed to build one curve
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Optional, Sequence, Tuple, Union

from .conventions import CompoundingConvention, DayCount
from .exceptions import ConfigurationError
from .curves.interpolation import InterpolationMethod, InterpolationVariable


@dataclass(frozen=True)
class BootstrapConfig:
    """
    Tolerances and retry policy for curve calibration.

    Attributes:
        accuracy: Per-pillar solver tolerance
        global_accuracy: Tolerance on the worst instrument error after the
            global pass (defaults to accuracy)
        dont_throw: Accept the best result found instead of failing
        max_attempts: Attempts per pillar (widening the search interval)
            and joint solve / fitter trials
        max_factor: Widening factor for the upper bound per attempt
        min_factor: Widening factor for the lower bound per attempt
        dont_throw_steps: Grid points for the fallback search and extra
            global sweeps under dont_throw
    """
    accuracy: float = 1e-12
    global_accuracy: Optional[float] = None
    dont_throw: bool = False
    max_attempts: int = 5
    max_factor: float = 2.0
    min_factor: float = 2.0
    dont_throw_steps: int = 10

    def __post_init__(self):
        if not self.accuracy > 0:
            raise ConfigurationError(f"accuracy must be positive, got {self.accuracy}")
        if self.global_accuracy is not None and not self.global_accuracy > 0:
            raise ConfigurationError(
                f"global_accuracy must be positive, got {self.global_accuracy}"
            )
        if self.max_attempts < 1:
            raise ConfigurationError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.max_factor < 1 or self.min_factor < 1:
            raise ConfigurationError(
                f"max_factor and min_factor must be at least 1, "
                f"got {self.max_factor} and {self.min_factor}"
            )
        if self.dont_throw_steps < 1:
            raise ConfigurationError(
                f"dont_throw_steps must be at least 1, got {self.dont_throw_steps}"
            )

    @property
    def effective_global_accuracy(self) -> float:
        return self.global_accuracy if self.global_accuracy is not None else self.accuracy


@dataclass
class BootstrapSegment:
    """Curve bootstrapped from calibrating instruments."""
    instruments: Sequence  # CalibratingInstrument


@dataclass
class DirectZeroSegment:
    """
    Curve built from zero rate quotes.

    Attributes:
        quotes: (date, zero rate) pairs
        compounding: Compounding of the quoted rates
        day_count: Day count of the quoted rates
    """
    quotes: Sequence[Tuple[date, float]]
    compounding: CompoundingConvention = CompoundingConvention.CONTINUOUS
    day_count: Optional[DayCount] = None


@dataclass
class DirectDiscountSegment:
    """Curve built from (date, discount factor) quotes."""
    quotes: Sequence[Tuple[date, float]]


@dataclass
class ZeroSpreadSegment:
    """Zero spreads over a reference yield curve."""
    reference_curve_id: str
    spreads: Sequence[Tuple[date, float]]
    compounding: CompoundingConvention = CompoundingConvention.CONTINUOUS
    day_count: Optional[DayCount] = None


@dataclass
class WeightedAverageSegment:
    """Geometric weighted average of two yield curves' discount factors."""
    curve_id_1: str
    curve_id_2: str
    weight_1: float
    weight_2: float


@dataclass
class YieldPlusDefaultSegment:
    """Yield curve blended with survival probabilities of default curves."""
    reference_curve_id: str
    default_curve_ids: Sequence[str]
    weights: Sequence[float]


@dataclass
class DiscountRatioSegment:
    """
    Curve with discount factors base * numerator / denominator.

    Each dependency is a (currency, curve_id) pair.
    """
    base: Tuple[str, str]
    numerator: Tuple[str, str]
    denominator: Tuple[str, str]


@dataclass
class IborFallbackSegment:
    """
    Ibor index replaced by a risk-free rate curve plus spread.

    Attributes:
        rfr_curve_id: Overnight rate curve id (same currency)
        index_name: Name of the replaced index, e.g. "USD-LIBOR-3M"
        index_tenor: Tenor of the replaced index
        spread: Fallback spread added to the compounded rfr rate
        switch_date: First date the fallback rate replaces the index fixing
        fixings: Historical index fixings by date
    """
    rfr_curve_id: str
    index_name: str
    index_tenor: str
    spread: float
    switch_date: date
    fixings: Dict[date, float] = field(default_factory=dict)


@dataclass
class FittedBondSegment:
    """
    Curve fitted to bond prices with a parametric family.

    The fitting family is the config's interpolation_method, which must be
    one of the parametric family tags (ExponentialSplines, NelsonSiegel,
    Svensson).
    """
    bonds: Sequence  # FittingBond
    extrapolate_flat: bool = False


Segment = Union[
    BootstrapSegment,
    DirectZeroSegment,
    DirectDiscountSegment,
    ZeroSpreadSegment,
    WeightedAverageSegment,
    YieldPlusDefaultSegment,
    DiscountRatioSegment,
    IborFallbackSegment,
    FittedBondSegment,
]


@dataclass
class YieldCurveConfig:
    """
    Configuration of one yield curve.

    Attributes:
        curve_id: Curve identifier, unique per currency
        currency: ISO currency code
        segment: What the curve is built from
        interpolation_method: Method tag (an InterpolationMethod, or a
            parametric family name for fitted bond curves)
        interpolation_variable: Quantity interpolated at the pillars
        day_count: Day count used for curve times
        extrapolation: Allow evaluation beyond the last pillar
        bootstrap_config: Calibration tolerances
        preserve_quote_linkage: Keep bootstrapped curves linked to their
            instruments so they can be rebuilt after quote changes
        build_calibration_info: Sample diagnostics after the build
    """
    curve_id: str
    currency: str
    segment: Segment
    interpolation_method: Union[InterpolationMethod, str] = InterpolationMethod.LINEAR
    interpolation_variable: InterpolationVariable = InterpolationVariable.ZERO
    day_count: DayCount = DayCount.ACT_365
    extrapolation: bool = True
    bootstrap_config: BootstrapConfig = field(default_factory=BootstrapConfig)
    preserve_quote_linkage: bool = False
    build_calibration_info: bool = True

    def __post_init__(self):
        if not self.curve_id:
            raise ConfigurationError("curve_id must not be empty")
        if isinstance(self.interpolation_variable, str):
            self.interpolation_variable = InterpolationVariable.from_string(self.interpolation_variable)


__all__ = [
    "BootstrapConfig",
    "BootstrapSegment",
    "DirectZeroSegment",
    "DirectDiscountSegment",
    "ZeroSpreadSegment",
    "WeightedAverageSegment",
    "YieldPlusDefaultSegment",
    "DiscountRatioSegment",
    "IborFallbackSegment",
    "FittedBondSegment",
    "Segment",
    "YieldCurveConfig",
]
