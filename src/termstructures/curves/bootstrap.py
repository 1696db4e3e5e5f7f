"""
Curve bootstrapping engine.

Implements the iterative bootstrap for interpolated yield curves:
1. Sort instruments by pillar date, reject duplicates
2. Solve pillar values sequentially (one root search per pillar)
3. Global refinement for non-local interpolation (Gauss-Seidel sweeps,
   then a joint solve of all pillars)
4. Verify repricing and classify the outcome

The outcome is Converged, Degraded (accepted under dont_throw) or Failed
(always raised as CalibrationError).
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import List, Optional, Sequence, Tuple
import logging

import numpy as np
from scipy.optimize import brentq, root

from ..config import BootstrapConfig
from ..conventions import DayCount, year_fraction
from ..exceptions import CalibrationError, ConfigurationError, NumericDomainError
from .calibration_info import BootstrapCalibrationInfo, InstrumentFit
from .curve import InterpolatedCurve
from .instruments import CalibratingInstrument
from .interpolation import InterpolationMethod, InterpolationVariable

logger = logging.getLogger(__name__)

# bound on zero / forward rates and on the average rate between pillars
MAX_RATE = 1.0
MAX_GLOBAL_ITERATIONS = 100
MIN_LOG_RATE = 1e-10


class BootstrapStatus(Enum):
    """Bootstrap state."""
    SOLVING = "Solving"
    CONVERGED = "Converged"
    DEGRADED = "Degraded"
    FAILED = "Failed"


class BootstrapState:
    """
    Bootstrap state machine.

    Starts in SOLVING and moves once to CONVERGED, DEGRADED or FAILED;
    terminal states cannot be left.
    """

    _TRANSITIONS = {
        BootstrapStatus.SOLVING: (
            BootstrapStatus.CONVERGED,
            BootstrapStatus.DEGRADED,
            BootstrapStatus.FAILED,
        ),
    }

    def __init__(self):
        self.status = BootstrapStatus.SOLVING
        self.history: List[BootstrapStatus] = [BootstrapStatus.SOLVING]

    @property
    def is_terminal(self) -> bool:
        return self.status not in self._TRANSITIONS

    def transition(self, status: BootstrapStatus) -> None:
        if status not in self._TRANSITIONS.get(self.status, ()):
            raise RuntimeError(
                f"Invalid bootstrap transition {self.status.value} -> {status.value}"
            )
        self.status = status
        self.history.append(status)


class PiecewiseYieldCurve(InterpolatedCurve):
    """
    Bootstrapped curve that stays linked to its instruments.

    Pillar values are a snapshot of the last bootstrap; rebuild() re-runs
    the bootstrap against the instruments' current quotes and returns a new
    curve.
    """

    def __init__(
        self,
        reference_date: date,
        pillars: Sequence[date],
        values: Sequence[float],
        variable: InterpolationVariable,
        method: InterpolationMethod,
        day_count: DayCount,
        instruments: Sequence[CalibratingInstrument],
        bootstrapper: "IterativeBootstrapper"
    ):
        super().__init__(reference_date, pillars, values, variable, method, day_count)
        self.instruments = tuple(instruments)
        self._bootstrapper = bootstrapper

    def rebuild(self) -> "BootstrapResult":
        """Bootstrap again from the instruments' current quotes."""
        result = self._bootstrapper.bootstrap(self.instruments)
        if self.allows_extrapolation:
            result.curve.enable_extrapolation()
        return result


@dataclass
class BootstrapResult:
    """Result of curve bootstrap."""
    curve: InterpolatedCurve
    status: BootstrapStatus
    calibration_info: BootstrapCalibrationInfo


class IterativeBootstrapper:
    """
    Bootstrap an interpolated yield curve from calibrating instruments.

    The bootstrapper:
    1. Sorts instruments by pillar date
    2. Sequentially solves each pillar so its instrument reprices
    3. Refines all pillars jointly when later pillars moved earlier fits
    4. Verifies that instruments reprice within tolerance

    Attributes:
        curve_id: Curve identifier used in diagnostics
        reference_date: Valuation date
        method: Interpolation method
        variable: Interpolated quantity
        day_count: Day count for curve times
        config: Tolerances and retry policy
        preserve_quote_linkage: Return a PiecewiseYieldCurve that can be
            rebuilt instead of a plain snapshot
    """

    def __init__(
        self,
        curve_id: str,
        reference_date: date,
        method: InterpolationMethod = InterpolationMethod.LINEAR,
        variable: InterpolationVariable = InterpolationVariable.DISCOUNT,
        day_count: DayCount = DayCount.ACT_365,
        config: Optional[BootstrapConfig] = None,
        preserve_quote_linkage: bool = False
    ):
        self.curve_id = curve_id
        self.reference_date = reference_date
        self.method = method
        self.variable = variable
        self.day_count = day_count
        self.config = config or BootstrapConfig()
        self.preserve_quote_linkage = preserve_quote_linkage

    def bootstrap(self, instruments: Sequence[CalibratingInstrument]) -> BootstrapResult:
        """
        Bootstrap curve from instruments.

        Args:
            instruments: Calibrating instruments with market quotes

        Returns:
            BootstrapResult with curve, status and diagnostics

        Raises:
            ConfigurationError: Empty basket, duplicate pillar dates or
                pillars not after the reference date
            CalibrationError: Tolerance not reached and dont_throw is off
        """
        ordered = self._validate(instruments)
        dates = [self.reference_date] + [inst.pillar_date for inst in ordered]
        times = np.array([year_fraction(self.reference_date, d, self.day_count) for d in dates])
        if np.any(np.diff(times) <= 0):
            raise ConfigurationError(
                f"Pillar dates map to non-increasing times under {self.day_count.value}",
                curve_id=self.curve_id, as_of=self.reference_date
            )

        state = BootstrapState()
        warnings: List[str] = []
        values = np.ones(len(dates)) if self.variable == InterpolationVariable.DISCOUNT \
            else np.zeros(len(dates))

        attempts_used = []
        for i, inst in enumerate(ordered, start=1):
            attempts, degraded = self._solve_sequential(i, inst, dates, times, values)
            attempts_used.append(attempts)
            if degraded:
                msg = f"instrument {inst.name} not matched, best grid value {values[i]:.10g} used"
                logger.warning("Curve %s: %s", self.curve_id, msg)
                warnings.append(msg)

        tolerance = self.config.effective_global_accuracy
        errors = self._errors(ordered, dates, values)
        sweeps, joint_attempts = 0, 0
        if np.max(np.abs(errors)) > tolerance:
            values, errors, sweeps, joint_attempts = self._refine(ordered, dates, times, values, tolerance)

        worst_idx = int(np.argmax(np.abs(errors)))
        worst = float(abs(errors[worst_idx]))
        if worst <= tolerance and not warnings:
            state.transition(BootstrapStatus.CONVERGED)
        elif self.config.dont_throw:
            msg = f"worst error {worst:.3e} from {ordered[worst_idx].name}, tolerance {tolerance:.3e}"
            logger.warning("Curve %s degraded: %s", self.curve_id, msg)
            warnings.append(msg)
            state.transition(BootstrapStatus.DEGRADED)
        else:
            state.transition(BootstrapStatus.FAILED)
            raise CalibrationError(
                f"Bootstrap did not converge: worst error {worst:.3e} exceeds "
                f"tolerance {tolerance:.3e}",
                curve_id=self.curve_id, as_of=self.reference_date,
                instrument=ordered[worst_idx].name, cause=f"error={worst:.3e}"
            )

        values = self._tied(values)
        curve = self._final_curve(dates, values, ordered)
        info = BootstrapCalibrationInfo(
            curve_id=self.curve_id,
            reference_date=self.reference_date,
            status=state.status.value,
            pillar_dates=dates,
            pillar_times=[float(t) for t in times],
            pillar_values=[float(v) for v in values],
            variable=self.variable.value,
            instruments=[
                InstrumentFit(inst.name, inst.pillar_date, inst.market_quote,
                              inst.market_quote + float(err))
                for inst, err in zip(ordered, errors)
            ],
            sequential_attempts=attempts_used,
            global_iterations=sweeps,
            joint_attempts=joint_attempts,
            warnings=warnings,
        )
        logger.debug(
            "Curve %s bootstrapped: %s, %d pillars, worst error %.3e, %d sweeps",
            self.curve_id, state.status.value, len(ordered), worst, sweeps
        )
        return BootstrapResult(curve=curve, status=state.status, calibration_info=info)

    def _validate(self, instruments: Sequence[CalibratingInstrument]) -> List[CalibratingInstrument]:
        if not instruments:
            raise ConfigurationError(
                "No instruments given", curve_id=self.curve_id, as_of=self.reference_date
            )

        ordered = sorted(instruments, key=lambda inst: inst.pillar_date)
        for inst in ordered:
            if inst.pillar_date <= self.reference_date:
                raise ConfigurationError(
                    f"Pillar date {inst.pillar_date} of {inst.name} is not after the reference date",
                    curve_id=self.curve_id, as_of=self.reference_date, instrument=inst.name
                )
        for prev, inst in zip(ordered, ordered[1:]):
            if inst.pillar_date == prev.pillar_date:
                raise ConfigurationError(
                    f"Instruments {prev.name} and {inst.name} share pillar date {inst.pillar_date}",
                    curve_id=self.curve_id, as_of=self.reference_date, instrument=inst.name
                )
        return ordered

    def _tied(self, values: np.ndarray) -> np.ndarray:
        """Copy of values with pillar 0 tied to pillar 1 for rate variables."""
        values = np.array(values, dtype=np.float64)
        if self.variable != InterpolationVariable.DISCOUNT:
            values[0] = values[1]
        return values

    def _curve(self, dates: Sequence[date], values: np.ndarray) -> InterpolatedCurve:
        """Trial curve over the tied values."""
        curve = InterpolatedCurve(
            self.reference_date, dates, self._tied(values),
            variable=self.variable, method=self.method, day_count=self.day_count
        )
        curve.enable_extrapolation()
        return curve

    def _bounds(self, i: int, times: np.ndarray, values: np.ndarray, attempt: int) -> Tuple[float, float]:
        """Search interval for pillar i, widened on each further attempt."""
        below = self.config.min_factor ** (attempt - 1)
        above = self.config.max_factor ** (attempt - 1)
        if self.variable == InterpolationVariable.DISCOUNT:
            prev = values[i - 1]
            dt = times[i] - times[i - 1]
            return prev * np.exp(-MAX_RATE * dt * below), prev * np.exp(MAX_RATE * dt * above)
        if self.method in (InterpolationMethod.LOG_LINEAR, InterpolationMethod.LOG_QUADRATIC):
            # log interpolation of rates needs them positive
            return MIN_LOG_RATE, MAX_RATE * above
        return -MAX_RATE * below, MAX_RATE * above

    def _pillar_error(
        self,
        x: float,
        i: int,
        inst: CalibratingInstrument,
        dates: Sequence[date],
        values: np.ndarray
    ) -> float:
        trial = values[:len(dates)].copy()
        trial[i] = x
        return inst.quote_error(self._curve(dates, trial))

    def _bracket_root(
        self,
        i: int,
        inst: CalibratingInstrument,
        dates: Sequence[date],
        times: np.ndarray,
        values: np.ndarray,
        attempt: int
    ) -> Optional[float]:
        """Root in the attempt's interval, None when it does not bracket one."""
        lo, hi = self._bounds(i, times, values, attempt)
        try:
            f_lo = self._pillar_error(lo, i, inst, dates, values)
            f_hi = self._pillar_error(hi, i, inst, dates, values)
        except NumericDomainError:
            return None
        if not (np.isfinite(f_lo) and np.isfinite(f_hi)) or f_lo * f_hi > 0:
            return None
        if f_lo == 0:
            return lo
        if f_hi == 0:
            return hi
        return brentq(
            self._pillar_error, lo, hi, args=(i, inst, dates, values),
            xtol=self.config.accuracy * 1e-4, maxiter=200
        )

    def _solve_sequential(
        self,
        i: int,
        inst: CalibratingInstrument,
        dates: Sequence[date],
        times: np.ndarray,
        values: np.ndarray
    ) -> Tuple[int, bool]:
        """
        Solve pillar i against the curve of pillars 0..i.

        Returns the number of attempts used and whether the grid fallback
        was taken.
        """
        partial = dates[:i + 1]
        if self.variable != InterpolationVariable.DISCOUNT and i > 1:
            values[i] = values[i - 1]

        for attempt in range(1, self.config.max_attempts + 1):
            solution = self._bracket_root(i, inst, partial, times, values, attempt)
            if solution is not None:
                values[i] = solution
                logger.debug(
                    "Curve %s pillar %d (%s) solved: %.12g after %d attempt(s)",
                    self.curve_id, i, inst.name, solution, attempt
                )
                return attempt, False

        if not self.config.dont_throw:
            raise CalibrationError(
                f"Failed to bootstrap pillar {i}: no root in {self.config.max_attempts} attempts",
                curve_id=self.curve_id, as_of=self.reference_date, instrument=inst.name,
                cause="no sign change in search interval"
            )

        lo, hi = self._bounds(i, times, values, self.config.max_attempts)
        best_x, best_err = values[i], np.inf
        for x in np.linspace(lo, hi, self.config.dont_throw_steps):
            try:
                err = abs(self._pillar_error(x, i, inst, partial, values))
            except NumericDomainError:
                continue
            if err < best_err:
                best_x, best_err = x, err
        values[i] = best_x
        return self.config.max_attempts, True

    def _errors(
        self,
        instruments: Sequence[CalibratingInstrument],
        dates: Sequence[date],
        values: np.ndarray
    ) -> np.ndarray:
        curve = self._curve(dates, values)
        return np.array([inst.quote_error(curve) for inst in instruments])

    def _refine(
        self,
        instruments: Sequence[CalibratingInstrument],
        dates: Sequence[date],
        times: np.ndarray,
        values: np.ndarray,
        tolerance: float
    ) -> Tuple[np.ndarray, np.ndarray, int, int]:
        """
        Global pass: Gauss-Seidel sweeps, then a joint solve.

        Returns best values, their errors, sweeps run and joint attempts run.
        """
        best_values = values.copy()
        best_errors = self._errors(instruments, dates, values)
        sweeps = 0

        def sweep_until(limit: int) -> bool:
            nonlocal sweeps, best_values, best_errors
            current = best_values.copy()
            for _ in range(limit):
                sweeps += 1
                previous = current.copy()
                for i, inst in enumerate(instruments, start=1):
                    solution = self._bracket_root(i, inst, dates, times, current, 1)
                    if solution is not None:
                        current[i] = solution
                errors = self._errors(instruments, dates, current)
                worst = np.max(np.abs(errors))
                logger.debug("Curve %s global sweep %d: worst error %.3e", self.curve_id, sweeps, worst)
                if worst < np.max(np.abs(best_errors)):
                    best_values, best_errors = current.copy(), errors
                if worst <= tolerance:
                    return True
                if np.max(np.abs(current - previous)) <= tolerance:
                    return False
            return False

        if sweep_until(MAX_GLOBAL_ITERATIONS):
            return best_values, best_errors, sweeps, 0

        n = len(instruments)

        def residuals(x: np.ndarray) -> np.ndarray:
            trial = best_values.copy()
            trial[1:] = x
            try:
                return self._errors(instruments, dates, trial)
            except NumericDomainError:
                return np.full(n, 1e6)

        factor = 100.0
        joint_attempts = 0
        for attempt in range(1, self.config.max_attempts + 1):
            joint_attempts = attempt
            sol = root(residuals, best_values[1:], method="hybr",
                       options={"factor": factor, "xtol": self.config.accuracy})
            errors = residuals(sol.x)
            worst = np.max(np.abs(errors))
            logger.debug(
                "Curve %s joint solve attempt %d (factor %.3g): worst error %.3e",
                self.curve_id, attempt, factor, worst
            )
            if worst < np.max(np.abs(best_errors)):
                best_values[1:] = sol.x
                best_errors = errors
            if worst <= tolerance:
                break
            factor = factor / self.config.min_factor if attempt % 2 else factor * self.config.max_factor
            factor = min(max(factor, 0.1), 100.0)

        if np.max(np.abs(best_errors)) > tolerance and self.config.dont_throw:
            sweep_until(self.config.dont_throw_steps)

        return best_values, best_errors, sweeps, joint_attempts

    def _final_curve(
        self,
        dates: Sequence[date],
        values: np.ndarray,
        instruments: Sequence[CalibratingInstrument]
    ) -> InterpolatedCurve:
        if self.preserve_quote_linkage:
            return PiecewiseYieldCurve(
                self.reference_date, dates, values, self.variable, self.method,
                self.day_count, instruments, self
            )
        return InterpolatedCurve(
            self.reference_date, dates, values,
            variable=self.variable, method=self.method, day_count=self.day_count
        )


__all__ = [
    "BootstrapStatus",
    "BootstrapState",
    "BootstrapResult",
    "PiecewiseYieldCurve",
    "IterativeBootstrapper",
]
