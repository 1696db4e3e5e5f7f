"""
Interpolation methods for yield curves.

Provides:
- LinearInterpolator: Piecewise linear interpolation
- LogLinearInterpolator: Linear interpolation of log values (positive values only)
- CubicInterpolator: Piecewise cubic Hermite interpolation with spline, Kruger
  or parabolic derivative estimates, optional Hyman monotonicity filter and
  configurable end conditions
- QuadraticInterpolator / LogQuadraticInterpolator: C1 piecewise quadratics
- ConvexMonotoneInterpolator: Hagan-West monotone convex interpolation

All interpolators work with year fractions as x-coordinates. Evaluation
outside the knots uses each method's natural continuation (end segment
extended); deciding whether extrapolation is allowed is left to the curve.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional, Tuple

import numpy as np
from scipy.integrate import quad

from ..exceptions import ConfigurationError, NumericDomainError


class InterpolationMethod(Enum):
    """Interpolation method tag."""
    LINEAR = "Linear"
    LOG_LINEAR = "LogLinear"
    NATURAL_CUBIC = "NaturalCubic"
    FINANCIAL_CUBIC = "FinancialCubic"
    CONVEX_MONOTONE = "ConvexMonotone"
    QUADRATIC = "Quadratic"
    LOG_QUADRATIC = "LogQuadratic"
    HERMITE = "Hermite"
    CUBIC_SPLINE = "CubicSpline"

    @classmethod
    def from_string(cls, s: str) -> "InterpolationMethod":
        """Parse a method tag such as "LogLinear" or "cubic_spline"."""
        key = s.replace("_", "").replace("-", "").replace(" ", "").upper()
        for member in cls:
            if member.value.upper() == key:
                return member
        raise ConfigurationError(f"Yield curve interpolation method {s} not recognized")

    @property
    def is_local(self) -> bool:
        """True when moving one knot only changes the adjacent segments."""
        return self in (
            InterpolationMethod.LINEAR,
            InterpolationMethod.LOG_LINEAR,
            InterpolationMethod.NATURAL_CUBIC,
            InterpolationMethod.FINANCIAL_CUBIC,
            InterpolationMethod.HERMITE,
        )


class InterpolationVariable(Enum):
    """Quantity held at the pillars and interpolated."""
    ZERO = "Zero"
    DISCOUNT = "Discount"
    FORWARD = "Forward"

    @classmethod
    def from_string(cls, s: str) -> "InterpolationVariable":
        key = s.strip().upper()
        for member in cls:
            if member.value.upper() == key:
                return member
        raise ConfigurationError(f"Yield curve interpolation variable {s} not recognized")


def _prepare_knots(times, values) -> Tuple[np.ndarray, np.ndarray]:
    """Validate and convert knot arrays."""
    x = np.asarray(times, dtype=np.float64)
    y = np.asarray(values, dtype=np.float64)
    if x.ndim != 1 or x.shape != y.shape:
        raise ConfigurationError("Times and values must be 1-d arrays of the same length")
    if len(x) < 2:
        raise ConfigurationError("Need at least 2 points for interpolation")
    if np.any(np.diff(x) <= 0):
        raise ConfigurationError("Interpolation times must be strictly increasing")
    if not np.all(np.isfinite(y)):
        raise NumericDomainError("Interpolation values must be finite")
    return x.copy(), y.copy()


class Interpolator(ABC):
    """Abstract base class for curve interpolation."""

    def __init__(self):
        self.times: Optional[np.ndarray] = None
        self.values: Optional[np.ndarray] = None

    @abstractmethod
    def fit(self, times: np.ndarray, values: np.ndarray) -> None:
        """
        Fit the interpolator to data points.

        Args:
            times: Array of year fractions (strictly increasing)
            values: Array of pillar values
        """

    @abstractmethod
    def interpolate(self, t: float) -> float:
        """Interpolated value at t."""

    @abstractmethod
    def derivative(self, t: float) -> float:
        """First derivative at t."""

    def primitive(self, t: float) -> float:
        """
        Integral of the interpolant from the first knot to t.

        Numerical quadrature split at the knots; subclasses with closed
        forms override this.
        """
        self._check_fitted()
        t0 = float(self.times[0])
        if t == t0:
            return 0.0
        lo, hi = (t0, t) if t > t0 else (t, t0)
        breaks = [float(p) for p in self.times if lo < p < hi]
        value, _ = quad(self.interpolate, lo, hi, points=breaks or None, limit=200)
        return value if t > t0 else -value

    def __call__(self, t: float) -> float:
        """Convenience method to call interpolate."""
        return self.interpolate(t)

    def _check_fitted(self) -> None:
        if self.times is None:
            raise RuntimeError("Interpolator not fitted")

    def _segment(self, t: float) -> int:
        """Index of the segment used for t, end segments continued outside."""
        idx = int(np.searchsorted(self.times, t, side='right')) - 1
        return max(0, min(idx, len(self.times) - 2))


class LinearInterpolator(Interpolator):
    """
    Linear interpolation.

    Simple linear interpolation between knot points; the end segments are
    continued beyond the boundaries.
    """

    def __init__(self):
        super().__init__()
        self._slopes: Optional[np.ndarray] = None
        self._cumulative: Optional[np.ndarray] = None

    def fit(self, times: np.ndarray, values: np.ndarray) -> None:
        """Fit linear interpolator."""
        self.times, self.values = _prepare_knots(times, values)
        h = np.diff(self.times)
        self._slopes = np.diff(self.values) / h
        areas = 0.5 * (self.values[:-1] + self.values[1:]) * h
        self._cumulative = np.concatenate([[0.0], np.cumsum(areas)])

    def interpolate(self, t: float) -> float:
        self._check_fitted()
        idx = self._segment(t)
        if t == self.times[idx + 1]:
            return float(self.values[idx + 1])
        return float(self.values[idx] + self._slopes[idx] * (t - self.times[idx]))

    def derivative(self, t: float) -> float:
        """Derivative of linear interpolation (piecewise constant)."""
        self._check_fitted()
        return float(self._slopes[self._segment(t)])

    def primitive(self, t: float) -> float:
        self._check_fitted()
        idx = self._segment(t)
        dx = t - self.times[idx]
        return float(self._cumulative[idx] + self.values[idx] * dx + 0.5 * self._slopes[idx] * dx * dx)


class LogLinearInterpolator(Interpolator):
    """
    Log-linear interpolation.

    Interpolates linearly in log(value) space. Applied to discount factors
    this corresponds to piecewise constant forward rates. Values must be
    strictly positive.
    """

    def __init__(self):
        super().__init__()
        self._log_values: Optional[np.ndarray] = None
        self._slopes: Optional[np.ndarray] = None
        self._cumulative: Optional[np.ndarray] = None

    def fit(self, times: np.ndarray, values: np.ndarray) -> None:
        x, y = _prepare_knots(times, values)
        if np.any(y <= 0):
            bad = float(y[np.argmax(y <= 0)])
            raise NumericDomainError(f"Log-linear interpolation requires positive values, got {bad}")
        self.times, self.values = x, y
        self._log_values = np.log(y)
        h = np.diff(x)
        self._slopes = np.diff(self._log_values) / h
        areas = np.array([self._segment_integral(i, h[i]) for i in range(len(h))])
        self._cumulative = np.concatenate([[0.0], np.cumsum(areas)])

    def _segment_integral(self, idx: int, dx: float) -> float:
        b = self._slopes[idx]
        start = self.values[idx]
        if abs(b * dx) < 1e-12:
            return float(start * dx * (1.0 + 0.5 * b * dx))
        return float(start * np.expm1(b * dx) / b)

    def interpolate(self, t: float) -> float:
        self._check_fitted()
        idx = self._segment(t)
        if t == self.times[idx]:
            return float(self.values[idx])
        if t == self.times[idx + 1]:
            return float(self.values[idx + 1])
        return float(np.exp(self._log_values[idx] + self._slopes[idx] * (t - self.times[idx])))

    def derivative(self, t: float) -> float:
        self._check_fitted()
        return float(self.interpolate(t) * self._slopes[self._segment(t)])

    def primitive(self, t: float) -> float:
        self._check_fitted()
        idx = self._segment(t)
        return float(self._cumulative[idx] + self._segment_integral(idx, t - self.times[idx]))


def _parabolic_slopes(h: np.ndarray, S: np.ndarray) -> np.ndarray:
    """Knot slopes of the parabola through each knot and its two neighbours."""
    n = len(h) + 1
    if n == 2:
        return np.full(2, S[0])
    d = np.zeros(n)
    d[1:-1] = (h[1:]*S[:-1] + h[:-1]*S[1:]) / (h[:-1] + h[1:])
    d[0] = ((2*h[0] + h[1])*S[0] - h[0]*S[1]) / (h[0] + h[1])
    d[-1] = ((2*h[-1] + h[-2])*S[-1] - h[-1]*S[-2]) / (h[-1] + h[-2])
    return d


class _PolynomialInterpolator(Interpolator):
    """
    Piecewise polynomial with coefficients [a, b, c, d] per piece.

    Pieces run between breakpoints, which are the knots unless a subclass
    inserts extra ones.
    """

    def __init__(self):
        super().__init__()
        self.coefficients: Optional[np.ndarray] = None  # Shape: (pieces, 4)
        self.breaks: Optional[np.ndarray] = None
        self._cumulative: Optional[np.ndarray] = None

    def _set_coefficients(self, coefficients: np.ndarray, breaks: Optional[np.ndarray] = None) -> None:
        self.coefficients = coefficients
        self.breaks = self.times if breaks is None else breaks
        h = np.diff(self.breaks)
        areas = np.array([self._segment_integral(i, h[i]) for i in range(len(h))])
        self._cumulative = np.concatenate([[0.0], np.cumsum(areas)])

    def _piece(self, t: float) -> Tuple[int, float]:
        idx = int(np.searchsorted(self.breaks, t, side='right')) - 1
        idx = max(0, min(idx, len(self.breaks) - 2))
        return idx, t - self.breaks[idx]

    def _segment_integral(self, idx: int, dx: float) -> float:
        a, b, c, d = self.coefficients[idx]
        return float(a * dx + b * dx**2 / 2 + c * dx**3 / 3 + d * dx**4 / 4)

    def interpolate(self, t: float) -> float:
        self._check_fitted()
        if t == self.times[-1]:
            return float(self.values[-1])
        idx, dx = self._piece(t)
        a, b, c, d = self.coefficients[idx]
        return float(a + b*dx + c*dx**2 + d*dx**3)

    def derivative(self, t: float) -> float:
        self._check_fitted()
        idx, dx = self._piece(t)
        _, b, c, d = self.coefficients[idx]
        return float(b + 2*c*dx + 3*d*dx**2)

    def second_derivative(self, t: float) -> float:
        self._check_fitted()
        idx, dx = self._piece(t)
        _, _, c, d = self.coefficients[idx]
        return float(2*c + 6*d*dx)

    def primitive(self, t: float) -> float:
        self._check_fitted()
        idx, dx = self._piece(t)
        return float(self._cumulative[idx] + self._segment_integral(idx, dx))


class CubicInterpolator(_PolynomialInterpolator):
    """
    Piecewise cubic Hermite interpolation.

    Node derivatives come from one of three schemes:
    - "spline": global C2 spline (tridiagonal system)
    - "kruger": Kruger's local harmonic-mean estimate
    - "parabolic": slope of the parabola through three neighbouring knots

    End conditions are ("second", value) or ("first", value) for the
    second or first derivative at that end; None keeps the scheme's own
    end slopes. With monotonic=True the Hyman filter is applied to the
    node derivatives.
    """

    SCHEMES = ("spline", "kruger", "parabolic")

    def __init__(
        self,
        scheme: str = "spline",
        monotonic: bool = False,
        left_condition: Optional[Tuple[str, float]] = ("second", 0.0),
        right_condition: Optional[Tuple[str, float]] = ("second", 0.0)
    ):
        super().__init__()
        if scheme not in self.SCHEMES:
            raise ConfigurationError(f"Unknown cubic derivative scheme: {scheme}")
        if scheme == "spline" and (left_condition is None or right_condition is None):
            raise ConfigurationError("Cubic spline requires both end conditions")
        self.scheme = scheme
        self.monotonic = monotonic
        self.left_condition = left_condition
        self.right_condition = right_condition

    def fit(self, times: np.ndarray, values: np.ndarray) -> None:
        self.times, self.values = _prepare_knots(times, values)
        h = np.diff(self.times)
        S = np.diff(self.values) / h

        if self.scheme == "spline":
            d = self._spline_derivatives(h, S)
        else:
            d = self._local_derivatives(h, S)
            self._apply_end_conditions(d, h, S)

        if self.monotonic:
            self._hyman_filter(d, S)

        coefficients = np.zeros((len(h), 4))
        coefficients[:, 0] = self.values[:-1]
        coefficients[:, 1] = d[:-1]
        coefficients[:, 2] = (3*S - 2*d[:-1] - d[1:]) / h
        coefficients[:, 3] = (d[:-1] + d[1:] - 2*S) / h**2
        self._set_coefficients(coefficients)

    def _spline_derivatives(self, h: np.ndarray, S: np.ndarray) -> np.ndarray:
        n = len(self.times)
        A = np.zeros((n, n))
        b = np.zeros(n)

        kind, value = self.left_condition
        if kind == "first":
            A[0, 0] = 1.0
            b[0] = value
        else:
            A[0, 0], A[0, 1] = 2.0, 1.0
            b[0] = 3*S[0] - value*h[0]/2

        for i in range(1, n-1):
            A[i, i-1] = h[i]
            A[i, i] = 2 * (h[i-1] + h[i])
            A[i, i+1] = h[i-1]
            b[i] = 3 * (h[i]*S[i-1] + h[i-1]*S[i])

        kind, value = self.right_condition
        if kind == "first":
            A[n-1, n-1] = 1.0
            b[n-1] = value
        else:
            A[n-1, n-2], A[n-1, n-1] = 1.0, 2.0
            b[n-1] = 3*S[-1] + value*h[-1]/2

        return np.linalg.solve(A, b)

    def _local_derivatives(self, h: np.ndarray, S: np.ndarray) -> np.ndarray:
        if self.scheme == "parabolic" or len(h) == 1:
            return _parabolic_slopes(h, S)

        d = np.zeros(len(self.times))
        for i in range(1, len(d)-1):
            if S[i-1] * S[i] > 0:
                d[i] = 2.0 / (1.0/S[i-1] + 1.0/S[i])
        d[0] = (3*S[0] - d[1]) / 2
        d[-1] = (3*S[-1] - d[-2]) / 2
        return d

    def _apply_end_conditions(self, d: np.ndarray, h: np.ndarray, S: np.ndarray) -> None:
        # first-derivative conditions are fixed values, set them before the
        # second-derivative ones that depend on the neighbouring slope
        conditions = [("left", self.left_condition), ("right", self.right_condition)]
        for side, condition in sorted(conditions, key=lambda c: c[1] is None or c[1][0] != "first"):
            if condition is None:
                continue
            kind, value = condition
            if side == "left":
                d[0] = value if kind == "first" else (3*S[0] - d[1] - value*h[0]/2) / 2
            else:
                d[-1] = value if kind == "first" else (3*S[-1] - d[-2] + value*h[-1]/2) / 2

    @staticmethod
    def _hyman_filter(d: np.ndarray, S: np.ndarray) -> None:
        n = len(d)
        for i in range(n):
            if i == 0 or i == n - 1:
                slope = S[0] if i == 0 else S[-1]
                bound = 3 * abs(slope)
            elif S[i-1] * S[i] > 0:
                slope = S[i]
                bound = 3 * min(abs(S[i-1]), abs(S[i]))
            else:
                d[i] = 0.0
                continue
            if d[i] * slope > 0:
                d[i] = np.sign(slope) * min(abs(d[i]), bound)
            else:
                d[i] = 0.0


class QuadraticInterpolator(_PolynomialInterpolator):
    """
    C1 piecewise quadratic interpolation (Schumaker).

    Knot slopes are those of the parabola through each knot and its
    neighbours. Every interval is split at its midpoint into two
    quadratics matching the value and slope at both knots; the slope at
    the midpoint is 2 * S - (d_i + d_i+1) / 2 for secant slope S. All
    slopes depend only on the secants of neighbouring intervals.
    """

    def fit(self, times: np.ndarray, values: np.ndarray) -> None:
        self.times, self.values = _prepare_knots(times, values)
        h = np.diff(self.times)
        S = np.diff(self.values) / h
        d = _parabolic_slopes(h, S)

        mid_slope = 2*S - 0.5*(d[:-1] + d[1:])
        mid_values = self.values[:-1] + 0.25*h*(d[:-1] + mid_slope)

        breaks = np.empty(2*len(h) + 1)
        breaks[0::2] = self.times
        breaks[1::2] = self.times[:-1] + 0.5*h

        coefficients = np.zeros((2*len(h), 4))
        coefficients[0::2, 0] = self.values[:-1]
        coefficients[0::2, 1] = d[:-1]
        coefficients[0::2, 2] = (mid_slope - d[:-1]) / h
        coefficients[1::2, 0] = mid_values
        coefficients[1::2, 1] = mid_slope
        coefficients[1::2, 2] = (d[1:] - mid_slope) / h
        self._set_coefficients(coefficients, breaks)


class LogQuadraticInterpolator(Interpolator):
    """Quadratic interpolation of log values; values must be positive."""

    def __init__(self):
        super().__init__()
        self._log_interpolator = QuadraticInterpolator()

    def fit(self, times: np.ndarray, values: np.ndarray) -> None:
        x, y = _prepare_knots(times, values)
        if np.any(y <= 0):
            bad = float(y[np.argmax(y <= 0)])
            raise NumericDomainError(f"Log-quadratic interpolation requires positive values, got {bad}")
        self.times, self.values = x, y
        self._log_interpolator.fit(x, np.log(y))

    def interpolate(self, t: float) -> float:
        self._check_fitted()
        idx = self._segment(t)
        if t == self.times[idx]:
            return float(self.values[idx])
        if t == self.times[idx + 1]:
            return float(self.values[idx + 1])
        return float(np.exp(self._log_interpolator.interpolate(t)))

    def derivative(self, t: float) -> float:
        self._check_fitted()
        return float(self.interpolate(t) * self._log_interpolator.derivative(t))


class ConvexMonotoneInterpolator(Interpolator):
    """
    Hagan-West monotone convex interpolation.

    The pillar values y_i are read as averages of an underlying
    instantaneous function f over [t_0, t_i], i.e. the primitive
    P(t_i) = y_i * (t_i - t_0) is matched exactly. Within each interval
    f is the discrete slope plus the Hagan-West correction g(x), which keeps
    f positive where the data allow and avoids spurious oscillation. Beyond
    the last knot f is held flat.
    """

    def __init__(self):
        super().__init__()
        self._primitive_knots: Optional[np.ndarray] = None
        self._discrete: Optional[np.ndarray] = None
        self._instantaneous: Optional[np.ndarray] = None

    def fit(self, times: np.ndarray, values: np.ndarray) -> None:
        self.times, self.values = _prepare_knots(times, values)
        tau = self.times - self.times[0]
        P = self.values * tau
        h = np.diff(tau)
        fd = np.diff(P) / h

        n = len(fd)
        f = np.zeros(n + 1)
        if n == 1:
            f[:] = fd[0]
        else:
            for i in range(1, n):
                f[i] = (h[i-1] * fd[i] + h[i] * fd[i-1]) / (h[i-1] + h[i])
            f[0] = fd[0] - 0.5 * (f[1] - fd[0])
            f[n] = fd[n-1] - 0.5 * (f[n-1] - fd[n-1])

        self._primitive_knots = P
        self._discrete = fd
        self._instantaneous = f

    @staticmethod
    def _g_and_integral(g0: float, g1: float, x: float) -> Tuple[float, float]:
        """Hagan-West correction g(x) and its integral over [0, x]."""
        if g0 == 0.0 and g1 == 0.0:
            return 0.0, 0.0

        if (g0 < 0 and -0.5*g0 <= g1 <= -2*g0) or (g0 > 0 and -0.5*g0 >= g1 >= -2*g0):
            # zone (i)
            g = g0*(1 - 4*x + 3*x*x) + g1*(-2*x + 3*x*x)
            G = g0*(x - 2*x*x + x**3) + g1*(-x*x + x**3)
            return g, G

        if (g0 < 0 and g1 > -2*g0) or (g0 > 0 and g1 < -2*g0):
            # zone (ii)
            eta = (g1 + 2*g0) / (g1 - g0)
            if x <= eta:
                return g0, g0*x
            r = (x - eta) / (1 - eta)
            return g0 + (g1 - g0)*r*r, g0*x + (g1 - g0)*(x - eta)*r*r/3

        if (g0 > 0 and 0 > g1 >= -0.5*g0) or (g0 < 0 and 0 < g1 <= -0.5*g0):
            # zone (iii)
            eta = 3*g1 / (g1 - g0)
            if x < eta:
                r = (eta - x) / eta
                return g1 + (g0 - g1)*r*r, g1*x + (g0 - g1)*(eta - (eta - x)*r*r)/3
            return g1, g1*x + (g0 - g1)*eta/3

        # zone (iv)
        eta = g1 / (g1 + g0)
        A = -g0*g1 / (g0 + g1)
        if eta > 0 and x <= eta:
            r = (eta - x) / eta
            return A + (g0 - A)*r*r, A*x + (g0 - A)*(eta - (eta - x)*r*r)/3
        r = (x - eta) / (1 - eta)
        return A + (g1 - A)*r*r, A*x + (g0 - A)*eta/3 + (g1 - A)*(x - eta)*r*r/3

    def _forward_and_primitive(self, t: float) -> Tuple[float, float]:
        """Underlying instantaneous value and P(t) at t > t_0."""
        tau = t - self.times[0]
        knots = self.times - self.times[0]
        if tau >= knots[-1]:
            f_end = self._instantaneous[-1]
            return f_end, self._primitive_knots[-1] + f_end*(tau - knots[-1])

        i = int(np.searchsorted(knots, tau, side='right')) - 1
        h = knots[i+1] - knots[i]
        x = (tau - knots[i]) / h
        fd = self._discrete[i]
        g, G = self._g_and_integral(
            self._instantaneous[i] - fd, self._instantaneous[i+1] - fd, x
        )
        return fd + g, self._primitive_knots[i] + h*(fd*x + G)

    def interpolate(self, t: float) -> float:
        self._check_fitted()
        if t <= self.times[0]:
            return float(self.values[0])
        idx = self._segment(t)
        if t == self.times[idx + 1]:
            return float(self.values[idx + 1])
        _, P = self._forward_and_primitive(t)
        return float(P / (t - self.times[0]))

    def derivative(self, t: float) -> float:
        self._check_fitted()
        if t <= self.times[0]:
            return 0.0
        f, P = self._forward_and_primitive(t)
        tau = t - self.times[0]
        return float((f - P/tau) / tau)


def create_interpolator(method: InterpolationMethod) -> Interpolator:
    """
    Factory function to create an interpolator for a method tag.

    Boundary behaviour per method:
        NaturalCubic:   Kruger + Hyman, zero second derivative at both ends
        FinancialCubic: Kruger + Hyman, zero second derivative left, zero
                        first derivative right
        Hermite:        parabolic slopes, parabolic ends
        CubicSpline:    C2 spline, zero second derivative at both ends
    """
    if isinstance(method, str):
        method = InterpolationMethod.from_string(method)

    if method == InterpolationMethod.LINEAR:
        return LinearInterpolator()
    elif method == InterpolationMethod.LOG_LINEAR:
        return LogLinearInterpolator()
    elif method == InterpolationMethod.NATURAL_CUBIC:
        return CubicInterpolator("kruger", monotonic=True)
    elif method == InterpolationMethod.FINANCIAL_CUBIC:
        return CubicInterpolator(
            "kruger", monotonic=True,
            left_condition=("second", 0.0), right_condition=("first", 0.0)
        )
    elif method == InterpolationMethod.CONVEX_MONOTONE:
        return ConvexMonotoneInterpolator()
    elif method == InterpolationMethod.QUADRATIC:
        return QuadraticInterpolator()
    elif method == InterpolationMethod.LOG_QUADRATIC:
        return LogQuadraticInterpolator()
    elif method == InterpolationMethod.HERMITE:
        return CubicInterpolator("parabolic", left_condition=None, right_condition=None)
    elif method == InterpolationMethod.CUBIC_SPLINE:
        return CubicInterpolator("spline")
    raise ConfigurationError(f"Interpolation method not supported: {method}")


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
]
