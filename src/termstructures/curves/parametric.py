"""
Parametric discount function families for bond curve fitting.

Nelson-Siegel (4 parameters, kappa = 1 / lambda):

    z(t) = b0 + (b1 + b2) * (1 - e^(-k t)) / (k t) - b2 * e^(-k t)

Svensson (6 parameters) adds a second hump with its own decay:

    z(t) = b0 + b1 * L(k1 t) + b2 * (L(k1 t) - e^(-k1 t))
              + b3 * (L(k2 t) - e^(-k2 t)),    L(x) = (1 - e^(-x)) / x

Exponential splines (n coefficients and a decay):

    D(t) = sum_i c_i * e^(-k i t),  i = 1..n,  sum_i c_i = 1

Parameters:
    b0: Long-term level (asymptotic rate)
    b1: Short-term component (slope)
    b2, b3: Medium-term humps (curvature)
    k, k1, k2: Decay rates
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from ..exceptions import ConfigurationError

ArrayLike = Union[float, np.ndarray]

# below this k*t the loading (1 - e^-x)/x is replaced by its series
_EPS = 1e-10


def _loading(x: np.ndarray) -> np.ndarray:
    """(1 - e^-x) / x with the x -> 0 limit."""
    x = np.asarray(x, dtype=np.float64)
    small = np.abs(x) < _EPS
    safe = np.where(small, 1.0, x)
    return np.where(small, 1.0 - 0.5 * x, -np.expm1(-safe) / safe)


class FittingMethod(Enum):
    """Parametric family tag."""
    EXPONENTIAL_SPLINES = "ExponentialSplines"
    NELSON_SIEGEL = "NelsonSiegel"
    SVENSSON = "Svensson"

    @classmethod
    def from_string(cls, s: str) -> "FittingMethod":
        key = s.replace("_", "").replace(" ", "").upper()
        for member in cls:
            if member.value.upper() == key:
                return member
        raise ConfigurationError(f"Fitting method {s} not recognized")


class FittingFamily(ABC):
    """
    Parametric discount function D(params, t) with D(params, 0) = 1.

    guess_ranges gives a plausible interval per parameter, used to map
    quasi-random points to starting guesses; None means the family has no
    such range and only the first guess is tried.
    """

    name: str = ""
    guess_ranges: Optional[List[Tuple[float, float]]] = None

    @property
    @abstractmethod
    def size(self) -> int:
        """Number of parameters."""

    @abstractmethod
    def discount_function(self, params: np.ndarray, t: ArrayLike) -> ArrayLike:
        """Discount factor at t (scalar or array)."""

    def data_driven_guess(
        self,
        maturities: Sequence[float],
        yields: Sequence[float]
    ) -> Optional[np.ndarray]:
        """Starting guess from market yields sorted by maturity, None if not available."""
        return None

    def initial_guess(self, maturities: Sequence[float], yields: Sequence[float]) -> np.ndarray:
        guess = self.data_driven_guess(maturities, yields)
        return np.zeros(self.size) if guess is None else guess

    def map_unit_point(self, point: np.ndarray) -> np.ndarray:
        """Map a point of the unit cube into guess_ranges."""
        lo = np.array([r[0] for r in self.guess_ranges])
        hi = np.array([r[1] for r in self.guess_ranges])
        return lo + np.asarray(point) * (hi - lo)


class NelsonSiegel(FittingFamily):
    """Nelson-Siegel family, parameters [b0, b1, b2, kappa]."""

    name = "NelsonSiegel"
    guess_ranges = [(-0.05, 0.05), (-0.05, 0.05), (-0.05, 0.05), (0.0, 5.0)]

    @property
    def size(self) -> int:
        return 4

    @staticmethod
    def zero_rate(params: np.ndarray, t: ArrayLike) -> ArrayLike:
        b0, b1, b2, kappa = params
        x = kappa * np.asarray(t, dtype=np.float64)
        return b0 + (b1 + b2) * _loading(x) - b2 * np.exp(-x)

    def discount_function(self, params: np.ndarray, t: ArrayLike) -> ArrayLike:
        t = np.asarray(t, dtype=np.float64)
        return np.exp(-self.zero_rate(params, t) * t)

    def data_driven_guess(self, maturities, yields) -> Optional[np.ndarray]:
        if len(yields) == 0:
            return None
        y_short, y_long = yields[0], yields[-1]
        return np.array([y_long, y_short - y_long, 0.0, 5.0])


class Svensson(FittingFamily):
    """Svensson family, parameters [b0, b1, b2, b3, kappa1, kappa2]."""

    name = "Svensson"
    guess_ranges = [(-0.05, 0.05)] * 4 + [(0.0, 5.0)] * 2

    @property
    def size(self) -> int:
        return 6

    @staticmethod
    def zero_rate(params: np.ndarray, t: ArrayLike) -> ArrayLike:
        b0, b1, b2, b3, k1, k2 = params
        t = np.asarray(t, dtype=np.float64)
        x1, x2 = k1 * t, k2 * t
        l1, l2 = _loading(x1), _loading(x2)
        return b0 + b1 * l1 + b2 * (l1 - np.exp(-x1)) + b3 * (l2 - np.exp(-x2))

    def discount_function(self, params: np.ndarray, t: ArrayLike) -> ArrayLike:
        t = np.asarray(t, dtype=np.float64)
        return np.exp(-self.zero_rate(params, t) * t)


class ExponentialSplines(FittingFamily):
    """
    Exponential splines family.

    Parameters are [c_2, ..., c_n, kappa]; c_1 = 1 - sum(c_2..c_n) so the
    discount function is 1 at t = 0. The default of nine coefficients is
    the usual exponential splines basis.
    """

    name = "ExponentialSplines"

    def __init__(self, n_coefficients: int = 9):
        if n_coefficients < 1:
            raise ConfigurationError(f"n_coefficients must be at least 1, got {n_coefficients}")
        self.n_coefficients = n_coefficients

    @property
    def size(self) -> int:
        return self.n_coefficients

    def coefficients(self, params: np.ndarray) -> np.ndarray:
        free = np.asarray(params[:-1], dtype=np.float64)
        return np.concatenate([[1.0 - free.sum()], free])

    def discount_function(self, params: np.ndarray, t: ArrayLike) -> ArrayLike:
        kappa = params[-1]
        c = self.coefficients(params)
        t = np.asarray(t, dtype=np.float64)
        powers = np.arange(1, self.n_coefficients + 1)
        return np.tensordot(c, np.exp(-kappa * np.multiply.outer(powers, t)), axes=1)


def create_family(method: Union[FittingMethod, str]) -> FittingFamily:
    """Factory for fitting families."""
    if isinstance(method, str):
        method = FittingMethod.from_string(method)
    if method == FittingMethod.NELSON_SIEGEL:
        return NelsonSiegel()
    elif method == FittingMethod.SVENSSON:
        return Svensson()
    elif method == FittingMethod.EXPONENTIAL_SPLINES:
        return ExponentialSplines()
    raise ConfigurationError(f"Fitting method not supported: {method}")


__all__ = [
    "FittingMethod",
    "FittingFamily",
    "NelsonSiegel",
    "Svensson",
    "ExponentialSplines",
    "create_family",
]
