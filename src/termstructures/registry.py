"""
Registry of built curves.

Curves are keyed by (currency, curve_id). Composite curves resolve their
dependencies here, so dependencies must be registered first. Default
(survival) curves live in a separate namespace.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional
import logging
import threading

from .curves.credit import SurvivalCurve
from .curves.curve import YieldTermStructure
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurveKey:
    """Identifier of a yield curve."""
    currency: str
    curve_id: str

    @property
    def name(self) -> str:
        return f"Yield/{self.currency}/{self.curve_id}"

    def __str__(self) -> str:
        return self.name


class CurveRegistry:
    """
    Thread-safe store of finalized curves.

    Registration is serialised by a lock; reads take no lock since
    registered curves are never mutated or replaced.
    """

    def __init__(self):
        self._curves: Dict[CurveKey, YieldTermStructure] = {}
        self._default_curves: Dict[str, SurvivalCurve] = {}
        self._lock = threading.Lock()

    def register(self, key: CurveKey, curve: YieldTermStructure) -> None:
        """Add a curve; a key can only be registered once."""
        with self._lock:
            if key in self._curves:
                raise ConfigurationError(f"Curve {key.name} is already registered", curve_id=key.curve_id)
            self._curves[key] = curve
        logger.debug("Registered curve %s", key.name)

    def lookup(self, key: CurveKey) -> Optional[YieldTermStructure]:
        """Curve for key, or None when not registered."""
        return self._curves.get(key)

    def require(self, key: CurveKey, requested_by: Optional[str] = None) -> YieldTermStructure:
        """Curve for key; raises ConfigurationError naming the missing id."""
        curve = self._curves.get(key)
        if curve is None:
            suffix = f" required by {requested_by}" if requested_by else ""
            raise ConfigurationError(
                f"Curve {key.name}{suffix} not found", curve_id=requested_by or key.curve_id
            )
        return curve

    def register_default_curve(self, name: str, curve: SurvivalCurve) -> None:
        with self._lock:
            if name in self._default_curves:
                raise ConfigurationError(f"Default curve {name} is already registered")
            self._default_curves[name] = curve
        logger.debug("Registered default curve %s", name)

    def require_default_curve(self, name: str, requested_by: Optional[str] = None) -> SurvivalCurve:
        curve = self._default_curves.get(name)
        if curve is None:
            suffix = f" required by {requested_by}" if requested_by else ""
            raise ConfigurationError(f"Default curve {name}{suffix} not found", curve_id=requested_by)
        return curve

    def __contains__(self, key: CurveKey) -> bool:
        return key in self._curves

    def __len__(self) -> int:
        return len(self._curves)

    def keys(self) -> List[CurveKey]:
        return list(self._curves)


__all__ = [
    "CurveKey",
    "CurveRegistry",
]
