"""
Calibrating instruments for bootstrapping.

Defines the instruments a bootstrapped curve is calibrated to:
- Deposit: Money market deposits
- FRA: Forward Rate Agreements
- Future: Interest rate futures
- OISSwap: Overnight Index Swaps (single curve)

Each instrument knows:
1. Its pillar date (the curve node it determines)
2. Its market quote
3. The quote implied by a given curve
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from ..conventions import BusinessDayConvention, DayCount, year_fraction
from ..dates import DateUtils
from .curve import YieldTermStructure


class CalibratingInstrument(ABC):
    """
    Contract between the bootstrapper and a market instrument.

    The market quote may be updated in place (set_quote); curves built with
    quote linkage pick the new value up on rebuild.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Identifier used in diagnostics and errors."""

    @property
    @abstractmethod
    def market_quote(self) -> float:
        """Quote observed in the market."""

    @property
    @abstractmethod
    def pillar_date(self) -> date:
        """Date of the curve node this instrument determines."""

    @abstractmethod
    def implied_quote(self, curve: YieldTermStructure) -> float:
        """Quote implied by the curve."""

    @abstractmethod
    def set_quote(self, quote: float) -> None:
        """Replace the market quote."""

    def quote_error(self, curve: YieldTermStructure) -> float:
        """Implied minus market quote."""
        return self.implied_quote(curve) - self.market_quote


@dataclass
class Deposit(CalibratingInstrument):
    """
    Money market deposit.

    Simple interest instrument: the depositor receives (1 + R*tau) at maturity.

    Implied rate: R = (DF(T1)/DF(T2) - 1) / tau
    where tau is the year fraction using the day count convention.
    """
    start_date: date
    end_date: date
    quote: float
    day_count: DayCount = DayCount.ACT_360
    label: Optional[str] = None

    @classmethod
    def from_tenor(
        cls,
        as_of: date,
        tenor: str,
        quote: float,
        day_count: DayCount = DayCount.ACT_360,
        settlement_days: int = 0
    ) -> "Deposit":
        start = DateUtils.add_tenor(as_of, f"{settlement_days}D") if settlement_days else as_of
        return cls(start, DateUtils.add_tenor(start, tenor), quote, day_count, f"DEP_{tenor}")

    @property
    def name(self) -> str:
        return self.label or f"DEP_{self.end_date.isoformat()}"

    @property
    def market_quote(self) -> float:
        return self.quote

    @property
    def pillar_date(self) -> date:
        return self.end_date

    def set_quote(self, quote: float) -> None:
        self.quote = quote

    def implied_quote(self, curve: YieldTermStructure) -> float:
        tau = year_fraction(self.start_date, self.end_date, self.day_count)
        return (curve.discount(self.start_date) / curve.discount(self.end_date) - 1.0) / tau


@dataclass
class FRA(CalibratingInstrument):
    """
    Forward Rate Agreement.

    FRA rate: F = (DF(T1)/DF(T2) - 1) / tau
    """
    start_date: date
    end_date: date
    quote: float
    day_count: DayCount = DayCount.ACT_360
    label: Optional[str] = None

    @classmethod
    def from_tenor(
        cls,
        as_of: date,
        start_tenor: str,
        tenor: str,
        quote: float,
        day_count: DayCount = DayCount.ACT_360
    ) -> "FRA":
        """FRA starting start_tenor after as_of over a period of tenor."""
        start = DateUtils.add_tenor(as_of, start_tenor)
        return cls(start, DateUtils.add_tenor(start, tenor), quote, day_count,
                   f"FRA_{start_tenor}x{tenor}")

    @property
    def name(self) -> str:
        return self.label or f"FRA_{self.start_date.isoformat()}_{self.end_date.isoformat()}"

    @property
    def market_quote(self) -> float:
        return self.quote

    @property
    def pillar_date(self) -> date:
        return self.end_date

    def set_quote(self, quote: float) -> None:
        self.quote = quote

    def implied_quote(self, curve: YieldTermStructure) -> float:
        tau = year_fraction(self.start_date, self.end_date, self.day_count)
        return (curve.discount(self.start_date) / curve.discount(self.end_date) - 1.0) / tau


@dataclass
class Future(CalibratingInstrument):
    """
    Interest rate future (e.g., SOFR or Euribor future).

    Quote is the price 100 * (1 - rate). The futures rate equals the simple
    forward over the contract period plus the convexity adjustment.
    """
    start_date: date
    end_date: date
    price: float
    convexity_adjustment: float = 0.0
    day_count: DayCount = DayCount.ACT_360
    label: Optional[str] = None

    @classmethod
    def from_tenor(
        cls,
        as_of: date,
        start_tenor: str,
        price: float,
        period: str = "3M",
        convexity_adjustment: float = 0.0,
        day_count: DayCount = DayCount.ACT_360
    ) -> "Future":
        start = DateUtils.add_tenor(as_of, start_tenor)
        return cls(start, DateUtils.add_tenor(start, period), price, convexity_adjustment,
                   day_count, f"FUT_{start_tenor}")

    @property
    def name(self) -> str:
        return self.label or f"FUT_{self.start_date.isoformat()}"

    @property
    def market_quote(self) -> float:
        return self.price

    @property
    def pillar_date(self) -> date:
        return self.end_date

    def set_quote(self, quote: float) -> None:
        self.price = quote

    def implied_rate(self) -> float:
        """Convert futures price quote to implied rate."""
        return (100.0 - self.price) / 100.0

    def implied_quote(self, curve: YieldTermStructure) -> float:
        tau = year_fraction(self.start_date, self.end_date, self.day_count)
        forward = (curve.discount(self.start_date) / curve.discount(self.end_date) - 1.0) / tau
        return 100.0 * (1.0 - forward - self.convexity_adjustment)


@dataclass
class OISSwap(CalibratingInstrument):
    """
    Overnight Index Swap.

    Fixed leg pays fixed rate K at each payment date.
    Floating leg pays compounded overnight rate.

    Single-curve pricing (OIS discount = OIS forward), so the compounded
    floating leg telescopes:
    Par swap rate: R = (DF(T0) - DF(Tn)) / sum(delta_i * DF(Ti))
    """
    start_date: date
    maturity_date: date
    quote: float
    fixed_frequency: int = 1
    day_count: DayCount = DayCount.ACT_360
    label: Optional[str] = None

    def __post_init__(self):
        self._schedule = DateUtils.generate_schedule(
            self.start_date, self.maturity_date, self.fixed_frequency,
            BusinessDayConvention.MODIFIED_FOLLOWING
        )

    @classmethod
    def from_tenor(
        cls,
        as_of: date,
        tenor: str,
        quote: float,
        fixed_frequency: int = 1,
        day_count: DayCount = DayCount.ACT_360,
        settlement_days: int = 0
    ) -> "OISSwap":
        start = DateUtils.add_tenor(as_of, f"{settlement_days}D") if settlement_days else as_of
        return cls(start, DateUtils.add_tenor(start, tenor), quote, fixed_frequency,
                   day_count, f"OIS_{tenor}")

    @property
    def name(self) -> str:
        return self.label or f"OIS_{self.maturity_date.isoformat()}"

    @property
    def market_quote(self) -> float:
        return self.quote

    @property
    def pillar_date(self) -> date:
        return self._schedule[-1]

    def set_quote(self, quote: float) -> None:
        self.quote = quote

    def payment_schedule(self) -> List[date]:
        """Fixed leg payment dates."""
        return list(self._schedule)

    def implied_quote(self, curve: YieldTermStructure) -> float:
        annuity = 0.0
        prev = self.start_date
        for pmt in self._schedule:
            annuity += year_fraction(prev, pmt, self.day_count) * curve.discount(pmt)
            prev = pmt
        return (curve.discount(self.start_date) - curve.discount(self._schedule[-1])) / annuity


__all__ = [
    "CalibratingInstrument",
    "Deposit",
    "FRA",
    "Future",
    "OISSwap",
]
