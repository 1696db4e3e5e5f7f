"""
Fixed coupon bonds used to fit yield curves.

Features:
- Cashflow schedule generation
- Dirty and clean price from a yield curve
- Accrued interest calculation
- Yield from a clean price

Conventions:
- Prices are expressed per 100 face value
- Yields are continuously compounded ACT/ACT
- Prices are for settlement on the bond's settlement date
"""

from dataclasses import dataclass
from datetime import date
from typing import List

import numpy as np
from scipy.optimize import brentq

from ..conventions import DayCount, year_fraction
from ..dates import ScheduleInfo, generate_bond_schedule
from ..exceptions import ConfigurationError, NumericDomainError
from .curve import YieldTermStructure


@dataclass
class BondCashflow:
    """A single bond cashflow."""
    date: date
    amount: float  # In currency units for the bond's face value
    type: str  # "COUPON" or "COUPON+PRINCIPAL"


@dataclass
class FittingBond:
    """
    Fixed coupon bond with a market price quote.

    Attributes:
        security_id: Identifier
        settlement_date: Settlement date the quote refers to
        maturity_date: Maturity date
        coupon_rate: Annual coupon rate (decimal)
        frequency: Coupons per year
        price_quote: Clean price as a fraction of face (1.0 is par)
        day_count: Coupon accrual day count
        face_value: Face/par value
        tradable: False for bonds that must not enter a fit
    """
    security_id: str
    settlement_date: date
    maturity_date: date
    coupon_rate: float
    frequency: int = 2
    price_quote: float = 1.0
    day_count: DayCount = DayCount.ACT_ACT
    face_value: float = 100.0
    tradable: bool = True

    def __post_init__(self):
        if self.maturity_date <= self.settlement_date:
            raise ConfigurationError(
                f"Bond {self.security_id} matures on {self.maturity_date}, "
                f"not after settlement {self.settlement_date}"
            )
        if self.face_value <= 0:
            raise ConfigurationError(f"Bond {self.security_id} face value must be positive")

    def schedule(self) -> ScheduleInfo:
        return generate_bond_schedule(
            self.settlement_date, self.maturity_date, self.frequency, self.day_count
        )

    def cashflows(self) -> List[BondCashflow]:
        """
        Cashflows paid after settlement.

        Returns:
            List of BondCashflow, principal with the final coupon
        """
        schedule = self.schedule()
        result = []
        coupon = self.face_value * self.coupon_rate / self.frequency
        for i, pmt_date in enumerate(schedule.payment_dates):
            if i == len(schedule.payment_dates) - 1:
                result.append(BondCashflow(pmt_date, coupon + self.face_value, "COUPON+PRINCIPAL"))
            else:
                result.append(BondCashflow(pmt_date, coupon, "COUPON"))
        return result

    def accrued_interest(self) -> float:
        """Accrued interest at settlement, per 100 face."""
        schedule = self.schedule()
        start, end = schedule.accrual_starts[0], schedule.accrual_ends[0]
        period = year_fraction(start, end, self.day_count)
        if period <= 0:
            return 0.0
        elapsed = year_fraction(start, self.settlement_date, self.day_count)
        coupon = 100.0 * self.coupon_rate / self.frequency
        return max(0.0, coupon * elapsed / period)

    def dirty_price(self, curve: YieldTermStructure) -> float:
        """
        Present value at settlement per 100 face.

        Cashflows are discounted to the settlement date:
        PV = sum(cf_i * P(0,T_i)) / P(0,T_settle)
        """
        pv = sum(cf.amount * curve.discount(cf.date) for cf in self.cashflows())
        return pv / curve.discount(self.settlement_date) * 100.0 / self.face_value

    def clean_price(self, curve: YieldTermStructure) -> float:
        """Clean price per 100 face."""
        return self.dirty_price(curve) - self.accrued_interest()

    def yield_from_price(self, clean_price: float) -> float:
        """
        Continuously compounded ACT/ACT yield that reprices the bond.

        Args:
            clean_price: Clean price per 100 face

        Returns:
            Yield (decimal)
        """
        target_dirty = clean_price + self.accrued_interest()
        flows = [
            (year_fraction(self.settlement_date, cf.date, DayCount.ACT_ACT),
             cf.amount * 100.0 / self.face_value)
            for cf in self.cashflows()
        ]

        def pv_at_yield(y):
            return sum(amount * np.exp(-y * t) for t, amount in flows) - target_dirty

        try:
            return brentq(pv_at_yield, -0.5, 1.0, xtol=1e-12)
        except ValueError as exc:
            raise NumericDomainError(
                f"No yield in [-50%, 100%] reprices bond {self.security_id} at {clean_price}",
                instrument=self.security_id
            ) from exc


__all__ = [
    "BondCashflow",
    "FittingBond",
]
