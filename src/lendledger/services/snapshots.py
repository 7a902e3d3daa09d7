"""Immutable snapshots the ledger engine computes on."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from .loan_status import LoanStatus
from .money import ZERO
from .schedule import Frequency


@dataclass(frozen=True, slots=True)
class LoanSnapshot:
    """Ledger-relevant state of a loan at one point in time."""

    id: Optional[int]
    principal: Decimal
    interest_rate: Decimal
    mora_rate: Decimal
    term: int
    frequency: Frequency
    start_date: date
    total_payable: Decimal
    installment: Decimal
    paid_periods: int = 0
    accumulated_mora: Decimal = ZERO
    next_due_date: Optional[date] = None
    status: LoanStatus = LoanStatus.ACTIVO
    anchor_date: Optional[date] = None
    anchor_period: int = 0
    status_override: bool = False
    version: int = 0

    @property
    def final_installment(self) -> Decimal:
        return self.total_payable - self.installment * (self.term - 1)

    def installment_for(self, period: int) -> Decimal:
        """Amount due for ``period``; the last period carries the rounding remainder."""

        return self.final_installment if period == self.term else self.installment

    @property
    def next_period(self) -> Optional[int]:
        if self.paid_periods >= self.term:
            return None
        return self.paid_periods + 1

    @property
    def effective_anchor_date(self) -> date:
        return self.anchor_date or self.start_date


@dataclass(frozen=True, slots=True)
class PaymentSnapshot:
    """A payment record as the engine sees it."""

    id: Optional[int]
    period: int
    amount: Decimal
    payment_date: date
    due_date: date
    mora: Decimal = ZERO
    remaining: Decimal = ZERO
    is_late: bool = False
    is_partial: bool = False
    periods_advanced: int = 0
    mora_settled: Decimal = ZERO
    overpayment: Decimal = ZERO
    reversed: bool = False
    # Overridden status this payment cleared; a reversal restores it.
    cleared_override: Optional[LoanStatus] = None

    @property
    def active(self) -> bool:
        return not self.reversed


__all__ = ["LoanSnapshot", "PaymentSnapshot"]
