"""Read-only ledger projections: totals, balances and portfolio figures."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Optional

from .loan_status import LoanStatus
from .money import ZERO
from .schedule import ScheduleEntry, loan_schedule
from .serialization import serialize_value, to_dict
from .snapshots import LoanSnapshot, PaymentSnapshot


# Entries shown in each recent-activity list.
RECENT_ACTIVITY = 5


def payment_list(payments: Iterable[PaymentSnapshot]) -> list[PaymentSnapshot]:
    """Active payments ordered by period, then by insertion."""

    active = [payment for payment in payments if payment.active]
    return sorted(active, key=lambda p: (p.period, p.id or 0))


def total_paid(payments: Iterable[PaymentSnapshot]) -> Decimal:
    """Sum of the amounts of active payments."""

    return sum((payment.amount for payment in payments if payment.active), ZERO)


def outstanding_balance(loan: LoanSnapshot, payments: Iterable[PaymentSnapshot]) -> Decimal:
    """Unpaid installments plus pending mora, less what is already paid on the open period."""

    if loan.paid_periods >= loan.term:
        return max(loan.accumulated_mora, ZERO)
    unpaid = sum(
        (loan.installment_for(k) for k in range(loan.paid_periods + 1, loan.term + 1)), ZERO
    )
    open_period = loan.paid_periods + 1
    credited = sum(
        (
            p.amount
            for p in payments
            if p.active and p.period == open_period and p.periods_advanced == 0
        ),
        ZERO,
    )
    return max(unpaid + loan.accumulated_mora - credited, ZERO)


@dataclass(slots=True)
class LoanSummary:
    """Everything a caller needs to render a loan after a read or a mutation."""

    loan: LoanSnapshot
    client_id: Optional[int]
    schedule: list[ScheduleEntry]
    payments: list[PaymentSnapshot]
    total_paid: Decimal
    outstanding_balance: Decimal
    status_override_reason: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        loan = self.loan
        return {
            "id": loan.id,
            "client_id": self.client_id,
            "principal": serialize_value(loan.principal),
            "interest_rate": serialize_value(loan.interest_rate),
            "mora_rate": serialize_value(loan.mora_rate),
            "term": loan.term,
            "frequency": loan.frequency.value,
            "start_date": serialize_value(loan.start_date),
            "total_payable": serialize_value(loan.total_payable),
            "installment": serialize_value(loan.installment),
            "final_installment": serialize_value(loan.final_installment),
            "paid_periods": loan.paid_periods,
            "accumulated_mora": serialize_value(loan.accumulated_mora),
            "next_due_date": serialize_value(loan.next_due_date),
            "status": loan.status.value,
            "status_override": loan.status_override,
            "status_override_reason": self.status_override_reason,
            "version": loan.version,
            "total_paid": serialize_value(self.total_paid),
            "outstanding_balance": serialize_value(self.outstanding_balance),
            "schedule": [to_dict(entry) for entry in self.schedule],
            "payments": [payment_to_dict(p, loan_id=loan.id) for p in self.payments],
        }


def payment_to_dict(payment: PaymentSnapshot, *, loan_id: Optional[int] = None) -> dict[str, Any]:
    payload = to_dict(payment)
    if loan_id is not None:
        payload["loan_id"] = loan_id
    return payload


def build_summary(
    loan: LoanSnapshot,
    payments: Iterable[PaymentSnapshot],
    *,
    client_id: Optional[int] = None,
    status_override_reason: Optional[str] = None,
) -> LoanSummary:
    """Assemble the loan aggregate from a snapshot and its full payment history."""

    history = list(payments)
    return LoanSummary(
        loan=loan,
        client_id=client_id,
        schedule=loan_schedule(loan, history),
        payments=payment_list(history),
        total_paid=total_paid(history),
        outstanding_balance=outstanding_balance(loan, history),
        status_override_reason=status_override_reason,
    )


@dataclass(slots=True)
class PortfolioStatistics:
    """Dashboard figures across every loan."""

    as_of: date
    active_loans: int = 0
    overdue_loans: int = 0
    paid_loans: int = 0
    total_lent: Decimal = ZERO
    payments_today: int = 0
    collected_today: Decimal = ZERO
    total_mora: Decimal = ZERO
    by_status: dict[str, int] = field(default_factory=dict)
    recent_loans: list[dict[str, Any]] = field(default_factory=list)
    recent_payments: list[dict[str, Any]] = field(default_factory=list)
    recent_clients: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return to_dict(self)


def _loan_brief(loan: LoanSnapshot) -> dict[str, Any]:
    return {
        "id": loan.id,
        "principal": serialize_value(loan.principal),
        "total_payable": serialize_value(loan.total_payable),
        "start_date": serialize_value(loan.start_date),
        "status": loan.status.value,
    }


def portfolio_statistics(
    loans: Iterable[LoanSnapshot],
    payments_on_day: Iterable[PaymentSnapshot],
    *,
    on: date,
    recent_payments: Iterable[tuple[int, PaymentSnapshot]] = (),
    recent_clients: Iterable[dict[str, Any]] = (),
    recent: int = RECENT_ACTIVITY,
) -> PortfolioStatistics:
    """Summarize the portfolio for ``on``.

    ``loans`` should already carry their effective status for that day.
    Active loans are those not yet PAGADO, overdue ones included.
    ``recent_payments`` pairs each payment with its loan ID; together with
    ``recent_clients`` it feeds the recent-activity lists, which keep the
    newest ``recent`` entries.
    """

    loans = list(loans)
    stats = PortfolioStatistics(as_of=on, by_status={status.value: 0 for status in LoanStatus})
    newest = sorted(loans, key=lambda item: (item.start_date, item.id or 0), reverse=True)
    stats.recent_loans = [_loan_brief(loan) for loan in newest[:recent]]
    stats.recent_payments = [
        payment_to_dict(payment, loan_id=loan_id)
        for loan_id, payment in list(recent_payments)[:recent]
    ]
    stats.recent_clients = list(recent_clients)[:recent]
    for loan in loans:
        stats.by_status[loan.status.value] += 1
        stats.total_lent += loan.principal
        stats.total_mora += loan.accumulated_mora
        if loan.status is LoanStatus.PAGADO:
            stats.paid_loans += 1
            continue
        stats.active_loans += 1
        if loan.status is LoanStatus.ATRASADO:
            stats.overdue_loans += 1
    for payment in payments_on_day:
        if payment.active:
            stats.payments_today += 1
            stats.collected_today += payment.amount
    return stats


__all__ = [
    "RECENT_ACTIVITY",
    "LoanSummary",
    "PortfolioStatistics",
    "build_summary",
    "outstanding_balance",
    "payment_list",
    "payment_to_dict",
    "portfolio_statistics",
    "total_paid",
]
