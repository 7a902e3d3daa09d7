"""Payment application, arrears and reversal engine.

Every function here is pure: it takes loan and payment snapshots and returns
new snapshots. Persisting the result atomically is the job of
:mod:`lendledger.services.loans`.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Optional

from ..exceptions import (
    LoanAlreadyPaidError,
    NotFoundError,
    PartialPaymentRequiresConfirmation,
    ValidationError,
)
from .loan_status import LoanStatus, derive_status, transition
from .money import ZERO, normalize_date, percent_of, to_money
from .schedule import due_date_for, shift
from .snapshots import LoanSnapshot, PaymentSnapshot


@dataclass(frozen=True, slots=True)
class EnginePolicy:
    """Product decisions the engine leaves configurable.

    ``mora_policy``: ``per_period`` charges the flat fee once per late period;
    ``cumulative`` charges it again for every period elapsed past the due date.
    ``overpayment_policy``: ``record`` keeps the excess on the payment as an
    overpayment; ``rollover`` uses it to complete following periods.
    """

    mora_policy: str = "per_period"
    overpayment_policy: str = "record"

    @classmethod
    def from_config(cls, config: Any) -> "EnginePolicy":
        return cls(
            mora_policy=getattr(config, "MORA_POLICY", "per_period"),
            overpayment_policy=getattr(config, "OVERPAYMENT_POLICY", "record"),
        )


@dataclass(frozen=True, slots=True)
class PaymentOutcome:
    """Loan and payment produced by applying or reversing a payment."""

    loan: LoanSnapshot
    payment: PaymentSnapshot
    previous_status: LoanStatus

    @property
    def status_changed(self) -> bool:
        return self.loan.status is not self.previous_status


def _periods_late(due: date, payment_date: date, loan: LoanSnapshot) -> int:
    """Number of periods elapsed past ``due``, counting a started period as whole."""

    periods = 1
    while shift(due, periods, loan.frequency) < payment_date:
        periods += 1
    return periods


def assess_mora(
    loan: LoanSnapshot,
    period: int,
    due: date,
    payment_date: date,
    policy: EnginePolicy,
) -> Decimal:
    """Total mora a period has accrued by ``payment_date``."""

    if payment_date <= due:
        return ZERO
    fee = percent_of(loan.installment_for(period), loan.mora_rate)
    if policy.mora_policy == "cumulative":
        return fee * _periods_late(due, payment_date, loan)
    return fee


def _active(history: Iterable[PaymentSnapshot]) -> list[PaymentSnapshot]:
    return [payment for payment in history if payment.active]


def _next_due(loan: LoanSnapshot, history: list[PaymentSnapshot]) -> Optional[date]:
    if loan.paid_periods >= loan.term:
        return None
    return due_date_for(loan, loan.paid_periods + 1, history)


def _settle_status(
    loan: LoanSnapshot, previous: LoanSnapshot, today: date, *, reversal: bool = False
) -> LoanSnapshot:
    derived = derive_status(
        paid_periods=loan.paid_periods,
        term=loan.term,
        accumulated_mora=loan.accumulated_mora,
        today=today,
        next_due_date=loan.next_due_date,
    )
    status = transition(
        previous.status, derived, manual=previous.status_override, reversal=reversal
    )
    return replace(loan, status=status, status_override=False)


def apply_payment(
    loan: LoanSnapshot,
    history: Iterable[PaymentSnapshot],
    amount: object,
    payment_date: date,
    *,
    allow_partial: bool = False,
    policy: EnginePolicy = EnginePolicy(),
    today: date | None = None,
) -> PaymentOutcome:
    """Apply ``amount`` to the loan's next unpaid period.

    A payment covering the installment plus the period's mora completes the
    period; anything less is a partial payment, recorded only when
    ``allow_partial`` is set. Status is re-derived for ``today`` (defaults to
    the payment date).
    """

    value = to_money(amount, field="amount")
    if value <= 0:
        raise ValidationError("amount must be greater than zero.", field="amount")
    paid_on = normalize_date(payment_date)
    if loan.status is LoanStatus.PAGADO or loan.paid_periods >= loan.term:
        raise LoanAlreadyPaidError(f"Loan {loan.id} is already paid; no further payments accepted.")
    if paid_on < loan.start_date:
        raise ValidationError("payment_date cannot be before the loan start date.", field="payment_date")

    records = list(history)
    active = _active(records)
    period = loan.paid_periods + 1
    due = due_date_for(loan, period, records)

    cleared = loan.status if loan.status_override else None
    prior = [p for p in active if p.period == period and p.periods_advanced == 0]
    prior_paid = sum((p.amount for p in prior), ZERO)
    prior_mora = sum((p.mora for p in prior), ZERO)
    new_mora = max(assess_mora(loan, period, due, paid_on, policy) - prior_mora, ZERO)
    period_mora = prior_mora + new_mora
    required = loan.installment_for(period) + period_mora - prior_paid

    if value < required:
        if not allow_partial:
            raise PartialPaymentRequiresConfirmation(required=required, amount=value, period=period)
        payment = PaymentSnapshot(
            id=None,
            period=period,
            amount=value,
            payment_date=paid_on,
            due_date=due,
            mora=new_mora,
            remaining=required - value,
            is_late=paid_on > due,
            is_partial=True,
            cleared_override=cleared,
        )
        updated = replace(loan, accumulated_mora=loan.accumulated_mora + new_mora)
    else:
        excess = value - required
        advanced = 1
        assessed = new_mora
        settled = period_mora
        if policy.overpayment_policy == "rollover":
            next_period = period + 1
            while excess > 0 and next_period <= loan.term:
                next_due = due_date_for(loan, next_period, records)
                mora_next = assess_mora(loan, next_period, next_due, paid_on, policy)
                required_next = loan.installment_for(next_period) + mora_next
                if excess < required_next:
                    break
                excess -= required_next
                assessed += mora_next
                settled += mora_next
                advanced += 1
                next_period += 1
        payment = PaymentSnapshot(
            id=None,
            period=period,
            amount=value,
            payment_date=paid_on,
            due_date=due,
            mora=assessed,
            is_late=paid_on > due,
            periods_advanced=advanced,
            mora_settled=settled,
            overpayment=excess,
            cleared_override=cleared,
        )
        updated = replace(
            loan,
            paid_periods=loan.paid_periods + advanced,
            accumulated_mora=loan.accumulated_mora + assessed - settled,
        )

    updated = replace(updated, next_due_date=_next_due(updated, records))
    updated = _settle_status(updated, loan, today or paid_on)
    return PaymentOutcome(loan=updated, payment=payment, previous_status=loan.status)


def reverse_payment(
    loan: LoanSnapshot,
    payment: PaymentSnapshot | None,
    history: Iterable[PaymentSnapshot],
    *,
    today: date,
) -> PaymentOutcome:
    """Undo ``payment``: reopen the periods it completed and restore its mora effects.

    Only the most recent active payment may be reversed so period indices stay
    contiguous.
    """

    if payment is None or payment.reversed:
        raise NotFoundError("Payment not found or already reversed.")
    records = list(history)
    active = _active(records)
    latest = max(active, key=lambda p: (p.period, p.id or 0), default=None)
    if latest is None or latest.id != payment.id:
        raise ValidationError(
            "Only the most recent payment of a loan can be reversed.", field="payment_id"
        )

    paid_periods = loan.paid_periods - payment.periods_advanced
    accumulated = loan.accumulated_mora + payment.mora_settled - payment.mora
    if paid_periods < 0 or accumulated < 0:
        raise ValidationError(f"Payment {payment.id} does not match the loan ledger.", field="payment_id")

    reversed_payment = replace(payment, reversed=True)
    remaining = [p for p in records if p.id != payment.id] + [reversed_payment]
    updated = replace(loan, paid_periods=paid_periods, accumulated_mora=accumulated)
    updated = replace(updated, next_due_date=_next_due(updated, remaining))
    if payment.cleared_override is not None:
        # The payment lifted an operator override; undoing it puts the override back.
        updated = replace(updated, status=payment.cleared_override, status_override=True)
    else:
        updated = _settle_status(updated, loan, today, reversal=True)
    return PaymentOutcome(loan=updated, payment=reversed_payment, previous_status=loan.status)


def refresh_status(loan: LoanSnapshot, *, today: date) -> LoanSnapshot:
    """Re-derive the status for ``today`` unless an operator override is in force."""

    if loan.status_override:
        return loan
    derived = derive_status(
        paid_periods=loan.paid_periods,
        term=loan.term,
        accumulated_mora=loan.accumulated_mora,
        today=today,
        next_due_date=loan.next_due_date,
    )
    return replace(loan, status=transition(loan.status, derived))


def override_status(loan: LoanSnapshot, status: LoanStatus | str) -> LoanSnapshot:
    """Force ``status`` as an operator decision; reads will not re-derive it."""

    target = LoanStatus.parse(status)
    return replace(loan, status=transition(loan.status, target, manual=True), status_override=True)


__all__ = [
    "EnginePolicy",
    "PaymentOutcome",
    "apply_payment",
    "assess_mora",
    "override_status",
    "refresh_status",
    "reverse_payment",
]
