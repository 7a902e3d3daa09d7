"""Due-date schedule generation and re-anchoring."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Iterable, Optional, Sequence

from ..exceptions import LoanAlreadyPaidError, ValidationError
from .loan_status import derive_status
from .money import add_months, add_weeks, normalize_date

if TYPE_CHECKING:  # pragma: no cover - import guard for circular dependency
    from .snapshots import LoanSnapshot, PaymentSnapshot


class Frequency(str, Enum):
    """Installment frequency."""

    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"

    @classmethod
    def parse(cls, value: object) -> "Frequency":
        """Accept enum members, their names, or the legacy Spanish labels."""

        if isinstance(value, Frequency):
            return value
        if isinstance(value, str):
            key = value.strip().upper()
            key = _ALIASES.get(key, key)
            if key in cls.__members__:
                return cls[key]
        choices = ", ".join(member.value for member in cls)
        raise ValidationError(f"frequency must be one of {choices}.", field="frequency")


_ALIASES = {"SEMANAL": "WEEKLY", "QUINCENAL": "BIWEEKLY", "MENSUAL": "MONTHLY"}


@dataclass(frozen=True, slots=True)
class ScheduleEntry:
    """A single installment of a loan schedule."""

    period: int
    due_date: date
    expected_amount: Optional[Decimal] = None
    paid: bool = False


def shift(anchor: date, periods: int, frequency: Frequency) -> date:
    """Return ``anchor`` moved forward by ``periods`` installments."""

    if frequency is Frequency.WEEKLY:
        return add_weeks(anchor, periods)
    if frequency is Frequency.BIWEEKLY:
        return add_weeks(anchor, 2 * periods)
    # Months are always counted from the anchor so clipping never accumulates.
    return add_months(anchor, periods)


def _validate_periods(periods: object) -> int:
    if isinstance(periods, bool) or not isinstance(periods, int):
        raise ValidationError("periods must be a whole number.", field="periods")
    if periods <= 0:
        raise ValidationError("periods must be greater than zero.", field="periods")
    return periods


def generate_schedule(
    start_date: date,
    periods: int,
    frequency: Frequency | str,
    *,
    amounts: Sequence[Decimal] | None = None,
) -> list[ScheduleEntry]:
    """Return the ordered due dates for a new loan.

    Period ``k`` is due ``k`` installments after ``start_date``. ``amounts``,
    when given, supplies the expected amount of each period.
    """

    count = _validate_periods(periods)
    freq = Frequency.parse(frequency)
    if amounts is not None and len(amounts) != count:
        raise ValidationError("amounts must list one value per period.", field="amounts")
    start = normalize_date(start_date)
    return [
        ScheduleEntry(
            period=k,
            due_date=shift(start, k, freq),
            expected_amount=amounts[k - 1] if amounts is not None else None,
        )
        for k in range(1, count + 1)
    ]


def _historical_due_dates(payments: Iterable["PaymentSnapshot"]) -> dict[int, date]:
    """Due dates recorded on payments.

    Active records win over reversed ones and period-completing records win
    over partials.
    """

    recorded: dict[int, date] = {}
    for payment in sorted(payments, key=lambda p: (p.active, p.periods_advanced > 0)):
        recorded[payment.period] = payment.due_date
    return recorded


def due_date_for(
    loan: "LoanSnapshot",
    period: int,
    payments: Iterable["PaymentSnapshot"] = (),
) -> date:
    """Return the due date of ``period`` under the loan's current anchor."""

    if not 1 <= period <= loan.term:
        raise ValidationError(f"period must be between 1 and {loan.term}.", field="period")
    if period >= loan.anchor_period:
        return shift(loan.effective_anchor_date, period - loan.anchor_period, loan.frequency)
    recorded = _historical_due_dates(payments)
    if period in recorded:
        return recorded[period]
    return shift(loan.start_date, period, loan.frequency)


def loan_schedule(
    loan: "LoanSnapshot", payments: Iterable["PaymentSnapshot"] = ()
) -> list[ScheduleEntry]:
    """Rebuild a loan's full schedule from its anchor and payment history."""

    history = list(payments)
    return [
        ScheduleEntry(
            period=k,
            due_date=due_date_for(loan, k, history),
            expected_amount=loan.installment_for(k),
            paid=k <= loan.paid_periods,
        )
        for k in range(1, loan.term + 1)
    ]


def _check_reschedulable(
    loan: "LoanSnapshot", new_anchor_date: date, history: list["PaymentSnapshot"]
) -> date:
    if loan.paid_periods >= loan.term:
        raise LoanAlreadyPaidError(f"Loan {loan.id} is fully paid; there is nothing to reschedule.")
    anchor = normalize_date(new_anchor_date)
    if anchor < loan.start_date:
        raise ValidationError("anchor_date cannot be before the loan start date.", field="anchor_date")
    if loan.paid_periods > 0:
        last_paid_due = due_date_for(loan, loan.paid_periods, history)
        if anchor <= last_paid_due:
            raise ValidationError(
                f"anchor_date must be after {last_paid_due.isoformat()}, "
                "the due date of the last paid period.",
                field="anchor_date",
            )
    return anchor


def reschedule_from(
    loan: "LoanSnapshot",
    new_anchor_date: date,
    payments: Iterable["PaymentSnapshot"] = (),
) -> list[ScheduleEntry]:
    """Return the schedule with unpaid periods re-anchored at ``new_anchor_date``.

    The first unpaid period becomes due on ``new_anchor_date``; the following
    ones keep the loan frequency. Paid periods keep their historical dates.
    """

    history = list(payments)
    rescheduled = apply_reschedule(loan, new_anchor_date, history, today=None)
    return loan_schedule(rescheduled, history)


def apply_reschedule(
    loan: "LoanSnapshot",
    new_anchor_date: date,
    payments: Iterable["PaymentSnapshot"] = (),
    *,
    today: date | None,
) -> "LoanSnapshot":
    """Return ``loan`` re-anchored for its unpaid periods.

    When ``today`` is given the derived status is refreshed against the new
    next due date (a manual override is left untouched).
    """

    history = list(payments)
    anchor = _check_reschedulable(loan, new_anchor_date, history)
    updated = replace(
        loan,
        anchor_date=anchor,
        anchor_period=loan.paid_periods + 1,
        next_due_date=anchor,
    )
    if today is not None and not loan.status_override:
        updated = replace(
            updated,
            status=derive_status(
                paid_periods=updated.paid_periods,
                term=updated.term,
                accumulated_mora=updated.accumulated_mora,
                today=today,
                next_due_date=updated.next_due_date,
            ),
        )
    return updated


__all__ = [
    "Frequency",
    "ScheduleEntry",
    "apply_reschedule",
    "due_date_for",
    "generate_schedule",
    "loan_schedule",
    "reschedule_from",
    "shift",
]
