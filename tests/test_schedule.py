"""Tests for due-date schedules and re-anchoring."""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from lendledger.exceptions import LoanAlreadyPaidError, ValidationError
from lendledger.services.loan_status import LoanStatus
from lendledger.services.schedule import (
    Frequency,
    apply_reschedule,
    generate_schedule,
    loan_schedule,
    reschedule_from,
)
from lendledger.services.snapshots import PaymentSnapshot

from tests.conftest import make_snapshot


def _dates(entries):
    return [entry.due_date for entry in entries]


def test_weekly_schedule():
    entries = generate_schedule(date(2024, 1, 1), 3, Frequency.WEEKLY)
    assert [e.period for e in entries] == [1, 2, 3]
    assert _dates(entries) == [date(2024, 1, 8), date(2024, 1, 15), date(2024, 1, 22)]


def test_biweekly_schedule():
    entries = generate_schedule(date(2024, 12, 20), 2, "BIWEEKLY")
    assert _dates(entries) == [date(2025, 1, 3), date(2025, 1, 17)]


def test_monthly_schedule_clips_and_recovers():
    entries = generate_schedule(date(2024, 1, 31), 4, Frequency.MONTHLY)
    assert _dates(entries) == [
        date(2024, 2, 29),
        date(2024, 3, 31),
        date(2024, 4, 30),
        date(2024, 5, 31),
    ]


@pytest.mark.parametrize(
    "alias,expected",
    [
        ("SEMANAL", Frequency.WEEKLY),
        ("quincenal", Frequency.BIWEEKLY),
        ("MENSUAL", Frequency.MONTHLY),
    ],
)
def test_frequency_accepts_legacy_labels(alias, expected):
    assert Frequency.parse(alias) is expected


def test_unknown_frequency_is_rejected():
    with pytest.raises(ValidationError) as excinfo:
        generate_schedule(date(2024, 1, 1), 3, "DAILY")
    assert excinfo.value.field == "frequency"


@pytest.mark.parametrize("periods", [0, -1, "3", True])
def test_invalid_period_count(periods):
    with pytest.raises(ValidationError):
        generate_schedule(date(2024, 1, 1), periods, Frequency.WEEKLY)


@pytest.mark.parametrize("frequency", list(Frequency))
def test_schedules_are_strictly_increasing(frequency):
    entries = generate_schedule(date(2024, 1, 31), 24, frequency)
    dates = _dates(entries)
    assert all(earlier < later for earlier, later in zip(dates, dates[1:]))


def test_schedule_carries_expected_amounts():
    amounts = [Decimal("333.33"), Decimal("333.33"), Decimal("333.34")]
    entries = generate_schedule(date(2024, 1, 1), 3, Frequency.WEEKLY, amounts=amounts)
    assert [e.expected_amount for e in entries] == amounts


def _paid_first_period():
    loan = make_snapshot(paid_periods=1, next_due_date=date(2024, 1, 15))
    payment = PaymentSnapshot(
        id=1,
        period=1,
        amount=Decimal("100.00"),
        payment_date=date(2024, 1, 8),
        due_date=date(2024, 1, 8),
        periods_advanced=1,
    )
    return loan, [payment]


def test_reschedule_moves_unpaid_periods_only():
    loan, payments = _paid_first_period()

    entries = reschedule_from(loan, date(2024, 1, 17), payments)

    assert entries[0].due_date == date(2024, 1, 8)
    assert entries[0].paid is True
    assert _dates(entries[1:4]) == [date(2024, 1, 17), date(2024, 1, 24), date(2024, 1, 31)]
    dates = _dates(entries)
    assert all(earlier < later for earlier, later in zip(dates, dates[1:]))


def test_reschedule_keeps_paid_dates_across_repeated_changes():
    loan, payments = _paid_first_period()
    moved = apply_reschedule(loan, date(2024, 1, 17), payments, today=None)
    second_payment = PaymentSnapshot(
        id=2,
        period=2,
        amount=Decimal("100.00"),
        payment_date=date(2024, 1, 17),
        due_date=date(2024, 1, 17),
        periods_advanced=1,
    )
    moved = replace(moved, paid_periods=2, next_due_date=date(2024, 1, 24))
    history = payments + [second_payment]

    again = apply_reschedule(moved, date(2024, 2, 1), history, today=None)
    entries = loan_schedule(again, history)

    assert _dates(entries[:4]) == [
        date(2024, 1, 8),
        date(2024, 1, 17),
        date(2024, 2, 1),
        date(2024, 2, 8),
    ]
    assert again.next_due_date == date(2024, 2, 1)
    assert again.anchor_period == 3


def test_reschedule_rejects_anchor_on_or_before_last_paid_due_date():
    loan, payments = _paid_first_period()
    with pytest.raises(ValidationError) as excinfo:
        reschedule_from(loan, date(2024, 1, 8), payments)
    assert excinfo.value.field == "anchor_date"


def test_reschedule_rejects_anchor_before_start():
    with pytest.raises(ValidationError):
        reschedule_from(make_snapshot(), date(2023, 12, 31))


def test_reschedule_of_paid_loan_is_refused():
    loan = make_snapshot(paid_periods=12, next_due_date=None, status=LoanStatus.PAGADO)
    with pytest.raises(LoanAlreadyPaidError):
        reschedule_from(loan, date(2024, 6, 1))


def test_reschedule_refreshes_status_when_today_given():
    loan = make_snapshot(status=LoanStatus.ATRASADO)

    moved = apply_reschedule(loan, date(2024, 1, 20), today=date(2024, 1, 10))

    assert moved.next_due_date == date(2024, 1, 20)
    assert moved.status is LoanStatus.ACTIVO


def test_monthly_reschedule_counts_months_from_new_anchor():
    loan = make_snapshot(frequency=Frequency.MONTHLY, term=4, next_due_date=date(2024, 2, 1))

    entries = reschedule_from(loan, date(2024, 1, 31))

    assert _dates(entries) == [
        date(2024, 1, 31),
        date(2024, 2, 29),
        date(2024, 3, 31),
        date(2024, 4, 30),
    ]
