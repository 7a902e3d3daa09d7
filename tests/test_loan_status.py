"""Tests for the loan status state machine."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from lendledger.exceptions import InvalidStatusTransition, ValidationError
from lendledger.services.loan_status import LoanStatus, can_transition, derive_status, transition
from lendledger.services.payments import override_status, refresh_status

from tests.conftest import make_snapshot


def _derive(**overrides):
    values = dict(
        paid_periods=0,
        term=12,
        accumulated_mora=Decimal("0.00"),
        today=date(2024, 1, 5),
        next_due_date=date(2024, 1, 8),
    )
    values.update(overrides)
    return derive_status(**values)


def test_new_loan_is_active():
    assert _derive() is LoanStatus.ACTIVO


def test_past_due_loan_is_overdue():
    assert _derive(today=date(2024, 1, 9)) is LoanStatus.ATRASADO


def test_due_today_is_not_overdue():
    assert _derive(today=date(2024, 1, 8)) is LoanStatus.ACTIVO


def test_fully_paid_loan_is_paid():
    assert _derive(paid_periods=12, next_due_date=None, today=date(2030, 1, 1)) is LoanStatus.PAGADO


def test_completed_term_with_pending_mora_stays_overdue():
    assert _derive(paid_periods=12, next_due_date=None, accumulated_mora=Decimal("5.00")) is (
        LoanStatus.ATRASADO
    )


def test_derivation_is_idempotent():
    loan = make_snapshot()
    today = date(2024, 2, 1)

    once = refresh_status(loan, today=today)
    twice = refresh_status(once, today=today)

    assert once.status is LoanStatus.ATRASADO
    assert twice == once


@pytest.mark.parametrize(
    "current,target,allowed",
    [
        (LoanStatus.ACTIVO, LoanStatus.ATRASADO, True),
        (LoanStatus.ATRASADO, LoanStatus.ACTIVO, True),
        (LoanStatus.ACTIVO, LoanStatus.PAGADO, True),
        (LoanStatus.ATRASADO, LoanStatus.PAGADO, True),
        (LoanStatus.PAGADO, LoanStatus.ACTIVO, False),
        (LoanStatus.PAGADO, LoanStatus.ATRASADO, False),
        (LoanStatus.PAGADO, LoanStatus.PAGADO, True),
    ],
)
def test_automatic_transition_table(current, target, allowed):
    assert can_transition(current, target) is allowed


def test_paid_loans_reopen_only_through_reversal():
    assert can_transition(LoanStatus.PAGADO, LoanStatus.ACTIVO, reversal=True)
    with pytest.raises(InvalidStatusTransition):
        transition(LoanStatus.PAGADO, LoanStatus.ACTIVO)


def test_invalid_transition_is_a_validation_error():
    with pytest.raises(ValidationError) as excinfo:
        transition(LoanStatus.PAGADO, LoanStatus.ATRASADO)
    assert excinfo.value.code == "invalid_status_transition"


def test_manual_override_may_force_any_status():
    paid = make_snapshot(paid_periods=12, next_due_date=None, status=LoanStatus.PAGADO)

    forced = override_status(paid, "ATRASADO")

    assert forced.status is LoanStatus.ATRASADO
    assert forced.status_override is True


def test_override_survives_status_refresh():
    forced = override_status(make_snapshot(), LoanStatus.ATRASADO)

    assert refresh_status(forced, today=date(2024, 1, 2)).status is LoanStatus.ATRASADO


def test_unknown_status_is_rejected():
    with pytest.raises(ValidationError) as excinfo:
        LoanStatus.parse("CANCELADO")
    assert excinfo.value.field == "status"
