"""Tests for borrower management."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from lendledger.exceptions import LoanPolicyError, NotFoundError, ValidationError
from lendledger.services.clients import ClientData


def _data(**overrides):
    values = {
        "name": "Ana Ruiz",
        "phone": "555-0101",
        "address": "4 Elm Road",
        "document_id": "X-100",
    }
    values.update(overrides)
    return ClientData(**values)


def test_create_and_list_clients(client_service):
    created = client_service.create_client(_data(route="North"))

    assert created.id is not None
    assert created.route == "North"
    assert [c.document_id for c in client_service.list_clients()] == ["X-100"]


def test_duplicate_document_is_rejected(client_service):
    client_service.create_client(_data())

    with pytest.raises(ValidationError) as excinfo:
        client_service.create_client(_data(name="Someone Else"))
    assert excinfo.value.field == "document_id"


def test_update_client(client_service):
    created = client_service.create_client(_data())

    updated = client_service.update_client(created.id, _data(phone="555-9999"))

    assert updated.phone == "555-9999"
    assert client_service.get_client(created.id).phone == "555-9999"


def test_update_cannot_take_another_clients_document(client_service):
    client_service.create_client(_data())
    other = client_service.create_client(_data(document_id="X-200"))

    with pytest.raises(ValidationError):
        client_service.update_client(other.id, _data(document_id="X-100"))


def test_delete_client_without_loans(client_service):
    created = client_service.create_client(_data())

    client_service.delete_client(created.id)

    with pytest.raises(NotFoundError):
        client_service.get_client(created.id)


def test_delete_client_with_loans_is_refused(client_service, loan_factory):
    summary = loan_factory()

    with pytest.raises(LoanPolicyError):
        client_service.delete_client(summary.client_id)


def test_total_paid_by_client_spans_loans(client_service, client_factory, loan_factory, ledger):
    borrower = client_factory()
    first = loan_factory(client_id=borrower.id).loan.id
    second = loan_factory(client_id=borrower.id, principal="500.00").loan.id
    ledger.record_payment(first, amount="100.00", payment_date=date(2024, 1, 8))
    ledger.record_payment(second, amount="50.00", payment_date=date(2024, 1, 8))
    reversed_payment = ledger.record_payment(second, amount="50.00", payment_date=date(2024, 1, 15))
    ledger.reverse_payment(reversed_payment.payment.id)

    assert client_service.total_paid(borrower.id) == Decimal("150.00")
    assert client_service.total_paid(client_factory().id) == Decimal("0.00")
