"""Loan routes."""

from __future__ import annotations

from flask import jsonify, request

from ...extensions import get_ledger_service
from ...services.reports import payment_to_dict
from ...services.serialization import model_to_dict, serialize_value, to_dict
from ..validation import json_body
from . import bp
from .forms import LoanForm, LoanPreviewForm, PaymentForm, RescheduleForm, StatusOverrideForm


@bp.post("/preview")
def preview_loan():
    """Totals, installments and due dates for a loan that is not saved."""

    form = LoanPreviewForm.from_mapping(json_body())
    form.validate()
    form.raise_for_errors()
    preview = get_ledger_service().preview(
        form.principal, form.interest_rate, form.term, form.frequency, form.start_date
    )
    return jsonify(preview.to_dict())


@bp.get("")
def list_loans():
    client_id = request.args.get("client_id", type=int)
    summaries = get_ledger_service().list_loans(client_id=client_id)
    return jsonify([summary.to_dict() for summary in summaries])


@bp.post("")
def create_loan():
    form = LoanForm.from_mapping(json_body())
    form.validate()
    form.raise_for_errors()
    summary = get_ledger_service().create_loan(
        client_id=form.client_id,  # type: ignore[arg-type]
        principal=form.principal,
        interest_rate=form.interest_rate,
        term=form.term,
        frequency=form.frequency,
        start_date=form.start_date,  # type: ignore[arg-type]
        mora_rate=form.mora_rate,
    )
    return jsonify(summary.to_dict()), 201


@bp.get("/<int:loan_id>")
def get_loan(loan_id: int):
    return jsonify(get_ledger_service().get_loan(loan_id).to_dict())


@bp.delete("/<int:loan_id>")
def delete_loan(loan_id: int):
    get_ledger_service().delete_loan(loan_id)
    return "", 204


@bp.get("/<int:loan_id>/schedule")
def loan_schedule(loan_id: int):
    entries = get_ledger_service().schedule(loan_id)
    return jsonify([to_dict(entry) for entry in entries])


@bp.get("/<int:loan_id>/payments")
def list_payments(loan_id: int):
    payments = get_ledger_service().payments(loan_id)
    return jsonify([payment_to_dict(payment, loan_id=loan_id) for payment in payments])


@bp.post("/<int:loan_id>/payments")
def record_payment(loan_id: int):
    """Apply a payment; short payments need ``allow_partial`` to be recorded."""

    service = get_ledger_service()
    form = PaymentForm.from_mapping(json_body())
    form.validate()
    form.raise_for_errors()
    result = service.record_payment(
        loan_id,
        amount=form.amount,
        payment_date=form.payment_date or service.today(),
        allow_partial=form.allow_partial,
        expected_version=form.expected_version,
    )
    return jsonify(result.to_dict()), 201


@bp.get("/<int:loan_id>/total-paid")
def total_paid(loan_id: int):
    total = get_ledger_service().total_paid(loan_id)
    return jsonify({"loan_id": loan_id, "total_paid": serialize_value(total)})


@bp.post("/<int:loan_id>/reschedule")
def change_payment_day(loan_id: int):
    """Move the next unpaid due date; later periods follow the loan frequency."""

    form = RescheduleForm.from_mapping(json_body())
    form.validate()
    form.raise_for_errors()
    summary = get_ledger_service().change_payment_day(
        loan_id,
        form.anchor_date,  # type: ignore[arg-type]
        expected_version=form.expected_version,
    )
    return jsonify(summary.to_dict())


@bp.post("/<int:loan_id>/status")
def override_status(loan_id: int):
    form = StatusOverrideForm.from_mapping(json_body())
    form.validate()
    form.raise_for_errors()
    summary = get_ledger_service().override_status(
        loan_id,
        form.status,  # type: ignore[arg-type]
        reason=form.reason,
        expected_version=form.expected_version,
    )
    return jsonify(summary.to_dict())


@bp.get("/<int:loan_id>/status-history")
def status_history(loan_id: int):
    changes = get_ledger_service().status_history(loan_id)
    return jsonify([model_to_dict(change) for change in changes])
