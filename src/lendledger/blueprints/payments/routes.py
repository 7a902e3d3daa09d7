"""Payment routes."""

from __future__ import annotations

from flask import jsonify, request

from ...extensions import get_ledger_service
from . import bp


@bp.delete("/<int:payment_id>")
def reverse_payment(payment_id: int):
    """Reverse a payment; only the latest payment of its loan qualifies."""

    expected_version = request.args.get("expected_version", type=int)
    result = get_ledger_service().reverse_payment(payment_id, expected_version=expected_version)
    return jsonify(result.to_dict())
