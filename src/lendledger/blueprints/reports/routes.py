"""Portfolio report routes."""

from __future__ import annotations

from flask import jsonify, request

from ...extensions import get_ledger_service
from ...services.money import parse_iso_date
from . import bp


@bp.get("/statistics")
def statistics():
    """Dashboard figures; ``?date=YYYY-MM-DD`` picks the day (today by default)."""

    raw_day = request.args.get("date")
    day = parse_iso_date(raw_day, field="date") if raw_day else None
    return jsonify(get_ledger_service().statistics(day).to_dict())
