"""Exact currency arithmetic and calendar-safe date helpers.

Money is always :class:`~decimal.Decimal` quantized to cents with
ROUND_HALF_UP. Dates are shifted by anchoring them to a fixed noon reference
time so that adding days, weeks or months can never drift across a midnight
or daylight-saving boundary.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from ..exceptions import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")
REFERENCE_TIME = time(12, 0)


def quantize_money(value: Decimal, *, rounding: str = ROUND_HALF_UP) -> Decimal:
    """Round ``value`` to cents."""

    return value.quantize(CENT, rounding=rounding)


def to_decimal(value: object, *, field: str) -> Decimal:
    """Parse ``value`` into a finite Decimal or raise ``ValidationError``.

    Strings, ints and Decimals are accepted. Floats are refused because they
    cannot represent most cent amounts exactly.
    """

    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} is required.", field=field)
    if isinstance(value, float):
        raise ValidationError(f"{field} must be sent as a decimal string, not a float.", field=field)
    if isinstance(value, Decimal):
        parsed = value
    elif isinstance(value, (int, str)):
        try:
            parsed = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise ValidationError(f"{field} must be a valid number.", field=field) from exc
    else:
        raise ValidationError(f"{field} must be a valid number.", field=field)
    if not parsed.is_finite():
        raise ValidationError(f"{field} must be a finite number.", field=field)
    return parsed


def to_money(value: object, *, field: str) -> Decimal:
    """Parse a monetary value; more than two decimal places is an error."""

    parsed = to_decimal(value, field=field)
    if parsed != parsed.quantize(CENT):
        raise ValidationError(f"{field} cannot have more than two decimal places.", field=field)
    return parsed.quantize(CENT)


def to_rate(value: object, *, field: str) -> Decimal:
    """Parse a percentage rate stored to two decimal places; finer precision is an error."""

    parsed = to_decimal(value, field=field)
    if parsed != parsed.quantize(CENT):
        raise ValidationError(f"{field} cannot have more than two decimal places.", field=field)
    return parsed


def format_money(value: Decimal) -> str:
    """Render a monetary value as a plain decimal string (``"1200.00"``)."""

    return str(quantize_money(value))


def percent_of(amount: Decimal, rate_percent: Decimal) -> Decimal:
    """Return ``rate_percent`` % of ``amount`` rounded to cents."""

    return quantize_money(amount * rate_percent / HUNDRED)


def normalize_date(value: date | datetime) -> date:
    """Return the calendar date of ``value`` (a datetime keeps its wall-clock date)."""

    if isinstance(value, datetime):
        return value.date()
    return value


def parse_iso_date(value: object, *, field: str) -> date:
    """Parse a strict ``YYYY-MM-DD`` string (``date`` objects pass through)."""

    if isinstance(value, datetime):
        raise ValidationError(f"{field} must be a calendar date without time.", field=field)
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or len(value.strip()) != 10:
        raise ValidationError(f"{field} must use the YYYY-MM-DD format.", field=field)
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError as exc:
        raise ValidationError(f"{field} must use the YYYY-MM-DD format.", field=field) from exc


def _at_noon(value: date) -> datetime:
    return datetime.combine(normalize_date(value), REFERENCE_TIME)


def add_days(value: date, days: int) -> date:
    """Shift ``value`` by ``days`` calendar days."""

    return (_at_noon(value) + timedelta(days=days)).date()


def add_weeks(value: date, weeks: int) -> date:
    return add_days(value, weeks * 7)


def add_months(value: date, months: int) -> date:
    """Shift ``value`` by whole months, clipping the day to the target month's length."""

    anchor = _at_noon(value)
    month_index = anchor.month - 1 + months
    year = anchor.year + month_index // 12
    month = month_index % 12 + 1
    day = min(anchor.day, calendar.monthrange(year, month)[1])
    return anchor.replace(year=year, month=month, day=day).date()


__all__ = [
    "CENT",
    "HUNDRED",
    "REFERENCE_TIME",
    "ZERO",
    "add_days",
    "add_months",
    "add_weeks",
    "format_money",
    "normalize_date",
    "parse_iso_date",
    "percent_of",
    "quantize_money",
    "to_decimal",
    "to_money",
    "to_rate",
]
