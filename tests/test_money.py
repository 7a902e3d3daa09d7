"""Tests for currency parsing and calendar arithmetic."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest

from lendledger.exceptions import ValidationError
from lendledger.services.money import (
    add_days,
    add_months,
    add_weeks,
    format_money,
    parse_iso_date,
    percent_of,
    quantize_money,
    to_decimal,
    to_money,
    to_rate,
)


def test_quantize_rounds_half_up():
    assert quantize_money(Decimal("0.005")) == Decimal("0.01")
    assert quantize_money(Decimal("2.345")) == Decimal("2.35")
    assert quantize_money(Decimal("-2.345")) == Decimal("-2.35")


@pytest.mark.parametrize("value", ["100", "100.5", 100, Decimal("99.99")])
def test_to_money_accepts_strings_ints_and_decimals(value):
    assert to_money(value, field="amount") == Decimal(str(value)).quantize(Decimal("0.01"))


def test_to_money_rejects_floats():
    with pytest.raises(ValidationError) as excinfo:
        to_money(100.5, field="amount")
    assert excinfo.value.field == "amount"


def test_to_money_rejects_sub_cent_precision():
    with pytest.raises(ValidationError, match="two decimal places"):
        to_money("10.001", field="amount")


@pytest.mark.parametrize("value", [None, True, "abc", "NaN", "Infinity", [1]])
def test_to_decimal_rejects_invalid_input(value):
    with pytest.raises(ValidationError):
        to_decimal(value, field="principal")


def test_percent_of_rounds_to_cents():
    assert percent_of(Decimal("100.00"), Decimal("5")) == Decimal("5.00")
    assert percent_of(Decimal("333.33"), Decimal("5")) == Decimal("16.67")


def test_format_money_is_plain_decimal_string():
    assert format_money(Decimal("1200")) == "1200.00"


def test_parse_iso_date_is_strict():
    assert parse_iso_date("2024-02-29", field="d") == date(2024, 2, 29)
    for bad in ("2024-2-29", "29/02/2024", "2024-02-30", "", None):
        with pytest.raises(ValidationError):
            parse_iso_date(bad, field="d")


def test_parse_iso_date_rejects_datetimes():
    with pytest.raises(ValidationError):
        parse_iso_date(datetime(2024, 1, 1, 9, 30), field="d")


def test_add_days_crosses_month_and_year_boundaries():
    assert add_days(date(2024, 12, 28), 7) == date(2025, 1, 4)
    assert add_days(date(2024, 2, 25), 14) == date(2024, 3, 10)


def test_add_weeks_steps_whole_weeks():
    assert add_weeks(date(2024, 12, 30), 1) == date(2025, 1, 6)
    assert add_weeks(date(2024, 2, 22), 2) == date(2024, 3, 7)


def test_add_months_clips_to_month_length():
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)
    assert add_months(date(2024, 1, 31), 3) == date(2024, 4, 30)
    assert add_months(date(2024, 11, 15), 2) == date(2025, 1, 15)


def test_add_months_counts_from_anchor_without_drift():
    # Clipping in February must not pull March back to the 29th.
    assert add_months(date(2024, 1, 31), 2) == date(2024, 3, 31)


def test_to_rate_keeps_two_decimal_places_exactly():
    assert to_rate("12.35", field="interest_rate") == Decimal("12.35")
    assert to_rate(20, field="interest_rate") == Decimal("20")


def test_to_rate_rejects_finer_precision():
    with pytest.raises(ValidationError) as excinfo:
        to_rate("5.555", field="mora_rate")
    assert excinfo.value.field == "mora_rate"
