"""Tests for the flat-rate amortization calculator."""

from __future__ import annotations

from decimal import Decimal

import pytest

from lendledger.exceptions import ValidationError
from lendledger.services.amortization import compute_amortization


def test_weekly_loan_preview_matches_flat_rate():
    calc = compute_amortization("1000.00", "20", 12)

    assert calc.interest == Decimal("200.00")
    assert calc.total_payable == Decimal("1200.00")
    assert calc.installment == Decimal("100.00")
    assert calc.final_installment == Decimal("100.00")


def test_zero_rate_is_allowed():
    calc = compute_amortization("500", "0", 5)

    assert calc.total_payable == Decimal("500.00")
    assert calc.installment == Decimal("100.00")


@pytest.mark.parametrize(
    "principal,rate,periods",
    [
        ("1000", "0", 3),
        ("100", "10", 7),
        ("999.99", "17.5", 13),
        ("0.10", "0", 10),
        ("1234.56", "33.33", 52),
    ],
)
def test_installments_reconcile_to_total(principal, rate, periods):
    calc = compute_amortization(principal, rate, periods)
    installments = calc.installments()

    assert len(installments) == periods
    assert sum(installments, Decimal("0")) == calc.total_payable
    assert all(amount > 0 for amount in installments)


def test_final_installment_absorbs_rounding_remainder():
    calc = compute_amortization("1000", "0", 3)

    assert calc.installment == Decimal("333.33")
    assert calc.final_installment == Decimal("333.34")
    assert calc.installment_for(3) == Decimal("333.34")


def test_half_up_overshoot_falls_back_to_round_down():
    # 0.06 / 4 = 0.015 rounds up to 0.02, which would leave nothing for the last period.
    calc = compute_amortization("0.06", "0", 4)

    assert calc.installment == Decimal("0.01")
    assert calc.final_installment == Decimal("0.03")


@pytest.mark.parametrize(
    "principal,rate,periods,field",
    [
        ("0", "10", 12, "principal"),
        ("-5", "10", 12, "principal"),
        ("1000", "-1", 12, "rate_percent"),
        ("1000", "100.01", 12, "rate_percent"),
        ("1000", "10", 0, "periods"),
        ("1000", "10", -3, "periods"),
        ("1000", "10", "12", "periods"),
        ("0.05", "0", 10, "periods"),
        ("1000.005", "20", 12, "principal"),
        ("1000", "12.345", 12, "rate_percent"),
    ],
)
def test_invalid_inputs_name_the_field(principal, rate, periods, field):
    with pytest.raises(ValidationError) as excinfo:
        compute_amortization(principal, rate, periods)
    assert excinfo.value.field == field


def test_float_principal_is_rejected():
    with pytest.raises(ValidationError):
        compute_amortization(1000.0, "10", 12)


def test_installment_for_out_of_range_period():
    calc = compute_amortization("1000", "20", 12)
    with pytest.raises(ValidationError):
        calc.installment_for(13)
