"""Flat-rate loan amortization calculator."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal

from ..exceptions import ValidationError
from .money import CENT, HUNDRED, quantize_money, to_money, to_rate


@dataclass(frozen=True, slots=True)
class Amortization:
    """Result of a loan preview: totals plus per-period installments."""

    principal: Decimal
    rate_percent: Decimal
    periods: int
    interest: Decimal
    total_payable: Decimal
    installment: Decimal
    final_installment: Decimal

    def installment_for(self, period: int) -> Decimal:
        """Return the amount due for ``period`` (1-indexed)."""

        if not 1 <= period <= self.periods:
            raise ValidationError(
                f"period must be between 1 and {self.periods}.", field="period"
            )
        return self.final_installment if period == self.periods else self.installment

    def installments(self) -> list[Decimal]:
        return [self.installment_for(k) for k in range(1, self.periods + 1)]


def _validate_periods(periods: object) -> int:
    if isinstance(periods, bool) or not isinstance(periods, int):
        raise ValidationError("periods must be a whole number.", field="periods")
    if periods <= 0:
        raise ValidationError("periods must be greater than zero.", field="periods")
    return periods


def compute_amortization(principal: object, rate_percent: object, periods: object) -> Amortization:
    """Compute total payable and the periodic installment for a flat-rate loan.

    Interest is charged once on the full principal. The installment is the
    total divided by ``periods`` rounded half-up to cents; the final period
    absorbs the rounding remainder so the installments always add up to the
    total payable exactly.
    """

    principal_value = to_money(principal, field="principal")
    rate_value = to_rate(rate_percent, field="rate_percent")
    period_count = _validate_periods(periods)

    if principal_value <= 0:
        raise ValidationError("principal must be greater than zero.", field="principal")
    if rate_value < 0:
        raise ValidationError("rate_percent cannot be negative.", field="rate_percent")
    if rate_value > HUNDRED:
        raise ValidationError("rate_percent cannot exceed 100.", field="rate_percent")

    interest = quantize_money(principal_value * rate_value / HUNDRED)
    total_payable = principal_value + interest
    if total_payable < CENT * period_count:
        raise ValidationError(
            "total payable is too small to give every period at least one cent.",
            field="periods",
        )

    installment = (total_payable / period_count).quantize(CENT, rounding=ROUND_HALF_UP)
    final_installment = total_payable - installment * (period_count - 1)
    if final_installment <= 0:
        installment = (total_payable / period_count).quantize(CENT, rounding=ROUND_DOWN)
        final_installment = total_payable - installment * (period_count - 1)

    return Amortization(
        principal=principal_value,
        rate_percent=rate_value,
        periods=period_count,
        interest=interest,
        total_payable=total_payable,
        installment=installment,
        final_installment=final_installment,
    )


__all__ = ["Amortization", "compute_amortization"]
