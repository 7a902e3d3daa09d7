"""Loan status state machine."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum

from ..exceptions import InvalidStatusTransition, ValidationError


class LoanStatus(str, Enum):
    """Closed set of loan states."""

    ACTIVO = "ACTIVO"
    ATRASADO = "ATRASADO"
    PAGADO = "PAGADO"

    @classmethod
    def parse(cls, value: object) -> "LoanStatus":
        if isinstance(value, LoanStatus):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                pass
        choices = ", ".join(status.value for status in cls)
        raise ValidationError(f"status must be one of {choices}.", field="status")


# Transitions the engine may make on its own. PAGADO only leaves through a reversal.
_AUTOMATIC_TRANSITIONS: dict[LoanStatus, frozenset[LoanStatus]] = {
    LoanStatus.ACTIVO: frozenset({LoanStatus.ATRASADO, LoanStatus.PAGADO}),
    LoanStatus.ATRASADO: frozenset({LoanStatus.ACTIVO, LoanStatus.PAGADO}),
    LoanStatus.PAGADO: frozenset(),
}
_REVERSAL_TRANSITIONS = frozenset({LoanStatus.ACTIVO, LoanStatus.ATRASADO})


def derive_status(
    *,
    paid_periods: int,
    term: int,
    accumulated_mora: Decimal,
    today: date,
    next_due_date: date | None,
) -> LoanStatus:
    """Return the status implied by the ledger figures; pure and idempotent."""

    if paid_periods >= term:
        return LoanStatus.PAGADO if accumulated_mora <= 0 else LoanStatus.ATRASADO
    if next_due_date is not None and today > next_due_date:
        return LoanStatus.ATRASADO
    return LoanStatus.ACTIVO


def can_transition(current: LoanStatus, target: LoanStatus, *, reversal: bool = False) -> bool:
    """Return True when the engine may move from ``current`` to ``target`` by itself."""

    if current == target:
        return True
    if reversal and current is LoanStatus.PAGADO:
        return target in _REVERSAL_TRANSITIONS
    return target in _AUTOMATIC_TRANSITIONS[current]


def transition(
    current: LoanStatus,
    target: LoanStatus,
    *,
    manual: bool = False,
    reversal: bool = False,
) -> LoanStatus:
    """Validate and return ``target``.

    Manual transitions (operator overrides) are always allowed; automatic ones
    must follow the transition table.
    """

    if manual or can_transition(current, target, reversal=reversal):
        return target
    raise InvalidStatusTransition(
        f"Loan cannot move from {current.value} to {target.value} automatically.",
        field="status",
    )


__all__ = ["LoanStatus", "can_transition", "derive_status", "transition"]
