"""Exception hierarchy for the loan ledger engine."""

from __future__ import annotations

from decimal import Decimal
from typing import Any


class LendLedgerError(Exception):
    """Base exception for all LendLedger errors."""

    code = "lendledger_error"

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-friendly payload describing the error."""

        return {"error": self.code, "message": str(self)}


class ConfigurationError(LendLedgerError):
    """Raised when configuration is invalid or missing."""

    code = "configuration_error"


class ValidationError(LendLedgerError):
    """Raised when input is malformed or out of range.

    ``field`` names the offending input when a single field is at fault;
    ``errors`` maps field names to messages when a form collected several.
    """

    code = "validation_error"

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        errors: dict[str, list[str]] | None = None,
    ) -> None:
        super().__init__(message)
        self.field = field
        self.errors = errors or ({field: [message]} if field else {})

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        if self.field:
            payload["field"] = self.field
        if self.errors:
            payload["errors"] = self.errors
        return payload


class InvalidStatusTransition(ValidationError):
    """Raised when an automatic status change is not allowed."""

    code = "invalid_status_transition"


class PartialPaymentRequiresConfirmation(LendLedgerError):
    """Raised when a payment falls short and the caller did not confirm it."""

    code = "partial_payment_requires_confirmation"

    def __init__(self, *, required: Decimal, amount: Decimal, period: int) -> None:
        self.required = required
        self.amount = amount
        self.shortfall = required - amount
        self.period = period
        super().__init__(
            f"Payment of {amount} is below the {required} required for period {period}; "
            "resubmit with allow_partial to record a partial payment."
        )

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload.update(
            {
                "period": self.period,
                "required": str(self.required),
                "amount": str(self.amount),
                "shortfall": str(self.shortfall),
            }
        )
        return payload


class LoanAlreadyPaidError(LendLedgerError):
    """Raised when a mutation targets a loan that is already PAGADO."""

    code = "loan_already_paid"


class NotFoundError(LendLedgerError):
    """Raised when a referenced entity does not exist."""

    code = "not_found"


class ConcurrentModificationError(LendLedgerError):
    """Raised when a loan changed between read and write; the caller should retry."""

    code = "concurrent_modification"


class LoanPolicyError(LendLedgerError):
    """Raised when a configured policy forbids the requested operation."""

    code = "policy_violation"


__all__ = [
    "ConcurrentModificationError",
    "ConfigurationError",
    "InvalidStatusTransition",
    "LendLedgerError",
    "LoanAlreadyPaidError",
    "LoanPolicyError",
    "NotFoundError",
    "PartialPaymentRequiresConfirmation",
    "ValidationError",
]
