"""Payment repository protocol."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Protocol

from ...models.payment import Payment


class PaymentRepository(Protocol):
    """Repository for payment records."""

    def get_by_id(self, payment_id: int) -> Optional[Payment]:
        """Retrieve a payment by ID."""
        ...

    def list_for_loan(self, loan_id: int, *, include_reversed: bool = True) -> list[Payment]:
        """List a loan's payments ordered by period then ID."""
        ...

    def list_on(self, day: date) -> list[Payment]:
        """List active payments dated ``day``."""
        ...

    def list_recent(self, limit: int) -> list[Payment]:
        """Most recent active payments, newest payment date first."""
        ...

    def create(self, payment: Payment) -> Payment:
        """Persist a new payment."""
        ...

    def mark_reversed(self, payment_id: int, *, at: datetime) -> None:
        """Flag a payment as reversed."""
        ...

    def delete_for_loan(self, loan_id: int) -> int:
        """Delete a loan's payments; return how many rows were removed."""
        ...

    def total_paid_for_loans(self, loan_ids: list[int]) -> Decimal:
        """Sum active payment amounts across ``loan_ids``."""
        ...
