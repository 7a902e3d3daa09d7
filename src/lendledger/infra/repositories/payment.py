"""SQLModel implementation of the payment repository."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import delete, func, update
from sqlmodel import Session, select

from ...models.payment import Payment


@dataclass
class SQLModelPaymentRepository:
    """Payment repository bound to the caller's session."""

    session: Session

    def get_by_id(self, payment_id: int) -> Optional[Payment]:
        """Retrieve a payment by ID."""
        return self.session.get(Payment, payment_id)

    def list_for_loan(self, loan_id: int, *, include_reversed: bool = True) -> list[Payment]:
        """List a loan's payments ordered by period then ID."""
        statement = select(Payment).where(Payment.loan_id == loan_id)
        if not include_reversed:
            statement = statement.where(Payment.reversed == False)  # noqa: E712
        statement = statement.order_by(Payment.period, Payment.id)  # type: ignore
        return list(self.session.exec(statement).all())

    def list_on(self, day: date) -> list[Payment]:
        """List active payments dated ``day``."""
        statement = (
            select(Payment)
            .where(Payment.payment_date == day, Payment.reversed == False)  # noqa: E712
            .order_by(Payment.id)  # type: ignore
        )
        return list(self.session.exec(statement).all())

    def list_recent(self, limit: int) -> list[Payment]:
        """Most recent active payments, newest payment date first."""
        statement = (
            select(Payment)
            .where(Payment.reversed == False)  # noqa: E712
            .order_by(Payment.payment_date.desc(), Payment.id.desc())  # type: ignore
            .limit(limit)
        )
        return list(self.session.exec(statement).all())

    def create(self, payment: Payment) -> Payment:
        """Persist a new payment."""
        self.session.add(payment)
        self.session.flush()
        self.session.refresh(payment)
        return payment

    def mark_reversed(self, payment_id: int, *, at: datetime) -> None:
        """Flag a payment as reversed."""
        self.session.connection().execute(
            update(Payment)
            .where(Payment.id == payment_id)  # type: ignore
            .values(reversed=True, reversed_at=at)
        )

    def delete_for_loan(self, loan_id: int) -> int:
        """Delete a loan's payments; return how many rows were removed."""
        statement = delete(Payment).where(Payment.loan_id == loan_id)  # type: ignore
        result = self.session.connection().execute(statement)
        return int(result.rowcount or 0)

    def total_paid_for_loans(self, loan_ids: list[int]) -> Decimal:
        """Sum active payment amounts across ``loan_ids``."""
        if not loan_ids:
            return Decimal("0.00")
        statement = select(func.coalesce(func.sum(Payment.amount), 0)).where(
            Payment.loan_id.in_(loan_ids),  # type: ignore
            Payment.reversed == False,  # noqa: E712
        )
        total = self.session.exec(statement).one()
        return Decimal(str(total)).quantize(Decimal("0.01"))
