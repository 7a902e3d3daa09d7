"""SQLModel implementation of the loan repository."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy import delete, update
from sqlmodel import Session, select

from ...exceptions import ConcurrentModificationError
from ...models.loan import Loan
from ...models.status_change import LoanStatusChange


@dataclass
class SQLModelLoanRepository:
    """Loan repository bound to the caller's session (and so its transaction)."""

    session: Session

    def get_by_id(self, loan_id: int) -> Optional[Loan]:
        """Retrieve a loan by ID, bypassing any stale identity-map copy."""
        statement = (
            select(Loan).where(Loan.id == loan_id).execution_options(populate_existing=True)
        )
        return self.session.exec(statement).first()

    def list_all(self, *, client_id: int | None = None) -> list[Loan]:
        """List loans, newest first, optionally for one client."""
        statement = select(Loan)
        if client_id is not None:
            statement = statement.where(Loan.client_id == client_id)
        statement = statement.order_by(Loan.start_date.desc(), Loan.id.desc())  # type: ignore
        return list(self.session.exec(statement).all())

    def list_open(self) -> list[Loan]:
        """List loans that are not PAGADO."""
        statement = select(Loan).where(Loan.status != "PAGADO").order_by(Loan.id)  # type: ignore
        return list(self.session.exec(statement).all())

    def create(self, loan: Loan) -> Loan:
        """Persist a new loan."""
        self.session.add(loan)
        self.session.flush()
        self.session.refresh(loan)
        return loan

    def compare_and_swap(self, loan_id: int, *, expected_version: int, values: dict[str, Any]) -> int:
        """Write ``values`` only if the stored version is still ``expected_version``."""
        new_version = expected_version + 1
        statement = (
            update(Loan)
            .where(Loan.id == loan_id, Loan.version == expected_version)  # type: ignore
            .values(**values, version=new_version)
        )
        result = self.session.connection().execute(statement)
        if result.rowcount != 1:
            raise ConcurrentModificationError(
                f"Loan {loan_id} was modified concurrently (expected version {expected_version}); "
                "reload and retry."
            )
        return new_version

    def delete(self, loan_id: int) -> None:
        """Delete a loan and its audit rows."""
        self.session.connection().execute(
            delete(LoanStatusChange).where(LoanStatusChange.loan_id == loan_id)  # type: ignore
        )
        self.session.connection().execute(delete(Loan).where(Loan.id == loan_id))  # type: ignore

    def add_status_change(self, change: LoanStatusChange) -> LoanStatusChange:
        """Append a status audit row."""
        self.session.add(change)
        self.session.flush()
        return change

    def list_status_changes(self, loan_id: int) -> list[LoanStatusChange]:
        """Return a loan's status audit trail, oldest first."""
        statement = (
            select(LoanStatusChange)
            .where(LoanStatusChange.loan_id == loan_id)
            .order_by(LoanStatusChange.id)  # type: ignore
        )
        return list(self.session.exec(statement).all())
