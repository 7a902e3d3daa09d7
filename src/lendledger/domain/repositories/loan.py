"""Loan repository protocol."""

from __future__ import annotations

from typing import Any, Optional, Protocol

from ...models.loan import Loan
from ...models.status_change import LoanStatusChange


class LoanRepository(Protocol):
    """Repository for managing loan entities."""

    def get_by_id(self, loan_id: int) -> Optional[Loan]:
        """Retrieve a loan by ID."""
        ...

    def list_all(self, *, client_id: int | None = None) -> list[Loan]:
        """List loans, optionally for one client."""
        ...

    def list_open(self) -> list[Loan]:
        """List loans that are not PAGADO."""
        ...

    def create(self, loan: Loan) -> Loan:
        """Persist a new loan."""
        ...

    def compare_and_swap(self, loan_id: int, *, expected_version: int, values: dict[str, Any]) -> int:
        """Write ``values`` only if the stored version matches; return the new version."""
        ...

    def delete(self, loan_id: int) -> None:
        """Delete a loan and its audit rows."""
        ...

    def add_status_change(self, change: LoanStatusChange) -> LoanStatusChange:
        """Append a status audit row."""
        ...

    def list_status_changes(self, loan_id: int) -> list[LoanStatusChange]:
        """Return a loan's status audit trail, oldest first."""
        ...
