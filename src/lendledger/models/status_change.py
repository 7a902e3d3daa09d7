"""Audit rows for loan status changes."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel


class LoanStatusChange(SQLModel, table=True):
    """Records who or what moved a loan between statuses."""

    __tablename__: ClassVar[str] = "loan_status_change"

    id: Optional[int] = Field(default=None, primary_key=True)
    loan_id: int = Field(foreign_key="loan.id", nullable=False, index=True)
    from_status: str = Field(nullable=False, max_length=16)
    to_status: str = Field(nullable=False, max_length=16)
    manual: bool = Field(default=False, nullable=False)
    reason: Optional[str] = Field(default=None, max_length=255)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), nullable=False
    )
