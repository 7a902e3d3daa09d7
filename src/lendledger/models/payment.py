"""Payment records credited against loan periods."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, ClassVar, Optional

from sqlalchemy.orm import relationship
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:  # pragma: no cover - import guard for circular dependency
    from .loan import Loan


class Payment(SQLModel, table=True):
    """A payment against one loan period.

    Reversed payments stay in the table with ``reversed`` set so the due
    dates they recorded remain available to the schedule.
    """

    __tablename__: ClassVar[str] = "payment"

    id: Optional[int] = Field(default=None, primary_key=True)
    loan_id: int = Field(foreign_key="loan.id", nullable=False, index=True)
    period: int = Field(nullable=False, ge=1)
    amount: Decimal = Field(nullable=False, max_digits=12, decimal_places=2)
    payment_date: date = Field(nullable=False, index=True)
    due_date: date = Field(nullable=False)
    mora: Decimal = Field(default=Decimal("0.00"), nullable=False, max_digits=12, decimal_places=2)
    remaining: Decimal = Field(
        default=Decimal("0.00"), nullable=False, max_digits=12, decimal_places=2
    )
    is_late: bool = Field(default=False, nullable=False)
    is_partial: bool = Field(default=False, nullable=False)
    periods_advanced: int = Field(default=0, nullable=False, ge=0)
    mora_settled: Decimal = Field(
        default=Decimal("0.00"), nullable=False, max_digits=12, decimal_places=2
    )
    overpayment: Decimal = Field(
        default=Decimal("0.00"), nullable=False, max_digits=12, decimal_places=2
    )
    reversed: bool = Field(default=False, nullable=False, index=True)
    reversed_at: Optional[datetime] = Field(default=None)
    cleared_override_status: Optional[str] = Field(default=None, max_length=16)
    cleared_override_reason: Optional[str] = Field(default=None, max_length=255)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), nullable=False
    )

    loan: "Loan" = Relationship(
        back_populates="payments",
        sa_relationship=relationship("Loan", back_populates="payments"),
    )
