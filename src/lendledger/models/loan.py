"""Loan entities."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, ClassVar, Optional

from sqlalchemy.orm import relationship
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:  # pragma: no cover - import guard for circular dependency
    from .client import Client
    from .payment import Payment


class Loan(SQLModel, table=True):
    """A flat-rate installment loan.

    ``total_payable`` and ``installment`` are fixed at creation. The schedule
    is derived: period ``k >= anchor_period`` falls due ``k - anchor_period``
    installments after ``anchor_date``. ``version`` is bumped on every write
    and guards against lost updates.
    """

    __tablename__: ClassVar[str] = "loan"

    id: Optional[int] = Field(default=None, primary_key=True)
    client_id: int = Field(foreign_key="client.id", nullable=False, index=True)
    principal: Decimal = Field(nullable=False, max_digits=12, decimal_places=2)
    interest_rate: Decimal = Field(nullable=False, max_digits=5, decimal_places=2)
    mora_rate: Decimal = Field(default=Decimal("5"), nullable=False, max_digits=5, decimal_places=2)
    term: int = Field(nullable=False, ge=1)
    frequency: str = Field(default="WEEKLY", nullable=False, max_length=16)
    start_date: date = Field(nullable=False)
    total_payable: Decimal = Field(nullable=False, max_digits=12, decimal_places=2)
    installment: Decimal = Field(nullable=False, max_digits=12, decimal_places=2)
    paid_periods: int = Field(default=0, nullable=False, ge=0)
    accumulated_mora: Decimal = Field(
        default=Decimal("0.00"), nullable=False, max_digits=12, decimal_places=2
    )
    next_due_date: Optional[date] = Field(default=None, index=True)
    status: str = Field(default="ACTIVO", nullable=False, max_length=16, index=True)
    status_override: bool = Field(default=False, nullable=False)
    status_override_reason: Optional[str] = Field(default=None, max_length=255)
    anchor_date: date = Field(nullable=False)
    anchor_period: int = Field(default=0, nullable=False, ge=0)
    version: int = Field(default=1, nullable=False)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), nullable=False
    )

    client: "Client" = Relationship(
        sa_relationship=relationship("Client", back_populates="loans")
    )
    payments: list["Payment"] = Relationship(
        back_populates="loan",
        sa_relationship=relationship("Payment", back_populates="loan"),
    )
