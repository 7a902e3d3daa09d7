"""Borrower entities."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, ClassVar, Optional

from sqlalchemy.orm import relationship
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:  # pragma: no cover - import guard for circular dependency
    from .loan import Loan


class Client(SQLModel, table=True):
    """A borrower; owns any number of loans."""

    __tablename__: ClassVar[str] = "client"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(nullable=False, max_length=120, index=True)
    phone: str = Field(nullable=False, max_length=40)
    address: str = Field(nullable=False, max_length=255)
    document_id: str = Field(nullable=False, max_length=40, unique=True, index=True)
    email: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = Field(default=None)
    route: Optional[str] = Field(default=None, max_length=80)
    registered_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), nullable=False
    )

    loans: list["Loan"] = Relationship(
        back_populates="client",
        sa_relationship=relationship("Loan", back_populates="client"),
    )
