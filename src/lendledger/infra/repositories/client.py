"""SQLModel implementation of the client repository."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func
from sqlmodel import Session, select

from ...models.client import Client
from ...models.loan import Loan


@dataclass
class SQLModelClientRepository:
    """Client repository bound to the caller's session."""

    session: Session

    def get_by_id(self, client_id: int) -> Optional[Client]:
        """Retrieve a client by ID."""
        return self.session.get(Client, client_id)

    def get_by_document(self, document_id: str) -> Optional[Client]:
        """Retrieve a client by identity document."""
        statement = select(Client).where(Client.document_id == document_id)
        return self.session.exec(statement).first()

    def list_all(self) -> list[Client]:
        """List all clients ordered by name."""
        statement = select(Client).order_by(Client.name)  # type: ignore
        return list(self.session.exec(statement).all())

    def list_recent(self, limit: int) -> list[Client]:
        """Most recently registered clients first."""
        statement = (
            select(Client)
            .order_by(Client.registered_at.desc(), Client.id.desc())  # type: ignore
            .limit(limit)
        )
        return list(self.session.exec(statement).all())

    def create(self, client: Client) -> Client:
        """Persist a new client."""
        self.session.add(client)
        self.session.flush()
        self.session.refresh(client)
        return client

    def update(self, client: Client) -> Client:
        """Persist changes to a client."""
        self.session.add(client)
        self.session.flush()
        self.session.refresh(client)
        return client

    def delete(self, client_id: int) -> None:
        """Delete a client by ID."""
        client = self.session.get(Client, client_id)
        if client is not None:
            self.session.delete(client)
            self.session.flush()

    def has_loans(self, client_id: int) -> bool:
        """Return True when the client owns at least one loan."""
        statement = select(func.count()).select_from(Loan).where(Loan.client_id == client_id)
        return int(self.session.exec(statement).one() or 0) > 0
