"""Client repository protocol."""

from __future__ import annotations

from typing import Optional, Protocol

from ...models.client import Client


class ClientRepository(Protocol):
    """Repository for borrowers."""

    def get_by_id(self, client_id: int) -> Optional[Client]:
        """Retrieve a client by ID."""
        ...

    def get_by_document(self, document_id: str) -> Optional[Client]:
        """Retrieve a client by identity document."""
        ...

    def list_all(self) -> list[Client]:
        """List all clients ordered by name."""
        ...

    def list_recent(self, limit: int) -> list[Client]:
        """Most recently registered clients first."""
        ...

    def create(self, client: Client) -> Client:
        """Persist a new client."""
        ...

    def update(self, client: Client) -> Client:
        """Persist changes to a client."""
        ...

    def delete(self, client_id: int) -> None:
        """Delete a client by ID."""
        ...

    def has_loans(self, client_id: int) -> bool:
        """Return True when the client owns at least one loan."""
        ...
