"""Client (borrower) management."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from ..domain.repositories import ClientRepository, LoanRepository, PaymentRepository
from ..exceptions import LoanPolicyError, NotFoundError, ValidationError
from ..infra.database import SessionFactory
from ..infra.repositories import (
    SQLModelClientRepository,
    SQLModelLoanRepository,
    SQLModelPaymentRepository,
)
from ..logging_config import get_logger
from ..models import Client

logger = get_logger(__name__)

_EDITABLE_FIELDS = ("name", "phone", "address", "document_id", "email", "notes", "route")


@dataclass(slots=True)
class ClientData:
    """Validated client attributes."""

    name: str
    phone: str
    address: str
    document_id: str
    email: Optional[str] = None
    notes: Optional[str] = None
    route: Optional[str] = None

    def as_dict(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in _EDITABLE_FIELDS}


class ClientService:
    """CRUD over borrowers plus per-client payment totals."""

    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    @staticmethod
    def _load(clients: ClientRepository, client_id: int) -> Client:
        client = clients.get_by_id(client_id)
        if client is None:
            raise NotFoundError(f"Client {client_id} not found.")
        return client

    @staticmethod
    def _ensure_unique_document(
        clients: ClientRepository, document_id: str, *, client_id: int | None = None
    ) -> None:
        existing = clients.get_by_document(document_id)
        if existing is not None and existing.id != client_id:
            raise ValidationError(
                f"A client with document {document_id} already exists.", field="document_id"
            )

    def list_clients(self) -> list[Client]:
        with self._session_factory() as session:
            return SQLModelClientRepository(session).list_all()

    def get_client(self, client_id: int) -> Client:
        with self._session_factory() as session:
            return self._load(SQLModelClientRepository(session), client_id)

    def create_client(self, data: ClientData) -> Client:
        with self._session_factory() as session:
            clients: ClientRepository = SQLModelClientRepository(session)
            self._ensure_unique_document(clients, data.document_id)
            client = clients.create(Client(**data.as_dict()))
            logger.info("Client created", extra={"client_id": client.id})
            return client

    def update_client(self, client_id: int, data: ClientData) -> Client:
        with self._session_factory() as session:
            clients: ClientRepository = SQLModelClientRepository(session)
            client = self._load(clients, client_id)
            self._ensure_unique_document(clients, data.document_id, client_id=client_id)
            for name, value in data.as_dict().items():
                setattr(client, name, value)
            client = clients.update(client)
            logger.info("Client updated", extra={"client_id": client_id})
            return client

    def delete_client(self, client_id: int) -> None:
        """Delete a client; clients that still own loans are kept."""

        with self._session_factory() as session:
            clients: ClientRepository = SQLModelClientRepository(session)
            self._load(clients, client_id)
            if clients.has_loans(client_id):
                logger.warning("Client deletion refused", extra={"client_id": client_id})
                raise LoanPolicyError(
                    f"Client {client_id} has loans; delete or settle them first."
                )
            clients.delete(client_id)
            logger.info("Client deleted", extra={"client_id": client_id})

    def total_paid(self, client_id: int) -> Decimal:
        """Sum of active payments across every loan of the client."""

        with self._session_factory() as session:
            clients: ClientRepository = SQLModelClientRepository(session)
            loans: LoanRepository = SQLModelLoanRepository(session)
            payments: PaymentRepository = SQLModelPaymentRepository(session)
            self._load(clients, client_id)
            loan_ids = [loan.id for loan in loans.list_all(client_id=client_id)]
            return payments.total_paid_for_loans(loan_ids)  # type: ignore[arg-type]


__all__ = ["ClientData", "ClientService"]
