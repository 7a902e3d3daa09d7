"""Repository protocols for the loan ledger."""

from .client import ClientRepository
from .loan import LoanRepository
from .payment import PaymentRepository

__all__ = ["ClientRepository", "LoanRepository", "PaymentRepository"]
