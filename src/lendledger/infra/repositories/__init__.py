"""SQLModel repository implementations."""

from .client import SQLModelClientRepository
from .loan import SQLModelLoanRepository
from .payment import SQLModelPaymentRepository

__all__ = [
    "SQLModelClientRepository",
    "SQLModelLoanRepository",
    "SQLModelPaymentRepository",
]
