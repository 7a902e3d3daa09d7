"""SQLModel table exports."""

from .client import Client
from .loan import Loan
from .payment import Payment
from .status_change import LoanStatusChange

__all__ = [
    "Client",
    "Loan",
    "LoanStatusChange",
    "Payment",
]
