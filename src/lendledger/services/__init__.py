"""Service module exports."""

from . import (
    amortization,
    clients,
    loan_status,
    loans,
    money,
    payments,
    reports,
    schedule,
    serialization,
    snapshots,
)

__all__ = [
    "amortization",
    "clients",
    "loan_status",
    "loans",
    "money",
    "payments",
    "reports",
    "schedule",
    "serialization",
    "snapshots",
]
