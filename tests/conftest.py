"""Pytest configuration and shared fixtures for LendLedger tests.

This module provides database fixtures, test data factories, and helper utilities
for testing the ledger engine, repositories, and services without touching the
real application database.
"""

from __future__ import annotations

import tempfile
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest
from sqlmodel import SQLModel, create_engine

# Import all models to ensure they're registered with SQLModel metadata
from lendledger.models import Client, Loan, LoanStatusChange, Payment  # noqa: F401
from lendledger.infra.database import create_session_factory
from lendledger.services.clients import ClientData, ClientService
from lendledger.services.loans import LoanLedgerService
from lendledger.services.payments import EnginePolicy
from lendledger.services.schedule import Frequency
from lendledger.services.snapshots import LoanSnapshot

START = date(2024, 1, 1)


class FixedClock:
    """Callable clock whose "today" tests can move."""

    def __init__(self, today: date) -> None:
        self.today = today

    def __call__(self) -> date:
        return self.today


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def db_engine():
    """Create an isolated temporary SQLite database for each test.

    Yields:
        Engine: SQLModel engine connected to test database
    """
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    engine = create_engine(
        f"sqlite:///{db_path}", echo=False, connect_args={"check_same_thread": False}
    )
    SQLModel.metadata.create_all(engine)

    yield engine

    engine.dispose()
    db_path.unlink(missing_ok=True)


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Transactional session scopes bound to the test database."""

    return create_session_factory(db_engine)


@pytest.fixture
def clock():
    return FixedClock(START)


@pytest.fixture
def ledger(session_factory, clock):
    """Ledger service with default policies and a pinned clock."""

    return LoanLedgerService(session_factory, clock=clock)


@pytest.fixture
def make_ledger(session_factory, clock):
    """Build a ledger service with non-default policies."""

    def _make(**kwargs):
        policy = EnginePolicy(
            mora_policy=kwargs.pop("mora_policy", "per_period"),
            overpayment_policy=kwargs.pop("overpayment_policy", "record"),
        )
        return LoanLedgerService(session_factory, policy=policy, clock=clock, **kwargs)

    return _make


@pytest.fixture
def client_service(session_factory):
    return ClientService(session_factory)


# =============================================================================
# Factories
# =============================================================================


@pytest.fixture
def client_factory(client_service):
    """Create borrowers with unique identity documents."""

    counter = {"n": 0}

    def _create(**overrides):
        counter["n"] += 1
        data = {
            "name": f"Borrower {counter['n']}",
            "phone": "555-0100",
            "address": "12 Market Street",
            "document_id": f"DOC-{counter['n']:04d}",
        }
        data.update(overrides)
        return client_service.create_client(ClientData(**data))

    return _create


@pytest.fixture
def loan_factory(ledger, client_factory):
    """Create a loan through the ledger service (1000.00 at 20% over 12 weeks by default)."""

    def _create(service=None, **overrides):
        params = {
            "principal": "1000.00",
            "interest_rate": "20",
            "term": 12,
            "frequency": Frequency.WEEKLY,
            "start_date": START,
        }
        params.update(overrides)
        if "client_id" not in params:
            params["client_id"] = client_factory().id
        return (service or ledger).create_loan(**params)

    return _create


def make_snapshot(**overrides) -> LoanSnapshot:
    """Pure loan snapshot for engine tests (1000.00 at 20% over 12 weeks)."""

    values = dict(
        id=1,
        principal=Decimal("1000.00"),
        interest_rate=Decimal("20"),
        mora_rate=Decimal("5"),
        term=12,
        frequency=Frequency.WEEKLY,
        start_date=START,
        total_payable=Decimal("1200.00"),
        installment=Decimal("100.00"),
        next_due_date=date(2024, 1, 8),
        version=1,
    )
    values.update(overrides)
    return LoanSnapshot(**values)


# =============================================================================
# Flask application
# =============================================================================


@pytest.fixture
def app(monkeypatch, tmp_path, clock):
    """Flask app on a temporary data directory and database."""

    monkeypatch.setenv("LENDLEDGER_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("LENDLEDGER_DATABASE_URL", f"sqlite:///{tmp_path / 'api.db'}")
    monkeypatch.setenv("LENDLEDGER_DEV_MODE", "true")
    for name in (
        "LENDLEDGER_MORA_POLICY",
        "LENDLEDGER_OVERPAYMENT_POLICY",
        "LENDLEDGER_LOAN_DELETE_POLICY",
        "LENDLEDGER_DEFAULT_MORA_RATE",
    ):
        monkeypatch.delenv(name, raising=False)

    from lendledger import create_app

    application = create_app("testing", LENDLEDGER_CLOCK=clock)
    yield application

    from lendledger.extensions import get_engine

    get_engine(application).dispose()


@pytest.fixture
def api(app):
    """Flask test client."""

    return app.test_client()
