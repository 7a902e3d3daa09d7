"""Database and extension wiring for LendLedger."""

from __future__ import annotations

from datetime import date

from flask import Flask, current_app
from sqlalchemy.engine import Engine

from .config import BaseConfig
from .infra.database import create_db_engine, create_session_factory, init_database
from .services.clients import ClientService
from .services.loans import LoanLedgerService

_EXTENSION_KEY = "lendledger"


def init_db(app: Flask) -> None:
    """Initialize the SQLModel engine and the services bound to it."""

    config: BaseConfig = app.config["LENDLEDGER_CONFIG"]
    engine = create_db_engine(config)
    init_database(engine)
    # TODO(@migrations): replace create_all with Alembic once the schema stabilizes.
    session_factory = create_session_factory(engine)

    app.extensions[_EXTENSION_KEY] = {
        "engine": engine,
        "session_factory": session_factory,
        "ledger": LoanLedgerService.from_config(
            config, session_factory, clock=app.config.get("LENDLEDGER_CLOCK") or date.today
        ),
        "clients": ClientService(session_factory),
    }


def _state(app: Flask | None = None) -> dict:
    target = app or current_app
    try:
        return target.extensions[_EXTENSION_KEY]
    except KeyError:
        raise RuntimeError("Database engine not initialized") from None


def get_engine(app: Flask | None = None) -> Engine:
    """Return the initialized SQLModel engine."""

    return _state(app)["engine"]


def get_ledger_service(app: Flask | None = None) -> LoanLedgerService:
    return _state(app)["ledger"]


def get_client_service(app: Flask | None = None) -> ClientService:
    return _state(app)["clients"]
