"""LendLedger application factory."""

from __future__ import annotations

from importlib import import_module
from typing import Any, Iterable

from flask import Flask, jsonify

from . import cli as _cli
from .config import BaseConfig, DevConfig, TestConfig
from .exceptions import (
    ConcurrentModificationError,
    ConfigurationError,
    LendLedgerError,
    LoanAlreadyPaidError,
    LoanPolicyError,
    NotFoundError,
    PartialPaymentRequiresConfirmation,
    ValidationError,
)
from .logging_config import get_logger, setup_logging

_CONFIG_MAP = {
    "development": DevConfig,
    "testing": TestConfig,
    "default": BaseConfig,
}

# Most specific classes first; the first match wins.
_ERROR_STATUS: tuple[tuple[type[LendLedgerError], int], ...] = (
    (ValidationError, 400),
    (PartialPaymentRequiresConfirmation, 409),
    (LoanAlreadyPaidError, 409),
    (ConcurrentModificationError, 409),
    (LoanPolicyError, 409),
    (NotFoundError, 404),
    (ConfigurationError, 500),
)


def _resolve_config(name: str | None) -> type[BaseConfig]:
    """Return the config class for the provided environment name."""

    if not name:
        return BaseConfig
    return _CONFIG_MAP.get(name.lower(), BaseConfig)


def _blueprint_paths() -> Iterable[str]:
    """Yield blueprint import paths registered with the app."""

    yield "lendledger.blueprints.loans"
    yield "lendledger.blueprints.payments"
    yield "lendledger.blueprints.clients"
    yield "lendledger.blueprints.reports"


def status_for(error: LendLedgerError) -> int:
    """HTTP status code for a ledger error."""

    for error_cls, status in _ERROR_STATUS:
        if isinstance(error, error_cls):
            return status
    return 400


def create_app(config_name: str | None = None, **overrides: Any) -> Flask:
    """Create and configure the Flask application instance.

    ``overrides`` are applied to ``app.config`` before the database and
    services are wired (tests use ``LENDLEDGER_CLOCK`` to pin "today").
    """

    app = Flask(__name__, instance_relative_config=True)
    config_cls = _resolve_config(config_name or app.config.get("ENV"))
    config_obj = config_cls()
    app.config.from_object(config_obj)
    app.config["LENDLEDGER_CONFIG"] = config_obj
    app.config.update(overrides)

    setup_logging(config_obj)
    _register_blueprints(app)
    _register_error_handlers(app)

    from .extensions import init_db

    init_db(app)
    _cli.init_app(app)

    get_logger(__name__).info(
        "Application created",
        extra={"config": config_cls.__name__, "database_url": config_obj.DATABASE_URL},
    )
    return app


def _register_blueprints(app: Flask) -> None:
    """Import and register all blueprints declared in `_blueprint_paths`."""

    for dotted_path in _blueprint_paths():
        module = import_module(dotted_path)
        blueprint = getattr(module, "bp")
        app.register_blueprint(blueprint)


def _register_error_handlers(app: Flask) -> None:
    logger = get_logger("api")

    @app.errorhandler(LendLedgerError)
    def _handle_ledger_error(error: LendLedgerError):
        status = status_for(error)
        if status >= 500:
            logger.error("Request failed", extra={"error": error.code}, exc_info=error)
        else:
            logger.info("Request rejected", extra={"error": error.code, "status": status})
        return jsonify(error.to_dict()), status


__all__ = ["BaseConfig", "DevConfig", "TestConfig", "create_app", "status_for"]
