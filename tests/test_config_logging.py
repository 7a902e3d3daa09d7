"""Tests for configuration, structured logging and error payloads."""

from __future__ import annotations

import json
import logging
from datetime import date
from decimal import Decimal

import pytest

from lendledger import create_app, status_for
from lendledger.config import BaseConfig, TestConfig
from lendledger.exceptions import (
    ConcurrentModificationError,
    ConfigurationError,
    LoanAlreadyPaidError,
    LoanPolicyError,
    NotFoundError,
    PartialPaymentRequiresConfirmation,
    ValidationError,
)
from lendledger.logging_config import JSONFormatter, get_logger, setup_logging
from lendledger.services.payments import EnginePolicy


@pytest.fixture
def env(monkeypatch, tmp_path):
    monkeypatch.setenv("LENDLEDGER_DATA_DIR", str(tmp_path))
    monkeypatch.delenv("LENDLEDGER_DATABASE_URL", raising=False)
    for name in (
        "LENDLEDGER_MORA_POLICY",
        "LENDLEDGER_OVERPAYMENT_POLICY",
        "LENDLEDGER_LOAN_DELETE_POLICY",
        "LENDLEDGER_DEFAULT_MORA_RATE",
        "LENDLEDGER_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(env, tmp_path):
    config = BaseConfig()

    assert config.DATA_DIR == tmp_path.resolve()
    assert config.DATABASE_URL == f"sqlite:///{tmp_path.resolve() / 'lendledger.db'}"
    assert config.MORA_POLICY == "per_period"
    assert config.OVERPAYMENT_POLICY == "record"
    assert config.LOAN_DELETE_POLICY == "reject"
    assert config.DEFAULT_MORA_RATE == Decimal("5")
    assert config.LOG_LEVEL == "INFO"
    assert config.sqlalchemy_engine_options() == {"connect_args": {"check_same_thread": False}}


def test_policies_from_environment(env):
    env.setenv("LENDLEDGER_MORA_POLICY", "Cumulative")
    env.setenv("LENDLEDGER_OVERPAYMENT_POLICY", "rollover")
    env.setenv("LENDLEDGER_LOAN_DELETE_POLICY", "cascade")
    env.setenv("LENDLEDGER_DEFAULT_MORA_RATE", "7.5")

    config = TestConfig()

    assert EnginePolicy.from_config(config) == EnginePolicy("cumulative", "rollover")
    assert config.LOAN_DELETE_POLICY == "cascade"
    assert config.DEFAULT_MORA_RATE == Decimal("7.5")
    assert config.TESTING is True


@pytest.mark.parametrize(
    "name,value",
    [
        ("LENDLEDGER_MORA_POLICY", "compound"),
        ("LENDLEDGER_OVERPAYMENT_POLICY", "refund"),
        ("LENDLEDGER_LOAN_DELETE_POLICY", "archive"),
        ("LENDLEDGER_DEFAULT_MORA_RATE", "abc"),
        ("LENDLEDGER_DEFAULT_MORA_RATE", "150"),
        ("LENDLEDGER_DEFAULT_MORA_RATE", "5.555"),
        ("LENDLEDGER_LOG_LEVEL", "verbose"),
    ],
)
def test_invalid_settings_fail_at_startup(env, name, value):
    env.setenv(name, value)
    with pytest.raises(ConfigurationError):
        BaseConfig()


def test_secret_required_outside_dev_mode(env):
    env.setenv("LENDLEDGER_DEV_MODE", "false")
    env.delenv("LENDLEDGER_SECRET_KEY", raising=False)
    with pytest.raises(ConfigurationError):
        BaseConfig()


def test_json_formatter_includes_extra_fields():
    record = logging.LogRecord(
        name="lendledger.services.loans",
        level=logging.INFO,
        pathname="loans.py",
        lineno=10,
        msg="Payment recorded",
        args=(),
        exc_info=None,
    )
    record.loan_id = 3
    record.amount = Decimal("100.00")
    record.due_date = date(2024, 1, 8)

    data = json.loads(JSONFormatter().format(record))

    assert data["message"] == "Payment recorded"
    assert data["level"] == "INFO"
    assert data["extra"] == {"loan_id": 3, "amount": "100.00", "due_date": "2024-01-08"}


def test_get_logger_namespaces_under_root():
    assert get_logger("cli").name == "lendledger.cli"
    assert get_logger("lendledger.services.loans").name == "lendledger.services.loans"


def test_setup_logging_writes_json_file(env, tmp_path):
    config = BaseConfig()
    logger = setup_logging(config)

    get_logger("tests").info("hello", extra={"loan_id": 1})
    for handler in logger.handlers:
        handler.flush()

    log_file = tmp_path / "logs" / "lendledger.log"
    lines = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    assert lines[0]["message"] == "Logging initialized"
    assert lines[-1]["message"] == "hello"
    assert lines[-1]["extra"]["loan_id"] == 1

    # Re-running setup must not duplicate handlers.
    assert len(setup_logging(config).handlers) == 2


def test_log_level_from_environment(env):
    env.setenv("LENDLEDGER_LOG_LEVEL", "debug")

    logger = setup_logging(BaseConfig())

    assert logger.level == logging.DEBUG
    assert get_logger("services.loans").isEnabledFor(logging.DEBUG)


def test_mutations_are_logged(ledger, loan_factory, caplog):
    caplog.set_level(logging.INFO, logger="lendledger")
    loan = loan_factory().loan

    ledger.record_payment(loan.id, amount="100.00", payment_date=loan.start_date)

    messages = [record.getMessage() for record in caplog.records]
    assert "Loan created" in messages
    assert "Payment recorded" in messages


@pytest.mark.parametrize(
    "error,status",
    [
        (ValidationError("bad", field="amount"), 400),
        (
            PartialPaymentRequiresConfirmation(
                required=Decimal("1"), amount=Decimal("0.5"), period=1
            ),
            409,
        ),
        (LoanAlreadyPaidError("paid"), 409),
        (ConcurrentModificationError("stale"), 409),
        (LoanPolicyError("nope"), 409),
        (NotFoundError("missing"), 404),
    ],
)
def test_error_status_mapping(error, status):
    assert status_for(error) == status


def test_validation_error_payload():
    error = ValidationError("amount is required.", field="amount")
    assert error.to_dict() == {
        "error": "validation_error",
        "message": "amount is required.",
        "field": "amount",
        "errors": {"amount": ["amount is required."]},
    }


def test_create_app_selects_config(env, tmp_path):
    app = create_app("testing")

    assert app.config["TESTING"] is True
    assert app.config["LENDLEDGER_CONFIG"].DATA_DIR == tmp_path.resolve()
    assert {"loans", "payments", "clients", "reports"} <= set(app.blueprints)


def test_cli_sweep_and_preview(app, api, clock):
    runner = app.test_cli_runner()
    api.post(
        "/api/clients",
        json={"name": "Cli", "phone": "1", "address": "A", "document_id": "CLI-1"},
    )
    api.post(
        "/api/loans",
        json={
            "client_id": 1,
            "principal": "1000.00",
            "interest_rate": "20",
            "term": 12,
            "start_date": "2024-01-01",
        },
    )
    clock.today = date(2024, 2, 1)

    result = runner.invoke(args=["lendledger-sweep-overdue"])
    assert result.exit_code == 0
    assert "1 status change(s)" in result.output
    assert "ACTIVO -> ATRASADO" in result.output

    preview = runner.invoke(
        args=["lendledger-preview", "1000", "20", "12", "--start", "2024-01-01"]
    )
    assert preview.exit_code == 0
    assert json.loads(preview.output)["total_payable"] == "1200.00"

    bad = runner.invoke(args=["lendledger-preview", "1000", "20", "0"])
    assert bad.exit_code != 0
    sub_cent = runner.invoke(args=["lendledger-preview", "1000.005", "20", "12"])
    assert sub_cent.exit_code != 0

    init = runner.invoke(args=["lendledger-init-db"])
    assert init.exit_code == 0
    assert "Database ready" in init.output
