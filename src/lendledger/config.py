"""Application configuration objects and helpers."""

from __future__ import annotations

import os
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .exceptions import ConfigurationError

load_dotenv()

MORA_POLICIES = ("per_period", "cumulative")
OVERPAYMENT_POLICIES = ("record", "rollover")
LOAN_DELETE_POLICIES = ("reject", "cascade")
LOG_LEVELS = ("debug", "info", "warning", "error")


def _env_bool(name: str, default: bool = False) -> bool:
    """Interpret environment variable values as booleans."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_choice(name: str, choices: tuple[str, ...], default: str) -> str:
    """Read an enumerated setting, failing loudly on unknown values."""

    value = (os.getenv(name) or default).strip().lower()
    if value not in choices:
        raise ConfigurationError(f"{name} must be one of {', '.join(choices)}; got {value!r}.")
    return value


def _env_decimal(name: str, default: str) -> Decimal:
    raw = os.getenv(name, default)
    try:
        return Decimal(raw.strip())
    except (InvalidOperation, AttributeError) as exc:
        raise ConfigurationError(f"{name} must be a decimal number; got {raw!r}.") from exc


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "LendLedger"
    DB_FILENAME = "lendledger.db"
    DEBUG = False
    TESTING = False

    def __init__(self) -> None:
        self.SECRET_KEY = os.getenv("LENDLEDGER_SECRET_KEY", "replace-me")
        self.DEV_MODE = _env_bool("LENDLEDGER_DEV_MODE", default=True)
        self.DATA_DIR = self._resolve_data_dir()
        self.DATABASE_URL = os.getenv("LENDLEDGER_DATABASE_URL", self._build_sqlite_url())
        self.MORA_POLICY = _env_choice("LENDLEDGER_MORA_POLICY", MORA_POLICIES, "per_period")
        self.OVERPAYMENT_POLICY = _env_choice(
            "LENDLEDGER_OVERPAYMENT_POLICY", OVERPAYMENT_POLICIES, "record"
        )
        self.LOAN_DELETE_POLICY = _env_choice(
            "LENDLEDGER_LOAN_DELETE_POLICY", LOAN_DELETE_POLICIES, "reject"
        )
        self.LOG_LEVEL = _env_choice("LENDLEDGER_LOG_LEVEL", LOG_LEVELS, "info").upper()
        self.DEFAULT_MORA_RATE = _env_decimal("LENDLEDGER_DEFAULT_MORA_RATE", "5")
        if not Decimal("0") <= self.DEFAULT_MORA_RATE <= Decimal("100"):
            raise ConfigurationError("LENDLEDGER_DEFAULT_MORA_RATE must be between 0 and 100.")
        if self.DEFAULT_MORA_RATE != self.DEFAULT_MORA_RATE.quantize(Decimal("0.01")):
            raise ConfigurationError(
                "LENDLEDGER_DEFAULT_MORA_RATE allows at most two decimal places."
            )
        if not self.DEV_MODE and self.SECRET_KEY == "replace-me":
            raise ConfigurationError("LENDLEDGER_SECRET_KEY must be set in non-dev mode.")

    def _resolve_data_dir(self) -> Path:
        """Return the directory where the SQLite file and logs live."""

        data_root = os.getenv("LENDLEDGER_DATA_DIR", "instance")
        path = Path(data_root).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _build_sqlite_url(self) -> str:
        """Construct the default SQLite URL inside the data directory."""

        return f"sqlite:///{self.DATA_DIR / self.DB_FILENAME}"

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        """Expose engine kwargs for SQLModel to consume."""

        if self.DATABASE_URL.startswith("sqlite"):
            return {"connect_args": {"check_same_thread": False}}
        return {"pool_pre_ping": True}


class DevConfig(BaseConfig):
    """Development configuration using local SQLite."""

    DEBUG = True


class TestConfig(BaseConfig):
    """Configuration used by the test suite."""

    TESTING = True
