"""Structured logging for the ledger: console output plus a rotating JSON file."""

from __future__ import annotations

import json
import logging
import logging.handlers
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any

from .config import BaseConfig

ROOT_LOGGER = "lendledger"
LOG_FILENAME = "lendledger.log"

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}


def _json_default(value: Any) -> Any:
    """Keep money and dates readable in log lines."""

    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return str(value)


class JSONFormatter(logging.Formatter):
    """One JSON object per record; ``extra`` fields are nested under ``extra``."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info and record.exc_info[0] is not None:
            payload["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }
        extra = {
            key: value for key, value in record.__dict__.items() if key not in _RECORD_ATTRS
        }
        if extra:
            payload["extra"] = extra
        return json.dumps(payload, default=_json_default)


def _console_handler(config: BaseConfig, level: int) -> logging.Handler:
    handler = logging.StreamHandler()
    if config.DEV_MODE:
        fmt = "[%(asctime)s] %(levelname)-8s [%(name)s.%(funcName)s:%(lineno)d] %(message)s"
        handler.setFormatter(logging.Formatter(fmt, datefmt="%H:%M:%S"))
        handler.setLevel(level)
    else:
        fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
        handler.setFormatter(logging.Formatter(fmt, datefmt="%Y-%m-%d %H:%M:%S"))
        handler.setLevel(max(level, logging.WARNING))
    return handler


def _file_handler(log_file: Path, level: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        filename=log_file,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter())
    return handler


def setup_logging(config: BaseConfig) -> logging.Logger:
    """Attach console and rotating JSON file handlers to the ``lendledger`` logger.

    Calling this again (every ``create_app``) replaces the handlers instead of
    stacking them.

    Args:
        config: Application configuration with DATA_DIR, DEV_MODE and LOG_LEVEL

    Returns:
        The configured ``lendledger`` logger
    """
    logs_dir = Path(config.DATA_DIR) / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_file = logs_dir / LOG_FILENAME
    level = logging.getLevelName(config.LOG_LEVEL)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.addHandler(_console_handler(config, level))
    logger.addHandler(_file_handler(log_file, level))

    logger.info(
        "Logging initialized",
        extra={
            "dev_mode": config.DEV_MODE,
            "log_level": config.LOG_LEVEL,
            "log_file": log_file,
            "data_dir": config.DATA_DIR,
        },
    )
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ``lendledger`` hierarchy.

    Module names that already start with ``lendledger`` are used as-is.
    """
    if name == ROOT_LOGGER or name.startswith(f"{ROOT_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
