"""JSON-safe rendering of ledger values.

Money leaves the service as decimal strings and dates as ``YYYY-MM-DD`` so
no float ever crosses the API boundary.
"""

from __future__ import annotations

from dataclasses import fields, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any


def serialize_value(value: Any) -> Any:
    """Serialize a value for JSON output."""
    if isinstance(value, Decimal):
        return str(value)
    elif isinstance(value, Enum):
        return value.value
    elif isinstance(value, datetime):
        return value.isoformat()
    elif isinstance(value, date):
        return value.isoformat()
    elif is_dataclass(value) and not isinstance(value, type):
        return to_dict(value)
    elif isinstance(value, dict):
        return {k: serialize_value(v) for k, v in value.items()}
    elif isinstance(value, (list, tuple)):
        return [serialize_value(v) for v in value]
    return value


def to_dict(obj: Any) -> dict:
    """Convert a dataclass without deep-copying it."""
    return {f.name: serialize_value(getattr(obj, f.name)) for f in fields(obj)}


def model_to_dict(model: Any, *, exclude: set[str] | None = None) -> dict:
    """Serialize a SQLModel row's columns."""
    skip = exclude or set()
    return {
        key: serialize_value(value)
        for key, value in model.model_dump().items()
        if key not in skip
    }


__all__ = ["model_to_dict", "serialize_value", "to_dict"]
