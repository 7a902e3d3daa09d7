"""Shared request parsing for the JSON blueprints."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from flask import request

from ..exceptions import ValidationError
from ..services.money import parse_iso_date, to_money, to_rate


def json_body() -> Mapping[str, Any]:
    """Return the request's JSON object, or an empty mapping when there is no body."""

    if not request.data:
        return {}
    payload = request.get_json(silent=True)
    if not isinstance(payload, Mapping):
        raise ValidationError("Request body must be a JSON object.")
    return payload


class FormErrors:
    """Error bookkeeping shared by the request forms.

    Subclasses are slotted dataclasses declaring ``errors`` and ``raw_data``.
    """

    __slots__ = ()

    errors: Dict[str, List[str]]
    raw_data: Dict[str, Any]

    def _add_error(self, field: str, message: str) -> None:
        self.errors.setdefault(field, []).append(message)

    def _raw(self, field: str) -> Any:
        value = self.raw_data.get(field)
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    def _parse_money(self, field: str, *, required: bool = True) -> Optional[Decimal]:
        value = self._raw(field)
        if value is None:
            if required:
                self._add_error(field, "This field is required.")
            return None
        try:
            amount = to_money(value, field=field)
        except ValidationError as exc:
            self._add_error(field, str(exc))
            return None
        if amount <= 0:
            self._add_error(field, "Amount must be greater than zero.")
            return None
        return amount

    def _parse_rate(self, field: str, *, required: bool = True) -> Optional[Decimal]:
        value = self._raw(field)
        if value is None:
            if required:
                self._add_error(field, "This field is required.")
            return None
        try:
            rate = to_rate(value, field=field)
        except ValidationError as exc:
            self._add_error(field, str(exc))
            return None
        if rate < 0 or rate > 100:
            self._add_error(field, "Rate must be between 0 and 100 percent.")
            return None
        return rate

    def _parse_int(self, field: str, *, required: bool = True, minimum: int = 1) -> Optional[int]:
        value = self._raw(field)
        if value is None:
            if required:
                self._add_error(field, "This field is required.")
            return None
        if isinstance(value, bool) or isinstance(value, float):
            self._add_error(field, "Enter a whole number.")
            return None
        try:
            number = int(value)
        except (TypeError, ValueError):
            self._add_error(field, "Enter a whole number.")
            return None
        if number < minimum:
            self._add_error(field, f"Must be at least {minimum}.")
            return None
        return number

    def _parse_date(self, field: str, *, required: bool = True) -> Optional[date]:
        value = self._raw(field)
        if value is None:
            if required:
                self._add_error(field, "This field is required.")
            return None
        try:
            return parse_iso_date(value, field=field)
        except ValidationError:
            self._add_error(field, "Enter a valid date (YYYY-MM-DD).")
            return None

    def _parse_bool(self, field: str) -> bool:
        value = self._raw(field)
        if value is None:
            return False
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in {"1", "true", "yes", "on"}:
            return True
        if isinstance(value, str) and value.lower() in {"0", "false", "no", "off"}:
            return False
        self._add_error(field, "Enter true or false.")
        return False

    def _parse_text(self, field: str, *, required: bool = True, max_length: int = 255) -> Optional[str]:
        value = self._raw(field)
        if value is None:
            if required:
                self._add_error(field, "This field is required.")
            return None
        text = str(value)
        if len(text) > max_length:
            self._add_error(field, f"Must be at most {max_length} characters.")
            return None
        return text

    @property
    def error_messages(self) -> Iterable[str]:
        """Flattened iterable of error strings for summaries."""

        for messages in self.errors.values():
            yield from messages

    def raise_for_errors(self) -> None:
        """Raise one ``ValidationError`` carrying every collected field error."""

        if self.errors:
            first = next(iter(self.errors))
            raise ValidationError(
                "; ".join(self.error_messages),
                field=first if len(self.errors) == 1 else None,
                errors=dict(self.errors),
            )


def bind(raw_keys: Iterable[str], data: Mapping[str, Any]) -> Dict[str, Any]:
    """Pick the keys a form understands out of request data."""

    return {key: data.get(key) for key in raw_keys}
