"""Client form definitions."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ...services.clients import ClientData
from ..validation import FormErrors, bind


@dataclass(slots=True)
class ClientForm(FormErrors):
    """Represents borrower inputs and associated validation errors."""

    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    document_id: Optional[str] = None
    email: Optional[str] = None
    notes: Optional[str] = None
    route: Optional[str] = None
    errors: Dict[str, List[str]] = field(default_factory=dict, init=False)
    raw_data: Dict[str, Any] = field(default_factory=dict, init=False)

    KEYS = ("name", "phone", "address", "document_id", "email", "notes", "route")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ClientForm":
        form = cls()
        form.raw_data = bind(cls.KEYS, data)
        return form

    def validate(self) -> bool:
        self.errors.clear()
        self.name = self._parse_text("name", max_length=120)
        self.phone = self._parse_text("phone", max_length=40)
        self.address = self._parse_text("address")
        self.document_id = self._parse_text("document_id", max_length=40)
        self.email = self._parse_text("email", required=False)
        if self.email is not None and "@" not in self.email:
            self._add_error("email", "Enter a valid email address.")
        self.notes = self._parse_text("notes", required=False, max_length=2000)
        self.route = self._parse_text("route", required=False, max_length=80)
        return not self.errors

    def to_data(self) -> ClientData:
        return ClientData(
            name=self.name or "",
            phone=self.phone or "",
            address=self.address or "",
            document_id=self.document_id or "",
            email=self.email,
            notes=self.notes,
            route=self.route,
        )
