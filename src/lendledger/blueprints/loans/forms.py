"""Loan request forms and validation helpers."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from ...exceptions import ValidationError
from ...services.loan_status import LoanStatus
from ...services.schedule import Frequency
from ..validation import FormErrors, bind


@dataclass(slots=True)
class LoanPreviewForm(FormErrors):
    """Inputs needed to compute a loan's totals and due dates."""

    principal: Optional[Decimal] = None
    interest_rate: Optional[Decimal] = None
    term: Optional[int] = None
    frequency: Frequency = Frequency.WEEKLY
    start_date: Optional[date] = None
    errors: Dict[str, List[str]] = field(default_factory=dict, init=False)
    raw_data: Dict[str, Any] = field(default_factory=dict, init=False)

    KEYS = ("principal", "interest_rate", "term", "frequency", "start_date")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]):
        form = cls()
        form.raw_data = bind(cls.KEYS, data)
        return form

    def validate(self) -> bool:
        """Validate loan terms returning True when all values are acceptable."""

        self.errors.clear()
        self._validate_terms()
        return not self.errors

    def _validate_terms(self) -> None:
        self.principal = self._parse_money("principal")
        self.interest_rate = self._parse_rate("interest_rate")
        self.term = self._parse_int("term")
        self.start_date = self._parse_date("start_date", required=False)
        raw_frequency = self._raw("frequency")
        if raw_frequency is not None:
            try:
                self.frequency = Frequency.parse(raw_frequency)
            except ValidationError as exc:
                self._add_error("frequency", str(exc))


@dataclass(slots=True)
class LoanForm(LoanPreviewForm):
    """A new loan for an existing client."""

    client_id: Optional[int] = None
    mora_rate: Optional[Decimal] = None

    KEYS = LoanPreviewForm.KEYS + ("client_id", "mora_rate")

    def validate(self) -> bool:
        self.errors.clear()
        self._validate_terms()
        self.client_id = self._parse_int("client_id")
        self.mora_rate = self._parse_rate("mora_rate", required=False)
        if self.start_date is None and "start_date" not in self.errors:
            self._add_error("start_date", "This field is required.")
        return not self.errors


@dataclass(slots=True)
class PaymentForm(FormErrors):
    """A payment against a loan's next unpaid period."""

    amount: Optional[Decimal] = None
    payment_date: Optional[date] = None
    allow_partial: bool = False
    expected_version: Optional[int] = None
    errors: Dict[str, List[str]] = field(default_factory=dict, init=False)
    raw_data: Dict[str, Any] = field(default_factory=dict, init=False)

    KEYS = ("amount", "payment_date", "allow_partial", "expected_version")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]):
        form = cls()
        form.raw_data = bind(cls.KEYS, data)
        return form

    def validate(self) -> bool:
        self.errors.clear()
        self.amount = self._parse_money("amount")
        self.payment_date = self._parse_date("payment_date", required=False)
        self.allow_partial = self._parse_bool("allow_partial")
        self.expected_version = self._parse_int("expected_version", required=False)
        return not self.errors


@dataclass(slots=True)
class RescheduleForm(FormErrors):
    """New anchor date for a loan's unpaid periods."""

    anchor_date: Optional[date] = None
    expected_version: Optional[int] = None
    errors: Dict[str, List[str]] = field(default_factory=dict, init=False)
    raw_data: Dict[str, Any] = field(default_factory=dict, init=False)

    KEYS = ("anchor_date", "expected_version")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]):
        form = cls()
        form.raw_data = bind(cls.KEYS, data)
        return form

    def validate(self) -> bool:
        self.errors.clear()
        self.anchor_date = self._parse_date("anchor_date")
        self.expected_version = self._parse_int("expected_version", required=False)
        return not self.errors


@dataclass(slots=True)
class StatusOverrideForm(FormErrors):
    """Operator override of a loan's status."""

    status: Optional[LoanStatus] = None
    reason: Optional[str] = None
    expected_version: Optional[int] = None
    errors: Dict[str, List[str]] = field(default_factory=dict, init=False)
    raw_data: Dict[str, Any] = field(default_factory=dict, init=False)

    KEYS = ("status", "reason", "expected_version")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]):
        form = cls()
        form.raw_data = bind(cls.KEYS, data)
        return form

    def validate(self) -> bool:
        self.errors.clear()
        raw_status = self._raw("status")
        if raw_status is None:
            self._add_error("status", "This field is required.")
        else:
            try:
                self.status = LoanStatus.parse(raw_status)
            except ValidationError as exc:
                self._add_error("status", str(exc))
        self.reason = self._parse_text("reason", required=False)
        self.expected_version = self._parse_int("expected_version", required=False)
        return not self.errors
