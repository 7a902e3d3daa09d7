"""Loan ledger service: persists engine results atomically.

Every mutation runs inside one session scope. The loan row is written with a
compare-and-swap on ``version`` so a concurrent writer makes the whole
transaction (payment insert included) roll back with
:class:`~lendledger.exceptions.ConcurrentModificationError`.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Optional

from sqlmodel import Session

from ..domain.repositories import ClientRepository, LoanRepository, PaymentRepository
from ..exceptions import (
    ConcurrentModificationError,
    LendLedgerError,
    LoanPolicyError,
    NotFoundError,
    ValidationError,
)
from ..infra.database import SessionFactory
from ..infra.repositories import (
    SQLModelClientRepository,
    SQLModelLoanRepository,
    SQLModelPaymentRepository,
)
from ..logging_config import get_logger
from ..models import Loan, LoanStatusChange, Payment
from .amortization import Amortization, compute_amortization
from .loan_status import LoanStatus, derive_status
from .money import ZERO, normalize_date, to_rate
from .payments import (
    EnginePolicy,
    PaymentOutcome,
    apply_payment,
    override_status,
    refresh_status,
    reverse_payment,
)
from .reports import (
    RECENT_ACTIVITY,
    LoanSummary,
    PortfolioStatistics,
    build_summary,
    payment_list,
    payment_to_dict,
    portfolio_statistics,
    total_paid,
)
from .schedule import Frequency, ScheduleEntry, apply_reschedule, generate_schedule, loan_schedule
from .serialization import serialize_value, to_dict
from .snapshots import LoanSnapshot, PaymentSnapshot

logger = get_logger(__name__)


def loan_to_snapshot(loan: Loan) -> LoanSnapshot:
    """Map a loan row to the engine's immutable view."""

    return LoanSnapshot(
        id=loan.id,
        principal=loan.principal,
        interest_rate=loan.interest_rate,
        mora_rate=loan.mora_rate,
        term=loan.term,
        frequency=Frequency.parse(loan.frequency),
        start_date=loan.start_date,
        total_payable=loan.total_payable,
        installment=loan.installment,
        paid_periods=loan.paid_periods,
        accumulated_mora=loan.accumulated_mora,
        next_due_date=loan.next_due_date,
        status=LoanStatus.parse(loan.status),
        anchor_date=loan.anchor_date,
        anchor_period=loan.anchor_period,
        status_override=loan.status_override,
        version=loan.version,
    )


def payment_to_snapshot(payment: Payment) -> PaymentSnapshot:
    """Map a payment row to the engine's immutable view."""

    return PaymentSnapshot(
        id=payment.id,
        period=payment.period,
        amount=payment.amount,
        payment_date=payment.payment_date,
        due_date=payment.due_date,
        mora=payment.mora,
        remaining=payment.remaining,
        is_late=payment.is_late,
        is_partial=payment.is_partial,
        periods_advanced=payment.periods_advanced,
        mora_settled=payment.mora_settled,
        overpayment=payment.overpayment,
        reversed=payment.reversed,
        cleared_override=(
            LoanStatus.parse(payment.cleared_override_status)
            if payment.cleared_override_status
            else None
        ),
    )


def _mutable_values(snapshot: LoanSnapshot) -> dict[str, Any]:
    """Loan columns the engine is allowed to change."""

    return {
        "paid_periods": snapshot.paid_periods,
        "accumulated_mora": snapshot.accumulated_mora,
        "next_due_date": snapshot.next_due_date,
        "status": snapshot.status.value,
        "status_override": snapshot.status_override,
        "anchor_date": snapshot.effective_anchor_date,
        "anchor_period": snapshot.anchor_period,
    }


@dataclass(slots=True)
class LoanPreview:
    """Amortization figures and due dates for a loan that is not yet saved."""

    amortization: Amortization
    frequency: Frequency
    schedule: list[ScheduleEntry]

    def to_dict(self) -> dict[str, Any]:
        calc = self.amortization
        return {
            "principal": serialize_value(calc.principal),
            "interest_rate": serialize_value(calc.rate_percent),
            "term": calc.periods,
            "frequency": self.frequency.value,
            "interest": serialize_value(calc.interest),
            "total_payable": serialize_value(calc.total_payable),
            "installment": serialize_value(calc.installment),
            "final_installment": serialize_value(calc.final_installment),
            "schedule": [to_dict(entry) for entry in self.schedule],
        }


@dataclass(slots=True)
class MutationResult:
    """Updated loan aggregate plus the payment a mutation touched."""

    summary: LoanSummary
    payment: Optional[PaymentSnapshot] = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"loan": self.summary.to_dict()}
        if self.payment is not None:
            payload["payment"] = payment_to_dict(self.payment, loan_id=self.summary.loan.id)
        return payload


@dataclass(slots=True)
class StatusSweepResult:
    """Loans whose stored status the overdue sweep changed."""

    as_of: date
    examined: int = 0
    changed: list[dict[str, Any]] = field(default_factory=list)


class LoanLedgerService:
    """Transactional entry point for every loan operation."""

    def __init__(
        self,
        session_factory: SessionFactory,
        *,
        policy: EnginePolicy | None = None,
        loan_delete_policy: str = "reject",
        default_mora_rate: Decimal = Decimal("5"),
        clock: Callable[[], date] = date.today,
    ) -> None:
        self._session_factory = session_factory
        self.policy = policy or EnginePolicy()
        self.loan_delete_policy = loan_delete_policy
        self.default_mora_rate = default_mora_rate
        self._clock = clock

    @classmethod
    def from_config(
        cls,
        config: Any,
        session_factory: SessionFactory,
        *,
        clock: Callable[[], date] = date.today,
    ) -> "LoanLedgerService":
        return cls(
            session_factory,
            policy=EnginePolicy.from_config(config),
            loan_delete_policy=config.LOAN_DELETE_POLICY,
            default_mora_rate=config.DEFAULT_MORA_RATE,
            clock=clock,
        )

    def today(self) -> date:
        return normalize_date(self._clock())

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _repositories(
        session: Session,
    ) -> tuple[LoanRepository, PaymentRepository]:
        return SQLModelLoanRepository(session), SQLModelPaymentRepository(session)

    @staticmethod
    def _load_loan(loans: LoanRepository, loan_id: int) -> Loan:
        loan = loans.get_by_id(loan_id)
        if loan is None:
            raise NotFoundError(f"Loan {loan_id} not found.")
        return loan

    @staticmethod
    def _check_version(loan: Loan, expected_version: Optional[int]) -> None:
        if expected_version is not None and expected_version != loan.version:
            logger.warning(
                "Stale loan version rejected",
                extra={"loan_id": loan.id, "expected": expected_version, "actual": loan.version},
            )
            raise ConcurrentModificationError(
                f"Loan {loan.id} is at version {loan.version}, not {expected_version}; "
                "reload and retry."
            )

    @staticmethod
    def _history(payments: PaymentRepository, loan_id: int) -> list[PaymentSnapshot]:
        return [payment_to_snapshot(p) for p in payments.list_for_loan(loan_id)]

    def _persist(
        self,
        loans: LoanRepository,
        before: LoanSnapshot,
        after: LoanSnapshot,
        *,
        extra: dict[str, Any] | None = None,
        manual: bool = False,
        reason: Optional[str] = None,
    ) -> LoanSnapshot:
        """Compare-and-swap the loan row and audit any status change."""

        values = _mutable_values(after)
        values.update(extra or {})
        if not after.status_override and "status_override_reason" not in values:
            values["status_override_reason"] = None
        new_version = loans.compare_and_swap(
            before.id,  # type: ignore[arg-type]
            expected_version=before.version,
            values=values,
        )
        if manual or after.status is not before.status:
            loans.add_status_change(
                LoanStatusChange(
                    loan_id=before.id,  # type: ignore[arg-type]
                    from_status=before.status.value,
                    to_status=after.status.value,
                    manual=manual,
                    reason=reason,
                )
            )
            logger.info(
                "Loan status changed",
                extra={
                    "loan_id": before.id,
                    "from_status": before.status.value,
                    "to_status": after.status.value,
                    "manual": manual,
                },
            )
        return replace(after, version=new_version)

    def _summary(
        self,
        loan: Loan,
        snapshot: LoanSnapshot,
        history: list[PaymentSnapshot],
        *,
        override_reason: Optional[str] = None,
    ) -> LoanSummary:
        reason = override_reason or loan.status_override_reason
        return build_summary(
            snapshot,
            history,
            client_id=loan.client_id,
            status_override_reason=reason if snapshot.status_override else None,
        )

    # ------------------------------------------------------------------
    # calculations
    # ------------------------------------------------------------------
    def preview(
        self,
        principal: object,
        interest_rate: object,
        term: object,
        frequency: Frequency | str = Frequency.WEEKLY,
        start_date: date | None = None,
    ) -> LoanPreview:
        """Compute amortization and due dates without touching the database."""

        calc = compute_amortization(principal, interest_rate, term)
        freq = Frequency.parse(frequency)
        start = normalize_date(start_date or self.today())
        schedule = generate_schedule(start, calc.periods, freq, amounts=calc.installments())
        return LoanPreview(amortization=calc, frequency=freq, schedule=schedule)

    # ------------------------------------------------------------------
    # loans
    # ------------------------------------------------------------------
    def create_loan(
        self,
        *,
        client_id: int,
        principal: object,
        interest_rate: object,
        term: object,
        frequency: Frequency | str,
        start_date: date,
        mora_rate: object | None = None,
    ) -> LoanSummary:
        """Create a loan with its amortization and first due date in one transaction."""

        calc = compute_amortization(principal, interest_rate, term)
        freq = Frequency.parse(frequency)
        start = normalize_date(start_date)
        rate = (
            self.default_mora_rate if mora_rate is None else to_rate(mora_rate, field="mora_rate")
        )
        if rate < 0 or rate > 100:
            raise ValidationError("mora_rate must be between 0 and 100.", field="mora_rate")
        schedule = generate_schedule(start, calc.periods, freq)
        first_due = schedule[0].due_date
        status = derive_status(
            paid_periods=0,
            term=calc.periods,
            accumulated_mora=ZERO,
            today=self.today(),
            next_due_date=first_due,
        )

        with self._session_factory() as session:
            clients: ClientRepository = SQLModelClientRepository(session)
            if clients.get_by_id(client_id) is None:
                raise NotFoundError(f"Client {client_id} not found.")
            loans, _ = self._repositories(session)
            loan = loans.create(
                Loan(
                    client_id=client_id,
                    principal=calc.principal,
                    interest_rate=calc.rate_percent,
                    mora_rate=rate,
                    term=calc.periods,
                    frequency=freq.value,
                    start_date=start,
                    total_payable=calc.total_payable,
                    installment=calc.installment,
                    paid_periods=0,
                    accumulated_mora=ZERO,
                    next_due_date=first_due,
                    status=status.value,
                    anchor_date=start,
                    anchor_period=0,
                )
            )
            snapshot = loan_to_snapshot(loan)
            logger.info(
                "Loan created",
                extra={
                    "loan_id": loan.id,
                    "client_id": client_id,
                    "principal": str(calc.principal),
                    "total_payable": str(calc.total_payable),
                    "term": calc.periods,
                    "frequency": freq.value,
                },
            )
            return self._summary(loan, snapshot, [])

    def get_loan(self, loan_id: int) -> LoanSummary:
        """Return the loan aggregate with its status derived for today."""

        with self._session_factory() as session:
            loans, payments = self._repositories(session)
            loan = self._load_loan(loans, loan_id)
            snapshot = refresh_status(loan_to_snapshot(loan), today=self.today())
            return self._summary(loan, snapshot, self._history(payments, loan_id))

    def list_loans(self, *, client_id: int | None = None) -> list[LoanSummary]:
        with self._session_factory() as session:
            loans, payments = self._repositories(session)
            today = self.today()
            return [
                self._summary(
                    loan,
                    refresh_status(loan_to_snapshot(loan), today=today),
                    self._history(payments, loan.id),  # type: ignore[arg-type]
                )
                for loan in loans.list_all(client_id=client_id)
            ]

    def schedule(self, loan_id: int) -> list[ScheduleEntry]:
        with self._session_factory() as session:
            loans, payments = self._repositories(session)
            loan = self._load_loan(loans, loan_id)
            return loan_schedule(loan_to_snapshot(loan), self._history(payments, loan_id))

    def payments(self, loan_id: int) -> list[PaymentSnapshot]:
        with self._session_factory() as session:
            loans, payments = self._repositories(session)
            self._load_loan(loans, loan_id)
            return payment_list(self._history(payments, loan_id))

    def total_paid(self, loan_id: int) -> Decimal:
        with self._session_factory() as session:
            loans, payments = self._repositories(session)
            self._load_loan(loans, loan_id)
            return total_paid(self._history(payments, loan_id))

    def delete_loan(self, loan_id: int) -> None:
        """Delete a loan according to the configured deletion policy.

        ``reject`` refuses loans with active payments; ``cascade`` removes the
        loan's payments and status history with it.
        """

        with self._session_factory() as session:
            loans, payments = self._repositories(session)
            self._load_loan(loans, loan_id)
            active = payments.list_for_loan(loan_id, include_reversed=False)
            if active and self.loan_delete_policy != "cascade":
                logger.warning(
                    "Loan deletion refused", extra={"loan_id": loan_id, "payments": len(active)}
                )
                raise LoanPolicyError(
                    f"Loan {loan_id} has {len(active)} recorded payment(s) and cannot be deleted."
                )
            removed = payments.delete_for_loan(loan_id)
            loans.delete(loan_id)
            logger.info("Loan deleted", extra={"loan_id": loan_id, "payments_removed": removed})

    # ------------------------------------------------------------------
    # payments
    # ------------------------------------------------------------------
    def record_payment(
        self,
        loan_id: int,
        *,
        amount: object,
        payment_date: date,
        allow_partial: bool = False,
        expected_version: int | None = None,
    ) -> MutationResult:
        """Apply a payment to the next unpaid period and persist the outcome."""

        with self._session_factory() as session:
            loans, payments = self._repositories(session)
            loan = self._load_loan(loans, loan_id)
            self._check_version(loan, expected_version)
            snapshot = loan_to_snapshot(loan)
            history = self._history(payments, loan_id)
            try:
                outcome: PaymentOutcome = apply_payment(
                    snapshot,
                    history,
                    amount,
                    payment_date,
                    allow_partial=allow_partial,
                    policy=self.policy,
                    today=self.today(),
                )
            except LendLedgerError as exc:
                logger.warning(
                    "Payment refused",
                    extra={"loan_id": loan_id, "amount": str(amount), "reason": type(exc).__name__},
                )
                raise

            record = payments.create(
                Payment(
                    loan_id=loan_id,
                    cleared_override_reason=(
                        loan.status_override_reason if snapshot.status_override else None
                    ),
                    **_payment_columns(outcome.payment),
                )
            )
            stored = payment_to_snapshot(record)
            updated = self._persist(loans, snapshot, outcome.loan)
            history.append(stored)
            logger.info(
                "Payment recorded",
                extra={
                    "loan_id": loan_id,
                    "payment_id": stored.id,
                    "period": stored.period,
                    "amount": str(stored.amount),
                    "mora": str(stored.mora),
                    "partial": stored.is_partial,
                    "status": updated.status.value,
                },
            )
            return MutationResult(summary=self._summary(loan, updated, history), payment=stored)

    def reverse_payment(
        self, payment_id: int, *, expected_version: int | None = None
    ) -> MutationResult:
        """Reverse the most recent payment of its loan."""

        with self._session_factory() as session:
            loans, payments = self._repositories(session)
            payment = payments.get_by_id(payment_id)
            if payment is None:
                raise NotFoundError(f"Payment {payment_id} not found.")
            loan = self._load_loan(loans, payment.loan_id)
            self._check_version(loan, expected_version)
            snapshot = loan_to_snapshot(loan)
            history = self._history(payments, payment.loan_id)
            target = next((p for p in history if p.id == payment_id), None)
            outcome = reverse_payment(snapshot, target, history, today=self.today())

            payments.mark_reversed(payment_id, at=datetime.now(timezone.utc))
            restored_reason = None
            extra = None
            if outcome.payment.cleared_override is not None:
                restored_reason = payment.cleared_override_reason
                extra = {"status_override_reason": restored_reason}
            updated = self._persist(loans, snapshot, outcome.loan, extra=extra)
            history = [outcome.payment if p.id == payment_id else p for p in history]
            logger.info(
                "Payment reversed",
                extra={
                    "loan_id": payment.loan_id,
                    "payment_id": payment_id,
                    "period": outcome.payment.period,
                    "amount": str(outcome.payment.amount),
                    "status": updated.status.value,
                },
            )
            return MutationResult(
                summary=self._summary(loan, updated, history, override_reason=restored_reason),
                payment=outcome.payment,
            )

    # ------------------------------------------------------------------
    # schedule and status
    # ------------------------------------------------------------------
    def change_payment_day(
        self, loan_id: int, anchor_date: date, *, expected_version: int | None = None
    ) -> LoanSummary:
        """Re-anchor the unpaid periods so the next one falls on ``anchor_date``."""

        with self._session_factory() as session:
            loans, payments = self._repositories(session)
            loan = self._load_loan(loans, loan_id)
            self._check_version(loan, expected_version)
            snapshot = loan_to_snapshot(loan)
            history = self._history(payments, loan_id)
            rescheduled = apply_reschedule(snapshot, anchor_date, history, today=self.today())
            updated = self._persist(
                loans,
                snapshot,
                rescheduled,
                extra={"status_override_reason": loan.status_override_reason},
            )
            logger.info(
                "Loan rescheduled",
                extra={
                    "loan_id": loan_id,
                    "anchor_date": updated.effective_anchor_date.isoformat(),
                    "anchor_period": updated.anchor_period,
                },
            )
            return self._summary(loan, updated, history)

    def override_status(
        self,
        loan_id: int,
        status: LoanStatus | str,
        *,
        reason: Optional[str] = None,
        expected_version: int | None = None,
    ) -> LoanSummary:
        """Force a status as an operator decision and audit it."""

        with self._session_factory() as session:
            loans, payments = self._repositories(session)
            loan = self._load_loan(loans, loan_id)
            self._check_version(loan, expected_version)
            snapshot = loan_to_snapshot(loan)
            updated = self._persist(
                loans,
                snapshot,
                override_status(snapshot, status),
                extra={"status_override_reason": reason},
                manual=True,
                reason=reason,
            )
            return build_summary(
                updated,
                self._history(payments, loan_id),
                client_id=loan.client_id,
                status_override_reason=reason,
            )

    def status_history(self, loan_id: int) -> list[LoanStatusChange]:
        with self._session_factory() as session:
            loans, _ = self._repositories(session)
            self._load_loan(loans, loan_id)
            return loans.list_status_changes(loan_id)

    def sweep_overdue(self) -> StatusSweepResult:
        """Persist the status derived for today on every open loan."""

        today = self.today()
        result = StatusSweepResult(as_of=today)
        with self._session_factory() as session:
            loans, _ = self._repositories(session)
            for loan in loans.list_open():
                result.examined += 1
                snapshot = loan_to_snapshot(loan)
                refreshed = refresh_status(snapshot, today=today)
                if refreshed.status is snapshot.status:
                    continue
                self._persist(loans, snapshot, refreshed)
                result.changed.append(
                    {
                        "loan_id": loan.id,
                        "from_status": snapshot.status.value,
                        "to_status": refreshed.status.value,
                    }
                )
        logger.info(
            "Overdue sweep finished",
            extra={"as_of": today.isoformat(), "examined": result.examined, "changed": len(result.changed)},
        )
        return result

    def statistics(self, on: date | None = None) -> PortfolioStatistics:
        """Portfolio dashboard figures for ``on`` (today by default)."""

        day = normalize_date(on or self.today())
        with self._session_factory() as session:
            loans, payments = self._repositories(session)
            snapshots = [
                refresh_status(loan_to_snapshot(loan), today=day) for loan in loans.list_all()
            ]
            received = [payment_to_snapshot(p) for p in payments.list_on(day)]
            latest = [
                (p.loan_id, payment_to_snapshot(p)) for p in payments.list_recent(RECENT_ACTIVITY)
            ]
            clients = SQLModelClientRepository(session).list_recent(RECENT_ACTIVITY)
            return portfolio_statistics(
                snapshots,
                received,
                on=day,
                recent_payments=latest,
                recent_clients=[
                    {
                        "id": client.id,
                        "name": client.name,
                        "document_id": client.document_id,
                        "registered_at": serialize_value(client.registered_at),
                    }
                    for client in clients
                ],
            )


def _payment_columns(payment: PaymentSnapshot) -> dict[str, Any]:
    return {
        "period": payment.period,
        "amount": payment.amount,
        "payment_date": payment.payment_date,
        "due_date": payment.due_date,
        "mora": payment.mora,
        "remaining": payment.remaining,
        "is_late": payment.is_late,
        "is_partial": payment.is_partial,
        "periods_advanced": payment.periods_advanced,
        "mora_settled": payment.mora_settled,
        "overpayment": payment.overpayment,
        "cleared_override_status": (
            payment.cleared_override.value if payment.cleared_override else None
        ),
    }


__all__ = [
    "LoanLedgerService",
    "LoanPreview",
    "MutationResult",
    "StatusSweepResult",
    "loan_to_snapshot",
    "payment_to_snapshot",
]
