"""
Collections Module Service - the debtor desk over the receivable ledger.

Thin glue layer that:
1. Reads receivables and the interaction log through the kernel selectors
2. Calls ledger_engines.debtors for per-debtor profiles and portfolio KPIs
3. Records interactions and notary moves, with audit entries

``DebtorAggregationService`` is read-only and re-reads the store on every
call.  ``CollectionService`` owns its transaction boundary: it commits on
success and rolls back on failure.

Usage:
    debtors = DebtorAggregationService(session, clock=clock)
    to_contact, up_to_date = debtors.partition_by_next_action()

    desk = CollectionService(session, clock=clock)
    desk.record_interaction("ACME LTDA", "PHONE_CALL", actor,
                            next_action_date=date(2024, 3, 1))
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from datetime import date, timedelta
from decimal import Decimal
from typing import TypeVar

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ledger_config.schema import LedgerSettings
from ledger_engines.aging import days_overdue
from ledger_engines.debtors import (
    DebtorProfile,
    PortfolioSummary,
    aggregate_debtors,
    partition_by_next_action,
    summarize_portfolio,
)
from ledger_kernel.db.types import ZERO, round_money
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import Actor, LedgerRecord
from ledger_kernel.domain.values import CollectionStatus, LedgerVariant, RecordStatus
from ledger_kernel.exceptions import RecordNotFoundError, StoreError, ValidationError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.ledger_record import ReceivableRecordModel
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.audit_trail import AuditAction, AuditTrail
from ledger_modules.collections.models import (
    CollectionAction,
    CollectionHistoryEntry,
    DueReminder,
)
from ledger_modules.collections.orm import CollectionHistoryModel
from ledger_modules.settlements.models import SettlementStatus
from ledger_modules.settlements.orm import SettlementModel

logger = get_logger("modules.collections.service")

T = TypeVar("T")

_DIRECTLY_COLLECTABLE = frozenset({RecordStatus.OPEN.value, RecordStatus.OVERDUE.value})


def _read(fn: Callable[[], T], operation: str) -> T:
    try:
        return fn()
    except SQLAlchemyError as exc:
        logger.error("collections_store_read_failed", extra={"operation": operation, "error": str(exc)})
        raise StoreError(str(exc), operation=operation) from exc


class DebtorAggregationService:
    """Derived debtor profiles. Read-only; nothing is cached between calls."""

    def __init__(
        self,
        session: Session,
        settings: LedgerSettings | None = None,
        clock: Clock | None = None,
    ):
        self._session = session
        self._settings = settings or LedgerSettings()
        self._clock = clock or SystemClock()
        self._selector = LedgerSelector(session)

    def summarize(self) -> list[DebtorProfile]:
        """One profile per debtor, largest total overdue first."""
        records = _read(
            lambda: self._selector.all_records(LedgerVariant.RECEIVABLE), "read_receivables"
        )
        next_actions = _read(self._next_actions, "read_collection_history")
        profiles = aggregate_debtors(
            records=records,
            today=self._clock.today(),
            next_actions=next_actions,
            threshold_days=self._settings.aging_threshold_days,
            payment_methods=self._settings.debtor_payment_methods,
            tolerance=self._settings.balance_tolerance,
        )
        logger.info(
            "debtor_profiles_computed",
            extra={"record_count": len(records), "debtor_count": len(profiles)},
        )
        return profiles

    def partition_by_next_action(
        self, profiles: Sequence[DebtorProfile] | None = None
    ) -> tuple[list[DebtorProfile], list[DebtorProfile]]:
        """(to contact today, already followed up)."""
        if profiles is None:
            profiles = self.summarize()
        return partition_by_next_action(profiles, self._clock.today())

    def overdue_titles(self, counterparty_name: str) -> list[LedgerRecord]:
        """A debtor's titles that can be collected directly, oldest due first."""
        today = self._clock.today()
        methods = {m.upper() for m in self._settings.debtor_payment_methods}
        records = _read(
            lambda: self._selector.for_counterparty(LedgerVariant.RECEIVABLE, counterparty_name),
            "read_receivables",
        )
        return [
            r for r in records
            if r.normalized_status in _DIRECTLY_COLLECTABLE
            and r.normalized_payment_method in methods
            and r.outstanding_balance > self._settings.balance_tolerance
            and not r.is_locked
            and not r.is_at_notary
            and r.is_past_due(today)
        ]

    def due_reminders(self, window_days: int | None = None) -> list[DueReminder]:
        """Open, unsettled receivables due between today and today + window."""
        window = self._settings.reminder_window_days if window_days is None else window_days
        if window < 0:
            raise ValidationError(f"window_days cannot be negative, got {window}", field="window_days")
        today = self._clock.today()
        horizon = today + timedelta(days=window)
        records = _read(
            lambda: self._selector.all_records(LedgerVariant.RECEIVABLE), "read_receivables"
        )
        reminders = [
            DueReminder(record=r, days_until_due=(r.due_date - today).days)
            for r in records
            if r.due_date is not None
            and today <= r.due_date <= horizon
            and r.normalized_status == RecordStatus.OPEN.value
            and r.outstanding_balance > self._settings.balance_tolerance
            and not r.is_locked
        ]
        reminders.sort(key=lambda rem: (rem.days_until_due, rem.record.id))
        return reminders

    def portfolio_summary(
        self, profiles: Sequence[DebtorProfile] | None = None
    ) -> PortfolioSummary:
        """Overdue vs agreed totals, recovery rate and aging totals."""
        if profiles is None:
            profiles = self.summarize()
        total_in_agreements = _read(self._active_agreements_total, "read_settlements")
        return summarize_portfolio(profiles, total_in_agreements)

    def _next_actions(self) -> dict[str, date]:
        rows = self._session.scalars(
            select(CollectionHistoryModel)
            .where(CollectionHistoryModel.next_action_date.is_not(None))
            .order_by(CollectionHistoryModel.recorded_at.desc(), CollectionHistoryModel.id)
        )
        actions: dict[str, date] = {}
        for row in rows:
            actions.setdefault(row.counterparty_name, row.next_action_date)
        return actions

    def _active_agreements_total(self) -> Decimal:
        amounts = self._session.scalars(
            select(SettlementModel.agreed_amount).where(
                SettlementModel.status == SettlementStatus.ACTIVE.value
            )
        )
        return round_money(sum(amounts, ZERO))


class CollectionService:
    """
    The collection desk: interaction log and notary moves.

    Transaction boundary: every mutating call commits on success and rolls
    back on failure.
    """

    def __init__(
        self,
        session: Session,
        settings: LedgerSettings | None = None,
        clock: Clock | None = None,
    ):
        self._session = session
        self._settings = settings or LedgerSettings()
        self._clock = clock or SystemClock()
        self._selector = LedgerSelector(session)
        self._audit = AuditTrail(session, self._clock)

    # =========================================================================
    # Interaction log
    # =========================================================================

    def record_interaction(
        self,
        counterparty_name: str,
        action_taken: CollectionAction | str,
        actor: Actor,
        *,
        days_overdue: int = 0,
        amount_due: Decimal = ZERO,
        next_action_date: date | None = None,
        notes: str | None = None,
    ) -> CollectionHistoryEntry:
        """Append one interaction to a debtor's history."""
        if not counterparty_name or not counterparty_name.strip():
            raise ValidationError("Counterparty name cannot be empty", field="counterparty_name")
        action = action_taken.value if isinstance(action_taken, CollectionAction) else action_taken
        if not action or not action.strip():
            raise ValidationError("Action cannot be empty", field="action_taken")
        if days_overdue < 0:
            raise ValidationError("days_overdue cannot be negative", field="days_overdue")
        if amount_due < ZERO:
            raise ValidationError("amount_due cannot be negative", field="amount_due")

        try:
            row = self._add_history(
                counterparty_name, action, actor, days_overdue, amount_due, next_action_date, notes
            )
            entry = row.to_dto()
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise StoreError(str(exc), operation="record_interaction") from exc

        logger.info(
            "collection_interaction_recorded",
            extra={
                "counterparty": counterparty_name,
                "action": action,
                "next_action_date": next_action_date,
                "actor": actor.name,
            },
        )
        return entry

    def history_for(self, counterparty_name: str) -> list[CollectionHistoryEntry]:
        """A debtor's interactions, newest first."""
        def read():
            rows = self._session.scalars(
                select(CollectionHistoryModel)
                .where(CollectionHistoryModel.counterparty_name == counterparty_name)
                .order_by(CollectionHistoryModel.recorded_at.desc(), CollectionHistoryModel.id)
            )
            return [row.to_dto() for row in rows]

        return _read(read, "read_collection_history")

    def recent_history(self, limit: int | None = None) -> list[CollectionHistoryEntry]:
        """Latest interactions across every debtor, newest first."""
        limit = self._settings.history_limit if limit is None else limit

        def read():
            rows = self._session.scalars(
                select(CollectionHistoryModel)
                .order_by(CollectionHistoryModel.recorded_at.desc(), CollectionHistoryModel.id)
                .limit(limit)
            )
            return [row.to_dto() for row in rows]

        return _read(read, "read_collection_history")

    # =========================================================================
    # Notary
    # =========================================================================

    def send_to_notary(self, record_ids: Iterable[str], actor: Actor) -> list[LedgerRecord]:
        """Escalate receivables to the notary.

        Raises:
            ValidationError: no ids, or a title is under an agreement or
                already settled.
            RecordNotFoundError: an id does not exist.
        """
        rows = self._load_for_notary(record_ids, "send_to_notary")
        for row in rows:
            if row.to_dto().is_settled:
                raise ValidationError(
                    f"Record {row.id} has no outstanding balance", field="record_ids"
                )
        today = self._clock.today()

        def apply(row: ReceivableRecordModel) -> None:
            row.collection_status = CollectionStatus.AT_NOTARY.value
            row.status = RecordStatus.AT_NOTARY.value
            row.updated_by = actor.name

        return self._notary_move(
            rows,
            actor,
            apply,
            audit_action=AuditAction.NOTARY_SENT,
            history_action=CollectionAction.NOTARY,
            today=today,
        )

    def remove_from_notary(self, record_ids: Iterable[str], actor: Actor) -> list[LedgerRecord]:
        """Withdraw receivables from the notary back to regular collection.

        Raises:
            ValidationError: no ids, or a title is under an agreement or not
                at the notary.
            RecordNotFoundError: an id does not exist.
        """
        rows = self._load_for_notary(record_ids, "remove_from_notary")
        for row in rows:
            if not row.to_dto().is_at_notary:
                raise ValidationError(f"Record {row.id} is not at the notary", field="record_ids")
        today = self._clock.today()

        def apply(row: ReceivableRecordModel) -> None:
            past_due = row.due_date is not None and row.due_date < today
            row.collection_status = CollectionStatus.COLLECTABLE.value
            row.status = (RecordStatus.OVERDUE if past_due else RecordStatus.OPEN).value
            row.updated_by = actor.name

        return self._notary_move(
            rows,
            actor,
            apply,
            audit_action=AuditAction.NOTARY_REMOVED,
            history_action=CollectionAction.NOTARY_REMOVED,
            today=today,
        )

    def _load_for_notary(
        self, record_ids: Iterable[str], operation: str
    ) -> list[ReceivableRecordModel]:
        ids = list(dict.fromkeys(record_ids))
        if not ids:
            raise ValidationError("At least one record id is required", field="record_ids")
        found = _read(
            lambda: {
                row.id: row
                for row in self._session.scalars(
                    select(ReceivableRecordModel).where(ReceivableRecordModel.id.in_(ids))
                )
            },
            operation,
        )
        rows = []
        for record_id in ids:
            row = found.get(record_id)
            if row is None:
                raise RecordNotFoundError(record_id, LedgerVariant.RECEIVABLE.value)
            if row.settlement_ref is not None:
                raise ValidationError(
                    f"Record {record_id} is locked by settlement {row.settlement_ref}",
                    field="record_ids",
                )
            rows.append(row)
        return rows

    def _notary_move(
        self,
        rows: list[ReceivableRecordModel],
        actor: Actor,
        apply: Callable[[ReceivableRecordModel], None],
        *,
        audit_action: AuditAction,
        history_action: CollectionAction,
        today: date,
    ) -> list[LedgerRecord]:
        by_counterparty: dict[str, list[ReceivableRecordModel]] = {}
        for row in rows:
            by_counterparty.setdefault(row.client_name, []).append(row)

        with LogContext.bind(actor=actor.name):
            try:
                for row in rows:
                    apply(row)
                self._session.flush()
                for name, group in by_counterparty.items():
                    total = round_money(sum((r.outstanding_balance for r in group), ZERO))
                    ids = [r.id for r in group]
                    self._audit.record(
                        actor,
                        audit_action,
                        subject=name,
                        details=f"{len(ids)} title(s): {', '.join(ids)}",
                        amount=total,
                        metadata={"record_ids": ids},
                    )
                    self._add_history(
                        name,
                        history_action.value,
                        actor,
                        max(days_overdue(r.due_date, today) for r in group),
                        total,
                        None,
                        f"{len(ids)} title(s): {', '.join(ids)}",
                    )
                records = [row.to_dto() for row in rows]
                self._session.commit()
            except SQLAlchemyError as exc:
                self._session.rollback()
                raise StoreError(str(exc), operation=audit_action.value.lower()) from exc

            logger.info(
                "notary_move_completed",
                extra={
                    "action": audit_action.value,
                    "record_count": len(rows),
                    "counterparties": sorted(by_counterparty),
                },
            )
        return records

    def _add_history(
        self,
        counterparty_name: str,
        action: str,
        actor: Actor,
        days_overdue_: int,
        amount_due: Decimal,
        next_action_date: date | None,
        notes: str | None,
    ) -> CollectionHistoryModel:
        row = CollectionHistoryModel(
            counterparty_name=counterparty_name,
            recorded_at=self._clock.now(),
            days_overdue=days_overdue_,
            amount_due=amount_due,
            action_taken=action,
            next_action_date=next_action_date,
            notes=notes,
            recorded_by=actor.name,
        )
        self._session.add(row)
        self._session.flush()
        return row
