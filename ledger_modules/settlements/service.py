"""
Settlement Module Service - negotiated debt settlements over the receivable ledger.

Thin glue layer that:
1. Calls ledger_engines.installments for the payment schedule
2. Locks the negotiated titles with a conditional (compare-and-swap) update
3. Inserts the generated installment titles and the settlement row
4. Drives the ACTIVE -> LIQUIDATED / CANCELED lifecycle and restores the
   negotiated titles on cancellation

This service owns the transaction boundary: each mutating call runs in one
store transaction, committed on success and rolled back on any failure, so a
failed call leaves the tables exactly as they were.

Usage:
    service = SettlementService(session, clock=clock)
    settlement = service.create(
        counterparty="ACME LTDA",
        negotiated_record_ids=["AR-1", "AR-2"],
        agreed_amount=Decimal("1200.00"),
        installment_count=3,
        frequency=Frequency.MONTHLY,
        first_date=date(2024, 1, 10),
        actor=actor,
    )
    service.liquidate_installment(f"{settlement.id}-1", date(2024, 1, 10), "PIX", actor)
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from datetime import date
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ledger_config.schema import LedgerSettings
from ledger_engines.installments import Frequency, ScheduledInstallment, build_schedule
from ledger_kernel.db.base import new_id
from ledger_kernel.db.types import ZERO, round_money
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import Actor, LedgerRecord
from ledger_kernel.domain.values import (
    AGREEMENT_CATEGORY,
    CollectionStatus,
    LedgerVariant,
    RecordStatus,
)
from ledger_kernel.exceptions import (
    InstallmentsOutstandingError,
    InvalidSettlementTransitionError,
    OptimisticLockError,
    RecordNotFoundError,
    SettlementNotFoundError,
    StoreError,
    ValidationError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.ledger_record import ReceivableRecordModel
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.audit_trail import AuditAction, AuditTrail
from ledger_modules.settlements.models import (
    NegotiatedState,
    Settlement,
    SettlementDetails,
    SettlementStatus,
)
from ledger_modules.settlements.orm import SettlementModel
from ledger_modules.settlements.workflows import SETTLEMENT_WORKFLOW

logger = get_logger("modules.settlements.service")

_BLOCKED = frozenset(
    {
        CollectionStatus.BLOCKED_BY_AGREEMENT.value,
        CollectionStatus.BLOCKED_BY_NOTARY.value,
    }
)

_NOT_NEGOTIABLE = frozenset(
    {
        RecordStatus.PAID.value,
        RecordStatus.CANCELED.value,
        RecordStatus.NEGOTIATED.value,
    }
)


class SettlementService:
    """
    Creates and drives negotiated settlements.

    Transaction boundary: this service commits on success, rolls back on
    failure.  Audit entries are written inside the same transaction, in a
    savepoint, so a failed audit write never fails the operation.
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
    # Creation
    # =========================================================================

    def create(
        self,
        counterparty: str,
        negotiated_record_ids: Sequence[str],
        agreed_amount: Decimal,
        installment_count: int,
        frequency: Frequency | str,
        first_date: date,
        actor: Actor,
        notes: str | None = None,
    ) -> Settlement:
        """
        Negotiate a set of receivables into an installment plan.

        Each negotiated title becomes NEGOTIATED with a zero balance and is
        blocked by the agreement (or by the notary, when it was there);
        ``installment_count`` new titles are generated.

        Raises:
            ValidationError: bad amount, count, frequency or record set.
            RecordNotFoundError: a negotiated id does not exist.
            OptimisticLockError: a title changed under us; nothing is written.
            StoreError: the store rejected the transaction.
        """
        frequency = self._validate_create(
            counterparty, negotiated_record_ids, agreed_amount, installment_count, frequency, first_date
        )
        ids = list(dict.fromkeys(negotiated_record_ids))
        originals = self._load_negotiable(counterparty, ids)
        schedule = build_schedule(
            total=agreed_amount,
            count=installment_count,
            frequency=frequency,
            first_date=first_date,
        )

        settlement_id = new_id()
        original_amount = round_money(sum((r.outstanding_balance for r in originals), ZERO))
        snapshot = {
            r.id: NegotiatedState(
                record_id=r.id,
                outstanding_balance=r.outstanding_balance,
                status=r.status,
                collection_status=r.collection_status or CollectionStatus.COLLECTABLE.value,
            )
            for r in originals
        }

        with LogContext.bind(settlement_id=settlement_id, actor=actor.name):
            logger.info(
                "settlement_create_started",
                extra={
                    "counterparty": counterparty,
                    "record_count": len(originals),
                    "agreed_amount": agreed_amount,
                    "installment_count": installment_count,
                    "frequency": frequency.value,
                },
            )
            try:
                for record in originals:
                    self._lock_original(record, settlement_id, actor)
                self._session.expire_all()

                row = SettlementModel(
                    id=settlement_id,
                    counterparty_name=counterparty,
                    original_amount=original_amount,
                    agreed_amount=round_money(agreed_amount),
                    installment_count=installment_count,
                    frequency=frequency.value,
                    first_installment_date=first_date,
                    status=SettlementStatus.ACTIVE.value,
                    negotiated_record_ids=ids,
                    negotiated_snapshot={rid: s.to_json() for rid, s in snapshot.items()},
                    notes=notes,
                    created_at=self._clock.now(),
                    created_by=actor.name,
                )
                self._session.add(row)
                for item in schedule:
                    installment = self._installment_record(settlement_id, counterparty, item)
                    self._session.add(ReceivableRecordModel.from_dto(installment, actor.name))
                self._session.flush()

                self._audit.record(
                    actor,
                    AuditAction.SETTLEMENT_CREATED,
                    subject=counterparty,
                    details=(
                        f"Settlement {settlement_id}: {len(ids)} title(s) negotiated into "
                        f"{installment_count} {frequency.value.lower()} installment(s)"
                    ),
                    amount=round_money(agreed_amount),
                    metadata={"settlement_id": settlement_id, "record_ids": ids},
                )
                settlement = row.to_dto()
                self._session.commit()
            except SQLAlchemyError as exc:
                self._session.rollback()
                logger.error("settlement_create_failed", extra={"error": str(exc)})
                raise StoreError(str(exc), operation="create_settlement") from exc
            except Exception:
                self._session.rollback()
                raise

            logger.info(
                "settlement_created",
                extra={
                    "counterparty": counterparty,
                    "original_amount": original_amount,
                    "agreed_amount": settlement.agreed_amount,
                },
            )
        return settlement

    def _validate_create(
        self,
        counterparty: str,
        negotiated_record_ids: Sequence[str],
        agreed_amount: Decimal,
        installment_count: int,
        frequency: Frequency | str,
        first_date: date,
    ) -> Frequency:
        if not counterparty or not counterparty.strip():
            raise ValidationError("Counterparty cannot be empty", field="counterparty")
        if not negotiated_record_ids:
            raise ValidationError(
                "At least one record must be negotiated", field="negotiated_record_ids"
            )
        if installment_count is None or installment_count < 1:
            raise ValidationError(
                f"Installment count must be at least 1, got {installment_count}",
                field="installment_count",
            )
        if agreed_amount is None or round_money(agreed_amount) <= ZERO:
            raise ValidationError(
                f"Agreed amount must be positive, got {agreed_amount}", field="agreed_amount"
            )
        if first_date is None:
            raise ValidationError("First installment date is required", field="first_date")
        try:
            return Frequency(frequency)
        except ValueError as exc:
            raise ValidationError(f"Unknown frequency: {frequency}", field="frequency") from exc

    def _load_negotiable(self, counterparty: str, ids: list[str]) -> list[LedgerRecord]:
        try:
            found = self._selector.get_many(LedgerVariant.RECEIVABLE, ids)
        except SQLAlchemyError as exc:
            raise StoreError(str(exc), operation="create_settlement") from exc

        originals = []
        for record_id in ids:
            record = found.get(record_id)
            if record is None:
                raise RecordNotFoundError(record_id, LedgerVariant.RECEIVABLE.value)
            if record.counterparty_name != counterparty:
                raise ValidationError(
                    f"Record {record_id} belongs to {record.counterparty_name}, not {counterparty}",
                    field="negotiated_record_ids",
                )
            if record.is_locked:
                raise ValidationError(
                    f"Record {record_id} is already under settlement {record.settlement_ref}",
                    field="negotiated_record_ids",
                )
            if record.normalized_status in _NOT_NEGOTIABLE:
                raise ValidationError(
                    f"Record {record_id} is {record.normalized_status} and cannot be negotiated",
                    field="negotiated_record_ids",
                )
            originals.append(record)
        return originals

    def _lock_original(self, record: LedgerRecord, settlement_id: str, actor: Actor) -> None:
        """Conditional update: succeeds only if nobody touched the title since we read it."""
        expected = record.collection_status or CollectionStatus.COLLECTABLE.value
        target = (
            CollectionStatus.BLOCKED_BY_NOTARY
            if record.is_at_notary
            else CollectionStatus.BLOCKED_BY_AGREEMENT
        )
        result = self._session.execute(
            update(ReceivableRecordModel)
            .where(
                ReceivableRecordModel.id == record.id,
                ReceivableRecordModel.collection_status == expected,
                ReceivableRecordModel.settlement_ref.is_(None),
            )
            .values(
                status=RecordStatus.NEGOTIATED.value,
                outstanding_balance=ZERO,
                collection_status=target.value,
                settlement_ref=settlement_id,
                updated_by=actor.name,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(
                "settlement_lock_conflict",
                extra={"record_id": record.id, "expected_collection_status": expected},
            )
            raise OptimisticLockError("LedgerRecord", record.id)

    def _installment_record(
        self, settlement_id: str, counterparty: str, item: ScheduledInstallment
    ) -> LedgerRecord:
        return LedgerRecord(
            id=f"{settlement_id}-{item.number}",
            variant=LedgerVariant.RECEIVABLE,
            counterparty_name=counterparty,
            face_amount=item.amount,
            outstanding_balance=item.amount,
            status=RecordStatus.OPEN.value,
            due_date=item.due_date,
            issue_date=self._clock.today(),
            category=AGREEMENT_CATEGORY,
            payment_method=self._settings.installment_payment_method,
            collection_status=CollectionStatus.NON_COLLECTABLE.value,
            settlement_ref=settlement_id,
            document_number=f"PARC {item.label}",
            history=f"Installment {item.label} of settlement {settlement_id}",
            origin=self._settings.installment_origin,
        )

    # =========================================================================
    # Installments
    # =========================================================================

    def liquidate_installment(
        self,
        installment_id: str,
        settlement_date: date,
        method: str,
        actor: Actor,
    ) -> LedgerRecord:
        """
        Mark one installment paid in full.

        Already paid installments are returned untouched.  The parent
        settlement is not transitioned; see ``finalize``.

        Raises:
            RecordNotFoundError: unknown id.
            ValidationError: the id is a negotiated original, or no method.
        """
        if not method or not method.strip():
            raise ValidationError("Payment method is required", field="method")
        if settlement_date is None:
            raise ValidationError("Settlement date is required", field="settlement_date")

        row = self._get_receivable_row(installment_id)
        record = row.to_dto()
        if record.normalized_status == RecordStatus.NEGOTIATED.value or record.collection_status in _BLOCKED:
            raise ValidationError(
                f"Record {installment_id} is a negotiated original, not an installment",
                field="installment_id",
            )
        if (
            record.normalized_status == RecordStatus.PAID.value
            or record.outstanding_balance <= self._settings.balance_tolerance
        ):
            logger.info("installment_already_paid", extra={"record_id": installment_id})
            return record

        with LogContext.bind(settlement_id=record.settlement_ref, actor=actor.name):
            try:
                row.status = RecordStatus.PAID.value
                row.outstanding_balance = ZERO
                row.amount_received = row.face_amount
                row.settlement_date = settlement_date
                row.receipt_method = method.strip()
                row.updated_by = actor.name
                self._session.flush()
                self._audit.record(
                    actor,
                    AuditAction.INSTALLMENT_LIQUIDATED,
                    subject=row.client_name,
                    details=f"Installment {installment_id} paid via {method.strip()}",
                    amount=row.face_amount,
                    metadata={"record_id": installment_id, "settlement_id": record.settlement_ref},
                )
                paid = row.to_dto()
                self._session.commit()
            except SQLAlchemyError as exc:
                self._session.rollback()
                raise StoreError(str(exc), operation="liquidate_installment") from exc

            logger.info(
                "installment_liquidated",
                extra={"record_id": installment_id, "amount": paid.face_amount, "method": method},
            )
        return paid

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def finalize(self, settlement_id: str, actor: Actor, force: bool = False) -> Settlement:
        """
        ACTIVE -> LIQUIDATED.  The negotiated originals are written off as
        paid and become NON_COLLECTABLE.

        Raises:
            SettlementNotFoundError: unknown id.
            InvalidSettlementTransitionError: settlement is not ACTIVE.
            InstallmentsOutstandingError: unpaid installments and not ``force``.
        """
        row = self._get_settlement_row(settlement_id)
        self._check_transition(row, "finalize")
        negotiated = set(row.negotiated_record_ids or ())
        installments, _ = self._split_related(settlement_id, negotiated)
        outstanding = [
            i.id for i in installments
            if i.normalized_status != RecordStatus.PAID.value
            and i.outstanding_balance > self._settings.balance_tolerance
        ]
        if outstanding and not force:
            raise InstallmentsOutstandingError(settlement_id, outstanding)

        today = self._clock.today()
        with LogContext.bind(settlement_id=settlement_id, actor=actor.name):
            try:
                for record_id in row.negotiated_record_ids or ():
                    original = self._session.get(ReceivableRecordModel, record_id)
                    if original is None:
                        logger.warning("settlement_original_missing", extra={"record_id": record_id})
                        continue
                    original.status = RecordStatus.PAID.value
                    original.outstanding_balance = ZERO
                    original.settlement_date = today
                    original.collection_status = CollectionStatus.NON_COLLECTABLE.value
                    original.updated_by = actor.name
                row.status = SettlementStatus.LIQUIDATED.value
                row.updated_by = actor.name
                self._session.flush()
                self._audit.record(
                    actor,
                    AuditAction.SETTLEMENT_FINALIZED,
                    subject=row.counterparty_name,
                    details=f"Settlement {settlement_id} finalized; originals written off",
                    amount=row.agreed_amount,
                    metadata={"settlement_id": settlement_id, "forced": bool(outstanding)},
                )
                settlement = row.to_dto()
                self._session.commit()
            except SQLAlchemyError as exc:
                self._session.rollback()
                raise StoreError(str(exc), operation="finalize_settlement") from exc

            logger.info(
                "settlement_finalized",
                extra={"outstanding_installments": len(outstanding), "forced": force},
            )
        return settlement

    def cancel(self, settlement_id: str, actor: Actor) -> Settlement:
        """
        ACTIVE -> CANCELED.  Deletes the installments, restores every
        negotiated title to its pre-agreement state and deletes the settlement.

        Returns the settlement as it was, with status CANCELED.

        Raises:
            SettlementNotFoundError: unknown id.
            InvalidSettlementTransitionError: settlement is not ACTIVE.
        """
        row = self._get_settlement_row(settlement_id)
        self._check_transition(row, "cancel")
        negotiated = list(row.negotiated_record_ids or ())
        snapshot = row.snapshot_states()
        today = self._clock.today()

        with LogContext.bind(settlement_id=settlement_id, actor=actor.name):
            try:
                related = self._session.scalars(
                    select(ReceivableRecordModel).where(
                        ReceivableRecordModel.settlement_ref == settlement_id
                    )
                ).all()
                installments = [
                    r for r in related
                    if r.id not in negotiated and r.collection_status not in _BLOCKED
                ]
                for installment in installments:
                    self._session.delete(installment)

                restored = 0
                for record_id in negotiated:
                    original = self._session.get(ReceivableRecordModel, record_id)
                    if original is None:
                        logger.warning("settlement_original_missing", extra={"record_id": record_id})
                        continue
                    self._restore_original(original, snapshot.get(record_id), today, actor)
                    restored += 1

                settlement = replace(row.to_dto(), status=SettlementStatus.CANCELED)
                self._session.delete(row)
                self._session.flush()
                self._audit.record(
                    actor,
                    AuditAction.SETTLEMENT_CANCELED,
                    subject=settlement.counterparty_name,
                    details=(
                        f"Settlement {settlement_id} canceled: {len(installments)} installment(s) "
                        f"deleted, {restored} title(s) restored"
                    ),
                    amount=settlement.agreed_amount,
                    metadata={"settlement_id": settlement_id, "record_ids": negotiated},
                )
                self._session.commit()
            except SQLAlchemyError as exc:
                self._session.rollback()
                raise StoreError(str(exc), operation="cancel_settlement") from exc

            logger.info(
                "settlement_canceled",
                extra={"installments_deleted": len(installments), "records_restored": restored},
            )
        return settlement

    def _restore_original(
        self,
        original: ReceivableRecordModel,
        state: NegotiatedState | None,
        today: date,
        actor: Actor,
    ) -> None:
        was_at_notary = original.collection_status == CollectionStatus.BLOCKED_BY_NOTARY.value
        if was_at_notary:
            original.status = RecordStatus.AT_NOTARY.value
        elif original.due_date is not None and original.due_date < today:
            original.status = RecordStatus.OVERDUE.value
        else:
            original.status = RecordStatus.OPEN.value
        original.outstanding_balance = (
            state.outstanding_balance if state is not None else original.face_amount
        )
        original.collection_status = (
            CollectionStatus.AT_NOTARY if was_at_notary else CollectionStatus.COLLECTABLE
        ).value
        original.settlement_ref = None
        original.updated_by = actor.name

    # =========================================================================
    # Queries
    # =========================================================================

    def get(self, settlement_id: str) -> Settlement:
        return self._get_settlement_row(settlement_id).to_dto()

    def list_settlements(self, status: SettlementStatus | str | None = None) -> list[Settlement]:
        """Settlements, newest first."""
        stmt = select(SettlementModel)
        if status is not None:
            stmt = stmt.where(SettlementModel.status == SettlementStatus(status).value)
        stmt = stmt.order_by(SettlementModel.created_at.desc(), SettlementModel.id)
        try:
            return [row.to_dto() for row in self._session.scalars(stmt)]
        except SQLAlchemyError as exc:
            raise StoreError(str(exc), operation="list_settlements") from exc

    def details(self, settlement_id: str) -> SettlementDetails:
        """The settlement with its installments (by due date) and originals."""
        settlement = self.get(settlement_id)
        installments, originals = self._split_related(
            settlement_id, set(settlement.negotiated_record_ids)
        )
        return SettlementDetails(
            settlement=settlement,
            installments=tuple(installments),
            originals=tuple(originals),
        )

    def _split_related(
        self, settlement_id: str, negotiated: set[str]
    ) -> tuple[list[LedgerRecord], list[LedgerRecord]]:
        try:
            related = self._selector.by_settlement_ref(settlement_id)
        except SQLAlchemyError as exc:
            raise StoreError(str(exc), operation="read_settlement_records") from exc
        originals = [
            r for r in related
            if r.id in negotiated or r.collection_status in _BLOCKED
        ]
        original_ids = {r.id for r in originals}
        installments = [r for r in related if r.id not in original_ids]
        return installments, originals

    def _get_settlement_row(self, settlement_id: str) -> SettlementModel:
        try:
            row = self._session.get(SettlementModel, settlement_id)
        except SQLAlchemyError as exc:
            raise StoreError(str(exc), operation="read_settlement") from exc
        if row is None:
            raise SettlementNotFoundError(settlement_id)
        return row

    def _get_receivable_row(self, record_id: str) -> ReceivableRecordModel:
        try:
            row = self._session.get(ReceivableRecordModel, record_id)
        except SQLAlchemyError as exc:
            raise StoreError(str(exc), operation="read_receivable") from exc
        if row is None:
            raise RecordNotFoundError(record_id, LedgerVariant.RECEIVABLE.value)
        return row

    def _check_transition(self, row: SettlementModel, action: str) -> None:
        current = SettlementStatus(row.status)
        if SETTLEMENT_WORKFLOW.transition_for(current, action) is None:
            raise InvalidSettlementTransitionError(row.id, current.value, action)
