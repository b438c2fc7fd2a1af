"""
Module: ledger_kernel.selectors.ledger_selector
Responsibility: Read adapter over the two ledger tables.  Every method
    returns canonical ``LedgerRecord`` DTOs regardless of which table, and
    which column names, back the variant.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Read-only; never caches.  A diff, report or aggregation run gets the
      state of the store at the moment it asks.

Failure modes:
    - SQLAlchemyError propagates; services translate it to StoreError.
"""

from collections.abc import Iterable

from sqlalchemy import select

from ledger_kernel.domain.dtos import LedgerRecord
from ledger_kernel.domain.values import LedgerVariant, RecordStatus
from ledger_kernel.models.ledger_record import (
    ReceivableRecordModel,
    ledger_model_for,
)
from ledger_kernel.selectors.base import BaseSelector


class LedgerSelector(BaseSelector):
    """Queries over receivable and payable titles."""

    def get(self, variant: LedgerVariant, record_id: str) -> LedgerRecord | None:
        row = self.session.get(ledger_model_for(variant), record_id)
        return row.to_dto() if row is not None else None

    def get_many(
        self, variant: LedgerVariant, record_ids: Iterable[str]
    ) -> dict[str, LedgerRecord]:
        ids = list(dict.fromkeys(record_ids))
        if not ids:
            return {}
        model = ledger_model_for(variant)
        rows = self.session.scalars(select(model).where(model.id.in_(ids)))
        return {row.id: row.to_dto() for row in rows}

    def snapshot(self, variant: LedgerVariant) -> dict[str, LedgerRecord]:
        """Every persisted record of a variant keyed by id."""
        return {record.id: record for record in self.all_records(variant)}

    def all_records(self, variant: LedgerVariant) -> list[LedgerRecord]:
        model = ledger_model_for(variant)
        rows = self.session.scalars(select(model).order_by(model.id))
        return [row.to_dto() for row in rows]

    def in_period_range(
        self, variant: LedgerVariant, start_period: str, end_period: str
    ) -> list[LedgerRecord]:
        """Records whose YYYY-MM period falls in the inclusive range, minus cancellations."""
        model = ledger_model_for(variant)
        rows = self.session.scalars(
            select(model)
            .where(model.period >= start_period, model.period <= end_period)
            .order_by(model.period, model.id)
        )
        records = [row.to_dto() for row in rows]
        return [
            r for r in records
            if r.normalized_status != RecordStatus.CANCELED.value
        ]

    def for_counterparty(
        self, variant: LedgerVariant, counterparty_name: str
    ) -> list[LedgerRecord]:
        model = ledger_model_for(variant)
        column = model.counterparty_column()
        rows = self.session.scalars(
            select(model)
            .where(column == counterparty_name)
            .order_by(model.due_date, model.id)
        )
        return [row.to_dto() for row in rows]

    def by_settlement_ref(self, settlement_id: str) -> list[LedgerRecord]:
        """Receivables currently locked under a settlement."""
        rows = self.session.scalars(
            select(ReceivableRecordModel)
            .where(ReceivableRecordModel.settlement_ref == settlement_id)
            .order_by(ReceivableRecordModel.due_date, ReceivableRecordModel.id)
        )
        return [row.to_dto() for row in rows]
