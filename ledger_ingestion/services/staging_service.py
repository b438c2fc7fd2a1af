"""
Staging service: classify an imported batch against persisted ledger state.

Each imported record comes back as NEW, CHANGED (with the fields that
moved) or UNCHANGED.  The service reads the store once per call and writes
nothing, so running it twice on the same input and the same store gives the
same answer.

Id matching is exact for both ledgers.  The legacy payable import folded
case, accents and spacing before comparing ids; that remains available
behind ``LedgerSettings.fold_payable_ids``.  With folding off, an exact miss
that a folded comparison would have hit is logged as
``staging_id_fold_mismatch`` so the operator can see it.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ledger_config.schema import LedgerSettings
from ledger_ingestion.domain.types import StagedItem, StagedStatus, count_by_status
from ledger_ingestion.mapping.columns import normalize_row
from ledger_kernel.db.types import amounts_match
from ledger_kernel.domain.dtos import LedgerRecord
from ledger_kernel.domain.values import LedgerVariant, fold_text, normalize_status
from ledger_kernel.exceptions import InvalidImportRowError, StoreError, ValidationError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.selectors.ledger_selector import LedgerSelector

logger = get_logger("ingestion.staging_service")


def compare_records(
    imported: LedgerRecord,
    stored: LedgerRecord,
    tolerance,
) -> tuple[str, ...]:
    """Names of the compared fields that differ, in a fixed order."""
    changed: list[str] = []
    if imported.due_date != stored.due_date:
        changed.append("due_date")
    if not amounts_match(
        imported.outstanding_balance, stored.outstanding_balance, tolerance
    ):
        changed.append("outstanding_balance")
    if normalize_status(imported.status) != normalize_status(stored.status):
        changed.append("status")
    return tuple(changed)


class StagingService:
    """Diff imported ledger records against the store. Read-only."""

    def __init__(self, session: Session, settings: LedgerSettings | None = None):
        self._session = session
        self._settings = settings or LedgerSettings()
        self._selector = LedgerSelector(session)

    def diff_rows(
        self,
        rows: Sequence[Mapping[str, Any]],
        variant: LedgerVariant,
    ) -> list[StagedItem]:
        """Normalize raw import rows, then diff them.

        Raises:
            InvalidImportRowError: on the first row that cannot be read.
        """
        variant = LedgerVariant(variant)
        records = [
            normalize_row(row, variant, row_number, origin=self._settings.import_origin)
            for row_number, row in enumerate(rows, start=1)
        ]
        return self.diff_batch(records, variant)

    def diff_batch(
        self,
        imported: Iterable[LedgerRecord],
        variant: LedgerVariant,
    ) -> list[StagedItem]:
        """Classify each imported record as NEW, CHANGED or UNCHANGED.

        Raises:
            ValidationError: a record of the other variant is in the batch.
            InvalidImportRowError: the same id appears twice in the batch.
            StoreError: the store read failed.
        """
        variant = LedgerVariant(variant)
        imported = list(imported)
        self._check_batch(imported, variant)

        with LogContext.bind(variant=variant.value):
            logger.info("staging_diff_started", extra={"record_count": len(imported)})
            try:
                stored = self._selector.snapshot(variant)
            except SQLAlchemyError as exc:
                logger.error("staging_store_read_failed", extra={"error": str(exc)})
                raise StoreError(str(exc), operation="diff_batch") from exc

            folded_index = {fold_text(record_id): record_id for record_id in stored}
            fold_ids = variant is LedgerVariant.PAYABLE and self._settings.fold_payable_ids

            staged = [
                self._classify(record, stored, folded_index, fold_ids)
                for record in imported
            ]
            counts = count_by_status(staged)
            logger.info(
                "staging_diff_completed",
                extra={status.value.lower(): n for status, n in counts.items()},
            )
        return staged

    def _check_batch(self, imported: list[LedgerRecord], variant: LedgerVariant) -> None:
        seen: set[str] = set()
        for position, record in enumerate(imported, start=1):
            if record.variant is not variant:
                raise ValidationError(
                    f"Record {record.id} is {record.variant.value}, batch is {variant.value}",
                    field="variant",
                )
            if record.id in seen:
                raise InvalidImportRowError(position, f"duplicate id {record.id}")
            seen.add(record.id)

    def _classify(
        self,
        record: LedgerRecord,
        stored: dict[str, LedgerRecord],
        folded_index: dict[str, str],
        fold_ids: bool,
    ) -> StagedItem:
        current = stored.get(record.id)
        if current is None:
            folded_match = folded_index.get(fold_text(record.id))
            if folded_match is not None and fold_ids:
                current = stored[folded_match]
                record = record.with_changes(id=current.id)
            elif folded_match is not None:
                logger.warning(
                    "staging_id_fold_mismatch",
                    extra={"imported_id": record.id, "stored_id": folded_match},
                )

        if current is None:
            return StagedItem(record=record, status=StagedStatus.NEW)

        changed = compare_records(record, current, self._settings.balance_tolerance)
        if changed and current.is_negotiated_original:
            # Balance and status belong to the settlement until it is cancelled
            logger.warning(
                "staging_negotiated_record_held",
                extra={
                    "record_id": current.id,
                    "settlement_id": current.settlement_ref,
                    "changed_fields": changed,
                },
            )
            return StagedItem(record=record, status=StagedStatus.UNCHANGED, previous=current)
        if changed:
            return StagedItem(
                record=record,
                status=StagedStatus.CHANGED,
                changed_fields=changed,
                previous=current,
            )
        return StagedItem(record=record, status=StagedStatus.UNCHANGED, previous=current)
