"""
BatchCommitter -- persist the NEW and CHANGED items of a staged import.

Responsibility:
    Writes staged records to their ledger table in fixed-size chunks and
    appends one audit entry summarising the import.

Architecture position:
    Ingestion > Services.  Owns its transaction boundary: every chunk is
    committed on its own.

Invariants enforced:
    - UNCHANGED items are never written, for either ledger.
    - Chunks are dispatched sequentially.  The first failing chunk is rolled
      back and stops the run; earlier chunks stay committed.
    - Writes are upserts keyed by id, so re-running a partially committed
      batch is safe.
    - collection_status and settlement_ref already in the store survive an
      update.  New rows start COLLECTABLE.

Failure modes:
    - PartialCommitError: chunk N failed after chunks 1..N-1 committed.
    - ValidationError: the staged items mix ledger variants, or the variant
      cannot be determined.
"""

from __future__ import annotations

from collections.abc import Sequence
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ledger_config.schema import LedgerSettings
from ledger_ingestion.domain.types import CommitResult, StagedItem, StagedStatus
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import Actor, AuditLogEntry
from ledger_kernel.domain.values import LedgerVariant
from ledger_kernel.exceptions import PartialCommitError, ValidationError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.ledger_record import ledger_model_for
from ledger_kernel.services.audit_trail import AuditTrail, import_action_for

logger = get_logger("ingestion.commit_service")


def chunked(items: Sequence, size: int) -> list[Sequence]:
    return [items[start:start + size] for start in range(0, len(items), size)]


class BatchCommitter:
    """Chunked, fail-fast writer for staged ledger records."""

    def __init__(
        self,
        session: Session,
        settings: LedgerSettings | None = None,
        clock: Clock | None = None,
    ):
        self._session = session
        self._settings = settings or LedgerSettings()
        self._clock = clock or SystemClock()
        self._audit = AuditTrail(session, self._clock)

    def commit(
        self,
        staged: Sequence[StagedItem],
        actor: Actor,
        batch_size: int | None = None,
        source_filename: str | None = None,
        variant: LedgerVariant | None = None,
    ) -> CommitResult:
        """Write NEW and CHANGED items and record the import.

        ``variant`` only needs to be passed when ``staged`` may be empty.
        """
        variant = self._resolve_variant(staged, variant)
        size = batch_size or self._settings.commit_batch_size
        if size < 1:
            raise ValidationError(f"batch_size must be positive, got {size}", field="batch_size")

        to_write = [item for item in staged if item.status is not StagedStatus.UNCHANGED]
        skipped = len(staged) - len(to_write)
        chunks = chunked(to_write, size)
        batch_id = str(uuid4())

        with LogContext.bind(batch_id=batch_id, actor=actor.name, variant=variant.value):
            logger.info(
                "batch_commit_started",
                extra={
                    "submitted": len(staged),
                    "to_write": len(to_write),
                    "skipped_unchanged": skipped,
                    "chunk_count": len(chunks),
                    "batch_size": size,
                    "source_filename": source_filename,
                },
            )

            committed = inserted = updated = 0
            for chunk_number, chunk in enumerate(chunks, start=1):
                try:
                    chunk_inserted, chunk_updated = self._write_chunk(chunk, variant, actor)
                    self._session.commit()
                except SQLAlchemyError as exc:
                    self._session.rollback()
                    logger.error(
                        "batch_commit_chunk_failed",
                        extra={
                            "chunk": chunk_number,
                            "committed_count": committed,
                            "error": str(exc),
                        },
                    )
                    raise PartialCommitError(
                        committed_count=committed,
                        total=len(to_write),
                        failed_chunk=chunk_number,
                        store_message=str(exc),
                    ) from exc
                except Exception:
                    self._session.rollback()
                    logger.error(
                        "batch_commit_chunk_failed",
                        extra={"chunk": chunk_number, "committed_count": committed},
                        exc_info=True,
                    )
                    raise

                committed += len(chunk)
                inserted += chunk_inserted
                updated += chunk_updated
                logger.debug(
                    "batch_commit_chunk_written",
                    extra={"chunk": chunk_number, "committed_count": committed},
                )

            self._record_import(actor, variant, committed, skipped, source_filename, batch_id)

            result = CommitResult(
                batch_id=batch_id,
                variant=variant,
                submitted=len(staged),
                written=committed,
                inserted=inserted,
                updated=updated,
                skipped_unchanged=skipped,
                chunk_count=len(chunks),
                source_filename=source_filename,
            )
            logger.info(
                "batch_commit_completed",
                extra={"written": committed, "inserted": inserted, "updated": updated},
            )
        return result

    def last_import(self, variant: LedgerVariant) -> AuditLogEntry | None:
        """Most recent import audit entry for the variant."""
        return self._audit.last_import(variant)

    def _resolve_variant(
        self, staged: Sequence[StagedItem], variant: LedgerVariant | None
    ) -> LedgerVariant:
        variants = {item.variant for item in staged}
        if variant is not None:
            variants.add(LedgerVariant(variant))
        if len(variants) > 1:
            raise ValidationError(
                "Staged items mix ledger variants: "
                + ", ".join(sorted(v.value for v in variants)),
                field="variant",
            )
        if not variants:
            raise ValidationError(
                "Cannot determine ledger variant of an empty batch", field="variant"
            )
        return variants.pop()

    def _write_chunk(
        self, chunk: Sequence[StagedItem], variant: LedgerVariant, actor: Actor
    ) -> tuple[int, int]:
        model = ledger_model_for(variant)
        ids = [item.record.id for item in chunk]
        existing = {
            row.id: row
            for row in self._session.scalars(select(model).where(model.id.in_(ids)))
        }
        inserted = updated = 0
        for item in chunk:
            row = existing.get(item.record.id)
            if row is None:
                self._session.add(model.from_dto(item.record, actor.name))
                inserted += 1
            else:
                row.apply_record(item.record, actor.name)
                updated += 1
        self._session.flush()
        return inserted, updated

    def _record_import(
        self,
        actor: Actor,
        variant: LedgerVariant,
        written: int,
        skipped: int,
        source_filename: str | None,
        batch_id: str,
    ) -> None:
        source = source_filename or "unnamed import"
        self._audit.record(
            actor,
            import_action_for(variant),
            subject=source,
            details=f"{written} {variant.value} record(s) imported from {source}",
            metadata={
                "batch_id": batch_id,
                "written": written,
                "skipped_unchanged": skipped,
                "source_filename": source_filename,
            },
        )
        try:
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            logger.warning(
                "audit_write_failed",
                extra={"action": import_action_for(variant).value, "error": str(exc)},
            )
