"""
AuditTrail -- best-effort, append-only audit logging.

Responsibility:
    Records who did what to which ledger subject: imports, settlement
    creation/liquidation/finalization/cancellation and notary moves.  Also
    answers the two audit reads the engine needs (recent entries and the
    last import of a variant).

Architecture position:
    Kernel > Services.  Flush-only, runs inside the caller's transaction.

Invariants enforced:
    - Audit writes never fail the business operation.  Each write runs in a
      SAVEPOINT; a store error rolls back only that savepoint and is logged
      at WARNING level.
    - Entries are inserted, never updated or deleted.
"""

from decimal import Decimal
from enum import Enum
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import Actor, AuditLogEntry
from ledger_kernel.domain.values import LedgerVariant
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.audit_log import AuditLogModel
from ledger_kernel.services.base import BaseService

logger = get_logger("services.audit_trail")


class AuditAction(str, Enum):
    """Audited operations."""

    IMPORT_RECEIVABLE = "IMPORT_RECEIVABLE"
    IMPORT_PAYABLE = "IMPORT_PAYABLE"
    SETTLEMENT_CREATED = "SETTLEMENT_CREATED"
    INSTALLMENT_LIQUIDATED = "INSTALLMENT_LIQUIDATED"
    SETTLEMENT_FINALIZED = "SETTLEMENT_FINALIZED"
    SETTLEMENT_CANCELED = "SETTLEMENT_CANCELED"
    NOTARY_SENT = "NOTARY_SENT"
    NOTARY_REMOVED = "NOTARY_REMOVED"


_IMPORT_ACTIONS = {
    LedgerVariant.RECEIVABLE: AuditAction.IMPORT_RECEIVABLE,
    LedgerVariant.PAYABLE: AuditAction.IMPORT_PAYABLE,
}


def import_action_for(variant: LedgerVariant) -> AuditAction:
    return _IMPORT_ACTIONS[LedgerVariant(variant)]


class AuditTrail(BaseService):
    """Append-only audit log writer and reader."""

    def __init__(self, session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def record(
        self,
        actor: Actor,
        action: AuditAction,
        subject: str,
        details: str = "",
        amount: Decimal | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> AuditLogEntry | None:
        """Append an entry. Returns None when the write failed."""
        row = AuditLogModel(
            actor_name=actor.name,
            actor_email=actor.email or None,
            actor_role=actor.role or None,
            action=AuditAction(action).value,
            subject=subject,
            details=details,
            amount=amount,
            metadata_json=metadata,
            recorded_at=self._clock.now(),
        )
        try:
            with self.session.begin_nested():
                self.session.add(row)
        except SQLAlchemyError as exc:
            logger.warning(
                "audit_write_failed",
                extra={
                    "action": AuditAction(action).value,
                    "subject": subject,
                    "error": str(exc),
                },
            )
            return None

        logger.debug(
            "audit_entry_recorded",
            extra={"action": row.action, "subject": subject, "audit_id": row.id},
        )
        return row.to_dto()

    def recent(
        self, limit: int = 100, action: AuditAction | None = None
    ) -> list[AuditLogEntry]:
        """Newest-first audit entries."""
        stmt = select(AuditLogModel)
        if action is not None:
            stmt = stmt.where(AuditLogModel.action == AuditAction(action).value)
        stmt = stmt.order_by(
            AuditLogModel.recorded_at.desc(), AuditLogModel.id.desc()
        ).limit(limit)
        return [row.to_dto() for row in self.session.scalars(stmt)]

    def last_import(self, variant: LedgerVariant) -> AuditLogEntry | None:
        """Most recent import entry for a ledger variant."""
        entries = self.recent(limit=1, action=import_action_for(variant))
        return entries[0] if entries else None
