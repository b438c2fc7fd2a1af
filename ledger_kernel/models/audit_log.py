"""
Module: ledger_kernel.models.audit_log
Responsibility: ORM persistence for the append-only audit log.
Architecture position: Kernel > Models.

Invariants enforced:
    - Rows are only ever inserted.  Nothing in the engine updates or
      deletes audit entries.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import Base
from ledger_kernel.domain.dtos import Actor, AuditLogEntry


class AuditLogModel(Base):
    """ORM model for one audit-log entry."""

    __tablename__ = "audit_log"

    __table_args__ = (
        Index("idx_audit_log_action", "action"),
        Index("idx_audit_log_recorded_at", "recorded_at"),
    )

    actor_name: Mapped[str] = mapped_column(String(200), nullable=False)
    actor_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    actor_role: Mapped[str | None] = mapped_column(String(100), nullable=True)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    details: Mapped[str] = mapped_column(String(4000), nullable=False, default="")
    amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    metadata_json: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    recorded_at: Mapped[datetime] = mapped_column(nullable=False)

    def to_dto(self) -> AuditLogEntry:
        return AuditLogEntry(
            id=self.id,
            actor=Actor(
                name=self.actor_name,
                email=self.actor_email or "",
                role=self.actor_role or "",
            ),
            action=self.action,
            subject=self.subject,
            details=self.details,
            recorded_at=self.recorded_at,
            amount=self.amount,
            metadata=dict(self.metadata_json or {}),
        )

    def __repr__(self) -> str:
        return f"<AuditLogModel {self.action}: {self.subject}>"
