"""
Collections ORM Models (``ledger_modules.collections.orm``).

Responsibility
--------------
SQLAlchemy persistence for the collection interaction log.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``ledger_kernel.db.base``
and sibling ``models.py``.  MUST NOT be imported by ``ledger_kernel``.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import Base
from ledger_kernel.db.types import ZERO
from ledger_modules.collections.models import CollectionHistoryEntry


class CollectionHistoryModel(Base):
    """
    ORM model for one collection desk interaction.

    Guarantees:
        - Append-only: entries are never updated.
        - Indexed by counterparty and recorded_at for the per-debtor dossier.
    """

    __tablename__ = "collection_history"

    __table_args__ = (
        Index("idx_collection_history_counterparty", "counterparty_name"),
        Index("idx_collection_history_recorded_at", "recorded_at"),
    )

    counterparty_name: Mapped[str] = mapped_column(String(255), nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(nullable=False)
    days_overdue: Mapped[int] = mapped_column(nullable=False, default=0)
    amount_due: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    action_taken: Mapped[str] = mapped_column(String(100), nullable=False)
    next_action_date: Mapped[date | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(String(4000), nullable=True)
    recorded_by: Mapped[str] = mapped_column(String(200), nullable=False)

    def to_dto(self) -> CollectionHistoryEntry:
        return CollectionHistoryEntry(
            id=self.id,
            counterparty_name=self.counterparty_name,
            recorded_at=self.recorded_at,
            action_taken=self.action_taken,
            recorded_by=self.recorded_by,
            days_overdue=self.days_overdue,
            amount_due=self.amount_due,
            next_action_date=self.next_action_date,
            notes=self.notes,
        )

    def __repr__(self) -> str:
        return f"<CollectionHistoryModel {self.counterparty_name}: {self.action_taken}>"
