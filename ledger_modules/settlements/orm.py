"""
Settlement ORM Models (``ledger_modules.settlements.orm``).

Responsibility
--------------
SQLAlchemy persistence for negotiated settlements.  Maps the frozen
``Settlement`` dataclass from ``models.py`` to the ``settlements`` table.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``ledger_kernel.db.base``
and sibling ``models.py``.  MUST NOT be imported by ``ledger_kernel``.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import JSON, CheckConstraint, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_engines.installments import Frequency
from ledger_kernel.db.base import TrackedBase
from ledger_modules.settlements.models import (
    NegotiatedState,
    Settlement,
    SettlementStatus,
)


class SettlementModel(TrackedBase):
    """
    ORM model for a settlement.

    Guarantees:
        - agreed_amount > 0 and installment_count >= 1 (CHECK constraints).
        - negotiated_record_ids is captured verbatim at creation.
        - negotiated_snapshot holds the pre-agreement balance, status and
          collection status of every negotiated title.
    """

    __tablename__ = "settlements"

    __table_args__ = (
        CheckConstraint("agreed_amount > 0", name="ck_settlements_agreed_positive"),
        CheckConstraint("installment_count >= 1", name="ck_settlements_count_positive"),
        Index("idx_settlements_counterparty", "counterparty_name"),
        Index("idx_settlements_status", "status"),
    )

    counterparty_name: Mapped[str] = mapped_column(String(255), nullable=False)
    original_amount: Mapped[Decimal] = mapped_column(nullable=False)
    agreed_amount: Mapped[Decimal] = mapped_column(nullable=False)
    installment_count: Mapped[int] = mapped_column(nullable=False)
    frequency: Mapped[str] = mapped_column(String(20), nullable=False)
    first_installment_date: Mapped[date] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SettlementStatus.ACTIVE.value
    )
    negotiated_record_ids: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    negotiated_snapshot: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    notes: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    def snapshot_states(self) -> dict[str, NegotiatedState]:
        return {
            record_id: NegotiatedState.from_json(record_id, data)
            for record_id, data in (self.negotiated_snapshot or {}).items()
        }

    def to_dto(self) -> Settlement:
        return Settlement(
            id=self.id,
            counterparty_name=self.counterparty_name,
            original_amount=self.original_amount,
            agreed_amount=self.agreed_amount,
            installment_count=self.installment_count,
            frequency=Frequency(self.frequency),
            first_installment_date=self.first_installment_date,
            status=SettlementStatus(self.status),
            negotiated_record_ids=tuple(self.negotiated_record_ids or ()),
            created_at=self.created_at,
            created_by=self.created_by,
            notes=self.notes,
            negotiated_snapshot=self.snapshot_states(),
        )

    def __repr__(self) -> str:
        return f"<SettlementModel {self.id}: {self.counterparty_name} {self.status}>"
