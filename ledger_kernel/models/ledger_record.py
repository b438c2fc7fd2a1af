"""
Module: ledger_kernel.models.ledger_record
Responsibility: ORM persistence for the two ledger tables, accounts
    receivable and accounts payable.  The tables keep the column names each
    source layout uses (client vs supplier, amount received vs amount paid);
    ``to_dto`` and ``apply_record`` translate them to and from the canonical
    ``LedgerRecord`` so no caller ever branches on column names.
Architecture position: Kernel > Models.  May import from db/ and domain/.
    MUST NOT import from services/, selectors/ or outer packages.

Invariants enforced:
    - id is the identifier supplied by the source system; there is no default.
    - outstanding_balance >= 0 (CHECK constraint, mirrored by LedgerRecord).
    - collection_status and settlement_ref are engine-owned.  apply_record
      leaves them untouched when the incoming record does not carry them.
    - A title negotiated into a settlement keeps its status, balance and
      settlement date when a source record without settlement_ref is applied.

Failure modes:
    - IntegrityError on a negative balance or a duplicate id.
"""

from datetime import date
from decimal import Decimal
from typing import ClassVar

from sqlalchemy import CheckConstraint, Index, String
from sqlalchemy.orm import InstrumentedAttribute, Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase
from ledger_kernel.db.types import ZERO
from ledger_kernel.domain.dtos import LedgerRecord
from ledger_kernel.domain.values import CollectionStatus, LedgerVariant, is_agreement_category


class _LedgerColumns:
    """Columns shared by both ledger tables."""

    issue_date: Mapped[date | None] = mapped_column(nullable=True)
    due_date: Mapped[date | None] = mapped_column(nullable=True)
    settlement_date: Mapped[date | None] = mapped_column(nullable=True)
    face_amount: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    outstanding_balance: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    category: Mapped[str | None] = mapped_column(String(255), nullable=True)
    document_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    history: Mapped[str | None] = mapped_column(String(4000), nullable=True)
    period: Mapped[str | None] = mapped_column(String(7), nullable=True)
    collection_status: Mapped[str] = mapped_column(
        String(30), nullable=False, default=CollectionStatus.COLLECTABLE.value
    )
    settlement_ref: Mapped[str | None] = mapped_column(String(64), nullable=True)
    origin: Mapped[str | None] = mapped_column(String(50), nullable=True)

    variant: ClassVar[LedgerVariant]

    @classmethod
    def counterparty_column(cls) -> InstrumentedAttribute:
        raise NotImplementedError

    @classmethod
    def payment_method_column(cls) -> InstrumentedAttribute:
        raise NotImplementedError

    def _held_by_settlement(self, record: LedgerRecord) -> bool:
        return (
            self.settlement_ref is not None
            and record.settlement_ref is None
            and not is_agreement_category(self.category)
        )

    def _apply_common(self, record: LedgerRecord, actor_name: str) -> None:
        if not self._held_by_settlement(record):
            self.settlement_date = record.settlement_date
            self.outstanding_balance = record.outstanding_balance
            self.status = record.status
        self.issue_date = record.issue_date
        self.due_date = record.due_date
        self.face_amount = record.face_amount
        self.category = record.category or None
        self.document_number = record.document_number
        self.history = record.history
        self.period = record.period
        self.origin = record.origin or self.origin
        if record.collection_status is not None:
            self.collection_status = record.collection_status
        elif self.collection_status is None:
            self.collection_status = CollectionStatus.COLLECTABLE.value
        if record.settlement_ref is not None:
            self.settlement_ref = record.settlement_ref
        self.updated_by = actor_name

    @classmethod
    def from_dto(cls, record: LedgerRecord, created_by: str):
        """Create a new row from a canonical record."""
        row = cls(id=record.id, created_by=created_by)
        row.apply_record(record, created_by)
        return row

    def apply_record(self, record: LedgerRecord, actor_name: str) -> None:
        raise NotImplementedError


class ReceivableRecordModel(_LedgerColumns, TrackedBase):
    """
    ORM model for accounts receivable titles.

    Guarantees:
        - client_name indexed for debtor aggregation.
        - period indexed for income-statement range scans.
    """

    __tablename__ = "accounts_receivable"

    __table_args__ = (
        CheckConstraint("outstanding_balance >= 0", name="ck_ar_balance_non_negative"),
        Index("idx_ar_client_name", "client_name"),
        Index("idx_ar_period", "period"),
        Index("idx_ar_settlement_ref", "settlement_ref"),
    )

    variant = LedgerVariant.RECEIVABLE

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    client_name: Mapped[str] = mapped_column(String(255), nullable=False)
    receipt_method: Mapped[str | None] = mapped_column(String(100), nullable=True)
    amount_received: Mapped[Decimal | None] = mapped_column(nullable=True)
    fees: Mapped[Decimal | None] = mapped_column(nullable=True)

    @classmethod
    def counterparty_column(cls) -> InstrumentedAttribute:
        return cls.client_name

    @classmethod
    def payment_method_column(cls) -> InstrumentedAttribute:
        return cls.receipt_method

    def apply_record(self, record: LedgerRecord, actor_name: str) -> None:
        self._apply_common(record, actor_name)
        self.client_name = record.counterparty_name
        self.receipt_method = record.payment_method or None
        self.amount_received = record.amount_settled
        self.fees = record.fees

    def to_dto(self) -> LedgerRecord:
        return LedgerRecord(
            id=self.id,
            variant=LedgerVariant.RECEIVABLE,
            counterparty_name=self.client_name,
            face_amount=self.face_amount,
            outstanding_balance=self.outstanding_balance,
            status=self.status,
            due_date=self.due_date,
            issue_date=self.issue_date,
            settlement_date=self.settlement_date,
            category=self.category or "",
            payment_method=self.receipt_method or "",
            period=self.period,
            collection_status=self.collection_status,
            settlement_ref=self.settlement_ref,
            document_number=self.document_number,
            history=self.history,
            amount_settled=self.amount_received,
            fees=self.fees,
            origin=self.origin,
        )

    def __repr__(self) -> str:
        return f"<ReceivableRecordModel {self.id}: {self.client_name} {self.outstanding_balance}>"


class PayableRecordModel(_LedgerColumns, TrackedBase):
    """ORM model for accounts payable titles."""

    __tablename__ = "accounts_payable"

    __table_args__ = (
        CheckConstraint("outstanding_balance >= 0", name="ck_ap_balance_non_negative"),
        Index("idx_ap_supplier_name", "supplier_name"),
        Index("idx_ap_period", "period"),
    )

    variant = LedgerVariant.PAYABLE

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    supplier_name: Mapped[str] = mapped_column(String(255), nullable=False)
    payment_method: Mapped[str | None] = mapped_column(String(100), nullable=True)
    amount_paid: Mapped[Decimal | None] = mapped_column(nullable=True)
    payment_key: Mapped[str | None] = mapped_column(String(255), nullable=True)

    @classmethod
    def counterparty_column(cls) -> InstrumentedAttribute:
        return cls.supplier_name

    @classmethod
    def payment_method_column(cls) -> InstrumentedAttribute:
        return cls.payment_method

    def apply_record(self, record: LedgerRecord, actor_name: str) -> None:
        self._apply_common(record, actor_name)
        self.supplier_name = record.counterparty_name
        self.payment_method = record.payment_method or None
        self.amount_paid = record.amount_settled
        self.payment_key = record.payment_key

    def to_dto(self) -> LedgerRecord:
        return LedgerRecord(
            id=self.id,
            variant=LedgerVariant.PAYABLE,
            counterparty_name=self.supplier_name,
            face_amount=self.face_amount,
            outstanding_balance=self.outstanding_balance,
            status=self.status,
            due_date=self.due_date,
            issue_date=self.issue_date,
            settlement_date=self.settlement_date,
            category=self.category or "",
            payment_method=self.payment_method or "",
            period=self.period,
            collection_status=self.collection_status,
            settlement_ref=self.settlement_ref,
            document_number=self.document_number,
            history=self.history,
            amount_settled=self.amount_paid,
            payment_key=self.payment_key,
            origin=self.origin,
        )

    def __repr__(self) -> str:
        return f"<PayableRecordModel {self.id}: {self.supplier_name} {self.outstanding_balance}>"


LedgerRecordModel = ReceivableRecordModel | PayableRecordModel

_MODELS: dict[LedgerVariant, type[ReceivableRecordModel] | type[PayableRecordModel]] = {
    LedgerVariant.RECEIVABLE: ReceivableRecordModel,
    LedgerVariant.PAYABLE: PayableRecordModel,
}


def ledger_model_for(
    variant: LedgerVariant | str,
) -> type[ReceivableRecordModel] | type[PayableRecordModel]:
    """ORM class backing the given ledger variant."""
    return _MODELS[LedgerVariant(variant)]
