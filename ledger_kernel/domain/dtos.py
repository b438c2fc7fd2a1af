"""
DTOs -- Pure domain data transfer objects shared by every module.

Responsibility:
    Defines the canonical, variant-independent shape of a ledger record,
    the acting user, and audit-log entries.  ORM models convert to and from
    these at the persistence boundary so that the diff engine, reports and
    the settlement manager never see table-specific column names.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - outstanding_balance is never negative.
    - period is always a YYYY-MM bucket when a due date is known.

Failure modes:
    - ValueError on construction with a negative balance.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal

from ledger_kernel.db.types import ZERO, is_settled
from ledger_kernel.domain.values import (
    CollectionStatus,
    LedgerVariant,
    RecordStatus,
    is_agreement_category,
    normalize_payment_method,
    normalize_period,
    normalize_status,
)
from ledger_kernel.logging_config import get_logger

logger = get_logger("domain.dtos")


@dataclass(frozen=True)
class Actor:
    """The user on whose behalf a mutating call runs."""

    name: str
    email: str = ""
    role: str = ""

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class LedgerRecord:
    """
    One receivable or payable title in canonical form.

    ``collection_status`` is None on freshly imported records: the source
    system does not own it, and the committer keeps whatever the store holds.
    """

    id: str
    variant: LedgerVariant
    counterparty_name: str
    face_amount: Decimal
    outstanding_balance: Decimal
    status: str
    due_date: date | None = None
    issue_date: date | None = None
    settlement_date: date | None = None
    category: str = ""
    payment_method: str = ""
    period: str | None = None
    collection_status: str | None = None
    settlement_ref: str | None = None
    document_number: str | None = None
    history: str | None = None
    amount_settled: Decimal | None = None
    fees: Decimal | None = None
    payment_key: str | None = None
    origin: str | None = None

    def __post_init__(self) -> None:
        if self.outstanding_balance < ZERO:
            logger.warning(
                "ledger_record_negative_balance",
                extra={"record_id": self.id, "balance": str(self.outstanding_balance)},
            )
            raise ValueError(
                f"Outstanding balance cannot be negative for {self.id}: "
                f"{self.outstanding_balance}"
            )
        if self.period is None and self.due_date is not None:
            object.__setattr__(self, "period", normalize_period(None, self.due_date))

    @property
    def normalized_status(self) -> str:
        return normalize_status(self.status)

    @property
    def normalized_payment_method(self) -> str:
        return normalize_payment_method(self.payment_method)

    @property
    def is_agreement_installment(self) -> bool:
        return is_agreement_category(self.category)

    @property
    def is_locked(self) -> bool:
        """Under an agreement: not independently collectable or settleable."""
        return self.settlement_ref is not None

    @property
    def is_negotiated_original(self) -> bool:
        """A title folded into a settlement, as opposed to one of its installments."""
        return self.is_locked and not self.is_agreement_installment

    @property
    def is_at_notary(self) -> bool:
        return (
            self.collection_status == CollectionStatus.AT_NOTARY.value
            or self.normalized_status == RecordStatus.AT_NOTARY.value
        )

    @property
    def is_settled(self) -> bool:
        return is_settled(self.outstanding_balance)

    def is_past_due(self, today: date) -> bool:
        return self.due_date is not None and self.due_date < today

    def with_changes(self, **changes) -> LedgerRecord:
        return replace(self, **changes)


@dataclass(frozen=True)
class AuditLogEntry:
    """One append-only audit-log row."""

    id: str
    actor: Actor
    action: str
    subject: str
    details: str
    recorded_at: datetime
    amount: Decimal | None = None
    metadata: dict = field(default_factory=dict)
