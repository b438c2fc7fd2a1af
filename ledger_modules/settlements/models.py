"""
Settlement Domain Models (``ledger_modules.settlements.models``).

Responsibility
--------------
Frozen value objects for negotiated debt settlements: the settlement itself,
the pre-agreement state of each negotiated title and the read model that
pairs a settlement with its installments and originals.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* All monetary fields use ``Decimal``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from ledger_engines.installments import Frequency
from ledger_kernel.domain.dtos import LedgerRecord


class SettlementStatus(str, Enum):
    """Settlement lifecycle states. LIQUIDATED and CANCELED are terminal."""

    ACTIVE = "ACTIVE"
    LIQUIDATED = "LIQUIDATED"
    CANCELED = "CANCELED"


@dataclass(frozen=True)
class NegotiatedState:
    """What a negotiated title looked like before the agreement locked it."""

    record_id: str
    outstanding_balance: Decimal
    status: str
    collection_status: str

    def to_json(self) -> dict[str, str]:
        return {
            "outstanding_balance": str(self.outstanding_balance),
            "status": self.status,
            "collection_status": self.collection_status,
        }

    @classmethod
    def from_json(cls, record_id: str, data: dict) -> NegotiatedState:
        return cls(
            record_id=record_id,
            outstanding_balance=Decimal(str(data["outstanding_balance"])),
            status=data["status"],
            collection_status=data["collection_status"],
        )


@dataclass(frozen=True)
class Settlement:
    """A negotiated multi-installment repayment plan."""

    id: str
    counterparty_name: str
    original_amount: Decimal
    agreed_amount: Decimal
    installment_count: int
    frequency: Frequency
    first_installment_date: date
    status: SettlementStatus
    negotiated_record_ids: tuple[str, ...]
    created_at: datetime | None
    created_by: str
    notes: str | None = None
    negotiated_snapshot: dict[str, NegotiatedState] = field(default_factory=dict)

    @property
    def is_active(self) -> bool:
        return self.status is SettlementStatus.ACTIVE

    @property
    def discount(self) -> Decimal:
        """How much the agreement forgives relative to the original debt."""
        return self.original_amount - self.agreed_amount


@dataclass(frozen=True)
class SettlementDetails:
    """A settlement with its generated installments and negotiated originals."""

    settlement: Settlement
    installments: tuple[LedgerRecord, ...]
    originals: tuple[LedgerRecord, ...]

    @property
    def outstanding_installments(self) -> tuple[LedgerRecord, ...]:
        return tuple(i for i in self.installments if not i.is_settled)

    @property
    def amount_paid(self) -> Decimal:
        return sum(
            (i.face_amount - i.outstanding_balance for i in self.installments),
            Decimal("0"),
        )
