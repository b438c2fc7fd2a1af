"""
Collections Domain Models (``ledger_modules.collections.models``).

Responsibility
--------------
Frozen value objects for the collection desk: the interaction log kept per
debtor and the upcoming-due reminders.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from ledger_kernel.domain.dtos import LedgerRecord


class CollectionAction(str, Enum):
    """Interactions the desk records. Free-text actions are also accepted."""

    PHONE_CALL = "PHONE_CALL"
    WHATSAPP = "WHATSAPP"
    EMAIL = "EMAIL"
    SCHEDULED = "SCHEDULED"
    NO_ANSWER = "NO_ANSWER"
    AGREEMENT = "AGREEMENT"
    DUE_REMINDER = "DUE_REMINDER"
    NOTARY = "NOTARY"
    NOTARY_REMOVED = "NOTARY_REMOVED"


@dataclass(frozen=True)
class CollectionHistoryEntry:
    """One logged interaction with a debtor."""

    id: str
    counterparty_name: str
    recorded_at: datetime
    action_taken: str
    recorded_by: str
    days_overdue: int = 0
    amount_due: Decimal = Decimal("0")
    next_action_date: date | None = None
    notes: str | None = None


@dataclass(frozen=True)
class DueReminder:
    """An open receivable coming due soon."""

    record: LedgerRecord
    days_until_due: int

    @property
    def counterparty_name(self) -> str:
        return self.record.counterparty_name
