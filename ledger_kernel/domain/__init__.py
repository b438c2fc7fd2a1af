"""
Pure domain layer.

Canonical ledger records, actor identity, value normalization and the
injectable clock.  No ORM, database or I/O dependencies.
"""

from ledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from ledger_kernel.domain.dtos import Actor, AuditLogEntry, LedgerRecord
from ledger_kernel.domain.values import (
    AGREEMENT_CATEGORY,
    CollectionStatus,
    LedgerVariant,
    RecordStatus,
    fold_text,
    normalize_payment_method,
    normalize_period,
    normalize_status,
)

__all__ = [
    "AGREEMENT_CATEGORY",
    "Actor",
    "AuditLogEntry",
    "Clock",
    "CollectionStatus",
    "DeterministicClock",
    "LedgerRecord",
    "LedgerVariant",
    "RecordStatus",
    "SystemClock",
    "fold_text",
    "normalize_payment_method",
    "normalize_period",
    "normalize_status",
]
