"""
ledger_ingestion.domain.types -- Pure frozen dataclasses for the import flow.

ZERO I/O.  Imports only from ledger_kernel.domain.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from ledger_kernel.domain.dtos import LedgerRecord
from ledger_kernel.domain.values import LedgerVariant


class StagedStatus(str, Enum):
    """Classification of an imported record against persisted state."""

    NEW = "NEW"  # id not in the store
    CHANGED = "CHANGED"  # due date, balance or status differs
    UNCHANGED = "UNCHANGED"  # nothing the diff compares has moved


# Fields the diff compares, in reporting order
COMPARED_FIELDS: tuple[str, ...] = ("due_date", "outstanding_balance", "status")


@dataclass(frozen=True)
class StagedItem:
    """One imported record and how it relates to the store."""

    record: LedgerRecord
    status: StagedStatus
    changed_fields: tuple[str, ...] = ()
    previous: LedgerRecord | None = None

    @property
    def variant(self) -> LedgerVariant:
        return self.record.variant

    @property
    def needs_write(self) -> bool:
        return self.status is not StagedStatus.UNCHANGED


def count_by_status(staged: Iterable[StagedItem]) -> dict[StagedStatus, int]:
    """NEW / CHANGED / UNCHANGED counts, every status present."""
    counts = Counter(item.status for item in staged)
    return {status: counts.get(status, 0) for status in StagedStatus}


@dataclass(frozen=True)
class CommitResult:
    """Outcome of a completed batch commit."""

    batch_id: str
    variant: LedgerVariant
    submitted: int  # items handed to the committer
    written: int  # NEW + CHANGED persisted
    inserted: int
    updated: int
    skipped_unchanged: int
    chunk_count: int
    source_filename: str | None = None
