"""
ledger_ingestion.domain -- Pure types for the import flow.

ZERO I/O. Imports only from ledger_kernel/domain/.
"""

from ledger_ingestion.domain.types import (
    COMPARED_FIELDS,
    CommitResult,
    StagedItem,
    StagedStatus,
    count_by_status,
)

__all__ = [
    "COMPARED_FIELDS",
    "CommitResult",
    "StagedItem",
    "StagedStatus",
    "count_by_status",
]
