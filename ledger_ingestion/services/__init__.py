"""Ingestion services (diff, commit)."""

from ledger_ingestion.services.commit_service import BatchCommitter
from ledger_ingestion.services.staging_service import StagingService, compare_records

__all__ = [
    "BatchCommitter",
    "StagingService",
    "compare_records",
]
