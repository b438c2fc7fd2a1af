"""
Collections Module.

Debtor profiles, due reminders, the collection interaction log and notary
escalation over the receivable ledger.
"""

from ledger_modules.collections.models import (
    CollectionAction,
    CollectionHistoryEntry,
    DueReminder,
)
from ledger_modules.collections.service import CollectionService, DebtorAggregationService

__all__ = [
    "CollectionAction",
    "CollectionHistoryEntry",
    "CollectionService",
    "DebtorAggregationService",
    "DueReminder",
]
