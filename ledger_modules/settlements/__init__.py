"""
Settlements Module.

Negotiated multi-installment settlements: creation, installment
liquidation, finalization and cancellation.
"""

from ledger_modules.settlements.models import (
    NegotiatedState,
    Settlement,
    SettlementDetails,
    SettlementStatus,
)
from ledger_modules.settlements.service import SettlementService
from ledger_modules.settlements.workflows import SETTLEMENT_WORKFLOW

__all__ = [
    "NegotiatedState",
    "SETTLEMENT_WORKFLOW",
    "Settlement",
    "SettlementDetails",
    "SettlementService",
    "SettlementStatus",
]
