"""Selectors for the ledger kernel (read side)."""

from ledger_kernel.selectors.ledger_selector import LedgerSelector

__all__ = ["LedgerSelector"]
