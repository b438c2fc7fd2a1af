"""
Ledger Kernel - shared core of the reconciliation engine

Persistence, domain types and cross-cutting services used by every module:
- Receivable and payable ledger tables behind one canonical record shape
- Typed exception hierarchy
- Structured JSON logging
- Best-effort audit trail
- Injectable clock
"""

__version__ = "0.1.0"
