"""
ledger_ingestion -- Reconciliation of imported ledger batches.

Maps raw import rows onto canonical ledger records, classifies them against
the store (staging) and writes the NEW/CHANGED ones back (batch commit).

Architecture:
    ledger_ingestion/ is a top-level package.  Nothing in kernel/,
    engines/ or modules/ imports from ingestion.
"""
