"""
Ledger Modules.

Thin orchestration layers over the ledger kernel and engines.
Each module contains:
- Domain models (the nouns)
- ORM models (persistence)
- Services (transaction boundary, audit, logging)

Modules:
- DRE: Category mapping dictionary and the income statement report
- Collections: Debtor profiles, reminders, interaction log, notary moves
- Settlements: Negotiated installment plans and their lifecycle

Actual calculations live in ledger_engines.
"""
