"""
Module: ledger_engines
Responsibility:
    Package entrypoint re-exporting the pure calculation engines: aging,
    debtor aggregation, installment scheduling and the income statement.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  May import the kernel's
    domain and db.types; MUST NOT import ledger_modules or ledger_ingestion.

Invariants enforced:
    - Engines never read the clock; dates are passed in.
    - Decimal-only arithmetic for money.
    - Identical inputs always produce identical outputs.
"""

from ledger_engines.aging import AgeBucket, classify, days_overdue, overdue_buckets
from ledger_engines.debtors import (
    CollectionLevel,
    DebtorProfile,
    PortfolioSummary,
    aggregate_debtors,
    partition_by_next_action,
    qualifies_for_collection,
    summarize_portfolio,
)
from ledger_engines.income_statement import (
    FINANCIAL_SUBGROUP,
    ClassifiedAmount,
    DREGroup,
    ReportRow,
    RowKind,
    StatementLine,
    build_income_statement,
    months_between,
)
from ledger_engines.installments import (
    Frequency,
    ScheduledInstallment,
    add_months,
    build_schedule,
    split_amount,
)

__all__ = [
    "AgeBucket",
    "ClassifiedAmount",
    "CollectionLevel",
    "DREGroup",
    "DebtorProfile",
    "FINANCIAL_SUBGROUP",
    "Frequency",
    "PortfolioSummary",
    "ReportRow",
    "RowKind",
    "ScheduledInstallment",
    "StatementLine",
    "add_months",
    "aggregate_debtors",
    "build_income_statement",
    "build_schedule",
    "classify",
    "days_overdue",
    "months_between",
    "overdue_buckets",
    "partition_by_next_action",
    "qualifies_for_collection",
    "split_amount",
    "summarize_portfolio",
]
