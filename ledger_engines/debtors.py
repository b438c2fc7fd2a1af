"""
Module: ledger_engines.debtors
Responsibility:
    Roll receivable titles up into one collection profile per debtor:
    how much is overdue (split by age), how much sits at the notary, how
    much is under an active agreement and how much of that agreement is
    itself late.  Also the portfolio-level KPIs built from those profiles.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The caller supplies the
    records, "today" and the next scheduled collection action per debtor.

Invariants enforced:
    - Each title contributes to exactly one of: notary, agreement, direct
      overdue, or nothing.
    - A title at the notary counts toward total_overdue as well as at_notary.
    - Profiles are derived on every call; nothing is cached.

Data flow:
    LedgerRecord* -> qualifies_for_collection -> aggregate_debtors -> DebtorProfile*
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from ledger_engines.aging import classify, days_overdue, overdue_buckets
from ledger_engines.tracer import traced_engine
from ledger_kernel.db.types import BALANCE_TOLERANCE, ZERO, round_money
from ledger_kernel.domain.dtos import LedgerRecord
from ledger_kernel.domain.values import CollectionStatus, RecordStatus

_COLLECTION_STATUSES = frozenset(
    {
        RecordStatus.OPEN.value,
        RecordStatus.OVERDUE.value,
        RecordStatus.NEGOTIATED.value,
        RecordStatus.AT_NOTARY.value,
    }
)


class CollectionLevel(str, Enum):
    """How far collection on a debtor has escalated."""

    REGULAR = "REGULAR"
    COLLECTION = "COLLECTION"
    NOTARY = "NOTARY"


@dataclass(frozen=True)
class DebtorProfile:
    """Derived collection view of one counterparty. Never persisted."""

    counterparty_name: str
    total_overdue: Decimal
    overdue_up_to_threshold: Decimal
    overdue_over_threshold: Decimal
    at_notary: Decimal
    in_agreement: Decimal
    overdue_agreement: Decimal
    title_count: int
    max_days_overdue: int
    collection_level: CollectionLevel
    next_action_date: date | None = None

    def needs_contact(self, today: date) -> bool:
        """No follow-up scheduled, or the scheduled day has come."""
        return self.next_action_date is None or self.next_action_date <= today


@dataclass(frozen=True)
class PortfolioSummary:
    """Collection KPIs across every debtor."""

    total_overdue: Decimal
    total_in_agreements: Decimal
    portfolio_total: Decimal
    recovery_rate: Decimal
    overdue_up_to_threshold: Decimal
    overdue_over_threshold: Decimal
    at_notary: Decimal
    debtor_count: int


def qualifies_for_collection(
    record: LedgerRecord,
    payment_methods: Iterable[str] = ("BOLETO",),
) -> bool:
    """Receivable belongs on the collection desk at all."""
    methods = {m.upper() for m in payment_methods}
    channel_ok = (
        record.normalized_payment_method in methods
        or record.is_agreement_installment
    )
    if not channel_ok:
        return False
    return (
        record.normalized_status in _COLLECTION_STATUSES
        or record.collection_status == CollectionStatus.AT_NOTARY.value
    )


class _Accumulator:
    def __init__(self, name: str):
        self.name = name
        self.total_overdue = ZERO
        self.up_to = ZERO
        self.over = ZERO
        self.at_notary = ZERO
        self.in_agreement = ZERO
        self.overdue_agreement = ZERO
        self.title_count = 0
        self.max_days = 0


@traced_engine("debtor_aggregation", "1.0", fingerprint_fields=("today", "threshold_days"))
def aggregate_debtors(
    *,
    records: Iterable[LedgerRecord],
    today: date,
    next_actions: Mapping[str, date] | None = None,
    threshold_days: int = 15,
    payment_methods: Iterable[str] = ("BOLETO",),
    tolerance: Decimal = BALANCE_TOLERANCE,
) -> list[DebtorProfile]:
    """One profile per qualifying counterparty, largest total overdue first."""
    next_actions = next_actions or {}
    methods = tuple(payment_methods)
    buckets = overdue_buckets(threshold_days)
    up_to_bucket = buckets[0]
    accumulators: dict[str, _Accumulator] = {}

    for record in records:
        if not qualifies_for_collection(record, methods):
            continue
        acc = accumulators.setdefault(
            record.counterparty_name, _Accumulator(record.counterparty_name)
        )
        balance = record.outstanding_balance
        age = days_overdue(record.due_date, today)

        if record.collection_status == CollectionStatus.AT_NOTARY.value:
            acc.at_notary += balance
            acc.total_overdue += balance
            acc.title_count += 1
            acc.max_days = max(acc.max_days, age)
        elif record.settlement_ref is not None:
            acc.in_agreement += balance
            if balance > tolerance and record.is_past_due(today):
                acc.overdue_agreement += balance
        elif balance > tolerance and record.is_past_due(today):
            acc.total_overdue += balance
            if classify(age, buckets) == up_to_bucket:
                acc.up_to += balance
            else:
                acc.over += balance
            acc.title_count += 1
            acc.max_days = max(acc.max_days, age)

    profiles = [
        DebtorProfile(
            counterparty_name=acc.name,
            total_overdue=round_money(acc.total_overdue),
            overdue_up_to_threshold=round_money(acc.up_to),
            overdue_over_threshold=round_money(acc.over),
            at_notary=round_money(acc.at_notary),
            in_agreement=round_money(acc.in_agreement),
            overdue_agreement=round_money(acc.overdue_agreement),
            title_count=acc.title_count,
            max_days_overdue=acc.max_days,
            collection_level=_level(acc),
            next_action_date=next_actions.get(acc.name),
        )
        for acc in accumulators.values()
    ]
    profiles.sort(key=lambda p: (-p.total_overdue, p.counterparty_name))
    return profiles


def _level(acc: _Accumulator) -> CollectionLevel:
    if acc.at_notary > ZERO:
        return CollectionLevel.NOTARY
    if acc.total_overdue > ZERO or acc.overdue_agreement > ZERO:
        return CollectionLevel.COLLECTION
    return CollectionLevel.REGULAR


def partition_by_next_action(
    profiles: Iterable[DebtorProfile], today: date
) -> tuple[list[DebtorProfile], list[DebtorProfile]]:
    """Split into (to contact now, already followed up)."""
    to_contact: list[DebtorProfile] = []
    up_to_date: list[DebtorProfile] = []
    for profile in profiles:
        (to_contact if profile.needs_contact(today) else up_to_date).append(profile)
    return to_contact, up_to_date


def summarize_portfolio(
    profiles: Iterable[DebtorProfile], total_in_agreements: Decimal
) -> PortfolioSummary:
    """Portfolio KPIs.

    recovery_rate is the share of the troubled portfolio already under an
    agreement: agreements / (overdue + agreements) * 100.
    """
    profiles = list(profiles)
    total_overdue = sum((p.total_overdue for p in profiles), ZERO)
    portfolio_total = total_overdue + total_in_agreements
    if portfolio_total > ZERO:
        recovery_rate = round_money(total_in_agreements / portfolio_total * 100)
    else:
        recovery_rate = round_money(ZERO)
    return PortfolioSummary(
        total_overdue=round_money(total_overdue),
        total_in_agreements=round_money(total_in_agreements),
        portfolio_total=round_money(portfolio_total),
        recovery_rate=recovery_rate,
        overdue_up_to_threshold=round_money(
            sum((p.overdue_up_to_threshold for p in profiles), ZERO)
        ),
        overdue_over_threshold=round_money(
            sum((p.overdue_over_threshold for p in profiles), ZERO)
        ),
        at_notary=round_money(sum((p.at_notary for p in profiles), ZERO)),
        debtor_count=len(profiles),
    )
