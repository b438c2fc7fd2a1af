"""
Module: ledger_engines.aging
Responsibility:
    Compute how many days a title is past due and classify it into the
    collection desk's aging buckets (up to N days vs over N days).

Architecture position:
    Engines -- pure calculation layer, zero I/O.  "Today" is always passed
    in by the caller; nothing here reads the clock.

Invariants enforced:
    - days_overdue is never negative; a title due today or later is 0.
    - Every positive age falls into exactly one bucket of overdue_buckets().

Usage:
    from ledger_engines.aging import days_overdue, overdue_buckets, classify

    age = days_overdue(date(2024, 1, 10), date(2024, 1, 30))   # 20
    classify(age, overdue_buckets(15)).name                     # "over_15"
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, timezone


@dataclass(frozen=True)
class AgeBucket:
    """
    A contiguous range of overdue days.

    Guarantees:
        - min_days >= 0.
        - max_days >= min_days (when bounded).
    """

    name: str
    min_days: int
    max_days: int | None  # None = unbounded

    def __post_init__(self) -> None:
        if self.min_days < 0:
            raise ValueError("min_days cannot be negative")
        if self.max_days is not None and self.max_days < self.min_days:
            raise ValueError("max_days cannot be less than min_days")

    def contains(self, age_days: int) -> bool:
        """Check if age falls within this bucket."""
        if age_days < self.min_days:
            return False
        if self.max_days is None:
            return True
        return age_days <= self.max_days

    @property
    def is_unbounded(self) -> bool:
        return self.max_days is None


def overdue_buckets(threshold_days: int = 15) -> tuple[AgeBucket, AgeBucket]:
    """The two collection buckets: 1..threshold and above threshold."""
    return (
        AgeBucket(f"up_to_{threshold_days}", 1, threshold_days),
        AgeBucket(f"over_{threshold_days}", threshold_days + 1, None),
    )


def days_overdue(due_date: date | None, as_of: date | datetime) -> int:
    """Days past due, rounded up, floored at zero.

    With a plain ``date`` the result is the whole-day difference.  With a
    ``datetime`` a partially elapsed day counts as a full day, measured from
    midnight UTC of the due date.
    """
    if due_date is None:
        return 0
    if isinstance(as_of, datetime):
        due_start = datetime(due_date.year, due_date.month, due_date.day, tzinfo=timezone.utc)
        moment = as_of if as_of.tzinfo else as_of.replace(tzinfo=timezone.utc)
        elapsed = (moment - due_start).total_seconds() / 86400
        return max(0, math.ceil(elapsed))
    return max(0, (as_of - due_date).days)


def classify(age_days: int, buckets: tuple[AgeBucket, ...]) -> AgeBucket:
    """Bucket containing ``age_days``.

    Raises:
        ValueError: if no bucket contains the age.
    """
    for bucket in buckets:
        if bucket.contains(age_days):
            return bucket
    raise ValueError(f"Age {age_days} does not fall into any bucket")
