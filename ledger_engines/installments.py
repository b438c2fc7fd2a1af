"""
Module: ledger_engines.installments
Responsibility:
    Build the payment schedule of a settlement: N installments whose
    amounts add up to the agreed amount and whose due dates follow the
    agreed frequency.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - sum(amounts) == round_money(total), to the cent.  Every installment but
      the last gets the cent-truncated share; the last carries the remainder,
      so it is never smaller than the others.
    - Installment 1 is due on the first date.  MONTHLY steps by calendar
      month (day clamped to the month's last day, always computed from the
      first date so Jan 31 -> Feb 29 -> Mar 31), WEEKLY by 7 days and
      BIWEEKLY by 15 days.

Failure modes:
    - ValueError on count < 1 or a non-positive total.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_DOWN, Decimal
from enum import Enum

from ledger_engines.tracer import traced_engine
from ledger_kernel.db.types import round_money


class Frequency(str, Enum):
    """Spacing between installment due dates."""

    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"


_DAY_STEPS = {
    Frequency.WEEKLY: 7,
    Frequency.BIWEEKLY: 15,
}


@dataclass(frozen=True)
class ScheduledInstallment:
    """One line of a payment schedule."""

    number: int
    count: int
    due_date: date
    amount: Decimal

    @property
    def label(self) -> str:
        return f"{self.number}/{self.count}"


def add_months(start: date, months: int) -> date:
    """Same day ``months`` calendar months later, clamped to month end."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def due_date_for(first_date: date, index: int, frequency: Frequency | str) -> date:
    """Due date of the installment at zero-based ``index``."""
    frequency = Frequency(frequency)
    if frequency is Frequency.MONTHLY:
        return add_months(first_date, index)
    return first_date + timedelta(days=_DAY_STEPS[frequency] * index)


def split_amount(total: Decimal, count: int) -> list[Decimal]:
    """Split ``total`` into ``count`` cent amounts that add up exactly."""
    if count < 1:
        raise ValueError(f"Installment count must be at least 1, got {count}")
    total = round_money(total)
    if total <= 0:
        raise ValueError(f"Total must be positive, got {total}")
    share = round_money(total / count, rounding=ROUND_DOWN)
    amounts = [share] * (count - 1)
    amounts.append(total - share * (count - 1))
    return amounts


@traced_engine("installments", "1.0", fingerprint_fields=("total", "count", "frequency", "first_date"))
def build_schedule(
    *,
    total: Decimal,
    count: int,
    frequency: Frequency | str,
    first_date: date,
) -> list[ScheduledInstallment]:
    """Full schedule for a settlement, installment 1 first."""
    amounts = split_amount(total, count)
    return [
        ScheduledInstallment(
            number=i + 1,
            count=count,
            due_date=due_date_for(first_date, i, frequency),
            amount=amount,
        )
        for i, amount in enumerate(amounts)
    ]
