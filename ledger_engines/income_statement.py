"""
Module: ledger_engines.income_statement
Responsibility:
    Roll classified amounts up into the income statement (DRE): group and
    subgroup totals per month, the derived lines (net revenue, gross
    profit, EBITDA, net result, ROI) per month and in total, and the row
    tree handed to the report layer.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Category resolution and
    store reads happen in ``ledger_modules.dre``; this module only does
    arithmetic on already-classified amounts.

Invariants enforced:
    - Additivity: a group row's value for any period equals the sum of its
      subgroup rows for that period.
    - Amounts enter as absolute values; the sign of each line comes from its
      position in the statement, never from the source record.
    - Every period in the requested range has a value on every row (zero
      when nothing was booked).
    - The total ROI is recomputed from total net result and total net
      revenue, never summed across months.
    - Deterministic: subgroups are ordered by value (descending), then label.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum

from ledger_engines.tracer import traced_engine
from ledger_kernel.db.types import ZERO, round_money

FINANCIAL_SUBGROUP = "Financial"


class DREGroup(str, Enum):
    """Top-level income statement taxonomy."""

    REVENUE_GROSS = "REVENUE_GROSS"
    DEDUCTIONS = "DEDUCTIONS"
    COGS = "COGS"
    OPERATING_EXPENSES = "OPERATING_EXPENSES"


class RowKind(str, Enum):
    GROUP = "GROUP"
    SUBGROUP = "SUBGROUP"
    DERIVED = "DERIVED"


class StatementLine(str, Enum):
    """Every top-level row of the report, in display order."""

    REVENUE_GROSS = "REVENUE_GROSS"
    DEDUCTIONS = "DEDUCTIONS"
    NET_REVENUE = "NET_REVENUE"
    COGS = "COGS"
    GROSS_PROFIT = "GROSS_PROFIT"
    OPERATING_EXPENSES = "OPERATING_EXPENSES"
    EBITDA = "EBITDA"
    NET_RESULT = "NET_RESULT"
    ROI = "ROI"


LINE_LABELS: dict[StatementLine, str] = {
    StatementLine.REVENUE_GROSS: "Gross Revenue",
    StatementLine.DEDUCTIONS: "(-) Deductions",
    StatementLine.NET_REVENUE: "(=) Net Revenue",
    StatementLine.COGS: "(-) Cost of Goods Sold",
    StatementLine.GROSS_PROFIT: "(=) Gross Profit",
    StatementLine.OPERATING_EXPENSES: "(-) Operating Expenses",
    StatementLine.EBITDA: "(=) EBITDA",
    StatementLine.NET_RESULT: "(=) Net Result",
    StatementLine.ROI: "ROI (%)",
}


@dataclass(frozen=True)
class ClassifiedAmount:
    """One record's contribution after category resolution."""

    period: str
    group: DREGroup
    subgroup: str
    amount: Decimal


@dataclass(frozen=True)
class ReportRow:
    """
    One line of the statement.

    ``values`` maps every period key (YYYY-MM) to the line's value.  Only
    GROUP rows have children.
    """

    key: str
    label: str
    kind: RowKind
    values: dict[str, Decimal]
    total: Decimal
    children: tuple[ReportRow, ...] = field(default_factory=tuple)
    is_percentage: bool = False

    def value_for(self, period: str) -> Decimal:
        return self.values.get(period, ZERO)


def months_between(start: date, end: date) -> list[str]:
    """Every YYYY-MM from start's month to end's month, inclusive."""
    if end < start:
        raise ValueError(f"End date {end} is before start date {start}")
    periods: list[str] = []
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        periods.append(f"{year:04d}-{month:02d}")
        month += 1
        if month > 12:
            year, month = year + 1, 1
    return periods


def _roi(net_result: Decimal, net_revenue: Decimal) -> Decimal:
    if net_revenue == ZERO:
        return round_money(ZERO)
    return round_money(net_result / net_revenue * 100)


@traced_engine("income_statement", "1.0", fingerprint_fields=("periods",))
def build_income_statement(
    *,
    entries: Iterable[ClassifiedAmount],
    periods: Sequence[str],
) -> list[ReportRow]:
    """Build the ordered statement rows for the given periods."""
    periods = list(periods)
    by_group: dict[DREGroup, dict[str, Decimal]] = defaultdict(lambda: defaultdict(lambda: ZERO))
    by_subgroup: dict[DREGroup, dict[str, dict[str, Decimal]]] = defaultdict(
        lambda: defaultdict(lambda: defaultdict(lambda: ZERO))
    )

    for entry in entries:
        if entry.period not in periods:
            continue
        amount = abs(entry.amount)
        by_group[entry.group][entry.period] += amount
        by_subgroup[entry.group][entry.subgroup][entry.period] += amount

    def group_values(group: DREGroup) -> dict[str, Decimal]:
        return {p: by_group[group][p] for p in periods}

    revenue = group_values(DREGroup.REVENUE_GROSS)
    deductions = group_values(DREGroup.DEDUCTIONS)
    cogs = group_values(DREGroup.COGS)
    opex = group_values(DREGroup.OPERATING_EXPENSES)
    financial = {
        p: by_subgroup[DREGroup.OPERATING_EXPENSES][FINANCIAL_SUBGROUP][p]
        for p in periods
    }

    net_revenue = {p: revenue[p] - deductions[p] for p in periods}
    gross_profit = {p: net_revenue[p] - cogs[p] for p in periods}
    net_result = {p: gross_profit[p] - opex[p] for p in periods}
    ebitda = {p: net_result[p] + financial[p] for p in periods}
    roi = {p: _roi(net_result[p], net_revenue[p]) for p in periods}
    total_roi = _roi(sum(net_result.values(), ZERO), sum(net_revenue.values(), ZERO))

    def group_row(line: StatementLine, group: DREGroup, values: dict[str, Decimal]) -> ReportRow:
        children = [
            ReportRow(
                key=f"{group.value}:{label}",
                label=label,
                kind=RowKind.SUBGROUP,
                values={p: sub_values[p] for p in periods},
                total=sum((sub_values[p] for p in periods), ZERO),
            )
            for label, sub_values in by_subgroup[group].items()
        ]
        children = [c for c in children if c.total != ZERO]
        children.sort(key=lambda row: (-row.total, row.label))
        return ReportRow(
            key=line.value,
            label=LINE_LABELS[line],
            kind=RowKind.GROUP,
            values=values,
            total=sum(values.values(), ZERO),
            children=tuple(children),
        )

    def derived_row(line: StatementLine, values: dict[str, Decimal]) -> ReportRow:
        return ReportRow(
            key=line.value,
            label=LINE_LABELS[line],
            kind=RowKind.DERIVED,
            values=values,
            total=sum(values.values(), ZERO),
        )

    return [
        group_row(StatementLine.REVENUE_GROSS, DREGroup.REVENUE_GROSS, revenue),
        group_row(StatementLine.DEDUCTIONS, DREGroup.DEDUCTIONS, deductions),
        derived_row(StatementLine.NET_REVENUE, net_revenue),
        group_row(StatementLine.COGS, DREGroup.COGS, cogs),
        derived_row(StatementLine.GROSS_PROFIT, gross_profit),
        group_row(StatementLine.OPERATING_EXPENSES, DREGroup.OPERATING_EXPENSES, opex),
        derived_row(StatementLine.EBITDA, ebitda),
        derived_row(StatementLine.NET_RESULT, net_result),
        ReportRow(
            key=StatementLine.ROI.value,
            label=LINE_LABELS[StatementLine.ROI],
            kind=RowKind.DERIVED,
            values=roi,
            total=total_roi,
            is_percentage=True,
        ),
    ]
