"""
Income Statement (DRE) Domain Models (``ledger_modules.dre.models``).

Responsibility
--------------
Frozen value objects for the category dictionary and the generated report.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum

from ledger_engines.income_statement import DREGroup, ReportRow, StatementLine


class PeriodType(str, Enum):
    """Report period selectors offered to the caller."""

    MONTH = "MONTH"
    QUARTER = "QUARTER"
    SEMESTER = "SEMESTER"
    YEAR = "YEAR"


@dataclass(frozen=True)
class CategoryMapping:
    """A confirmed translation of a free-text category into the taxonomy."""

    id: str
    original_label: str
    group: DREGroup
    subgroup: str
    verified: bool = True


@dataclass(frozen=True)
class CategorySuggestion:
    """Heuristic guess for a label the dictionary does not know yet."""

    label: str
    group: DREGroup
    subgroup: str


@dataclass(frozen=True)
class DREReport:
    """A generated income statement."""

    start: date
    end: date
    periods: tuple[str, ...]
    rows: tuple[ReportRow, ...]
    unmapped: tuple[str, ...]

    def row(self, line: StatementLine | str) -> ReportRow:
        key = StatementLine(line).value
        for row in self.rows:
            if row.key == key:
                return row
        raise KeyError(key)

    @property
    def is_complete(self) -> bool:
        """True when every category in range was mapped."""
        return not self.unmapped
