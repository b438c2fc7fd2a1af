"""
Income Statement (DRE) Module Service.

Two thin services over the dictionary table and the income statement engine:

- ``CategoryMappingService`` suggests, confirms and lists category mappings.
- ``DREReportService`` reads ledger records for a period range, resolves
  their categories through the dictionary and hands the classified amounts
  to ``ledger_engines.income_statement``.

All arithmetic lives in the engine.  ``CategoryMappingService.confirm`` owns
its transaction boundary; everything else here is read-only.

Usage:
    mappings = CategoryMappingService(session)
    group, subgroup = mappings.suggest("Tarifa Bancária Mensal")
    mappings.confirm("Tarifa Bancária Mensal", group, subgroup, actor)

    report = DREReportService(session).generate(date(2024, 1, 1), date(2024, 3, 31))
"""

from __future__ import annotations

import calendar
from collections.abc import Iterable
from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ledger_engines.income_statement import (
    ClassifiedAmount,
    DREGroup,
    build_income_statement,
    months_between,
)
from ledger_kernel.domain.dtos import Actor, LedgerRecord
from ledger_kernel.domain.values import LedgerVariant
from ledger_kernel.exceptions import StoreError, ValidationError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_modules.dre.config import DREConfig
from ledger_modules.dre.models import (
    CategoryMapping,
    CategorySuggestion,
    DREReport,
    PeriodType,
)
from ledger_modules.dre.orm import CategoryMappingModel

logger = get_logger("modules.dre.service")


def resolve_period(
    period_type: PeriodType | str,
    year: int,
    index: int | None = None,
) -> tuple[date, date]:
    """
    Concrete (start, end) dates for a period selector.

    ``index`` is the month (1-12), quarter (1-4) or semester (1-2); it is
    ignored for YEAR.
    """
    period_type = PeriodType(period_type)
    if period_type is PeriodType.YEAR:
        return date(year, 1, 1), date(year, 12, 31)

    span, limit = {
        PeriodType.MONTH: (1, 12),
        PeriodType.QUARTER: (3, 4),
        PeriodType.SEMESTER: (6, 2),
    }[period_type]
    if index is None or not 1 <= index <= limit:
        raise ValidationError(
            f"{period_type.value} index must be between 1 and {limit}, got {index}",
            field="index",
        )
    first_month = (index - 1) * span + 1
    last_month = first_month + span - 1
    last_day = calendar.monthrange(year, last_month)[1]
    return date(year, first_month, 1), date(year, last_month, last_day)


class CategoryMappingService:
    """
    The category mapping dictionary.

    ``suggest`` is a pure keyword heuristic; ``confirm`` upserts by label and
    commits.
    """

    def __init__(self, session: Session, config: DREConfig | None = None):
        self._session = session
        self._config = config or DREConfig()

    def suggest(self, label: str) -> tuple[DREGroup, str]:
        return self._config.suggest(label)

    def suggest_all(self, labels: Iterable[str]) -> list[CategorySuggestion]:
        """Suggestions for a set of labels, in label order."""
        suggestions = []
        for label in sorted(set(labels)):
            group, subgroup = self.suggest(label)
            suggestions.append(CategorySuggestion(label=label, group=group, subgroup=subgroup))
        return suggestions

    def confirm(
        self,
        label: str,
        group: DREGroup | str,
        subgroup: str,
        actor: Actor,
    ) -> CategoryMapping:
        """Persist a verified mapping, overwriting any existing one for the label.

        Raises:
            ValidationError: empty label or subgroup, or a group outside the
                taxonomy.
            StoreError: the write failed.
        """
        if not label or not label.strip():
            raise ValidationError("Category label cannot be empty", field="label")
        if not subgroup or not subgroup.strip():
            raise ValidationError("Subgroup cannot be empty", field="subgroup")
        try:
            group = DREGroup(group)
        except ValueError as exc:
            raise ValidationError(
                f"Unknown income statement group: {group}", field="group"
            ) from exc

        try:
            row = self._session.scalars(
                select(CategoryMappingModel).where(CategoryMappingModel.original_label == label)
            ).first()
            if row is None:
                row = CategoryMappingModel(
                    original_label=label,
                    group=group.value,
                    subgroup=subgroup.strip(),
                    verified=True,
                    created_by=actor.name,
                )
                self._session.add(row)
            else:
                row.group = group.value
                row.subgroup = subgroup.strip()
                row.verified = True
                row.updated_by = actor.name
            self._session.flush()
            mapping = row.to_dto()
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise StoreError(str(exc), operation="confirm_mapping") from exc

        logger.info(
            "category_mapping_confirmed",
            extra={
                "label": label,
                "group": group.value,
                "subgroup": mapping.subgroup,
                "actor": actor.name,
            },
        )
        return mapping

    def get_mapping(self, label: str) -> CategoryMapping | None:
        row = self._session.scalars(
            select(CategoryMappingModel).where(CategoryMappingModel.original_label == label)
        ).first()
        return row.to_dto() if row is not None else None

    def list_mappings(self) -> list[CategoryMapping]:
        rows = self._session.scalars(
            select(CategoryMappingModel).order_by(CategoryMappingModel.original_label)
        )
        return [row.to_dto() for row in rows]

    def mapping_index(self) -> dict[str, CategoryMapping]:
        return {m.original_label: m for m in self.list_mappings()}

    def find_unmapped(self, records: Iterable[LedgerRecord]) -> set[str]:
        """Distinct non-empty category labels with no dictionary entry."""
        known = self.mapping_index()
        return {
            record.category
            for record in records
            if record.category and record.category not in known
        }


class DREReportService:
    """Generates the income statement for a date range. Read-only."""

    def __init__(self, session: Session, mappings: CategoryMappingService | None = None):
        self._session = session
        self._selector = LedgerSelector(session)
        self._mappings = mappings or CategoryMappingService(session)

    def generate(self, start: date, end: date) -> DREReport:
        """Build the statement for every month from start's month to end's month.

        Raises:
            ValidationError: end is before start.
            StoreError: a store read failed.
        """
        periods = self._periods(start, end)
        records = self._records_in_range(periods)
        index = self._read(self._mappings.mapping_index, "read_mappings")

        entries: list[ClassifiedAmount] = []
        unmapped: set[str] = set()
        for record in records:
            if not record.category:
                continue
            mapping = index.get(record.category)
            if mapping is None:
                unmapped.add(record.category)
                continue
            entries.append(
                ClassifiedAmount(
                    period=record.period,
                    group=mapping.group,
                    subgroup=mapping.subgroup,
                    amount=record.face_amount,
                )
            )

        rows = build_income_statement(entries=entries, periods=periods)
        report = DREReport(
            start=start,
            end=end,
            periods=tuple(periods),
            rows=tuple(rows),
            unmapped=tuple(sorted(unmapped)),
        )
        logger.info(
            "dre_report_generated",
            extra={
                "start": start,
                "end": end,
                "record_count": len(records),
                "classified_count": len(entries),
                "unmapped_count": len(report.unmapped),
            },
        )
        return report

    def check_unmapped(self, start: date, end: date) -> list[str]:
        """Category labels in the range that still need a mapping, sorted."""
        records = self._records_in_range(self._periods(start, end))
        unmapped = self._read(lambda: self._mappings.find_unmapped(records), "read_mappings")
        return sorted(unmapped)

    def _periods(self, start: date, end: date) -> list[str]:
        try:
            return months_between(start, end)
        except ValueError as exc:
            raise ValidationError(str(exc), field="end") from exc

    def _records_in_range(self, periods: list[str]) -> list[LedgerRecord]:
        def read() -> list[LedgerRecord]:
            records: list[LedgerRecord] = []
            for variant in LedgerVariant:
                records.extend(
                    self._selector.in_period_range(variant, periods[0], periods[-1])
                )
            return records

        return self._read(read, "read_ledger")

    def _read(self, fn, operation: str):
        try:
            return fn()
        except SQLAlchemyError as exc:
            logger.error("dre_store_read_failed", extra={"operation": operation, "error": str(exc)})
            raise StoreError(str(exc), operation=operation) from exc
