"""
Income Statement (DRE) Module.

Category mapping dictionary and the multi-period income statement report.
"""

from ledger_modules.dre.config import DEFAULT_CATEGORY_RULES, CategoryRule, DREConfig
from ledger_modules.dre.models import (
    CategoryMapping,
    CategorySuggestion,
    DREReport,
    PeriodType,
)
from ledger_modules.dre.service import (
    CategoryMappingService,
    DREReportService,
    resolve_period,
)

__all__ = [
    "DEFAULT_CATEGORY_RULES",
    "CategoryMapping",
    "CategoryMappingService",
    "CategoryRule",
    "CategorySuggestion",
    "DREConfig",
    "DREReport",
    "DREReportService",
    "PeriodType",
    "resolve_period",
]
