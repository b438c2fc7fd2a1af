"""Mapping layer: column aliases and cell coercion for import rows."""

from ledger_ingestion.mapping.columns import (
    PAYABLE_COLUMNS,
    RECEIVABLE_COLUMNS,
    ColumnSpec,
    columns_for,
    map_row,
    normalize_row,
)
from ledger_ingestion.mapping.engine import (
    CoercionResult,
    coerce,
    parse_amount,
    parse_date,
    parse_text,
)

__all__ = [
    "CoercionResult",
    "ColumnSpec",
    "PAYABLE_COLUMNS",
    "RECEIVABLE_COLUMNS",
    "coerce",
    "columns_for",
    "map_row",
    "normalize_row",
    "parse_amount",
    "parse_date",
    "parse_text",
]
