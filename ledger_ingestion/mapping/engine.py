"""
Mapping engine: pure coercion of raw spreadsheet cells into typed values.

Export files from the source ERP carry Brazilian-formatted currency
("R$ 1.234,56"), dates as ISO strings, dd/mm/yyyy strings or spreadsheet
serial numbers, and blanks everywhere.  Every function here is pure and
raises ``ValueError`` on input it cannot interpret; the column layer turns
that into a row-level import error.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

# Day zero of the spreadsheet serial date system (with the 1900 leap-year bug)
_SERIAL_EPOCH = date(1899, 12, 30)

_CURRENCY_NOISE = re.compile(r"(R\$|\s)")
_DMY = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_SERIAL = re.compile(r"^\d+(\.\d+)?$")


@dataclass(frozen=True)
class CoercionResult:
    """Result of coercing one cell."""

    success: bool
    value: Any = None
    error: str | None = None


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_amount(value: Any) -> Decimal | None:
    """Parse a currency cell. Blank -> None.

    Both separators present means "." groups thousands and "," is decimal.
    A lone "," is the decimal separator.  Several "." with no "," are
    thousand separators; a single "." is a decimal point.
    """
    if is_blank(value):
        return None
    if isinstance(value, bool):
        raise ValueError(f"Not an amount: {value!r}")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))

    text = _CURRENCY_NOISE.sub("", str(value))
    negative = text.startswith("(") and text.endswith(")")
    if negative:
        text = text[1:-1]
    if "," in text:
        text = text.replace(".", "").replace(",", ".")
    elif text.count(".") > 1:
        text = text.replace(".", "")
    try:
        amount = Decimal(text)
    except InvalidOperation as exc:
        raise ValueError(f"Not an amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"Not an amount: {value!r}")
    return -amount if negative else amount


def parse_date(value: Any) -> date | None:
    """Parse a date cell. Blank -> None.

    Accepts date/datetime objects, spreadsheet serial numbers (as numbers
    or digit strings), ISO ``YYYY-MM-DD`` (optionally with a time part) and
    ``dd/mm/yyyy``.
    """
    if is_blank(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Not a date: {value!r}")
    if isinstance(value, (int, float, Decimal)):
        return _from_serial(value)

    text = str(value).strip()
    if _SERIAL.match(text):
        return _from_serial(Decimal(text))
    match = _DMY.match(text)
    if match:
        day, month, year = (int(g) for g in match.groups())
        try:
            return date(year, month, day)
        except ValueError as exc:
            raise ValueError(f"Not a date: {value!r}") from exc
    try:
        return date.fromisoformat(text[:10])
    except ValueError as exc:
        raise ValueError(f"Not a date: {value!r}") from exc


def _from_serial(value: int | float | Decimal) -> date:
    days = int(value)
    if days <= 0:
        raise ValueError(f"Not a spreadsheet serial date: {value!r}")
    return _SERIAL_EPOCH + timedelta(days=days)


def parse_text(value: Any) -> str | None:
    if is_blank(value):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


_PARSERS = {
    "amount": parse_amount,
    "date": parse_date,
    "text": parse_text,
}


def coerce(value: Any, kind: str) -> CoercionResult:
    """Coerce a raw cell to ``kind`` ("amount", "date" or "text")."""
    try:
        return CoercionResult(success=True, value=_PARSERS[kind](value))
    except ValueError as exc:
        return CoercionResult(success=False, error=str(exc))
