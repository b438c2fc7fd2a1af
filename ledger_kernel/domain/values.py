"""
Value normalization for free-text ledger fields.

Source systems send statuses, payment methods and competency periods as
loosely formatted text ("Em aberto", "em cartório", "03/2024").  Every
comparison in the engine goes through these helpers so that case, accents
and spacing never decide an outcome.  Pure functions, zero I/O.
"""

import re
import unicodedata
from datetime import date
from enum import Enum

_WHITESPACE = re.compile(r"\s+")


class LedgerVariant(str, Enum):
    """Which ledger table a record lives in."""

    RECEIVABLE = "receivable"
    PAYABLE = "payable"


class RecordStatus(str, Enum):
    """Normalized record statuses."""

    OPEN = "OPEN"
    OVERDUE = "OVERDUE"
    PAID = "PAID"
    CANCELED = "CANCELED"
    NEGOTIATED = "NEGOTIATED"
    AT_NOTARY = "AT_NOTARY"


class CollectionStatus(str, Enum):
    """Collection workflow state owned by the engine, not by the source."""

    COLLECTABLE = "COLLECTABLE"
    BLOCKED_BY_AGREEMENT = "BLOCKED_BY_AGREEMENT"
    BLOCKED_BY_NOTARY = "BLOCKED_BY_NOTARY"
    AT_NOTARY = "AT_NOTARY"
    NON_COLLECTABLE = "NON_COLLECTABLE"


# Category given to installments generated by a settlement
AGREEMENT_CATEGORY = "COMMERCIAL_AGREEMENT"
_LEGACY_AGREEMENT_CATEGORIES = frozenset({"ACORDO COMERCIAL", "COMMERCIAL AGREEMENT"})

_STATUS_ALIASES: dict[str, RecordStatus] = {
    "OPEN": RecordStatus.OPEN,
    "ABERTO": RecordStatus.OPEN,
    "EM ABERTO": RecordStatus.OPEN,
    "A VENCER": RecordStatus.OPEN,
    "PENDENTE": RecordStatus.OPEN,
    "OVERDUE": RecordStatus.OVERDUE,
    "VENCIDO": RecordStatus.OVERDUE,
    "ATRASADO": RecordStatus.OVERDUE,
    "EM ATRASO": RecordStatus.OVERDUE,
    "PAID": RecordStatus.PAID,
    "PAGO": RecordStatus.PAID,
    "RECEBIDO": RecordStatus.PAID,
    "LIQUIDADO": RecordStatus.PAID,
    "QUITADO": RecordStatus.PAID,
    "CANCELED": RecordStatus.CANCELED,
    "CANCELLED": RecordStatus.CANCELED,
    "CANCELADO": RecordStatus.CANCELED,
    "NEGOTIATED": RecordStatus.NEGOTIATED,
    "NEGOCIADO": RecordStatus.NEGOTIATED,
    "AT_NOTARY": RecordStatus.AT_NOTARY,
    "AT NOTARY": RecordStatus.AT_NOTARY,
    "CARTORIO": RecordStatus.AT_NOTARY,
    "EM CARTORIO": RecordStatus.AT_NOTARY,
    "PROTESTADO": RecordStatus.AT_NOTARY,
}

_PERIOD_MM_YYYY = re.compile(r"^(\d{1,2})[/-](\d{4})$")
_PERIOD_YYYY_MM = re.compile(r"^(\d{4})-(\d{1,2})(?:-\d{1,2}\b.*)?$")


def fold_text(value: str | None) -> str:
    """Trim, upper-case, strip diacritics and collapse inner whitespace."""
    if not value:
        return ""
    decomposed = unicodedata.normalize("NFD", str(value))
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    return _WHITESPACE.sub(" ", stripped).strip().upper()


def normalize_status(value: str | None) -> str:
    """Canonical status code for a free-text status.

    Known aliases map to a RecordStatus value; anything else comes back
    folded so two spellings of the same unknown status still compare equal.
    """
    folded = fold_text(value)
    status = _STATUS_ALIASES.get(folded)
    if status is not None:
        return status.value
    return folded


def normalize_payment_method(value: str | None) -> str:
    folded = fold_text(value)
    if "BOLETO" in folded:
        return "BOLETO"
    return folded


def is_agreement_category(value: str | None) -> bool:
    """True for installments generated by a settlement."""
    folded = fold_text(value)
    return folded == AGREEMENT_CATEGORY or folded in _LEGACY_AGREEMENT_CATEGORIES


def period_of(day: date) -> str:
    """YYYY-MM competency bucket of a date."""
    return f"{day.year:04d}-{day.month:02d}"


def normalize_period(value: str | None, fallback: date | None = None) -> str | None:
    """Normalize a competency period to YYYY-MM.

    Accepts ``MM/YYYY``, ``MM-YYYY``, ``YYYY-MM`` and ``YYYY-MM-DD``.  When the
    value is empty or unparseable the period of ``fallback`` is used.
    """
    text = (value or "").strip()
    match = _PERIOD_MM_YYYY.match(text)
    if match:
        month, year = int(match.group(1)), int(match.group(2))
        if 1 <= month <= 12:
            return f"{year:04d}-{month:02d}"
    match = _PERIOD_YYYY_MM.match(text)
    if match:
        year, month = int(match.group(1)), int(match.group(2))
        if 1 <= month <= 12:
            return f"{year:04d}-{month:02d}"
    if fallback is not None:
        return period_of(fallback)
    return None
