"""
Column layouts for receivable and payable imports.

Each canonical field accepts several column headers: the Portuguese label of
the source ERP export, an English label, and the canonical field name
itself.  Headers are matched after folding case, accents and spacing, so
"Data Vencimento", "DATA VENCIMENTO" and "due_date" all land on the same
field.  This is the only place in the engine that knows source column
names; everything downstream sees ``LedgerRecord``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ledger_ingestion.mapping.engine import coerce, is_blank
from ledger_kernel.db.types import ZERO
from ledger_kernel.domain.dtos import LedgerRecord
from ledger_kernel.domain.values import (
    LedgerVariant,
    RecordStatus,
    fold_text,
    normalize_period,
    normalize_status,
)
from ledger_kernel.exceptions import InvalidImportRowError


@dataclass(frozen=True)
class ColumnSpec:
    """One canonical field and the headers that feed it."""

    field: str
    kind: str  # "text", "amount" or "date"
    headers: tuple[str, ...]


_SHARED_COLUMNS: tuple[ColumnSpec, ...] = (
    ColumnSpec("id", "text", ("ID",)),
    ColumnSpec("issue_date", "date", ("Data Emissão", "IssueDate")),
    ColumnSpec("due_date", "date", ("Data Vencimento", "DueDate")),
    ColumnSpec("face_amount", "amount", ("Valor documento", "DocumentAmount")),
    ColumnSpec("outstanding_balance", "amount", ("Saldo", "Balance")),
    ColumnSpec("status", "text", ("Situação", "Status")),
    ColumnSpec("document_number", "text", ("Número documento", "DocumentNumber")),
    ColumnSpec("category", "text", ("Categoria", "Category")),
    ColumnSpec("history", "text", ("Histórico", "History")),
    ColumnSpec("period", "text", ("Competência", "Competency")),
)

RECEIVABLE_COLUMNS: tuple[ColumnSpec, ...] = _SHARED_COLUMNS + (
    ColumnSpec("counterparty_name", "text", ("Cliente", "IDCliente", "Client")),
    ColumnSpec("settlement_date", "date", ("Data Liquidação", "Recebimento", "SettlementDate")),
    ColumnSpec(
        "payment_method",
        "text",
        ("Forma de recebimento", "Meio de recebimento", "ReceiptMethod", "PaymentMethod"),
    ),
    ColumnSpec("amount_settled", "amount", ("Recebido", "ReceivedAmount")),
    ColumnSpec("fees", "amount", ("Taxas", "Fees")),
)

PAYABLE_COLUMNS: tuple[ColumnSpec, ...] = _SHARED_COLUMNS + (
    ColumnSpec("counterparty_name", "text", ("Fornecedor", "Supplier")),
    ColumnSpec("settlement_date", "date", ("Data Liquidação", "SettlementDate")),
    ColumnSpec("payment_method", "text", ("Forma Pagamento", "PaymentMethod")),
    ColumnSpec("amount_settled", "amount", ("Pago", "PaidAmount")),
    ColumnSpec("payment_key", "text", ("Chave PIX/Código boleto", "PixKey")),
)

_LAYOUTS = {
    LedgerVariant.RECEIVABLE: RECEIVABLE_COLUMNS,
    LedgerVariant.PAYABLE: PAYABLE_COLUMNS,
}


def _header_index(columns: tuple[ColumnSpec, ...]) -> dict[str, ColumnSpec]:
    index: dict[str, ColumnSpec] = {}
    for spec in columns:
        for header in (spec.field, *spec.headers):
            index.setdefault(fold_text(header), spec)
    return index


_HEADER_INDEX = {variant: _header_index(cols) for variant, cols in _LAYOUTS.items()}


def columns_for(variant: LedgerVariant) -> tuple[ColumnSpec, ...]:
    return _LAYOUTS[LedgerVariant(variant)]


def map_row(row: Mapping[str, Any], variant: LedgerVariant) -> dict[str, Any]:
    """Raw row -> {canonical field: raw value}. Unknown headers are dropped.

    When two headers feed the same field, the first non-blank one wins.
    """
    index = _HEADER_INDEX[LedgerVariant(variant)]
    mapped: dict[str, Any] = {}
    for header, value in row.items():
        spec = index.get(fold_text(str(header)))
        if spec is None:
            continue
        if is_blank(mapped.get(spec.field)):
            mapped[spec.field] = value
    return mapped


def normalize_row(
    row: Mapping[str, Any],
    variant: LedgerVariant,
    row_number: int,
    origin: str | None = None,
) -> LedgerRecord:
    """Turn one raw import row into a canonical ledger record.

    Raises:
        InvalidImportRowError: missing id, unparseable cell, or a negative
            balance.
    """
    variant = LedgerVariant(variant)
    mapped = map_row(row, variant)
    values: dict[str, Any] = {}
    for spec in columns_for(variant):
        result = coerce(mapped.get(spec.field), spec.kind)
        if not result.success:
            raise InvalidImportRowError(row_number, f"{spec.field}: {result.error}")
        values[spec.field] = result.value

    record_id = values.pop("id")
    if not record_id:
        raise InvalidImportRowError(row_number, "missing id")

    status = values.pop("status") or RecordStatus.OPEN.value
    face_amount = values.pop("face_amount")
    balance = values.pop("outstanding_balance")
    if balance is None:
        paid = normalize_status(status) == RecordStatus.PAID.value
        balance = ZERO if paid else (face_amount or ZERO)
    if face_amount is None:
        face_amount = balance
    if balance < ZERO:
        raise InvalidImportRowError(row_number, f"negative balance {balance}")

    period = normalize_period(values.pop("period"), values.get("due_date"))

    return LedgerRecord(
        id=record_id,
        variant=variant,
        counterparty_name=values.pop("counterparty_name") or "",
        face_amount=face_amount,
        outstanding_balance=balance,
        status=status,
        period=period,
        category=values.pop("category") or "",
        payment_method=values.pop("payment_method") or "",
        origin=origin,
        **values,
    )
