"""Kernel ORM models: the two ledger tables and the audit log."""

from ledger_kernel.models.audit_log import AuditLogModel
from ledger_kernel.models.ledger_record import (
    PayableRecordModel,
    ReceivableRecordModel,
    ledger_model_for,
)

__all__ = [
    "AuditLogModel",
    "PayableRecordModel",
    "ReceivableRecordModel",
    "ledger_model_for",
]
