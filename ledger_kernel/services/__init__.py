"""Services for the ledger kernel (write side)."""

from ledger_kernel.services.audit_trail import AuditAction, AuditTrail

__all__ = ["AuditAction", "AuditTrail"]
