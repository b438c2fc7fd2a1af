"""
Builders for canonical ledger records used across the test suite.

Plain functions, no database access.  The ``receivable_factory`` and
``payable_factory`` fixtures in conftest persist what these build.
"""

from datetime import date
from decimal import Decimal

from ledger_kernel.domain.dtos import LedgerRecord
from ledger_kernel.domain.values import LedgerVariant, RecordStatus

# "Today" on the deterministic clock
TEST_TODAY = date(2024, 3, 15)


def make_record(
    record_id: str,
    variant: LedgerVariant = LedgerVariant.RECEIVABLE,
    counterparty_name: str = "ACME LTDA",
    balance: Decimal | str = "100.00",
    face_amount: Decimal | str | None = None,
    status: str = RecordStatus.OPEN.value,
    due_date: date | None = date(2024, 3, 1),
    payment_method: str = "BOLETO",
    category: str = "",
    **extra,
) -> LedgerRecord:
    """Build a canonical record; face amount defaults to the balance."""
    balance = Decimal(str(balance))
    face = Decimal(str(face_amount)) if face_amount is not None else balance
    return LedgerRecord(
        id=record_id,
        variant=variant,
        counterparty_name=counterparty_name,
        face_amount=face,
        outstanding_balance=balance,
        status=status,
        due_date=due_date,
        payment_method=payment_method,
        category=category,
        **extra,
    )


def payable(record_id: str, **kwargs) -> LedgerRecord:
    kwargs.setdefault("counterparty_name", "SUPPLIER SA")
    kwargs.setdefault("payment_method", "PIX")
    return make_record(record_id, LedgerVariant.PAYABLE, **kwargs)


def receivable(record_id: str, **kwargs) -> LedgerRecord:
    return make_record(record_id, LedgerVariant.RECEIVABLE, **kwargs)
