"""
Module: ledger_kernel.db.types
Responsibility: Annotated type aliases and rounding helpers for monetary
    columns.  Centralizes precision and tolerance so every model and service
    uses identical definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, selectors/ and outer packages.

Invariants enforced:
    - No floats for money.  Amounts are Decimal, stored as Numeric(38, 9),
      and rounded to cents only through round_money().
    - BALANCE_TOLERANCE is the single definition of "same balance" and of
      "effectively settled".

Failure modes:
    - decimal.InvalidOperation from to_money() on non-numeric input.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated

from sqlalchemy import Numeric, String

# 38 digits total, 9 decimal places
Money = Annotated[Decimal, Numeric(38, 9)]

# Short identifier strings (status codes, payment methods)
ShortCode = Annotated[str, String(50)]

# Counterparty names, categories, document numbers
Label = Annotated[str, String(255)]

# Free text
LongText = Annotated[str, String(4000)]

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

# Two balances within this are equal; a balance at or below it is settled
BALANCE_TOLERANCE = Decimal("0.01")

ZERO = Decimal("0")


def to_money(value: Decimal | int | float | str | None) -> Decimal:
    """Coerce a numeric value to Decimal without rounding.

    Floats go through ``str()`` so 0.1 stays 0.1.  None becomes zero.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the given number of decimal places.

    This is the only rounding function used for amounts in the engine.

    Args:
        value: The Decimal value to round.
        decimal_places: Number of decimal places to round to.
        rounding: Rounding mode (default: ROUND_HALF_UP).

    Returns:
        Rounded Decimal value.
    """
    quantize_str = "0." + "0" * decimal_places if decimal_places else "1"
    return value.quantize(Decimal(quantize_str), rounding=rounding)


def amounts_match(
    left: Decimal, right: Decimal, tolerance: Decimal = BALANCE_TOLERANCE
) -> bool:
    """True when two amounts differ by no more than the tolerance."""
    return abs(left - right) <= tolerance


def is_settled(balance: Decimal, tolerance: Decimal = BALANCE_TOLERANCE) -> bool:
    """True when a balance is at or below the settlement tolerance."""
    return balance <= tolerance
