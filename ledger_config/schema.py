"""
LedgerSettings schema.

The typed, frozen form of a ledger configuration set.  YAML files are parsed
into this by the loader; services receive it through constructor injection.
Defaults here match ``sets/default.yaml`` so a service built without an
explicit settings object behaves exactly like the shipped configuration.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class LedgerSettings:
    """Runtime knobs for ingestion, collections and settlements."""

    config_id: str = "ledger-default"
    version: int = 1
    checksum: str = ""

    # ingestion
    commit_batch_size: int = 100
    fold_payable_ids: bool = False
    import_origin: str = "SPREADSHEET"

    # reconciliation
    balance_tolerance: Decimal = Decimal("0.01")

    # collections
    aging_threshold_days: int = 15
    reminder_window_days: int = 3
    history_limit: int = 500
    debtor_payment_methods: tuple[str, ...] = ("BOLETO",)

    # settlements
    installment_payment_method: str = "PIX"
    installment_origin: str = "AGREEMENT"

    def __post_init__(self) -> None:
        if self.commit_batch_size < 1:
            raise ValueError(
                f"commit_batch_size must be positive, got {self.commit_batch_size}"
            )
        if self.balance_tolerance < 0:
            raise ValueError(
                f"balance_tolerance cannot be negative, got {self.balance_tolerance}"
            )
        if self.aging_threshold_days < 0:
            raise ValueError(
                f"aging_threshold_days cannot be negative, got {self.aging_threshold_days}"
            )
