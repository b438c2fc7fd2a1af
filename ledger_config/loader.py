"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the frozen
``LedgerSettings`` dataclass.  The public runtime entry point is
``ledger_config.get_active_config()``; this module is the tooling behind it.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Wrong value types  -> ``ValueError`` with the offending key.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import LedgerSettings


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration root must be a mapping: {path}")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"Configuration section '{name}' must be a mapping")
    return value


def _parse_int(section: dict[str, Any], key: str, default: int) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"'{key}' must be an integer, got {value!r}")
    return value


def _parse_bool(section: dict[str, Any], key: str, default: bool) -> bool:
    value = section.get(key, default)
    if not isinstance(value, bool):
        raise ValueError(f"'{key}' must be a boolean, got {value!r}")
    return value


def _parse_decimal(section: dict[str, Any], key: str, default: Decimal) -> Decimal:
    value = section.get(key, default)
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"'{key}' must be a decimal, got {value!r}") from exc


def parse_settings(data: dict[str, Any]) -> LedgerSettings:
    """Parse a loaded configuration mapping into ``LedgerSettings``."""
    defaults = LedgerSettings()
    ingestion = _section(data, "ingestion")
    reconciliation = _section(data, "reconciliation")
    collections = _section(data, "collections")
    settlements = _section(data, "settlements")

    methods = collections.get("debtor_payment_methods", defaults.debtor_payment_methods)
    if isinstance(methods, str):
        methods = [methods]

    return LedgerSettings(
        config_id=str(data.get("config_id", defaults.config_id)),
        version=_parse_int(data, "version", defaults.version),
        checksum=compute_checksum(data),
        commit_batch_size=_parse_int(
            ingestion, "commit_batch_size", defaults.commit_batch_size
        ),
        fold_payable_ids=_parse_bool(
            ingestion, "fold_payable_ids", defaults.fold_payable_ids
        ),
        import_origin=str(ingestion.get("import_origin", defaults.import_origin)),
        balance_tolerance=_parse_decimal(
            reconciliation, "balance_tolerance", defaults.balance_tolerance
        ),
        aging_threshold_days=_parse_int(
            collections, "aging_threshold_days", defaults.aging_threshold_days
        ),
        reminder_window_days=_parse_int(
            collections, "reminder_window_days", defaults.reminder_window_days
        ),
        history_limit=_parse_int(collections, "history_limit", defaults.history_limit),
        debtor_payment_methods=tuple(str(m).upper() for m in methods),
        installment_payment_method=str(
            settlements.get(
                "installment_payment_method", defaults.installment_payment_method
            )
        ),
        installment_origin=str(
            settlements.get("installment_origin", defaults.installment_origin)
        ),
    )
