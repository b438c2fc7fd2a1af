"""
ledger_config -- single public entrypoint for engine configuration.

Responsibility:
    Provides the one way to obtain configuration at runtime through
    ``get_active_config()``.  Services receive the returned
    ``LedgerSettings`` by constructor injection and never read files or
    environment variables themselves.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``ValueError`` -- a value has the wrong type or is out of range.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``LEDGER_CONFIG_TRACE`` log entry with the config id, version and
    checksum, tying imports and settlements to the configuration that
    governed them.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from ledger_config.loader import load_yaml_file, parse_settings
from ledger_config.schema import LedgerSettings

_logger = logging.getLogger("ledger_kernel.config")

_DEFAULT_CONFIG_FILE = Path(__file__).parent / "sets" / "default.yaml"

CONFIG_PATH_ENV = "LEDGER_CONFIG_PATH"


def get_active_config(config_path: Path | str | None = None) -> LedgerSettings:
    """Load and return the active ledger configuration.

    Resolution order: explicit ``config_path``, then the ``LEDGER_CONFIG_PATH``
    environment variable, then the bundled ``sets/default.yaml``.  Not cached;
    callers hold the returned settings for as long as they need them.
    """
    path = Path(
        config_path or os.environ.get(CONFIG_PATH_ENV) or _DEFAULT_CONFIG_FILE
    )
    settings = parse_settings(load_yaml_file(path))

    _logger.info(
        "LEDGER_CONFIG_TRACE",
        extra={
            "trace_type": "LEDGER_CONFIG_TRACE",
            "config_id": settings.config_id,
            "config_version": settings.version,
            "checksum": settings.checksum,
            "config_path": str(path),
        },
    )
    return settings


__all__ = ["LedgerSettings", "get_active_config", "CONFIG_PATH_ENV"]
