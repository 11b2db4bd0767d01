"""
Ledger configuration.

Public entry point::

    from ledger_config import load_settings
    settings = load_settings()            # $LEDGER_CONFIG or defaults
    settings = load_settings("ledger.yaml")
"""

from ledger_config.loader import load_settings, parse_settings
from ledger_config.schema import (
    DatabaseSettings,
    InventorySettings,
    LedgerSettings,
    LoggingSettings,
    PostingSettings,
    ReferenceSettings,
)

__all__ = [
    "load_settings",
    "parse_settings",
    "LedgerSettings",
    "DatabaseSettings",
    "PostingSettings",
    "InventorySettings",
    "ReferenceSettings",
    "LoggingSettings",
]
