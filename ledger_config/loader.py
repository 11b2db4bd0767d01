"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Reads a YAML settings file and parses it into ``ledger_config.schema``
dataclasses.  Decoding happens once, at the process boundary.

Source resolution
-----------------
1. The explicit ``path`` argument.
2. The ``LEDGER_CONFIG`` environment variable.
3. Built-in defaults.

``DATABASE_URL`` in the environment always overrides ``database.url``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown section or key  -> ``ValueError``.
* Invalid enumerated value  -> ``ValueError`` from the schema.
"""

from __future__ import annotations

import dataclasses
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from ledger_config.schema import (
    DatabaseSettings,
    InventorySettings,
    LedgerSettings,
    LoggingSettings,
    PostingSettings,
    ReferenceSettings,
)

CONFIG_ENV_VAR = "LEDGER_CONFIG"
DATABASE_URL_ENV_VAR = "DATABASE_URL"

_SECTIONS: dict[str, type] = {
    "database": DatabaseSettings,
    "posting": PostingSettings,
    "inventory": InventorySettings,
    "references": ReferenceSettings,
    "logging": LoggingSettings,
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def parse_section(name: str, data: Mapping[str, Any] | None) -> Any:
    """Build one settings section, rejecting unknown keys."""
    cls = _SECTIONS[name]
    data = dict(data or {})
    known = {f.name for f in dataclasses.fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown key(s) in '{name}' section: {', '.join(unknown)}")
    if name == "references" and "legacy_aliases" in data:
        data["legacy_aliases"] = tuple(data["legacy_aliases"] or ())
    return cls(**data)


def parse_settings(data: Mapping[str, Any]) -> LedgerSettings:
    unknown = sorted(set(data) - set(_SECTIONS))
    if unknown:
        raise ValueError(f"Unknown configuration section(s): {', '.join(unknown)}")
    return LedgerSettings(
        **{name: parse_section(name, data.get(name)) for name in _SECTIONS}
    )


def load_settings(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> LedgerSettings:
    """
    Load settings from ``path``, ``$LEDGER_CONFIG`` or defaults.

    Args:
        path: Explicit YAML file.  Wins over the environment.
        environ: Environment mapping (defaults to ``os.environ``).
    """
    env = os.environ if environ is None else environ

    source = path if path is not None else env.get(CONFIG_ENV_VAR)
    data = load_yaml_file(Path(source)) if source else {}
    settings = parse_settings(data)

    database_url = env.get(DATABASE_URL_ENV_VAR)
    if database_url:
        settings = dataclasses.replace(
            settings,
            database=dataclasses.replace(settings.database, url=database_url),
        )
    return settings
