"""
LedgerSettings schema.

Typed runtime configuration for the ledger kernel.  YAML is parsed into
these frozen dataclasses by ``ledger_config.loader``; nothing downstream ever
reads raw dicts.  Enumerated options are validated in ``__post_init__`` and
bad values raise ``ValueError``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

ISOLATION_LEVELS = frozenset(
    {
        "SERIALIZABLE",
        "REPEATABLE READ",
        "READ COMMITTED",
        "READ UNCOMMITTED",
        "AUTOCOMMIT",
    }
)
NEGATIVE_STOCK_POLICIES = frozenset({"warn"})
LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseSettings:
    """
    Connection settings.

    isolation_level None means: SERIALIZABLE on PostgreSQL, driver default
    elsewhere.
    """

    url: str = "sqlite:///:memory:"
    isolation_level: str | None = None
    statement_timeout_ms: int = 30000
    pool_size: int = 10
    echo: bool = False

    def __post_init__(self) -> None:
        if not self.url:
            raise ValueError("database.url must not be empty")
        if self.isolation_level is not None:
            normalized = self.isolation_level.upper().replace("_", " ")
            if normalized not in ISOLATION_LEVELS:
                raise ValueError(
                    f"database.isolation_level must be one of {sorted(ISOLATION_LEVELS)}, "
                    f"got {self.isolation_level!r}"
                )
            object.__setattr__(self, "isolation_level", normalized)
        if self.statement_timeout_ms < 0:
            raise ValueError("database.statement_timeout_ms must be >= 0")
        if self.pool_size < 1:
            raise ValueError("database.pool_size must be >= 1")


@dataclass(frozen=True)
class PostingSettings:
    currency: str = "USD"
    money_places: int = 2
    require_positive_total: bool = True

    def __post_init__(self) -> None:
        if len(self.currency) != 3 or not self.currency.isalpha():
            raise ValueError(f"posting.currency must be a 3-letter code, got {self.currency!r}")
        object.__setattr__(self, "currency", self.currency.upper())
        if self.money_places != 2:
            raise ValueError("posting.money_places is fixed at 2")


@dataclass(frozen=True)
class InventorySettings:
    update_cost_on_receipt: bool = False
    negative_stock: str = "warn"

    def __post_init__(self) -> None:
        if self.negative_stock not in NEGATIVE_STOCK_POLICIES:
            raise ValueError(
                f"inventory.negative_stock must be one of {sorted(NEGATIVE_STOCK_POLICIES)}, "
                f"got {self.negative_stock!r}"
            )


@dataclass(frozen=True)
class ReferenceSettings:
    """Legacy reference prefixes accepted when matching original documents."""

    legacy_aliases: tuple[str, ...] = ("INV-",)

    def __post_init__(self) -> None:
        aliases = tuple(self.legacy_aliases)
        for alias in aliases:
            if not isinstance(alias, str) or not alias:
                raise ValueError("references.legacy_aliases entries must be non-empty strings")
            if alias.startswith("VOID-"):
                raise ValueError("references.legacy_aliases must not use the VOID- prefix")
        object.__setattr__(self, "legacy_aliases", aliases)


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"

    def __post_init__(self) -> None:
        level = self.level.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"logging.level must be one of {sorted(LOG_LEVELS)}, got {self.level!r}")
        object.__setattr__(self, "level", level)


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerSettings:
    """Root configuration object."""

    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    posting: PostingSettings = field(default_factory=PostingSettings)
    inventory: InventorySettings = field(default_factory=InventorySettings)
    references: ReferenceSettings = field(default_factory=ReferenceSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
