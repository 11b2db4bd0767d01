"""Database infrastructure: declarative bases, column types and the Database handle."""

from ledger_kernel.db.base import Base, TenantScopedMixin, TrackedBase, UTCDateTime, UUIDString
from ledger_kernel.db.engine import Database, is_serialization_failure
from ledger_kernel.db.types import (
    MONEY_PLACES,
    QUANTITY_PLACES,
    ScaledDecimal,
    from_minor,
    round_money,
    to_minor,
)

__all__ = [
    "Base",
    "TrackedBase",
    "TenantScopedMixin",
    "UUIDString",
    "UTCDateTime",
    "Database",
    "is_serialization_failure",
    "ScaledDecimal",
    "MONEY_PLACES",
    "QUANTITY_PLACES",
    "round_money",
    "to_minor",
    "from_minor",
]
