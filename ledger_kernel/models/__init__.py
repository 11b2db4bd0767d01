"""ORM models for the ledger kernel.

Importing this package registers every table on ``Base.metadata``.
"""

from ledger_kernel.models.account import (
    Account,
    AccountPurpose,
    AccountType,
    NormalBalance,
)
from ledger_kernel.models.inventory import (
    InventoryMovement,
    MovementType,
    Product,
    ProductType,
)
from ledger_kernel.models.journal import (
    JournalEntry,
    JournalEntryStatus,
    JournalLine,
    SourceType,
)
from ledger_kernel.models.period import AccountingPeriod, PeriodStatus
from ledger_kernel.models.reversal import DocumentReversal

__all__ = [
    "Account",
    "AccountPurpose",
    "AccountType",
    "NormalBalance",
    "AccountingPeriod",
    "PeriodStatus",
    "JournalEntry",
    "JournalEntryStatus",
    "JournalLine",
    "SourceType",
    "Product",
    "ProductType",
    "InventoryMovement",
    "MovementType",
    "DocumentReversal",
]
