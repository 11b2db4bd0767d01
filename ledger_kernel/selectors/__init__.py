"""Read-only query selectors."""

from ledger_kernel.selectors.journal_selector import JournalEntryDTO, JournalSelector
from ledger_kernel.selectors.ledger_selector import (
    AccountBalance,
    LedgerSelector,
    TrialBalanceRow,
)

__all__ = [
    "AccountBalance",
    "JournalEntryDTO",
    "JournalSelector",
    "LedgerSelector",
    "TrialBalanceRow",
]
