"""Services for the ledger kernel (write side)."""

from ledger_kernel.services.account_directory import AccountDirectory
from ledger_kernel.services.document_posting import DocumentPostingService
from ledger_kernel.services.inventory_ledger import InventoryLedger
from ledger_kernel.services.journal_poster import JournalPoster
from ledger_kernel.services.period_guard import PeriodGuard
from ledger_kernel.services.posting_orchestrator import (
    LedgerServices,
    PostingOrchestrator,
    build_services,
)
from ledger_kernel.services.void_service import VoidService

__all__ = [
    "AccountDirectory",
    "DocumentPostingService",
    "InventoryLedger",
    "JournalPoster",
    "LedgerServices",
    "PeriodGuard",
    "PostingOrchestrator",
    "VoidService",
    "build_services",
]
