"""Pure domain layer: documents, projection rules, references, clock and DTOs."""

from ledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from ledger_kernel.domain.documents import (
    ExpenseDocument,
    PurchaseLine,
    PurchaseReceipt,
    SaleDocument,
    SaleLine,
    Settlement,
)
from ledger_kernel.domain.dtos import (
    Found,
    LineSpec,
    Missing,
    MoveResult,
    PlannedMovement,
    PostingResult,
    Projection,
    StockCheck,
    VoidResult,
)
from ledger_kernel.domain.references import ReferenceScheme, void_reference
from ledger_kernel.domain.scope import ScopeContext

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "ExpenseDocument",
    "PurchaseLine",
    "PurchaseReceipt",
    "SaleDocument",
    "SaleLine",
    "Settlement",
    "Found",
    "LineSpec",
    "Missing",
    "MoveResult",
    "PlannedMovement",
    "PostingResult",
    "Projection",
    "StockCheck",
    "VoidResult",
    "ReferenceScheme",
    "void_reference",
    "ScopeContext",
]
