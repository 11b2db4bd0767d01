"""
DTOs -- Immutable data passed between the projector, the posting engine and
the inventory ledger.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  No ORM imports at runtime.

Data flow:
    Document -> Projection(LineSpec..., PlannedMovement...) -> JournalEntry +
    InventoryMovement rows -> PostingResult / VoidResult
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Union
from uuid import UUID

if TYPE_CHECKING:
    from ledger_kernel.exceptions import LedgerWarning
    from ledger_kernel.models.account import AccountPurpose
    from ledger_kernel.models.inventory import MovementType
    from ledger_kernel.models.journal import SourceType


# ---------------------------------------------------------------------------
# Purpose resolution
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Found:
    """The purpose tag resolved to exactly one account."""

    account: Any

    @property
    def account_id(self) -> UUID:
        return self.account.id


@dataclass(frozen=True)
class Missing:
    """No account in the company carries the purpose tag."""

    purpose: AccountPurpose
    company_id: UUID


Resolution = Union[Found, Missing]


# ---------------------------------------------------------------------------
# Posting inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LineSpec:
    """
    One proposed journal line.

    Not validated here: JournalPoster validates every line in order so the
    error can name the offending index.
    """

    account_id: UUID
    debit: Decimal = Decimal("0")
    credit: Decimal = Decimal("0")
    memo: str | None = None

    @classmethod
    def dr(cls, account_id: UUID, amount: Decimal, memo: str | None = None) -> LineSpec:
        return cls(account_id=account_id, debit=amount, credit=Decimal("0"), memo=memo)

    @classmethod
    def cr(cls, account_id: UUID, amount: Decimal, memo: str | None = None) -> LineSpec:
        return cls(account_id=account_id, debit=Decimal("0"), credit=amount, memo=memo)

    def swapped(self) -> LineSpec:
        """Same line with debit and credit exchanged (used by voids)."""
        return LineSpec(
            account_id=self.account_id,
            debit=self.credit,
            credit=self.debit,
            memo=self.memo,
        )


@dataclass(frozen=True)
class PlannedMovement:
    """An inventory movement the projector wants recorded with the entry."""

    product_id: UUID
    movement_type: MovementType
    quantity: Decimal
    unit_cost: Decimal | None = None
    reason: str | None = None


@dataclass(frozen=True)
class CostUpdate:
    """New cost_price for a product after a purchase receipt."""

    product_id: UUID
    unit_cost: Decimal


@dataclass(frozen=True)
class Projection:
    """Journal lines plus planned movements for one document."""

    source_type: SourceType
    journal_lines: tuple[LineSpec, ...]
    movements: tuple[PlannedMovement, ...] = ()
    cost_updates: tuple[CostUpdate, ...] = ()

    @property
    def total_debits(self) -> Decimal:
        return sum((line.debit for line in self.journal_lines), Decimal("0"))

    @property
    def total_credits(self) -> Decimal:
        return sum((line.credit for line in self.journal_lines), Decimal("0"))


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MoveResult:
    """Outcome of one InventoryLedger.move call."""

    movement_id: UUID
    product_id: UUID
    quantity: Decimal
    resulting_stock: Decimal
    warnings: tuple[LedgerWarning, ...] = ()


@dataclass(frozen=True)
class StockCheck:
    """Cached stock compared with the sum of recorded movements."""

    product_id: UUID
    cached_quantity: Decimal
    movement_total: Decimal

    @property
    def drift(self) -> Decimal:
        return self.cached_quantity - self.movement_total

    @property
    def is_consistent(self) -> bool:
        return self.drift == 0


@dataclass(frozen=True)
class PostingResult:
    """What post_document committed."""

    journal_entry_id: UUID
    movement_ids: tuple[UUID, ...] = ()
    warnings: tuple[LedgerWarning, ...] = ()


@dataclass(frozen=True)
class VoidResult:
    """
    What void_document did.

    A repeat call (or the loser of a race) gets voided=False,
    already_processed=True and empty collections.
    """

    voided: bool
    already_processed: bool
    original_reference: str
    void_reference: str | None = None
    reversal_entry_ids: tuple[UUID, ...] = ()
    reversed_lines: int = 0
    reversed_movements: int = 0
    stock_deltas: dict[UUID, Decimal] = field(default_factory=dict)
    warnings: tuple[LedgerWarning, ...] = ()

    @classmethod
    def already_done(cls, original_reference: str) -> VoidResult:
        return cls(
            voided=False,
            already_processed=True,
            original_reference=original_reference,
        )
