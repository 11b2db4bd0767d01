"""
Module: ledger_kernel.models.journal
Responsibility: ORM persistence for journal entries and journal lines, the
    single source of financial truth.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Each line has exactly one positive side (checked by JournalPoster before
      flush; also a CHECK constraint on non-negative amounts).
    - Debits equal credits per entry (JournalPoster; is_balanced for read-side
      assertions).
    - Status moves one way: DRAFT -> POSTED -> VOIDED.  Rows are never deleted.

Failure modes:
    - UnbalancedEntryError / InvalidLineError at posting time.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TenantScopedMixin, TrackedBase, UTCDateTime, UUIDString
from ledger_kernel.db.types import MONEY_PLACES, ScaledDecimal

if TYPE_CHECKING:
    from ledger_kernel.models.account import Account


class JournalEntryStatus(str, Enum):
    """Lifecycle status of a journal entry.

    Transitions are one-way: DRAFT -> POSTED -> VOIDED.
    """

    DRAFT = "draft"
    POSTED = "posted"
    VOIDED = "voided"


class SourceType(str, Enum):
    """What produced the journal entry."""

    SALE = "sale"
    PURCHASE = "purchase"
    EXPENSE = "expense"
    MANUAL = "manual"
    REVERSAL = "reversal"


class JournalEntry(TenantScopedMixin, TrackedBase):
    """
    A balanced set of journal lines posted on one date under one reference.

    Contract:
        Created as DRAFT, lines added, then flipped to POSTED in the same
        flush.  A POSTED entry may later be marked VOIDED; the reversing entry
        carries reversal_of_id pointing back here.

    expected_movements records how many inventory movements were committed
    together with the entry.  The void engine compares it against the
    movements it finds to detect partial original data.
    """

    __tablename__ = "journal_entries"

    __table_args__ = (
        Index("idx_journal_reference", "tenant_id", "company_id", "reference"),
        Index("idx_journal_entry_date", "tenant_id", "company_id", "entry_date"),
        Index("idx_journal_status", "status"),
        CheckConstraint("expected_movements >= 0", name="ck_journal_expected_movements"),
    )

    entry_date: Mapped[date] = mapped_column(Date, nullable=False)

    memo: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    reference: Mapped[str] = mapped_column(String(100), nullable=False)

    status: Mapped[JournalEntryStatus] = mapped_column(
        String(10),
        nullable=False,
        default=JournalEntryStatus.DRAFT.value,
    )

    source_type: Mapped[SourceType] = mapped_column(
        String(20),
        nullable=False,
        default=SourceType.MANUAL.value,
    )

    posted_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(),
        nullable=True,
    )

    voided_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(),
        nullable=True,
    )

    voided_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    void_reason: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    reversal_of_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=True,
    )

    expected_movements: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="entry",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="JournalLine.line_seq",
    )

    reversal_of: Mapped["JournalEntry | None"] = relationship(
        remote_side="JournalEntry.id",
        foreign_keys=[reversal_of_id],
    )

    def __repr__(self) -> str:
        return f"<JournalEntry {self.reference} ({self.status})>"

    @property
    def is_posted(self) -> bool:
        return self.status == JournalEntryStatus.POSTED

    @property
    def is_draft(self) -> bool:
        return self.status == JournalEntryStatus.DRAFT

    @property
    def is_voided(self) -> bool:
        return self.status == JournalEntryStatus.VOIDED

    @property
    def total_debits(self) -> Decimal:
        return sum((line.debit for line in self.lines), Decimal("0.00"))

    @property
    def total_credits(self) -> Decimal:
        return sum((line.credit for line in self.lines), Decimal("0.00"))

    @property
    def is_balanced(self) -> bool:
        return self.total_debits == self.total_credits


class JournalLine(TenantScopedMixin, TrackedBase):
    """
    Individual debit or credit line within a journal entry.

    Exactly one of debit/credit is positive; the other is zero.
    """

    __tablename__ = "journal_lines"

    __table_args__ = (
        Index("idx_line_entry", "journal_entry_id"),
        Index("idx_line_account", "account_id"),
        CheckConstraint("debit >= 0 AND credit >= 0", name="ck_line_non_negative"),
    )

    journal_entry_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id", ondelete="CASCADE"),
        nullable=False,
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    debit: Mapped[Decimal] = mapped_column(
        ScaledDecimal(MONEY_PLACES),
        nullable=False,
        default=Decimal("0.00"),
    )

    credit: Mapped[Decimal] = mapped_column(
        ScaledDecimal(MONEY_PLACES),
        nullable=False,
        default=Decimal("0.00"),
    )

    memo: Mapped[str | None] = mapped_column(String(500), nullable=True)

    line_seq: Mapped[int] = mapped_column(Integer, nullable=False)

    entry: Mapped["JournalEntry"] = relationship(back_populates="lines")

    account: Mapped["Account"] = relationship(back_populates="journal_lines")

    def __repr__(self) -> str:
        return f"<JournalLine #{self.line_seq} Dr {self.debit} Cr {self.credit}>"

    @property
    def is_debit(self) -> bool:
        return self.debit > 0

    @property
    def is_credit(self) -> bool:
        return self.credit > 0

    @property
    def signed_amount(self) -> Decimal:
        """Debit-positive signed amount."""
        return self.debit - self.credit
