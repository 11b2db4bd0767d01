"""
Module: ledger_kernel.selectors.journal_selector
Responsibility: Read-only queries over journal entries, returning DTOs.
Architecture position: Kernel > Selectors.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from ledger_kernel.domain.scope import ScopeContext
from ledger_kernel.models.journal import JournalEntry, JournalEntryStatus
from ledger_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class JournalLineDTO:
    line_id: UUID
    account_id: UUID
    debit: Decimal
    credit: Decimal
    memo: str | None
    line_seq: int


@dataclass(frozen=True)
class JournalEntryDTO:
    id: UUID
    reference: str
    entry_date: date
    memo: str | None
    status: str
    source_type: str
    posted_at: datetime | None
    voided_at: datetime | None
    reversal_of_id: UUID | None
    expected_movements: int
    lines: tuple[JournalLineDTO, ...]

    @property
    def total_debits(self) -> Decimal:
        return sum((line.debit for line in self.lines), Decimal("0"))

    @property
    def total_credits(self) -> Decimal:
        return sum((line.credit for line in self.lines), Decimal("0"))

    @property
    def is_balanced(self) -> bool:
        return self.total_debits == self.total_credits


class JournalSelector(BaseSelector[JournalEntry]):
    """Journal entry queries scoped to one company."""

    def _to_dto(self, entry: JournalEntry) -> JournalEntryDTO:
        return JournalEntryDTO(
            id=entry.id,
            reference=entry.reference,
            entry_date=entry.entry_date,
            memo=entry.memo,
            status=entry.status,
            source_type=entry.source_type,
            posted_at=entry.posted_at,
            voided_at=entry.voided_at,
            reversal_of_id=entry.reversal_of_id,
            expected_movements=entry.expected_movements,
            lines=tuple(
                JournalLineDTO(
                    line_id=line.id,
                    account_id=line.account_id,
                    debit=line.debit,
                    credit=line.credit,
                    memo=line.memo,
                    line_seq=line.line_seq,
                )
                for line in entry.lines
            ),
        )

    def get_entry(self, scope: ScopeContext, entry_id: UUID) -> JournalEntryDTO | None:
        entry = self.session.get(JournalEntry, entry_id)
        if entry is None:
            return None
        return self._to_dto(scope.check(entry, "JournalEntry"))

    def entries_by_reference(
        self,
        scope: ScopeContext,
        reference: str,
    ) -> list[JournalEntryDTO]:
        """All entries carrying exactly ``reference``, oldest first."""
        entries = self.session.execute(
            select(JournalEntry)
            .where(*scope.filter(JournalEntry), JournalEntry.reference == reference)
            .order_by(JournalEntry.created_at, JournalEntry.id)
        ).scalars()
        return [self._to_dto(entry) for entry in entries]

    def count_entries(
        self,
        scope: ScopeContext,
        status: JournalEntryStatus | None = None,
    ) -> int:
        stmt = select(func.count(JournalEntry.id)).where(*scope.filter(JournalEntry))
        if status is not None:
            stmt = stmt.where(JournalEntry.status == JournalEntryStatus(status).value)
        return self.session.execute(stmt).scalar_one()
