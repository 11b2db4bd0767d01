"""
JournalPoster -- validates and persists balanced journal entries.

Responsibility:
    The single write path into the general ledger.  Every entry, whether
    projected from a document, entered manually or produced by a void,
    passes through post().

Architecture position:
    Kernel > Services.  Flushes only; PostingOrchestrator commits.

Invariants enforced:
    - At least two lines; each line has exactly one positive side, no
      negatives, at most 2 decimal places.
    - sum(debit) == sum(credit), exactly, as Decimal at 2 places.
    - Every account exists, belongs to the scope's tenant and company, and
      is active.
    - The entry date is in an open period (PeriodGuard).
    - DRAFT -> POSTED happens inside one flush sequence; a failed
      validation persists nothing.

Failure modes:
    - InvalidLineError (with the offending line index).
    - UnbalancedEntryError.
    - AccountNotFoundError / CrossCompanyAccountError / AccountInactiveError.
    - PeriodLockedError.
"""

from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.db.types import MONEY_PLACES, ZERO, has_excess_precision
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import LineSpec
from ledger_kernel.domain.scope import ScopeContext
from ledger_kernel.exceptions import (
    AccountInactiveError,
    AccountNotFoundError,
    CrossCompanyAccountError,
    InvalidLineError,
    UnbalancedEntryError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.models.journal import (
    JournalEntry,
    JournalEntryStatus,
    JournalLine,
    SourceType,
)
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.period_guard import PeriodGuard

logger = get_logger("services.journal_poster")


def _validate_line(index: int, line: LineSpec) -> tuple[Decimal, Decimal]:
    debit, credit = line.debit, line.credit
    for side, value in (("debit", debit), ("credit", credit)):
        if isinstance(value, bool) or not isinstance(value, (Decimal, int)):
            raise InvalidLineError(index, f"{side} must be a Decimal, got {type(value).__name__}")
    debit, credit = Decimal(debit), Decimal(credit)

    if debit < 0 or credit < 0:
        raise InvalidLineError(index, "amounts must not be negative")
    if debit > 0 and credit > 0:
        raise InvalidLineError(index, "line has both a debit and a credit")
    if debit == 0 and credit == 0:
        raise InvalidLineError(index, "line has neither a debit nor a credit")
    if has_excess_precision(debit, MONEY_PLACES) or has_excess_precision(credit, MONEY_PLACES):
        raise InvalidLineError(index, f"amount has more than {MONEY_PLACES} decimal places")
    return debit, credit


class JournalPoster(BaseService[JournalEntry]):
    """
    Validates and posts journal entries.

    Usage:
        poster = JournalPoster(session, period_guard, clock)
        entry = poster.post(scope, date(2024, 1, 15), "Cash sale", "1001",
                            [LineSpec.dr(cash_id, amt), LineSpec.cr(rev_id, amt)],
                            actor_id)
    """

    model = JournalEntry
    entity_name = "JournalEntry"

    def __init__(
        self,
        session: Session,
        period_guard: PeriodGuard | None = None,
        clock: Clock | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._period_guard = period_guard or PeriodGuard(session, self._clock)

    def post(
        self,
        scope: ScopeContext,
        entry_date: date,
        memo: str | None,
        reference: str,
        lines: Sequence[LineSpec],
        actor_id: UUID | None,
        source_type: SourceType = SourceType.MANUAL,
        expected_movements: int = 0,
        reversal_of_id: UUID | None = None,
    ) -> JournalEntry:
        """
        Validate ``lines`` and persist them as one POSTED entry.

        Postconditions:
            - Returned entry is POSTED with posted_at from the injected clock.
            - Lines carry line_seq in input order.
            - Nothing has been committed.
        """
        if not reference:
            raise InvalidLineError(0, "entry reference is required")
        if len(lines) < 2:
            raise InvalidLineError(len(lines), "an entry needs at least two lines")

        amounts = [_validate_line(index, line) for index, line in enumerate(lines)]

        total_debits = sum((d for d, _ in amounts), ZERO)
        total_credits = sum((c for _, c in amounts), ZERO)
        if total_debits != total_credits:
            raise UnbalancedEntryError(str(total_debits), str(total_credits), reference)

        logger.info(
            "balance_validated",
            extra={
                "reference": reference,
                "total_debits": str(total_debits),
                "total_credits": str(total_credits),
                "line_count": len(lines),
            },
        )

        self._validate_accounts(scope, lines)
        self._period_guard.assert_open(scope, entry_date)

        entry = JournalEntry(
            tenant_id=scope.tenant_id,
            company_id=scope.company_id,
            entry_date=entry_date,
            memo=memo,
            reference=reference,
            status=JournalEntryStatus.DRAFT.value,
            source_type=SourceType(source_type).value,
            expected_movements=expected_movements,
            reversal_of_id=reversal_of_id,
            created_by_id=actor_id,
        )
        self.session.add(entry)

        for seq, (line, (debit, credit)) in enumerate(zip(lines, amounts), start=1):
            entry.lines.append(
                JournalLine(
                    tenant_id=scope.tenant_id,
                    company_id=scope.company_id,
                    account_id=line.account_id,
                    debit=debit,
                    credit=credit,
                    memo=line.memo,
                    line_seq=seq,
                    created_by_id=actor_id,
                )
            )
        self.session.flush()

        self._finalize_posting(entry)
        return entry

    def _validate_accounts(self, scope: ScopeContext, lines: Sequence[LineSpec]) -> None:
        seen: set[UUID] = set()
        for line in lines:
            if line.account_id in seen:
                continue
            seen.add(line.account_id)

            account = self.session.get(Account, line.account_id)
            if account is None:
                raise AccountNotFoundError(
                    company_id=str(scope.company_id),
                    account_id=str(line.account_id),
                )
            if not scope.owns(account):
                raise CrossCompanyAccountError(str(account.id), str(scope.company_id))
            if not account.is_active:
                raise AccountInactiveError(str(account.id), account.code)

    def _finalize_posting(self, entry: JournalEntry) -> None:
        """DRAFT -> POSTED with posted_at from the injected clock."""
        entry.status = JournalEntryStatus.POSTED.value
        entry.posted_at = self._clock.now()
        self.session.flush()

        logger.info(
            "journal_entry_posted",
            extra={
                "entry_id": str(entry.id),
                "reference": entry.reference,
                "source_type": entry.source_type,
                "entry_date": str(entry.entry_date),
                "line_count": len(entry.lines),
                "total": str(entry.total_debits),
                "reversal_of_id": str(entry.reversal_of_id) if entry.reversal_of_id else None,
            },
        )
