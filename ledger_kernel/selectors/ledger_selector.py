"""
Module: ledger_kernel.selectors.ledger_selector
Responsibility: Read-only balance queries over journal lines: single account
    balances, trial balance and grand totals.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Only POSTED and VOIDED entries count.  A voided original and its
      reversing entry are both included, so together they net to zero;
      excluding VOIDED entries would count the reversal alone.
    - DRAFT entries never count.
    - Every query is filtered on (tenant, company).
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from ledger_kernel.db.types import MONEY_PLACES, from_minor
from ledger_kernel.domain.scope import ScopeContext
from ledger_kernel.exceptions import AccountNotFoundError
from ledger_kernel.models.account import Account, NormalBalance
from ledger_kernel.models.journal import JournalEntry, JournalEntryStatus, JournalLine
from ledger_kernel.selectors.base import BaseSelector

COUNTED_STATUSES = (JournalEntryStatus.POSTED.value, JournalEntryStatus.VOIDED.value)

ZERO_MONEY = from_minor(0, MONEY_PLACES)


def _normal_sign(normal_balance: str, debit_total: Decimal, credit_total: Decimal) -> Decimal:
    if normal_balance == NormalBalance.CREDIT:
        return credit_total - debit_total
    return debit_total - credit_total


@dataclass(frozen=True)
class TrialBalanceRow:
    """A single row in a trial balance report."""

    account_id: UUID
    account_code: str
    account_name: str
    normal_balance: str
    debit_total: Decimal
    credit_total: Decimal

    @property
    def balance(self) -> Decimal:
        """Net balance (debits - credits)."""
        return self.debit_total - self.credit_total

    @property
    def normal_balance_amount(self) -> Decimal:
        return _normal_sign(self.normal_balance, self.debit_total, self.credit_total)


@dataclass(frozen=True)
class AccountBalance:
    """Balance for a single account."""

    account_id: UUID
    normal_balance: str
    debit_total: Decimal
    credit_total: Decimal
    line_count: int

    @property
    def balance(self) -> Decimal:
        """Net balance (debits - credits)."""
        return self.debit_total - self.credit_total

    @property
    def normal_balance_amount(self) -> Decimal:
        """Balance in the account's normal-balance sign."""
        return _normal_sign(self.normal_balance, self.debit_total, self.credit_total)


class LedgerSelector(BaseSelector[JournalLine]):
    """Balance queries derived from journal lines."""

    def _line_filters(self, scope: ScopeContext, as_of: date | None) -> list:
        filters = [
            *scope.filter(JournalLine),
            JournalEntry.status.in_(COUNTED_STATUSES),
        ]
        if as_of is not None:
            filters.append(JournalEntry.entry_date <= as_of)
        return filters

    def account_balance(
        self,
        scope: ScopeContext,
        account_id: UUID,
        as_of: date | None = None,
    ) -> AccountBalance:
        """
        Debit total, credit total and line count for one account.

        Raises:
            AccountNotFoundError: account_id does not exist.
            CrossTenantAccessError: account belongs to another scope.
        """
        account = self.session.get(Account, account_id)
        if account is None:
            raise AccountNotFoundError(
                company_id=str(scope.company_id),
                account_id=str(account_id),
            )
        scope.check(account, "Account")

        debit_total, credit_total, line_count = self.session.execute(
            select(
                func.sum(JournalLine.debit),
                func.sum(JournalLine.credit),
                func.count(JournalLine.id),
            )
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .where(JournalLine.account_id == account_id, *self._line_filters(scope, as_of))
        ).one()

        return AccountBalance(
            account_id=account_id,
            normal_balance=account.normal_balance,
            debit_total=debit_total if debit_total is not None else ZERO_MONEY,
            credit_total=credit_total if credit_total is not None else ZERO_MONEY,
            line_count=line_count,
        )

    def trial_balance(
        self,
        scope: ScopeContext,
        as_of: date | None = None,
    ) -> list[TrialBalanceRow]:
        """One row per account with activity, ordered by account code."""
        rows = self.session.execute(
            select(
                Account.id,
                Account.code,
                Account.name,
                Account.normal_balance,
                func.sum(JournalLine.debit),
                func.sum(JournalLine.credit),
            )
            .select_from(JournalLine)
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .join(Account, JournalLine.account_id == Account.id)
            .where(*self._line_filters(scope, as_of))
            .group_by(Account.id, Account.code, Account.name, Account.normal_balance)
            .order_by(Account.code)
        ).all()

        return [
            TrialBalanceRow(
                account_id=row[0],
                account_code=row[1],
                account_name=row[2],
                normal_balance=row[3],
                debit_total=row[4] if row[4] is not None else ZERO_MONEY,
                credit_total=row[5] if row[5] is not None else ZERO_MONEY,
            )
            for row in rows
        ]

    def total_debits_credits(
        self,
        scope: ScopeContext,
        as_of: date | None = None,
    ) -> tuple[Decimal, Decimal]:
        """Grand totals across the company's ledger.  Always equal."""
        debit_total, credit_total = self.session.execute(
            select(func.sum(JournalLine.debit), func.sum(JournalLine.credit))
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .where(*self._line_filters(scope, as_of))
        ).one()
        return (
            debit_total if debit_total is not None else ZERO_MONEY,
            credit_total if credit_total is not None else ZERO_MONEY,
        )
