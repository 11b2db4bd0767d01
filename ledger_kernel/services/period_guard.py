"""
PeriodGuard -- monthly period locks and the posting-date gate.

Responsibility:
    Tracks locked (company, year, month) periods and rejects any journal entry
    dated inside one.  Called by JournalPoster before every entry is
    persisted, reversals included.

Architecture position:
    Kernel > Services.  Flushes only.

Invariants enforced:
    - No entry lands in a LOCKED period.
    - A month without a period row is OPEN.
    - Lock/unlock take a row lock (SELECT ... FOR UPDATE) so concurrent
      administrators serialize.

Failure modes:
    - PeriodLockedError from assert_open().
    - PeriodAlreadyLockedError when locking a locked period.
    - InvalidPeriodError for an impossible year/month.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.scope import ScopeContext
from ledger_kernel.exceptions import (
    InvalidPeriodError,
    PeriodAlreadyLockedError,
    PeriodLockedError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.period import AccountingPeriod, PeriodStatus, period_code
from ledger_kernel.services.base import BaseService

logger = get_logger("services.period_guard")


def _validate_year_month(year: int, month: int) -> None:
    if not (1 <= month <= 12) or not (1 <= year <= 9999):
        raise InvalidPeriodError(year, month)


class PeriodGuard(BaseService[AccountingPeriod]):
    """
    Period lock administration and the posting gate.

    Usage:
        guard = PeriodGuard(session, clock)
        guard.lock_period(scope, 2024, 1, actor_id)
        guard.assert_open(scope, date(2024, 1, 15))  # raises PeriodLockedError
    """

    model = AccountingPeriod
    entity_name = "AccountingPeriod"

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def assert_open(self, scope: ScopeContext, entry_date: date) -> None:
        """
        Return normally iff ``entry_date`` falls in an open period.

        Raises:
            PeriodLockedError: the month containing entry_date is LOCKED.
        """
        period = self._get_period(scope, entry_date.year, entry_date.month)
        if period is not None and period.is_locked:
            logger.warning(
                "posting_blocked_locked_period",
                extra={"period_code": period.period_code, "entry_date": str(entry_date)},
            )
            raise PeriodLockedError(
                company_id=str(scope.company_id),
                period_code=period.period_code,
                entry_date=str(entry_date),
            )

    def is_locked(self, scope: ScopeContext, year: int, month: int) -> bool:
        _validate_year_month(year, month)
        period = self._get_period(scope, year, month)
        return period is not None and period.is_locked

    def locked_periods(self, scope: ScopeContext) -> list[AccountingPeriod]:
        return list(
            self.session.execute(
                select(AccountingPeriod)
                .where(
                    *scope.filter(AccountingPeriod),
                    AccountingPeriod.status == PeriodStatus.LOCKED.value,
                )
                .order_by(AccountingPeriod.year, AccountingPeriod.month)
            ).scalars()
        )

    def lock_period(
        self,
        scope: ScopeContext,
        year: int,
        month: int,
        actor_id: UUID | None = None,
    ) -> AccountingPeriod:
        """
        Lock a month.  Creates the period row on first lock.

        Raises:
            PeriodAlreadyLockedError: the month is already locked (including
                when a concurrent session locked it first).
        """
        _validate_year_month(year, month)
        code = period_code(year, month)

        period = self._get_period(scope, year, month, for_update=True)
        if period is not None and period.is_locked:
            raise PeriodAlreadyLockedError(str(scope.company_id), code)

        if period is None:
            period = AccountingPeriod(
                tenant_id=scope.tenant_id,
                company_id=scope.company_id,
                year=year,
                month=month,
                status=PeriodStatus.OPEN.value,
                created_by_id=actor_id,
            )
            try:
                with self.session.begin_nested():
                    self.session.add(period)
                    self.session.flush()
            except IntegrityError:
                logger.warning(
                    "concurrent_period_lock_conflict",
                    extra={"period_code": code},
                )
                raise PeriodAlreadyLockedError(str(scope.company_id), code)

        period.status = PeriodStatus.LOCKED.value
        period.locked_at = self._clock.now()
        period.locked_by_id = actor_id
        period.updated_by_id = actor_id
        self.session.flush()

        logger.info("period_locked", extra={"period_code": code})
        return period

    def unlock_period(
        self,
        scope: ScopeContext,
        year: int,
        month: int,
        actor_id: UUID | None = None,
    ) -> AccountingPeriod | None:
        """Reopen a month.  Unlocking an open month is a no-op returning its row (or None)."""
        _validate_year_month(year, month)
        period = self._get_period(scope, year, month, for_update=True)
        if period is None or not period.is_locked:
            return period

        period.status = PeriodStatus.OPEN.value
        period.locked_at = None
        period.locked_by_id = None
        period.updated_by_id = actor_id
        self.session.flush()

        logger.info("period_unlocked", extra={"period_code": period.period_code})
        return period

    def _get_period(
        self,
        scope: ScopeContext,
        year: int,
        month: int,
        *,
        for_update: bool = False,
    ) -> AccountingPeriod | None:
        stmt = select(AccountingPeriod).where(
            *scope.filter(AccountingPeriod),
            AccountingPeriod.year == year,
            AccountingPeriod.month == month,
        )
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.session.execute(stmt).scalar_one_or_none()
