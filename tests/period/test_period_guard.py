"""
Period lock tests.

Verifies:
- Posting into a locked month raises PeriodLockedError and writes nothing
- Months without a period row are open
- Lock and unlock administration, including repeat and invalid calls
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_kernel.domain.dtos import LineSpec
from ledger_kernel.exceptions import (
    InvalidPeriodError,
    PeriodAlreadyLockedError,
    PeriodLockedError,
)
from ledger_kernel.models.period import PeriodStatus


def _post(services, scope, accounts, entry_date, reference="JE-1"):
    return services.poster.post(
        scope,
        entry_date,
        "Period test",
        reference,
        [
            LineSpec.dr(accounts["cash"].id, Decimal("10.00")),
            LineSpec.cr(accounts["revenue"].id, Decimal("10.00")),
        ],
        None,
    )


class TestPostingGate:
    def test_locked_period_rejects_posting(self, services, scope, standard_accounts, lock_period):
        lock_period(2024, 1)

        with pytest.raises(PeriodLockedError) as exc_info:
            _post(services, scope, standard_accounts, date(2024, 1, 31))

        assert exc_info.value.period_code == "2024-01"
        assert services.journal.count_entries(scope) == 0

    def test_adjacent_months_stay_open(self, services, scope, standard_accounts, lock_period):
        lock_period(2024, 1)

        _post(services, scope, standard_accounts, date(2023, 12, 31), "JE-DEC")
        _post(services, scope, standard_accounts, date(2024, 2, 1), "JE-FEB")

        assert services.journal.count_entries(scope) == 2

    def test_lock_is_per_company(
        self, services, scope, other_scope, standard_accounts, lock_period
    ):
        lock_period(2024, 1, in_scope=other_scope)

        _post(services, scope, standard_accounts, date(2024, 1, 15))

        assert services.journal.count_entries(scope) == 1

    def test_blocked_posting_logged(
        self, services, scope, standard_accounts, lock_period, captured_logs
    ):
        lock_period(2024, 1)

        with pytest.raises(PeriodLockedError):
            _post(services, scope, standard_accounts, date(2024, 1, 2))

        assert any(r["message"] == "posting_blocked_locked_period" for r in captured_logs())


class TestLockAdministration:
    def test_lock_creates_period(self, services, scope, lock_period, test_actor_id, deterministic_clock):
        period = lock_period(2024, 3)

        assert period.status == PeriodStatus.LOCKED
        assert period.locked_by_id == test_actor_id
        assert period.locked_at == deterministic_clock.now()
        assert services.periods.is_locked(scope, 2024, 3)
        assert not services.periods.is_locked(scope, 2024, 4)

    def test_lock_twice(self, lock_period):
        lock_period(2024, 3)
        with pytest.raises(PeriodAlreadyLockedError):
            lock_period(2024, 3)

    def test_unlock_reopens(self, services, scope, standard_accounts, lock_period):
        lock_period(2024, 1)
        services.periods.unlock_period(scope, 2024, 1)

        _post(services, scope, standard_accounts, date(2024, 1, 15))

        assert not services.periods.is_locked(scope, 2024, 1)
        assert services.journal.count_entries(scope) == 1

    def test_unlock_open_month_is_noop(self, services, scope):
        assert services.periods.unlock_period(scope, 2024, 5) is None

    def test_relock_after_unlock(self, services, scope, lock_period):
        lock_period(2024, 1)
        services.periods.unlock_period(scope, 2024, 1)
        lock_period(2024, 1)

        assert [p.period_code for p in services.periods.locked_periods(scope)] == ["2024-01"]

    @pytest.mark.parametrize("year, month", [(2024, 0), (2024, 13), (0, 1)])
    def test_invalid_period(self, lock_period, year, month):
        with pytest.raises(InvalidPeriodError):
            lock_period(year, month)
