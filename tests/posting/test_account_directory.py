"""
AccountDirectory tests.

Verifies:
- Purpose resolution returns Found or Missing, never a default
- Codes and purposes are unique per company
- Referenced accounts cannot be deleted
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.domain.dtos import Found, LineSpec, Missing
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    AccountReferencedError,
    CrossTenantAccessError,
    DuplicateAccountError,
    DuplicatePurposeError,
)
from ledger_kernel.models.account import AccountPurpose, AccountType, NormalBalance


class TestResolution:
    def test_found(self, services, scope, standard_accounts):
        result = services.accounts.resolve(scope, AccountPurpose.AR)
        assert isinstance(result, Found)
        assert result.account_id == standard_accounts["ar"].id

    def test_missing(self, services, scope, create_account):
        create_account("1000", purpose=AccountPurpose.CASH)

        result = services.accounts.resolve(scope, AccountPurpose.COGS)

        assert isinstance(result, Missing)
        assert result.purpose == AccountPurpose.COGS
        assert result.company_id == scope.company_id

    def test_require_raises_for_missing(self, services, scope):
        with pytest.raises(AccountNotFoundError) as exc_info:
            services.accounts.require(scope, AccountPurpose.REVENUE)
        assert exc_info.value.purpose == "REVENUE"

    def test_resolution_is_per_company(self, services, other_scope, standard_accounts):
        assert isinstance(services.accounts.resolve(other_scope, AccountPurpose.AR), Missing)


class TestChartMaintenance:
    def test_default_normal_balance(self, create_account):
        assert create_account("4000", account_type=AccountType.REVENUE).normal_balance == NormalBalance.CREDIT
        assert create_account("1000", account_type=AccountType.ASSET).normal_balance == NormalBalance.DEBIT

    def test_duplicate_code(self, create_account):
        create_account("1000")
        with pytest.raises(DuplicateAccountError):
            create_account("1000")

    def test_duplicate_purpose(self, create_account):
        create_account("1000", purpose=AccountPurpose.CASH)
        with pytest.raises(DuplicatePurposeError):
            create_account("1010", purpose=AccountPurpose.CASH)

    def test_assign_and_move_purpose(self, services, scope, create_account):
        old = create_account("1000", purpose=AccountPurpose.CASH)
        new = create_account("1010")

        with pytest.raises(DuplicatePurposeError):
            services.accounts.assign_purpose(scope, new.id, AccountPurpose.CASH)

        services.accounts.assign_purpose(scope, old.id, None)
        services.accounts.assign_purpose(scope, new.id, AccountPurpose.CASH)

        assert services.accounts.require(scope, AccountPurpose.CASH).id == new.id

    def test_get_by_code(self, services, scope, create_account):
        account = create_account("1000")
        assert services.accounts.get_by_code(scope, "1000").id == account.id
        with pytest.raises(AccountNotFoundError):
            services.accounts.get_by_code(scope, "9999")

    def test_get_foreign_account(self, services, other_scope, create_account):
        account = create_account("1000")
        with pytest.raises(CrossTenantAccessError):
            services.accounts.get(other_scope, account.id)

    def test_get_unknown_account(self, services, scope):
        with pytest.raises(AccountNotFoundError):
            services.accounts.get(scope, uuid4())

    def test_list_active_only(self, services, scope, create_account):
        create_account("1000")
        retired = create_account("1010")
        services.accounts.deactivate(scope, retired.id)

        assert [a.code for a in services.accounts.list_accounts(scope)] == ["1000", "1010"]
        assert [a.code for a in services.accounts.list_accounts(scope, active_only=True)] == ["1000"]


class TestDeletion:
    def test_delete_unused(self, services, scope, create_account, captured_logs):
        account = create_account("1000")
        services.accounts.delete_account(scope, account.id)

        assert services.accounts.list_accounts(scope) == []
        assert any(r["message"] == "account_deleted" for r in captured_logs())

    def test_delete_referenced(self, services, scope, standard_accounts):
        services.poster.post(
            scope,
            date(2024, 1, 10),
            None,
            "JE-1",
            [
                LineSpec.dr(standard_accounts["cash"].id, Decimal("1.00")),
                LineSpec.cr(standard_accounts["revenue"].id, Decimal("1.00")),
            ],
            None,
        )

        with pytest.raises(AccountReferencedError) as exc_info:
            services.accounts.delete_account(scope, standard_accounts["cash"].id)
        assert exc_info.value.line_count == 1
