"""
AccountDirectory -- per-company Chart of Accounts and purpose resolution.

Responsibility:
    Creates, tags, deactivates and deletes accounts, and resolves semantic
    purpose tags (AR, REVENUE, COGS, ...) to the one account carrying them.

Architecture position:
    Kernel > Services.  Flushes only; the caller owns the transaction.

Invariants enforced:
    - Resolution never defaults: resolve() returns Found or Missing, and
      require() turns Missing into AccountNotFoundError.
    - Code and purpose are unique per (tenant, company).
    - An account referenced by any journal line cannot be deleted.

Failure modes:
    - AccountNotFoundError, CrossTenantAccessError on lookups.
    - DuplicateAccountError, DuplicatePurposeError on create/assign.
    - AccountReferencedError on delete.
"""

from uuid import UUID

from sqlalchemy import func, select

from ledger_kernel.domain.dtos import Found, Missing, Resolution
from ledger_kernel.domain.scope import ScopeContext
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    AccountReferencedError,
    DuplicateAccountError,
    DuplicatePurposeError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import (
    DEFAULT_NORMAL_BALANCE,
    Account,
    AccountPurpose,
    AccountType,
    NormalBalance,
)
from ledger_kernel.models.journal import JournalLine
from ledger_kernel.services.base import BaseService

logger = get_logger("services.account_directory")


class AccountDirectory(BaseService[Account]):
    """Chart of accounts for the scope's company."""

    model = Account
    entity_name = "Account"

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def resolve(self, scope: ScopeContext, purpose: AccountPurpose) -> Resolution:
        """Typed, read-only purpose lookup."""
        purpose = AccountPurpose(purpose)
        account = self.session.execute(
            select(Account).where(*scope.filter(Account), Account.purpose == purpose.value)
        ).scalar_one_or_none()
        if account is None:
            return Missing(purpose=purpose, company_id=scope.company_id)
        return Found(account=account)

    def require(self, scope: ScopeContext, purpose: AccountPurpose) -> Account:
        result = self.resolve(scope, purpose)
        if isinstance(result, Missing):
            raise AccountNotFoundError(
                company_id=str(scope.company_id),
                purpose=result.purpose.value,
            )
        return result.account

    def get(self, scope: ScopeContext, account_id: UUID) -> Account:
        account = self._load_scoped(scope, account_id)
        if account is None:
            raise AccountNotFoundError(
                company_id=str(scope.company_id),
                account_id=str(account_id),
            )
        return account

    def get_by_code(self, scope: ScopeContext, code: str) -> Account:
        account = self.session.execute(
            select(Account).where(*scope.filter(Account), Account.code == code)
        ).scalar_one_or_none()
        if account is None:
            raise AccountNotFoundError(
                company_id=str(scope.company_id),
                account_id=code,
            )
        return account

    def list_accounts(self, scope: ScopeContext, *, active_only: bool = False) -> list[Account]:
        stmt = select(Account).where(*scope.filter(Account))
        if active_only:
            stmt = stmt.where(Account.is_active.is_(True))
        return list(self.session.execute(stmt.order_by(Account.code)).scalars())

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_account(
        self,
        scope: ScopeContext,
        code: str,
        name: str,
        account_type: AccountType,
        actor_id: UUID | None = None,
        *,
        normal_balance: NormalBalance | None = None,
        purpose: AccountPurpose | None = None,
    ) -> Account:
        account_type = AccountType(account_type)
        if normal_balance is None:
            normal_balance = DEFAULT_NORMAL_BALANCE[account_type]

        existing = self.session.execute(
            select(Account.id).where(*scope.filter(Account), Account.code == code)
        ).scalar_one_or_none()
        if existing is not None:
            raise DuplicateAccountError(str(scope.company_id), code)

        if purpose is not None:
            purpose = AccountPurpose(purpose)
            self._ensure_purpose_free(scope, purpose)

        account = Account(
            tenant_id=scope.tenant_id,
            company_id=scope.company_id,
            code=code,
            name=name,
            account_type=account_type.value,
            normal_balance=NormalBalance(normal_balance).value,
            purpose=purpose.value if purpose is not None else None,
            is_active=True,
            created_by_id=actor_id,
        )
        self.session.add(account)
        self.session.flush()

        logger.info(
            "account_created",
            extra={
                "account_id": str(account.id),
                "account_code": code,
                "account_type": account_type.value,
                "purpose": purpose.value if purpose is not None else None,
            },
        )
        return account

    def assign_purpose(
        self,
        scope: ScopeContext,
        account_id: UUID,
        purpose: AccountPurpose | None,
        actor_id: UUID | None = None,
    ) -> Account:
        """Tag ``account_id`` with ``purpose`` (None clears the tag)."""
        account = self.get(scope, account_id)
        if purpose is not None:
            purpose = AccountPurpose(purpose)
            if account.purpose != purpose.value:
                self._ensure_purpose_free(scope, purpose)
        account.purpose = purpose.value if purpose is not None else None
        account.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "account_purpose_assigned",
            extra={
                "account_id": str(account.id),
                "purpose": purpose.value if purpose is not None else None,
            },
        )
        return account

    def deactivate(
        self,
        scope: ScopeContext,
        account_id: UUID,
        actor_id: UUID | None = None,
    ) -> Account:
        account = self.get(scope, account_id)
        account.is_active = False
        account.updated_by_id = actor_id
        self.session.flush()
        logger.info("account_deactivated", extra={"account_id": str(account.id)})
        return account

    def delete_account(self, scope: ScopeContext, account_id: UUID) -> None:
        account = self.get(scope, account_id)
        line_count = self.session.execute(
            select(func.count(JournalLine.id)).where(JournalLine.account_id == account.id)
        ).scalar_one()
        if line_count:
            raise AccountReferencedError(str(account.id), line_count)

        self.session.delete(account)
        self.session.flush()
        logger.info("account_deleted", extra={"account_id": str(account_id)})

    def _ensure_purpose_free(self, scope: ScopeContext, purpose: AccountPurpose) -> None:
        holder = self.session.execute(
            select(Account.id).where(*scope.filter(Account), Account.purpose == purpose.value)
        ).scalar_one_or_none()
        if holder is not None:
            raise DuplicatePurposeError(str(scope.company_id), purpose.value, str(holder))
