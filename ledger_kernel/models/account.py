"""
Module: ledger_kernel.models.account
Responsibility: ORM persistence for the per-company Chart of Accounts, the
    target of every journal line.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Account code is unique within (tenant, company).
    - A purpose tag is held by at most one account within (tenant, company),
      so purpose resolution is deterministic.

Failure modes:
    - IntegrityError on duplicate code or purpose (services raise the typed
      DuplicateAccountError / DuplicatePurposeError before reaching it).
    - AccountReferencedError when deletion is attempted on a referenced
      account (service-layer guard).
"""

from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TenantScopedMixin, TrackedBase

if TYPE_CHECKING:
    from ledger_kernel.models.journal import JournalLine


class AccountType(str, Enum):
    """Types of accounts in the chart of accounts."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"


class NormalBalance(str, Enum):
    """Normal balance side for an account."""

    DEBIT = "debit"
    CREDIT = "credit"


class AccountPurpose(str, Enum):
    """
    Semantic purpose tags used to derive the account mapping at runtime.

    The projector never hard-codes account codes; it asks the directory for
    the account carrying one of these tags.
    """

    AR = "AR"
    AP = "AP"
    REVENUE = "REVENUE"
    COGS = "COGS"
    INVENTORY = "INVENTORY"
    CASH = "CASH"
    EXPENSE = "EXPENSE"
    TAX_PAYABLE = "TAX_PAYABLE"
    SALES_DISCOUNT = "SALES_DISCOUNT"


DEFAULT_NORMAL_BALANCE: dict[AccountType, NormalBalance] = {
    AccountType.ASSET: NormalBalance.DEBIT,
    AccountType.EXPENSE: NormalBalance.DEBIT,
    AccountType.LIABILITY: NormalBalance.CREDIT,
    AccountType.EQUITY: NormalBalance.CREDIT,
    AccountType.REVENUE: NormalBalance.CREDIT,
}


class Account(TenantScopedMixin, TrackedBase):
    """
    Chart of Accounts entry for one company.

    Guarantees:
        - code is unique per (tenant, company).
        - purpose, when set, is unique per (tenant, company).
        - Inactive accounts stay readable but reject new postings.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("tenant_id", "company_id", "code", name="uq_account_code"),
        UniqueConstraint(
            "tenant_id", "company_id", "purpose", name="uq_account_purpose"
        ),
        Index("idx_account_scope", "tenant_id", "company_id"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    account_type: Mapped[AccountType] = mapped_column(String(20), nullable=False)

    normal_balance: Mapped[NormalBalance] = mapped_column(String(10), nullable=False)

    purpose: Mapped[AccountPurpose | None] = mapped_column(String(30), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    journal_lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="account",
        lazy="dynamic",
    )

    def __repr__(self) -> str:
        return f"<Account {self.code}: {self.name}>"

    @property
    def is_debit_normal(self) -> bool:
        return self.normal_balance == NormalBalance.DEBIT

    @property
    def is_credit_normal(self) -> bool:
        return self.normal_balance == NormalBalance.CREDIT
