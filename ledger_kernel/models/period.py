"""
Module: ledger_kernel.models.period
Responsibility: ORM persistence for monthly accounting periods and their lock
    state.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - One row per (tenant, company, year, month).
    - A month with no row is OPEN.  Only LOCKED rows block postings.
"""

from datetime import date, datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TenantScopedMixin, TrackedBase, UTCDateTime, UUIDString


class PeriodStatus(str, Enum):
    """Lock state of an accounting period."""

    OPEN = "open"
    LOCKED = "locked"


def period_code(year: int, month: int) -> str:
    """Human-readable period code, e.g. ``2024-03``."""
    return f"{year:04d}-{month:02d}"


class AccountingPeriod(TenantScopedMixin, TrackedBase):
    """
    A calendar month for one company.

    Contract:
        Rows are created lazily, the first time a month is locked.  Unlocking
        flips the status back to OPEN and keeps the row for audit.
    """

    __tablename__ = "accounting_periods"

    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "company_id", "year", "month", name="uq_accounting_period"
        ),
        Index("idx_period_status", "tenant_id", "company_id", "status"),
    )

    year: Mapped[int] = mapped_column(Integer, nullable=False)

    month: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[PeriodStatus] = mapped_column(
        String(10),
        nullable=False,
        default=PeriodStatus.OPEN.value,
    )

    locked_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(),
        nullable=True,
    )

    locked_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    def __repr__(self) -> str:
        return f"<AccountingPeriod {self.period_code} ({self.status})>"

    @property
    def period_code(self) -> str:
        return period_code(self.year, self.month)

    @property
    def is_locked(self) -> bool:
        return self.status == PeriodStatus.LOCKED

    def contains_date(self, check_date: date) -> bool:
        return check_date.year == self.year and check_date.month == self.month
