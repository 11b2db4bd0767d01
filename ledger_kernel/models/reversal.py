"""
Module: ledger_kernel.models.reversal
Responsibility: The document void marker.  One row per voided document
    reference.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - UNIQUE(tenant, company, original_reference): a document is voided at
      most once.  When two transactions race past the idempotency check, the
      loser's flush fails with IntegrityError and is reported as
      already processed.
"""

from uuid import UUID

from sqlalchemy import Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TenantScopedMixin, TrackedBase, UUIDString


class DocumentReversal(TenantScopedMixin, TrackedBase):
    """Record that ``original_reference`` has been voided."""

    __tablename__ = "document_reversals"

    __table_args__ = (
        UniqueConstraint(
            "tenant_id",
            "company_id",
            "original_reference",
            name="uq_document_reversal_reference",
        ),
    )

    original_reference: Mapped[str] = mapped_column(String(100), nullable=False)

    void_reference: Mapped[str] = mapped_column(String(110), nullable=False)

    reason: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    actor_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    reversed_lines: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    reversed_movements: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<DocumentReversal {self.original_reference} -> {self.void_reference}>"
