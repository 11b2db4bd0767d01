"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Common constructor and session-handling contract.  Concrete services
    receive a SQLAlchemy ``Session`` and use ``session.flush()``, never
    ``session.commit()``.

Invariants enforced:
    Transaction boundaries belong to the caller (PostingOrchestrator or a
    test harness).  Services flush within the caller's transaction and never
    commit or roll back themselves, so multi-step operations stay atomic.
"""

from abc import ABC
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.db.base import Base
from ledger_kernel.domain.scope import ScopeContext

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Non-goals:
        - Does NOT manage transaction lifecycle.
        - Read-only reporting queries belong in ``ledger_kernel/selectors/``.
    """

    model: type[ModelType]
    entity_name: str = "Record"

    def __init__(self, session: Session):
        self.session = session

    def _load_scoped(
        self,
        scope: ScopeContext,
        row_id: UUID,
        *,
        for_update: bool = False,
    ) -> ModelType | None:
        """
        Load a row of ``self.model`` by id, enforcing tenant isolation.

        Returns None when no row has the id.  Raises CrossTenantAccessError
        when the row exists under another tenant or company.
        """
        stmt = select(self.model).where(self.model.id == row_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        row = self.session.execute(stmt).scalar_one_or_none()
        if row is None:
            return None
        return scope.check(row, self.entity_name)
