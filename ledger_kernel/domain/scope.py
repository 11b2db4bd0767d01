"""
ScopeContext -- the (tenant, company) pair every ledger call runs under.

Every service query filters on both ids.  A row fetched by primary key that
belongs to another scope raises CrossTenantAccessError instead of being
returned or silently hidden.
"""

from dataclasses import dataclass
from uuid import UUID

from ledger_kernel.exceptions import CrossTenantAccessError


@dataclass(frozen=True)
class ScopeContext:
    """Tenant and company the current unit of work operates in."""

    tenant_id: UUID
    company_id: UUID

    def owns(self, row) -> bool:
        """True when ``row`` (any TenantScopedMixin model) is in this scope."""
        return row.tenant_id == self.tenant_id and row.company_id == self.company_id

    def check(self, row, entity: str):
        """
        Return ``row`` if it belongs to this scope.

        Raises:
            CrossTenantAccessError: row exists under another tenant/company.
        """
        if not self.owns(row):
            raise CrossTenantAccessError(
                entity=entity,
                entity_id=str(row.id),
                tenant_id=str(self.tenant_id),
                company_id=str(self.company_id),
            )
        return row

    def filter(self, model) -> tuple:
        """WHERE clauses restricting ``model`` to this scope."""
        return (model.tenant_id == self.tenant_id, model.company_id == self.company_id)

    def log_fields(self) -> dict[str, str]:
        """Fields LogContext.bind() attaches for this scope."""
        return {"tenant_id": str(self.tenant_id), "company_id": str(self.company_id)}
