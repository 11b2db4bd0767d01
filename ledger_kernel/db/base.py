"""
Module: ledger_kernel.db.base
Responsibility: Declarative base classes for all ORM models.  Provides the UUID
    primary key convention, audit columns, and the tenant/company scoping
    columns that every persisted row carries.
Architecture position: Kernel > DB.  Lowest-level import target; MUST NOT
    import from models/, services/, selectors/ or domain/.

Invariants enforced:
    - UUID primary keys stored as String(36).
    - Every tenant-owned row carries tenant_id and company_id (NOT NULL,
      indexed together).
    - Audit columns created_at, updated_at, created_by_id, updated_by_id.
"""

from datetime import datetime, timezone
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import BigInteger, DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID stored as String(36) so SQLite and PostgreSQL share one schema."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return PyUUID(value)
        return None


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime, always UTC.

    SQLite has no timezone storage and returns naive values; they are read
    back as UTC so both backends hand out the same aware datetimes.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"Naive datetime {value!r}; pass an aware UTC value")
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    """
    Declarative base for all ledger models.

    Guarantees:
        - id is a uuid4 UUID stored as String(36).
        - datetime maps to UTCDateTime (aware, UTC).
        - int maps to BigInteger.

    Money and quantity columns do NOT use the annotation map; they declare
    ScaledDecimal explicitly so the scale is visible at the column.
    """

    type_annotation_map: ClassVar[dict] = {
        datetime: UTCDateTime(),
        PyUUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )


class TrackedBase(Base):
    """
    Abstract base with audit timestamps and actor tracking.

    created_by_id is nullable: system-initiated voids may run without an
    actor.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    created_by_id: Mapped[PyUUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    updated_by_id: Mapped[PyUUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )


class TenantScopedMixin:
    """
    Mixin adding the (tenant_id, company_id) ownership pair.

    Every query against a tenant-scoped model must filter on both columns;
    see ledger_kernel.domain.scope.ScopeContext.
    """

    @declared_attr
    def tenant_id(cls) -> Mapped[PyUUID]:
        return mapped_column(UUIDString(), nullable=False, index=True)

    @declared_attr
    def company_id(cls) -> Mapped[PyUUID]:
        return mapped_column(UUIDString(), nullable=False, index=True)

    def belongs_to(self, tenant_id: PyUUID, company_id: PyUUID) -> bool:
        return self.tenant_id == tenant_id and self.company_id == company_id


# Re-export UUID for convenience
UUID = PyUUID
