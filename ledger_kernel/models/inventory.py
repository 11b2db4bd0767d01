"""
Module: ledger_kernel.models.inventory
Responsibility: ORM persistence for the product catalogue and the signed
    inventory movement ledger.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - SKU unique per (tenant, company).
    - Product.stock_quantity is a cache: it always equals the sum of the
      product's movement quantities (InventoryLedger maintains both in the
      same unit of work; verify_stock reports drift).
    - Only PRODUCT items carry stock.  SERVICE items never get movements.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TenantScopedMixin, TrackedBase, UUIDString
from ledger_kernel.db.types import COST_PLACES, QUANTITY_PLACES, ScaledDecimal


class ProductType(str, Enum):
    """Whether an item is physical (trackable) or a service."""

    PRODUCT = "product"
    SERVICE = "service"


class MovementType(str, Enum):
    """Why stock moved."""

    SALE = "sale"
    PURCHASE = "purchase"
    ADJUSTMENT = "adjustment"
    VOID = "void"
    TRANSFER = "transfer"
    RETURN = "return"


class Product(TenantScopedMixin, TrackedBase):
    """A catalogue item for one company."""

    __tablename__ = "products"

    __table_args__ = (
        UniqueConstraint("tenant_id", "company_id", "sku", name="uq_product_sku"),
        Index("idx_product_scope", "tenant_id", "company_id"),
    )

    sku: Mapped[str] = mapped_column(String(100), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    product_type: Mapped[ProductType] = mapped_column(
        String(10),
        nullable=False,
        default=ProductType.PRODUCT.value,
    )

    cost_price: Mapped[Decimal] = mapped_column(
        ScaledDecimal(COST_PLACES),
        nullable=False,
        default=Decimal("0"),
    )

    stock_quantity: Mapped[Decimal] = mapped_column(
        ScaledDecimal(QUANTITY_PLACES),
        nullable=False,
        default=Decimal("0"),
    )

    movements: Mapped[list["InventoryMovement"]] = relationship(
        back_populates="product",
        lazy="dynamic",
    )

    def __repr__(self) -> str:
        return f"<Product {self.sku} stock={self.stock_quantity}>"

    @property
    def is_trackable(self) -> bool:
        return self.product_type == ProductType.PRODUCT


class InventoryMovement(TenantScopedMixin, TrackedBase):
    """
    One signed stock change.

    quantity is negative for outflows (SALE, VOID of a PURCHASE) and positive
    for inflows.  Rows are append-only; a void adds a VOID movement with the
    negated quantity instead of touching the original.
    """

    __tablename__ = "inventory_movements"

    __table_args__ = (
        Index("idx_movement_reference", "tenant_id", "company_id", "reference"),
        Index("idx_movement_product", "product_id"),
    )

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id"),
        nullable=False,
    )

    movement_type: Mapped[MovementType] = mapped_column(String(20), nullable=False)

    quantity: Mapped[Decimal] = mapped_column(
        ScaledDecimal(QUANTITY_PLACES),
        nullable=False,
    )

    movement_date: Mapped[date] = mapped_column(Date, nullable=False)

    reference: Mapped[str] = mapped_column(String(100), nullable=False)

    unit_cost: Mapped[Decimal | None] = mapped_column(
        ScaledDecimal(COST_PLACES),
        nullable=True,
    )

    # Product cost_price before a receipt with update_cost_on_receipt changed it.
    previous_cost_price: Mapped[Decimal | None] = mapped_column(
        ScaledDecimal(COST_PLACES),
        nullable=True,
    )

    reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    product: Mapped["Product"] = relationship(back_populates="movements")

    def __repr__(self) -> str:
        return f"<InventoryMovement {self.movement_type} {self.quantity} ({self.reference})>"
