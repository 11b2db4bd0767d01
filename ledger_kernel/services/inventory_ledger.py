"""
InventoryLedger -- signed stock movements plus the cached product stock.

Responsibility:
    Records InventoryMovement rows and keeps Product.stock_quantity equal to
    their running sum, in the same unit of work.  Also owns the product
    catalogue helpers.

Architecture position:
    Kernel > Services.  Flushes only.

Invariants enforced:
    - The product row is locked (SELECT ... FOR UPDATE) before its cached
      stock is changed, so concurrent movements on one product serialize.
    - SERVICE items never get movements.
    - Negative resulting stock is allowed and flagged: a NegativeStockWarning
      is logged and returned on MoveResult.warnings, never raised.

Failure modes:
    - ProductNotFoundError / CrossTenantAccessError for unknown or foreign
      products.
    - InvalidMovementError for zero quantity or a SERVICE product.
    - DuplicateProductError when a SKU is reused.
"""

from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ledger_kernel.db.types import QUANTITY_PLACES, ZERO, has_excess_precision
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import MoveResult, StockCheck
from ledger_kernel.domain.scope import ScopeContext
from ledger_kernel.exceptions import (
    DuplicateProductError,
    InvalidMovementError,
    NegativeStockWarning,
    ProductNotFoundError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.inventory import (
    InventoryMovement,
    MovementType,
    Product,
    ProductType,
)
from ledger_kernel.services.base import BaseService

logger = get_logger("services.inventory_ledger")


class InventoryLedger(BaseService[Product]):
    """Stock movements and product catalogue for the scope's company."""

    model = Product
    entity_name = "Product"

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Catalogue
    # ------------------------------------------------------------------

    def create_product(
        self,
        scope: ScopeContext,
        sku: str,
        name: str,
        product_type: ProductType = ProductType.PRODUCT,
        cost_price: Decimal = ZERO,
        actor_id: UUID | None = None,
    ) -> Product:
        product_type = ProductType(product_type)
        existing = self.session.execute(
            select(Product.id).where(*scope.filter(Product), Product.sku == sku)
        ).scalar_one_or_none()
        if existing is not None:
            raise DuplicateProductError(str(scope.company_id), sku)

        product = Product(
            tenant_id=scope.tenant_id,
            company_id=scope.company_id,
            sku=sku,
            name=name,
            product_type=product_type.value,
            cost_price=cost_price,
            stock_quantity=ZERO,
            created_by_id=actor_id,
        )
        self.session.add(product)
        self.session.flush()

        logger.info(
            "product_created",
            extra={"product_id": str(product.id), "sku": sku, "product_type": product_type.value},
        )
        return product

    def find_product(self, scope: ScopeContext, product_id: UUID) -> Product | None:
        """Product in scope, or None.  Raises CrossTenantAccessError for foreign ids."""
        return self._load_scoped(scope, product_id)

    def get_product(self, scope: ScopeContext, product_id: UUID) -> Product:
        product = self.find_product(scope, product_id)
        if product is None:
            raise ProductNotFoundError(str(product_id))
        return product

    def set_cost_price(
        self,
        scope: ScopeContext,
        product_id: UUID,
        cost_price: Decimal,
        actor_id: UUID | None = None,
    ) -> Product:
        product = self.get_product(scope, product_id)
        previous = product.cost_price
        product.cost_price = cost_price
        product.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "product_cost_updated",
            extra={
                "product_id": str(product_id),
                "previous_cost": str(previous),
                "cost_price": str(cost_price),
            },
        )
        return product

    # ------------------------------------------------------------------
    # Movements
    # ------------------------------------------------------------------

    def move(
        self,
        scope: ScopeContext,
        product_id: UUID,
        movement_type: MovementType,
        quantity: Decimal,
        reference: str,
        unit_cost: Decimal | None = None,
        movement_date: date | None = None,
        reason: str | None = None,
        actor_id: UUID | None = None,
        previous_cost_price: Decimal | None = None,
    ) -> MoveResult:
        """
        Record one signed movement and apply it to the cached stock.

        Postconditions:
            - One InventoryMovement row is flushed.
            - product.stock_quantity == previous + quantity.
        """
        movement_type = MovementType(movement_type)
        if quantity == 0:
            raise InvalidMovementError(str(product_id), "quantity must be non-zero")
        if has_excess_precision(quantity, QUANTITY_PLACES):
            raise InvalidMovementError(
                str(product_id), f"quantity has more than {QUANTITY_PLACES} decimal places"
            )

        product = self._load_scoped(scope, product_id, for_update=True)
        if product is None:
            raise ProductNotFoundError(str(product_id))
        if not product.is_trackable:
            raise InvalidMovementError(str(product_id), "service items do not carry stock")

        movement = InventoryMovement(
            tenant_id=scope.tenant_id,
            company_id=scope.company_id,
            product_id=product.id,
            movement_type=movement_type.value,
            quantity=quantity,
            movement_date=movement_date or self._clock.today(),
            reference=reference,
            unit_cost=unit_cost,
            previous_cost_price=previous_cost_price,
            reason=reason,
            created_by_id=actor_id,
        )
        self.session.add(movement)

        product.stock_quantity = product.stock_quantity + quantity
        product.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "inventory_movement_recorded",
            extra={
                "movement_id": str(movement.id),
                "product_id": str(product.id),
                "movement_type": movement_type.value,
                "quantity": str(quantity),
                "reference": reference,
                "resulting_stock": str(product.stock_quantity),
            },
        )

        warnings: tuple[NegativeStockWarning, ...] = ()
        if product.stock_quantity < 0:
            warning = NegativeStockWarning(
                product_id=str(product.id),
                resulting_stock=str(product.stock_quantity),
                reference=reference,
            )
            logger.warning(
                "negative_stock",
                extra={
                    "product_id": str(product.id),
                    "sku": product.sku,
                    "resulting_stock": str(product.stock_quantity),
                    "reference": reference,
                },
            )
            warnings = (warning,)

        return MoveResult(
            movement_id=movement.id,
            product_id=product.id,
            quantity=quantity,
            resulting_stock=product.stock_quantity,
            warnings=warnings,
        )

    def current_stock(self, scope: ScopeContext, product_id: UUID) -> Decimal:
        return self.get_product(scope, product_id).stock_quantity

    def verify_stock(self, scope: ScopeContext, product_id: UUID) -> StockCheck:
        """Compare the cached quantity with the sum of recorded movements."""
        product = self.get_product(scope, product_id)
        total = self.session.execute(
            select(func.sum(InventoryMovement.quantity)).where(
                *scope.filter(InventoryMovement),
                InventoryMovement.product_id == product.id,
            )
        ).scalar_one()
        check = StockCheck(
            product_id=product.id,
            cached_quantity=product.stock_quantity,
            movement_total=total if total is not None else ZERO,
        )
        if not check.is_consistent:
            logger.warning(
                "stock_drift_detected",
                extra={"product_id": str(product.id), "drift": str(check.drift)},
            )
        return check

    def movements_for(
        self,
        scope: ScopeContext,
        references: Iterable[str],
    ) -> list[InventoryMovement]:
        """All movements in scope whose reference is one of ``references``."""
        refs = list(references)
        if not refs:
            return []
        return list(
            self.session.execute(
                select(InventoryMovement)
                .where(
                    *scope.filter(InventoryMovement),
                    InventoryMovement.reference.in_(refs),
                )
                .order_by(InventoryMovement.created_at, InventoryMovement.id)
            ).scalars()
        )
