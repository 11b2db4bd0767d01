"""
DocumentProjector -- turns business documents into journal lines plus
planned inventory movements.

Responsibility:
    Pure posting rules for sales, purchase receipts and expenses.  Account
    and product lookups are injected; the projector itself performs no I/O
    and writes nothing.

Architecture position:
    Kernel > Domain.  Called by DocumentPostingService, which owns the
    session and commits nothing itself either.

Invariants enforced:
    - Every projection balances exactly at 2 places.
    - Accounts come only from purpose tags (or an explicit expense account
      code).  A Missing purpose raises AccountNotFoundError; there is no
      default account.
    - Only PRODUCT items produce COGS, INVENTORY and stock movements.  The
      decision is read from Product.product_type, nothing else.

Failure modes:
    - AccountNotFoundError naming the purpose (or code) that did not resolve.
    - ProductNotFoundError for an unknown product id.
    - DocumentValidationError for unpostable payloads.
"""

from decimal import Decimal
from typing import Any, Protocol
from uuid import UUID

from ledger_kernel.db.types import ZERO, round_money
from ledger_kernel.domain.documents import (
    Document,
    ExpenseDocument,
    PurchaseReceipt,
    SaleDocument,
    Settlement,
)
from ledger_kernel.domain.dtos import (
    CostUpdate,
    Found,
    LineSpec,
    PlannedMovement,
    Projection,
    Resolution,
)
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    DocumentValidationError,
    ProductNotFoundError,
)
from ledger_kernel.models.account import AccountPurpose
from ledger_kernel.models.inventory import MovementType, ProductType
from ledger_kernel.models.journal import SourceType


class ProjectionLookups(Protocol):
    """Scoped lookups the projector needs.  Implemented by the service layer."""

    def resolve(self, purpose: AccountPurpose) -> Resolution: ...

    def account_by_code(self, code: str) -> Any: ...

    def product(self, product_id: UUID) -> Any | None: ...


class DocumentProjector:
    """
    Projects documents onto journal lines and movements.

    Usage:
        projector = DocumentProjector(lookups, update_cost_on_receipt=True)
        projection = projector.project(sale)
    """

    def __init__(
        self,
        lookups: ProjectionLookups,
        update_cost_on_receipt: bool = False,
        require_positive_total: bool = True,
    ):
        self._lookups = lookups
        self._update_cost_on_receipt = update_cost_on_receipt
        self._require_positive_total = require_positive_total

    def project(self, document: Document) -> Projection:
        document.validate()
        if isinstance(document, SaleDocument):
            return self._project_sale(document)
        if isinstance(document, PurchaseReceipt):
            return self._project_purchase(document)
        if isinstance(document, ExpenseDocument):
            return self._project_expense(document)
        raise DocumentValidationError(
            getattr(document, "number", "?"),
            f"unsupported document type {type(document).__name__}",
        )

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _account(self, purpose: AccountPurpose) -> UUID:
        result = self._lookups.resolve(purpose)
        if isinstance(result, Found):
            return result.account_id
        raise AccountNotFoundError(
            company_id=str(result.company_id),
            purpose=purpose.value,
        )

    def _product(self, product_id: UUID):
        product = self._lookups.product(product_id)
        if product is None:
            raise ProductNotFoundError(str(product_id))
        return product

    def _settlement_account(self, settlement: Settlement, credit_purpose: AccountPurpose) -> UUID:
        if settlement == Settlement.CASH:
            return self._account(AccountPurpose.CASH)
        return self._account(credit_purpose)

    def _check_total(self, number: str, total: Decimal) -> None:
        if self._require_positive_total and total <= 0:
            raise DocumentValidationError(number, "document total must be positive")

    # ------------------------------------------------------------------
    # Sale
    # ------------------------------------------------------------------

    def _project_sale(self, sale: SaleDocument) -> Projection:
        subtotal = sale.subtotal
        discount = round_money(sale.discount_amount)
        tax = round_money(sale.tax_amount)
        total = sale.total
        self._check_total(sale.number, total)

        lines: list[LineSpec] = []
        if total > 0:
            lines.append(
                LineSpec.dr(
                    self._settlement_account(sale.settlement, AccountPurpose.AR),
                    total,
                    memo=sale.memo or f"Sale {sale.number}",
                )
            )
        if discount > 0:
            lines.append(
                LineSpec.dr(self._account(AccountPurpose.SALES_DISCOUNT), discount, "Sales discount")
            )
        if subtotal > 0:
            lines.append(LineSpec.cr(self._account(AccountPurpose.REVENUE), subtotal, "Revenue"))
        if tax > 0:
            lines.append(LineSpec.cr(self._account(AccountPurpose.TAX_PAYABLE), tax, "Sales tax"))

        movements: list[PlannedMovement] = []
        cost = ZERO
        for line in sale.lines:
            if line.product_id is None:
                continue
            product = self._product(line.product_id)
            if product.product_type != ProductType.PRODUCT:
                continue
            cost += line.quantity * product.cost_price
            movements.append(
                PlannedMovement(
                    product_id=line.product_id,
                    movement_type=MovementType.SALE,
                    quantity=-line.quantity,
                    unit_cost=product.cost_price,
                    reason=line.description,
                )
            )

        cogs = round_money(cost)
        if cogs > 0:
            lines.append(LineSpec.dr(self._account(AccountPurpose.COGS), cogs, "Cost of goods sold"))
            lines.append(LineSpec.cr(self._account(AccountPurpose.INVENTORY), cogs, "Inventory relief"))

        return Projection(
            source_type=SourceType.SALE,
            journal_lines=tuple(lines),
            movements=tuple(movements),
        )

    # ------------------------------------------------------------------
    # Purchase receipt
    # ------------------------------------------------------------------

    def _project_purchase(self, receipt: PurchaseReceipt) -> Projection:
        inventory_cost = ZERO
        expense_cost = ZERO
        movements: list[PlannedMovement] = []
        cost_updates: list[CostUpdate] = []

        for line in receipt.lines:
            product = self._product(line.product_id) if line.product_id is not None else None
            if product is not None and product.product_type == ProductType.PRODUCT:
                inventory_cost += line.amount
                movements.append(
                    PlannedMovement(
                        product_id=line.product_id,
                        movement_type=MovementType.PURCHASE,
                        quantity=line.quantity,
                        unit_cost=line.unit_cost,
                        reason=line.description,
                    )
                )
                if self._update_cost_on_receipt:
                    cost_updates.append(CostUpdate(line.product_id, line.unit_cost))
            else:
                expense_cost += line.amount

        inventory_amount = round_money(inventory_cost)
        expense_amount = round_money(expense_cost)
        landed = round_money(receipt.landed_costs)
        if receipt.capitalize_landed_costs:
            inventory_amount += landed
        else:
            expense_amount += landed

        total = inventory_amount + expense_amount
        self._check_total(receipt.number, total)

        lines: list[LineSpec] = []
        if inventory_amount > 0:
            lines.append(
                LineSpec.dr(self._account(AccountPurpose.INVENTORY), inventory_amount, "Inventory received")
            )
        if expense_amount > 0:
            lines.append(
                LineSpec.dr(self._account(AccountPurpose.EXPENSE), expense_amount, "Purchased services and costs")
            )
        if total > 0:
            lines.append(
                LineSpec.cr(
                    self._settlement_account(receipt.settlement, AccountPurpose.AP),
                    total,
                    memo=receipt.memo or f"Purchase {receipt.number}",
                )
            )

        return Projection(
            source_type=SourceType.PURCHASE,
            journal_lines=tuple(lines),
            movements=tuple(movements),
            cost_updates=tuple(cost_updates),
        )

    # ------------------------------------------------------------------
    # Expense
    # ------------------------------------------------------------------

    def _project_expense(self, expense: ExpenseDocument) -> Projection:
        amount = round_money(expense.amount)
        tax = round_money(expense.tax_amount)

        if expense.account_code:
            expense_account = self._lookups.account_by_code(expense.account_code).id
        else:
            expense_account = self._account(AccountPurpose.EXPENSE)

        lines = [LineSpec.dr(expense_account, amount, expense.description or None)]
        if tax > 0:
            lines.append(LineSpec.dr(self._account(AccountPurpose.TAX_PAYABLE), tax, "Input tax"))
        lines.append(
            LineSpec.cr(
                self._settlement_account(expense.settlement, AccountPurpose.AP),
                expense.total,
                memo=f"Expense {expense.number}",
            )
        )

        return Projection(source_type=SourceType.EXPENSE, journal_lines=tuple(lines))
