"""
DocumentProjector tests with in-memory lookups.

Verifies:
- Sale, purchase receipt and expense posting rules
- Every projection balances
- Only PRODUCT items produce COGS, INVENTORY and movements
- A missing purpose raises AccountNotFoundError; nothing defaults
"""

from datetime import date
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest

from ledger_kernel.domain.documents import (
    ExpenseDocument,
    PurchaseLine,
    PurchaseReceipt,
    SaleDocument,
    SaleLine,
    Settlement,
)
from ledger_kernel.domain.dtos import Found, Missing
from ledger_kernel.domain.projector import DocumentProjector
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    DocumentValidationError,
    ProductNotFoundError,
)
from ledger_kernel.models.account import AccountPurpose
from ledger_kernel.models.inventory import MovementType, ProductType
from ledger_kernel.models.journal import SourceType

DAY = date(2024, 1, 10)
COMPANY_ID = uuid4()


class FakeLookups:
    def __init__(self, purposes=tuple(AccountPurpose)):
        self.accounts = {p: SimpleNamespace(id=uuid4(), code=p.value) for p in purposes}
        self.by_code = {}
        self.products = {}

    def resolve(self, purpose):
        if purpose in self.accounts:
            return Found(self.accounts[purpose])
        return Missing(purpose=purpose, company_id=COMPANY_ID)

    def account_by_code(self, code):
        if code not in self.by_code:
            raise AccountNotFoundError(company_id=str(COMPANY_ID), account_id=code)
        return self.by_code[code]

    def product(self, product_id):
        return self.products.get(product_id)

    def add_product(self, cost_price, product_type=ProductType.PRODUCT):
        product = SimpleNamespace(
            id=uuid4(),
            cost_price=Decimal(cost_price),
            product_type=product_type.value,
        )
        self.products[product.id] = product
        return product

    def id_of(self, purpose):
        return self.accounts[purpose].id


def _by_account(projection):
    """{account_id: (debit, credit)} summed over the projection's lines."""
    totals = {}
    for line in projection.journal_lines:
        debit, credit = totals.get(line.account_id, (Decimal("0"), Decimal("0")))
        totals[line.account_id] = (debit + line.debit, credit + line.credit)
    return totals


@pytest.fixture
def lookups():
    return FakeLookups()


class TestSaleProjection:
    def test_two_product_sale(self, lookups):
        product_a = lookups.add_product("10.00")
        product_b = lookups.add_product("5.00")
        sale = SaleDocument(
            "1001",
            DAY,
            (
                SaleLine("A", Decimal("2"), Decimal("20.00"), product_a.id),
                SaleLine("B", Decimal("3"), Decimal("20.00"), product_b.id),
            ),
        )

        projection = DocumentProjector(lookups).project(sale)
        totals = _by_account(projection)

        assert projection.source_type == SourceType.SALE
        assert totals[lookups.id_of(AccountPurpose.AR)] == (Decimal("100.00"), Decimal("0"))
        assert totals[lookups.id_of(AccountPurpose.REVENUE)] == (Decimal("0"), Decimal("100.00"))
        assert totals[lookups.id_of(AccountPurpose.COGS)] == (Decimal("35.00"), Decimal("0"))
        assert totals[lookups.id_of(AccountPurpose.INVENTORY)] == (Decimal("0"), Decimal("35.00"))
        assert projection.total_debits == projection.total_credits == Decimal("135.00")

        assert [(m.product_id, m.quantity) for m in projection.movements] == [
            (product_a.id, Decimal("-2")),
            (product_b.id, Decimal("-3")),
        ]
        assert all(m.movement_type == MovementType.SALE for m in projection.movements)
        assert projection.movements[0].unit_cost == Decimal("10.00")

    def test_cash_sale_with_tax_and_discount(self, lookups):
        sale = SaleDocument(
            "1002",
            DAY,
            (SaleLine("Consulting", Decimal("1"), Decimal("200.00")),),
            tax_amount=Decimal("19.00"),
            discount_amount=Decimal("10.00"),
            settlement=Settlement.CASH,
        )

        projection = DocumentProjector(lookups).project(sale)
        totals = _by_account(projection)

        assert totals[lookups.id_of(AccountPurpose.CASH)] == (Decimal("209.00"), Decimal("0"))
        assert totals[lookups.id_of(AccountPurpose.SALES_DISCOUNT)] == (Decimal("10.00"), Decimal("0"))
        assert totals[lookups.id_of(AccountPurpose.REVENUE)] == (Decimal("0"), Decimal("200.00"))
        assert totals[lookups.id_of(AccountPurpose.TAX_PAYABLE)] == (Decimal("0"), Decimal("19.00"))
        assert lookups.id_of(AccountPurpose.AR) not in totals
        assert projection.total_debits == projection.total_credits

    def test_service_only_sale_has_no_inventory_effects(self, lookups):
        service = lookups.add_product("30.00", ProductType.SERVICE)
        sale = SaleDocument("1003", DAY, (SaleLine("Install", Decimal("1"), Decimal("50.00"), service.id),))

        projection = DocumentProjector(lookups).project(sale)
        accounts = {line.account_id for line in projection.journal_lines}

        assert projection.movements == ()
        assert lookups.id_of(AccountPurpose.COGS) not in accounts
        assert lookups.id_of(AccountPurpose.INVENTORY) not in accounts

    def test_zero_cost_product_moves_stock_without_cogs(self, lookups):
        free = lookups.add_product("0")
        sale = SaleDocument("1004", DAY, (SaleLine("Sample", Decimal("1"), Decimal("5.00"), free.id),))

        projection = DocumentProjector(lookups).project(sale)

        assert len(projection.movements) == 1
        assert len(projection.journal_lines) == 2

    def test_cogs_rounded_once(self, lookups):
        product = lookups.add_product("0.3333")
        sale = SaleDocument("1005", DAY, (SaleLine("Bolt", Decimal("3"), Decimal("1.00"), product.id),))

        projection = DocumentProjector(lookups).project(sale)
        totals = _by_account(projection)

        assert totals[lookups.id_of(AccountPurpose.COGS)] == (Decimal("1.00"), Decimal("0"))

    def test_missing_purpose_raises(self):
        lookups = FakeLookups(purposes=(AccountPurpose.AR,))
        sale = SaleDocument("1006", DAY, (SaleLine("X", Decimal("1"), Decimal("5.00")),))

        with pytest.raises(AccountNotFoundError) as exc_info:
            DocumentProjector(lookups).project(sale)
        assert exc_info.value.purpose == AccountPurpose.REVENUE.value

    def test_unknown_product_raises(self, lookups):
        sale = SaleDocument("1007", DAY, (SaleLine("X", Decimal("1"), Decimal("5.00"), uuid4()),))
        with pytest.raises(ProductNotFoundError):
            DocumentProjector(lookups).project(sale)

    def test_zero_total_rejected(self, lookups):
        sale = SaleDocument("1008", DAY, (SaleLine("Free", Decimal("1"), Decimal("0")),))
        with pytest.raises(DocumentValidationError, match="total must be positive"):
            DocumentProjector(lookups).project(sale)


class TestPurchaseProjection:
    def test_mixed_receipt_with_expensed_landed_costs(self, lookups):
        product = lookups.add_product("4.00")
        receipt = PurchaseReceipt(
            "PO-1",
            DAY,
            (
                PurchaseLine("Widget", Decimal("10"), Decimal("4.50"), product.id),
                PurchaseLine("Handling", Decimal("1"), Decimal("7.25")),
            ),
            landed_costs=Decimal("12.00"),
        )

        projection = DocumentProjector(lookups).project(receipt)
        totals = _by_account(projection)

        assert totals[lookups.id_of(AccountPurpose.INVENTORY)] == (Decimal("45.00"), Decimal("0"))
        assert totals[lookups.id_of(AccountPurpose.EXPENSE)] == (Decimal("19.25"), Decimal("0"))
        assert totals[lookups.id_of(AccountPurpose.AP)] == (Decimal("0"), Decimal("64.25"))
        assert [(m.movement_type, m.quantity) for m in projection.movements] == [
            (MovementType.PURCHASE, Decimal("10")),
        ]
        assert projection.cost_updates == ()

    def test_capitalized_landed_costs(self, lookups):
        product = lookups.add_product("4.00")
        receipt = PurchaseReceipt(
            "PO-2",
            DAY,
            (PurchaseLine("Widget", Decimal("10"), Decimal("4.50"), product.id),),
            landed_costs=Decimal("5.00"),
            capitalize_landed_costs=True,
            settlement=Settlement.CASH,
        )

        projection = DocumentProjector(lookups).project(receipt)
        totals = _by_account(projection)

        assert totals[lookups.id_of(AccountPurpose.INVENTORY)] == (Decimal("50.00"), Decimal("0"))
        assert totals[lookups.id_of(AccountPurpose.CASH)] == (Decimal("0"), Decimal("50.00"))
        assert lookups.id_of(AccountPurpose.EXPENSE) not in totals

    def test_cost_update_when_enabled(self, lookups):
        product = lookups.add_product("4.00")
        receipt = PurchaseReceipt(
            "PO-3", DAY, (PurchaseLine("Widget", Decimal("2"), Decimal("4.75"), product.id),)
        )

        projection = DocumentProjector(lookups, update_cost_on_receipt=True).project(receipt)

        assert len(projection.cost_updates) == 1
        assert projection.cost_updates[0].unit_cost == Decimal("4.75")


class TestExpenseProjection:
    def test_expense_with_input_tax(self, lookups):
        expense = ExpenseDocument(
            "EXP-1", DAY, Decimal("80.00"), tax_amount=Decimal("8.00"), description="Office supplies"
        )

        projection = DocumentProjector(lookups).project(expense)
        totals = _by_account(projection)

        assert projection.source_type == SourceType.EXPENSE
        assert totals[lookups.id_of(AccountPurpose.EXPENSE)] == (Decimal("80.00"), Decimal("0"))
        assert totals[lookups.id_of(AccountPurpose.TAX_PAYABLE)] == (Decimal("8.00"), Decimal("0"))
        assert totals[lookups.id_of(AccountPurpose.CASH)] == (Decimal("0"), Decimal("88.00"))
        assert projection.movements == ()

    def test_explicit_account_code(self, lookups):
        rent = SimpleNamespace(id=uuid4(), code="6100")
        lookups.by_code["6100"] = rent
        expense = ExpenseDocument(
            "EXP-2", DAY, Decimal("1200.00"), account_code="6100", settlement=Settlement.CREDIT
        )

        projection = DocumentProjector(lookups).project(expense)
        totals = _by_account(projection)

        assert totals[rent.id] == (Decimal("1200.00"), Decimal("0"))
        assert totals[lookups.id_of(AccountPurpose.AP)] == (Decimal("0"), Decimal("1200.00"))
        assert lookups.id_of(AccountPurpose.EXPENSE) not in totals

    def test_unknown_account_code(self, lookups):
        expense = ExpenseDocument("EXP-3", DAY, Decimal("10.00"), account_code="9999")
        with pytest.raises(AccountNotFoundError):
            DocumentProjector(lookups).project(expense)
