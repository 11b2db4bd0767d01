"""
Document payload tests.

Verifies:
- Totals are derived once with round_money
- validate() rejects unpostable payloads with DocumentValidationError
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_kernel.domain.documents import (
    ExpenseDocument,
    PurchaseLine,
    PurchaseReceipt,
    SaleDocument,
    SaleLine,
)
from ledger_kernel.exceptions import DocumentValidationError

DAY = date(2024, 1, 10)


def _sale(*lines, **kwargs):
    return SaleDocument(number=kwargs.pop("number", "1001"), document_date=DAY, lines=lines, **kwargs)


class TestSaleTotals:
    def test_subtotal_and_total(self):
        sale = _sale(
            SaleLine("A", Decimal("2"), Decimal("20.00")),
            SaleLine("B", Decimal("3"), Decimal("20.00")),
            tax_amount=Decimal("8.00"),
            discount_amount=Decimal("5.00"),
        )
        assert sale.subtotal == Decimal("100.00")
        assert sale.total == Decimal("103.00")

    def test_subtotal_rounds_half_up(self):
        sale = _sale(SaleLine("A", Decimal("3"), Decimal("0.335")))
        assert sale.subtotal == Decimal("1.01")

    def test_lines_coerced_to_tuple(self):
        sale = SaleDocument("1001", DAY, [SaleLine("A", Decimal("1"), Decimal("1"))])
        assert isinstance(sale.lines, tuple)


class TestSaleValidation:
    def test_valid_sale_passes(self):
        _sale(SaleLine("A", Decimal("1"), Decimal("1.00"))).validate()

    def test_no_lines(self):
        with pytest.raises(DocumentValidationError, match="no lines"):
            _sale().validate()

    @pytest.mark.parametrize("quantity", ["0", "-1"])
    def test_non_positive_quantity(self, quantity):
        with pytest.raises(DocumentValidationError, match="quantity must be positive"):
            _sale(SaleLine("A", Decimal(quantity), Decimal("1.00"))).validate()

    def test_quantity_precision(self):
        with pytest.raises(DocumentValidationError, match="decimal places"):
            _sale(SaleLine("A", Decimal("0.00001"), Decimal("1.00"))).validate()

    def test_negative_price(self):
        with pytest.raises(DocumentValidationError, match="must not be negative"):
            _sale(SaleLine("A", Decimal("1"), Decimal("-1.00"))).validate()

    def test_discount_exceeds_subtotal(self):
        with pytest.raises(DocumentValidationError, match="discount exceeds subtotal"):
            _sale(
                SaleLine("A", Decimal("1"), Decimal("10.00")),
                discount_amount=Decimal("10.01"),
            ).validate()

    def test_tax_precision(self):
        with pytest.raises(DocumentValidationError, match="tax_amount"):
            _sale(
                SaleLine("A", Decimal("1"), Decimal("10.00")),
                tax_amount=Decimal("0.001"),
            ).validate()

    @pytest.mark.parametrize("number", ["", "   ", "VOID-1001"])
    def test_bad_number(self, number):
        with pytest.raises(DocumentValidationError):
            _sale(SaleLine("A", Decimal("1"), Decimal("1.00")), number=number).validate()

    def test_error_carries_reference(self):
        with pytest.raises(DocumentValidationError) as exc_info:
            _sale(number="S-9").validate()
        assert exc_info.value.reference == "S-9"


class TestPurchaseValidation:
    def test_unit_cost_precision(self):
        receipt = PurchaseReceipt(
            "PO-1", DAY, (PurchaseLine("Bolt", Decimal("1"), Decimal("0.00001")),)
        )
        with pytest.raises(DocumentValidationError, match="unit_cost"):
            receipt.validate()

    def test_negative_landed_costs(self):
        receipt = PurchaseReceipt(
            "PO-1",
            DAY,
            (PurchaseLine("Bolt", Decimal("1"), Decimal("1.00")),),
            landed_costs=Decimal("-1"),
        )
        with pytest.raises(DocumentValidationError, match="landed_costs"):
            receipt.validate()


class TestExpense:
    def test_total(self):
        expense = ExpenseDocument("EXP-1", DAY, Decimal("50.00"), tax_amount=Decimal("5.00"))
        assert expense.total == Decimal("55.00")

    @pytest.mark.parametrize("amount", ["0", "-5"])
    def test_amount_must_be_positive(self, amount):
        with pytest.raises(DocumentValidationError, match="positive"):
            ExpenseDocument("EXP-1", DAY, Decimal(amount)).validate()
