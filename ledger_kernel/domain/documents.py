"""
Documents -- typed business documents accepted by the posting orchestrator.

Responsibility:
    Immutable payloads for sales invoices, purchase receipts and expenses.
    Totals are derived here, once, with round_money; the projector reads them
    and never recomputes.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Failure modes:
    - DocumentValidationError from validate() when the payload is not
      postable (no lines, non-positive quantity, negative price or amount,
      quantity finer than 4 places).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from ledger_kernel.db.types import (
    COST_PLACES,
    MONEY_PLACES,
    QUANTITY_PLACES,
    ZERO,
    has_excess_precision,
    round_money,
)
from ledger_kernel.domain.references import is_void_reference
from ledger_kernel.exceptions import DocumentValidationError


class Settlement(str, Enum):
    """How the counterparty side of the document is settled."""

    CREDIT = "credit"
    CASH = "cash"


def _check_number(number: str) -> None:
    if not number or not number.strip():
        raise DocumentValidationError(number, "document number is required")
    if is_void_reference(number):
        raise DocumentValidationError(number, "document number uses the reserved VOID- prefix")


def _check_quantity(number: str, index: int, quantity: Decimal) -> None:
    if quantity <= 0:
        raise DocumentValidationError(number, f"line {index}: quantity must be positive")
    if has_excess_precision(quantity, QUANTITY_PLACES):
        raise DocumentValidationError(
            number, f"line {index}: quantity has more than {QUANTITY_PLACES} decimal places"
        )


def _check_non_negative(number: str, label: str, value: Decimal) -> None:
    if value < 0:
        raise DocumentValidationError(number, f"{label} must not be negative")


def _check_money(number: str, label: str, value: Decimal) -> None:
    _check_non_negative(number, label, value)
    if has_excess_precision(value, MONEY_PLACES):
        raise DocumentValidationError(
            number, f"{label} has more than {MONEY_PLACES} decimal places"
        )


@dataclass(frozen=True)
class SaleLine:
    description: str
    quantity: Decimal
    unit_price: Decimal
    product_id: UUID | None = None

    @property
    def amount(self) -> Decimal:
        return self.quantity * self.unit_price


@dataclass(frozen=True)
class SaleDocument:
    """
    A sales invoice.

    subtotal = round_money(sum(quantity * unit_price))
    total    = subtotal - discount_amount + tax_amount
    """

    number: str
    document_date: date
    lines: tuple[SaleLine, ...]
    tax_amount: Decimal = ZERO
    discount_amount: Decimal = ZERO
    settlement: Settlement = Settlement.CREDIT
    memo: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "lines", tuple(self.lines))

    @property
    def subtotal(self) -> Decimal:
        return round_money(sum((line.amount for line in self.lines), ZERO))

    @property
    def total(self) -> Decimal:
        return self.subtotal - round_money(self.discount_amount) + round_money(self.tax_amount)

    def validate(self) -> None:
        _check_number(self.number)
        if not self.lines:
            raise DocumentValidationError(self.number, "sale has no lines")
        for index, line in enumerate(self.lines):
            _check_quantity(self.number, index, line.quantity)
            _check_non_negative(self.number, f"line {index} unit_price", line.unit_price)
        _check_money(self.number, "tax_amount", self.tax_amount)
        _check_money(self.number, "discount_amount", self.discount_amount)
        if self.discount_amount > self.subtotal:
            raise DocumentValidationError(self.number, "discount exceeds subtotal")


@dataclass(frozen=True)
class PurchaseLine:
    description: str
    quantity: Decimal
    unit_cost: Decimal
    product_id: UUID | None = None

    @property
    def amount(self) -> Decimal:
        return self.quantity * self.unit_cost


@dataclass(frozen=True)
class PurchaseReceipt:
    """
    Goods or services received from a supplier.

    Landed costs (freight, duty) are capitalized into INVENTORY when
    capitalize_landed_costs is set, otherwise expensed.
    """

    number: str
    document_date: date
    lines: tuple[PurchaseLine, ...]
    landed_costs: Decimal = ZERO
    capitalize_landed_costs: bool = False
    settlement: Settlement = Settlement.CREDIT
    memo: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "lines", tuple(self.lines))

    def validate(self) -> None:
        _check_number(self.number)
        if not self.lines:
            raise DocumentValidationError(self.number, "purchase receipt has no lines")
        for index, line in enumerate(self.lines):
            _check_quantity(self.number, index, line.quantity)
            _check_non_negative(self.number, f"line {index} unit_cost", line.unit_cost)
            if has_excess_precision(line.unit_cost, COST_PLACES):
                raise DocumentValidationError(
                    self.number,
                    f"line {index}: unit_cost has more than {COST_PLACES} decimal places",
                )
        _check_money(self.number, "landed_costs", self.landed_costs)


@dataclass(frozen=True)
class ExpenseDocument:
    """A single-amount expense, optionally charged to a specific account code."""

    number: str
    document_date: date
    amount: Decimal
    tax_amount: Decimal = ZERO
    account_code: str | None = None
    settlement: Settlement = Settlement.CASH
    description: str = ""

    @property
    def total(self) -> Decimal:
        return round_money(self.amount) + round_money(self.tax_amount)

    def validate(self) -> None:
        _check_number(self.number)
        if self.amount <= 0:
            raise DocumentValidationError(self.number, "expense amount must be positive")
        _check_money(self.number, "amount", self.amount)
        _check_money(self.number, "tax_amount", self.tax_amount)


Document = SaleDocument | PurchaseReceipt | ExpenseDocument
