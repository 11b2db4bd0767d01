"""
Module: ledger_kernel.db.types
Responsibility: Exact decimal column type and rounding helpers.  Centralizes
    precision so every model and service uses identical scales.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/ and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - Money has exactly MONEY_PLACES (2) decimal places; quantities and unit
      costs have QUANTITY_PLACES (4).
    - Values are persisted as integer minor units (BigInteger), so SQLite and
      PostgreSQL round-trip identically.
    - No floats.  Binding a float raises TypeError; binding a Decimal with more
      precision than the column scale raises ValueError.
"""

from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import BigInteger
from sqlalchemy.types import TypeDecorator


MONEY_PLACES = 2
QUANTITY_PLACES = 4
COST_PLACES = 4
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0")


def quantum(places: int) -> Decimal:
    """Return the Decimal exponent for ``places`` (2 -> Decimal('0.01'))."""
    return Decimal(1).scaleb(-places)


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the specified decimal places.

    This is the ONLY sanctioned rounding function for amounts.  All other
    code delegates rounding here so precision handling is uniform.
    """
    return value.quantize(quantum(decimal_places), rounding=rounding)


def has_excess_precision(value: Decimal, places: int) -> bool:
    """True when ``value`` cannot be represented exactly at ``places``."""
    return value != value.quantize(quantum(places), rounding=DEFAULT_ROUNDING)


def to_minor(value: Decimal | int, places: int = MONEY_PLACES) -> int:
    """
    Convert a decimal amount to integer minor units.

    Raises:
        TypeError: value is a float (or any non-Decimal, non-int type).
        ValueError: value carries more precision than ``places``.

    Example:
        to_minor(Decimal("10.50"), 2) -> 1050
    """
    if isinstance(value, bool) or not isinstance(value, (Decimal, int)):
        raise TypeError(
            f"Expected Decimal or int for a {places}-place amount, got {type(value).__name__}"
        )
    value = Decimal(value)
    if not value.is_finite():
        raise ValueError(f"Amount must be finite, got {value}")
    if has_excess_precision(value, places):
        raise ValueError(f"Amount {value} has more than {places} decimal places")
    return int(value.scaleb(places))


def from_minor(value: int, places: int = MONEY_PLACES) -> Decimal:
    """
    Convert integer minor units back to a Decimal at ``places``.

    Example:
        from_minor(1050, 2) -> Decimal("10.50")
    """
    return Decimal(int(value)).scaleb(-places).quantize(quantum(places))


class ScaledDecimal(TypeDecorator):
    """
    Fixed-scale Decimal stored as integer minor units.

    ``ScaledDecimal(2)`` stores Decimal("12.34") as 1234.  Aggregates such as
    ``func.sum(column)`` inherit the type, so SQL sums come back as Decimals
    at the same scale.
    """

    impl = BigInteger
    cache_ok = True

    def __init__(self, places: int = MONEY_PLACES):
        super().__init__()
        self.places = places

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return to_minor(value, self.places)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return from_minor(value, self.places)

    @property
    def python_type(self):
        return Decimal
