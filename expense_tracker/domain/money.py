"""Fixed-point helpers: amounts are handled as integer minor units (cents)."""

from decimal import Decimal

MINOR_UNIT_PLACES = 2
MAX_AMOUNT = Decimal("99999999.99")


def to_minor_units(amount: Decimal) -> int:
    return int(amount.scaleb(MINOR_UNIT_PLACES))


def from_minor_units(value: int) -> Decimal:
    return Decimal(value).scaleb(-MINOR_UNIT_PLACES)
