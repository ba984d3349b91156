from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

Number = Union[int, float, str, Decimal]

# 10,000,000,000.00 units; well inside a signed 64-bit integer column.
MAX_CENTS = 1_000_000_000_000


def to_cents(value: Number) -> int:
    """Convert an amount in currency units to integer cents, rounding half-up."""
    if isinstance(value, str):
        value = value.strip().replace("₹", "").replace("$", "").replace(" ", "")
    try:
        amount = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError("Invalid amount") from exc
    if not amount.is_finite():
        raise ValueError("Amount must be a finite number")
    cents = int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    if abs(cents) > MAX_CENTS:
        raise ValueError("Amount is too large")
    return cents


def cents_to_units(cents: Union[int, float]) -> float:
    return cents / 100


def format_currency(cents: Union[int, float], symbol: str = "₹") -> str:
    sign = "-" if cents < 0 else ""
    return f"{sign}{symbol}{abs(cents) / 100:,.2f}"
