# Overview: Money helpers; amounts are stored as integer minor units (cents/paise).

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from .errors import ValidationError

CENT = Decimal("0.01")

# Upper bound for any amount accepted from a client: 10,000,000,000.00.
# Keeps every stored value well inside a signed 64-bit INTEGER column.
MAX_AMOUNT_CENTS = 1_000_000_000_000


def D(x) -> Decimal:
    return x if isinstance(x, Decimal) else Decimal(str(x if x is not None else "0"))


def to_cents(value, field: str = "amount", *, max_cents: int = MAX_AMOUNT_CENTS) -> int:
    """
    Convert a decimal-like amount ("12.50", 12.5, Decimal) to integer cents.

    Floats are routed through str() so 0.1 becomes exactly 10 cents.
    Rounds half-up to the nearest cent. Negative amounts and amounts
    above max_cents are rejected.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", details={"field": field})
    try:
        amount = D(value.strip() if isinstance(value, str) else value)
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number", details={"field": field})
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number", details={"field": field})
    if amount < 0:
        raise ValidationError(f"{field} must not be negative", details={"field": field})
    # Compare before quantize: huge exponents overflow the decimal context
    if amount > Decimal(max_cents) / 100:
        raise ValidationError(
            f"{field} cannot exceed {format_cents(max_cents)}",
            details={"field": field},
        )
    try:
        cents = (amount.quantize(CENT, rounding=ROUND_HALF_UP) * 100).to_integral_value()
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number", details={"field": field})
    return int(cents)


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(CENT)


def format_cents(cents: int | None) -> str | None:
    """Boundary display format: 25000 -> "250.00"."""
    if cents is None:
        return None
    return str(from_cents(cents))


def display_cents(cents: int, symbol: str = "₹") -> str:
    return f"{symbol}{format_cents(cents)}"
