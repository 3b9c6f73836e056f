# Overview: Service-layer operations for the pantry budget ledger embedded on Employee.

"""
Budget Ledger

All amounts are integer minor units, so many small debits never drift.

- remaining = monthly_limit - current_spent (may be negative after
  out-of-band edits; a negative remaining allows no purchases)
- debit does NOT re-check affordability. Callers hold the employee row
  lock and call can_afford first (see checkout_service).
- Functions here mutate the ORM object only; the caller owns the commit.
"""

from __future__ import annotations

from flask import current_app

from ..errors import ValidationError
from ..models import Employee
from pantry.money import format_cents
from pantry.time_utils import utcnow


def _max_monthly_limit() -> int:
    return current_app.config.get("MAX_MONTHLY_LIMIT_CENTS", 1_000_000)


def remaining(employee: Employee) -> int:
    """Budget left in the current cycle; negative when spend exceeds the limit."""
    return employee.monthly_limit_cents - employee.current_spent_cents


def can_afford(employee: Employee, amount_cents: int) -> bool:
    """True when amount_cents fits in remaining(). A negative remaining affords nothing, not even 0."""
    available = remaining(employee)
    if available < 0:
        return False
    return available >= amount_cents


def _require_amount(amount_cents: int, field: str = "amount") -> None:
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int):
        raise ValidationError(f"{field} must be an integer number of cents")
    if amount_cents < 0:
        raise ValidationError(f"{field} must not be negative")


def debit(employee: Employee, amount_cents: int) -> Employee:
    """Record spend against the current cycle. Precondition: can_afford()."""
    _require_amount(amount_cents)
    employee.current_spent_cents = employee.current_spent_cents + amount_cents
    employee.budget_updated_at = utcnow()
    return employee


def credit(employee: Employee, amount_cents: int) -> Employee:
    """Top-up: raise the monthly limit (used by payment/top-up flows), capped at MAX_MONTHLY_LIMIT_CENTS."""
    _require_amount(amount_cents)
    max_limit = _max_monthly_limit()
    if employee.monthly_limit_cents + amount_cents > max_limit:
        raise ValidationError(
            f"monthly_limit must not exceed {format_cents(max_limit)}",
            details={"max_monthly_limit": format_cents(max_limit)},
        )
    employee.monthly_limit_cents = employee.monthly_limit_cents + amount_cents
    employee.budget_updated_at = utcnow()
    return employee


def set_monthly_limit(employee: Employee, limit_cents: int) -> Employee:
    """Employee or admin adjustment of the monthly limit, bounds-checked."""
    _require_amount(limit_cents, "monthly_limit")
    max_limit = _max_monthly_limit()
    if limit_cents > max_limit:
        raise ValidationError(
            f"monthly_limit must not exceed {format_cents(max_limit)}",
            details={"max_monthly_limit": format_cents(max_limit)},
        )
    employee.monthly_limit_cents = limit_cents
    employee.budget_updated_at = utcnow()
    return employee


def reset_cycle(employee: Employee) -> Employee:
    """Start a new monthly budget cycle."""
    employee.current_spent_cents = 0
    employee.budget_updated_at = utcnow()
    return employee


def budget_snapshot(employee: Employee) -> dict:
    return employee.budget_dict()
