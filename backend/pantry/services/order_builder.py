# Overview: Pure order construction; validates priced cart lines and computes authoritative totals.

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass

from ..errors import ValidationError
from ..models.orders import ORDER_TYPE_DIRECT, ORDER_TYPE_VENDOR


ORDER_NUMBER_PREFIX = "ORD"


@dataclass(frozen=True)
class CartLine:
    """One priced cart line. unit_price_cents comes from the catalog, not the client."""
    product_id: int
    name: str
    category: str
    unit_price_cents: int
    quantity: int
    unit: str = "piece"

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity


@dataclass(frozen=True)
class OrderDraft:
    order_number: str
    employee_id: int
    vendor_id: int | None
    order_type: str
    lines: tuple[CartLine, ...]
    total_items: int
    total_amount_cents: int
    client_total_cents: int | None = None

    @property
    def client_total_mismatch(self) -> bool:
        return self.client_total_cents is not None and self.client_total_cents != self.total_amount_cents


def generate_order_number(now_ms: int | None = None) -> str:
    """
    "ORD" + millisecond timestamp + random suffix, e.g. ORD1718000000000-3F9A2C1D7B04.

    The suffix is 48 random bits; orders.order_number is also UNIQUE, so a
    collision surfaces as a failed insert the caller can retry, never a merged order.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{ORDER_NUMBER_PREFIX}{now_ms}-{uuid.uuid4().hex[:12].upper()}"


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _validate_line(index: int, line: CartLine) -> None:
    label = f"items[{index}]"
    problems = []

    if line.product_id is None or not _is_int(line.product_id):
        problems.append("product_id")
    if not line.name or not str(line.name).strip():
        problems.append("name")
    if not line.category:
        problems.append("category")
    if not _is_int(line.unit_price_cents) or line.unit_price_cents < 0:
        problems.append("price")
    if not _is_int(line.quantity) or line.quantity <= 0:
        problems.append("quantity")

    if problems:
        raise ValidationError(
            f"Invalid cart item {label}: bad or missing {', '.join(problems)}",
            details={"item": index, "fields": problems},
        )


def build(
    employee_id: int,
    vendor_id: int | None,
    cart_lines: list[CartLine],
    *,
    client_total_cents: int | None = None,
    order_number: str | None = None,
) -> OrderDraft:
    """
    Validate a priced cart and produce an immutable order draft.

    Totals are always recomputed here; client_total_cents is carried only
    so it can be audited. No side effects.
    """
    if employee_id is None:
        raise ValidationError("employee is required")
    if not cart_lines:
        raise ValidationError("Cart must contain at least one item", details={"field": "items"})

    for index, line in enumerate(cart_lines):
        _validate_line(index, line)

    total_items = sum(line.quantity for line in cart_lines)
    total_amount_cents = sum(line.line_total_cents for line in cart_lines)

    return OrderDraft(
        order_number=order_number or generate_order_number(),
        employee_id=employee_id,
        vendor_id=vendor_id,
        order_type=ORDER_TYPE_VENDOR if vendor_id is not None else ORDER_TYPE_DIRECT,
        lines=tuple(cart_lines),
        total_items=total_items,
        total_amount_cents=total_amount_cents,
        client_total_cents=client_total_cents,
    )
