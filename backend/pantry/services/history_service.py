# Overview: Service-layer operations for the flattened purchase history log.

"""
Purchase History Log

- One entry per order line, never one per order, so reports can group by
  category or month at line-item granularity.
- month is derived from the purchase timestamp when the entry is written
  and never recomputed afterwards.
- Append-only: no dedup, no updates. Readers sort newest first.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func

from ..extensions import db
from ..errors import ValidationError
from ..models import Employee, Order, PurchaseHistoryEntry
from ..money import format_cents
from pantry.time_utils import is_month_bucket, month_bucket


DIRECT_ORDER_VENDOR_NAME = "Direct Order"


def entry_key(order_number: str, line_number: int) -> str:
    return f"{order_number}-{line_number}"


def _entry_for_line(order: Order, line, *, purchased_at: datetime, vendor_name: str) -> PurchaseHistoryEntry:
    return PurchaseHistoryEntry(
        entry_key=entry_key(order.order_number, line.line_number),
        employee_id=order.employee_id,
        order_id=order.id,
        order_number=order.order_number,
        product_name=line.name,
        category=line.category,
        unit=line.unit,
        quantity=line.quantity,
        unit_price_cents=line.unit_price_cents,
        line_total_cents=line.line_total_cents,
        month=month_bucket(purchased_at),
        purchased_at=purchased_at,
        vendor_name=vendor_name,
    )


def append_entries(
    order: Order,
    *,
    purchased_at: datetime,
    vendor_name: str,
) -> list[PurchaseHistoryEntry]:
    """
    Append one history entry per order line. Flushes, does not commit.

    All entries share the order number and purchase timestamp.
    """
    entries = [
        _entry_for_line(order, line, purchased_at=purchased_at, vendor_name=vendor_name)
        for line in order.lines
    ]
    db.session.add_all(entries)
    db.session.flush()
    return entries


def vendor_display_name(order: Order) -> str:
    if order.vendor is not None:
        return order.vendor.full_name
    return DIRECT_ORDER_VENDOR_NAME


def rebuild_for_order(order: Order) -> list[PurchaseHistoryEntry]:
    """
    Backfill missing history entries for a committed order.

    Maintenance only. Existing entries for the order are left as they are;
    lines without an entry get one dated at the order's completion time.
    """
    existing = {
        key for (key,) in db.session.query(PurchaseHistoryEntry.entry_key)
        .filter(PurchaseHistoryEntry.order_id == order.id)
        .all()
    }
    purchased_at = order.completed_at or order.created_at
    vendor_name = vendor_display_name(order)

    created = [
        _entry_for_line(order, line, purchased_at=purchased_at, vendor_name=vendor_name)
        for line in order.lines
        if entry_key(order.order_number, line.line_number) not in existing
    ]
    db.session.add_all(created)
    db.session.flush()
    return created


def list_history(
    employee: Employee,
    *,
    month: str | None = None,
    category: str | None = None,
) -> list[PurchaseHistoryEntry]:
    """History for one employee, newest first, optionally filtered."""
    query = db.session.query(PurchaseHistoryEntry).filter(
        PurchaseHistoryEntry.employee_id == employee.id
    )
    if month:
        if not is_month_bucket(month):
            raise ValidationError("month must be in YYYY-MM format", details={"field": "month"})
        query = query.filter(PurchaseHistoryEntry.month == month)
    if category and category != "All":
        query = query.filter(PurchaseHistoryEntry.category == category)

    return query.order_by(
        PurchaseHistoryEntry.purchased_at.desc(),
        PurchaseHistoryEntry.id.desc(),
    ).all()


def monthly_summary(employee: Employee) -> list[dict]:
    rows = (
        db.session.query(
            PurchaseHistoryEntry.month,
            func.count(func.distinct(PurchaseHistoryEntry.order_id)),
            func.sum(PurchaseHistoryEntry.quantity),
            func.sum(PurchaseHistoryEntry.line_total_cents),
        )
        .filter(PurchaseHistoryEntry.employee_id == employee.id)
        .group_by(PurchaseHistoryEntry.month)
        .order_by(PurchaseHistoryEntry.month.desc())
        .all()
    )
    return [
        {
            "month": month,
            "orders": orders,
            "items": int(items or 0),
            "total": format_cents(int(total or 0)),
            "total_cents": int(total or 0),
        }
        for month, orders, items, total in rows
    ]
