# Overview: Service-layer operations for orders; lookups, listings and status transitions.

from __future__ import annotations

from sqlalchemy import or_

from ..extensions import db
from ..errors import InvalidTransitionError, NotFoundError, ValidationError
from ..models import Employee, Order, OrderLine
from ..models.orders import (
    ORDER_STATUSES,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_CONFIRMED,
    STATUS_PENDING,
)
from pantry.time_utils import utcnow
from .concurrency import begin_write, lock_for_update, run_with_retry


# Checkout creates COMPLETED orders; only CANCELLED is terminal
ALLOWED_TRANSITIONS = {
    STATUS_PENDING: {STATUS_CONFIRMED, STATUS_COMPLETED, STATUS_CANCELLED},
    STATUS_CONFIRMED: {STATUS_COMPLETED, STATUS_CANCELLED},
    STATUS_COMPLETED: {STATUS_CANCELLED},
    STATUS_CANCELLED: set(),
}

SORT_COLUMNS = {
    "date": Order.created_at,
    "amount": Order.total_amount_cents,
    "status": Order.status,
}


def get_order_by_number(order_number: str) -> Order:
    order = db.session.query(Order).filter_by(order_number=order_number).first()
    if not order:
        raise NotFoundError("Order not found")
    return order


def list_orders_for_employee(employee: Employee, *, limit: int = 100) -> list[Order]:
    return (
        db.session.query(Order)
        .filter(Order.employee_id == employee.id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(limit)
        .all()
    )


def list_all_orders(
    *,
    page: int = 1,
    per_page: int = 20,
    status: str | None = None,
    search: str | None = None,
    sort_by: str = "date",
    sort_order: str = "desc",
) -> dict:
    """Admin order listing with pagination; search matches order number, item names and people."""
    query = db.session.query(Order)

    if status and status != "all":
        status = status.upper()
        if status not in ORDER_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(ORDER_STATUSES)}")
        query = query.filter(Order.status == status)

    if search:
        pattern = f"%{search.strip()}%"
        people = db.session.query(Employee.id).filter(or_(
            Employee.employee_code.ilike(pattern),
            Employee.first_name.ilike(pattern),
            Employee.last_name.ilike(pattern),
            (Employee.first_name + " " + Employee.last_name).ilike(pattern),
        ))
        items = db.session.query(OrderLine.order_id).filter(OrderLine.name.ilike(pattern))
        query = query.filter(or_(
            Order.order_number.ilike(pattern),
            Order.notes.ilike(pattern),
            Order.employee_id.in_(people),
            Order.vendor_id.in_(people),
            Order.id.in_(items),
        ))

    column = SORT_COLUMNS.get(sort_by, Order.created_at)
    query = query.order_by(column.asc() if sort_order == "asc" else column.desc(), Order.id.desc())

    page = max(page, 1)
    per_page = min(max(per_page, 1), 100)
    total = query.count()
    orders = query.offset((page - 1) * per_page).limit(per_page).all()
    total_pages = (total + per_page - 1) // per_page

    return {
        "orders": orders,
        "pagination": {
            "current_page": page,
            "per_page": per_page,
            "total_pages": total_pages,
            "total_orders": total,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def transition_status(order_number: str, new_status: str, *, note: str | None = None) -> Order:
    """
    Move an order along its lifecycle.

    Budget and history are not touched: a cancelled order keeps its debit
    until an admin adjusts the budget.
    """
    new_status = (new_status or "").upper()
    if new_status not in ORDER_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(ORDER_STATUSES)}")

    def _op():
        begin_write()
        order = lock_for_update(db.session.query(Order).filter_by(order_number=order_number)).first()
        if not order:
            db.session.rollback()
            raise NotFoundError("Order not found")

        if new_status not in ALLOWED_TRANSITIONS[order.status]:
            db.session.rollback()
            raise InvalidTransitionError(
                f"Cannot move order from {order.status} to {new_status}",
                details={"from": order.status, "to": new_status},
            )

        order.status = new_status
        if new_status == STATUS_COMPLETED and order.completed_at is None:
            order.completed_at = utcnow()
        if note:
            order.notes = f"{order.notes}\n{note}" if order.notes else note

        db.session.commit()
        return order

    return run_with_retry(_op)
