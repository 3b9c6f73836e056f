from __future__ import annotations

from ..extensions import db
from pantry.money import format_cents
from pantry.time_utils import to_utc_z


ORDER_TYPE_VENDOR = "VENDOR"
ORDER_TYPE_DIRECT = "DIRECT"

STATUS_PENDING = "PENDING"
STATUS_CONFIRMED = "CONFIRMED"
STATUS_COMPLETED = "COMPLETED"
STATUS_CANCELLED = "CANCELLED"
ORDER_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED, STATUS_COMPLETED, STATUS_CANCELLED)

PAYMENT_PENDING = "PENDING"
PAYMENT_PAID = "PAID"
PAYMENT_FAILED = "FAILED"
PAYMENT_STATUSES = (PAYMENT_PENDING, PAYMENT_PAID, PAYMENT_FAILED)


class Order(db.Model):
    """
    Pantry order placed at checkout.

    Immutable once COMPLETED: totals are recomputed from the lines on the
    server and never taken from the client. client_total_cents keeps what
    the client claimed, for audit only.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_employee_created", "employee_id", "created_at"),
        db.Index("ix_orders_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable order number (e.g., "ORD1718000000000-3F9A2C1D7B04")
    order_number = db.Column(db.String(64), nullable=False, unique=True)

    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False)
    # Null for direct (self-service) orders
    vendor_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True, index=True)

    order_type = db.Column(db.String(16), nullable=False, default=ORDER_TYPE_VENDOR)
    status = db.Column(db.String(16), nullable=False, default=STATUS_PENDING, index=True)
    payment_status = db.Column(db.String(16), nullable=False, default=PAYMENT_PENDING)
    pin_verified = db.Column(db.Boolean, nullable=False, default=False)

    total_items = db.Column(db.Integer, nullable=False)
    total_amount_cents = db.Column(db.Integer, nullable=False)
    client_total_cents = db.Column(db.Integer, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    employee = db.relationship("Employee", foreign_keys=[employee_id])
    vendor = db.relationship("Employee", foreign_keys=[vendor_id])
    lines = db.relationship(
        "OrderLine",
        backref="order",
        lazy=True,
        order_by="OrderLine.line_number",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Order id={self.id} number={self.order_number!r} status={self.status}>"

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "order_number": self.order_number,
            "employee_id": self.employee_id,
            "employee_code": self.employee.employee_code if self.employee else None,
            "vendor_id": self.vendor_id,
            "vendor_name": self.vendor.full_name if self.vendor else None,
            "order_type": self.order_type,
            "status": self.status,
            "payment_status": self.payment_status,
            "pin_verified": self.pin_verified,
            "total_items": self.total_items,
            "total_amount": format_cents(self.total_amount_cents),
            "total_amount_cents": self.total_amount_cents,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "completed_at": to_utc_z(self.completed_at) if self.completed_at else None,
        }
        if include_lines:
            data["items"] = [line.to_dict() for line in self.lines]
        return data


class OrderLine(db.Model):
    """Individual line items on an order."""
    __tablename__ = "order_lines"
    __table_args__ = (
        db.UniqueConstraint("order_id", "line_number", name="uq_order_lines_order_line"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    # Snapshot of catalog data at checkout time
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(32), nullable=False)
    unit = db.Column(db.String(32), nullable=False, default="piece")

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "line_number": self.line_number,
            "product_id": self.product_id,
            "name": self.name,
            "category": self.category,
            "unit": self.unit,
            "quantity": self.quantity,
            "price": format_cents(self.unit_price_cents),
            "unit_price_cents": self.unit_price_cents,
            "subtotal": format_cents(self.line_total_cents),
            "line_total_cents": self.line_total_cents,
        }
