from __future__ import annotations

from ..extensions import db
from pantry.money import format_cents
from pantry.time_utils import to_utc_z


class PurchaseHistoryEntry(db.Model):
    """
    Flattened purchase history: one row per order line, never per order.

    IMMUTABLE: month is derived from purchased_at when the row is written
    and is never recomputed. Only maintenance/backfill commands insert
    rows outside of checkout.
    """
    __tablename__ = "purchase_history"
    __table_args__ = (
        db.Index("ix_purchase_history_employee_purchased", "employee_id", "purchased_at"),
        db.Index("ix_purchase_history_employee_month", "employee_id", "month"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # "<order_number>-<line_number>"
    entry_key = db.Column(db.String(80), nullable=False, unique=True)

    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    order_number = db.Column(db.String(64), nullable=False)

    product_name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(32), nullable=False)
    unit = db.Column(db.String(32), nullable=False, default="piece")
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    month = db.Column(db.String(7), nullable=False)
    purchased_at = db.Column(db.DateTime(timezone=True), nullable=False)
    vendor_name = db.Column(db.String(200), nullable=False)

    employee = db.relationship("Employee", backref=db.backref("purchase_history", lazy="dynamic"))

    def to_dict(self) -> dict:
        return {
            "id": self.entry_key,
            "order_number": self.order_number,
            "product_name": self.product_name,
            "category": self.category,
            "unit": self.unit,
            "quantity": self.quantity,
            "price": format_cents(self.unit_price_cents),
            "total": format_cents(self.line_total_cents),
            "month": self.month,
            "purchase_date": to_utc_z(self.purchased_at),
            "vendor_name": self.vendor_name,
        }
