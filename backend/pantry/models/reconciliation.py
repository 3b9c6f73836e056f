from __future__ import annotations

from ..extensions import db
from pantry.money import format_cents
from pantry.time_utils import to_utc_z


STAGE_LEDGER_DEBIT = "LEDGER_DEBIT"
STAGE_HISTORY_APPEND = "HISTORY_APPEND"

ITEM_OPEN = "OPEN"
ITEM_RESOLVED = "RESOLVED"


class ReconciliationItem(db.Model):
    """
    A committed order whose budget debit or history append did not land.

    The order stays authoritative; resolving an item re-applies the
    missing write.
    """
    __tablename__ = "reconciliation_items"
    __table_args__ = (
        db.UniqueConstraint("order_id", "stage", name="uq_reconciliation_order_stage"),
        db.Index("ix_reconciliation_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)

    stage = db.Column(db.String(32), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(16), nullable=False, default=ITEM_OPEN)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    resolved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    resolution_note = db.Column(db.Text, nullable=True)

    order = db.relationship("Order")
    employee = db.relationship("Employee")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "order_number": self.order.order_number if self.order else None,
            "employee_id": self.employee_id,
            "stage": self.stage,
            "amount": format_cents(self.amount_cents),
            "amount_cents": self.amount_cents,
            "reason": self.reason,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "resolved_at": to_utc_z(self.resolved_at) if self.resolved_at else None,
            "resolution_note": self.resolution_note,
        }
