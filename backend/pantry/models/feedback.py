from __future__ import annotations

from ..extensions import db
from pantry.time_utils import to_utc_z


FEEDBACK_CATEGORIES = ("Food Quality", "Hygiene", "Service", "Price", "Other")

FEEDBACK_OPEN = "OPEN"
FEEDBACK_REVIEWING = "REVIEWING"
FEEDBACK_RESOLVED = "RESOLVED"
FEEDBACK_STATUSES = (FEEDBACK_OPEN, FEEDBACK_REVIEWING, FEEDBACK_RESOLVED)

# Submitter code recorded for kiosk feedback with no employee code
GUEST_SUBMITTER = "GUEST"


class Feedback(db.Model):
    """
    Pantry feedback from an employee or from the public kiosk form.

    employee_id is set only when the submitter was identified; kiosk
    submissions keep the typed employee code (or GUEST) in submitter_code.
    """
    __tablename__ = "feedback"
    __table_args__ = (
        db.Index("ix_feedback_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True, index=True)
    submitter_code = db.Column(db.String(32), nullable=False, default=GUEST_SUBMITTER)

    category = db.Column(db.String(32), nullable=False, default="Other", index=True)
    vendor_name = db.Column(db.String(160), nullable=True)
    order_number = db.Column(db.String(64), nullable=True)
    rating = db.Column(db.Integer, nullable=True)
    message = db.Column(db.Text, nullable=False)
    contact_info = db.Column(db.String(200), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=FEEDBACK_OPEN)
    admin_note = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    employee = db.relationship("Employee")

    def __repr__(self) -> str:
        return f"<Feedback id={self.id} category={self.category!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_code": self.submitter_code,
            "category": self.category,
            "vendor_name": self.vendor_name,
            "order_number": self.order_number,
            "rating": self.rating,
            "message": self.message,
            "contact_info": self.contact_info,
            "status": self.status,
            "admin_note": self.admin_note,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
