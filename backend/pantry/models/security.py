from __future__ import annotations

from ..extensions import db
from pantry.time_utils import to_utc_z


EVENT_PIN_FAILED = "PIN_FAILED"
EVENT_PIN_VERIFIED = "PIN_VERIFIED"
EVENT_PIN_LOCKED = "PIN_LOCKED"
EVENT_PIN_CHANGED = "PIN_CHANGED"


class SecurityEvent(db.Model):
    """
    Security event audit log (PIN attempts, lockouts, PIN changes).

    IMMUTABLE: Never update. Rows are only deleted by retention cleanup.
    """
    __tablename__ = "security_events"
    __table_args__ = (
        db.Index("ix_security_events_employee_type", "employee_id", "event_type"),
        db.Index("ix_security_events_subject_occurred", "subject", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Nullable when the submitted employee code does not resolve
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True, index=True)
    # Employee code the attempt was made against; throttling keys on this
    subject = db.Column(db.String(64), nullable=False)
    # Who submitted it (vendor code or "menu-kiosk")
    actor = db.Column(db.String(64), nullable=True)

    event_type = db.Column(db.String(32), nullable=False, index=True)
    success = db.Column(db.Boolean, nullable=False)
    reason = db.Column(db.Text, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "subject": self.subject,
            "actor": self.actor,
            "event_type": self.event_type,
            "success": self.success,
            "reason": self.reason,
            "ip_address": self.ip_address,
            "occurred_at": to_utc_z(self.occurred_at),
        }
