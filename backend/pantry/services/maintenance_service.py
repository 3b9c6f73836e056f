# Overview: Service-layer operations for maintenance; retention cleanup and budget cycles.

from __future__ import annotations

from datetime import timedelta

from ..extensions import db
from ..models import Employee, SecurityEvent
from ..models.employees import USER_TYPE_EMPLOYEE
from pantry.time_utils import utcnow
from . import budget_service
from .concurrency import begin_write, run_with_retry


def cleanup_security_events(*, retention_days: int = 90) -> int:
    """
    Delete security events older than retention_days.

    Orders, history and reconciliation items are never pruned.
    """
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = db.session.query(SecurityEvent).filter(
        SecurityEvent.occurred_at < cutoff
    ).delete()
    db.session.commit()
    return deleted


def reset_budget_cycle() -> int:
    """Start a new monthly cycle for every active employee. Returns the number reset."""
    def _op() -> int:
        begin_write()
        employees = db.session.query(Employee).filter(
            Employee.user_type == USER_TYPE_EMPLOYEE,
            Employee.is_active.is_(True),
        ).all()
        for employee in employees:
            budget_service.reset_cycle(employee)
        db.session.commit()
        return len(employees)

    return run_with_retry(_op)
