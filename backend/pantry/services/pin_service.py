"""
PIN Verification Service

WHY: Vendors and the menu kiosk place orders on an employee's behalf by
quoting the employee's 4-digit PIN. A 4-digit secret is trivially
brute-forced, so attempts are throttled per employee code.

SECURITY FEATURES:
- PIN format checked before any lookup (exactly 4 ASCII digits)
- Unknown employee codes fail closed (not verified)
- PINs stored as bcrypt hashes, never logged
- Lockout after PIN_MAX_FAILED_ATTEMPTS failures within the window
- A successful verification restarts the failure count
- Uses security_events table for tracking
"""

from __future__ import annotations

import re
from datetime import timedelta

import bcrypt
from flask import current_app

from ..extensions import db
from ..errors import InvalidPinError, PinLockedError, ValidationError
from ..models import Employee, SecurityEvent
from ..models.employees import USER_TYPE_EMPLOYEE
from ..models.security import (
    EVENT_PIN_CHANGED,
    EVENT_PIN_FAILED,
    EVENT_PIN_LOCKED,
    EVENT_PIN_VERIFIED,
)
from pantry.time_utils import utcnow


PIN_PATTERN = re.compile(r"[0-9]{4}")


def _max_failed_attempts() -> int:
    return current_app.config.get("PIN_MAX_FAILED_ATTEMPTS", 5)


def _lockout_window() -> timedelta:
    return timedelta(minutes=current_app.config.get("PIN_LOCKOUT_WINDOW_MINUTES", 15))


def _lockout_duration() -> timedelta:
    return timedelta(minutes=current_app.config.get("PIN_LOCKOUT_MINUTES", 15))


def validate_pin_format(pin) -> str:
    """
    Reject anything that is not exactly four ASCII digits.

    Raises ValidationError; nothing is looked up or recorded.
    """
    if not isinstance(pin, str) or not PIN_PATTERN.fullmatch(pin):
        raise ValidationError("PIN must be exactly 4 digits", details={"field": "pin"})
    return pin


def hash_pin(pin: str) -> str:
    """Validate and hash a PIN with bcrypt."""
    validate_pin_format(pin)
    salt = bcrypt.gensalt(rounds=current_app.config.get("PIN_HASH_ROUNDS", 12))
    return bcrypt.hashpw(pin.encode("utf-8"), salt).decode("utf-8")


def check_pin(pin: str, pin_hash: str | None) -> bool:
    if not pin_hash:
        return False
    try:
        return bcrypt.checkpw(pin.encode("utf-8"), pin_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def _recent_failures_query(subject: str):
    cutoff = utcnow() - _lockout_window()
    last_success = db.session.query(db.func.max(SecurityEvent.occurred_at)).filter(
        SecurityEvent.subject == subject,
        SecurityEvent.event_type == EVENT_PIN_VERIFIED,
    ).scalar()
    if last_success is not None and last_success > cutoff:
        cutoff = last_success

    return db.session.query(SecurityEvent).filter(
        SecurityEvent.subject == subject,
        SecurityEvent.event_type == EVENT_PIN_FAILED,
        SecurityEvent.occurred_at >= cutoff,
    )


def get_recent_failed_attempts(subject: str) -> int:
    """Count failed PIN attempts for an employee code since the window start or last success."""
    return _recent_failures_query(subject).count()


def is_pin_locked(subject: str) -> tuple[bool, int | None]:
    """
    Check whether PIN entry is locked for an employee code.

    Returns:
    - (True, seconds_remaining) if locked
    - (False, None) if not locked
    """
    query = _recent_failures_query(subject)
    if query.count() < _max_failed_attempts():
        return False, None

    most_recent = query.order_by(SecurityEvent.occurred_at.desc()).first()
    if most_recent:
        lockout_end = most_recent.occurred_at + _lockout_duration()
        now = utcnow()
        if now < lockout_end:
            return True, int((lockout_end - now).total_seconds())

    return False, None


def _record_event(
    *,
    subject: str,
    event_type: str,
    success: bool,
    employee_id: int | None = None,
    actor: str | None = None,
    ip_address: str | None = None,
    reason: str | None = None,
) -> SecurityEvent:
    event = SecurityEvent(
        employee_id=employee_id,
        subject=subject,
        actor=actor,
        event_type=event_type,
        success=success,
        reason=reason,
        ip_address=ip_address,
        occurred_at=utcnow(),
    )
    db.session.add(event)
    db.session.commit()
    return event


def _find_pin_holder(employee_code: str) -> Employee | None:
    return db.session.query(Employee).filter_by(
        employee_code=employee_code,
        user_type=USER_TYPE_EMPLOYEE,
        is_active=True,
    ).first()


def _verify(
    employee_code: str,
    submitted_pin,
    *,
    actor: str | None = None,
    ip_address: str | None = None,
) -> tuple[Employee | None, bool]:
    validate_pin_format(submitted_pin)

    subject = str(employee_code or "").strip().upper()
    if not subject:
        raise ValidationError("employee_code required", details={"field": "employee_code"})

    locked, seconds_remaining = is_pin_locked(subject)
    if locked:
        current_app.logger.warning("PIN entry locked for %s (actor=%s)", subject, actor)
        _record_event(
            subject=subject,
            event_type=EVENT_PIN_LOCKED,
            success=False,
            actor=actor,
            ip_address=ip_address,
            reason="Attempt while locked",
        )
        raise PinLockedError(
            "Too many failed PIN attempts; try again later",
            details={"seconds_until_unlock": seconds_remaining},
        )

    employee = _find_pin_holder(subject)
    if employee is None or not check_pin(submitted_pin, employee.secret_pin_hash):
        failures = get_recent_failed_attempts(subject) + 1
        current_app.logger.warning(
            "PIN verification failed for %s (actor=%s, failures=%s)", subject, actor, failures
        )
        _record_event(
            subject=subject,
            event_type=EVENT_PIN_FAILED,
            success=False,
            employee_id=employee.id if employee else None,
            actor=actor,
            ip_address=ip_address,
            reason="Unknown employee" if employee is None else "PIN mismatch",
        )
        return employee, False

    _record_event(
        subject=subject,
        event_type=EVENT_PIN_VERIFIED,
        success=True,
        employee_id=employee.id,
        actor=actor,
        ip_address=ip_address,
    )
    return employee, True


def verify_pin(
    employee_code: str,
    submitted_pin,
    *,
    actor: str | None = None,
    ip_address: str | None = None,
) -> bool:
    """
    Verify a submitted PIN for an employee code.

    Malformed PINs raise ValidationError before any lookup. Unknown or
    inactive employees are "not verified". Raises PinLockedError while
    the employee code is locked out.
    """
    _, ok = _verify(employee_code, submitted_pin, actor=actor, ip_address=ip_address)
    return ok


def authorize_pin(
    employee_code: str,
    submitted_pin,
    *,
    actor: str | None = None,
    ip_address: str | None = None,
) -> Employee:
    """Verify a PIN and return the employee; raises InvalidPinError on mismatch."""
    employee, ok = _verify(employee_code, submitted_pin, actor=actor, ip_address=ip_address)
    if not ok:
        raise InvalidPinError("Invalid PIN")
    return employee


def change_pin(employee: Employee, current_pin, new_pin) -> None:
    """Replace an employee's PIN after checking the current one."""
    validate_pin_format(current_pin)
    validate_pin_format(new_pin)

    authorize_pin(employee.employee_code, current_pin, actor=employee.employee_code)

    employee.secret_pin_hash = hash_pin(new_pin)
    db.session.add(employee)
    db.session.commit()

    _record_event(
        subject=employee.employee_code,
        event_type=EVENT_PIN_CHANGED,
        success=True,
        employee_id=employee.id,
        actor=employee.employee_code,
    )


def get_pin_lockout_status(subject: str) -> dict:
    """
    Get detailed lockout status for an employee code.

    Returns dict with:
    - locked: bool
    - failed_attempts: int
    - max_attempts: int
    - seconds_until_unlock: int | None
    """
    failed_count = get_recent_failed_attempts(subject)
    locked, seconds_remaining = is_pin_locked(subject)

    return {
        "locked": locked,
        "failed_attempts": failed_count,
        "max_attempts": _max_failed_attempts(),
        "seconds_until_unlock": seconds_remaining,
        "lockout_window_minutes": int(_lockout_window().total_seconds() / 60),
        "lockout_duration_minutes": int(_lockout_duration().total_seconds() / 60),
    }
