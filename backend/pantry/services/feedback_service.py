# Overview: Service-layer operations for pantry feedback; submission, listings and admin review.

from __future__ import annotations

from flask import current_app
from sqlalchemy import or_

from ..extensions import db
from ..errors import NotFoundError, ValidationError
from ..models import Employee, Feedback
from ..models.feedback import FEEDBACK_STATUSES, GUEST_SUBMITTER
from ..validation import (
    MAX_ROW_ID,
    ModelValidationPolicy,
    enforce_rules_feedback,
    validate_payload,
)
from pantry.time_utils import utcnow


FEEDBACK_POLICY = ModelValidationPolicy(
    writable_fields={
        "category", "vendor_name", "order_number", "rating", "message", "contact_info",
    },
    required_on_create={"message"},
)


def submit_feedback(
    payload: dict,
    *,
    employee: Employee | None = None,
    submitter_code: str | None = None,
) -> Feedback:
    """
    Record feedback.

    Identified callers pass employee. Kiosk submissions pass the typed
    submitter_code, which is stored as given and never trusted as identity.
    """
    patch = validate_payload(
        model=Feedback,
        payload=payload,
        policy=FEEDBACK_POLICY,
        partial=False,
    )
    patch.setdefault("category", "Other")
    enforce_rules_feedback(patch)

    if employee is not None:
        code = employee.employee_code
    else:
        code = (submitter_code or "").strip().upper() or GUEST_SUBMITTER
        if len(code) > 32:
            raise ValidationError("employee_code exceeds max length 32", details={"field": "employee_code"})

    feedback = Feedback(
        employee_id=employee.id if employee is not None else None,
        submitter_code=code,
        **patch,
    )
    db.session.add(feedback)
    db.session.commit()

    current_app.logger.info("Feedback %s submitted by %s (%s)", feedback.id, code, feedback.category)
    return feedback


def list_my_feedback(employee: Employee) -> list[Feedback]:
    return (
        db.session.query(Feedback)
        .filter(Feedback.employee_id == employee.id)
        .order_by(Feedback.created_at.desc(), Feedback.id.desc())
        .all()
    )


def list_all_feedback(
    *,
    page: int = 1,
    per_page: int = 20,
    category: str | None = None,
    status: str | None = None,
    search: str | None = None,
) -> dict:
    """Admin listing, newest first; search matches message, vendor, order number, submitter and contact."""
    query = db.session.query(Feedback)

    if category and category != "All":
        query = query.filter(Feedback.category == category)

    if status and status != "all":
        status = status.upper()
        if status not in FEEDBACK_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(FEEDBACK_STATUSES)}")
        query = query.filter(Feedback.status == status)

    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            Feedback.message.ilike(pattern),
            Feedback.vendor_name.ilike(pattern),
            Feedback.order_number.ilike(pattern),
            Feedback.submitter_code.ilike(pattern),
            Feedback.contact_info.ilike(pattern),
        ))

    query = query.order_by(Feedback.created_at.desc(), Feedback.id.desc())

    page = max(page, 1)
    per_page = min(max(per_page, 1), 100)
    total = query.count()
    items = query.offset((page - 1) * per_page).limit(per_page).all()
    total_pages = (total + per_page - 1) // per_page

    return {
        "feedback": items,
        "pagination": {
            "current_page": page,
            "per_page": per_page,
            "total_pages": total_pages,
            "total": total,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def get_feedback(feedback_id: int) -> Feedback:
    feedback = db.session.get(Feedback, feedback_id) if 0 < feedback_id <= MAX_ROW_ID else None
    if not feedback:
        raise NotFoundError("Feedback not found")
    return feedback


def update_status(feedback_id: int, status: str, *, note: str | None = None) -> Feedback:
    """Admin review: move feedback between OPEN, REVIEWING and RESOLVED."""
    status = (status or "").upper()
    if status not in FEEDBACK_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(FEEDBACK_STATUSES)}")

    feedback = get_feedback(feedback_id)
    feedback.status = status
    if note:
        feedback.admin_note = f"{feedback.admin_note}\n{note}" if feedback.admin_note else note
    feedback.updated_at = utcnow()
    db.session.commit()
    return feedback
