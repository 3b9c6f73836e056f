# Overview: Service-layer operations for employee, vendor and admin accounts.

from __future__ import annotations

from flask import current_app
from sqlalchemy import or_

from ..extensions import db
from ..errors import NotFoundError, ValidationError
from ..models import Employee
from ..models.employees import USER_TYPE_EMPLOYEE, USER_TYPE_VENDOR, USER_TYPES
from . import budget_service, pin_service
from .concurrency import begin_write, lock_employee, run_with_retry


def create_employee(
    *,
    employee_code: str,
    email: str,
    first_name: str,
    last_name: str,
    user_type: str = USER_TYPE_EMPLOYEE,
    pin: str | None = None,
    department: str | None = None,
    position: str | None = None,
    contact_number: str | None = None,
    location: str | None = None,
    monthly_limit_cents: int | None = None,
) -> Employee:
    """
    Create an account. Employees must have a PIN, department and position.

    Codes are stored upper-case, emails lower-case.
    """
    if user_type not in USER_TYPES:
        raise ValidationError(f"user_type must be one of: {', '.join(sorted(USER_TYPES))}")

    code = (employee_code or "").strip().upper()
    email = (email or "").strip().lower()
    if not code or not email or not first_name or not last_name:
        raise ValidationError("employee_code, email, first_name and last_name are required")

    if user_type == USER_TYPE_EMPLOYEE:
        if pin is None:
            raise ValidationError("Employees require a 4-digit PIN")
        if not department or not position:
            raise ValidationError("Employees require department and position")

    exists = db.session.query(Employee).filter(
        or_(Employee.employee_code == code, Employee.email == email)
    ).first()
    if exists:
        raise ValidationError("An account with this employee code or email already exists")

    if monthly_limit_cents is None:
        monthly_limit_cents = current_app.config.get("DEFAULT_MONTHLY_LIMIT_CENTS", 10000)

    employee = Employee(
        employee_code=code,
        email=email,
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        user_type=user_type,
        department=department,
        position=position,
        contact_number=contact_number,
        location=location,
        is_active=True,
        secret_pin_hash=pin_service.hash_pin(pin) if pin is not None else None,
        monthly_limit_cents=monthly_limit_cents,
        current_spent_cents=0,
    )
    db.session.add(employee)
    db.session.commit()
    return employee


def create_vendor(
    *,
    employee_code: str,
    email: str,
    first_name: str,
    last_name: str,
    department: str | None = None,
    position: str | None = None,
    contact_number: str | None = None,
    location: str | None = None,
) -> Employee:
    """Admin provisioning of a vendor account. Vendors hold no PIN and no budget."""
    vendor = create_employee(
        employee_code=employee_code,
        email=email,
        first_name=first_name,
        last_name=last_name,
        user_type=USER_TYPE_VENDOR,
        department=department or "Food Services",
        position=position or "Vendor",
        contact_number=contact_number,
        location=location,
        monthly_limit_cents=0,
    )
    current_app.logger.info("Vendor account %s created", vendor.employee_code)
    return vendor


def list_vendors(*, include_inactive: bool = False) -> list[Employee]:
    """Vendor accounts, newest first."""
    query = db.session.query(Employee).filter(Employee.user_type == USER_TYPE_VENDOR)
    if not include_inactive:
        query = query.filter(Employee.is_active.is_(True))
    return query.order_by(Employee.created_at.desc(), Employee.id.desc()).all()


def get_active_employee(employee_code: str, *, user_type: str | None = None) -> Employee | None:
    query = db.session.query(Employee).filter_by(
        employee_code=(employee_code or "").strip().upper(),
        is_active=True,
    )
    if user_type:
        query = query.filter_by(user_type=user_type)
    return query.first()


def require_employee(employee_code: str) -> Employee:
    employee = get_active_employee(employee_code, user_type=USER_TYPE_EMPLOYEE)
    if not employee:
        raise NotFoundError("Employee not found")
    return employee


def list_employees(*, search: str | None = None, include_inactive: bool = False) -> list[Employee]:
    """Employee directory used by vendors to pick who they are serving."""
    query = db.session.query(Employee).filter(Employee.user_type == USER_TYPE_EMPLOYEE)
    if not include_inactive:
        query = query.filter(Employee.is_active.is_(True))
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            Employee.employee_code.ilike(pattern),
            Employee.first_name.ilike(pattern),
            Employee.last_name.ilike(pattern),
            Employee.department.ilike(pattern),
        ))
    return query.order_by(Employee.employee_code).all()


def _locked_employee(employee_code: str) -> Employee:
    employee = lock_employee(
        employee_code=(employee_code or "").strip().upper(),
        user_type=USER_TYPE_EMPLOYEE,
    )
    if not employee:
        db.session.rollback()
        raise NotFoundError("Employee not found")
    return employee


def update_monthly_limit(employee_code: str, limit_cents: int) -> Employee:
    """Set the monthly limit under the same row lock checkout uses."""
    def _op():
        begin_write()
        employee = _locked_employee(employee_code)
        try:
            budget_service.set_monthly_limit(employee, limit_cents)
        except ValidationError:
            db.session.rollback()
            raise
        db.session.commit()
        return employee

    return run_with_retry(_op)


def top_up_budget(employee_code: str, amount_cents: int) -> Employee:
    """Raise the monthly limit by amount_cents (budget credit)."""
    def _op():
        begin_write()
        employee = _locked_employee(employee_code)
        try:
            budget_service.credit(employee, amount_cents)
        except ValidationError:
            db.session.rollback()
            raise
        db.session.commit()
        return employee

    return run_with_retry(_op)
