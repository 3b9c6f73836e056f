from __future__ import annotations

from ..extensions import db
from pantry.money import format_cents
from pantry.time_utils import to_utc_z


USER_TYPE_EMPLOYEE = "employee"
USER_TYPE_VENDOR = "vendor"
USER_TYPE_ADMIN = "admin"
USER_TYPES = {USER_TYPE_EMPLOYEE, USER_TYPE_VENDOR, USER_TYPE_ADMIN}


class Employee(db.Model):
    """
    Any account on the pantry platform: employee, vendor or admin.

    The pantry budget is embedded here and owned exclusively by the
    employee row. All amounts are integer minor units.

    INVARIANT: current_spent_cents only grows through checkout, and the
    checkout path holds a row lock on this record between the
    affordability check and the debit.
    """
    __tablename__ = "employees"
    __table_args__ = (
        db.Index("ix_employees_type_active", "user_type", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable identifier (e.g., "EMP001")
    employee_code = db.Column(db.String(32), nullable=False, unique=True, index=True)
    email = db.Column(db.String(255), nullable=False, unique=True)

    first_name = db.Column(db.String(80), nullable=False)
    last_name = db.Column(db.String(80), nullable=False)
    user_type = db.Column(db.String(16), nullable=False, default=USER_TYPE_EMPLOYEE)

    department = db.Column(db.String(120), nullable=True)
    position = db.Column(db.String(120), nullable=True)
    contact_number = db.Column(db.String(32), nullable=True)
    location = db.Column(db.String(120), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    # bcrypt hash of the 4-digit PIN (employees only)
    secret_pin_hash = db.Column(db.String(255), nullable=True)

    # Embedded pantry budget
    monthly_limit_cents = db.Column(db.Integer, nullable=False, default=10000)
    current_spent_cents = db.Column(db.Integer, nullable=False, default=0)
    budget_updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Employee id={self.id} code={self.employee_code!r} type={self.user_type}>"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def remaining_cents(self) -> int:
        return self.monthly_limit_cents - self.current_spent_cents

    def budget_dict(self) -> dict:
        return {
            "monthly_limit": format_cents(self.monthly_limit_cents),
            "current_spent": format_cents(self.current_spent_cents),
            "remaining": format_cents(self.remaining_cents),
            "monthly_limit_cents": self.monthly_limit_cents,
            "current_spent_cents": self.current_spent_cents,
            "remaining_cents": self.remaining_cents,
            "last_updated": to_utc_z(self.budget_updated_at),
        }

    def to_dict(self, include_budget: bool = True) -> dict:
        data = {
            "id": self.id,
            "employee_code": self.employee_code,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "user_type": self.user_type,
            "department": self.department,
            "position": self.position,
            "contact_number": self.contact_number,
            "location": self.location,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
        if include_budget and self.user_type == USER_TYPE_EMPLOYEE:
            data["pantry_budget"] = self.budget_dict()
        return data

    def to_directory_dict(self) -> dict:
        """Public view for vendor-side employee lookup (no budget internals)."""
        return {
            "employee_code": self.employee_code,
            "name": self.full_name,
            "department": self.department,
            "position": self.position,
            "location": self.location,
        }
