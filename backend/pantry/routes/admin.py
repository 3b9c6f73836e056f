# Overview: Flask API routes for admin budget adjustments, vendor accounts and the reconciliation queue.

from flask import Blueprint, request, jsonify

from ..decorators import handle_pantry_errors, require_identity
from ..errors import ValidationError
from ..models.employees import USER_TYPE_ADMIN
from ..models.reconciliation import ITEM_OPEN
from ..money import to_cents
from ..services import employee_service, pin_service, reconciliation_service


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/reconciliation")
@require_identity(USER_TYPE_ADMIN)
@handle_pantry_errors
def list_reconciliation_route():
    """Query params: status (OPEN|RESOLVED|all), defaults to OPEN"""
    status = request.args.get("status", ITEM_OPEN)
    items = reconciliation_service.list_items(None if status == "all" else status.upper())
    return jsonify({"items": [i.to_dict() for i in items]}), 200


@admin_bp.post("/reconciliation/<int:item_id>/resolve")
@require_identity(USER_TYPE_ADMIN)
@handle_pantry_errors
def resolve_reconciliation_route(item_id: int):
    data = request.get_json(silent=True) or {}
    item = reconciliation_service.resolve_item(item_id, note=data.get("note"))
    return jsonify({"item": item.to_dict()}), 200


@admin_bp.post("/employees/<employee_code>/budget")
@require_identity(USER_TYPE_ADMIN)
@handle_pantry_errors
def adjust_budget_route(employee_code: str):
    """
    Body: monthly_limit (set the limit) or top_up (raise it). Exactly one.
    """
    data = request.get_json(silent=True) or {}
    has_limit = data.get("monthly_limit") is not None
    has_top_up = data.get("top_up") is not None
    if has_limit == has_top_up:
        raise ValidationError("Provide exactly one of monthly_limit or top_up")

    if has_limit:
        employee = employee_service.update_monthly_limit(
            employee_code, to_cents(data["monthly_limit"], "monthly_limit")
        )
    else:
        employee = employee_service.top_up_budget(
            employee_code, to_cents(data["top_up"], "top_up")
        )
    return jsonify({"employee_code": employee.employee_code, "budget": employee.budget_dict()}), 200


@admin_bp.get("/employees/<employee_code>/pin-status")
@require_identity(USER_TYPE_ADMIN)
@handle_pantry_errors
def pin_status_route(employee_code: str):
    employee = employee_service.require_employee(employee_code)
    return jsonify({
        "employee_code": employee.employee_code,
        "pin_status": pin_service.get_pin_lockout_status(employee.employee_code),
    }), 200


@admin_bp.post("/vendors")
@require_identity(USER_TYPE_ADMIN)
@handle_pantry_errors
def create_vendor_route():
    """
    Body: employee_code, email, first_name, last_name (required);
    department, position, contact_number, location
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")

    fields = ("employee_code", "email", "first_name", "last_name",
              "department", "position", "contact_number", "location")
    values = {}
    for name in fields:
        value = data.get(name)
        if value is not None and not isinstance(value, str):
            raise ValidationError(f"{name} must be a string", details={"field": name})
        values[name] = value.strip() if value else None

    vendor = employee_service.create_vendor(**values)
    return jsonify({"message": "Vendor created successfully", "vendor": vendor.to_dict()}), 201


@admin_bp.get("/vendors")
@require_identity(USER_TYPE_ADMIN)
@handle_pantry_errors
def list_vendors_route():
    """Query params: include_inactive (true|false)"""
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    vendors = employee_service.list_vendors(include_inactive=include_inactive)
    return jsonify({"vendors": [v.to_dict() for v in vendors]}), 200
