# Overview: Flask API routes for the caller's profile, PIN, budget and purchase history.

from flask import Blueprint, request, jsonify, g

from ..decorators import handle_pantry_errors, require_identity
from ..models.employees import USER_TYPE_ADMIN, USER_TYPE_EMPLOYEE, USER_TYPE_VENDOR
from ..money import to_cents
from ..services import budget_service, employee_service, history_service, pin_service


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("/profile")
@require_identity()
@handle_pantry_errors
def profile_route():
    return jsonify({"user": g.current_user.to_dict()}), 200


@users_bp.put("/pin")
@require_identity(USER_TYPE_EMPLOYEE)
@handle_pantry_errors
def change_pin_route():
    data = request.get_json(silent=True) or {}
    pin_service.change_pin(g.current_user, data.get("current_pin"), data.get("new_pin"))
    return jsonify({"message": "PIN updated successfully"}), 200


@users_bp.get("/budget")
@require_identity(USER_TYPE_EMPLOYEE)
@handle_pantry_errors
def budget_route():
    return jsonify({"budget": budget_service.budget_snapshot(g.current_user)}), 200


@users_bp.put("/budget")
@require_identity(USER_TYPE_EMPLOYEE)
@handle_pantry_errors
def update_budget_route():
    """Employees may set their own monthly limit (0 to MAX_MONTHLY_LIMIT_CENTS)."""
    data = request.get_json(silent=True) or {}
    if data.get("monthly_limit") is None:
        return jsonify({"error": "monthly_limit required"}), 400

    employee = employee_service.update_monthly_limit(
        g.current_user.employee_code, to_cents(data["monthly_limit"], "monthly_limit")
    )
    return jsonify({"message": "Budget updated", "budget": budget_service.budget_snapshot(employee)}), 200


@users_bp.get("/purchase-history")
@require_identity(USER_TYPE_EMPLOYEE)
@handle_pantry_errors
def purchase_history_route():
    """
    Query params: month (YYYY-MM), category
    """
    entries = history_service.list_history(
        g.current_user,
        month=request.args.get("month"),
        category=request.args.get("category"),
    )
    total_cents = sum(e.line_total_cents for e in entries)
    return jsonify({
        "purchase_history": [e.to_dict() for e in entries],
        "total_entries": len(entries),
        "total_amount_cents": total_cents,
        "monthly_summary": history_service.monthly_summary(g.current_user),
    }), 200


@users_bp.get("/employees")
@require_identity(USER_TYPE_VENDOR, USER_TYPE_ADMIN)
@handle_pantry_errors
def employee_directory_route():
    employees = employee_service.list_employees(search=request.args.get("search"))
    return jsonify({"employees": [e.to_directory_dict() for e in employees]}), 200
