# Overview: Flask API routes for PIN verification; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..decorators import handle_pantry_errors, require_identity
from ..models.employees import USER_TYPE_ADMIN, USER_TYPE_VENDOR
from ..services import pin_service


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/verify-pin")
@require_identity(USER_TYPE_VENDOR, USER_TYPE_ADMIN)
@handle_pantry_errors
def verify_pin_route():
    """
    Check an employee's PIN before building a cart.

    Attempts count toward the same lockout as checkout.
    """
    data = request.get_json(silent=True) or {}
    employee_code = data.get("employee_code")
    if not employee_code:
        return jsonify({"error": "employee_code required"}), 400

    verified = pin_service.verify_pin(
        employee_code,
        data.get("pin"),
        actor=g.current_user.employee_code,
        ip_address=request.remote_addr,
    )
    if not verified:
        return jsonify({"error": "Invalid PIN", "verified": False}), 401

    return jsonify({"message": "PIN verified successfully", "verified": True}), 200
