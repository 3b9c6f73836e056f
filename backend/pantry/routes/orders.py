# Overview: Flask API routes for pantry orders; parses input and returns JSON responses.

# backend/pantry/routes/orders.py
"""Order API routes: vendor and direct checkout, listings, status changes"""

from flask import Blueprint, request, jsonify, g

from ..decorators import handle_pantry_errors, require_identity
from ..errors import AuthorizationError
from ..models.employees import USER_TYPE_ADMIN, USER_TYPE_EMPLOYEE, USER_TYPE_VENDOR
from ..services import checkout_service, order_service


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _checkout_response(result):
    payload = result.to_dict()
    payload["message"] = "Order placed successfully"
    payload["budget"] = result.order.employee.budget_dict()
    return jsonify(payload), 201


@orders_bp.post("")
@require_identity(USER_TYPE_VENDOR)
@handle_pantry_errors
def create_vendor_order_route():
    """
    Place an order for an employee at the vendor's counter.

    Body: employee_code, pin, items[{product_id, quantity, price?}], total_amount?
    Available to: vendor
    """
    data = request.get_json(silent=True) or {}

    result = checkout_service.checkout_for_vendor(
        g.current_user,
        data.get("employee_code"),
        data.get("pin"),
        data.get("items"),
        client_total=data.get("total_amount"),
        ip_address=request.remote_addr,
    )
    return _checkout_response(result)


@orders_bp.post("/direct")
@handle_pantry_errors
def create_direct_order_route():
    """
    Self-service order from the menu.

    No caller identity: the employee code and PIN in the body authorize it.
    """
    data = request.get_json(silent=True) or {}

    result = checkout_service.checkout_direct(
        data.get("employee_code"),
        data.get("pin"),
        data.get("items"),
        client_total=data.get("total_amount"),
        ip_address=request.remote_addr,
    )
    return _checkout_response(result)


@orders_bp.get("/my")
@require_identity(USER_TYPE_EMPLOYEE)
@handle_pantry_errors
def my_orders_route():
    orders = order_service.list_orders_for_employee(g.current_user)
    return jsonify({"orders": [o.to_dict() for o in orders]}), 200


@orders_bp.get("/<order_number>")
@require_identity()
@handle_pantry_errors
def get_order_route(order_number: str):
    """Employees see their own orders, vendors the ones they served, admins any."""
    order = order_service.get_order_by_number(order_number)

    user = g.current_user
    if user.user_type == USER_TYPE_EMPLOYEE and order.employee_id != user.id:
        raise AuthorizationError("Access denied")
    if user.user_type == USER_TYPE_VENDOR and order.vendor_id != user.id:
        raise AuthorizationError("Access denied")

    return jsonify({"order": order.to_dict()}), 200


@orders_bp.get("/admin/all")
@require_identity(USER_TYPE_ADMIN)
@handle_pantry_errors
def list_all_orders_route():
    """
    Query params: page, per_page, status, search, sort_by (date|amount|status), sort_order
    """
    listing = order_service.list_all_orders(
        page=request.args.get("page", 1, type=int),
        per_page=request.args.get("per_page", 20, type=int),
        status=request.args.get("status"),
        search=request.args.get("search"),
        sort_by=request.args.get("sort_by", "date"),
        sort_order=request.args.get("sort_order", "desc"),
    )
    return jsonify({
        "orders": [o.to_dict(include_lines=False) for o in listing["orders"]],
        "pagination": listing["pagination"],
    }), 200


@orders_bp.post("/admin/<order_number>/status")
@require_identity(USER_TYPE_ADMIN)
@handle_pantry_errors
def update_order_status_route(order_number: str):
    data = request.get_json(silent=True) or {}
    if not data.get("status"):
        return jsonify({"error": "status required"}), 400

    order = order_service.transition_status(order_number, data["status"], note=data.get("note"))
    return jsonify({"order": order.to_dict()}), 200
