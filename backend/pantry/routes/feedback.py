# Overview: Flask API routes for pantry feedback; employee and kiosk submission, admin review.

from flask import Blueprint, request, jsonify, g

from ..decorators import handle_pantry_errors, require_identity
from ..errors import ValidationError
from ..models.employees import USER_TYPE_ADMIN
from ..services import feedback_service


feedback_bp = Blueprint("feedback", __name__, url_prefix="/api/feedback")


@feedback_bp.post("")
@require_identity()
@handle_pantry_errors
def submit_feedback_route():
    """
    Body: message (required), category, vendor_name, order_number, rating (1-5), contact_info
    """
    feedback = feedback_service.submit_feedback(
        request.get_json(silent=True) or {}, employee=g.current_user
    )
    return jsonify({"message": "Feedback submitted successfully", "feedback": feedback.to_dict()}), 201


@feedback_bp.post("/public")
@handle_pantry_errors
def submit_public_feedback_route():
    """Kiosk form, no identity. Optional employee_code is recorded as typed."""
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    data = dict(data)
    submitter_code = data.pop("employee_code", None)
    feedback = feedback_service.submit_feedback(data, submitter_code=submitter_code)
    return jsonify({"message": "Feedback submitted successfully", "feedback": feedback.to_dict()}), 201


@feedback_bp.get("/my")
@require_identity()
@handle_pantry_errors
def my_feedback_route():
    items = feedback_service.list_my_feedback(g.current_user)
    return jsonify({"feedback": [f.to_dict() for f in items]}), 200


@feedback_bp.get("/admin/all")
@require_identity(USER_TYPE_ADMIN)
@handle_pantry_errors
def list_all_feedback_route():
    """
    Query params: page, per_page, category, status (OPEN|REVIEWING|RESOLVED|all), search
    """
    listing = feedback_service.list_all_feedback(
        page=request.args.get("page", 1, type=int),
        per_page=request.args.get("per_page", 20, type=int),
        category=request.args.get("category"),
        status=request.args.get("status"),
        search=request.args.get("search"),
    )
    return jsonify({
        "feedback": [f.to_dict() for f in listing["feedback"]],
        "pagination": listing["pagination"],
    }), 200


@feedback_bp.post("/admin/<int:feedback_id>/status")
@require_identity(USER_TYPE_ADMIN)
@handle_pantry_errors
def update_feedback_status_route(feedback_id: int):
    data = request.get_json(silent=True) or {}
    if not data.get("status"):
        return jsonify({"error": "status required"}), 400

    feedback = feedback_service.update_status(feedback_id, data["status"], note=data.get("note"))
    return jsonify({"feedback": feedback.to_dict()}), 200
