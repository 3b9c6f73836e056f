# Overview: Request decorators for API routes; caller identity and error mapping.

from functools import wraps
from flask import current_app, g, jsonify, request

from .errors import PantryError
from .services import employee_service


def require_identity(*user_types: str):
    """
    Require a caller identity forwarded by the authenticating gateway.

    The gateway has already authenticated the caller and passes their
    employee code in IDENTITY_HEADER. Sets g.current_user to the active
    account.

    Returns 401 if the header is missing or unknown, 403 if the account
    type is not one of user_types (any type when none given).
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            header = current_app.config.get("IDENTITY_HEADER", "X-Pantry-Employee")
            code = (request.headers.get(header) or "").strip()
            if not code:
                return jsonify({"error": "Authentication required"}), 401

            user = employee_service.get_active_employee(code)
            if not user:
                return jsonify({"error": "Unknown or inactive account"}), 401

            if user_types and user.user_type not in user_types:
                return jsonify({
                    "error": "Access denied",
                    "required_user_type": list(user_types),
                }), 403

            g.current_user = user
            return f(*args, **kwargs)

        return decorated_function
    return decorator


def handle_pantry_errors(f):
    """Map PantryError subclasses to JSON responses; log anything unexpected."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except PantryError as e:
            return jsonify(e.to_dict()), e.http_status
        except Exception:
            current_app.logger.exception("Unhandled error in %s %s", request.method, request.path)
            return jsonify({"error": "Internal server error"}), 500

    return decorated_function
