# Overview: Error taxonomy for checkout and the surrounding pantry services.

"""
Pantry error hierarchy.

Every error carries a machine-readable ``code`` and the HTTP status the
route layer answers with. ``details`` is a JSON-safe dict for clients.

- ValidationError / AuthorizationError / PersistenceError: raised before
  anything is committed; the caller may fix the request and resubmit.
- PostCommitInconsistency: the order exists but the ledger or history
  write did not land. Never raised out of a checkout; it is recorded on
  the reconciliation queue and reported on the checkout result.
- NotificationError: always swallowed by the orchestrator.
"""

from __future__ import annotations


class PantryError(Exception):
    """Base for domain errors surfaced to API callers."""
    http_status = 400
    code = "PANTRY_ERROR"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, "details": self.details}


class ValidationError(PantryError):
    """400-level input problem (bad cart, malformed PIN)."""
    code = "VALIDATION_ERROR"


class NotFoundError(PantryError):
    http_status = 404
    code = "NOT_FOUND"


class AuthorizationError(PantryError):
    """Request is well formed but not authorized."""
    http_status = 403
    code = "NOT_AUTHORIZED"


class InvalidPinError(AuthorizationError):
    http_status = 401
    code = "INVALID_PIN"


class PinLockedError(AuthorizationError):
    http_status = 423
    code = "PIN_LOCKED"


class InsufficientBudgetError(AuthorizationError):
    http_status = 400
    code = "INSUFFICIENT_BUDGET"


class InvalidTransitionError(PantryError):
    http_status = 409
    code = "INVALID_TRANSITION"


class PersistenceError(PantryError):
    """Order write failed; nothing was committed and the checkout can be resubmitted."""
    http_status = 503
    code = "PERSISTENCE_ERROR"


class PostCommitInconsistency(PantryError):
    """Order committed, but a dependent ledger/history write did not."""
    http_status = 500
    code = "RECONCILIATION_PENDING"

    def __init__(self, message: str, *, stage: str, details: dict | None = None):
        super().__init__(message, details)
        self.stage = stage


class NotificationError(PantryError):
    http_status = 502
    code = "NOTIFICATION_FAILED"
