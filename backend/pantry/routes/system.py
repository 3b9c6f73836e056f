# backend/pantry/routes/system.py
"""
System health endpoint.

Checks the database and the reconciliation queue so deployments can see
when checkouts have left budget/history writes pending.
"""

import time
from flask import Blueprint, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Employee, Order, ReconciliationItem
from ..models.reconciliation import ITEM_OPEN
from pantry.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        employee_count = db.session.query(Employee).count()
        order_count = db.session.query(Order).count()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "employees": employee_count,
                "orders": order_count,
            }
        }
    except SQLAlchemyError:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_reconciliation_health() -> dict:
    """Open reconciliation items mean some orders are not yet reflected in budgets/history."""
    start_time = time.time()
    try:
        open_items = db.session.query(ReconciliationItem).filter_by(status=ITEM_OPEN).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "degraded" if open_items else "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"open_items": open_items},
        }
    except SQLAlchemyError:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Reconciliation health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Reconciliation queue error"
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded (still operational)
    - 503: one or more checks unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    reconciliation_health = check_reconciliation_health()

    all_checks = [database_health, reconciliation_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status, http_status = "unhealthy", 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": {
            "database": database_health,
            "reconciliation": reconciliation_health,
        }
    }

    return response, http_status
