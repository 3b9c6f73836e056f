# Overview: Service-layer operations for the post-commit reconciliation queue.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..errors import InvalidTransitionError, NotFoundError
from ..models import Order, ReconciliationItem
from ..models.reconciliation import (
    ITEM_OPEN,
    ITEM_RESOLVED,
    STAGE_HISTORY_APPEND,
    STAGE_LEDGER_DEBIT,
)
from pantry.time_utils import utcnow
from . import budget_service, history_service
from .concurrency import begin_write, lock_employee, lock_for_update, run_with_retry


def record_issue(*, order: Order, stage: str, amount_cents: int, reason: str | None = None) -> ReconciliationItem:
    """Queue a committed order whose debit or history write failed. Flushes, does not commit."""
    item = ReconciliationItem(
        order_id=order.id,
        employee_id=order.employee_id,
        stage=stage,
        amount_cents=amount_cents,
        reason=reason,
        status=ITEM_OPEN,
    )
    db.session.add(item)
    db.session.flush()
    return item


def list_items(status: str | None = ITEM_OPEN) -> list[ReconciliationItem]:
    query = db.session.query(ReconciliationItem)
    if status:
        query = query.filter(ReconciliationItem.status == status)
    return query.order_by(ReconciliationItem.created_at, ReconciliationItem.id).all()


def resolve_item(item_id: int, *, note: str | None = None) -> ReconciliationItem:
    """
    Re-apply the missing write for a queued order and mark the item resolved.

    LEDGER_DEBIT debits the order total without an affordability check:
    the order already happened and stays authoritative.
    HISTORY_APPEND backfills the order's missing history entries.
    """
    def _op():
        begin_write()
        item = lock_for_update(
            db.session.query(ReconciliationItem).filter_by(id=item_id)
        ).first()
        if not item:
            db.session.rollback()
            raise NotFoundError("Reconciliation item not found")
        if item.status != ITEM_OPEN:
            db.session.rollback()
            raise InvalidTransitionError(f"Reconciliation item already {item.status}")

        order = db.session.get(Order, item.order_id)
        if item.stage == STAGE_LEDGER_DEBIT:
            employee = lock_employee(id=item.employee_id)
            budget_service.debit(employee, item.amount_cents)
        elif item.stage == STAGE_HISTORY_APPEND:
            history_service.rebuild_for_order(order)

        item.status = ITEM_RESOLVED
        item.resolved_at = utcnow()
        item.resolution_note = note
        db.session.commit()

        current_app.logger.info(
            "Reconciliation item %s resolved (order=%s stage=%s)",
            item.id, order.order_number, item.stage,
        )
        return item

    return run_with_retry(_op)
