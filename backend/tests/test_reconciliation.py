"""
Reconciliation queue tests: staged-mode failures are queued and can be
re-applied later without touching the order.
"""

import pytest
from sqlalchemy.exc import SQLAlchemyError

from pantry.errors import InvalidTransitionError, NotFoundError
from pantry.models import PurchaseHistoryEntry
from pantry.models.reconciliation import ITEM_OPEN, ITEM_RESOLVED, STAGE_HISTORY_APPEND, STAGE_LEDGER_DEBIT
from pantry.services import budget_service, checkout_service, history_service, reconciliation_service
from conftest import EMPLOYEE_PIN, cart


def _fault(*args, **kwargs):
    raise SQLAlchemyError("simulated storage fault")


@pytest.fixture
def pending_debit(employee, products, staged_checkout, monkeypatch):
    monkeypatch.setattr(budget_service, "debit", _fault)
    result = checkout_service.checkout_direct(
        "EMP001", EMPLOYEE_PIN, cart((products["bars"], 1)), notifier=lambda *_: True
    )
    monkeypatch.undo()
    return result


@pytest.fixture
def pending_history(employee, products, staged_checkout, monkeypatch):
    monkeypatch.setattr(history_service, "append_entries", _fault)
    result = checkout_service.checkout_direct(
        "EMP001", EMPLOYEE_PIN, cart((products["bars"], 1), (products["coffee"], 2)),
        notifier=lambda *_: True,
    )
    monkeypatch.undo()
    return result


def test_list_open_items(pending_debit):
    items = reconciliation_service.list_items()

    assert len(items) == 1
    assert items[0].stage == STAGE_LEDGER_DEBIT
    assert items[0].to_dict()["order_number"] == pending_debit.order.order_number


def test_resolve_debit_applies_order_total(db_session, employee, pending_debit):
    item = reconciliation_service.list_items()[0]

    resolved = reconciliation_service.resolve_item(item.id, note="replayed")

    assert resolved.status == ITEM_RESOLVED
    assert resolved.resolved_at is not None
    assert resolved.resolution_note == "replayed"
    db_session.refresh(employee)
    assert employee.current_spent_cents == 30000
    assert reconciliation_service.list_items() == []
    assert len(reconciliation_service.list_items(status=None)) == 1


def test_resolve_debit_ignores_affordability(db_session, employee, pending_debit):
    # the order already happened; the debit is applied even past the limit
    employee.current_spent_cents = 49000
    db_session.commit()
    item = reconciliation_service.list_items()[0]

    reconciliation_service.resolve_item(item.id)

    db_session.refresh(employee)
    assert employee.current_spent_cents == 54000


def test_resolve_history_backfills_entries(db_session, pending_history):
    item = reconciliation_service.list_items()[0]
    assert item.stage == STAGE_HISTORY_APPEND
    assert db_session.query(PurchaseHistoryEntry).count() == 0

    reconciliation_service.resolve_item(item.id)

    entries = db_session.query(PurchaseHistoryEntry).order_by(PurchaseHistoryEntry.entry_key).all()
    order = pending_history.order
    assert len(entries) == 2
    assert {e.purchased_at for e in entries} == {order.completed_at}
    assert sum(e.line_total_cents for e in entries) == order.total_amount_cents


def test_rebuild_is_idempotent(db_session, pending_history):
    order = pending_history.order
    history_service.rebuild_for_order(order)
    db_session.commit()

    assert history_service.rebuild_for_order(order) == []
    assert db_session.query(PurchaseHistoryEntry).count() == 2


def test_resolve_twice_rejected(pending_debit):
    item = reconciliation_service.list_items()[0]
    reconciliation_service.resolve_item(item.id)

    with pytest.raises(InvalidTransitionError):
        reconciliation_service.resolve_item(item.id)


def test_resolve_unknown_item(db_session):
    with pytest.raises(NotFoundError):
        reconciliation_service.resolve_item(424242)


def test_open_items_listed_by_status(pending_debit):
    assert [i.status for i in reconciliation_service.list_items(ITEM_OPEN)] == [ITEM_OPEN]
    assert reconciliation_service.list_items(ITEM_RESOLVED) == []
