"""
Purchase history tests: flattening, month buckets, filters and ordering.
"""

from datetime import datetime

import pytest

from pantry.errors import ValidationError
from pantry.models import Order, OrderLine, PurchaseHistoryEntry
from pantry.models.orders import ORDER_TYPE_DIRECT, PAYMENT_PAID, STATUS_COMPLETED
from pantry.services import history_service


def _order(db_session, employee, products, number, when, lines):
    order = Order(
        order_number=number,
        employee_id=employee.id,
        order_type=ORDER_TYPE_DIRECT,
        status=STATUS_COMPLETED,
        payment_status=PAYMENT_PAID,
        pin_verified=True,
        total_items=sum(q for _, q in lines),
        total_amount_cents=sum(p.price_cents * q for p, q in lines),
        created_at=when,
        completed_at=when,
    )
    order.lines = [
        OrderLine(
            line_number=i,
            product_id=p.id,
            name=p.name,
            category=p.category,
            unit=p.unit,
            quantity=q,
            unit_price_cents=p.price_cents,
            line_total_cents=p.price_cents * q,
        )
        for i, (p, q) in enumerate(lines, start=1)
    ]
    db_session.add(order)
    db_session.flush()
    history_service.append_entries(order, purchased_at=when, vendor_name="Direct Order")
    db_session.commit()
    return order


@pytest.fixture
def history(db_session, employee, products):
    _order(db_session, employee, products, "ORD1-AAAA", datetime(2026, 8, 31, 23, 59),
           [(products["bars"], 1), (products["coffee"], 2)])
    _order(db_session, employee, products, "ORD2-BBBB", datetime(2026, 9, 1, 0, 1),
           [(products["coffee"], 1)])
    _order(db_session, employee, products, "ORD3-CCCC", datetime(2026, 9, 15, 12, 0),
           [(products["sandwich"], 1)])


def test_entries_are_keyed_by_order_line(db_session, history):
    keys = {e.entry_key for e in db_session.query(PurchaseHistoryEntry).all()}
    assert keys == {"ORD1-AAAA-1", "ORD1-AAAA-2", "ORD2-BBBB-1", "ORD3-CCCC-1"}


def test_month_bucket_from_purchase_time(db_session, history):
    months = {e.order_number: e.month for e in db_session.query(PurchaseHistoryEntry).all()}
    assert months == {"ORD1-AAAA": "2026-08", "ORD2-BBBB": "2026-09", "ORD3-CCCC": "2026-09"}


def test_list_newest_first(employee, history):
    entries = history_service.list_history(employee)

    assert [e.order_number for e in entries][:2] == ["ORD3-CCCC", "ORD2-BBBB"]
    assert len(entries) == 4


def test_filter_by_month_and_category(employee, history):
    september = history_service.list_history(employee, month="2026-09")
    assert {e.order_number for e in september} == {"ORD2-BBBB", "ORD3-CCCC"}

    drinks = history_service.list_history(employee, category="Beverages")
    assert {e.order_number for e in drinks} == {"ORD1-AAAA", "ORD2-BBBB"}

    assert len(history_service.list_history(employee, category="All")) == 4


@pytest.mark.parametrize("month", ["2026-9", "09-2026", "2026-13", "sept"])
def test_bad_month_rejected(employee, history, month):
    with pytest.raises(ValidationError):
        history_service.list_history(employee, month=month)


def test_history_is_per_employee(other_employee, history):
    assert history_service.list_history(other_employee) == []


def test_monthly_summary(employee, history):
    summary = history_service.monthly_summary(employee)

    assert [row["month"] for row in summary] == ["2026-09", "2026-08"]
    assert summary[0]["orders"] == 2
    assert summary[0]["total_cents"] == 17500
    assert summary[1]["items"] == 3
    assert summary[1]["total"] == "100.00"
