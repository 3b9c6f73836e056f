"""
Checkout Service - PIN-authorized pantry purchases

WHY: Vendors (on an employee's behalf) and the self-service menu both end
in the same purchase: verify the PIN, check the budget, record the order,
debit the budget and append history, then try to notify.

Step order:
    validate input -> verify PIN -> lock employee + check budget
    -> persist order -> debit budget -> append history -> commit -> notify

INVARIANTS:
- Totals come from order_builder over catalog prices; the client total is
  only recorded for audit.
- The employee row is locked (BEGIN IMMEDIATE on SQLite, FOR UPDATE
  elsewhere) from the affordability check until commit, so concurrent
  checkouts for one employee are serialized.
- Nothing is committed before the PIN verifies and the budget covers the
  order. (The PIN attempt itself is written to security_events.)
- CHECKOUT_ATOMIC=True: order, debit and history commit together or not
  at all.
- CHECKOUT_ATOMIC=False: debit and history each run in a savepoint; if one
  fails the order still commits, the failure is logged and queued on
  reconciliation_items, and the result is flagged reconciliation_pending.
- Notification runs after commit and can never fail the checkout.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..errors import (
    AuthorizationError,
    InsufficientBudgetError,
    PersistenceError,
    PostCommitInconsistency,
    ValidationError,
)
from ..models import Employee, Order, OrderLine
from ..models.employees import USER_TYPE_VENDOR
from ..models.orders import PAYMENT_PAID, STATUS_COMPLETED
from ..models.reconciliation import STAGE_HISTORY_APPEND, STAGE_LEDGER_DEBIT
from ..money import format_cents, to_cents
from pantry.time_utils import utcnow
from . import (
    budget_service,
    catalog_service,
    history_service,
    notification_service,
    order_builder,
    pin_service,
    reconciliation_service,
)
from .concurrency import begin_write, lock_employee, run_with_retry


KIOSK_ACTOR = "menu-kiosk"


@dataclass
class CheckoutResult:
    order: Order
    remaining_cents: int
    inconsistencies: list[PostCommitInconsistency] = field(default_factory=list)
    notified: bool = False

    @property
    def reconciliation_pending(self) -> bool:
        return bool(self.inconsistencies)

    def to_dict(self) -> dict:
        return {
            "order_number": self.order.order_number,
            "order": self.order.to_dict(),
            "remaining_budget": format_cents(self.remaining_cents),
            "remaining_budget_cents": self.remaining_cents,
            "reconciliation_pending": self.reconciliation_pending,
            "warnings": [issue.to_dict() for issue in self.inconsistencies],
            "notified": self.notified,
        }


def checkout_for_vendor(
    vendor: Employee,
    employee_code: str,
    pin,
    raw_items,
    *,
    client_total=None,
    ip_address: str | None = None,
    notifier=None,
) -> CheckoutResult:
    """Vendor-assisted order: the vendor quotes the employee's PIN and is recorded on the order."""
    if vendor is None or vendor.user_type != USER_TYPE_VENDOR or not vendor.is_active:
        raise AuthorizationError("Only active vendors can place orders for employees")

    return _checkout(
        employee_code=employee_code,
        pin=pin,
        raw_items=raw_items,
        vendor=vendor,
        actor=vendor.employee_code,
        client_total=client_total,
        ip_address=ip_address,
        notifier=notifier,
    )


def checkout_direct(
    employee_code: str,
    pin,
    raw_items,
    *,
    client_total=None,
    ip_address: str | None = None,
    notifier=None,
) -> CheckoutResult:
    """Self-service order from the menu: no vendor, employee code + PIN only."""
    return _checkout(
        employee_code=employee_code,
        pin=pin,
        raw_items=raw_items,
        vendor=None,
        actor=KIOSK_ACTOR,
        client_total=client_total,
        ip_address=ip_address,
        notifier=notifier,
    )


def _persist_order(draft: order_builder.OrderDraft, *, completed_at) -> Order:
    order = Order(
        order_number=draft.order_number,
        employee_id=draft.employee_id,
        vendor_id=draft.vendor_id,
        order_type=draft.order_type,
        status=STATUS_COMPLETED,
        payment_status=PAYMENT_PAID,
        pin_verified=True,
        total_items=draft.total_items,
        total_amount_cents=draft.total_amount_cents,
        client_total_cents=draft.client_total_cents,
        created_at=completed_at,
        completed_at=completed_at,
    )
    order.lines = [
        OrderLine(
            line_number=number,
            product_id=line.product_id,
            name=line.name,
            category=line.category,
            unit=line.unit,
            quantity=line.quantity,
            unit_price_cents=line.unit_price_cents,
            line_total_cents=line.line_total_cents,
        )
        for number, line in enumerate(draft.lines, start=1)
    ]
    db.session.add(order)
    db.session.flush()
    return order


def _staged_step(order: Order, employee: Employee, stage: str, step) -> PostCommitInconsistency | None:
    """
    Run one post-persist write in a savepoint.

    On failure the savepoint is rolled back, the order is kept, and the
    failure is queued for reconciliation.
    """
    try:
        with db.session.begin_nested():
            step()
    except (OperationalError, StaleDataError):
        # Transient lock or version conflict: nothing is committed yet, retry the whole checkout
        raise
    except SQLAlchemyError as exc:
        current_app.logger.error(
            "Post-commit inconsistency: order=%s employee=%s stage=%s amount=%s reason=%s",
            order.order_number, employee.employee_code, stage, order.total_amount_cents, exc,
        )
        item = reconciliation_service.record_issue(
            order=order,
            stage=stage,
            amount_cents=order.total_amount_cents,
            reason=str(exc),
        )
        return PostCommitInconsistency(
            "Order recorded; budget/history reconciliation pending",
            stage=stage,
            details={
                "order_number": order.order_number,
                "stage": stage,
                "reconciliation_item_id": item.id,
            },
        )
    return None


def _checkout(
    *,
    employee_code: str,
    pin,
    raw_items,
    vendor: Employee | None,
    actor: str,
    client_total,
    ip_address: str | None,
    notifier,
) -> CheckoutResult:
    # Input validation: rejected before any lookup or write
    pin_service.validate_pin_format(pin)
    if not employee_code or not str(employee_code).strip():
        raise ValidationError("employee_code required", details={"field": "employee_code"})
    client_total_cents = to_cents(client_total, "total_amount") if client_total is not None else None
    cart_lines = catalog_service.resolve_cart(raw_items)

    vendor_id = vendor.id if vendor is not None else None
    vendor_name = vendor.full_name if vendor is not None else history_service.DIRECT_ORDER_VENDOR_NAME

    # Started -> PinVerified
    employee = pin_service.authorize_pin(
        str(employee_code).strip(), pin, actor=actor, ip_address=ip_address
    )
    employee_id = employee.id
    atomic = current_app.config.get("CHECKOUT_ATOMIC", True)

    def _op() -> CheckoutResult:
        begin_write()
        # Any failure before commit must release the write transaction
        try:
            locked = lock_employee(id=employee_id)
            if locked is None or not locked.is_active:
                raise AuthorizationError("Employee account is not active")

            draft = order_builder.build(
                locked.id,
                vendor_id,
                cart_lines,
                client_total_cents=client_total_cents,
            )
            if draft.client_total_mismatch:
                current_app.logger.warning(
                    "Client total ignored for %s: client=%s server=%s",
                    draft.order_number, draft.client_total_cents, draft.total_amount_cents,
                )

            # PinVerified -> BudgetChecked
            if not budget_service.can_afford(locked, draft.total_amount_cents):
                raise InsufficientBudgetError(
                    "Insufficient budget",
                    details={
                        "remaining": format_cents(max(budget_service.remaining(locked), 0)),
                        "required": format_cents(draft.total_amount_cents),
                    },
                )

            # BudgetChecked -> OrderPersisted -> LedgerDebited -> HistoryAppended
            completed_at = utcnow()
            order = _persist_order(draft, completed_at=completed_at)

            def _debit():
                budget_service.debit(locked, order.total_amount_cents)
                db.session.flush()

            def _append_history():
                history_service.append_entries(order, purchased_at=completed_at, vendor_name=vendor_name)

            inconsistencies = []
            if atomic:
                _debit()
                _append_history()
            else:
                for stage, step in ((STAGE_LEDGER_DEBIT, _debit), (STAGE_HISTORY_APPEND, _append_history)):
                    issue = _staged_step(order, locked, stage, step)
                    if issue is not None:
                        inconsistencies.append(issue)

            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        return CheckoutResult(
            order=order,
            remaining_cents=budget_service.remaining(locked),
            inconsistencies=inconsistencies,
        )

    try:
        result = run_with_retry(
            _op, attempts=current_app.config.get("CHECKOUT_RETRY_ATTEMPTS", 3)
        )
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Checkout persistence failed for %s", employee_code)
        raise PersistenceError(
            "Could not record the order; nothing was charged. Please retry."
        ) from exc

    current_app.logger.info(
        "Checkout %s completed for %s: total=%s remaining=%s reconciliation_pending=%s",
        result.order.order_number, employee.employee_code, result.order.total_amount_cents,
        result.remaining_cents, result.reconciliation_pending,
    )

    # HistoryAppended -> NotificationAttempted -> Completed
    result.notified = _notify(result, notifier)
    return result


def _notify(result: CheckoutResult, notifier) -> bool:
    notifier = notifier or notification_service.send_purchase_confirmation
    order = result.order
    try:
        summary = notification_service.build_order_summary(order, result.remaining_cents)
        return bool(notifier(order.employee, summary))
    except Exception:
        current_app.logger.warning(
            "Purchase confirmation for %s failed; order unaffected", order.order_number,
            exc_info=True,
        )
        return False
