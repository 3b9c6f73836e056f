# Overview: Purchase confirmation notifications; best-effort SMTP delivery.

from __future__ import annotations

import smtplib
from email.message import EmailMessage

from flask import current_app

from ..errors import NotificationError
from ..models import Employee, Order
from ..money import display_cents
from . import history_service
from pantry.time_utils import to_utc_z


def build_order_summary(order: Order, remaining_cents: int) -> dict:
    return {
        "order_number": order.order_number,
        "employee_name": order.employee.full_name,
        "vendor_name": history_service.vendor_display_name(order),
        "purchase_date": to_utc_z(order.completed_at or order.created_at),
        "total_items": order.total_items,
        "total_amount_cents": order.total_amount_cents,
        "remaining_cents": remaining_cents,
        "items": [
            {
                "name": line.name,
                "quantity": line.quantity,
                "unit_price_cents": line.unit_price_cents,
                "line_total_cents": line.line_total_cents,
            }
            for line in order.lines
        ],
    }


def render_purchase_confirmation(summary: dict) -> tuple[str, str]:
    symbol = current_app.config.get("CURRENCY_SYMBOL", "₹")
    subject = f"Purchase Confirmation - Order #{summary['order_number']}"

    lines = [
        f"Hi {summary['employee_name']},",
        "",
        "Your pantry purchase is confirmed.",
        "",
        f"Order:   {summary['order_number']}",
        f"Date:    {summary['purchase_date']}",
        f"Vendor:  {summary['vendor_name']}",
        "",
    ]
    for item in summary["items"]:
        lines.append(
            f"  {item['quantity']} x {item['name']} @ {display_cents(item['unit_price_cents'], symbol)}"
            f" = {display_cents(item['line_total_cents'], symbol)}"
        )
    lines += [
        "",
        f"Items: {summary['total_items']}",
        f"Total: {display_cents(summary['total_amount_cents'], symbol)}",
        f"Remaining budget: {display_cents(summary['remaining_cents'], symbol)}",
        "",
        "This is an automated message. Please do not reply.",
    ]
    return subject, "\n".join(lines)


def send_purchase_confirmation(employee: Employee, summary: dict) -> bool:
    """
    Email a purchase confirmation to the employee.

    Returns False when mail is not configured (log-only delivery).
    Raises NotificationError on delivery failure. The SMTP attempt is
    bounded by MAIL_TIMEOUT_SECONDS.
    """
    config = current_app.config
    subject, body = render_purchase_confirmation(summary)

    if not config.get("MAIL_SERVER"):
        current_app.logger.info(
            "Mail not configured; purchase confirmation for %s not sent (%s)",
            summary["order_number"], employee.email,
        )
        return False

    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = config.get("MAIL_SENDER")
    message["To"] = employee.email
    message.set_content(body)

    try:
        with smtplib.SMTP(
            config["MAIL_SERVER"],
            config.get("MAIL_PORT", 587),
            timeout=config.get("MAIL_TIMEOUT_SECONDS", 5),
        ) as smtp:
            if config.get("MAIL_USE_TLS"):
                smtp.starttls()
            if config.get("MAIL_USERNAME"):
                smtp.login(config["MAIL_USERNAME"], config.get("MAIL_PASSWORD") or "")
            smtp.send_message(message)
    except (smtplib.SMTPException, OSError) as exc:
        raise NotificationError(
            "Failed to send purchase confirmation",
            details={"order_number": summary["order_number"], "reason": str(exc)},
        ) from exc

    current_app.logger.info("Purchase confirmation sent for %s", summary["order_number"])
    return True
