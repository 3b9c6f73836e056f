from __future__ import annotations
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .money import to_cents
from .models.feedback import FEEDBACK_CATEGORIES
from .models.products import PRODUCT_CATEGORIES


# Maximum price: 99,999.99 (9,999,999 minor units)
MAX_PRICE_CENTS = 9_999_999

# Largest quantity accepted on a single cart line
MAX_LINE_QUANTITY = 999

# Largest value a signed 64-bit INTEGER primary key can hold
MAX_ROW_ID = 2**63 - 1

# Feedback message bounds (characters)
FEEDBACK_MESSAGE_MIN = 10
FEEDBACK_MESSAGE_MAX = 2000


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


@dataclass(frozen=True)
class RequestedItem:
    """A cart line as the client sent it, before catalog pricing."""
    index: int
    product_id: int
    quantity: int
    client_price_cents: int | None = None


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def parse_strict_int(value: Any, field: str) -> int:
    """Integers only: rejects bools, floats, decimals and scientific notation."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        number = parse_strict_int(value, col.key)
        if abs(number) > MAX_ROW_ID:
            raise ValidationError(f"{col.key} is out of range")
        return number

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be true or false")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """Product rules that SQLAlchemy metadata does not capture."""
    if "price_cents" in patch and patch["price_cents"] is not None:
        price = patch["price_cents"]
        if price < 0:
            raise ValidationError("price must be >= 0")
        if price > MAX_PRICE_CENTS:
            raise ValidationError(f"price cannot exceed {MAX_PRICE_CENTS / 100:,.2f}")

    if "category" in patch and patch["category"] not in PRODUCT_CATEGORIES:
        raise ValidationError(
            f"category must be one of: {', '.join(PRODUCT_CATEGORIES)}",
            details={"field": "category"},
        )

    if "stock_quantity" in patch and patch["stock_quantity"] is not None:
        if patch["stock_quantity"] < 0:
            raise ValidationError("stock_quantity must be >= 0")


def enforce_rules_feedback(patch: dict) -> None:
    """Feedback rules: message length, 1-5 rating, known category."""
    message = patch.get("message")
    if message is not None and not FEEDBACK_MESSAGE_MIN <= len(message) <= FEEDBACK_MESSAGE_MAX:
        raise ValidationError(
            f"message must be {FEEDBACK_MESSAGE_MIN}-{FEEDBACK_MESSAGE_MAX} characters",
            details={"field": "message"},
        )

    if patch.get("rating") is not None and not 1 <= patch["rating"] <= 5:
        raise ValidationError("rating must be between 1 and 5", details={"field": "rating"})

    if "category" in patch and patch["category"] not in FEEDBACK_CATEGORIES:
        raise ValidationError(
            f"category must be one of: {', '.join(FEEDBACK_CATEGORIES)}",
            details={"field": "category"},
        )


def parse_cart_items(raw_items: Any) -> list[RequestedItem]:
    """
    Parse the request's items array.

    Each item needs a product identity ("product_id", or "id" for older
    clients) and a positive integer quantity. "price" is advisory and
    only kept for comparison with the catalog.
    """
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("items must be a non-empty list", details={"field": "items"})

    parsed: list[RequestedItem] = []
    for index, raw in enumerate(raw_items):
        label = f"items[{index}]"
        if not isinstance(raw, dict):
            raise ValidationError(f"{label} must be an object", details={"item": index})

        product_ref = raw.get("product_id", raw.get("id"))
        if product_ref is None:
            raise ValidationError(f"{label}: product_id is required", details={"item": index, "fields": ["product_id"]})
        try:
            product_id = parse_strict_int(product_ref, f"{label}.product_id")
        except ValidationError as exc:
            raise ValidationError(exc.message, details={"item": index, "fields": ["product_id"]})
        if product_id < 1 or product_id > MAX_ROW_ID:
            raise ValidationError(
                f"{label}: product_id does not reference a product",
                details={"item": index, "fields": ["product_id"]},
            )

        if "quantity" not in raw:
            raise ValidationError(f"{label}: quantity is required", details={"item": index, "fields": ["quantity"]})
        try:
            quantity = parse_strict_int(raw["quantity"], f"{label}.quantity")
        except ValidationError as exc:
            raise ValidationError(exc.message, details={"item": index, "fields": ["quantity"]})
        if quantity <= 0 or quantity > MAX_LINE_QUANTITY:
            raise ValidationError(
                f"{label}: quantity must be between 1 and {MAX_LINE_QUANTITY}",
                details={"item": index, "fields": ["quantity"]},
            )

        client_price_cents = None
        if raw.get("price") is not None:
            client_price_cents = to_cents(raw["price"], f"{label}.price")

        parsed.append(RequestedItem(
            index=index,
            product_id=product_id,
            quantity=quantity,
            client_price_cents=client_price_cents,
        ))

    return parsed
