# Overview: Service-layer operations for the product catalog; authoritative prices for checkout.

from __future__ import annotations

from flask import current_app
from sqlalchemy import or_

from ..extensions import db
from ..errors import NotFoundError, ValidationError
from ..models import Product
from ..models.products import PRODUCT_CATEGORIES
from ..money import to_cents
from ..validation import (
    MAX_ROW_ID,
    ModelValidationPolicy,
    enforce_rules_product,
    parse_cart_items,
    validate_payload,
)
from .order_builder import CartLine


PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "category", "price_cents", "unit", "description",
        "is_available", "stock_quantity", "vendor_id",
    },
    required_on_create={"name", "category", "price_cents"},
)


def resolve_cart(raw_items) -> list[CartLine]:
    """
    Price a request cart against the catalog.

    Every line must reference an existing, available product. The catalog
    price wins over any client-supplied price.
    """
    requested = parse_cart_items(raw_items)

    product_ids = {item.product_id for item in requested}
    products = {
        p.id: p
        for p in db.session.query(Product).filter(Product.id.in_(product_ids)).all()
    }

    lines: list[CartLine] = []
    for item in requested:
        product = products.get(item.product_id)
        if product is None:
            raise ValidationError(
                f"items[{item.index}]: product {item.product_id} not found",
                details={"item": item.index, "product_id": item.product_id},
            )
        if not product.is_available:
            raise ValidationError(
                f"items[{item.index}]: {product.name} is not available",
                details={"item": item.index, "product_id": item.product_id},
            )

        if item.client_price_cents is not None and item.client_price_cents != product.price_cents:
            current_app.logger.warning(
                "Client price for product %s differs from catalog (client=%s, catalog=%s)",
                product.id, item.client_price_cents, product.price_cents,
            )

        lines.append(CartLine(
            product_id=product.id,
            name=product.name,
            category=product.category,
            unit=product.unit or "piece",
            unit_price_cents=product.price_cents,
            quantity=item.quantity,
        ))

    return lines


def list_products(
    *,
    category: str | None = None,
    search: str | None = None,
    include_unavailable: bool = False,
) -> list[Product]:
    query = db.session.query(Product)
    if not include_unavailable:
        query = query.filter(Product.is_available.is_(True))
    if category and category != "All":
        query = query.filter(Product.category == category)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(Product.name.ilike(pattern), Product.description.ilike(pattern)))
    return query.order_by(Product.category, Product.name).all()


def list_categories() -> list[str]:
    return list(PRODUCT_CATEGORIES)


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id) if 0 < product_id <= MAX_ROW_ID else None
    if not product:
        raise NotFoundError("Product not found")
    return product


def _normalize_price(payload: dict) -> dict:
    payload = dict(payload or {})
    if "price" in payload:
        payload["price_cents"] = to_cents(payload.pop("price"), "price")
    return payload


def create_product(payload: dict) -> Product:
    patch = validate_payload(
        model=Product,
        payload=_normalize_price(payload),
        policy=PRODUCT_POLICY,
        partial=False,
    )
    enforce_rules_product(patch)

    product = Product(**patch)
    db.session.add(product)
    db.session.commit()
    return product


def update_product(product_id: int, payload: dict) -> Product:
    product = get_product(product_id)
    patch = validate_payload(
        model=Product,
        payload=_normalize_price(payload),
        policy=PRODUCT_POLICY,
        partial=True,
    )
    enforce_rules_product(patch)

    for key, value in patch.items():
        setattr(product, key, value)
    db.session.commit()
    return product


def retire_product(product_id: int) -> Product:
    """
    Take a product off the menu.

    Rows are kept because order lines reference them; a retired product
    is unavailable and cannot be checked out.
    """
    product = get_product(product_id)
    product.is_available = False
    db.session.commit()
    current_app.logger.info("Product %s (%s) retired", product.id, product.name)
    return product
