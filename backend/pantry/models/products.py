from __future__ import annotations

from ..extensions import db
from pantry.money import format_cents
from pantry.time_utils import to_utc_z


PRODUCT_CATEGORIES = ("Snacks", "Beverages", "Meals", "Fruits", "Dairy", "Bakery")


class Product(db.Model):
    """Pantry catalog item. price_cents is the authoritative checkout price."""
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_category_available", "category", "is_available"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(32), nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)
    unit = db.Column(db.String(32), nullable=False, default="piece")
    description = db.Column(db.Text, nullable=True)
    is_available = db.Column(db.Boolean, nullable=False, default=True)
    stock_quantity = db.Column(db.Integer, nullable=False, default=0)

    vendor_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    vendor = db.relationship("Employee")
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "price": format_cents(self.price_cents),
            "price_cents": self.price_cents,
            "unit": self.unit,
            "description": self.description,
            "is_available": self.is_available,
            "stock_quantity": self.stock_quantity,
            "vendor_id": self.vendor_id,
            "created_at": to_utc_z(self.created_at),
        }
