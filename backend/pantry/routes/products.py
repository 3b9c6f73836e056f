# Overview: Flask API routes for the product catalog; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify

from ..decorators import handle_pantry_errors, require_identity
from ..models.employees import USER_TYPE_ADMIN
from ..services import catalog_service


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@handle_pantry_errors
def list_products_route():
    """
    Public menu. Query params: category, search
    """
    products = catalog_service.list_products(
        category=request.args.get("category"),
        search=request.args.get("search"),
    )
    return jsonify({"products": [p.to_dict() for p in products]}), 200


@products_bp.get("/categories")
def list_categories_route():
    return jsonify({"categories": catalog_service.list_categories()}), 200


@products_bp.post("")
@require_identity(USER_TYPE_ADMIN)
@handle_pantry_errors
def create_product_route():
    product = catalog_service.create_product(request.get_json(silent=True))
    return jsonify({"product": product.to_dict()}), 201


@products_bp.put("/<int:product_id>")
@require_identity(USER_TYPE_ADMIN)
@handle_pantry_errors
def update_product_route(product_id: int):
    product = catalog_service.update_product(product_id, request.get_json(silent=True))
    return jsonify({"product": product.to_dict()}), 200


@products_bp.get("/<int:product_id>")
@handle_pantry_errors
def get_product_route(product_id: int):
    return jsonify({"product": catalog_service.get_product(product_id).to_dict()}), 200


@products_bp.delete("/<int:product_id>")
@require_identity(USER_TYPE_ADMIN)
@handle_pantry_errors
def retire_product_route(product_id: int):
    product = catalog_service.retire_product(product_id)
    return jsonify({"message": "Product removed from the menu", "product": product.to_dict()}), 200
