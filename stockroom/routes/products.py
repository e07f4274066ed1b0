# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# stockroom/routes/products.py
"""
Product management routes.

<ref> is the product's manual id, or its internal id as a fallback.

- Read operations require VIEW_PRODUCTS
- Write operations require MANAGE_PRODUCTS
- Single-product stock deduction requires DEDUCT_STOCK
"""
from flask import Blueprint, request, jsonify, current_app

from ..errors import ServiceError, ValidationError, error_response
from ..models import Product
from ..money import parse_amount
from ..services import products_service, inventory_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
)
from ..decorators import require_auth, require_permission, json_body

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"manual_id", "name", "description", "price_cents", "quantity"},
    required_on_create={"manual_id", "name", "price_cents"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _price_alias(payload: dict) -> dict:
    """Accept "price" as a decimal amount ("4.99") in place of price_cents."""
    if "price" not in payload:
        return payload
    if "price_cents" in payload:
        raise ValidationError("Send either price or price_cents, not both")
    payload = dict(payload)
    payload["price_cents"] = parse_amount(payload.pop("price"), "price")
    return payload


@products_bp.get("")
@require_auth
@require_permission("VIEW_PRODUCTS")
def list_products():
    """
    List products.

    Query params:
    - q: str (optional) - filter by name or manual id substring
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    result = products_service.list_products(
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
        search=request.args.get("q"),
    )
    return jsonify(result), 200


@products_bp.get("/<ref>")
@require_auth
@require_permission("VIEW_PRODUCTS")
def get_product_route(ref: str):
    try:
        product = products_service.get_product(ref)
        return jsonify({"product": product.to_dict()}), 200
    except ServiceError as e:
        return error_response(e)


@products_bp.post("")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def create_product_route():
    try:
        payload = _price_alias(json_body())
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        product = products_service.create_product(patch=patch)
        return jsonify({"product": product.to_dict()}), 201
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.put("/<ref>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def update_product_route(ref: str):
    try:
        payload = _price_alias(json_body())
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
        product = products_service.update_product(ref=ref, patch=patch)
        return jsonify({"product": product.to_dict()}), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<ref>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def delete_product_route(ref: str):
    try:
        product = products_service.delete_product(ref=ref)
        return jsonify({"message": f"Product {product.manual_id} deleted"}), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/<ref>/deduct")
@require_auth
@require_permission("DEDUCT_STOCK")
def deduct_stock_route(ref: str):
    """
    Deduct stock from one product.

    Body: {"quantity": <positive int>}
    400 when the quantity is invalid or exceeds stock, 404 for unknown products.
    """
    try:
        data = json_body()
        product = inventory_service.deduct_stock(ref, data.get("quantity"))
        return jsonify({"message": "Stock deducted", "product": product.to_dict()}), 200
    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to deduct stock")
        return jsonify({"error": "Internal server error"}), 500
