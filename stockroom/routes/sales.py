# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# stockroom/routes/sales.py
"""Sales API routes with permission enforcement"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import ServiceError, error_response
from ..services import sales_service
from ..decorators import require_auth, require_permission, json_body


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_auth
@require_permission("CREATE_SALE")
def create_sale_route():
    """
    Sell several products at once.

    Body: {"items": [{"id": "<manual id>", "quantity": 2}, ...]}

    All-or-nothing: 400 for an empty list or insufficient stock, 404 for an
    unknown product; nothing is deducted in either case.
    """
    try:
        data = json_body()
        result = sales_service.create_sale(data.get("items"), user_id=g.current_user.id)
        return jsonify(result.to_dict()), 201

    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_auth
@require_permission("VIEW_SALES")
def list_sales_route():
    """Most recent sales with their lines. ?limit= (default 50, max 500)."""
    limit = request.args.get("limit", default=50, type=int)
    sales = sales_service.list_sales(limit=limit)
    return jsonify({
        "items": [sale.to_dict() for sale in sales],
        "count": len(sales),
    }), 200
