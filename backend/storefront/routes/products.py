# Overview: Flask API routes for products operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..engine.errors import LedgerError
from ..services import product_service
from ..decorators import require_auth
from ..validation import json_body

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _serialize(product) -> dict:
    return product.to_dict(low_stock_threshold=current_app.config["LOW_STOCK_THRESHOLD"])


@products_bp.get("")
@require_auth
def list_products():
    """
    List products.

    Query params:
    - category: str (optional) - exact category match
    - q: str (optional) - case-insensitive name search
    """
    products = product_service.list_products(
        category=request.args.get("category"),
        search=request.args.get("q"),
    )
    return jsonify({"products": [_serialize(p) for p in products]})


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    try:
        return jsonify({"product": _serialize(product_service.get_product(product_id))})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status


@products_bp.post("")
@require_auth
def create_product_route():
    """Create a product; remaining stock starts equal to total_quantity."""
    try:
        data = json_body()
        product = product_service.create_product(
            name=data.get("name"),
            unit_price_cents=data.get("unit_price_cents"),
            total_quantity=data.get("total_quantity", 0),
            category=data.get("category"),
        )
        return jsonify({"product": _serialize(product)}), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/<int:product_id>/restock")
@require_auth
def restock_product_route(product_id: int):
    """Body: {"add_quantity": int >= 0}. Increases total and remaining together."""
    try:
        data = json_body()
        product = product_service.restock_product(product_id, data.get("add_quantity"))
        return jsonify({"product": _serialize(product)}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to restock product")
        return jsonify({"error": "Internal server error"}), 500
