# Overview: Flask API routes for sales, purchases and payment updates; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..engine.errors import LedgerError
from ..engine.records import Direction
from ..services import reporting_service, transaction_service
from ..time_utils import DEFAULT_SALES_WINDOW
from ..decorators import require_auth
from ..validation import json_body


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")
purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")
transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


def _create(direction: Direction):
    try:
        txn = transaction_service.create_transaction(
            direction, json_body(), created_by_user_id=g.current_user.id,
        )
        return jsonify({"transaction": txn.to_dict()}), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to record %s", direction.value.lower())
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("")
@require_auth
def create_sale_route():
    """
    Record one sale line.

    Body: product_id, quantity, classification (CASH|CREDIT),
    paid_amount_cents (CREDIT only), party_id (required for CREDIT).
    Stock is reserved atomically; 409 INSUFFICIENT_STOCK when it runs out.
    """
    return _create(Direction.SALE)


@sales_bp.get("")
@require_auth
def recent_sales_route():
    """
    Query params:
    - window: 1d | 1w | 1m | 6m | 1y | 5y (default 1m)
    - q: product or buyer name search
    """
    try:
        return jsonify(reporting_service.recent_sales(
            request.args.get("window", DEFAULT_SALES_WINDOW),
            search=request.args.get("q"),
        ))
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to load recent sales")
        return jsonify({"error": "Internal server error"}), 500


@purchases_bp.post("")
@require_auth
def create_purchase_route():
    """
    Record one supplier purchase line; the quantity is added to stock.

    Body: product_id, quantity, classification (CASH|CREDIT), party_id,
    paid_amount_cents (CREDIT only), total_amount_cents (optional agreed total).
    """
    return _create(Direction.PURCHASE)


@transactions_bp.get("/<int:txn_id>")
@require_auth
def get_transaction_route(txn_id: int):
    try:
        return jsonify({"transaction": transaction_service.get_transaction(txn_id).to_dict()})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status


@transactions_bp.patch("/<int:txn_id>")
@require_auth
def update_transaction_route(txn_id: int):
    """Body: {"add_payment_cents"?: int, "new_total_amount_cents"?: int}."""
    try:
        txn = transaction_service.update_transaction(txn_id, json_body())
        return jsonify({"transaction": txn.to_dict()}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to update transaction %s", txn_id)
        return jsonify({"error": "Internal server error"}), 500
