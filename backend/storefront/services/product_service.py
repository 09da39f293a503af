# Overview: Service-layer operations for products; catalog reads, creation and restock.

from __future__ import annotations

import logging

from sqlalchemy import update

from ..engine.errors import NotFound, ValidationError
from ..engine.money import require_amount, require_quantity
from ..extensions import db
from ..models import Product
from ..time_utils import utcnow
from ..validation import enforce_price_limit
from .concurrency import run_with_retry

logger = logging.getLogger(__name__)


def list_products(*, category: str | None = None, search: str | None = None) -> list[Product]:
    query = db.session.query(Product)
    if category:
        query = query.filter(Product.category == category)
    if search:
        query = query.filter(Product.name.ilike(f"%{search.strip()}%"))
    return query.order_by(Product.name.asc(), Product.id.asc()).all()


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFound(f"Product {product_id} not found", {"product_id": product_id})
    return product


def create_product(
    *,
    name: str,
    unit_price_cents,
    total_quantity=0,
    category: str | None = None,
) -> Product:
    """New products start with remaining_quantity == total_quantity."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("Product name is required", {"field": "name"})
    unit_price_cents = enforce_price_limit(require_amount(unit_price_cents, field="unit_price_cents"))
    total_quantity = require_quantity(total_quantity, field="total_quantity", allow_zero=True)

    def _op():
        product = Product(
            name=name,
            category=(category or "").strip() or None,
            unit_price_cents=unit_price_cents,
            total_quantity=total_quantity,
            remaining_quantity=total_quantity,
        )
        db.session.add(product)
        db.session.commit()
        return product

    return run_with_retry(_op)


def apply_restock(product_id: int, add_quantity: int) -> None:
    """
    Add units to both counters in one UPDATE. Does not commit.

    Shared by manual restock and supplier purchases.
    """
    result = db.session.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(
            total_quantity=Product.total_quantity + add_quantity,
            remaining_quantity=Product.remaining_quantity + add_quantity,
            version_id=Product.version_id + 1,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount == 0:
        raise NotFound(f"Product {product_id} not found", {"product_id": product_id})


def restock_product(product_id: int, add_quantity) -> Product:
    """Zero is accepted and changes nothing."""
    add_quantity = require_quantity(add_quantity, field="add_quantity", allow_zero=True)

    def _op():
        product = get_product(product_id)
        if add_quantity == 0:
            return product
        apply_restock(product_id, add_quantity)
        db.session.commit()
        db.session.refresh(product)
        logger.info("Restocked product %s by %s", product_id, add_quantity)
        return product

    return run_with_retry(_op)


def check_stock_invariant() -> list[dict]:
    """
    Products whose remaining_quantity disagrees with their transaction list.

    expected remaining = total_quantity - sum(quantity of SALE transactions)
    """
    from ..models import Transaction

    sold = dict(
        db.session.query(Transaction.product_id, db.func.coalesce(db.func.sum(Transaction.quantity), 0))
        .filter(Transaction.direction == "SALE")
        .group_by(Transaction.product_id)
        .all()
    )
    problems = []
    for product in db.session.query(Product).order_by(Product.id).all():
        expected = product.total_quantity - int(sold.get(product.id, 0))
        if expected != product.remaining_quantity or not 0 <= product.remaining_quantity <= product.total_quantity:
            problems.append({
                "product_id": product.id,
                "name": product.name,
                "total_quantity": product.total_quantity,
                "remaining_quantity": product.remaining_quantity,
                "expected_remaining_quantity": expected,
            })
    return problems
