# Overview: Service-layer operations for sales and purchases; the authoritative stock guard.

"""
Transaction Service

Invariants (authoritative):
- A SALE of classification CASH or CREDIT removes stock with a single
  conditional UPDATE (remaining_quantity >= :qty). Zero affected rows means
  InsufficientStock; there is no read-then-write window for an oversell.
- A PURCHASE adds the purchased quantity to both stock counters.
- Stock movement and the transaction row commit together or not at all.
- ESTIMATE is never persisted.
- paid/total only change through engine.payments (0 <= paid <= total).
"""

from __future__ import annotations

import logging

from sqlalchemy import update

from ..engine import payments
from ..engine.errors import (
    InsufficientStock,
    InvalidClassification,
    MissingParty,
    NotFound,
    ValidationError,
)
from ..engine.records import Classification, Direction, PartyKind, derive_total, override_total
from ..engine.money import require_quantity
from ..extensions import db
from ..models import Party, Product, Transaction
from ..time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
from .product_service import apply_restock, get_product

logger = logging.getLogger(__name__)

CREATE_FIELDS = {"product_id", "quantity", "classification", "paid_amount_cents", "party_id", "total_amount_cents"}
UPDATE_FIELDS = {"add_payment_cents", "new_total_amount_cents"}


def _require_id(value, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{field} must be a positive integer id", {"field": field})
    return value


def _resolve_party(direction: Direction, classification: Classification, party_id) -> Party | None:
    needs_party = classification is Classification.CREDIT or direction is Direction.PURCHASE
    if direction is Direction.SALE and classification is Classification.CASH:
        return None
    if party_id in (None, ""):
        if needs_party:
            raise MissingParty(
                "A buyer is required for credit sales" if direction is Direction.SALE
                else "A supplier is required for purchases"
            )
        return None

    party_id = _require_id(party_id, "party_id")
    expected = PartyKind.BUYER if direction is Direction.SALE else PartyKind.SUPPLIER
    party = db.session.get(Party, party_id)
    if not party or party.kind != expected.value:
        raise NotFound(f"{expected.value.title()} {party_id} not found", {"party_id": party_id})
    return party


def reserve_stock(product_id: int, quantity: int) -> None:
    """
    Atomic check-and-decrement. Does not commit.

    Raises InsufficientStock when fewer than ``quantity`` units remain.
    """
    result = db.session.execute(
        update(Product)
        .where(Product.id == product_id, Product.remaining_quantity >= quantity)
        .values(
            remaining_quantity=Product.remaining_quantity - quantity,
            version_id=Product.version_id + 1,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount == 1:
        return

    product = get_product(product_id)
    db.session.refresh(product)
    logger.info(
        "Rejected sale of %s x product %s: %s remaining",
        quantity, product_id, product.remaining_quantity,
    )
    raise InsufficientStock(
        f"Only {product.remaining_quantity} of {product.name!r} left",
        {
            "product_id": product_id,
            "requested_quantity": quantity,
            "remaining_quantity": product.remaining_quantity,
        },
    )


def create_transaction(direction, payload: dict, *, created_by_user_id: int | None = None) -> Transaction:
    """
    Record one sale or purchase line and move stock with it.

    All validation happens before any write.
    """
    direction = Direction.from_tag(direction)
    unknown = sorted(set(payload) - CREATE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown field(s): {', '.join(unknown)}", {"fields": unknown})

    classification = Classification.from_tag(payload.get("classification"))
    if not classification.is_persisted:
        raise InvalidClassification("Estimates are never recorded as transactions")

    product_id = _require_id(payload.get("product_id"), "product_id")
    quantity = require_quantity(payload.get("quantity"))

    if payload.get("total_amount_cents") is not None and direction is not Direction.PURCHASE:
        raise ValidationError("total_amount_cents can only be set on purchases", {"field": "total_amount_cents"})

    def _op():
        product = get_product(product_id)
        party = _resolve_party(direction, classification, payload.get("party_id"))

        if payload.get("total_amount_cents") is not None:
            total = override_total(payload["total_amount_cents"])
        else:
            total = derive_total(product.unit_price_cents, quantity)
        paid = payments.initial_paid(classification, total, payload.get("paid_amount_cents") or 0)

        if direction is Direction.SALE:
            reserve_stock(product.id, quantity)
        else:
            apply_restock(product.id, quantity)

        txn = Transaction(
            product_id=product.id,
            party_id=party.id if party else None,
            direction=direction.value,
            classification=classification.value,
            quantity=quantity,
            unit_price_cents=product.unit_price_cents,
            total_amount_cents=total,
            paid_amount_cents=paid,
            created_by_user_id=created_by_user_id,
        )
        db.session.add(txn)
        db.session.commit()
        return txn

    txn = run_with_retry(_op)
    logger.info(
        "Recorded %s %s txn %s: product %s x %s, total %s, paid %s",
        txn.classification, txn.direction, txn.id, txn.product_id, txn.quantity,
        txn.total_amount_cents, txn.paid_amount_cents,
    )
    return txn


def get_transaction(txn_id: int) -> Transaction:
    txn = db.session.get(Transaction, txn_id)
    if not txn:
        raise NotFound(f"Transaction {txn_id} not found", {"transaction_id": txn_id})
    return txn


def update_transaction(txn_id: int, payload: dict) -> Transaction:
    """
    Revise the total and/or add a payment.

    Body: {"add_payment_cents"?: int, "new_total_amount_cents"?: int}.
    The revision is applied before the payment; the update is all-or-nothing.
    """
    unknown = sorted(set(payload) - UPDATE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown field(s): {', '.join(unknown)}", {"fields": unknown})
    add_payment = payload.get("add_payment_cents")
    new_total = payload.get("new_total_amount_cents")
    if add_payment is None and new_total is None:
        raise ValidationError("Provide add_payment_cents and/or new_total_amount_cents")

    def _op():
        txn = lock_for_update(db.session.query(Transaction).filter_by(id=txn_id)).first()
        if not txn:
            raise NotFound(f"Transaction {txn_id} not found", {"transaction_id": txn_id})
        payments.update(txn, add_payment_cents=add_payment, new_total_amount_cents=new_total)
        db.session.commit()
        return txn

    txn = run_with_retry(_op)
    logger.info(
        "Updated txn %s: total %s, paid %s", txn.id, txn.total_amount_cents, txn.paid_amount_cents,
    )
    return txn
