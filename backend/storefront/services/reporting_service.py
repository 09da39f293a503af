# Overview: Service-layer read models for recent-sales windows.

from __future__ import annotations

from ..engine.errors import ValidationError
from ..extensions import db
from ..models import Party, Product, Transaction
from ..time_utils import SALES_WINDOWS, to_utc_z, utcnow, window_start


def recent_sales(window: str, *, search: str | None = None, now=None) -> dict:
    """
    Sales recorded inside a window, newest first, with revenue/paid/pending totals.

    ``search`` matches product or buyer names (case-insensitive).
    """
    try:
        since = window_start(window, now)
    except ValueError as exc:
        raise ValidationError(str(exc), {"field": "window", "allowed": list(SALES_WINDOWS)})

    query = (
        db.session.query(Transaction)
        .join(Product, Product.id == Transaction.product_id)
        .outerjoin(Party, Party.id == Transaction.party_id)
        .filter(Transaction.direction == "SALE", Transaction.created_at >= since)
    )
    if search:
        needle = f"%{search.strip()}%"
        query = query.filter(db.or_(Product.name.ilike(needle), Party.name.ilike(needle)))

    sales = query.order_by(Transaction.created_at.desc(), Transaction.id.desc()).all()

    revenue = sum(t.total_amount_cents for t in sales)
    paid = sum(t.paid_amount_cents for t in sales)
    return {
        "window": window,
        "since": to_utc_z(since),
        "generated_at": to_utc_z(now or utcnow()),
        "sales": [t.to_dict() for t in sales],
        "count": len(sales),
        "revenue_cents": revenue,
        "paid_cents": paid,
        "pending_cents": revenue - paid,
    }
