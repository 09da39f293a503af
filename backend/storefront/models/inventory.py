from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

STOCK_IN = "In Stock"
STOCK_LOW = "Low Stock"
STOCK_OUT = "Out of Stock"


def stock_status(remaining_quantity: int, low_stock_threshold: int) -> str:
    if remaining_quantity <= 0:
        return STOCK_OUT
    if remaining_quantity <= low_stock_threshold:
        return STOCK_LOW
    return STOCK_IN


class Product(db.Model):
    """
    Product master data plus its stock counters.

    total_quantity counts every unit ever acquired (initial stock, restocks,
    supplier purchases). remaining_quantity is what can still be sold.

    INVARIANT: 0 <= remaining_quantity <= total_quantity (CHECK constraints).
    remaining_quantity is only ever decremented by a conditional UPDATE in
    transaction_service, never by read-modify-write.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("unit_price_cents >= 0", name="ck_products_price_nonnegative"),
        db.CheckConstraint("total_quantity >= 0", name="ck_products_total_nonnegative"),
        db.CheckConstraint(
            "remaining_quantity >= 0 AND remaining_quantity <= total_quantity",
            name="ck_products_remaining_bounds",
        ),
        db.Index("ix_products_category_name", "category", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False, index=True)
    category = db.Column(db.String(64), nullable=True)

    # Authoritative storage in cents (clients only format for display)
    unit_price_cents = db.Column(db.Integer, nullable=False, default=0)

    total_quantity = db.Column(db.Integer, nullable=False, default=0)
    remaining_quantity = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
        onupdate=utcnow,
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} remaining={self.remaining_quantity}/{self.total_quantity}>"

    def to_dict(self, low_stock_threshold: int = 50) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "unit_price_cents": self.unit_price_cents,
            "total_quantity": self.total_quantity,
            "remaining_quantity": self.remaining_quantity,
            "stock_status": stock_status(self.remaining_quantity, low_stock_threshold),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
