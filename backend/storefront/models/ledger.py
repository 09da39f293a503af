from __future__ import annotations

from ..engine import payments
from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class Transaction(db.Model):
    """
    One persisted sale or purchase line.

    Immutable after creation except for total_amount_cents and
    paid_amount_cents, which only change through the payment ledger.
    Estimates are never stored.

    INVARIANT: 0 <= paid_amount_cents <= total_amount_cents (CHECK constraint).
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_transactions_quantity_positive"),
        db.CheckConstraint("unit_price_cents >= 0", name="ck_transactions_price_nonnegative"),
        db.CheckConstraint(
            "paid_amount_cents >= 0 AND paid_amount_cents <= total_amount_cents",
            name="ck_transactions_paid_bounds",
        ),
        db.CheckConstraint("classification IN ('CASH', 'CREDIT')", name="ck_transactions_classification"),
        db.CheckConstraint("direction IN ('SALE', 'PURCHASE')", name="ck_transactions_direction"),
        db.Index("ix_transactions_direction_created", "direction", "created_at"),
        db.Index("ix_transactions_party_created", "party_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    party_id = db.Column(db.Integer, db.ForeignKey("parties.id"), nullable=True, index=True)

    direction = db.Column(db.String(16), nullable=False)
    classification = db.Column(db.String(16), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_amount_cents = db.Column(db.Integer, nullable=False)
    paid_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now(), index=True)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
        onupdate=utcnow,
    )

    product = db.relationship("Product", backref=db.backref("transactions", lazy=True))
    party = db.relationship("Party", back_populates="transactions")
    created_by = db.relationship("User", foreign_keys=[created_by_user_id])
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def outstanding_cents(self) -> int:
        return payments.outstanding(self)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "party_id": self.party_id,
            "party_name": self.party.name if self.party else None,
            "direction": self.direction,
            "classification": self.classification,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_amount_cents": self.total_amount_cents,
            "paid_amount_cents": self.paid_amount_cents,
            "outstanding_cents": self.outstanding_cents,
            "payment_status": payments.payment_status(self),
            "created_by_user_id": self.created_by_user_id,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
