from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

PARTY_BUYER = "BUYER"
PARTY_SUPPLIER = "SUPPLIER"


class Party(db.Model):
    """
    A buyer (credit customer) or a supplier.

    Both kinds share one table; buyers use ``address`` and suppliers use
    ``company_name``. A party only back-references its transactions and
    never holds a stored balance: outstanding amounts are recomputed from
    the transaction list on every read.
    """
    __tablename__ = "parties"
    __table_args__ = (
        db.CheckConstraint("kind IN ('BUYER', 'SUPPLIER')", name="ck_parties_kind"),
        db.Index("ix_parties_kind_name", "kind", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    kind = db.Column(db.String(16), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    address = db.Column(db.String(512), nullable=True)
    company_name = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    transactions = db.relationship(
        "Transaction",
        back_populates="party",
        lazy=True,
        order_by="Transaction.created_at.desc()",
    )

    def __repr__(self) -> str:
        return f"<Party id={self.id} kind={self.kind} name={self.name!r}>"

    def to_dict(self, include_transactions: bool = False) -> dict:
        data = {
            "id": self.id,
            "kind": self.kind,
            "name": self.name,
            "phone": self.phone,
            "address": self.address,
            "company_name": self.company_name,
            "created_at": to_utc_z(self.created_at),
        }
        if include_transactions:
            data["transactions"] = [t.to_dict() for t in self.transactions]
        return data
