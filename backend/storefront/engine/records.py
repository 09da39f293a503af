# Overview: Value types shared by the engine: classifications, products, parties, transactions.

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from enum import Enum

from .errors import InvalidClassification
from .money import line_total, require_amount


class Classification(str, Enum):
    """
    Bill classification, threaded through composer, stock ledger, tax and storage.

    CASH is fully paid at the counter and taxed; CREDIT ("udhaar") is owed by a
    named party; ESTIMATE ("dummy") is a quote that never touches stock.
    """

    CASH = "CASH"
    CREDIT = "CREDIT"
    ESTIMATE = "ESTIMATE"

    @classmethod
    def from_tag(cls, tag) -> "Classification":
        if isinstance(tag, cls):
            return tag
        key = str(tag or "").strip().lower()
        try:
            return _CLASSIFICATION_TAGS[key]
        except KeyError:
            raise InvalidClassification(f"Unknown bill type: {tag!r}", {"tag": tag})

    @property
    def reserves_stock(self) -> bool:
        return self is not Classification.ESTIMATE

    @property
    def is_persisted(self) -> bool:
        return self is not Classification.ESTIMATE


_CLASSIFICATION_TAGS = {
    # Billing screen labels
    "original": Classification.CASH,
    "udhaar": Classification.CREDIT,
    "dummy": Classification.ESTIMATE,
    # Storage tags
    "real": Classification.CASH,
    "cash": Classification.CASH,
    "credit": Classification.CREDIT,
    "estimate": Classification.ESTIMATE,
}


class Direction(str, Enum):
    SALE = "SALE"
    PURCHASE = "PURCHASE"

    @classmethod
    def from_tag(cls, tag) -> "Direction":
        if isinstance(tag, cls):
            return tag
        try:
            return cls(str(tag or "").strip().upper())
        except ValueError:
            raise InvalidClassification(f"Unknown transaction direction: {tag!r}", {"tag": tag})


class PartyKind(str, Enum):
    BUYER = "BUYER"
    SUPPLIER = "SUPPLIER"

    @classmethod
    def from_tag(cls, tag) -> "PartyKind":
        if isinstance(tag, cls):
            return tag
        try:
            return cls(str(tag or "").strip().upper())
        except ValueError:
            raise InvalidClassification(f"Unknown party kind: {tag!r}", {"tag": tag})


PAYMENT_STATUS_UNPAID = "UNPAID"
PAYMENT_STATUS_PARTIAL = "PARTIAL"
PAYMENT_STATUS_PAID = "PAID"


def derive_total(unit_price_cents: int, quantity: int) -> int:
    """Line total from price and quantity (the default for every line)."""
    return line_total(unit_price_cents, quantity)


def override_total(total_amount_cents: int) -> int:
    """Explicit agreed total, used only on supplier purchases."""
    return require_amount(total_amount_cents, field="total_amount_cents")


@dataclass
class ProductRecord:
    id: int
    name: str
    unit_price_cents: int
    total_quantity: int
    remaining_quantity: int
    category: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "ProductRecord":
        return cls(
            id=data["id"],
            name=data["name"],
            unit_price_cents=data["unit_price_cents"],
            total_quantity=data["total_quantity"],
            remaining_quantity=data["remaining_quantity"],
            category=data.get("category"),
        )


@dataclass
class TransactionRecord:
    """
    One sale or purchase event.

    After creation only the Payment Ledger changes ``paid_amount_cents`` and
    ``total_amount_cents``; everything else is fixed.
    """

    id: int | None
    product_id: int
    quantity: int
    unit_price_cents: int
    total_amount_cents: int
    paid_amount_cents: int
    classification: Classification
    direction: Direction = Direction.SALE
    party_id: int | None = None
    created_at: str | None = None
    product_name: str | None = None

    @property
    def outstanding_cents(self) -> int:
        return self.total_amount_cents - self.paid_amount_cents

    @classmethod
    def from_dict(cls, data: dict) -> "TransactionRecord":
        return cls(
            id=data.get("id"),
            product_id=data["product_id"],
            quantity=data["quantity"],
            unit_price_cents=data["unit_price_cents"],
            total_amount_cents=data["total_amount_cents"],
            paid_amount_cents=data["paid_amount_cents"],
            classification=Classification.from_tag(data["classification"]),
            direction=Direction.from_tag(data.get("direction", "SALE")),
            party_id=data.get("party_id"),
            created_at=data.get("created_at"),
            product_name=data.get("product_name"),
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["classification"] = self.classification.value
        data["direction"] = self.direction.value
        data["outstanding_cents"] = self.outstanding_cents
        return data


@dataclass
class PartyRecord:
    id: int
    kind: PartyKind
    name: str
    phone: str | None = None
    address: str | None = None
    company_name: str | None = None
    transactions: list[TransactionRecord] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "PartyRecord":
        return cls(
            id=data["id"],
            kind=PartyKind.from_tag(data["kind"]),
            name=data["name"],
            phone=data.get("phone"),
            address=data.get("address"),
            company_name=data.get("company_name"),
            transactions=[TransactionRecord.from_dict(t) for t in data.get("transactions", [])],
        )
