# Overview: Per-product stock ledger (total acquired vs remaining sellable units).

"""
Stock Ledger

Invariants (authoritative):
- 0 <= remaining_quantity <= total_quantity for every product, at all times.
- reserve() only removes sellable units; it never touches total_quantity.
- restock() adds the same amount to both fields.
- A failed operation leaves the product exactly as it was.

On the client this ledger is an advisory view loaded from the storefront API:
its checks give the operator fast rejection, while the API's conditional
update is what actually prevents overselling.
"""

from __future__ import annotations

import logging
from typing import Iterable

from .errors import InsufficientStock, InvalidQuantity, NotFound
from .money import require_quantity
from .records import ProductRecord

logger = logging.getLogger(__name__)


class StockLedger:
    def __init__(self, products: Iterable[ProductRecord] = ()):
        self._products: dict[int, ProductRecord] = {}
        self.load(products)

    def load(self, products: Iterable[ProductRecord]) -> None:
        """Replace the view with fresh product snapshots."""
        self._products = {}
        for product in products:
            self.register(product)

    def register(self, product: ProductRecord) -> ProductRecord:
        require_quantity(product.total_quantity, field="total_quantity", allow_zero=True)
        require_quantity(product.remaining_quantity, field="remaining_quantity", allow_zero=True)
        if product.remaining_quantity > product.total_quantity:
            raise InvalidQuantity(
                "remaining_quantity cannot exceed total_quantity",
                {"product_id": product.id},
            )
        self._products[product.id] = product
        return product

    def get(self, product_id: int) -> ProductRecord:
        product = self._products.get(product_id)
        if product is None:
            raise NotFound(f"Product {product_id} not found", {"product_id": product_id})
        return product

    def __contains__(self, product_id: int) -> bool:
        return product_id in self._products

    def products(self) -> list[ProductRecord]:
        return list(self._products.values())

    def available(self, product_id: int) -> int:
        return self.get(product_id).remaining_quantity

    def can_fulfil(self, product_id: int, quantity: int) -> bool:
        return require_quantity(quantity) <= self.available(product_id)

    def reserve(self, product_id: int, quantity: int) -> ProductRecord:
        """
        Remove ``quantity`` sellable units for a CASH or CREDIT sale.

        Estimates never call this; they only read ``available()``.
        """
        quantity = require_quantity(quantity)
        product = self.get(product_id)
        if quantity > product.remaining_quantity:
            logger.info(
                "Reservation rejected for product %s: requested %s, remaining %s",
                product_id, quantity, product.remaining_quantity,
            )
            raise InsufficientStock(
                f"Only {product.remaining_quantity} of {product.name!r} left",
                {
                    "product_id": product_id,
                    "requested_quantity": quantity,
                    "remaining_quantity": product.remaining_quantity,
                },
            )
        product.remaining_quantity -= quantity
        return product

    def restock(self, product_id: int, add_quantity: int) -> ProductRecord:
        """Add units to both total and remaining. Zero is a no-op."""
        add_quantity = require_quantity(add_quantity, field="add_quantity", allow_zero=True)
        product = self.get(product_id)
        if add_quantity:
            product.total_quantity += add_quantity
            product.remaining_quantity += add_quantity
        return product

    def set_total_quantity(self, product_id: int, new_total: int) -> ProductRecord:
        """Initial stock for a newly created product; remaining starts equal to it."""
        new_total = require_quantity(new_total, field="total_quantity", allow_zero=True)
        product = self.get(product_id)
        product.total_quantity = new_total
        product.remaining_quantity = new_total
        return product
