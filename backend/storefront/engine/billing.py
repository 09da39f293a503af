# Overview: Bill composer: cart building, totals, rendering and per-line submission.

"""
Bill Composer

A bill is a cart of unique products plus one Classification.

State machine:
    DRAFT --(first line committed)--> COMMITTED     CASH / CREDIT
    DRAFT --(render)----------------> RENDERED      ESTIMATE

There are no transitions out of COMMITTED or RENDERED. Corrections to a
committed bill are payment-ledger operations on its transactions.

Submission is per line and sequential: line i is checked, reserved and
recorded before line i+1 starts, so line i+1 sees line i's reservation.
A failure stops the run; lines already committed stay committed and are
reported in the SubmitResult. Submitting again only sends lines that are
not committed yet.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from . import payments
from .errors import (
    BillStateError,
    InsufficientStock,
    InvalidClassification,
    LedgerError,
    MissingParty,
    NegativeBalance,
    PersistenceFailure,
    ValidationError,
)
from .money import apply_rate, require_amount, require_quantity
from .records import Classification, Direction, TransactionRecord, derive_total, override_total
from .stock import StockLedger

logger = logging.getLogger(__name__)

DEFAULT_TAX_RATE_BPS = 1800


class BillState(str, Enum):
    DRAFT = "DRAFT"
    COMMITTED = "COMMITTED"
    RENDERED = "RENDERED"


class LineStatus(str, Enum):
    PENDING = "PENDING"
    COMMITTED = "COMMITTED"
    FAILED = "FAILED"


_TITLES = {
    Classification.CASH: "TAX INVOICE",
    Classification.CREDIT: "CREDIT INVOICE",
    Classification.ESTIMATE: "ESTIMATE / DUMMY BILL",
}


@dataclass
class CartLine:
    product_id: int
    name: str
    unit_price_cents: int
    quantity: int
    total_override_cents: int | None = None
    status: LineStatus = LineStatus.PENDING
    paid_amount_cents: int = 0
    transaction: TransactionRecord | None = None
    error: LedgerError | None = None

    @property
    def total_amount_cents(self) -> int:
        if self.total_override_cents is not None:
            return self.total_override_cents
        return derive_total(self.unit_price_cents, self.quantity)


@dataclass
class SubmitResult:
    committed: list[CartLine] = field(default_factory=list)
    failed: CartLine | None = None
    unattempted: list[CartLine] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failed is None and not self.unattempted

    @property
    def partial(self) -> bool:
        return bool(self.committed) and not self.ok

    @property
    def transactions(self) -> list[TransactionRecord]:
        return [line.transaction for line in self.committed]


class BillComposer:
    def __init__(
        self,
        stock: StockLedger,
        classification="original",
        *,
        direction=Direction.SALE,
        party_id: int | None = None,
        party_name: str | None = None,
        tax_rate_bps: int = DEFAULT_TAX_RATE_BPS,
    ):
        self.stock = stock
        self.classification = Classification.from_tag(classification)
        self.direction = Direction.from_tag(direction)
        if self.direction is Direction.PURCHASE and self.classification is Classification.ESTIMATE:
            raise InvalidClassification("Supplier purchases are recorded as cash or credit, not estimates")
        self.party_id = party_id
        self.party_name = party_name
        self.tax_rate_bps = require_amount(tax_rate_bps, field="tax_rate_bps")
        self.state = BillState.DRAFT
        self.paid_amount_cents = 0
        self.invoice_number = f"INV-{100000 + secrets.randbelow(900000)}"
        self._lines: list[CartLine] = []

    # -- cart ---------------------------------------------------------------

    @property
    def lines(self) -> tuple[CartLine, ...]:
        return tuple(self._lines)

    def _line_for(self, product_id: int) -> CartLine | None:
        return next((line for line in self._lines if line.product_id == product_id), None)

    def _require_draft(self) -> None:
        if self.state is not BillState.DRAFT:
            raise BillStateError(f"Cart can only change while the bill is DRAFT (now {self.state.value})")

    @property
    def checks_stock(self) -> bool:
        return self.direction is Direction.SALE and self.classification.reserves_stock

    def set_party(self, party_id: int | None, party_name: str | None = None) -> None:
        self._require_draft()
        self.party_id = party_id
        self.party_name = party_name

    def add_line(self, product_id: int, quantity: int, *, total_override_cents: int | None = None) -> CartLine:
        """
        Add a product to the cart, merging with an existing line for it.

        Cash and credit sales are checked against remaining stock for the
        cumulative quantity; a rejected add leaves the cart unchanged.
        """
        self._require_draft()
        quantity = require_quantity(quantity)
        if total_override_cents is not None:
            if self.direction is not Direction.PURCHASE:
                raise ValidationError("Line totals can only be overridden on supplier purchases")
            total_override_cents = override_total(total_override_cents)

        product = self.stock.get(product_id)
        existing = self._line_for(product_id)
        cumulative = quantity + (existing.quantity if existing else 0)

        if self.checks_stock and cumulative > product.remaining_quantity:
            raise InsufficientStock(
                f"Only {product.remaining_quantity} of {product.name!r} left",
                {
                    "product_id": product_id,
                    "requested_quantity": cumulative,
                    "remaining_quantity": product.remaining_quantity,
                },
            )

        if existing:
            existing.quantity = cumulative
            if total_override_cents is not None:
                existing.total_override_cents = total_override_cents
            return existing

        line = CartLine(
            product_id=product.id,
            name=product.name,
            unit_price_cents=product.unit_price_cents,
            quantity=quantity,
            total_override_cents=total_override_cents,
        )
        self._lines.append(line)
        return line

    def remove_line(self, product_id: int) -> CartLine:
        self._require_draft()
        line = self._line_for(product_id)
        if line is None:
            raise ValidationError(f"Product {product_id} is not in the cart")
        self._lines.remove(line)
        return line

    def abandon(self) -> list[CartLine]:
        """
        Drop every line that is not committed and return the dropped lines.

        On a DRAFT bill this discards the whole cart with no side effects.
        Committed lines are never undone.
        """
        dropped = [line for line in self._lines if line.status is not LineStatus.COMMITTED]
        self._lines = [line for line in self._lines if line.status is LineStatus.COMMITTED]
        return dropped

    # -- totals -------------------------------------------------------------

    @property
    def subtotal_cents(self) -> int:
        return sum(line.total_amount_cents for line in self._lines)

    @property
    def tax_cents(self) -> int:
        if self.direction is Direction.SALE and self.classification is Classification.CASH:
            return apply_rate(self.subtotal_cents, self.tax_rate_bps)
        return 0

    @property
    def grand_total_cents(self) -> int:
        return self.subtotal_cents + self.tax_cents

    def _check_paid(self, paid_amount_cents: int) -> int:
        paid_amount_cents = require_amount(paid_amount_cents, field="paid_amount_cents")
        if paid_amount_cents > self.grand_total_cents:
            raise NegativeBalance(
                "Paid amount cannot exceed the bill total",
                {"paid_amount_cents": paid_amount_cents, "grand_total_cents": self.grand_total_cents},
            )
        return paid_amount_cents

    # -- output -------------------------------------------------------------

    def render(self, paid_amount_cents: int | None = None) -> dict:
        """
        Bill view for the presentation layer.

        Rendering an estimate is what completes it (DRAFT -> RENDERED);
        cash and credit bills can be rendered at any time as a preview or receipt.
        """
        if self.classification is Classification.ESTIMATE and self.state is BillState.DRAFT:
            self.state = BillState.RENDERED

        view = {
            "title": _TITLES[self.classification],
            "classification": self.classification.value,
            "direction": self.direction.value,
            "state": self.state.value,
            "invoice_number": self.invoice_number,
            "date": date.today().isoformat(),
            "customer": self.party_name or "Cash Customer",
            "lines": [
                {"name": line.name, "quantity": line.quantity, "line_total_cents": line.total_amount_cents}
                for line in self._lines
            ],
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "grand_total_cents": self.grand_total_cents,
        }
        if self.classification is Classification.CREDIT:
            paid = self.paid_amount_cents if paid_amount_cents is None else self._check_paid(paid_amount_cents)
            view["paid_amount_cents"] = paid
            view["remaining_amount_cents"] = self.grand_total_cents - paid
        return view

    # -- submission ---------------------------------------------------------

    def _validate_for_submit(self, paid_amount_cents: int | None) -> list[CartLine]:
        if self.classification is Classification.ESTIMATE:
            raise BillStateError("Estimates are rendered, never submitted")
        if self.state is BillState.RENDERED:
            raise BillStateError("Bill has already been rendered")

        pending = [line for line in self._lines if line.status is not LineStatus.COMMITTED]
        if not pending:
            raise BillStateError("Nothing left to submit")

        needs_party = self.classification is Classification.CREDIT or self.direction is Direction.PURCHASE
        if needs_party and not self.party_id:
            raise MissingParty(
                "A buyer is required for credit bills" if self.direction is Direction.SALE
                else "A supplier is required for purchases"
            )

        if paid_amount_cents is not None and self.classification is Classification.CREDIT:
            if self.state is BillState.DRAFT:
                self.paid_amount_cents = self._check_paid(paid_amount_cents)
            elif paid_amount_cents != self.paid_amount_cents:
                raise BillStateError(
                    "The paid amount is fixed once a line is committed; record further payments on the transactions",
                    {"paid_amount_cents": self.paid_amount_cents},
                )

        # Spread the bill-level payment over lines in cart order.
        already = sum(line.paid_amount_cents for line in self._lines if line.status is LineStatus.COMMITTED)
        left = self.paid_amount_cents - already
        for line in pending:
            if self.classification is Classification.CASH:
                line.paid_amount_cents = payments.initial_paid(Classification.CASH, line.total_amount_cents)
            else:
                share = min(left, line.total_amount_cents)
                line.paid_amount_cents = payments.initial_paid(Classification.CREDIT, line.total_amount_cents, share)
                left -= share
        return pending

    def _fields_for(self, line: CartLine) -> dict:
        fields = {
            "product_id": line.product_id,
            "quantity": line.quantity,
            "classification": self.classification.value,
            "paid_amount_cents": line.paid_amount_cents,
            "party_id": None if (self.classification is Classification.CASH and self.direction is Direction.SALE) else self.party_id,
        }
        if line.total_override_cents is not None:
            fields["total_amount_cents"] = line.total_override_cents
        return fields

    def submit(self, client, paid_amount_cents: int | None = None) -> SubmitResult:
        """
        Persist the cart one line at a time through ``client``.

        ``paid_amount_cents`` is the amount taken at the counter on a credit
        bill. It is fixed by the first submit that commits a line; passing a
        different amount on a resubmit raises BillStateError. Validation errors
        are raised before anything is sent; per-line failures, including
        unexpected collaborator errors, are reported in the result.
        """
        pending = self._validate_for_submit(paid_amount_cents)
        result = SubmitResult(committed=[
            line for line in self._lines if line.status is LineStatus.COMMITTED
        ])

        for index, line in enumerate(pending):
            try:
                if self.checks_stock and not self.stock.can_fulfil(line.product_id, line.quantity):
                    raise InsufficientStock(
                        f"Only {self.stock.available(line.product_id)} of {line.name!r} left",
                        {
                            "product_id": line.product_id,
                            "requested_quantity": line.quantity,
                            "remaining_quantity": self.stock.available(line.product_id),
                        },
                    )
                try:
                    txn = client.create_transaction(self.direction, self._fields_for(line))
                except LedgerError:
                    raise
                except Exception as exc:
                    logger.exception("Bill %s: collaborator failed on line %s", self.invoice_number, index + 1)
                    raise PersistenceFailure(f"Could not record {line.name!r}: {exc}") from exc
            except LedgerError as exc:
                line.status = LineStatus.FAILED
                line.error = exc
                result.failed = line
                result.unattempted = pending[index + 1:]
                logger.warning(
                    "Bill %s stopped at line %s (%s): %s; %s line(s) committed",
                    self.invoice_number, index + 1, exc.code, exc, len(result.committed),
                )
                break

            if self.direction is Direction.SALE:
                self.stock.reserve(line.product_id, line.quantity)
            else:
                self.stock.restock(line.product_id, line.quantity)

            line.status = LineStatus.COMMITTED
            line.error = None
            line.transaction = txn
            result.committed.append(line)
            self.state = BillState.COMMITTED

        return result
