"""
Bill composer tests against an in-memory collaborator.

Verifies:
- cart merging and the cumulative stock check for cash/credit sales
- estimates never reserve and never persist
- tax on cash bills only
- per-line submission with partial success and resubmission
"""

import pytest

from storefront.engine import BillComposer, BillState, LineStatus, ProductRecord, StockLedger
from storefront.engine.errors import (
    BillStateError,
    InsufficientStock,
    InvalidClassification,
    MissingParty,
    NegativeBalance,
    PersistenceFailure,
    ValidationError,
)
from storefront.engine.records import Direction, TransactionRecord


class FakeStorefront:
    """Collaborator double: records create_transaction calls, can fail on demand."""

    def __init__(self, fail_on_call=None, error=None):
        self.calls = []
        self.fail_on_call = fail_on_call
        self.error = error or PersistenceFailure("storefront down")

    def create_transaction(self, direction, fields):
        self.calls.append((direction, dict(fields)))
        if self.fail_on_call == len(self.calls):
            raise self.error
        total = fields.get("total_amount_cents", fields["quantity"] * 4500)
        return TransactionRecord(
            id=len(self.calls), product_id=fields["product_id"], quantity=fields["quantity"],
            unit_price_cents=4500, total_amount_cents=total,
            paid_amount_cents=fields["paid_amount_cents"],
            classification=fields["classification"], direction=direction,
            party_id=fields["party_id"],
        )


def _stock(remaining=5, total=10):
    return StockLedger([
        ProductRecord(id=1, name="Emulsion 1L", unit_price_cents=4500, total_quantity=total, remaining_quantity=remaining),
        ProductRecord(id=2, name="Primer 1L", unit_price_cents=2500, total_quantity=total, remaining_quantity=remaining),
        ProductRecord(id=3, name="Brush 2in", unit_price_cents=1000, total_quantity=total, remaining_quantity=remaining),
    ])


# =============================================================================
# CART
# =============================================================================


class TestCart:

    def test_adding_same_product_merges(self):
        bill = BillComposer(_stock(), "original")
        bill.add_line(1, 2)
        bill.add_line(1, 1)
        assert len(bill.lines) == 1
        assert bill.lines[0].quantity == 3

    def test_credit_cumulative_overflow_rejected(self):
        bill = BillComposer(_stock(remaining=5), "udhaar", party_id=7)
        bill.add_line(1, 3)
        with pytest.raises(InsufficientStock):
            bill.add_line(1, 3)
        assert [(l.product_id, l.quantity) for l in bill.lines] == [(1, 3)]

    def test_estimate_skips_stock_check(self):
        bill = BillComposer(_stock(remaining=5), "dummy")
        bill.add_line(1, 50)
        assert bill.lines[0].quantity == 50

    def test_purchase_skips_stock_check(self):
        bill = BillComposer(_stock(remaining=0), "cash", direction=Direction.PURCHASE, party_id=9)
        bill.add_line(1, 40)
        assert bill.lines[0].quantity == 40

    def test_override_only_on_purchases(self):
        bill = BillComposer(_stock(), "cash")
        with pytest.raises(ValidationError):
            bill.add_line(1, 1, total_override_cents=100)

        purchase = BillComposer(_stock(), "credit", direction="purchase", party_id=9)
        line = purchase.add_line(1, 4, total_override_cents=15000)
        assert line.total_amount_cents == 15000

    def test_remove_line(self):
        bill = BillComposer(_stock(), "original")
        bill.add_line(1, 1)
        bill.add_line(2, 1)
        bill.remove_line(1)
        assert [l.product_id for l in bill.lines] == [2]
        with pytest.raises(ValidationError):
            bill.remove_line(1)

    def test_estimate_purchase_rejected(self):
        with pytest.raises(InvalidClassification):
            BillComposer(_stock(), "dummy", direction=Direction.PURCHASE)


# =============================================================================
# TOTALS AND RENDERING
# =============================================================================


class TestTotals:

    def test_cash_bill_is_taxed(self):
        bill = BillComposer(_stock(), "original")
        bill.add_line(3, 10)  # 10 x 1000
        assert (bill.subtotal_cents, bill.tax_cents, bill.grand_total_cents) == (10000, 1800, 11800)

    def test_credit_bill_is_not_taxed(self):
        bill = BillComposer(_stock(), "udhaar", party_id=7)
        bill.add_line(3, 10)
        assert (bill.subtotal_cents, bill.tax_cents, bill.grand_total_cents) == (10000, 0, 10000)

    def test_tax_rate_is_a_composer_argument(self):
        bill = BillComposer(_stock(), "original", tax_rate_bps=500)
        bill.add_line(3, 10)
        assert (bill.tax_cents, bill.grand_total_cents) == (500, 10500)

    def test_credit_render_shows_remaining(self):
        bill = BillComposer(_stock(), "udhaar", party_id=7, party_name="Ramesh")
        bill.add_line(3, 10)
        view = bill.render(paid_amount_cents=4000)
        assert view["title"] == "CREDIT INVOICE"
        assert view["customer"] == "Ramesh"
        assert view["remaining_amount_cents"] == 6000
        assert view["lines"] == [{"name": "Brush 2in", "quantity": 10, "line_total_cents": 10000}]

    def test_render_rejects_overpaid_credit(self):
        bill = BillComposer(_stock(), "udhaar", party_id=7)
        bill.add_line(3, 1)
        with pytest.raises(NegativeBalance):
            bill.render(paid_amount_cents=1001)

    def test_cash_render_defaults_customer(self):
        bill = BillComposer(_stock(), "original")
        bill.add_line(1, 1)
        view = bill.render()
        assert view["customer"] == "Cash Customer"
        assert view["invoice_number"].startswith("INV-")
        assert "remaining_amount_cents" not in view


# =============================================================================
# ESTIMATES
# =============================================================================


class TestEstimates:

    def test_estimate_never_reserves_or_persists(self):
        stock = _stock(remaining=5)
        api = FakeStorefront()
        bill = BillComposer(stock, "dummy")
        bill.add_line(1, 2)
        bill.add_line(2, 7)

        view = bill.render()

        assert view["title"] == "ESTIMATE / DUMMY BILL"
        assert bill.state is BillState.RENDERED
        assert stock.available(1) == 5 and stock.available(2) == 5
        with pytest.raises(BillStateError):
            bill.submit(api)
        assert api.calls == []

    def test_rendered_estimate_is_frozen(self):
        bill = BillComposer(_stock(), "dummy")
        bill.add_line(1, 1)
        bill.render()
        with pytest.raises(BillStateError):
            bill.add_line(2, 1)


# =============================================================================
# SUBMISSION
# =============================================================================


class TestSubmit:

    def test_cash_line_paid_in_full_and_stock_drops(self):
        stock = _stock(remaining=5)
        api = FakeStorefront()
        bill = BillComposer(stock, "original")
        bill.add_line(1, 3)

        result = bill.submit(api)

        assert result.ok
        txn = result.transactions[0]
        assert (txn.total_amount_cents, txn.paid_amount_cents, txn.outstanding_cents) == (13500, 13500, 0)
        assert stock.available(1) == 2
        assert api.calls[0][1]["party_id"] is None
        assert bill.state is BillState.COMMITTED

    def test_credit_requires_party(self):
        api = FakeStorefront()
        bill = BillComposer(_stock(), "udhaar")
        bill.add_line(1, 1)
        with pytest.raises(MissingParty):
            bill.submit(api)
        assert api.calls == []

    def test_purchase_requires_supplier(self):
        bill = BillComposer(_stock(), "cash", direction=Direction.PURCHASE)
        bill.add_line(1, 1)
        with pytest.raises(MissingParty):
            bill.submit(FakeStorefront())

    def test_credit_payment_allocated_in_cart_order(self):
        api = FakeStorefront()
        bill = BillComposer(_stock(), "udhaar", party_id=7)
        bill.add_line(1, 1)  # 4500
        bill.add_line(3, 2)  # 2000

        bill.submit(api, paid_amount_cents=5000)

        assert [c[1]["paid_amount_cents"] for c in api.calls] == [4500, 500]
        assert all(c[1]["party_id"] == 7 for c in api.calls)

    def test_credit_overpayment_rejected_before_any_call(self):
        api = FakeStorefront()
        bill = BillComposer(_stock(), "udhaar", party_id=7)
        bill.add_line(1, 1)
        with pytest.raises(NegativeBalance):
            bill.submit(api, paid_amount_cents=4501)
        assert api.calls == []

    def test_partial_success_keeps_committed_lines(self):
        stock = _stock(remaining=5)
        api = FakeStorefront(fail_on_call=2)
        bill = BillComposer(stock, "original")
        bill.add_line(1, 1)
        bill.add_line(2, 1)
        bill.add_line(3, 1)

        result = bill.submit(api)

        assert result.partial and not result.ok
        assert [l.product_id for l in result.committed] == [1]
        assert result.failed.product_id == 2
        assert isinstance(result.failed.error, PersistenceFailure)
        assert [l.product_id for l in result.unattempted] == [3]
        assert stock.available(1) == 4
        assert stock.available(2) == 5
        assert bill.state is BillState.COMMITTED

    def test_resubmit_sends_only_uncommitted_lines(self):
        api = FakeStorefront(fail_on_call=2)
        bill = BillComposer(_stock(), "original")
        bill.add_line(1, 1)
        bill.add_line(2, 1)
        bill.submit(api)

        api.fail_on_call = None
        result = bill.submit(api)

        assert result.ok
        assert [c[1]["product_id"] for c in api.calls] == [1, 2, 2]
        assert all(l.status is LineStatus.COMMITTED for l in bill.lines)
        with pytest.raises(BillStateError):
            bill.submit(api)

    def test_stock_exhausted_between_lines_fails_that_line(self):
        stock = _stock(remaining=5)
        api = FakeStorefront()
        bill = BillComposer(stock, "original")
        bill.add_line(1, 4)
        stock.reserve(1, 3)  # another counter sold some in the meantime

        result = bill.submit(api)

        assert isinstance(result.failed.error, InsufficientStock)
        assert api.calls == []

    def test_purchase_restocks_local_view(self):
        stock = _stock(remaining=5, total=10)
        bill = BillComposer(stock, "cash", direction=Direction.PURCHASE, party_id=9)
        bill.add_line(1, 4, total_override_cents=15000)

        result = bill.submit(FakeStorefront())

        assert result.ok
        product = stock.get(1)
        assert (product.total_quantity, product.remaining_quantity) == (14, 9)
        assert result.transactions[0].paid_amount_cents == 15000

    def test_abandon_keeps_committed(self):
        api = FakeStorefront(fail_on_call=2)
        bill = BillComposer(_stock(), "original")
        bill.add_line(1, 1)
        bill.add_line(2, 1)
        bill.submit(api)

        dropped = bill.abandon()

        assert [l.product_id for l in dropped] == [2]
        assert [l.product_id for l in bill.lines] == [1]

    def test_party_chosen_after_cart_is_built(self):
        api = FakeStorefront()
        bill = BillComposer(_stock(), "udhaar")
        bill.add_line(1, 1)
        bill.set_party(7, "Ramesh")

        bill.submit(api)

        assert api.calls[0][1]["party_id"] == 7
        with pytest.raises(BillStateError):
            bill.set_party(8)

    def test_unexpected_collaborator_error_reported_as_failed_line(self):
        api = FakeStorefront(fail_on_call=2, error=KeyError("transaction"))
        bill = BillComposer(_stock(), "original")
        bill.add_line(1, 1)
        bill.add_line(2, 1)

        result = bill.submit(api)

        assert result.partial
        assert [l.product_id for l in result.committed] == [1]
        assert isinstance(result.failed.error, PersistenceFailure)
        assert result.failed.status is LineStatus.FAILED

    def test_resubmit_with_different_paid_amount_rejected(self):
        api = FakeStorefront(fail_on_call=2)
        bill = BillComposer(_stock(), "udhaar", party_id=7)
        bill.add_line(1, 1)
        bill.add_line(2, 1)
        bill.submit(api, paid_amount_cents=5000)

        with pytest.raises(BillStateError):
            bill.submit(api, paid_amount_cents=6000)
        assert len(api.calls) == 2

        api.fail_on_call = None
        assert bill.submit(api, paid_amount_cents=5000).ok
        assert [c[1]["paid_amount_cents"] for c in api.calls] == [4500, 500, 500]
