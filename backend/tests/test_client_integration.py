"""
End-to-end tests: StorefrontClient and BillComposer against the Flask app.

The client talks to the app in-process through httpx.WSGITransport, so every
call goes through routing, auth, JSON encoding and the error mapping.
"""

import httpx
import pytest

from conftest import BASE_URL, PASSWORD, SALESMAN_EMAIL
from storefront.engine import (
    AuthError,
    BillComposer,
    InsufficientStock,
    NegativeBalance,
    NotFound,
    PartyInUse,
    PersistenceFailure,
    ProductRecord,
    SessionContext,
    StockLedger,
    StorefrontClient,
    login,
)
from storefront.engine.records import Classification, Direction, PartyKind
from storefront.extensions import db
from storefront.models import Product
from storefront.services import transaction_service


class TestLogin:

    def test_login_returns_session(self, transport, salesman):
        session = login(BASE_URL, SALESMAN_EMAIL, PASSWORD, transport=transport)
        assert session.token
        assert session.role == "salesman"
        assert not session.is_developer

    def test_bad_credentials(self, transport, salesman):
        with pytest.raises(AuthError):
            login(BASE_URL, SALESMAN_EMAIL, "wrong-password", transport=transport)

    def test_unknown_token(self, transport, salesman):
        with StorefrontClient(BASE_URL, SessionContext(token="nope"), transport=transport) as client:
            with pytest.raises(AuthError):
                client.get_products()

    def test_unreachable_api(self):
        def _refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        transport = httpx.MockTransport(_refuse)
        with StorefrontClient(BASE_URL, SessionContext(token="t"), transport=transport) as client:
            with pytest.raises(PersistenceFailure):
                client.get_products()


class TestCatalog:

    def test_create_restock_and_list(self, api):
        product = api.create_product(name="Emulsion 1L", unit_price_cents=4500, total_quantity=10, category="Paint")
        assert product.remaining_quantity == 10

        product = api.restock_product(product.id, 5)
        assert (product.total_quantity, product.remaining_quantity) == (15, 15)

        assert [p.name for p in api.get_products(category="Paint")] == ["Emulsion 1L"]
        assert api.get_products(search="hinge") == []

    def test_missing_product(self, api):
        with pytest.raises(NotFound):
            api.get_product(999)

    def test_party_crud(self, api):
        party = api.create_party("buyer", name="Sita Hardware", phone="98")
        assert party.kind is PartyKind.BUYER

        party = api.update_party(PartyKind.BUYER, party.id, address="Station Road")
        assert party.address == "Station Road"

        api.delete_party("buyer", party.id)
        assert api.get_parties("buyer") == []


class TestBillSubmission:

    def test_cash_bill_end_to_end(self, api, make_product):
        paint = make_product("Emulsion 1L", unit_price_cents=4500, quantity=10)
        brush = make_product("Brush 2in", unit_price_cents=1000, quantity=10)
        stock = StockLedger(api.get_products())

        bill = BillComposer(stock, "original")
        bill.add_line(paint.id, 3)
        bill.add_line(brush.id, 2)
        assert bill.grand_total_cents == 15500 + 2790

        result = bill.submit(api)

        assert result.ok
        assert [t.paid_amount_cents for t in result.transactions] == [13500, 2000]
        assert stock.available(paint.id) == 7
        assert api.get_product(paint.id).remaining_quantity == 7
        assert api.get_product(brush.id).remaining_quantity == 8

    def test_server_rejection_maps_back_to_insufficient_stock(self, api, make_product, salesman):
        paint = make_product(quantity=5)
        brush = make_product("Brush 2in", unit_price_cents=1000, quantity=5)
        stock = StockLedger(api.get_products())

        bill = BillComposer(stock, "original")
        bill.add_line(brush.id, 1)
        bill.add_line(paint.id, 4)

        # Another counter sells paint after this cart was built.
        transaction_service.create_transaction("SALE", {
            "product_id": paint.id, "quantity": 3, "classification": "CASH",
        }, created_by_user_id=salesman.id)

        result = bill.submit(api)

        assert result.partial
        assert [l.product_id for l in result.committed] == [brush.id]
        assert isinstance(result.failed.error, InsufficientStock)
        assert result.failed.error.details["remaining_quantity"] == 2
        assert stock.available(paint.id) == 5
        assert db.session.get(Product, paint.id).remaining_quantity == 2

    def test_credit_bill_updates_buyer_balance(self, api, make_product, buyer):
        product = make_product(unit_price_cents=10000)
        stock = StockLedger(api.get_products())

        bill = BillComposer(stock, "udhaar", party_id=buyer.id, party_name=buyer.name)
        bill.add_line(product.id, 2)
        result = bill.submit(api, paid_amount_cents=5000)

        assert result.ok
        txn = result.transactions[0]
        assert txn.classification is Classification.CREDIT
        assert txn.outstanding_cents == 15000

        ramesh = api.get_parties("buyer")[0]
        assert [t.id for t in ramesh.transactions] == [txn.id]

        paid = api.update_transaction(txn, add_payment_cents=15000)
        assert paid.outstanding_cents == 0

    def test_overpayment_checked_locally(self, api, make_product, buyer):
        product = make_product(unit_price_cents=10000)
        bill = BillComposer(StockLedger(api.get_products()), "udhaar", party_id=buyer.id)
        bill.add_line(product.id, 1)
        txn = bill.submit(api, paid_amount_cents=4000).transactions[0]

        def _fail(request):
            raise AssertionError("request should not be sent")

        offline = StorefrontClient(BASE_URL, api.session, transport=httpx.MockTransport(_fail))
        with pytest.raises(NegativeBalance):
            offline.update_transaction(txn, add_payment_cents=6001)

    def test_purchase_bill_restocks(self, api, make_product, supplier):
        product = make_product(quantity=10)
        stock = StockLedger(api.get_products())

        bill = BillComposer(stock, "cash", direction=Direction.PURCHASE, party_id=supplier.id)
        bill.add_line(product.id, 6, total_override_cents=20000)
        result = bill.submit(api)

        assert result.transactions[0].total_amount_cents == 20000
        server = api.get_product(product.id)
        assert (server.total_quantity, server.remaining_quantity) == (16, 16)
        assert stock.get(product.id).total_quantity == 16

    def test_party_with_history_cannot_be_deleted(self, api, make_product, buyer):
        product = make_product()
        bill = BillComposer(StockLedger(api.get_products()), "udhaar", party_id=buyer.id)
        bill.add_line(product.id, 1)
        bill.submit(api)

        with pytest.raises(PartyInUse):
            api.delete_party("buyer", buyer.id)

    def test_recent_sales(self, api, make_product):
        product = make_product()
        bill = BillComposer(StockLedger(api.get_products()), "original")
        bill.add_line(product.id, 2)
        bill.submit(api)

        report = api.recent_sales("1d")
        assert report["count"] == 1
        assert report["revenue_cents"] == 9000


class TestMalformedReplies:

    def _bill(self):
        stock = StockLedger([
            ProductRecord(id=1, name="Emulsion 1L", unit_price_cents=4500, total_quantity=10, remaining_quantity=10),
            ProductRecord(id=2, name="Brush 2in", unit_price_cents=1000, total_quantity=10, remaining_quantity=10),
        ])
        bill = BillComposer(stock, "original")
        bill.add_line(1, 1)
        bill.add_line(2, 1)
        return bill

    def _client(self, second_reply):
        calls = []

        def _handler(request):
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(201, json={"transaction": {
                    "id": 1, "product_id": 1, "quantity": 1, "unit_price_cents": 4500,
                    "total_amount_cents": 4500, "paid_amount_cents": 4500,
                    "classification": "CASH", "direction": "SALE", "party_id": None,
                }})
            return second_reply

        return StorefrontClient(BASE_URL, SessionContext(token="t"), transport=httpx.MockTransport(_handler))

    def test_non_json_body_fails_the_line(self):
        bill = self._bill()
        with self._client(httpx.Response(201, text="<html>gateway</html>")) as client:
            result = bill.submit(client)

        assert result.partial
        assert [l.product_id for l in result.committed] == [1]
        assert isinstance(result.failed.error, PersistenceFailure)

    def test_missing_transaction_key_fails_the_line(self):
        bill = self._bill()
        with self._client(httpx.Response(201, json={"ok": True})) as client:
            result = bill.submit(client)

        assert [l.product_id for l in result.committed] == [1]
        assert isinstance(result.failed.error, PersistenceFailure)

    def test_non_json_body_on_read(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="not json"))
        with StorefrontClient(BASE_URL, SessionContext(token="t"), transport=transport) as client:
            with pytest.raises(PersistenceFailure):
                client.get_products()
