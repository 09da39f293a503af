"""
Flask CLI command tests.
"""

from storefront.extensions import db
from storefront.models import Product, Transaction, User
from storefront.services import transaction_service


class TestUsersCommands:

    def test_create_developer(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            "users", "create-developer", "--name", "Owner", "--email", "owner@shop.local", "--password", "secret123",
        ])
        assert result.exit_code == 0
        assert "PASS Created developer user" in result.output
        assert db.session.query(User).filter_by(role="developer").count() == 1

    def test_second_developer_rejected(self, app, developer):
        result = app.test_cli_runner().invoke(args=[
            "users", "create-developer", "--name", "Other", "--email", "other@shop.local", "--password", "secret123",
        ])
        assert result.exit_code == 1
        assert "FAIL" in result.output

    def test_list(self, app, salesman):
        result = app.test_cli_runner().invoke(args=["users", "list"])
        assert "counter@shop.local" in result.output
        assert "salesman" in result.output


class TestLedgerCommands:

    def test_check_stock_passes_after_sales(self, app, salesman, make_product):
        product = make_product(quantity=10)
        transaction_service.create_transaction("SALE", {
            "product_id": product.id, "quantity": 4, "classification": "CASH",
        }, created_by_user_id=salesman.id)

        result = app.test_cli_runner().invoke(args=["ledger", "check-stock"])

        assert result.exit_code == 0
        assert "PASS" in result.output

    def test_check_stock_reports_drift(self, app, make_product):
        product = make_product(quantity=10)
        db.session.add(Transaction(
            product_id=product.id, direction="SALE", classification="CASH", quantity=2,
            unit_price_cents=4500, total_amount_cents=9000, paid_amount_cents=9000,
        ))
        db.session.commit()

        result = app.test_cli_runner().invoke(args=["ledger", "check-stock"])

        assert result.exit_code == 1
        assert f"FAIL Product {product.id}" in result.output
        assert "expected 8" in result.output
        assert db.session.get(Product, product.id).remaining_quantity == 10

    def test_balances(self, app, salesman, make_product, buyer):
        product = make_product(unit_price_cents=125050)
        transaction_service.create_transaction("SALE", {
            "product_id": product.id, "quantity": 1, "classification": "CREDIT",
            "party_id": buyer.id, "paid_amount_cents": 50,
        }, created_by_user_id=salesman.id)

        result = app.test_cli_runner().invoke(args=["ledger", "balances", "--kind", "buyer"])

        assert "Ramesh Traders" in result.output
        assert "Rs. 1,250.00" in result.output
        assert "TOTAL Rs. 1,250.00" in result.output

    def test_balances_empty(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["ledger", "balances", "--kind", "supplier"])
        assert "No suppliers found." in result.output
