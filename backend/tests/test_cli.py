# Overview: Pytest coverage for the flask CLI command groups.

import json
from decimal import Decimal

from martpos.services.cart_service import cart_from_payload
from martpos.services.checkout_service import PaymentDetails, checkout


def _sell(storage, product, qty=1, method="Cash"):
    cart = cart_from_payload({"items": [{"product_id": product["id"], "qty": qty}]}, {product["id"]: product})
    return checkout(storage, cart, PaymentDetails(method=method, cash_received=Decimal("1000"))).sale


class TestSystemCommands:

    def test_init_seeds_categories(self, app, storage):
        result = app.test_cli_runner().invoke(args=["system", "init"])
        assert result.exit_code == 0, result.output
        assert "8 categories available" in result.output
        assert len(storage.list_categories()) == 8

    def test_reset_db_requires_confirmation(self, sql_app):
        result = sql_app.test_cli_runner().invoke(args=["system", "reset-db"], input="n\n")
        assert result.exit_code != 0


class TestSalesCommands:

    def test_list_and_show(self, app, storage, make_product):
        product = make_product(name="Scarf")
        sale = _sell(storage, product)
        runner = app.test_cli_runner()

        listed = runner.invoke(args=["sales", "list"])
        assert listed.exit_code == 0, listed.output
        assert f"INV-{sale['id']:08d}" in listed.output

        shown = runner.invoke(args=["sales", "show", f"INV-{sale['id']:08d}"])
        assert shown.exit_code == 0, shown.output
        assert "Scarf" in shown.output

    def test_show_unknown(self, app):
        result = app.test_cli_runner().invoke(args=["sales", "show", "INV-00000099"])
        assert result.exit_code != 0
        assert "not found" in result.output

    def test_mark_paid(self, app, storage, make_product):
        sale = _sell(storage, make_product(), method="Credit")
        result = app.test_cli_runner().invoke(args=["sales", "mark-paid", str(sale["id"])])
        assert result.exit_code == 0, result.output
        assert storage.get_sale(sale["id"])["payment_status"] == "Paid"

    def test_return_full_and_clear(self, app, storage, make_product):
        product = make_product(stock=5)
        sale = _sell(storage, product, qty=2)
        runner = app.test_cli_runner()

        result = runner.invoke(args=["sales", "return-full", str(sale["id"]), "--yes"])
        assert result.exit_code == 0, result.output
        assert storage.get_product(product["id"])["stock"] == 5

        cleared = runner.invoke(args=["sales", "clear", "--yes"])
        assert cleared.exit_code == 0, cleared.output
        assert storage.list_sales() == []


class TestInventoryAndData:

    def test_low_stock_and_next_code(self, app, make_product):
        make_product(code="PRD-00000005", name="Almost Gone", stock=1)
        runner = app.test_cli_runner()

        low = runner.invoke(args=["inventory", "low-stock"])
        assert "Almost Gone" in low.output

        code = runner.invoke(args=["inventory", "next-code"])
        assert code.output.strip() == "PRD-00000006"

    def test_backup_then_restore(self, app, storage, make_product, tmp_path):
        product = make_product(stock=9)
        _sell(storage, product)
        out = tmp_path / "backup.json"
        runner = app.test_cli_runner()

        backup = runner.invoke(args=["data", "backup", "--out", str(out)])
        assert backup.exit_code == 0, backup.output
        assert json.loads(out.read_text(encoding="utf-8"))["version"] == 2

        storage.clear_sales()
        restore = runner.invoke(args=["data", "restore", str(out), "--yes"])
        assert restore.exit_code == 0, restore.output
        assert len(storage.list_sales()) == 1
        assert storage.get_product(product["id"])["stock"] == 8
