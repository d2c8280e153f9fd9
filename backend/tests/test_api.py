# Overview: End-to-end coverage of the JSON API through the Flask test client.

"""
API Tests

Every test runs once per storage backend. Money comes back as strings
(Decimal serialization), e.g. "180.00".
"""

import base64

import pytest


def _create_product(client, **overrides):
    payload = {
        "code": "PRD-00000001",
        "name": "Gift Box",
        "category": "Gift Items",
        "cost_price": 60,
        "retail_price": 100,
        "stock": 10,
    }
    payload.update(overrides)
    response = client.post("/api/products", json=payload)
    assert response.status_code == 201, response.get_json()
    return response.get_json()


def _checkout(client, product_id, qty, **extra):
    payload = {"items": [{"product_id": product_id, "qty": qty}], "cash_received": 10000}
    payload.update(extra)
    return client.post("/api/sales/checkout", json=payload)


class TestSystem:

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        body = response.get_json()
        assert body["status"] == "healthy"
        assert body["checks"]["storage"]["status"] == "healthy"

    def test_cors_only_for_allowed_origins(self, client):
        allowed = client.get("/api/health", headers={"Origin": "http://localhost:5173"})
        assert allowed.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"

        denied = client.get("/api/health", headers={"Origin": "http://evil.example"})
        assert "Access-Control-Allow-Origin" not in denied.headers

    def test_backup_and_restore(self, client):
        product = _create_product(client)
        assert _checkout(client, product["id"], 1).status_code == 201

        backup = client.get("/api/backup")
        assert backup.status_code == 200
        assert "attachment" in backup.headers["Content-Disposition"]
        document = backup.get_json()

        assert client.delete("/api/sales").status_code == 200
        assert client.get("/api/sales").get_json()["count"] == 0

        restored = client.post("/api/restore", json=document)
        assert restored.status_code == 200
        assert restored.get_json()["restored"] == {"products": 1, "sales": 1}
        assert client.get("/api/sales").get_json()["count"] == 1

    def test_restore_rejects_bad_document(self, client):
        response = client.post("/api/restore", json={"data": {"products": []}})
        assert response.status_code == 400

    @pytest.mark.parametrize("product", [
        {"id": 1, "code": "PRD-00000001", "name": "Pen", "retail_price": "abc"},
        {"id": 1, "name": "No code"},
    ])
    def test_restore_rejects_bad_records(self, client, product):
        _create_product(client)

        response = client.post("/api/restore", json={"data": {"products": [product], "sales": []}})

        assert response.status_code == 400
        assert "error" in response.get_json()
        assert client.get("/api/products").get_json()["items"][0]["name"] == "Gift Box"


class TestCategoriesApi:

    def test_list_seeds_defaults(self, client):
        response = client.get("/api/categories")
        assert response.status_code == 200
        assert len(response.get_json()) == 8

    def test_create_and_delete(self, client):
        created = client.post("/api/categories", json={"name": "Toys"})
        assert created.status_code == 201
        category_id = created.get_json()["id"]

        assert client.delete(f"/api/categories/{category_id}").status_code == 200
        assert client.delete(f"/api/categories/{category_id}").status_code == 404

    def test_blank_name(self, client):
        assert client.post("/api/categories", json={"name": " "}).status_code == 400


class TestProductsApi:

    def test_create_get_update_delete(self, client):
        product = _create_product(client)
        assert product["retail_price"] == "100.00"

        fetched = client.get(f"/api/products/{product['id']}")
        assert fetched.status_code == 200
        assert fetched.get_json()["code"] == "PRD-00000001"

        updated = client.put(f"/api/products/{product['id']}", json={"retail_price": "120.50"})
        assert updated.status_code == 200
        assert updated.get_json()["retail_price"] == "120.50"

        assert client.delete(f"/api/products/{product['id']}").status_code == 200
        assert client.get(f"/api/products/{product['id']}").status_code == 404

    def test_duplicate_code_is_conflict(self, client):
        _create_product(client)
        response = client.post("/api/products", json={"code": "PRD-00000001", "name": "Other"})
        assert response.status_code == 409

    @pytest.mark.parametrize("payload", [
        {"name": "No code"},
        {"code": "PRD-1", "name": "X", "retail_price": -5},
        {"code": "PRD-1", "name": "X", "stock": 1.5},
        {"code": "PRD-1", "name": "X", "colour": "red"},
        {"code": "PRD-1", "name": "X", "image": 42},
        {"code": "PRD-1", "name": "X", "image": "data:text/plain;base64,aGk="},
    ])
    def test_invalid_payloads(self, client, payload):
        assert client.post("/api/products", json=payload).status_code == 400

    def test_list_filters_and_next_code(self, client):
        _create_product(client, code="PRD-00000001", name="Gift Box", stock=2)
        _create_product(client, code="PRD-00000002", name="Lipstick", category="Cosmetics & Perfumes")

        assert client.get("/api/products").get_json()["count"] == 2
        assert client.get("/api/products?search=lip").get_json()["count"] == 1
        assert client.get("/api/products?category=Gift%20Items").get_json()["count"] == 1
        assert client.get("/api/products?low_stock=true").get_json()["items"][0]["name"] == "Gift Box"
        assert client.get("/api/products/next-code").get_json() == {"code": "PRD-00000003"}

    def test_stock_patch(self, client):
        product = _create_product(client, stock=5)
        response = client.patch(f"/api/products/{product['id']}/stock", json={"change": -2})
        assert response.status_code == 200
        assert response.get_json()["stock"] == 3

        assert client.patch(f"/api/products/{product['id']}/stock", json={"change": "x"}).status_code == 400
        assert client.patch("/api/products/999/stock", json={"change": 1}).status_code == 404

    def test_image_upload_served(self, client):
        data_url = "data:image/png;base64," + base64.b64encode(b"\x89PNGdata").decode("ascii")
        product = _create_product(client, image=data_url)

        served = client.get(f"/uploads/{product['image']}")
        assert served.status_code == 200
        assert served.data == b"\x89PNGdata"
        served.close()

    def test_inventory_export(self, client):
        _create_product(client)
        response = client.get("/api/products/export")
        assert response.status_code == 200
        assert response.mimetype == "text/csv"
        assert response.get_data(as_text=True).splitlines()[0].startswith("Code,Name,Category")


class TestSalesApi:

    def test_quote_does_not_write(self, client):
        product = _create_product(client)
        response = client.post("/api/sales/quote", json={
            "items": [{"product_id": product["id"], "qty": 2}],
            "bill_discount_type": "percent",
            "bill_discount_rate": 10,
        })
        assert response.status_code == 200
        body = response.get_json()
        assert body["breakdown"]["total_amount"] == "180.00"
        assert body["item_count"] == 2
        assert client.get("/api/sales").get_json()["count"] == 0

    def test_checkout_flow(self, client):
        product = _create_product(client, stock=10)

        response = _checkout(client, product["id"], 3, customer_name="Nimal")
        assert response.status_code == 201
        body = response.get_json()
        sale_id = body["sale"]["id"]
        assert body["invoice_number"] == f"INV-{sale_id:08d}"
        assert body["sale"]["total_amount"] == "300.00"

        assert client.get(f"/api/products/{product['id']}").get_json()["stock"] == 7

        detail = client.get(f"/api/sales/{sale_id}").get_json()
        assert detail["invoice_number"] == body["invoice_number"]
        assert detail["line_totals"] == ["300.00"]

        lookup = client.get(f"/api/sales/lookup?invoice={body['invoice_number']}")
        assert lookup.status_code == 200
        assert lookup.get_json()["sale"]["id"] == sale_id

    def test_insufficient_cash(self, client):
        product = _create_product(client, stock=10)
        response = _checkout(client, product["id"], 2, cash_received=150)

        assert response.status_code == 400
        assert response.get_json()["error"] == "Insufficient cash"
        assert client.get("/api/sales").get_json()["count"] == 0
        assert client.get(f"/api/products/{product['id']}").get_json()["stock"] == 10

    def test_empty_cart_and_unknown_product(self, client):
        assert client.post("/api/sales/checkout", json={"items": []}).status_code == 400
        assert _checkout(client, 999, 1).status_code == 400

    def test_credit_then_mark_paid(self, client):
        product = _create_product(client)
        sale = _checkout(client, product["id"], 1, payment_method="Credit").get_json()["sale"]
        assert sale["payment_status"] == "Credit"

        paid = client.post(f"/api/sales/{sale['id']}/mark-paid")
        assert paid.status_code == 200
        assert paid.get_json()["sale"]["payment"] == {"cash": "100.00", "balance": "0.00"}

        again = client.post(f"/api/sales/{sale['id']}/mark-paid")
        assert again.status_code == 400

    def test_partial_and_full_return(self, client):
        product = _create_product(client, stock=10)
        sale = _checkout(client, product["id"], 3).get_json()["sale"]

        partial = client.post(f"/api/sales/{sale['id']}/returns", json={"line_index": 0, "qty": 1})
        assert partial.status_code == 200
        assert partial.get_json()["sale"]["total_amount"] == "200.00"
        assert client.get(f"/api/products/{product['id']}").get_json()["stock"] == 8

        too_many = client.post(f"/api/sales/{sale['id']}/returns", json={"line_index": 0, "qty": 5})
        assert too_many.status_code == 400

        full = client.post(f"/api/sales/{sale['id']}/return-full")
        assert full.status_code == 200
        assert full.get_json()["sale"]["items"] == []
        assert client.get(f"/api/products/{product['id']}").get_json()["stock"] == 10

    def test_not_found(self, client):
        assert client.get("/api/sales/999").status_code == 404
        assert client.post("/api/sales/999/mark-paid").status_code == 404
        assert client.post("/api/sales/999/return-full").status_code == 404
        assert client.get("/api/sales/lookup?invoice=INV-00000999").status_code == 404
        assert client.get("/api/sales/lookup?invoice=bogus").status_code == 400

    def test_list_pagination_and_bad_date(self, client):
        product = _create_product(client, stock=100)
        for _ in range(3):
            _checkout(client, product["id"], 1)

        page = client.get("/api/sales?page=1&per_page=2").get_json()
        assert page["count"] == 2
        assert page["pagination"]["total"] == 3
        assert page["totals"]["total_amount"] == "300.00"

        assert client.get("/api/sales?date=31-01-2026").status_code == 400

    def test_sales_export(self, client):
        product = _create_product(client)
        _checkout(client, product["id"], 1)
        response = client.get("/api/sales/export")
        assert response.status_code == 200
        lines = response.get_data(as_text=True).splitlines()
        assert lines[0].startswith("Date,Invoice ID,Customer")
        assert len(lines) == 2


class TestReportsApi:

    def test_dashboard(self, client):
        product = _create_product(client)
        _checkout(client, product["id"], 2)

        response = client.get("/api/reports/dashboard")
        assert response.status_code == 200
        report = response.get_json()
        assert report["periods"]["today"]["revenue"] == "200.00"
        assert report["periods"]["month"]["profit"] == "80.00"
        assert report["top_products"][0]["qty"] == 2
        assert report["top_categories"][0]["name"] == "Gift Items"
