"""
Product and stock API tests.
"""

from io import BytesIO

from openpyxl import Workbook

from stockroom.extensions import db
from stockroom.models import Product, StockMovement


class TestProductCrud:
    def test_create_derives_mad_price(self, client, owner_headers, category):
        resp = client.post("/api/products", json={
            "name": "Argan Oil",
            "category_id": category.id,
            "purchase_price_eur_cents": 500,
            "selling_price_cents": 12000,
            "quantity_received": 8,
        }, headers=owner_headers)

        assert resp.status_code == 201
        body = resp.get_json()
        assert body["purchase_price_mad_cents"] == 5425
        assert body["current_stock"] == 8
        assert body["stock_status"] == "OK"
        assert body["margin_percent"] == 54.79
        # no stock movement for the opening quantity
        assert db.session.query(StockMovement).count() == 0

    def test_counters_cannot_be_written_through_update(self, client, owner_headers, product):
        resp = client.put(f"/api/products/{product.id}", json={"quantity_sold": 0}, headers=owner_headers)
        assert resp.status_code == 400

    def test_promo_above_selling_price_rejected(self, client, owner_headers, product):
        resp = client.put(f"/api/products/{product.id}", json={"promo_price_cents": 9900}, headers=owner_headers)
        assert resp.status_code == 400

    def test_soft_delete_hides_product(self, client, owner_headers, product):
        assert client.delete(f"/api/products/{product.id}", headers=owner_headers).status_code == 200
        assert db.session.get(Product, product.id).is_active is False

        listed = client.get("/api/products", headers=owner_headers).get_json()
        assert listed["count"] == 0
        listed = client.get("/api/products?include_inactive=true", headers=owner_headers).get_json()
        assert listed["count"] == 1

    def test_status_filter_and_pagination(self, client, owner_headers, db_session, org, category):
        for name, received in (("A", 0), ("B", 2), ("C", 50)):
            db_session.add(Product(org_id=org.id, category_id=category.id, name=name,
                                   selling_price_cents=1000, quantity_received=received, reorder_level=3))
        db_session.commit()

        low = client.get("/api/products?status=low", headers=owner_headers).get_json()
        assert [p["name"] for p in low["items"]] == ["B"]

        page = client.get("/api/products?page=2&per_page=2", headers=owner_headers).get_json()
        assert [p["name"] for p in page["items"]] == ["C"]
        assert page["pagination"]["total"] == 3
        assert page["pagination"]["has_prev"] is True

        available = client.get("/api/products/available-stock", headers=owner_headers).get_json()
        assert [p["name"] for p in available["items"]] == ["B", "C"]


class TestStockEndpoints:
    def test_adjust_returns_product_and_movement(self, client, admin_headers, admin, product):
        resp = client.post(f"/api/products/{product.id}/adjust-stock",
                           json={"delta": "-2", "reason": "Damaged", "notes": "Leaking cap"},
                           headers=admin_headers)

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["product"]["current_stock"] == 8
        assert body["movement"]["quantity"] == -2
        assert body["movement"]["notes"] == "Leaking cap"
        assert body["movement"]["user"]["email"] == admin.email

    def test_adjust_below_zero_is_409_with_details(self, client, admin_headers, product):
        resp = client.post(f"/api/products/{product.id}/adjust-stock",
                           json={"delta": -25, "reason": "Damaged"}, headers=admin_headers)

        assert resp.status_code == 409
        assert resp.get_json()["details"] == {"available": 10, "requested": 25}

    def test_adjust_validation(self, client, admin_headers, product):
        url = f"/api/products/{product.id}/adjust-stock"
        assert client.post(url, json={"delta": 1.5, "reason": "x"}, headers=admin_headers).status_code == 400
        assert client.post(url, json={"delta": 1}, headers=admin_headers).status_code == 400
        assert client.post(url, json={"reason": "x"}, headers=admin_headers).status_code == 400

    def test_unknown_product_is_404(self, client, admin_headers, db_session):
        resp = client.post("/api/products/999/adjust-stock", json={"delta": 1, "reason": "x"}, headers=admin_headers)
        assert resp.status_code == 404

    def test_movement_history(self, client, owner_headers, product):
        client.post(f"/api/products/{product.id}/adjust-stock",
                    json={"delta": 3, "reason": "Found"}, headers=owner_headers)
        client.post(f"/api/products/{product.id}/reset-stock",
                    json={"new_stock": 4, "reason": "Count"}, headers=owner_headers)

        resp = client.get(f"/api/products/{product.id}/stock-movements", headers=owner_headers)
        items = resp.get_json()["items"]
        assert [m["type"] for m in items] == ["RESET", "ADJUSTMENT"]
        assert items[0]["previous_qty"] == 13
        assert items[0]["new_qty"] == 4


class TestSalesEndpoints:
    def test_sale_lifecycle(self, client, owner_headers, product):
        resp = client.post("/api/sales", json={
            "product_id": product.id, "quantity": 3, "price_per_unit_cents": 8900,
        }, headers=owner_headers)
        assert resp.status_code == 201
        sale_id = resp.get_json()["sale"]["id"]

        resp = client.put(f"/api/sales/{sale_id}", json={"quantity": 1}, headers=owner_headers)
        assert resp.status_code == 200
        assert resp.get_json()["sale"]["total_amount_cents"] == 8900

        assert client.delete(f"/api/sales/{sale_id}", headers=owner_headers).status_code == 200
        assert client.get(f"/api/sales/{sale_id}", headers=owner_headers).status_code == 404

        product_body = client.get(f"/api/products/{product.id}", headers=owner_headers).get_json()
        assert product_body["current_stock"] == 10

    def test_oversell_is_409(self, client, staff_headers, product):
        resp = client.post("/api/sales", json={
            "product_id": product.id, "quantity": 50, "price_per_unit_cents": 8900,
        }, headers=staff_headers)
        assert resp.status_code == 409
        assert resp.get_json()["details"]["available"] == 10

    def test_list_with_bad_date_is_400(self, client, owner_headers, db_session):
        assert client.get("/api/sales?start=yesterday", headers=owner_headers).status_code == 400


class TestImportEndpoint:
    def test_json_sheets(self, client, owner_headers):
        resp = client.post("/api/products/import", json={"sheets": [{
            "sheetName": "ARR-JSON",
            "products": [{"name": "Lip balm", "purchasePriceMad": "12", "sellingPriceDh": "30"}],
        }]}, headers=owner_headers)

        assert resp.status_code == 200
        assert resp.get_json()["productsCreated"] == 1

    def test_xlsx_upload(self, client, owner_headers):
        wb = Workbook()
        ws = wb.active
        ws.title = "ARR-XLSX"
        ws.append(["Produit", "PA DH", "PV", "Quantité"])
        ws.append(["Lip balm", 12, 30, 4])
        buffer = BytesIO()
        wb.save(buffer)
        buffer.seek(0)

        resp = client.post(
            "/api/products/import",
            data={"file": (buffer, "arrivage.xlsx")},
            content_type="multipart/form-data",
            headers=owner_headers,
        )

        assert resp.status_code == 200
        assert resp.get_json()["productsCreated"] == 1
        assert db.session.query(Product).filter_by(name="Lip balm").one().quantity_received == 4

    def test_unsupported_file(self, client, owner_headers):
        resp = client.post(
            "/api/products/import",
            data={"file": (BytesIO(b"a,b"), "arrivage.csv")},
            content_type="multipart/form-data",
            headers=owner_headers,
        )
        assert resp.status_code == 400

    def test_missing_sheets(self, client, owner_headers):
        assert client.post("/api/products/import", json={}, headers=owner_headers).status_code == 400
