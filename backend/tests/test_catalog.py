"""
Categories, brands, suppliers and expenses over the API.
"""

from stockroom.extensions import db
from stockroom.models import Arrivage, Product


class TestCategories:
    def test_crud(self, client, admin_headers):
        resp = client.post("/api/categories", json={"name": "Parfums", "name_fr": "Parfums"}, headers=admin_headers)
        assert resp.status_code == 201
        category_id = resp.get_json()["id"]

        resp = client.put(f"/api/categories/{category_id}", json={"color": "#aa00aa"}, headers=admin_headers)
        assert resp.status_code == 200

        assert client.delete(f"/api/categories/{category_id}", headers=admin_headers).status_code == 200

    def test_duplicate_name(self, client, admin_headers, category):
        resp = client.post("/api/categories", json={"name": category.name}, headers=admin_headers)
        assert resp.status_code == 409

    def test_category_in_use(self, client, admin_headers, product):
        resp = client.delete(f"/api/categories/{product.category_id}", headers=admin_headers)
        assert resp.status_code == 409


class TestBrandsAndSuppliers:
    def test_deleting_brand_detaches_products(self, client, admin_headers, db_session, product):
        brand_id = client.post("/api/brands", json={"name": "Nivea"}, headers=admin_headers).get_json()["id"]
        client.put(f"/api/products/{product.id}", json={"brand_id": brand_id}, headers=admin_headers)

        assert client.delete(f"/api/brands/{brand_id}", headers=admin_headers).status_code == 200
        db_session.expire_all()
        assert db.session.get(Product, product.id).brand_id is None

    def test_deleting_supplier_detaches_shipments(self, client, admin_headers, db_session, arrivage):
        supplier_id = client.post("/api/suppliers", json={"name": "Action Lille"},
                                  headers=admin_headers).get_json()["id"]
        resp = client.put(f"/api/shipments/{arrivage.id}", json={"supplier_id": supplier_id}, headers=admin_headers)
        assert resp.status_code == 200

        assert client.delete(f"/api/suppliers/{supplier_id}", headers=admin_headers).status_code == 200
        db_session.expire_all()
        assert db.session.get(Arrivage, arrivage.id).supplier_id is None

    def test_unknown_id(self, client, admin_headers, db_session):
        assert client.put("/api/brands/999", json={"name": "x"}, headers=admin_headers).status_code == 404


class TestExpenses:
    def test_expense_lifecycle(self, client, admin_headers, arrivage):
        resp = client.post("/api/expenses", json={
            "description": "DHL", "type": "SHIPPING", "amount_eur_cents": 2000, "arrivage_id": arrivage.id,
        }, headers=admin_headers)
        assert resp.status_code == 201
        expense = resp.get_json()["expense"]
        assert expense["amount_dh_cents"] == 21700

        listing = client.get(f"/api/expenses?arrivage_id={arrivage.id}", headers=admin_headers).get_json()
        assert listing["count"] == 1
        assert listing["total_dh_cents"] == 21700

        resp = client.put(f"/api/expenses/{expense['id']}", json={"amount_dh_cents": 1085}, headers=admin_headers)
        assert resp.get_json()["expense"]["amount_eur_cents"] == 100

        assert client.delete(f"/api/expenses/{expense['id']}", headers=admin_headers).status_code == 200

    def test_amount_required(self, client, admin_headers, db_session):
        resp = client.post("/api/expenses", json={"description": "Nothing"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_unknown_type(self, client, admin_headers, db_session):
        resp = client.post("/api/expenses", json={"description": "x", "type": "BRIBES", "amount_dh_cents": 1},
                           headers=admin_headers)
        assert resp.status_code == 400
