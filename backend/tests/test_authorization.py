"""
Authorization tests.

Verifies:
- Unauthenticated requests return 401
- Staff can sell and read but not change stock or settings (403)
- Only the super admin may reset stock
"""

import pytest

from conftest import auth_headers, get_auth_token


# =============================================================================
# UNAUTHENTICATED ACCESS — 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("POST", "/api/products/1/adjust-stock"),
            ("POST", "/api/products/1/reset-stock"),
            ("GET", "/api/products/1/stock-movements"),
            ("POST", "/api/products/import"),
            ("GET", "/api/sales"),
            ("POST", "/api/sales"),
            ("GET", "/api/shipments"),
            ("GET", "/api/expenses"),
            ("GET", "/api/categories"),
            ("GET", "/api/settings"),
            ("GET", "/api/dashboard/summary"),
            ("GET", "/api/admin/users"),
            ("GET", "/api/auth/me"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/products", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401


# =============================================================================
# STAFF DENIED STOCK CHANGES — 403
# =============================================================================


class TestStaffPermissions:
    def test_can_read_products_and_sell(self, client, staff_headers, product):
        assert client.get("/api/products", headers=staff_headers).status_code == 200
        resp = client.post("/api/sales", json={
            "product_id": product.id, "quantity": 1, "price_per_unit_cents": 8900,
        }, headers=staff_headers)
        assert resp.status_code == 201

    def test_cannot_adjust_stock(self, client, staff_headers, product):
        resp = client.post(f"/api/products/{product.id}/adjust-stock",
                           json={"delta": 1, "reason": "x"}, headers=staff_headers)
        assert resp.status_code == 403
        assert resp.get_json()["required_permission"] == "STOCK_ADJUST"

    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/products"),
            ("DELETE", "/api/products/1"),
            ("PUT", "/api/sales/1"),
            ("DELETE", "/api/sales/1"),
            ("POST", "/api/shipments"),
            ("GET", "/api/expenses"),
            ("PUT", "/api/settings"),
            ("GET", "/api/admin/users"),
        ],
    )
    def test_denied(self, client, staff_headers, method, path):
        resp = getattr(client, method.lower())(path, json={}, headers=staff_headers)
        assert resp.status_code == 403, f"{method} {path} returned {resp.status_code}"


class TestStockReset:
    def test_admin_cannot_reset(self, client, admin_headers, product):
        resp = client.post(f"/api/products/{product.id}/reset-stock",
                           json={"new_stock": 5, "reason": "count"}, headers=admin_headers)
        assert resp.status_code == 403

    def test_admin_can_adjust(self, client, admin_headers, product):
        resp = client.post(f"/api/products/{product.id}/adjust-stock",
                           json={"delta": -1, "reason": "Damaged"}, headers=admin_headers)
        assert resp.status_code == 200

    def test_super_admin_can_reset(self, client, owner_headers, product):
        resp = client.post(f"/api/products/{product.id}/reset-stock",
                           json={"newStock": 5, "resetSold": True, "reason": "count"}, headers=owner_headers)
        assert resp.status_code == 200
        assert resp.get_json()["product"]["current_stock"] == 5


class TestRoleChanges:
    def test_admin_cannot_promote_to_super_admin(self, client, admin_headers, staff):
        resp = client.put(f"/api/admin/users/{staff.id}", json={"role": "SUPER_ADMIN"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_admin_can_promote_staff(self, client, admin_headers, staff):
        resp = client.put(f"/api/admin/users/{staff.id}", json={"role": "ADMIN"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["user"]["role"] == "ADMIN"

    def test_cannot_deactivate_self(self, client, owner, owner_headers):
        resp = client.put(f"/api/admin/users/{owner.id}", json={"is_active": False}, headers=owner_headers)
        assert resp.status_code == 400

    def test_admin_cannot_deactivate_super_admin(self, client, admin_headers, owner):
        resp = client.put(f"/api/admin/users/{owner.id}", json={"is_active": False}, headers=admin_headers)
        assert resp.status_code == 400

        me = client.get("/api/auth/me", headers=auth_headers(get_auth_token(client, owner.email)))
        assert me.status_code == 200
