"""
API authorization and endpoint tests.

Verifies:
- Unauthenticated requests return 401
- USER role denied admin operations (403)
- Admin role can perform privileged operations
- Domain errors map to 400 / 404 / 409 JSON responses
"""

import pytest


# =============================================================================
# UNAUTHENTICATED ACCESS - 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("GET", "/api/users"),
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("GET", "/api/categories"),
            ("GET", "/api/customers"),
            ("GET", "/api/materials"),
            ("GET", "/api/sales"),
            ("POST", "/api/sales"),
            ("POST", "/api/sales/preview"),
            ("POST", "/api/stock/1"),
            ("GET", "/api/purchases"),
            ("GET", "/api/expenses"),
            ("GET", "/api/tasks"),
            ("GET", "/api/reports/profit-loss"),
            ("GET", "/api/reports/mispricing"),
            ("GET", "/api/dashboard"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/products", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401

    def test_health_is_public(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json["checks"]["database"]["status"] == "healthy"


# =============================================================================
# USER DENIED ADMIN OPERATIONS - 403
# =============================================================================


class TestUserDeniedAdminOperations:
    """USER role cannot perform privileged operations."""

    def test_cannot_list_users(self, client, user_headers):
        resp = client.get("/api/users", headers=user_headers)
        assert resp.status_code == 403
        assert resp.json["required_role"] == "ADMIN"

    def test_cannot_delete_product(self, client, user_headers, product):
        resp = client.delete(f"/api/products/{product.id}", headers=user_headers)
        assert resp.status_code == 403

    def test_cannot_recalculate_prices(self, client, user_headers):
        resp = client.post("/api/products/recalculate-prices", headers=user_headers)
        assert resp.status_code == 403

    def test_cannot_delete_location(self, client, user_headers, location):
        resp = client.delete(f"/api/locations/{location.id}", headers=user_headers)
        assert resp.status_code == 403


# =============================================================================
# ADMIN ALLOWED
# =============================================================================


class TestAdminAllowed:

    def test_create_user(self, client, admin_headers):
        resp = client.post(
            "/api/users",
            json={"username": "luis", "password": "Password123", "role": "USER"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json["user"]["role"] == "USER"

    def test_weak_password_rejected(self, client, admin_headers):
        resp = client.post("/api/users", json={"username": "luis", "password": "short"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_delete_product(self, client, admin_headers, product):
        resp = client.delete(f"/api/products/{product.id}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json == {"ok": True, "mode": "hard"}


# =============================================================================
# ENDPOINT FLOWS
# =============================================================================


class TestSalesEndpoints:

    def test_preview_then_record(self, client, user_headers, product, location):
        body = {
            "location_id": location.id,
            "packaging_price": "1.00",
            "final_price": "110.00",
            "items": [{"product_id": product.id, "quantity": 2}],
        }
        preview = client.post("/api/sales/preview", json=body, headers=user_headers)
        assert preview.status_code == 200
        assert preview.json["discount_percentage"] == "9.09"
        assert preview.json["lines"][0]["actual_unit_price"] == "54.55"

        created = client.post("/api/sales", json=body, headers=user_headers)
        assert created.status_code == 201
        assert created.json["final_total_price"] == "110.00"
        assert created.json["lines"][0]["unit_price"] == "54.55"

        stock = client.get(f"/api/products/{product.id}", headers=user_headers)
        assert stock.json["stock"] == 8

    def test_empty_cart_is_400(self, client, user_headers, location):
        resp = client.post("/api/sales", json={"location_id": location.id, "items": []}, headers=user_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == "Cart is empty"

    def test_unknown_sale_is_404(self, client, user_headers):
        assert client.get("/api/sales/999", headers=user_headers).status_code == 404


class TestCatalogEndpoints:

    def test_create_product_with_recipe(self, client, user_headers, material, procedure):
        resp = client.post(
            "/api/products",
            json={
                "name": "Pendant",
                "code": "PEN-001",
                "minutes_to_make": 30,
                "materials": [{"material_id": material.id, "quantity": "1.5"}],
                "procedures": [{"procedure_id": procedure.id, "cost": "2.00"}],
            },
            headers=user_headers,
        )
        assert resp.status_code == 201
        # 7.50 + 3.50 + 2.00 = 13.00
        assert resp.json["suggested_retail_price"] == "39.00"
        assert len(resp.json["materials"]) == 1

        cost = client.get(f"/api/products/{resp.json['id']}/cost", headers=user_headers)
        assert cost.json["cost"]["total_cost"] == "13.00"

    def test_duplicate_code_is_409(self, client, user_headers, product):
        resp = client.post("/api/products", json={"name": "Copy", "code": "RING-001"}, headers=user_headers)
        assert resp.status_code == 409

    def test_unknown_field_is_400(self, client, user_headers):
        resp = client.post("/api/products", json={"name": "X", "code": "X-1", "suggested_retail_price": "1"}, headers=user_headers)
        assert resp.status_code == 400

    def test_stock_movement(self, client, user_headers, product):
        resp = client.post(f"/api/stock/{product.id}", json={"update_type": "REMOVE", "quantity": 9}, headers=user_headers)
        assert resp.status_code == 200
        assert resp.json["new_stock"] == 1
        assert resp.json["status"] == "LOW"

        low = client.get("/api/stock/low", headers=user_headers)
        assert [p["product_id"] for p in low.json["items"]] == [product.id]

    def test_customer_duplicate_email_is_409(self, client, user_headers, customer):
        resp = client.post(
            "/api/customers",
            json={"first_name": "Other", "last_name": "Person", "email": "maria@example.com"},
            headers=user_headers,
        )
        assert resp.status_code == 409


class TestReportEndpoints:

    def test_profit_loss_and_dashboard(self, client, user_headers, product, location):
        client.post(
            "/api/sales",
            json={"location_id": location.id, "sale_date": "2026-03-01", "items": [{"product_id": product.id, "quantity": 1}]},
            headers=user_headers,
        )
        client.post(
            "/api/expenses",
            json={"description": "Rent", "amount": "20.00", "expense_date": "2026-03-05", "expense_type": "RENT"},
            headers=user_headers,
        )

        report = client.get("/api/reports/profit-loss?start=2026-03-01&end=2026-03-31", headers=user_headers)
        assert report.status_code == 200
        assert report.json["net_profit"] == "40.00"

        dashboard = client.get("/api/dashboard", headers=user_headers)
        assert dashboard.status_code == 200
        assert dashboard.json["stock_overview"]["total_products"] == 1

    def test_bad_date_is_400(self, client, user_headers):
        resp = client.get("/api/reports/profit-loss?start=yesterday", headers=user_headers)
        assert resp.status_code == 400

    def test_unknown_dimension_is_400(self, client, user_headers):
        assert client.get("/api/reports/analytics/planet/1", headers=user_headers).status_code == 400
