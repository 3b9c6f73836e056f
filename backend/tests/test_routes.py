"""
API route tests.

Verifies:
- Missing or unknown identity returns 401, wrong account type 403
- Checkout endpoints return 201 with order number and remaining budget
- Domain errors map to their HTTP status and error code
"""

import pytest

from pantry.models import Order
from conftest import EMPLOYEE_PIN, cart, identity_headers


# =============================================================================
# IDENTITY: 401 / 403
# =============================================================================


class TestIdentity:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/orders"),
            ("GET", "/api/orders/my"),
            ("GET", "/api/orders/admin/all"),
            ("GET", "/api/users/profile"),
            ("GET", "/api/users/purchase-history"),
            ("POST", "/api/auth/verify-pin"),
            ("GET", "/api/admin/reconciliation"),
        ],
    )
    def test_requires_identity(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_unknown_identity(self, client, db_session):
        resp = client.get("/api/users/profile", headers=identity_headers("GHOST1"))
        assert resp.status_code == 401

    def test_employee_cannot_place_vendor_orders(self, client, employee, products):
        resp = client.post("/api/orders", headers=identity_headers("EMP001"), json={
            "employee_code": "EMP001", "pin": EMPLOYEE_PIN, "items": cart((products["coffee"], 1)),
        })
        assert resp.status_code == 403

    def test_vendor_cannot_list_all_orders(self, client, vendor):
        resp = client.get("/api/orders/admin/all", headers=identity_headers("VEN001"))
        assert resp.status_code == 403


# =============================================================================
# CHECKOUT
# =============================================================================


class TestCheckoutRoutes:

    def test_vendor_order(self, client, employee, vendor, products):
        resp = client.post("/api/orders", headers=identity_headers("VEN001"), json={
            "employee_code": "EMP001",
            "pin": EMPLOYEE_PIN,
            "items": cart((products["bars"], 1), (products["coffee"], 2)),
            "total_amount": 1,
        })

        assert resp.status_code == 201
        body = resp.get_json()
        assert body["order_number"].startswith("ORD")
        assert body["order"]["total_amount"] == "100.00"
        assert body["order"]["vendor_name"] == "Cafe Counter"
        assert body["remaining_budget"] == "150.00"
        assert body["budget"]["current_spent"] == "350.00"
        assert body["reconciliation_pending"] is False

    def test_direct_order_needs_no_identity(self, client, employee, products):
        resp = client.post("/api/orders/direct", json={
            "employee_code": "EMP001",
            "pin": EMPLOYEE_PIN,
            "items": cart((products["coffee"], 1)),
        })

        assert resp.status_code == 201
        assert resp.get_json()["order"]["order_type"] == "DIRECT"

    def test_insufficient_budget(self, client, db_session, employee, products):
        resp = client.post("/api/orders/direct", json={
            "employee_code": "EMP001",
            "pin": EMPLOYEE_PIN,
            "items": cart((products["sandwich"], 2)),
        })

        assert resp.status_code == 400
        assert resp.get_json()["code"] == "INSUFFICIENT_BUDGET"
        assert db_session.query(Order).count() == 0

    def test_invalid_pin(self, client, employee, products):
        resp = client.post("/api/orders/direct", json={
            "employee_code": "EMP001", "pin": "0000", "items": cart((products["coffee"], 1)),
        })

        assert resp.status_code == 401
        assert resp.get_json()["code"] == "INVALID_PIN"

    def test_malformed_pin(self, client, employee, products):
        resp = client.post("/api/orders/direct", json={
            "employee_code": "EMP001", "pin": "12a4", "items": cart((products["coffee"], 1)),
        })

        assert resp.status_code == 400
        assert resp.get_json()["code"] == "VALIDATION_ERROR"

    def test_locked_pin(self, app, client, employee, products):
        payload = {"employee_code": "EMP001", "pin": "0000", "items": cart((products["coffee"], 1))}
        for _ in range(app.config["PIN_MAX_FAILED_ATTEMPTS"]):
            client.post("/api/orders/direct", json=payload)

        resp = client.post("/api/orders/direct", json={**payload, "pin": EMPLOYEE_PIN})
        assert resp.status_code == 423

    def test_empty_cart(self, client, employee):
        resp = client.post("/api/orders/direct", json={
            "employee_code": "EMP001", "pin": EMPLOYEE_PIN, "items": [],
        })
        assert resp.status_code == 400

    def test_verify_pin_route(self, client, employee, vendor):
        ok = client.post("/api/auth/verify-pin", headers=identity_headers("VEN001"),
                         json={"employee_code": "EMP001", "pin": EMPLOYEE_PIN})
        bad = client.post("/api/auth/verify-pin", headers=identity_headers("VEN001"),
                          json={"employee_code": "EMP001", "pin": "9999"})

        assert ok.status_code == 200
        assert ok.get_json()["verified"] is True
        assert bad.status_code == 401
        assert bad.get_json()["verified"] is False


# =============================================================================
# ORDERS / USERS
# =============================================================================


class TestOrderAndUserRoutes:

    @pytest.fixture
    def order_number(self, client, employee, vendor, products):
        resp = client.post("/api/orders", headers=identity_headers("VEN001"), json={
            "employee_code": "EMP001", "pin": EMPLOYEE_PIN, "items": cart((products["coffee"], 2)),
        })
        return resp.get_json()["order_number"]

    def test_my_orders(self, client, order_number):
        resp = client.get("/api/orders/my", headers=identity_headers("EMP001"))

        assert resp.status_code == 200
        assert [o["order_number"] for o in resp.get_json()["orders"]] == [order_number]

    def test_order_visibility(self, client, other_employee, admin, order_number):
        own = client.get(f"/api/orders/{order_number}", headers=identity_headers("EMP001"))
        other = client.get(f"/api/orders/{order_number}", headers=identity_headers("EMP002"))
        served = client.get(f"/api/orders/{order_number}", headers=identity_headers("VEN001"))
        as_admin = client.get(f"/api/orders/{order_number}", headers=identity_headers("ADM001"))

        assert own.status_code == 200
        assert other.status_code == 403
        assert served.status_code == 200
        assert as_admin.status_code == 200

    def test_admin_cancels_checkout_order(self, client, admin, order_number):
        resp = client.post(f"/api/orders/admin/{order_number}/status",
                           headers=identity_headers("ADM001"), json={"status": "CANCELLED"})
        assert resp.status_code == 200
        assert resp.get_json()["order"]["status"] == "CANCELLED"

        resp = client.post(f"/api/orders/admin/{order_number}/status",
                           headers=identity_headers("ADM001"), json={"status": "COMPLETED"})
        assert resp.status_code == 409

    def test_admin_list(self, client, admin, order_number):
        resp = client.get("/api/orders/admin/all?search=coffee", headers=identity_headers("ADM001"))

        body = resp.get_json()
        assert resp.status_code == 200
        assert body["pagination"]["total_orders"] == 1
        assert "items" not in body["orders"][0]

    def test_purchase_history(self, client, order_number):
        resp = client.get("/api/users/purchase-history?month=bad", headers=identity_headers("EMP001"))
        assert resp.status_code == 400

        resp = client.get("/api/users/purchase-history", headers=identity_headers("EMP001"))
        body = resp.get_json()
        assert resp.status_code == 200
        assert body["total_entries"] == 1
        assert body["purchase_history"][0]["quantity"] == 2
        assert body["purchase_history"][0]["vendor_name"] == "Cafe Counter"
        assert body["monthly_summary"][0]["total"] == "50.00"

    def test_profile_includes_budget(self, client, employee):
        resp = client.get("/api/users/profile", headers=identity_headers("EMP001"))

        user = resp.get_json()["user"]
        assert user["pantry_budget"]["remaining"] == "250.00"
        assert "secret_pin_hash" not in user

    def test_change_pin(self, client, employee):
        resp = client.put("/api/users/pin", headers=identity_headers("EMP001"),
                          json={"current_pin": EMPLOYEE_PIN, "new_pin": "4321"})
        assert resp.status_code == 200

        resp = client.put("/api/users/pin", headers=identity_headers("EMP001"),
                          json={"current_pin": EMPLOYEE_PIN, "new_pin": "5555"})
        assert resp.status_code == 401

    def test_employee_sets_own_limit(self, client, employee):
        resp = client.put("/api/users/budget", headers=identity_headers("EMP001"),
                          json={"monthly_limit": "800.00"})
        assert resp.status_code == 200
        assert resp.get_json()["budget"]["remaining"] == "550.00"

        resp = client.put("/api/users/budget", headers=identity_headers("EMP001"),
                          json={"monthly_limit": "20000.00"})
        assert resp.status_code == 400

    def test_employee_directory(self, client, employee, vendor):
        resp = client.get("/api/users/employees?search=jane", headers=identity_headers("VEN001"))

        employees = resp.get_json()["employees"]
        assert [e["employee_code"] for e in employees] == ["EMP001"]
        assert "pantry_budget" not in employees[0]


# =============================================================================
# CATALOG / ADMIN
# =============================================================================


class TestCatalogAndAdminRoutes:

    def test_menu_lists_available_products(self, client, products):
        resp = client.get("/api/products?category=Snacks")

        names = [p["name"] for p in resp.get_json()["products"]]
        assert names == ["Protein Bars"]

    def test_admin_creates_product(self, client, admin):
        resp = client.post("/api/products", headers=identity_headers("ADM001"), json={
            "name": "Masala Chai", "category": "Beverages", "price": "0.50",
        })

        assert resp.status_code == 201
        assert resp.get_json()["product"]["price_cents"] == 50

    def test_product_validation(self, client, admin):
        resp = client.post("/api/products", headers=identity_headers("ADM001"), json={
            "name": "Mystery", "category": "Gadgets", "price": "1.00",
        })
        assert resp.status_code == 400

    def test_vendor_cannot_edit_catalog(self, client, vendor, products):
        resp = client.put(f"/api/products/{products['bars'].id}", headers=identity_headers("VEN001"),
                          json={"price": "0.01"})
        assert resp.status_code == 403

    def test_admin_adjusts_budget(self, client, admin, employee):
        resp = client.post("/api/admin/employees/EMP001/budget", headers=identity_headers("ADM001"),
                           json={"top_up": "100.00"})

        assert resp.status_code == 200
        assert resp.get_json()["budget"]["monthly_limit"] == "600.00"

        resp = client.post("/api/admin/employees/EMP001/budget", headers=identity_headers("ADM001"),
                           json={"monthly_limit": "1000.00", "top_up": "5"})
        assert resp.status_code == 400

    def test_health(self, client, db_session):
        resp = client.get("/health")

        assert resp.status_code == 200
        assert resp.get_json()["checks"]["database"]["status"] == "healthy"

    def test_unknown_route_returns_json(self, client, db_session):
        resp = client.get("/api/nope")

        assert resp.status_code == 404
        assert resp.get_json()["code"] == "NOT_FOUND"

    def test_cors_only_for_allowed_origins(self, client, db_session):
        allowed = client.get("/api/products", headers={"Origin": "http://localhost:5173"})
        other = client.get("/api/products", headers={"Origin": "http://evil.example"})

        assert allowed.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"
        assert "X-Pantry-Employee" in allowed.headers["Access-Control-Allow-Headers"]
        assert "Access-Control-Allow-Origin" not in other.headers


# =============================================================================
# OUT-OF-RANGE AMOUNTS AND IDS
# =============================================================================


class TestOutOfRangeInput:

    @pytest.mark.parametrize("total_amount", ["1e30", "1e20", "-5"])
    def test_direct_order_with_oversized_total(self, client, db_session, employee, products, total_amount):
        resp = client.post("/api/orders/direct", json={
            "employee_code": "EMP001",
            "pin": EMPLOYEE_PIN,
            "items": cart((products["coffee"], 1)),
            "total_amount": total_amount,
        })

        assert resp.status_code == 400
        assert resp.get_json()["details"]["field"] == "total_amount"
        assert db_session.query(Order).count() == 0

        # no write transaction left open behind the rejected request
        resp = client.post("/api/orders/direct", json={
            "employee_code": "EMP001", "pin": EMPLOYEE_PIN, "items": cart((products["coffee"], 1)),
        })
        assert resp.status_code == 201

    def test_direct_order_with_oversized_product_id(self, client, db_session, employee, products):
        resp = client.post("/api/orders/direct", json={
            "employee_code": "EMP001",
            "pin": EMPLOYEE_PIN,
            "items": [{"product_id": 10**30, "quantity": 1}],
        })

        assert resp.status_code == 400
        assert resp.get_json()["details"]["item"] == 0

    def test_oversized_budget_amounts(self, client, admin, employee):
        resp = client.put("/api/users/budget", headers=identity_headers("EMP001"),
                          json={"monthly_limit": "1e30"})
        assert resp.status_code == 400

        resp = client.post("/api/admin/employees/EMP001/budget", headers=identity_headers("ADM001"),
                           json={"top_up": "1e20"})
        assert resp.status_code == 400

        resp = client.post("/api/admin/employees/EMP001/budget", headers=identity_headers("ADM001"),
                           json={"top_up": "9600.00"})
        assert resp.status_code == 400
        assert resp.get_json()["details"]["max_monthly_limit"] == "10000.00"

    def test_oversized_product_values(self, client, admin, products):
        resp = client.put(f"/api/products/{products['bars'].id}", headers=identity_headers("ADM001"),
                          json={"price": "1e30"})
        assert resp.status_code == 400

        resp = client.put(f"/api/products/{products['bars'].id}", headers=identity_headers("ADM001"),
                          json={"stock_quantity": 10**30})
        assert resp.status_code == 400

        resp = client.get(f"/api/products/{10**30}")
        assert resp.status_code == 404


# =============================================================================
# PRODUCTS / VENDORS / FEEDBACK
# =============================================================================


class TestProductDetailRoutes:

    def test_get_product(self, client, products):
        resp = client.get(f"/api/products/{products['coffee'].id}")

        assert resp.status_code == 200
        assert resp.get_json()["product"]["name"] == "Cold Coffee"

        assert client.get("/api/products/999999").status_code == 404

    def test_admin_retires_product(self, client, db_session, admin, employee, products):
        product_id = products["bars"].id

        assert client.delete(f"/api/products/{product_id}", headers=identity_headers("EMP001")).status_code == 403

        resp = client.delete(f"/api/products/{product_id}", headers=identity_headers("ADM001"))
        assert resp.status_code == 200
        assert resp.get_json()["product"]["is_available"] is False

        menu = client.get("/api/products").get_json()["products"]
        assert "Protein Bars" not in [p["name"] for p in menu]

        resp = client.post("/api/orders/direct", json={
            "employee_code": "EMP001", "pin": EMPLOYEE_PIN, "items": cart((products["bars"], 1)),
        })
        assert resp.status_code == 400


class TestVendorAdminRoutes:

    def test_admin_creates_and_lists_vendors(self, client, admin, vendor):
        resp = client.post("/api/admin/vendors", headers=identity_headers("ADM001"), json={
            "employee_code": "ven002", "email": "Juice@Vendor.local",
            "first_name": "Juice", "last_name": "Bar",
        })

        assert resp.status_code == 201
        created = resp.get_json()["vendor"]
        assert created["employee_code"] == "VEN002"
        assert created["user_type"] == "vendor"
        assert created["department"] == "Food Services"
        assert "pantry_budget" not in created

        resp = client.get("/api/admin/vendors", headers=identity_headers("ADM001"))
        assert resp.status_code == 200
        assert sorted(v["employee_code"] for v in resp.get_json()["vendors"]) == ["VEN001", "VEN002"]

    def test_vendor_creation_validation(self, client, admin, vendor):
        duplicate = client.post("/api/admin/vendors", headers=identity_headers("ADM001"), json={
            "employee_code": "VEN001", "email": "other@vendor.local", "first_name": "A", "last_name": "B",
        })
        missing = client.post("/api/admin/vendors", headers=identity_headers("ADM001"), json={
            "employee_code": "VEN009",
        })
        as_vendor = client.get("/api/admin/vendors", headers=identity_headers("VEN001"))

        assert duplicate.status_code == 400
        assert missing.status_code == 400
        assert as_vendor.status_code == 403


class TestFeedbackRoutes:

    def test_employee_feedback_and_admin_review(self, client, admin, employee):
        resp = client.post("/api/feedback", headers=identity_headers("EMP001"), json={
            "message": "Coffee machine is out of milk again",
            "category": "Service",
            "rating": 2,
        })
        assert resp.status_code == 201
        feedback_id = resp.get_json()["feedback"]["id"]

        mine = client.get("/api/feedback/my", headers=identity_headers("EMP001")).get_json()["feedback"]
        assert [f["id"] for f in mine] == [feedback_id]

        listing = client.get("/api/feedback/admin/all?search=milk", headers=identity_headers("ADM001"))
        assert listing.status_code == 200
        assert listing.get_json()["pagination"]["total"] == 1

        resp = client.post(f"/api/feedback/admin/{feedback_id}/status", headers=identity_headers("ADM001"),
                           json={"status": "resolved", "note": "Restocked"})
        assert resp.status_code == 200
        assert resp.get_json()["feedback"]["status"] == "RESOLVED"

    def test_public_feedback_needs_no_identity(self, client, db_session):
        resp = client.post("/api/feedback/public", json={
            "message": "Please add more fruit options",
            "employee_code": "emp404",
        })

        assert resp.status_code == 201
        assert resp.get_json()["feedback"]["employee_code"] == "EMP404"
        assert resp.get_json()["feedback"]["category"] == "Other"

    def test_feedback_validation_and_access(self, client, employee):
        short = client.post("/api/feedback/public", json={"message": "bad"})
        rating = client.post("/api/feedback/public", json={"message": "Long enough message", "rating": 6})
        unknown = client.post("/api/feedback/public", json={"message": "Long enough message", "mood": "sad"})
        admin_only = client.get("/api/feedback/admin/all", headers=identity_headers("EMP001"))
        anonymous = client.post("/api/feedback", json={"message": "Long enough message"})

        assert short.status_code == 400
        assert rating.status_code == 400
        assert unknown.status_code == 400
        assert admin_only.status_code == 403
        assert anonymous.status_code == 401
