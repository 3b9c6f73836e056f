"""
Pytest fixtures for pantry backend tests.

Provides test database setup, account/catalog fixtures, and test client.
"""

import pytest
from pantry import create_app
from pantry.extensions import db
from pantry.models import Product
from pantry.models.employees import USER_TYPE_ADMIN, USER_TYPE_VENDOR
from pantry.services import employee_service


TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'PIN_HASH_ROUNDS': 4,
    'MAIL_SERVER': None,
    'CHECKOUT_ATOMIC': True,
    'CHECKOUT_RETRY_ATTEMPTS': 3,
}

EMPLOYEE_PIN = "1234"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def staged_checkout(app, monkeypatch):
    """Run checkouts with savepoint-staged debit/history writes."""
    monkeypatch.setitem(app.config, 'CHECKOUT_ATOMIC', False)


@pytest.fixture(scope='function')
def employee(db_session):
    """Employee EMP001: limit 500.00, spent 250.00 (remaining 250.00)."""
    emp = employee_service.create_employee(
        employee_code="EMP001",
        email="jane.doe@corp.local",
        first_name="Jane",
        last_name="Doe",
        pin=EMPLOYEE_PIN,
        department="Engineering",
        position="Developer",
        monthly_limit_cents=50000,
    )
    emp.current_spent_cents = 25000
    db_session.commit()
    return emp


@pytest.fixture(scope='function')
def other_employee(db_session):
    emp = employee_service.create_employee(
        employee_code="EMP002",
        email="raj.kumar@corp.local",
        first_name="Raj",
        last_name="Kumar",
        pin="9876",
        department="Finance",
        position="Analyst",
        monthly_limit_cents=50000,
    )
    return emp


@pytest.fixture(scope='function')
def vendor(db_session):
    return employee_service.create_employee(
        employee_code="VEN001",
        email="counter@vendor.local",
        first_name="Cafe",
        last_name="Counter",
        user_type=USER_TYPE_VENDOR,
    )


@pytest.fixture(scope='function')
def admin(db_session):
    return employee_service.create_employee(
        employee_code="ADM001",
        email="admin@corp.local",
        first_name="Pantry",
        last_name="Admin",
        user_type=USER_TYPE_ADMIN,
    )


@pytest.fixture(scope='function')
def products(db_session):
    """
    Catalog:
    - bars: 50.00 (Snacks)
    - coffee: 25.00 (Beverages)
    - sandwich: 150.00 (Meals)
    - retired: 10.00, unavailable
    """
    items = {
        "bars": Product(name="Protein Bars", category="Snacks", price_cents=5000, stock_quantity=45),
        "coffee": Product(name="Cold Coffee", category="Beverages", price_cents=2500, unit="bottle", stock_quantity=40),
        "sandwich": Product(name="Club Sandwich", category="Meals", price_cents=15000, stock_quantity=10),
        "retired": Product(name="Old Chips", category="Snacks", price_cents=1000, is_available=False),
    }
    db_session.add_all(items.values())
    db_session.commit()
    return items


def identity_headers(employee_code: str) -> dict:
    """Helper to create the gateway identity header."""
    return {'X-Pantry-Employee': employee_code}


def cart(*pairs) -> list:
    """cart((product, qty), ...) -> request items array."""
    return [{"product_id": product.id, "quantity": qty} for product, qty in pairs]
