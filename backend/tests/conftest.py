"""
Pytest fixtures for Stockworks backend tests.

Provides test database setup, tenant fixtures, a small bakery catalog
(materials, a product with a recipe, parties) and the test client.
"""

import pytest
from stockworks import create_app
from stockworks.extensions import db
from stockworks.services import materials_service, party_service, products_service
from stockworks.services.ledger_service import find_stock_drift
from stockworks.services.party_service import rebuild_balances
from stockworks.services.tenant_service import create_tenant


RESET_PASSWORD = "correct horse battery"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
    })

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
def tenant_with_key(db_session):
    """Tenant A (with reset password) and its plaintext API key."""
    return create_tenant(name="Acme Bakery", code="acme", reset_password=RESET_PASSWORD)


@pytest.fixture(scope='function')
def tenant_a(tenant_with_key):
    return tenant_with_key[0]


@pytest.fixture(scope='function')
def tenant_b(db_session):
    """Second tenant, used for isolation checks."""
    tenant, _ = create_tenant(name="Beta Sweets", code="beta")
    return tenant


@pytest.fixture(scope='function')
def api_headers(tenant_with_key):
    return auth_headers(tenant_with_key[1])


@pytest.fixture(scope='function')
def supplier(tenant_a):
    return party_service.create_supplier(tenant_id=tenant_a.id, name="Mill Co", phone="0500000001")


@pytest.fixture(scope='function')
def customer(tenant_a):
    return party_service.create_customer(tenant_id=tenant_a.id, name="Cafe Noor", phone="0500000002")


@pytest.fixture(scope='function')
def flour(tenant_a):
    """100 kg of flour at 2.00 per kg."""
    return materials_service.add_material(tenant_id=tenant_a.id, payload={
        "name": "Flour",
        "name_ar": "طحين",
        "unit": "kg",
        "current_stock": 100,
        "min_threshold": 10,
        "cost_per_unit": 2,
    })


@pytest.fixture(scope='function')
def sugar(tenant_a):
    """50 kg of sugar at 4.00 per kg."""
    return materials_service.add_material(tenant_id=tenant_a.id, payload={
        "name": "Sugar",
        "unit": "kg",
        "current_stock": 50,
        "min_threshold": 5,
        "cost_per_unit": 4,
    })


@pytest.fixture(scope='function')
def bread(tenant_a, flour, sugar):
    """Bread with a recipe of 0.5 kg flour and 0.1 kg sugar per unit; no stock yet."""
    product = products_service.create_product(tenant_id=tenant_a.id, payload={
        "name": "Bread",
        "name_ar": "خبز",
        "size": "Large",
        "selling_price": 10,
        "production_cost": 1.4,
        "min_threshold": 5,
    })
    products_service.save_bom(tenant_id=tenant_a.id, product_id=product.id, items=[
        {"material_id": flour.id, "quantity_per_unit": "0.5"},
        {"material_id": sugar.id, "quantity_per_unit": "0.1"},
    ])
    return product


@pytest.fixture(scope='function')
def stocked_bread(tenant_a, bread):
    """Bread with 20 units on hand from an earlier production run."""
    from stockworks.services.production_service import record_production
    record_production(tenant_id=tenant_a.id, product_id=bread.id, quantity=20)
    return bread


def _assert_ledgers_consistent(tenant_id: int) -> None:
    assert find_stock_drift(tenant_id) == []
    assert rebuild_balances(tenant_id, fix=False) == []


@pytest.fixture(scope='function')
def check_ledgers():
    """Callable asserting stock matches the movement ledger and balances match the party ledgers."""
    return _assert_ledgers_consistent


def auth_headers(api_key: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {api_key}'}
