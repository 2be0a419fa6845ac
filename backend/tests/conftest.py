"""
Pytest fixtures for the POS backend tests.

Provides an in-memory database, a test client, one user per role with
ready-made auth headers, and factories for costed products and stock.
"""

import pytest

from posbackend import create_app
from posbackend.extensions import db
from posbackend.models import (
    ROLE_MANAGEMENT,
    ROLE_POS_USER,
    ROLE_SUPERVISOR,
    Product,
    Sector,
    Stock,
    Store,
)
from posbackend.services import auth_service, session_service, user_service
from posbackend.services.cost_service import update_product_cost_simple


PASSWORD = "Password123!"
PIN = "1234"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'CURRENCY_API_URL': 'https://rates.example.test/latest/GBP',
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


@pytest.fixture(autouse=True)
def fast_hashing(monkeypatch):
    """bcrypt at full cost makes the suite crawl."""
    monkeypatch.setattr(auth_service, "BCRYPT_ROUNDS", 4)


@pytest.fixture(scope='function')
def store(db_session):
    store = Store(name="Central", address="1 High Street", is_active=True)
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def other_store(db_session):
    store = Store(name="Harbour", is_active=True)
    db_session.add(store)
    db_session.commit()
    return store


def _make_user(username: str, role: str, store: Store, pin: str | None = None):
    return user_service.create_user(
        username=username,
        password=PASSWORD,
        role=role,
        email=f"{username}@pos.local",
        pin=pin,
        store_ids=[store.id],
    )


@pytest.fixture(scope='function')
def manager(db_session, store):
    return _make_user("manager", ROLE_MANAGEMENT, store)


@pytest.fixture(scope='function')
def supervisor(db_session, store):
    return _make_user("supervisor", ROLE_SUPERVISOR, store)


@pytest.fixture(scope='function')
def cashier(db_session, store):
    return _make_user("cashier", ROLE_POS_USER, store, pin=PIN)


def _headers_for(user) -> dict:
    _session, token = session_service.create_session(user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def manager_headers(manager):
    return _headers_for(manager)


@pytest.fixture(scope='function')
def supervisor_headers(supervisor):
    return _headers_for(supervisor)


@pytest.fixture(scope='function')
def cashier_headers(cashier):
    return _headers_for(cashier)


@pytest.fixture(scope='function')
def sector(db_session):
    """Wholesale customers: 10% off everything."""
    sector = Sector(name="Wholesale", discount_rate=10.0, is_active=True)
    db_session.add(sector)
    db_session.commit()
    return sector


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: product with an active cost row whose retail price is the base price."""
    def _make(name: str, retail: float | None = None, *, wholesale: float | None = None,
              category: str | None = None):
        product = Product(name=name, category=category, unit_type="quantity", is_active=True)
        db_session.add(product)
        db_session.commit()
        if retail is not None or wholesale is not None:
            update_product_cost_simple(
                product.id,
                wholesale_cost_gbp=wholesale,
                direct_retail_online_store_price_gbp=retail,
            )
        return product
    return _make


@pytest.fixture(scope='function')
def set_stock(db_session):
    """Factory: put a quantity on hand for (product, store)."""
    def _set(product, store, quantity: float, threshold: float = 0.0):
        stock = Stock(
            product_id=product.id,
            store_id=store.id,
            quantity=quantity,
            low_stock_threshold=threshold,
        )
        db_session.add(stock)
        db_session.commit()
        return stock
    return _set


def stock_quantity(product_id: int, store_id: int) -> float | None:
    """Read a quantity committed by another session."""
    db.session.expire_all()
    stock = db.session.query(Stock).filter_by(product_id=product_id, store_id=store_id).first()
    return stock.quantity if stock else None


def get_auth_token(client, username: str, password: str) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/v1/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
