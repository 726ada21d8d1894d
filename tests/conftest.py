"""
Pytest configuration for the sale processing tests.

Settings are read at import time, so the environment is prepared here
before anything from pos_api is imported. Each test gets its own
file-backed SQLite database: a file (not :memory:) so that several
threads can open their own connections during the concurrency tests.
"""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SQLITE_BUSY_TIMEOUT_SECONDS"] = "30"

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from pos_api.core.config import settings
from pos_api.database import build_engine, build_session_factory, get_db, init_db
from pos_api.main import app
from pos_api.models import Client, Product, User
from pos_api.models.users import ROLE_ADMIN, ROLE_SELLER
from pos_api.routers.sales import get_sale_manager
from pos_api.services.sale_lifecycle import SaleLifecycleManager
from pos_api.services.transaction import TransactionCoordinator


def issue_token(user_id, minutes=30):
    """Mint an access token the way the auth service does."""

    payload = {
        "sub": str(user_id),
        "type": "access",
        "exp": datetime.now(timezone.utc) + timedelta(minutes=minutes),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'pos.db'}"


@pytest.fixture
def engine(database_url):
    engine = build_engine(database_url)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def coordinator(engine):
    return TransactionCoordinator(build_session_factory(engine, locking=True))


@pytest.fixture
def manager(coordinator, session_factory):
    return SaleLifecycleManager(coordinator, session_factory)


@pytest.fixture
def users(session_factory):
    with session_factory() as db:
        admin = User(name="Admin", email="admin@example.com", role=ROLE_ADMIN)
        seller = User(name="Seller", email="seller@example.com", role=ROLE_SELLER)
        db.add_all([admin, seller])
        db.commit()
        return {"admin": admin, "seller": seller}


@pytest.fixture
def seller(users):
    return users["seller"]


@pytest.fixture
def buyer(session_factory):
    with session_factory() as db:
        client = Client(name="Maria Silva", document="123.456.789-00")
        db.add(client)
        db.commit()
        return client


@pytest.fixture
def make_product(session_factory):
    def _make(price="10.00", stock=5, active=True, name=None):
        with session_factory() as db:
            product = Product(
                name=name or f"Product {price}/{stock}",
                sale_price=Decimal(price),
                stock=stock,
                active=active,
            )
            db.add(product)
            db.commit()
            return product.id

    return _make


@pytest.fixture
def product_state(session_factory):
    """Read a product's committed stock and price from a fresh session."""

    def _state(product_id):
        with session_factory() as db:
            product = db.get(Product, product_id)
            return product.stock, Decimal(product.sale_price)

    return _state


@pytest.fixture
def api_client(session_factory, manager):
    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_sale_manager] = lambda: manager

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(users):
    def _headers(role):
        token = issue_token(users[role].id)
        return {"Authorization": f"Bearer {token}"}

    return _headers
