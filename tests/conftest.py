"""
Pytest configuration.

The settings module reads the environment at import time, so the required
variables are set here before anything from farmdesk is imported.

Every test gets a fresh in-memory SQLite database shared (StaticPool) by the
request sessions and the sale finalization service.
"""

import os

os.environ["SECRET_KEY"] = "test-secret"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from farmdesk.main import app
from farmdesk.database import Base, get_db
from farmdesk.core.hashing import hash_password
from farmdesk.core.jwt import token_for_user
from farmdesk.models.customers import Customer
from farmdesk.models.products import Product
from farmdesk.models.users import User
from farmdesk.repositories.sale_store import SqlAlchemySaleStore
from farmdesk.routers.sales import get_sale_finalizer
from farmdesk.services.sale_finalization import SaleFinalizationService


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def finalizer(session_factory):
    return SaleFinalizationService(SqlAlchemySaleStore(session_factory))


@pytest.fixture
def client(session_factory, finalizer):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_sale_finalizer] = lambda: finalizer

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Data helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def make_user(db):
    def _make(username="operator", password="s3cure-pass", role="user"):
        user = User(username=username, password_hash=hash_password(password), role=role)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_product(db):
    def _make(name="Tomato", price="5.00", stock=10, category_id=None):
        product = Product(
            name=name,
            price=Decimal(price),
            stock_quantity=stock,
            category_id=category_id,
        )
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    return _make


@pytest.fixture
def make_customer(db):
    def _make(name="Maria", email=None):
        customer = Customer(name=name, email=email)
        db.add(customer)
        db.commit()
        db.refresh(customer)
        return customer

    return _make


@pytest.fixture
def operator(make_user):
    return make_user()


def _auth_headers(user):
    token = token_for_user(user)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def operator_headers(operator):
    return _auth_headers(operator)


@pytest.fixture
def admin_headers(make_user):
    return _auth_headers(make_user(username="boss", role="admin"))


@pytest.fixture
def headers_for():
    return _auth_headers
