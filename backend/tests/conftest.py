"""
Pytest fixtures for storefront backend tests.

Provides an in-memory app, a per-test clean database, the test client and
small factories for catalog rows and users.
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from storefront import create_app
from storefront.extensions import db
from storefront.models import Category, Product
from storefront.services.auth_service import create_user


BASE_TIME = datetime(2026, 1, 1, 12, 0, 0)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'LOG_LEVEL': 'WARNING',
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
def category(db_session):
    """Top-level 'games' category."""
    cat = Category(name="Games", slug="games")
    db_session.add(cat)
    db_session.commit()
    return cat


@pytest.fixture(scope='function')
def make_product(db_session, category):
    """
    Factory for products.

    Each call gets a created_at one minute after the previous one, so the
    default newest-first ordering is deterministic.
    """
    counter = {"n": 0}

    def _make(slug: str, price: str = "10.00", **overrides) -> Product:
        counter["n"] += 1
        fields = {
            "name": slug.replace("-", " ").title(),
            "slug": slug,
            "price": Decimal(price),
            "category_id": category.id,
            "status": "active",
            "featured": False,
            "created_at": BASE_TIME + timedelta(minutes=counter["n"]),
        }
        fields.update(overrides)
        product = Product(**fields)
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def customer(db_session):
    """Active customer with password 'secret123'."""
    return create_user(
        email="ada@example.com",
        password="secret123",
        first_name="Ada",
        last_name="Lovelace",
    )


@pytest.fixture(scope='function')
def abc_products(make_product):
    """
    Products used by the combined filter scenario:
    A: active / PC / 29.99 / featured
    B: active / PlayStation / 19.99 / not featured
    C: inactive / PC / 49.99 / not featured
    """
    a = make_product("product-a", "29.99", platform="PC", featured=True)
    b = make_product("product-b", "19.99", platform="PlayStation")
    c = make_product("product-c", "49.99", platform="PC", status="inactive")
    return a, b, c
