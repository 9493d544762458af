"""
Pytest fixtures for the storefront backend.

Every test gets a fresh in-memory SQLite schema, a session bound to it,
seed factories and a TestClient whose database and notifier are overridden.
"""
import os

# Keep the application engine off the local database file
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from database import Base, get_db
from models.category import Category
from models.product import Product
from models.users import User
from services import inventory_service
from services.notifications import get_notifier
from utils.hashing import get_password_hash
from tests.helpers import RecordingNotifier


@pytest.fixture(scope='function')
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


@pytest.fixture(scope='function')
def db(engine):
    """Session on a fresh schema."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    yield session
    session.rollback()
    session.close()


@pytest.fixture(scope='function')
def notifier():
    return RecordingNotifier()


@pytest.fixture(scope='function')
def client(db, notifier):
    """TestClient sharing the test session and the recording notifier."""
    from main import app

    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    yield TestClient(app)
    app.dependency_overrides.clear()


# ---- Factories ----

@pytest.fixture(scope='function')
def make_user(db):
    counter = {"n": 0}

    def _make(role="customer", email=None, password="Password123!"):
        counter["n"] += 1
        user = User(
            email=email or f"user{counter['n']}@example.com",
            password_hash=get_password_hash(password),
            role=role,
            first_name="Test",
            last_name=f"User{counter['n']}",
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture(scope='function')
def admin(make_user):
    return make_user(role="admin", email="admin@example.com")


@pytest.fixture(scope='function')
def customer(make_user):
    return make_user(email="gamer@example.com")


@pytest.fixture(scope='function')
def category(db):
    cat = Category(name="Headsets", slug="headsets")
    db.add(cat)
    db.commit()
    db.refresh(cat)
    return cat


@pytest.fixture(scope='function')
def make_product(db):
    counter = {"n": 0}

    def _make(name=None, price=10.0, sale_price=None, sku=None, category=None, is_active=True):
        counter["n"] += 1
        name = name or f"Gaming Product {counter['n']}"
        product = Product(
            name=name,
            slug=f"{name.lower().replace(' ', '-')}-{counter['n']}",
            sku=sku,
            price=price,
            sale_price=sale_price,
            image_url=f"https://cdn.example.com/{counter['n']}.png",
            category_id=category.id if category else None,
            stock_quantity=0,
            is_active=is_active,
        )
        db.add(product)
        db.commit()
        db.refresh(product)
        return product
    return _make


@pytest.fixture(scope='function')
def add_units(db, admin):
    """Register serialized units for a product through the inventory ledger."""
    def _add(product, *serials):
        return [inventory_service.create_unit(db, product.id, serial, admin.id) for serial in serials]
    return _add

