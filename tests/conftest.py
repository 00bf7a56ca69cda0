import os

# Shared in-memory database, must be set before config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.pop("ADMIN_EMAIL", None)
os.environ.pop("ADMIN_PASSWORD", None)

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from database import Base, SessionLocal, engine
from main import app
from models.cake import Cake, CakeImage, Category
from models.users import User, ROLE_ADMIN, ROLE_CUSTOMER
from utils.hashing import get_password_hash
from utils.tokenJWT import create_access_token

PASSWORD = "secret123"


@pytest.fixture(autouse=True)
def fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


def _make_user(db, email, role=ROLE_CUSTOMER, full_name="Anna Baker"):
    user = User(
        email=email,
        password_hash=get_password_hash(PASSWORD),
        role=role,
        full_name=full_name,
        address="12 Flour Street",
        phone_number="0123456789",
        gender="female",
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def customer(db):
    return _make_user(db, "anna@sweetmail.com")


@pytest.fixture
def other_customer(db):
    return _make_user(db, "boris@sweetmail.com", full_name="Boris Crumb")


@pytest.fixture
def admin(db):
    return _make_user(db, "admin@sweetmail.com", role=ROLE_ADMIN, full_name="Shop Admin")


def auth_header(user):
    token = create_access_token({"sub": user.email, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_cake(db):
    def _make(name="Chocolate Dream", price="100.00", categories=("Chocolate",), images=()):
        cake = Cake(name=name, price=Decimal(price), description="Rich and moist layered cake")
        for cat_name in categories:
            category = db.query(Category).filter(Category.name == cat_name).first() or Category(name=cat_name)
            cake.categories.append(category)
        cake.images = [CakeImage(url=url, position=i) for i, url in enumerate(images)]
        db.add(cake)
        db.commit()
        db.refresh(cake)
        return cake
    return _make


@pytest.fixture
def auth():
    return auth_header
