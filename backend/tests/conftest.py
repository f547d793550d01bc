from __future__ import annotations

import itertools

import pytest
from fastapi.testclient import TestClient

from storefront.auth.passwords import hash_password
from storefront.main import create_app
from storefront.models import Product, User
from storefront.settings import Settings

DEFAULT_PASSWORD = "password123"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        environment="test",
        database_url="sqlite://",
        bcrypt_rounds=4,
        jwt_secret="test-access-secret",
        jwt_refresh_secret="test-refresh-secret",
        log_level="WARNING",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    # Entering the client runs the lifespan, which creates the tables.
    with TestClient(app) as c:
        yield c


@pytest.fixture
def create_user(app, client):
    counter = itertools.count(1)

    def _create(*, role="customer", email=None, password=DEFAULT_PASSWORD, is_active=True, **fields):
        n = next(counter)
        fields.setdefault("first_name", "Test")
        fields.setdefault("last_name", f"User{n}")
        with app.state.database.session() as s:
            user = User(
                email=email or f"user{n}@mail.com",
                password_hash=hash_password(password, rounds=4),
                role=role,
                is_active=is_active,
                **fields,
            )
            s.add(user)
            s.commit()
            return user

    return _create


@pytest.fixture
def create_product(app, client):
    counter = itertools.count(1)

    def _create(**fields):
        n = next(counter)
        fields.setdefault("name", f"Test Product {n}")
        fields.setdefault("price", 10.0 * n)
        fields.setdefault("category", "Electronics")
        fields.setdefault("stock_quantity", 10)
        with app.state.database.session() as s:
            product = Product(**fields)
            s.add(product)
            s.commit()
            return product

    return _create


@pytest.fixture
def auth_headers(app):
    def _headers(user: User) -> dict[str, str]:
        token = app.state.token_service.issue(user_id=user.user_id, email=user.email, role=user.role)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def admin(create_user):
    return create_user(role="admin", email="admin@mail.com")


@pytest.fixture
def moderator(create_user):
    return create_user(role="moderator", email="moderator@mail.com")


@pytest.fixture
def customer(create_user):
    return create_user(role="customer", email="customer@mail.com")


@pytest.fixture
def admin_headers(admin, auth_headers):
    return auth_headers(admin)


@pytest.fixture
def moderator_headers(moderator, auth_headers):
    return auth_headers(moderator)


@pytest.fixture
def customer_headers(customer, auth_headers):
    return auth_headers(customer)
