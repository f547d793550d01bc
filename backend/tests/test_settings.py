from __future__ import annotations

import pytest

from storefront.settings import DEFAULT_JWT_SECRET, Settings


def test_defaults():
    s = Settings()
    assert s.port == 3151
    assert s.jwt_expires_in == "15m"
    assert s.jwt_refresh_expires_in == "7d"
    assert s.bcrypt_rounds == 12
    assert s.database_kind == "sqlite"
    assert s.auth_allow_self_assigned_role is False


def test_environment_variables_are_read(monkeypatch):
    monkeypatch.setenv("NODE_ENV", "prod")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("DATABASE_URL", "postgresql+psycopg://u:p@db/shop")
    s = Settings()
    assert s.is_production
    assert s.port == 8080
    assert s.database_kind == "postgresql"


def test_production_requires_explicit_secrets():
    with pytest.raises(RuntimeError, match="JWT_SECRET"):
        Settings(environment="production").require_in_production()

    with pytest.raises(RuntimeError, match="must differ"):
        Settings(environment="production", jwt_secret="same", jwt_refresh_secret="same").require_in_production()

    Settings(environment="production", jwt_secret="a", jwt_refresh_secret="b").require_in_production()
    # Development tolerates the built-in secrets.
    Settings(environment="development", jwt_secret=DEFAULT_JWT_SECRET).require_in_production()


def test_log_safe_dict_has_no_secrets():
    s = Settings(jwt_secret="super-secret-value", jwt_refresh_secret="another-secret")
    rendered = repr(s.to_log_safe_dict())
    assert "super-secret-value" not in rendered
    assert "another-secret" not in rendered
    assert s.to_log_safe_dict()["auth"]["jwt_secret_is_default"] is False
