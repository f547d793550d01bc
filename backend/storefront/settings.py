from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "default-secret-key"
DEFAULT_JWT_REFRESH_SECRET = "refresh-secret-key"

_ENVIRONMENT_ALIASES = {
    "prod": "production",
    "production": "production",
    "stage": "staging",
    "staging": "staging",
    "dev": "development",
    "development": "development",
}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    # Runtime
    environment: str = Field(default="development", validation_alias="NODE_ENV")
    port: int = Field(default=3151, validation_alias="PORT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    # JSON lines by default; false switches to the human-readable console renderer.
    log_json: bool = Field(default=True, validation_alias="LOG_JSON")

    # Database
    database_url: str = Field(default="sqlite:///ecommerce.db", validation_alias="DATABASE_URL")
    database_echo: bool = Field(default=False, validation_alias="DB_ECHO")
    # Create missing tables on startup (no migrations are shipped).
    database_auto_create: bool = Field(default=True, validation_alias="DB_AUTO_CREATE")

    # Auth (JWT)
    jwt_secret: str = Field(default=DEFAULT_JWT_SECRET, validation_alias="JWT_SECRET")
    jwt_expires_in: str = Field(default="15m", validation_alias="JWT_EXPIRES_IN")
    jwt_refresh_secret: str = Field(
        default=DEFAULT_JWT_REFRESH_SECRET, validation_alias="JWT_REFRESH_SECRET"
    )
    jwt_refresh_expires_in: str = Field(default="7d", validation_alias="JWT_REFRESH_EXPIRES_IN")
    jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")

    # Auth (passwords / registration)
    bcrypt_rounds: int = Field(default=12, ge=4, le=31, validation_alias="BCRYPT_ROUNDS")
    # When false, self-registration can only create customers.
    auth_allow_self_assigned_role: bool = Field(
        default=False, validation_alias="AUTH_ALLOW_SELF_ASSIGNED_ROLE"
    )
    token_blacklist_max_size: int = Field(
        default=100_000, validation_alias="TOKEN_BLACKLIST_MAX_SIZE"
    )

    # CORS: comma-separated origins, "*" allows any.
    cors_origins: str = Field(default="*", validation_alias="CORS_ORIGINS")

    @property
    def normalized_environment(self) -> str:
        raw = (self.environment or "").strip().lower()
        return _ENVIRONMENT_ALIASES.get(raw, raw or "development")

    @property
    def is_production(self) -> bool:
        return self.normalized_environment == "production"

    @property
    def is_development(self) -> bool:
        return self.normalized_environment == "development"

    @property
    def database_kind(self) -> str:
        """Dialect name of DATABASE_URL, e.g. "sqlite" or "postgresql"."""
        scheme = str(self.database_url or "").partition(":")[0]
        return scheme.partition("+")[0] or "unknown"

    def require_in_production(self) -> None:
        """Refuse to run production on the built-in JWT secrets.

        Other environments keep the defaults so a fresh checkout starts as is.
        """
        if not self.is_production:
            return

        problems = [
            name
            for name, value, default in (
                ("JWT_SECRET", self.jwt_secret, DEFAULT_JWT_SECRET),
                ("JWT_REFRESH_SECRET", self.jwt_refresh_secret, DEFAULT_JWT_REFRESH_SECRET),
            )
            if not value or value == default
        ]
        if self.jwt_secret and self.jwt_secret == self.jwt_refresh_secret:
            problems.append("JWT_REFRESH_SECRET (must differ from JWT_SECRET)")
        if problems:
            raise RuntimeError("Production requires explicit settings for: " + ", ".join(problems))

    def to_log_safe_dict(self) -> dict[str, object]:
        # Secrets are reduced to whether they still hold the built-in value.
        return {
            "environment": self.normalized_environment,
            "port": self.port,
            "log_level": self.log_level,
            "database": {
                "kind": self.database_kind,
                "echo": self.database_echo,
                "auto_create": self.database_auto_create,
            },
            "auth": {
                "jwt_algorithm": self.jwt_algorithm,
                "jwt_expires_in": self.jwt_expires_in,
                "jwt_refresh_expires_in": self.jwt_refresh_expires_in,
                "jwt_secret_is_default": self.jwt_secret == DEFAULT_JWT_SECRET,
                "jwt_refresh_secret_is_default": self.jwt_refresh_secret == DEFAULT_JWT_REFRESH_SECRET,
                "bcrypt_rounds": self.bcrypt_rounds,
                "allow_self_assigned_role": self.auth_allow_self_assigned_role,
                "blacklist_max_size": self.token_blacklist_max_size,
            },
            "cors_origins": self.cors_origins,
        }


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    settings.require_in_production()
    return settings
