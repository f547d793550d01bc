from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from .query import DateRangeQuery

Role = Literal["admin", "customer", "moderator"]

PASSWORD_MIN_LENGTH = 6
# bcrypt only looks at the first 72 bytes.
PASSWORD_MAX_BYTES = 72


def normalize_email(v: str) -> str:
    return str(v).strip().lower()


def check_password(v: str) -> str:
    if len(v.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"password must be at most {PASSWORD_MAX_BYTES} bytes")
    return v


class UserProfileFields(BaseModel):
    model_config = ConfigDict(extra="ignore")

    phone: str | None = Field(default=None, max_length=20)
    address: str | None = None
    city: str | None = Field(default=None, max_length=100)
    state: str | None = Field(default=None, max_length=100)
    zip_code: str | None = Field(default=None, max_length=20)
    country: str | None = Field(default=None, max_length=100)


class UserCreate(UserProfileFields):
    email: EmailStr
    password: str = Field(min_length=PASSWORD_MIN_LENGTH)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    role: Role | None = None

    @field_validator("email")
    @classmethod
    def normalize_email_field(cls, v):
        return normalize_email(v)

    @field_validator("password")
    @classmethod
    def check_password_field(cls, v):
        return check_password(v)


class UserUpdate(UserProfileFields):
    email: EmailStr | None = None
    password: str | None = Field(default=None, min_length=PASSWORD_MIN_LENGTH)
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    role: Role | None = None
    is_active: bool | None = None

    @field_validator("email")
    @classmethod
    def normalize_email_field(cls, v):
        return normalize_email(v) if v is not None else v

    @field_validator("password")
    @classmethod
    def check_password_field(cls, v):
        return check_password(v) if v is not None else v


class UserQuery(DateRangeQuery):
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
