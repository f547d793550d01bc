from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from .user import UserCreate, normalize_email


class RegisterRequest(UserCreate):
    pass


class LoginRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email_field(cls, v):
        return normalize_email(v)


class RefreshRequest(BaseModel):
    refresh_token: str = Field(min_length=1)
