from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.base import Base, utc_now

if TYPE_CHECKING:
    from .order import Order
    from .review import Review

ROLE_ADMIN = "admin"
ROLE_CUSTOMER = "customer"
ROLE_MODERATOR = "moderator"
ROLES = (ROLE_ADMIN, ROLE_CUSTOMER, ROLE_MODERATOR)
STAFF_ROLES = (ROLE_ADMIN, ROLE_MODERATOR)


class User(Base):
    __tablename__ = "users"
    __private_fields__ = frozenset({"password_hash", "refresh_token_hash"})

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    zip_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    country: Mapped[str] = mapped_column(String(100), default="Canada", server_default="Canada")
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ROLE_CUSTOMER, server_default=ROLE_CUSTOMER
    )
    # SHA-256 of the one refresh token currently allowed for this user.
    refresh_token_hash: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, server_default="1")

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now)

    # Orders are kept on user deletion; the FK makes such a delete fail instead.
    orders: Mapped[list["Order"]] = relationship(back_populates="user", passive_deletes="all")
    reviews: Mapped[list["Review"]] = relationship(
        back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    def __repr__(self):
        return f"<User {self.user_id} {self.email}>"
