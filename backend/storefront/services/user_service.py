from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth.passwords import hash_password, verify_password
from ..auth.tokens import fingerprint
from ..db import commit
from ..errors import Conflict, NotFound
from ..models import User
from ..observability.logging import get_logger
from ..repositories.query_builder import query_builder
from ..schemas.user import UserCreate, UserQuery, UserUpdate

log = get_logger("users")

SEARCH_FIELDS = ("first_name", "last_name", "email", "city", "state")


class UserService:
    def __init__(self, db: Session, *, bcrypt_rounds: int = 12):
        self.db = db
        self.bcrypt_rounds = bcrypt_rounds

    def create(self, data: UserCreate) -> User:
        if self.find_by_email(data.email) is not None:
            raise Conflict(message="User with this email already exists", entity="User")

        fields = data.model_dump(exclude={"password"}, exclude_none=True)
        user = User(**fields, password_hash=hash_password(data.password, rounds=self.bcrypt_rounds))
        self.db.add(user)
        commit(self.db, conflict_message="User with this email already exists", entity="User")
        log.info("user_created", user_id=user.user_id, role=user.role)
        return user

    def find_all(self, query: UserQuery) -> dict[str, Any]:
        qb = query_builder
        stmt = select(User)
        stmt = qb.apply_search(stmt, query.search, SEARCH_FIELDS, User)
        stmt = qb.apply_string_filters(
            stmt,
            User,
            query.model_dump(include={"email", "first_name", "last_name", "city", "state", "country"}),
        )
        stmt = qb.apply_date_filters(stmt, User, query.created_after, query.created_before)
        stmt = qb.apply_includes(stmt, query.include, User)
        stmt = qb.apply_sorting(stmt, query, User)
        return qb.paginate(self.db, stmt, query)

    def find_one(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFound(message=f"User with ID {user_id} not found", entity="User", key={"user_id": user_id})
        return user

    def find_by_email(self, email: str) -> User | None:
        return self.db.scalar(select(User).where(User.email == email))

    def update(self, user_id: int, data: UserUpdate) -> User:
        user = self.find_one(user_id)
        changes = data.model_dump(exclude_unset=True)

        new_email = changes.get("email")
        if new_email and new_email != user.email:
            if self.find_by_email(new_email) is not None:
                raise Conflict(message="User with this email already exists", entity="User")

        password = changes.pop("password", None)
        if password:
            user.password_hash = hash_password(password, rounds=self.bcrypt_rounds)

        for key, value in changes.items():
            # Required columns ignore an explicit null.
            if value is None and key in ("email", "first_name", "last_name", "role", "is_active"):
                continue
            setattr(user, key, value)

        commit(self.db, conflict_message="User with this email already exists", entity="User")
        log.info("user_updated", user_id=user.user_id, fields=sorted(changes) + (["password"] if password else []))
        return user

    def remove(self, user_id: int) -> None:
        user = self.find_one(user_id)
        self.db.delete(user)
        commit(self.db, conflict_message="User still has orders and cannot be deleted", entity="User")
        log.info("user_deleted", user_id=user_id)

    def update_refresh_token(self, user_id: int, refresh_token: str | None) -> None:
        user = self.find_one(user_id)
        user.refresh_token_hash = fingerprint(refresh_token) if refresh_token else None
        commit(self.db, entity="User")

    def validate_password(self, user: User, password: str) -> bool:
        return verify_password(password, user.password_hash)
