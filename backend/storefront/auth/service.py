from __future__ import annotations

import hmac
from typing import Any

from sqlalchemy.orm import Session

from ..db import serialize
from ..errors import Forbidden, Unauthorized
from ..models import User
from ..models.user import ROLE_CUSTOMER
from ..observability.logging import get_logger
from ..schemas.auth import RegisterRequest
from ..services.user_service import UserService
from .blacklist import TokenBlacklist
from .tokens import TOKEN_REFRESH, InvalidTokenError, TokenService, fingerprint

log = get_logger("auth")


class AuthService:
    """Registration, login, refresh-token rotation and logout."""

    def __init__(
        self,
        db: Session,
        *,
        tokens: TokenService,
        blacklist: TokenBlacklist,
        bcrypt_rounds: int = 12,
        allow_self_assigned_role: bool = False,
    ):
        self.users = UserService(db, bcrypt_rounds=bcrypt_rounds)
        self.tokens = tokens
        self.blacklist = blacklist
        self.allow_self_assigned_role = allow_self_assigned_role

    def _session_for(self, user: User) -> dict[str, Any]:
        pair = self.tokens.issue_pair(user_id=user.user_id, email=user.email, role=user.role)
        self.users.update_refresh_token(user.user_id, pair["refresh_token"])
        return {"user": serialize(user), **pair}

    def register(self, data: RegisterRequest) -> dict[str, Any]:
        if data.role and data.role != ROLE_CUSTOMER and not self.allow_self_assigned_role:
            raise Forbidden(message="Cannot self-assign a privileged role", entity="User")

        user = self.users.create(data)
        log.info("user_registered", user_id=user.user_id)
        return self._session_for(user)

    def login(self, email: str, password: str) -> dict[str, Any]:
        user = self.users.find_by_email(email)
        if user is None or not self.users.validate_password(user, password):
            log.info("login_failed", reason="invalid_credentials")
            raise Unauthorized(message="Invalid credentials")
        if not user.is_active:
            log.info("login_failed", reason="inactive", user_id=user.user_id)
            raise Unauthorized(message="Account is deactivated")

        log.info("login_succeeded", user_id=user.user_id)
        return self._session_for(user)

    def refresh(self, refresh_token: str) -> dict[str, Any]:
        try:
            claims = self.tokens.verify(refresh_token, TOKEN_REFRESH)
        except InvalidTokenError as e:
            log.info("refresh_rejected", reason=str(e))
            raise Unauthorized(message="Invalid refresh token") from e

        user = self.users.db.get(User, claims.user_id)
        if user is None or not user.refresh_token_hash:
            raise Unauthorized(message="Invalid refresh token")
        if not hmac.compare_digest(user.refresh_token_hash, fingerprint(refresh_token)):
            log.info("refresh_rejected", reason="stale_token", user_id=user.user_id)
            raise Unauthorized(message="Invalid refresh token")
        if not user.is_active:
            raise Unauthorized(message="Account is deactivated")

        log.info("token_refreshed", user_id=user.user_id)
        return self._session_for(user)

    def logout(self, user: User, access_token: str | None, expires_at: float | None = None) -> dict[str, str]:
        self.users.update_refresh_token(user.user_id, None)
        if access_token:
            self.blacklist.add(access_token, expires_at)
        log.info("user_logged_out", user_id=user.user_id)
        return {"message": "Logout successful"}
