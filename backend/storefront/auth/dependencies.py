from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import STAFF_ROLES, User
from ..models.user import ROLE_ADMIN
from ..observability.logging import get_logger
from .blacklist import TokenBlacklist
from .tokens import TOKEN_ACCESS, InvalidTokenError, TokenService

log = get_logger("auth")

bearer_scheme = HTTPBearer(auto_error=False)


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_token_blacklist(request: Request) -> TokenBlacklist:
    return request.app.state.token_blacklist


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: Annotated[Session, Depends(get_db)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
    blacklist: Annotated[TokenBlacklist, Depends(get_token_blacklist)],
) -> User:
    """Resolve the bearer token to an active user, or fail with 401."""
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Missing or invalid Authorization header")

    token = credentials.credentials
    if blacklist.is_blacklisted(token):
        raise _unauthorized("Token has been revoked")

    try:
        claims = tokens.verify(token, TOKEN_ACCESS)
    except InvalidTokenError as e:
        log.info("token_rejected", reason=str(e))
        raise _unauthorized("Invalid or expired token") from e

    user = db.get(User, claims.user_id)
    if user is None:
        raise _unauthorized("User not found")
    if not user.is_active:
        raise _unauthorized("User account is inactive")

    request.state.user = user
    request.state.access_token = token
    request.state.token_claims = claims
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


def require_roles(*roles: str):
    allowed = tuple(roles)

    def dependency(user: CurrentUser) -> User:
        if user.role not in allowed:
            raise HTTPException(
                status_code=403,
                detail=f"Access denied. Required roles: {', '.join(allowed)}",
            )
        return user

    return dependency


StaffUser = Annotated[User, Depends(require_roles(*STAFF_ROLES))]
AdminUser = Annotated[User, Depends(require_roles(ROLE_ADMIN))]
