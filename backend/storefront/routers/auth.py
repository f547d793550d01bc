from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from ..auth.dependencies import CurrentUser, get_token_blacklist, get_token_service
from ..auth.blacklist import TokenBlacklist
from ..auth.service import AuthService
from ..auth.tokens import TokenService
from ..db import serialize
from ..schemas.auth import LoginRequest, RefreshRequest, RegisterRequest
from .deps import AppSettings, DbSession

router = APIRouter(prefix="/auth", tags=["auth"])


def get_auth_service(
    db: DbSession,
    settings: AppSettings,
    tokens: Annotated[TokenService, Depends(get_token_service)],
    blacklist: Annotated[TokenBlacklist, Depends(get_token_blacklist)],
) -> AuthService:
    return AuthService(
        db,
        tokens=tokens,
        blacklist=blacklist,
        bcrypt_rounds=settings.bcrypt_rounds,
        allow_self_assigned_role=settings.auth_allow_self_assigned_role,
    )


Auth = Annotated[AuthService, Depends(get_auth_service)]


@router.post("/register", status_code=201)
def register(body: RegisterRequest, auth: Auth):
    return auth.register(body)


@router.post("/login")
def login(body: LoginRequest, auth: Auth):
    return auth.login(body.email, body.password)


@router.post("/refresh")
def refresh(body: RefreshRequest, auth: Auth):
    return auth.refresh(body.refresh_token)


@router.post("/logout")
def logout(request: Request, user: CurrentUser, auth: Auth):
    claims = getattr(request.state, "token_claims", None)
    return auth.logout(
        user,
        getattr(request.state, "access_token", None),
        expires_at=claims.exp if claims else None,
    )


@router.get("/profile")
def profile(user: CurrentUser):
    return serialize(user)
