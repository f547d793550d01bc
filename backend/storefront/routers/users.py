from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from ..auth.dependencies import AdminUser, CurrentUser, StaffUser
from ..db import serialize
from ..models.user import ROLE_ADMIN
from ..schemas.user import UserQuery, UserUpdate
from ..services.user_service import UserService
from .deps import AppSettings, DbSession

router = APIRouter(prefix="/users", tags=["users"])


def get_user_service(db: DbSession, settings: AppSettings) -> UserService:
    return UserService(db, bcrypt_rounds=settings.bcrypt_rounds)


Users = Annotated[UserService, Depends(get_user_service)]


@router.get("")
def list_users(_: StaffUser, query: Annotated[UserQuery, Query()], users: Users):
    return users.find_all(query)


@router.get("/{user_id}")
def get_user(user_id: int, current: CurrentUser, users: Users):
    if current.user_id != user_id and not current.is_staff:
        raise HTTPException(status_code=403, detail="You can only access your own profile")
    return serialize(users.find_one(user_id))


@router.patch("/{user_id}")
def update_user(user_id: int, body: UserUpdate, current: CurrentUser, users: Users):
    is_admin = current.role == ROLE_ADMIN
    if current.user_id != user_id and not is_admin:
        raise HTTPException(status_code=403, detail="You can only update your own profile")
    if not is_admin and body.model_fields_set & {"role", "is_active"}:
        raise HTTPException(status_code=403, detail="Only administrators can change role or account status")
    return serialize(users.update(user_id, body))


@router.delete("/{user_id}", status_code=204)
def delete_user(user_id: int, _: AdminUser, users: Users):
    users.remove(user_id)
    return Response(status_code=204)
