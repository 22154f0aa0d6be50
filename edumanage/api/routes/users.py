"""
User administration endpoints.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from edumanage.api.deps import CurrentUser, require_permission
from edumanage.models import (Page, Permission, PermissionList, Role,
                              RoleUpdate, StatusUpdate, User, UserCreate,
                              UserStats, UserStatus, UserUpdate)
from edumanage.services import user_service

router = APIRouter(prefix="/users", tags=["users"])

admin_only = require_permission(Permission.MANAGE_USERS)


def _found(user: Optional[object], user_id: str):
    if user is None:
        raise HTTPException(status_code=404, detail=f"User {user_id} not found")
    return user


@router.get("", response_model=Page[User])
def list_users(
    role: Optional[Role] = None,
    status_filter: Optional[UserStatus] = Query(None, alias="status"),
    q: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    _: CurrentUser = Depends(admin_only),
) -> Page[User]:
    return user_service.list_users(role, status_filter, q, page, limit)


@router.get("/stats", response_model=UserStats)
def user_stats(_: CurrentUser = Depends(admin_only)) -> UserStats:
    return user_service.get_stats()


@router.post("", status_code=status.HTTP_201_CREATED, response_model=User)
def create_user(request: UserCreate, _: CurrentUser = Depends(admin_only)) -> User:
    return user_service.create_user(request)


@router.get("/{user_id}", response_model=User)
def get_user(user_id: str, _: CurrentUser = Depends(admin_only)) -> User:
    return _found(user_service.get_user(user_id), user_id)


@router.put("/{user_id}", response_model=User)
def update_user(user_id: str, changes: UserUpdate, _: CurrentUser = Depends(admin_only)) -> User:
    return _found(user_service.update_user(user_id, changes), user_id)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: str, user: CurrentUser = Depends(admin_only)) -> Response:
    if not user_service.delete_user(user_id, user["id"]):
        raise HTTPException(status_code=404, detail=f"User {user_id} not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{user_id}/role", response_model=User)
def update_role(user_id: str, request: RoleUpdate, user: CurrentUser = Depends(admin_only)) -> User:
    return _found(user_service.update_role(user_id, request.role, user["id"]), user_id)


@router.patch("/{user_id}/status", response_model=User)
def update_status(user_id: str, request: StatusUpdate, user: CurrentUser = Depends(admin_only)) -> User:
    return _found(user_service.update_status(user_id, request.status, user["id"]), user_id)


@router.get("/{user_id}/permissions", response_model=PermissionList)
def get_permissions(user_id: str, _: CurrentUser = Depends(admin_only)) -> PermissionList:
    return _found(user_service.get_permissions(user_id), user_id)
