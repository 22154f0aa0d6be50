"""
Service layer for user administration.
"""
from __future__ import annotations

import logging
from collections import Counter
from typing import Optional

from edumanage.models import (Page, PermissionList, Role, User, UserCreate,
                              UserStats, UserStatus, UserUpdate)
from edumanage.services import auth_service
from edumanage.services.common import (DEFAULT_LIMIT, DEFAULT_PAGE,
                                       matches_search, newest_first, paginate)
from edumanage.services.errors import ConflictError, InvalidOperationError
from edumanage.services.permissions import permissions_for
from edumanage.storage import Collection, store

logger = logging.getLogger(__name__)

ADMIN_ROLES = (Role.SUPER_ADMIN.value, Role.ADMIN.value)


def list_users(
    role: Optional[Role] = None,
    status: Optional[UserStatus] = None,
    q: Optional[str] = None,
    page: int = DEFAULT_PAGE,
    limit: int = DEFAULT_LIMIT,
) -> Page[User]:
    filters = {}
    if role:
        filters["role"] = role.value
    if status:
        filters["status"] = status.value
    users = [
        doc for doc in newest_first(store.find(Collection.USERS, filters))
        if matches_search(doc, q, ("name", "email", "phone"))
    ]
    items, total, page, limit = paginate(users, page, limit)
    return Page[User](items=[User.model_validate(doc) for doc in items], total=total, page=page, limit=limit)


def get_user(user_id: str) -> Optional[User]:
    user = store.get(Collection.USERS, user_id)
    return User.model_validate(user) if user else None


def create_user(request: UserCreate) -> User:
    user = auth_service.create_user_document(
        request.name, request.email, request.password, request.phone, request.role, request.status
    )
    logger.info(f"Created user {user['id']} with role {user['role']}")
    return User.model_validate(user)


def update_user(user_id: str, changes: UserUpdate) -> Optional[User]:
    if not store.get(Collection.USERS, user_id):
        return None
    updates = changes.model_dump(exclude_unset=True, exclude_none=True)
    if "email" in updates:
        other = auth_service.find_user_by_email(updates["email"])
        if other and other["id"] != user_id:
            raise ConflictError("A user with this email already exists")
    return User.model_validate(store.update(Collection.USERS, user_id, updates))


def delete_user(user_id: str, acting_user_id: str) -> bool:
    if user_id == acting_user_id:
        raise InvalidOperationError("You cannot delete your own account")
    deleted = store.delete(Collection.USERS, user_id)
    if deleted:
        auth_service.revoke_refresh_tokens(user_id)
        logger.info(f"Deleted user {user_id}")
    return deleted


def update_role(user_id: str, role: Role, acting_user_id: str) -> Optional[User]:
    user = store.get(Collection.USERS, user_id)
    if not user:
        return None
    if user_id == acting_user_id and user["role"] in ADMIN_ROLES and role.value not in ADMIN_ROLES:
        raise InvalidOperationError("You cannot remove your own administrator role")
    return User.model_validate(store.update(Collection.USERS, user_id, {"role": role.value}))


def update_status(user_id: str, status: UserStatus, acting_user_id: str) -> Optional[User]:
    if not store.get(Collection.USERS, user_id):
        return None
    if user_id == acting_user_id and status != UserStatus.ACTIVE:
        raise InvalidOperationError("You cannot deactivate your own account")
    user = store.update(Collection.USERS, user_id, {"status": status.value})
    if status != UserStatus.ACTIVE:
        auth_service.revoke_refresh_tokens(user_id)
    return User.model_validate(user)


def get_permissions(user_id: str) -> Optional[PermissionList]:
    user = store.get(Collection.USERS, user_id)
    if not user:
        return None
    return PermissionList(role=user["role"], permissions=permissions_for(user["role"]))


def get_stats() -> UserStats:
    users = store.find(Collection.USERS)
    return UserStats(
        total=len(users),
        by_role=dict(Counter(user["role"] for user in users)),
        by_status=dict(Counter(user["status"] for user in users)),
    )
