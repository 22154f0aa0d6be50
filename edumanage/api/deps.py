"""
Request dependencies: bearer-token authentication and permission checks.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from edumanage.models import Permission
from edumanage.services import auth_service
from edumanage.services.errors import PermissionDeniedError
from edumanage.services.permissions import has_permission

bearer_scheme = HTTPBearer(auto_error=False)

CurrentUser = Dict[str, Any]


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> CurrentUser:
    """Resolve the Authorization header to the caller's user document."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return auth_service.get_user_for_token(credentials.credentials)


def require_permission(*permissions: Permission) -> Callable[..., CurrentUser]:
    """Dependency factory: the caller must hold at least one of the permissions."""

    def dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not any(has_permission(user["role"], permission) for permission in permissions):
            raise PermissionDeniedError("You do not have permission to perform this action")
        return user

    return dependency
