from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import Field

from edumanage.models.common import ApiModel, Email, Password, PersonName, Phone


class Role(str, Enum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    INSTRUCTOR = "instructor"
    STUDENT = "student"
    GUEST = "guest"


class UserStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class Permission(str, Enum):
    ACCESS_ALL = "access_all"
    MANAGE_USERS = "manage_users"
    MANAGE_COURSES = "manage_courses"
    MANAGE_CONTENT = "manage_content"
    MANAGE_LEADS = "manage_leads"
    MANAGE_STUDENTS = "manage_students"
    MANAGE_PAYMENTS = "manage_payments"
    MANAGE_ATTENDANCE = "manage_attendance"
    VIEW_ANALYTICS = "view_analytics"
    VIEW_LEADS = "view_leads"
    VIEW_STUDENTS = "view_students"
    VIEW_COURSES = "view_courses"
    VIEW_CONTENT = "view_content"
    ENROLL_COURSES = "enroll_courses"


class User(ApiModel):
    id: str = Field(..., description="Unique user identifier")
    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Login email (lower-case)")
    phone: Optional[str] = Field(None, description="Contact number")
    role: Role = Field(Role.GUEST, description="Role controlling permissions")
    status: UserStatus = Field(UserStatus.ACTIVE, description="Only active users can log in")
    last_login_at: Optional[datetime] = Field(None, description="Time of the last successful login")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RegisterRequest(ApiModel):
    name: PersonName
    email: Email
    password: Password
    phone: Optional[Phone] = None


class UserCreate(RegisterRequest):
    role: Role = Role.GUEST
    status: UserStatus = UserStatus.ACTIVE


class UserUpdate(ApiModel):
    name: Optional[PersonName] = None
    email: Optional[Email] = None
    phone: Optional[Phone] = None


class ProfileUpdate(ApiModel):
    name: Optional[PersonName] = None
    phone: Optional[Phone] = None


class RoleUpdate(ApiModel):
    role: Role


class StatusUpdate(ApiModel):
    status: UserStatus


class LoginRequest(ApiModel):
    email: Email
    password: str = Field(..., min_length=1)


class RefreshRequest(ApiModel):
    refresh_token: str = Field(..., min_length=1)


class TokenPair(ApiModel):
    token: str = Field(..., description="Short-lived access token")
    refresh_token: str = Field(..., description="Single-use refresh token")


class LoginResponse(TokenPair):
    user: User


class AuthCheck(ApiModel):
    authenticated: bool
    user: Optional[User] = None


class ChangePasswordRequest(ApiModel):
    current_password: str = Field(..., min_length=1)
    new_password: Password


class ForgotPasswordRequest(ApiModel):
    email: Email


class VerifyResetCodeRequest(ApiModel):
    email: Email
    code: str = Field(..., pattern=r"^\d{6}$", description="Six-digit code sent by email")


class ResetTokenResponse(ApiModel):
    token: str
    message: str = "Code verified"


class ResetPasswordRequest(ApiModel):
    token: str = Field(..., min_length=1)
    password: Password


class UserStats(ApiModel):
    total: int
    by_role: Dict[str, int]
    by_status: Dict[str, int]


class PermissionList(ApiModel):
    role: Role
    permissions: List[Permission]


__all__ = [
    "Role",
    "UserStatus",
    "Permission",
    "User",
    "RegisterRequest",
    "UserCreate",
    "UserUpdate",
    "ProfileUpdate",
    "RoleUpdate",
    "StatusUpdate",
    "LoginRequest",
    "RefreshRequest",
    "TokenPair",
    "LoginResponse",
    "AuthCheck",
    "ChangePasswordRequest",
    "ForgotPasswordRequest",
    "VerifyResetCodeRequest",
    "ResetTokenResponse",
    "ResetPasswordRequest",
    "UserStats",
    "PermissionList",
]
