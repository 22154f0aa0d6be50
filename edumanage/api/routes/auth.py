"""
Authentication endpoints: registration, login, token refresh, profile and
the three-step password reset (request code, verify code, set password).
"""
import logging

from fastapi import APIRouter, Depends, status

from edumanage.api.deps import CurrentUser, get_current_user
from edumanage.models import (AuthCheck, ChangePasswordRequest,
                              ForgotPasswordRequest, LoginRequest,
                              LoginResponse, MessageResponse, ProfileUpdate,
                              RefreshRequest, RegisterRequest,
                              ResetPasswordRequest, ResetTokenResponse,
                              TokenPair, User, VerifyResetCodeRequest)
from edumanage.services import auth_service

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)

RESET_REQUESTED_MESSAGE = "If an account exists for this email, a verification code has been sent."


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=User)
def register(request: RegisterRequest) -> User:
    """Create an account. The first account becomes the administrator."""
    return auth_service.register(request)


@router.post("/login", response_model=LoginResponse)
def login(request: LoginRequest) -> LoginResponse:
    return auth_service.login(request.email, request.password)


@router.post("/refresh-token", response_model=TokenPair)
def refresh_token(request: RefreshRequest) -> TokenPair:
    """Exchange a refresh token for a new token pair."""
    return auth_service.refresh(request.refresh_token)


@router.post("/logout", response_model=MessageResponse)
def logout(user: CurrentUser = Depends(get_current_user)) -> MessageResponse:
    auth_service.logout(user["id"])
    return MessageResponse(message="Logged out")


@router.get("/me", response_model=User)
def me(user: CurrentUser = Depends(get_current_user)) -> User:
    return User.model_validate(user)


@router.get("/check", response_model=AuthCheck)
def check(user: CurrentUser = Depends(get_current_user)) -> AuthCheck:
    return AuthCheck(authenticated=True, user=User.model_validate(user))


@router.put("/profile", response_model=User)
def update_profile(changes: ProfileUpdate, user: CurrentUser = Depends(get_current_user)) -> User:
    return auth_service.update_profile(user["id"], changes)


@router.post("/change-password", response_model=MessageResponse)
def change_password(request: ChangePasswordRequest, user: CurrentUser = Depends(get_current_user)) -> MessageResponse:
    auth_service.change_password(user["id"], request.current_password, request.new_password)
    return MessageResponse(message="Password changed. Please log in again on your other devices.")


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(request: ForgotPasswordRequest) -> MessageResponse:
    auth_service.request_password_reset(request.email)
    return MessageResponse(message=RESET_REQUESTED_MESSAGE)


@router.post("/verify-reset-code", response_model=ResetTokenResponse)
def verify_reset_code(request: VerifyResetCodeRequest) -> ResetTokenResponse:
    token = auth_service.verify_reset_code(request.email, request.code)
    return ResetTokenResponse(token=token)


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(request: ResetPasswordRequest) -> MessageResponse:
    auth_service.reset_password(request.token, request.password)
    return MessageResponse(message="Password has been reset. You can now log in.")
