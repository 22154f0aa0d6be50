"""
Authentication service: password hashing, JWT issue/verify, refresh token
rotation and the emailed-code password reset flow.
"""
from __future__ import annotations

import logging
import os
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
from jose import JWTError, jwt

from edumanage.models import (LoginResponse, ProfileUpdate, RegisterRequest,
                              Role, TokenPair, User, UserStatus)
from edumanage.services.common import parse_datetime
from edumanage.services.errors import (AuthenticationError, ConflictError,
                                       InvalidOperationError,
                                       PermissionDeniedError, RateLimitedError)
from edumanage.services.mailer import send_mail
from edumanage.storage import Collection, store

logger = logging.getLogger(__name__)

JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change-me")
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_MINUTES = int(os.getenv("ACCESS_TOKEN_MINUTES", "60"))
REFRESH_TOKEN_DAYS = int(os.getenv("REFRESH_TOKEN_DAYS", "7"))
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))
RESET_CODE_MINUTES = int(os.getenv("RESET_CODE_MINUTES", "10"))
RESET_CODE_COOLDOWN_SECONDS = int(os.getenv("RESET_CODE_COOLDOWN_SECONDS", "60"))
RESET_CODE_MAX_ATTEMPTS = int(os.getenv("RESET_CODE_MAX_ATTEMPTS", "5"))
RESET_TOKEN_MINUTES = int(os.getenv("RESET_TOKEN_MINUTES", "15"))

ACCESS = "access"
REFRESH = "refresh"
RESET = "reset"


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Passwords and tokens
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(password: str, hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is malformed")
        return False


def _encode(subject: str, token_type: str, lifetime: timedelta, **claims: Any) -> tuple[str, str]:
    """Sign a token and return (token, jti)."""
    jti = uuid.uuid4().hex
    now = _now()
    payload = {
        "sub": subject,
        "type": token_type,
        "jti": jti,
        "iat": now,
        "exp": now + lifetime,
        **claims,
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM), jti


def decode_token(token: str, expected_type: str) -> Dict[str, Any]:
    """Verify signature, expiry and token type."""
    try:
        claims = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.info(f"Rejected {expected_type} token: {e}")
        raise AuthenticationError("Invalid or expired token")
    if claims.get("type") != expected_type:
        raise AuthenticationError("Invalid token type")
    return claims


def issue_tokens(user: Dict[str, Any]) -> TokenPair:
    """Create an access token and a persisted single-use refresh token."""
    access_token, _ = _encode(
        user["id"], ACCESS, timedelta(minutes=ACCESS_TOKEN_MINUTES), role=user["role"]
    )
    lifetime = timedelta(days=REFRESH_TOKEN_DAYS)
    refresh_token, jti = _encode(user["id"], REFRESH, lifetime, role=user["role"])
    store.insert(Collection.REFRESH_TOKENS, {
        "id": jti,
        "user_id": user["id"],
        "expires_at": (_now() + lifetime).isoformat(),
        "revoked": False,
    })
    return TokenPair(token=access_token, refresh_token=refresh_token)


def revoke_refresh_tokens(user_id: str) -> int:
    """Revoke every live refresh token of a user. Returns how many were revoked."""
    revoked = 0
    for record in store.find(Collection.REFRESH_TOKENS, {"user_id": user_id, "revoked": False}):
        store.update(Collection.REFRESH_TOKENS, record["id"], {"revoked": True})
        revoked += 1
    return revoked


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------

def find_user_by_email(email: str) -> Optional[Dict[str, Any]]:
    return store.find_one(Collection.USERS, {"email": email.strip().lower()})


def create_user_document(
    name: str,
    email: str,
    password: str,
    phone: Optional[str],
    role: Role,
    status: UserStatus = UserStatus.ACTIVE,
) -> Dict[str, Any]:
    if find_user_by_email(email):
        raise ConflictError("A user with this email already exists")
    return store.insert(Collection.USERS, {
        "name": name,
        "email": email,
        "phone": phone,
        "role": Role(role).value,
        "status": UserStatus(status).value,
        "password_hash": hash_password(password),
        "last_login_at": None,
    })


def register(request: RegisterRequest) -> User:
    """Self-registration. The first account becomes the administrator."""
    role = Role.ADMIN if store.count(Collection.USERS) == 0 else Role.GUEST
    user = create_user_document(request.name, request.email, request.password, request.phone, role)
    logger.info(f"Registered user {user['id']} with role {role.value}")
    return User.model_validate(user)


def login(email: str, password: str) -> LoginResponse:
    user = find_user_by_email(email)
    if not user or not verify_password(password, user.get("password_hash")):
        raise AuthenticationError("Invalid email or password")
    if user.get("status") != UserStatus.ACTIVE.value:
        raise PermissionDeniedError("Your account is not active. Please contact the administrator.")

    user = store.update(Collection.USERS, user["id"], {"last_login_at": _now().isoformat()})
    tokens = issue_tokens(user)
    logger.info(f"User {user['id']} logged in")
    return LoginResponse(token=tokens.token, refresh_token=tokens.refresh_token, user=User.model_validate(user))


def refresh(refresh_token: str) -> TokenPair:
    """Exchange a refresh token for a new pair. The old one is revoked."""
    claims = decode_token(refresh_token, REFRESH)
    record = store.get(Collection.REFRESH_TOKENS, claims["jti"])
    if not record or record.get("revoked"):
        raise AuthenticationError("Refresh token has been revoked")
    store.update(Collection.REFRESH_TOKENS, record["id"], {"revoked": True})

    user = store.get(Collection.USERS, claims["sub"])
    if not user or user.get("status") != UserStatus.ACTIVE.value:
        raise AuthenticationError("User is no longer active")
    return issue_tokens(user)


def logout(user_id: str) -> None:
    count = revoke_refresh_tokens(user_id)
    logger.info(f"User {user_id} logged out, revoked {count} refresh token(s)")


def get_user_for_token(token: str) -> Dict[str, Any]:
    """Resolve an access token to its active user document."""
    claims = decode_token(token, ACCESS)
    user = store.get(Collection.USERS, claims["sub"])
    if not user:
        raise AuthenticationError("User not found")
    if user.get("status") != UserStatus.ACTIVE.value:
        raise PermissionDeniedError("Your account is not active")
    return user


def update_profile(user_id: str, changes: ProfileUpdate) -> User:
    updates = changes.model_dump(exclude_unset=True, exclude_none=True)
    user = store.update(Collection.USERS, user_id, updates)
    return User.model_validate(user)


def change_password(user_id: str, current_password: str, new_password: str) -> None:
    user = store.get(Collection.USERS, user_id)
    if not user or not verify_password(current_password, user.get("password_hash")):
        raise InvalidOperationError("Current password is incorrect")
    if current_password == new_password:
        raise InvalidOperationError("New password must be different from the current password")
    store.update(Collection.USERS, user_id, {"password_hash": hash_password(new_password)})
    revoke_refresh_tokens(user_id)
    logger.info(f"User {user_id} changed password")


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------

def _generate_code() -> str:
    return f"{secrets.randbelow(900000) + 100000}"


def request_password_reset(email: str) -> None:
    """
    Email a 6-digit reset code to an active account.

    Unknown or inactive emails are ignored silently so callers cannot probe
    which addresses are registered.
    """
    user = find_user_by_email(email)
    if not user or user.get("status") != UserStatus.ACTIVE.value:
        logger.info("Password reset requested for an unknown or inactive account")
        return

    existing = store.find_one(Collection.PASSWORD_RESETS, {"user_id": user["id"]})
    if existing:
        last_sent = parse_datetime(existing.get("last_sent_at"))
        if last_sent and (_now() - last_sent).total_seconds() < RESET_CODE_COOLDOWN_SECONDS:
            raise RateLimitedError("Please wait before requesting another code")
        store.delete(Collection.PASSWORD_RESETS, existing["id"])

    code = _generate_code()
    now = _now()
    store.insert(Collection.PASSWORD_RESETS, {
        "user_id": user["id"],
        "email": user["email"],
        "code_hash": hash_password(code),
        "expires_at": (now + timedelta(minutes=RESET_CODE_MINUTES)).isoformat(),
        "last_sent_at": now.isoformat(),
        "attempts": 0,
        "token_jti": None,
    })
    send_mail(
        user["email"],
        "Your password reset code",
        f"Hello {user['name']},\n\n"
        f"Your password reset code is {code}. It expires in {RESET_CODE_MINUTES} minutes.\n\n"
        "If you did not ask to reset your password you can ignore this email.",
    )
    logger.info(f"Password reset code issued for user {user['id']}")


def verify_reset_code(email: str, code: str) -> str:
    """Check a reset code and return a short-lived single-use reset token."""
    record = store.find_one(Collection.PASSWORD_RESETS, {"email": email.strip().lower()})
    if not record or record.get("token_jti"):
        raise InvalidOperationError("Invalid or expired verification code")

    expires_at = parse_datetime(record.get("expires_at"))
    if not expires_at or expires_at <= _now():
        store.delete(Collection.PASSWORD_RESETS, record["id"])
        raise InvalidOperationError("Verification code has expired. Please request a new one.")
    if record.get("attempts", 0) >= RESET_CODE_MAX_ATTEMPTS:
        store.delete(Collection.PASSWORD_RESETS, record["id"])
        raise InvalidOperationError("Too many incorrect attempts. Please request a new code.")

    if not verify_password(code, record.get("code_hash")):
        store.update(Collection.PASSWORD_RESETS, record["id"], {"attempts": record.get("attempts", 0) + 1})
        raise InvalidOperationError("Invalid verification code")

    token, jti = _encode(record["user_id"], RESET, timedelta(minutes=RESET_TOKEN_MINUTES))
    store.update(Collection.PASSWORD_RESETS, record["id"], {"token_jti": jti})
    return token


def reset_password(token: str, new_password: str) -> None:
    """Replace the password behind a reset token and sign the user out everywhere."""
    try:
        claims = decode_token(token, RESET)
    except AuthenticationError:
        raise InvalidOperationError("Invalid or expired reset token")

    record = store.find_one(Collection.PASSWORD_RESETS, {"token_jti": claims["jti"]})
    if not record or record.get("user_id") != claims["sub"]:
        raise InvalidOperationError("Invalid or expired reset token")

    user = store.update(Collection.USERS, claims["sub"], {"password_hash": hash_password(new_password)})
    store.delete(Collection.PASSWORD_RESETS, record["id"])
    if user is None:
        raise InvalidOperationError("Invalid or expired reset token")
    revoke_refresh_tokens(user["id"])
    logger.info(f"Password reset completed for user {user['id']}")
