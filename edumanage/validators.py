"""
Validation helpers shared by the API models and the client package.
"""
from __future__ import annotations

import re
from typing import List, Optional

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_REGEX = re.compile(r"^\+?[1-9]\d{0,15}$")
RESET_CODE_REGEX = re.compile(r"^\d{6}$")
PASSWORD_MIN_LENGTH = 8
PASSWORD_SPECIAL_CHARACTERS = "@$!%*?&#^"


def is_valid_email(email: Optional[str]) -> bool:
    """Check an email address against the basic `local@domain.tld` shape."""
    return bool(email) and EMAIL_REGEX.match(email.strip()) is not None


def normalize_email(email: str) -> str:
    return email.strip().lower()


def clean_phone(phone: str) -> str:
    """Strip spaces, dashes and parentheses from a phone number."""
    return re.sub(r"[\s\-()]", "", phone)


def is_valid_phone(phone: Optional[str]) -> bool:
    return bool(phone) and PHONE_REGEX.match(clean_phone(phone)) is not None


def password_problems(password: Optional[str]) -> List[str]:
    """Return every strength rule the password breaks (empty list if strong)."""
    password = password or ""
    problems = []
    if len(password) < PASSWORD_MIN_LENGTH:
        problems.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if not re.search(r"[a-z]", password):
        problems.append("Password must contain at least one lowercase letter")
    if not re.search(r"[A-Z]", password):
        problems.append("Password must contain at least one uppercase letter")
    if not re.search(r"\d", password):
        problems.append("Password must contain at least one number")
    if not any(ch in PASSWORD_SPECIAL_CHARACTERS for ch in password):
        problems.append(
            f"Password must contain at least one special character ({PASSWORD_SPECIAL_CHARACTERS})"
        )
    return problems


def is_valid_reset_code(code: Optional[str]) -> bool:
    return bool(code) and RESET_CODE_REGEX.match(code) is not None


# Pydantic field validator bodies


def check_email(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    if not is_valid_email(value):
        raise ValueError("Please enter a valid email address")
    return normalize_email(value)


def check_phone(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    if not is_valid_phone(value):
        raise ValueError("Please enter a valid phone number")
    return clean_phone(value)


def check_password(value: str) -> str:
    problems = password_problems(value)
    if problems:
        raise ValueError("; ".join(problems))
    return value


def check_name(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    if not value.strip():
        raise ValueError("Name cannot be empty")
    return value.strip()
