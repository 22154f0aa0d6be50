"""
Client-side password reset wizard.

The flow walks through four steps:

    verify        ask for the account email and request a code
    verification  enter the six-digit code that was emailed
    reset         choose the new password
    success       done

An emailed reset link skips straight to ``reset`` via :meth:`start_with_token`.
"""
from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable, Optional

from edumanage import validators
from edumanage.client.api import ApiError
from edumanage.client.services import AuthApi

logger = logging.getLogger(__name__)

RESEND_COUNTDOWN_SECONDS = 60


class ResetStep(str, Enum):
    VERIFY = "verify"
    VERIFICATION = "verification"
    RESET = "reset"
    SUCCESS = "success"


class InvalidStepError(Exception):
    """An action was attempted outside the step it belongs to."""

    def __init__(self, action: str, step: ResetStep):
        super().__init__(f"Cannot {action} during the '{step.value}' step")
        self.action = action
        self.step = step


class ResetInputError(ValueError):
    """User input was rejected before reaching the server."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class PasswordResetFlow:
    def __init__(self, auth: AuthApi, clock: Callable[[], float] = time.monotonic,
                 countdown_seconds: int = RESEND_COUNTDOWN_SECONDS):
        self.auth = auth
        self.clock = clock
        self.countdown_seconds = countdown_seconds
        self.step = ResetStep.VERIFY
        self.email: Optional[str] = None
        self.token: Optional[str] = None
        self._resend_available_at = 0.0

    def _require(self, action: str, *steps: ResetStep) -> None:
        if self.step not in steps:
            raise InvalidStepError(action, self.step)

    @property
    def countdown(self) -> int:
        """Whole seconds left before another code may be requested."""
        return max(0, int(round(self._resend_available_at - self.clock())))

    def _start_countdown(self) -> None:
        self._resend_available_at = self.clock() + self.countdown_seconds

    def request_code(self, email: str) -> str:
        """Send a reset code to ``email`` and move on to code entry."""
        self._require("request a code", ResetStep.VERIFY)
        if not email or not email.strip():
            raise ResetInputError("email", "Email is required")
        if not validators.is_valid_email(email):
            raise ResetInputError("email", "Please enter a valid email address")
        response = self.auth.forgot_password(validators.normalize_email(email))
        self.email = validators.normalize_email(email)
        self.step = ResetStep.VERIFICATION
        self._start_countdown()
        return response.get("message", "")

    def resend_code(self) -> str:
        self._require("resend the code", ResetStep.VERIFICATION)
        if self.countdown > 0:
            raise ResetInputError("code", f"Please wait {self.countdown} seconds before requesting a new code")
        response = self.auth.forgot_password(self.email)
        self._start_countdown()
        return response.get("message", "")

    def verify_code(self, code: str) -> str:
        """Exchange the emailed code for a reset token."""
        self._require("verify a code", ResetStep.VERIFICATION)
        code = "".join(ch for ch in (code or "") if ch.isdigit())[:6]
        if not validators.is_valid_reset_code(code):
            raise ResetInputError("code", "Please enter the 6-digit code")
        response = self.auth.verify_reset_code(self.email, code)
        self.token = response["token"]
        self.step = ResetStep.RESET
        return self.token

    def start_with_token(self, token: str) -> None:
        """Resume from an emailed reset link."""
        self._require("use a reset link", ResetStep.VERIFY, ResetStep.VERIFICATION)
        if not token:
            raise ResetInputError("token", "Reset link is invalid")
        self.token = token
        self.step = ResetStep.RESET

    def reset_password(self, password: str, confirm_password: str, auto_login: bool = True) -> str:
        """
        Set the new password. When the email is known the user is logged in
        afterwards; a failed login leaves them to sign in by hand.
        """
        self._require("reset the password", ResetStep.RESET)
        if not password:
            raise ResetInputError("password", "Password is required")
        problems = validators.password_problems(password)
        if problems:
            raise ResetInputError("password", problems[0])
        if not confirm_password:
            raise ResetInputError("confirmPassword", "Please confirm your password")
        if password != confirm_password:
            raise ResetInputError("confirmPassword", "Passwords do not match")

        response = self.auth.reset_password(self.token, password)
        self.step = ResetStep.SUCCESS
        self.token = None

        if auto_login and self.email:
            try:
                self.auth.login(self.email, password)
            except ApiError as e:
                logger.info(f"Automatic login after password reset failed: {e.message}")
        return response.get("message", "")
