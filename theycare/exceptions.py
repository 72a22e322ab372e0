"""
Custom exception classes and FastAPI exception handlers.

Services raise domain-specific errors (InvalidCodeError, AccountNotActiveError,
...) without importing HTTP concepts. The handlers registered here translate
them into consistent JSON responses:

    {"detail": "human readable message", "error_type": "machine_tag", ...}

Exception hierarchy:
    TheyCareError (base)
    ├── InvalidCredentialsError   — wrong email/password at login
    ├── SessionInvalidError       — missing, expired or forged session token
    ├── AccountNotActiveError     — authenticated, but status is not ACTIVE
    ├── UnauthorizedError         — caller lacks the required permission
    ├── InvalidCodeError          — one-time code does not match
    ├── CodeExpiredError          — one-time code expired, consumed or superseded
    ├── TooManyAttemptsError      — too many wrong codes for the live challenge
    ├── DispatchFailureError      — the SMS/console channel could not send the code
    ├── DuplicateEmailError       — registration with an email already in use
    ├── UserNotFoundError         — admin lookup of an unknown user
    └── InvalidRoleSetError       — empty role set
"""

import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class TheyCareError(Exception):
    """Base exception for all TheyCare domain errors."""

    status_code = 400
    error_type = "error"

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)

    def extra(self) -> dict:
        """Additional JSON fields for the error response."""
        return {}


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

class InvalidCredentialsError(TheyCareError):
    """Raised when login credentials are incorrect."""

    status_code = 401
    error_type = "invalid_credentials"

    def __init__(self):
        super().__init__("Invalid email or password")


class SessionInvalidError(TheyCareError):
    """Raised when the bearer token is missing, expired or tampered with."""

    status_code = 401
    error_type = "session_invalid"

    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(detail)


class AccountNotActiveError(TheyCareError):
    """
    Raised when an authenticated user's account is not ACTIVE.

    Attributes:
        status: The account's current status (PENDING, SUSPENDED, INACTIVE).
    """

    status_code = 403
    error_type = "account_not_active"

    def __init__(self, status: str):
        self.status = status
        super().__init__(f"Account is not active (status: {status.lower()})")

    def extra(self) -> dict:
        return {"status": self.status}


class UnauthorizedError(TheyCareError):
    """Raised when the caller's permission set lacks the required permission."""

    status_code = 403
    error_type = "unauthorized"

    def __init__(self, permission: str | None = None, detail: str | None = None):
        self.permission = permission
        if detail is None:
            detail = "You do not have access to this resource"
            if permission:
                detail = f"Missing permission: {permission}"
        super().__init__(detail)

    def extra(self) -> dict:
        return {"permission": self.permission} if self.permission else {}


# ---------------------------------------------------------------------------
# One-time codes
# ---------------------------------------------------------------------------

class InvalidCodeError(TheyCareError):
    """Raised when a one-time code does not match the live challenge."""

    error_type = "invalid_code"

    def __init__(self, detail: str = "Invalid verification code"):
        super().__init__(detail)


class CodeExpiredError(TheyCareError):
    """Raised for expired, already-used or superseded one-time codes."""

    error_type = "expired"

    def __init__(
        self,
        detail: str = "Verification code has expired. Please request a new code.",
    ):
        super().__init__(detail)


class TooManyAttemptsError(TheyCareError):
    """Raised once the live challenge has used up its verification attempts."""

    status_code = 429
    error_type = "too_many_attempts"

    def __init__(self, detail: str = "Too many attempts. Please request a new code."):
        super().__init__(detail)


class DispatchFailureError(TheyCareError):
    """Raised when the OTP channel could not deliver the code."""

    status_code = 502
    error_type = "dispatch_failure"

    def __init__(
        self,
        detail: str = "Failed to send verification code. Please try again.",
    ):
        super().__init__(detail)


# ---------------------------------------------------------------------------
# Credential store
# ---------------------------------------------------------------------------

class DuplicateEmailError(TheyCareError):
    """Raised when attempting to register with an email that's already in use."""

    status_code = 409
    error_type = "duplicate_email"

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Email {email} is already registered")


class UserNotFoundError(TheyCareError):
    """Raised when a requested user does not exist."""

    status_code = 404
    error_type = "user_not_found"

    def __init__(self, user_id: uuid.UUID):
        self.user_id = user_id
        super().__init__(f"User {user_id} not found")


class InvalidRoleSetError(TheyCareError):
    """Raised when a user would be left with no roles."""

    status_code = 422
    error_type = "invalid_role_set"

    def __init__(self, detail: str = "A user must hold at least one role"):
        super().__init__(detail)


class InvalidProfileError(TheyCareError):
    """Raised when a profile update would leave the account unable to receive codes."""

    status_code = 422
    error_type = "invalid_profile"

    def __init__(self, detail: str):
        super().__init__(detail)


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register the domain exception handler with the FastAPI application.

    Every TheyCareError subclass carries its own status code and error_type,
    so one handler covers the whole hierarchy.
    """

    @app.exception_handler(TheyCareError)
    async def theycare_error_handler(
        request: Request, exc: TheyCareError
    ) -> JSONResponse:
        headers = None
        if isinstance(exc, SessionInvalidError):
            headers = {"WWW-Authenticate": "Bearer"}
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "error_type": exc.error_type, **exc.extra()},
            headers=headers,
        )
