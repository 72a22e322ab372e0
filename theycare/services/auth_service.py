"""
Authentication service — registration, login, OTP and password reset.

This module contains the auth business logic, separated from HTTP concerns.
The router calls these functions and translates results into responses.

Registration:
  1. Reject duplicate emails and staff roles (only self-service roles)
  2. Hash the password with Argon2id
  3. Create the user as PENDING; an administrator activates it later

Login:
  1. Look up user by email, verify the password
  2. OTP disabled → mint a session token immediately
  3. OTP enabled  → issue a LOGIN code; the token is minted by verify_login_otp

Account status is deliberately not checked at login. A PENDING or SUSPENDED
user still authenticates; the route guard then shows the blocking
"pending approval" state and protected endpoints refuse with
AccountNotActiveError.

Password reset:
  forgot_password issues a PASSWORD_RESET code, check_reset_code validates it
  without consuming, reset_password consumes it and sets the new hash.

Security notes:
  - Wrong password and unknown email raise the same error
  - Code requests for unknown emails succeed silently, so the endpoint
    cannot be used to discover accounts
"""

from dataclasses import dataclass
from typing import Iterable

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from theycare.channels import OtpChannel, is_valid_philippine_number
from theycare.exceptions import (
    DuplicateEmailError,
    InvalidCodeError,
    InvalidCredentialsError,
    InvalidProfileError,
    InvalidRoleSetError,
)
from theycare.models.otp_challenge import OtpPurpose, OtpStatus
from theycare.models.user import AccountStatus, Role, User
from theycare.permissions import SELF_SERVICE_ROLES
from theycare.security import hash_password, verify_password
from theycare.services import otp_service, user_service
from theycare.services.session_service import issue_session

logger = structlog.get_logger(__name__)

_REQUIRED_PROFILE_FIELDS = {"first_name", "last_name", "otp_enabled"}


@dataclass
class LoginResult:
    requires_otp: bool
    token: str | None = None
    user: User | None = None


async def register(
    db: AsyncSession,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    middle_name: str | None = None,
    contact_number: str | None = None,
    address: str | None = None,
    roles: Iterable[Role] | None = None,
) -> User:
    """
    Register a new user with status PENDING.

    Args:
        roles: Requested roles; defaults to VISITOR. Only self-service roles
               (VISITOR, PARENT_RESIDENT, PATIENT) may be requested.

    Raises:
        DuplicateEmailError: If the email is already registered.
        InvalidRoleSetError: If a staff role is requested.
    """
    requested = set(roles or [Role.VISITOR])
    forbidden = requested - SELF_SERVICE_ROLES
    if forbidden:
        names = ", ".join(sorted(r.value for r in forbidden))
        raise InvalidRoleSetError(f"Roles cannot be requested at registration: {names}")

    email = email.strip().lower()
    if await user_service.get_user_by_email(db, email):
        raise DuplicateEmailError(email)

    user = User(
        email=email,
        hashed_password=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        middle_name=middle_name,
        contact_number=contact_number,
        address=address,
        status=AccountStatus.PENDING,
        otp_enabled=False,
        role_assignments=[],
    )
    user.set_roles(requested)
    db.add(user)
    await db.flush()

    logger.info("user_registered", user_id=str(user.id), roles=sorted(r.value for r in requested))
    return user


async def login(
    db: AsyncSession,
    email: str,
    password: str,
    channel: OtpChannel,
) -> LoginResult:
    """
    Authenticate with email and password.

    Returns:
        LoginResult with a token, or requires_otp=True and no token when the
        user has OTP enabled (a LOGIN code has been dispatched).

    Raises:
        InvalidCredentialsError: Unknown email or wrong password.
        DispatchFailureError: OTP required but the code could not be sent.
    """
    user = await user_service.get_user_by_email(db, email)

    if user is None or not verify_password(password, user.hashed_password):
        logger.info("login_failed", email=email.strip().lower())
        raise InvalidCredentialsError()

    if user.otp_enabled:
        await otp_service.issue(
            db,
            key=user.email,
            purpose=OtpPurpose.LOGIN,
            destination=otp_service.destination_for(user, channel),
            channel=channel,
        )
        logger.info("login_otp_required", user_id=str(user.id))
        return LoginResult(requires_otp=True)

    token = issue_session(user)
    logger.info("login_succeeded", user_id=str(user.id), status=user.status.value)
    return LoginResult(requires_otp=False, token=token, user=user)


async def resend_login_otp(db: AsyncSession, email: str, channel: OtpChannel) -> None:
    """
    Issue a fresh LOGIN code for a login already in progress.

    A code is only sent when the password step has happened, i.e. the
    newest LOGIN challenge exists and has not been used. Otherwise this is a
    silent no-op, which keeps the endpoint from acting as a password-less
    login or an account probe.
    """
    user = await user_service.get_user_by_email(db, email)
    if user is None or not user.otp_enabled:
        return

    latest = await otp_service.latest_challenge(db, user.email, OtpPurpose.LOGIN)
    if latest is None or latest.status == OtpStatus.VERIFIED:
        return

    await otp_service.issue(
        db,
        key=user.email,
        purpose=OtpPurpose.LOGIN,
        destination=otp_service.destination_for(user, channel),
        channel=channel,
    )


async def verify_login_otp(db: AsyncSession, email: str, otp: str) -> tuple[User, str]:
    """
    Complete an OTP login.

    Returns:
        Tuple of (User, session token).

    Raises:
        InvalidCodeError / CodeExpiredError / TooManyAttemptsError
    """
    user = await user_service.get_user_by_email(db, email)
    if user is None:
        raise InvalidCodeError("No verification code found. Please request a new code.")

    await otp_service.verify(db, key=user.email, purpose=OtpPurpose.LOGIN, candidate=otp)

    token = issue_session(user)
    logger.info("login_succeeded", user_id=str(user.id), status=user.status.value, otp=True)
    return user, token


async def forgot_password(db: AsyncSession, email: str, channel: OtpChannel) -> None:
    """Send a PASSWORD_RESET code if the account exists; silent otherwise."""
    user = await user_service.get_user_by_email(db, email)
    if user is None:
        logger.info("password_reset_unknown_email")
        return

    await otp_service.issue(
        db,
        key=user.email,
        purpose=OtpPurpose.PASSWORD_RESET,
        destination=otp_service.destination_for(user, channel),
        channel=channel,
    )


async def check_reset_code(db: AsyncSession, email: str, code: str) -> None:
    """Validate a reset code without using it up."""
    await otp_service.verify(
        db,
        key=email,
        purpose=OtpPurpose.PASSWORD_RESET,
        candidate=code,
        consume=False,
    )


async def reset_password(db: AsyncSession, email: str, code: str, new_password: str) -> User:
    """
    Consume a reset code and set a new password.

    Raises:
        InvalidCodeError / CodeExpiredError / TooManyAttemptsError
    """
    await otp_service.verify(db, key=email, purpose=OtpPurpose.PASSWORD_RESET, candidate=code)

    user = await user_service.get_user_by_email(db, email)
    if user is None:
        # A challenge only exists for registered emails
        raise InvalidCodeError()

    user.hashed_password = hash_password(new_password)
    await db.flush()
    logger.info("password_reset", user_id=str(user.id))
    return user


async def update_profile(db: AsyncSession, user: User, updates: dict) -> User:
    """
    Apply profile field updates (already filtered by the request schema).

    Raises:
        InvalidProfileError: If the update would leave two-step verification
            on without a valid Philippine mobile number.
    """
    changes = {
        field: value for field, value in updates.items()
        if not (value is None and field in _REQUIRED_PROFILE_FIELDS)
    }

    if {"otp_enabled", "contact_number"} & changes.keys():
        otp_enabled = changes.get("otp_enabled", user.otp_enabled)
        contact_number = changes.get("contact_number", user.contact_number)
        if otp_enabled and not (contact_number and is_valid_philippine_number(contact_number)):
            raise InvalidProfileError(
                "Two-step verification needs a valid Philippine mobile number (09XXXXXXXXX)"
            )

    for field, value in changes.items():
        setattr(user, field, value)
    await db.flush()
    return user
