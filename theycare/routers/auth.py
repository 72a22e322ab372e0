"""
Authentication router — the public endpoints plus the caller's own session.

Endpoints:
  POST /auth/register           — Self-registration (account starts PENDING)
  POST /auth/login              — Password step; token, or requires_otp
  POST /auth/send-otp           — (Re)send the login code for a login in progress
  POST /auth/resend-otp         — Same as send-otp
  POST /auth/verify-otp         — OTP step; returns the session token
  POST /auth/forgot-password    — Send a password reset code
  POST /auth/verify-reset-code  — Check a reset code without using it
  POST /auth/reset-password     — Use a reset code to set a new password
  GET  /auth/profile            — The caller's own user record
  PUT  /auth/profile            — Update profile fields and the OTP toggle
  GET  /auth/session            — Route-guard decision for the client shell
  GET  /auth/navigation         — Sidebar sections and quick actions

Security notes:
  - Plaintext passwords and codes exist only in memory during the request;
    the logging middleware never reads request bodies.
  - Code requests answer the same way whether or not the email exists.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from theycare.channels import OtpChannel, get_otp_channel
from theycare.context import AuthContext
from theycare.database import get_db
from theycare.dependencies import get_current_user, oauth2_scheme, require_active
from theycare.exceptions import SessionInvalidError
from theycare.guard import RouteGuard
from theycare.models.user import User
from theycare.navigation import navigation_for, quick_actions_for
from theycare.schemas.auth import (
    EmailRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    ResetCodeRequest,
    ResetPasswordRequest,
    SessionTokenResponse,
    VerifyOtpRequest,
)
from theycare.schemas.navigation import (
    GuardDecisionResponse,
    NavigationResponse,
    NavSectionResponse,
    QuickActionResponse,
)
from theycare.schemas.user import ProfileUpdateRequest, UserResponse
from theycare.services import auth_service
from theycare.services.session_service import resolve_context

router = APIRouter()

CODE_SENT_MESSAGE = "If the account exists, a verification code has been sent."


# ---------------------------------------------------------------------------
# Registration and login
# ---------------------------------------------------------------------------

@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
async def register(
    request: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Create an account with status PENDING.

    The account can log in right away but sees the "pending approval" screen
    until an administrator activates it.

    - **roles**: Optional; VISITOR, PARENT_RESIDENT and/or PATIENT (default VISITOR)
    """
    user = await auth_service.register(
        db=db,
        email=request.email,
        password=request.password,
        first_name=request.first_name,
        last_name=request.last_name,
        middle_name=request.middle_name,
        contact_number=request.contact_number,
        address=request.address,
        roles=request.roles,
    )
    return RegisterResponse(
        message="Registration successful. Your account is pending approval.",
        user=UserResponse.model_validate(user),
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Authenticate with email and password",
)
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db),
    channel: OtpChannel = Depends(get_otp_channel),
):
    """
    Password step of the login.

    Without OTP the response carries the bearer token:

        Authorization: Bearer <token>

    With OTP enabled it carries ``requires_otp: true`` and no token; finish
    with POST /auth/verify-otp.
    """
    result = await auth_service.login(
        db=db,
        email=request.email,
        password=request.password,
        channel=channel,
    )
    if result.requires_otp:
        return LoginResponse(requires_otp=True)

    return LoginResponse(
        requires_otp=False,
        token=result.token,
        token_type="bearer",
        user=UserResponse.model_validate(result.user),
    )


@router.post(
    "/send-otp",
    response_model=MessageResponse,
    summary="Send a login verification code",
)
async def send_otp(
    request: EmailRequest,
    db: AsyncSession = Depends(get_db),
    channel: OtpChannel = Depends(get_otp_channel),
):
    await auth_service.resend_login_otp(db, request.email, channel)
    return MessageResponse(message=CODE_SENT_MESSAGE)


@router.post(
    "/resend-otp",
    response_model=MessageResponse,
    summary="Resend the login verification code",
)
async def resend_otp(
    request: EmailRequest,
    db: AsyncSession = Depends(get_db),
    channel: OtpChannel = Depends(get_otp_channel),
):
    """Issue a fresh code; the previous one stops working."""
    await auth_service.resend_login_otp(db, request.email, channel)
    return MessageResponse(message=CODE_SENT_MESSAGE)


@router.post(
    "/verify-otp",
    response_model=SessionTokenResponse,
    summary="Complete login with the verification code",
)
async def verify_otp(
    request: VerifyOtpRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    OTP step of the login.

    Fails with ``invalid_code`` for a wrong code and ``expired`` for an
    expired, replaced or already used one.
    """
    user, token = await auth_service.verify_login_otp(db, request.email, request.otp)
    return SessionTokenResponse(token=token, user=UserResponse.model_validate(user))


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------

@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    summary="Send a password reset code",
)
async def forgot_password(
    request: EmailRequest,
    db: AsyncSession = Depends(get_db),
    channel: OtpChannel = Depends(get_otp_channel),
):
    await auth_service.forgot_password(db, request.email, channel)
    return MessageResponse(message=CODE_SENT_MESSAGE)


@router.post(
    "/verify-reset-code",
    response_model=MessageResponse,
    summary="Check a password reset code",
)
async def verify_reset_code(
    request: ResetCodeRequest,
    db: AsyncSession = Depends(get_db),
):
    """Validates the code without using it, so the reset form can follow."""
    await auth_service.check_reset_code(db, request.email, request.code)
    return MessageResponse(message="Code verified")


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    summary="Set a new password with a reset code",
)
async def reset_password(
    request: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
):
    await auth_service.reset_password(db, request.email, request.code, request.new_password)
    return MessageResponse(message="Password has been reset. You can now log in.")


# ---------------------------------------------------------------------------
# The caller's own session
# ---------------------------------------------------------------------------

@router.get(
    "/profile",
    response_model=UserResponse,
    summary="Get the caller's profile",
)
async def get_profile(user: User = Depends(get_current_user)):
    """Available to every authenticated user, whatever their account status."""
    return user


@router.put(
    "/profile",
    response_model=UserResponse,
    summary="Update the caller's profile",
)
async def update_profile(
    request: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Only the fields present in the body are changed."""
    updates = request.model_dump(exclude_unset=True)
    return await auth_service.update_profile(db, user, updates)


@router.get(
    "/session",
    response_model=GuardDecisionResponse,
    summary="Route-guard decision for the client shell",
)
async def session(
    token: str | None = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
):
    """
    Evaluate the route guard for the bearer token.

    Never answers 401: a missing or invalid session is a ``redirect``
    decision, an inactive account is ``blocked``.
    """
    resolved: list[AuthContext] = []

    async def load_context() -> AuthContext | None:
        try:
            ctx = await resolve_context(db, token)
        except SessionInvalidError:
            return None
        resolved.append(ctx)
        return ctx

    decision = await RouteGuard(load_context).refresh()
    ctx = resolved[0] if resolved else None
    return GuardDecisionResponse(
        outcome=decision.outcome,
        redirect_to=decision.redirect_to,
        title=decision.title,
        message=decision.message,
        status=decision.status,
        roles=sorted(ctx.roles, key=lambda r: r.value) if ctx else [],
        permissions=sorted(ctx.permissions, key=lambda p: p.value) if ctx else [],
    )


@router.get(
    "/navigation",
    response_model=NavigationResponse,
    summary="Sidebar navigation for the caller",
)
async def navigation(ctx: AuthContext = Depends(require_active)):
    """Sections and quick actions computed from the caller's permissions."""
    return NavigationResponse(
        sections=[NavSectionResponse.model_validate(s) for s in navigation_for(ctx.permissions)],
        quick_actions=[QuickActionResponse.model_validate(a) for a in quick_actions_for(ctx.permissions)],
    )
