"""
Pydantic schemas for authentication endpoints.

Registration, login, the OTP second factor and password reset. Pydantic
rejects malformed bodies with a 422 before any service code runs.
"""

from pydantic import BaseModel, EmailStr, Field

from theycare.models.user import Role
from theycare.schemas.user import UserResponse


class RegisterRequest(BaseModel):
    """Request body for POST /auth/register."""
    email: EmailStr
    password: str = Field(min_length=8)            # Minimum 8 characters
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    middle_name: str | None = Field(default=None, max_length=100)
    contact_number: str | None = Field(default=None, max_length=20)
    address: str | None = Field(default=None, max_length=255)
    roles: list[Role] | None = None                # Defaults to [VISITOR]


class RegisterResponse(BaseModel):
    message: str
    user: UserResponse


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""
    email: EmailStr
    password: str


class LoginResponse(BaseModel):
    """
    Login outcome.

    With OTP enabled the first step returns requires_otp=True and no token;
    the token comes from POST /auth/verify-otp.
    """
    requires_otp: bool
    token: str | None = None
    token_type: str | None = None
    user: UserResponse | None = None


class EmailRequest(BaseModel):
    """Request body for send-otp, resend-otp and forgot-password."""
    email: EmailStr


class VerifyOtpRequest(BaseModel):
    email: EmailStr
    otp: str = Field(min_length=1, max_length=12)


class ResetCodeRequest(BaseModel):
    email: EmailStr
    code: str = Field(min_length=1, max_length=12)


class ResetPasswordRequest(BaseModel):
    email: EmailStr
    code: str = Field(min_length=1, max_length=12)
    new_password: str = Field(min_length=8)


class SessionTokenResponse(BaseModel):
    """Response body for a completed login — contains the JWT."""
    token: str
    token_type: str = "bearer"
    user: UserResponse


class MessageResponse(BaseModel):
    message: str
