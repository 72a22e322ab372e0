"""
Security utilities: password hashing and session tokens.

1. PASSWORD HASHING (Argon2)
   - Passwords are never stored in plaintext
   - passlib's CryptContext handles Argon2id hashing and verification, and
     transparently upgrades hashes if the scheme ever changes

2. SESSION TOKENS (JSON Web Tokens)
   - After full authentication (password, plus a one-time code when the
     user has OTP enabled) the user receives a signed JWT
   - The payload carries the user id, email and a snapshot of the role set,
     so permission checks need no database lookup
   - Tokens expire after ACCESS_TOKEN_EXPIRE_MINUTES; there is no server-side
     revocation list, expiry is the only way a token dies
"""

from datetime import datetime, timedelta, timezone
from typing import Iterable

from jose import jwt
from passlib.context import CryptContext

from theycare.config import settings


# ---------------------------------------------------------------------------
# 1. Password Hashing (Argon2)
# ---------------------------------------------------------------------------

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    """Hash a plaintext password using Argon2id."""
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plaintext password against a stored Argon2 hash.

    Returns:
        True if the password matches, False otherwise.
    """
    return pwd_context.verify(plain_password, hashed_password)


# ---------------------------------------------------------------------------
# 2. Session Tokens
# ---------------------------------------------------------------------------


def create_session_token(
    user_id: str,
    email: str,
    roles: Iterable[str],
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a signed session token.

    Claims:
      - "sub":   user id (standard JWT subject claim)
      - "email": login email, for display in the client shell
      - "roles": sorted role snapshot taken at issuance
      - "iat" / "exp": issued-at and expiry timestamps

    Args:
        user_id: The authenticated user's id, as a string.
        email: The user's email.
        roles: The user's role values at the time of login.
        expires_delta: Optional custom lifetime. Defaults to
                       ACCESS_TOKEN_EXPIRE_MINUTES from settings.

    Returns:
        An encoded JWT string.
    """
    issued_at = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    payload = {
        "sub": user_id,
        "email": email,
        "roles": sorted(roles),
        "iat": issued_at,
        "exp": issued_at + expires_delta,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_session_token(token: str) -> dict:
    """
    Decode and verify a session token.

    Raises:
        JWTError: If the token is expired, tampered with, or invalid.

    Returns:
        The decoded payload dictionary.
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
