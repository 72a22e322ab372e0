"""
Session service — minting session tokens and turning them back into an
AuthContext.

The token supplies identity and the role snapshot; the user row supplies the
account status, which administrators can change at any time. A token for a
user that no longer exists is invalid.
"""

import uuid

from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from theycare.context import AuthContext
from theycare.exceptions import InvalidRoleSetError, SessionInvalidError
from theycare.models.user import User
from theycare.security import create_session_token, decode_session_token


def issue_session(user: User) -> str:
    """
    Mint a session token for a fully authenticated user.

    Raises:
        InvalidRoleSetError: If the user holds no roles.
    """
    if not user.roles:
        raise InvalidRoleSetError()
    return create_session_token(
        user_id=str(user.id),
        email=user.email,
        roles=[role.value for role in user.roles],
    )


async def resolve_context(db: AsyncSession, token: str | None) -> AuthContext:
    """
    Validate ``token`` and build the caller's AuthContext.

    Raises:
        SessionInvalidError: Missing, expired, forged or malformed token, a
            token without roles, or a token for an unknown user.
    """
    if not token:
        raise SessionInvalidError("Not authenticated")

    try:
        payload = decode_session_token(token)
        user_id = uuid.UUID(payload["sub"])
        roles = payload["roles"]
    except (JWTError, KeyError, ValueError, TypeError):
        raise SessionInvalidError()

    if not isinstance(roles, list) or not roles:
        raise SessionInvalidError()

    user = await db.get(User, user_id)
    if user is None:
        raise SessionInvalidError()

    return AuthContext.build(
        user_id=user.id,
        email=user.email,
        roles=roles,
        status=user.status,
    )
