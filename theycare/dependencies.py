"""
FastAPI dependencies for authentication and authorization.

They form a dependency chain that applies the route guard on the server:

  get_auth_context (bearer token -> AuthContext)      401 SessionInvalidError
      ├── get_current_user (AuthContext -> User)
      └── require_active (AuthContext, status ACTIVE)  403 AccountNotActiveError
              └── require_permission(p)                403 UnauthorizedError

Permission checks use the role set embedded in the session token; the account
status is read from the user row on every request, so a suspension takes
effect immediately even for tokens issued earlier.

Every protected endpoint declares one of these as a parameter. If it fails,
the request is rejected before the route handler runs.
"""

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from theycare.context import AuthContext
from theycare.database import get_db
from theycare.exceptions import AccountNotActiveError, UnauthorizedError
from theycare.guard import GuardOutcome, evaluate
from theycare.models.user import User
from theycare.permissions import Permission
from theycare.services import user_service
from theycare.services.session_service import resolve_context


# auto_error=False: a missing header becomes our own SessionInvalidError,
# so every 401 has the same JSON shape
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


async def get_auth_context(
    token: str | None = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> AuthContext:
    """
    Validate the bearer token and build the caller's AuthContext.

    Raises:
        SessionInvalidError: If the token is missing, invalid or expired.
    """
    return await resolve_context(db, token)


async def get_current_user(
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
) -> User:
    """The authenticated user's row, whatever their account status."""
    return await user_service.get_user(db, ctx.user_id)


async def require_active(
    ctx: AuthContext = Depends(get_auth_context),
) -> AuthContext:
    """
    Require an ACTIVE account.

    Raises:
        AccountNotActiveError: For PENDING, SUSPENDED and INACTIVE accounts.
    """
    decision = evaluate(ctx)
    if decision.outcome == GuardOutcome.BLOCKED:
        raise AccountNotActiveError(ctx.status.value)
    return ctx


def require_permission(permission: Permission):
    """
    Dependency factory: require an active caller holding ``permission``.

    Usage:
        @router.get("/audit-logs")
        async def audit_logs(ctx: AuthContext = Depends(require_permission(Permission.AUDIT_LOGS))):
            ...
    """

    async def dependency(ctx: AuthContext = Depends(require_active)) -> AuthContext:
        if evaluate(ctx, required=permission).outcome == GuardOutcome.DENIED:
            raise UnauthorizedError(permission.value)
        return ctx

    return dependency
