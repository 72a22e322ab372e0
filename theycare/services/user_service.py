"""
User service — the credential store and administrator user management.

Lookups:
  - get_user_by_email / get_user

Administration (callers are gated by permission in the admin router):
  - list_users: filter by status, role and a free-text search
  - update_status: approve, suspend, deactivate (audited; never an account
    holding administrative permissions the actor lacks)
  - update_roles: replace a user's role set (audited, never empty)
  - user_stats: counts per account status
  - list_audit_logs
"""

import uuid
from typing import Iterable

import structlog
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from theycare.context import AuthContext
from theycare.exceptions import InvalidRoleSetError, UnauthorizedError, UserNotFoundError
from theycare.models.audit_log import AuditLog
from theycare.models.user import AccountStatus, Role, User, UserRoleAssignment
from theycare.permissions import ADMINISTRATIVE_PERMISSIONS, permissions_for

logger = structlog.get_logger(__name__)


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    """
    Raises:
        UserNotFoundError: If no user has this id.
    """
    user = await db.get(User, user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    return user


async def list_users(
    db: AsyncSession,
    status: AccountStatus | None = None,
    role: Role | None = None,
    search: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[User]:
    """List users newest first, optionally filtered."""
    query = select(User)

    if status is not None:
        query = query.where(User.status == status)
    if role is not None:
        query = query.where(
            User.id.in_(select(UserRoleAssignment.user_id).where(UserRoleAssignment.role == role))
        )
    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.where(or_(
            func.lower(User.first_name).like(pattern),
            func.lower(User.last_name).like(pattern),
            User.email.like(pattern),
        ))

    query = query.order_by(User.created_at.desc()).limit(limit).offset(offset)
    result = await db.execute(query)
    return list(result.scalars().all())


async def _audit(
    db: AsyncSession,
    actor: AuthContext,
    action: str,
    user: User,
    changes: dict,
) -> None:
    db.add(AuditLog(
        actor_id=actor.user_id,
        action=action,
        entity_type="USER",
        entity_id=str(user.id),
        changes=changes,
    ))


async def update_status(
    db: AsyncSession,
    actor: AuthContext,
    user_id: uuid.UUID,
    status: AccountStatus,
) -> User:
    """
    Change a user's account status.

    Raises:
        UserNotFoundError: If the user does not exist.
        UnauthorizedError: If the administrator targets their own account, or
            the target holds administrative permissions the actor lacks.
    """
    user = await get_user(db, user_id)
    if user.id == actor.user_id:
        raise UnauthorizedError(detail="Administrators cannot change their own account status")

    beyond_actor = (permissions_for(user.roles) & ADMINISTRATIVE_PERMISSIONS) - actor.permissions
    if beyond_actor:
        logger.warning(
            "user_status_change_refused",
            user_id=str(user.id),
            actor_id=str(actor.user_id),
            missing=sorted(p.value for p in beyond_actor),
        )
        raise UnauthorizedError(
            detail="You cannot change the status of an account with more privileges than your own",
        )

    previous = user.status
    user.status = status
    await _audit(
        db, actor, f"Updated user status to {status.value}", user,
        {"status": {"from": previous.value, "to": status.value}},
    )
    await db.flush()

    logger.info(
        "user_status_changed",
        user_id=str(user.id),
        actor_id=str(actor.user_id),
        previous=previous.value,
        status=status.value,
    )
    return user


async def update_roles(
    db: AsyncSession,
    actor: AuthContext,
    user_id: uuid.UUID,
    roles: Iterable[Role],
) -> User:
    """
    Replace a user's role set.

    Raises:
        InvalidRoleSetError: If ``roles`` is empty.
        UserNotFoundError: If the user does not exist.
    """
    wanted = set(roles)
    if not wanted:
        raise InvalidRoleSetError()

    user = await get_user(db, user_id)
    previous = sorted(r.value for r in user.roles)
    user.set_roles(wanted)
    current = sorted(r.value for r in wanted)

    await _audit(
        db, actor, "Updated user roles", user,
        {"roles": {"from": previous, "to": current}},
    )
    await db.flush()

    logger.info(
        "user_roles_changed",
        user_id=str(user.id),
        actor_id=str(actor.user_id),
        previous=previous,
        roles=current,
    )
    return user


async def user_stats(db: AsyncSession) -> dict[str, int]:
    """Number of users per account status, plus the total."""
    result = await db.execute(
        select(User.status, func.count(User.id)).group_by(User.status)
    )
    counts = {status.value: 0 for status in AccountStatus}
    for status, count in result.all():
        counts[AccountStatus(status).value] = count
    counts["TOTAL"] = sum(counts.values())
    return counts


async def list_audit_logs(
    db: AsyncSession,
    action: str | None = None,
    entity_type: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[AuditLog]:
    query = select(AuditLog)
    if action:
        query = query.where(func.lower(AuditLog.action).like(f"%{action.lower()}%"))
    if entity_type:
        query = query.where(AuditLog.entity_type == entity_type)
    query = query.order_by(AuditLog.timestamp.desc()).limit(limit).offset(offset)
    result = await db.execute(query)
    return list(result.scalars().all())
