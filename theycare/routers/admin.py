"""
Admin router — user management for administrators.

Each endpoint is gated by a permission rather than a role, so any role the
permission table grants it to (SYSTEM_ADMIN today) can use it.

Endpoints:
  GET   /admin/stats                   — User counts per status   (ADMIN_DASHBOARD)
  GET   /admin/users                   — List/filter users        (USER_MANAGEMENT)
  GET   /admin/users/pending           — Accounts awaiting approval (USER_MANAGEMENT)
  GET   /admin/users/{user_id}         — One user                 (USER_MANAGEMENT)
  PATCH /admin/users/{user_id}/status  — Approve/suspend/deactivate (USER_MANAGEMENT)
  PUT   /admin/users/{user_id}/roles   — Replace the role set     (ROLE_MANAGEMENT)
  GET   /admin/roles                   — Roles and their permissions (ROLE_MANAGEMENT)
  GET   /admin/permissions             — The permission catalogue (ROLE_MANAGEMENT)
  GET   /admin/audit-logs              — Administrative audit trail (AUDIT_LOGS)

The static /users/pending route is declared before /users/{user_id}.
"""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from theycare.context import AuthContext
from theycare.database import get_db
from theycare.dependencies import require_permission
from theycare.models.user import AccountStatus, Role
from theycare.permissions import (
    Permission,
    ROLE_DISPLAY_NAMES,
    ROLE_PERMISSIONS,
    SELF_SERVICE_ROLES,
)
from theycare.schemas.admin import AuditLogResponse, RoleInfoResponse
from theycare.schemas.user import (
    RolesUpdateRequest,
    StatusUpdateRequest,
    UserResponse,
    UserStatsResponse,
)
from theycare.services import user_service

router = APIRouter()


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------

@router.get(
    "/stats",
    response_model=UserStatsResponse,
    summary="[Admin] User counts per account status",
)
async def admin_stats(
    ctx: AuthContext = Depends(require_permission(Permission.ADMIN_DASHBOARD)),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.user_stats(db)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

@router.get(
    "/users",
    response_model=list[UserResponse],
    summary="[Admin] List users",
)
async def admin_list_users(
    status: AccountStatus | None = Query(default=None, description="Filter by account status"),
    role: Role | None = Query(default=None, description="Filter by held role"),
    search: str | None = Query(default=None, description="Match on name or email"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    ctx: AuthContext = Depends(require_permission(Permission.USER_MANAGEMENT)),
    db: AsyncSession = Depends(get_db),
):
    """List users newest first."""
    return await user_service.list_users(
        db, status=status, role=role, search=search, limit=limit, offset=offset,
    )


@router.get(
    "/users/pending",
    response_model=list[UserResponse],
    summary="[Admin] List accounts awaiting approval",
)
async def admin_list_pending(
    ctx: AuthContext = Depends(require_permission(Permission.USER_MANAGEMENT)),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.list_users(db, status=AccountStatus.PENDING, limit=200)


@router.get(
    "/users/{user_id}",
    response_model=UserResponse,
    summary="[Admin] Get a user",
)
async def admin_get_user(
    user_id: uuid.UUID,
    ctx: AuthContext = Depends(require_permission(Permission.USER_MANAGEMENT)),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.get_user(db, user_id)


@router.patch(
    "/users/{user_id}/status",
    response_model=UserResponse,
    summary="[Admin] Change a user's account status",
)
async def admin_update_status(
    user_id: uuid.UUID,
    request: StatusUpdateRequest,
    ctx: AuthContext = Depends(require_permission(Permission.USER_MANAGEMENT)),
    db: AsyncSession = Depends(get_db),
):
    """
    Approve (ACTIVE), suspend (SUSPENDED) or deactivate (INACTIVE) a user.

    Takes effect on the user's next request; existing tokens stay valid but
    the guard reads the new status.
    """
    return await user_service.update_status(db, ctx, user_id, request.status)


@router.put(
    "/users/{user_id}/roles",
    response_model=UserResponse,
    summary="[Admin] Replace a user's roles",
)
async def admin_update_roles(
    user_id: uuid.UUID,
    request: RolesUpdateRequest,
    ctx: AuthContext = Depends(require_permission(Permission.ROLE_MANAGEMENT)),
    db: AsyncSession = Depends(get_db),
):
    """
    Replace the role set. The user's current token keeps its old role
    snapshot; the new roles apply from their next login.
    """
    return await user_service.update_roles(db, ctx, user_id, request.roles)


# ---------------------------------------------------------------------------
# Roles and permissions
# ---------------------------------------------------------------------------

@router.get(
    "/roles",
    response_model=list[RoleInfoResponse],
    summary="[Admin] Roles and the permissions they grant",
)
async def admin_list_roles(
    ctx: AuthContext = Depends(require_permission(Permission.ROLE_MANAGEMENT)),
):
    return [
        RoleInfoResponse(
            role=role,
            display_name=ROLE_DISPLAY_NAMES[role],
            permissions=sorted(ROLE_PERMISSIONS.get(role, frozenset()), key=lambda p: p.value),
            self_service=role in SELF_SERVICE_ROLES,
        )
        for role in Role
    ]


@router.get(
    "/permissions",
    response_model=list[Permission],
    summary="[Admin] All permission tags",
)
async def admin_list_permissions(
    ctx: AuthContext = Depends(require_permission(Permission.ROLE_MANAGEMENT)),
):
    return list(Permission)


# ---------------------------------------------------------------------------
# Audit trail
# ---------------------------------------------------------------------------

@router.get(
    "/audit-logs",
    response_model=list[AuditLogResponse],
    summary="[Admin] Administrative audit trail",
)
async def admin_audit_logs(
    action: str | None = Query(default=None, description="Substring match on the action"),
    entity_type: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    ctx: AuthContext = Depends(require_permission(Permission.AUDIT_LOGS)),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.list_audit_logs(
        db, action=action, entity_type=entity_type, limit=limit, offset=offset,
    )
