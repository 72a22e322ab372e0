"""
Auth context — the "who can do what" for one request.

Built once per request from the session token (identity + role snapshot)
and the live user row (account status), then handed explicitly to the route
guard, the navigation builder and every permission check. Nothing reads
roles or status from anywhere else.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Iterable

from theycare.models.user import AccountStatus, Role
from theycare.permissions import Permission, authorize, permissions_for


@dataclass(frozen=True)
class AuthContext:
    """
    Authorization context for a request.

    Usage in routes:
        async def my_route(ctx: AuthContext = Depends(require_permission(Permission.AUDIT_LOGS))):
            if ctx.can(Permission.ROLE_MANAGEMENT):
                ...
    """

    user_id: uuid.UUID
    email: str
    roles: frozenset[Role]
    status: AccountStatus
    permissions: frozenset[Permission] = field(default_factory=frozenset)

    @classmethod
    def build(
        cls,
        user_id: uuid.UUID,
        email: str,
        roles: Iterable[Role | str],
        status: AccountStatus,
    ) -> AuthContext:
        """
        Resolve permissions from a role snapshot.

        Role strings the server no longer knows are dropped from ``roles``
        and grant nothing.
        """
        roles = list(roles)
        known = set()
        for r in roles:
            try:
                known.add(Role(r))
            except ValueError:
                continue
        return cls(
            user_id=user_id,
            email=email,
            roles=frozenset(known),
            status=status,
            permissions=permissions_for(roles),
        )

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE

    def can(self, permission: Permission) -> bool:
        return authorize(permission, self.permissions)
