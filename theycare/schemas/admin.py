"""
Pydantic schemas for administrator endpoints.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel

from theycare.models.user import Role
from theycare.permissions import Permission


class RoleInfoResponse(BaseModel):
    """A role with its display name and the permissions it grants."""
    role: Role
    display_name: str
    permissions: list[Permission]
    self_service: bool


class AuditLogResponse(BaseModel):
    id: uuid.UUID
    actor_id: uuid.UUID | None
    action: str
    entity_type: str
    entity_id: str | None
    changes: dict | None
    timestamp: datetime

    model_config = {"from_attributes": True}
