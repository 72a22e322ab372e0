"""
Pydantic schemas for user data.

hashed_password is never part of a response schema.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from theycare.models.user import AccountStatus, Role


class UserResponse(BaseModel):
    """Public representation of a User."""
    id: uuid.UUID
    email: EmailStr
    first_name: str
    last_name: str
    middle_name: str | None = None
    contact_number: str | None = None
    address: str | None = None
    roles: list[Role]
    status: AccountStatus
    otp_enabled: bool
    created_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("roles", mode="before")
    @classmethod
    def sort_roles(cls, value):
        # User.roles is a frozenset; keep the JSON order stable
        return sorted(value, key=lambda r: getattr(r, "value", r))


class ProfileUpdateRequest(BaseModel):
    """Request body for PUT /auth/profile. Omitted fields are left unchanged."""
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    middle_name: str | None = Field(default=None, max_length=100)
    contact_number: str | None = Field(default=None, max_length=20)
    address: str | None = Field(default=None, max_length=255)
    otp_enabled: bool | None = None


class StatusUpdateRequest(BaseModel):
    """Request body for PATCH /admin/users/{id}/status."""
    status: AccountStatus


class RolesUpdateRequest(BaseModel):
    """Request body for PUT /admin/users/{id}/roles. An empty list is rejected by the service."""
    roles: list[Role]


class UserStatsResponse(BaseModel):
    PENDING: int
    ACTIVE: int
    SUSPENDED: int
    INACTIVE: int
    TOTAL: int
