"""
Pydantic schemas for the client shell: route-guard decisions and navigation.
"""

from pydantic import BaseModel

from theycare.guard import GuardOutcome
from theycare.models.user import AccountStatus, Role
from theycare.permissions import Permission


class GuardDecisionResponse(BaseModel):
    """What the shell renders for a protected view."""
    outcome: GuardOutcome
    redirect_to: str | None = None
    title: str | None = None
    message: str | None = None
    status: AccountStatus | None = None
    roles: list[Role] = []
    permissions: list[Permission] = []


class NavItemResponse(BaseModel):
    title: str
    url: str

    model_config = {"from_attributes": True}


class NavSectionResponse(BaseModel):
    title: str
    url: str
    items: list[NavItemResponse]

    model_config = {"from_attributes": True}


class QuickActionResponse(BaseModel):
    name: str
    url: str

    model_config = {"from_attributes": True}


class NavigationResponse(BaseModel):
    sections: list[NavSectionResponse]
    quick_actions: list[QuickActionResponse]
