"""
Pydantic schemas for organization endpoints.

WHY: Schemas define request/response contracts for organization management,
providing validation, documentation, and type safety.
"""

from datetime import datetime
from typing import Dict

from pydantic import BaseModel, Field

from assetdesk.models.organization import Role


class OrganizationCreate(BaseModel):
    """Organization creation request schema."""

    name: str = Field(..., min_length=1, max_length=255, description="Organization name")
    currency: str | None = Field(
        default=None,
        min_length=3,
        max_length=3,
        description="ISO 4217 currency for task costs",
    )

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Riverside Facilities",
                "currency": "EUR",
            }
        }


class OrganizationUpdate(BaseModel):
    """Organization update request schema; settings are merged key by key."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    settings: dict | None = Field(default=None, description="Settings to merge")

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Riverside Facilities Ltd",
                "settings": {"currency": "GBP", "quotaLimit": 200},
            }
        }


class OrganizationResponse(BaseModel):
    """Organization with its member map."""

    id: str = Field(..., description="Organization ID")
    name: str = Field(..., description="Organization name")
    members: Dict[str, Role] = Field(default_factory=dict, description="User ID to role")
    settings: dict = Field(default_factory=dict, description="quotaUsed, quotaLimit, currency")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "id": "5f0c2a9e8b7d4e1fa3c6d9b2e4f7a1c3",
                "name": "Riverside Facilities",
                "members": {"user-1": "FULL_ACCESS", "user-2": "LIMITED_ACCESS"},
                "settings": {"quotaUsed": 0, "quotaLimit": 100, "currency": "EUR"},
                "createdAt": "2025-10-12T10:30:00",
                "updatedAt": "2025-10-12T15:45:00",
            }
        }


class MemberRoleUpdate(BaseModel):
    """Change a member's role."""

    role: Role


class InvitationCreate(BaseModel):
    """Invite someone to the organization."""

    email: str = Field(
        ...,
        min_length=3,
        max_length=255,
        pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$",
        description="Invitee email",
    )
    role: Role = Field(default=Role.LIMITED_ACCESS)


class InvitationResponse(BaseModel):
    """Issued invitation; the token is shared with the invitee."""

    token: str
    organization_id: str = Field(..., alias="organizationId")
    email: str
    role: Role
    expires_at: datetime = Field(..., alias="expiresAt")

    class Config:
        from_attributes = True
        populate_by_name = True
