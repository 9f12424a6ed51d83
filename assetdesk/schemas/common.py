"""
Shared schema pieces.

Record documents use camelCase keys; schemas expose snake_case attributes
with camelCase aliases, and responses are serialized by alias.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class RecordResponse(BaseModel):
    """Audit fields present on every organization-scoped record."""

    id: str = Field(..., description="Record ID")
    organization_id: str = Field(..., alias="organizationId", description="Owning organization")
    created_by: str = Field(..., alias="createdBy", description="Creator user ID")
    created_at: datetime = Field(..., alias="createdAt", description="Creation timestamp")
    updated_at: datetime = Field(..., alias="updatedAt", description="Last write timestamp")

    class Config:
        populate_by_name = True


class CamelModel(BaseModel):
    """Request body accepting either camelCase or snake_case keys."""

    class Config:
        populate_by_name = True

    def to_fields(self) -> dict:
        """Explicitly provided fields as a camelCase dict (nulls kept)."""
        return self.model_dump(by_alias=True, exclude_unset=True)


class ShareResponse(BaseModel):
    """WhatsApp share links for a task or asset."""

    message: str = Field(..., description="Formatted message text")
    share_url: str = Field(..., alias="shareUrl", description="WhatsApp share URL")
    deep_link: str = Field(..., alias="deepLink", description="Link into the web app")
    qr_code_url: str = Field(..., alias="qrCodeUrl", description="QR code image URL")

    class Config:
        populate_by_name = True
