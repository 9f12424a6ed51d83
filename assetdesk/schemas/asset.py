"""
Pydantic schemas for asset endpoints.
"""

from typing import Any, Dict, List

from pydantic import Field

from assetdesk.schemas.common import CamelModel, RecordResponse


class AssetCreate(CamelModel):
    """Asset creation request. Images are attached through the images endpoint."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)
    category_id: str | None = Field(default=None, alias="categoryId")
    space_id: str | None = Field(default=None, alias="spaceId")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Free-form specifications")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "name": "Rooftop HVAC Unit 2",
                "description": "Carrier 50XC, serves floors 3-5",
                "categoryId": "hvac",
                "spaceId": "roof",
                "metadata": {"serialNumber": "CX-2291", "installYear": 2019},
            }
        }

    def to_fields(self) -> dict:
        # Defaults count for creation
        return self.model_dump(by_alias=True)


class AssetUpdate(CamelModel):
    """Partial asset update; an explicit null clears the field."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=5000)
    category_id: str | None = Field(default=None, alias="categoryId")
    space_id: str | None = Field(default=None, alias="spaceId")
    metadata: Dict[str, Any] | None = None


class AssetResponse(RecordResponse):
    name: str
    description: str | None = None
    category_id: str | None = Field(default=None, alias="categoryId")
    space_id: str | None = Field(default=None, alias="spaceId")
    images: List[str] = Field(default_factory=list, description="Attachment references")
    metadata: Dict[str, Any] | None = Field(default_factory=dict, description="Null once cleared")
