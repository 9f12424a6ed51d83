"""
Pydantic schemas for category and space endpoints.
"""

from typing import List

from pydantic import BaseModel, Field

from assetdesk.schemas.common import CamelModel, RecordResponse


class Coordinates(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class Location(BaseModel):
    address: str | None = None
    coordinates: Coordinates | None = None


class CategoryCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    parent_id: str | None = Field(default=None, alias="parentId")
    color: str | None = Field(default=None, max_length=32)
    icon: str | None = Field(default=None, max_length=64)

    class Config:
        populate_by_name = True
        json_schema_extra = {"example": {"name": "Pumps", "parentId": "plumbing", "color": "#2563eb"}}


class CategoryUpdate(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    parent_id: str | None = Field(default=None, alias="parentId")
    color: str | None = Field(default=None, max_length=32)
    icon: str | None = Field(default=None, max_length=64)


class SpaceCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    parent_id: str | None = Field(default=None, alias="parentId")
    location: Location | None = None

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "name": "Building A",
                "location": {"address": "1 Main St", "coordinates": {"lat": 51.5, "lng": -0.12}},
            }
        }


class SpaceUpdate(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    parent_id: str | None = Field(default=None, alias="parentId")
    location: Location | None = None


class CategoryResponse(RecordResponse):
    name: str
    description: str | None = None
    parent_id: str | None = Field(default=None, alias="parentId")
    color: str | None = None
    icon: str | None = None


class SpaceResponse(RecordResponse):
    name: str
    description: str | None = None
    parent_id: str | None = Field(default=None, alias="parentId")
    location: Location | None = None


class CategoryNode(CategoryResponse):
    children: List["CategoryNode"] = Field(default_factory=list)


class SpaceNode(SpaceResponse):
    children: List["SpaceNode"] = Field(default_factory=list)


CategoryNode.model_rebuild()
SpaceNode.model_rebuild()
